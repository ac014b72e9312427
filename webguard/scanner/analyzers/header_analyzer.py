# webguard/scanner/analyzers/header_analyzer.py
"""
HTTP Security Headers Analyzer.

Fetches the target once and checks seven security-relevant response headers.
Every check is a pure function of the header set: it returns a descriptive
result line and at most one Finding, independent of every other check.

Checks performed:
    HIGH:
        - Missing Content-Security-Policy (XSS exposure)
        - Missing Strict-Transport-Security (protocol downgrade)
    MEDIUM:
        - HSTS max-age below 6 months (15552000s) or not set
        - X-Frame-Options missing or not DENY/SAMEORIGIN (clickjacking)
    LOW:
        - X-Content-Type-Options missing or not "nosniff"
        - Missing Referrer-Policy
    INFO:
        - Missing X-XSS-Protection (legacy, advisory only)
        - Missing Permissions-Policy / Feature-Policy
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

import httpx

from webguard.config import ScanConfig
from webguard.scanner.base import (
    AnalyzerReport,
    BaseAnalyzer,
    CheckResult,
    Finding,
    Note,
    ReportItem,
    ScanTarget,
)
from webguard.scanner.engines.http_engine import fetch

logger = logging.getLogger(__name__)

CATEGORY = "headers"

# Six months, in seconds
HSTS_MIN_MAX_AGE = 15552000

MAX_AGE_RE = re.compile(r"max-age\s*=\s*\"?(\d+)", re.IGNORECASE)

SECURE_FRAME_OPTIONS = frozenset({"DENY", "SAMEORIGIN"})

# CSP values can be huge; only the start is echoed back
CSP_DISPLAY_LIMIT = 80


@dataclass(frozen=True)
class RuleOutcome:
    """What one header rule concluded."""
    result: CheckResult
    finding: Optional[Finding] = None
    notes: Tuple[str, ...] = ()

    def items(self) -> List[ReportItem]:
        items: List[ReportItem] = [self.result]
        items.extend(Note(message=n) for n in self.notes)
        if self.finding:
            items.append(self.finding)
        return items


def _finding(severity: str, message: str) -> Finding:
    return Finding(severity=severity, category=CATEGORY, message=message)


def _truncate(value: str, limit: int) -> str:
    return value[:limit] + ("..." if len(value) > limit else "")


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------

def check_content_security_policy(headers: Dict[str, str]) -> RuleOutcome:
    csp = headers.get("content-security-policy")
    if csp:
        return RuleOutcome(
            result=CheckResult("Content-Security-Policy", "Present", True),
            notes=(f"Value: {_truncate(csp, CSP_DISPLAY_LIMIT)}",),
        )
    return RuleOutcome(
        result=CheckResult("Content-Security-Policy", "Missing", False),
        finding=_finding("high", "CSP header is missing. Site is vulnerable to XSS attacks."),
    )


def parse_max_age(value: str) -> Optional[int]:
    """max-age directive of an HSTS value, or None when absent."""
    match = MAX_AGE_RE.search(value or "")
    return int(match.group(1)) if match else None


def check_strict_transport_security(headers: Dict[str, str]) -> RuleOutcome:
    hsts = headers.get("strict-transport-security")
    if not hsts:
        return RuleOutcome(
            result=CheckResult("Strict-Transport-Security", "Missing", False),
            finding=_finding(
                "high",
                "HSTS header is missing. Site is vulnerable to protocol downgrade attacks.",
            ),
        )

    notes = (f"Value: {hsts}",)
    max_age = parse_max_age(hsts)

    if max_age is None:
        return RuleOutcome(
            result=CheckResult("Strict-Transport-Security", "Present", False),
            finding=_finding(
                "medium",
                f"HSTS header has no max-age directive. Recommended: at least "
                f"6 months ({HSTS_MIN_MAX_AGE}s)",
            ),
            notes=notes,
        )

    if max_age < HSTS_MIN_MAX_AGE:
        return RuleOutcome(
            result=CheckResult("Strict-Transport-Security", "Present", False),
            finding=_finding(
                "medium",
                f"HSTS max-age is too low ({max_age}s). Recommended: at least "
                f"6 months ({HSTS_MIN_MAX_AGE}s)",
            ),
            notes=notes,
        )

    return RuleOutcome(
        result=CheckResult("Strict-Transport-Security", "Present", True),
        notes=notes,
    )


def check_x_frame_options(headers: Dict[str, str]) -> RuleOutcome:
    xfo = headers.get("x-frame-options")
    if not xfo:
        return RuleOutcome(
            result=CheckResult("X-Frame-Options", "Missing", False),
            finding=_finding(
                "medium",
                "X-Frame-Options header is missing. Site may be vulnerable to Clickjacking.",
            ),
        )

    value = xfo.strip().upper()
    if value in SECURE_FRAME_OPTIONS:
        return RuleOutcome(result=CheckResult("X-Frame-Options", value, True))

    return RuleOutcome(
        result=CheckResult("X-Frame-Options", value, False),
        finding=_finding("medium", "X-Frame-Options is set but value is not secure."),
    )


def check_x_content_type_options(headers: Dict[str, str]) -> RuleOutcome:
    xcto = headers.get("x-content-type-options")
    if xcto and xcto.strip().lower() == "nosniff":
        return RuleOutcome(result=CheckResult("X-Content-Type-Options", "nosniff", True))

    return RuleOutcome(
        result=CheckResult("X-Content-Type-Options", xcto or "Missing", False),
        finding=_finding(
            "low",
            "X-Content-Type-Options header is missing or incorrect. "
            "Browser may interpret files incorrectly.",
        ),
    )


def check_x_xss_protection(headers: Dict[str, str]) -> RuleOutcome:
    xxp = headers.get("x-xss-protection")
    if xxp:
        return RuleOutcome(result=CheckResult("X-XSS-Protection", xxp, True))

    return RuleOutcome(
        result=CheckResult("X-XSS-Protection", "Missing", False),
        finding=_finding(
            "info",
            "X-XSS-Protection header is missing (deprecated but still useful for older browsers).",
        ),
    )


def check_referrer_policy(headers: Dict[str, str]) -> RuleOutcome:
    policy = headers.get("referrer-policy")
    if policy:
        return RuleOutcome(result=CheckResult("Referrer-Policy", policy, True))

    return RuleOutcome(
        result=CheckResult("Referrer-Policy", "Missing", False),
        finding=_finding("low", "Referrer-Policy header is missing. Referer information may leak."),
    )


def check_permissions_policy(headers: Dict[str, str]) -> RuleOutcome:
    # Feature-Policy is the legacy name
    policy = headers.get("permissions-policy") or headers.get("feature-policy")
    if policy:
        return RuleOutcome(result=CheckResult("Permissions-Policy", "Present", True))

    return RuleOutcome(
        result=CheckResult("Permissions-Policy", "Missing", False),
        finding=_finding(
            "info",
            "Permissions-Policy header is missing. Consider restricting browser features.",
        ),
    )


HeaderRule = Callable[[Dict[str, str]], RuleOutcome]

HEADER_RULES: Tuple[HeaderRule, ...] = (
    check_content_security_policy,
    check_strict_transport_security,
    check_x_frame_options,
    check_x_content_type_options,
    check_x_xss_protection,
    check_referrer_policy,
    check_permissions_policy,
)


def evaluate_headers(headers: Dict[str, str]) -> List[RuleOutcome]:
    """Apply every rule to a lower-cased header set."""
    return [rule(headers) for rule in HEADER_RULES]


# ---------------------------------------------------------------------------
# Analyzer
# ---------------------------------------------------------------------------

class HeaderAnalyzer(BaseAnalyzer):
    """Fetches the target and runs every header rule against the response."""

    failure_prefix = "Failed to fetch headers"

    def __init__(
        self,
        config: Optional[ScanConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(config)
        self.transport = transport

    @property
    def name(self) -> str:
        return "headers"

    async def analyze(self, target: ScanTarget, report: AnalyzerReport) -> None:
        response = await fetch(
            target.url,
            timeout=self.config.http_timeout,
            max_redirects=self.config.max_redirects,
            user_agent=self.config.user_agent,
            transport=self.transport,
            block_private=self.config.block_private_targets,
        )

        for outcome in evaluate_headers(response.headers):
            report.extend(outcome.items())

        logger.info(
            f"Header analysis of {target.url}: status {response.status_code}, "
            f"{len(report.findings)} findings"
        )
