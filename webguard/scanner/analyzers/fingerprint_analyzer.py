# webguard/scanner/analyzers/fingerprint_analyzer.py
"""
Server Fingerprinting Analyzer.

Reads the response headers that reveal what software the target runs.

Detection sources:
    - Server:        product family and version disclosure
    - X-Powered-By:  backend language / framework
    - Misc headers:  ASP.NET version, CMS generators, caches, proxies

Produces:
    MEDIUM:   Server header carries a version number
    MEDIUM:   X-Powered-By present
    LOW:      Each other disclosure header present (one finding per header)

Product classification is advisory only: it adds notes, never findings.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional, Tuple

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

CATEGORY = "fingerprint"

VERSION_RE = re.compile(r"\d+\.\d+")


# ---------------------------------------------------------------------------
# Signatures
#
# Server: (substrings, notes). First entry with any substring contained in the
# lower-cased Server value wins.
# ---------------------------------------------------------------------------

SERVER_SIGNATURES: Tuple[Tuple[Tuple[str, ...], Tuple[str, ...]], ...] = (
    (("nginx",), ("Detected: Nginx web server", "Common ports: 80, 443")),
    (("apache",), ("Detected: Apache web server", "Common ports: 80, 443")),
    (("iis", "microsoft"), ("Detected: Microsoft IIS", "Platform: Windows Server")),
    (("cloudflare",), (
        "Detected: Cloudflare CDN/Proxy",
        "Note: Real server may be hidden behind Cloudflare",
    )),
    (("lighttpd",), ("Detected: Lighttpd web server",)),
    (("caddy",), ("Detected: Caddy web server",)),
)

POWERED_BY_SIGNATURES: Tuple[Tuple[str, str], ...] = (
    ("php", "PHP"),
    ("asp", "ASP.NET"),
    ("express", "Express.js"),
)

DISCLOSURE_HEADERS: Tuple[str, ...] = (
    "x-aspnet-version",
    "x-aspnetmvc-version",
    "x-generator",
    "x-drupal-cache",
    "x-varnish",
    "via",
)


def _finding(severity: str, message: str) -> Finding:
    return Finding(severity=severity, category=CATEGORY, message=message)


def identify_server(server: str) -> Tuple[str, ...]:
    """Advisory notes for a known server family, or () when unrecognised."""
    lowered = server.lower()
    for needles, notes in SERVER_SIGNATURES:
        if any(n in lowered for n in needles):
            return notes
    return ()


def identify_powered_by(powered_by: str) -> Optional[str]:
    lowered = powered_by.lower()
    for needle, tech in POWERED_BY_SIGNATURES:
        if needle in lowered:
            return tech
    return None


# ---------------------------------------------------------------------------
# Checks
# ---------------------------------------------------------------------------

def check_server_header(headers: Dict[str, str]) -> List[ReportItem]:
    server = headers.get("server")
    if not server:
        return [
            CheckResult("Server", "Not disclosed", True),
            Note("Server header is hidden (Good security practice)"),
        ]

    items: List[ReportItem] = [CheckResult("Server", server, False)]
    if VERSION_RE.search(server):
        items.append(_finding(
            "medium",
            "Server header discloses version information. "
            "This helps attackers find specific CVEs.",
        ))
        items.append(Note(
            'Recommendation: Configure server to hide version '
            '(e.g., "nginx" instead of "nginx/1.18.0")'
        ))
    else:
        items.append(Note("Server type is disclosed but version is hidden (Good practice)"))

    items.extend(Note(n) for n in identify_server(server))
    return items


def check_powered_by(headers: Dict[str, str]) -> List[ReportItem]:
    powered_by = headers.get("x-powered-by")
    if not powered_by:
        return [
            CheckResult("X-Powered-By", "Not present", True),
            Note("X-Powered-By header is hidden (Good security practice)"),
        ]

    items: List[ReportItem] = [
        CheckResult("X-Powered-By", powered_by, False),
        _finding("medium", "X-Powered-By header reveals backend technology. Remove this header."),
    ]
    tech = identify_powered_by(powered_by)
    if tech:
        items.append(Note(f"Technology: {tech} detected"))
    return items


def check_disclosure_headers(headers: Dict[str, str]) -> List[ReportItem]:
    present = [(name, headers[name]) for name in DISCLOSURE_HEADERS if headers.get(name)]
    if not present:
        return [Note("No other information disclosure headers found")]

    items: List[ReportItem] = [Note("Other information disclosure headers:")]
    items.extend(_finding("low", f"{name}: {value}") for name, value in present)
    return items


def evaluate_fingerprint(headers: Dict[str, str]) -> List[ReportItem]:
    """Every fingerprint item for a lower-cased header set, in display order."""
    return (
        check_server_header(headers)
        + check_powered_by(headers)
        + check_disclosure_headers(headers)
    )


# ---------------------------------------------------------------------------
# Analyzer
# ---------------------------------------------------------------------------

class FingerprintAnalyzer(BaseAnalyzer):

    failure_prefix = "Failed to fetch server information"

    def __init__(
        self,
        config: Optional[ScanConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(config)
        self.transport = transport

    @property
    def name(self) -> str:
        return "fingerprint"

    async def analyze(self, target: ScanTarget, report: AnalyzerReport) -> None:
        response = await fetch(
            target.url,
            timeout=self.config.http_timeout,
            max_redirects=self.config.max_redirects,
            user_agent=self.config.user_agent,
            transport=self.transport,
            block_private=self.config.block_private_targets,
        )
        report.extend(evaluate_fingerprint(response.headers))

        logger.info(
            f"Fingerprint of {target.url}: server={response.header('server')!r}, "
            f"{len(report.findings)} findings"
        )
