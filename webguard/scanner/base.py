# webguard/scanner/base.py
"""
Base classes and data structures for the WebGuard analysis engine.

Architecture:
    ScanTarget flows through:  Orchestrator → Analyzers → (Engines) → AnalyzerReport

Engines:    Collect raw facts from the network (HTTP response, TLS session,
            TCP reachability). Engines NEVER classify severity; they only
            gather facts, and translate library errors into NetworkError /
            ProtocolError.

Analyzers:  Drive their own engine calls for one target and interpret the
            facts into Findings, CheckResults and Notes. Analyzers share no
            state and never read each other's results.

This separation means:
  - Severity rules can be tested as pure functions, without a network
  - Each analyzer can fail independently without crashing the whole scan
"""

from __future__ import annotations

import dataclasses
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple, Union
from urllib.parse import urlparse

from webguard.config import ScanConfig
from webguard.errors import WebGuardError

logger = logging.getLogger(__name__)

SEVERITIES = ("critical", "high", "medium", "low", "info")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def now_utc() -> datetime:
    """Timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Target
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ScanTarget:
    """
    The host under audit. Derived once from a validated URL and never
    changed for the duration of a scan.
    """
    scheme: str                         # http, https
    host: str
    port: Optional[int] = None
    url: str = ""

    @classmethod
    def from_url(cls, url: str) -> "ScanTarget":
        """
        Build a target from an absolute URL.

        A scheme-less input ("example.com") is treated as https.
        Raises ValueError if the scheme is not http/https or no host is present.
        """
        raw = (url or "").strip()
        if not raw:
            raise ValueError("URL is empty")
        if "://" not in raw:
            raw = "https://" + raw

        parsed = urlparse(raw)
        scheme = (parsed.scheme or "").lower()
        if scheme not in ("http", "https"):
            raise ValueError(f"Unsupported scheme: {parsed.scheme!r}")

        host = parsed.hostname
        if not host:
            raise ValueError(f"No host in URL: {url!r}")

        # .port raises ValueError itself for out-of-range values
        port = parsed.port

        return cls(scheme=scheme, host=host, port=port, url=raw)

    @property
    def is_https(self) -> bool:
        return self.scheme == "https"

    @property
    def effective_port(self) -> int:
        if self.port:
            return self.port
        return 443 if self.is_https else 80


# ---------------------------------------------------------------------------
# Report items: everything an analyzer can emit
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Finding:
    """
    A security issue observed on the target.

    Fields:
        severity:  One of: critical, high, medium, low, info.
        category:  Which analyzer area produced it: headers, fingerprint, tls, ports.
        message:   Human-readable explanation, shown as-is by the presentation layer.
    """
    severity: str
    category: str
    message: str

    def __post_init__(self):
        if self.severity not in SEVERITIES:
            raise ValueError(f"Unknown severity: {self.severity!r}")


@dataclass(frozen=True)
class CheckResult:
    """A descriptive result line: what was checked, what was seen, and whether it is good."""
    label: str
    value: str
    secure: bool


@dataclass(frozen=True)
class Note:
    """Free-form informational (level="info") or error (level="error") line."""
    message: str
    level: str = "info"

    @property
    def is_error(self) -> bool:
        return self.level == "error"


ReportItem = Union[Finding, CheckResult, Note]

# The presentation layer's hook: called once per (analyzer_name, item) record.
FindingSink = Callable[[str, ReportItem], None]


def item_to_dict(item: ReportItem) -> Dict[str, Any]:
    """JSON-friendly form of a report item, tagged with its kind."""
    kind = {Finding: "finding", CheckResult: "result", Note: "note"}[type(item)]
    data = dataclasses.asdict(item)
    data["type"] = kind
    return data


@dataclass
class AnalyzerReport:
    """
    Ordered output of one analyzer run.

    Items are kept in emission order so the presentation layer can print
    them as a readable block. Ordering carries no semantic weight.
    """
    analyzer_name: str
    category: str = ""
    items: List[ReportItem] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    duration_seconds: float = 0.0

    def add_finding(self, severity: str, message: str) -> Finding:
        finding = Finding(severity=severity, category=self.category or self.analyzer_name, message=message)
        self.items.append(finding)
        return finding

    def add_result(self, label: str, value: str, secure: bool) -> None:
        self.items.append(CheckResult(label=label, value=value, secure=secure))

    def add_note(self, message: str) -> None:
        self.items.append(Note(message=message))

    def add_error(self, message: str) -> None:
        self.errors.append(message)
        self.items.append(Note(message=message, level="error"))

    def extend(self, items: List[ReportItem]) -> None:
        self.items.extend(items)

    @property
    def findings(self) -> List[Finding]:
        return [i for i in self.items if isinstance(i, Finding)]

    @property
    def success(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.analyzer_name,
            "success": self.success,
            "errors": list(self.errors),
            "duration": self.duration_seconds,
            "items": [item_to_dict(i) for i in self.items],
        }


@dataclass
class ScanReport:
    """Aggregate of one orchestrator run against one target."""
    target: ScanTarget
    reports: List[AnalyzerReport] = field(default_factory=list)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    duration_seconds: float = 0.0

    @property
    def findings(self) -> List[Finding]:
        return [f for r in self.reports for f in r.findings]

    def records(self) -> Iterator[Tuple[str, ReportItem]]:
        """(analyzer_name, item) pairs, grouped by analyzer in run order."""
        for report in self.reports:
            for item in report.items:
                yield report.analyzer_name, item

    def get(self, analyzer_name: str) -> Optional[AnalyzerReport]:
        for report in self.reports:
            if report.analyzer_name == analyzer_name:
                return report
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "target": self.target.url,
            "startedAt": self.started_at.isoformat() if self.started_at else None,
            "duration": self.duration_seconds,
            "findingsCount": len(self.findings),
            "analyzers": [r.to_dict() for r in self.reports],
        }


# ---------------------------------------------------------------------------
# Abstract base class
# ---------------------------------------------------------------------------

class BaseAnalyzer(ABC):
    """
    Abstract base for analyzers.

    To create a new analyzer:
        1. Subclass BaseAnalyzer
        2. Set the `name` property (e.g., "headers", "tls")
        3. Set `failure_prefix` for the error line shown when it cannot connect
        4. Implement `analyze(target, report)`

    The base class handles automatically:
        - Timing (duration_seconds is set automatically)
        - Error isolation (NetworkError / ProtocolError become one error line;
          any other exception is logged and recorded as "Scan failed: ...")
    """

    failure_prefix = "Analysis failed"

    def __init__(self, config: Optional[ScanConfig] = None):
        self.config = config or ScanConfig()

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique analyzer identifier. Used as the record key in the output."""
        ...

    @property
    def category(self) -> str:
        """Category stamped on every Finding this analyzer emits."""
        return self.name

    async def run(self, target: ScanTarget) -> AnalyzerReport:
        """
        Execute the analyzer with automatic timing and error isolation.

        DO NOT OVERRIDE THIS METHOD. Override `analyze()` instead.

        Always returns an AnalyzerReport, even when the target is unreachable
        or the analyzer itself crashes. Items added before a failure are kept.
        """
        report = AnalyzerReport(analyzer_name=self.name, category=self.category)
        start = time.monotonic()

        try:
            await self.analyze(target, report)
        except WebGuardError as e:
            logger.warning(f"Analyzer '{self.name}' failed for {target.host}: {e}")
            report.add_error(f"{self.failure_prefix}: {e}")
        except Exception as e:
            logger.exception(f"Analyzer '{self.name}' crashed for {target.host}")
            report.add_error(f"Scan failed: {e}")
        finally:
            report.duration_seconds = round(time.monotonic() - start, 2)

        return report

    @abstractmethod
    async def analyze(self, target: ScanTarget, report: AnalyzerReport) -> None:
        """
        Collect what this analyzer needs and append items to `report`.

        Raise NetworkError / ProtocolError when the target cannot be observed;
        the base class turns that into a single error line.
        """
        ...
