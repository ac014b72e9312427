# webguard/scanner/analyzers/port_risk.py
"""
Port Risk Analyzer.

Sweeps the port catalog on the target host through the port engine and
classifies each open port by the risk tier it carries in the catalog.

Classification logic:
    CRITICAL: Plaintext remote shells (Telnet)
    HIGH: File transfer and databases, RDP
    MEDIUM: Services that need careful configuration (SSH, SMTP)
    LOW: Standard web ports, listed as informational result lines

Only critical/high/medium ports produce findings. Each finding carries the
port-specific advice from PORT_ADVICE, or a generic sentence when the port
has none.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Awaitable, Callable, List, Mapping, Optional, Sequence

from webguard.config import ScanConfig
from webguard.netguard import check_address
from webguard.scanner.base import (
    AnalyzerReport,
    BaseAnalyzer,
    CheckResult,
    Finding,
    Note,
    ReportItem,
    ScanTarget,
)
from webguard.scanner.engines.port_engine import (
    PORT_CATALOG,
    Connector,
    PortProbeResult,
    PortSpec,
    probe_ports,
    resolve_host,
)

logger = logging.getLogger(__name__)

CATEGORY = "ports"

# Tiers that produce findings, in display order
FINDING_TIERS = ("critical", "high", "medium")


# ---------------------------------------------------------------------------
# Per-port advice
# ---------------------------------------------------------------------------

PORT_ADVICE: Mapping[int, str] = MappingProxyType({
    21: "FTP port is open. FTP transmits credentials in plaintext. Use SFTP (port 22) instead.",
    22: "SSH port is open. Ensure strong passwords/keys are used and consider changing default port.",
    23: "Telnet port is OPEN! Telnet is extremely insecure (plaintext). Disable immediately and use SSH.",
    25: "SMTP port is open. Ensure it's properly configured to prevent spam relay.",
    3306: "MySQL database port is exposed to the internet. Restrict access to trusted IPs only!",
    5432: "PostgreSQL database port is exposed. Databases should NOT be publicly accessible!",
    6379: "Redis port is exposed. Redis has no authentication by default. Restrict access immediately!",
    27017: "MongoDB port is exposed. Databases should be behind a firewall, not public!",
    3389: "RDP (Remote Desktop) is exposed. This is a common attack vector. Restrict to VPN only!",
    8080: "Alternative HTTP port is open. Ensure this service is intentional and secured.",
    8443: "Alternative HTTPS port is open. Ensure this service is intentional and secured.",
})


def get_port_advice(port: int, service_name: str) -> str:
    advice = PORT_ADVICE.get(port)
    if advice is None:
        return f"Port {port} ({service_name}) is open. Verify if this exposure is necessary."
    return advice


def _open_line(result: PortProbeResult, secure: bool) -> CheckResult:
    return CheckResult(f"Port {result.port}", f"{result.service_name} - OPEN", secure)


def classify_results(results: Sequence[PortProbeResult]) -> List[ReportItem]:
    """Turn a completed sweep into report items. Closed ports emit nothing."""
    open_ports = [r for r in results if r.is_open]
    if not open_ports:
        return [Note("No common vulnerable ports detected")]

    items: List[ReportItem] = [Note(f"Found {len(open_ports)} open port(s)")]

    for tier in FINDING_TIERS:
        for result in open_ports:
            if result.risk_tier != tier:
                continue
            items.append(_open_line(result, secure=False))
            items.append(Finding(
                severity=tier,
                category=CATEGORY,
                message=get_port_advice(result.port, result.service_name),
            ))

    low = [r for r in open_ports if r.risk_tier == "low"]
    if low:
        items.append(Note("Standard web ports (informational):"))
        items.extend(_open_line(r, secure=True) for r in low)

    return items


# ---------------------------------------------------------------------------
# Analyzer
# ---------------------------------------------------------------------------

class PortRiskAnalyzer(BaseAnalyzer):
    """Resolves the host once, sweeps the catalog, classifies what is open."""

    failure_prefix = "Failed to scan ports"

    def __init__(
        self,
        config: Optional[ScanConfig] = None,
        catalog: Sequence[PortSpec] = PORT_CATALOG,
        connect: Optional[Connector] = None,
        resolver: Callable[[str], Awaitable[str]] = resolve_host,
    ):
        super().__init__(config)
        self.catalog = catalog
        self.connect = connect
        self.resolver = resolver

    @property
    def name(self) -> str:
        return "ports"

    async def analyze(self, target: ScanTarget, report: AnalyzerReport) -> None:
        address = await self.resolver(target.host)
        if self.config.block_private_targets:
            check_address(target.host, address)
        report.add_note(f"Scanning common ports on {target.host}...")

        results = await probe_ports(
            address,
            self.catalog,
            timeout=self.config.port_timeout,
            connect=self.connect,
        )
        report.extend(classify_results(results))

        logger.info(
            f"Port risk analysis of {target.host} ({address}): "
            f"{len(report.findings)} findings"
        )
