# webguard/scanner/engines/port_engine.py
"""
TCP port reachability engine.

Fans out one connection attempt per catalog entry on the event loop, each
bounded by its own timeout, and joins on all of them before returning.

    probe_ports(host)  ──┬── probe_port(21)   ─┐
                         ├── probe_port(22)    │  asyncio.gather
                         ├── ...               │  (join, not race)
                         └── probe_port(8443) ─┘
                                   │
                       list[PortProbeResult], catalog order

A port is "open" only when the TCP handshake completes. Timeouts and
connection errors both resolve to "closed"; filtered vs refused is not
distinguished.

Completion order on the network is irrelevant: results come back in
catalog order once every probe has settled.
"""

from __future__ import annotations

import asyncio
import logging
import socket
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple

from webguard.errors import NetworkError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 2.0

RISK_TIERS = ("critical", "high", "medium", "low")

Connector = Callable[[str, int], Awaitable[Tuple[asyncio.StreamReader, asyncio.StreamWriter]]]


@dataclass(frozen=True)
class PortSpec:
    port: int
    service_name: str
    risk_tier: str                      # critical, high, medium, low


@dataclass(frozen=True)
class PortProbeResult:
    port: int
    service_name: str
    risk_tier: str
    is_open: bool

    @classmethod
    def from_spec(cls, spec: PortSpec, is_open: bool) -> "PortProbeResult":
        return cls(
            port=spec.port,
            service_name=spec.service_name,
            risk_tier=spec.risk_tier,
            is_open=is_open,
        )


# ---------------------------------------------------------------------------
# Port catalog
#
# Web (80, 443, 8080, 8443), remote access (22, 23, 3389), mail (25),
# file transfer (21) and databases (3306, 5432, 6379, 27017).
# Read-only reference data shared by every scan.
# ---------------------------------------------------------------------------

PORT_CATALOG: Tuple[PortSpec, ...] = (
    PortSpec(21, "FTP", "high"),
    PortSpec(22, "SSH", "medium"),
    PortSpec(23, "Telnet", "critical"),
    PortSpec(25, "SMTP", "medium"),
    PortSpec(80, "HTTP", "low"),
    PortSpec(443, "HTTPS", "low"),
    PortSpec(3306, "MySQL", "high"),
    PortSpec(5432, "PostgreSQL", "high"),
    PortSpec(6379, "Redis", "high"),
    PortSpec(27017, "MongoDB", "high"),
    PortSpec(3389, "RDP", "high"),
    PortSpec(8080, "HTTP-Alt", "low"),
    PortSpec(8443, "HTTPS-Alt", "low"),
)


async def resolve_host(host: str) -> str:
    """
    Resolve `host` once so every probe targets the same address.

    Raises NetworkError when the name does not resolve.
    """
    loop = asyncio.get_running_loop()
    try:
        infos = await loop.getaddrinfo(host, None, type=socket.SOCK_STREAM)
    except socket.gaierror as e:
        raise NetworkError(f"Could not resolve {host}: {e}") from e

    if not infos:
        raise NetworkError(f"Could not resolve {host}: no addresses returned")
    return infos[0][4][0]


async def _close(writer: asyncio.StreamWriter) -> None:
    writer.close()
    try:
        await writer.wait_closed()
    except OSError as e:
        logger.debug(f"Probe socket did not close cleanly: {e}")


async def probe_port(
    host: str,
    spec: PortSpec,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    connect: Optional[Connector] = None,
) -> PortProbeResult:
    """Attempt one TCP connection. Never raises for network conditions."""
    connect = connect or asyncio.open_connection

    try:
        _reader, writer = await asyncio.wait_for(connect(host, spec.port), timeout=timeout)
    except asyncio.TimeoutError:
        logger.debug(f"Port {spec.port}/{spec.service_name} on {host}: timeout")
        return PortProbeResult.from_spec(spec, is_open=False)
    except OSError as e:
        logger.debug(f"Port {spec.port}/{spec.service_name} on {host}: {type(e).__name__}")
        return PortProbeResult.from_spec(spec, is_open=False)

    await _close(writer)
    logger.debug(f"Port {spec.port}/{spec.service_name} on {host}: open")
    return PortProbeResult.from_spec(spec, is_open=True)


async def probe_ports(
    host: str,
    catalog: Sequence[PortSpec] = PORT_CATALOG,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    connect: Optional[Connector] = None,
) -> List[PortProbeResult]:
    """
    Probe every catalog entry concurrently and wait for all of them.

    Returns one result per entry, in catalog order.
    """
    tasks = [
        probe_port(host, spec, timeout=timeout, connect=connect)
        for spec in catalog
    ]
    results = await asyncio.gather(*tasks)

    open_count = sum(1 for r in results if r.is_open)
    logger.info(f"Port sweep of {host}: {open_count}/{len(results)} open")
    return list(results)
