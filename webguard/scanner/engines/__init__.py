# webguard/scanner/engines/__init__.py
"""
Data collection engines.
Each engine collects raw facts over its own connection.
Engines do NOT classify severity; they only gather facts.
"""
from webguard.scanner.engines.http_engine import HttpResponse, fetch
from webguard.scanner.engines.ssl_engine import (
    CertificateInfo,
    CipherInfo,
    TLSSession,
    fetch_tls_session,
    parse_certificate,
)
from webguard.scanner.engines.port_engine import (
    PORT_CATALOG,
    PortProbeResult,
    PortSpec,
    probe_ports,
    resolve_host,
)

__all__ = [
    "HttpResponse", "fetch",
    "CertificateInfo", "CipherInfo", "TLSSession",
    "fetch_tls_session", "parse_certificate",
    "PORT_CATALOG", "PortProbeResult", "PortSpec",
    "probe_ports", "resolve_host",
]
