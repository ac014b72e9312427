# webguard/scanner/analyzers/__init__.py
"""
Finding analyzers.
Each analyzer drives its own engine calls for one target and interprets the
facts into Findings, CheckResults and Notes.
Analyzers share no state; none reads another's results.
"""
from webguard.scanner.analyzers.fingerprint_analyzer import FingerprintAnalyzer
from webguard.scanner.analyzers.header_analyzer import HeaderAnalyzer
from webguard.scanner.analyzers.ssl_analyzer import SSLAnalyzer
from webguard.scanner.analyzers.port_risk import PortRiskAnalyzer

# Registry of all available analyzers.
# The orchestrator runs these in order and reports them in this order too.
ALL_ANALYZERS = {
    "fingerprint": FingerprintAnalyzer,
    "headers": HeaderAnalyzer,
    "tls": SSLAnalyzer,
    "ports": PortRiskAnalyzer,
}

__all__ = [
    "FingerprintAnalyzer", "HeaderAnalyzer",
    "SSLAnalyzer", "PortRiskAnalyzer", "ALL_ANALYZERS",
]
