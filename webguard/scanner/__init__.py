# webguard/scanner/__init__.py
"""
WebGuard analysis engine.

Usage:
    from webguard.scanner import ScanOrchestrator

    orchestrator = ScanOrchestrator()
    report = await orchestrator.scan("https://example.com")

Architecture:
    Orchestrator
    └── Analyzers (drive engines, interpret facts → findings)
        ├── FingerprintAnalyzer: Server / X-Powered-By disclosure
        ├── HeaderAnalyzer: HTTP security headers
        ├── SSLAnalyzer: HTTPS usage, certificate, cipher
        └── PortRiskAnalyzer: open ports by risk tier
            │
            └── Engines (collect raw facts)
                ├── http_engine: one GET, headers + status
                ├── ssl_engine: TLS handshake, certificate + session
                └── port_engine: concurrent TCP connect sweep
"""

from webguard.scanner.orchestrator import ScanOrchestrator, run_scan

__all__ = ["ScanOrchestrator", "run_scan"]
