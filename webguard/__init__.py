# webguard/__init__.py
"""
WebGuard: passive black-box security auditor for web targets.

    from webguard import run_scan

    report = run_scan("https://example.com")
    for analyzer_name, item in report.records():
        ...
"""

from webguard.config import ScanConfig
from webguard.errors import BlockedTargetError, NetworkError, ProtocolError, WebGuardError
from webguard.scanner import ScanOrchestrator, run_scan

__version__ = "1.0.0"

__all__ = [
    "ScanConfig", "ScanOrchestrator", "run_scan",
    "WebGuardError", "NetworkError", "ProtocolError", "BlockedTargetError",
]
