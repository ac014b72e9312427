# webguard/errors.py
"""
Error taxonomy for the analysis engine.

Engines translate library exceptions (httpx, ssl, socket, cryptography)
into one of these at their boundary. Analyzers catch WebGuardError and
report it as a single error line; anything else is logged with its
traceback and recorded as "Scan failed: ..." on the same report.
"""

from __future__ import annotations


class WebGuardError(Exception):
    """Base class for every error the scanner reports instead of raising."""


class NetworkError(WebGuardError):
    """DNS failure, connection refused, or timeout."""


class ProtocolError(WebGuardError):
    """TLS handshake failure, malformed/absent certificate, broken HTTP framing."""


class BlockedTargetError(WebGuardError):
    """The host resolves to a private or reserved address and blocking is on."""
