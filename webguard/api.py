# webguard/api.py
"""
HTTP API (Flask app factory).

Endpoints:
    POST /audit    {"url": "..."}  → full scan report as JSON
    GET  /health                   → {"status": "ok"}

The audit endpoint refuses targets that resolve to private or reserved
addresses (403) so the service cannot be used to probe internal networks.
Set WEBGUARD_ALLOW_PRIVATE_TARGETS=true to lift that restriction, e.g. for
auditing a staging host on the same LAN. While the restriction is on, the
scan itself also refuses private addresses, so redirects and re-resolution
cannot reach an internal host after the initial check.
"""

from __future__ import annotations

import dataclasses
import logging
import os
import socket
from typing import Optional

from flask import Blueprint, Flask, current_app, jsonify, request

from webguard.config import ScanConfig, configure_logging
from webguard.netguard import is_private_ip
from webguard.scanner.base import ScanTarget
from webguard.scanner.orchestrator import run_scan
from webguard.validation import is_ip_address, validate_url

logger = logging.getLogger(__name__)

audit_bp = Blueprint("audit", __name__)


def _resolve(host: str) -> Optional[str]:
    """First address for `host`; IP literals are returned unchanged."""
    if is_ip_address(host):
        return host
    try:
        results = socket.getaddrinfo(host, None, socket.AF_UNSPEC, socket.SOCK_STREAM)
    except (socket.gaierror, socket.herror, OSError):
        return None
    if not results:
        return None
    return results[0][4][0]


def _env_flag(name: str) -> bool:
    return os.getenv(name, "false").strip().lower() in ("1", "true", "yes", "on")


# ═══════════════════════════════════════════════════════════════
# AUDIT
# ═══════════════════════════════════════════════════════════════

@audit_bp.post("/audit")
def audit():
    """Run a full audit against the URL in the request body."""
    body = request.get_json(silent=True) or {}
    raw = body.get("url", "")
    if not isinstance(raw, str) or not raw.strip():
        return jsonify(error="URL is required."), 400

    url = validate_url(raw)
    if url is None:
        return jsonify(error="Invalid URL format. Please provide a valid URL."), 400

    target = ScanTarget.from_url(url)

    if not current_app.config["ALLOW_PRIVATE_TARGETS"]:
        ip_str = _resolve(target.host)
        if ip_str is None:
            return jsonify(error=f"Could not resolve hostname '{target.host}'."), 400
        if is_private_ip(ip_str):
            logger.warning(f"SSRF blocked: {target.host} resolved to private IP {ip_str}")
            return jsonify(
                error="Target resolves to a private or reserved IP address. "
                      "Requests to internal networks are not allowed."
            ), 403

    report = run_scan(target, config=current_app.config["SCAN_CONFIG"])
    return jsonify(report.to_dict()), 200


# ═══════════════════════════════════════════════════════════════
# APP FACTORY
# ═══════════════════════════════════════════════════════════════

def create_app(scan_config: Optional[ScanConfig] = None) -> Flask:
    configure_logging()

    app = Flask(__name__)
    allow_private = _env_flag("WEBGUARD_ALLOW_PRIVATE_TARGETS")
    app.config["ALLOW_PRIVATE_TARGETS"] = allow_private
    app.config["SCAN_CONFIG"] = dataclasses.replace(
        scan_config or ScanConfig.from_env(),
        block_private_targets=not allow_private,
    )

    app.register_blueprint(audit_bp)

    @app.get("/health")
    def health():
        return jsonify(status="ok"), 200

    # Return clean JSON for all errors; never expose tracebacks to users.

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({
            "error": "Not found",
            "message": "The requested resource was not found.",
        }), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({
            "error": "Method not allowed",
            "message": "This HTTP method is not allowed for this endpoint.",
        }), 405

    @app.errorhandler(500)
    def internal_error(e):
        logger.error(f"Unhandled server error: {e}")
        return jsonify({
            "error": "Internal server error",
            "message": "Something went wrong. Please try again later.",
        }), 500

    return app
