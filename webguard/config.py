# webguard/config.py
"""
Runtime configuration and logging setup.

Every knob has a sane default and can be overridden through a WEBGUARD_*
environment variable:

    WEBGUARD_HTTP_TIMEOUT         seconds per HTTP fetch          (default 10)
    WEBGUARD_MAX_REDIRECTS        redirects followed per fetch    (default 5)
    WEBGUARD_TLS_TIMEOUT          seconds per TLS handshake       (default 10)
    WEBGUARD_PORT_TIMEOUT         seconds per TCP connect attempt (default 2)
    WEBGUARD_EXPIRY_WARNING_DAYS  certificate expiry warning      (default 30)
    WEBGUARD_PARALLEL_ANALYZERS   run analyzers concurrently      (default false)
    WEBGUARD_USER_AGENT           User-Agent sent with HTTP fetches
    WEBGUARD_LOG_LEVEL            logging level name              (default INFO)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_USER_AGENT = "WebGuard/1.0 (+passive security audit)"

LOG_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {raw!r}")
    return value


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")
    if value < 0:
        raise ValueError(f"{name} must not be negative, got {raw!r}")
    return value


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in _TRUE_VALUES


@dataclass(frozen=True)
class ScanConfig:
    """
    Per-scan settings passed to every analyzer.

    Fields:
        http_timeout:        Timeout for each HTTP fetch (seconds).
        max_redirects:       Redirects followed by the response fetcher.
        tls_timeout:         Timeout for the TLS connect + handshake (seconds).
        port_timeout:        Timeout for each TCP connect attempt (seconds).
        expiry_warning_days: Certificates expiring sooner than this are flagged.
        parallel_analyzers:  Run the four analyzers concurrently instead of
                             one after another. Output grouping is unchanged.
        user_agent:          User-Agent header for HTTP fetches.
        block_private_targets: Refuse to connect to private or reserved
                             addresses, including redirect hops. The API
                             turns this on; library and CLI scans leave it off.
    """
    http_timeout: float = 10.0
    max_redirects: int = 5
    tls_timeout: float = 10.0
    port_timeout: float = 2.0
    expiry_warning_days: int = 30
    parallel_analyzers: bool = False
    user_agent: str = DEFAULT_USER_AGENT
    block_private_targets: bool = False

    @classmethod
    def from_env(cls) -> "ScanConfig":
        return cls(
            http_timeout=_env_float("WEBGUARD_HTTP_TIMEOUT", 10.0),
            max_redirects=_env_int("WEBGUARD_MAX_REDIRECTS", 5),
            tls_timeout=_env_float("WEBGUARD_TLS_TIMEOUT", 10.0),
            port_timeout=_env_float("WEBGUARD_PORT_TIMEOUT", 2.0),
            expiry_warning_days=_env_int("WEBGUARD_EXPIRY_WARNING_DAYS", 30),
            parallel_analyzers=_env_bool("WEBGUARD_PARALLEL_ANALYZERS", False),
            user_agent=os.getenv("WEBGUARD_USER_AGENT") or DEFAULT_USER_AGENT,
        )


def configure_logging(level: Optional[str] = None) -> None:
    """
    Configure root logging for the CLI and the API app.

    Level comes from the argument, then WEBGUARD_LOG_LEVEL, then INFO.
    """
    level_name = (level or os.getenv("WEBGUARD_LOG_LEVEL") or "INFO").upper()
    numeric = getattr(logging, level_name, None)
    if not isinstance(numeric, int):
        raise ValueError(f"Unknown log level: {level_name}")

    logging.basicConfig(
        level=numeric,
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("webguard").setLevel(numeric)

    # Quieten noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
