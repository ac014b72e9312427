# webguard/validation.py
"""
Target URL validation.

Accepts what a user types at the prompt ("example.com", "http://10.0.0.5:8080",
"https://sub.example.co.uk/path") and returns an absolute http(s) URL, or
None when the input cannot be audited.

A missing scheme means https. Any other scheme is rejected.
"""

from __future__ import annotations

import ipaddress
import logging
import re
from typing import Optional
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

DOMAIN_RE = re.compile(r"^([a-z0-9]([a-z0-9-]*[a-z0-9])?\.)+[a-z]{2,63}$", re.IGNORECASE)

SCHEME_RE = re.compile(r"^[a-z][a-z0-9+.-]*://", re.IGNORECASE)

MAX_HOST_LENGTH = 253


def is_ip_address(host: str) -> bool:
    try:
        ipaddress.ip_address(host)
    except ValueError:
        return False
    return True


def is_valid_host(host: str) -> bool:
    host = (host or "").strip().rstrip(".")
    if not host or len(host) > MAX_HOST_LENGTH:
        return False
    if host.lower() == "localhost":
        return True
    return is_ip_address(host) or bool(DOMAIN_RE.match(host))


def validate_url(raw: str) -> Optional[str]:
    """
    Normalise `raw` into an absolute http(s) URL.

    Returns None if the input is empty, uses another scheme, contains
    whitespace, has an invalid port, or names no plausible host.
    """
    url = (raw or "").strip()
    if not url or any(ch.isspace() for ch in url):
        return None

    if not SCHEME_RE.match(url):
        url = "https://" + url

    parsed = urlparse(url)
    if parsed.scheme.lower() not in ("http", "https"):
        logger.debug(f"Rejected scheme {parsed.scheme!r} in {raw!r}")
        return None

    try:
        port = parsed.port
    except ValueError:
        return None
    if port == 0:
        return None

    if not is_valid_host(parsed.hostname or ""):
        return None

    return url
