# webguard/scanner/engines/http_engine.py
"""
HTTP response fetcher.

Issues one GET against the target and returns the status code, the
response headers and the final URL after redirects.

Requires: httpx (async HTTP client)

What this engine collects:
    - HTTP/HTTPS response status
    - Response headers, keys lower-cased (repeated headers joined with ", ")
    - Final URL after following up to `max_redirects` redirects

What this engine does NOT do:
    - Judge whether headers are secure (that's the analyzers' job)
    - Verify the certificate chain; verification is disabled on purpose so
      self-signed or expired targets can still be inspected
    - Retry. Every request is attempted exactly once.

Any HTTP status (including 4xx/5xx) is a valid response. Transport
failures are raised as NetworkError / ProtocolError.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

import httpx

from webguard.config import DEFAULT_USER_AGENT
from webguard.errors import NetworkError, ProtocolError
from webguard.netguard import ensure_public_host

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0
DEFAULT_MAX_REDIRECTS = 5


@dataclass(frozen=True)
class HttpResponse:
    """What one fetch observed."""
    status_code: int
    headers: Dict[str, str] = field(default_factory=dict)
    url: str = ""

    @property
    def is_redirect(self) -> bool:
        return 300 <= self.status_code < 400

    def header(self, name: str) -> Optional[str]:
        return self.headers.get(name.lower())


def normalize_headers(headers: httpx.Headers) -> Dict[str, str]:
    """Lower-case header names; httpx already merges repeated headers."""
    return {key.lower(): value for key, value in headers.items()}


def _describe(exc: Exception) -> str:
    return str(exc) or type(exc).__name__


async def _refuse_private_hop(request: httpx.Request) -> None:
    await ensure_public_host(request.url.host)


async def fetch(
    url: str,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    max_redirects: int = DEFAULT_MAX_REDIRECTS,
    follow_redirects: bool = True,
    user_agent: str = DEFAULT_USER_AGENT,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    block_private: bool = False,
) -> HttpResponse:
    """
    GET `url` once and return what came back.

    Args:
        url:              Absolute http(s) URL.
        timeout:          Per-request timeout in seconds.
        max_redirects:    Maximum redirects to follow when follow_redirects is set.
        follow_redirects: False returns the first response as-is (used for
                          the HTTP→HTTPS redirect probe).
        transport:        Optional httpx transport (tests inject MockTransport).
        block_private:    Check every request, redirect hops included, against
                          the private-address guard.

    Raises:
        NetworkError:  DNS failure, connection refused, timeout, redirect loop.
        ProtocolError: The peer spoke malformed HTTP, or the URL is unusable.
        BlockedTargetError: block_private is set and a hop is internal.
    """
    client_kwargs = {
        "timeout": httpx.Timeout(timeout),
        "follow_redirects": follow_redirects,
        "max_redirects": max_redirects,
        "verify": False,
        "headers": {"User-Agent": user_agent},
    }
    if transport is not None:
        client_kwargs["transport"] = transport
    if block_private:
        client_kwargs["event_hooks"] = {"request": [_refuse_private_hop]}

    logger.debug(f"GET {url} (timeout={timeout}s, follow_redirects={follow_redirects})")

    try:
        async with httpx.AsyncClient(**client_kwargs) as client:
            resp = await client.get(url)
    except httpx.TimeoutException as e:
        raise NetworkError(f"Timeout after {timeout:g}s connecting to {url}") from e
    except httpx.TooManyRedirects as e:
        raise NetworkError(f"More than {max_redirects} redirects fetching {url}") from e
    except httpx.ProtocolError as e:
        raise ProtocolError(f"Malformed HTTP response from {url}: {_describe(e)}") from e
    except httpx.RequestError as e:
        raise NetworkError(_describe(e)) from e
    except httpx.InvalidURL as e:
        raise ProtocolError(f"Invalid URL {url}: {_describe(e)}") from e

    response = HttpResponse(
        status_code=resp.status_code,
        headers=normalize_headers(resp.headers),
        url=str(resp.url),
    )
    logger.debug(f"GET {url} → {response.status_code} ({len(response.headers)} headers)")
    return response
