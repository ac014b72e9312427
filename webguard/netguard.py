# webguard/netguard.py
"""
Private / reserved address guard (SSRF protection).

Used twice: the API checks the submitted host before a scan starts, and
when `ScanConfig.block_private_targets` is set the analyzers re-check every
host they actually connect to. That covers redirect hops and names that
re-resolve to an internal address between the two lookups.
"""

from __future__ import annotations

import asyncio
import ipaddress
import logging
import socket
from typing import List

from webguard.errors import BlockedTargetError, NetworkError

logger = logging.getLogger(__name__)

# Private, reserved and special-purpose ranges
BLOCKED_NETWORKS = [
    # IPv4
    ipaddress.ip_network("0.0.0.0/8"),         # "This" network
    ipaddress.ip_network("10.0.0.0/8"),         # Private (RFC 1918)
    ipaddress.ip_network("100.64.0.0/10"),      # Carrier-grade NAT
    ipaddress.ip_network("127.0.0.0/8"),        # Loopback
    ipaddress.ip_network("169.254.0.0/16"),     # Link-local / cloud metadata
    ipaddress.ip_network("172.16.0.0/12"),      # Private (RFC 1918)
    ipaddress.ip_network("192.0.0.0/24"),       # IETF protocol assignments
    ipaddress.ip_network("192.0.2.0/24"),       # TEST-NET-1
    ipaddress.ip_network("192.168.0.0/16"),     # Private (RFC 1918)
    ipaddress.ip_network("198.18.0.0/15"),      # Benchmarking
    ipaddress.ip_network("198.51.100.0/24"),    # TEST-NET-2
    ipaddress.ip_network("203.0.113.0/24"),     # TEST-NET-3
    ipaddress.ip_network("224.0.0.0/4"),        # Multicast
    ipaddress.ip_network("240.0.0.0/4"),        # Reserved
    ipaddress.ip_network("255.255.255.255/32"), # Broadcast
    # IPv6
    ipaddress.ip_network("::/128"),             # Unspecified
    ipaddress.ip_network("::1/128"),            # Loopback
    ipaddress.ip_network("fc00::/7"),           # Unique local
    ipaddress.ip_network("fe80::/10"),          # Link-local
]


def is_private_ip(ip_str: str) -> bool:
    """True if `ip_str` falls within a blocked range. Non-IPs are not private."""
    try:
        addr = ipaddress.ip_address(ip_str)
    except ValueError:
        return False

    # IPv4-mapped IPv6: judge the embedded IPv4 address
    if addr.version == 6 and addr.ipv4_mapped is not None:
        addr = addr.ipv4_mapped

    return any(addr in network for network in BLOCKED_NETWORKS)


def check_address(host: str, address: str) -> None:
    """Raise BlockedTargetError if `address` (what `host` resolved to) is private."""
    if is_private_ip(address):
        logger.warning(f"SSRF blocked: {host} resolved to private IP {address}")
        raise BlockedTargetError(
            f"Refusing to connect to {host}: {address} is a private or reserved address"
        )


async def resolve_all(host: str) -> List[str]:
    """Every address `host` resolves to; an IP literal resolves to itself."""
    try:
        ipaddress.ip_address(host)
        return [host]
    except ValueError:
        pass

    loop = asyncio.get_running_loop()
    try:
        infos = await loop.getaddrinfo(host, None, type=socket.SOCK_STREAM)
    except socket.gaierror as e:
        raise NetworkError(f"Could not resolve {host}: {e}") from e
    return [info[4][0] for info in infos]


async def ensure_public_host(host: str) -> None:
    """
    Raise BlockedTargetError if any address of `host` is private or reserved.

    Every address is checked, not just the first, since the connection may
    land on any of them.
    """
    host = host.strip("[]")
    for address in await resolve_all(host):
        check_address(host, address)
