"""Private / reserved address guard."""

from __future__ import annotations

import asyncio

import pytest

from webguard.errors import BlockedTargetError
from webguard.netguard import check_address, ensure_public_host, is_private_ip


@pytest.mark.parametrize(
    "ip, private",
    [
        ("10.20.30.40", True),
        ("172.31.255.255", True),
        ("169.254.169.254", True),
        ("::ffff:127.0.0.1", True),
        ("fd12:3456::1", True),
        ("1.1.1.1", False),
        ("2001:4860:4860::8888", False),
        ("", False),
    ],
)
def test_is_private_ip(ip: str, private: bool) -> None:
    assert is_private_ip(ip) is private


def test_check_address_names_host_and_address() -> None:
    with pytest.raises(BlockedTargetError, match="metadata.internal: 169.254.169.254"):
        check_address("metadata.internal", "169.254.169.254")

    check_address("example.com", "93.184.216.34")


@pytest.mark.parametrize("host", ["127.0.0.1", "::1", "[fe80::1]"])
def test_private_literals_are_refused(host: str) -> None:
    with pytest.raises(BlockedTargetError):
        asyncio.run(ensure_public_host(host))


@pytest.mark.parametrize("host", ["8.8.8.8", "[2606:4700::1111]"])
def test_public_literals_pass(host: str) -> None:
    asyncio.run(ensure_public_host(host))


def test_every_resolved_address_is_checked(monkeypatch: pytest.MonkeyPatch) -> None:
    async def resolve_all(host):
        return ["93.184.216.34", "10.0.0.1"]

    monkeypatch.setattr("webguard.netguard.resolve_all", resolve_all)

    with pytest.raises(BlockedTargetError, match="10.0.0.1"):
        asyncio.run(ensure_public_host("rebind.example.com"))
