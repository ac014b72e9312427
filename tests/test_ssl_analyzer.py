"""TLS inspection rules and the SSL analyzer."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from webguard.config import ScanConfig
from webguard.errors import ProtocolError
from webguard.scanner.analyzers.ssl_analyzer import (
    SSLAnalyzer,
    evaluate_cipher,
    evaluate_issuer,
    evaluate_subject,
    evaluate_validity,
    hostname_matches,
    plain_http_url,
    is_weak_cipher,
)
from webguard.scanner.base import CheckResult, Finding, Note, ScanTarget
from webguard.scanner.engines.ssl_engine import CertificateInfo, CipherInfo, TLSSession

from conftest import failing_transport, headers_transport

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def _cert(**overrides) -> CertificateInfo:
    fields = dict(
        valid_from=NOW - timedelta(days=60),
        valid_to=NOW + timedelta(days=200),
        issuer_cn="R3",
        issuer_o="Let's Encrypt",
        subject_cn="example.com",
    )
    fields.update(overrides)
    return CertificateInfo(**fields)


def _findings(items):
    return [i for i in items if isinstance(i, Finding)]


# ---------------------------------------------------------------------------
# Validity
# ---------------------------------------------------------------------------

def test_valid_certificate_has_no_findings() -> None:
    items = evaluate_validity(_cert(), NOW)

    assert items[0] == CheckResult("Certificate Status", "Valid", True)
    assert _findings(items) == []
    assert "(200 days remaining)" in items[1].message


def test_not_yet_valid_is_critical() -> None:
    items = evaluate_validity(_cert(valid_from=NOW + timedelta(days=1)), NOW)

    assert items[0].value == "Not yet valid"
    assert _findings(items)[0].severity == "critical"


def test_expired_is_critical() -> None:
    items = evaluate_validity(_cert(valid_to=NOW - timedelta(seconds=1)), NOW)

    assert items[0].value == "Expired"
    assert _findings(items)[0].message.startswith("Certificate expired on ")


@pytest.mark.parametrize(
    "remaining, warned",
    [
        (timedelta(days=29, hours=23), True),
        (timedelta(days=30), False),
        (timedelta(days=5), True),
    ],
)
def test_expiry_warning_below_thirty_days(remaining: timedelta, warned: bool) -> None:
    items = evaluate_validity(_cert(valid_to=NOW + remaining), NOW)

    findings = _findings(items)
    assert bool(findings) is warned
    if warned:
        assert findings[0].severity == "medium"
        assert f"({remaining.days} days)" in findings[0].message


# ---------------------------------------------------------------------------
# Issuer / subject
# ---------------------------------------------------------------------------

def test_self_signed_is_high() -> None:
    items = evaluate_issuer(_cert(issuer_cn="example.com", issuer_o=""))

    assert _findings(items)[0].severity == "high"


def test_recognised_ca_gets_a_note() -> None:
    items = evaluate_issuer(_cert())

    assert items[0] == CheckResult("Certificate Issuer", "R3", True)
    assert Note("Issued by a recognized Certificate Authority") in items


def test_unknown_ca_is_neither_flagged_nor_praised() -> None:
    items = evaluate_issuer(_cert(issuer_cn="Corp Internal CA", issuer_o="Corp"))

    assert len(items) == 1


@pytest.mark.parametrize(
    "cn, host, expected",
    [
        ("example.com", "example.com", True),
        ("Example.com", "example.COM", True),
        ("*.example.com", "www.example.com", True),
        ("*.example.com", "a.b.example.com", True),
        ("*.example.com", "example.com", False),
        ("*.example.com", "badexample.com", False),
        ("www.example.com", "api.example.com", False),
    ],
)
def test_hostname_matches(cn: str, host: str, expected: bool) -> None:
    assert hostname_matches(cn, host) is expected


def test_subject_mismatch_is_high() -> None:
    items = evaluate_subject(_cert(subject_cn="other.org"), "example.com")

    assert _findings(items)[0].message == (
        "Certificate CN (other.org) does not match hostname (example.com)"
    )


def test_missing_subject_cn_is_only_a_result_line() -> None:
    items = evaluate_subject(_cert(subject_cn=""), "example.com")

    assert items == [CheckResult("Certificate Subject", "No common name", False)]


# ---------------------------------------------------------------------------
# Cipher / protocol
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("protocol", ["TLSv1", "TLSv1.1", "SSLv3"])
def test_legacy_protocols_are_high(protocol: str) -> None:
    items = evaluate_cipher(CipherInfo("ECDHE-RSA-AES128-SHA", protocol, 128))

    assert [f.severity for f in _findings(items)] == ["high"]


def test_modern_protocol_is_confirmed() -> None:
    items = evaluate_cipher(CipherInfo("TLS_AES_256_GCM_SHA384", "TLSv1.3", 256))

    assert _findings(items) == []
    assert Note("TLS version is secure (TLSv1.3)") in items


@pytest.mark.parametrize(
    "name, weak",
    [
        ("RC4-SHA", True),
        ("DES-CBC3-SHA", True),
        ("ADH-AES128-SHA", True),
        ("EXP-RC4-MD5", True),
        ("ECDHE-RSA-AES128-GCM-SHA256", False),
        ("TLS_CHACHA20_POLY1305_SHA256", False),
    ],
)
def test_weak_cipher_detection(name: str, weak: bool) -> None:
    assert is_weak_cipher(name) is weak


def test_weak_cipher_is_medium() -> None:
    items = evaluate_cipher(CipherInfo("DES-CBC3-SHA", "TLSv1.2", 112))

    assert [f.severity for f in _findings(items)] == ["medium"]


# ---------------------------------------------------------------------------
# Analyzer
# ---------------------------------------------------------------------------

def _session(**cert_overrides) -> TLSSession:
    return TLSSession(
        certificate=_cert(**cert_overrides),
        cipher=CipherInfo("TLS_AES_128_GCM_SHA256", "TLSv1.3", 128),
    )


def test_https_target_is_inspected_through_tls_fetcher() -> None:
    calls = []

    async def fetcher(host, port, *, timeout):
        calls.append((host, port, timeout))
        return _session()

    analyzer = SSLAnalyzer(tls_fetcher=fetcher, clock=lambda: NOW)
    report = asyncio.run(analyzer.run(ScanTarget.from_url("https://example.com:8443")))

    assert calls == [("example.com", 8443, 10.0)]
    assert report.items[0] == CheckResult("HTTPS", "Enabled", True)
    assert report.findings == []
    assert report.success


def test_tls_failure_is_one_error_line() -> None:
    async def fetcher(host, port, *, timeout):
        raise ProtocolError("handshake failure")

    report = asyncio.run(SSLAnalyzer(tls_fetcher=fetcher).run(ScanTarget.from_url("https://example.com")))

    assert report.errors == ["SSL/TLS connection failed: handshake failure"]


def test_http_target_redirecting_to_https() -> None:
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        return httpx.Response(301, headers={"Location": "https://example.com/"})

    analyzer = SSLAnalyzer(transport=httpx.MockTransport(handler))
    report = asyncio.run(analyzer.run(ScanTarget.from_url("http://example.com/login")))

    assert [url.rstrip("/") for url in seen] == ["http://example.com"]
    assert [f.severity for f in report.findings] == ["critical"]
    assert CheckResult("HTTP → HTTPS Redirect", "Present", True) in report.items


def test_http_target_redirecting_elsewhere_is_high() -> None:
    transport = headers_transport({"Location": "http://www.example.com/"}, status_code=302)

    report = asyncio.run(SSLAnalyzer(transport=transport).run(ScanTarget.from_url("http://example.com")))

    assert [f.severity for f in report.findings] == ["critical", "high"]
    assert report.findings[1].message == "HTTP redirect exists but does not redirect to HTTPS"


@pytest.mark.parametrize(
    "transport",
    [headers_transport({}, status_code=200), failing_transport()],
)
def test_http_target_without_redirect_is_high(transport) -> None:
    report = asyncio.run(SSLAnalyzer(transport=transport).run(ScanTarget.from_url("http://example.com")))

    assert [f.severity for f in report.findings] == ["critical", "high"]
    assert CheckResult("HTTP → HTTPS Redirect", "Not configured", False) in report.items
    assert report.success


@pytest.mark.parametrize(
    "host, expected",
    [
        ("example.com", "http://example.com"),
        ("93.184.216.34", "http://93.184.216.34"),
        ("2001:db8::1", "http://[2001:db8::1]"),
    ],
)
def test_plain_http_url(host: str, expected: str) -> None:
    assert plain_http_url(host) == expected


def test_ipv6_http_target_keeps_the_critical_finding() -> None:
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        return httpx.Response(301, headers={"Location": "https://[2001:db8::1]/"})

    analyzer = SSLAnalyzer(transport=httpx.MockTransport(handler))
    report = asyncio.run(analyzer.run(ScanTarget.from_url("http://[2001:db8::1]")))

    assert [url.rstrip("/") for url in seen] == ["http://[2001:db8::1]"]
    assert [f.severity for f in report.findings] == ["critical"]
    assert CheckResult("HTTP → HTTPS Redirect", "Present", True) in report.items
    assert report.success


def test_https_target_on_private_address_is_refused_when_blocking() -> None:
    calls = []

    async def fetcher(host, port, *, timeout):
        calls.append(host)

    analyzer = SSLAnalyzer(ScanConfig(block_private_targets=True), tls_fetcher=fetcher)
    report = asyncio.run(analyzer.run(ScanTarget.from_url("https://10.0.0.7")))

    assert calls == []
    assert report.errors == [
        "SSL/TLS connection failed: Refusing to connect to 10.0.0.7: "
        "10.0.0.7 is a private or reserved address"
    ]
