"""Server fingerprint checks."""

from __future__ import annotations

import asyncio

import pytest

from webguard.scanner.analyzers.fingerprint_analyzer import (
    FingerprintAnalyzer,
    check_disclosure_headers,
    check_powered_by,
    check_server_header,
    evaluate_fingerprint,
    identify_server,
)
from webguard.scanner.base import CheckResult, Finding, Note, ScanTarget

from conftest import failing_transport, headers_transport


def _findings(items):
    return [i for i in items if isinstance(i, Finding)]


def _notes(items):
    return [i.message for i in items if isinstance(i, Note)]


def test_hidden_server_header_is_good_practice() -> None:
    items = check_server_header({})

    assert items[0] == CheckResult("Server", "Not disclosed", True)
    assert _findings(items) == []


def test_versioned_server_header_is_medium() -> None:
    items = check_server_header({"server": "nginx/1.18.0"})

    assert items[0] == CheckResult("Server", "nginx/1.18.0", False)
    findings = _findings(items)
    assert len(findings) == 1
    assert findings[0].severity == "medium"
    assert "Detected: Nginx web server" in _notes(items)


def test_unversioned_server_header_only_notes() -> None:
    items = check_server_header({"server": "cloudflare"})

    assert _findings(items) == []
    assert items[0].secure is False
    assert "Server type is disclosed but version is hidden (Good practice)" in _notes(items)
    assert "Detected: Cloudflare CDN/Proxy" in _notes(items)


@pytest.mark.parametrize(
    "server, expected",
    [
        ("Apache/2.4.41 (Ubuntu)", "Detected: Apache web server"),
        ("Microsoft-IIS/10.0", "Detected: Microsoft IIS"),
        ("lighttpd", "Detected: Lighttpd web server"),
        ("Caddy", "Detected: Caddy web server"),
    ],
)
def test_identify_server_families(server: str, expected: str) -> None:
    assert identify_server(server)[0] == expected


def test_unknown_server_family_adds_nothing() -> None:
    assert identify_server("gws") == ()


@pytest.mark.parametrize(
    "powered_by, tech",
    [("PHP/8.1.2", "PHP"), ("ASP.NET", "ASP.NET"), ("Express", "Express.js")],
)
def test_powered_by_is_medium_with_technology_tag(powered_by: str, tech: str) -> None:
    items = check_powered_by({"x-powered-by": powered_by})

    assert [f.severity for f in _findings(items)] == ["medium"]
    assert f"Technology: {tech} detected" in _notes(items)


def test_absent_powered_by_is_secure() -> None:
    items = check_powered_by({})

    assert items[0] == CheckResult("X-Powered-By", "Not present", True)


def test_each_disclosure_header_is_one_low_finding() -> None:
    items = check_disclosure_headers({"x-aspnet-version": "4.0.30319", "via": "1.1 varnish"})

    assert [(f.severity, f.message) for f in _findings(items)] == [
        ("low", "x-aspnet-version: 4.0.30319"),
        ("low", "via: 1.1 varnish"),
    ]


def test_no_disclosure_headers_note() -> None:
    assert _notes(check_disclosure_headers({})) == ["No other information disclosure headers found"]


def test_evaluate_fingerprint_is_deterministic() -> None:
    headers = {"server": "Apache/2.4.1", "x-powered-by": "PHP/7.4", "x-generator": "Drupal 9"}

    assert evaluate_fingerprint(headers) == evaluate_fingerprint(headers)
    assert len(_findings(evaluate_fingerprint(headers))) == 3


def test_analyzer_fetches_and_tags_category() -> None:
    analyzer = FingerprintAnalyzer(transport=headers_transport({"Server": "nginx/1.25.3"}))

    report = asyncio.run(analyzer.run(ScanTarget.from_url("https://example.com")))

    assert report.analyzer_name == "fingerprint"
    assert {f.category for f in report.findings} == {"fingerprint"}


def test_analyzer_failure_message() -> None:
    analyzer = FingerprintAnalyzer(transport=failing_transport("no route to host"))

    report = asyncio.run(analyzer.run(ScanTarget.from_url("https://example.com")))

    assert report.errors == ["Failed to fetch server information: no route to host"]
