"""Port classification and the port risk analyzer."""

from __future__ import annotations

import asyncio

import pytest

from webguard.config import ScanConfig
from webguard.errors import NetworkError
from webguard.scanner.analyzers.port_risk import (
    PORT_ADVICE,
    PortRiskAnalyzer,
    classify_results,
    get_port_advice,
)
from webguard.scanner.base import CheckResult, Finding, Note, ScanTarget
from webguard.scanner.engines.port_engine import PORT_CATALOG, PortProbeResult

from conftest import FakeWriter


def _results(open_ports):
    return [PortProbeResult.from_spec(spec, spec.port in open_ports) for spec in PORT_CATALOG]


def test_nothing_open() -> None:
    assert classify_results(_results(set())) == [Note("No common vulnerable ports detected")]


def test_web_ports_only_produce_no_findings() -> None:
    items = classify_results(_results({80, 443}))

    assert items[0] == Note("Found 2 open port(s)")
    assert [i for i in items if isinstance(i, Finding)] == []
    assert CheckResult("Port 443", "HTTPS - OPEN", True) in items


def test_findings_follow_tier_order_and_carry_port_severity() -> None:
    items = classify_results(_results({22, 23, 3306, 443}))

    findings = [i for i in items if isinstance(i, Finding)]
    assert [(f.severity, f.message) for f in findings] == [
        ("critical", PORT_ADVICE[23]),
        ("high", PORT_ADVICE[3306]),
        ("medium", PORT_ADVICE[22]),
    ]
    assert all(f.category == "ports" for f in findings)
    assert CheckResult("Port 23", "Telnet - OPEN", False) in items


def test_every_risky_catalog_port_has_specific_advice() -> None:
    for spec in PORT_CATALOG:
        if spec.risk_tier != "low":
            assert spec.port in PORT_ADVICE


def test_unknown_port_gets_default_advice() -> None:
    assert get_port_advice(9200, "Elasticsearch") == (
        "Port 9200 (Elasticsearch) is open. Verify if this exposure is necessary."
    )


def test_advice_table_is_read_only() -> None:
    with pytest.raises(TypeError):
        PORT_ADVICE[21] = "changed"


def _analyzer(open_ports, resolver=None):
    async def connect(host, port):
        if port in open_ports:
            return None, FakeWriter()
        raise ConnectionRefusedError(port)

    async def resolve(host):
        return "192.0.2.10"

    return PortRiskAnalyzer(connect=connect, resolver=resolver or resolve)


def test_analyzer_sweeps_resolved_address() -> None:
    report = asyncio.run(_analyzer({21, 80}).run(ScanTarget.from_url("https://example.com")))

    assert report.items[0] == Note("Scanning common ports on example.com...")
    assert [(f.severity, f.message) for f in report.findings] == [("high", PORT_ADVICE[21])]
    assert report.success


def test_analyzer_reports_resolution_failure() -> None:
    async def unresolvable(host):
        raise NetworkError(f"Could not resolve {host}: Name or service not known")

    report = asyncio.run(
        _analyzer(set(), resolver=unresolvable).run(ScanTarget.from_url("https://nope.invalid"))
    )

    assert report.errors == [
        "Failed to scan ports: Could not resolve nope.invalid: Name or service not known"
    ]
    assert report.findings == []


def test_only_web_ports_open_end_to_end() -> None:
    report = asyncio.run(_analyzer({80, 443}).run(ScanTarget.from_url("https://example.com")))

    open_lines = [i for i in report.items if isinstance(i, CheckResult)]
    assert [(i.label, i.secure) for i in open_lines] == [("Port 80", True), ("Port 443", True)]
    assert report.findings == []
    assert Note("Found 2 open port(s)") in report.items


def test_private_address_is_not_swept_when_blocking() -> None:
    probed = []

    async def connect(host, port):
        probed.append(port)
        raise ConnectionRefusedError(port)

    async def resolve(host):
        return "10.0.0.5"

    analyzer = PortRiskAnalyzer(
        ScanConfig(block_private_targets=True), connect=connect, resolver=resolve,
    )
    report = asyncio.run(analyzer.run(ScanTarget.from_url("https://intranet.example.com")))

    assert probed == []
    assert report.errors == [
        "Failed to scan ports: Refusing to connect to intranet.example.com: "
        "10.0.0.5 is a private or reserved address"
    ]
