# webguard/scanner/orchestrator.py
"""
Scan Orchestrator.

Coordinates one audit of one target:

    1. Build the ScanTarget from the validated URL
    2. Run every analyzer (fingerprint → headers → tls → ports)
    3. Hand each analyzer's items to the sink, grouped per analyzer
    4. Return the ScanReport with the total duration

Usage:
    from webguard.scanner import ScanOrchestrator

    orchestrator = ScanOrchestrator(config)
    report = await orchestrator.scan("https://example.com", sink=printer)

Analyzers run one after another by default. With
ScanConfig.parallel_analyzers they run concurrently under asyncio.gather,
but their records are still emitted in the canonical order above.

A scan always completes. BaseAnalyzer.run turns an unexpected error into a
"Scan failed: ..." line on the analyzer's own report, keeping what it had
already found. The wrapper here only catches what escapes a run() that was
overridden anyway, and the remaining analyzers still run.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import List, Optional, Sequence, Union

from webguard.config import ScanConfig
from webguard.scanner.base import (
    AnalyzerReport,
    BaseAnalyzer,
    FindingSink,
    ScanReport,
    ScanTarget,
    now_utc,
)
from webguard.scanner.analyzers import ALL_ANALYZERS

logger = logging.getLogger(__name__)


def _emit(sink: Optional[FindingSink], report: AnalyzerReport) -> None:
    if sink is None:
        return
    for item in report.items:
        sink(report.analyzer_name, item)


class ScanOrchestrator:
    """
    Runs the analyzer pipeline against one target.

    The orchestrator is stateless between scans: reuse the same instance as
    often as needed. Pass `analyzers` to replace the default registry (tests
    inject analyzers wired to fake transports).
    """

    def __init__(
        self,
        config: Optional[ScanConfig] = None,
        analyzers: Optional[Sequence[BaseAnalyzer]] = None,
    ):
        self.config = config or ScanConfig()
        if analyzers is None:
            analyzers = [cls(self.config) for cls in ALL_ANALYZERS.values()]
        self.analyzers: List[BaseAnalyzer] = list(analyzers)

    async def scan(
        self,
        target: Union[str, ScanTarget],
        sink: Optional[FindingSink] = None,
    ) -> ScanReport:
        """
        Audit `target` and return the aggregated report.

        Args:
            target: A ScanTarget or an absolute http(s) URL.
            sink:   Called once per (analyzer_name, item), grouped by analyzer.

        Raises:
            ValueError if `target` is a string that is not a usable URL.
        """
        if isinstance(target, str):
            target = ScanTarget.from_url(target)

        report = ScanReport(target=target, started_at=now_utc())
        total_start = time.monotonic()
        logger.info(f"Scan of {target.url} started ({len(self.analyzers)} analyzers)")

        if self.config.parallel_analyzers:
            results = await asyncio.gather(
                *(self._run_analyzer(a, target) for a in self.analyzers)
            )
            for result in results:
                report.reports.append(result)
                _emit(sink, result)
        else:
            for analyzer in self.analyzers:
                result = await self._run_analyzer(analyzer, target)
                report.reports.append(result)
                _emit(sink, result)

        report.finished_at = now_utc()
        report.duration_seconds = round(time.monotonic() - total_start, 2)

        logger.info(
            f"Scan of {target.url} completed in {report.duration_seconds}s: "
            f"{len(report.findings)} findings"
        )
        return report

    async def _run_analyzer(self, analyzer: BaseAnalyzer, target: ScanTarget) -> AnalyzerReport:
        logger.info(f"Running analyzer '{analyzer.name}' for {target.host}")
        start = time.monotonic()

        try:
            result = await analyzer.run(target)
        except Exception as e:
            logger.exception(f"Analyzer '{analyzer.name}' crashed for {target.host}")
            result = AnalyzerReport(analyzer_name=analyzer.name, category=analyzer.category)
            result.add_error(f"Scan failed: {e}")
            result.duration_seconds = round(time.monotonic() - start, 2)
            return result

        if result.success:
            logger.info(
                f"Analyzer '{analyzer.name}' produced {len(result.findings)} findings "
                f"in {result.duration_seconds}s"
            )
        else:
            logger.warning(f"Analyzer '{analyzer.name}' failed: {result.errors}")
        return result


def run_scan(
    target: Union[str, ScanTarget],
    config: Optional[ScanConfig] = None,
    sink: Optional[FindingSink] = None,
    analyzers: Optional[Sequence[BaseAnalyzer]] = None,
) -> ScanReport:
    """Synchronous entry point for callers without an event loop (CLI, Flask)."""
    orchestrator = ScanOrchestrator(config, analyzers=analyzers)

    loop = asyncio.new_event_loop()
    try:
        asyncio.set_event_loop(loop)
        return loop.run_until_complete(orchestrator.scan(target, sink=sink))
    finally:
        asyncio.set_event_loop(None)
        loop.close()
