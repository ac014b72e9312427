# webguard/cli.py
"""
Command-line front end.

    webguard https://example.com
    webguard example.com --parallel --port-timeout 1
    webguard                      # prompts for the URL

Findings are rendered with rich as each analyzer finishes. --json prints the
whole report as one JSON document instead.

Exit codes:
    0  scan completed (whatever it found)
    1  invalid URL
    2  invalid configuration
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import os
from typing import List, Optional

from rich.console import Console
from rich.markup import escape
from rich.rule import Rule

from webguard.config import ScanConfig, configure_logging
from webguard.scanner.base import CheckResult, Finding, Note, ReportItem
from webguard.scanner.orchestrator import run_scan
from webguard.validation import validate_url

logger = logging.getLogger(__name__)

SECTION_TITLES = {
    "fingerprint": "Server Fingerprinting",
    "headers": "Security Headers Analysis",
    "tls": "SSL/TLS Configuration",
    "ports": "Port Scanning",
}

SEVERITY_STYLES = {
    "critical": "bold red",
    "high": "red",
    "medium": "yellow",
    "low": "blue",
    "info": "dim",
}

RECOMMENDATIONS = (
    "Configure proper security headers (CSP, HSTS, X-Frame-Options)",
    "Hide server version information",
    "Use valid SSL/TLS certificates with strong ciphers",
    "Close unnecessary ports and services",
    "Implement firewall rules to restrict database access",
)

DISCLAIMER = (
    "This tool performs passive reconnaissance only. "
    "Always obtain permission before scanning systems you don't own."
)


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

class ReportPrinter:
    """Finding sink that prints each record as it arrives."""

    def __init__(self, console: Console):
        self.console = console
        self._section: Optional[str] = None

    def __call__(self, analyzer_name: str, item: ReportItem) -> None:
        if analyzer_name != self._section:
            self._section = analyzer_name
            title = SECTION_TITLES.get(analyzer_name, analyzer_name)
            self.console.print(f"\n[bold magenta]▸ {escape(title)}[/bold magenta]")

        if isinstance(item, Finding):
            style = SEVERITY_STYLES.get(item.severity, "white")
            self.console.print(
                f"  [red]⚠[/red] [{style}]\\[{item.severity.upper()}][/{style}] "
                f"{escape(item.message)}"
            )
        elif isinstance(item, CheckResult):
            symbol = "[green]✓[/green]" if item.secure else "[red]✗[/red]"
            self.console.print(
                f"  {symbol} {escape(item.label)}: [cyan]{escape(item.value)}[/cyan]"
            )
        elif isinstance(item, Note) and item.is_error:
            self.console.print(f"[bold red]✗ {escape(item.message)}[/bold red]")
        else:
            self.console.print(f"  [blue]ℹ {escape(item.message)}[/blue]")


def print_banner(console: Console) -> None:
    console.print(Rule(style="cyan"))
    console.print("  [bold]WebGuard[/bold] - Web Vulnerability Auditor")
    console.print("  Black-Box Security Scanner for Web Applications")
    console.print(Rule(style="cyan"))


def print_summary(console: Console) -> None:
    console.print()
    console.print(Rule("Scan Complete", style="bold cyan"))
    console.print("Review the findings above and take action on vulnerabilities.\n")
    console.print("[bold]Security Recommendations:[/bold]")
    for line in RECOMMENDATIONS:
        console.print(f"  • {line}")
    console.print(f"\n[yellow]Disclaimer:[/yellow] {DISCLAIMER}\n")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="webguard",
        description="Passive black-box security audit of a web target.",
    )
    p.add_argument("url", nargs="?", help="Target URL, e.g. https://example.com (prompted if omitted)")
    p.add_argument("--http-timeout", type=float, help="HTTP/TLS timeout in seconds (default 10).")
    p.add_argument("--port-timeout", type=float, help="Per-port connect timeout in seconds (default 2).")
    p.add_argument("--parallel", action="store_true", help="Run the analyzers concurrently.")
    p.add_argument("--json", dest="json_out", action="store_true", help="Output machine-readable JSON.")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging to stderr.")
    return p


def prompt_for_url(console: Console) -> str:
    return console.input("Enter target URL (e.g., https://example.com): ").strip()


def _build_config(args: argparse.Namespace) -> ScanConfig:
    config = ScanConfig.from_env()
    overrides = {}
    if args.http_timeout is not None:
        if args.http_timeout <= 0:
            raise ValueError("--http-timeout must be positive")
        overrides["http_timeout"] = args.http_timeout
        overrides["tls_timeout"] = args.http_timeout
    if args.port_timeout is not None:
        if args.port_timeout <= 0:
            raise ValueError("--port-timeout must be positive")
        overrides["port_timeout"] = args.port_timeout
    if args.parallel:
        overrides["parallel_analyzers"] = True
    return dataclasses.replace(config, **overrides)


def main(argv: Optional[List[str]] = None, console: Optional[Console] = None) -> int:
    args = build_parser().parse_args(argv)
    console = console or Console()

    configure_logging("DEBUG" if args.verbose else os.getenv("WEBGUARD_LOG_LEVEL", "WARNING"))

    try:
        config = _build_config(args)
    except ValueError as e:
        console.print(f"[bold red]✗ Invalid configuration: {escape(str(e))}[/bold red]")
        return 2

    if not args.json_out:
        print_banner(console)

    raw = args.url if args.url else prompt_for_url(console)
    url = validate_url(raw)
    if url is None:
        console.print("[bold red]✗ Invalid URL format. Please provide a valid URL.[/bold red]")
        return 1

    if args.json_out:
        report = run_scan(url, config=config)
        console.out(json.dumps(report.to_dict(), indent=2), highlight=False)
        return 0

    console.print(f"[blue]ℹ Target: {escape(url)}[/blue]")
    report = run_scan(url, config=config, sink=ReportPrinter(console))

    console.print(f"\n[blue]ℹ Scan completed in {report.duration_seconds:.2f} seconds[/blue]")
    print_summary(console)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
