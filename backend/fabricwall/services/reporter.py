"""
Reporter - Summarise a run, print it, and export it as JSON.

The exported file name embeds the run start time to the second, so runs never
overwrite each other; two runs started in the same second collide and the
second export fails instead of overwriting.
"""

import json
from pathlib import Path
from typing import Any, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from fabricwall.config import settings
from fabricwall.logger import logger
from fabricwall.schemas.results import CategoryCounts, RunReport, RunSummary, SuiteResult, SuiteStatus


def summarize(suite_results: list[SuiteResult]) -> RunSummary:
    """Aggregate counts over every check of every suite."""
    summary = RunSummary()
    for suite in suite_results:
        if suite.status == SuiteStatus.SKIPPED:
            summary.suites_skipped.append(suite.name)
        for result in suite.results:
            counts = summary.by_category.setdefault(result.category, CategoryCounts())
            counts.total += 1
            summary.total += 1
            if result.passed:
                counts.passed += 1
                summary.passed += 1
            else:
                counts.failed += 1
                summary.failed += 1
    return summary


def exit_code(report: RunReport) -> int:
    """0 only if not a single check failed."""
    return 0 if report.summary.failed == 0 else 1


def print_summary(report: RunReport, console: Optional[Console] = None) -> None:
    console = console or Console(highlight=False)
    summary = report.summary

    console.print()
    console.rule(f"[bold]{escape(report.run_name)} summary[/bold]")

    suites = Table(show_header=True, header_style="bold")
    suites.add_column("Suite")
    suites.add_column("Status")
    suites.add_column("Checks", justify="right")
    suites.add_column("Failed", justify="right")
    colors = {SuiteStatus.PASSED: "green", SuiteStatus.FAILED: "red", SuiteStatus.SKIPPED: "yellow"}
    for suite in report.suites:
        color = colors[suite.status]
        suites.add_row(
            suite.name,
            f"[{color}]{suite.status.value}[/{color}]",
            str(len(suite.results)),
            str(suite.failed_count),
        )
    console.print(suites)

    if summary.by_category:
        categories = Table(show_header=True, header_style="bold")
        categories.add_column("Category")
        categories.add_column("Passed", justify="right")
        categories.add_column("Failed", justify="right")
        for name, counts in summary.by_category.items():
            categories.add_row(name, str(counts.passed), str(counts.failed))
        console.print(categories)

    console.print(f"Total: {summary.total}  [green]Passed: {summary.passed}[/green]  [red]Failed: {summary.failed}[/red]")

    failures = report.failures
    if failures:
        console.print("\n[bold red]Failed checks:[/bold red]")
        for result in failures:
            console.print(f"  - [bold]{escape(result.name)}[/bold] ({escape(result.category)}): {escape(result.details or '')}")
            if result.risk:
                console.print(f"      [yellow]Risk:[/yellow] {escape(result.risk)}")
            if result.recommendation:
                console.print(f"      [cyan]Fix:[/cyan] {escape(result.recommendation)}")
    else:
        console.print("\n[bold green]All checks passed[/bold green]")


def bound_depth(value: Any, max_depth: int, _depth: int = 0) -> Any:
    """Copy a JSON-ready structure, turning containers below max_depth into strings."""
    if isinstance(value, dict):
        if _depth >= max_depth:
            return str(value)
        return {k: bound_depth(v, max_depth, _depth + 1) for k, v in value.items()}
    if isinstance(value, list):
        if _depth >= max_depth:
            return str(value)
        return [bound_depth(v, max_depth, _depth + 1) for v in value]
    return value


def report_filename(report: RunReport) -> str:
    return f"{report.run_name}-results-{report.started_at.strftime('%Y%m%d-%H%M%S')}.json"


def export_report(report: RunReport, output_dir: Optional[Path] = None, max_depth: Optional[int] = None) -> Path:
    """Write the report as JSON and return its path.

    Raises:
        FileExistsError: if a report for the same run second already exists
    """
    output_dir = Path(output_dir or settings.RESULTS_DIR)
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / report_filename(report)

    if max_depth is None:
        max_depth = settings.EXPORT_DEPTH
    document = bound_depth(report.model_dump(mode="json"), max_depth)

    with open(path, "x", encoding="utf-8") as f:
        json.dump(document, f, indent=2)

    logger.info(f"Results exported to {path}")
    return path
