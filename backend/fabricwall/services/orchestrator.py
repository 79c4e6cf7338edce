"""
Suite Orchestrator - Runs check suites in a fixed order and computes the verdict.

Each suite records into its own ResultSet. A suite whose prerequisite input is
absent is marked SKIPPED before anything runs; a failing suite never stops the
ones after it.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from rich.console import Console

from fabricwall.logger import logger
from fabricwall.schemas.results import ResultSet, RunReport, SuiteResult, SuiteStatus
from fabricwall.services.checks.context import CheckContext
from fabricwall.services.recorder import CheckRecorder
from fabricwall.services.reporter import summarize

SuiteRunner = Callable[[CheckContext, CheckRecorder], None]


@dataclass
class Suite:
    """One named group of checks."""
    name: str
    runner: SuiteRunner
    skip_reason: Optional[str] = None


@dataclass
class SuiteSelection:
    """Resolved skip flags, shared by every entry point."""
    skip_sql: bool = False
    skip_powerbi: bool = False

    def skip_reason(self, suite_name: str, ctx: CheckContext) -> Optional[str]:
        """Why a suite cannot run with this configuration, or None."""
        d = ctx.deployment
        if suite_name == "security":
            if not (d.provider_workspace_id and d.consumer_workspace_id):
                return "Provider and consumer workspace ids are both required"
        elif suite_name == "sql":
            if self.skip_sql:
                return "Skipped by --skip-sql"
            if not d.sql_connection_string:
                return "No SQL connection string configured"
        elif suite_name == "powerbi":
            if self.skip_powerbi:
                return "Skipped by --skip-powerbi"
            if not d.consumer_workspace_id:
                return "No consumer workspace id configured"
        return None

    def plan(self, suites: dict[str, SuiteRunner], ctx: CheckContext) -> list[Suite]:
        return [Suite(name, runner, self.skip_reason(name, ctx)) for name, runner in suites.items()]


class SuiteOrchestrator:
    """Runs suites sequentially and builds the run report."""

    def __init__(self, suites: list[Suite], console: Optional[Console] = None):
        self.suites = suites
        self.console = console or Console(highlight=False)

    def run(self, ctx: CheckContext, run_name: str = "validation") -> RunReport:
        started_at = datetime.now(timezone.utc)
        suite_results = [self._run_suite(suite, ctx) for suite in self.suites]

        summary = summarize(suite_results)
        report = RunReport(
            run_name=run_name,
            started_at=started_at,
            completed_at=datetime.now(timezone.utc),
            success=overall_success(suite_results),
            summary=summary,
            suites=suite_results,
        )
        logger.info(
            f"Run '{run_name}' finished: {summary.passed}/{summary.total} passed, {summary.failed} failed"
        )
        return report

    def _run_suite(self, suite: Suite, ctx: CheckContext) -> SuiteResult:
        if suite.skip_reason:
            self.console.print(f"\n[yellow]Suite {suite.name}: SKIPPED[/yellow] - {suite.skip_reason}")
            logger.info(f"Skipping suite {suite.name}: {suite.skip_reason}")
            return SuiteResult(name=suite.name, status=SuiteStatus.SKIPPED, reason=suite.skip_reason)

        self.console.print(f"\n[bold cyan]Suite {suite.name}[/bold cyan]")
        result_set = ResultSet()
        recorder = CheckRecorder(result_set, self.console)

        try:
            suite.runner(ctx, recorder)
        except Exception as e:
            logger.exception(f"Suite {suite.name} raised")
            recorder.record("Suite Execution", "Execution", False, details=f"{suite.name} aborted: {e}")
        finally:
            result_set.seal()

        for category, results in result_set.by_category().items():
            failed = sum(1 for r in results if not r.passed)
            logger.debug(f"{suite.name}/{category}: {len(results) - failed} passed, {failed} failed")

        status = SuiteStatus.PASSED if result_set.failed_count == 0 else SuiteStatus.FAILED
        return SuiteResult(name=suite.name, status=status, results=list(result_set.results))


def overall_success(suite_results: list[SuiteResult]) -> bool:
    """AND over the statuses of all suites that were not skipped."""
    return all(s.status == SuiteStatus.PASSED for s in suite_results if s.status != SuiteStatus.SKIPPED)
