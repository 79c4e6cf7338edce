"""
Check Recorder - Append check outcomes to a run's ResultSet and echo them.

run_check() is the single catch-and-record boundary: whatever a probe raises
becomes one failed CheckResult, so one unreachable endpoint never aborts the
checks that follow it.
"""
from dataclasses import dataclass
from typing import Callable, Optional, Union

import httpx
from rich.console import Console
from rich.markup import escape

from fabricwall.exceptions import AccessDeniedError, FabricApiError, FabricWallError
from fabricwall.logger import logger
from fabricwall.schemas.results import CheckResult, ResultSet


ACCESS_DENIED_RECOMMENDATION = (
    "Confirm the token audience/scopes and that the caller holds a role on the target workspace."
)


@dataclass
class CheckOutcome:
    """What a probe observed."""
    passed: bool
    details: Optional[str] = None


class CheckRecorder:
    """Records check results for one suite."""

    def __init__(self, result_set: ResultSet, console: Optional[Console] = None):
        self.result_set = result_set
        self.console = console or Console(highlight=False)

    def record(
        self,
        name: str,
        category: str,
        passed: bool,
        details: Optional[str] = None,
        risk: Optional[str] = None,
        recommendation: Optional[str] = None,
    ) -> CheckResult:
        result = CheckResult(
            name=name,
            category=category,
            passed=passed,
            details=details,
            risk=risk if not passed else None,
            recommendation=recommendation if not passed else None,
        )
        self.result_set.append(result)

        tag = "[green]PASS[/green]" if passed else "[red]FAIL[/red]"
        line = f"  [{tag}] [bold]{escape(name)}[/bold] [dim]({escape(category)})[/dim]"
        if details:
            line += f" - {escape(details)}"
        self.console.print(line)
        if not passed and risk:
            self.console.print(f"         [yellow]Risk:[/yellow] {escape(risk)}")

        logger.debug(f"Recorded {name} [{category}] passed={passed}")
        return result


ProbeResult = Union[CheckOutcome, bool]


def run_check(
    recorder: CheckRecorder,
    name: str,
    category: str,
    probe: Callable[[], ProbeResult],
    risk: Optional[str] = None,
    recommendation: Optional[str] = None,
) -> CheckResult:
    """Run one probe and record exactly one result for it.

    Args:
        recorder: Recorder of the running suite
        name: Check name
        category: Grouping tag
        probe: Callable returning CheckOutcome or bool; may raise
        risk: Security implication, kept only if the check fails
        recommendation: Remediation, kept only if the check fails

    Returns:
        The recorded CheckResult
    """
    try:
        outcome = probe()
    except AccessDeniedError as e:
        logger.warning(f"{name}: access denied ({e})")
        return recorder.record(
            name, category, False,
            details=f"Access denied: {e}",
            risk=risk,
            recommendation=ACCESS_DENIED_RECOMMENDATION,
        )
    except FabricApiError as e:
        logger.warning(f"{name}: API error ({e})")
        return recorder.record(name, category, False, details=str(e), risk=risk, recommendation=recommendation)
    except httpx.HTTPError as e:
        logger.warning(f"{name}: request failed ({e})")
        return recorder.record(
            name, category, False,
            details=f"Request failed: {e}",
            risk=risk,
            recommendation=recommendation,
        )
    except FabricWallError as e:
        logger.warning(f"{name}: {e}")
        return recorder.record(name, category, False, details=str(e), risk=risk, recommendation=recommendation)
    except Exception as e:
        logger.exception(f"{name}: probe raised")
        return recorder.record(name, category, False, details=f"Error: {e}", risk=risk, recommendation=recommendation)

    if isinstance(outcome, bool):
        outcome = CheckOutcome(passed=outcome)

    return recorder.record(
        name, category, outcome.passed,
        details=outcome.details,
        risk=risk,
        recommendation=recommendation,
    )
