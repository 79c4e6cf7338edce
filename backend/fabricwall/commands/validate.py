"""
Validation commands: the full run and single-suite runs.
"""
from pathlib import Path
from typing import Optional

import typer

from fabricwall.commands.common import execute_run, fail, resolve_deployment
from fabricwall.exceptions import ConfigError
from fabricwall.logger import set_verbose
from fabricwall.services.checks import SUITES
from fabricwall.services.orchestrator import SuiteSelection

CONFIG_HELP = "Flat JSON file with deployment identifiers"


def validate(
    config: Optional[Path] = typer.Option(None, "--config", "-c", help=CONFIG_HELP),
    provider_workspace_id: Optional[str] = typer.Option(None, help="Provider (Entity A) workspace id"),
    consumer_workspace_id: Optional[str] = typer.Option(None, help="Consumer (Entity B) workspace id"),
    provider_item_id: Optional[str] = typer.Option(None, help="Provider lakehouse/warehouse item id"),
    consumer_item_id: Optional[str] = typer.Option(None, help="Consumer lakehouse/warehouse item id"),
    sql_connection_string: Optional[str] = typer.Option(None, help="ODBC connection string for the SQL endpoint"),
    skip_sql: bool = typer.Option(False, "--skip-sql", help="Skip the SQL suite"),
    skip_powerbi: bool = typer.Option(False, "--skip-powerbi", help="Skip the Power BI suite"),
    output_dir: Optional[Path] = typer.Option(None, help="Directory for the results file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Run every suite and export validation-results-<timestamp>.json."""
    _run(list(SUITES), "validation", locals())


def test(
    suite: str = typer.Argument(..., help=f"One of: {', '.join(SUITES)}"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help=CONFIG_HELP),
    provider_workspace_id: Optional[str] = typer.Option(None, help="Provider (Entity A) workspace id"),
    consumer_workspace_id: Optional[str] = typer.Option(None, help="Consumer (Entity B) workspace id"),
    provider_item_id: Optional[str] = typer.Option(None, help="Provider lakehouse/warehouse item id"),
    consumer_item_id: Optional[str] = typer.Option(None, help="Consumer lakehouse/warehouse item id"),
    sql_connection_string: Optional[str] = typer.Option(None, help="ODBC connection string for the SQL endpoint"),
    skip_sql: bool = typer.Option(False, "--skip-sql", help="Skip the SQL suite"),
    skip_powerbi: bool = typer.Option(False, "--skip-powerbi", help="Skip the Power BI suite"),
    output_dir: Optional[Path] = typer.Option(None, help="Directory for the results file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Run one suite and export <suite>-results-<timestamp>.json."""
    _run([suite], suite, locals())


def _run(suite_names: list[str], run_name: str, options: dict) -> None:
    set_verbose(options["verbose"])
    selection = SuiteSelection(skip_sql=options["skip_sql"], skip_powerbi=options["skip_powerbi"])

    try:
        deployment = resolve_deployment(
            options["config"],
            provider_workspace_id=options["provider_workspace_id"],
            consumer_workspace_id=options["consumer_workspace_id"],
            provider_item_id=options["provider_item_id"],
            consumer_item_id=options["consumer_item_id"],
            sql_connection_string=options["sql_connection_string"],
        )
        if not deployment.provider_workspace_id:
            raise ConfigError("--provider-workspace-id is required (or set provider_workspace_id in the config file)")
        code = execute_run(suite_names, run_name, deployment, selection, options["output_dir"])
    except ConfigError as e:
        fail(str(e))

    raise typer.Exit(code=code)
