"""
Helpers shared by the CLI commands: config resolution, fatal errors, run execution.
"""
from pathlib import Path
from typing import NoReturn, Optional

import typer
from rich.console import Console

from fabricwall.config import access_token, load_deployment, settings
from fabricwall.exceptions import ConfigError
from fabricwall.logger import logger
from fabricwall.schemas.deployment import DeploymentConfig
from fabricwall.schemas.results import RunReport
from fabricwall.services.checks import SUITES, CheckContext
from fabricwall.services.fabric_client import FabricClient
from fabricwall.services.orchestrator import SuiteOrchestrator, SuiteSelection
from fabricwall.services.reporter import exit_code, export_report, print_summary
from fabricwall.services.sql_client import SqlProbe

console = Console(highlight=False)


def fail(message: str) -> NoReturn:
    """Report a fatal setup error and exit 1."""
    typer.secho(f"Error: {message}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)


def resolve_deployment(config: Optional[Path], **overrides) -> DeploymentConfig:
    """Config file (explicit, else the default file if present) plus CLI overrides."""
    path = config
    if path is None and Path(settings.CONFIG_FILE).is_file():
        path = Path(settings.CONFIG_FILE)
        logger.debug(f"Using config file {path}")
    return load_deployment(path, overrides)


def build_context(deployment: DeploymentConfig, selection: SuiteSelection) -> CheckContext:
    token = access_token()
    client = FabricClient(token) if token else None
    sql = None
    if deployment.sql_connection_string and not selection.skip_sql:
        sql = SqlProbe(deployment.sql_connection_string, timeout=settings.HTTP_TIMEOUT)
    return CheckContext(
        deployment=deployment,
        token=token,
        client=client,
        sql=sql,
        probe_timeout=settings.PROBE_TIMEOUT,
    )


def execute_run(
    suite_names: list[str],
    run_name: str,
    deployment: DeploymentConfig,
    selection: SuiteSelection,
    output_dir: Optional[Path],
) -> int:
    """Run the named suites, print and export the report; return the exit code."""
    unknown = [n for n in suite_names if n not in SUITES]
    if unknown:
        raise ConfigError(f"Unknown suite(s): {', '.join(unknown)} (choose from {', '.join(SUITES)})")

    ctx = build_context(deployment, selection)
    suites = selection.plan({name: SUITES[name] for name in suite_names}, ctx)

    console.print(f"[bold]{settings.APP_NAME}[/bold] - {run_name}")
    try:
        report: RunReport = SuiteOrchestrator(suites, console).run(ctx, run_name=run_name)
    finally:
        if ctx.client is not None:
            ctx.client.close()
        if ctx.sql is not None:
            ctx.sql.close()

    print_summary(report, console)
    try:
        path = export_report(report, output_dir)
    except OSError as e:
        logger.error(f"Could not export results: {e}")
        return 1

    console.print(f"\nResults exported to [bold]{path}[/bold]")
    return exit_code(report)
