"""
Provisioning commands. These mutate the tenant; validation never calls them.
"""
from pathlib import Path
from typing import Callable, Optional

import typer

from fabricwall.commands.common import console, fail, resolve_deployment
from fabricwall.config import save_deployment, settings
from fabricwall.exceptions import ConfigError, ProvisioningError, TokenAcquisitionError
from fabricwall.logger import set_verbose
from fabricwall.schemas.deployment import DeploymentConfig, ProvisioningStep
from fabricwall.services import provisioning
from fabricwall.services.fabric_client import FabricClient
from fabricwall.services.token_provider import acquire_token

router = typer.Typer(help="Create workspaces, assign roles, apply OneLake security, create shortcuts.")

CONFIG_OPTION = typer.Option(None, "--config", "-c", help="Flat JSON file with deployment identifiers")
VERBOSE_OPTION = typer.Option(False, "--verbose", "-v", help="Debug logging")


def print_steps(steps: list[ProvisioningStep]) -> None:
    for step in steps:
        state = "[green]changed[/green]" if step.changed else "[dim]unchanged[/dim]"
        console.print(f"[bold]{step.name}[/bold]: {state}")
        for line in step.details:
            console.print(f"  - {line}")


def _execute(config: Optional[Path], verbose: bool, action: Callable[[FabricClient, DeploymentConfig], list]) -> None:
    set_verbose(verbose)
    try:
        deployment = resolve_deployment(config)
        token = acquire_token()
        with FabricClient(token) as client:
            steps = action(client, deployment)
    except (ConfigError, TokenAcquisitionError, ProvisioningError) as e:
        fail(str(e))
    print_steps(steps)


@router.command("workspaces")
def workspaces(config: Optional[Path] = CONFIG_OPTION, verbose: bool = VERBOSE_OPTION) -> None:
    """Create the provider and consumer workspaces (existing ones are reused)."""
    def action(client: FabricClient, deployment: DeploymentConfig) -> list:
        step, ids = provisioning.create_workspaces(client, deployment)
        target = config or Path(settings.CONFIG_FILE)
        updated = deployment.model_copy(update={
            "provider_workspace_id": ids.get("provider"),
            "consumer_workspace_id": ids.get("consumer"),
        })
        save_deployment(updated, target)
        step.details.append(f"Workspace ids saved to {target}")
        return [step]

    _execute(config, verbose, action)


@router.command("roles")
def roles(config: Optional[Path] = CONFIG_OPTION, verbose: bool = VERBOSE_OPTION) -> None:
    """Assign Entity A groups to the provider workspace and Entity B groups to the consumer."""
    _execute(config, verbose, lambda c, d: [provisioning.assign_workspace_roles(c, d)])


@router.command("onelake-security")
def onelake_security(config: Optional[Path] = CONFIG_OPTION, verbose: bool = VERBOSE_OPTION) -> None:
    """Apply OneLake data access roles on the provider item."""
    _execute(config, verbose, lambda c, d: [provisioning.configure_onelake_security(c, d)])


@router.command("shortcut")
def shortcut(config: Optional[Path] = CONFIG_OPTION, verbose: bool = VERBOSE_OPTION) -> None:
    """Create the consumer shortcut to the provider's shared table."""
    _execute(config, verbose, lambda c, d: [provisioning.create_shortcut(c, d)])


@router.command("all")
def provision_all(config: Optional[Path] = CONFIG_OPTION, verbose: bool = VERBOSE_OPTION) -> None:
    """Roles, OneLake security and the shortcut, in that order."""
    _execute(config, verbose, provisioning.provision_all)
