"""
Interactive setup: collect deployment identifiers, save them, optionally provision.
"""
from pathlib import Path
from typing import Optional

import typer

from fabricwall.commands.common import console, fail
from fabricwall.commands.provision import print_steps
from fabricwall.config import load_deployment, save_deployment, settings
from fabricwall.exceptions import ConfigError, ProvisioningError, TokenAcquisitionError
from fabricwall.logger import set_verbose
from fabricwall.services import provisioning
from fabricwall.services.fabric_client import FabricClient
from fabricwall.services.token_provider import acquire_token

# (field, prompt) in the order they are asked
PROMPTS = [
    ("provider_workspace_id", "Provider Workspace ID"),
    ("consumer_workspace_id", "Consumer Workspace ID"),
    ("provider_item_id", "Provider Lakehouse/Warehouse Item ID"),
    ("consumer_item_id", "Consumer Lakehouse/Warehouse Item ID"),
    ("entity_a_admins", "Entra Group Object ID for Entity A Admins"),
    ("entity_a_engineers", "Entra Group Object ID for Entity A Engineers"),
    ("entity_a_analysts", "Entra Group Object ID for Entity A Analysts"),
    ("entity_b_admins", "Entra Group Object ID for Entity B Admins"),
    ("entity_b_engineers", "Entra Group Object ID for Entity B Engineers"),
    ("entity_b_analysts", "Entra Group Object ID for Entity B Analysts"),
    ("entity_b_marketdata_readers", "Entra Group Object ID for Entity B MarketData Readers"),
    ("tenant_id", "Entra Tenant ID"),
]


def setup(
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file to write"),
    run: bool = typer.Option(False, "--run", help="Provision roles, OneLake security and the shortcut afterwards"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Prompt for workspace, item and group ids and save them to the config file."""
    set_verbose(verbose)
    target = config or Path(settings.CONFIG_FILE)

    console.rule("[bold]Microsoft Fabric POC Setup[/bold]")
    try:
        current = load_deployment(target if target.is_file() else None)
    except ConfigError as e:
        fail(str(e))

    values = {}
    for field, prompt in PROMPTS:
        answer = typer.prompt(f"Enter {prompt}", default=getattr(current, field) or "", show_default=True)
        values[field] = answer.strip() or None

    deployment = current.model_copy(update=values)
    save_deployment(deployment, target)
    typer.secho(f"Configuration saved to {target}", fg=typer.colors.GREEN)

    if not run:
        console.print("Next steps:")
        console.print("  1) Ensure ACCESS_TOKEN is set (or run 'az login')")
        console.print(f"  2) fabricwall provision all --config {target}")
        console.print("  3) fabricwall sql-templates, then apply them with your SQL client")
        console.print(f"  4) fabricwall validate --config {target}")
        return

    try:
        token = acquire_token()
        with FabricClient(token) as client:
            steps = provisioning.provision_all(client, deployment)
    except (ConfigError, TokenAcquisitionError, ProvisioningError) as e:
        fail(str(e))
    print_steps(steps)
    console.print("Done. Apply the SQL templates and run 'fabricwall validate'.")
