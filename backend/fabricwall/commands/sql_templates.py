"""
Render the SQL row/column security templates.
"""
from pathlib import Path
from typing import Optional

import typer

from fabricwall.commands.common import console, fail, resolve_deployment
from fabricwall.exceptions import ConfigError
from fabricwall.services.template_renderer import SQL_TEMPLATES, TemplateRenderer


def sql_templates(
    name: str = typer.Option("all", "--name", "-n", help=f"Template to render: all, {', '.join(SQL_TEMPLATES)}"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Flat JSON file with deployment identifiers"),
    out: Optional[Path] = typer.Option(None, "--out", "-o", help="Write <name>.sql files here instead of stdout"),
    masked_column: str = typer.Option("PIINumber", help="Column masked by the DDM template"),
    deny_column: str = typer.Option("", help="Column hidden by column-level security"),
    deny_role: str = typer.Option("", help="Role the column is hidden from"),
) -> None:
    """Print (or write) the RLS/CLS and DDM statements for an external SQL client."""
    names = list(SQL_TEMPLATES) if name == "all" else [name]
    try:
        deployment = resolve_deployment(config)
        renderer = TemplateRenderer()
        rendered = {
            n: renderer.sql_policy(
                n, deployment,
                masked_column=masked_column,
                deny_column=deny_column,
                deny_role=deny_role,
            )
            for n in names
        }
    except ConfigError as e:
        fail(str(e))

    if out is None:
        for text in rendered.values():
            typer.echo(text)
        return

    out.mkdir(parents=True, exist_ok=True)
    for n, text in rendered.items():
        path = out / f"{n}.sql"
        path.write_text(text, encoding="utf-8")
        console.print(f"Wrote {path}")
