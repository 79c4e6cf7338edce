"""
Fabric Chinese Wall toolkit - CLI entry point.
"""

import typer

from fabricwall.commands import provision, setup, sql_templates, validate
from fabricwall.config import settings

# Create app
app = typer.Typer(
    name="fabricwall",
    help=f"{settings.APP_NAME}: provision and validate provider/consumer data segregation",
    no_args_is_help=True,
)

# Register commands
app.command("validate")(validate.validate)
app.command("test")(validate.test)
app.command("setup")(setup.setup)
app.command("sql-templates")(sql_templates.sql_templates)
app.add_typer(provision.router, name="provision")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
