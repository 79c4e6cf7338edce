"""
Template Renderer - Substitute deployment identifiers into payload and SQL templates.

Uses Jinja2 with StrictUndefined, so a template never renders with an
identifier left unfilled.
"""

import json
import os
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined, UndefinedError

from fabricwall.exceptions import ConfigError
from fabricwall.logger import logger
from fabricwall.schemas.deployment import DeploymentConfig

SQL_TEMPLATES = {
    "rls-cls": "rls-cls.sql.j2",
    "ddm": "ddm.sql.j2",
}


class TemplateRenderer:
    """Renders the bundled templates."""

    def __init__(self):
        self.template_dir = os.path.join(os.path.dirname(os.path.dirname(__file__)), "templates")
        self.env = Environment(
            loader=FileSystemLoader(self.template_dir),
            undefined=StrictUndefined,
            keep_trailing_newline=True,
        )

    def render(self, template_name: str, **params: Any) -> str:
        try:
            return self.env.get_template(template_name).render(**params)
        except UndefinedError as e:
            raise ConfigError(f"Template {template_name} needs a value that is not configured: {e.message}") from e

    def onelake_roles(self, deployment: DeploymentConfig, role_name: str = "EntityBMarketDataReaders") -> dict:
        """OneLake dataAccessRoles body granting the readers group Read on the shared table."""
        missing = [k for k in ("entity_b_marketdata_readers", "tenant_id") if not getattr(deployment, k)]
        if missing:
            raise ConfigError(f"OneLake security needs: {', '.join(missing)}")

        text = self.render(
            "onelake-security-roles.json.j2",
            role_name=role_name,
            shared_table_path=deployment.shared_table_path,
            tenant_id=deployment.tenant_id,
            entity_b_marketdata_readers=deployment.entity_b_marketdata_readers,
        )
        logger.debug(f"Rendered OneLake roles for {deployment.entity_b_marketdata_readers}")
        return json.loads(text)

    def sql_policy(
        self,
        name: str,
        deployment: DeploymentConfig,
        masked_column: str = "PIINumber",
        mask_function: str = 'partial(0,"***-***-",4)',
        security_schema: str = "sec",
        deny_column: str = "",
        deny_role: str = "",
    ) -> str:
        """Render one SQL policy template; applied by an external SQL client."""
        if name not in SQL_TEMPLATES:
            raise ConfigError(f"Unknown SQL template '{name}' (choose from {', '.join(SQL_TEMPLATES)})")
        return self.render(
            SQL_TEMPLATES[name],
            schema=deployment.sql_schema,
            table=deployment.sql_table,
            entity_column=deployment.sql_entity_column,
            security_schema=security_schema,
            masked_column=masked_column,
            mask_function=mask_function,
            deny_column=deny_column,
            deny_role=deny_role,
        )
