"""
Shared inputs for check suites.
"""
from dataclasses import dataclass, field
from typing import Optional

from fabricwall.exceptions import MissingCredentialError
from fabricwall.schemas.deployment import DeploymentConfig
from fabricwall.services.fabric_client import FabricClient
from fabricwall.services.sql_client import SqlProbe


@dataclass
class CheckContext:
    """Everything a suite needs; built once per run by the CLI."""
    deployment: DeploymentConfig
    token: str = ""
    client: Optional[FabricClient] = None
    sql: Optional[SqlProbe] = None
    probe_timeout: float = 10
    # workspace id -> workspace body, filled by successful Workspace Access probes
    workspaces: dict[str, dict] = field(default_factory=dict)

    def api(self) -> FabricClient:
        """Client for probes that need the REST API."""
        if not self.token or self.client is None:
            raise MissingCredentialError("ACCESS_TOKEN is not set; API check not attempted")
        return self.client

    def configured_workspaces(self) -> list[tuple[str, str, Optional[str]]]:
        """(label, workspace id, item id) for each configured workspace, provider first."""
        d = self.deployment
        sides = [
            ("Provider", d.provider_workspace_id, d.provider_item_id),
            ("Consumer", d.consumer_workspace_id, d.consumer_item_id),
        ]
        return [side for side in sides if side[1]]
