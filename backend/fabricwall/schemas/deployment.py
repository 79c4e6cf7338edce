"""
Pydantic schemas for deployment identifiers and provisioning payloads.
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


WorkspaceRole = Literal["Admin", "Member", "Contributor", "Viewer"]


class DeploymentConfig(BaseModel):
    """Identifiers for one provider/consumer deployment.

    Every field is optional here; each command checks for the ones it needs.
    """
    model_config = ConfigDict(extra="forbid")

    # Workspaces
    provider_workspace_id: Optional[str] = None
    consumer_workspace_id: Optional[str] = None
    provider_workspace_name: str = "EntityA-Provider"
    consumer_workspace_name: str = "EntityB-Consumer"
    capacity_id: Optional[str] = None

    # Lakehouse / warehouse items
    provider_item_id: Optional[str] = None
    consumer_item_id: Optional[str] = None

    # Entra group object ids
    entity_a_admins: Optional[str] = None
    entity_a_engineers: Optional[str] = None
    entity_a_analysts: Optional[str] = None
    entity_b_admins: Optional[str] = None
    entity_b_engineers: Optional[str] = None
    entity_b_analysts: Optional[str] = None
    entity_b_marketdata_readers: Optional[str] = None
    tenant_id: Optional[str] = None

    # Shortcut
    shortcut_name: str = "MarketDataShortcut"
    shortcut_path: str = "Tables"
    shared_table_path: str = "Tables/MarketData"

    # SQL validation
    sql_connection_string: Optional[str] = None
    sql_schema: str = "dbo"
    sql_table: str = "MarketData"
    sql_entity_column: str = "EntityCode"
    sql_entity_code: Optional[str] = None

    # Power BI: comma-separated principal ids allowed to hold Build/Reshare
    powerbi_allowed_principals: Optional[str] = None

    def entity_a_groups(self) -> dict[str, str]:
        return _present({
            "entity_a_admins": self.entity_a_admins,
            "entity_a_engineers": self.entity_a_engineers,
            "entity_a_analysts": self.entity_a_analysts,
        })

    def entity_b_groups(self) -> dict[str, str]:
        return _present({
            "entity_b_admins": self.entity_b_admins,
            "entity_b_engineers": self.entity_b_engineers,
            "entity_b_analysts": self.entity_b_analysts,
        })

    def allowed_powerbi_principals(self) -> set[str]:
        if not self.powerbi_allowed_principals:
            return set()
        return {p.strip() for p in self.powerbi_allowed_principals.split(",") if p.strip()}


def _present(groups: dict[str, Optional[str]]) -> dict[str, str]:
    return {k: v for k, v in groups.items() if v}


class Principal(BaseModel):
    """Principal reference in a workspace role assignment."""
    id: str
    type: Literal["User", "Group", "ServicePrincipal", "ServicePrincipalProfile"] = "Group"


class RoleAssignmentRequest(BaseModel):
    """Body of POST /workspaces/{id}/roleAssignments."""
    principal: Principal
    role: WorkspaceRole


class OneLakeTarget(BaseModel):
    workspace_id: str = Field(..., serialization_alias="workspaceId")
    item_id: str = Field(..., serialization_alias="itemId")
    path: str


class ShortcutTarget(BaseModel):
    one_lake: OneLakeTarget = Field(..., serialization_alias="oneLake")


class ShortcutRequest(BaseModel):
    """Body of POST /workspaces/{id}/items/{id}/shortcuts."""
    path: str
    name: str
    target: ShortcutTarget


class ProvisioningStep(BaseModel):
    """Outcome of one provisioning step."""
    name: str
    changed: bool
    details: list[str] = []
