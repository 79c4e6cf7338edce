"""
Provisioning - Mutating calls that build the wall.

Steps are idempotent: existing workspaces, role assignments and shortcuts are
detected and left alone. Any other API failure ends the step with
ProvisioningError.

Order used by provision_all():
1. Workspace role assignments (provider: Entity A, consumer: Entity B)
2. OneLake data access roles on the provider item
3. Internal OneLake shortcut in the consumer item
"""

from typing import Optional

import httpx

from fabricwall.exceptions import ConfigError, FabricApiError, ProvisioningError
from fabricwall.logger import logger
from fabricwall.schemas.deployment import (
    DeploymentConfig,
    OneLakeTarget,
    Principal,
    ProvisioningStep,
    RoleAssignmentRequest,
    ShortcutRequest,
    ShortcutTarget,
)
from fabricwall.services.fabric_client import FabricClient, principal_ids
from fabricwall.services.template_renderer import TemplateRenderer

# Group key suffix -> workspace role
ROLE_MAP = {
    "admins": "Admin",
    "engineers": "Contributor",
    "analysts": "Viewer",
}


def _require(deployment: DeploymentConfig, *fields: str) -> None:
    missing = [f for f in fields if not getattr(deployment, f)]
    if missing:
        raise ConfigError(f"Missing required parameter(s): {', '.join(missing)}")


def create_workspaces(client: FabricClient, deployment: DeploymentConfig) -> tuple[ProvisioningStep, dict[str, str]]:
    """Create the provider and consumer workspaces unless they already exist.

    Returns:
        The step record and {"provider": id, "consumer": id}
    """
    step = ProvisioningStep(name="workspaces", changed=False)
    ids: dict[str, str] = {}

    try:
        existing = {w.get("displayName"): w.get("id") for w in client.list_workspaces()}
        for side, name in (("provider", deployment.provider_workspace_name),
                           ("consumer", deployment.consumer_workspace_name)):
            if name in existing:
                ids[side] = existing[name]
                step.details.append(f"{name} exists ({existing[name]})")
                continue

            created = client.create_workspace(
                name,
                capacity_id=deployment.capacity_id,
                description=f"Chinese Wall POC - {side}",
            )
            ids[side] = created.get("id")
            step.changed = True
            step.details.append(f"Created {name} ({ids[side]})")
            logger.info(f"Created workspace {name} ({ids[side]})")
    except (FabricApiError, httpx.HTTPError) as e:
        raise ProvisioningError(f"Workspace creation failed: {e}") from e

    return step, ids


def _assignments_for(groups: dict[str, str]) -> list[RoleAssignmentRequest]:
    requests = []
    for key, group_id in groups.items():
        role = ROLE_MAP[key.rsplit("_", 1)[-1]]
        requests.append(RoleAssignmentRequest(principal=Principal(id=group_id, type="Group"), role=role))
    return requests


def assign_workspace_roles(client: FabricClient, deployment: DeploymentConfig) -> ProvisioningStep:
    """Assign Entity A groups on the provider workspace and Entity B groups on the consumer."""
    _require(deployment, "provider_workspace_id", "consumer_workspace_id")
    step = ProvisioningStep(name="roles", changed=False)

    plan = (
        ("provider", deployment.provider_workspace_id, deployment.entity_a_groups()),
        ("consumer", deployment.consumer_workspace_id, deployment.entity_b_groups()),
    )

    for side, workspace_id, groups in plan:
        if not groups:
            logger.warning(f"No group ids configured for the {side} workspace; skipping")
            step.details.append(f"{side}: no groups configured")
            continue

        try:
            assigned = principal_ids(client.list_role_assignments(workspace_id))
        except (FabricApiError, httpx.HTTPError) as e:
            raise ProvisioningError(f"Cannot read {side} role assignments: {e}") from e

        for request in _assignments_for(groups):
            label = f"{side}: {request.principal.id} as {request.role}"
            if request.principal.id in assigned:
                step.details.append(f"{label} (already assigned)")
                continue
            try:
                client.add_role_assignment(workspace_id, request.model_dump())
            except FabricApiError as e:
                if e.status_code == 409:
                    step.details.append(f"{label} (already assigned)")
                    continue
                raise ProvisioningError(f"Role assignment failed ({label}): {e}") from e
            except httpx.HTTPError as e:
                raise ProvisioningError(f"Role assignment failed ({label}): {e}") from e
            step.changed = True
            step.details.append(label)
            logger.info(f"Assigned {label}")

    return step


def configure_onelake_security(
    client: FabricClient,
    deployment: DeploymentConfig,
    renderer: Optional[TemplateRenderer] = None,
) -> ProvisioningStep:
    """Replace the provider item's OneLake data access roles with the rendered template."""
    _require(deployment, "provider_workspace_id", "provider_item_id")
    roles = (renderer or TemplateRenderer()).onelake_roles(deployment)

    try:
        client.put_data_access_roles(deployment.provider_workspace_id, deployment.provider_item_id, roles)
    except (FabricApiError, httpx.HTTPError) as e:
        raise ProvisioningError(f"OneLake security configuration failed: {e}") from e

    names = [r["name"] for r in roles["value"]]
    logger.info(f"Applied OneLake roles {names} to item {deployment.provider_item_id}")
    return ProvisioningStep(name="onelake-security", changed=True, details=[f"Applied roles: {', '.join(names)}"])


def create_shortcut(client: FabricClient, deployment: DeploymentConfig) -> ProvisioningStep:
    """Create the consumer-side OneLake shortcut to the provider's shared table."""
    _require(deployment, "provider_workspace_id", "provider_item_id", "consumer_workspace_id", "consumer_item_id")

    request = ShortcutRequest(
        path=deployment.shortcut_path,
        name=deployment.shortcut_name,
        target=ShortcutTarget(one_lake=OneLakeTarget(
            workspace_id=deployment.provider_workspace_id,
            item_id=deployment.provider_item_id,
            path=deployment.shared_table_path,
        )),
    )

    try:
        existing = client.list_shortcuts(deployment.consumer_workspace_id, deployment.consumer_item_id)
        if any(s.get("name") == request.name for s in existing):
            return ProvisioningStep(name="shortcut", changed=False, details=[f"{request.name} already exists"])

        client.create_shortcut(
            deployment.consumer_workspace_id,
            deployment.consumer_item_id,
            request.model_dump(by_alias=True),
        )
    except (FabricApiError, httpx.HTTPError) as e:
        raise ProvisioningError(f"Shortcut creation failed: {e}") from e

    logger.info(f"Created shortcut {request.path}/{request.name} -> {deployment.shared_table_path}")
    return ProvisioningStep(
        name="shortcut",
        changed=True,
        details=[f"Created {request.path}/{request.name} -> {deployment.shared_table_path}"],
    )


def provision_all(client: FabricClient, deployment: DeploymentConfig) -> list[ProvisioningStep]:
    """Roles, then OneLake security, then the shortcut; stops at the first failure."""
    return [
        assign_workspace_roles(client, deployment),
        configure_onelake_security(client, deployment),
        create_shortcut(client, deployment),
    ]
