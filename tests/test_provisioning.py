import json

import httpx
import pytest

from conftest import CONSUMER_ITEM, CONSUMER_WS, FABRIC, PROVIDER_ITEM, PROVIDER_WS
from fabricwall.exceptions import ConfigError, ProvisioningError
from fabricwall.services import provisioning
from fabricwall.services.fabric_client import FabricClient


def _assignments(*ids):
    return {"value": [{"id": i, "principal": {"id": i, "type": "Group"}, "role": "Admin"} for i in ids]}


def test_assign_roles_maps_groups_and_skips_existing(api, client, deployment) -> None:
    api.add("GET", f"{FABRIC}/workspaces/{PROVIDER_WS}/roleAssignments", body=_assignments("ga-admins"))
    api.add("GET", f"{FABRIC}/workspaces/{CONSUMER_WS}/roleAssignments", body=_assignments())
    api.add("POST", f"{FABRIC}/workspaces/{PROVIDER_WS}/roleAssignments", status=201, body={})
    api.add("POST", f"{FABRIC}/workspaces/{CONSUMER_WS}/roleAssignments", status=201, body={})

    step = provisioning.assign_workspace_roles(client, deployment)

    assert step.changed is True
    provider_posts = [json.loads(r.content) for r in api.sent("POST", f"{FABRIC}/workspaces/{PROVIDER_WS}/roleAssignments")]
    consumer_posts = [json.loads(r.content) for r in api.sent("POST", f"{FABRIC}/workspaces/{CONSUMER_WS}/roleAssignments")]
    assert provider_posts == [
        {"principal": {"id": "ga-engineers", "type": "Group"}, "role": "Contributor"},
        {"principal": {"id": "ga-analysts", "type": "Group"}, "role": "Viewer"},
    ]
    assert [p["principal"]["id"] for p in consumer_posts] == ["gb-admins", "gb-engineers", "gb-analysts"]
    assert consumer_posts[0]["role"] == "Admin"
    assert any("already assigned" in d for d in step.details)


def test_assign_roles_conflict_counts_as_assigned(api, client, deployment) -> None:
    d = deployment.model_copy(update={"entity_b_admins": None, "entity_b_engineers": None, "entity_b_analysts": None})
    api.add("GET", f"{FABRIC}/workspaces/{PROVIDER_WS}/roleAssignments", body=_assignments())
    api.add("POST", f"{FABRIC}/workspaces/{PROVIDER_WS}/roleAssignments", status=409,
            body={"errorCode": "PrincipalAlreadyHasWorkspaceRolePermissions", "message": "exists"})

    step = provisioning.assign_workspace_roles(client, d)

    assert step.changed is False
    assert "consumer: no groups configured" in step.details


def test_assign_roles_other_errors_abort(api, client, deployment) -> None:
    api.add("GET", f"{FABRIC}/workspaces/{PROVIDER_WS}/roleAssignments", body=_assignments())
    api.add("POST", f"{FABRIC}/workspaces/{PROVIDER_WS}/roleAssignments", status=400,
            body={"errorCode": "InvalidInput", "message": "bad principal"})

    with pytest.raises(ProvisioningError, match="bad principal"):
        provisioning.assign_workspace_roles(client, deployment)


def test_assign_roles_requires_workspaces(client, deployment) -> None:
    with pytest.raises(ConfigError, match="consumer_workspace_id"):
        provisioning.assign_workspace_roles(client, deployment.model_copy(update={"consumer_workspace_id": None}))


def test_onelake_security_puts_rendered_roles(api, client, deployment) -> None:
    url = f"{FABRIC}/workspaces/{PROVIDER_WS}/items/{PROVIDER_ITEM}/dataAccessRoles"
    api.add("PUT", url, status=200)

    step = provisioning.configure_onelake_security(client, deployment)

    body = json.loads(api.sent("PUT", url)[0].content)
    role = body["value"][0]
    assert role["members"]["microsoftEntraMembers"] == [{"tenantId": "tenant-1", "objectId": "gb-readers"}]
    assert role["decisionRules"][0]["permission"][0]["attributeValueIncludedIn"] == ["Tables/MarketData"]
    assert step.changed is True


def test_onelake_security_needs_readers_group(client, deployment) -> None:
    with pytest.raises(ConfigError, match="entity_b_marketdata_readers"):
        provisioning.configure_onelake_security(
            client, deployment.model_copy(update={"entity_b_marketdata_readers": None}),
        )


def test_create_shortcut_payload(api, client, deployment) -> None:
    url = f"{FABRIC}/workspaces/{CONSUMER_WS}/items/{CONSUMER_ITEM}/shortcuts"
    api.add("GET", url, body={"value": []})
    api.add("POST", url, status=201, body={"name": "MarketDataShortcut"})

    step = provisioning.create_shortcut(client, deployment)

    body = json.loads(api.sent("POST", url)[0].content)
    assert body == {
        "path": "Tables",
        "name": "MarketDataShortcut",
        "target": {"oneLake": {"workspaceId": PROVIDER_WS, "itemId": PROVIDER_ITEM, "path": "Tables/MarketData"}},
    }
    assert step.changed is True


def test_create_shortcut_is_idempotent(api, client, deployment) -> None:
    url = f"{FABRIC}/workspaces/{CONSUMER_WS}/items/{CONSUMER_ITEM}/shortcuts"
    api.add("GET", url, body={"value": [{"name": "MarketDataShortcut"}]})

    step = provisioning.create_shortcut(client, deployment)

    assert step.changed is False
    assert not api.sent("POST", url)


def test_create_workspaces_reuses_existing(api, client, deployment) -> None:
    api.add("GET", f"{FABRIC}/workspaces", body={"value": [{"id": "existing-a", "displayName": "EntityA-Provider"}]})
    api.add("POST", f"{FABRIC}/workspaces", status=201, body={"id": "new-b", "displayName": "EntityB-Consumer"})

    step, ids = provisioning.create_workspaces(client, deployment)

    assert ids == {"provider": "existing-a", "consumer": "new-b"}
    posted = json.loads(api.sent("POST", f"{FABRIC}/workspaces")[0].content)
    assert posted["displayName"] == "EntityB-Consumer"
    assert "capacityId" not in posted
    assert step.changed is True


def test_provision_all_stops_at_first_failure(api, client, deployment) -> None:
    api.add("GET", f"{FABRIC}/workspaces/{PROVIDER_WS}/roleAssignments", body=_assignments())
    api.add("GET", f"{FABRIC}/workspaces/{CONSUMER_WS}/roleAssignments", body=_assignments())
    api.add("POST", f"{FABRIC}/workspaces/{PROVIDER_WS}/roleAssignments", status=201, body={})
    api.add("POST", f"{FABRIC}/workspaces/{CONSUMER_WS}/roleAssignments", status=201, body={})
    api.add("PUT", f"{FABRIC}/workspaces/{PROVIDER_WS}/items/{PROVIDER_ITEM}/dataAccessRoles", status=500,
            body={"errorCode": "InternalError", "message": "try later"})

    with pytest.raises(ProvisioningError, match="OneLake"):
        provisioning.provision_all(client, deployment)

    assert not api.sent("GET", f"{FABRIC}/workspaces/{CONSUMER_WS}/items/{CONSUMER_ITEM}/shortcuts")


def _unreachable(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("network down", request=request)


def test_network_failure_becomes_provisioning_error(deployment) -> None:
    with FabricClient("t", transport=httpx.MockTransport(_unreachable)) as client:
        with pytest.raises(ProvisioningError, match="network down"):
            provisioning.assign_workspace_roles(client, deployment)
        with pytest.raises(ProvisioningError, match="OneLake"):
            provisioning.configure_onelake_security(client, deployment)
        with pytest.raises(ProvisioningError, match="Shortcut"):
            provisioning.create_shortcut(client, deployment)
        with pytest.raises(ProvisioningError, match="Workspace creation"):
            provisioning.create_workspaces(client, deployment)


def test_network_failure_while_assigning_role(api, deployment) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            raise httpx.ReadTimeout("timed out", request=request)
        return api.handler(request)

    api.add("GET", f"{FABRIC}/workspaces/{PROVIDER_WS}/roleAssignments", body=_assignments())
    with FabricClient("t", transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(ProvisioningError, match="Role assignment failed"):
            provisioning.assign_workspace_roles(client, deployment)
