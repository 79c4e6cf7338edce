from conftest import CONSUMER_ITEM, CONSUMER_WS, FABRIC, PROVIDER_ITEM, PROVIDER_WS
from fabricwall.services.checks.security import check_principal_overlap, principal_overlap, run_security_suite


def _assignments(*ids):
    return {"value": [{"id": i, "principal": {"id": i, "type": "Group"}, "role": "Member"} for i in ids]}


def _reader_role(members, path="Tables/MarketData"):
    return {
        "name": "EntityBMarketDataReaders",
        "decisionRules": [{
            "effect": "Permit",
            "permission": [
                {"attributeName": "Path", "attributeValueIncludedIn": [path]},
                {"attributeName": "Action", "attributeValueIncludedIn": ["Read"]},
            ],
        }],
        "members": {"microsoftEntraMembers": [{"tenantId": "tenant-1", "objectId": m} for m in members]},
    }


def _shortcut(workspace_id=PROVIDER_WS, item_id=PROVIDER_ITEM):
    return {
        "name": "MarketDataShortcut",
        "path": "Tables",
        "target": {"oneLake": {"workspaceId": workspace_id, "itemId": item_id, "path": "Tables/MarketData"}},
    }


def _wire(api, provider_ids, consumer_ids, roles=None, shortcuts=None):
    api.add("GET", f"{FABRIC}/workspaces/{PROVIDER_WS}/roleAssignments", body=_assignments(*provider_ids))
    api.add("GET", f"{FABRIC}/workspaces/{CONSUMER_WS}/roleAssignments", body=_assignments(*consumer_ids))
    api.add("GET", f"{FABRIC}/workspaces/{PROVIDER_WS}/items/{PROVIDER_ITEM}/dataAccessRoles",
            body={"value": roles if roles is not None else [_reader_role(["gb-readers"])]})
    api.add("GET", f"{FABRIC}/workspaces/{CONSUMER_WS}/items/{CONSUMER_ITEM}/shortcuts",
            body={"value": shortcuts if shortcuts is not None else [_shortcut()]})


PROVIDER_GROUPS = ["ga-admins", "ga-engineers", "ga-analysts"]
CONSUMER_GROUPS = ["gb-admins", "gb-engineers", "gb-analysts"]


def test_principal_overlap_finds_intersection() -> None:
    assert principal_overlap({"A", "B", "C"}, {"B", "D"}) == ["B"]
    assert principal_overlap({"A", "C"}, {"B", "D"}) == []


def test_overlap_check_fails_with_shared_principal(recorder, result_set) -> None:
    check_principal_overlap(recorder, {"A", "B", "C"}, {"B", "D"})

    result = result_set.results[0]
    assert result.passed is False
    assert result.details.endswith(": B")
    assert result.risk


def test_overlap_check_passes_when_disjoint(recorder, result_set) -> None:
    check_principal_overlap(recorder, {"A", "C"}, {"B", "D"})

    result = result_set.results[0]
    assert result.passed is True
    assert result.risk is None


def test_security_suite_passes_on_clean_wall(api, ctx, recorder, result_set) -> None:
    _wire(api, PROVIDER_GROUPS, CONSUMER_GROUPS)

    run_security_suite(ctx, recorder)

    assert result_set.failed_count == 0
    assert [r.name for r in result_set.results] == [
        "Workspace Role Assignments",
        "Workspace Role Assignments",
        "Cross-Workspace Principal Overlap",
        "Entity Group Placement",
        "OneLake Security Roles",
        "Cross-Workspace Shortcut",
    ]


def test_misplaced_group_fails_placement_and_overlap(api, ctx, recorder, result_set) -> None:
    _wire(api, PROVIDER_GROUPS + ["gb-analysts"], CONSUMER_GROUPS)

    run_security_suite(ctx, recorder)

    failed = {r.name: r for r in result_set.failures()}
    assert set(failed) == {"Cross-Workspace Principal Overlap", "Entity Group Placement"}
    assert "gb-analysts" in failed["Cross-Workspace Principal Overlap"].details
    assert "entity_b_analysts present in provider" in failed["Entity Group Placement"].details


def test_unreadable_assignments_skip_derived_checks(api, ctx, recorder, result_set) -> None:
    _wire(api, PROVIDER_GROUPS, CONSUMER_GROUPS)
    api.add("GET", f"{FABRIC}/workspaces/{CONSUMER_WS}/roleAssignments", status=403,
            body={"errorCode": "InsufficientPrivileges", "message": "denied"})

    run_security_suite(ctx, recorder)

    names = [r.name for r in result_set.results]
    assert "Cross-Workspace Principal Overlap" not in names
    denied = result_set.failures()[0]
    assert denied.details.startswith("Access denied")


def test_onelake_role_without_readers_group_fails(api, ctx, recorder, result_set) -> None:
    _wire(api, PROVIDER_GROUPS, CONSUMER_GROUPS, roles=[_reader_role(["someone-else"])])

    run_security_suite(ctx, recorder)

    failed = [r.name for r in result_set.failures()]
    assert failed == ["OneLake Security Roles"]


def test_no_onelake_roles_fails(api, ctx, recorder, result_set) -> None:
    _wire(api, PROVIDER_GROUPS, CONSUMER_GROUPS, roles=[])

    run_security_suite(ctx, recorder)

    assert [r.name for r in result_set.failures()] == ["OneLake Security Roles"]


def test_shortcut_pointing_elsewhere_fails(api, ctx, recorder, result_set) -> None:
    _wire(api, PROVIDER_GROUPS, CONSUMER_GROUPS, shortcuts=[_shortcut(workspace_id="rogue-ws")])

    run_security_suite(ctx, recorder)

    failure = result_set.failures()[0]
    assert failure.name == "Cross-Workspace Shortcut"
    assert "rogue-ws" in failure.details


def test_missing_shortcut_fails(api, ctx, recorder, result_set) -> None:
    _wire(api, PROVIDER_GROUPS, CONSUMER_GROUPS, shortcuts=[])

    run_security_suite(ctx, recorder)

    assert [r.name for r in result_set.failures()] == ["Cross-Workspace Shortcut"]
