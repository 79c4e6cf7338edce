"""
Security suite - checks that the wall between the provider and consumer
workspaces holds at the workspace and OneLake layers.

Overlap and placement checks are derived from two role-assignment listings,
so they only run when both listings were readable.
"""
from typing import Optional

from fabricwall.services.checks.context import CheckContext
from fabricwall.services.fabric_client import principal_ids
from fabricwall.services.recorder import CheckOutcome, CheckRecorder, run_check


def principal_overlap(provider_ids: set[str], consumer_ids: set[str]) -> list[str]:
    """Principals holding a role in both workspaces, sorted."""
    return sorted(set(provider_ids) & set(consumer_ids))


def check_role_assignments(ctx: CheckContext, recorder: CheckRecorder, label: str, workspace_id: str) -> Optional[set[str]]:
    """Record whether the role assignments are readable; return the principal ids."""
    found: dict[str, set[str]] = {}

    def probe() -> CheckOutcome:
        assignments = ctx.api().list_role_assignments(workspace_id)
        found["ids"] = principal_ids(assignments)
        roles = sorted({a.get("role", "?") for a in assignments})
        return CheckOutcome(
            True,
            f"{label}: {len(assignments)} role assignment(s) ({', '.join(roles) or 'none'})",
        )

    result = run_check(
        recorder, "Workspace Role Assignments", "Isolation", probe,
        recommendation="Grant the caller Admin on the workspace so role assignments can be audited",
    )
    return found.get("ids") if result.passed else None


def check_principal_overlap(recorder: CheckRecorder, provider_ids: set[str], consumer_ids: set[str]) -> None:
    def probe() -> CheckOutcome:
        overlap = principal_overlap(provider_ids, consumer_ids)
        if overlap:
            return CheckOutcome(False, f"{len(overlap)} principal(s) in both workspaces: {', '.join(overlap)}")
        return CheckOutcome(True, "No principal holds roles in both workspaces")

    run_check(
        recorder, "Cross-Workspace Principal Overlap", "Isolation", probe,
        risk="A principal with roles on both sides can move data across the wall",
        recommendation="Remove the overlapping principals from one of the workspaces",
    )


def check_group_placement(
    ctx: CheckContext,
    recorder: CheckRecorder,
    provider_ids: set[str],
    consumer_ids: set[str],
) -> None:
    entity_a = ctx.deployment.entity_a_groups()
    entity_b = ctx.deployment.entity_b_groups()
    if not entity_a and not entity_b:
        return

    def probe() -> CheckOutcome:
        problems = []
        for key, gid in entity_a.items():
            if gid not in provider_ids:
                problems.append(f"{key} missing from provider")
            if gid in consumer_ids:
                problems.append(f"{key} present in consumer")
        for key, gid in entity_b.items():
            if gid not in consumer_ids:
                problems.append(f"{key} missing from consumer")
            if gid in provider_ids:
                problems.append(f"{key} present in provider")
        if problems:
            return CheckOutcome(False, "; ".join(problems))
        return CheckOutcome(True, f"{len(entity_a)} Entity A and {len(entity_b)} Entity B group(s) correctly placed")

    run_check(
        recorder, "Entity Group Placement", "Isolation", probe,
        risk="Entity groups assigned to the wrong side of the wall",
        recommendation="Re-run 'fabricwall provision roles' and remove misplaced assignments",
    )


def _grants_read(role: dict, path: str) -> bool:
    for rule in role.get("decisionRules", []):
        if rule.get("effect", "Permit") != "Permit":
            continue
        attrs = {p.get("attributeName"): p.get("attributeValueIncludedIn", []) for p in rule.get("permission", [])}
        paths = attrs.get("Path", [])
        if ("Read" in attrs.get("Action", [])) and (path in paths or "*" in paths):
            return True
    return False


def _role_members(role: dict) -> set[str]:
    members = (role.get("members") or {}).get("microsoftEntraMembers", [])
    return {m.get("objectId") for m in members if m.get("objectId")}


def check_onelake_roles(ctx: CheckContext, recorder: CheckRecorder) -> None:
    d = ctx.deployment
    if not (d.provider_workspace_id and d.provider_item_id):
        return

    def probe() -> CheckOutcome:
        roles = ctx.api().list_data_access_roles(d.provider_workspace_id, d.provider_item_id)
        if not roles:
            return CheckOutcome(False, "Provider item has no OneLake data access roles")

        if d.entity_b_marketdata_readers:
            granting = [
                r.get("name", "?") for r in roles
                if _grants_read(r, d.shared_table_path) and d.entity_b_marketdata_readers in _role_members(r)
            ]
            if not granting:
                return CheckOutcome(
                    False,
                    f"No role grants Read on {d.shared_table_path} to the MarketData readers group",
                )
            return CheckOutcome(True, f"Read on {d.shared_table_path} granted via {', '.join(granting)}")

        return CheckOutcome(True, f"{len(roles)} data access role(s): {', '.join(r.get('name', '?') for r in roles)}")

    run_check(
        recorder, "OneLake Security Roles", "Data Access", probe,
        risk="Consumer access to provider data is not scoped to the shared table",
        recommendation="Run 'fabricwall provision onelake-security'",
    )


def check_shortcut(ctx: CheckContext, recorder: CheckRecorder) -> None:
    d = ctx.deployment
    if not (d.consumer_workspace_id and d.consumer_item_id):
        return

    def probe() -> CheckOutcome:
        shortcuts = ctx.api().list_shortcuts(d.consumer_workspace_id, d.consumer_item_id)
        match = next((s for s in shortcuts if s.get("name") == d.shortcut_name), None)
        if match is None:
            return CheckOutcome(False, f"Shortcut '{d.shortcut_name}' not found in consumer item")

        target = (match.get("target") or {}).get("oneLake") or {}
        if d.provider_workspace_id and target.get("workspaceId") != d.provider_workspace_id:
            return CheckOutcome(False, f"Shortcut targets workspace {target.get('workspaceId')}, not the provider")
        if d.provider_item_id and target.get("itemId") != d.provider_item_id:
            return CheckOutcome(False, f"Shortcut targets item {target.get('itemId')}, not the provider item")
        return CheckOutcome(True, f"'{d.shortcut_name}' -> {target.get('path', '?')}")

    run_check(
        recorder, "Cross-Workspace Shortcut", "Data Access", probe,
        recommendation="Run 'fabricwall provision shortcut'",
    )


def run_security_suite(ctx: CheckContext, recorder: CheckRecorder) -> None:
    d = ctx.deployment
    provider_ids = check_role_assignments(ctx, recorder, "Provider", d.provider_workspace_id)
    consumer_ids = check_role_assignments(ctx, recorder, "Consumer", d.consumer_workspace_id)

    if provider_ids is not None and consumer_ids is not None:
        check_principal_overlap(recorder, provider_ids, consumer_ids)
        check_group_placement(ctx, recorder, provider_ids, consumer_ids)

    check_onelake_roles(ctx, recorder)
    check_shortcut(ctx, recorder)
