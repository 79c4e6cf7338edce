"""
Fabric POC suite - identity, connectivity and workspace reachability.
"""

from fabricwall.services.checks.context import CheckContext
from fabricwall.services.recorder import CheckOutcome, CheckRecorder, run_check
from fabricwall.services.token_provider import decode_claims, seconds_until_expiry


def check_access_token(ctx: CheckContext, recorder: CheckRecorder) -> None:
    def probe() -> CheckOutcome:
        if not ctx.token:
            return CheckOutcome(False, "ACCESS_TOKEN environment variable is not set")

        claims = decode_claims(ctx.token)
        if claims is None:
            return CheckOutcome(True, "Token present (opaque, expiry not checked)")

        remaining = seconds_until_expiry(claims)
        audience = claims.get("aud", "unknown")
        if remaining is not None and remaining <= 0:
            return CheckOutcome(False, f"Token expired {-remaining}s ago (aud={audience})")
        if remaining is None:
            return CheckOutcome(True, f"Token present (aud={audience})")
        return CheckOutcome(True, f"Token valid for {remaining // 60} more minutes (aud={audience})")

    run_check(
        recorder, "Access Token", "Identity", probe,
        risk="No checks against the platform can run",
        recommendation="Run 'az login' and export ACCESS_TOKEN, or use 'fabricwall setup --run'",
    )


def check_api_reachability(ctx: CheckContext, recorder: CheckRecorder) -> None:
    def probe() -> CheckOutcome:
        workspaces = ctx.api().list_workspaces(timeout=ctx.probe_timeout)
        return CheckOutcome(True, f"Fabric API reachable; {len(workspaces)} workspace(s) visible")

    run_check(
        recorder, "API Reachability", "Connectivity", probe,
        recommendation="Check network egress to api.fabric.microsoft.com and the token audience",
    )


def check_workspace_access(ctx: CheckContext, recorder: CheckRecorder, label: str, workspace_id: str) -> bool:
    """Record one Workspace Access result; True when the workspace was readable."""
    def probe() -> CheckOutcome:
        workspace = ctx.api().get_workspace(workspace_id)
        ctx.workspaces[workspace_id] = workspace or {}
        name = (workspace or {}).get("displayName", workspace_id)
        return CheckOutcome(True, f"{label} workspace '{name}' ({workspace_id}) is accessible")

    result = run_check(
        recorder, "Workspace Access", "Isolation", probe,
        recommendation=f"Verify the {label.lower()} workspace id and that the caller is a member",
    )
    return result.passed


def check_workspace_items(ctx: CheckContext, recorder: CheckRecorder, label: str, workspace_id: str, item_id) -> None:
    def probe() -> CheckOutcome:
        items = ctx.api().list_items(workspace_id)
        ids = {i.get("id") for i in items}
        if item_id and item_id not in ids:
            return CheckOutcome(False, f"Item {item_id} not found among {len(items)} item(s) in {label.lower()} workspace")

        kinds: dict[str, int] = {}
        for item in items:
            kinds[item.get("type", "Unknown")] = kinds.get(item.get("type", "Unknown"), 0) + 1
        summary = ", ".join(f"{k}={v}" for k, v in sorted(kinds.items())) or "empty"
        return CheckOutcome(True, f"{label} workspace items: {summary}")

    run_check(
        recorder, "Workspace Items", "Data Access", probe,
        recommendation=f"Create the {label.lower()} lakehouse/warehouse or fix the configured item id",
    )


def run_fabric_poc_suite(ctx: CheckContext, recorder: CheckRecorder) -> None:
    check_access_token(ctx, recorder)
    check_api_reachability(ctx, recorder)

    for label, workspace_id, item_id in ctx.configured_workspaces():
        if check_workspace_access(ctx, recorder, label, workspace_id):
            check_workspace_items(ctx, recorder, label, workspace_id, item_id)
