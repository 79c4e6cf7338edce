"""
Power BI suite - semantic model RLS and Build/Reshare permissions in the consumer workspace.
"""

from fabricwall.services.checks.context import CheckContext
from fabricwall.services.recorder import CheckOutcome, CheckRecorder, run_check


def excess_permissions(users: list[dict], allowed: set[str]) -> list[str]:
    """Non-owner principals outside the allow-list holding Build or Reshare."""
    flagged = []
    for user in users:
        principal = user.get("identifier") or user.get("emailAddress") or user.get("graphId")
        if not principal or principal in allowed:
            continue
        rights = user.get("datasetUserAccessRight", "")
        # Write implies owner-level access; Explore is the Build right
        if "Write" in rights:
            continue
        if "Reshare" in rights or "Explore" in rights:
            flagged.append(f"{principal} ({rights})")
    return flagged


def run_powerbi_suite(ctx: CheckContext, recorder: CheckRecorder) -> None:
    group_id = ctx.deployment.consumer_workspace_id
    allowed = ctx.deployment.allowed_powerbi_principals()
    found: dict[str, list] = {}

    def listing() -> CheckOutcome:
        datasets = ctx.api().list_datasets(group_id)
        found["datasets"] = datasets
        return CheckOutcome(True, f"{len(datasets)} semantic model(s) in consumer workspace")

    result = run_check(
        recorder, "Semantic Models Listed", "BI Access", listing,
        recommendation="Grant the token Dataset.Read.All and a role on the consumer workspace",
    )
    if not result.passed:
        return

    for dataset in found["datasets"]:
        name = dataset.get("name", dataset.get("id"))
        dataset_id = dataset.get("id")

        def rls(dataset=dataset, name=name) -> CheckOutcome:
            enabled = bool(dataset.get("isEffectiveIdentityRequired"))
            return CheckOutcome(enabled, f"'{name}' RLS {'enforced' if enabled else 'not configured'}")

        run_check(
            recorder, "Dataset RLS", "BI Access", rls,
            risk=f"Every reader of '{name}' sees all rows",
            recommendation="Define RLS roles on the semantic model and map the entity groups",
        )

        def sharing(dataset_id=dataset_id, name=name) -> CheckOutcome:
            users = ctx.api().list_dataset_users(group_id, dataset_id)
            flagged = excess_permissions(users, allowed)
            if flagged:
                return CheckOutcome(False, f"'{name}': {', '.join(flagged)}")
            return CheckOutcome(True, f"'{name}': {len(users)} principal(s), no Build/Reshare outside owners")

        run_check(
            recorder, "Build/Reshare Restricted", "BI Access", sharing,
            risk=f"Holders of Build/Reshare on '{name}' can re-expose data outside the wall",
            recommendation="Remove Build and Reshare from non-owner principals",
        )
