"""
SQL suite - row and column security observed through the SQL endpoint catalog.
"""

from fabricwall.exceptions import SqlProbeError
from fabricwall.services.checks.context import CheckContext
from fabricwall.services.recorder import CheckOutcome, CheckRecorder, run_check


ENABLED_POLICIES = "SELECT COUNT(*) FROM sys.security_policies WHERE is_enabled = 1"

FILTER_PREDICATES = """
SELECT COUNT(*)
FROM sys.security_predicates p
JOIN sys.objects o ON p.target_object_id = o.object_id
WHERE o.name = ? AND SCHEMA_NAME(o.schema_id) = ? AND p.predicate_type_desc = 'FILTER'
"""

MASKED_COLUMNS = """
SELECT COUNT(*)
FROM sys.masked_columns
WHERE OBJECT_NAME(object_id) = ? AND OBJECT_SCHEMA_NAME(object_id) = ?
"""

SET_ENTITY = "EXEC sp_set_session_context @key = N'EntityCode', @value = ?"


def quote_identifier(name: str) -> str:
    """Bracket-quote a T-SQL identifier, doubling any closing bracket."""
    return "[" + name.replace("]", "]]") + "]"


def _sql(ctx: CheckContext):
    if ctx.sql is None:
        raise SqlProbeError("No SQL connection string configured")
    return ctx.sql


def _count(value) -> int:
    return int(value or 0)


def run_sql_suite(ctx: CheckContext, recorder: CheckRecorder) -> None:
    d = ctx.deployment
    table = f"{d.sql_schema}.{d.sql_table}"

    def policy() -> CheckOutcome:
        n = _count(_sql(ctx).scalar(ENABLED_POLICIES))
        return CheckOutcome(n > 0, f"{n} enabled security polic{'y' if n == 1 else 'ies'}")

    run_check(
        recorder, "RLS Security Policy", "Row Security", policy,
        risk="Rows of both entities are visible to every reader",
        recommendation="Apply the RLS template from 'fabricwall sql-templates'",
    )

    def predicate() -> CheckOutcome:
        n = _count(_sql(ctx).scalar(FILTER_PREDICATES, (d.sql_table, d.sql_schema)))
        return CheckOutcome(n > 0, f"{n} filter predicate(s) on {table}")

    run_check(
        recorder, "RLS Filter Predicate", "Row Security", predicate,
        risk=f"{table} is not filtered by entity",
        recommendation=f"Add a FILTER PREDICATE on {table} to the security policy",
    )

    def masking() -> CheckOutcome:
        n = _count(_sql(ctx).scalar(MASKED_COLUMNS, (d.sql_table, d.sql_schema)))
        return CheckOutcome(n > 0, f"{n} masked column(s) on {table}")

    run_check(
        recorder, "Dynamic Data Masking", "Column Security", masking,
        risk="Sensitive columns are returned unmasked",
        recommendation="Apply the DDM template from 'fabricwall sql-templates'",
    )

    if not d.sql_entity_code:
        return

    def leakage() -> CheckOutcome:
        probe = _sql(ctx)
        probe.execute(SET_ENTITY, (d.sql_entity_code,))
        query = (
            f"SELECT COUNT(*) FROM {quote_identifier(d.sql_schema)}.{quote_identifier(d.sql_table)}"
            f" WHERE {quote_identifier(d.sql_entity_column)} <> ?"
        )
        n = _count(probe.scalar(query, (d.sql_entity_code,)))
        if n:
            return CheckOutcome(False, f"{n} row(s) of other entities visible as {d.sql_entity_code}")
        return CheckOutcome(True, f"Only {d.sql_entity_code} rows visible")

    run_check(
        recorder, "Cross-Entity Row Leakage", "Row Security", leakage,
        risk="Session context does not restrict rows to the caller's entity",
        recommendation="Verify the filter predicate function compares against SESSION_CONTEXT(N'EntityCode')",
    )
