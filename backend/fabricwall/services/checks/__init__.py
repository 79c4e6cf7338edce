"""
Check suites, in the order a full validation runs them.
"""
from fabricwall.services.checks.context import CheckContext
from fabricwall.services.checks.fabric_poc import run_fabric_poc_suite
from fabricwall.services.checks.powerbi import run_powerbi_suite
from fabricwall.services.checks.security import run_security_suite
from fabricwall.services.checks.sql import run_sql_suite

SUITES = {
    "fabric-poc": run_fabric_poc_suite,
    "security": run_security_suite,
    "sql": run_sql_suite,
    "powerbi": run_powerbi_suite,
}

__all__ = ["CheckContext", "SUITES"]
