"""
SQL Probe - Scalar catalog queries against the warehouse / lakehouse SQL endpoint.
"""
from typing import Any, Callable, Optional

from fabricwall.exceptions import SqlProbeError
from fabricwall.logger import logger


def _pyodbc_connect(connection_string: str, timeout: int):
    # Imported lazily so the REST-only commands work without an ODBC driver manager
    import pyodbc

    return pyodbc.connect(connection_string, timeout=timeout)


class SqlProbe:
    """Runs read-only scalar queries over a DB-API connection."""

    def __init__(
        self,
        connection_string: str,
        timeout: int = 30,
        connect: Optional[Callable[[str, int], Any]] = None,
    ):
        self.connection_string = connection_string
        self.timeout = timeout
        self._connect = connect or _pyodbc_connect
        self._conn = None

    def _connection(self):
        if self._conn is None:
            try:
                self._conn = self._connect(self.connection_string, self.timeout)
            except Exception as e:
                raise SqlProbeError(f"Cannot connect to SQL endpoint: {e}") from e
            logger.debug("SQL connection opened")
        return self._conn

    def scalar(self, query: str, params: tuple = ()) -> Any:
        """Execute a query and return the first column of the first row (None if no rows)."""
        conn = self._connection()
        logger.debug(f"SQL: {query.strip()}")
        try:
            cursor = conn.cursor()
            try:
                cursor.execute(query, *params)
                row = cursor.fetchone()
            finally:
                cursor.close()
        except Exception as e:
            raise SqlProbeError(f"Query failed: {e}") from e
        return row[0] if row else None

    def execute(self, statement: str, params: tuple = ()) -> None:
        """Execute a statement with no result set (e.g. setting session context)."""
        conn = self._connection()
        logger.debug(f"SQL: {statement.strip()}")
        try:
            cursor = conn.cursor()
            try:
                cursor.execute(statement, *params)
            finally:
                cursor.close()
        except Exception as e:
            raise SqlProbeError(f"Statement failed: {e}") from e

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
