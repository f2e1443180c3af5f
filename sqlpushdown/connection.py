"""
chDB session used to run pushed-down statements.

Every statement goes through ``Connection.execute()`` so that pushdown
queries are logged the same way and chDB failures surface as
``ExecutionError`` carrying the offending SQL.
"""

import time
from typing import Optional

import pandas as pd

from .config import get_logger
from .exceptions import ConnectionError, ExecutionError

__all__ = ['Connection', 'get_default_connection']

_RULE = "=" * 70


class Connection:
    """
    Lazily opened chDB session.

    Args:
        database: ":memory:" or a path to a chDB database directory
        **kwargs: Passed through to ``chdb.connect``

    Example:
        >>> with Connection() as conn:
        ...     df = conn.execute('SELECT number FROM numbers(3)')
    """

    def __init__(self, database: str = ":memory:", **kwargs):
        self.database = database
        self.connect_kwargs = kwargs
        self._conn = None
        self._logger = get_logger()

    @property
    def is_connected(self) -> bool:
        return self._conn is not None

    def connect(self) -> 'Connection':
        import chdb

        try:
            self._conn = chdb.connect(self.database, **self.connect_kwargs)
        except Exception as e:
            raise ConnectionError(f"Failed to open chDB database {self.database!r}: {e}") from e
        self._logger.debug("[chDB] Opened database: %s", self.database)
        return self

    def execute(self, sql: str, output_format: str = "DataFrame") -> pd.DataFrame:
        """
        Run one statement, opening the session on first use.

        Raises:
            ExecutionError: chDB rejected or failed the statement
        """
        if self._conn is None:
            self.connect()

        self._trace_statement(sql)
        started = time.perf_counter()
        try:
            result = self._conn.query(sql, output_format)
        except Exception as e:
            self._logger.error("[chDB] Pushdown statement failed: %s", e)
            raise ExecutionError(f"Query execution failed: {e}\nSQL: {sql}") from e

        self._trace_result(result, (time.perf_counter() - started) * 1000)
        return result

    def _trace_statement(self, sql: str) -> None:
        self._logger.debug(_RULE)
        self._logger.debug("[chDB] Pushdown statement")
        for line in sql.splitlines():
            self._logger.debug("  %s", line)
        self._logger.debug(_RULE)

    def _trace_result(self, result, elapsed_ms: float) -> None:
        if isinstance(result, pd.DataFrame):
            shape = f"{len(result)} rows x {len(result.columns)} cols"
        else:
            shape = type(result).__name__
        self._logger.debug("[chDB] %s in %.2fms", shape, elapsed_ms)

    def close(self) -> None:
        if self._conn is None:
            return
        try:
            self._conn.close()
        except Exception as e:
            self._logger.debug("[chDB] Ignoring error on close: %s", e)
        finally:
            self._conn = None

    def __enter__(self) -> 'Connection':
        return self.connect()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __repr__(self) -> str:
        state = "connected" if self.is_connected else "closed"
        return f"Connection(database={self.database!r}, {state})"


_default_connection: Optional[Connection] = None


def get_default_connection() -> Connection:
    """Shared in-memory connection used by relations created without one."""
    global _default_connection
    if _default_connection is None:
        _default_connection = Connection()
    return _default_connection
