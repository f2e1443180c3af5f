"""
Remote relations: the external tables a plan can push work down to.

``RemoteRelation`` is the tracked relation type. A ``Scan`` over an
instance of it becomes a ``SourceQuery``, and the compiled statement is
handed back to it via ``build_scan_from_sql()`` to obtain a lazy
``RemoteScan`` handle.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Hashable, Iterator, Optional, Tuple

import pandas as pd

from .config import get_logger
from .connection import Connection, get_default_connection
from .schema import Schema
from .statement import SQLStatement
from .utils import format_identifier

__all__ = ['RemoteRelation', 'ChdbRelation', 'RemoteScan']


class RemoteScan:
    """
    Lazy handle over a pushed-down statement.

    The statement is executed at most once, on the first call to
    ``to_df()`` / ``rows()``; the result is conformed to ``schema``.
    """

    def __init__(self, statement: SQLStatement, schema: Schema, executor: Callable[[str], pd.DataFrame]):
        self.statement = statement
        self.schema = schema
        self._executor = executor
        self._result: Optional[pd.DataFrame] = None
        self._logger = get_logger()

    @property
    def sql(self) -> str:
        return self.statement.to_sql()

    @property
    def is_executed(self) -> bool:
        return self._result is not None

    def to_df(self) -> pd.DataFrame:
        """Execute (once) and return the result as a DataFrame."""
        if self._result is None:
            self._logger.debug("[Pushdown] Executing scan: %s", self.sql)
            self._result = self.schema.apply_to(self._executor(self.sql))
        return self._result

    def rows(self) -> Iterator[Tuple[Any, ...]]:
        """Iterate result rows as plain tuples."""
        return self.to_df().itertuples(index=False, name=None)

    def __iter__(self) -> Iterator[Tuple[Any, ...]]:
        return self.rows()

    def __repr__(self) -> str:
        return f"RemoteScan({self.sql!r}, columns={self.schema.names})"


class RemoteRelation(ABC):
    """Base class for relations living in a SQL-capable remote store."""

    @abstractmethod
    def source_sql(self, quote_char: str = '"') -> str:
        """SQL FROM-item reading this relation (table name or table function)."""

    @property
    @abstractmethod
    def store_key(self) -> Hashable:
        """Identifies the store; one statement may only span relations with the same key."""

    @abstractmethod
    def execute(self, sql: str) -> pd.DataFrame:
        """Run a complete statement against the store."""

    def build_scan_from_sql(self, statement: SQLStatement, schema: Schema) -> RemoteScan:
        """Turn a composed statement into a lazy scan producing ``schema``."""
        return RemoteScan(statement, schema, self.execute)


class ChdbRelation(RemoteRelation):
    """
    A table or table function queried through chDB.

    Example:
        >>> ChdbRelation('numbers(10)')           # table function, used verbatim
        >>> ChdbRelation('db.events')             # table, rendered as "db"."events"
        >>> ChdbRelation("file('data.parquet')")  # any ClickHouse table function
    """

    def __init__(self, source: str, connection: Optional[Connection] = None):
        self.source = source
        self._connection = connection

    @property
    def connection(self) -> Connection:
        if self._connection is None:
            self._connection = get_default_connection()
        return self._connection

    @property
    def is_table_function(self) -> bool:
        return '(' in self.source

    def source_sql(self, quote_char: str = '"') -> str:
        if self.is_table_function:
            return self.source
        return '.'.join(format_identifier(part, quote_char) for part in self.source.split('.'))

    @property
    def store_key(self) -> Hashable:
        # Each Connection is its own chDB session, even on the same database
        return ('chdb', id(self.connection))

    def execute(self, sql: str) -> pd.DataFrame:
        return self.connection.execute(sql)

    def __repr__(self) -> str:
        return f"ChdbRelation({self.source!r})"
