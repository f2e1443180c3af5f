"""
Composable SQL statements.

Query nodes render themselves as ``SQLStatement`` fragments built from
their own fields plus their children's already-rendered statements.
Fragments concatenate with ``+`` (space separated) and wrap with
``block()``.

Example:
    >>> inner = SQLStatement('SELECT', '"a"', 'FROM', 't')
    >>> outer = SQLStatement('SELECT * FROM') + inner.block() + 'AS "SUBQUERY_0"'
    >>> str(outer)
    'SELECT * FROM ( SELECT "a" FROM t ) AS "SUBQUERY_0"'
"""

from typing import Iterable, List, Union

__all__ = ['SQLStatement']


class SQLStatement:
    """An immutable sequence of SQL text fragments."""

    def __init__(self, *parts: str):
        self._parts: List[str] = [p for p in parts if p]

    @property
    def parts(self) -> List[str]:
        return list(self._parts)

    def __add__(self, other: Union['SQLStatement', str]) -> 'SQLStatement':
        if isinstance(other, SQLStatement):
            return SQLStatement(*self._parts, *other._parts)
        if isinstance(other, str):
            return SQLStatement(*self._parts, other)
        return NotImplemented

    def __radd__(self, other: str) -> 'SQLStatement':
        if isinstance(other, str):
            return SQLStatement(other, *self._parts)
        return NotImplemented

    def block(self) -> 'SQLStatement':
        """Wrap in parentheses, e.g. for use as a subquery."""
        return SQLStatement('(', *self._parts, ')')

    @staticmethod
    def join(statements: Iterable['SQLStatement'], separator: str) -> 'SQLStatement':
        """Concatenate statements with a separator keyword between them."""
        result = SQLStatement()
        for i, stmt in enumerate(statements):
            if i:
                result = result + separator
            result = result + stmt
        return result

    def is_empty(self) -> bool:
        return not self._parts

    def to_sql(self) -> str:
        return ' '.join(self._parts)

    def __str__(self) -> str:
        return self.to_sql()

    def __repr__(self) -> str:
        return f"SQLStatement({self.to_sql()!r})"

    def __eq__(self, other) -> bool:
        if isinstance(other, SQLStatement):
            return self._parts == other._parts
        return NotImplemented

    def __hash__(self) -> int:
        return hash(tuple(self._parts))
