"""
Query nodes: the SQL-shaped counterpart of relational plan nodes.

Each node owns its children, knows its output attributes and its
subquery alias, and renders itself into a ``SQLStatement``. A parent reads
a child as ``FROM (<child statement>) AS "<child alias>"`` and qualifies
every column it takes from that child with the child's alias.

Node overview:

    SourceQuery     SELECT <cols> FROM <relation>
    FilterQuery     ... WHERE <conditions>
    ProjectQuery    SELECT <expressions> ...
    AggregateQuery  SELECT <aggregates> ... GROUP BY <groups>
    SortLimitQuery  ... ORDER BY <order> LIMIT <n>
    WindowQuery     SELECT <child cols>, <f() OVER (...)> ...
    JoinQuery       ... <KIND> JOIN ... ON <condition>
    SemiJoinQuery   ... WHERE [NOT] EXISTS (SELECT * FROM <right> WHERE <condition>)
    UnionQuery      (<child>) UNION ALL (<child>) ...

Every node exposes its output under ``column_names``, positionally. A name
is kept as-is unless it occurs more than once in the node's output, in
which case the column is exposed as ``<alias>_COL_<i>``; parents read it
under that name. The result frame is renamed back to the attribute names
by ``Schema.apply_to``.

Nodes are never mutated after construction; rendered statements are
memoized per quote character.
"""

from abc import ABC, abstractmethod
from collections import Counter
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple, Type, TypeVar, TYPE_CHECKING

from .config import get_quote_char
from .enums import JoinType
from .expressions import AttributeReference, Expression, NamedExpression, SortOrder
from .plan import join_output
from .statement import SQLStatement
from .utils import format_alias, format_identifier, join_sql

if TYPE_CHECKING:
    from .context import AliasAllocator
    from .relation import RemoteRelation

__all__ = [
    'BaseQuery',
    'SourceQuery',
    'FilterQuery',
    'ProjectQuery',
    'AggregateQuery',
    'SortLimitQuery',
    'WindowQuery',
    'JoinQuery',
    'SemiJoinQuery',
    'UnionQuery',
]

Q = TypeVar('Q', bound='BaseQuery')


class BaseQuery(ABC):
    """
    Base class for query nodes.

    Attributes:
        alias: Unique subquery alias assigned during compilation
        children: Child query nodes, owned exclusively by this node
        output: Ordered output attributes
        column_names: Column name each output attribute is exposed under
    """

    def __init__(self, alias: str, children: Sequence['BaseQuery'], output: Sequence[AttributeReference]):
        self.alias = alias
        self.children: Tuple['BaseQuery', ...] = tuple(children)
        self.output: List[AttributeReference] = list(output)
        self.column_names: List[str] = self._name_columns()
        self._statements: Dict[str, SQLStatement] = {}

    def _name_columns(self) -> List[str]:
        counts = Counter(attr.name for attr in self.output)
        return [
            attr.name if counts[attr.name] == 1 else f"{self.alias}_COL_{i}"
            for i, attr in enumerate(self.output)
        ]

    @property
    def column_map(self) -> Dict[int, str]:
        """Map each output attribute's expr_id to its exposed column name."""
        return {attr.expr_id: name for attr, name in zip(self.output, self.column_names)}

    @abstractmethod
    def _build_statement(self, quote_char: str) -> SQLStatement:
        """Render this node given its fields and its children's statements."""

    def get_statement(self, quote_char: Optional[str] = None) -> SQLStatement:
        """Return this node's SQL statement (rendered once per quote character)."""
        quote_char = quote_char or get_quote_char()
        statement = self._statements.get(quote_char)
        if statement is None:
            statement = self._build_statement(quote_char)
            self._statements[quote_char] = statement
        return statement

    # ========== Tree traversal ==========

    def nodes(self) -> Iterator['BaseQuery']:
        """Iterate this subtree pre-order (parent first, then children left to right)."""
        yield self
        for child in self.children:
            yield from child.nodes()

    def find(self, query_type: Type[Q]) -> List[Q]:
        """Find all nodes of a specific type in this subtree."""
        return [node for node in self.nodes() if isinstance(node, query_type)]

    def describe(self) -> str:
        return f"{type(self).__name__} {self.alias}"

    def tree_string(self) -> str:
        lines = []
        for depth, node in self._walk(0):
            lines.append('  ' * depth + node.describe())
        return '\n'.join(lines)

    def _walk(self, depth: int):
        yield depth, self
        for child in self.children:
            yield from child._walk(depth + 1)

    def __repr__(self) -> str:
        return f"<{self.describe()}>"

    # ========== Rendering helpers ==========

    @staticmethod
    def scope(*children: 'BaseQuery') -> Dict[str, Any]:
        """
        Rendering kwargs for expressions over ``children``: each attribute a
        child produces is qualified with that child's alias and read under
        the child's exposed column name.
        """
        qualifiers, columns = {}, {}
        for child in children:
            for attr in child.output:
                qualifiers[attr.expr_id] = child.alias
            columns.update(child.column_map)
        return {'qualifiers': qualifiers, 'columns': columns}

    @staticmethod
    def subquery(child: 'BaseQuery', quote_char: str, alias: Optional[str] = None) -> SQLStatement:
        """``(<child statement>) AS "<alias>"``"""
        return child.get_statement(quote_char).block() + f"AS {format_identifier(alias or child.alias, quote_char)}"

    @staticmethod
    def render_list(expressions: Sequence[Expression], quote_char: str, scope: Dict[str, Any]) -> str:
        return join_sql(e.to_sql(quote_char=quote_char, **scope) for e in expressions)

    def select_list(self, expressions: Sequence[Expression], quote_char: str, scope: Dict[str, Any]) -> str:
        """Render ``expressions`` as this node's SELECT list, named by ``column_names``."""
        rendered = []
        for i, expr in enumerate(expressions):
            sql = expr.to_sql(quote_char=quote_char, **scope)
            name = self.column_names[i] if i < len(self.column_names) else getattr(expr, 'name', None)
            if name is not None and sql != format_identifier(name, quote_char):
                sql = format_alias(sql, name, quote_char)
            rendered.append(sql)
        return join_sql(rendered)


class SourceQuery(BaseQuery):
    """
    Leaf query reading a remote relation.

    Example:
        SourceQuery(relation, [a, b], 'SUBQUERY_0')
        -> SELECT "a", "b" FROM "events"
    """

    def __init__(self, relation: 'RemoteRelation', output: Sequence[AttributeReference], alias: str):
        super().__init__(alias, [], output)
        self.relation = relation

    def _build_statement(self, quote_char: str) -> SQLStatement:
        columns = self.select_list(self.output, quote_char, {}) or '*'
        return SQLStatement('SELECT', columns, 'FROM', self.relation.source_sql(quote_char))

    def describe(self) -> str:
        return f"SourceQuery {self.alias} {self.relation!r}"


class FilterQuery(BaseQuery):
    """WHERE over a child; conditions are combined with AND."""

    def __init__(self, conditions: Sequence[Expression], child: BaseQuery, alias: str):
        super().__init__(alias, [child], child.output)
        self.conditions = list(conditions)
        self.child = child

    def _build_statement(self, quote_char: str) -> SQLStatement:
        scope = self.scope(self.child)
        columns = self.select_list(self.child.output, quote_char, scope) or '*'
        statement = SQLStatement('SELECT', columns, 'FROM') + self.subquery(self.child, quote_char)
        if self.conditions:
            rendered = [c.to_sql(quote_char=quote_char, **scope) for c in self.conditions]
            if len(rendered) > 1:
                rendered = [f"({r})" for r in rendered]
            statement = statement + 'WHERE' + ' AND '.join(rendered)
        return statement


class ProjectQuery(BaseQuery):
    """SELECT list over a child."""

    def __init__(self, columns: Sequence[NamedExpression], child: BaseQuery, alias: str):
        super().__init__(alias, [child], [c.to_attribute() for c in columns])
        self.columns = list(columns)
        self.child = child

    def _build_statement(self, quote_char: str) -> SQLStatement:
        scope = self.scope(self.child)
        columns = self.select_list(self.columns, quote_char, scope) or '*'
        return SQLStatement('SELECT', columns, 'FROM') + self.subquery(self.child, quote_char)


class AggregateQuery(BaseQuery):
    """Aggregates grouped by ``groups`` (no GROUP BY clause when empty)."""

    def __init__(self, columns: Sequence[NamedExpression], groups: Sequence[Expression], child: BaseQuery, alias: str):
        super().__init__(alias, [child], [c.to_attribute() for c in columns])
        self.columns = list(columns)
        self.groups = list(groups)
        self.child = child

    def _build_statement(self, quote_char: str) -> SQLStatement:
        scope = self.scope(self.child)
        columns = self.select_list(self.columns, quote_char, scope) or '*'
        statement = SQLStatement('SELECT', columns, 'FROM') + self.subquery(self.child, quote_char)
        if self.groups:
            statement = statement + 'GROUP BY' + self.render_list(self.groups, quote_char, scope)
        return statement


class SortLimitQuery(BaseQuery):
    """
    ORDER BY and/or LIMIT over a child.

    Either part may be absent: ``limit=None`` is a pure sort, an empty
    ``order`` is a pure limit.
    """

    def __init__(self, limit: Optional[Expression], order: Sequence[SortOrder], child: BaseQuery, alias: str):
        super().__init__(alias, [child], child.output)
        self.limit = limit
        self.order = list(order)
        self.child = child

    def _build_statement(self, quote_char: str) -> SQLStatement:
        scope = self.scope(self.child)
        columns = self.select_list(self.child.output, quote_char, scope) or '*'
        statement = SQLStatement('SELECT', columns, 'FROM') + self.subquery(self.child, quote_char)
        if self.order:
            statement = statement + 'ORDER BY' + self.render_list(self.order, quote_char, scope)
        if self.limit is not None:
            statement = statement + 'LIMIT' + self.limit.to_sql(quote_char=quote_char, **scope)
        return statement

    def describe(self) -> str:
        limit = self.limit.to_sql() if self.limit is not None else None
        return f"SortLimitQuery {self.alias} limit={limit} order={len(self.order)}"


class WindowQuery(BaseQuery):
    """
    Child columns plus one column per window expression.

    ``output`` is the declared output of the plan node when it has one,
    otherwise it is derived from the child and the window expressions.
    """

    def __init__(
        self,
        window_expressions: Sequence[NamedExpression],
        child: BaseQuery,
        alias: str,
        output: Optional[Sequence[AttributeReference]] = None,
    ):
        window_expressions = list(window_expressions)
        if output is None:
            output = child.output + [w.to_attribute() for w in window_expressions]
        super().__init__(alias, [child], output)
        self.window_expressions = window_expressions
        self.child = child

    def _build_statement(self, quote_char: str) -> SQLStatement:
        scope = self.scope(self.child)
        columns = self.select_list(self.child.output + self.window_expressions, quote_char, scope)
        return SQLStatement('SELECT', columns or '*', 'FROM') + self.subquery(self.child, quote_char)


class JoinQuery(BaseQuery):
    """Inner or outer join of two children."""

    def __init__(
        self,
        left: BaseQuery,
        right: BaseQuery,
        condition: Optional[Expression],
        join_type: JoinType,
        alias: str,
    ):
        super().__init__(alias, [left, right], join_output(join_type, left.output, right.output))
        self.left = left
        self.right = right
        self.condition = condition
        self.join_type = join_type

    def _build_statement(self, quote_char: str) -> SQLStatement:
        scope = self.scope(self.left, self.right)
        columns = self.select_list(self.left.output + self.right.output, quote_char, scope) or '*'
        statement = SQLStatement('SELECT', columns, 'FROM') + self.subquery(self.left, quote_char)

        if self.condition is None and self.join_type == JoinType.inner:
            return statement + 'CROSS JOIN' + self.subquery(self.right, quote_char)

        statement = statement + f"{self.join_type.value} JOIN" + self.subquery(self.right, quote_char)
        if self.condition is None:
            return statement + 'ON 1 = 1'
        return statement + 'ON' + self.condition.to_sql(quote_char=quote_char, **scope)

    def describe(self) -> str:
        return f"JoinQuery {self.alias} {self.join_type.name}"


class SemiJoinQuery(BaseQuery):
    """
    Left rows that have (semi) or lack (anti) a matching right row.

    Draws two aliases from ``alias_source``: its own, then the one naming the
    right side inside the correlated EXISTS subquery.
    """

    def __init__(
        self,
        left: BaseQuery,
        right: BaseQuery,
        condition: Optional[Expression],
        is_anti: bool,
        alias_source: 'AliasAllocator',
    ):
        super().__init__(alias_source.next(), [left, right], left.output)
        self.inner_alias = alias_source.next()
        self.left = left
        self.right = right
        self.condition = condition
        self.is_anti = is_anti

    def _build_statement(self, quote_char: str) -> SQLStatement:
        scope = self.scope(self.left, self.right)
        for attr in self.right.output:
            scope['qualifiers'][attr.expr_id] = self.inner_alias
        columns = self.select_list(self.left.output, quote_char, scope) or '*'

        exists = SQLStatement('SELECT * FROM') + self.subquery(self.right, quote_char, alias=self.inner_alias)
        if self.condition is not None:
            exists = exists + 'WHERE' + self.condition.to_sql(quote_char=quote_char, **scope)

        keyword = 'NOT EXISTS' if self.is_anti else 'EXISTS'
        return (
            SQLStatement('SELECT', columns, 'FROM')
            + self.subquery(self.left, quote_char)
            + 'WHERE'
            + keyword
            + exists.block()
        )

    def describe(self) -> str:
        kind = 'anti' if self.is_anti else 'semi'
        return f"SemiJoinQuery {self.alias} {kind}"


class UnionQuery(BaseQuery):
    """UNION ALL of its children, in order."""

    def __init__(
        self,
        children: Sequence[BaseQuery],
        alias: str,
        output: Optional[Sequence[AttributeReference]] = None,
    ):
        children = list(children)
        if output is None:
            output = children[0].output if children else []
        super().__init__(alias, children, output)

    def _name_columns(self) -> List[str]:
        # UNION ALL takes its column names from the first branch
        if not self.children:
            return super()._name_columns()
        return list(self.children[0].column_names)

    def _build_statement(self, quote_char: str) -> SQLStatement:
        return SQLStatement.join((c.get_statement(quote_char).block() for c in self.children), 'UNION ALL')
