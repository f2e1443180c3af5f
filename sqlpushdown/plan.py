"""
Relational plan nodes.

A plan is an immutable tree of relational operators produced by an
upstream planner. Nodes are grouped by arity: ``LeafNode``, ``UnaryNode``
and ``BinaryNode``. ``Union`` (n-ary) and ``Expand`` (projection sets over
one child) are neither, so the translator dispatches them on their own.

Example:
    >>> t = Scan(relation, [a, b])
    >>> plan = Project([a], Filter(b > 5, t))
    >>> print(plan.tree_string())
    Project ["a"]
    +- Filter "b" > 5
       +- Scan ...
"""

from typing import Any, List, Optional, Sequence, TYPE_CHECKING

import pandas as pd

from .enums import JoinType
from .exceptions import PlanError
from .expressions import AttributeReference, Expression, Literal, NamedExpression, SortOrder
from .utils import truncate

if TYPE_CHECKING:
    from .conditions import Condition

__all__ = [
    'LogicalPlan',
    'LeafNode',
    'UnaryNode',
    'BinaryNode',
    'Scan',
    'LocalRelation',
    'Filter',
    'Project',
    'Aggregate',
    'Sort',
    'Limit',
    'Window',
    'SubqueryAlias',
    'Distinct',
    'Join',
    'Intersect',
    'Except',
    'Union',
    'Expand',
    'join_output',
]


def _named(expressions: Sequence[Expression], node: str) -> List[NamedExpression]:
    result = list(expressions)
    for expr in result:
        if not isinstance(expr, NamedExpression):
            raise PlanError(f"{node} expects named expressions, got {type(expr).__name__}: {expr!r}")
    return result


def _sql_list(expressions: Sequence[Expression]) -> str:
    return '[' + ', '.join(e.to_sql(with_alias=True) for e in expressions) + ']'


def join_output(
    join_type: JoinType,
    left: Sequence[AttributeReference],
    right: Sequence[AttributeReference],
) -> List[AttributeReference]:
    """Output attributes of a join: outer sides become nullable, semi/anti joins keep the left side only."""
    left, right = list(left), list(right)
    if join_type in (JoinType.left_semi, JoinType.left_anti):
        return left
    if join_type in (JoinType.right_outer, JoinType.full_outer):
        left = [a.with_nullability(True) for a in left]
    if join_type in (JoinType.left_outer, JoinType.full_outer):
        right = [a.with_nullability(True) for a in right]
    return left + right


class LogicalPlan:
    """Base class for relational plan nodes."""

    @property
    def children(self) -> List['LogicalPlan']:
        return []

    @property
    def output(self) -> List[AttributeReference]:
        raise NotImplementedError(f"{type(self).__name__} must implement output")

    @property
    def node_name(self) -> str:
        """Display label of this node kind."""
        return type(self).__name__

    def describe(self) -> str:
        """One-line description of this node's own arguments."""
        return ''

    def simple_string(self) -> str:
        details = self.describe()
        return f"{self.node_name} {details}" if details else self.node_name

    def tree_string(self) -> str:
        """Return an indented rendering of the whole subtree."""
        lines: List[str] = []
        self._tree_lines(lines, 0)
        return '\n'.join(lines)

    def _tree_lines(self, lines: List[str], depth: int) -> None:
        prefix = '' if depth == 0 else '   ' * (depth - 1) + '+- '
        lines.append(prefix + self.simple_string())
        for child in self.children:
            child._tree_lines(lines, depth + 1)

    def __repr__(self) -> str:
        return f"<{self.simple_string()}>"


class LeafNode(LogicalPlan):
    pass


class UnaryNode(LogicalPlan):
    def __init__(self, child: LogicalPlan):
        self.child = child

    @property
    def children(self) -> List[LogicalPlan]:
        return [self.child]

    @property
    def output(self) -> List[AttributeReference]:
        return self.child.output


class BinaryNode(LogicalPlan):
    def __init__(self, left: LogicalPlan, right: LogicalPlan):
        self.left = left
        self.right = right

    @property
    def children(self) -> List[LogicalPlan]:
        return [self.left, self.right]


# =============================================================================
# LEAF NODES
# =============================================================================


class Scan(LeafNode):
    """
    Scan of an external relation.

    Args:
        relation: Relation handle; pushdown only happens for the tracked
            relation type (see ``RemoteRelation``)
        output: Attributes the relation produces
    """

    def __init__(self, relation: Any, output: Sequence[AttributeReference]):
        self.relation = relation
        self._output = list(output)

    @property
    def output(self) -> List[AttributeReference]:
        return self._output

    def describe(self) -> str:
        return f"{self.relation} {_sql_list(self._output)}"


class LocalRelation(LeafNode):
    """In-memory rows held by the caller (never pushed down)."""

    def __init__(self, data: pd.DataFrame, output: Optional[Sequence[AttributeReference]] = None):
        from .schema import attributes_from_dataframe

        self.data = data
        self._output = list(output) if output is not None else attributes_from_dataframe(data)

    @property
    def output(self) -> List[AttributeReference]:
        return self._output

    def describe(self) -> str:
        return f"{_sql_list(self._output)} rows={len(self.data)}"


# =============================================================================
# UNARY NODES
# =============================================================================


class Filter(UnaryNode):
    def __init__(self, condition: 'Condition', child: LogicalPlan):
        super().__init__(child)
        self.condition = condition

    def describe(self) -> str:
        return truncate(self.condition.to_sql())


class Project(UnaryNode):
    def __init__(self, project_list: Sequence[Expression], child: LogicalPlan):
        super().__init__(child)
        self.project_list = _named(project_list, 'Project')

    @property
    def output(self) -> List[AttributeReference]:
        return [e.to_attribute() for e in self.project_list]

    def describe(self) -> str:
        return _sql_list(self.project_list)


class Aggregate(UnaryNode):
    def __init__(
        self,
        grouping_expressions: Sequence[Expression],
        aggregate_expressions: Sequence[Expression],
        child: LogicalPlan,
    ):
        super().__init__(child)
        self.grouping_expressions = list(grouping_expressions)
        self.aggregate_expressions = _named(aggregate_expressions, 'Aggregate')

    @property
    def output(self) -> List[AttributeReference]:
        return [e.to_attribute() for e in self.aggregate_expressions]

    def describe(self) -> str:
        return f"{_sql_list(self.grouping_expressions)}, {_sql_list(self.aggregate_expressions)}"


class Sort(UnaryNode):
    """
    ORDER BY. ``is_global`` distinguishes a total order from a
    per-partition order; only global sorts translate to SQL.
    """

    def __init__(self, order: Sequence[Expression], is_global: bool, child: LogicalPlan):
        super().__init__(child)
        self.order = [o if isinstance(o, SortOrder) else SortOrder(o) for o in order]
        self.is_global = is_global

    def describe(self) -> str:
        return f"{_sql_list(self.order)}, {str(self.is_global).lower()}"


class Limit(UnaryNode):
    def __init__(self, limit_expr, child: LogicalPlan):
        super().__init__(child)
        if isinstance(limit_expr, int) and not isinstance(limit_expr, bool):
            if limit_expr < 0:
                raise PlanError(f"Limit must be non-negative, got {limit_expr}")
            limit_expr = Literal(limit_expr)
        if not isinstance(limit_expr, Expression):
            raise PlanError(f"Limit expects an int or expression, got {type(limit_expr).__name__}")
        self.limit_expr = limit_expr

    def describe(self) -> str:
        return self.limit_expr.to_sql()


class Window(UnaryNode):
    """Appends one column per named window expression to the child's output."""

    def __init__(self, window_expressions: Sequence[Expression], child: LogicalPlan):
        super().__init__(child)
        self.window_expressions = _named(window_expressions, 'Window')

    @property
    def output(self) -> List[AttributeReference]:
        return self.child.output + [e.to_attribute() for e in self.window_expressions]

    def describe(self) -> str:
        return _sql_list(self.window_expressions)


class SubqueryAlias(UnaryNode):
    def __init__(self, name: str, child: LogicalPlan):
        super().__init__(child)
        self.name = name

    def describe(self) -> str:
        return self.name


class Distinct(UnaryNode):
    pass


# =============================================================================
# BINARY NODES
# =============================================================================


class Join(BinaryNode):
    def __init__(
        self,
        left: LogicalPlan,
        right: LogicalPlan,
        join_type: JoinType,
        condition: Optional['Condition'] = None,
    ):
        super().__init__(left, right)
        if not isinstance(join_type, JoinType):
            raise PlanError(f"Join expects a JoinType, got {join_type!r}")
        self.join_type = join_type
        self.condition = condition

    @property
    def output(self) -> List[AttributeReference]:
        return join_output(self.join_type, self.left.output, self.right.output)

    def describe(self) -> str:
        cond = truncate(self.condition.to_sql()) if self.condition is not None else ''
        return f"{self.join_type.name}, {cond}".rstrip(', ')


class Intersect(BinaryNode):
    @property
    def output(self) -> List[AttributeReference]:
        return self.left.output


class Except(BinaryNode):
    @property
    def output(self) -> List[AttributeReference]:
        return self.left.output


# =============================================================================
# N-ARY / SPECIAL NODES
# =============================================================================


class Union(LogicalPlan):
    """UNION ALL of children with positionally compatible outputs."""

    def __init__(self, children: Sequence[LogicalPlan]):
        self._children = list(children)

    @property
    def children(self) -> List[LogicalPlan]:
        return self._children

    @property
    def output(self) -> List[AttributeReference]:
        return self._children[0].output if self._children else []


class Expand(LogicalPlan):
    """
    Applies several projection sets to every input row (GROUPING SETS,
    ROLLUP, CUBE), producing ``output``.

    Each projection set lists one expression per output attribute.
    """

    def __init__(
        self,
        projections: Sequence[Sequence[Expression]],
        output: Sequence[AttributeReference],
        child: LogicalPlan,
    ):
        self.projections = [list(p) for p in projections]
        self._output = list(output)
        self.child = child
        for projection in self.projections:
            if len(projection) != len(self._output):
                raise PlanError(
                    f"Expand projection has {len(projection)} expressions, expected {len(self._output)}"
                )

    @property
    def children(self) -> List[LogicalPlan]:
        return [self.child]

    @property
    def output(self) -> List[AttributeReference]:
        return self._output

    def describe(self) -> str:
        return f"{len(self.projections)} projections, {_sql_list(self._output)}"
