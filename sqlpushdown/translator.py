"""
Translator: compiles a relational plan into a query node tree.

The plan is walked bottom-up. Children are compiled before their parent
and the left child before the right, so subquery aliases are issued in
traversal order. Every rule returns a ``BuildResult``; the first failure
aborts the rest of the build.

Dispatch, in precedence order:

1. ``Scan`` of the tracked relation type -> SourceQuery
2. ``UnaryNode`` -> Filter/Project/Aggregate/SortLimit/Window query, or the
   child's query unchanged for any other unary kind
3. ``BinaryNode`` -> JoinQuery / SemiJoinQuery
4. ``Union`` -> UnionQuery
5. ``Expand`` -> UnionQuery over one ProjectQuery per projection set
6. anything else -> UnsupportedNode
"""

from typing import List, Optional, Sequence, Type

from .config import get_logger
from .context import BuildContext
from .enums import JoinType
from .expressions import Alias, AttributeReference, Expression, NamedExpression
from .plan import (
    Aggregate,
    BinaryNode,
    Expand,
    Filter,
    Join,
    Limit,
    LogicalPlan,
    Project,
    Scan,
    Sort,
    UnaryNode,
    Union,
    Window,
)
from .queries import (
    AggregateQuery,
    BaseQuery,
    FilterQuery,
    JoinQuery,
    ProjectQuery,
    SemiJoinQuery,
    SortLimitQuery,
    SourceQuery,
    UnionQuery,
    WindowQuery,
)
from .relation import RemoteRelation
from .result import BuildResult, InternalDefect, UnsupportedNode

__all__ = ['Translator', 'convert_projections', 'unsupported']

_JOIN_QUERY_TYPES = (JoinType.inner, JoinType.left_outer, JoinType.right_outer, JoinType.full_outer)


def convert_projections(projections: Sequence[Expression], output: Sequence[AttributeReference]) -> List[NamedExpression]:
    """
    Re-express one Expand projection set against the Expand output.

    Named expressions are kept; anything else is aliased with the
    corresponding output attribute's name and identity.
    """
    converted = []
    for expr, attr in zip(projections, output):
        if isinstance(expr, NamedExpression):
            converted.append(expr)
        else:
            converted.append(Alias(expr, attr.name, expr_id=attr.expr_id))
    return converted


def unsupported(plan: LogicalPlan) -> BuildResult:
    kind = f"{type(plan).__module__}.{type(plan).__qualname__}"
    return BuildResult.fail(UnsupportedNode(plan.node_name, kind))


class Translator:
    """
    Recursive plan-to-query compiler.

    A translator owns one ``BuildContext`` (alias counter and the
    relation-seen flag); use a fresh translator per plan.

    Example:
        >>> translator = Translator()
        >>> result = translator.compile(Project([a], Filter(b > 5, Scan(relation, [a, b]))))
        >>> result.value.alias
        'SUBQUERY_2'
    """

    def __init__(self, relation_type: Type = RemoteRelation, context: Optional[BuildContext] = None):
        self.relation_type = relation_type
        self.context = context if context is not None else BuildContext()
        self._logger = get_logger()

    @property
    def found_relation(self) -> bool:
        return self.context.found_relation

    def _next_alias(self) -> str:
        return self.context.next_alias()

    def compile(self, plan: LogicalPlan) -> BuildResult[BaseQuery]:
        """Compile ``plan`` into a query tree, or fail with the reason."""
        if isinstance(plan, Scan) and isinstance(plan.relation, self.relation_type):
            self.context.found_relation = True
            return BuildResult.success(self._built(plan, SourceQuery(plan.relation, plan.output, self._next_alias())))

        if isinstance(plan, UnaryNode):
            return self._compile_unary(plan)

        if isinstance(plan, BinaryNode):
            return self.compile(plan.left).and_then(
                lambda left: self.compile(plan.right).and_then(
                    lambda right: self._compile_binary(plan, left, right)
                )
            )

        if isinstance(plan, Union):
            return self._compile_union(plan, plan.children)

        if isinstance(plan, Expand):
            children = [Project(convert_projections(p, plan.output), plan.child) for p in plan.projections]
            return self._compile_union(plan, children, plan.output or None)

        return unsupported(plan)

    # ========== Unary ==========

    def _compile_unary(self, plan: UnaryNode) -> BuildResult[BaseQuery]:
        # A limit directly over a global sort, or a global sort directly over a
        # limit, collapses into one SortLimitQuery over the inner child.
        if isinstance(plan, Limit) and isinstance(plan.child, Sort) and plan.child.is_global:
            sort = plan.child
            return self.compile(sort.child).map(
                lambda sub: self._built(plan, SortLimitQuery(plan.limit_expr, sort.order, sub, self._next_alias()))
            )
        if isinstance(plan, Sort) and plan.is_global and isinstance(plan.child, Limit):
            limit = plan.child
            return self.compile(limit.child).map(
                lambda sub: self._built(plan, SortLimitQuery(limit.limit_expr, plan.order, sub, self._next_alias()))
            )

        return self.compile(plan.child).map(lambda sub: self._wrap_unary(plan, sub))

    def _wrap_unary(self, plan: UnaryNode, sub: BaseQuery) -> BaseQuery:
        if isinstance(plan, Filter):
            return self._built(plan, FilterQuery([plan.condition], sub, self._next_alias()))
        if isinstance(plan, Project):
            return self._built(plan, ProjectQuery(plan.project_list, sub, self._next_alias()))
        if isinstance(plan, Aggregate):
            return self._built(
                plan,
                AggregateQuery(plan.aggregate_expressions, plan.grouping_expressions, sub, self._next_alias()),
            )
        if isinstance(plan, Limit):
            return self._built(plan, SortLimitQuery(plan.limit_expr, [], sub, self._next_alias()))
        if isinstance(plan, Sort) and plan.is_global:
            return self._built(plan, SortLimitQuery(None, plan.order, sub, self._next_alias()))
        if isinstance(plan, Window):
            output = plan.output
            return self._built(
                plan,
                WindowQuery(plan.window_expressions, sub, self._next_alias(), output if output else None),
            )

        # Unrecognized unary operators are transparent
        self._logger.debug("[Pushdown] %s passed through to %s", plan.node_name, sub.alias)
        return sub

    # ========== Binary ==========

    def _compile_binary(self, plan: BinaryNode, left: BaseQuery, right: BaseQuery) -> BuildResult[BaseQuery]:
        if not isinstance(plan, Join):
            return unsupported(plan)

        if plan.join_type in _JOIN_QUERY_TYPES:
            query = JoinQuery(left, right, plan.condition, plan.join_type, self._next_alias())
        elif plan.join_type == JoinType.left_semi:
            query = SemiJoinQuery(left, right, plan.condition, False, self.context.aliases)
        elif plan.join_type == JoinType.left_anti:
            query = SemiJoinQuery(left, right, plan.condition, True, self.context.aliases)
        else:
            return BuildResult.fail(InternalDefect.here(f"Unexpected join type in pushdown: {plan.join_type}"))
        return BuildResult.success(self._built(plan, query))

    # ========== Union / Expand ==========

    def _compile_union(
        self,
        plan: LogicalPlan,
        children: Sequence[LogicalPlan],
        output: Optional[List[AttributeReference]] = None,
    ) -> BuildResult[BaseQuery]:
        if not children:
            return unsupported(plan)

        compiled = []
        for child in children:
            result = self.compile(child)
            if not result.is_success:
                return result
            compiled.append(result.value)
        return BuildResult.success(self._built(plan, UnionQuery(compiled, self._next_alias(), output)))

    def _built(self, plan: LogicalPlan, query: BaseQuery) -> BaseQuery:
        self._logger.debug("[Pushdown] %s -> %s", plan.node_name, query.describe())
        return query
