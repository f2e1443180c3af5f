"""
QueryBuilder: compiles one plan at most once and caches the outcome.

The first access to any result triggers the build. Afterwards the builder
is either built (``tree_root`` is the compiled query tree) or failed
(``tree_root`` is None and ``root_cause`` says why). A failure never
raises to the caller: it means "execute this plan some other way".

Example:
    >>> builder = QueryBuilder(plan)
    >>> if builder.try_build() is not None:
    ...     df = builder.scan.to_df()
    ... else:
    ...     print(builder.root_cause.describe())
"""

import threading
from typing import List, Optional, Tuple, Type

from .config import get_logger, get_quote_char
from .exceptions import QueryNotBuiltError
from .expressions import AttributeReference
from .plan import LogicalPlan
from .queries import BaseQuery, SourceQuery
from .relation import RemoteRelation, RemoteScan
from .result import BuildResult, FailureDetail, InternalDefect
from .schema import Schema
from .statement import SQLStatement
from .telemetry import telemetry
from .translator import Translator

__all__ = ['QueryBuilder', 'get_scan_from_plan']


class QueryBuilder:
    """
    Build-once wrapper around a Translator for one plan.

    Args:
        plan: Root of the relational plan to compile
        relation_type: The tracked relation type (subclass of RemoteRelation)
        reporter: Diagnostics collaborator with ``report(plan, detail)``;
            defaults to the global PushdownTelemetry
    """

    def __init__(
        self,
        plan: LogicalPlan,
        relation_type: Type[RemoteRelation] = RemoteRelation,
        reporter=None,
    ):
        self.plan = plan
        self.reporter = reporter if reporter is not None else telemetry
        self._translator = Translator(relation_type)
        self._lock = threading.Lock()
        self._built = False
        self._root: Optional[BaseQuery] = None
        self._source: Optional[SourceQuery] = None
        self._root_cause: Optional[FailureDetail] = None
        self._scan: Optional[RemoteScan] = None
        self._logger = get_logger()

    # ========== Build outcome ==========

    @property
    def tree_root(self) -> Optional[BaseQuery]:
        """Compiled query tree, or None if the plan cannot be pushed down."""
        self._ensure_built()
        return self._root

    def try_build(self) -> Optional['QueryBuilder']:
        """Return this builder if the plan compiled, else None."""
        return self if self.tree_root is not None else None

    @property
    def root_cause(self) -> Optional[FailureDetail]:
        """Why the build failed, or None if it succeeded."""
        self._ensure_built()
        return self._root_cause

    @property
    def found_relation(self) -> bool:
        """Whether the plan contains a scan of the tracked relation type."""
        self._ensure_built()
        return self._translator.found_relation

    def _ensure_built(self) -> None:
        if self._built:
            return
        with self._lock:
            if self._built:
                return
            self._build()
            self._built = True

    def _build(self) -> None:
        self._logger.debug("[Pushdown] Begin query generation.")
        try:
            result = self._generate_queries()
        except Exception as e:
            result = BuildResult.fail(InternalDefect.from_exception(e))

        result = result.and_then(self._resolve_source)
        if result.is_success:
            self._root = result.value
            self._logger.debug("[Pushdown] Query generation succeeded:\n%s", self._root.tree_string())
            return

        self._root_cause = result.failure
        self._logger.debug("[Pushdown] Query generation failed: %s", self._root_cause.describe())
        if isinstance(self._root_cause, InternalDefect):
            self._logger.warning("[Pushdown] %s", self._root_cause.describe())
        if self._translator.found_relation:
            self._report(self._root_cause)

    def _generate_queries(self) -> BuildResult[BaseQuery]:
        return self._translator.compile(self.plan)

    def _resolve_source(self, root: BaseQuery) -> BuildResult[BaseQuery]:
        sources = root.find(SourceQuery)
        if not sources:
            return BuildResult.fail(
                InternalDefect.here("Something went wrong: a query tree was generated with no SourceQuery found.")
            )
        stores = {s.relation.store_key for s in sources}
        if len(stores) > 1:
            return BuildResult.fail(
                InternalDefect.here(f"Query tree spans {len(stores)} remote stores; expected exactly one.")
            )
        self._source = sources[0]
        return BuildResult.success(root)

    def _report(self, detail: FailureDetail) -> None:
        try:
            self.reporter.report(self.plan, detail)
        except Exception as e:
            self._logger.warning("[Telemetry] Failed to report pushdown failure: %s", e)

    # ========== Accessors (require a successful build) ==========

    def _check_tree(self, attribute: str) -> BaseQuery:
        root = self.tree_root
        if root is None:
            raise QueryNotBuiltError(attribute, self._root_cause)
        return root

    @property
    def statement(self) -> SQLStatement:
        """Top-level statement of the compiled tree."""
        return self._check_tree('statement').get_statement(get_quote_char())

    @property
    def output(self) -> List[AttributeReference]:
        """Output attributes of the compiled tree."""
        return self._check_tree('output').output

    @property
    def schema(self) -> Schema:
        return Schema.from_attributes(self.output)

    @property
    def source(self) -> SourceQuery:
        """The SourceQuery whose relation executes the composed statement."""
        self._check_tree('source')
        return self._source

    @property
    def scan(self) -> RemoteScan:
        """Lazy scan handle over the full composed statement."""
        self._check_tree('scan')
        if self._scan is None:
            self._scan = self._source.relation.build_scan_from_sql(self.statement, self.schema)
        return self._scan


def get_scan_from_plan(
    plan: LogicalPlan,
    relation_type: Type[RemoteRelation] = RemoteRelation,
    reporter=None,
) -> Optional[Tuple[List[AttributeReference], RemoteScan]]:
    """
    Compile ``plan`` and return ``(output, scan)``, or None to fall back.

    Example:
        >>> pushed = get_scan_from_plan(plan)
        >>> if pushed is None:
        ...     run_locally(plan)
        ... else:
        ...     output, scan = pushed
        ...     df = scan.to_df()
    """
    builder = QueryBuilder(plan, relation_type, reporter).try_build()
    if builder is None:
        return None
    return builder.output, builder.scan
