"""
sqlpushdown - Relational Plan to SQL Pushdown Compiler
======================================================

sqlpushdown compiles a relational plan (filters, projections, aggregates,
sorts, limits, windows, joins, unions and grouping-set expansions) into a
single nested SQL statement that a remote SQL store executes in one round
trip. Plans it cannot translate are reported back as "not pushable" so the
caller runs them locally instead.

Key Features:
- Every operator becomes a subquery with a unique alias (SUBQUERY_0, ...)
- Column references are qualified by the subquery that produces them
- Build-once QueryBuilder; failures are values, never exceptions
- Failure telemetry for plans that touch the remote store
- chDB-backed relations out of the box

Example:
    >>> from sqlpushdown import ChdbRelation, Scan, Filter, Project, col, DataType
    >>> from sqlpushdown import get_scan_from_plan
    >>>
    >>> number = col('number', DataType.long, nullable=False)
    >>> plan = Project([number], Filter(number > 5, Scan(ChdbRelation('numbers(10)'), [number])))
    >>> output, scan = get_scan_from_plan(plan, ChdbRelation)
    >>> scan.sql
    'SELECT "SUBQUERY_1"."number" AS "number" FROM ( SELECT "SUBQUERY_0"."number" AS "number" FROM ...'
    >>> df = scan.to_df()
"""

from .enums import DataType, JoinType
from .exceptions import (
    ConnectionError,
    ExecutionError,
    PlanError,
    PushdownError,
    QueryNotBuiltError,
    ValidationError,
)
from .expressions import (
    Alias,
    ArithmeticExpression,
    AttributeReference,
    Expression,
    Literal,
    NamedExpression,
    SortOrder,
    col,
)
from .conditions import (
    BinaryCondition,
    CompoundCondition,
    Condition,
    InCondition,
    NotCondition,
    UnaryCondition,
)
from .functions import (
    AggregateFunction,
    Avg,
    Count,
    Function,
    Max,
    Min,
    Rank,
    RowNumber,
    Sum,
    WindowExpression,
    WindowFunction,
    WindowSpec,
)
from .plan import (
    Aggregate,
    BinaryNode,
    Distinct,
    Except,
    Expand,
    Filter,
    Intersect,
    Join,
    LeafNode,
    Limit,
    LocalRelation,
    LogicalPlan,
    Project,
    Scan,
    Sort,
    SubqueryAlias,
    UnaryNode,
    Union,
    Window,
)
from .schema import Schema, StructField
from .statement import SQLStatement
from .connection import Connection
from .relation import ChdbRelation, RemoteRelation, RemoteScan
from .result import BuildResult, InternalDefect, UnsupportedNode
from .context import AliasAllocator, BuildContext
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
from .translator import Translator
from .telemetry import PushdownTelemetry, telemetry
from .query_builder import QueryBuilder, get_scan_from_plan
from .strategy import PushdownScan, PushdownStrategy
from . import config

__version__ = "0.1.0"
__author__ = "sqlpushdown contributors"

__all__ = [
    # Enums
    'DataType',
    'JoinType',
    # Exceptions
    'PushdownError',
    'ConnectionError',
    'PlanError',
    'ExecutionError',
    'ValidationError',
    'QueryNotBuiltError',
    # Expressions
    'Expression',
    'NamedExpression',
    'AttributeReference',
    'Alias',
    'Literal',
    'ArithmeticExpression',
    'SortOrder',
    'col',
    # Conditions
    'Condition',
    'BinaryCondition',
    'CompoundCondition',
    'NotCondition',
    'UnaryCondition',
    'InCondition',
    # Functions
    'Function',
    'AggregateFunction',
    'Sum',
    'Count',
    'Avg',
    'Min',
    'Max',
    'WindowFunction',
    'WindowSpec',
    'WindowExpression',
    'RowNumber',
    'Rank',
    # Plan
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
    # Schema / statements
    'Schema',
    'StructField',
    'SQLStatement',
    # Remote store
    'Connection',
    'RemoteRelation',
    'ChdbRelation',
    'RemoteScan',
    # Compilation
    'BuildResult',
    'UnsupportedNode',
    'InternalDefect',
    'AliasAllocator',
    'BuildContext',
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
    'Translator',
    'QueryBuilder',
    'get_scan_from_plan',
    # Execution layer
    'PushdownTelemetry',
    'telemetry',
    'PushdownScan',
    'PushdownStrategy',
    # Config
    'config',
]
