"""
Function system for sqlpushdown
"""

from typing import Iterator, List, Optional, Sequence

from .enums import DataType
from .expressions import Expression, Node, SortOrder

__all__ = [
    'Function',
    'AggregateFunction',
    'WindowFunction',
    'WindowSpec',
    'WindowExpression',
    'Sum',
    'Count',
    'Avg',
    'Min',
    'Max',
    'RowNumber',
    'Rank',
]


class Function(Expression):
    """
    Base class for SQL functions.

    Example:
        >>> Function('upper', col('name'), data_type=DataType.string)
        >>> Function('concat', Literal('Hello'), Literal(' World'))
    """

    is_aggregate = False

    def __init__(self, name: str, *args, data_type: Optional[DataType] = None):
        self.name = name  # Keep original case for database compatibility
        self.args = [self.wrap(arg) for arg in args]
        self._data_type = data_type

    def nodes(self) -> Iterator[Node]:
        yield self
        for arg in self.args:
            yield from arg.nodes()

    @property
    def data_type(self) -> Optional[DataType]:
        if self._data_type is not None:
            return self._data_type
        return self.args[0].data_type if self.args else None

    def args_sql(self, quote_char: str = '"', **kwargs) -> str:
        kwargs.pop('with_alias', None)
        return ','.join(arg.to_sql(quote_char=quote_char, **kwargs) for arg in self.args)

    def to_sql(self, quote_char: str = '"', **kwargs) -> str:
        """Generate SQL for function call."""
        return f"{self.name}({self.args_sql(quote_char, **kwargs)})"


class AggregateFunction(Function):
    """
    Base class for aggregate functions (SUM, COUNT, AVG, etc.).
    These are used in GROUP BY queries.
    """

    is_aggregate = True

    def __init__(self, name: str, *args, distinct: bool = False, data_type: Optional[DataType] = None):
        super().__init__(name, *args, data_type=data_type)
        self.distinct = distinct

    def to_sql(self, quote_char: str = '"', **kwargs) -> str:
        args_sql = self.args_sql(quote_char, **kwargs) or '*'
        if self.distinct:
            args_sql = f"DISTINCT {args_sql}"
        return f"{self.name}({args_sql})"


class Sum(AggregateFunction):
    """SUM aggregate function."""

    def __init__(self, expr: Expression, distinct: bool = False):
        super().__init__('sum', expr, distinct=distinct)


class Count(AggregateFunction):
    """
    COUNT aggregate function.

    Example:
        >>> Count()               # count(*)
        >>> Count(col('id'), distinct=True)  # count(DISTINCT "id")
    """

    def __init__(self, expr: Optional[Expression] = None, distinct: bool = False):
        args = (expr,) if expr is not None else ()
        super().__init__('count', *args, distinct=distinct, data_type=DataType.long)

    @property
    def nullable(self) -> bool:
        return False


class Avg(AggregateFunction):
    """AVG aggregate function."""

    def __init__(self, expr: Expression, distinct: bool = False):
        super().__init__('avg', expr, distinct=distinct, data_type=DataType.double)


class Min(AggregateFunction):
    """MIN aggregate function."""

    def __init__(self, expr: Expression):
        super().__init__('min', expr)


class Max(AggregateFunction):
    """MAX aggregate function."""

    def __init__(self, expr: Expression):
        super().__init__('max', expr)


class WindowSpec(Node):
    """
    The OVER (...) part of a window expression.

    Attributes:
        partition_by: Partitioning expressions
        order_by: SortOrder keys
        frame: Optional raw frame clause, e.g. "ROWS BETWEEN 1 PRECEDING AND CURRENT ROW"
    """

    def __init__(
        self,
        partition_by: Optional[Sequence[Expression]] = None,
        order_by: Optional[Sequence[SortOrder]] = None,
        frame: Optional[str] = None,
    ):
        self.partition_by: List[Expression] = list(partition_by or [])
        self.order_by: List[SortOrder] = [
            o if isinstance(o, SortOrder) else SortOrder(o) for o in (order_by or [])
        ]
        self.frame = frame

    def nodes(self) -> Iterator[Node]:
        yield self
        for expr in self.partition_by:
            yield from expr.nodes()
        for order in self.order_by:
            yield from order.nodes()

    def to_sql(self, quote_char: str = '"', **kwargs) -> str:
        kwargs.pop('with_alias', None)
        parts = []
        if self.partition_by:
            partition_sql = ', '.join(e.to_sql(quote_char=quote_char, **kwargs) for e in self.partition_by)
            parts.append(f"PARTITION BY {partition_sql}")
        if self.order_by:
            order_sql = ', '.join(o.to_sql(quote_char=quote_char, **kwargs) for o in self.order_by)
            parts.append(f"ORDER BY {order_sql}")
        if self.frame:
            parts.append(self.frame)
        return ' '.join(parts)


class WindowExpression(Expression):
    """
    A function evaluated over a window: ``function OVER (spec)``.

    Example:
        >>> WindowExpression(Sum(col('amount')), WindowSpec(partition_by=[col('user_id')]))
        >>> # SQL: sum("amount") OVER (PARTITION BY "user_id")
    """

    def __init__(self, function: Function, spec: WindowSpec):
        self.function = function
        self.spec = spec

    def nodes(self) -> Iterator[Node]:
        yield self
        yield from self.function.nodes()
        yield from self.spec.nodes()

    @property
    def data_type(self) -> Optional[DataType]:
        return self.function.data_type

    @property
    def nullable(self) -> bool:
        return self.function.nullable

    def to_sql(self, quote_char: str = '"', **kwargs) -> str:
        kwargs.pop('with_alias', None)
        function_sql = self.function.to_sql(quote_char=quote_char, **kwargs)
        return f"{function_sql} OVER ({self.spec.to_sql(quote_char=quote_char, **kwargs)})"


class WindowFunction(Function):
    """
    Ranking/offset function that is only valid with an OVER clause.

    Example:
        >>> WindowFunction('row_number', data_type=DataType.long).over(
        ...     partition_by=[col('category')], order_by=[col('value').desc()]
        ... )
        >>> # SQL: row_number() OVER (PARTITION BY "category" ORDER BY "value" DESC NULLS LAST)
    """

    def over(self, partition_by=None, order_by=None, frame: Optional[str] = None) -> WindowExpression:
        return WindowExpression(self, WindowSpec(partition_by, order_by, frame))


class RowNumber(WindowFunction):
    def __init__(self):
        super().__init__('row_number', data_type=DataType.long)

    @property
    def nullable(self) -> bool:
        return False


class Rank(WindowFunction):
    def __init__(self):
        super().__init__('rank', data_type=DataType.long)

    @property
    def nullable(self) -> bool:
        return False
