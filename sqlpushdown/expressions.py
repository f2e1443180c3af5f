"""
Expression system for sqlpushdown plans.

Expressions appear inside relational plan nodes (predicates, projections,
grouping keys, sort orders, window definitions). Every expression renders
itself with ``to_sql()``; named expressions additionally carry an
``expr_id`` identity so a compiled subquery can qualify references to the
columns it reads.
"""

import itertools
from typing import Any, Dict, Iterator, List, Optional, Type, TYPE_CHECKING

from .enums import DataType
from .exceptions import ValidationError
from .utils import format_alias, format_identifier

if TYPE_CHECKING:
    from .conditions import BinaryCondition, Condition

__all__ = [
    'Node',
    'Expression',
    'NamedExpression',
    'AttributeReference',
    'Alias',
    'Literal',
    'ArithmeticExpression',
    'SortOrder',
    'new_expr_id',
    'col',
]

_expr_ids = itertools.count()


def new_expr_id() -> int:
    """Allocate a process-unique expression id."""
    return next(_expr_ids)


class Node:
    """
    Base class for all expression nodes.
    Provides tree traversal capabilities.
    """

    def nodes(self) -> Iterator['Node']:
        """Iterate over all nodes in the expression tree."""
        yield self

    def find(self, node_type: Type['Node']) -> List['Node']:
        """Find all nodes of a specific type."""
        return [node for node in self.nodes() if isinstance(node, node_type)]


class Expression(Node):
    """
    Base class for all expressions.

    Expressions can be:
    - Attribute references (columns)
    - Literals (constants)
    - Functions, aggregates and window expressions
    - Arithmetic operations
    - Conditions
    """

    @staticmethod
    def wrap(value: Any) -> 'Expression':
        """Wrap a plain Python value as a Literal; expressions are returned as-is."""
        if isinstance(value, Expression):
            return value
        return Literal(value)

    def to_sql(self, quote_char: str = '"', **kwargs) -> str:
        """Convert expression to SQL string."""
        raise NotImplementedError(f"{type(self).__name__} must implement to_sql()")

    @property
    def data_type(self) -> Optional[DataType]:
        """Result type of this expression, if known."""
        return None

    @property
    def nullable(self) -> bool:
        return True

    # ========== Comparison Operators ==========

    def __eq__(self, other: Any) -> 'BinaryCondition':
        from .conditions import BinaryCondition

        return BinaryCondition('=', self, self.wrap(other))

    def __ne__(self, other: Any) -> 'BinaryCondition':
        from .conditions import BinaryCondition

        return BinaryCondition('!=', self, self.wrap(other))

    def __gt__(self, other: Any) -> 'BinaryCondition':
        from .conditions import BinaryCondition

        return BinaryCondition('>', self, self.wrap(other))

    def __ge__(self, other: Any) -> 'BinaryCondition':
        from .conditions import BinaryCondition

        return BinaryCondition('>=', self, self.wrap(other))

    def __lt__(self, other: Any) -> 'BinaryCondition':
        from .conditions import BinaryCondition

        return BinaryCondition('<', self, self.wrap(other))

    def __le__(self, other: Any) -> 'BinaryCondition':
        from .conditions import BinaryCondition

        return BinaryCondition('<=', self, self.wrap(other))

    __hash__ = Node.__hash__

    # ========== Condition Helpers ==========

    def isnull(self) -> 'Condition':
        """
        Create IS NULL condition.

        Example:
            >>> col('name').isnull()
            >>> # Generates: "name" IS NULL
        """
        from .conditions import UnaryCondition

        return UnaryCondition('IS NULL', self)

    def notnull(self) -> 'Condition':
        """Create IS NOT NULL condition."""
        from .conditions import UnaryCondition

        return UnaryCondition('IS NOT NULL', self)

    def isin(self, values) -> 'Condition':
        """
        Create IN condition.

        Example:
            >>> col('id', DataType.long).isin([1, 2, 3])
            >>> # Generates: "id" IN (1,2,3)
        """
        from .conditions import InCondition

        return InCondition(self, values, negate=False)

    def notin(self, values) -> 'Condition':
        """Create NOT IN condition."""
        from .conditions import InCondition

        return InCondition(self, values, negate=True)

    # ========== Arithmetic Operators ==========

    def __add__(self, other: Any) -> 'ArithmeticExpression':
        return ArithmeticExpression('+', self, self.wrap(other))

    def __sub__(self, other: Any) -> 'ArithmeticExpression':
        return ArithmeticExpression('-', self, self.wrap(other))

    def __mul__(self, other: Any) -> 'ArithmeticExpression':
        return ArithmeticExpression('*', self, self.wrap(other))

    def __truediv__(self, other: Any) -> 'ArithmeticExpression':
        return ArithmeticExpression('/', self, self.wrap(other))

    def __mod__(self, other: Any) -> 'ArithmeticExpression':
        return ArithmeticExpression('%', self, self.wrap(other))

    def __radd__(self, other: Any) -> 'ArithmeticExpression':
        return ArithmeticExpression('+', self.wrap(other), self)

    def __rsub__(self, other: Any) -> 'ArithmeticExpression':
        return ArithmeticExpression('-', self.wrap(other), self)

    def __rmul__(self, other: Any) -> 'ArithmeticExpression':
        return ArithmeticExpression('*', self.wrap(other), self)

    def __neg__(self) -> 'ArithmeticExpression':
        return ArithmeticExpression('-', Literal(0), self)

    # ========== Naming and Ordering ==========

    def as_(self, name: str, expr_id: Optional[int] = None) -> 'Alias':
        """Name this expression, producing a new output attribute."""
        return Alias(self, name, expr_id=expr_id)

    def asc(self, nulls_first: bool = True) -> 'SortOrder':
        return SortOrder(self, ascending=True, nulls_first=nulls_first)

    def desc(self, nulls_first: bool = False) -> 'SortOrder':
        return SortOrder(self, ascending=False, nulls_first=nulls_first)

    # ========== String/Utility Methods ==========

    def __str__(self) -> str:
        return self.to_sql()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.to_sql()!r})"


class NamedExpression(Expression):
    """An expression that produces a named output attribute with a stable identity."""

    name: str
    expr_id: int

    def to_attribute(self) -> 'AttributeReference':
        raise NotImplementedError(f"{type(self).__name__} must implement to_attribute()")

    def same_ref(self, other: 'NamedExpression') -> bool:
        """Check identity (not structural equality, which builds a condition)."""
        return isinstance(other, NamedExpression) and self.expr_id == other.expr_id


class AttributeReference(NamedExpression):
    """
    A column produced by some plan node: name, type, nullability and identity.

    When rendered with ``qualifiers={expr_id: subquery_alias}``, the reference
    is qualified with the alias of the subquery that produces it.

    Example:
        >>> a = AttributeReference('price', DataType.double)
        >>> a.to_sql()
        '"price"'
        >>> a.to_sql(qualifiers={a.expr_id: 'SUBQUERY_0'})
        '"SUBQUERY_0"."price"'
    """

    def __init__(
        self,
        name: str,
        data_type: Optional[DataType] = None,
        nullable: bool = True,
        expr_id: Optional[int] = None,
    ):
        self.name = name
        self._data_type = data_type
        self._nullable = nullable
        self.expr_id = new_expr_id() if expr_id is None else expr_id

    @property
    def data_type(self) -> Optional[DataType]:
        return self._data_type

    @property
    def nullable(self) -> bool:
        return self._nullable

    def to_attribute(self) -> 'AttributeReference':
        return self

    def with_nullability(self, nullable: bool) -> 'AttributeReference':
        """Return a copy with different nullability and the same identity."""
        if nullable == self._nullable:
            return self
        return AttributeReference(self.name, self._data_type, nullable, self.expr_id)

    def to_sql(self, quote_char: str = '"', **kwargs) -> str:
        """
        Generate SQL for the column reference, qualified when a qualifier is known.

        ``columns={expr_id: name}`` reads the attribute under the column name
        its producing subquery exposes it as, when that differs from ``name``.
        """
        qualifiers: Dict[int, str] = kwargs.get('qualifiers') or {}
        columns: Dict[int, str] = kwargs.get('columns') or {}
        column_sql = format_identifier(columns.get(self.expr_id, self.name), quote_char)
        qualifier = qualifiers.get(self.expr_id)
        if qualifier is None:
            return column_sql

        sql = f"{format_identifier(qualifier, quote_char)}.{column_sql}"
        # Keep the bare column name as the output name of a projected reference
        if kwargs.get('with_alias', False):
            return format_alias(sql, self.name, quote_char)
        return sql

    def __repr__(self) -> str:
        return f"AttributeReference({self.name!r}#{self.expr_id}, {self._data_type}, nullable={self._nullable})"


class Alias(NamedExpression):
    """
    Names an arbitrary expression, creating a new output attribute.

    Example:
        >>> Alias(col('a') + 1, 'a_plus_one').to_sql(with_alias=True)
        '("a"+1) AS "a_plus_one"'
    """

    def __init__(self, child: Expression, name: str, expr_id: Optional[int] = None):
        if not name:
            raise ValidationError("Alias name must be a non-empty string")
        self.child = child
        self.name = name
        self.expr_id = new_expr_id() if expr_id is None else expr_id

    def nodes(self) -> Iterator[Node]:
        yield self
        yield from self.child.nodes()

    @property
    def data_type(self) -> Optional[DataType]:
        return self.child.data_type

    @property
    def nullable(self) -> bool:
        return self.child.nullable

    def to_attribute(self) -> AttributeReference:
        return AttributeReference(self.name, self.data_type, self.nullable, self.expr_id)

    def to_sql(self, quote_char: str = '"', **kwargs) -> str:
        with_alias = kwargs.pop('with_alias', False)
        sql = self.child.to_sql(quote_char=quote_char, **kwargs)
        if with_alias:
            return format_alias(sql, self.name, quote_char)
        return sql

    def __repr__(self) -> str:
        return f"Alias({self.child!r} AS {self.name!r}#{self.expr_id})"


_LITERAL_TYPES = (
    (bool, DataType.boolean),
    (int, DataType.long),
    (float, DataType.double),
    (str, DataType.string),
)


class Literal(Expression):
    """
    Represents a literal value (constant).

    Example:
        >>> Literal(42)
        >>> Literal("hello")
        >>> Literal(None)
    """

    def __init__(self, value: Any, data_type: Optional[DataType] = None):
        self.value = value
        self._data_type = data_type

    @property
    def data_type(self) -> Optional[DataType]:
        if self._data_type is not None:
            return self._data_type
        for py_type, data_type in _LITERAL_TYPES:
            if isinstance(self.value, py_type):
                return data_type
        return None

    @property
    def nullable(self) -> bool:
        return self.value is None

    def to_sql(self, quote_char: str = '"', **kwargs) -> str:
        """Generate SQL for literal."""
        if self.value is None:
            return 'NULL'
        if isinstance(self.value, bool):
            return 'TRUE' if self.value else 'FALSE'
        if isinstance(self.value, (int, float)):
            return str(self.value)
        # Escape single quotes
        escaped = str(self.value).replace("'", "''")
        return f"'{escaped}'"


class ArithmeticExpression(Expression):
    """
    Represents an arithmetic operation (e.g., a + b, x * 2).

    Example:
        >>> ArithmeticExpression('+', col('a'), Literal(1))
        >>> col('price') * 1.1  # Uses operator overloading
    """

    OPERATORS = {'+', '-', '*', '/', '%'}

    def __init__(self, operator: str, left: Expression, right: Expression):
        if operator not in self.OPERATORS:
            raise ValidationError(f"Invalid operator: {operator}")

        self.operator = operator
        self.left = left
        self.right = right

    def nodes(self) -> Iterator[Node]:
        """Traverse expression tree."""
        yield self
        yield from self.left.nodes()
        yield from self.right.nodes()

    @property
    def data_type(self) -> Optional[DataType]:
        if self.operator == '/':
            return DataType.double
        left, right = self.left.data_type, self.right.data_type
        if DataType.double in (left, right):
            return DataType.double
        return left or right

    @property
    def nullable(self) -> bool:
        return self.left.nullable or self.right.nullable

    def to_sql(self, quote_char: str = '"', **kwargs) -> str:
        """Generate SQL for arithmetic expression."""
        kwargs.pop('with_alias', None)
        left_sql = self.left.to_sql(quote_char=quote_char, **kwargs)
        right_sql = self.right.to_sql(quote_char=quote_char, **kwargs)
        return f"({left_sql}{self.operator}{right_sql})"


class SortOrder(Expression):
    """
    One ORDER BY key.

    Defaults follow relational planners: ascending keys sort NULLs first,
    descending keys sort NULLs last.
    """

    def __init__(self, child: Expression, ascending: bool = True, nulls_first: Optional[bool] = None):
        self.child = child
        self.ascending = ascending
        self.nulls_first = ascending if nulls_first is None else nulls_first

    def nodes(self) -> Iterator[Node]:
        yield self
        yield from self.child.nodes()

    @property
    def data_type(self) -> Optional[DataType]:
        return self.child.data_type

    def to_sql(self, quote_char: str = '"', **kwargs) -> str:
        kwargs.pop('with_alias', None)
        direction = 'ASC' if self.ascending else 'DESC'
        nulls = 'NULLS FIRST' if self.nulls_first else 'NULLS LAST'
        return f"{self.child.to_sql(quote_char=quote_char, **kwargs)} {direction} {nulls}"


def col(name: str, data_type: Optional[DataType] = None, nullable: bool = True) -> AttributeReference:
    """
    Create a fresh attribute reference.

    Example:
        >>> from sqlpushdown import col, DataType
        >>> price = col('price', DataType.double)
    """
    return AttributeReference(name, data_type, nullable)
