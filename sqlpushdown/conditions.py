"""
Predicates used by Filter, Join and EXISTS clauses.

Conditions are boolean expressions. They never carry an output name, so
rendering drops any ``with_alias`` request before recursing into operands.
"""

from typing import Iterator, List, Optional

from .enums import DataType
from .exceptions import ValidationError
from .expressions import Expression, Node

__all__ = [
    'Condition',
    'BinaryCondition',
    'CompoundCondition',
    'NotCondition',
    'UnaryCondition',
    'InCondition',
]


def _strip_alias(kwargs: dict) -> dict:
    kwargs.pop('with_alias', None)
    return kwargs


def _check_operator(operator: str, allowed, kind: str) -> str:
    normalized = operator.upper()
    if normalized not in allowed:
        raise ValidationError(f"Invalid {kind} operator: {operator}")
    return normalized


class Condition(Expression):
    """A boolean-valued expression; ``&``, ``|`` and ``~`` compose predicates."""

    @property
    def data_type(self) -> Optional[DataType]:
        return DataType.boolean

    def __and__(self, other: 'Condition') -> 'CompoundCondition':
        return CompoundCondition('AND', self, other)

    def __or__(self, other: 'Condition') -> 'CompoundCondition':
        return CompoundCondition('OR', self, other)

    def __invert__(self) -> 'NotCondition':
        return NotCondition(self)

    @staticmethod
    def all(conditions: List['Condition']) -> Optional['Condition']:
        """Fold a list of predicates into one conjunction (None when empty)."""
        combined = None
        for predicate in conditions:
            combined = predicate if combined is None else combined & predicate
        return combined


class _BinaryPredicate(Condition):
    operator: str
    left: Expression
    right: Expression

    def nodes(self) -> Iterator[Node]:
        yield self
        yield from self.left.nodes()
        yield from self.right.nodes()

    def _operands_sql(self, quote_char: str, kwargs: dict):
        kwargs = _strip_alias(kwargs)
        return (
            self.left.to_sql(quote_char=quote_char, **kwargs),
            self.right.to_sql(quote_char=quote_char, **kwargs),
        )


class BinaryCondition(_BinaryPredicate):
    """
    Comparison of two operands.

    Example:
        >>> col('age') >= 18
        >>> # SQL: "age" >= 18
        >>> BinaryCondition('like', col('name'), Literal('A%'))
        >>> # SQL: "name" LIKE 'A%'
    """

    OPERATORS = {'=', '!=', '<>', '>', '>=', '<', '<=', 'LIKE', 'ILIKE'}

    def __init__(self, operator: str, left: Expression, right: Expression):
        self.operator = _check_operator(operator, self.OPERATORS, 'comparison')
        self.left = left
        self.right = right

    @property
    def nullable(self) -> bool:
        return self.left.nullable or self.right.nullable

    def to_sql(self, quote_char: str = '"', **kwargs) -> str:
        left_sql, right_sql = self._operands_sql(quote_char, kwargs)
        return f"{left_sql} {self.operator} {right_sql}"


class CompoundCondition(_BinaryPredicate):
    """
    AND / OR of two predicates, always parenthesized so nesting is explicit.

    Example:
        >>> (col('a') > 1) & (col('b').isnull())
        >>> # SQL: ("a" > 1 AND "b" IS NULL)
    """

    OPERATORS = {'AND', 'OR'}

    def __init__(self, operator: str, left: Condition, right: Condition):
        self.operator = _check_operator(operator, self.OPERATORS, 'logical')
        self.left = left
        self.right = right

    def to_sql(self, quote_char: str = '"', **kwargs) -> str:
        left_sql, right_sql = self._operands_sql(quote_char, kwargs)
        return f"({left_sql} {self.operator} {right_sql})"


class NotCondition(Condition):
    def __init__(self, condition: Condition):
        self.condition = condition

    def nodes(self) -> Iterator[Node]:
        yield self
        yield from self.condition.nodes()

    def to_sql(self, quote_char: str = '"', **kwargs) -> str:
        inner = self.condition.to_sql(quote_char=quote_char, **_strip_alias(kwargs))
        return f"NOT ({inner})"


class UnaryCondition(Condition):
    """Postfix null test: ``IS NULL`` / ``IS NOT NULL``."""

    OPERATORS = {'IS NULL', 'IS NOT NULL'}

    def __init__(self, operator: str, expression: Expression):
        self.operator = _check_operator(operator, self.OPERATORS, 'unary')
        self.expression = expression

    def nodes(self) -> Iterator[Node]:
        yield self
        yield from self.expression.nodes()

    @property
    def nullable(self) -> bool:
        return False

    def to_sql(self, quote_char: str = '"', **kwargs) -> str:
        operand = self.expression.to_sql(quote_char=quote_char, **_strip_alias(kwargs))
        return f"{operand} {self.operator}"


class InCondition(Condition):
    """
    Membership in a non-empty list of constants.

    Example:
        >>> col('id').isin([1, 2, 3])
        >>> # SQL: "id" IN (1,2,3)
    """

    def __init__(self, expression: Expression, values, negate: bool = False):
        if not isinstance(values, (list, tuple)):
            raise ValidationError(f"IN values must be a list or tuple, got {type(values).__name__}")
        if not values:
            raise ValidationError("IN values must not be empty")
        self.expression = expression
        self.values = [Expression.wrap(v) for v in values]
        self.negate = negate

    def nodes(self) -> Iterator[Node]:
        yield self
        yield from self.expression.nodes()
        for value in self.values:
            yield from value.nodes()

    def to_sql(self, quote_char: str = '"', **kwargs) -> str:
        kwargs = _strip_alias(kwargs)
        operand = self.expression.to_sql(quote_char=quote_char, **kwargs)
        members = ','.join(v.to_sql(quote_char=quote_char, **kwargs) for v in self.values)
        keyword = 'NOT IN' if self.negate else 'IN'
        return f"{operand} {keyword} ({members})"
