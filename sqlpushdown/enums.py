"""
Enumerations for sqlpushdown
"""

from enum import Enum

__all__ = ['JoinType', 'DataType']


class JoinType(Enum):
    """Relational join kinds that can appear in a plan"""

    inner = "INNER"
    left_outer = "LEFT OUTER"
    right_outer = "RIGHT OUTER"
    full_outer = "FULL OUTER"
    left_semi = "LEFT SEMI"
    left_anti = "LEFT ANTI"
    cross = "CROSS"

    def __str__(self):
        return self.value


class DataType(Enum):
    """Column data types, valued by their ClickHouse type name"""

    boolean = "Bool"
    integer = "Int32"
    long = "Int64"
    double = "Float64"
    decimal = "Decimal(38, 18)"
    string = "String"
    date = "Date"
    timestamp = "DateTime64(6)"

    def __str__(self):
        return self.value

    @property
    def is_numeric(self) -> bool:
        return self in (DataType.integer, DataType.long, DataType.double, DataType.decimal)
