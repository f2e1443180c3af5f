"""
Utility functions for sqlpushdown
"""

from typing import Iterable

__all__ = [
    'format_identifier',
    'format_alias',
    'join_sql',
    'truncate',
]


def format_identifier(name: str, quote_char: str = '"') -> str:
    """
    Format an identifier (table/column/subquery name) with quotes.

    Args:
        name: The identifier name
        quote_char: Quote character to use (default: ")

    Returns:
        Quoted identifier

    Example:
        >>> format_identifier("SUBQUERY_0")
        '"SUBQUERY_0"'
        >>> format_identifier("table", "`")
        '`table`'
    """
    if quote_char:
        escaped = name.replace(quote_char, quote_char * 2)
        return f"{quote_char}{escaped}{quote_char}"
    return name


def format_alias(sql: str, alias: str = None, quote_char: str = '"', use_as: bool = True) -> str:
    """
    Format SQL with an optional alias.

    Args:
        sql: The SQL expression
        alias: Optional alias name
        quote_char: Quote character for alias
        use_as: Whether to use AS keyword

    Returns:
        SQL with alias if provided, otherwise original SQL

    Example:
        >>> format_alias("COUNT(*)", "total")
        'COUNT(*) AS "total"'
        >>> format_alias("name", "full_name", use_as=False)
        'name "full_name"'
    """
    if not alias:
        return sql

    as_keyword = ' AS ' if use_as else ' '
    quoted_alias = format_identifier(alias, quote_char)
    return f"{sql}{as_keyword}{quoted_alias}"


def join_sql(parts: Iterable[str], separator: str = ', ') -> str:
    """Join already-rendered SQL fragments, skipping empty ones."""
    return separator.join(p for p in parts if p)


def truncate(text: str, limit: int = 80) -> str:
    """Shorten text for log and diagnostic output."""
    if len(text) > limit:
        return text[: limit - 3] + "..."
    return text
