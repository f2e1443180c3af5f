"""
Per-build state: the subquery alias allocator and the relation-seen flag.
"""

from dataclasses import dataclass, field

__all__ = ['SUBQUERY_ALIAS_PREFIX', 'AliasAllocator', 'BuildContext']

SUBQUERY_ALIAS_PREFIX = "SUBQUERY_"


class AliasAllocator:
    """
    Issues unique subquery aliases for one compilation run.

    Aliases are the prefix plus a zero-based sequence number, strictly
    increasing with no gaps. The counter is never reset.

    Example:
        >>> aliases = AliasAllocator()
        >>> aliases.next(), next(aliases)
        ('SUBQUERY_0', 'SUBQUERY_1')
    """

    def __init__(self, prefix: str = SUBQUERY_ALIAS_PREFIX, start: int = 0):
        self.prefix = prefix
        self._counter = start

    @property
    def issued(self) -> int:
        """Next sequence number to be issued."""
        return self._counter

    def next(self) -> str:
        alias = f"{self.prefix}{self._counter}"
        self._counter += 1
        return alias

    def __next__(self) -> str:
        return self.next()

    def __iter__(self) -> 'AliasAllocator':
        return self


@dataclass
class BuildContext:
    """State owned by exactly one Translator."""

    aliases: AliasAllocator = field(default_factory=AliasAllocator)
    found_relation: bool = False

    def next_alias(self) -> str:
        return self.aliases.next()
