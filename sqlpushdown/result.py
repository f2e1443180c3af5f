"""
Outcome of compiling a plan node.

Expected failures travel as values, never as exceptions: a
``BuildResult`` is either a success holding a query node or a failure
holding one of the failure details below. ``and_then`` chains
compilation steps and stops at the first failure.
"""

import traceback
from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar, Union

__all__ = ['UnsupportedNode', 'InternalDefect', 'FailureDetail', 'BuildResult']

T = TypeVar('T')
U = TypeVar('U')


@dataclass(frozen=True)
class UnsupportedNode:
    """A plan shape outside the translatable grammar. Routine, not a bug."""

    label: str
    kind: str

    def describe(self) -> str:
        return f"unsupported plan node {self.label} ({self.kind})"


@dataclass(frozen=True)
class InternalDefect:
    """A branch assumed unreachable was reached. Indicates a bug."""

    message: str
    trace: str = ''

    @classmethod
    def here(cls, message: str) -> 'InternalDefect':
        """Capture the current call stack as the trace."""
        return cls(message, ''.join(traceback.format_stack()[:-1]))

    @classmethod
    def from_exception(cls, exc: BaseException) -> 'InternalDefect':
        trace = ''.join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        return cls(f"{type(exc).__name__}: {exc}", trace)

    def describe(self) -> str:
        return f"internal defect: {self.message}"


FailureDetail = Union[UnsupportedNode, InternalDefect]


class BuildResult(Generic[T]):
    """
    Success(value) or Failure(detail).

    Example:
        >>> BuildResult.success(1).map(lambda v: v + 1).value
        2
        >>> BuildResult.fail(UnsupportedNode('X', 'pkg.X')).map(lambda v: v + 1).is_success
        False
    """

    __slots__ = ('_value', '_failure')

    def __init__(self, value: Optional[T] = None, failure: Optional[FailureDetail] = None):
        if (value is None) == (failure is None):
            raise ValueError("BuildResult needs exactly one of value or failure")
        self._value = value
        self._failure = failure

    @classmethod
    def success(cls, value: T) -> 'BuildResult[T]':
        return cls(value=value)

    @classmethod
    def fail(cls, failure: FailureDetail) -> 'BuildResult[T]':
        return cls(failure=failure)

    @property
    def is_success(self) -> bool:
        return self._failure is None

    @property
    def value(self) -> T:
        if self._failure is not None:
            raise ValueError(f"No value on a failed result ({self._failure.describe()})")
        return self._value

    @property
    def failure(self) -> Optional[FailureDetail]:
        return self._failure

    def map(self, fn: Callable[[T], U]) -> 'BuildResult[U]':
        """Transform the value; failures pass through and ``fn`` is not called."""
        if self._failure is not None:
            return self
        return BuildResult.success(fn(self._value))

    def and_then(self, fn: Callable[[T], 'BuildResult[U]']) -> 'BuildResult[U]':
        """Chain a step that may itself fail; ``fn`` is not called after a failure."""
        if self._failure is not None:
            return self
        return fn(self._value)

    def or_none(self) -> Optional[T]:
        return self._value

    def __repr__(self) -> str:
        if self._failure is not None:
            return f"Failure({self._failure.describe()})"
        return f"Success({self._value!r})"
