"""
Exception classes for sqlpushdown
"""

__all__ = [
    'PushdownError',
    'ConnectionError',
    'PlanError',
    'ExecutionError',
    'ValidationError',
    'QueryNotBuiltError',
]


class PushdownError(Exception):
    """Base exception for all sqlpushdown errors."""

    pass


class ConnectionError(PushdownError):
    """Raised when connection to the remote store fails."""

    pass


class PlanError(PushdownError):
    """Raised when a relational plan node is constructed with invalid arguments."""

    pass


class ExecutionError(PushdownError):
    """Raised when a pushed-down query fails in the remote store."""

    pass


class ValidationError(PushdownError):
    """Raised when expression validation fails."""

    pass


class QueryNotBuiltError(PushdownError):
    """Raised when a QueryBuilder's tree is accessed without a successful build.

    This signals caller misuse, not an unsupported plan: callers must check
    ``try_build()`` (or ``tree_root``) before reading the output, statement
    or scan of a builder.

    Example:
        raise QueryNotBuiltError(
            attribute="statement",
            root_cause=UnsupportedNode("LocalRelation", "sqlpushdown.plan.LocalRelation"),
        )
    """

    def __init__(self, attribute: str, root_cause=None):
        self.attribute = attribute
        self.root_cause = root_cause

        msg = f"QueryBuilder's tree accessed without generation (requested '{attribute}')"
        if root_cause is not None:
            msg += f". Build failed: {root_cause.describe()}"
        super().__init__(msg)
