"""
Execution-layer entry point.

``PushdownStrategy.apply()`` offers a plan to the compiler and returns the
pushed-down scans, or an empty list so the caller plans the query for
local execution instead.
"""

from dataclasses import dataclass
from typing import List, Type

from .config import get_logger, is_pushdown_enabled
from .expressions import AttributeReference
from .plan import LogicalPlan
from .query_builder import get_scan_from_plan
from .relation import RemoteRelation, RemoteScan

__all__ = ['PushdownScan', 'PushdownStrategy']


@dataclass(eq=False)
class PushdownScan:
    """A plan fully replaced by one remote scan."""

    output: List[AttributeReference]
    scan: RemoteScan

    def describe(self) -> str:
        columns = ', '.join(a.name for a in self.output)
        return f"PushdownScan [{columns}]: {self.scan.sql}"


class PushdownStrategy:
    """
    Decides whether a plan runs in the remote store.

    Example:
        >>> strategy = PushdownStrategy(ChdbRelation)
        >>> plans = strategy.apply(plan)
        >>> df = plans[0].scan.to_df() if plans else run_locally(plan)
    """

    def __init__(self, relation_type: Type[RemoteRelation] = RemoteRelation, reporter=None):
        self.relation_type = relation_type
        self.reporter = reporter
        self._logger = get_logger()

    def apply(self, plan: LogicalPlan) -> List[PushdownScan]:
        if not is_pushdown_enabled():
            self._logger.debug("[Pushdown] Disabled; planning %s locally", plan.node_name)
            return []

        pushed = get_scan_from_plan(plan, self.relation_type, self.reporter)
        if pushed is None:
            self._logger.debug("[Pushdown] Plan not translatable; falling back to local execution")
            return []

        output, scan = pushed
        self._logger.debug("[Pushdown] Using remote scan: %s", scan.sql)
        return [PushdownScan(output, scan)]
