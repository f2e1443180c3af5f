"""
Push-down failure telemetry.

When a plan that touches the tracked relation type cannot be compiled, the
QueryBuilder reports the plan and the failure detail here. Messages are
JSON-serialisable dicts kept in a bounded in-memory buffer and logged at
DEBUG; nothing is ever raised back into the build.
"""

import json
import time
from collections import deque
from typing import Any, Deque, Dict, List

from .config import get_logger, get_telemetry_buffer_size, is_telemetry_enabled
from .plan import LogicalPlan
from .result import FailureDetail, InternalDefect

__all__ = ['FAIL_PUSHDOWN_GENERATE_QUERY', 'PushdownTelemetry', 'telemetry']

FAIL_PUSHDOWN_GENERATE_QUERY = "pushdown failed in query generation"


class PushdownTelemetry:
    """
    Collects push-down failure messages.

    Example:
        >>> from sqlpushdown.telemetry import telemetry
        >>> telemetry.messages[-1]['data']['node']
        'LocalRelation'
    """

    def __init__(self):
        self._messages: Deque[Dict[str, Any]] = deque(maxlen=get_telemetry_buffer_size())
        self._logger = get_logger()

    def _buffer(self) -> Deque[Dict[str, Any]]:
        size = get_telemetry_buffer_size()
        if self._messages.maxlen != size:
            self._messages = deque(self._messages, maxlen=size)
        return self._messages

    @staticmethod
    def build_message(plan: LogicalPlan, detail: FailureDetail) -> Dict[str, Any]:
        if isinstance(detail, InternalDefect):
            data = {
                "message": detail.message,
                "node": None,
                "class": None,
                "stack": detail.trace,
                "defect": True,
            }
        else:
            data = {
                "message": FAIL_PUSHDOWN_GENERATE_QUERY,
                "node": detail.label,
                "class": detail.kind,
                "stack": "",
                "defect": False,
            }
        data["plan"] = plan.tree_string()
        return {"type": "pushdown_fail", "timestamp": int(time.time() * 1000), "data": data}

    def report(self, plan: LogicalPlan, detail: FailureDetail) -> None:
        """Record one failed build."""
        if not is_telemetry_enabled():
            return
        message = self.build_message(plan, detail)
        self._buffer().append(message)
        self._logger.debug("[Telemetry] %s", json.dumps(message))

    @property
    def messages(self) -> List[Dict[str, Any]]:
        return list(self._messages)

    def clear(self) -> None:
        self._messages.clear()

    def __len__(self) -> int:
        return len(self._messages)


# Global telemetry instance
telemetry = PushdownTelemetry()
