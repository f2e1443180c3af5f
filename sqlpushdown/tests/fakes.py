"""
Test doubles: an in-process remote relation and a recording reporter.
"""

import pandas as pd

from sqlpushdown.relation import RemoteRelation
from sqlpushdown.utils import format_identifier


class FakeRelation(RemoteRelation):
    """Remote relation whose executor returns a canned DataFrame and records every statement."""

    def __init__(self, name, result=None, store='fake'):
        self.name = name
        self.result = result if result is not None else pd.DataFrame()
        self.store = store
        self.executed = []

    def source_sql(self, quote_char='"'):
        return format_identifier(self.name, quote_char)

    @property
    def store_key(self):
        return self.store

    def execute(self, sql):
        self.executed.append(sql)
        return self.result

    def __repr__(self):
        return f"FakeRelation({self.name!r})"


class RecordingReporter:
    """Collects (plan, detail) pairs passed to report()."""

    def __init__(self):
        self.calls = []

    def report(self, plan, detail):
        self.calls.append((plan, detail))


class FailingReporter:
    """Reporter whose every call raises."""

    def __init__(self):
        self.attempts = 0

    def report(self, plan, detail):
        self.attempts += 1
        raise RuntimeError("telemetry sink unavailable")
