"""
Test the execution-layer entry point.
"""

import unittest

import pandas as pd

from sqlpushdown import DataType, col, config
from sqlpushdown.plan import Filter, LocalRelation, Scan
from sqlpushdown.strategy import PushdownScan, PushdownStrategy
from sqlpushdown.tests.fakes import FakeRelation, RecordingReporter


class PushdownStrategyTests(unittest.TestCase):
    def setUp(self):
        self.a = col('a', DataType.long, nullable=False)
        self.relation = FakeRelation('t', result=pd.DataFrame({'a': [3]}))
        self.plan = Filter(self.a > 1, Scan(self.relation, [self.a]))
        self.reporter = RecordingReporter()
        self.strategy = PushdownStrategy(FakeRelation, self.reporter)

    def test_pushable_plan(self):
        plans = self.strategy.apply(self.plan)
        self.assertEqual(1, len(plans))
        self.assertIsInstance(plans[0], PushdownScan)
        self.assertEqual(['a'], [x.name for x in plans[0].output])
        self.assertEqual([3], plans[0].scan.to_df()['a'].tolist())
        self.assertIn('PushdownScan [a]: SELECT', plans[0].describe())

    def test_untranslatable_plan(self):
        local = Filter(col('x') > 1, LocalRelation(pd.DataFrame({'x': [1]})))
        self.assertEqual([], self.strategy.apply(local))
        self.assertEqual([], self.reporter.calls)

    def test_disabled(self):
        config.disable_pushdown()
        self.assertEqual([], self.strategy.apply(self.plan))
        self.assertEqual([], self.relation.executed)


if __name__ == '__main__':
    unittest.main()
