"""
Test QueryBuilder: build-once caching, failure reporting and accessors.
"""

import threading
import unittest
from unittest import mock

import pandas as pd

from sqlpushdown import DataType, JoinType, col
from sqlpushdown.connection import Connection
from sqlpushdown.exceptions import QueryNotBuiltError
from sqlpushdown.plan import Filter, Join, LocalRelation, Project, Scan
from sqlpushdown.query_builder import QueryBuilder, get_scan_from_plan
from sqlpushdown.queries import ProjectQuery
from sqlpushdown.relation import ChdbRelation, RemoteScan
from sqlpushdown.result import InternalDefect, UnsupportedNode
from sqlpushdown.telemetry import telemetry
from sqlpushdown.tests.fakes import FailingReporter, FakeRelation, RecordingReporter
from sqlpushdown.translator import Translator


class QueryBuilderTestCase(unittest.TestCase):
    def setUp(self):
        self.a = col('a', DataType.long, nullable=False)
        self.b = col('b', DataType.long)
        self.relation = FakeRelation('t', result=pd.DataFrame({'x': [7, 9]}))
        self.t = Scan(self.relation, [self.a, self.b])
        self.local = LocalRelation(pd.DataFrame({'x': [1]}))
        self.reporter = RecordingReporter()

    def pushable(self):
        return Project([self.a], Filter(self.b > 5, self.t))


class BuildOnceTests(QueryBuilderTestCase):
    """Test that compilation happens once and its outcome is cached"""

    def test_successful_build(self):
        builder = QueryBuilder(self.pushable(), reporter=self.reporter)
        self.assertIs(builder, builder.try_build())
        self.assertIsInstance(builder.tree_root, ProjectQuery)
        self.assertIsNone(builder.root_cause)
        self.assertTrue(builder.found_relation)
        self.assertEqual([], self.reporter.calls)

    def test_tree_root_idempotent(self):
        builder = QueryBuilder(self.pushable(), reporter=self.reporter)
        self.assertIs(builder.tree_root, builder.tree_root)
        self.assertEqual(builder.statement, builder.statement)

    def test_compiles_at_most_once(self):
        builder = QueryBuilder(self.pushable(), reporter=self.reporter)
        with mock.patch.object(builder, '_generate_queries', wraps=builder._generate_queries) as spy:
            builder.tree_root
            builder.statement
            builder.output
            builder.scan
            builder.try_build()
        self.assertEqual(1, spy.call_count)

    def test_failed_build_not_retried(self):
        builder = QueryBuilder(self.local, reporter=self.reporter)
        with mock.patch.object(builder, '_generate_queries', wraps=builder._generate_queries) as spy:
            self.assertIsNone(builder.try_build())
            self.assertIsNone(builder.tree_root)
            builder.root_cause
        self.assertEqual(1, spy.call_count)

    def test_concurrent_access_builds_once(self):
        builder = QueryBuilder(self.pushable(), reporter=self.reporter)
        roots = []
        with mock.patch.object(builder, '_generate_queries', wraps=builder._generate_queries) as spy:
            threads = [threading.Thread(target=lambda: roots.append(builder.tree_root)) for _ in range(8)]
            for thread in threads:
                thread.start()
            for thread in threads:
                thread.join()
        self.assertEqual(1, spy.call_count)
        self.assertEqual(8, len(roots))
        self.assertTrue(all(root is roots[0] for root in roots))


class FailureTests(QueryBuilderTestCase):
    """Test failure outcomes and telemetry gating"""

    def test_unsupported_without_relation_not_reported(self):
        builder = QueryBuilder(Filter(col('x') > 1, self.local), reporter=self.reporter)
        self.assertIsNone(builder.try_build())
        self.assertEqual(UnsupportedNode('LocalRelation', 'sqlpushdown.plan.LocalRelation'), builder.root_cause)
        self.assertFalse(builder.found_relation)
        self.assertEqual([], self.reporter.calls)

    def test_unsupported_with_relation_reported_once(self):
        plan = Join(self.t, self.local, JoinType.inner)
        builder = QueryBuilder(plan, reporter=self.reporter)
        self.assertIsNone(builder.tree_root)
        self.assertIsNone(builder.tree_root)
        self.assertIsNone(builder.try_build())

        self.assertTrue(builder.found_relation)
        self.assertEqual(1, len(self.reporter.calls))
        reported_plan, detail = self.reporter.calls[0]
        self.assertIs(plan, reported_plan)
        self.assertEqual('LocalRelation', detail.label)

    def test_reporter_errors_swallowed(self):
        reporter = FailingReporter()
        builder = QueryBuilder(Join(self.t, self.local, JoinType.inner), reporter=reporter)
        self.assertIsNone(builder.try_build())
        self.assertEqual(1, reporter.attempts)
        self.assertIsInstance(builder.root_cause, UnsupportedNode)

    def test_defaults_to_global_telemetry(self):
        builder = QueryBuilder(Join(self.t, self.local, JoinType.inner))
        self.assertIs(telemetry, builder.reporter)
        builder.try_build()
        self.assertEqual(1, len(telemetry))
        self.assertEqual('LocalRelation', telemetry.messages[0]['data']['node'])

    def test_internal_defect(self):
        builder = QueryBuilder(Join(self.t, Scan(FakeRelation('u'), [col('c')]), JoinType.cross), reporter=self.reporter)
        self.assertIsNone(builder.try_build())
        self.assertIsInstance(builder.root_cause, InternalDefect)
        self.assertEqual(1, len(self.reporter.calls))

    def test_unexpected_exception_becomes_defect(self):
        with mock.patch.object(Translator, '_compile_unary', side_effect=RuntimeError('boom')):
            builder = QueryBuilder(self.pushable(), reporter=self.reporter)
            self.assertIsNone(builder.try_build())
        self.assertIsInstance(builder.root_cause, InternalDefect)
        self.assertEqual('RuntimeError: boom', builder.root_cause.message)
        self.assertIn('RuntimeError', builder.root_cause.trace)

    def test_relations_from_different_stores(self):
        c = col('c', DataType.long)
        other = Scan(FakeRelation('u', store='elsewhere'), [c])
        builder = QueryBuilder(Join(self.t, other, JoinType.inner, self.a == c), reporter=self.reporter)
        self.assertIsNone(builder.try_build())
        self.assertIsInstance(builder.root_cause, InternalDefect)
        self.assertIn('2 remote stores', builder.root_cause.message)
        self.assertEqual(1, len(self.reporter.calls))

    def test_chdb_relations_on_separate_sessions(self):
        a, c = col('a', DataType.long), col('c', DataType.long)
        left = Scan(ChdbRelation('t', Connection()), [a])
        right = Scan(ChdbRelation('u', Connection()), [c])
        builder = QueryBuilder(Join(left, right, JoinType.inner, a == c), ChdbRelation, self.reporter)
        self.assertIsNone(builder.try_build())
        self.assertIn('2 remote stores', builder.root_cause.message)

        shared = Connection()
        left = Scan(ChdbRelation('t', shared), [a])
        right = Scan(ChdbRelation('u', shared), [c])
        builder = QueryBuilder(Join(left, right, JoinType.inner, a == c), ChdbRelation, self.reporter)
        self.assertIs(builder, builder.try_build())

    def test_relations_from_same_store(self):
        c = col('c', DataType.long)
        other = Scan(FakeRelation('u'), [c])
        builder = QueryBuilder(Join(self.t, other, JoinType.inner, self.a == c), reporter=self.reporter)
        self.assertIs(builder, builder.try_build())
        self.assertIs(self.relation, builder.source.relation)


class AccessorTests(QueryBuilderTestCase):
    """Test output/statement/scan accessors"""

    def test_accessors_after_success(self):
        builder = QueryBuilder(self.pushable(), reporter=self.reporter)
        self.assertEqual(['a'], [x.name for x in builder.output])
        self.assertTrue(builder.output[0].same_ref(self.a))
        self.assertEqual(['a'], builder.schema.names)
        self.assertTrue(builder.statement.to_sql().startswith('SELECT "SUBQUERY_1"."a" AS "a" FROM ('))
        self.assertEqual('SUBQUERY_0', builder.source.alias)

    def test_accessors_after_failure_raise(self):
        builder = QueryBuilder(self.local, reporter=self.reporter)
        for attribute in ('statement', 'output', 'schema', 'source', 'scan'):
            with self.assertRaises(QueryNotBuiltError) as ctx:
                getattr(builder, attribute)
            self.assertIn('accessed without generation', str(ctx.exception))
            self.assertIsInstance(ctx.exception.root_cause, UnsupportedNode)

    def test_error_names_requested_attribute(self):
        builder = QueryBuilder(self.local, reporter=self.reporter)
        with self.assertRaises(QueryNotBuiltError) as ctx:
            builder.statement
        self.assertEqual('statement', ctx.exception.attribute)
        self.assertIn("requested 'statement'", str(ctx.exception))
        self.assertIn('LocalRelation', str(ctx.exception))

    def test_scan_executes_composed_statement(self):
        builder = QueryBuilder(self.pushable(), reporter=self.reporter)
        scan = builder.scan
        self.assertIsInstance(scan, RemoteScan)
        self.assertIs(scan, builder.scan)
        self.assertEqual([], self.relation.executed)

        df = scan.to_df()
        self.assertEqual([builder.statement.to_sql()], self.relation.executed)
        self.assertEqual(['a'], list(df.columns))
        self.assertEqual([7, 9], df['a'].tolist())
        self.assertEqual('int64', str(df['a'].dtype))

        scan.to_df()
        self.assertEqual(1, len(self.relation.executed))

    def test_statement_uses_configured_quote_char(self):
        from sqlpushdown import config

        config.set_quote_char('`')
        builder = QueryBuilder(self.pushable(), reporter=self.reporter)
        self.assertTrue(builder.statement.to_sql().startswith('SELECT `SUBQUERY_1`.`a` AS `a`'))


class GetScanFromPlanTests(QueryBuilderTestCase):
    """Test the one-call convenience entry point"""

    def test_success(self):
        pushed = get_scan_from_plan(self.pushable(), reporter=self.reporter)
        self.assertIsNotNone(pushed)
        output, scan = pushed
        self.assertEqual(['a'], [x.name for x in output])
        self.assertIn('WHERE "SUBQUERY_0"."b" > 5', scan.sql)

    def test_join_on_shared_column_name(self):
        right_a = col('a', DataType.long, nullable=False)
        right = Scan(FakeRelation('u'), [right_a])
        plan = Project([self.a, right_a], Join(self.t, right, JoinType.inner, self.a == right_a))

        pushed = get_scan_from_plan(plan, reporter=self.reporter)
        self.assertIsNotNone(pushed)
        output, scan = pushed
        self.assertEqual(['a', 'a'], [x.name for x in output])
        self.assertTrue(scan.sql.startswith(
            'SELECT "SUBQUERY_2"."SUBQUERY_2_COL_0" AS "SUBQUERY_3_COL_0", '
            '"SUBQUERY_2"."SUBQUERY_2_COL_2" AS "SUBQUERY_3_COL_1"'
        ))
        self.assertEqual([], self.reporter.calls)

        self.relation.result = pd.DataFrame({'SUBQUERY_3_COL_0': [1], 'SUBQUERY_3_COL_1': [1]})
        df = scan.to_df()
        self.assertEqual(['a', 'a'], list(df.columns))

    def test_failure_returns_none(self):
        self.assertIsNone(get_scan_from_plan(self.local, reporter=self.reporter))

    def test_relation_type_respected(self):
        class OtherRelation(FakeRelation):
            pass

        self.assertIsNone(get_scan_from_plan(self.pushable(), OtherRelation, self.reporter))
        self.assertEqual([], self.reporter.calls)


if __name__ == '__main__':
    unittest.main()
