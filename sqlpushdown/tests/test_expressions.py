"""
Test expressions, conditions and functions - SQL rendering and identity.
"""

import unittest

from sqlpushdown import DataType, col
from sqlpushdown.conditions import BinaryCondition, CompoundCondition, InCondition
from sqlpushdown.exceptions import ValidationError
from sqlpushdown.expressions import Alias, ArithmeticExpression, AttributeReference, Literal, SortOrder
from sqlpushdown.functions import Avg, Count, Function, RowNumber, Sum, WindowExpression, WindowSpec


class AttributeReferenceTests(unittest.TestCase):
    """Test column references and qualification"""

    def test_unqualified(self):
        a = AttributeReference('price', DataType.double)
        self.assertEqual('"price"', a.to_sql())

    def test_qualified_by_producing_subquery(self):
        a = AttributeReference('price', DataType.double)
        self.assertEqual('"SUBQUERY_0"."price"', a.to_sql(qualifiers={a.expr_id: 'SUBQUERY_0'}))

    def test_qualified_projection_keeps_bare_name(self):
        a = AttributeReference('price', DataType.double)
        sql = a.to_sql(qualifiers={a.expr_id: 'SUBQUERY_3'}, with_alias=True)
        self.assertEqual('"SUBQUERY_3"."price" AS "price"', sql)

    def test_qualifier_for_other_attribute_ignored(self):
        a = col('a')
        b = col('b')
        self.assertEqual('"a"', a.to_sql(qualifiers={b.expr_id: 'SUBQUERY_0'}))

    def test_custom_quote_char(self):
        a = col('a')
        self.assertEqual('`SUBQUERY_0`.`a`', a.to_sql('`', qualifiers={a.expr_id: 'SUBQUERY_0'}))

    def test_quote_char_escaped_in_name(self):
        self.assertEqual('"we""ird"', col('we"ird').to_sql())

    def test_fresh_ids_are_unique(self):
        self.assertNotEqual(col('a').expr_id, col('a').expr_id)

    def test_same_ref(self):
        a = col('a', DataType.long, nullable=False)
        nullable = a.with_nullability(True)
        self.assertTrue(nullable.nullable)
        self.assertEqual(a.expr_id, nullable.expr_id)
        self.assertTrue(a.same_ref(nullable))
        self.assertFalse(a.same_ref(col('a')))

    def test_with_same_nullability_returns_self(self):
        a = col('a', nullable=False)
        self.assertIs(a, a.with_nullability(False))


class ComparisonTests(unittest.TestCase):
    """Test operator overloading that builds conditions"""

    def test_eq_builds_condition(self):
        cond = col('a') == 1
        self.assertIsInstance(cond, BinaryCondition)
        self.assertEqual('"a" = 1', cond.to_sql())

    def test_all_comparisons(self):
        a = col('a')
        self.assertEqual('"a" != 1', (a != 1).to_sql())
        self.assertEqual('"a" > 1', (a > 1).to_sql())
        self.assertEqual('"a" >= 1', (a >= 1).to_sql())
        self.assertEqual('"a" < 1', (a < 1).to_sql())
        self.assertEqual('"a" <= 1', (a <= 1).to_sql())

    def test_compare_two_columns(self):
        self.assertEqual('"a" = "b"', (col('a') == col('b')).to_sql())

    def test_and_or_not(self):
        a, b = col('a'), col('b')
        self.assertEqual('("a" > 1 AND "b" < 2)', ((a > 1) & (b < 2)).to_sql())
        self.assertEqual('("a" > 1 OR "b" < 2)', ((a > 1) | (b < 2)).to_sql())
        self.assertEqual('NOT ("a" > 1)', (~(a > 1)).to_sql())

    def test_all_combines_with_and(self):
        a = col('a')
        cond = BinaryCondition.all([a > 1, a < 5, a != 3])
        self.assertIsInstance(cond, CompoundCondition)
        self.assertEqual('(("a" > 1 AND "a" < 5) AND "a" != 3)', cond.to_sql())
        self.assertIsNone(BinaryCondition.all([]))

    def test_null_checks(self):
        self.assertEqual('"x" IS NULL', col('x').isnull().to_sql())
        self.assertEqual('"x" IS NOT NULL', col('x').notnull().to_sql())

    def test_in(self):
        self.assertEqual('"x" IN (1,2,3)', col('x').isin([1, 2, 3]).to_sql())
        self.assertEqual("\"x\" NOT IN ('a')", col('x').notin(['a']).to_sql())

    def test_in_rejects_bad_values(self):
        with self.assertRaises(ValidationError):
            InCondition(col('x'), [])
        with self.assertRaises(ValidationError):
            InCondition(col('x'), {1, 2})

    def test_invalid_operator(self):
        with self.assertRaises(ValidationError):
            BinaryCondition('===', col('a'), Literal(1))

    def test_condition_qualifies_references(self):
        a, b = col('a'), col('b')
        cond = (a == b) & b.isnull()
        quals = {a.expr_id: 'SUBQUERY_0', b.expr_id: 'SUBQUERY_1'}
        self.assertEqual(
            '("SUBQUERY_0"."a" = "SUBQUERY_1"."b" AND "SUBQUERY_1"."b" IS NULL)',
            cond.to_sql(qualifiers=quals, with_alias=True),
        )

    def test_find_references(self):
        a, b = col('a'), col('b')
        cond = (a > 1) & (b == a)
        self.assertEqual(3, len(cond.find(AttributeReference)))


class LiteralTests(unittest.TestCase):
    """Test literal rendering and typing"""

    def test_rendering(self):
        self.assertEqual('NULL', Literal(None).to_sql())
        self.assertEqual('TRUE', Literal(True).to_sql())
        self.assertEqual('FALSE', Literal(False).to_sql())
        self.assertEqual('42', Literal(42).to_sql())
        self.assertEqual('1.5', Literal(1.5).to_sql())
        self.assertEqual("'it''s'", Literal("it's").to_sql())

    def test_types(self):
        self.assertEqual(DataType.boolean, Literal(True).data_type)
        self.assertEqual(DataType.long, Literal(3).data_type)
        self.assertEqual(DataType.double, Literal(3.0).data_type)
        self.assertEqual(DataType.string, Literal('x').data_type)
        self.assertIsNone(Literal(None).data_type)
        self.assertTrue(Literal(None).nullable)
        self.assertFalse(Literal(1).nullable)


class ArithmeticTests(unittest.TestCase):
    """Test arithmetic operators"""

    def test_operators(self):
        a = col('a')
        self.assertEqual('("a"+1)', (a + 1).to_sql())
        self.assertEqual('("a"-1)', (a - 1).to_sql())
        self.assertEqual('("a"*2)', (a * 2).to_sql())
        self.assertEqual('("a"/2)', (a / 2).to_sql())
        self.assertEqual('("a"%2)', (a % 2).to_sql())

    def test_reverse_operators(self):
        a = col('a')
        self.assertEqual('(1+"a")', (1 + a).to_sql())
        self.assertEqual('(1-"a")', (1 - a).to_sql())
        self.assertEqual('(2*"a")', (2 * a).to_sql())
        self.assertEqual('(0-"a")', (-a).to_sql())

    def test_result_type(self):
        a = col('a', DataType.long)
        self.assertEqual(DataType.long, (a + 1).data_type)
        self.assertEqual(DataType.double, (a + 1.5).data_type)
        self.assertEqual(DataType.double, (a / 2).data_type)

    def test_invalid_operator(self):
        with self.assertRaises(ValidationError):
            ArithmeticExpression('^', col('a'), Literal(2))


class AliasTests(unittest.TestCase):
    """Test naming expressions"""

    def test_alias_rendering(self):
        expr = Alias(col('a') + 1, 'a_plus_one')
        self.assertEqual('("a"+1) AS "a_plus_one"', expr.to_sql(with_alias=True))
        self.assertEqual('("a"+1)', expr.to_sql())

    def test_alias_attribute(self):
        expr = (col('a', DataType.long) + 1).as_('a1')
        attr = expr.to_attribute()
        self.assertEqual('a1', attr.name)
        self.assertEqual(DataType.long, attr.data_type)
        self.assertEqual(expr.expr_id, attr.expr_id)

    def test_alias_with_explicit_id(self):
        target = col('gid')
        expr = Alias(Literal(0), 'gid', expr_id=target.expr_id)
        self.assertTrue(expr.same_ref(target))

    def test_empty_name_rejected(self):
        with self.assertRaises(ValidationError):
            Alias(Literal(1), '')


class SortOrderTests(unittest.TestCase):
    """Test ORDER BY keys"""

    def test_defaults(self):
        self.assertEqual('"a" ASC NULLS FIRST', SortOrder(col('a')).to_sql())
        self.assertEqual('"a" ASC NULLS FIRST', col('a').asc().to_sql())
        self.assertEqual('"a" DESC NULLS LAST', col('a').desc().to_sql())

    def test_explicit_nulls(self):
        self.assertEqual('"a" DESC NULLS FIRST', col('a').desc(nulls_first=True).to_sql())
        self.assertEqual('"a" ASC NULLS LAST', SortOrder(col('a'), nulls_first=False).to_sql())


class FunctionTests(unittest.TestCase):
    """Test scalar, aggregate and window functions"""

    def test_scalar_function(self):
        self.assertEqual('upper("name")', Function('upper', col('name')).to_sql())
        self.assertEqual("concat('a','b')", Function('concat', 'a', 'b').to_sql())

    def test_count(self):
        self.assertEqual('count(*)', Count().to_sql())
        self.assertEqual('count(DISTINCT "a")', Count(col('a'), distinct=True).to_sql())
        self.assertEqual(DataType.long, Count().data_type)
        self.assertFalse(Count().nullable)

    def test_aggregate_types(self):
        a = col('a', DataType.long)
        self.assertEqual(DataType.long, Sum(a).data_type)
        self.assertEqual(DataType.double, Avg(a).data_type)

    def test_aggregate_qualified(self):
        a = col('a')
        total = Sum(a).as_('total')
        self.assertEqual(
            'sum("SUBQUERY_0"."a") AS "total"',
            total.to_sql(qualifiers={a.expr_id: 'SUBQUERY_0'}, with_alias=True),
        )

    def test_window_function(self):
        expr = RowNumber().over(partition_by=[col('g')], order_by=[col('v').desc()])
        self.assertEqual('row_number() OVER (PARTITION BY "g" ORDER BY "v" DESC NULLS LAST)', expr.to_sql())
        self.assertEqual(DataType.long, expr.data_type)
        self.assertFalse(expr.nullable)

    def test_window_aggregate_with_frame(self):
        expr = WindowExpression(
            Sum(col('amount')),
            WindowSpec(order_by=[col('ts')], frame='ROWS BETWEEN 1 PRECEDING AND CURRENT ROW'),
        )
        self.assertEqual(
            'sum("amount") OVER (ORDER BY "ts" ASC NULLS FIRST ROWS BETWEEN 1 PRECEDING AND CURRENT ROW)',
            expr.to_sql(),
        )


if __name__ == '__main__':
    unittest.main()
