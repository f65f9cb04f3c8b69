"""Test per-table column usage extraction."""

import pytest
from qanalyzer.core.aliases import AliasResolver
from qanalyzer.core.extractor import ColumnUsageExtractor, resolve_table_name
from qanalyzer.core.models import AmbiguousTable, KnownTable, UnresolvedQualifier


def extract(statement):
    return ColumnUsageExtractor().extract(statement, AliasResolver.build(statement))


def test_function_in_where(parse_one):
    usages = extract(parse_one("SELECT * FROM orders o WHERE YEAR(o.created_at) = 2024"))

    usage = usages[KnownTable('orders')]
    assert usage.alias_used == 'o'
    assert usage.where_columns == {'created_at'}
    assert usage.function_where_columns == {'created_at'}
    assert usage.all_columns == {'*', 'created_at'}


def test_clause_membership(parse_one):
    usages = extract(parse_one(
        "SELECT o.status, COUNT(*) FROM orders o JOIN customers c ON o.customer_id = c.id "
        "WHERE c.region = 'EU' GROUP BY o.status ORDER BY o.status"
    ))

    orders = usages[KnownTable('orders')]
    customers = usages[KnownTable('customers')]
    assert orders.all_columns == {'status', 'customer_id'}
    assert orders.group_by_columns == {'status'}
    assert orders.order_by_columns == {'status'}
    assert orders.where_columns == set()
    assert customers.where_columns == {'region'}
    assert customers.function_where_columns == set()


def test_unqualified_column_single_table(parse_one):
    usages = extract(parse_one("SELECT name FROM users WHERE UPPER(email) = 'A'"))

    assert list(usages) == [KnownTable('users')]
    assert usages[KnownTable('users')].function_where_columns == {'email'}


def test_unqualified_column_with_several_tables(parse_one):
    usages = extract(parse_one("SELECT id FROM a JOIN b ON a.x = b.x"))

    assert usages[AmbiguousTable()].all_columns == {'id'}
    assert str(AmbiguousTable()) == '?(Ambiguous)'


def test_unknown_qualifier(parse_one):
    usages = extract(parse_one("SELECT z.id FROM orders o"))

    assert usages[UnresolvedQualifier('z')].all_columns == {'id'}
    assert str(UnresolvedQualifier('z')) == '?(z)'
    assert usages[KnownTable('orders')].all_columns == set()


def test_qualified_wildcard(parse_one):
    usages = extract(parse_one("SELECT o.* FROM orders o JOIN customers c ON o.cid = c.id"))

    assert '*(o.*)' in usages[KnownTable('orders')].all_columns
    assert '*(o.*)' not in usages[KnownTable('customers')].all_columns


def test_unaliased_table_alias_used_is_name(parse_one):
    usages = extract(parse_one("SELECT id FROM sales.orders WHERE orders.id = 1"))

    usage = usages[KnownTable('sales.orders')]
    assert usage.alias_used == 'sales.orders'
    assert usage.where_columns == {'id'}


def test_update_records_target_columns(parse_one):
    usages = extract(parse_one("UPDATE users SET active = 0 WHERE LOWER(email) = 'x'"))

    usage = usages[KnownTable('users')]
    assert usage.alias_used == 'users'
    assert usage.all_columns == {'active', 'email'}
    assert usage.function_where_columns == {'email'}


@pytest.mark.parametrize('sql', [
    "SELECT * FROM orders o WHERE YEAR(o.created_at) = 2024",
    "SELECT a.x FROM a JOIN b ON a.id = b.id WHERE LOWER(b.n) LIKE 'x%' OR a.y > 1 GROUP BY a.x",
    "SELECT id FROM t WHERE id IN (SELECT tid FROM u WHERE ABS(u.v) > 2) ORDER BY ts",
    "DELETE FROM logs WHERE TRIM(level) = 'debug'",
])
def test_clause_sets_are_subsets(parse_one, sql):
    for usage in extract(parse_one(sql)).values():
        assert usage.where_columns <= usage.all_columns
        assert usage.function_where_columns <= usage.where_columns
        assert usage.group_by_columns <= usage.all_columns
        assert usage.order_by_columns <= usage.all_columns


def test_resolve_table_name():
    alias_map = {'o': 'orders', 'c': 'customers'}
    known = ['orders', 'customers']

    assert resolve_table_name('O', alias_map, known) == KnownTable('orders')
    assert resolve_table_name('customers', alias_map, known) == KnownTable('customers')
    assert resolve_table_name('x', alias_map, known) == UnresolvedQualifier('x')
    assert resolve_table_name(None, alias_map, known) == AmbiguousTable()
    assert resolve_table_name('', {'t': 'orders'}, ['orders']) == KnownTable('orders')


def test_and_or_do_not_wrap_columns_in_a_function(parse_one):
    usages = extract(parse_one(
        "SELECT o.id FROM orders o WHERE o.status = 'x' AND (o.total > 5 OR LOWER(o.note) = 'y')"
    ))

    usage = usages[KnownTable('orders')]
    assert usage.where_columns == {'status', 'total', 'note'}
    assert usage.function_where_columns == {'note'}
