"""Test EXPLAIN plan correlation and the warning ledger."""

import pytest
from qanalyzer.core.correlator import (
    NARRATIVE_HEADER,
    NO_ISSUES,
    NO_PLAN,
    ExplainPlanCorrelator,
    WarningLedger,
    parse_row_count,
)
from qanalyzer.core.models import ExplainRow, KnownTable, TableFlag, TableUsage, TableWarning, WarningType


@pytest.fixture
def orders_usage():
    return {
        KnownTable('orders'): TableUsage(
            alias_used='o',
            all_columns={'created_at', 'status'},
            where_columns={'created_at'},
            function_where_columns={'created_at'},
            group_by_columns={'status'},
            order_by_columns={'created_at'},
        )
    }


def correlate(rows, usages, threshold=10000, info_threshold=10000):
    return ExplainPlanCorrelator().correlate(rows, {'o': 'orders'}, usages, threshold, info_threshold)


def test_full_scan_and_high_rows(full_scan_row, orders_usage):
    result = correlate([full_scan_row], orders_usage)

    types = [w.warning_type for w in result.warnings]
    assert types == [WarningType.FULL_TABLE_SCAN, WarningType.HIGH_ROW_ESTIMATE]
    assert all(w.table == 'orders' for w in result.warnings)
    assert result.warnings[0].suggested_columns == ('created_at',)
    assert "Candidates: [created_at]" in result.warnings[0].message
    assert result.warnings[1].message == "Est. rows: 50000"
    assert result.flagged_tables == {'orders': TableFlag.SEVERE}

    lines = result.narrative.splitlines()
    assert lines[0] == NARRATIVE_HEADER
    assert lines[1] == "[1 o (orders)] SEVERE: Full Table Scan ('type' is 'ALL'). Why: DB read every row."
    assert "[1 o (orders)] INFO: High est. rows (50000)." in lines


def test_rows_at_threshold_not_reported(orders_usage):
    row = ExplainRow({'id': 1, 'table': 'o', 'type': 'ref', 'rows': '10000'})

    result = correlate([row], orders_usage)

    assert result.warnings == []
    assert result.narrative.splitlines()[-1] == NO_ISSUES


def test_info_threshold_below_row_threshold(orders_usage):
    row = ExplainRow({'id': 1, 'table': 'o', 'type': 'ref', 'rows': '50000'})

    result = correlate([row], orders_usage, threshold=100000, info_threshold=10000)

    assert result.warnings == []
    assert "[1 o (orders)] INFO: Est. rows: 50000" in result.narrative


def test_index_not_used(orders_usage):
    row = ExplainRow({'id': 1, 'table': 'o', 'type': 'ref', 'possible_keys': 'idx_created', 'key': None})

    result = correlate([row], orders_usage)

    assert [w.warning_type for w in result.warnings] == [WarningType.INDEX_NOT_USED]
    warning = result.warnings[0]
    assert warning.short_message == "Potential reasons:"
    assert "Func on indexed col(s): [created_at]" in warning.message
    assert warning.suggestion_rows[0] == ("-> Explanation", "Potential reasons:", "")
    assert "Possible keys [idx_created] found, but none used." in result.narrative
    assert result.flagged_tables == {'orders': TableFlag.WARN}


def test_filesort_and_temporary(orders_usage):
    row = {'id': 2, 'table': 'o', 'type': 'index', 'Extra': 'Using temporary; Using filesort'}

    result = correlate([row], orders_usage)

    by_type = {w.warning_type: w for w in result.warnings}
    assert set(by_type) == {WarningType.FILESORT_USED, WarningType.TEMPORARY_TABLE_USED}
    assert by_type[WarningType.FILESORT_USED].suggested_columns == ('created_at',)
    assert by_type[WarningType.TEMPORARY_TABLE_USED].suggested_columns == ('status',)
    assert "[2 o (orders)] WARN: 'Using filesort'." in result.narrative


def test_unknown_table_reported_without_warning(orders_usage):
    row = ExplainRow({'id': 1, 'table': '<derived2>', 'type': 'ALL'})

    result = correlate([row], orders_usage)

    assert result.warnings == []
    assert result.flagged_tables == {}
    assert "[1 <derived2>] SEVERE: Full Table Scan" in result.narrative


def test_row_id_falls_back_to_position(orders_usage):
    row = ExplainRow({'id': None, 'table': 'o', 'type': 'ALL'})

    result = correlate([row], orders_usage)

    assert result.warnings[0].row_id == "Row 1"


def test_no_rows():
    result = correlate([], {})

    assert result.narrative.splitlines() == [NARRATIVE_HEADER, NO_PLAN]
    assert result.warnings == []


@pytest.mark.parametrize('value,expected', [
    ('1234', 1234),
    ('1234.0', 1234),
    ('', 0),
    (None, 0),
    ('many', 0),
])
def test_parse_row_count(value, expected):
    assert parse_row_count(value) == expected


def test_explain_row_lookup_is_case_insensitive():
    row = ExplainRow({'Table': 'o', 'EXTRA': None})

    assert row['table'] == 'o'
    assert 'extra' in row
    assert row.text('Extra', '') == ''
    assert list(row) == ['Table', 'EXTRA']


def test_ledger_records_each_table_and_type_once(full_scan_row, orders_usage):
    warnings = correlate([full_scan_row], orders_usage).warnings
    ledger = WarningLedger()

    first = ledger.record(warnings)
    second = ledger.record(warnings)

    assert first == warnings
    assert second == []
    assert len(ledger) == 2
    assert ledger.tables() == {'orders'}
    assert len(ledger.warnings_for('ORDERS')) == 2


def test_index_sql():
    warning = TableWarning('sales.orders', WarningType.FULL_TABLE_SCAN, 'msg', ('a', 'b'))

    assert warning.index_sql == "CREATE INDEX idx_orders_a_b ON sales.orders (a, b);"
    assert TableWarning('t', WarningType.FILESORT_USED, 'msg').index_sql is None


def test_full_scan_suggests_filtering_columns():
    row = ExplainRow({'table': 'o', 'type': 'ALL', 'possible_keys': None, 'rows': 50000, 'Extra': ''})
    usages = {KnownTable('orders'): TableUsage(alias_used='o', all_columns={'status'}, where_columns={'status'})}

    result = correlate([row], usages)

    full_scan, high_rows = result.warnings
    assert full_scan.warning_type is WarningType.FULL_TABLE_SCAN
    assert full_scan.table == 'orders'
    assert "[status]" in full_scan.message
    assert high_rows.warning_type is WarningType.HIGH_ROW_ESTIMATE
    assert "50000" in high_rows.message


def test_schema_qualified_table_matches_simple_name():
    usages = {KnownTable('sales.orders'): TableUsage(alias_used='sales.orders', where_columns={'status'})}
    row = ExplainRow({'id': 1, 'table': 'orders', 'type': 'ALL'})

    result = ExplainPlanCorrelator().correlate([row], {'sales.orders': 'sales.orders'}, usages, 10000)

    assert [w.warning_type for w in result.warnings] == [WarningType.FULL_TABLE_SCAN]
    assert result.warnings[0].table == 'sales.orders'
    assert result.flagged_tables == {'sales.orders': TableFlag.SEVERE}
    assert "[1 orders (sales.orders)] SEVERE: Full Table Scan" in result.narrative


def test_modification_rows_resolve_by_table_name():
    usages = {KnownTable('users'): TableUsage(alias_used='users', where_columns={'email'})}
    row = ExplainRow({'id': 1, 'table': 'users', 'type': 'ALL'})

    result = ExplainPlanCorrelator().correlate([row], {}, usages, 10000)

    assert [w.table for w in result.warnings] == ['users']
