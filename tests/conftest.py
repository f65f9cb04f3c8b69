"""Test configuration and fixtures for sql-qanalyzer."""

import pytest
from qanalyzer.core.analyzer import AnalysisContext, QueryAnalyzer
from qanalyzer.core.database import DatabaseConfig
from qanalyzer.core.models import ExplainRow
from qanalyzer.core.parser import ParseContext, SqlParser


@pytest.fixture
def sample_db_config():
    return DatabaseConfig(
        host='localhost',
        port=5432,
        dbname='test_db',
        user='test_user',
        password='test_pass'
    )


@pytest.fixture
def mysql_db_config():
    return DatabaseConfig(
        host='localhost',
        port=3306,
        dbname='test_db',
        user='test_user',
        password='test_pass',
        vendor='mysql'
    )


@pytest.fixture
def parse_one():
    parser = SqlParser(ParseContext())

    def _parse(sql):
        result = parser.parse(sql)
        assert result.is_valid, result.error_text
        return result.statements[0]

    return _parse


@pytest.fixture
def analyzer():
    return QueryAnalyzer(AnalysisContext())


@pytest.fixture
def full_scan_row():
    return ExplainRow({
        'id': 1,
        'select_type': 'SIMPLE',
        'table': 'o',
        'type': 'ALL',
        'possible_keys': None,
        'key': None,
        'rows': '50000',
        'Extra': 'Using where',
    })


@pytest.fixture
def sample_plan():
    return [{
        'Plan': {
            'Node Type': 'Sort',
            'Plan Rows': 50000,
            'Plans': [
                {
                    'Node Type': 'Seq Scan',
                    'Relation Name': 'orders',
                    'Alias': 'o',
                    'Plan Rows': 50000,
                    'Filter': '(EXTRACT(year FROM created_at) = 2024)',
                }
            ]
        },
        'Planning Time': 0.5,
    }]
