"""
Core query analysis pipeline.

Parses a SQL script, analyzes the first statement structurally and, when a
database is available, correlates the EXPLAIN plan of the first explainable
statement with the structural findings.
"""
import logging
import time
from typing import Callable, List, Optional
from dataclasses import dataclass, field
from types import MappingProxyType

from .aliases import AliasResolver
from .correlator import INFO_ROW_THRESHOLD, CorrelationResult, ExplainPlanCorrelator
from .database import DatabaseManager
from .errors import DbExecutionError
from .extractor import ColumnUsageExtractor, TableUsages
from .hints import HeuristicHintEngine
from .models import AliasMap, ExplainRow, PerformanceHint, QueryStatistics
from .parser import ParseContext, SqlParser
from .statement import SelectStatement, Statement, explainable_statement
from .statistics import QueryStatisticsCollector

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]

EMPTY_STATISTICS: QueryStatistics = MappingProxyType({})


@dataclass(frozen=True)
class AnalysisContext:
    dialect: Optional[str] = None
    row_threshold: int = 10000
    info_row_threshold: int = INFO_ROW_THRESHOLD


@dataclass
class AnalysisResult:
    is_valid: bool
    error: Optional[str] = None
    statement_type: Optional[str] = None
    table_usages: TableUsages = field(default_factory=dict)
    query_statistics: QueryStatistics = field(default_factory=lambda: EMPTY_STATISTICS)
    hints: List[PerformanceHint] = field(default_factory=list)
    alias_map: AliasMap = field(default_factory=dict)
    statement: Optional[Statement] = None


@dataclass
class AnalysisReport:
    analysis: AnalysisResult
    explain_sql: Optional[str] = None
    explain_rows: List[ExplainRow] = field(default_factory=list)
    correlation: Optional[CorrelationResult] = None
    explain_error: Optional[DbExecutionError] = None
    explain_duration_ms: Optional[int] = None


def _no_progress(message: str) -> None:
    logger.debug(message)


class QueryAnalyzer:
    def __init__(self, context: AnalysisContext = AnalysisContext()):
        self.context = context
        self.parser = SqlParser(ParseContext(dialect=context.dialect))
        self.extractor = ColumnUsageExtractor()
        self.collector = QueryStatisticsCollector()
        self.hint_engine = HeuristicHintEngine()
        self.correlator = ExplainPlanCorrelator()

    def analyze(self, sql: str) -> AnalysisResult:
        """Structural analysis of the first statement in a script."""
        parsed = self.parser.parse(sql)
        if not parsed.is_valid:
            return AnalysisResult(is_valid=False, error=parsed.error_text)
        return self._analyze_statements(parsed.statements)

    def analyze_statement(self, statement: Statement) -> AnalysisResult:
        alias_map = AliasResolver.build(statement)
        usages = self.extractor.extract(statement, alias_map)
        stats = self.collector.collect(statement, usages)
        hints = self.hint_engine.generate(statement, usages, stats)
        return AnalysisResult(
            is_valid=True,
            statement_type=statement.statement_type,
            table_usages=usages,
            query_statistics=stats,
            hints=hints,
            alias_map=alias_map,
            statement=statement,
        )

    def _analyze_statements(self, statements: List[Statement]) -> AnalysisResult:
        if not statements:
            return AnalysisResult(
                is_valid=True,
                statement_type='EMPTY',
                hints=[HeuristicHintEngine.empty_query_hint()],
            )
        return self.analyze_statement(statements[0])

    def correlate(self, analysis: AnalysisResult, explain_rows: List[ExplainRow],
                  alias_map: Optional[AliasMap] = None) -> CorrelationResult:
        return self.correlator.correlate(
            explain_rows,
            analysis.alias_map if alias_map is None else alias_map,
            analysis.table_usages,
            self.context.row_threshold,
            self.context.info_row_threshold,
        )

    def run(self, sql: str, db_manager: Optional[DatabaseManager] = None,
            progress: Optional[ProgressCallback] = None) -> AnalysisReport:
        """Full pipeline: parse, structural analysis, then EXPLAIN correlation if possible."""
        progress = progress or _no_progress

        progress("Parsing SQL script...")
        parsed = self.parser.parse(sql)
        if not parsed.is_valid:
            return AnalysisReport(analysis=AnalysisResult(is_valid=False, error=parsed.error_text))

        progress("Performing structural analysis...")
        analysis = self._analyze_statements(parsed.statements)
        report = AnalysisReport(analysis=analysis)

        target = explainable_statement(parsed.statements)
        if target is None:
            progress("No explainable (SELECT/INSERT/UPDATE/DELETE) statement found in script.")
            return report
        report.explain_sql = target.sql
        if db_manager is None:
            progress("Analysis complete.")
            return report

        progress("Connecting to database...")
        progress("Executing EXPLAIN command...")
        start = time.perf_counter()
        try:
            report.explain_rows = db_manager.run_explain(target.sql)
        except DbExecutionError as e:
            logger.error(e.remediation)
            report.explain_error = e
            return report
        report.explain_duration_ms = int((time.perf_counter() - start) * 1000)

        # only a SELECT's aliases are known to the EXPLAIN rows
        alias_map = AliasResolver.build(target) if isinstance(target, SelectStatement) else {}
        report.correlation = self.correlate(analysis, report.explain_rows, alias_map)

        progress("Analysis complete.")
        return report
