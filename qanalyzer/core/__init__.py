"""
Core functionality for SQL statement performance analysis
"""
from .database import DatabaseManager, DatabaseConfig
from .analyzer import QueryAnalyzer, AnalysisContext, AnalysisResult, AnalysisReport
from .correlator import ExplainPlanCorrelator, CorrelationResult, WarningLedger
from .errors import QueryAnalyzerError, DbExecutionError, UnsupportedVendorError
