"""
Utility modules for SQL statement performance analysis
"""
from .config import ConfigLoader, AppConfig
from .report import ReportGenerator
