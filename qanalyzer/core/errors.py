"""
Exceptions raised by the query analyzer.
"""
from enum import Enum


class QueryAnalyzerError(Exception):
    """Base class for analyzer errors."""


class UnsupportedVendorError(QueryAnalyzerError):
    """Raised when a connection URL does not map to a known SQL dialect."""


class DbErrorKind(Enum):
    UNRESOLVED_VARIABLE = 'unresolved_variable'
    OTHER = 'other'


class DbExecutionError(QueryAnalyzerError):
    """EXPLAIN failed at the database."""

    def __init__(self, kind: DbErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message

    @classmethod
    def from_driver_error(cls, error: Exception) -> 'DbExecutionError':
        """Classify a driver exception by its message."""
        message = str(error).strip()
        lowered = message.lower()
        if ('unknown column' in lowered or 'unknown variable' in lowered
                or ('column' in lowered and 'does not exist' in lowered)):
            return cls(DbErrorKind.UNRESOLVED_VARIABLE, message)
        return cls(DbErrorKind.OTHER, message)

    @property
    def remediation(self) -> str:
        """User-facing description of the failure."""
        if self.kind is DbErrorKind.UNRESOLVED_VARIABLE:
            return (
                "Error executing EXPLAIN: Database doesn't recognize variables like '@workspace_id'. "
                "Remove SET commands and replace variables with literal values in your query before analyzing."
            )
        return f"Error executing EXPLAIN: {self.message}"
