"""
Data models for query analysis.
"""
from collections import abc
from typing import Any, Dict, Iterator, List, Mapping, Optional, Set, Tuple, Union
from dataclasses import dataclass, field
from enum import Enum


class Severity(Enum):
    INFO = 'INFO'
    WARN = 'WARN'
    SEVERE = 'SEVERE'


@dataclass(frozen=True)
class PerformanceHint:
    """A structural problem found in a statement."""
    severity: Severity
    title: str
    explanation: str
    suggestion: str

    def __str__(self) -> str:
        return f"[{self.severity.value}] {self.title}\n  Why: {self.explanation}\n  Suggestion: {self.suggestion}"


@dataclass(frozen=True)
class KnownTable:
    """A table from the statement's FROM list."""
    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class UnresolvedQualifier:
    """A column qualifier that matches no alias or table in scope."""
    qualifier: str

    def __str__(self) -> str:
        return f"?({self.qualifier})"


@dataclass(frozen=True)
class AmbiguousTable:
    """An unqualified column with more than one table in scope."""

    def __str__(self) -> str:
        return "?(Ambiguous)"


TableKey = Union[KnownTable, UnresolvedQualifier, AmbiguousTable]

# lower-cased alias (or bare table name) -> canonical table name
AliasMap = Dict[str, str]

# read-only named counters and flags for one statement
QueryStatistics = Mapping[str, Any]


@dataclass
class TableUsage:
    """Columns a statement uses from one table."""
    alias_used: Optional[str] = None
    all_columns: Set[str] = field(default_factory=set)
    where_columns: Set[str] = field(default_factory=set)
    function_where_columns: Set[str] = field(default_factory=set)
    group_by_columns: Set[str] = field(default_factory=set)
    order_by_columns: Set[str] = field(default_factory=set)


class ExplainRow(abc.Mapping):
    """One row of EXPLAIN output with case-insensitive column lookup."""

    def __init__(self, data: Mapping[str, Any]):
        self._columns: List[str] = list(data.keys())
        self._values = {name.lower(): value for name, value in data.items()}

    def __getitem__(self, key: str) -> Any:
        return self._values[key.lower()]

    def __iter__(self) -> Iterator[str]:
        return iter(self._columns)

    def __len__(self) -> int:
        return len(self._columns)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.lower() in self._values

    def __repr__(self) -> str:
        return f"ExplainRow({dict(self.items())!r})"

    def text(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Cell value as a string, or default when the column is missing or null."""
        value = self._values.get(key.lower())
        if value is None:
            return default
        return str(value)

    def first_value(self) -> Optional[str]:
        if not self._columns:
            return None
        return self.text(self._columns[0])


class WarningType(Enum):
    FULL_TABLE_SCAN = 'FullTableScan'
    INDEX_NOT_USED = 'IndexNotUsed'
    HIGH_ROW_ESTIMATE = 'HighRowEstimate'
    FILESORT_USED = 'FilesortUsed'
    TEMPORARY_TABLE_USED = 'TemporaryTableUsed'

    @property
    def label(self) -> str:
        return _WARNING_LABELS[self]


_WARNING_LABELS = {
    WarningType.FULL_TABLE_SCAN: 'Full Table Scan',
    WarningType.INDEX_NOT_USED: 'Index Not Used',
    WarningType.HIGH_ROW_ESTIMATE: 'High Row Estimate',
    WarningType.FILESORT_USED: 'Filesort Used',
    WarningType.TEMPORARY_TABLE_USED: 'Temporary Table Used',
}


class TableFlag(Enum):
    """Highlight level for a table section in the display."""
    WARN = 1
    SEVERE = 2


@dataclass(frozen=True)
class TableWarning:
    """An EXPLAIN finding tied to a canonical table name."""
    table: str
    warning_type: WarningType
    message: str
    suggested_columns: Tuple[str, ...] = ()
    suggestion_rows: Tuple[Tuple[str, str, str], ...] = ()
    row_id: Optional[str] = None

    @property
    def key(self) -> Tuple[str, WarningType]:
        return (self.table.lower(), self.warning_type)

    @property
    def short_message(self) -> str:
        return self.message.splitlines()[0] if self.message else ''

    @property
    def index_sql(self) -> Optional[str]:
        """Get the SQL command to create an index on the suggested columns."""
        if not self.suggested_columns:
            return None
        simple_name = self.table.rsplit('.', 1)[-1]
        idx_name = f"idx_{simple_name}_{'_'.join(self.suggested_columns)}"
        return f"CREATE INDEX {idx_name} ON {self.table} ({', '.join(self.suggested_columns)});"
