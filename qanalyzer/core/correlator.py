"""
EXPLAIN plan correlation.

Maps EXPLAIN rows back onto the tables of the structural analysis and turns
scan types, unused keys, row estimates and Extra notes into table warnings
plus a free-text narrative.
"""
import logging
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple
from dataclasses import dataclass, field

from .extractor import resolve_table_name
from .models import (
    AliasMap,
    ExplainRow,
    KnownTable,
    TableFlag,
    TableKey,
    TableUsage,
    TableWarning,
    WarningType,
)

logger = logging.getLogger(__name__)

INFO_ROW_THRESHOLD = 10000
NARRATIVE_HEADER = "--- EXPLAIN Plan Micro-Analysis (DB Specific) ---"
NO_ISSUES = "EXPLAIN plan analysis found no common high-priority issues."
NO_PLAN = "No EXPLAIN plan data available to analyze."


@dataclass
class CorrelationResult:
    warnings: List[TableWarning] = field(default_factory=list)
    narrative: str = ''
    flagged_tables: Dict[str, TableFlag] = field(default_factory=dict)


def parse_row_count(value: Optional[str]) -> int:
    """Row estimate as an integer, tolerating decimal strings."""
    text = (value or '').strip()
    if not text:
        return 0
    try:
        if '.' in text:
            return int(float(text))
        return int(text)
    except ValueError:
        logger.warning("Could not parse row estimate: '%s'", text)
        return 0


def _bracketed(columns: Iterable[str]) -> str:
    return '[' + ', '.join(columns) + ']'


class ExplainPlanCorrelator:
    def correlate(self, explain_rows: Sequence[Mapping], alias_map: AliasMap,
                  usages: Mapping[TableKey, TableUsage], row_threshold: int,
                  info_row_threshold: int = INFO_ROW_THRESHOLD) -> CorrelationResult:
        """Turn EXPLAIN rows into table warnings and a narrative."""
        result = CorrelationResult()
        lines = [NARRATIVE_HEADER]

        if not explain_rows:
            lines.append(NO_PLAN)
            result.narrative = '\n'.join(lines) + '\n'
            return result

        for index, raw_row in enumerate(explain_rows):
            row = raw_row if isinstance(raw_row, ExplainRow) else ExplainRow(raw_row)
            lines.extend(self._correlate_row(index, row, alias_map, usages, row_threshold,
                                             info_row_threshold, result))

        if len(lines) == 1:
            lines.append(NO_ISSUES)
        result.narrative = '\n'.join(lines) + '\n'
        return result

    def _correlate_row(self, index: int, row: ExplainRow, alias_map: AliasMap,
                       usages: Mapping[TableKey, TableUsage], row_threshold: int,
                       info_row_threshold: int, result: CorrelationResult) -> List[str]:
        lines = []
        row_id = row.first_value() or f"Row {index + 1}"
        alias = row.text('table')
        table = self._row_table(alias, alias_map, usages)
        label = f"{alias if alias is not None else '?'}{f' ({table})' if table else ''}"
        prefix = f"[{row_id} {label}]"

        usage = usages.get(KnownTable(table)) if table else None
        filtering = sorted(usage.where_columns) if usage else []
        func_cols = sorted(usage.function_where_columns) if usage else []
        group_by = sorted(usage.group_by_columns) if usage else []
        order_by = sorted(usage.order_by_columns) if usage else []

        def add_warning(warning_type: WarningType, message: str, columns: Sequence[str],
                        rows: Tuple[Tuple[str, str, str], ...], flag: TableFlag) -> None:
            if table is None:
                return
            result.warnings.append(TableWarning(
                table=table,
                warning_type=warning_type,
                message=message,
                suggested_columns=tuple(columns),
                suggestion_rows=rows,
                row_id=row_id,
            ))
            current = result.flagged_tables.get(table)
            if current is None or flag.value > current.value:
                result.flagged_tables[table] = flag

        # Full table scan
        if (row.text('type') or '').upper() == 'ALL':
            suggestion = "Suggestion: Index JOIN/WHERE columns."
            if filtering:
                suggestion += f" Candidates: {_bracketed(filtering)}"
                rows = (("-> Index Suggestion", "Index JOIN/WHERE columns:", _bracketed(filtering)),)
            else:
                if table is not None:
                    suggestion += f" Check JOIN columns for '{alias}'."
                rows = (("-> Index Suggestion", "Index JOIN columns:", "(Check query for columns used to join)"),)
            lines.append(f"{prefix} SEVERE: Full Table Scan ('type' is 'ALL'). Why: DB read every row.")
            lines.append(f"  > {suggestion}")
            add_warning(WarningType.FULL_TABLE_SCAN, suggestion, filtering, rows, TableFlag.SEVERE)

        # Index not used
        key = row.text('key')
        possible_keys = row.text('possible_keys')
        if possible_keys and (not key or key.upper() == 'NULL'):
            reasons = self._index_not_used_reasons(filtering, func_cols)
            lines.append(f"{prefix} WARN: Index Not Used")
            lines.append(f"  > Possible keys [{possible_keys}] found, but none used.")
            lines.append("  > Potential reasons:")
            lines.extend(f"    - {reason}" for reason in reasons)
            explanation = "Potential reasons:\n" + '\n'.join(f"- {reason}" for reason in reasons)
            rows = (("-> Explanation", "Potential reasons:", ""),) + tuple(("", reason, "") for reason in reasons)
            add_warning(WarningType.INDEX_NOT_USED, explanation, filtering, rows, TableFlag.WARN)

        # Large estimated row scan
        rows_scanned = parse_row_count(row.text('rows'))
        if rows_scanned > row_threshold:
            lines.append(f"{prefix} INFO: High est. rows ({rows_scanned}).")
            lines.append("  > SUGGEST: Check WHERE/JOIN selectivity.")
            message = f"Est. rows: {rows_scanned}"
            add_warning(WarningType.HIGH_ROW_ESTIMATE, message, filtering,
                        (("-> Info", message, "(Check WHERE/JOIN selectivity)"),), TableFlag.WARN)
        elif rows_scanned > info_row_threshold:
            lines.append(f"{prefix} INFO: Est. rows: {rows_scanned}")

        extra = row.text('Extra', '')
        if 'Using filesort' in extra:
            suggestion = "Suggest: Index ORDER BY cols."
            if order_by:
                suggestion += f" Candidates: {_bracketed(order_by)}"
                rows = (("-> Index Suggestion", "Index ORDER BY columns:", _bracketed(order_by)),)
            else:
                rows = (("-> Index Suggestion", "Index ORDER BY columns:", "(Columns not identified)"),)
            lines.append(f"{prefix} WARN: 'Using filesort'.")
            lines.append(f"  > {suggestion}")
            add_warning(WarningType.FILESORT_USED, suggestion, order_by, rows, TableFlag.WARN)

        if 'Using temporary' in extra:
            suggestion = "Suggest: Temp table needed (slow). Common for complex GROUP BY/DISTINCT/UNION."
            if group_by:
                suggestion += f" Consider indexing GROUP BY cols: {_bracketed(group_by)}"
                rows = (("-> Index Suggestion", "Index GROUP BY columns:", _bracketed(group_by)),)
            else:
                suggestion += " Simplify query?"
                rows = (("-> Index Suggestion", "Consider indexing GROUP BY columns", "(If applicable)"),)
            lines.append(f"{prefix} WARN: 'Using temporary'.")
            lines.append(f"  > {suggestion}")
            add_warning(WarningType.TEMPORARY_TABLE_USED, suggestion, group_by, rows, TableFlag.WARN)

        return lines

    @staticmethod
    def _row_table(alias: Optional[str], alias_map: AliasMap,
                   usages: Mapping[TableKey, TableUsage]) -> Optional[str]:
        """Table an EXPLAIN row's table cell names, by alias or by full or simple table name."""
        if not alias:
            return None
        known = [key.name for key in usages if isinstance(key, KnownTable)]
        resolved = resolve_table_name(alias, alias_map, known)
        return resolved.name if isinstance(resolved, KnownTable) else None

    @staticmethod
    def _index_not_used_reasons(filtering: List[str], func_cols: List[str]) -> List[str]:
        reasons = []
        lowered_funcs = {col.lower() for col in func_cols}
        blocking = [col for col in filtering if col.lower() in lowered_funcs]
        if blocking:
            reasons.append(f"Func on indexed col(s): {_bracketed(blocking)}")
        mismatch = "Data type mismatch in JOIN/WHERE"
        if filtering:
            mismatch += f": {_bracketed(filtering)}"
        reasons.append(mismatch)
        reasons.append("Optimizer chose scan (small table / low selectivity / outdated stats)")
        if not blocking and func_cols:
            reasons.append(f"Note: Funcs in WHERE on: {_bracketed(func_cols)}. Overlap with keys?")
        return reasons


class WarningLedger:
    """Accumulates table warnings across correlation passes, one per (table, type)."""

    def __init__(self):
        self._warnings: Dict[Tuple[str, WarningType], TableWarning] = {}

    def record(self, warnings: Iterable[TableWarning]) -> List[TableWarning]:
        """Store warnings not seen before; return only the newly stored ones."""
        added = []
        for warning in warnings:
            if warning.key in self._warnings:
                logger.debug("Warning type '%s' already present for table '%s'. Skipping duplicate.",
                             warning.warning_type.label, warning.table)
                continue
            self._warnings[warning.key] = warning
            added.append(warning)
        return added

    def warnings_for(self, table: str) -> List[TableWarning]:
        return [w for (name, _), w in self._warnings.items() if name == table.lower()]

    def tables(self) -> Set[str]:
        return {w.table for w in self._warnings.values()}

    def __len__(self) -> int:
        return len(self._warnings)

    def __iter__(self):
        return iter(self._warnings.values())
