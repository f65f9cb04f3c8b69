"""
Per-table column usage extraction.

A single traversal records, for every table a statement touches, which columns
it reads and in which clauses: WHERE (and whether a function wraps the column
there), GROUP BY and ORDER BY.
"""
import logging
from typing import Dict, Iterable, Optional

from sqlglot import exp

from .models import AliasMap, AmbiguousTable, KnownTable, TableKey, TableUsage, UnresolvedQualifier
from .statement import DeleteStatement, SelectStatement, Statement, UpdateStatement
from .traversal import NodeKind, TraversalContext, Visitor, is_star, walk

logger = logging.getLogger(__name__)

TableUsages = Dict[TableKey, TableUsage]


def resolve_table_name(qualifier: Optional[str], alias_map: AliasMap, known_tables: Iterable[str]) -> TableKey:
    """Resolve a column qualifier to the table it refers to."""
    if qualifier:
        lowered = qualifier.lower()
        name = alias_map.get(lowered)
        if name is not None:
            return KnownTable(name)
        for known in known_tables:
            if known.lower() == lowered or known.rsplit('.', 1)[-1].lower() == lowered:
                return KnownTable(known)
        return UnresolvedQualifier(qualifier)
    if len(alias_map) == 1:
        return KnownTable(next(iter(alias_map.values())))
    return AmbiguousTable()


class _UsageVisitor(Visitor):
    def __init__(self, alias_map: AliasMap, usages: TableUsages):
        self.alias_map = alias_map
        self.usages = usages

    def enter(self, node: exp.Expression, kind: NodeKind, context: TraversalContext):
        if kind is NodeKind.RESULT_COLUMN and is_star(node):
            self._record_wildcard(node)
        elif kind is NodeKind.COLUMN_REF and not is_star(node):
            self._record_column(node, context)

    def _usage(self, key: TableKey) -> TableUsage:
        usage = self.usages.get(key)
        if usage is None:
            usage = self.usages[key] = TableUsage()
        return usage

    def _resolve(self, qualifier: str) -> TableKey:
        known = [key.name for key in self.usages if isinstance(key, KnownTable)]
        return resolve_table_name(qualifier, self.alias_map, known)

    def _record_column(self, column: exp.Column, context: TraversalContext) -> None:
        name = column.name
        usage = self._usage(self._resolve(column.table))
        usage.all_columns.add(name)
        if context.in_where:
            usage.where_columns.add(name)
            if context.in_function:
                usage.function_where_columns.add(name)
        if context.in_group_by:
            usage.group_by_columns.add(name)
        if context.in_order_by:
            usage.order_by_columns.add(name)

    def _record_wildcard(self, node: exp.Expression) -> None:
        qualifier = node.table if isinstance(node, exp.Column) else ''
        if qualifier:
            self._usage(self._resolve(qualifier)).all_columns.add(f"*({qualifier}.*)")
        else:
            # no way to tell which columns are needed, so every table gets the marker
            for usage in self.usages.values():
                usage.all_columns.add('*')


class ColumnUsageExtractor:
    def extract(self, statement: Statement, alias_map: AliasMap) -> TableUsages:
        """Build the usage record for every table the statement references."""
        usages: TableUsages = {}
        for table in statement.tables:
            key = KnownTable(table.name)
            if key in usages:
                continue
            if isinstance(statement, SelectStatement):
                alias_used = table.alias or table.name
            else:
                alias_used = table.alias or table.simple_name
            usages[key] = TableUsage(alias_used=alias_used)

        if isinstance(statement, (SelectStatement, UpdateStatement, DeleteStatement)):
            walk(statement.node, _UsageVisitor(alias_map, usages))

        logger.debug("Column usage extracted for %d table(s)", len(usages))
        return usages
