"""
Structural statistics for a parsed statement.
"""
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from sqlglot import exp

from .models import QueryStatistics, TableKey, TableUsage
from .statement import DeleteStatement, InsertStatement, SelectStatement, Statement, UpdateStatement
from .traversal import NodeKind, TraversalContext, Visitor, is_star, walk

# node types counted towards WHERE condition complexity
CONDITION_NODES = (
    exp.And, exp.Or,
    exp.EQ, exp.NEQ, exp.GT, exp.GTE, exp.LT, exp.LTE, exp.NullSafeEQ, exp.NullSafeNEQ,
    exp.Paren,
    exp.Like, exp.ILike,
    exp.Is,
    exp.Between,
    exp.In,
)


class _CountingVisitor(Visitor):
    def __init__(self):
        self.function_call_count = 0
        self.aggregate_function_count = 0
        self.window_function_count = 0
        self.select_star_count = 0
        self.where_condition_count = 0

    def enter(self, node: exp.Expression, kind: NodeKind, context: TraversalContext):
        if kind is NodeKind.FUNCTION_CALL:
            self.function_call_count += 1
            if isinstance(node, exp.AggFunc):
                self.aggregate_function_count += 1
            if isinstance(node.parent, exp.Window) and node.arg_key == 'this':
                self.window_function_count += 1
        elif kind is NodeKind.RESULT_COLUMN:
            if is_star(node):
                self.select_star_count += 1
        if context.in_where and isinstance(node, CONDITION_NODES) and kind is not NodeKind.RESULT_COLUMN:
            self.where_condition_count += 1


class QueryStatisticsCollector:
    def collect(self, statement: Statement,
                usages: Optional[Mapping[TableKey, TableUsage]] = None) -> QueryStatistics:
        """Gather structural counters for a statement."""
        if isinstance(statement, SelectStatement):
            stats = self._select_stats(statement)
        else:
            stats = self._general_stats(statement)

        if usages is not None:
            stats['total_where_columns_used'] = sum(len(u.where_columns) for u in usages.values())
            stats['total_functions_on_where_columns'] = sum(
                len(u.function_where_columns) for u in usages.values()
            )
        return MappingProxyType(stats)

    @staticmethod
    def _select_stats(select: SelectStatement) -> Dict[str, Any]:
        counter = _CountingVisitor()
        walk(select.node, counter)

        return {
            'select_item_count': len(select.result_columns),
            'uses_select_star': counter.select_star_count > 0,
            'table_count': len(select.tables),
            'join_count': len(select.joins),
            'join_types': [join.kind for join in select.joins],
            'has_where_clause': select.where is not None,
            'where_condition_complexity': counter.where_condition_count,
            'has_group_by_clause': bool(select.group_by),
            'group_by_item_count': len(select.group_by),
            'has_order_by_clause': bool(select.order_by),
            'order_by_item_count': len(select.order_by),
            'has_limit_clause': select.has_limit,
            'is_distinct': select.distinct,
            'set_operation': select.set_operator.upper() if select.set_operator != 'none' else 'None',
            'function_call_count': counter.function_call_count,
            'window_function_count': counter.window_function_count,
            'aggregate_function_count': counter.aggregate_function_count,
        }

    @staticmethod
    def _general_stats(statement: Statement) -> Dict[str, Any]:
        """Basic stats for non-SELECT statements."""
        stats: Dict[str, Any] = {}
        if isinstance(statement, InsertStatement):
            stats['target_table'] = statement.target_table or 'UNKNOWN'
            stats['column_count'] = statement.column_count
            if statement.source_select is not None:
                stats['insert_source'] = 'SELECT Subquery'
            elif statement.values_row_count is not None:
                stats['insert_source'] = f"VALUES Clause ({statement.values_row_count} rows)"
            else:
                stats['insert_source'] = 'Default'
        elif isinstance(statement, UpdateStatement):
            stats['target_table'] = statement.target_table or 'UNKNOWN'
            stats['set_column_count'] = statement.set_column_count
            stats['has_where_clause'] = statement.where is not None
        elif isinstance(statement, DeleteStatement):
            stats['target_table'] = statement.target_table or 'UNKNOWN'
            stats['has_where_clause'] = statement.where is not None
        else:
            stats['statement_kind'] = 'DDL/Custom'
        return stats
