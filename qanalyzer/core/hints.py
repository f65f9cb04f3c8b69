"""
Rule-based performance hints from statement structure.

Rules are applied in a fixed order and fire independently; the resulting list
is not sorted by severity.
"""
import logging
from typing import Dict, List, Mapping, Optional, Set

from sqlglot import exp

from .models import KnownTable, PerformanceHint, QueryStatistics, Severity, TableKey, TableUsage
from .statement import (
    DeleteStatement,
    InsertStatement,
    OtherStatement,
    SelectStatement,
    Statement,
    UpdateStatement,
)
from .traversal import NodeKind, TraversalContext, Visitor, is_star, walk

logger = logging.getLogger(__name__)

LARGE_VALUES_ROW_COUNT = 50

FUNCTION_ON_WHERE_TITLE = "Function on WHERE Column(s)"


def _is_plain_column(node: Optional[exp.Expression]) -> bool:
    return isinstance(node, exp.Column) and not is_star(node)


def _strip_quotes(text: str) -> str:
    text = text.strip()
    if len(text) >= 2 and text[0] == text[-1] and text[0] in ("'", '"'):
        return text[1:-1]
    return text


class _LeadingWildcardVisitor(Visitor):
    """Collects columns compared with LIKE '%...'."""

    def __init__(self):
        self.columns: List[str] = []

    def enter(self, node: exp.Expression, kind: NodeKind, context: TraversalContext):
        if not isinstance(node, (exp.Like, exp.ILike)):
            return None
        left, right = node.this, node.expression
        if not _is_plain_column(left) or not isinstance(right, exp.Literal) or not right.is_string:
            return None
        if _strip_quotes(right.sql()).startswith('%') and left.name not in self.columns:
            self.columns.append(left.name)
        return None


class _BaseColumnCollector(Visitor):
    """Column names under an expression, not looking into function calls or subqueries."""

    def __init__(self):
        self.columns: Set[str] = set()

    def enter(self, node: exp.Expression, kind: NodeKind, context: TraversalContext):
        if kind in (NodeKind.FUNCTION_CALL, NodeKind.SUBQUERY):
            return False
        if kind is NodeKind.COLUMN_REF and not is_star(node):
            self.columns.add(node.name.lower())
        return None


def base_columns(node: Optional[exp.Expression]) -> Set[str]:
    collector = _BaseColumnCollector()
    walk(node, collector)
    return collector.columns


class _OrVisitor(Visitor):
    """Finds an OR whose operands filter on different columns.

    Base-column sets are built bottom-up on exit, one per node, so each node
    is looked at once however deeply the ORs nest.
    """

    def __init__(self):
        self.found = False
        self._columns: Dict[int, Set[str]] = {}

    def enter(self, node: exp.Expression, kind: NodeKind, context: TraversalContext):
        if kind in (NodeKind.FUNCTION_CALL, NodeKind.SUBQUERY):
            return False
        return None

    def exit(self, node: exp.Expression, kind: NodeKind, context: TraversalContext):
        if kind is NodeKind.RESULT_COLUMN:
            return
        if isinstance(node, exp.Or):
            left = self._columns.get(id(node.left), set())
            right = self._columns.get(id(node.right), set())
            if left and right and left != right:
                self.found = True

        parts = [self._columns.pop(id(child), None) for child in node.iter_expressions()]
        parts = [part for part in parts if part is not None]
        if kind is NodeKind.COLUMN_REF:
            columns = set() if is_star(node) else {node.name.lower()}
        elif kind in (NodeKind.FUNCTION_CALL, NodeKind.SUBQUERY) or not parts:
            columns = set()
        else:
            # reuse the first operand's set; left-deep chains then grow one set
            columns = parts[0]
            for part in parts[1:]:
                columns |= part
        self._columns[id(node)] = columns


class HeuristicHintEngine:
    def generate(self, statement: Statement, usages: Mapping[TableKey, TableUsage],
                 stats: QueryStatistics) -> List[PerformanceHint]:
        """Apply the hint rules for the statement's kind."""
        if isinstance(statement, SelectStatement):
            return self._select_hints(statement, usages, stats)
        if isinstance(statement, InsertStatement):
            return self._insert_hints(statement)
        if isinstance(statement, (UpdateStatement, DeleteStatement)):
            return self._modification_hints(statement, usages, stats)
        if isinstance(statement, OtherStatement):
            return [PerformanceHint(
                Severity.INFO, "DDL/Custom Statement",
                f"Statement type: {statement.statement_type}",
                "Structural analysis is basic for this type.",
            )]
        raise TypeError(f"Unsupported statement kind: {type(statement).__name__}")

    @staticmethod
    def empty_query_hint() -> PerformanceHint:
        return PerformanceHint(
            Severity.INFO, "Empty Query",
            "The input string contained no SQL statements.",
            "Enter a valid SQL query.",
        )

    def _select_hints(self, select: SelectStatement, usages: Mapping[TableKey, TableUsage],
                      stats: QueryStatistics) -> List[PerformanceHint]:
        hints = []

        if stats.get('uses_select_star'):
            hints.append(PerformanceHint(
                Severity.WARN, "Avoid SELECT *",
                "Retrieving all columns (*) forces the database to fetch potentially unnecessary data, "
                "increasing network traffic and memory usage. It also prevents certain index optimizations "
                "(covering indexes).",
                "Explicitly list only the columns your application requires in the SELECT clause.",
            ))

        for key, usage in usages.items():
            if usage.function_where_columns:
                hints.append(PerformanceHint(
                    Severity.SEVERE, FUNCTION_ON_WHERE_TITLE,
                    "Applying a function (like YEAR(), UPPER(), CONCAT()) to a column in the WHERE clause often "
                    "prevents the database from using an index on that column, forcing a slower table scan. "
                    "This is because the database must calculate the function's result for every row before "
                    "comparing.",
                    "Rewrite the condition to apply functions to the constant value instead of the column, if "
                    "possible (e.g., `date_col >= '2024-01-01'` instead of `YEAR(date_col) = 2024`). Consider "
                    "function-based indexes if rewriting isn't feasible (database-specific). Columns involved: "
                    f"[{', '.join(sorted(usage.function_where_columns))}] in table '{key}'.",
                ))

        if not stats.get('has_where_clause'):
            table_count = stats.get('table_count', 0)
            if table_count > 1:
                hints.append(PerformanceHint(
                    Severity.SEVERE, "Potential Cartesian Product",
                    f"The query joins multiple tables ({table_count}) but lacks a WHERE clause to filter the "
                    "results *after* joining. If JOIN conditions are missing or insufficient, this can result "
                    "in a 'Cartesian Product' - every row from one table combined with every row from another, "
                    "which is usually extremely large and slow.",
                    "Ensure correct and sufficient JOIN conditions (`ON tableA.col = tableB.col`) are specified "
                    "for all joined tables. Add a WHERE clause if further filtering is needed.",
                ))
            elif table_count == 1:
                hints.append(PerformanceHint(
                    Severity.WARN, "Potential Full Table Scan (No WHERE)",
                    "The query selects from a single table without a WHERE clause. This forces the database "
                    "to read every row (Full Table Scan), which can be slow for large tables.",
                    "Add a WHERE clause to filter rows if you don't need the entire table's data. If the table "
                    "is intentionally small, this might be acceptable.",
                ))

        for sort_key in select.order_by:
            if not _is_plain_column(sort_key):
                hints.append(PerformanceHint(
                    Severity.WARN, "Expression in ORDER BY",
                    f"The ORDER BY clause uses an expression ('{self._expression_text(sort_key)}') instead of "
                    "directly referencing a column. The database must calculate this expression for rows "
                    "*before* sorting, preventing the use of standard indexes for sorting.",
                    "If possible, sort directly by indexed columns. Consider adding a function-based index if "
                    "sorting by the expression is essential (database-specific).",
                ))

        for group_expr in select.group_by:
            if not _is_plain_column(group_expr):
                hints.append(PerformanceHint(
                    Severity.INFO, "Expression in GROUP BY",
                    f"The GROUP BY clause uses an expression ('{self._expression_text(group_expr)}'). While "
                    "valid, grouping directly by columns might allow for better optimization or index usage "
                    "in some databases.",
                    "Ensure grouping by the expression is necessary. Grouping by simple columns is sometimes "
                    "more efficient.",
                ))

        if select.where is not None:
            wildcard = _LeadingWildcardVisitor()
            walk(select.where, wildcard)
            if wildcard.columns:
                hints.append(PerformanceHint(
                    Severity.WARN, "LIKE with Leading Wildcard",
                    f"The WHERE clause uses `LIKE '%...'` (a leading wildcard) on column(s): "
                    f"[{', '.join(wildcard.columns)}]. Standard B-tree indexes cannot be used efficiently for "
                    "this type of search, often resulting in a full table/index scan.",
                    "Avoid leading wildcards if possible. Consider full-text indexing if searching within text "
                    "is a primary requirement. If trailing wildcards (`LIKE 'abc%'`) are sufficient, they can "
                    "use standard indexes.",
                ))

            or_visitor = _OrVisitor()
            walk(select.where, or_visitor)
            if or_visitor.found:
                hints.append(PerformanceHint(
                    Severity.INFO, "OR Condition on Different Columns",
                    "The WHERE clause uses OR to combine conditions on different columns. Databases sometimes "
                    "struggle to use multiple indexes efficiently for OR conditions, potentially leading to "
                    "scans or less optimal index merges.",
                    "Consider rewriting the query using UNION ALL if appropriate, especially if each part of "
                    "the OR condition could use a separate index effectively. Evaluate the EXPLAIN plan "
                    "carefully.",
                ))

        if stats.get('is_distinct'):
            hints.append(PerformanceHint(
                Severity.INFO, "SELECT DISTINCT Usage",
                "The query uses SELECT DISTINCT to remove duplicate rows. This requires the database to perform "
                "extra work (often sorting or hashing) on the result set, which can be resource-intensive for "
                "large results.",
                "Ensure DISTINCT is truly necessary. Sometimes duplicates can be avoided by refining JOIN "
                "conditions or using GROUP BY instead.",
            ))

        if not hints:
            hints.append(PerformanceHint(
                Severity.INFO, "No Obvious Structural Issues",
                "The query structure doesn't show common beginner anti-patterns.",
                "Review the database-specific EXPLAIN plan for detailed execution analysis and index usage.",
            ))
        return hints

    def _insert_hints(self, insert: InsertStatement) -> List[PerformanceHint]:
        hints = []
        if insert.source_select is not None:
            hints.append(PerformanceHint(
                Severity.INFO, "INSERT...SELECT",
                "Data is inserted based on a SELECT subquery.",
                "Analyze the SELECT subquery separately for potential performance issues. Ensure target table "
                "indexes are maintained during insert.",
            ))
        elif insert.values_row_count is not None and insert.values_row_count > LARGE_VALUES_ROW_COUNT:
            hints.append(PerformanceHint(
                Severity.INFO, "Large VALUES List",
                f"INSERT uses many VALUES clauses ({insert.values_row_count}).",
                "For very large numbers of rows, consider database-specific bulk insert utilities or batching "
                "for better performance.",
            ))
        return hints or [self._basic_analysis_hint(insert)]

    def _modification_hints(self, statement, usages: Mapping[TableKey, TableUsage],
                            stats: QueryStatistics) -> List[PerformanceHint]:
        hints = []
        target = stats.get('target_table', 'UNKNOWN')
        verb = statement.statement_type
        if statement.where is None:
            if isinstance(statement, UpdateStatement):
                hints.append(PerformanceHint(
                    Severity.SEVERE, "UPDATE Without WHERE",
                    f"This statement will update *all* rows in the table '{target}'.",
                    "ALWAYS include a WHERE clause unless you explicitly intend to modify the entire table. "
                    "Double-check your logic.",
                ))
            else:
                hints.append(PerformanceHint(
                    Severity.SEVERE, "DELETE Without WHERE",
                    f"This statement will delete *all* rows from the table '{target}'.",
                    "ALWAYS include a WHERE clause unless you explicitly intend to clear the entire table "
                    "(consider TRUNCATE if applicable and appropriate). Double-check your logic.",
                ))
        else:
            usage = usages.get(KnownTable(target))
            if usage is None and len(usages) == 1:
                usage = next(iter(usages.values()))
            if usage is None:
                logger.warning("Could not find table details for '%s' to check WHERE functions.", target)
            elif usage.function_where_columns:
                hints.append(PerformanceHint(
                    Severity.WARN, FUNCTION_ON_WHERE_TITLE,
                    f"Applying a function to column(s) [{', '.join(sorted(usage.function_where_columns))}] "
                    f"in the WHERE clause of this {verb} often prevents index usage.",
                    "Rewrite the condition to apply functions to constant values if possible, or consider "
                    "function-based indexes.",
                ))
        return hints or [self._basic_analysis_hint(statement)]

    @staticmethod
    def _basic_analysis_hint(statement: Statement) -> PerformanceHint:
        return PerformanceHint(
            Severity.INFO, "Basic Analysis Complete",
            "No major structural issues detected for this statement type.",
            f"Review database-specific guidelines for {statement.statement_type}.",
        )

    @staticmethod
    def _expression_text(node: Optional[exp.Expression]) -> str:
        return node.sql() if node is not None else 'NULL'
