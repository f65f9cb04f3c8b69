"""
Statement model for analysis.

Wraps a parsed sqlglot expression in one of a closed set of statement kinds
(select, insert, update, delete, other) exposing the clause lists the
analyzers need. The sqlglot tree stays available as ``node`` for traversal.
"""
from typing import List, Optional, Union
from dataclasses import dataclass, field

from sqlglot import exp

SET_OPERATIONS = (exp.Except, exp.Intersect, exp.Union)


@dataclass(frozen=True)
class TableRef:
    name: str
    alias: Optional[str] = None

    @property
    def simple_name(self) -> str:
        return self.name.rsplit('.', 1)[-1]


@dataclass(frozen=True)
class JoinRef:
    kind: str
    table: Optional[TableRef] = None


@dataclass
class SelectStatement:
    node: exp.Expression
    sql: str
    tables: List[TableRef] = field(default_factory=list)
    joins: List[JoinRef] = field(default_factory=list)
    where: Optional[exp.Expression] = None
    group_by: List[exp.Expression] = field(default_factory=list)
    order_by: List[exp.Expression] = field(default_factory=list)
    result_columns: List[exp.Expression] = field(default_factory=list)
    distinct: bool = False
    has_limit: bool = False
    set_operator: str = 'none'

    statement_type = 'SELECT'


@dataclass
class InsertStatement:
    node: exp.Expression
    sql: str
    tables: List[TableRef] = field(default_factory=list)
    target_table: Optional[str] = None
    column_count: int = 0
    source_select: Optional[exp.Expression] = None
    values_row_count: Optional[int] = None

    statement_type = 'INSERT'


@dataclass
class UpdateStatement:
    node: exp.Expression
    sql: str
    tables: List[TableRef] = field(default_factory=list)
    target_table: Optional[str] = None
    set_column_count: int = 0
    where: Optional[exp.Expression] = None

    statement_type = 'UPDATE'


@dataclass
class DeleteStatement:
    node: exp.Expression
    sql: str
    tables: List[TableRef] = field(default_factory=list)
    target_table: Optional[str] = None
    where: Optional[exp.Expression] = None

    statement_type = 'DELETE'


@dataclass
class OtherStatement:
    node: exp.Expression
    sql: str
    tables: List[TableRef] = field(default_factory=list)
    kind_name: str = 'UNKNOWN'

    @property
    def statement_type(self) -> str:
        return self.kind_name


Statement = Union[SelectStatement, InsertStatement, UpdateStatement, DeleteStatement, OtherStatement]
EXPLAINABLE = (SelectStatement, InsertStatement, UpdateStatement, DeleteStatement)


def table_name(table: exp.Table) -> str:
    """Dotted name of a table reference as written (catalog.db.table)."""
    parts = [table.catalog, table.db, table.name]
    return '.'.join(part for part in parts if part)


def _clause(node: exp.Expression, key: str):
    # newer sqlglot releases suffix keyword-named args with an underscore
    value = node.args.get(key)
    if value is None:
        value = node.args.get(f"{key}_")
    return value


def _source_ref(source: exp.Expression) -> Optional[TableRef]:
    if isinstance(source, exp.Table) and source.name:
        return TableRef(name=table_name(source), alias=source.alias or None)
    if isinstance(source, exp.Subquery) and source.alias:
        # derived tables are addressed by their alias only
        return TableRef(name=source.alias, alias=source.alias)
    return None


def _join_kind(join: exp.Join) -> str:
    parts = [join.method, join.side, join.kind]
    words = [part.upper() for part in parts if part]
    if words:
        return '_'.join(words)
    if join.args.get('on') is None and not join.args.get('using'):
        # FROM a, b
        return 'COMMA'
    return 'JOIN'


def _leftmost_select(node: exp.Expression) -> exp.Expression:
    while isinstance(node, SET_OPERATIONS + (exp.Subquery,)):
        node = node.this
    return node


def _set_operator(node: exp.Expression) -> str:
    if isinstance(node, exp.Except):
        return 'EXCEPT'
    if isinstance(node, exp.Intersect):
        return 'INTERSECT'
    if isinstance(node, exp.Union):
        return 'UNION' if node.args.get('distinct', True) else 'UNION_ALL'
    return 'none'


def _from_tables(node: exp.Expression) -> List[TableRef]:
    tables = []
    from_clause = _clause(node, 'from')
    if from_clause is not None:
        for source in [from_clause.this] + list(from_clause.expressions or []):
            ref = _source_ref(source)
            if ref:
                tables.append(ref)
    for join in node.args.get('joins') or []:
        ref = _source_ref(join.this)
        if ref:
            tables.append(ref)
    return tables


def _all_tables(node: exp.Expression) -> List[TableRef]:
    tables = []
    seen = set()
    for table in node.find_all(exp.Table):
        if not table.name:
            continue
        ref = TableRef(name=table_name(table), alias=table.alias or None)
        if ref.name not in seen:
            seen.add(ref.name)
            tables.append(ref)
    return tables


def _where_condition(node: exp.Expression) -> Optional[exp.Expression]:
    where = node.args.get('where')
    return where.this if where is not None else None


def _select_statement(node: exp.Expression, sql: str) -> SelectStatement:
    select = _leftmost_select(node)
    order = node.args.get('order') or select.args.get('order')
    group = select.args.get('group')
    has_limit = any(
        holder.args.get(key) is not None
        for holder in (node, select)
        for key in ('limit', 'fetch')
    )
    return SelectStatement(
        node=node,
        sql=sql,
        tables=_from_tables(select),
        joins=[
            JoinRef(kind=_join_kind(join), table=_source_ref(join.this))
            for join in select.args.get('joins') or []
        ],
        where=_where_condition(select),
        group_by=list(group.expressions) if group is not None else [],
        order_by=[
            item.this if isinstance(item, exp.Ordered) else item
            for item in (order.expressions if order is not None else [])
        ],
        result_columns=list(select.expressions),
        distinct=select.args.get('distinct') is not None,
        has_limit=has_limit,
        set_operator=_set_operator(node),
    )


def _insert_statement(node: exp.Insert, sql: str) -> InsertStatement:
    target = node.this
    column_count = 0
    if isinstance(target, exp.Schema):
        column_count = len(target.expressions)
        target = target.this
    source = node.expression
    source_select = None
    values_row_count = None
    if isinstance(source, (exp.Select, exp.Subquery) + SET_OPERATIONS):
        source_select = source
    elif isinstance(source, exp.Values):
        values_row_count = len(source.expressions)
    return InsertStatement(
        node=node,
        sql=sql,
        tables=_all_tables(node),
        target_table=table_name(target) if isinstance(target, exp.Table) else None,
        column_count=column_count,
        source_select=source_select,
        values_row_count=values_row_count,
    )


def _dml_tables(node: exp.Expression) -> List[TableRef]:
    tables = []
    target = _source_ref(node.this) if node.this is not None else None
    if target:
        tables.append(target)
    tables.extend(_from_tables(node))
    for source in node.args.get('using') or []:
        ref = _source_ref(source)
        if ref:
            tables.append(ref)
    return tables


def to_statement(node: exp.Expression, dialect: Optional[str] = None) -> Statement:
    """Convert a parsed sqlglot expression into a statement kind."""
    sql = node.sql(dialect=dialect)
    if isinstance(node, (exp.Select,) + SET_OPERATIONS):
        return _select_statement(node, sql)
    if isinstance(node, exp.Insert):
        return _insert_statement(node, sql)
    if isinstance(node, exp.Update):
        return UpdateStatement(
            node=node,
            sql=sql,
            tables=_dml_tables(node),
            target_table=table_name(node.this) if isinstance(node.this, exp.Table) else None,
            set_column_count=len(node.expressions),
            where=_where_condition(node),
        )
    if isinstance(node, exp.Delete):
        return DeleteStatement(
            node=node,
            sql=sql,
            tables=_dml_tables(node),
            target_table=table_name(node.this) if isinstance(node.this, exp.Table) else None,
            where=_where_condition(node),
        )
    if isinstance(node, exp.Command):
        kind_name = str(node.this).upper()
    else:
        kind_name = node.key.upper()
    return OtherStatement(node=node, sql=sql, tables=_all_tables(node), kind_name=kind_name)


def explainable_statement(statements: List[Statement]) -> Optional[Statement]:
    """First statement EXPLAIN can run against."""
    for statement in statements:
        if isinstance(statement, EXPLAINABLE):
            return statement
    return None
