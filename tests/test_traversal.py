"""Test node classification and context threading in the tree walk."""

import sqlglot
from sqlglot import exp
from qanalyzer.core.traversal import (
    ROOT_CONTEXT,
    NodeKind,
    TraversalContext,
    Visitor,
    classify,
    walk,
)


class ColumnContexts(Visitor):
    def __init__(self):
        self.seen = {}

    def enter(self, node, kind, context):
        if kind is NodeKind.COLUMN_REF:
            self.seen[node.name] = context


def test_entering_returns_new_context():
    where = ROOT_CONTEXT.entering(NodeKind.WHERE_CLAUSE)
    inner = where.entering(NodeKind.FUNCTION_CALL)

    assert ROOT_CONTEXT == TraversalContext()
    assert where.in_where and not where.in_function
    assert inner.in_where and inner.in_function
    assert ROOT_CONTEXT.entering(NodeKind.CONSTANT) is ROOT_CONTEXT


def test_walk_threads_clause_state():
    tree = sqlglot.parse_one(
        "SELECT a FROM t WHERE UPPER(b) = 'X' AND c > 1 GROUP BY d ORDER BY e"
    )
    visitor = ColumnContexts()

    walk(tree, visitor)

    assert visitor.seen['a'] == TraversalContext()
    assert visitor.seen['b'].in_where and visitor.seen['b'].in_function
    assert visitor.seen['c'].in_where and not visitor.seen['c'].in_function
    assert visitor.seen['d'].in_group_by
    assert visitor.seen['e'].in_order_by and not visitor.seen['e'].in_where


def test_classify_result_column():
    tree = sqlglot.parse_one("SELECT COUNT(x) FROM t")
    count = tree.expressions[0]

    assert classify(count) == (NodeKind.RESULT_COLUMN, NodeKind.FUNCTION_CALL)
    assert classify(tree) == (NodeKind.SUBQUERY,)


def test_exists_is_not_a_function_call():
    tree = sqlglot.parse_one("SELECT 1 FROM t WHERE EXISTS (SELECT 1 FROM u WHERE u.id = t.id)")
    exists = tree.find(exp.Exists)

    assert classify(exists) == (NodeKind.OTHER,)


def test_enter_false_skips_children():
    class StopAtFunctions(ColumnContexts):
        def enter(self, node, kind, context):
            if kind is NodeKind.FUNCTION_CALL:
                return False
            return super().enter(node, kind, context)

    visitor = StopAtFunctions()
    walk(sqlglot.parse_one("SELECT LOWER(a), b FROM t"), visitor)

    assert set(visitor.seen) == {'b'}


def test_connectors_and_case_are_not_function_calls():
    tree = sqlglot.parse_one(
        "SELECT 1 FROM t WHERE a = 1 AND (b = 2 OR NOT c = 3) "
        "AND CASE WHEN d = 'x' THEN 1 ELSE 0 END = 1"
    )

    for node_type in (exp.And, exp.Or, exp.Not, exp.EQ, exp.Case, exp.Paren):
        assert classify(tree.find(node_type)) != (NodeKind.FUNCTION_CALL,)

    visitor = ColumnContexts()
    walk(tree, visitor)
    assert not any(context.in_function for context in visitor.seen.values())
    assert all(visitor.seen[name].in_where for name in 'abcd')


def test_walk_handles_long_or_chain():
    terms = " OR ".join(f"x = {i}" for i in range(1500))
    tree = sqlglot.parse_one(f"SELECT id FROM t WHERE {terms}")

    class CountColumns(Visitor):
        def __init__(self):
            self.entered = 0
            self.exited = 0

        def enter(self, node, kind, context):
            if kind is NodeKind.COLUMN_REF:
                self.entered += 1

        def exit(self, node, kind, context):
            if kind is NodeKind.COLUMN_REF:
                self.exited += 1

    visitor = CountColumns()
    walk(tree, visitor)

    assert visitor.entered == visitor.exited == 1501


def test_exit_follows_children():
    class Order(Visitor):
        def __init__(self):
            self.events = []

        def enter(self, node, kind, context):
            if kind in (NodeKind.COLUMN_REF, NodeKind.BINARY_OP):
                self.events.append(('enter', node.sql()))

        def exit(self, node, kind, context):
            if kind in (NodeKind.COLUMN_REF, NodeKind.BINARY_OP):
                self.events.append(('exit', node.sql()))

    visitor = Order()
    walk(sqlglot.parse_one("SELECT 1 FROM t WHERE a = b").args['where'], visitor)

    assert visitor.events == [
        ('enter', 'a = b'),
        ('enter', 'a'),
        ('exit', 'a'),
        ('enter', 'b'),
        ('exit', 'b'),
        ('exit', 'a = b'),
    ]
