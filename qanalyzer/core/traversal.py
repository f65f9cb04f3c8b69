"""
Depth-first traversal over sqlglot trees with enter/exit hooks keyed by node kind.

Clause state (inside WHERE, inside a function call, inside GROUP BY / ORDER BY)
is carried in an immutable TraversalContext threaded through the walk,
so visitors hold no traversal flags of their own.
"""
from typing import List, Optional, Tuple
from dataclasses import dataclass, replace
from enum import Enum

from sqlglot import exp


class NodeKind(Enum):
    TABLE_REF = 'table_ref'
    COLUMN_REF = 'column_ref'
    FUNCTION_CALL = 'function_call'
    WHERE_CLAUSE = 'where_clause'
    GROUP_BY = 'group_by'
    ORDER_BY = 'order_by'
    RESULT_COLUMN = 'result_column'
    BINARY_OP = 'binary_op'
    CONSTANT = 'constant'
    SUBQUERY = 'subquery'
    OTHER = 'other'


@dataclass(frozen=True)
class TraversalContext:
    in_where: bool = False
    in_function: bool = False
    in_group_by: bool = False
    in_order_by: bool = False

    def entering(self, kind: NodeKind) -> 'TraversalContext':
        """Context for the subtree rooted at a node of the given kind."""
        if kind is NodeKind.WHERE_CLAUSE:
            return replace(self, in_where=True)
        if kind is NodeKind.FUNCTION_CALL:
            return replace(self, in_function=True)
        if kind is NodeKind.GROUP_BY:
            return replace(self, in_group_by=True)
        if kind is NodeKind.ORDER_BY:
            return replace(self, in_order_by=True)
        return self


ROOT_CONTEXT = TraversalContext()


# Nodes sqlglot may model as Func subclasses that are operators or
# expressions in SQL text; EXISTS is a subquery predicate.
NON_CALL_NODES = (
    exp.Connector,
    exp.Predicate,
    exp.Unary,
    exp.Add, exp.Sub, exp.Mul, exp.Div, exp.Mod, exp.IntDiv, exp.DPipe,
    exp.BitwiseAnd, exp.BitwiseOr, exp.BitwiseXor,
    exp.BitwiseLeftShift, exp.BitwiseRightShift,
    exp.Case, exp.If,
    exp.Exists,
)


def is_function_call(node: exp.Expression) -> bool:
    return isinstance(node, exp.Func) and not isinstance(node, NON_CALL_NODES)


def is_star(node: exp.Expression) -> bool:
    if isinstance(node, exp.Star):
        return True
    return isinstance(node, exp.Column) and isinstance(node.this, exp.Star)


def is_result_column(node: exp.Expression) -> bool:
    return isinstance(node.parent, exp.Select) and node.arg_key == 'expressions'


def _own_kind(node: exp.Expression) -> NodeKind:
    if isinstance(node, exp.Column):
        return NodeKind.COLUMN_REF
    if isinstance(node, exp.Table):
        return NodeKind.TABLE_REF
    if is_function_call(node):
        return NodeKind.FUNCTION_CALL
    if isinstance(node, exp.Where):
        return NodeKind.WHERE_CLAUSE
    if isinstance(node, exp.Group):
        return NodeKind.GROUP_BY
    if isinstance(node, exp.Order):
        return NodeKind.ORDER_BY
    if isinstance(node, (exp.Select, exp.Union, exp.Intersect, exp.Except)):
        return NodeKind.SUBQUERY
    if isinstance(node, exp.Binary):
        return NodeKind.BINARY_OP
    if isinstance(node, (exp.Literal, exp.Null, exp.Boolean)):
        return NodeKind.CONSTANT
    return NodeKind.OTHER


def classify(node: exp.Expression) -> Tuple[NodeKind, ...]:
    """Kinds a node is visited as; a result column is also visited as its own kind."""
    own = _own_kind(node)
    if is_result_column(node):
        return (NodeKind.RESULT_COLUMN, own)
    return (own,)


class Visitor:
    """Base visitor; enter() may return False to skip a node's children."""

    def enter(self, node: exp.Expression, kind: NodeKind, context: TraversalContext) -> Optional[bool]:
        return None

    def exit(self, node: exp.Expression, kind: NodeKind, context: TraversalContext) -> None:
        return None


def walk(node: exp.Expression, visitor: Visitor, context: TraversalContext = ROOT_CONTEXT) -> None:
    """Visit node and its subtree depth-first.

    Uses an explicit stack, so long AND/OR chains (which sqlglot nests
    left-deep) do not hit the interpreter's recursion limit.
    """
    if node is None:
        return
    # (node, context, kinds); kinds is set once the node was entered and only its exit is pending
    stack: List[Tuple[exp.Expression, TraversalContext, Optional[Tuple[NodeKind, ...]]]] = [
        (node, context, None)
    ]
    while stack:
        current, current_context, entered = stack.pop()
        if entered is not None:
            for kind in reversed(entered):
                visitor.exit(current, kind, current_context)
            continue

        kinds = classify(current)
        descend = True
        for kind in kinds:
            current_context = current_context.entering(kind)
            if visitor.enter(current, kind, current_context) is False:
                descend = False
        stack.append((current, current_context, kinds))
        if descend:
            children = list(current.iter_expressions())
            stack.extend((child, current_context, None) for child in reversed(children))
