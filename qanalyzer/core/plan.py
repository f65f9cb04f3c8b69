"""
PostgreSQL plan flattening.

Turns the node tree of ``EXPLAIN (FORMAT JSON)`` into per-table rows shaped
like MySQL's tabular EXPLAIN (table, type, possible_keys, key, rows, Extra),
so both vendors feed the same correlator.
"""
from typing import Any, Dict, List, Set
from dataclasses import dataclass, field

from .models import ExplainRow

# PostgreSQL scan node -> MySQL access type
ACCESS_TYPES = {
    'Seq Scan': 'ALL',
    'Parallel Seq Scan': 'ALL',
    'Index Scan': 'ref',
    'Index Only Scan': 'ref',
    'Bitmap Heap Scan': 'range',
    'Bitmap Index Scan': 'range',
}
SORT_NODES = {'Sort', 'Incremental Sort'}
TEMPORARY_NODES = {'HashAggregate', 'Materialize', 'SetOp'}


@dataclass
class NodeMetrics:
    node_type: str
    relation_name: str
    alias: str
    index_name: str
    plan_rows: float
    filter: str
    children: List['NodeMetrics'] = field(default_factory=list)


class PlanFlattener:
    @staticmethod
    def extract_node_metrics(node: Dict[str, Any]) -> NodeMetrics:
        """Extract the fields used for correlation from a plan node."""
        children = []
        if 'Plans' in node:
            for child in node['Plans']:
                children.append(PlanFlattener.extract_node_metrics(child))

        return NodeMetrics(
            node_type=node.get('Node Type', ''),
            relation_name=node.get('Relation Name', ''),
            alias=node.get('Alias', ''),
            index_name=node.get('Index Name', ''),
            plan_rows=node.get('Plan Rows', 0),
            filter=node.get('Filter', '') or node.get('Index Cond', '') or node.get('Recheck Cond', ''),
            children=children,
        )

    @staticmethod
    def flatten(plan: Any) -> List[ExplainRow]:
        """Flatten an EXPLAIN (FORMAT JSON) document into table rows."""
        if isinstance(plan, list):
            plan = plan[0]
        root = plan['Plan'] if 'Plan' in plan else plan
        rows: List[ExplainRow] = []
        PlanFlattener._flatten_node(PlanFlattener.extract_node_metrics(root), set(), rows)
        return rows

    @staticmethod
    def _flatten_node(node: NodeMetrics, pending: Set[str], rows: List[ExplainRow]) -> None:
        if node.node_type in SORT_NODES:
            pending.add('Using filesort')
        elif node.node_type in TEMPORARY_NODES:
            pending.add('Using temporary')

        if node.relation_name and node.node_type != 'Bitmap Index Scan':
            rows.append(PlanFlattener._to_row(len(rows) + 1, node, pending))
            # the sort/temp note belongs to the first table read beneath it
            pending.clear()

        for child in node.children:
            PlanFlattener._flatten_node(child, pending, rows)

    @staticmethod
    def _to_row(row_id: int, node: NodeMetrics, notes: Set[str]) -> ExplainRow:
        index_name = node.index_name or PlanFlattener._bitmap_index(node)
        extra = []
        if node.filter:
            extra.append('Using where')
        extra.extend(sorted(notes))
        return ExplainRow({
            'id': row_id,
            'table': node.alias or node.relation_name,
            'type': ACCESS_TYPES.get(node.node_type, node.node_type.lower()),
            'possible_keys': index_name,
            'key': index_name,
            'rows': node.plan_rows,
            'Extra': '; '.join(extra),
        })

    @staticmethod
    def _bitmap_index(node: NodeMetrics) -> str:
        for child in node.children:
            if child.node_type == 'Bitmap Index Scan' and child.index_name:
                return child.index_name
        return ''
