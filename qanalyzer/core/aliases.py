"""
Alias resolution for a statement's FROM list.
"""
from typing import Iterable

from .models import AliasMap
from .statement import TableRef


def build_alias_map(tables: Iterable[TableRef]) -> AliasMap:
    """Map each lower-cased alias (or bare table name) to its canonical table name.

    A repeated alias keeps the last table registered under it.
    """
    alias_map: AliasMap = {}
    for table in tables:
        alias = table.alias or table.name
        alias_map[alias.lower()] = table.name
    return alias_map


class AliasResolver:
    @staticmethod
    def build(statement) -> AliasMap:
        return build_alias_map(getattr(statement, 'tables', None) or [])
