# dualflow/graph/highlight.py
"""Hover highlighting derived from the relation index"""

from dataclasses import replace
from typing import AbstractSet, FrozenSet, Iterable, List, Optional

from .models import Node
from .relations import RelationIndex


def project(relations: RelationIndex, hovered_id: Optional[str]) -> FrozenSet[str]:
    """Ids to emphasize in both graphs while `hovered_id` is hovered"""
    if hovered_id is None:
        return frozenset()
    return frozenset((hovered_id, *relations.relations_of(hovered_id)))


def apply_highlight(nodes: Iterable[Node], highlighted: AbstractSet[str]) -> List[Node]:
    """Copies of `nodes` with the transient highlighted flag set"""
    return [replace(node, highlighted=node.id in highlighted) for node in nodes]
