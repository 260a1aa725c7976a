# dualflow/graph/relations.py
"""
Relation Index - symmetric cross-graph correspondence between nodes

Relations are independent of edges: an edge lives inside one graph, a
relation always links a left node to a right node. The index itself is keyed
by node id regardless of side; side checks happen in GraphStore.
"""

from typing import Dict, Iterator, List, Mapping, Iterable, Tuple


class RelationIndex:
    """Symmetric adjacency map with insertion-ordered neighbour sets"""

    def __init__(self) -> None:
        # dict-as-ordered-set keeps insertion order of related ids
        self._relations: Dict[str, Dict[str, None]] = {}

    def relate(self, id_a: str, id_b: str) -> None:
        """Link two nodes in both directions; idempotent"""
        if id_a == id_b:
            raise ValueError(f"A node cannot be related to itself: {id_a}")
        self._relations.setdefault(id_a, {})[id_b] = None
        self._relations.setdefault(id_b, {})[id_a] = None

    def unrelate(self, id_a: str, id_b: str) -> None:
        """Remove the link in both directions, dropping emptied entries"""
        self._discard(id_a, id_b)
        self._discard(id_b, id_a)

    def relations_of(self, node_id: str) -> Tuple[str, ...]:
        return tuple(self._relations.get(node_id, ()))

    def prune_node(self, node_id: str) -> None:
        """Remove `node_id` as a key and from every other entry"""
        related = self._relations.pop(node_id, {})
        for other in related:
            self._discard(other, node_id)
        # Entries written by older clients may be one-directional
        for other in [key for key, targets in self._relations.items() if node_id in targets]:
            self._discard(other, node_id)

    def pairs(self) -> Iterator[Tuple[str, str]]:
        """Each relation once, in first-seen order"""
        seen = set()
        for id_a, targets in self._relations.items():
            for id_b in targets:
                key = frozenset((id_a, id_b))
                if key not in seen:
                    seen.add(key)
                    yield id_a, id_b

    def to_dict(self) -> Dict[str, List[str]]:
        return {node_id: list(targets) for node_id, targets in self._relations.items()}

    @classmethod
    def from_dict(cls, mapping: Mapping[str, Iterable[str]]) -> "RelationIndex":
        """Build an index from a plain mapping, adding any missing reverse links"""
        index = cls()
        for id_a, targets in mapping.items():
            for id_b in targets:
                index.relate(id_a, id_b)
        return index

    def copy(self) -> "RelationIndex":
        clone = RelationIndex()
        clone._relations = {node_id: dict(targets) for node_id, targets in self._relations.items()}
        return clone

    def _discard(self, node_id: str, target_id: str) -> None:
        targets = self._relations.get(node_id)
        if targets is None:
            return
        targets.pop(target_id, None)
        if not targets:
            del self._relations[node_id]

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._relations

    def __len__(self) -> int:
        return len(self._relations)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RelationIndex):
            return NotImplemented
        return {k: set(v) for k, v in self._relations.items()} == {k: set(v) for k, v in other._relations.items()}

    def __repr__(self) -> str:
        return f"RelationIndex({self.to_dict()!r})"
