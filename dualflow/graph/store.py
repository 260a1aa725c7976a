# dualflow/graph/store.py
"""
Graph Store - process flow (left) and task flow (right) node/edge storage

Holds two independent (nodes, edges) pairs selected by a `side` discriminator
plus the cross-side Relation Index. All mutations run synchronously to
completion; the store is owned by a single editing session.
"""

from dataclasses import replace
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Union

from ..flow_logging import get_logger
from .changes import (
    EdgeAdd, EdgeChange, NodeAdd, NodeChange, NodeRemove,
    apply_edge_changes as _apply_edge_changes,
    apply_node_changes as _apply_node_changes,
    edge_change_from_dict, node_change_from_dict,
)
from .errors import CrossSideConnectionError, GraphStoreError
from .models import Dimensions, Edge, Node, Position, Side, edge_id_for
from .relations import RelationIndex

logger = get_logger(__name__)

SideLike = Union[Side, str, bool]

UPDATABLE_NODE_FIELDS = {"label", "image", "position", "size_hint"}


class GraphStore:
    """
    Dual graph store with a shared relation index

    Every operation takes the side it applies to; no operation touches the
    nodes or edges of the other side.
    """

    def __init__(self,
                 left_nodes: Optional[Iterable[Node]] = None,
                 right_nodes: Optional[Iterable[Node]] = None,
                 left_edges: Optional[Iterable[Edge]] = None,
                 right_edges: Optional[Iterable[Edge]] = None,
                 relations: Optional[RelationIndex] = None):
        self._nodes: Dict[Side, List[Node]] = {
            Side.LEFT: list(left_nodes or []),
            Side.RIGHT: list(right_nodes or []),
        }
        self._edges: Dict[Side, List[Edge]] = {
            Side.LEFT: list(left_edges or []),
            Side.RIGHT: list(right_edges or []),
        }
        self.relations = relations if relations is not None else RelationIndex()

    # Queries

    def nodes(self, side: SideLike) -> List[Node]:
        return list(self._nodes[Side.parse(side)])

    def edges(self, side: SideLike) -> List[Edge]:
        return list(self._edges[Side.parse(side)])

    def node_ids(self, side: SideLike) -> Set[str]:
        return {node.id for node in self._nodes[Side.parse(side)]}

    def get_node(self, side: SideLike, node_id: str) -> Optional[Node]:
        for node in self._nodes[Side.parse(side)]:
            if node.id == node_id:
                return node
        return None

    def side_of(self, node_id: str) -> Optional[Side]:
        for side in Side:
            if any(node.id == node_id for node in self._nodes[side]):
                return side
        return None

    def relations_of(self, node_id: str):
        return self.relations.relations_of(node_id)

    # Change batches

    def apply_node_changes(self, side: SideLike, changes: Iterable[Union[NodeChange, Mapping[str, Any]]]) -> List[Node]:
        """
        Apply a batch of node deltas in order

        A removed node takes its edges on `side` and its relations with it,
        the same as `delete_node`. The whole batch is validated before
        anything is committed.

        Args:
            side: Graph the batch belongs to
            changes: NodeChange objects or front-end change dicts

        Returns:
            The new node collection for `side`
        """
        side = Side.parse(side)
        parsed = [node_change_from_dict(c) if isinstance(c, Mapping) else c for c in changes]

        known_ids = self.node_ids(side)
        other_ids = self.node_ids(side.other)
        for change in parsed:
            if isinstance(change, NodeAdd):
                self._require_own_id(side, change.item.id, other_ids)
                known_ids.add(change.item.id)

        removed = {change.id for change in parsed if isinstance(change, NodeRemove)} & known_ids
        nodes = _apply_node_changes(parsed, self._nodes[side])
        edges = [edge for edge in self._edges[side]
                 if not any(edge.touches(node_id) for node_id in removed)]
        relations = self.relations
        if removed:
            relations = self.relations.copy()
            for node_id in removed:
                relations.prune_node(node_id)

        self._nodes[side] = nodes
        self._edges[side] = edges
        self.relations = relations

        if removed:
            logger.debug(f"Removed nodes {sorted(removed)} from {side.value} by change batch")
        return self.nodes(side)

    def apply_edge_changes(self, side: SideLike, changes: Iterable[Union[EdgeChange, Mapping[str, Any]]]) -> List[Edge]:
        """Apply a batch of edge deltas in order; added edges must stay within `side`"""
        side = Side.parse(side)
        parsed = [edge_change_from_dict(c) if isinstance(c, Mapping) else c for c in changes]

        node_ids = self.node_ids(side)
        for change in parsed:
            if isinstance(change, EdgeAdd):
                self._require_endpoints(side, change.item.source, change.item.target, node_ids)

        self._edges[side] = _apply_edge_changes(parsed, self._edges[side])
        return self.edges(side)

    # Edit operations

    def connect(self, side: SideLike, source_id: str, target_id: str) -> Edge:
        """
        Upsert the edge source -> target on `side`

        A repeated connect between the same ordered pair replaces the earlier
        edge, so at most one edge exists per pair.
        """
        side = Side.parse(side)
        self._require_endpoints(side, source_id, target_id, self.node_ids(side))

        edge = Edge(source=source_id, target=target_id, id=edge_id_for(source_id, target_id))
        edges = self._edges[side]
        for idx, existing in enumerate(edges):
            if existing.id == edge.id:
                edges[idx] = edge
                break
        else:
            edges.append(edge)

        logger.debug(f"Connected {source_id} -> {target_id} on {side.value}")
        return edge

    def next_node_id(self, side: SideLike) -> str:
        """Allocate an unused id carrying the side prefix"""
        side = Side.parse(side)
        taken = self.node_ids(Side.LEFT) | self.node_ids(Side.RIGHT)
        counter = len(self._nodes[side]) + 1
        while f"{side.prefix}{counter}" in taken:
            counter += 1
        return f"{side.prefix}{counter}"

    def add_node(self, side: SideLike, node: Node) -> Node:
        """Append a node whose id was allocated for `side`"""
        side = Side.parse(side)
        self._require_own_id(side, node.id, self.node_ids(side.other))
        if node.id in self.node_ids(side):
            raise GraphStoreError(f"Node id {node.id} already exists in the {side.value} graph")

        self._nodes[side].append(node)
        logger.debug(f"Added node {node.id} to {side.value}")
        return node

    def create_node(self, side: SideLike, label: Optional[str] = None,
                    position: Optional[Position] = None, image: Optional[str] = None) -> Node:
        """Allocate an id and append a node with the default label for its side"""
        side = Side.parse(side)
        node_id = self.next_node_id(side)
        label = label if label is not None else f"{side.default_label} {node_id[len(side.prefix):]}"
        return self.add_node(side, Node(id=node_id, position=position or Position(), label=label, image=image or None))

    def update_node(self, side: SideLike, node_id: str, **fields: Any) -> Optional[Node]:
        """
        Shallow-merge `fields` into a node

        Supported fields: label, image (None or "" removes it), position,
        size_hint. Unknown node ids are ignored and return None.
        """
        side = Side.parse(side)
        unknown = set(fields) - UPDATABLE_NODE_FIELDS
        if unknown:
            raise GraphStoreError(f"Cannot update node fields: {sorted(unknown)}")

        if "image" in fields:
            fields["image"] = fields["image"] or None
        if isinstance(fields.get("position"), Mapping):
            fields["position"] = Position(**fields["position"])
        if isinstance(fields.get("size_hint"), Mapping):
            fields["size_hint"] = Dimensions(**fields["size_hint"])

        nodes = self._nodes[side]
        for idx, node in enumerate(nodes):
            if node.id == node_id:
                nodes[idx] = replace(node, **fields)
                logger.debug(f"Updated node {node_id} on {side.value}: {sorted(fields)}")
                return nodes[idx]
        return None

    def delete_node(self, side: SideLike, node_id: str) -> bool:
        """
        Remove a node, every edge on its side that touches it, and its relations

        The three effects are computed first and committed together.
        """
        side = Side.parse(side)
        nodes = [node for node in self._nodes[side] if node.id != node_id]
        if len(nodes) == len(self._nodes[side]):
            return False

        edges = [edge for edge in self._edges[side] if not edge.touches(node_id)]
        relations = self.relations.copy()
        relations.prune_node(node_id)

        removed_edges = len(self._edges[side]) - len(edges)
        self._nodes[side] = nodes
        self._edges[side] = edges
        self.relations = relations

        logger.debug(f"Deleted node {node_id} from {side.value} ({removed_edges} edges removed)")
        return True

    def relate(self, id_a: str, id_b: str) -> None:
        """Relate a left node with a right node (either argument order)"""
        self._require_opposite_sides(id_a, id_b)
        self.relations.relate(id_a, id_b)

    def unrelate(self, id_a: str, id_b: str) -> None:
        self.relations.unrelate(id_a, id_b)

    # Whole-state helpers

    def replace(self, other: "GraphStore") -> None:
        """Swap in another store's entire state in one step"""
        self._nodes = {side: list(other._nodes[side]) for side in Side}
        self._edges = {side: list(other._edges[side]) for side in Side}
        self.relations = other.relations.copy()

    def copy(self) -> "GraphStore":
        clone = GraphStore()
        clone.replace(self)
        return clone

    def get_statistics(self) -> Dict[str, Any]:
        """Get graph statistics"""
        return {
            "left_nodes": len(self._nodes[Side.LEFT]),
            "right_nodes": len(self._nodes[Side.RIGHT]),
            "left_edges": len(self._edges[Side.LEFT]),
            "right_edges": len(self._edges[Side.RIGHT]),
            "relations": sum(1 for _ in self.relations.pairs()),
        }

    def _require_own_id(self, side: Side, node_id: str, other_ids: Set[str]) -> None:
        if not node_id.startswith(side.prefix):
            raise GraphStoreError(f"Node id {node_id} does not carry the '{side.prefix}' prefix of the {side.value} graph")
        if node_id in other_ids:
            raise GraphStoreError(f"Node id {node_id} already exists in the {side.other.value} graph")

    def _require_endpoints(self, side: Side, source_id: str, target_id: str, node_ids: Set[str]) -> None:
        missing = [node_id for node_id in (source_id, target_id) if node_id not in node_ids]
        if missing:
            raise CrossSideConnectionError(
                f"Cannot connect {source_id} -> {target_id} on {side.value}: {', '.join(missing)} not in that graph"
            )

    def _require_opposite_sides(self, id_a: str, id_b: str) -> None:
        side_a, side_b = self.side_of(id_a), self.side_of(id_b)
        if side_a is None or side_b is None:
            missing = id_a if side_a is None else id_b
            raise GraphStoreError(f"Cannot relate {id_a} and {id_b}: node {missing} does not exist")
        if side_a is side_b:
            raise CrossSideConnectionError(f"Relations link the two graphs; {id_a} and {id_b} are both {side_a.value}")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GraphStore):
            return NotImplemented
        return (self._nodes == other._nodes
                and self._edges == other._edges
                and self.relations == other.relations)

    def __repr__(self) -> str:
        return f"GraphStore({self.get_statistics()!r})"


def sample_store() -> GraphStore:
    """The starting diagram shown to a fresh session"""
    store = GraphStore(
        left_nodes=[
            Node(id="l1", position=Position(100, 100), label="Process 1"),
            Node(id="l2", position=Position(100, 300), label="Process 2"),
        ],
        right_nodes=[
            Node(id="r1", position=Position(100, 100), label="Task 1"),
            Node(id="r2", position=Position(100, 300), label="Task 2"),
        ],
    )
    store.relate("l1", "r1")
    store.relate("l2", "r2")
    return store
