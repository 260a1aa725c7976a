# dualflow/graph/changes.py
"""
Incremental change batches for one side's node and edge collections.

Changes are applied strictly in the order given. Deltas that reference an id
the collection does not contain are skipped so stale UI batches never fail.
"""

from dataclasses import dataclass, replace
from typing import Any, Iterable, List, Mapping, Optional, Union

from .errors import GraphStoreError
from .models import Dimensions, Edge, Node, Position
from .wire import dimensions_from_wire, edge_from_wire, node_from_wire, position_from_wire


@dataclass(frozen=True)
class NodeAdd:
    item: Node


@dataclass(frozen=True)
class NodeRemove:
    id: str


@dataclass(frozen=True)
class NodePosition:
    id: str
    position: Optional[Position] = None
    dragging: bool = False


@dataclass(frozen=True)
class NodeDimensions:
    id: str
    dimensions: Optional[Dimensions] = None


@dataclass(frozen=True)
class NodeSelect:
    id: str
    selected: bool


@dataclass(frozen=True)
class EdgeAdd:
    item: Edge


@dataclass(frozen=True)
class EdgeRemove:
    id: str


@dataclass(frozen=True)
class EdgeSelect:
    id: str
    selected: bool


NodeChange = Union[NodeAdd, NodeRemove, NodePosition, NodeDimensions, NodeSelect]
EdgeChange = Union[EdgeAdd, EdgeRemove, EdgeSelect]


def _index_of(items: List[Any], item_id: str) -> Optional[int]:
    for idx, item in enumerate(items):
        if item.id == item_id:
            return idx
    return None


def apply_node_changes(changes: Iterable[NodeChange], nodes: Iterable[Node]) -> List[Node]:
    """Return a new node list with `changes` applied in order"""
    result = list(nodes)

    for change in changes:
        if isinstance(change, NodeAdd):
            idx = _index_of(result, change.item.id)
            if idx is None:
                result.append(change.item)
            else:
                result[idx] = change.item
            continue

        idx = _index_of(result, change.id)
        if idx is None:
            continue

        if isinstance(change, NodeRemove):
            del result[idx]
        elif isinstance(change, NodePosition):
            # Drag-end events carry no position
            if change.position is not None:
                result[idx] = replace(result[idx], position=change.position)
        elif isinstance(change, NodeDimensions):
            if change.dimensions is not None:
                result[idx] = replace(result[idx], size_hint=change.dimensions)
        elif isinstance(change, NodeSelect):
            result[idx] = replace(result[idx], selected=change.selected)
        else:
            raise GraphStoreError(f"Unsupported node change: {change!r}")

    return result


def apply_edge_changes(changes: Iterable[EdgeChange], edges: Iterable[Edge]) -> List[Edge]:
    """Return a new edge list with `changes` applied in order"""
    result = list(edges)

    for change in changes:
        if isinstance(change, EdgeAdd):
            idx = _index_of(result, change.item.id)
            if idx is None:
                result.append(change.item)
            else:
                result[idx] = change.item
            continue

        idx = _index_of(result, change.id)
        if idx is None:
            continue

        if isinstance(change, EdgeRemove):
            del result[idx]
        elif isinstance(change, EdgeSelect):
            result[idx] = replace(result[idx], selected=change.selected)
        else:
            raise GraphStoreError(f"Unsupported edge change: {change!r}")

    return result


def node_change_from_dict(raw: Mapping[str, Any]) -> NodeChange:
    """Parse a front-end change payload such as {"type": "position", "id": ...}"""
    try:
        kind = raw["type"]
        if kind == "add":
            return NodeAdd(item=node_from_wire(raw["item"]))
        if kind == "remove":
            return NodeRemove(id=raw["id"])
        if kind == "position":
            position = raw.get("position")
            return NodePosition(
                id=raw["id"],
                position=position_from_wire(position) if position is not None else None,
                dragging=bool(raw.get("dragging", False)),
            )
        if kind == "dimensions":
            dims = raw.get("dimensions")
            return NodeDimensions(id=raw["id"], dimensions=dimensions_from_wire(dims) if dims else None)
        if kind == "select":
            return NodeSelect(id=raw["id"], selected=bool(raw["selected"]))
    except (KeyError, TypeError, ValueError) as e:
        raise GraphStoreError(f"Malformed node change {raw!r}: {e}") from e
    raise GraphStoreError(f"Unknown node change type: {kind!r}")


def edge_change_from_dict(raw: Mapping[str, Any]) -> EdgeChange:
    """Parse a front-end edge change payload"""
    try:
        kind = raw["type"]
        if kind == "add":
            return EdgeAdd(item=edge_from_wire(raw["item"]))
        if kind == "remove":
            return EdgeRemove(id=raw["id"])
        if kind == "select":
            return EdgeSelect(id=raw["id"], selected=bool(raw["selected"]))
    except (KeyError, TypeError, ValueError) as e:
        raise GraphStoreError(f"Malformed edge change {raw!r}: {e}") from e
    raise GraphStoreError(f"Unknown edge change type: {kind!r}")
