# dualflow/graph/wire.py
"""
Conversion between graph dataclasses and the front end's JSON node/edge shape.

    node: {"id", "type": "custom", "position": {"x", "y"},
           "data": {"label", "imageUrl" | "imageData"}, "width", "height"}
    edge: {"id", "source", "target", "type": "smoothstep", "animated": true}
"""

from numbers import Real
from typing import Any, Dict, Mapping, Optional

from .models import Dimensions, Edge, EDGE_STYLE, Node, Position

NODE_TYPE = "custom"


def _number(value: Any, name: str) -> float:
    # bool is a Real subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, Real):
        raise ValueError(f"{name} must be a number, got {value!r}")
    return float(value)


def position_from_wire(raw: Any) -> Position:
    if raw is None:
        return Position()
    if not isinstance(raw, Mapping):
        raise ValueError(f"position must be an object, got {type(raw).__name__}")
    return Position(x=_number(raw.get("x", 0), "position.x"), y=_number(raw.get("y", 0), "position.y"))


def dimensions_from_wire(raw: Mapping[str, Any]) -> Optional[Dimensions]:
    width, height = raw.get("width"), raw.get("height")
    if width is None or height is None:
        return None
    return Dimensions(width=_number(width, "width"), height=_number(height, "height"))


def node_to_wire(node: Node) -> Dict[str, Any]:
    data: Dict[str, Any] = {"label": node.label}
    if node.image:
        data["imageData" if node.has_inline_image else "imageUrl"] = node.image

    wire: Dict[str, Any] = {
        "id": node.id,
        "type": NODE_TYPE,
        "position": {"x": node.position.x, "y": node.position.y},
        "data": data,
    }
    if node.size_hint is not None:
        wire["width"] = node.size_hint.width
        wire["height"] = node.size_hint.height
    return wire


def node_from_wire(raw: Any) -> Node:
    """Parse one node entry; raises ValueError when the entry is unusable"""
    if not isinstance(raw, Mapping):
        raise ValueError(f"node entry must be an object, got {type(raw).__name__}")
    node_id = raw.get("id")
    if not isinstance(node_id, str) or not node_id:
        raise ValueError(f"node entry has no usable id: {node_id!r}")

    data = raw.get("data") or {}
    if not isinstance(data, Mapping):
        raise ValueError(f"node {node_id} data must be an object")

    label = data.get("label", "")
    image = data.get("imageData") or data.get("imageUrl") or None
    if image is not None and not isinstance(image, str):
        raise ValueError(f"node {node_id} image must be a string")

    return Node(
        id=node_id,
        position=position_from_wire(raw.get("position")),
        label="" if label is None else str(label),
        image=image,
        size_hint=dimensions_from_wire(raw),
    )


def edge_to_wire(edge: Edge) -> Dict[str, Any]:
    return {
        "id": edge.id,
        "source": edge.source,
        "target": edge.target,
        "type": edge.style,
        "animated": edge.animated,
    }


def edge_from_wire(raw: Any) -> Edge:
    """Parse one edge entry; raises ValueError when the entry is unusable"""
    if not isinstance(raw, Mapping):
        raise ValueError(f"edge entry must be an object, got {type(raw).__name__}")
    source, target = raw.get("source"), raw.get("target")
    if not isinstance(source, str) or not source or not isinstance(target, str) or not target:
        raise ValueError(f"edge entry needs string source and target: {source!r} -> {target!r}")

    edge_id = raw.get("id")
    return Edge(
        source=source,
        target=target,
        id=edge_id if isinstance(edge_id, str) else "",
        style=raw.get("type") or EDGE_STYLE,
        animated=bool(raw.get("animated", True)),
    )
