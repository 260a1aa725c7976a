# dualflow/diagram/serializer.py
"""
Diagram Serializer - whole-state conversion between GraphStore and documents

serialize() flattens both graphs and the relation index into the wire
payload. deserialize() is the inverse and is tolerant of damaged historical
snapshots: offending nodes, edges and relations are dropped and reported as
LoadWarnings while the rest of the diagram still loads. Only a document whose
root structure is unusable aborts with MalformedDocumentError.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple, Union

from ..flow_logging import get_logger
from ..graph.models import Edge, Node, Side
from ..graph.relations import RelationIndex
from ..graph.store import GraphStore
from ..graph.wire import edge_from_wire, edge_to_wire, node_from_wire, node_to_wire

logger = get_logger(__name__)

NODE_KEYS = {Side.LEFT: "leftNodes", Side.RIGHT: "rightNodes"}
EDGE_KEYS = {Side.LEFT: "leftEdges", Side.RIGHT: "rightEdges"}
RELATIONS_KEY = "nodeRelations"
SNAPSHOT_KEYS = (*NODE_KEYS.values(), *EDGE_KEYS.values(), RELATIONS_KEY)


class MalformedDocumentError(ValueError):
    """The document root is not a diagram snapshot"""
    pass


class MalformedImportError(MalformedDocumentError):
    """Imported file content is not a valid snapshot document"""
    pass


@dataclass
class LoadWarning:
    """A recoverable problem found while loading; the item was dropped or repaired"""
    kind: str
    message: str
    item_id: Optional[str] = None
    side: Optional[Side] = None


@dataclass
class LoadResult:
    store: GraphStore
    warnings: List[LoadWarning] = field(default_factory=list)


@dataclass
class ImportResult(LoadResult):
    name: Optional[str] = None
    diagram_id: Optional[str] = None


def serialize(store: GraphStore) -> Dict[str, Any]:
    """Flatten the full store into the snapshot data payload"""
    document: Dict[str, Any] = {}
    for side in Side:
        document[NODE_KEYS[side]] = [node_to_wire(node) for node in store.nodes(side)]
        document[EDGE_KEYS[side]] = [edge_to_wire(edge) for edge in store.edges(side)]
    document[RELATIONS_KEY] = store.relations.to_dict()
    return document


def deserialize(document: Any) -> LoadResult:
    """
    Rebuild a GraphStore from a snapshot payload

    Args:
        document: Mapping with leftNodes/rightNodes/leftEdges/rightEdges/nodeRelations;
            identity fields (id, name, timestamps) are ignored

    Returns:
        LoadResult with the new store and any warnings

    Raises:
        MalformedDocumentError: root-level structure is unusable
    """
    if not isinstance(document, Mapping):
        raise MalformedDocumentError(f"Snapshot must be an object, got {type(document).__name__}")

    collections = {key: _collection(document, key, list) for key in (*NODE_KEYS.values(), *EDGE_KEYS.values())}
    raw_relations = _collection(document, RELATIONS_KEY, Mapping)

    warnings: List[LoadWarning] = []
    owners: Dict[str, Side] = {}
    nodes: Dict[Side, List[Node]] = {}
    edges: Dict[Side, List[Edge]] = {}

    for side in Side:
        nodes[side] = _load_nodes(side, collections[NODE_KEYS[side]], owners, warnings)
    for side in Side:
        ids = {node.id for node in nodes[side]}
        edges[side] = _load_edges(side, collections[EDGE_KEYS[side]], ids, warnings)

    relations = _load_relations(raw_relations, owners, warnings)

    for warning in warnings:
        logger.warning(f"Snapshot load: {warning.message}", extra={"component": "serializer"})

    store = GraphStore(
        left_nodes=nodes[Side.LEFT],
        right_nodes=nodes[Side.RIGHT],
        left_edges=edges[Side.LEFT],
        right_edges=edges[Side.RIGHT],
        relations=relations,
    )
    return LoadResult(store=store, warnings=warnings)


def to_snapshot(store: GraphStore, name: str, diagram_id: Optional[str] = None, **timestamps: Any) -> Dict[str, Any]:
    """Full snapshot shape: identity and name around the data payload"""
    snapshot: Dict[str, Any] = {"name": name}
    if diagram_id:
        snapshot["id"] = diagram_id
    snapshot.update(serialize(store))
    for key in ("createdAt", "updatedAt"):
        if timestamps.get(key) is not None:
            snapshot[key] = str(timestamps[key])
    return snapshot


def export_document(store: GraphStore, name: str) -> str:
    """Self-describing JSON text for a file export; never carries a persisted id"""
    return json.dumps(to_snapshot(store, name), indent=2)


def import_document(content: Union[str, bytes], keep_id: bool = False) -> ImportResult:
    """
    Parse an exported file (or a stored record) into a new store

    The persisted id is stripped unless `keep_id` is set, so imported content
    is treated as a new unsaved diagram by default.

    Raises:
        MalformedImportError: content is not JSON or not a snapshot
    """
    if isinstance(content, bytes):
        try:
            content = content.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedImportError(f"Import is not UTF-8 text: {e}") from e
    try:
        document = json.loads(content)
    except (TypeError, ValueError) as e:
        raise MalformedImportError(f"Import is not valid JSON: {e}") from e

    if not isinstance(document, Mapping):
        raise MalformedImportError("Import must be a JSON object")

    # Stored records nest the payload under "data"
    payload = document.get("data") if isinstance(document.get("data"), Mapping) else document
    if not any(key in payload for key in SNAPSHOT_KEYS):
        raise MalformedImportError("Import does not contain any diagram collections")

    try:
        loaded = deserialize(payload)
    except MalformedDocumentError as e:
        raise MalformedImportError(str(e)) from e

    name = document.get("name") if isinstance(document.get("name"), str) else None
    diagram_id = document.get("id") if keep_id and isinstance(document.get("id"), str) else None
    return ImportResult(store=loaded.store, warnings=loaded.warnings, name=name, diagram_id=diagram_id)


def _collection(document: Mapping[str, Any], key: str, expected: type) -> Any:
    value = document.get(key)
    if value is None:
        return [] if expected is list else {}
    if not isinstance(value, expected):
        raise MalformedDocumentError(f"{key} must be {'a list' if expected is list else 'an object'}")
    return value


def _load_nodes(side: Side, raw_nodes: List[Any], owners: Dict[str, Side],
                warnings: List[LoadWarning]) -> List[Node]:
    loaded: List[Node] = []
    for raw in raw_nodes:
        try:
            node = node_from_wire(raw)
        except ValueError as e:
            warnings.append(LoadWarning("invalid_node", f"dropped {side.value} node: {e}", side=side))
            continue
        if node.id in owners:
            warnings.append(LoadWarning(
                "duplicate_node",
                f"dropped duplicate node {node.id} (already in the {owners[node.id].value} graph)",
                item_id=node.id, side=side,
            ))
            continue
        owners[node.id] = side
        loaded.append(node)
    return loaded


def _load_edges(side: Side, raw_edges: List[Any], node_ids: Set[str],
                warnings: List[LoadWarning]) -> List[Edge]:
    # Same id twice: the later entry wins, matching connect()
    by_id: Dict[str, Edge] = {}
    for raw in raw_edges:
        try:
            edge = edge_from_wire(raw)
        except ValueError as e:
            warnings.append(LoadWarning("invalid_edge", f"dropped {side.value} edge: {e}", side=side))
            continue
        missing = [node_id for node_id in (edge.source, edge.target) if node_id not in node_ids]
        if missing:
            warnings.append(LoadWarning(
                "dangling_edge",
                f"dropped {side.value} edge {edge.id}: {', '.join(missing)} not in the {side.value} graph",
                item_id=edge.id, side=side,
            ))
            continue
        by_id[edge.id] = edge
    return list(by_id.values())


def _load_relations(raw_relations: Mapping[str, Any], owners: Dict[str, Side],
                    warnings: List[LoadWarning]) -> RelationIndex:
    index = RelationIndex()
    directed: Set[Tuple[str, str]] = set()

    for id_a, targets in raw_relations.items():
        if not isinstance(targets, list):
            warnings.append(LoadWarning("invalid_relation", f"dropped relations of {id_a}: not a list", item_id=id_a))
            continue
        for id_b in targets:
            problem = _relation_problem(id_a, id_b, owners)
            if problem:
                warnings.append(LoadWarning("invalid_relation", f"dropped relation {id_a} <-> {id_b}: {problem}",
                                            item_id=id_a))
                continue
            directed.add((id_a, id_b))
            index.relate(id_a, id_b)

    for id_a, id_b in sorted(directed):
        if (id_b, id_a) not in directed:
            warnings.append(LoadWarning("asymmetric_relation",
                                        f"added missing reverse relation {id_b} -> {id_a}", item_id=id_b))
    return index


def _relation_problem(id_a: Any, id_b: Any, owners: Dict[str, Side]) -> Optional[str]:
    if not isinstance(id_b, str):
        return "related id is not a string"
    missing = [node_id for node_id in (id_a, id_b) if node_id not in owners]
    if missing:
        return f"{', '.join(missing)} does not exist"
    if owners[id_a] is owners[id_b]:
        return f"both nodes are in the {owners[id_a].value} graph"
    return None
