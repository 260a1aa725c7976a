# tests/unit/test_changes.py
"""
Unit tests for incremental node/edge change batches
"""

import pytest

from dualflow.graph import (
    Dimensions, Edge, EdgeAdd, EdgeRemove, EdgeSelect, GraphStoreError,
    Node, NodeAdd, NodeDimensions, NodePosition, NodeRemove, NodeSelect, Position,
)
from dualflow.graph.changes import (
    apply_edge_changes, apply_node_changes, edge_change_from_dict, node_change_from_dict,
)


@pytest.fixture
def nodes():
    return [Node(id="l1", label="Process 1"), Node(id="l2", label="Process 2")]


class TestNodeChanges:

    def test_changes_apply_in_order(self, nodes):
        result = apply_node_changes([
            NodeAdd(item=Node(id="l3")),
            NodePosition(id="l3", position=Position(40, 50)),
            NodeRemove(id="l1"),
        ], nodes)

        assert [n.id for n in result] == ["l2", "l3"]
        assert result[1].position == Position(40, 50)
        # Input list untouched
        assert [n.id for n in nodes] == ["l1", "l2"]

    def test_unknown_ids_are_skipped(self, nodes):
        result = apply_node_changes([NodeRemove(id="l9"), NodeSelect(id="l9", selected=True)], nodes)
        assert result == nodes

    def test_add_existing_id_replaces_in_place(self, nodes):
        result = apply_node_changes([NodeAdd(item=Node(id="l1", label="Intake"))], nodes)
        assert [n.label for n in result] == ["Intake", "Process 2"]

    def test_position_without_coordinates_keeps_position(self, nodes):
        result = apply_node_changes([NodePosition(id="l1", position=None, dragging=False)], nodes)
        assert result[0].position == Position()

    def test_dimensions_and_select(self, nodes):
        result = apply_node_changes([
            NodeDimensions(id="l2", dimensions=Dimensions(120, 60)),
            NodeSelect(id="l2", selected=True),
        ], nodes)

        assert result[1].size_hint == Dimensions(120, 60)
        assert result[1].selected is True

    def test_parse_front_end_payloads(self):
        assert node_change_from_dict({"type": "remove", "id": "l1"}) == NodeRemove(id="l1")
        assert node_change_from_dict(
            {"type": "position", "id": "l1", "position": {"x": 3, "y": 4}, "dragging": True}
        ) == NodePosition(id="l1", position=Position(3, 4), dragging=True)
        assert node_change_from_dict(
            {"type": "dimensions", "id": "l1", "dimensions": {"width": 10, "height": 20}}
        ) == NodeDimensions(id="l1", dimensions=Dimensions(10, 20))

        added = node_change_from_dict({"type": "add", "item": {"id": "l5", "data": {"label": "New"}}})
        assert added.item.label == "New"

    @pytest.mark.parametrize("raw", [
        {"type": "teleport", "id": "l1"},
        {"type": "remove"},
        {"type": "add", "item": {"data": {}}},
        {"id": "l1"},
    ])
    def test_malformed_payloads_rejected(self, raw):
        with pytest.raises(GraphStoreError):
            node_change_from_dict(raw)


class TestEdgeChanges:

    def test_add_select_remove(self):
        edges = apply_edge_changes([
            EdgeAdd(item=Edge(source="r1", target="r2")),
            EdgeSelect(id="er1-r2", selected=True),
        ], [])
        assert edges[0].selected is True

        assert apply_edge_changes([EdgeRemove(id="er1-r2")], edges) == []

    def test_parse_front_end_payloads(self):
        change = edge_change_from_dict({"type": "add", "item": {"source": "r1", "target": "r2"}})
        assert change.item.id == "er1-r2"
        assert edge_change_from_dict({"type": "select", "id": "x", "selected": False}) == EdgeSelect(id="x", selected=False)

        with pytest.raises(GraphStoreError, match="Unknown edge change"):
            edge_change_from_dict({"type": "reconnect", "id": "x"})
