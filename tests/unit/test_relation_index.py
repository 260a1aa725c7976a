# tests/unit/test_relation_index.py
"""
Unit tests for the Relation Index
"""

import pytest

from dualflow.graph import RelationIndex


class TestRelationIndex:
    """Symmetry, pruning and plain-dict conversion"""

    def test_relate_is_symmetric(self):
        index = RelationIndex()
        index.relate("l1", "r1")
        index.relate("l1", "r2")

        assert index.relations_of("l1") == ("r1", "r2")
        assert index.relations_of("r1") == ("l1",)
        assert index.relations_of("r2") == ("l1",)

    def test_relate_is_idempotent(self):
        index = RelationIndex()
        index.relate("l1", "r1")
        index.relate("r1", "l1")

        assert index.to_dict() == {"l1": ["r1"], "r1": ["l1"]}
        assert list(index.pairs()) == [("l1", "r1")]

    def test_self_relation_rejected(self):
        with pytest.raises(ValueError):
            RelationIndex().relate("l1", "l1")

    def test_unrelate_drops_empty_entries(self):
        index = RelationIndex.from_dict({"l1": ["r1"]})
        index.unrelate("l1", "r1")

        assert len(index) == 0
        assert "l1" not in index
        assert index.relations_of("r1") == ()

    def test_prune_node(self):
        """Test pruning removes the key and every reference to it"""
        index = RelationIndex.from_dict({"l1": ["r1", "r2"], "l2": ["r2"]})
        index.prune_node("r2")

        assert index.to_dict() == {"l1": ["r1"], "r1": ["l1"]}

    def test_prune_node_handles_one_directional_entries(self):
        index = RelationIndex()
        index._relations = {"l1": {"r1": None}}

        index.prune_node("r1")
        assert len(index) == 0

    def test_from_dict_symmetrizes(self):
        index = RelationIndex.from_dict({"l1": ["r1"]})
        assert index.relations_of("r1") == ("l1",)
        assert index == RelationIndex.from_dict({"r1": ["l1"], "l1": ["r1"]})

    def test_equality_ignores_order(self):
        a = RelationIndex.from_dict({"l1": ["r1", "r2"]})
        b = RelationIndex.from_dict({"l1": ["r2", "r1"]})
        assert a == b

    def test_copy_is_independent(self):
        index = RelationIndex.from_dict({"l1": ["r1"]})
        clone = index.copy()
        clone.prune_node("l1")

        assert index.relations_of("l1") == ("r1",)
        assert len(clone) == 0
