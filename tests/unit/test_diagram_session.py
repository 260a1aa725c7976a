# tests/unit/test_diagram_session.py
"""
Unit tests for DiagramSession
Tests hover highlighting, save/load lifecycle, stale load handling and the
local state cache
"""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest

from dualflow.diagram import MalformedImportError, serialize
from dualflow.graph import GraphStore, Position, Side, sample_store
from dualflow.persistence import GatewayUnavailableError, MemoryDiagramGateway
from dualflow.persistence.base import DiagramNotFoundError
from dualflow.session import DEFAULT_DIAGRAM_NAME, DiagramSession, SaveMode


class BlockingReadGateway(MemoryDiagramGateway):
    """Memory gateway whose reads wait until released, one event per diagram id"""

    def __init__(self):
        super().__init__()
        self.gates = {}

    async def read(self, diagram_id):
        gate = self.gates.setdefault(diagram_id, asyncio.Event())
        await gate.wait()
        return await super().read(diagram_id)


class TestSessionEditing:

    def test_hover_then_delete_scenario(self, session):
        """Hovering l1 highlights l1 and r1; deleting r1 prunes only its relations"""
        assert session.hover("l1") == {"l1", "r1"}
        assert [n.id for n in session.nodes(Side.RIGHT) if n.highlighted] == ["r1"]
        assert [n.id for n in session.nodes(Side.LEFT) if n.highlighted] == ["l1"]

        left_before = session.store.nodes(Side.LEFT)
        assert session.delete_node(Side.RIGHT, "r1") is True

        assert session.store.relations.to_dict() == {"l2": ["r2"], "r2": ["l2"]}
        assert session.store.relations_of("l1") == ()
        assert session.store.nodes(Side.LEFT) == left_before
        assert session.highlighted_nodes == {"l1"}

    def test_deleting_hovered_node_clears_hover(self, session):
        session.hover("r2")
        session.delete_node(Side.RIGHT, "r2")
        assert session.hovered_id is None
        assert session.highlighted_nodes == frozenset()

    def test_every_edit_flushes_cache(self, session, state_cache):
        session.create_node(Side.LEFT, label="Review", position=Position(5, 5))
        cached = state_cache.load()
        assert cached.store.get_node(Side.LEFT, "l3").label == "Review"

        session.connect(Side.LEFT, "l2", "l3")
        session.relate("l3", "r2")
        session.update_node(Side.RIGHT, "r2", label="Approve")

        cached = state_cache.load()
        assert cached.store == session.store
        assert cached.name == DEFAULT_DIAGRAM_NAME

    def test_apply_changes_from_front_end(self, session):
        nodes = session.apply_node_changes("left", [
            {"type": "position", "id": "l1", "position": {"x": 250, "y": 80}, "dragging": True},
        ])
        assert nodes[0].position == Position(250, 80)

        edges = session.apply_edge_changes("left", [{"type": "remove", "id": "el1-l2"}])
        assert edges == []

    def test_new_diagram(self, session):
        session.current_id = "abc"
        session.new_diagram()

        assert session.store == GraphStore()
        assert session.current_id is None
        assert session.current_name == DEFAULT_DIAGRAM_NAME


class TestSessionPersistence:

    @pytest.mark.asyncio
    async def test_save_new_and_overwrite(self, session, memory_gateway):
        diagram_id = await session.save("Pipeline")

        assert session.current_id == diagram_id
        assert [(s.id, s.name) for s in session.saved_diagrams] == [(diagram_id, "Pipeline")]

        session.create_node(Side.RIGHT)
        assert await session.save(mode=SaveMode.OVERWRITE) == diagram_id
        record = await memory_gateway.read(diagram_id)
        assert len(record.data["rightNodes"]) == 3

        copy_id = await session.save("Pipeline", mode=SaveMode.NEW)
        assert copy_id != diagram_id
        assert len(memory_gateway) == 2

    @pytest.mark.asyncio
    async def test_save_rejects_bad_requests(self, session):
        with pytest.raises(ValueError, match="empty"):
            await session.save("   ")
        with pytest.raises(ValueError, match="overwrite"):
            await session.save("Pipeline", mode=SaveMode.OVERWRITE)

    @pytest.mark.asyncio
    async def test_save_failure_leaves_state_untouched(self, scenario_store):
        gateway = AsyncMock(spec=MemoryDiagramGateway)
        gateway.create.side_effect = GatewayUnavailableError("store offline")
        session = DiagramSession(gateway, store=scenario_store, base_url="http://localhost:5173/")
        before = scenario_store.copy()

        with pytest.raises(GatewayUnavailableError):
            await session.save("Pipeline")

        assert session.store == before
        assert session.current_id is None
        assert "store offline" in session.error
        assert session.is_loading is False

        session.clear_error()
        assert session.error is None

    @pytest.mark.asyncio
    async def test_load_replaces_state(self, session, memory_gateway):
        diagram_id = await memory_gateway.create("Other", serialize(sample_store()))
        session.hover("l1")

        assert await session.load(diagram_id) is True

        assert session.store == sample_store()
        assert session.current_id == diagram_id
        assert session.current_name == "Other"
        assert session.hovered_id is None
        assert session.last_warnings == []

    @pytest.mark.asyncio
    async def test_load_reports_warnings(self, session, memory_gateway):
        data = serialize(sample_store())
        data["rightEdges"] = [{"source": "r1", "target": "r9"}]
        diagram_id = await memory_gateway.create("Damaged", data)

        await session.load(diagram_id)

        assert [w.kind for w in session.last_warnings] == ["dangling_edge"]
        assert session.store.edges(Side.RIGHT) == []

    @pytest.mark.asyncio
    async def test_load_missing_sets_error(self, session, scenario_store):
        before = scenario_store.copy()
        with pytest.raises(DiagramNotFoundError):
            await session.load("missing")
        assert session.store == before
        assert "missing" in session.error

    @pytest.mark.asyncio
    async def test_stale_load_discarded(self, scenario_store):
        """Only the most recently issued load is applied"""
        gateway = BlockingReadGateway()
        first_id = await gateway.create("First", serialize(sample_store()))
        second_id = await gateway.create("Second", serialize(GraphStore()))
        session = DiagramSession(gateway, store=scenario_store, base_url="http://localhost:5173/")

        first = asyncio.create_task(session.load(first_id))
        second = asyncio.create_task(session.load(second_id))
        await asyncio.sleep(0)
        assert session.is_loading is True

        gateway.gates[second_id].set()
        assert await second is True
        gateway.gates[first_id].set()
        assert await first is False

        assert session.current_name == "Second"
        assert session.store == GraphStore()
        assert session.is_loading is False

    @pytest.mark.asyncio
    async def test_stale_load_failure_discarded(self, scenario_store):
        gateway = BlockingReadGateway()
        good_id = await gateway.create("Good", serialize(sample_store()))
        session = DiagramSession(gateway, store=scenario_store, base_url="http://localhost:5173/")

        failing = asyncio.create_task(session.load("missing"))
        latest = asyncio.create_task(session.load(good_id))
        await asyncio.sleep(0)

        gateway.gates[good_id].set()
        assert await latest is True
        gateway.gates["missing"].set()
        assert await failing is False
        assert session.error is None

    @pytest.mark.asyncio
    async def test_delete_current_diagram(self, session, memory_gateway):
        diagram_id = await session.save("Pipeline")
        await session.delete(diagram_id)

        assert session.current_id is None
        assert session.saved_diagrams == []
        assert len(memory_gateway) == 0
        with pytest.raises(DiagramNotFoundError):
            await session.delete(diagram_id)


class TestSessionSharing:

    @pytest.mark.asyncio
    async def test_share_url_round_trip(self, session, memory_gateway):
        assert session.share_url() is None

        diagram_id = await session.save("Pipeline")
        url = session.share_url()
        assert url == f"http://localhost:5173/?diagram={diagram_id}"

        other = DiagramSession(memory_gateway, store=GraphStore(), base_url="http://localhost:5173/")
        assert await other.open_shared(url) is True
        assert other.current_name == "Pipeline"
        assert other.store == session.store

    @pytest.mark.asyncio
    async def test_open_shared_without_reference(self, session):
        assert await session.open_shared("http://localhost:5173/?view=grid") is False

    def test_export_import(self, session):
        session.current_name = "Pipeline"
        content = session.export_document()
        assert "id" not in json.loads(content)

        session.new_diagram()
        result = session.import_document(content)

        assert session.current_name == "Pipeline"
        assert session.current_id is None
        assert session.store == result.store
        assert session.store.relations_of("l1") == ("r1",)

    def test_import_with_overwrite_keeps_id(self, session):
        content = json.dumps({"id": "abc", "name": "Pipeline", "data": serialize(sample_store())})
        session.import_document(content, overwrite=True)
        assert session.current_id == "abc"

    def test_malformed_import_leaves_state(self, session, scenario_store):
        before = scenario_store.copy()
        with pytest.raises(MalformedImportError):
            session.import_document("{not json")
        assert session.store == before


class TestLocalStateCache:

    def test_hydrates_next_session(self, memory_gateway, state_cache):
        first = DiagramSession(memory_gateway, cache=state_cache, base_url="http://localhost:5173/")
        assert first.store == sample_store()

        first.create_node(Side.RIGHT, label="Ship")
        first.current_name = "Release"
        first.relate("l1", "r3")

        second = DiagramSession(memory_gateway, cache=state_cache, base_url="http://localhost:5173/")
        assert second.store == first.store
        assert second.current_name == "Release"

    def test_corrupt_cache_falls_back_to_sample(self, memory_gateway, state_cache):
        state_cache.path.parent.mkdir(parents=True, exist_ok=True)
        state_cache.path.write_text("{broken", encoding="utf-8")

        session = DiagramSession(memory_gateway, cache=state_cache, base_url="http://localhost:5173/")
        assert session.store == sample_store()

    def test_clear(self, state_cache):
        state_cache.save(sample_store(), "Cached", None)
        assert state_cache.path.exists()
        state_cache.clear()
        assert state_cache.load() is None
