# tests/conftest.py
"""
Pytest configuration and shared fixtures for Dual Flow tests.
"""

import os
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

repo_root = Path(__file__).resolve().parents[1]
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

# Keep the module-level app off real infrastructure
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DIAGRAM_BACKEND", "memory")

from dualflow.app import FlowApp
from dualflow.flow_logging import setup_logging
from dualflow.graph import Edge, GraphStore, Node, Position
from dualflow.persistence.memory import MemoryDiagramGateway
from dualflow.session import DiagramSession, LocalStateCache


@pytest.fixture
def scenario_store() -> GraphStore:
    """left {l1, l2} with l1->l2, right {r1, r2} with r1->r2, relations l1<->r1 and l2<->r2"""
    store = GraphStore(
        left_nodes=[
            Node(id="l1", position=Position(100, 100), label="Process 1"),
            Node(id="l2", position=Position(100, 300), label="Process 2"),
        ],
        right_nodes=[
            Node(id="r1", position=Position(100, 100), label="Task 1"),
            Node(id="r2", position=Position(100, 300), label="Task 2"),
        ],
        left_edges=[Edge(source="l1", target="l2")],
        right_edges=[Edge(source="r1", target="r2")],
    )
    store.relate("l1", "r1")
    store.relate("l2", "r2")
    return store


@pytest.fixture
def memory_gateway() -> MemoryDiagramGateway:
    return MemoryDiagramGateway()


@pytest.fixture
def state_cache(tmp_path: Path) -> LocalStateCache:
    return LocalStateCache(tmp_path / "session" / "diagram-storage.json")


@pytest.fixture
def session(memory_gateway, state_cache, scenario_store) -> DiagramSession:
    return DiagramSession(memory_gateway, cache=state_cache, store=scenario_store,
                          base_url="http://localhost:5173/")


@pytest.fixture
def flow_app(memory_gateway) -> FlowApp:
    return FlowApp(gateway=memory_gateway)


@pytest.fixture
def test_client(flow_app) -> TestClient:
    """Create a test client for the FastAPI application."""
    return TestClient(flow_app.app)


@pytest.fixture(scope="session", autouse=True)
def setup_test_logging():
    """Configure logging for test runs."""
    os.environ["LOG_LEVEL"] = "ERROR"  # Minimize test output
    return setup_logging()
