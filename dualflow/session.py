# dualflow/session.py
"""
Diagram editing session

A DiagramSession owns one GraphStore for its whole lifetime and wires it to
the persistence gateway and a local JSON cache. It is hydrated from the cache
when constructed and flushes back to it after every mutation, so an
interrupted session resumes where it left off.
"""

import json
from contextlib import asynccontextmanager
from enum import Enum
from pathlib import Path
from typing import Any, AsyncIterator, FrozenSet, List, Optional, Union
from urllib.parse import parse_qs, urlencode, urlsplit, urlunsplit

from .config import DualFlowConfig
from .diagram.models import DiagramSummary
from .diagram.serializer import (
    ImportResult, LoadWarning, MalformedDocumentError, MalformedImportError,
    deserialize, export_document, import_document, serialize,
)
from .flow_logging import get_logger
from .graph.highlight import apply_highlight, project
from .graph.models import Edge, Node, Position
from .graph.store import GraphStore, SideLike, sample_store
from .persistence.base import DiagramGateway, PersistenceError

logger = get_logger(__name__)

DEFAULT_DIAGRAM_NAME = "Untitled Diagram"
SHARE_PARAM = "diagram"


class SaveMode(str, Enum):
    """Whether a save creates a new document or overwrites the current one"""
    NEW = "new"
    OVERWRITE = "overwrite"


class LocalStateCache:
    """JSON file holding the last session state between runs"""

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path = Path(path) if path else DualFlowConfig.from_env().cache_path

    def save(self, store: GraphStore, name: str, diagram_id: Optional[str]) -> None:
        """Write the session state; failures are logged, the session keeps running"""
        payload = {"id": diagram_id, "name": name, "data": serialize(store)}
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, 'w', encoding='utf-8') as f:
                json.dump(payload, f, indent=2)
        except OSError as e:
            logger.error(f"Error saving session cache {self.path}: {e}")

    def load(self) -> Optional[ImportResult]:
        """Cached state, or None when there is no usable cache file"""
        if not self.path.exists():
            return None
        try:
            content = self.path.read_text(encoding='utf-8')
            return import_document(content, keep_id=True)
        except (OSError, MalformedImportError) as e:
            logger.warning(f"Could not load session cache {self.path}: {e}")
            return None

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()


class DiagramSession:
    """
    Editing session for one dual-graph diagram

    Args:
        gateway: Document store used by save/load/list/delete
        cache: Local state cache; when omitted nothing is cached
        store: Initial state; overrides the cache when given
        base_url: Base of shareable links
    """

    def __init__(self, gateway: DiagramGateway, cache: Optional[LocalStateCache] = None,
                 store: Optional[GraphStore] = None, base_url: Optional[str] = None):
        self.gateway = gateway
        self.cache = cache
        self.base_url = base_url or DualFlowConfig.from_env().base_url

        self.current_name = DEFAULT_DIAGRAM_NAME
        self.current_id: Optional[str] = None
        self.saved_diagrams: List[DiagramSummary] = []
        self.last_warnings: List[LoadWarning] = []
        self.error: Optional[str] = None
        self.hovered_id: Optional[str] = None

        self._in_flight = 0
        self._load_sequence = 0

        if store is not None:
            self.store = store
        else:
            self.store = self._hydrate()

        logger.info(f"Diagram session ready: {self.store.get_statistics()}")

    # Derived views

    @property
    def is_loading(self) -> bool:
        return self._in_flight > 0

    @property
    def highlighted_nodes(self) -> FrozenSet[str]:
        return project(self.store.relations, self.hovered_id)

    def nodes(self, side: SideLike) -> List[Node]:
        """Nodes of `side` with the highlight flag applied for the current hover"""
        return apply_highlight(self.store.nodes(side), self.highlighted_nodes)

    def edges(self, side: SideLike) -> List[Edge]:
        return self.store.edges(side)

    def hover(self, node_id: Optional[str]) -> FrozenSet[str]:
        """Set (or clear with None) the hovered node and return the highlight set"""
        self.hovered_id = node_id
        return self.highlighted_nodes

    def clear_error(self) -> None:
        self.error = None

    # Edit operations; each one flushes to the local cache

    def add_node(self, side: SideLike, node: Node) -> Node:
        node = self.store.add_node(side, node)
        self._flush()
        return node

    def create_node(self, side: SideLike, label: Optional[str] = None,
                    position: Optional[Position] = None, image: Optional[str] = None) -> Node:
        node = self.store.create_node(side, label=label, position=position, image=image)
        self._flush()
        return node

    def update_node(self, side: SideLike, node_id: str, **fields: Any) -> Optional[Node]:
        node = self.store.update_node(side, node_id, **fields)
        if node is not None:
            self._flush()
        return node

    def delete_node(self, side: SideLike, node_id: str) -> bool:
        deleted = self.store.delete_node(side, node_id)
        if deleted:
            if self.hovered_id == node_id:
                self.hovered_id = None
            self._flush()
        return deleted

    def apply_node_changes(self, side: SideLike, changes) -> List[Node]:
        self.store.apply_node_changes(side, changes)
        if self.hovered_id is not None and self.store.side_of(self.hovered_id) is None:
            self.hovered_id = None
        self._flush()
        return self.nodes(side)

    def apply_edge_changes(self, side: SideLike, changes) -> List[Edge]:
        edges = self.store.apply_edge_changes(side, changes)
        self._flush()
        return edges

    def connect(self, side: SideLike, source_id: str, target_id: str) -> Edge:
        edge = self.store.connect(side, source_id, target_id)
        self._flush()
        return edge

    def relate(self, id_a: str, id_b: str) -> None:
        self.store.relate(id_a, id_b)
        self._flush()

    def unrelate(self, id_a: str, id_b: str) -> None:
        self.store.unrelate(id_a, id_b)
        self._flush()

    def new_diagram(self) -> None:
        """Start over with an empty unsaved diagram"""
        self._replace_state(GraphStore(), DEFAULT_DIAGRAM_NAME, None, [])

    # Persistence

    async def save(self, name: Optional[str] = None, mode: SaveMode = SaveMode.NEW) -> str:
        """
        Persist the full state

        SaveMode.NEW always creates a document; SaveMode.OVERWRITE replaces the
        document this session was loaded from or last saved to. The store is
        never modified; on failure `error` is set and the exception re-raised.

        Returns:
            The diagram id the state was saved under
        """
        mode = SaveMode(mode)
        name = (name if name is not None else self.current_name).strip()
        if not name:
            raise ValueError("Diagram name must not be empty")
        if mode is SaveMode.OVERWRITE and not self.current_id:
            raise ValueError("No saved diagram to overwrite; save as new first")

        data = serialize(self.store)
        async with self._busy(f"save diagram {name}"):
            if mode is SaveMode.OVERWRITE:
                diagram_id = self.current_id
                await self.gateway.update(diagram_id, name, data)
            else:
                diagram_id = await self.gateway.create(name, data)

        self.current_id = diagram_id
        self.current_name = name
        self._flush()
        logger.info(f"Saved diagram {name} (ID: {diagram_id}, mode: {mode.value})")

        try:
            await self.refresh_library()
        except PersistenceError:
            logger.warning("Diagram saved but the library could not be refreshed")
        return diagram_id

    async def load(self, diagram_id: str) -> bool:
        """
        Replace the whole state with a stored diagram

        Only the most recently issued load is applied. A response (or failure)
        for an older load is discarded and reported as False.
        """
        self._load_sequence += 1
        ticket = self._load_sequence
        self.error = None
        self._in_flight += 1
        try:
            record = await self.gateway.read(diagram_id)
            if ticket != self._load_sequence:
                logger.debug(f"Discarding stale load of {diagram_id}")
                return False
            result = deserialize(record.data)
        except (PersistenceError, MalformedDocumentError) as e:
            if ticket != self._load_sequence:
                logger.debug(f"Discarding stale load failure for {diagram_id}: {e}")
                return False
            self.error = f"Failed to load diagram {diagram_id}: {e}"
            logger.error(self.error)
            raise
        finally:
            self._in_flight -= 1

        self._replace_state(result.store, record.name, record.id, result.warnings)
        logger.info(f"Loaded diagram {record.name} (ID: {record.id}, {len(result.warnings)} warnings)")
        return True

    async def refresh_library(self) -> List[DiagramSummary]:
        async with self._busy("list diagrams"):
            self.saved_diagrams = await self.gateway.list()
        return self.saved_diagrams

    async def delete(self, diagram_id: str) -> None:
        """Delete a stored diagram; the open state stays and becomes unsaved if it was that diagram"""
        async with self._busy(f"delete diagram {diagram_id}"):
            await self.gateway.delete(diagram_id)

        self.saved_diagrams = [summary for summary in self.saved_diagrams if summary.id != diagram_id]
        if self.current_id == diagram_id:
            self.current_id = None
            self._flush()

    # Export, import and sharing

    def export_document(self) -> str:
        return export_document(self.store, self.current_name)

    def import_document(self, content: Union[str, bytes], overwrite: bool = False) -> ImportResult:
        """
        Replace the state with an exported file

        Imported content is a new unsaved diagram unless `overwrite` is set and
        the file carries a persisted id, in which case the next
        SaveMode.OVERWRITE save targets that id.
        """
        result = import_document(content, keep_id=overwrite)
        self._replace_state(result.store, result.name or DEFAULT_DIAGRAM_NAME, result.diagram_id, result.warnings)
        return result

    def share_url(self, diagram_id: Optional[str] = None) -> Optional[str]:
        """Link that reopens a persisted diagram; None while the diagram is unsaved"""
        diagram_id = diagram_id or self.current_id
        if not diagram_id:
            return None
        parts = urlsplit(self.base_url)
        query = {key: values[-1] for key, values in parse_qs(parts.query).items()}
        query[SHARE_PARAM] = diagram_id
        return urlunsplit((parts.scheme, parts.netloc, parts.path or "/", urlencode(query), parts.fragment))

    async def open_shared(self, url: str) -> bool:
        """Load the diagram referenced by a share link; False when the link has none"""
        values = parse_qs(urlsplit(url).query).get(SHARE_PARAM)
        if not values or not values[-1]:
            return False
        return await self.load(values[-1])

    # Internals

    def _hydrate(self) -> GraphStore:
        cached = self.cache.load() if self.cache else None
        if cached is None:
            return sample_store()
        self.current_name = cached.name or DEFAULT_DIAGRAM_NAME
        self.current_id = cached.diagram_id
        self.last_warnings = cached.warnings
        return cached.store

    def _replace_state(self, store: GraphStore, name: str, diagram_id: Optional[str],
                       warnings: List[LoadWarning]) -> None:
        self.store.replace(store)
        self.current_name = name
        self.current_id = diagram_id
        self.last_warnings = list(warnings)
        self.hovered_id = None
        self._flush()

    def _flush(self) -> None:
        if self.cache is not None:
            self.cache.save(self.store, self.current_name, self.current_id)

    @asynccontextmanager
    async def _busy(self, action: str) -> AsyncIterator[None]:
        self.error = None
        self._in_flight += 1
        try:
            yield
        except PersistenceError as e:
            self.error = f"Failed to {action}: {e}"
            logger.error(self.error)
            raise
        finally:
            self._in_flight -= 1
