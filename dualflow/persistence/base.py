from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Any, List, Mapping, Optional

from ..diagram.models import DiagramRecord, DiagramSummary


class PersistenceError(Exception):
    """Base class for diagram persistence failures."""


class DiagramNotFoundError(PersistenceError):
    """No diagram is stored under the requested id."""

    def __init__(self, diagram_id: str) -> None:
        super().__init__(f"Diagram {diagram_id} not found")
        self.diagram_id = diagram_id


class GatewayUnavailableError(PersistenceError):
    """The underlying store is unreachable or rejected the operation."""


class DiagramGateway(ABC):
    """Abstract document store for diagram snapshots, addressed by diagram id."""

    @property
    @abstractmethod
    def backend_name(self) -> str:
        """Return backend identifier (e.g. 'memory', 'mongo')."""

    async def ensure_schema(self) -> None:
        """Create indexes/collections if the backend needs them."""
        return None

    @abstractmethod
    async def create(self, name: str, data: Mapping[str, Any]) -> str:
        """Store a new diagram, assign its id and initialize both timestamps."""

    @abstractmethod
    async def read(self, diagram_id: str) -> DiagramRecord:
        """Return the stored diagram or raise DiagramNotFoundError."""

    @abstractmethod
    async def list(self) -> List[DiagramSummary]:
        """Return summaries ordered by most recently updated first."""

    @abstractmethod
    async def update(self, diagram_id: str, name: str, data: Mapping[str, Any]) -> None:
        """Replace name and data wholesale and advance updatedAt."""

    @abstractmethod
    async def delete(self, diagram_id: str) -> None:
        """Remove the diagram or raise DiagramNotFoundError."""

    async def close(self) -> None:
        """Release backend resources."""
        return None


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def advance_timestamp(previous: Optional[datetime]) -> datetime:
    """Current UTC time, nudged forward so it is strictly after `previous`."""
    now = utcnow()
    if previous is not None:
        if previous.tzinfo is None:
            previous = previous.replace(tzinfo=timezone.utc)
        if now <= previous:
            now = previous + timedelta(microseconds=1)
    return now
