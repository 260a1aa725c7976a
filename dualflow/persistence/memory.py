from __future__ import annotations

import threading
import uuid
from copy import deepcopy
from typing import Any, Dict, List, Mapping

from ..diagram.models import DiagramRecord, DiagramSummary
from ..flow_logging import get_logger
from .base import DiagramGateway, DiagramNotFoundError, advance_timestamp

logger = get_logger(__name__)


class MemoryDiagramGateway(DiagramGateway):
    """In-process diagram store used for local development and tests."""

    backend_name = "memory"

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._diagrams: Dict[str, Dict[str, Any]] = {}
        # Tie-breaker for saves landing on the same timestamp
        self._sequence = 0

    async def create(self, name: str, data: Mapping[str, Any]) -> str:
        diagram_id = uuid.uuid4().hex
        with self._lock:
            now = advance_timestamp(None)
            self._sequence += 1
            self._diagrams[diagram_id] = {
                "id": diagram_id,
                "name": name,
                "data": deepcopy(dict(data)),
                "created_at": now,
                "updated_at": now,
                "sequence": self._sequence,
            }
        logger.debug(f"Created diagram {diagram_id} ({name})")
        return diagram_id

    async def read(self, diagram_id: str) -> DiagramRecord:
        with self._lock:
            row = self._diagrams.get(diagram_id)
            if row is None:
                raise DiagramNotFoundError(diagram_id)
            return DiagramRecord(
                id=row["id"],
                name=row["name"],
                data=deepcopy(row["data"]),
                created_at=row["created_at"],
                updated_at=row["updated_at"],
            )

    async def list(self) -> List[DiagramSummary]:
        with self._lock:
            rows = sorted(self._diagrams.values(),
                          key=lambda row: (row["updated_at"], row["sequence"]),
                          reverse=True)
            return [DiagramSummary(id=row["id"], name=row["name"], updated_at=row["updated_at"]) for row in rows]

    async def update(self, diagram_id: str, name: str, data: Mapping[str, Any]) -> None:
        with self._lock:
            row = self._diagrams.get(diagram_id)
            if row is None:
                raise DiagramNotFoundError(diagram_id)
            self._sequence += 1
            row.update(
                name=name,
                data=deepcopy(dict(data)),
                updated_at=advance_timestamp(row["updated_at"]),
                sequence=self._sequence,
            )
        logger.debug(f"Updated diagram {diagram_id} ({name})")

    async def delete(self, diagram_id: str) -> None:
        with self._lock:
            if self._diagrams.pop(diagram_id, None) is None:
                raise DiagramNotFoundError(diagram_id)
        logger.debug(f"Deleted diagram {diagram_id}")

    def __len__(self) -> int:
        with self._lock:
            return len(self._diagrams)
