from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Any, AsyncIterator, Dict, List, Mapping, Optional

from bson import ObjectId
from pymongo.errors import PyMongoError

from ..config import DualFlowConfig
from ..diagram.models import DiagramRecord, DiagramSummary
from ..flow_logging import get_logger
from ..mongodb_service import MongoDBService
from .base import DiagramGateway, DiagramNotFoundError, GatewayUnavailableError, utcnow

logger = get_logger(__name__)


def _as_utc(value: datetime) -> datetime:
    # pymongo returns naive UTC datetimes unless the client is tz_aware
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


def _next_timestamp(previous: Optional[datetime]) -> datetime:
    # BSON dates keep millisecond precision
    now = utcnow()
    now = now.replace(microsecond=now.microsecond // 1000 * 1000)
    if previous is not None:
        previous = _as_utc(previous)
        if now <= previous:
            now = previous + timedelta(milliseconds=1)
    return now


class MongoDiagramGateway(DiagramGateway):
    """Diagram documents stored in a MongoDB collection, one document per diagram."""

    backend_name = "mongo"

    def __init__(self, mongodb_service: Optional[MongoDBService] = None,
                 collection: Optional[str] = None, config: Optional[DualFlowConfig] = None) -> None:
        config = config or DualFlowConfig.from_env()
        self.mongodb = mongodb_service or MongoDBService(config=config)
        self.collection = collection or config.diagram_collection

    async def ensure_schema(self) -> None:
        async with self._guard("initialize collection"):
            collections = await self.mongodb.list_collections()
            if self.collection not in collections:
                await self.mongodb.create_index(self.collection, [("id", 1)], unique=True)
                await self.mongodb.create_index(self.collection, [("updated_at", -1)])
                logger.info(f"Diagram collection {self.collection} initialized")

    async def create(self, name: str, data: Mapping[str, Any]) -> str:
        diagram_id = str(ObjectId())
        now = _next_timestamp(None)
        async with self._guard(f"create diagram {name}"):
            await self.mongodb.insert_one(self.collection, {
                "id": diagram_id,
                "name": name,
                "data": dict(data),
                "created_at": now,
                "updated_at": now,
            })
        logger.info(f"Created diagram {name} (ID: {diagram_id})")
        return diagram_id

    async def read(self, diagram_id: str) -> DiagramRecord:
        async with self._guard(f"read diagram {diagram_id}"):
            doc = await self.mongodb.find_one(self.collection, {"id": diagram_id}, {"_id": 0})
        if not doc:
            raise DiagramNotFoundError(diagram_id)
        return DiagramRecord(
            id=doc["id"],
            name=doc["name"],
            data=doc.get("data") or {},
            created_at=_as_utc(doc["created_at"]),
            updated_at=_as_utc(doc["updated_at"]),
        )

    async def list(self) -> List[DiagramSummary]:
        async with self._guard("list diagrams"):
            docs = await self.mongodb.find_documents(
                self.collection,
                projection={"_id": 0, "id": 1, "name": 1, "updated_at": 1},
                sort=[("updated_at", -1)],
            )
        return [DiagramSummary(id=doc["id"], name=doc["name"], updated_at=_as_utc(doc["updated_at"]))
                for doc in docs]

    async def update(self, diagram_id: str, name: str, data: Mapping[str, Any]) -> None:
        async with self._guard(f"update diagram {diagram_id}"):
            current = await self.mongodb.find_one(self.collection, {"id": diagram_id}, {"_id": 0, "updated_at": 1})
            if not current:
                raise DiagramNotFoundError(diagram_id)
            update: Dict[str, Any] = {
                "name": name,
                "data": dict(data),
                "updated_at": _next_timestamp(current.get("updated_at")),
            }
            matched = await self.mongodb.update_one(self.collection, {"id": diagram_id}, update)
        if not matched:
            raise DiagramNotFoundError(diagram_id)
        logger.info(f"Updated diagram {name} (ID: {diagram_id})")

    async def delete(self, diagram_id: str) -> None:
        async with self._guard(f"delete diagram {diagram_id}"):
            deleted = await self.mongodb.delete_one(self.collection, {"id": diagram_id})
        if not deleted:
            raise DiagramNotFoundError(diagram_id)
        logger.info(f"Deleted diagram {diagram_id}")

    async def close(self) -> None:
        await self.mongodb.disconnect()

    @asynccontextmanager
    async def _guard(self, action: str) -> AsyncIterator[None]:
        """Translate driver and connection failures into GatewayUnavailableError"""
        try:
            yield
        except (PyMongoError, RuntimeError) as e:
            logger.error(f"Failed to {action}: {e}")
            raise GatewayUnavailableError(f"Failed to {action}: {e}") from e
