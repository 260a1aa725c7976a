"""
General MongoDB Service
Provides the MongoDB operations used by the diagram document store.
"""

from typing import Any, Dict, List, Optional, Tuple

from pymongo import MongoClient
from pymongo.errors import ConnectionFailure, ServerSelectionTimeoutError

from .config import DualFlowConfig
from .flow_logging import get_logger

logger = get_logger(__name__)


class MongoDBService:
    """
    MongoDB service for common database operations.

    The methods are coroutines over the synchronous pymongo driver, so each
    call blocks the event loop for one short round trip to the server.
    """

    def __init__(self, connection_string: Optional[str] = None, database_name: Optional[str] = None,
                 config: Optional[DualFlowConfig] = None):
        """Initialize MongoDB service."""
        config = config or DualFlowConfig.from_env()
        self.connection_string = connection_string or config.mongo_uri
        self.database_name = database_name or config.mongo_database
        self.client = None
        self.db = None

    async def connect(self) -> bool:
        """Connect to MongoDB."""
        if not self.connection_string:
            logger.warning("MONGO_URI not configured, MongoDB service disabled")
            return False

        try:
            self.client = MongoClient(
                self.connection_string,
                serverSelectionTimeoutMS=5000,
                connectTimeoutMS=5000,
                socketTimeoutMS=30000,
                maxPoolSize=10,
                retryWrites=True
            )
            # Test the connection
            self.client.admin.command('ping')
            self.db = self.client[self.database_name]
            logger.info(f"Connected to MongoDB database: {self.database_name}")
            return True
        except (ConnectionFailure, ServerSelectionTimeoutError) as e:
            logger.error(f"Failed to connect to MongoDB: {e}")
            return False

    async def disconnect(self):
        """Disconnect from MongoDB."""
        if self.client:
            self.client.close()
            self.client = None
            self.db = None
            logger.info("Disconnected from MongoDB")

    async def _ensure_connected(self):
        """Ensure MongoDB connection is active."""
        if self.db is None:
            success = await self.connect()
            if not success:
                raise RuntimeError("MongoDB connection failed")

    async def list_collections(self) -> List[str]:
        """List all collections in the database."""
        await self._ensure_connected()
        return self.db.list_collection_names()

    async def create_index(self, collection_name: str, index_spec: List[Tuple[str, int]], **kwargs) -> str:
        """Create an index on a collection."""
        await self._ensure_connected()
        collection = self.db[collection_name]
        return collection.create_index(index_spec, **kwargs)

    async def insert_one(self, collection_name: str, document: Dict[str, Any]) -> str:
        """Insert a single document."""
        await self._ensure_connected()
        collection = self.db[collection_name]
        result = collection.insert_one(document)
        return str(result.inserted_id)

    async def find_one(self, collection_name: str, filter_dict: Dict[str, Any] = None,
                       projection: Optional[Dict[str, int]] = None) -> Optional[Dict[str, Any]]:
        """Find a single document."""
        await self._ensure_connected()
        collection = self.db[collection_name]
        result = collection.find_one(filter_dict or {}, projection)
        if result and '_id' in result:
            result['_id'] = str(result['_id'])
        return result

    async def find_documents(self, collection_name: str, filter_dict: Dict[str, Any] = None,
                             projection: Optional[Dict[str, int]] = None,
                             sort: Optional[List[Tuple[str, int]]] = None,
                             limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Find multiple documents."""
        await self._ensure_connected()
        collection = self.db[collection_name]
        cursor = collection.find(filter_dict or {}, projection)

        if sort:
            cursor = cursor.sort(sort)
        if limit:
            cursor = cursor.limit(limit)

        results = []
        for doc in cursor:
            if '_id' in doc:
                doc['_id'] = str(doc['_id'])
            results.append(doc)
        return results

    async def update_one(self, collection_name: str, filter_dict: Dict[str, Any],
                         update_dict: Dict[str, Any], upsert: bool = False) -> int:
        """Update a single document; returns the number of matched documents."""
        await self._ensure_connected()
        collection = self.db[collection_name]
        result = collection.update_one(filter_dict, {'$set': update_dict}, upsert=upsert)
        return result.matched_count

    async def delete_one(self, collection_name: str, filter_dict: Dict[str, Any]) -> bool:
        """Delete a single document."""
        await self._ensure_connected()
        collection = self.db[collection_name]
        result = collection.delete_one(filter_dict)
        return result.deleted_count > 0

