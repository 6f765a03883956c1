"""
MongoDB Packet Repository

Stores packets in a MongoDB collection, one document per packet.

Configuration:
    Taken from StorageConfig, which honours these environment variables:
    - MONGODB_URI: MongoDB connection string (default: mongodb://localhost:27017)
    - MONGODB_DATABASE: Database name (default: transformation)
    - MONGODB_COLLECTION: Collection name (default: packets)

Usage:
    from transformation_core.storage import MongoPacketRepository

    repository = MongoPacketRepository("mongodb://localhost:27017")
    repository.add(packet)
    repository.update_status(packet.id, PacketStatus.PROCESSED)
"""

import logging
from typing import Any, Dict, List, Optional

from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.errors import ConnectionFailure, PyMongoError, ServerSelectionTimeoutError

from transformation_core.errors import RepositoryError
from transformation_core.packets.packet import Packet, PacketStatus
from transformation_core.storage.base import PacketRepository

logger = logging.getLogger(__name__)

# Documents are read without Mongo's own id
_PROJECTION = {"_id": 0}


class MongoPacketRepository(PacketRepository):
    """
    MongoDB-backed repository.

    The connection is opened lazily on first use. A collection object can be
    passed in directly, which skips connecting.
    """

    def __init__(self,
                 uri: str = "mongodb://localhost:27017",
                 database: str = "transformation",
                 collection: str = "packets",
                 timeout_ms: int = 5000,
                 collection_obj: Any = None):
        self.uri = uri
        self.database = database
        self.collection_name = collection
        self.timeout_ms = timeout_ms
        self._client: Optional[MongoClient] = None
        self._collection = collection_obj
        self._connected = collection_obj is not None

    def connect(self) -> bool:
        """
        Establish connection to MongoDB.

        Returns:
            True if connected successfully, False otherwise.
        """
        try:
            self._client = MongoClient(
                self.uri,
                serverSelectionTimeoutMS=self.timeout_ms,
                tz_aware=True,
            )
            # Test connection
            self._client.admin.command('ping')

            self._collection = self._client[self.database][self.collection_name]
            self._create_indexes()

            self._connected = True
            logger.info(f"Connected to MongoDB: {self.database}.{self.collection_name}")
            return True

        except (ConnectionFailure, ServerSelectionTimeoutError) as e:
            logger.error(f"Failed to connect to MongoDB: {e}")
            self._connected = False
            return False

    def _create_indexes(self):
        """Create indexes for packet lookups."""
        self._collection.create_index("packet_id", unique=True)
        self._collection.create_index("parent_id")
        self._collection.create_index("status")
        self._collection.create_index([("date_created", DESCENDING)])
        logger.debug("MongoDB indexes created")

    def disconnect(self):
        """Close MongoDB connection."""
        if self._client:
            self._client.close()
            self._client = None
            self._connected = False
            logger.info("Disconnected from MongoDB")

    @property
    def is_connected(self) -> bool:
        return self._connected and self._collection is not None

    def _require_collection(self):
        if not self.is_connected and not self.connect():
            raise RepositoryError(f"MongoDB is not reachable at {self.uri}")
        return self._collection

    def add(self, packet: Packet) -> Packet:
        collection = self._require_collection()
        try:
            collection.insert_one(packet.to_dict())
        except PyMongoError as e:
            raise RepositoryError(f"Failed to store packet {packet.id}: {e}") from e
        logger.debug(f"Stored packet {packet.id} ({packet.channel}, {packet.status.value})")
        return packet

    def update_status(self, packet_id: str, status: PacketStatus) -> bool:
        collection = self._require_collection()
        try:
            result = collection.update_one(
                {"packet_id": packet_id},
                {"$set": {"status": status.value}},
            )
        except PyMongoError as e:
            raise RepositoryError(f"Failed to update packet {packet_id}: {e}") from e

        if result.matched_count == 0:
            logger.warning(f"Cannot update status: packet {packet_id} not found")
            return False
        return True

    def get(self, packet_id: str) -> Optional[Packet]:
        collection = self._require_collection()
        try:
            document = collection.find_one({"packet_id": packet_id}, _PROJECTION)
        except PyMongoError as e:
            raise RepositoryError(f"Failed to load packet {packet_id}: {e}") from e
        return Packet.from_dict(document) if document else None

    def _find(self, query: Dict[str, Any], sort_order: int, limit: int = 0) -> List[Packet]:
        collection = self._require_collection()
        try:
            cursor = collection.find(query, _PROJECTION).sort("date_created", sort_order)
            if limit:
                cursor = cursor.limit(limit)
            return [Packet.from_dict(document) for document in cursor]
        except PyMongoError as e:
            raise RepositoryError(f"Failed to query packets: {e}") from e

    def children_of(self, packet_id: str) -> List[Packet]:
        return self._find({"parent_id": packet_id}, ASCENDING)

    def list(self, status: Optional[PacketStatus] = None, limit: int = 100) -> List[Packet]:
        query = {"status": status.value} if status is not None else {}
        return self._find(query, DESCENDING, limit)
