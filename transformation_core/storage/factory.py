"""
Repository factory.
"""

import logging

from transformation_core.config.settings import StorageConfig
from transformation_core.errors import ConfigurationError
from transformation_core.storage.base import PacketRepository
from transformation_core.storage.memory import InMemoryPacketRepository
from transformation_core.storage.mongodb import MongoPacketRepository

logger = logging.getLogger(__name__)


def create_repository(config: StorageConfig) -> PacketRepository:
    """
    Build the packet repository selected by the storage configuration.

    Raises:
        ConfigurationError: If the backend is unknown
    """
    backend = (config.backend or "memory").strip().lower()

    if backend == "memory":
        logger.info("Using in-memory packet repository")
        return InMemoryPacketRepository()

    if backend == "mongodb":
        logger.info(f"Using MongoDB packet repository: {config.mongodb_database}.{config.mongodb_collection}")
        return MongoPacketRepository(
            uri=config.mongodb_uri,
            database=config.mongodb_database,
            collection=config.mongodb_collection,
        )

    raise ConfigurationError(f"Unknown storage backend '{config.backend}'. Expected memory or mongodb")
