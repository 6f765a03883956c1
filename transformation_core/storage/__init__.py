"""
Packet Storage
==============

Packet repository port and implementations.

Components:
- PacketRepository: abstract store
- InMemoryPacketRepository: dictionary-backed store
- MongoPacketRepository: pymongo-backed store
- create_repository: builds the store selected by StorageConfig
"""

from transformation_core.storage.base import PacketRepository
from transformation_core.storage.factory import create_repository
from transformation_core.storage.memory import InMemoryPacketRepository
from transformation_core.storage.mongodb import MongoPacketRepository

__all__ = [
    "PacketRepository",
    "InMemoryPacketRepository",
    "MongoPacketRepository",
    "create_repository",
]
