"""
Packet Repository
=================

Port for packet persistence. The pipeline only adds packets and updates
their status; lookups serve the HTTP surface and reprocessing.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from transformation_core.packets.packet import Packet, PacketStatus


class PacketRepository(ABC):
    """Abstract packet store."""

    @abstractmethod
    def add(self, packet: Packet) -> Packet:
        """Store a new packet and return it."""
        pass

    @abstractmethod
    def update_status(self, packet_id: str, status: PacketStatus) -> bool:
        """
        Set the status of a stored packet.

        Returns:
            True if a packet was updated, False if the id is unknown
        """
        pass

    @abstractmethod
    def get(self, packet_id: str) -> Optional[Packet]:
        pass

    @abstractmethod
    def children_of(self, packet_id: str) -> List[Packet]:
        """Packets whose parent is the given packet, oldest first."""
        pass

    @abstractmethod
    def list(self, status: Optional[PacketStatus] = None, limit: int = 100) -> List[Packet]:
        """Most recent packets first, optionally filtered by status."""
        pass
