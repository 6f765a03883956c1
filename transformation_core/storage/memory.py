"""
In-memory packet repository.
"""

from typing import Dict, List, Optional
import logging
import threading

from transformation_core.packets.packet import Packet, PacketStatus
from transformation_core.storage.base import PacketRepository

logger = logging.getLogger(__name__)


class InMemoryPacketRepository(PacketRepository):
    """
    Dictionary-backed repository.

    Stored packets are copies, so a stored status only changes through
    ``update_status``.
    """

    def __init__(self):
        self._packets: Dict[str, Packet] = {}
        self._lock = threading.Lock()

    def add(self, packet: Packet) -> Packet:
        with self._lock:
            self._packets[packet.id] = packet.copy()
        logger.debug(f"Stored packet {packet.id} ({packet.channel}, {packet.status.value})")
        return packet

    def update_status(self, packet_id: str, status: PacketStatus) -> bool:
        with self._lock:
            stored = self._packets.get(packet_id)
            if stored is None:
                logger.warning(f"Cannot update status: packet {packet_id} not found")
                return False
            self._packets[packet_id] = stored.copy(status=status)
        return True

    def get(self, packet_id: str) -> Optional[Packet]:
        with self._lock:
            stored = self._packets.get(packet_id)
        return stored.copy() if stored is not None else None

    def children_of(self, packet_id: str) -> List[Packet]:
        with self._lock:
            children = [p.copy() for p in self._packets.values() if p.parent_id == packet_id]
        return sorted(children, key=lambda p: p.date_created)

    def list(self, status: Optional[PacketStatus] = None, limit: int = 100) -> List[Packet]:
        with self._lock:
            packets = [p.copy() for p in self._packets.values()
                       if status is None or p.status == status]
        packets.sort(key=lambda p: p.date_created, reverse=True)
        return packets[:limit]

    def __len__(self) -> int:
        with self._lock:
            return len(self._packets)
