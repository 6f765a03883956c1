"""
Packet Model
============

A packet is one unit of payload in flight. Its payload is never changed once
created; every pipeline stage produces a new packet that points back to the
previous one, and failures are recorded as error child packets.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any
import uuid

from transformation_core.errors import InvalidStatusTransition

ERROR_CHANNEL_SUFFIX = ":Error"


class PacketStatus(str, Enum):
    """Packet lifecycle status."""
    ENQUEUED = "Enqueued"
    IN_PROGRESS = "InProgress"
    PROCESSED = "Processed"
    FATAL_ERROR = "FatalError"

    @property
    def is_terminal(self) -> bool:
        return self in (PacketStatus.PROCESSED, PacketStatus.FATAL_ERROR)

    @property
    def rank(self) -> int:
        return _STATUS_RANK[self]


_STATUS_RANK = {
    PacketStatus.ENQUEUED: 0,
    PacketStatus.IN_PROGRESS: 1,
    PacketStatus.PROCESSED: 2,
    PacketStatus.FATAL_ERROR: 2,
}


def _new_packet_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Packet:
    """
    Container for a payload and its routing metadata.

    Attributes:
        binary_data: Raw payload bytes
        channel: Direction tag ("Incoming", "Outgoing" or an ":Error" variant)
        metadata: Serialized ConnectorMetadata (JSON text), None for error packets
        status: Lifecycle status
        parent_id: Id of the packet this one was derived from
        id: Unique identifier
        date_created: Creation timestamp (UTC)
    """
    binary_data: bytes
    channel: str
    metadata: Optional[str] = None
    status: PacketStatus = PacketStatus.ENQUEUED
    parent_id: Optional[str] = None
    id: str = field(default_factory=_new_packet_id)
    date_created: datetime = field(default_factory=_utcnow)

    def transition(self, status: PacketStatus) -> bool:
        """
        Move the packet to a new status.

        Status only moves forward; terminal states are final.

        Args:
            status: Target status

        Returns:
            True if the status changed, False if it already had that status

        Raises:
            InvalidStatusTransition: If the move is backwards or leaves a terminal state
        """
        if status == self.status:
            return False
        if self.status.is_terminal or status.rank < self.status.rank:
            raise InvalidStatusTransition(
                f"Packet {self.id} can not move from {self.status.value} to {status.value}"
            )
        self.status = status
        return True

    @property
    def is_error(self) -> bool:
        return self.channel.endswith("Error")

    def text(self, encoding: str = "utf-8") -> str:
        return self.binary_data.decode(encoding, errors="replace")

    def error_child(self, message: str) -> 'Packet':
        """
        Build the error child packet recording a failure of this packet.

        The child carries the error text as payload, points at this packet as
        parent and lives on this packet's channel suffixed with ":Error".
        """
        return Packet(
            binary_data=message.encode("utf-8"),
            channel=f"{self.channel}{ERROR_CHANNEL_SUFFIX}",
            status=PacketStatus.FATAL_ERROR,
            parent_id=self.id,
        )

    def copy(self, **changes) -> 'Packet':
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a storage document."""
        return {
            "packet_id": self.id,
            "parent_id": self.parent_id,
            "channel": self.channel,
            "binary_data": self.binary_data,
            "metadata": self.metadata,
            "status": self.status.value,
            "date_created": self.date_created,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Packet':
        """Create from a storage document."""
        date_created = data.get("date_created") or _utcnow()
        if isinstance(date_created, str):
            date_created = datetime.fromisoformat(date_created)
        return cls(
            id=data["packet_id"],
            parent_id=data.get("parent_id"),
            channel=data["channel"],
            binary_data=bytes(data.get("binary_data") or b""),
            metadata=data.get("metadata"),
            status=PacketStatus(data.get("status", PacketStatus.ENQUEUED.value)),
            date_created=date_created,
        )
