"""
Packet Model
============

Packets, their lifecycle status and the connector metadata they carry.
"""

from transformation_core.packets.packet import (
    Packet,
    PacketStatus,
    ERROR_CHANNEL_SUFFIX,
)
from transformation_core.packets.metadata import ConnectorMetadata
from transformation_core.packets.preview import (
    PacketPreview,
    PreviewDataType,
    packet_to_preview,
)

__all__ = [
    "Packet",
    "PacketStatus",
    "ERROR_CHANNEL_SUFFIX",
    "ConnectorMetadata",
    "PacketPreview",
    "PreviewDataType",
    "packet_to_preview",
]
