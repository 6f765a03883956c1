"""
Packet previews for operator dashboards.
"""

from dataclasses import dataclass
from enum import Enum

from transformation_core.codec import media_types
from transformation_core.errors import MalformedInputError, UnsupportedConversionError
from transformation_core.packets.metadata import ConnectorMetadata
from transformation_core.packets.packet import Packet

PREVIEW_LENGTH = 20


class PreviewDataType(str, Enum):
    JSON = "json"
    XML = "xml"
    PLAINTEXT = "plaintext"


@dataclass
class PacketPreview:
    data: str
    preview: str
    data_type: PreviewDataType


_DATA_TYPES = {
    media_types.APPLICATION_JSON: PreviewDataType.JSON,
    media_types.APPLICATION_XML: PreviewDataType.XML,
    media_types.TEXT_CSV: PreviewDataType.PLAINTEXT,
    media_types.TEXT_PLAIN: PreviewDataType.PLAINTEXT,
}


def packet_to_preview(packet: Packet) -> PacketPreview:
    """
    Render a packet for display.

    Error packets are shown whole as plain text. Other packets get a short
    preview and a data type derived from their metadata content type.

    Raises:
        MalformedInputError: If a non-error packet has no metadata
        UnsupportedConversionError: If the content type has no display form
    """
    data = packet.text()

    if packet.is_error:
        return PacketPreview(data, data, PreviewDataType.PLAINTEXT)

    if packet.metadata is None:
        raise MalformedInputError("Missing metadata information.")

    metadata = ConnectorMetadata.from_json(packet.metadata)
    data_type = _DATA_TYPES.get(media_types.normalize_media_type(metadata.content_type))
    if data_type is None:
        raise UnsupportedConversionError(metadata.content_type, "preview")

    return PacketPreview(data, data[:PREVIEW_LENGTH], data_type)
