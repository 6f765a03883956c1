"""
Packet model tests: status lifecycle, error packets, metadata wire format and previews.

Run with: pytest tests/test_packets.py -v
"""

import json

import pytest

from transformation_core.config.settings import (
    JsonToXmlOptions,
    RouteConfig,
    StoreMode,
    TypeConverterOptions,
)
from transformation_core.errors import InvalidStatusTransition, MalformedInputError, UnsupportedConversionError
from transformation_core.packets import (
    ConnectorMetadata,
    Packet,
    PacketStatus,
    PreviewDataType,
    packet_to_preview,
)


def _route(**fields):
    fields.setdefault("destination_topic", "orders.out")
    fields.setdefault("destination_type", "application/json")
    fields.setdefault("xslt_path", "xslt/orders.xslt")
    return RouteConfig(**fields)


class TestPacketStatus:
    """Tests for packet status transitions."""

    def test_forward_transitions(self):
        """A new packet moves forward to Processed."""
        packet = Packet(b"x", "Incoming")
        assert packet.transition(PacketStatus.IN_PROGRESS)
        assert packet.transition(PacketStatus.PROCESSED)
        assert packet.status == PacketStatus.PROCESSED

    def test_same_status_is_noop(self):
        """Moving to the current status reports no change."""
        packet = Packet(b"x", "Incoming", status=PacketStatus.IN_PROGRESS)
        assert packet.transition(PacketStatus.IN_PROGRESS) is False

    def test_terminal_status_is_final(self):
        """Terminal packets can not change status."""
        packet = Packet(b"x", "Incoming", status=PacketStatus.PROCESSED)
        with pytest.raises(InvalidStatusTransition):
            packet.transition(PacketStatus.FATAL_ERROR)

    def test_backwards_transition_rejected(self):
        """Status never moves backwards."""
        packet = Packet(b"x", "Incoming", status=PacketStatus.IN_PROGRESS)
        with pytest.raises(InvalidStatusTransition):
            packet.transition(PacketStatus.ENQUEUED)

    def test_ids_are_unique(self):
        """Each packet gets its own id."""
        assert Packet(b"", "Incoming").id != Packet(b"", "Incoming").id


class TestErrorChild:
    """Tests for error child packets."""

    def test_error_child_fields(self):
        """Error children hold the message on the parent's error channel."""
        parent = Packet(b"<a/>", "Outgoing", metadata="{}", status=PacketStatus.IN_PROGRESS)
        child = parent.error_child("boom")
        assert child.parent_id == parent.id
        assert child.channel == "Outgoing:Error"
        assert child.binary_data == b"boom"
        assert child.status == PacketStatus.FATAL_ERROR
        assert child.metadata is None
        assert child.is_error
        assert not parent.is_error

    def test_storage_document_round_trip(self):
        """Storage documents restore an equal packet."""
        packet = Packet(b"data", "Incoming", metadata='{"contentType": "text/csv"}', parent_id="p1")
        restored = Packet.from_dict(packet.to_dict())
        assert restored == packet


class TestConnectorMetadata:
    """Tests for metadata construction and wire format."""

    def test_dynamic_store_mode_records_route_key_only(self):
        """Dynamic mode stores only the route key."""
        metadata = ConnectorMetadata.for_route("orders", _route(), "application/json", StoreMode.DYNAMIC)
        assert metadata.is_by_reference
        assert metadata.to_wire() == {"contentType": "application/json", "transformKey": "orders"}

    def test_persistent_store_mode_copies_route(self):
        """Persistent mode copies the route settings into the metadata."""
        metadata = ConnectorMetadata.for_route("orders", _route(), "text/csv", StoreMode.PERSISTENT)
        wire = metadata.to_wire()
        assert "transformKey" not in wire
        assert wire["destinationTopic"] == "orders.out"
        assert wire["xsltPath"] == "xslt/orders.xslt"
        assert wire["destinationType"] == "application/json"
        assert wire["typeConverterOptions"]["jsonToXmlConverter"] == {
            "useRootWrapping": True,
            "rootWrapperName": "ROOT",
        }

    def test_route_store_mode_overrides_default(self):
        """A route's own store mode wins over the connector default."""
        route = _route(store_mode=StoreMode.PERSISTENT)
        metadata = ConnectorMetadata.for_route("orders", route, "text/csv", StoreMode.DYNAMIC)
        assert not metadata.is_by_reference

    def test_null_fields_are_omitted(self):
        """Unset fields are left out of the JSON."""
        metadata = ConnectorMetadata(content_type="application/xml", destination_topic="t")
        assert json.loads(metadata.to_json()) == {"destinationTopic": "t", "contentType": "application/xml"}

    def test_json_round_trip_keeps_options(self):
        """Converter options survive a JSON round trip."""
        options = TypeConverterOptions(json_to_xml=JsonToXmlOptions(use_root_wrapping=False, root_wrapper_name="X"))
        metadata = ConnectorMetadata(content_type="application/json", type_converter_options=options)
        assert ConnectorMetadata.from_json(metadata.to_json()) == metadata

    def test_with_content_type_returns_copy(self):
        """Changing the content type leaves the original alone."""
        metadata = ConnectorMetadata(content_type="application/json", transform_key="orders")
        changed = metadata.with_content_type("application/xml")
        assert changed.content_type == "application/xml"
        assert metadata.content_type == "application/json"
        assert changed.transform_key == "orders"

    def test_inline_route(self):
        """Persistent metadata rebuilds the route it was made from."""
        metadata = ConnectorMetadata.for_route("orders", _route(), "text/csv", StoreMode.PERSISTENT)
        route = metadata.inline_route()
        assert route.destination_topic == "orders.out"
        assert route.destination_type == "application/json"

    @pytest.mark.parametrize("text", [None, "", "not json", "[]", '{"destinationTopic": "t"}'])
    def test_undecodable_metadata_raises(self, text):
        """Missing or unusable metadata is malformed input."""
        with pytest.raises(MalformedInputError):
            ConnectorMetadata.from_json(text)


class TestPacketPreview:
    """Tests for packet_to_preview."""

    def _packet(self, data, content_type):
        return Packet(data, "Incoming", metadata=ConnectorMetadata(content_type=content_type).to_json())

    def test_json_preview_is_truncated(self):
        """JSON previews keep the full data and a short preview."""
        data = b'{"customer": "Someone with a long name"}'
        preview = packet_to_preview(self._packet(data, "application/json"))
        assert preview.data_type == PreviewDataType.JSON
        assert preview.data == data.decode()
        assert preview.preview == data.decode()[:20]

    def test_xml_and_csv_types(self):
        """XML types preview as XML, CSV as plain text."""
        assert packet_to_preview(self._packet(b"<a/>", "text/xml")).data_type == PreviewDataType.XML
        assert packet_to_preview(self._packet(b"a,b", "text/csv")).data_type == PreviewDataType.PLAINTEXT

    def test_error_packet_shown_whole(self):
        """Error packet messages are not truncated."""
        parent = Packet(b"x", "Outgoing")
        message = "A long error message that is not truncated"
        preview = packet_to_preview(parent.error_child(message))
        assert preview.preview == message
        assert preview.data_type == PreviewDataType.PLAINTEXT

    def test_missing_metadata_raises(self):
        """Packets without metadata can not be previewed."""
        with pytest.raises(MalformedInputError, match="Missing metadata information."):
            packet_to_preview(Packet(b"x", "Incoming"))

    def test_unsupported_content_type_raises(self):
        """Binary content types have no preview."""
        with pytest.raises(UnsupportedConversionError):
            packet_to_preview(self._packet(b"x", "application/octet-stream"))
