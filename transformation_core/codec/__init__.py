"""
Format Codecs
=============

Bidirectional converters between JSON, XML and CSV payloads.

Components:
- FormatCodec: dispatches a (from, to) content-type pair to a converter
- json_to_xml / xml_to_json / csv_to_xml / xml_to_csv / json_to_csv / csv_to_json
- trim_bom: byte-order-mark removal
"""

from transformation_core.codec.converters import (
    FormatCodec,
    CONVERTERS,
    json_to_xml,
    xml_to_json,
    csv_to_xml,
    xml_to_csv,
    json_to_csv,
    csv_to_json,
)
from transformation_core.codec.encoding import trim_bom
from transformation_core.codec.media_types import (
    APPLICATION_JSON,
    APPLICATION_XML,
    APPLICATION_OCTET_STREAM,
    TEXT_CSV,
    TEXT_PLAIN,
    normalize_media_type,
    same_media_type,
)

__all__ = [
    "FormatCodec",
    "CONVERTERS",
    "json_to_xml",
    "xml_to_json",
    "csv_to_xml",
    "xml_to_csv",
    "json_to_csv",
    "csv_to_json",
    "trim_bom",
    "APPLICATION_JSON",
    "APPLICATION_XML",
    "APPLICATION_OCTET_STREAM",
    "TEXT_CSV",
    "TEXT_PLAIN",
    "normalize_media_type",
    "same_media_type",
]
