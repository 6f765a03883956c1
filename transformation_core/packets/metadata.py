"""
Connector Metadata
==================

Side-channel carried in ``Packet.metadata`` describing how to interpret and
route the payload.

Wire format (JSON, camelCase, null fields omitted):

    {
      "destinationTopic": "orders.out",
      "xsltPath": "xslt/orders.xslt",
      "contentType": "application/json",
      "destinationType": "application/xml",
      "typeConverterOptions": {"jsonToXmlConverter": {...}, ...},
      "transformKey": "orders"
    }

Exactly one of (inline route parameters, ``transformKey``) is populated,
decided by the route's store mode when the packet was first created.
"""

from dataclasses import dataclass, replace
from typing import Optional, Dict, Any
import json
import logging

from transformation_core.config.settings import (
    RouteConfig,
    StoreMode,
    TypeConverterOptions,
    JsonToXmlOptions,
    XmlToJsonOptions,
    CsvToXmlOptions,
    XmlToCsvOptions,
)
from transformation_core.errors import MalformedInputError

logger = logging.getLogger(__name__)


def _options_to_wire(options: TypeConverterOptions) -> Dict[str, Any]:
    return {
        "jsonToXmlConverter": {
            "useRootWrapping": options.json_to_xml.use_root_wrapping,
            "rootWrapperName": options.json_to_xml.root_wrapper_name,
        },
        "xmlToJsonConverter": {
            "includeRootWrapper": options.xml_to_json.include_root_wrapper,
        },
        "csvToXmlConverter": {
            "rootWrapperName": options.csv_to_xml.root_wrapper_name,
            "rowWrapperName": options.csv_to_xml.row_wrapper_name,
        },
        "xmlToCsvConverter": {
            "rowWrapperName": options.xml_to_csv.row_wrapper_name,
        },
    }


def _options_from_wire(data: Dict[str, Any]) -> TypeConverterOptions:
    options = TypeConverterOptions()
    json_to_xml = data.get("jsonToXmlConverter") or {}
    xml_to_json = data.get("xmlToJsonConverter") or {}
    csv_to_xml = data.get("csvToXmlConverter") or {}
    xml_to_csv = data.get("xmlToCsvConverter") or {}

    defaults = options
    options.json_to_xml = JsonToXmlOptions(
        use_root_wrapping=json_to_xml.get("useRootWrapping", defaults.json_to_xml.use_root_wrapping),
        root_wrapper_name=json_to_xml.get("rootWrapperName", defaults.json_to_xml.root_wrapper_name),
    )
    options.xml_to_json = XmlToJsonOptions(
        include_root_wrapper=xml_to_json.get("includeRootWrapper", defaults.xml_to_json.include_root_wrapper),
    )
    options.csv_to_xml = CsvToXmlOptions(
        root_wrapper_name=csv_to_xml.get("rootWrapperName", defaults.csv_to_xml.root_wrapper_name),
        row_wrapper_name=csv_to_xml.get("rowWrapperName", defaults.csv_to_xml.row_wrapper_name),
    )
    options.xml_to_csv = XmlToCsvOptions(
        row_wrapper_name=xml_to_csv.get("rowWrapperName", defaults.xml_to_csv.row_wrapper_name),
    )
    return options


@dataclass(frozen=True)
class ConnectorMetadata:
    """
    Typed view of a packet's metadata.

    Decoded once per message and threaded through the pipeline; re-encoded
    only when a new packet is materialised.
    """
    content_type: str
    destination_topic: Optional[str] = None
    xslt_path: Optional[str] = None
    destination_type: Optional[str] = None
    type_converter_options: Optional[TypeConverterOptions] = None
    transform_key: Optional[str] = None

    @property
    def is_by_reference(self) -> bool:
        return self.transform_key is not None

    def with_content_type(self, content_type: str) -> 'ConnectorMetadata':
        return replace(self, content_type=content_type)

    @classmethod
    def for_route(cls,
                  route_key: str,
                  route: RouteConfig,
                  content_type: str,
                  default_store_mode: StoreMode = StoreMode.DYNAMIC) -> 'ConnectorMetadata':
        """
        Build metadata for a packet entering the pipeline on a route.

        Persistent store mode copies the resolved route parameters into the
        metadata; Dynamic store mode records only the route key.
        """
        store_mode = route.store_mode or default_store_mode

        if store_mode == StoreMode.PERSISTENT:
            return cls(
                content_type=content_type,
                destination_topic=route.destination_topic,
                xslt_path=route.xslt_path,
                destination_type=route.destination_type,
                type_converter_options=route.type_converter_options,
            )
        return cls(content_type=content_type, transform_key=route_key)

    def inline_route(self) -> RouteConfig:
        """Rebuild a route from self-contained metadata."""
        return RouteConfig(
            destination_topic=self.destination_topic,
            xslt_path=self.xslt_path,
            destination_type=self.destination_type,
            type_converter_options=self.type_converter_options or TypeConverterOptions(),
        )

    def to_wire(self) -> Dict[str, Any]:
        data = {
            "destinationTopic": self.destination_topic,
            "xsltPath": self.xslt_path,
            "contentType": self.content_type,
            "destinationType": self.destination_type,
            "typeConverterOptions": (
                _options_to_wire(self.type_converter_options)
                if self.type_converter_options is not None else None
            ),
            "transformKey": self.transform_key,
        }
        return {key: value for key, value in data.items() if value is not None}

    def to_json(self) -> str:
        return json.dumps(self.to_wire())

    @classmethod
    def from_wire(cls, data: Dict[str, Any]) -> 'ConnectorMetadata':
        if not isinstance(data, dict):
            raise MalformedInputError("Packet metadata must be a JSON object")
        content_type = data.get("contentType")
        if not content_type:
            raise MalformedInputError("Packet metadata is missing contentType")

        options = data.get("typeConverterOptions")
        return cls(
            content_type=content_type,
            destination_topic=data.get("destinationTopic"),
            xslt_path=data.get("xsltPath"),
            destination_type=data.get("destinationType"),
            type_converter_options=_options_from_wire(options) if options is not None else None,
            transform_key=data.get("transformKey"),
        )

    @classmethod
    def from_json(cls, text: Optional[str]) -> 'ConnectorMetadata':
        """
        Decode wire metadata.

        Raises:
            MalformedInputError: If the text is missing or not valid metadata JSON
        """
        if not text:
            raise MalformedInputError("Could not deserialize metadata or metadata is null")
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise MalformedInputError(f"Could not deserialize metadata: {e}") from e
        return cls.from_wire(data)
