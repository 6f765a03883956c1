"""
Configuration Settings
======================

Configuration dataclasses for transformation routes.

A configuration file declares one entry per named route plus a few global
settings. Files are loaded once at process start and treated as read-only
afterwards; changing a route requires a reload.

Example (YAML):

    save_packets: true
    store_mode: dynamic
    routes:
      orders:
        type: xslt
        source_topic: orders.in
        destination_topic: orders.out
        xslt_path: xslt/orders.xslt
        destination_type: application/json
        functions:
          - name: AddDateTimeStamp
            parameters: {Format: "%Y-%m-%d"}
            target_node: /ROOT/ProcessedAt
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from pathlib import Path
from typing import Optional, List, Dict, Any, Mapping
import json
import logging
import os

import yaml

logger = logging.getLogger(__name__)


class TransformationType(str, Enum):
    """Route-level policy selecting which stages apply."""
    XSLT = "Xslt"
    CONVERSION = "Conversion"
    ROUTING = "Routing"
    FUNCTIONS = "Functions"

    @classmethod
    def parse(cls, value: Any) -> 'TransformationType':
        return _parse_enum(cls, value)


class StoreMode(str, Enum):
    """Whether packet metadata is self-contained or refers back to the route."""
    PERSISTENT = "Persistent"
    DYNAMIC = "Dynamic"

    @classmethod
    def parse(cls, value: Any) -> 'StoreMode':
        return _parse_enum(cls, value)


def _parse_enum(enum_cls, value):
    if isinstance(value, enum_cls):
        return value
    text = str(value).strip().lower()
    for member in enum_cls:
        if member.value.lower() == text or member.name.lower() == text:
            return member
    choices = ", ".join(m.value for m in enum_cls)
    raise ValueError(f"Invalid {enum_cls.__name__} '{value}'. Expected one of: {choices}")


@dataclass
class JsonToXmlOptions:
    use_root_wrapping: bool = True
    root_wrapper_name: str = "ROOT"


@dataclass
class XmlToJsonOptions:
    include_root_wrapper: bool = True


@dataclass
class CsvToXmlOptions:
    root_wrapper_name: str = "ROOT"
    row_wrapper_name: str = "ROW"


@dataclass
class XmlToCsvOptions:
    row_wrapper_name: str = "ROW"


@dataclass
class TypeConverterOptions:
    """Per-route codec behaviour (wrapper and row element names)."""

    json_to_xml: JsonToXmlOptions = field(default_factory=JsonToXmlOptions)
    xml_to_json: XmlToJsonOptions = field(default_factory=XmlToJsonOptions)
    csv_to_xml: CsvToXmlOptions = field(default_factory=CsvToXmlOptions)
    xml_to_csv: XmlToCsvOptions = field(default_factory=XmlToCsvOptions)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> 'TypeConverterOptions':
        options = cls()
        if not data:
            return options
        if 'json_to_xml' in data:
            options.json_to_xml = JsonToXmlOptions(**data['json_to_xml'])
        if 'xml_to_json' in data:
            options.xml_to_json = XmlToJsonOptions(**data['xml_to_json'])
        if 'csv_to_xml' in data:
            options.csv_to_xml = CsvToXmlOptions(**data['csv_to_xml'])
        if 'xml_to_csv' in data:
            options.xml_to_csv = XmlToCsvOptions(**data['xml_to_csv'])
        return options


@dataclass
class DestinationRoutingConfig:
    """Routing stylesheet and the XPath that picks the destination topic."""

    xslt_path: Optional[str] = None
    destination_xpath: Optional[str] = None


@dataclass
class TransformationFunction:
    """
    A named function applied to the XML document.

    Attributes:
        name: Registry name of the function implementation
        parameters: Opaque parameter mapping handed to the function
        target_node: XPath of the node receiving the computed value
    """
    name: str = ""
    parameters: Dict[str, Any] = field(default_factory=dict)
    target_node: str = ""


@dataclass
class RouteConfig:
    """Configuration of a single named route."""

    type: TransformationType = TransformationType.XSLT
    source_topic: Optional[str] = None
    destination_topic: Optional[str] = None
    xslt_path: Optional[str] = None
    destination_type: Optional[str] = None
    destination_routing: Optional[DestinationRoutingConfig] = None
    type_converter_options: TypeConverterOptions = field(default_factory=TypeConverterOptions)
    functions: List[TransformationFunction] = field(default_factory=list)
    store_mode: Optional[StoreMode] = None

    def to_dict(self) -> dict:
        data = {
            'type': self.type.value,
            'source_topic': self.source_topic,
            'destination_topic': self.destination_topic,
            'xslt_path': self.xslt_path,
            'destination_type': self.destination_type,
            'type_converter_options': self.type_converter_options.to_dict(),
            'functions': [asdict(f) for f in self.functions],
        }
        if self.destination_routing is not None:
            data['destination_routing'] = asdict(self.destination_routing)
        if self.store_mode is not None:
            data['store_mode'] = self.store_mode.value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> 'RouteConfig':
        route = cls()

        if 'type' in data:
            route.type = TransformationType.parse(data['type'])
        for key in ('source_topic', 'destination_topic', 'xslt_path', 'destination_type'):
            if key in data:
                setattr(route, key, data[key])
        if data.get('destination_routing'):
            route.destination_routing = DestinationRoutingConfig(**data['destination_routing'])
        if 'type_converter_options' in data:
            route.type_converter_options = TypeConverterOptions.from_dict(data['type_converter_options'])
        if data.get('functions'):
            route.functions = [TransformationFunction(**f) for f in data['functions']]
        if data.get('store_mode'):
            route.store_mode = StoreMode.parse(data['store_mode'])

        return route


@dataclass
class MessagingConfig:
    """Outbound HTTP messaging settings."""

    base_url: str = "http://localhost:8080/topics"
    timeout_seconds: float = 30.0


@dataclass
class StorageConfig:
    """Packet repository settings."""

    backend: str = "memory"  # "memory" | "mongodb"
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_database: str = "transformation"
    mongodb_collection: str = "packets"


@dataclass
class TransformationConfig:
    """
    Complete connector configuration.

    Contains:
    - Named routes (source topic, transformation type, destination)
    - Packet persistence switch and channel names
    - Default store mode for packet metadata
    - Messaging and storage backends

    Example:
        config = TransformationConfig()
        config.routes["orders"] = RouteConfig(type=TransformationType.CONVERSION,
                                              source_topic="orders.in",
                                              destination_topic="orders.out",
                                              destination_type="application/xml")
        save_config(config, Path("transformation.yaml"))
    """

    routes: Dict[str, RouteConfig] = field(default_factory=dict)
    save_packets: bool = False
    incoming_channel: str = "Incoming"
    outgoing_channel: str = "Outgoing"
    store_mode: StoreMode = StoreMode.DYNAMIC
    log_level: str = "INFO"
    messaging: MessagingConfig = field(default_factory=MessagingConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)

    def validate(self) -> List[str]:
        """
        Check routes for configuration problems.

        Returns:
            List of human-readable problems (empty if none)
        """
        problems = []
        for name, route in self.routes.items():
            if not route.source_topic:
                problems.append(f"Route '{name}': source topic missing")
            if route.type == TransformationType.ROUTING:
                routing = route.destination_routing
                if routing is None or not routing.xslt_path:
                    problems.append(f"Route '{name}': routing stylesheet missing")
                if routing is None or not routing.destination_xpath:
                    problems.append(f"Route '{name}': destination XPath missing")
            elif not route.destination_topic:
                problems.append(f"Route '{name}': destination topic missing")
            if route.xslt_path and not Path(route.xslt_path).exists():
                problems.append(f"Route '{name}': stylesheet not found: {route.xslt_path}")
            for function in route.functions:
                if not function.name or not function.target_node:
                    problems.append(f"Route '{name}': function needs a name and a target node")
        return problems

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            'routes': {name: route.to_dict() for name, route in self.routes.items()},
            'save_packets': self.save_packets,
            'incoming_channel': self.incoming_channel,
            'outgoing_channel': self.outgoing_channel,
            'store_mode': self.store_mode.value,
            'log_level': self.log_level,
            'messaging': asdict(self.messaging),
            'storage': asdict(self.storage),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'TransformationConfig':
        """Create from dictionary."""
        config = cls()

        for name, route_data in (data.get('routes') or {}).items():
            config.routes[name] = RouteConfig.from_dict(route_data or {})

        if 'save_packets' in data:
            config.save_packets = bool(data['save_packets'])
        if 'incoming_channel' in data:
            config.incoming_channel = data['incoming_channel']
        if 'outgoing_channel' in data:
            config.outgoing_channel = data['outgoing_channel']
        if 'store_mode' in data:
            config.store_mode = StoreMode.parse(data['store_mode'])
        if 'log_level' in data:
            config.log_level = data['log_level']
        if 'messaging' in data:
            config.messaging = MessagingConfig(**data['messaging'])
        if 'storage' in data:
            config.storage = StorageConfig(**data['storage'])

        return config


def load_config(config_path: Path) -> TransformationConfig:
    """
    Load configuration from file.

    Supports JSON and YAML formats based on file extension.

    Args:
        config_path: Path to config file

    Returns:
        TransformationConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If file format is not supported
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    suffix = config_path.suffix.lower()

    with open(config_path, 'r', encoding='utf-8') as f:
        if suffix in ['.yaml', '.yml']:
            data = yaml.safe_load(f)
        elif suffix == '.json':
            data = json.load(f)
        else:
            raise ValueError(f"Unsupported config format: {suffix}")

    logger.info(f"Loaded configuration from {config_path}")
    return TransformationConfig.from_dict(data or {})


def save_config(config: TransformationConfig, config_path: Path) -> None:
    """
    Save configuration to file.

    Supports JSON and YAML formats based on file extension.

    Raises:
        ValueError: If file format is not supported
    """
    config_path = Path(config_path)
    suffix = config_path.suffix.lower()
    data = config.to_dict()

    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, 'w', encoding='utf-8') as f:
        if suffix in ['.yaml', '.yml']:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)
        elif suffix == '.json':
            json.dump(data, f, indent=2)
        else:
            raise ValueError(f"Unsupported config format: {suffix}")

    logger.info(f"Saved configuration to {config_path}")


def _env_flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def apply_env_overrides(config: TransformationConfig,
                        environ: Optional[Mapping[str, str]] = None) -> TransformationConfig:
    """
    Apply environment variable overrides to a loaded configuration.

    Recognised variables:
        TRANSFORM_SAVE_PACKETS, TRANSFORM_STORE_MODE, TRANSFORM_LOG_LEVEL,
        TRANSFORM_MESSAGING_BASE_URL, TRANSFORM_STORAGE_BACKEND,
        MONGODB_URI, MONGODB_DATABASE, MONGODB_COLLECTION

    Returns:
        The same config object, for chaining
    """
    environ = os.environ if environ is None else environ

    if 'TRANSFORM_SAVE_PACKETS' in environ:
        config.save_packets = _env_flag(environ['TRANSFORM_SAVE_PACKETS'])
    if 'TRANSFORM_STORE_MODE' in environ:
        config.store_mode = StoreMode.parse(environ['TRANSFORM_STORE_MODE'])
    if 'TRANSFORM_LOG_LEVEL' in environ:
        config.log_level = environ['TRANSFORM_LOG_LEVEL']
    if 'TRANSFORM_MESSAGING_BASE_URL' in environ:
        config.messaging.base_url = environ['TRANSFORM_MESSAGING_BASE_URL']
    if 'TRANSFORM_STORAGE_BACKEND' in environ:
        config.storage.backend = environ['TRANSFORM_STORAGE_BACKEND']
    if 'MONGODB_URI' in environ:
        config.storage.mongodb_uri = environ['MONGODB_URI']
    if 'MONGODB_DATABASE' in environ:
        config.storage.mongodb_database = environ['MONGODB_DATABASE']
    if 'MONGODB_COLLECTION' in environ:
        config.storage.mongodb_collection = environ['MONGODB_COLLECTION']

    return config


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for the connector process."""
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def get_default_config() -> TransformationConfig:
    """Get default configuration."""
    return TransformationConfig()
