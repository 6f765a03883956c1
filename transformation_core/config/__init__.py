"""
Configuration Management
========================

Route and connector configuration for transformation pipelines.
"""

from transformation_core.config.settings import (
    TransformationConfig,
    RouteConfig,
    TransformationType,
    StoreMode,
    DestinationRoutingConfig,
    TransformationFunction,
    TypeConverterOptions,
    JsonToXmlOptions,
    XmlToJsonOptions,
    CsvToXmlOptions,
    XmlToCsvOptions,
    MessagingConfig,
    StorageConfig,
    load_config,
    save_config,
    apply_env_overrides,
    configure_logging,
)

__all__ = [
    "TransformationConfig",
    "RouteConfig",
    "TransformationType",
    "StoreMode",
    "DestinationRoutingConfig",
    "TransformationFunction",
    "TypeConverterOptions",
    "JsonToXmlOptions",
    "XmlToJsonOptions",
    "CsvToXmlOptions",
    "XmlToCsvOptions",
    "MessagingConfig",
    "StorageConfig",
    "load_config",
    "save_config",
    "apply_env_overrides",
    "configure_logging",
]
