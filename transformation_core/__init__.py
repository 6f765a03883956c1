"""
Transformation Core Library
===========================

A library for message transformation connectors that provides:

- Format conversion between JSON, XML and CSV
- XSLT transformation with cached stylesheets
- Value-computing functions written into XML documents
- Content-based routing by XPath
- A staged pipeline with packet lineage and error packets

Architecture
------------

The library is organized into independent, composable modules:

    transformation_core/
    ├── codec/         - JSON/XML/CSV converters, media types, BOM handling
    ├── config/        - Route configuration and settings loading
    ├── functions/     - Function registry, built-ins and the function engine
    ├── messaging/     - Message source/sink ports and adapters
    ├── packets/       - Packet model, connector metadata, previews
    ├── pipeline/      - Stage model and the pipeline orchestrator
    ├── routing/       - Destination resolution
    ├── storage/       - Packet repositories (memory, MongoDB)
    ├── transform/     - XSLT transformations
    └── xml/           - XML processing utilities

Usage
-----

    from transformation_core import PipelineOrchestrator, load_config
    from transformation_core.messaging import HttpMessageSink, InProcessMessenger

    config = load_config(Path("transformation.yaml"))
    orchestrator = PipelineOrchestrator(config, sink=HttpMessageSink(config.messaging.base_url))

    response = orchestrator.process_message(b'{"id": 1}', "application/json", "orders")

    # Or serve every route's source topic
    messenger = InProcessMessenger()
    orchestrator.register_routes(messenger)

Extensibility
-------------

- Register additional functions on a FunctionRegistry
- Implement MessageSource / MessageSink for another message fabric
- Implement PacketRepository for another store
"""

__version__ = "1.0.0"

# Import key classes for convenience
from transformation_core.errors import (
    TransformationError,
    ConfigurationError,
    MalformedInputError,
    UnsupportedConversionError,
    StylesheetError,
    DownstreamError,
    UnknownFunctionError,
    FunctionApplicationError,
    InvalidStatusTransition,
    PipelineCancelled,
    RepositoryError,
)

from transformation_core.config.settings import (
    TransformationConfig,
    RouteConfig,
    TransformationType,
    StoreMode,
    load_config,
    apply_env_overrides,
    configure_logging,
)

from transformation_core.codec.converters import FormatCodec

from transformation_core.transform.xslt import (
    XSLTTransformer,
    load_xslt_transform,
    apply_xslt_transform,
)

from transformation_core.functions.engine import FunctionEngine
from transformation_core.functions.registry import FunctionRegistry

from transformation_core.routing.resolver import RouteResolver

from transformation_core.packets import (
    Packet,
    PacketStatus,
    ConnectorMetadata,
    packet_to_preview,
)

from transformation_core.pipeline import (
    PipelineOrchestrator,
    CancellationToken,
    ProcessingOutcome,
    TransformationStage,
)

__all__ = [
    # Version
    "__version__",
    # Errors
    "TransformationError",
    "ConfigurationError",
    "MalformedInputError",
    "UnsupportedConversionError",
    "StylesheetError",
    "DownstreamError",
    "UnknownFunctionError",
    "FunctionApplicationError",
    "InvalidStatusTransition",
    "PipelineCancelled",
    "RepositoryError",
    # Config
    "TransformationConfig",
    "RouteConfig",
    "TransformationType",
    "StoreMode",
    "load_config",
    "apply_env_overrides",
    "configure_logging",
    # Components
    "FormatCodec",
    "XSLTTransformer",
    "load_xslt_transform",
    "apply_xslt_transform",
    "FunctionEngine",
    "FunctionRegistry",
    "RouteResolver",
    # Packets
    "Packet",
    "PacketStatus",
    "ConnectorMetadata",
    "packet_to_preview",
    # Pipeline
    "PipelineOrchestrator",
    "CancellationToken",
    "ProcessingOutcome",
    "TransformationStage",
]
