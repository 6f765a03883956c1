#!/usr/bin/env python3
"""
Transformation Connector REST API

This module provides a FastAPI-based REST API in front of the transformation
pipeline. It supports:

- Submitting messages to a configured route
- Receiving messages on a route's source topic
- Inspecting stored packets with a short preview
- Reprocessing packets left in progress

API Flow:
1. POST /api/v1/routes/{route_key}/messages - Transform and forward a message
   - Body is the raw payload, the Content-Type header gives its format
   - The destination's response is returned as-is
2. GET /api/v1/packets?status=InProgress - Find packets that did not finish
3. POST /api/v1/packets/{packet_id}/reprocess - Resume a packet

Usage:
    # Start the API server
    TRANSFORM_CONFIG_PATH=transformation.yaml uvicorn api:app --host 0.0.0.0 --port 8000

    # Or programmatically
    from api import create_app
    app = create_app(config)
"""

from __future__ import annotations

import logging
import os
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Query, Request, Response
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from transformation_core.config.settings import (
    TransformationConfig,
    apply_env_overrides,
    configure_logging,
    get_default_config,
    load_config,
)
from transformation_core.errors import MalformedInputError
from transformation_core.messaging.base import (
    ConnectorRequest,
    ConnectorResponse,
    MessageSink,
    MessageSource,
    Registration,
    RequestHandler,
)
from transformation_core.messaging.http import HttpMessageSink
from transformation_core.packets.packet import Packet, PacketStatus
from transformation_core.packets.preview import packet_to_preview
from transformation_core.pipeline.orchestrator import PipelineOrchestrator
from transformation_core.storage.base import PacketRepository
from transformation_core.storage.factory import create_repository

logger = logging.getLogger(__name__)


# ============================================================================
# CONFIGURATION
# ============================================================================

class APIConfig:
    """API Configuration settings."""

    # Route configuration file (YAML or JSON)
    CONFIG_PATH: Optional[str] = os.environ.get("TRANSFORM_CONFIG_PATH")

    # Comma separated list of allowed CORS origins
    CORS_ORIGINS: List[str] = os.environ.get("TRANSFORM_CORS_ORIGINS", "*").split(",")

    @classmethod
    def load_transformation_config(cls) -> TransformationConfig:
        """Load the route configuration and apply environment overrides."""
        if cls.CONFIG_PATH and Path(cls.CONFIG_PATH).exists():
            config = load_config(Path(cls.CONFIG_PATH))
        else:
            if cls.CONFIG_PATH:
                logger.warning(f"Config file not found: {cls.CONFIG_PATH}, starting without routes")
            config = get_default_config()
        return apply_env_overrides(config)


# ============================================================================
# MODELS
# ============================================================================

class RouteInfo(BaseModel):
    """Summary of a configured route."""
    name: str
    type: str
    source_topic: Optional[str] = None
    destination_topic: Optional[str] = None
    destination_type: Optional[str] = None
    xslt_path: Optional[str] = None
    store_mode: str
    functions: List[str] = Field(default_factory=list)


class PacketPreviewInfo(BaseModel):
    data: str
    preview: str
    data_type: str


class PacketInfo(BaseModel):
    """Information about a stored packet."""
    packet_id: str
    parent_id: Optional[str] = None
    channel: str
    status: PacketStatus
    date_created: str
    metadata: Optional[str] = None
    size: int = Field(ge=0, description="Payload size in bytes")
    preview: Optional[PacketPreviewInfo] = None
    preview_error: Optional[str] = None


class ReprocessResult(BaseModel):
    packet_id: str
    outcome: str


def _packet_info(packet: Packet, with_preview: bool = True) -> PacketInfo:
    info = PacketInfo(
        packet_id=packet.id,
        parent_id=packet.parent_id,
        channel=packet.channel,
        status=packet.status,
        date_created=packet.date_created.isoformat(),
        metadata=packet.metadata,
        size=len(packet.binary_data),
    )
    if with_preview:
        try:
            preview = packet_to_preview(packet)
            info.preview = PacketPreviewInfo(
                data=preview.data,
                preview=preview.preview,
                data_type=preview.data_type.value,
            )
        except MalformedInputError as e:
            info.preview_error = str(e)
    return info


# ============================================================================
# MESSAGE SOURCE
# ============================================================================

class HttpMessageSource(MessageSource):
    """
    Message source fed by the HTTP topic endpoint.

    Handlers registered for a topic answer requests posted to
    ``/api/v1/topics/{topic}``; the first registered handler responds.
    """

    def __init__(self):
        self._handlers: Dict[str, List[RequestHandler]] = {}
        self._lock = threading.Lock()

    def answer(self, topic: str, handler: RequestHandler) -> Registration:
        with self._lock:
            self._handlers.setdefault(topic, []).append(handler)
        return Registration(topic, on_close=lambda: self._remove(topic, handler))

    def _remove(self, topic: str, handler: RequestHandler) -> None:
        with self._lock:
            handlers = self._handlers.get(topic, [])
            if handler in handlers:
                handlers.remove(handler)

    def handler_for(self, topic: str) -> Optional[RequestHandler]:
        with self._lock:
            handlers = self._handlers.get(topic) or []
            return handlers[0] if handlers else None

    @property
    def topics(self) -> List[str]:
        with self._lock:
            return sorted(topic for topic, handlers in self._handlers.items() if handlers)


def _to_http(response: ConnectorResponse) -> Response:
    return Response(
        content=response.content,
        media_type=response.content_type,
        status_code=response.status_code,
    )


# ============================================================================
# APPLICATION
# ============================================================================

def create_app(config: Optional[TransformationConfig] = None,
               repository: Optional[PacketRepository] = None,
               sink: Optional[MessageSink] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        config: Route configuration; loaded from APIConfig when omitted
        repository: Packet store; built from ``config.storage`` when omitted
        sink: Destination for forwarded messages; HTTP sink when omitted
    """
    if config is None:
        config = APIConfig.load_transformation_config()

    configure_logging(config.log_level)

    for problem in config.validate():
        logger.warning(f"Configuration problem: {problem}")

    if repository is None:
        repository = create_repository(config.storage)
    if sink is None:
        sink = HttpMessageSink(config.messaging.base_url, config.messaging.timeout_seconds)

    orchestrator = PipelineOrchestrator(config, sink=sink, repository=repository)
    source = HttpMessageSource()
    orchestrator.register_routes(source)

    app = FastAPI(
        title="Transformation Connector API",
        description="""
REST API for transforming messages between JSON, XML and CSV, applying XSLT
stylesheets and functions, and forwarding the result to a destination topic.

## Workflow

1. **Send**: `POST /api/v1/routes/{route_key}/messages` with the payload as body
2. **Inspect**: `GET /api/v1/packets/{packet_id}` (requires `save_packets`)
3. **Recover**: `POST /api/v1/packets/{packet_id}/reprocess` for packets left in progress
        """,
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.state.config = config
    app.state.repository = repository
    app.state.orchestrator = orchestrator
    app.state.source = source

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=APIConfig.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ========================================================================
    # MESSAGE ENDPOINTS
    # ========================================================================

    @app.post("/api/v1/routes/{route_key}/messages", tags=["Messages"])
    async def send_message(route_key: str, request: Request):
        """
        Run a message through a route and return the destination's response.

        Returns 415 when the Content-Type header is missing and 500 when a
        stage fails.
        """
        if route_key not in config.routes:
            raise HTTPException(status_code=404, detail=f"Route not found: {route_key}")

        payload = await request.body()
        content_type = request.headers.get("content-type")
        response = await run_in_threadpool(orchestrator.process_message, payload, content_type, route_key)
        return _to_http(response)

    @app.post("/api/v1/topics/{topic:path}", tags=["Messages"])
    async def receive_on_topic(topic: str, request: Request):
        """Deliver a message to the route listening on a source topic."""
        handler = source.handler_for(topic)
        if handler is None:
            raise HTTPException(status_code=404, detail=f"No route listens on topic: {topic}")

        payload = await request.body()
        connector_request = ConnectorRequest(payload, topic, request.headers.get("content-type"))
        response = await run_in_threadpool(handler, connector_request)
        return _to_http(response)

    # ========================================================================
    # ROUTE ENDPOINTS
    # ========================================================================

    @app.get("/api/v1/routes", response_model=List[RouteInfo], tags=["Routes"])
    async def list_routes():
        """List configured routes."""
        return [
            RouteInfo(
                name=name,
                type=route.type.value,
                source_topic=route.source_topic,
                destination_topic=route.destination_topic,
                destination_type=route.destination_type,
                xslt_path=route.xslt_path,
                store_mode=(route.store_mode or config.store_mode).value,
                functions=[f.name for f in route.functions],
            )
            for name, route in config.routes.items()
        ]

    # ========================================================================
    # PACKET ENDPOINTS
    # ========================================================================

    @app.get("/api/v1/packets", response_model=List[PacketInfo], tags=["Packets"])
    def list_packets(
        status: Optional[str] = None,
        limit: int = Query(default=100, ge=1, le=1000),
    ):
        """List stored packets, most recent first."""
        status_filter = None
        if status:
            try:
                status_filter = PacketStatus(status)
            except ValueError:
                choices = ", ".join(s.value for s in PacketStatus)
                raise HTTPException(status_code=400, detail=f"Invalid status '{status}'. Expected one of: {choices}")

        packets = repository.list(status=status_filter, limit=limit)
        return [_packet_info(p, with_preview=False) for p in packets]

    @app.get("/api/v1/packets/{packet_id}", response_model=PacketInfo, tags=["Packets"])
    def get_packet(packet_id: str):
        """Get a stored packet with a preview of its payload."""
        packet = repository.get(packet_id)
        if packet is None:
            raise HTTPException(status_code=404, detail=f"Packet not found: {packet_id}")
        return _packet_info(packet)

    @app.get("/api/v1/packets/{packet_id}/children", response_model=List[PacketInfo], tags=["Packets"])
    def get_packet_children(packet_id: str):
        """List packets derived from a packet, including error packets."""
        if repository.get(packet_id) is None:
            raise HTTPException(status_code=404, detail=f"Packet not found: {packet_id}")
        return [_packet_info(p) for p in repository.children_of(packet_id)]

    @app.post("/api/v1/packets/{packet_id}/reprocess", response_model=ReprocessResult, tags=["Packets"])
    def reprocess_packet(packet_id: str):
        """Resume a stored packet from the stage its channel and content type imply."""
        packet = repository.get(packet_id)
        if packet is None:
            raise HTTPException(status_code=404, detail=f"Packet not found: {packet_id}")

        outcome = orchestrator.process_existing_packet(packet)
        return ReprocessResult(packet_id=packet_id, outcome=outcome.value)

    # ========================================================================
    # SYSTEM ENDPOINTS
    # ========================================================================

    @app.get("/api/v1/health", tags=["System"])
    async def health_check() -> Dict[str, Any]:
        """Health check endpoint."""
        return {
            "status": "healthy",
            "timestamp": datetime.now().isoformat(),
            "routes": len(config.routes),
            "topics": source.topics,
            "save_packets": config.save_packets,
            "storage_backend": config.storage.backend,
            "cached_stylesheets": orchestrator.transformer.cached_paths,
        }

    return app


# Create default app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
