"""
Pipeline Orchestrator
=====================

Drives a message through the stages selected by its route and forwards the
result to the destination.

Every stage that changes the payload creates a new packet on the outgoing
channel and marks the previous packet Processed. A stage with nothing to do
passes its input packet through. Any error marks every packet of the message
that is still InProgress as FatalError and records an error child packet for
each of them.

Usage:
    orchestrator = PipelineOrchestrator(config, sink=HttpMessageSink(base_url))
    orchestrator.register_routes(source)

    # Or call directly
    response = orchestrator.process_message(payload, "application/json", "orders")
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple
import logging

from transformation_core.codec.converters import FormatCodec
from transformation_core.codec.media_types import APPLICATION_XML, same_media_type
from transformation_core.config.settings import RouteConfig, TransformationConfig, TransformationType
from transformation_core.errors import (
    ConfigurationError,
    DownstreamError,
    PipelineCancelled,
    RepositoryError,
)
from transformation_core.functions.engine import FunctionEngine
from transformation_core.messaging.base import (
    ConnectorRequest,
    ConnectorResponse,
    MessageSink,
    MessageSource,
    Registration,
    STATUS_INTERNAL_SERVER_ERROR,
    STATUS_UNSUPPORTED_MEDIA_TYPE,
)
from transformation_core.packets.metadata import ConnectorMetadata
from transformation_core.packets.packet import Packet, PacketStatus
from transformation_core.pipeline.cancellation import CancellationToken
from transformation_core.pipeline.stages import (
    ProcessingOutcome,
    TransformationStage,
    infer_starting_stage,
    stages_from,
)
from transformation_core.routing.resolver import RouteResolver
from transformation_core.storage.base import PacketRepository
from transformation_core.transform.xslt import XSLTTransformer

logger = logging.getLogger(__name__)

# Response returned to the caller of process_message
ForwardingResult = ConnectorResponse

ERROR_RESPONSE_TEXT = "Error handling the message"


@dataclass
class _Run:
    """State of one message going through the pipeline."""
    token: CancellationToken
    packets: List[Packet] = field(default_factory=list)
    stage: TransformationStage = TransformationStage.INITIAL

    def in_progress(self) -> List[Packet]:
        return [p for p in self.packets if p.status == PacketStatus.IN_PROGRESS]


class PipelineOrchestrator:
    """
    Runs transformation routes.

    Args:
        config: Loaded connector configuration (treated as read-only)
        sink: Destination for forwarded messages
        repository: Packet store, required when ``config.save_packets`` is set
        codec: Format converter
        transformer: XSLT transformer (holds the stylesheet cache)
        function_engine: Function engine
        resolver: Destination resolver for routing routes
    """

    def __init__(self,
                 config: TransformationConfig,
                 sink: MessageSink,
                 repository: Optional[PacketRepository] = None,
                 codec: Optional[FormatCodec] = None,
                 transformer: Optional[XSLTTransformer] = None,
                 function_engine: Optional[FunctionEngine] = None,
                 resolver: Optional[RouteResolver] = None):
        if config.save_packets and repository is None:
            raise ConfigurationError("save_packets is enabled but no packet repository was given")

        self.config = config
        self.sink = sink
        self.repository = repository
        self.codec = codec or FormatCodec()
        self.transformer = transformer or XSLTTransformer()
        self.function_engine = function_engine or FunctionEngine()
        self.resolver = resolver or RouteResolver()
        self._registrations: List[Registration] = []

    # ========================================================================
    # REGISTRATION
    # ========================================================================

    def register_routes(self, source: MessageSource) -> List[Registration]:
        """
        Register a handler on the source topic of every configured route.

        Routes without a source topic are skipped with a warning.
        """
        registrations = []
        for route_key, route in self.config.routes.items():
            if not route.source_topic:
                logger.warning(f"Route '{route_key}': source topic missing, route not registered")
                continue

            registration = source.answer(route.source_topic, self._handler_for(route_key))
            registrations.append(registration)
            logger.info(f"Route '{route_key}' listening on '{route.source_topic}' ({route.type.value})")

        self._registrations.extend(registrations)
        return registrations

    def _handler_for(self, route_key: str):
        def handle(request: ConnectorRequest) -> ConnectorResponse:
            return self.process_message(request.content, request.content_type, route_key)
        return handle

    def close(self) -> None:
        """Remove all handlers registered by register_routes."""
        for registration in self._registrations:
            registration.close()
        self._registrations.clear()

    # ========================================================================
    # MESSAGE PROCESSING
    # ========================================================================

    def process_message(self,
                        payload: bytes,
                        content_type: Optional[str],
                        route_key: str,
                        cancel_token: Optional[CancellationToken] = None) -> ForwardingResult:
        """
        Run a new message through its route and forward the result.

        Args:
            payload: Message body
            content_type: Content type of the body
            route_key: Name of the configured route
            cancel_token: Optional cancellation token

        Returns:
            The destination's response; 415 if the content type is missing,
            500 "Error handling the message" if any stage failed

        Raises:
            ConfigurationError: If the route is not configured
            PipelineCancelled: If the token was cancelled
        """
        if not content_type:
            logger.warning(f"Route '{route_key}': request without content type rejected")
            return ConnectorResponse.text("Request content type is null!", STATUS_UNSUPPORTED_MEDIA_TYPE)

        route = self._route(route_key)
        run = _Run(token=cancel_token or CancellationToken())

        try:
            metadata = ConnectorMetadata.for_route(route_key, route, content_type, self.config.store_mode)
            initial = self._create_packet(run, payload, self.config.incoming_channel, metadata)
            logger.info(f"Route '{route_key}': processing packet {initial.id} ({content_type}, {len(payload)} bytes)")

            if route.type == TransformationType.XSLT:
                packet, destination_type, topic = self._run_xslt(run, route, initial, metadata)
            elif route.type == TransformationType.CONVERSION:
                packet, destination_type, topic = self._run_conversion(run, route, initial, metadata)
            elif route.type == TransformationType.ROUTING:
                packet, destination_type, topic = self._run_routing(run, route_key, route, initial, metadata)
            elif route.type == TransformationType.FUNCTIONS:
                packet, destination_type, topic = self._run_functions(run, route, initial, metadata)
            else:
                raise ConfigurationError(f"Unknown transformation type {route.type}")

            return self._forward(run, packet, topic, destination_type)

        except PipelineCancelled:
            logger.warning(f"Route '{route_key}': processing cancelled at stage {run.stage.name}")
            raise
        except Exception as e:
            logger.error(f"Route '{route_key}': error handling the message at stage {run.stage.name}: {e}",
                         exc_info=True)
            self._fail_run(run, str(e))
            return ConnectorResponse.text(ERROR_RESPONSE_TEXT, STATUS_INTERNAL_SERVER_ERROR)

    def process_existing_packet(self,
                                packet: Packet,
                                cancel_token: Optional[CancellationToken] = None) -> ProcessingOutcome:
        """
        Resume a stored packet from the stage its channel and content type imply.

        Incoming packets restart at XML normalisation (or XSLT when already XML);
        outgoing packets restart at destination formatting (or forwarding when
        already in the destination type). Functions and routing are not replayed.

        Returns:
            ProcessingOutcome.SUCCESS or ProcessingOutcome.FATAL_ERROR

        Raises:
            PipelineCancelled: If the token was cancelled
        """
        if packet.status.is_terminal:
            logger.warning(f"Packet {packet.id} is already {packet.status.value}, not reprocessing")
            return ProcessingOutcome.FATAL_ERROR

        run = _Run(token=cancel_token or CancellationToken(), packets=[packet])

        try:
            metadata = ConnectorMetadata.from_json(packet.metadata)
            route = self._route_for(metadata)
            start = infer_starting_stage(
                packet.channel,
                metadata.content_type,
                route.destination_type,
                self.config.incoming_channel,
                self.config.outgoing_channel,
                packet.id,
            )
            logger.info(f"Reprocessing packet {packet.id} from stage {start.name}")
            self._set_status(run, packet, PacketStatus.IN_PROGRESS)

            current = packet
            for stage in stages_from(start):
                if stage == TransformationStage.XML_NORMALIZED:
                    current, metadata = self._normalize_to_xml(run, route, current, metadata)
                elif stage == TransformationStage.XSLT_APPLIED:
                    current, metadata = self._apply_xslt(run, route, current, metadata)
                elif stage == TransformationStage.DESTINATION_FORMATTED:
                    current, metadata = self._convert(run, route, current, metadata,
                                                      route.destination_type,
                                                      TransformationStage.DESTINATION_FORMATTED)

            response = self._forward(run, current, route.destination_topic, metadata.content_type)
            if not response.is_success:
                return ProcessingOutcome.FATAL_ERROR
            return ProcessingOutcome.SUCCESS

        except PipelineCancelled:
            logger.warning(f"Reprocessing of packet {packet.id} cancelled at stage {run.stage.name}")
            raise
        except Exception as e:
            logger.error(f"Error processing packet {packet.id} at stage {run.stage.name}: {e}", exc_info=True)
            self._fail_run(run, str(e))
            return ProcessingOutcome.FATAL_ERROR

    # ========================================================================
    # BRANCHES
    # ========================================================================

    def _run_xslt(self, run: _Run, route: RouteConfig, packet: Packet,
                  metadata: ConnectorMetadata) -> Tuple[Packet, str, Optional[str]]:
        packet, metadata = self._normalize_to_xml(run, route, packet, metadata)
        packet, metadata = self._apply_xslt(run, route, packet, metadata)
        packet, metadata = self._apply_functions(run, route, packet, metadata)
        packet, metadata = self._convert(run, route, packet, metadata,
                                         route.destination_type,
                                         TransformationStage.DESTINATION_FORMATTED)
        return packet, metadata.content_type, route.destination_topic

    def _run_conversion(self, run: _Run, route: RouteConfig, packet: Packet,
                        metadata: ConnectorMetadata) -> Tuple[Packet, str, Optional[str]]:
        packet, metadata = self._convert(run, route, packet, metadata,
                                         route.destination_type,
                                         TransformationStage.DESTINATION_FORMATTED)
        return packet, metadata.content_type, route.destination_topic

    def _run_routing(self, run: _Run, route_key: str, route: RouteConfig, packet: Packet,
                     metadata: ConnectorMetadata) -> Tuple[Packet, str, Optional[str]]:
        routing = route.destination_routing
        if routing is None or not routing.xslt_path:
            raise ConfigurationError(f"Missing destination routing stylesheet in the '{route_key}' route's configuration.")
        if not routing.destination_xpath:
            raise ConfigurationError(f"Missing destination XPath in the '{route_key}' route's configuration.")

        packet, metadata = self._normalize_to_xml(run, route, packet, metadata)

        run.token.raise_if_cancelled()
        routed = self.transformer.transform(packet.binary_data, routing.xslt_path)
        topic = self.resolver.resolve_destination(routed, routing.destination_xpath)
        logger.info(f"Route '{route_key}': packet {packet.id} routed to '{topic}'")

        # The normalised document is forwarded, not the routing output
        return packet, APPLICATION_XML, topic

    def _run_functions(self, run: _Run, route: RouteConfig, packet: Packet,
                       metadata: ConnectorMetadata) -> Tuple[Packet, str, Optional[str]]:
        packet, metadata = self._normalize_to_xml(run, route, packet, metadata)
        packet, metadata = self._apply_functions(run, route, packet, metadata)
        return packet, APPLICATION_XML, route.destination_topic

    # ========================================================================
    # STAGES
    # ========================================================================

    def _normalize_to_xml(self, run: _Run, route: RouteConfig, packet: Packet,
                          metadata: ConnectorMetadata) -> Tuple[Packet, ConnectorMetadata]:
        packet, metadata = self._convert(run, route, packet, metadata, APPLICATION_XML,
                                         TransformationStage.XML_NORMALIZED)
        if metadata.content_type != APPLICATION_XML:
            metadata = metadata.with_content_type(APPLICATION_XML)
        return packet, metadata

    def _convert(self, run: _Run, route: RouteConfig, packet: Packet, metadata: ConnectorMetadata,
                 target_type: Optional[str],
                 stage: TransformationStage) -> Tuple[Packet, ConnectorMetadata]:
        self._enter(run, stage)
        if not target_type or same_media_type(target_type, metadata.content_type):
            return packet, metadata

        output = self.codec.convert(packet.binary_data, metadata.content_type, target_type,
                                    route.type_converter_options)
        metadata = metadata.with_content_type(target_type)
        return self._next_packet(run, packet, output, metadata), metadata

    def _apply_xslt(self, run: _Run, route: RouteConfig, packet: Packet,
                    metadata: ConnectorMetadata) -> Tuple[Packet, ConnectorMetadata]:
        self._enter(run, TransformationStage.XSLT_APPLIED)
        if not route.xslt_path:
            return packet, metadata

        output = self.transformer.transform(packet.binary_data, route.xslt_path)
        return self._next_packet(run, packet, output, metadata), metadata

    def _apply_functions(self, run: _Run, route: RouteConfig, packet: Packet,
                         metadata: ConnectorMetadata) -> Tuple[Packet, ConnectorMetadata]:
        self._enter(run, TransformationStage.FUNCTIONS_APPLIED)
        if not route.functions:
            return packet, metadata

        output = self.function_engine.apply_functions(packet.binary_data, route.functions)
        return self._next_packet(run, packet, output, metadata), metadata

    def _forward(self, run: _Run, packet: Packet, topic: Optional[str],
                 content_type: Optional[str]) -> ConnectorResponse:
        if not topic:
            raise ConfigurationError("Destination topic is missing")

        run.token.raise_if_cancelled()
        response = self.sink.ask(topic, ConnectorRequest(packet.binary_data, topic, content_type))
        if response is None:
            raise DownstreamError(f"No response from destination '{topic}'")

        if response.is_success:
            self._set_status(run, packet, PacketStatus.PROCESSED)
            run.stage = TransformationStage.FORWARDED
            logger.info(f"Packet {packet.id} forwarded to '{topic}' ({response.status_code})")
        else:
            message = response.content.decode("utf-8", errors="replace")
            logger.warning(f"Destination '{topic}' rejected packet {packet.id} with {response.status_code}: {message}")
            self._fail_packet(run, packet, message)
            run.stage = TransformationStage.ERROR

        return response

    # ========================================================================
    # PACKET BOOKKEEPING
    # ========================================================================

    def _enter(self, run: _Run, stage: TransformationStage) -> None:
        run.token.raise_if_cancelled()
        run.stage = stage

    def _create_packet(self, run: _Run, data: bytes, channel: str,
                       metadata: ConnectorMetadata, parent_id: Optional[str] = None) -> Packet:
        packet = Packet(
            binary_data=data,
            channel=channel,
            metadata=metadata.to_json(),
            status=PacketStatus.IN_PROGRESS,
            parent_id=parent_id,
        )
        run.packets.append(packet)
        self._store(run, packet)
        return packet

    def _next_packet(self, run: _Run, previous: Packet, data: bytes,
                     metadata: ConnectorMetadata) -> Packet:
        packet = self._create_packet(run, data, self.config.outgoing_channel, metadata, previous.id)
        self._set_status(run, previous, PacketStatus.PROCESSED)
        return packet

    def _store(self, run: _Run, packet: Packet) -> None:
        if not self.config.save_packets:
            return
        run.token.raise_if_cancelled()
        self.repository.add(packet)

    def _set_status(self, run: _Run, packet: Packet, status: PacketStatus) -> None:
        if self.config.save_packets and packet.status != status:
            run.token.raise_if_cancelled()
        if packet.transition(status) and self.config.save_packets:
            self.repository.update_status(packet.id, status)

    def _fail_packet(self, run: _Run, packet: Packet, message: str) -> Packet:
        self._set_status(run, packet, PacketStatus.FATAL_ERROR)
        child = packet.error_child(message)
        self._store(run, child)
        return child

    def _fail_run(self, run: _Run, message: str) -> None:
        run.stage = TransformationStage.ERROR
        for packet in run.in_progress():
            try:
                self._fail_packet(run, packet, message)
            except RepositoryError as e:
                logger.error(f"Could not record failure of packet {packet.id}: {e}")

    # ========================================================================
    # ROUTES
    # ========================================================================

    def _route(self, route_key: str) -> RouteConfig:
        route = self.config.routes.get(route_key)
        if route is None:
            raise ConfigurationError(f"Route '{route_key}' is not configured")
        return route

    def _route_for(self, metadata: ConnectorMetadata) -> RouteConfig:
        if metadata.is_by_reference:
            return self._route(metadata.transform_key)
        return metadata.inline_route()
