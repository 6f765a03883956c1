"""
Messaging Ports
===============

Boundary between the pipeline and the message fabric.

- MessageSource: delivers inbound requests for a topic to a handler
- MessageSink: sends a request to a topic and returns exactly one response
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional
import logging

logger = logging.getLogger(__name__)

STATUS_OK = 200
STATUS_UNSUPPORTED_MEDIA_TYPE = 415
STATUS_INTERNAL_SERVER_ERROR = 500


@dataclass
class ConnectorRequest:
    """Inbound or outbound message."""
    content: bytes
    topic: Optional[str] = None
    content_type: Optional[str] = None


@dataclass
class ConnectorResponse:
    """Answer to a ConnectorRequest."""
    content: bytes = b""
    content_type: str = "text/plain"
    status_code: int = STATUS_OK

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300

    @classmethod
    def text(cls, message: str, status_code: int) -> 'ConnectorResponse':
        return cls(content=message.encode("utf-8"), content_type="text/plain", status_code=status_code)


RequestHandler = Callable[[ConnectorRequest], ConnectorResponse]


class Registration:
    """Handle returned by MessageSource.answer; close() removes the handler."""

    def __init__(self, topic: str, on_close: Optional[Callable[[], None]] = None):
        self.topic = topic
        self._on_close = on_close
        self.closed = False

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self._on_close is not None:
            self._on_close()
        logger.debug(f"Closed registration for topic '{self.topic}'")


class MessageSource(ABC):
    """Delivers requests arriving on a topic to a registered handler."""

    @abstractmethod
    def answer(self, topic: str, handler: RequestHandler) -> Registration:
        """Register a handler for a topic."""
        pass


class MessageSink(ABC):
    """Sends requests to a topic."""

    @abstractmethod
    def ask(self, topic: str, request: ConnectorRequest) -> ConnectorResponse:
        """
        Send a request and wait for the response.

        Raises:
            DownstreamError: If the destination can not be reached
        """
        pass
