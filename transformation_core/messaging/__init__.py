"""
Messaging
=========

Ports to the message fabric and reference adapters.

Components:
- MessageSource / MessageSink: abstract ports
- ConnectorRequest / ConnectorResponse: message envelopes
- InProcessMessenger: in-process source and sink
- HttpMessageSink: HTTP POST sink built on requests
"""

from transformation_core.messaging.base import (
    ConnectorRequest,
    ConnectorResponse,
    MessageSink,
    MessageSource,
    Registration,
    RequestHandler,
    STATUS_OK,
    STATUS_UNSUPPORTED_MEDIA_TYPE,
    STATUS_INTERNAL_SERVER_ERROR,
)
from transformation_core.messaging.http import HttpMessageSink
from transformation_core.messaging.local import InProcessMessenger

__all__ = [
    "ConnectorRequest",
    "ConnectorResponse",
    "MessageSink",
    "MessageSource",
    "Registration",
    "RequestHandler",
    "STATUS_OK",
    "STATUS_UNSUPPORTED_MEDIA_TYPE",
    "STATUS_INTERNAL_SERVER_ERROR",
    "HttpMessageSink",
    "InProcessMessenger",
]
