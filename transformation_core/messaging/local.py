"""
In-Process Messenger
====================

MessageSource and MessageSink in one object, dispatching requests to handlers
registered in the same process. Used for embedding and tests.
"""

from typing import Dict, List
import logging
import threading

from transformation_core.errors import DownstreamError
from transformation_core.messaging.base import (
    ConnectorRequest,
    ConnectorResponse,
    MessageSink,
    MessageSource,
    Registration,
    RequestHandler,
)

logger = logging.getLogger(__name__)


class InProcessMessenger(MessageSource, MessageSink):
    """
    Topic-to-handler dispatcher.

    Several handlers may answer the same topic; the first one registered
    provides the response.

    Example:
        messenger = InProcessMessenger()
        messenger.answer("orders.out", lambda request: ConnectorResponse(b"ok"))
        response = messenger.ask("orders.out", ConnectorRequest(b"<a/>"))
    """

    def __init__(self):
        self._handlers: Dict[str, List[RequestHandler]] = {}
        self._lock = threading.Lock()

    def answer(self, topic: str, handler: RequestHandler) -> Registration:
        with self._lock:
            self._handlers.setdefault(topic, []).append(handler)
        logger.info(f"Handler registered for topic '{topic}'")
        return Registration(topic, on_close=lambda: self._remove(topic, handler))

    def _remove(self, topic: str, handler: RequestHandler) -> None:
        with self._lock:
            handlers = self._handlers.get(topic, [])
            if handler in handlers:
                handlers.remove(handler)
            if not handlers:
                self._handlers.pop(topic, None)

    def ask(self, topic: str, request: ConnectorRequest) -> ConnectorResponse:
        with self._lock:
            handlers = list(self._handlers.get(topic, []))
        if not handlers:
            raise DownstreamError(f"No handler answers topic '{topic}'")
        return handlers[0](request)

    def has_handler(self, topic: str) -> bool:
        with self._lock:
            return bool(self._handlers.get(topic))

    @property
    def topics(self) -> List[str]:
        with self._lock:
            return sorted(self._handlers)
