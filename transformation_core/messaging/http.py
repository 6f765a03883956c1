"""
HTTP Message Sink
=================

Forwards requests to destinations over HTTP with ``requests``. A topic maps
to ``{base_url}/{topic}``.
"""

from typing import Optional
import logging

import requests

from transformation_core.errors import DownstreamError
from transformation_core.messaging.base import ConnectorRequest, ConnectorResponse, MessageSink

logger = logging.getLogger(__name__)


class HttpMessageSink(MessageSink):
    """
    Sends requests as HTTP POSTs.

    Args:
        base_url: URL prefix the topic is appended to
        timeout: Request timeout in seconds
        session: Optional requests session (shared connection pool)
    """

    def __init__(self, base_url: str, timeout: float = 30.0,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def url_for(self, topic: str) -> str:
        return f"{self.base_url}/{topic.lstrip('/')}"

    def ask(self, topic: str, request: ConnectorRequest) -> ConnectorResponse:
        url = self.url_for(topic)
        headers = {}
        if request.content_type:
            headers["Content-Type"] = request.content_type

        logger.debug(f"POST {url} ({len(request.content)} bytes)")
        try:
            response = self.session.post(url, data=request.content, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise DownstreamError(f"Could not reach {url}: {e}") from e

        if not response.ok:
            logger.warning(f"Destination {url} answered {response.status_code}")

        return ConnectorResponse(
            content=response.content,
            content_type=response.headers.get("Content-Type", "text/plain"),
            status_code=response.status_code,
        )
