"""
Messaging adapter tests.

Run with: pytest tests/test_messaging.py -v
"""

from unittest.mock import MagicMock

import pytest
import requests

from transformation_core.errors import DownstreamError
from transformation_core.messaging import (
    ConnectorRequest,
    ConnectorResponse,
    HttpMessageSink,
    InProcessMessenger,
)


class TestConnectorResponse:
    """Tests for ConnectorResponse helpers."""

    def test_text_response(self):
        """Plain text responses carry the message and a text/plain type."""
        response = ConnectorResponse.text("Request content type is null!", 415)
        assert response.content == b"Request content type is null!"
        assert response.content_type == "text/plain"
        assert not response.is_success

    def test_success_range(self):
        """Only 2xx status codes count as success."""
        assert ConnectorResponse(status_code=204).is_success
        assert not ConnectorResponse(status_code=302).is_success


class TestInProcessMessenger:
    """Tests for the in-process messenger."""

    def test_first_handler_answers(self, messenger):
        """The first registered handler answers a topic."""
        messenger.answer("t", lambda request: ConnectorResponse(b"first"))
        messenger.answer("t", lambda request: ConnectorResponse(b"second"))
        assert messenger.ask("t", ConnectorRequest(b"x")).content == b"first"

    def test_handler_receives_request(self, messenger):
        """Handlers receive the request object unchanged."""
        received = []
        messenger.answer("t", lambda request: received.append(request) or ConnectorResponse())
        request = ConnectorRequest(b"payload", "t", "application/json")
        messenger.ask("t", request)
        assert received == [request]

    def test_no_handler_raises(self, messenger):
        """Asking a topic nobody answers raises DownstreamError."""
        with pytest.raises(DownstreamError, match="No handler"):
            messenger.ask("nobody", ConnectorRequest(b"x"))

    def test_close_registration(self, messenger):
        """Closing a registration removes the handler, twice is harmless."""
        registration = messenger.answer("t", lambda request: ConnectorResponse())
        assert messenger.has_handler("t")
        assert messenger.topics == ["t"]

        registration.close()
        registration.close()
        assert not messenger.has_handler("t")
        assert messenger.topics == []


class TestHttpMessageSink:
    """Tests for the HTTP sink with a mocked requests session."""

    def _session(self, status_code=200, content=b"ok", headers=None):
        session = MagicMock(spec=requests.Session)
        response = session.post.return_value
        response.status_code = status_code
        response.ok = status_code < 400
        response.content = content
        response.headers = headers if headers is not None else {"Content-Type": "application/json"}
        return session

    def test_url_for(self):
        """Topic URLs join the base URL with a single slash."""
        sink = HttpMessageSink("http://bus/topics/", session=MagicMock())
        assert sink.url_for("orders.out") == "http://bus/topics/orders.out"
        assert sink.url_for("/orders.out") == "http://bus/topics/orders.out"

    def test_posts_payload_with_content_type(self):
        """The payload is posted with its content type and timeout."""
        session = self._session(content=b'{"ok": true}')
        sink = HttpMessageSink("http://bus", timeout=5, session=session)

        response = sink.ask("orders.out", ConnectorRequest(b"<a/>", "orders.out", "application/xml"))

        session.post.assert_called_once_with(
            "http://bus/orders.out",
            data=b"<a/>",
            headers={"Content-Type": "application/xml"},
            timeout=5,
        )
        assert response.content == b'{"ok": true}'
        assert response.content_type == "application/json"
        assert response.is_success

    def test_error_status_is_returned(self):
        """Error statuses come back as responses, not exceptions."""
        session = self._session(status_code=503, content=b"down", headers={})
        sink = HttpMessageSink("http://bus", session=session)

        response = sink.ask("t", ConnectorRequest(b"x"))

        assert response.status_code == 503
        assert response.content_type == "text/plain"
        assert not response.is_success

    def test_connection_error_raises_downstream_error(self):
        """Transport failures raise DownstreamError with the URL."""
        session = MagicMock(spec=requests.Session)
        session.post.side_effect = requests.ConnectionError("refused")
        sink = HttpMessageSink("http://bus", session=session)

        with pytest.raises(DownstreamError, match="Could not reach http://bus/t"):
            sink.ask("t", ConnectorRequest(b"x"))
