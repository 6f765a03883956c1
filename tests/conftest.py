"""
Shared fixtures for the transformation pipeline tests.
"""

from typing import List, Optional, Tuple

import pytest

from transformation_core.config.settings import (
    DestinationRoutingConfig,
    RouteConfig,
    TransformationConfig,
    TransformationType,
)
from transformation_core.messaging.base import ConnectorRequest, ConnectorResponse, MessageSink
from transformation_core.messaging.local import InProcessMessenger
from transformation_core.storage.memory import InMemoryPacketRepository


IDENTITY_XSLT = """<?xml version="1.0" encoding="UTF-8"?>
<xsl:stylesheet version="1.0" xmlns:xsl="http://www.w3.org/1999/XSL/Transform">
  <xsl:template match="@*|node()">
    <xsl:copy><xsl:apply-templates select="@*|node()"/></xsl:copy>
  </xsl:template>
</xsl:stylesheet>
"""

# Renames the root element to Order and keeps the content
RENAME_ROOT_XSLT = """<?xml version="1.0" encoding="UTF-8"?>
<xsl:stylesheet version="1.0" xmlns:xsl="http://www.w3.org/1999/XSL/Transform">
  <xsl:output method="xml" encoding="UTF-8"/>
  <xsl:template match="/*">
    <Order><xsl:copy-of select="node()"/></Order>
  </xsl:template>
</xsl:stylesheet>
"""

# Picks a destination topic from the document's type field
ROUTING_XSLT = """<?xml version="1.0" encoding="UTF-8"?>
<xsl:stylesheet version="1.0" xmlns:xsl="http://www.w3.org/1999/XSL/Transform">
  <xsl:template match="/">
    <Route><Topic>topic.<xsl:value-of select="//type"/></Topic></Route>
  </xsl:template>
</xsl:stylesheet>
"""


class RecordingSink(MessageSink):
    """Sink that records every request and answers with a fixed response."""

    def __init__(self, response: Optional[ConnectorResponse] = None):
        self.response = response or ConnectorResponse(b"accepted", "text/plain", 200)
        self.requests: List[Tuple[str, ConnectorRequest]] = []

    def ask(self, topic: str, request: ConnectorRequest) -> ConnectorResponse:
        self.requests.append((topic, request))
        return self.response

    @property
    def last(self) -> ConnectorRequest:
        return self.requests[-1][1]


@pytest.fixture
def write_stylesheet(tmp_path):
    """Factory writing a stylesheet into the test's temporary directory."""
    def write(content: str, name: str = "transform.xslt") -> str:
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        return str(path)
    return write


@pytest.fixture
def identity_xslt(write_stylesheet) -> str:
    return write_stylesheet(IDENTITY_XSLT, "identity.xslt")


@pytest.fixture
def rename_xslt(write_stylesheet) -> str:
    return write_stylesheet(RENAME_ROOT_XSLT, "rename.xslt")


@pytest.fixture
def routing_xslt(write_stylesheet) -> str:
    return write_stylesheet(ROUTING_XSLT, "routing.xslt")


@pytest.fixture
def repository() -> InMemoryPacketRepository:
    return InMemoryPacketRepository()


@pytest.fixture
def messenger() -> InProcessMessenger:
    return InProcessMessenger()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def make_config():
    """Factory for a config holding a single route named 'orders'."""
    def make(save_packets: bool = True, **route_fields) -> TransformationConfig:
        route_fields.setdefault("source_topic", "orders.in")
        route_fields.setdefault("destination_topic", "orders.out")
        config = TransformationConfig(save_packets=save_packets)
        config.routes["orders"] = RouteConfig(**route_fields)
        return config
    return make


@pytest.fixture
def routing_route(routing_xslt) -> RouteConfig:
    return RouteConfig(
        type=TransformationType.ROUTING,
        source_topic="dispatch.in",
        destination_routing=DestinationRoutingConfig(
            xslt_path=routing_xslt,
            destination_xpath="/Route/Topic",
        ),
    )
