"""
Route Resolver
==============

Content-based routing: pick a destination topic out of an XML document with
an XPath expression.
"""

from typing import Any
import logging

from transformation_core.xml.utils import node_value, parse_xml, select

logger = logging.getLogger(__name__)


class RouteResolver:
    """
    Resolves destination topics from XML payloads.

    Example:
        resolver = RouteResolver()
        topic = resolver.resolve_destination(xml_bytes, "/Route/Topic")
    """

    def resolve_destination(self, xml_bytes: bytes, xpath: str) -> str:
        """
        Evaluate an XPath against a document and return the first result as text.

        Args:
            xml_bytes: XML document
            xpath: Expression selecting the destination

        Returns:
            Text of the first selected node, or "" when nothing matches

        Raises:
            MalformedInputError: If the document or the XPath is invalid
        """
        document = parse_xml(xml_bytes)
        return self.resolve_from_document(document, xpath)

    def resolve_from_document(self, document: Any, xpath: str) -> str:
        results = select(document, xpath)
        if not results:
            logger.warning(f"Destination XPath '{xpath}' selected nothing")
            return ""
        return node_value(results[0]).strip()
