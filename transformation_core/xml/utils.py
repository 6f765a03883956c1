"""
XML Utility Functions
=====================

Common XML helpers shared by the codecs, the function engine and the route
resolver. These functions work with lxml elements and provide consistent
handling of namespaces, parsing errors and XPath results.
"""

from typing import List, Optional, Any
import logging

from lxml import etree

from transformation_core.errors import MalformedInputError

logger = logging.getLogger(__name__)


def _new_parser() -> 'etree.XMLParser':
    # Parsers are not thread-safe, so each call gets its own
    return etree.XMLParser(resolve_entities=False, no_network=True, huge_tree=False)


def parse_xml(data: bytes) -> 'etree._ElementTree':
    """
    Parse an XML payload.

    Args:
        data: XML document bytes

    Returns:
        Parsed ElementTree

    Raises:
        MalformedInputError: If the document is empty or not well-formed
    """
    if not data or not data.strip():
        raise MalformedInputError("XML does not contain a root element.")
    try:
        root = etree.fromstring(data, parser=_new_parser())
    except etree.XMLSyntaxError as e:
        raise MalformedInputError(f"XML is not well-formed: {e}") from e
    return root.getroottree()


def serialize_xml(tree: Any) -> bytes:
    """
    Serialize an ElementTree or Element to UTF-8 bytes with an XML declaration.
    """
    if isinstance(tree, etree._Element):
        tree = tree.getroottree()
    return etree.tostring(tree, xml_declaration=True, encoding="utf-8")


def local_name(element: Any) -> str:
    """
    Extract local name from element tag, stripping any namespace prefix.

    Args:
        element: XML element

    Returns:
        Local tag name without namespace

    Example:
        >>> elem = etree.Element("{http://example.org}Order")
        >>> local_name(elem)
        'Order'
    """
    tag = element.tag
    if not isinstance(tag, str):
        return ""
    if tag.startswith("{"):
        return tag.split("}", 1)[1]
    return tag


def child_elements(element: Any) -> List[Any]:
    """Return element children only (skipping comments and processing instructions)."""
    return [child for child in element if isinstance(child.tag, str)]


def has_child_elements(element: Any) -> bool:
    return any(isinstance(child.tag, str) for child in element)


def find_child(element: Any, name: str) -> Optional[Any]:
    """
    Find the first child element with a given local name (ignoring namespace).
    """
    for child in element:
        if isinstance(child.tag, str) and local_name(child) == name:
            return child
    return None


def element_value(element: Any) -> str:
    """
    Get the full text value of an element (all descendant text, concatenated).
    """
    return ''.join(element.itertext())


def select(tree: Any, xpath: str) -> List[Any]:
    """
    Evaluate an XPath expression and normalize the result to a list.

    Node-set results come back as lists of elements or attribute/text
    results; scalar results (string, number, boolean) are wrapped in a
    one-item list.

    Raises:
        MalformedInputError: If the expression is not valid XPath
    """
    try:
        result = tree.xpath(xpath)
    except (etree.XPathEvalError, etree.XPathSyntaxError) as e:
        raise MalformedInputError(f"Invalid XPath expression '{xpath}': {e}") from e
    if isinstance(result, list):
        return result
    return [result]


def node_value(node: Any) -> str:
    """
    Convert an XPath result item to text.

    Elements give their concatenated text; attribute and text results give
    their string value; numbers drop a trailing ``.0``.
    """
    if isinstance(node, etree._Element):
        return element_value(node)
    if isinstance(node, bool):
        return "true" if node else "false"
    if isinstance(node, float):
        return str(int(node)) if node.is_integer() else str(node)
    return str(node)


def set_element_value(element: Any, value: str) -> None:
    """
    Replace an element's content with a text value.

    Child elements are removed so the element ends up holding only the text.
    """
    for child in list(element):
        element.remove(child)
    element.text = value


def is_valid_tag(name: str) -> bool:
    """Check if a string can be used as an XML element name."""
    try:
        etree.Element(name)
    except ValueError:
        return False
    return True
