"""
Function Engine
===============

Applies a route's configured functions to an XML document. Each function
computes a value from the document and the result is written into the node
named by the function's target XPath, creating the node when it is missing.

A failing function is logged and skipped; the remaining functions still run
and the document is returned with whatever changes succeeded.
"""

from typing import Any, Iterable, List, Optional
import logging

from lxml import etree

from transformation_core.codec.encoding import trim_bom
from transformation_core.config.settings import TransformationFunction
from transformation_core.errors import FunctionApplicationError
from transformation_core.functions.builtins import register_builtins
from transformation_core.functions.registry import FunctionRegistry
from transformation_core.xml.utils import (
    find_child,
    is_valid_tag,
    local_name,
    parse_xml,
    select,
    serialize_xml,
    set_element_value,
)

logger = logging.getLogger(__name__)


_default_registry: Optional[FunctionRegistry] = None


def default_registry() -> FunctionRegistry:
    """Get the shared registry holding the built-in functions."""
    global _default_registry
    if _default_registry is None:
        _default_registry = register_builtins(FunctionRegistry())
    return _default_registry


def update_or_add_node(document: Any, xpath: str, value: str) -> None:
    """
    Write a value into the node selected by an XPath.

    If the XPath selects an element, its content is replaced by the value; an
    attribute result updates that attribute. Otherwise the path is split on
    "/" and walked from the root element, creating the missing elements. All
    names are checked before anything is inserted, so an invalid path leaves
    the document unchanged.

    Raises:
        FunctionApplicationError: If the path can not be created
        MalformedInputError: If the XPath is not valid
    """
    if not xpath:
        raise FunctionApplicationError("Target node XPath is empty")

    for node in select(document, xpath):
        if isinstance(node, etree._Element) and isinstance(node.tag, str):
            set_element_value(node, value)
            return
        if getattr(node, "is_attribute", False):
            node.getparent().set(node.attrname, value)
            return

    root = document.getroot() if hasattr(document, "getroot") else document
    root_name = local_name(root)

    current = root
    missing: List[str] = []
    for segment in xpath.split("/"):
        if not segment or segment == root_name:
            continue
        if missing:
            missing.append(segment)
            continue
        existing = find_child(current, segment)
        if existing is not None:
            current = existing
        else:
            missing.append(segment)

    invalid = [segment for segment in missing if not is_valid_tag(segment)]
    if invalid:
        raise FunctionApplicationError(
            f"Can not create node '{xpath}': invalid element name(s) {', '.join(invalid)}"
        )

    if not missing:
        set_element_value(current, value)
        return

    top = etree.Element(missing[0])
    leaf = top
    for segment in missing[1:]:
        leaf = etree.SubElement(leaf, segment)
    leaf.text = value
    current.append(top)


class FunctionEngine:
    """
    Applies transformation functions to XML payloads.

    Example:
        engine = FunctionEngine()
        output = engine.apply_functions(xml_bytes, route.functions)
    """

    def __init__(self, registry: Optional[FunctionRegistry] = None):
        self.registry = registry or default_registry()

    def apply_functions(self, xml_bytes: bytes, functions: Iterable[TransformationFunction]) -> bytes:
        """
        Apply functions in order and return the updated document.

        Args:
            xml_bytes: XML document
            functions: Functions to apply

        Returns:
            Serialized document without byte-order mark

        Raises:
            MalformedInputError: If the input is not well-formed XML
        """
        document = parse_xml(xml_bytes)

        for function in functions:
            try:
                handler = self.registry.get(function.name)
                # Value is computed against the document before it is modified
                value = handler(document, dict(function.parameters or {}))
                update_or_add_node(document, function.target_node, "" if value is None else str(value))
                logger.debug(f"Applied function '{function.name}' to {function.target_node}")
            except Exception as e:
                logger.error(f"Function '{function.name}' failed, skipping: {e}")

        return trim_bom(serialize_xml(document), "application/xml; charset=utf-8")
