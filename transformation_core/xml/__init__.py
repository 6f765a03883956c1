"""
XML Processing Utilities
========================

Common XML helpers used across the transformation pipeline.
"""

from transformation_core.xml.utils import (
    parse_xml,
    serialize_xml,
    local_name,
    child_elements,
    has_child_elements,
    find_child,
    element_value,
    select,
    node_value,
    set_element_value,
    is_valid_tag,
)

__all__ = [
    "parse_xml",
    "serialize_xml",
    "local_name",
    "child_elements",
    "has_child_elements",
    "find_child",
    "element_value",
    "select",
    "node_value",
    "set_element_value",
    "is_valid_tag",
]
