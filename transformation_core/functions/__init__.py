"""
Transformation Functions
========================

Value-computing functions that write their results into XML documents.

Components:
- FunctionEngine: applies a route's functions in order
- FunctionRegistry: name to implementation mapping
- update_or_add_node: writes a value at an XPath, creating missing nodes
"""

from transformation_core.functions.builtins import (
    BUILTIN_FUNCTIONS,
    parse_duration,
    register_builtins,
)
from transformation_core.functions.engine import (
    FunctionEngine,
    default_registry,
    update_or_add_node,
)
from transformation_core.functions.registry import FunctionRegistry, FunctionHandler

__all__ = [
    "FunctionEngine",
    "FunctionRegistry",
    "FunctionHandler",
    "BUILTIN_FUNCTIONS",
    "default_registry",
    "register_builtins",
    "parse_duration",
    "update_or_add_node",
]
