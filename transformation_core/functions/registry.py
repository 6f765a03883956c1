"""
Function Registry
=================

Explicit mapping from function names to implementations. Every function has
the same signature: ``(document, parameters) -> str``.
"""

from typing import Any, Callable, Dict, List, Mapping, Optional
import logging

from transformation_core.errors import UnknownFunctionError

logger = logging.getLogger(__name__)

FunctionHandler = Callable[[Any, Mapping[str, Any]], str]


class FunctionRegistry:
    """
    Registry of value-computing functions.

    Example:
        registry = FunctionRegistry()

        @registry.register("AddConstant")
        def add_constant(document, parameters):
            return str(parameters.get("Value", ""))
    """

    def __init__(self):
        self._functions: Dict[str, FunctionHandler] = {}

    def register(self, name: str, handler: Optional[FunctionHandler] = None):
        """
        Register a function under a name.

        Can be called directly (``register("X", fn)``) or used as a decorator
        (``@register("X")``). Registering an existing name replaces it.
        """
        def decorator(func: FunctionHandler) -> FunctionHandler:
            if name in self._functions:
                logger.warning(f"Replacing registered function '{name}'")
            self._functions[name] = func
            return func

        if handler is not None:
            return decorator(handler)
        return decorator

    def get(self, name: str) -> FunctionHandler:
        """
        Look up a function by name.

        Raises:
            UnknownFunctionError: If no function is registered under the name
        """
        try:
            return self._functions[name]
        except KeyError:
            raise UnknownFunctionError(name) from None

    def __contains__(self, name: str) -> bool:
        return name in self._functions

    @property
    def names(self) -> List[str]:
        return sorted(self._functions)
