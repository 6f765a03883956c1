"""
Content-Based Routing
=====================

Resolve destination topics from message content.
"""

from transformation_core.routing.resolver import RouteResolver

__all__ = ["RouteResolver"]
