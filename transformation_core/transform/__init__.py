"""
Transformation Framework
========================

XSLT utilities for the transformation pipeline.

Components:
- XSLTTransformer: applies cached stylesheets to XML payloads
- load_xslt_transform: Load XSLT from file
- apply_xslt_transform: Apply XSLT to a parsed document
"""

from transformation_core.transform.xslt import (
    XSLTTransformer,
    load_xslt_transform,
    apply_xslt_transform,
)

__all__ = [
    "XSLTTransformer",
    "load_xslt_transform",
    "apply_xslt_transform",
]
