"""
XSLT Transformer
================

XSLT transformation utilities for the transformation pipeline.
Stylesheets are compiled once per path and cached; the cache is the only
shared mutable state and is guarded by a lock.
"""

import logging
import threading
from pathlib import Path
from typing import Dict, List, Union

from lxml import etree

from transformation_core.codec.encoding import trim_bom
from transformation_core.errors import StylesheetError
from transformation_core.xml.utils import parse_xml

logger = logging.getLogger(__name__)


def _stylesheet_parser() -> 'etree.XMLParser':
    # Stylesheets come from local configuration; no DTD or network lookups
    return etree.XMLParser(resolve_entities=False, no_network=True)


def load_xslt_transform(xslt_path: Path) -> 'etree.XSLT':
    """
    Compile the stylesheet stored at a path.

    Raises:
        FileNotFoundError: If the stylesheet file does not exist
        etree.XSLTParseError: If the file is not a valid stylesheet
        etree.XMLSyntaxError: If the file is not well-formed XML
    """
    xslt_path = Path(xslt_path)
    if not xslt_path.is_file():
        raise FileNotFoundError(f"Stylesheet not found: {xslt_path}")

    stylesheet = etree.parse(str(xslt_path), parser=_stylesheet_parser())
    transform = etree.XSLT(stylesheet)
    logger.info(f"Compiled stylesheet {xslt_path.name}")
    return transform


def apply_xslt_transform(
    xml_doc: 'etree._ElementTree',
    xslt_transform: 'etree.XSLT',
    **params
) -> 'etree._XSLTResultTree':
    """
    Run a compiled stylesheet over a parsed document.

    Keyword arguments become XSLT string parameters, so values are quoted
    for the stylesheet and never evaluated as XPath.

    Raises:
        etree.XSLTApplyError: If the stylesheet terminates or fails
    """
    string_params = {name: etree.XSLT.strparam(str(value)) for name, value in params.items()}

    try:
        result = xslt_transform(xml_doc, **string_params)
    except etree.XSLTApplyError:
        for entry in xslt_transform.error_log:
            logger.error(f"XSLT: {entry.message} (line {entry.line})")
        raise

    # xsl:message output without terminate ends up here
    for entry in xslt_transform.error_log:
        logger.warning(f"XSLT: {entry.message}")

    return result


class XSLTTransformer:
    """
    Applies stylesheets identified by path to XML payloads.

    Compiled stylesheets are cached by resolved path so each stylesheet is
    compiled once per process.

    Example:
        transformer = XSLTTransformer()
        output = transformer.transform(xml_bytes, "xslt/orders.xslt")
    """

    def __init__(self):
        """Initialize transformer with an empty stylesheet cache."""
        self._cache: Dict[str, 'etree.XSLT'] = {}
        self._lock = threading.Lock()

    def _compiled(self, stylesheet_path: Union[str, Path]) -> 'etree.XSLT':
        key = str(Path(stylesheet_path).resolve())

        transform = self._cache.get(key)
        if transform is not None:
            return transform

        with self._lock:
            # Another thread may have compiled it while we waited
            transform = self._cache.get(key)
            if transform is not None:
                return transform
            try:
                transform = load_xslt_transform(Path(key))
            except FileNotFoundError as e:
                raise StylesheetError(str(e)) from e
            except (etree.XSLTParseError, etree.XMLSyntaxError) as e:
                raise StylesheetError(f"Invalid XSLT stylesheet {stylesheet_path}: {e}") from e
            self._cache[key] = transform
            return transform

    def transform(self, xml_bytes: bytes, stylesheet_path: Union[str, Path], **params) -> bytes:
        """
        Apply a stylesheet to an XML payload.

        Args:
            xml_bytes: Input XML document
            stylesheet_path: Path of the stylesheet
            **params: Optional XSLT string parameters

        Returns:
            Serialized transformation output without byte-order mark

        Raises:
            StylesheetError: If the stylesheet can not be loaded or applied
            MalformedInputError: If the input is not well-formed XML
        """
        if not stylesheet_path:
            raise StylesheetError("No stylesheet path given")

        xslt_transform = self._compiled(stylesheet_path)
        xml_doc = parse_xml(xml_bytes)

        logger.debug(f"Applying XSLT transformation: {stylesheet_path}")
        try:
            result = apply_xslt_transform(xml_doc, xslt_transform, **params)
        except etree.XSLTApplyError as e:
            raise StylesheetError(f"XSLT transformation failed for {stylesheet_path}: {e}") from e

        output = bytes(result)
        return trim_bom(output, "application/xml; charset=utf-8")

    def clear_cache(self) -> None:
        """Drop all compiled stylesheets (picks up edited files)."""
        with self._lock:
            self._cache.clear()

    @property
    def cached_paths(self) -> List[str]:
        """Return the paths of the compiled stylesheets."""
        return sorted(self._cache)
