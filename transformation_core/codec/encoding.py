"""
Byte-order-mark handling for codec and stage output.
"""

import codecs
import logging
from typing import Optional

from transformation_core.codec.media_types import charset_of

logger = logging.getLogger(__name__)

_BOMS = {
    "utf-8": codecs.BOM_UTF8,
    "utf-8-sig": codecs.BOM_UTF8,
    "utf-16": codecs.BOM_UTF16_LE,
    "utf-16-le": codecs.BOM_UTF16_LE,
    "utf-16-be": codecs.BOM_UTF16_BE,
    "utf-32": codecs.BOM_UTF32_LE,
    "utf-32-le": codecs.BOM_UTF32_LE,
    "utf-32-be": codecs.BOM_UTF32_BE,
}


def preamble_for(encoding: Optional[str]) -> bytes:
    """
    Return the byte-order mark for an encoding name.

    Unknown or missing encodings fall back to UTF-8.
    """
    if not encoding:
        return codecs.BOM_UTF8
    try:
        name = codecs.lookup(encoding).name
    except LookupError:
        logger.debug(f"Unknown charset '{encoding}', assuming utf-8")
        return codecs.BOM_UTF8
    return _BOMS.get(name, codecs.BOM_UTF8)


def trim_bom(data: bytes, content_type: Optional[str] = None) -> bytes:
    """
    Strip a leading byte-order mark matching the declared charset.

    Args:
        data: Payload bytes
        content_type: Content type whose ``charset`` parameter selects the BOM
            (utf-8 when absent)

    Returns:
        Payload without the BOM (unchanged if none present)
    """
    preamble = preamble_for(charset_of(content_type))
    if data.startswith(preamble):
        return data[len(preamble):]
    return data
