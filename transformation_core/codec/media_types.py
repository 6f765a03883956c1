"""
Media Type Helpers
==================

Content-type constants and small parsing helpers for ``type/subtype; charset=...``
strings.
"""

from typing import Optional

APPLICATION_JSON = "application/json"
APPLICATION_XML = "application/xml"
APPLICATION_OCTET_STREAM = "application/octet-stream"
TEXT_CSV = "text/csv"
TEXT_PLAIN = "text/plain"

# Aliases seen in the wild that mean the same document model
_ALIASES = {
    "text/xml": APPLICATION_XML,
    "text/json": APPLICATION_JSON,
    "application/csv": TEXT_CSV,
}


def normalize_media_type(content_type: Optional[str]) -> Optional[str]:
    """
    Reduce a content type to its lowercase ``type/subtype`` form.

    Parameters such as ``charset`` are dropped and known aliases are folded,
    so ``"Text/XML; charset=utf-8"`` becomes ``"application/xml"``.

    Args:
        content_type: Raw content type header value

    Returns:
        Normalized media type, or None if input is None/empty
    """
    if not content_type:
        return None
    media_type = content_type.split(";", 1)[0].strip().lower()
    return _ALIASES.get(media_type, media_type)


def charset_of(content_type: Optional[str]) -> Optional[str]:
    """
    Extract the ``charset`` parameter of a content type.

    Example:
        >>> charset_of("application/json; charset=UTF-16")
        'utf-16'
    """
    if not content_type:
        return None
    for param in content_type.split(";")[1:]:
        key, _, value = param.partition("=")
        if key.strip().lower() == "charset":
            return value.strip().strip('"').lower() or None
    return None


def same_media_type(left: Optional[str], right: Optional[str]) -> bool:
    """Compare two content types ignoring parameters and case."""
    return normalize_media_type(left) == normalize_media_type(right)
