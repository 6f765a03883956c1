"""
Format Converters
=================

Stateless, bidirectional converters between JSON, XML and CSV payloads.

The structural rules are fixed so that every connector in an integration
produces the same documents:

- JSON -> XML: object properties become elements; arrays become repeated
  sibling elements (no list wrapper); scalars become element text.
- XML -> JSON: elements with children become objects, leaves become strings.
- CSV -> XML: header row names the columns; each line becomes a row element.
- XML -> CSV: row elements (or the root itself) become lines; headers come
  from the first row.
- CSV <-> JSON: direct, no XML intermediate.

CSV handling is deliberately simple: fields are split on commas, there is
no quoting or escaping.
"""

from typing import Any, Callable, Dict, List, Optional, Tuple
import json
import logging

from lxml import etree

from transformation_core.codec import media_types
from transformation_core.codec.encoding import trim_bom
from transformation_core.config.settings import TypeConverterOptions
from transformation_core.errors import MalformedInputError, UnsupportedConversionError
from transformation_core.xml.utils import (
    child_elements,
    element_value,
    find_child,
    has_child_elements,
    local_name,
    parse_xml,
    serialize_xml,
)

logger = logging.getLogger(__name__)

CSV_SEPARATOR = ","
CSV_LINE_END = "\n"


# ============================================================================
# SHARED HELPERS
# ============================================================================

def _decode_text(data: bytes) -> str:
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise MalformedInputError(f"Payload is not valid UTF-8: {e}") from e


class _JsonNumber(str):
    """A JSON fraction or exponent number, kept as written in the source."""


def _load_json(data: bytes) -> Any:
    try:
        return json.loads(_decode_text(data), parse_float=_JsonNumber)
    except json.JSONDecodeError as e:
        raise MalformedInputError(f"JSON is not well-formed: {e}") from e


def _dump_json(value: Any) -> bytes:
    return json.dumps(value, indent=2, ensure_ascii=False).encode("utf-8")


def _plain_json(value: Any) -> Any:
    if isinstance(value, _JsonNumber):
        return float(value)
    if isinstance(value, dict):
        return {key: _plain_json(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_plain_json(item) for item in value]
    return value


def _scalar_text(value: Any) -> str:
    """Render a JSON value as element text or CSV cell."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(_plain_json(value), separators=(",", ":"), ensure_ascii=False)
    return str(value)


def _read_csv_lines(data: bytes) -> List[str]:
    text = _decode_text(data).replace("\r\n", "\n").replace("\r", "\n")
    if not text:
        return []
    lines = text.split("\n")
    # A trailing newline terminates the last line, it does not start a new one
    if lines[-1] == "":
        lines.pop()
    return lines


def _read_csv(data: bytes) -> Tuple[List[str], List[List[str]]]:
    lines = _read_csv_lines(data)
    if not lines:
        raise MalformedInputError("CSV does not contain any data.")
    headers = lines[0].split(CSV_SEPARATOR)
    rows = []
    for line in lines[1:]:
        fields = line.split(CSV_SEPARATOR)
        # Missing trailing fields become empty strings
        rows.append([fields[i] if i < len(fields) else "" for i in range(len(headers))])
    return headers, rows


def _write_csv(headers: List[str], rows: List[List[str]]) -> bytes:
    lines = [CSV_SEPARATOR.join(headers)]
    lines.extend(CSV_SEPARATOR.join(row) for row in rows)
    return "".join(line + CSV_LINE_END for line in lines).encode("utf-8")


def _make_element(name: str) -> 'etree._Element':
    try:
        return etree.Element(name)
    except ValueError as e:
        raise MalformedInputError(f"'{name}' is not a valid XML element name") from e


# ============================================================================
# JSON <-> XML
# ============================================================================

def _last_sibling(element: 'etree._Element') -> 'etree._Element':
    """Last of the run of same-tag siblings starting at an element."""
    last = element
    following = last.getnext()
    while following is not None and following.tag == element.tag:
        last = following
        following = last.getnext()
    return last


def _write_json_value(element: 'etree._Element', value: Any) -> None:
    if isinstance(value, dict):
        for name, child_value in value.items():
            child = _make_element(name)
            element.append(child)
            _write_json_value(child, child_value)
    elif isinstance(value, list):
        if not value:
            return
        _write_json_value(element, value[0])

        previous = _last_sibling(element)
        for item in value[1:]:
            if previous.getparent() is None:
                raise MalformedInputError("A top-level JSON array can not become the XML root element")
            sibling = etree.Element(element.tag)
            previous.addnext(sibling)
            _write_json_value(sibling, item)
            previous = _last_sibling(sibling)
    else:
        element.text = _scalar_text(value)


def json_to_xml(data: bytes, options: Optional[TypeConverterOptions] = None) -> bytes:
    """
    Convert a JSON object to an XML document.

    With root wrapping enabled each top-level property becomes a child of a
    wrapper element; without it the single top-level property becomes the
    document root.

    Raises:
        MalformedInputError: If the payload is not a JSON object or a property
            name is not a valid element name
    """
    options = options or TypeConverterOptions()
    json_options = options.json_to_xml
    document = _load_json(data)

    if not isinstance(document, dict):
        raise MalformedInputError("JSON to XML conversion expects a JSON object at the top level")

    if json_options.use_root_wrapping:
        root = _make_element(json_options.root_wrapper_name)
        _write_json_value(root, document)
    else:
        if not document:
            raise MalformedInputError("JSON object has no property to use as the root element")
        name, value = next(iter(document.items()))
        if len(document) > 1:
            logger.warning(f"JSON has {len(document)} top-level properties, only '{name}' is converted")
        root = _make_element(name)
        _write_json_value(root, value)

    return serialize_xml(root)


def _element_to_json(element: 'etree._Element') -> Tuple[str, Any]:
    if has_child_elements(element):
        obj: Dict[str, Any] = {}
        for child in child_elements(element):
            key, value = _element_to_json(child)
            obj[key] = value
        return local_name(element), obj
    return local_name(element), element_value(element)


def xml_to_json(data: bytes, options: Optional[TypeConverterOptions] = None) -> bytes:
    """
    Convert an XML document to JSON.

    Elements with children become objects keyed by their local name, leaves
    become string fields. With ``include_root_wrapper`` the output is one
    object holding the root; otherwise it is an array with one object per
    root child.
    """
    options = options or TypeConverterOptions()
    root = parse_xml(data).getroot()

    if options.xml_to_json.include_root_wrapper:
        key, value = _element_to_json(root)
        return _dump_json({key: value})

    items = []
    for child in child_elements(root):
        key, value = _element_to_json(child)
        items.append({key: value})
    return _dump_json(items)


# ============================================================================
# CSV <-> XML
# ============================================================================

def csv_to_xml(data: bytes, options: Optional[TypeConverterOptions] = None) -> bytes:
    """
    Convert CSV (header line + data lines) to XML rows.

    Raises:
        MalformedInputError: If there is no header line or a header is not a
            valid element name
    """
    options = options or TypeConverterOptions()
    csv_options = options.csv_to_xml
    headers, rows = _read_csv(data)

    root = _make_element(csv_options.root_wrapper_name)
    for fields in rows:
        row = _make_element(csv_options.row_wrapper_name)
        for header, value in zip(headers, fields):
            cell = _make_element(header)
            cell.text = value
            row.append(cell)
        root.append(row)

    return serialize_xml(root)


def xml_to_csv(data: bytes, options: Optional[TypeConverterOptions] = None) -> bytes:
    """
    Convert XML rows to CSV.

    Root children named like the configured row element are rows; if there
    are none the root itself is the only row. Headers are the first row's
    child names in document order.

    Raises:
        MalformedInputError: If the document root has no child elements
    """
    options = options or TypeConverterOptions()
    row_name = options.xml_to_csv.row_wrapper_name
    root = parse_xml(data).getroot()

    if not has_child_elements(root):
        raise MalformedInputError("Can not convert to CSV because the XML document is empty.")

    rows = [child for child in child_elements(root) if local_name(child) == row_name]
    if not rows:
        rows = [root]

    headers = [local_name(child) for child in child_elements(rows[0])]

    lines = []
    for row in rows:
        fields = []
        for header in headers:
            cell = find_child(row, header)
            fields.append(element_value(cell) if cell is not None else "")
        lines.append(fields)

    return _write_csv(headers, lines)


# ============================================================================
# CSV <-> JSON
# ============================================================================

def json_to_csv(data: bytes, options: Optional[TypeConverterOptions] = None) -> bytes:
    """
    Convert a JSON object, or an array of objects, to CSV.

    The header is the union of all keys in first-seen order; absent keys
    render as empty cells. Non-object array items are ignored.
    """
    document = _load_json(data)

    if isinstance(document, list):
        records = [item for item in document if isinstance(item, dict)]
    elif isinstance(document, dict):
        records = [document]
    else:
        raise MalformedInputError("Unsupported JSON structure. Root must be an object or an array of objects.")

    headers: List[str] = []
    seen = set()
    for record in records:
        for key in record:
            if key not in seen:
                seen.add(key)
                headers.append(key)

    rows = [[_scalar_text(record[h]) if h in record else "" for h in headers] for record in records]
    return _write_csv(headers, rows)


def csv_to_json(data: bytes, options: Optional[TypeConverterOptions] = None) -> bytes:
    """Convert CSV to a JSON array with one object per data line."""
    headers, rows = _read_csv(data)
    records = [dict(zip(headers, fields)) for fields in rows]
    return _dump_json(records)


# ============================================================================
# CODEC
# ============================================================================

Converter = Callable[[bytes, Optional[TypeConverterOptions]], bytes]

CONVERTERS: Dict[Tuple[str, str], Converter] = {
    (media_types.APPLICATION_JSON, media_types.APPLICATION_XML): json_to_xml,
    (media_types.TEXT_CSV, media_types.APPLICATION_XML): csv_to_xml,
    (media_types.APPLICATION_XML, media_types.APPLICATION_JSON): xml_to_json,
    (media_types.APPLICATION_XML, media_types.TEXT_CSV): xml_to_csv,
    (media_types.APPLICATION_JSON, media_types.TEXT_CSV): json_to_csv,
    (media_types.TEXT_CSV, media_types.APPLICATION_JSON): csv_to_json,
}


class FormatCodec:
    """
    Converts payloads between JSON, XML and CSV.

    Example:
        codec = FormatCodec()
        xml_bytes = codec.convert(b'{"id": 1}', "application/json", "application/xml")
    """

    def supports(self, from_type: str, to_type: str) -> bool:
        key = (media_types.normalize_media_type(from_type), media_types.normalize_media_type(to_type))
        return key[0] == key[1] or key in CONVERTERS

    def convert(self,
                data: bytes,
                from_type: str,
                to_type: str,
                options: Optional[TypeConverterOptions] = None) -> bytes:
        """
        Convert a payload from one content type to another.

        Args:
            data: Payload bytes
            from_type: Current content type
            to_type: Requested content type
            options: Route-specific converter options (defaults when None)

        Returns:
            Converted payload with any byte-order mark removed; the input
            unchanged when both types are equal

        Raises:
            UnsupportedConversionError: If no converter handles the pair
            MalformedInputError: If the payload can not be decoded
        """
        source = media_types.normalize_media_type(from_type)
        target = media_types.normalize_media_type(to_type)

        if source == target:
            return data

        converter = CONVERTERS.get((source, target))
        if converter is None:
            raise UnsupportedConversionError(from_type, to_type)

        logger.debug(f"Converting {len(data)} bytes from {source} to {target}")
        return trim_bom(converter(data, options), to_type)
