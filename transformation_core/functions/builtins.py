"""
Built-in Functions
==================

Value-computing functions available to every route:

- AddDateTimeStamp: current local time
- AddMaxDateTime: latest date found by an XPath, optionally shifted by a delay
- AddMinDateTime: earliest date found by an XPath, optionally shifted by a delay

Common parameters:
    Format: strftime pattern for the result (ISO-8601 when absent)
    XPath:  node selection for the Max/Min functions (required there)
    Delay:  duration added to the Max/Min result, e.g. "01:30:00", "2.00:00:00",
            "1d 2h", "90 minutes"
"""

from datetime import datetime, timedelta
from typing import Any, Callable, List, Mapping, Optional
import logging
import re

from dateutil import parser as date_parser

from transformation_core.errors import FunctionApplicationError
from transformation_core.functions.registry import FunctionRegistry
from transformation_core.xml.utils import node_value, select

logger = logging.getLogger(__name__)

_CLOCK_PATTERN = re.compile(
    r"^(?P<sign>-)?(?:(?P<days>\d+)\.)?(?P<hours>\d+):(?P<minutes>\d{1,2})"
    r"(?::(?P<seconds>\d{1,2})(?:\.(?P<fraction>\d+))?)?$"
)

_UNIT_PATTERN = re.compile(r"(?P<value>\d+(?:\.\d+)?)\s*(?P<unit>[a-zA-Z]+)")

_UNITS = {
    "ms": "milliseconds", "millisecond": "milliseconds", "milliseconds": "milliseconds",
    "s": "seconds", "sec": "seconds", "secs": "seconds", "second": "seconds", "seconds": "seconds",
    "m": "minutes", "min": "minutes", "mins": "minutes", "minute": "minutes", "minutes": "minutes",
    "h": "hours", "hr": "hours", "hrs": "hours", "hour": "hours", "hours": "hours",
    "d": "days", "day": "days", "days": "days",
    "w": "weeks", "week": "weeks", "weeks": "weeks",
}


def parse_duration(text: Any) -> Optional[timedelta]:
    """
    Parse a duration written as a clock value or in human units.

    Args:
        text: "HH:MM[:SS[.fff]]", "D.HH:MM:SS" or unit form ("1d 2h 30m")

    Returns:
        timedelta, or None for an empty value

    Raises:
        ValueError: If the text is not a recognised duration
    """
    if text is None:
        return None
    text = str(text).strip()
    if not text:
        return None

    match = _CLOCK_PATTERN.match(text)
    if match:
        fraction = match.group("fraction") or "0"
        delta = timedelta(
            days=int(match.group("days") or 0),
            hours=int(match.group("hours")),
            minutes=int(match.group("minutes")),
            seconds=int(match.group("seconds") or 0),
            microseconds=int(fraction.ljust(6, "0")[:6]),
        )
        return -delta if match.group("sign") else delta

    negative = text.startswith("-")
    body = text.lstrip("-")
    parts = {}
    position = 0
    for match in _UNIT_PATTERN.finditer(body):
        gap = body[position:match.start()]
        if gap.strip(" ,").lower() not in ("", "and"):
            raise ValueError(f"Invalid duration '{text}'")
        unit = _UNITS.get(match.group("unit").lower())
        if unit is None:
            raise ValueError(f"Invalid duration unit '{match.group('unit')}' in '{text}'")
        parts[unit] = parts.get(unit, 0.0) + float(match.group("value"))
        position = match.end()

    if not parts or body[position:].strip(" ,"):
        raise ValueError(f"Invalid duration '{text}'")

    delta = timedelta(**parts)
    return -delta if negative else delta


def format_datetime(value: datetime, fmt: Optional[str]) -> str:
    if fmt:
        return value.strftime(fmt)
    return value.isoformat()


def _format_param(parameters: Mapping[str, Any]) -> Optional[str]:
    fmt = parameters.get("Format")
    return str(fmt) if fmt is not None else None


_NUMBER_ONLY = re.compile(r"^[+-]?\d+(?:\.\d+)?$")


def parse_date(text: str) -> Optional[datetime]:
    """
    Parse a node value as a date, or None when it is not one.

    Bare numbers are not dates. Values carrying an offset are converted
    to local time and made naive so they compare with offset-free values.
    """
    if not text or _NUMBER_ONLY.match(text):
        return None
    try:
        value = date_parser.parse(text)
    except (ValueError, OverflowError):
        return None
    if value.tzinfo is not None:
        value = value.astimezone().replace(tzinfo=None)
    return value


def _collect_dates(document: Any, parameters: Mapping[str, Any]) -> List[datetime]:
    xpath = parameters.get("XPath")
    if xpath is None or str(xpath) == "":
        raise FunctionApplicationError("XPath parameter is required.")

    dates = []
    for node in select(document, str(xpath)):
        text = node_value(node).strip()
        value = parse_date(text)
        if value is not None:
            dates.append(value)
        else:
            logger.debug(f"Skipping value that is not a date: {text!r}")
    return dates


def _pick_date(document: Any,
               parameters: Mapping[str, Any],
               pick: Callable[[List[datetime]], datetime]) -> str:
    dates = _collect_dates(document, parameters)
    if not dates:
        return ""

    value = pick(dates)
    delay = parse_duration(parameters.get("Delay"))
    if delay is not None:
        value = value + delay

    return format_datetime(value, _format_param(parameters))


def add_date_time_stamp(document: Any, parameters: Mapping[str, Any]) -> str:
    """Current local time, formatted with the optional ``Format`` parameter."""
    return format_datetime(datetime.now(), _format_param(parameters))


def add_max_date_time(document: Any, parameters: Mapping[str, Any]) -> str:
    """Latest parsable date among the nodes selected by ``XPath``."""
    return _pick_date(document, parameters, max)


def add_min_date_time(document: Any, parameters: Mapping[str, Any]) -> str:
    """Earliest parsable date among the nodes selected by ``XPath``."""
    return _pick_date(document, parameters, min)


BUILTIN_FUNCTIONS = {
    "AddDateTimeStamp": add_date_time_stamp,
    "AddMaxDateTime": add_max_date_time,
    "AddMinDateTime": add_min_date_time,
}


def register_builtins(registry: FunctionRegistry) -> FunctionRegistry:
    """Add the built-in functions to a registry."""
    for name, handler in BUILTIN_FUNCTIONS.items():
        registry.register(name, handler)
    return registry
