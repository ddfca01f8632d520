"""Conversion between stored catalog rows and in-memory values.

Two helpers cover both directions:

* ``parse_if_string`` reads a structured field that may have been stored
  JSON-encoded. Strings are parsed, structured values pass through, and
  anything unusable falls back to a default. It never raises.
* ``to_plain`` deep-converts in-memory objects (dataclasses, mappings,
  sequences, datetimes) into JSON-ready values before they are written.
  Already-plain input comes back unchanged.
"""
import copy
import json
import logging
from dataclasses import fields, is_dataclass
from datetime import date, datetime
from typing import Any, Callable, Mapping, Optional

logger = logging.getLogger(__name__)

_MISSING = object()


def parse_if_string(value: Any, default: Any = _MISSING, field_name: str = "value") -> Any:
    """Parse ``value`` if it is a JSON string, otherwise pass it through.

    ``None`` and unparseable strings yield a copy of ``default`` (an empty
    dict when no default is given).
    """
    if default is _MISSING:
        default = {}

    if value is None:
        return copy.deepcopy(default)

    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8", errors="replace")

    if isinstance(value, str):
        if not value.strip():
            return copy.deepcopy(default)
        try:
            parsed = json.loads(value)
        except (TypeError, ValueError) as e:
            logger.error(f"Error parsing {field_name}: {e}")
            return copy.deepcopy(default)
        if parsed is None:
            return copy.deepcopy(default)
        return parsed

    return value


def to_plain(value: Any) -> Any:
    """Recursively convert ``value`` into plain JSON-serializable data."""
    if value is None or isinstance(value, (str, bool, int, float)):
        return value

    to_dict: Optional[Callable[[], Any]] = getattr(value, "to_dict", None)
    if callable(to_dict) and not isinstance(value, type):
        return to_plain(to_dict())

    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_plain(getattr(value, f.name)) for f in fields(value)}

    if isinstance(value, Mapping):
        return {str(k): to_plain(v) for k, v in value.items()}

    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_plain(item) for item in value]

    if isinstance(value, (datetime, date)):
        return value.isoformat()

    return str(value)
