"""Canonical JSON helpers.

These give cheap deep comparison of JSON-shaped values where object key order
doesn't matter (dirty checks, test assertions). Empty objects always stay
``{}`` and never turn into ``[]``.
"""

import json
from collections.abc import Mapping
from datetime import date, datetime
from typing import Any, Iterable

from docolink.exceptions import JsonDecodeError
from docolink.helpers.paths import data_forget


def plain(value: Any) -> Any:
    """
    Flatten a value down to JSON primitives.

    Documents and collections are asked to serialize themselves, datetimes
    become ISO-8601 text, mappings and sequences are copied recursively.

    Args:
        value: Anything JSON-shaped, possibly containing documents

    Returns:
        dict, list, str, int, float, bool or None
    """
    if hasattr(value, "to_dict"):
        return plain(value.to_dict())
    if hasattr(value, "to_list"):
        return plain(value.to_list())
    if isinstance(value, Mapping):
        return {str(key): plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [plain(item) for item in value]
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return value


def encode(value: Any, **kwargs: Any) -> str:
    """JSON-encode anything ``plain`` understands."""
    return json.dumps(plain(value), **kwargs)


def mugglify(value: Any) -> Any:
    """Strip every bit of magic from a value by encoding and decoding it as JSON."""
    return json.loads(encode(value))


def decode_or_throw(text: str | bytes) -> Any:
    """
    Decode JSON text, raising a library error instead of returning garbage.

    Args:
        text: JSON text

    Returns:
        Decoded value

    Raises:
        JsonDecodeError: If the text isn't valid JSON
    """
    try:
        return json.loads(text)
    except (TypeError, ValueError) as e:
        raise JsonDecodeError(f"json decode error: {e}") from e


def canonicalize(text: str | bytes, indent: int | None = None) -> str:
    """
    Re-encode JSON text with object keys sorted at every depth.

    Args:
        text: JSON text
        indent: Optional pretty-print indent

    Returns:
        Canonical JSON text
    """
    decoded = decode_or_throw(text)
    return json.dumps(decoded, sort_keys=True, indent=indent)


def canonically_same(first: Any, second: Any) -> bool:
    """Compare two JSON-serializable values ignoring object key order."""
    return canonicalize(encode(first)) == canonicalize(encode(second))


def canonically_same_except(first: Any, second: Any, ignore_keys: Iterable[str]) -> bool:
    """
    Compare two values ignoring object key order and the given dotted keys.

    Args:
        first: First value
        second: Second value
        ignore_keys: Dotted paths removed from both sides before comparing

    Returns:
        True if the remaining data is canonically identical
    """
    first_plain = mugglify(first)
    second_plain = mugglify(second)
    for key in ignore_keys:
        data_forget(first_plain, key)
        data_forget(second_plain, key)
    return canonically_same(first_plain, second_plain)
