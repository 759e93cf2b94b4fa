"""Dotted-path access into nested dicts and lists.

A path like ``"vehicles.0.vin"`` walks dict keys and list positions. Digit
segments index lists; on dicts they are plain string keys.
"""

from typing import Any

_MISSING = object()


def _segments(path: str | int) -> list[str]:
    return str(path).split(".")


def _child(container: Any, segment: str, default: Any = _MISSING) -> Any:
    if isinstance(container, dict):
        return container.get(segment, default)
    if isinstance(container, list) and segment.isdigit():
        index = int(segment)
        if index < len(container):
            return container[index]
    return default


def data_get(data: Any, path: str | int | None, default: Any = None) -> Any:
    """
    Read a value at a dotted path.

    Args:
        data: Nested dicts/lists
        path: Dotted path. None returns ``data`` itself.
        default: Returned when any segment is missing

    Returns:
        The value at the path, or ``default``
    """
    if path is None:
        return data
    current = data
    for segment in _segments(path):
        current = _child(current, segment)
        if current is _MISSING:
            return default
    return current


def _assign(container: Any, segment: str, value: Any) -> None:
    if isinstance(container, list):
        index = int(segment)
        if index < len(container):
            container[index] = value
        else:
            container.extend([None] * (index - len(container)))
            container.append(value)
    else:
        container[segment] = value


def empty_container_for(segment: str | int) -> dict | list:
    """The container a missing level should be: a list before a position, else a dict."""
    return [] if str(segment).isdigit() else {}


def data_set(data: dict | list, path: str | int, value: Any) -> dict | list:
    """
    Write a value at a dotted path, creating intermediate containers as needed.

    ``data`` is modified in place and also returned. Intermediate values that
    aren't containers are replaced by a list when the next segment is a
    position, a dict otherwise.
    """
    segments = _segments(path)
    current = data
    for segment, following in zip(segments[:-1], segments[1:]):
        nxt = _child(current, segment)
        if not isinstance(nxt, (dict, list)):
            nxt = empty_container_for(following)
            _assign(current, segment, nxt)
        current = nxt
    _assign(current, segments[-1], value)
    return data


def data_forget(data: Any, path: str | int) -> None:
    """Remove the value at a dotted path if it's there. Lists shrink."""
    segments = _segments(path)
    parent = data_get(data, ".".join(segments[:-1])) if len(segments) > 1 else data
    last = segments[-1]
    if isinstance(parent, dict):
        parent.pop(last, None)
    elif isinstance(parent, list) and last.isdigit() and int(last) < len(parent):
        del parent[int(last)]
