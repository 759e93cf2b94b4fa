"""Typed attribute storage for documents.

An ``AttributeStore`` holds a document's raw attributes in their storage
representation, casts values on the way in and out according to a cast map,
and keeps an "original" snapshot for dirty checks.
"""

import copy
from abc import ABC, abstractmethod
from datetime import date, datetime, timezone
from typing import Any, Iterator, Mapping

from docolink.exceptions import TypeMismatchError
from docolink.helpers.json import plain


class CastsAttributes(ABC):
    """Base class for custom casts.

    ``set`` turns an incoming value into its storage representation and
    ``get`` turns the storage representation back into the value callers see.
    """

    @abstractmethod
    def get(self, key: str, value: Any) -> Any:
        ...

    @abstractmethod
    def set(self, key: str, value: Any) -> Any:
        ...


def _parse_datetime(key: str, value: Any) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as e:
            raise TypeMismatchError(f"{key} must be an ISO-8601 datetime, got {value!r}", key) from e
    else:
        raise TypeMismatchError(f"{key} must be a datetime, got {type(value).__name__}", key)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _to_bool(key: str, value: Any) -> bool:
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "1", "yes", "on"):
            return True
        if lowered in ("false", "0", "no", "off", ""):
            return False
        raise TypeMismatchError(f"{key} must be a boolean, got {value!r}", key)
    return bool(value)


def _scalar(caster: type, key: str, value: Any) -> Any:
    try:
        return caster(value)
    except (TypeError, ValueError) as e:
        raise TypeMismatchError(f"{key} must be a {caster.__name__}, got {value!r}", key) from e


class AttributeStore:
    """Mutable typed key-value store with original snapshotting."""

    # cast name -> (into storage, out of storage)
    BUILTIN_CASTS = {
        "int": (lambda k, v: _scalar(int, k, v), None),
        "integer": (lambda k, v: _scalar(int, k, v), None),
        "float": (lambda k, v: _scalar(float, k, v), None),
        "double": (lambda k, v: _scalar(float, k, v), None),
        "real": (lambda k, v: _scalar(float, k, v), None),
        "str": (lambda k, v: _scalar(str, k, v), None),
        "string": (lambda k, v: _scalar(str, k, v), None),
        "bool": (_to_bool, None),
        "boolean": (_to_bool, None),
        "datetime": (
            lambda k, v: _parse_datetime(k, v).isoformat(),
            lambda k, v: _parse_datetime(k, v),
        ),
        "date": (
            lambda k, v: _parse_datetime(k, v).date().isoformat(),
            lambda k, v: date.fromisoformat(v),
        ),
        "dict": (lambda k, v: copy.deepcopy(v), None),
        "json": (lambda k, v: copy.deepcopy(v), None),
        "array": (lambda k, v: copy.deepcopy(v), None),
    }

    def __init__(self, casts: Mapping[str, Any] | None = None):
        """
        Initialize an empty store.

        Args:
            casts: Map of attribute name to a built-in cast name, a
                   CastsAttributes subclass, or a CastsAttributes instance
        """
        self.casts = dict(casts or {})
        self._attributes: dict[str, Any] = {}
        self._original: dict[str, Any] = {}

    def _caster(self, key: str) -> Any:
        cast = self.casts.get(key)
        if cast is None:
            return None
        if isinstance(cast, type) and issubclass(cast, CastsAttributes):
            cast = cast()
            self.casts[key] = cast
        if isinstance(cast, CastsAttributes):
            return cast
        if cast not in self.BUILTIN_CASTS:
            raise TypeMismatchError(f"Unknown cast {cast!r} for {key}", key)
        return self.BUILTIN_CASTS[cast]

    def get(self, key: str, default: Any = None) -> Any:
        """Get an attribute, cast for callers."""
        if key not in self._attributes:
            return default
        value = self._attributes[key]
        if value is None:
            return None
        caster = self._caster(key)
        if isinstance(caster, CastsAttributes):
            return caster.get(key, value)
        if caster is not None and caster[1] is not None:
            return caster[1](key, value)
        return value

    def set(self, key: str, value: Any) -> None:
        """Set an attribute, cast into its storage representation."""
        if value is not None:
            caster = self._caster(key)
            if isinstance(caster, CastsAttributes):
                value = caster.set(key, value)
            elif caster is not None:
                value = caster[0](key, value)
        self._attributes[key] = value

    def get_raw(self, key: str, default: Any = None) -> Any:
        """Get an attribute in its storage representation."""
        return self._attributes.get(key, default)

    def has(self, key: str) -> bool:
        return key in self._attributes

    def forget(self, key: str) -> None:
        self._attributes.pop(key, None)

    def clear(self) -> None:
        self._attributes = {}

    def keys(self) -> list[str]:
        return list(self._attributes.keys())

    def items(self) -> Iterator[tuple[str, Any]]:
        return iter(self._attributes.items())

    def __len__(self) -> int:
        return len(self._attributes)

    def __contains__(self, key: object) -> bool:
        return key in self._attributes

    def to_dict(self) -> dict[str, Any]:
        """Storage representation of every attribute, safe to mutate."""
        return plain(self._attributes)

    @property
    def original(self) -> dict[str, Any]:
        return self._original

    def get_original(self, key: str, default: Any = None) -> Any:
        return self._original.get(key, default)

    def sync_original(self) -> None:
        """Snapshot the current attributes as the original state."""
        self._original = copy.deepcopy(self.to_dict())

    def get_dirty(self) -> dict[str, Any]:
        """Attributes whose storage value differs from the original snapshot."""
        current = self.to_dict()
        dirty = {}
        for key, value in current.items():
            if key not in self._original or self._original[key] != value:
                dirty[key] = value
        return dirty

    def is_dirty(self, *keys: str) -> bool:
        """Check if any (or any of the given) attributes changed since the snapshot."""
        dirty = self.get_dirty()
        removed = [key for key in self._original if key not in self._attributes]
        if not keys:
            return bool(dirty) or bool(removed)
        return any(key in dirty or key in removed for key in keys)
