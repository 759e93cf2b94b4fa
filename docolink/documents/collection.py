"""Collections of documents of one type, linked into a list in a host."""

import copy
import logging
from collections.abc import Iterable, Iterator, Mapping
from typing import Any, Callable

from docolink.documents.linking import LinkedDataMixin
from docolink.exceptions import (
    ConfigurationError,
    NotFoundError,
    TypeMismatchError,
    UniqueError,
)
from docolink.helpers.json import encode
from docolink.helpers.names import friendly_class_name

logger = logging.getLogger(__name__)


class DocumentCollection(LinkedDataMixin):
    """Ordered or primary-key-indexed collection of documents.

    Without a primary key the collection is positional and allows any items.
    With one, items are indexed by that attribute and duplicates are
    rejected.

    Either way the collection is stored in its host as a plain list, and
    every item is linked to its position in that list. ``find`` and item
    access use the logical key (position or primary key value).
    """

    IS_A = True
    NOT_A = False

    def __init__(
        self,
        items: Iterable[Any] | None = None,
        *,
        document_type: type | None = None,
        primary_key: str | None = None,
    ):
        """
        Initialize a collection.

        Args:
            items: Optional new items, added with push
            document_type: Document subclass of the items
            primary_key: Optional attribute to index items by
        """
        self._items: dict[Any, Any] = {}
        self._document_type: type | None = None
        self._primary_key = primary_key
        if document_type is not None:
            self.set_type(document_type)
        if items is not None:
            self.push(*items)

    @property
    def document_type(self) -> type | None:
        return self._document_type

    @property
    def primary_key(self) -> str | None:
        return self._primary_key

    def set_type(self, document_type: type) -> "DocumentCollection":
        """
        Set the item type.

        Raises:
            ConfigurationError: If it isn't a Document subclass
        """
        from docolink.documents.document import Document

        if not (isinstance(document_type, type) and issubclass(document_type, Document)):
            raise ConfigurationError("DocumentCollection type must be a subclass of Document")
        self._document_type = document_type
        return self

    def set_primary_key(self, key: str | None = None) -> "DocumentCollection":
        """
        Index items by an attribute, or positionally when None.

        Existing items are re-indexed. If two of them share a value the
        collection is left as it was.

        Raises:
            UniqueError: If existing items repeat a value of the new key
        """
        if self._items:
            items: dict[Any, Any] = {}
            for item in self._items.values():
                self._add(items, item, key)
            self._items = items
        self._primary_key = key
        self._reindex()
        return self

    def _require_type(self, message: str) -> type:
        if self._document_type is None:
            raise ConfigurationError(message)
        return self._document_type

    def _coerce(self, value: Any) -> Any:
        document_type = self._require_type(
            "Can't add items to DocumentCollection until type has been set."
        )
        if isinstance(value, document_type):
            return value
        if not isinstance(value, Mapping):
            raise TypeMismatchError(
                f"Can't insert a {type(value).__name__} in a collection of {document_type.__name__}"
            )
        return document_type(dict(value))

    @staticmethod
    def _add(items: dict[Any, Any], item: Any, primary_key: str | None) -> None:
        if primary_key is None:
            items[len(items)] = item
            return
        key = item[primary_key]
        if key in items:
            raise UniqueError(primary_key, key)
        items[key] = item

    def _insert(self, item: Any) -> None:
        self._add(self._items, item, self._primary_key)

    def _renumber(self) -> None:
        if self._primary_key is None:
            self._items = dict(enumerate(self._items.values()))

    def _reindex(self) -> None:
        """Link every item to its position in this collection's location."""
        if not self.is_linked():
            return
        for position, item in enumerate(self._items.values()):
            sub_key = str(position) if self._upstream_key is None else f"{self._upstream_key}.{position}"
            item.link(self._upstream, self._upstream_attribute, sub_key)

    # Loading

    def fresh(self) -> "DocumentCollection":
        """
        Replace every item with what's stored at the link (missing means empty).

        Raises:
            NotLinkedError: If not linked
        """
        return self.fill(copy.deepcopy(self.get_linked_data()) or [])

    def fill(self, items: Iterable[Any]) -> "DocumentCollection":
        """
        Replace every item. Items are assumed to come from storage, so they
        are marked as existing.

        Raises:
            ConfigurationError: If no type has been set
            UniqueError: If two items share a primary key value, in which
                case the current items are kept
        """
        self._require_type("Can't load DocumentCollection until type has been set.")
        if isinstance(items, Mapping):
            items = items.values()
        loaded: dict[Any, Any] = {}
        for value in items:
            self._add(loaded, self._coerce(value), self._primary_key)
        for item in loaded.values():
            item.exists = True
        self._items = loaded
        self._reindex()
        return self

    def push(self, *values: Any) -> "DocumentCollection":
        """
        Append new items.

        Raises:
            ConfigurationError: If no type has been set
            TypeMismatchError: If an item is neither the item type nor a mapping
            UniqueError: If an item repeats a primary key value
        """
        for value in values:
            self[None] = value
        return self

    def __setitem__(self, key: Any, value: Any) -> None:
        item = self._coerce(value)
        if key is None:
            self._insert(item)
        else:
            self._items[key] = item
            self._renumber()
        self._reindex()

    def __getitem__(self, key: Any) -> Any:
        return self._items[key]

    def __delitem__(self, key: Any) -> None:
        if key not in self._items:
            raise KeyError(key)
        self.forget(key)

    def forget(self, key: Any) -> "DocumentCollection":
        """Remove an item by key. Positional collections renumber."""
        self._items.pop(key, None)
        self._renumber()
        self._reindex()
        return self

    # Lookup

    def find(self, value: Any) -> Any:
        """
        Get an item by primary key value, or None.

        Raises:
            ConfigurationError: If no primary key has been set
        """
        if self._primary_key is None:
            raise ConfigurationError("Cannot use find until primary key has been set.")
        return self._items.get(value)

    def find_or_fail(self, value: Any) -> Any:
        """
        Get an item by primary key value.

        Raises:
            NotFoundError: If there is no such item
        """
        found = self.find(value)
        if found is None:
            raise NotFoundError(friendly_class_name(self._document_type or type(self)), value)
        return found

    def all(self) -> list[Any]:
        return list(self._items.values())

    def keys(self) -> list[Any]:
        return list(self._items.keys())

    def first(self, default: Any = None) -> Any:
        return next(iter(self._items.values()), default)

    def last(self, default: Any = None) -> Any:
        if not self._items:
            return default
        return list(self._items.values())[-1]

    def count(self) -> int:
        return len(self._items)

    def is_empty(self) -> bool:
        return not self._items

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Any]:
        return iter(list(self._items.values()))

    def __contains__(self, key: object) -> bool:
        return key in self._items

    # Derived views. These are not linked; saving one raises NotLinkedError.

    def _derive(self, items: Iterable[Any]) -> "DocumentCollection":
        derived = type(self)(document_type=self._document_type, primary_key=self._primary_key)
        for item in items:
            derived._insert(item)
        return derived

    def where(self, name: str, value: Any) -> "DocumentCollection":
        return self._derive(item for item in self._items.values() if item.get_attribute(name) == value)

    def filter(self, predicate: Callable[[Any], bool]) -> "DocumentCollection":
        return self._derive(item for item in self._items.values() if predicate(item))

    def sort_by(self, key: str | Callable[[Any], Any], reverse: bool = False) -> "DocumentCollection":
        """
        Sorted copy, by attribute name or key function.

        Items missing the attribute sort last.
        """
        if callable(key):
            ordered = sorted(self._items.values(), key=key, reverse=reverse)
        else:
            present = [item for item in self._items.values() if item.get_attribute(key) is not None]
            missing = [item for item in self._items.values() if item.get_attribute(key) is None]
            ordered = sorted(present, key=lambda item: item.get_attribute(key), reverse=reverse) + missing
        return self._derive(ordered)

    # Serialization

    def to_list(self) -> list[Any]:
        """Items serialized in order. Keyed collections serialize the same way."""
        return [item.to_dict() for item in self._items.values()]

    def to_json(self, **kwargs: Any) -> str:
        return encode(self.to_list(), **kwargs)

    def __repr__(self) -> str:
        type_name = self._document_type.__name__ if self._document_type else None
        return f"<{type(self).__name__}[{type_name}]({self.to_list()!r})>"

    # Linked data and lifecycle

    def validate_or_throw(self) -> bool:
        """
        Validate every item against the item type's SCHEMA.

        Errors are keyed by position, e.g. ``"1.vin"``.

        Raises:
            ConfigurationError: If no type has been set
            ValidationError: If any item is invalid
        """
        document_type = self._require_type(
            "Can't validate a DocumentCollection until type has been set."
        )
        if document_type.SCHEMA is None:
            return True
        from docolink.validation import get_validator

        return get_validator().validate_collection_or_throw(
            self.to_list(),
            document_type.SCHEMA,
            f"{friendly_class_name(self)} contains invalid data!",
        )

    def set_linked_data(self) -> None:
        """
        Validate, then write the item list into the host.

        Raises:
            NotLinkedError: If not linked
            ValidationError: If any item is invalid
        """
        self._ensure_linked()
        if self._document_type is not None:
            self.validate_or_throw()
        self._write_linked_data(self.to_list())

    def pre_save(self) -> bool:
        """Run every item's pre-save, stopping at the first veto."""
        return all(item.pre_save() for item in list(self._items.values()))

    def post_save(self) -> None:
        for item in list(self._items.values()):
            item.post_save()

    def save(self) -> bool:
        """
        Save every item through the host, up to the persistence root.

        Returns:
            The root's result, or False if an item vetoed

        Raises:
            NotLinkedError: If not linked
        """
        self._ensure_linked()
        if not self.pre_save():
            logger.debug("Save of %s vetoed", type(self).__name__)
            return False

        self.set_linked_data()
        saved = bool(self._upstream.save())

        if saved:
            self.post_save()
        return saved
