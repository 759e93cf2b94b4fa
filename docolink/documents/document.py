"""Document: an ORM-style object persisted into a slice of its host's data.

A document is either transient (built from a mapping, serializable but not
saveable) or linked to ``(host, attribute, sub_key)``. A linked document reads
its data from the host when built or refreshed, keeps local changes to
itself, and only writes them to the host on ``save()``. The host's own
``save()`` then carries them up, one link at a time, to the persistence root.
"""

import copy
import logging
from collections.abc import Iterator, Mapping
from typing import Any, ClassVar

from docolink.documents.attributes import AttributeStore
from docolink.documents.contracts import PersistenceRoot
from docolink.documents.events import HasHooks
from docolink.documents.linking import LinkedDataMixin
from docolink.documents.registry import LinkedAttributesMixin
from docolink.exceptions import (
    RecursivePropertyError,
    TypeMismatchError,
    ValidationError,
)
from docolink.helpers.json import encode, mugglify, plain
from docolink.helpers.names import friendly_class_name
from docolink.helpers.paths import data_forget, data_set

logger = logging.getLogger(__name__)


class Document(LinkedDataMixin, LinkedAttributesMixin, HasHooks):
    """Base class for documents.

    Subclasses declare:

    - ``CASTS``: attribute name to cast (see ``AttributeStore``)
    - ``LINKED_ATTRIBUTES``: child documents and collections (see
      ``docolink.documents.registry``)
    - ``SCHEMA``: JSON Schema checked before every write to the host, as a
      path under the schema directory, inline JSON text, or a dict

    Attribute access goes through the linked-attribute layer
    (``doc.address``), item access goes straight to the attribute store
    (``doc["address"]``).
    """

    SCHEMA: ClassVar[Any] = None
    CASTS: ClassVar[Mapping[str, Any]] = {}

    exists: bool = False

    def __init__(self, *params: Any):
        """
        Build a document.

        Document() or Document(mapping): transient.
        Document(host, attribute[, sub_key]): linked, loaded from the host.

        Raises:
            TypeMismatchError: For any other call shape
        """
        self._attributes = AttributeStore(self.CASTS)
        self.exists = False
        self.boot_if_not_booted()

        if not params or (len(params) == 1 and isinstance(params[0], Mapping)):
            self._attributes.sync_original()
            if params:
                self.fill(params[0])
        elif self._is_link_signature(params):
            self.link(*params)
            self.fresh()
        else:
            raise TypeMismatchError(f"{type(self).__name__} couldn't understand the construct signature")

        if self.has_linked_attributes():
            self.hydrate_all_linked_attributes()

    @staticmethod
    def _is_link_signature(params: tuple) -> bool:
        if not 2 <= len(params) <= 3:
            return False
        if not isinstance(params[0], PersistenceRoot) or not isinstance(params[1], str):
            return False
        return len(params) == 2 or params[2] is None or isinstance(params[2], (str, int))

    # Attribute protocol

    def __getattr__(self, name: str) -> Any:
        # Only called when normal lookup fails
        if name.startswith("_"):
            raise AttributeError(name)
        return self.get_attribute(name)

    def __setattr__(self, name: str, value: Any) -> None:
        if name.startswith("_") or hasattr(type(self), name):
            object.__setattr__(self, name, value)
        else:
            self.set_attribute(name, value)

    def __delattr__(self, name: str) -> None:
        if name.startswith("_") or name in self.__dict__:
            object.__delattr__(self, name)
        else:
            self.unset_attribute(name)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.is_set(name)

    def __iter__(self) -> Iterator[str]:
        """Stored attribute names."""
        return iter(self._attributes.keys())

    def __getitem__(self, name: str) -> Any:
        return self._attributes.get(name)

    def __setitem__(self, name: str, value: Any) -> None:
        self._attributes.set(name, value)

    def __delitem__(self, name: str) -> None:
        self._attributes.forget(name)

    def _raw_get(self, name: str) -> Any:
        return self._attributes.get_raw(name)

    def _raw_set(self, name: str, value: Any) -> None:
        self._attributes.set(name, value)

    def _raw_forget(self, name: str) -> None:
        self._attributes.forget(name)

    def _raw_original(self, name: str) -> Any:
        return self._attributes.get_original(name)

    def get_attribute(self, name: str) -> Any:
        config = self.linked_attribute_config(name)
        if config is not None:
            return self.get_linked_attribute(name, config)
        return self._attributes.get(name)

    def set_attribute(self, name: str, value: Any) -> None:
        """
        Set an attribute locally. Linked attributes also write through to
        this document's store, never further up.

        Raises:
            RecursivePropertyError: If value is this document
            TypeMismatchError: If a linked attribute gets the wrong shape
        """
        if value is self:
            raise RecursivePropertyError(name)
        config = self.linked_attribute_config(name)
        if config is not None:
            self.set_linked_attribute(name, config, value)
        else:
            self._attributes.set(name, value)

    def unset_attribute(self, name: str) -> None:
        config = self.linked_attribute_config(name)
        if config is not None:
            self.unset_linked_attribute(name, config)
        else:
            self._attributes.forget(name)

    def is_set(self, name: str) -> bool:
        config = self.linked_attribute_config(name)
        if config is not None:
            return self.isset_linked_attribute(name, config)
        return self._attributes.get(name) is not None

    def get_original(self, name: str | None = None, default: Any = None) -> Any:
        if name is None:
            return copy.deepcopy(self._attributes.original)
        return self._attributes.get_original(name, default)

    def get_dirty(self) -> dict[str, Any]:
        return self._attributes.get_dirty()

    def is_dirty(self, *names: str) -> bool:
        return self._attributes.is_dirty(*names)

    # Loading

    def fresh(self) -> "Document":
        """
        Reload this document's attributes from its link.

        Returns:
            self (for chaining)

        Raises:
            NotLinkedError: If not linked
        """
        self.empty_linked_attribute_cache()
        linked_data = self.get_linked_data()
        if isinstance(linked_data, Document):
            linked_data = linked_data.to_dict()
        self._attributes.clear()
        self.fill(copy.deepcopy(linked_data))
        # Loaded from nothing means new, so creating/created will fire
        self.exists = linked_data is not None
        self._attributes.sync_original()
        return self

    def fill(self, attributes: Mapping[str, Any] | None) -> "Document":
        """Put each value into the attribute store as is, casts applied."""
        if isinstance(attributes, Mapping):
            for key, value in attributes.items():
                self._attributes.set(str(key), value)
        return self

    # Serialization

    def is_empty(self) -> bool:
        """No local attributes and no non-empty cached children."""
        if len(self._attributes):
            return False
        return all(child.is_empty() for child in self._attribute_cache.values())

    def to_dict(self) -> dict[str, Any]:
        """
        Plain dict of this document, with cached children re-serialized over
        the stored values at their location. Children that serialize to
        ``{}`` are left out.
        """
        data = self._attributes.to_dict()
        for name, child in self._attribute_cache.items():
            config = self.linked_attribute_config(name)
            path = config.attribute if config.sub_key is None else f"{config.attribute}.{config.sub_key}"
            serialized = child.to_list() if hasattr(type(child), "to_list") else child.to_dict()
            if serialized == {}:
                data_forget(data, path)
            else:
                data_set(data, path, serialized)
        return data

    def to_json(self, **kwargs: Any) -> str:
        return encode(self.to_dict(), **kwargs)

    def mugglify(self) -> Any:
        """This document as plain JSON primitives, decoupled from every object."""
        return mugglify(self)

    def __repr__(self) -> str:
        return f"<{type(self).__name__}({self.to_dict()!r})>"

    # Linked data

    def set_linked_data(self) -> None:
        """
        Write this document's serialization into its host.

        Cached children push their own state into this document first, then
        this document validates against its SCHEMA.

        Raises:
            NotLinkedError: If not linked
            ValidationError: If the document is invalid
        """
        self._ensure_linked()
        self.push_linked_children()
        if self.SCHEMA is not None:
            self.validate_or_throw()
        self._write_linked_data(self.to_dict())

    def validate_or_throw(self) -> bool:
        """
        Validate against SCHEMA.

        Returns:
            True

        Raises:
            ValidationError: With per-path messages if invalid
        """
        if self.SCHEMA is None:
            return True
        from docolink.validation import get_validator

        return get_validator().validate_or_throw(
            self.to_dict(),
            self.SCHEMA,
            f"{friendly_class_name(self)} contains invalid data!",
        )

    def is_valid(self) -> bool:
        try:
            return self.validate_or_throw()
        except ValidationError:
            return False

    # Lifecycle

    def pre_save(self) -> bool:
        """
        Fire creating (if new) and saving, then cascade to children.

        Returns:
            False if any listener vetoed, in which case callers must halt
        """
        if not self.exists and not self.fire_hook("creating"):
            return False
        if not self.fire_hook("saving"):
            return False
        return self.cascade_pre_save()

    def post_save(self) -> None:
        """Fire saved (and created if new), cascade, then re-snapshot."""
        self.fire_hook("saved", halt=False)
        if not self.exists:
            self.fire_hook("created", halt=False)
            self.exists = True
        self.cascade_post_save()
        self._attributes.sync_original()

    def save(self) -> bool:
        """
        Save over the link, all the way up to the persistence root.

        Returns:
            The root's result, or False if a listener vetoed

        Raises:
            NotLinkedError: If not linked
            ValidationError: If this document or a child is invalid
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

    def delete(self) -> bool:
        """
        Empty this document and write null over the link.

        Returns:
            The root's result, or False if a listener vetoed

        Raises:
            NotLinkedError: If not linked
        """
        self._ensure_linked()
        if not self.fire_hook("deleting"):
            return False

        self._attributes.clear()
        self.empty_linked_attribute_cache()
        self._write_linked_data(None)
        deleted = bool(self._upstream.save())

        if deleted:
            self.fire_hook("deleted", halt=False)
            self.exists = False
        return deleted

    def update(self, attributes: Mapping[str, Any]) -> bool:
        """Assign every attribute, then save."""
        for key, value in attributes.items():
            self.set_attribute(key, value)
        return self.save()

    def update_recursive(self, attributes: Mapping[str, Any], is_root: bool = True) -> None:
        """
        Update nested documents in place instead of replacing them, so
        fields the caller didn't mention survive. Only the outermost call
        saves.

        If a child document currently reads as None, the mapping is assigned
        as a whole instead.
        """
        for key, value in attributes.items():
            current = self.get_attribute(key)
            if isinstance(current, Document) and isinstance(value, Mapping):
                current.update_recursive(value, is_root=False)
            else:
                self.set_attribute(key, value)
        if is_root:
            self.save()

    def safe_update(self, attributes: Mapping[str, Any]) -> bool:
        """
        Apply each attribute on its own, keeping only those that validate.

        Each key is assumed to be independently valid. If two attributes must
        agree with each other, use ``update`` instead.

        Returns:
            The result of the final save
        """
        for key, value in attributes.items():
            was_set = self.is_set(key)
            previous = self.get_attribute(key)
            if previous is not None and self.linked_attribute_config(key) is not None:
                previous = plain(previous)
            self.set_attribute(key, value)
            try:
                self.validate_or_throw()
            except ValidationError as e:
                logger.debug("Rejected %s.%s: %s", type(self).__name__, key, e.errors)
                if was_set:
                    self.set_attribute(key, previous)
                else:
                    self.unset_attribute(key)
        return self.save()

    # Collections and policies

    @classmethod
    def new_collection(cls, items: Any = None):
        """A collection typed to this class. Override to use a collection subclass."""
        from docolink.documents.collection import DocumentCollection

        return DocumentCollection(items, document_type=cls)

    def null_when_used_as_attribute(self) -> bool:
        """Read as None on a parent instead of an empty instance? See NullWhenEmpty."""
        return False
