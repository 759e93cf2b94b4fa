"""Linked attribute declarations and their runtime resolution.

A class that hosts child documents declares them in ``LINKED_ATTRIBUTES``::

    class Person(Document):
        LINKED_ATTRIBUTES = {
            # name: (document type, host attribute)
            "address": (Address, "address"),
            # name: (document type, host attribute, sub key)
            "employer": (Company, "relations", "employer"),
            # name: (document type, host attribute, sub key, is collection, primary key)
            "vehicles": (Vehicle, "vehicles", None, DocumentCollection.IS_A, "vin"),
        }

The document type may also be given as a class name string, resolved in the
declaring class's module, or as a dotted import path. That allows forward and
self references.
"""

import copy
import importlib
import logging
import sys
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, ClassVar

from docolink.documents.contracts import CascadesEvents
from docolink.exceptions import ConfigurationError, TypeMismatchError
from docolink.helpers.json import canonicalize, encode, plain
from docolink.helpers.paths import data_forget, data_get

logger = logging.getLogger(__name__)


def _resolve_type(owner: type, name: str, reference: Any) -> Any:
    if not isinstance(reference, str):
        return reference
    if "." in reference:
        module_name, _, class_name = reference.rpartition(".")
        try:
            module = importlib.import_module(module_name)
        except ImportError as e:
            raise ConfigurationError(
                f"LINKED_ATTRIBUTES in {owner.__name__} for {name}: can't import {module_name}"
            ) from e
    else:
        module = sys.modules.get(owner.__module__)
        class_name = reference
    resolved = getattr(module, class_name, None)
    if resolved is None:
        raise ConfigurationError(
            f"LINKED_ATTRIBUTES in {owner.__name__} for {name}: unknown type {reference}"
        )
    return resolved


@dataclass(frozen=True)
class LinkedAttributeConfig:
    """Normalized declaration of one linked attribute."""

    document_type: type
    attribute: str
    sub_key: str | None = None
    is_collection: bool = False
    primary_key: str | None = None

    @classmethod
    def from_declaration(cls, owner: type, name: str, declaration: Any) -> "LinkedAttributeConfig":
        """
        Normalize a 2 to 5 element declaration, filling in defaults.

        Args:
            owner: Class that declared it (used in error messages)
            name: Linked attribute name
            declaration: The tuple or list from LINKED_ATTRIBUTES

        Returns:
            LinkedAttributeConfig

        Raises:
            ConfigurationError: If the declaration is unusable
        """
        if not isinstance(declaration, (list, tuple)) or not 2 <= len(declaration) <= 5:
            raise ConfigurationError(f"Unusable LINKED_ATTRIBUTES in {owner.__name__} for {name}")
        document_type, attribute, sub_key, is_collection, primary_key = (
            list(declaration) + [None] * (5 - len(declaration))
        )

        from docolink.documents.document import Document

        document_type = _resolve_type(owner, name, document_type)
        if not (isinstance(document_type, type) and issubclass(document_type, Document)):
            raise ConfigurationError(
                f"LINKED_ATTRIBUTES in {owner.__name__} for {name} must name a Document subclass"
            )
        if not isinstance(attribute, str) or not attribute:
            raise ConfigurationError(
                f"LINKED_ATTRIBUTES in {owner.__name__} for {name} must name a host attribute"
            )
        return cls(
            document_type=document_type,
            attribute=attribute,
            sub_key=None if sub_key is None else str(sub_key),
            is_collection=bool(is_collection),
            primary_key=primary_key,
        )


class LinkedAttributeRegistry:
    """Resolves attribute names to linked attribute configs, per class.

    Declarations are normalized the first time each name is used and then
    served from a plain dict.
    """

    def __init__(self):
        self._resolved: dict[type, dict[str, LinkedAttributeConfig]] = {}

    @staticmethod
    def declarations(owner: type) -> Mapping[str, Any]:
        declared = getattr(owner, "LINKED_ATTRIBUTES", None)
        if declared is None:
            return {}
        if not isinstance(declared, Mapping):
            raise ConfigurationError(f"{owner.__name__} must define a mapping for LINKED_ATTRIBUTES")
        return declared

    def resolve(self, owner: type, name: str) -> LinkedAttributeConfig | None:
        """
        Get the config for a name, or None if it isn't a linked attribute.

        Raises:
            ConfigurationError: If the declaration is malformed
        """
        resolved = self._resolved.setdefault(owner, {})
        config = resolved.get(name)
        if config is not None:
            return config
        declared = self.declarations(owner)
        if name not in declared:
            return None
        config = LinkedAttributeConfig.from_declaration(owner, name, declared[name])
        resolved[name] = config
        return config

    def names(self, owner: type) -> list[str]:
        return list(self.declarations(owner).keys())

    def forget(self, owner: type) -> None:
        self._resolved.pop(owner, None)

    def clear(self) -> None:
        self._resolved.clear()


# Global registry instance
_registry: LinkedAttributeRegistry | None = None


def get_registry() -> LinkedAttributeRegistry:
    """Get or create the global linked attribute registry."""
    global _registry
    if _registry is None:
        _registry = LinkedAttributeRegistry()
    return _registry


def reset_registry() -> None:
    """Reset the global registry (useful for testing)."""
    global _registry
    _registry = None


class LinkedAttributesMixin:
    """Hydrate, cache, assign and cascade linked attributes.

    Hosts provide raw storage through ``_raw_get``, ``_raw_set``,
    ``_raw_forget`` and ``_raw_original``. Child documents read and write the
    host through item access (``host[attribute]``), never through the linked
    attribute names.
    """

    LINKED_ATTRIBUTES: ClassVar[Mapping[str, Any]] = {}

    @property
    def _attribute_cache(self) -> dict[str, Any]:
        # Stored in __dict__ directly; mapped records skip __init__ on load
        cache = self.__dict__.get("_linked_attribute_cache")
        if cache is None:
            cache = {}
            self.__dict__["_linked_attribute_cache"] = cache
        return cache

    @classmethod
    def linked_attribute_config(cls, name: str) -> LinkedAttributeConfig | None:
        return get_registry().resolve(cls, name)

    @classmethod
    def linked_attribute_names(cls) -> list[str]:
        return get_registry().names(cls)

    def has_linked_attributes(self) -> bool:
        return bool(self.linked_attribute_names())

    def _require_linked_attribute(self, name: str) -> LinkedAttributeConfig:
        config = self.linked_attribute_config(name)
        if config is None:
            raise TypeMismatchError(f"{name} must be a linked attribute", name)
        return config

    def get_linked_attribute(self, name: str, config: LinkedAttributeConfig) -> Any:
        """
        Return the cached child, or hydrate it from this host's raw data.

        Documents whose type reads as null when empty are returned as None
        and not cached.
        """
        cache = self._attribute_cache
        if name in cache:
            return cache[name]

        if config.is_collection:
            collection = (
                config.document_type.new_collection()
                .set_primary_key(config.primary_key)
                .link(self, config.attribute, config.sub_key)
                .fresh()
            )
            cache[name] = collection
            return collection

        child = config.document_type(self, config.attribute, config.sub_key)
        if child.null_when_used_as_attribute():
            return None
        cache[name] = child
        return child

    def set_linked_attribute(self, name: str, config: LinkedAttributeConfig, value: Any) -> None:
        """
        Assign a linked attribute and write it through to this host.

        Single documents accept an instance of the declared type or a mapping
        to build one from. Collections accept any iterable of items or
        mappings; each goes through the collection's push.

        Raises:
            TypeMismatchError: If the value has the wrong shape
            UniqueError: If collection items repeat a primary key
        """
        if not config.is_collection:
            if isinstance(value, Mapping):
                value = config.document_type(dict(value))
            if not isinstance(value, config.document_type):
                raise TypeMismatchError(
                    f"{name} must be a {config.document_type.__name__} or valid mapping", name
                )
            value.link(self, config.attribute, config.sub_key)
            value.pre_save()
            value.set_linked_data()
            self._attribute_cache[name] = value
            return

        if isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
            raise TypeMismatchError(f"{name} must be iterable", name)
        if isinstance(value, Mapping):
            value = value.values()
        collection = (
            config.document_type.new_collection()
            .set_primary_key(config.primary_key)
            .link(self, config.attribute, config.sub_key)
        )
        for each in value:
            collection.push(each)
        collection.set_linked_data()
        self._attribute_cache[name] = collection

    def unset_linked_attribute(self, name: str, config: LinkedAttributeConfig) -> None:
        """Forget the cached child and remove its data from this host."""
        self._attribute_cache.pop(name, None)
        if config.sub_key is None:
            self._raw_forget(config.attribute)
            return
        whole = copy.deepcopy(self._raw_get(config.attribute))
        if isinstance(whole, (dict, list)):
            data_forget(whole, config.sub_key)
            self._raw_set(config.attribute, whole)

    def isset_linked_attribute(self, name: str, config: LinkedAttributeConfig) -> bool:
        value = self.get_linked_attribute(name, config)
        return value is not None and not value.is_empty()

    def with_linked_attributes(self, names: Iterable[str]):
        """
        Forget every cached child, then hydrate exactly the given ones.

        Useful right before serializing, like eager loading a relationship.

        Returns:
            self (for chaining)
        """
        self.empty_linked_attribute_cache()
        for name in names:
            self.get_linked_attribute(name, self._require_linked_attribute(name))
        return self

    def empty_linked_attribute_cache(self) -> None:
        self._attribute_cache.clear()

    def hydrate_all_linked_attributes(self) -> None:
        for name in self.linked_attribute_names():
            self.get_linked_attribute(name, self.linked_attribute_config(name))

    def is_linked_attribute_dirty(self, name: str) -> bool:
        """
        Does the child hold changes its host hasn't saved?

        Compares the child's serialization with the host's original data at
        the child's location, canonically. Empty objects count as absent.
        """
        config = self._require_linked_attribute(name)
        according_to_child = plain(self.get_linked_attribute(name, config))
        according_to_host = data_get(self._raw_original(config.attribute), config.sub_key)
        if according_to_child == {}:
            according_to_child = None
        if according_to_host == {}:
            according_to_host = None
        return canonicalize(encode(according_to_child)) != canonicalize(encode(according_to_host))

    def push_linked_children(self) -> None:
        """Ask every cached child to write its state into this host."""
        for child in list(self._attribute_cache.values()):
            child.set_linked_data()

    def cascade_pre_save(self) -> bool:
        """Run pre-save hooks on cached children, stopping at the first veto."""
        for name, child in list(self._attribute_cache.items()):
            if isinstance(child, CascadesEvents) and not child.pre_save():
                logger.debug("%s.%s vetoed save", type(self).__name__, name)
                return False
        return True

    def cascade_post_save(self) -> None:
        for child in list(self._attribute_cache.values()):
            if isinstance(child, CascadesEvents):
                child.post_save()
