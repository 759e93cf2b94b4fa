"""Linking documents and collections into a location inside a host.

A link is the triple (host, attribute, sub key). The host is either a
persistence root or another document, the attribute names a key on the host,
and the optional sub key is a dotted path inside that attribute's value.
"""

import copy
import logging
from typing import Any

from docolink.exceptions import NotLinkedError
from docolink.helpers.paths import data_get, data_set, empty_container_for

logger = logging.getLogger(__name__)


class LinkedDataMixin:
    """Read and write this object's data over its link."""

    _upstream: Any = None
    _upstream_attribute: str | None = None
    _upstream_key: str | None = None

    def link(self, host: Any, attribute: str, sub_key: str | None = None):
        """
        Link to a location where this object's data lives.

        Args:
            host: Persistence root or document holding the data
            attribute: Attribute on the host
            sub_key: Optional dotted path inside the attribute's value

        Returns:
            self (for chaining)
        """
        self._upstream = host
        self._upstream_attribute = attribute
        self._upstream_key = None if sub_key is None else str(sub_key)
        return self

    def is_linked(self) -> bool:
        """Is there a host to load from and save to?"""
        return self._upstream is not None and bool(self._upstream_attribute)

    def get_link(self) -> tuple[Any, str | None, str | None]:
        return self._upstream, self._upstream_attribute, self._upstream_key

    def _ensure_linked(self) -> None:
        if not self.is_linked():
            raise NotLinkedError(f"{type(self).__name__} isn't linked")

    def get_linked_data(self) -> Any:
        """
        Read the current value at the link without touching local state.

        Returns:
            Typically a dict (a list for collections), or None if absent

        Raises:
            NotLinkedError: If not linked
        """
        self._ensure_linked()
        data = self._upstream[self._upstream_attribute]
        if self._upstream_key is not None:
            data = data_get(data, self._upstream_key)
        return data

    def _write_linked_data(self, value: Any) -> None:
        """Put a serialized value at the link, keeping sibling data intact."""
        self._ensure_linked()
        if self._upstream_key is not None:
            whole = copy.deepcopy(self._upstream[self._upstream_attribute])
            if not isinstance(whole, (dict, list)):
                whole = empty_container_for(self._upstream_key.split(".")[0])
            data_set(whole, self._upstream_key, value)
            value = whole
        logger.debug(
            "%s writing to %s[%r] (key %r)",
            type(self).__name__,
            type(self._upstream).__name__,
            self._upstream_attribute,
            self._upstream_key,
        )
        self._upstream[self._upstream_attribute] = value

    def get_ancestor_of_type(self, cls: type) -> Any:
        """
        Walk up the link chain for the nearest host of the given type.

        Args:
            cls: Class to look for

        Returns:
            The first matching host, or None
        """
        if not self.is_linked():
            return None
        if isinstance(self._upstream, cls):
            return self._upstream
        finder = getattr(type(self._upstream), "get_ancestor_of_type", None)
        if finder is None:
            return None
        return self._upstream.get_ancestor_of_type(cls)

    def is_linked_to_instance_of(self, cls: type) -> bool:
        return self.is_linked() and isinstance(self._upstream, cls)
