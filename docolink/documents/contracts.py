"""Capability interfaces for documents, collections and persistence roots."""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class PersistenceRoot(Protocol):
    """Anything a document can be linked into.

    The outermost host of a document graph (e.g. a database record) and every
    intermediate document satisfy this.
    """

    def save(self) -> bool:
        ...

    def __getitem__(self, attribute: str) -> Any:
        ...

    def __setitem__(self, attribute: str, value: Any) -> None:
        ...


@runtime_checkable
class Linkable(Protocol):
    """Objects that persist into a (host, attribute, sub key) location."""

    def link(self, host: Any, attribute: str, sub_key: str | None = None) -> Any:
        ...

    def is_linked(self) -> bool:
        ...

    def get_linked_data(self) -> Any:
        ...

    def set_linked_data(self) -> None:
        ...


@runtime_checkable
class CascadesEvents(Protocol):
    """Objects that can run their own and their children's save hooks.

    ``pre_save`` returns False if any hook vetoed; callers must then halt.
    """

    def pre_save(self) -> bool:
        ...

    def post_save(self) -> None:
        ...


class NullWhenEmpty:
    """Mixin for documents that read as None on their parent when empty.

    Makes truthy checks natural for attributes that are usually absent::

        if vehicle.reservation:
            ...

    Such documents are expected to be assigned whole
    (``vehicle.reservation = {"message": "hold it"}``); building one up field
    by field through the parent doesn't work while it is still empty.
    """

    def null_when_used_as_attribute(self) -> bool:
        return self.is_empty()
