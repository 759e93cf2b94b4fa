"""Documents, collections and the linked attribute graph."""

from docolink.documents.attributes import AttributeStore, CastsAttributes
from docolink.documents.collection import DocumentCollection
from docolink.documents.contracts import CascadesEvents, Linkable, NullWhenEmpty, PersistenceRoot
from docolink.documents.document import Document
from docolink.documents.events import EVENTS, HasHooks, HookRegistry, get_hooks, reset_hooks, set_hooks
from docolink.documents.registry import (
    LinkedAttributeConfig,
    LinkedAttributeRegistry,
    LinkedAttributesMixin,
    get_registry,
    reset_registry,
)

__all__ = [
    "AttributeStore",
    "CastsAttributes",
    "CascadesEvents",
    "Document",
    "DocumentCollection",
    "EVENTS",
    "HasHooks",
    "HookRegistry",
    "LinkedAttributeConfig",
    "LinkedAttributeRegistry",
    "LinkedAttributesMixin",
    "Linkable",
    "NullWhenEmpty",
    "PersistenceRoot",
    "get_hooks",
    "get_registry",
    "reset_hooks",
    "reset_registry",
    "set_hooks",
]
