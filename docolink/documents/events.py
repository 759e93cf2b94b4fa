"""Lifecycle hooks for documents and records.

Listeners are registered per concrete class for one of the lifecycle events
and fired by the instance. A listener returning literal ``False`` from a
halting event (``creating``, ``saving``, ``deleting``) vetoes the operation.
"""

import logging
from collections import defaultdict
from typing import Any, Callable, ClassVar

logger = logging.getLogger(__name__)

EVENTS = ("creating", "created", "saving", "saved", "deleting", "deleted")

Listener = Callable[[Any], Any]


class HookRegistry:
    """Listener table and booted-class bookkeeping for one process."""

    def __init__(self):
        self._listeners: dict[type, dict[str, list[Listener]]] = defaultdict(
            lambda: defaultdict(list)
        )
        self._booted: set[type] = set()

    def listen(self, owner: type, event: str, callback: Listener) -> None:
        """
        Register a listener.

        Args:
            owner: Class whose instances fire the event
            event: One of EVENTS
            callback: Called with the instance

        Raises:
            ValueError: If the event name is unknown
        """
        if event not in EVENTS:
            raise ValueError(f"Unknown lifecycle event '{event}'")
        self._listeners[owner][event].append(callback)

    def listeners(self, owner: type, event: str) -> list[Listener]:
        return list(self._listeners.get(owner, {}).get(event, []))

    def fire(self, instance: Any, event: str, halt: bool = True) -> bool:
        """
        Call every listener for the instance's class, in registration order.

        Args:
            instance: The document or record the event is about
            event: Event name
            halt: Stop at the first listener that returns literal False

        Returns:
            False if a listener vetoed (only when halting), otherwise True
        """
        for callback in self.listeners(type(instance), event):
            if callback(instance) is False and halt:
                logger.debug("%s listener vetoed %s", event, type(instance).__name__)
                return False
        return True

    def boot_if_not_booted(self, owner: type) -> None:
        """Run ``owner.boot()`` the first time the class is used."""
        if owner in self._booted:
            return
        self._booted.add(owner)
        boot = getattr(owner, "boot", None)
        if boot is not None:
            boot()

    def is_booted(self, owner: type) -> bool:
        return owner in self._booted

    def forget(self, owner: type) -> None:
        """Drop listeners and boot state for one class."""
        self._listeners.pop(owner, None)
        self._booted.discard(owner)

    def clear(self) -> None:
        """Drop every listener and boot state so classes boot again."""
        self._listeners.clear()
        self._booted.clear()


# Global hook registry instance
_hooks: HookRegistry | None = None


def get_hooks() -> HookRegistry:
    """Get or create the global hook registry."""
    global _hooks
    if _hooks is None:
        _hooks = HookRegistry()
    return _hooks


def set_hooks(registry: HookRegistry) -> None:
    """Install a specific hook registry (e.g. one per application)."""
    global _hooks
    _hooks = registry


def reset_hooks() -> None:
    """Reset the global hook registry (useful for testing)."""
    global _hooks
    _hooks = None


class HasHooks:
    """Lifecycle hook support for a class.

    Subclasses register listeners in ``boot``::

        class Person(Document):
            @classmethod
            def boot(cls):
                cls.on_saving(lambda person: person.email is not None)
                super().boot()

    A class may also pin its own registry with ``hook_registry``.
    """

    hook_registry: ClassVar[HookRegistry | None] = None

    @classmethod
    def hooks(cls) -> HookRegistry:
        return cls.hook_registry or get_hooks()

    @classmethod
    def boot(cls) -> None:
        """Register listeners. Runs once per class, before first use."""
        pass

    @classmethod
    def boot_if_not_booted(cls) -> None:
        cls.hooks().boot_if_not_booted(cls)

    @classmethod
    def listen(cls, event: str, callback: Listener) -> None:
        cls.hooks().listen(cls, event, callback)

    @classmethod
    def on_creating(cls, callback: Listener) -> None:
        cls.hooks().listen(cls, "creating", callback)

    @classmethod
    def on_created(cls, callback: Listener) -> None:
        cls.hooks().listen(cls, "created", callback)

    @classmethod
    def on_saving(cls, callback: Listener) -> None:
        cls.hooks().listen(cls, "saving", callback)

    @classmethod
    def on_saved(cls, callback: Listener) -> None:
        cls.hooks().listen(cls, "saved", callback)

    @classmethod
    def on_deleting(cls, callback: Listener) -> None:
        cls.hooks().listen(cls, "deleting", callback)

    @classmethod
    def on_deleted(cls, callback: Listener) -> None:
        cls.hooks().listen(cls, "deleted", callback)

    def fire_hook(self, event: str, halt: bool = True) -> bool:
        """Fire a lifecycle event for this instance."""
        self.boot_if_not_booted()
        return self.hooks().fire(self, event, halt=halt)
