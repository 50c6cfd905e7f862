"""
Generic keyed registry for pluggable automation components.

Executors, actions and trigger components are all looked up by a string key.
This module provides the shared keyed store they are kept in, plus the
event registry that records which events each trigger component exposes.

Features:
- Register by ``item.key`` (last writer wins, overwrite is logged)
- Unregister, lookup, membership and listing helpers
- Never raises on any operation (plugins may load in any order)
"""

from __future__ import annotations

import logging
from typing import Generic, Protocol, TypeVar

from .schema import EventDefinition

logger = logging.getLogger(__name__)


class Keyed(Protocol):
    """Anything that carries a registry key."""

    @property
    def key(self) -> str: ...


T = TypeVar("T", bound=Keyed)


class Registry(Generic[T]):  # noqa: UP046
    """
    Keyed store for pluggable components.

    Items are stored by their ``key`` attribute. Registering a second item
    with an existing key replaces the first one and logs a warning instead of
    raising, so registration order between plugins never crashes the system.

    Listing order is not part of the contract.

    Example:
        registry: Registry[AutomationExecutor] = Registry("executor")
        registry.register(EchoExecutor())
        registry.get("echo")  # EchoExecutor instance
        registry.get("missing")  # None
    """

    def __init__(self, kind: str = "item") -> None:
        """
        Initialize empty registry.

        Args:
            kind: Human-readable component kind used in log messages
        """
        self.kind = kind
        self._items: dict[str, T] = {}

    def register(self, item: T) -> None:
        """
        Register an item under its key, replacing any previous item.

        Args:
            item: Component to register
        """
        if item.key in self._items:
            logger.warning(f"{self.kind.capitalize()} '{item.key}' already registered, overwriting")
        self._items[item.key] = item
        logger.debug(f"Registered {self.kind}: {item.key}")

    def unregister(self, key: str) -> None:
        """Remove an item by key (missing keys are ignored)."""
        if self._items.pop(key, None) is not None:
            logger.debug(f"Unregistered {self.kind}: {key}")

    def get(self, key: str) -> T | None:
        """
        Get item by key.

        Args:
            key: Registry key

        Returns:
            The registered item, or None if not registered
        """
        return self._items.get(key)

    def get_all(self) -> list[T]:
        """Return all registered items."""
        return list(self._items.values())

    def has(self, key: str) -> bool:
        """Check whether a key is registered."""
        return key in self._items

    def keys(self) -> list[str]:
        """Return all registered keys."""
        return list(self._items.keys())

    def clear(self) -> None:
        """
        Remove all items.

        This is primarily useful for testing to reset registry state.
        """
        count = len(self._items)
        self._items.clear()
        logger.debug(f"Cleared {count} {self.kind} entries")

    def size(self) -> int:
        """Return number of registered items."""
        return len(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, key: object) -> bool:
        return key in self._items

    def __repr__(self) -> str:
        return f"<Registry[{self.kind}]: {len(self._items)} entries>"


class EventRegistry:
    """
    Registry of the events each trigger component supports.

    Components (buttons, text fields, selects, ...) declare the events an
    automation can be bound to. The configuration UI reads this to offer the
    list of bindable events per component.

    Example:
        events = EventRegistry()
        events.register("Button", [EventDefinition(key="onClick", label="Click")])
        events.get_events("Button")  # [EventDefinition(key="onClick", ...)]
    """

    def __init__(self) -> None:
        self._events: dict[str, list[EventDefinition]] = {}

    def register(self, component_name: str, events: list[EventDefinition]) -> None:
        """Register (or replace) the event list for a component."""
        if component_name in self._events:
            logger.warning(
                f"Events for component '{component_name}' already registered, overwriting"
            )
        self._events[component_name] = list(events)

    def get_events(self, component_name: str) -> list[EventDefinition]:
        """Return the events for a component (empty list if unknown)."""
        return list(self._events.get(component_name, []))

    def has_events(self, component_name: str) -> bool:
        """Check whether a component has at least one registered event."""
        return bool(self._events.get(component_name))

    def get_all_components(self) -> list[str]:
        """Return all component names with registered events."""
        return list(self._events.keys())

    def clear(self) -> None:
        """Remove all registered component events."""
        self._events.clear()
