"""Tests for the keyed registries and the manager facade."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import pytest

from automation_engine.engine import EventDefinition, EventRegistry, Registry, TriggerComponent
from automation_engine.engine.manager import AutomationManager


@dataclass
class Item:
    key: str
    value: int = 0


class TestRegistry:
    """Keyed store semantics."""

    def test_register_and_get(self) -> None:
        registry: Registry[Item] = Registry("item")
        registry.register(Item("a", 1))

        assert registry.get("a") == Item("a", 1)
        assert registry.has("a")
        assert "a" in registry
        assert registry.size() == 1
        assert len(registry) == 1

    def test_get_missing_returns_none(self) -> None:
        registry: Registry[Item] = Registry()
        assert registry.get("missing") is None
        assert not registry.has("missing")

    def test_register_overwrites_and_logs(self, caplog: pytest.LogCaptureFixture) -> None:
        """Last writer wins; the overwrite is a warning, not an error."""
        registry: Registry[Item] = Registry("executor")
        registry.register(Item("a", 1))

        with caplog.at_level(logging.WARNING):
            registry.register(Item("a", 2))

        assert registry.get("a") == Item("a", 2)
        assert registry.size() == 1
        assert "already registered" in caplog.text

    def test_unregister_missing_is_noop(self) -> None:
        registry: Registry[Item] = Registry()
        registry.register(Item("a"))

        registry.unregister("missing")
        registry.unregister("a")

        assert registry.size() == 0

    def test_get_all_and_keys(self) -> None:
        registry: Registry[Item] = Registry()
        for key in ("x", "y", "z"):
            registry.register(Item(key))

        assert sorted(registry.keys()) == ["x", "y", "z"]
        assert sorted(item.key for item in registry.get_all()) == ["x", "y", "z"]

    def test_clear(self) -> None:
        registry: Registry[Item] = Registry()
        registry.register(Item("a"))
        registry.clear()
        assert registry.get_all() == []


class TestEventRegistry:
    """Events per trigger component."""

    def test_register_and_lookup(self) -> None:
        events = EventRegistry()
        click = EventDefinition(key="onClick", label="Click")
        events.register("Button", [click])

        assert events.get_events("Button") == [click]
        assert events.has_events("Button")
        assert events.get_all_components() == ["Button"]

    def test_unknown_component(self) -> None:
        events = EventRegistry()
        assert events.get_events("Nope") == []
        assert not events.has_events("Nope")

    def test_empty_event_list_has_no_events(self) -> None:
        events = EventRegistry()
        events.register("Static", [])
        assert not events.has_events("Static")

    def test_clear(self) -> None:
        events = EventRegistry()
        events.register("Button", [EventDefinition(key="onClick", label="Click")])
        events.clear()
        assert events.get_all_components() == []


class TestAutomationManager:
    """Manager facade over the registries."""

    def test_default_manager_registers_builtins(self, manager: AutomationManager) -> None:
        status = manager.get_status()

        assert sorted(status["executors"]["keys"]) == [
            "data-query",
            "echo",
            "http",
            "parameter-builder",
            "script",
        ]
        assert sorted(status["actions"]["keys"]) == [
            "clipboard-write",
            "console",
            "form-value-setter",
            "message",
            "modal",
            "open_link",
            "popover",
        ]
        assert status["triggers"]["total"] == 4

    def test_register_trigger_records_events(self) -> None:
        manager = AutomationManager()
        hover = EventDefinition(key="onMouseEnter", label="Hover")
        manager.register_trigger(
            TriggerComponent(key="Card", display_name="Card", supported_events=[hover])
        )

        assert manager.triggers.has("Card")
        assert manager.events.get_events("Card") == [hover]

        manager.unregister_trigger("Card")
        assert not manager.triggers.has("Card")

    def test_table_action_supports_hover(self, manager: AutomationManager) -> None:
        keys = [event.key for event in manager.events.get_events("TableOpAction")]
        assert keys == ["onClick", "onMouseEnter"]
