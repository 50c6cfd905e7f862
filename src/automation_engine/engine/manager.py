"""
Automation manager facade.

Plugins register triggers, executors and actions through one object; hosts
build runners from it. The manager only registers implementations; it never
runs a chain itself.

Example:
    manager = create_default_manager(host=LoggingUiHost())
    manager.executors.register(MyExecutor())
    runner = manager.create_runner(config, remote_client=service)
    await runner.trigger("onClick", {"id": 7})
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from .action_base import ActionRegistry
from .actions_form import FormValueSetterAction
from .actions_ui import (
    ClipboardWriteAction,
    ConsoleAction,
    MessageAction,
    ModalAction,
    OpenLinkAction,
    PopoverAction,
)
from .content import ContentRenderer
from .execution_context import FormHandle, RemoteClient
from .executor_base import ExecutorRegistry
from .executors_core import EchoExecutor, ScriptExecutor
from .executors_http import DataQueryExecutor, HttpRequestExecutor
from .executors_interactive import ParameterBuilderExecutor, ParameterCollector
from .orchestrator import AutomationRunner, Notifier
from .registry import EventRegistry, Registry
from .schema import AutomationConfig, EventDefinition, TriggerComponent
from .ui_host import LoggingUiHost, UiHost

logger = logging.getLogger(__name__)

CLICK = EventDefinition(key="onClick", label="On click", description="Fired when clicked")
MOUSE_ENTER = EventDefinition(
    key="onMouseEnter", label="On hover", description="Fired when the pointer enters"
)
CHANGE = EventDefinition(
    key="onChange", label="On change", description="Fired when the value changes"
)

BUILTIN_TRIGGERS = [
    TriggerComponent(key="GeneralAction", display_name="Action button", supported_events=[CLICK]),
    TriggerComponent(
        key="TableOpAction", display_name="Table row action", supported_events=[CLICK, MOUSE_ENTER]
    ),
    TriggerComponent(key="TextInput", display_name="Text input", supported_events=[CHANGE]),
    TriggerComponent(key="Select", display_name="Select", supported_events=[CHANGE]),
]


class AutomationManager:
    """
    Owns the trigger, executor and action registries.

    Attributes:
        triggers: Registry of trigger components
        executors: Registry of executors
        actions: Registry of actions
        events: Events supported per trigger component
    """

    def __init__(self) -> None:
        self.triggers: Registry[TriggerComponent] = Registry("trigger")
        self.executors = ExecutorRegistry()
        self.actions = ActionRegistry()
        self.events = EventRegistry()

    def register_trigger(self, component: TriggerComponent) -> None:
        """Register a trigger component and the events it supports."""
        self.triggers.register(component)
        self.events.register(component.key, component.supported_events)

    def unregister_trigger(self, key: str) -> None:
        self.triggers.unregister(key)

    def get_status(self) -> dict[str, Any]:
        """Registered keys and counts per registry."""
        return {
            name: {"total": len(registry), "keys": registry.keys()}
            for name, registry in (
                ("triggers", self.triggers),
                ("executors", self.executors),
                ("actions", self.actions),
            )
        }

    def create_runner(
        self,
        config: AutomationConfig | Mapping[str, Any] | None,
        *,
        form: FormHandle | None = None,
        remote_client: RemoteClient | None = None,
        notifier: Notifier | None = None,
        extras: dict[str, Any] | None = None,
    ) -> AutomationRunner:
        """Build a runner for one component instance's configuration."""
        return AutomationRunner(
            config,
            self.executors,
            self.actions,
            form=form,
            remote_client=remote_client,
            notifier=notifier,
            extras=extras,
        )


def create_default_manager(
    host: UiHost | None = None,
    collector: ParameterCollector | None = None,
    renderer: ContentRenderer | None = None,
) -> AutomationManager:
    """
    Create a manager with every built-in trigger, executor and action.

    Args:
        host: Display adapter for UI actions (logging host if omitted)
        collector: Parameter prompt implementation (cancels if omitted)
        renderer: Content renderer shared by display actions

    Returns:
        Populated AutomationManager
    """
    host = host or LoggingUiHost()
    manager = AutomationManager()

    for component in BUILTIN_TRIGGERS:
        manager.register_trigger(component)

    for executor in (
        EchoExecutor(),
        ScriptExecutor(),
        HttpRequestExecutor(),
        DataQueryExecutor(),
        ParameterBuilderExecutor(collector),
    ):
        manager.executors.register(executor)

    for action in (
        ConsoleAction(host),
        MessageAction(host, renderer),
        OpenLinkAction(host),
        ClipboardWriteAction(host),
        FormValueSetterAction(),
        ModalAction(host, renderer),
        PopoverAction(host, renderer),
    ):
        manager.actions.register(action)

    status = manager.get_status()
    logger.info(
        f"Automation manager ready: {status['executors']['total']} executors, "
        f"{status['actions']['total']} actions, {status['triggers']['total']} triggers"
    )
    return manager
