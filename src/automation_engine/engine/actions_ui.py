"""UI actions - Console, Message, OpenLink, ClipboardWrite, Modal and Popover.

Every action renders through the UiHost it was constructed with. Display
content goes through the ContentRenderer, so the content descriptor
(``contentType`` / ``content`` / ``contentFunction``) works the same way in
messages, modals and popovers.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, ClassVar

from pydantic import Field

from .action_base import AutomationAction
from .compiler import compile_object, compile_template
from .content import ContentRenderer, default_renderer, strip_tags
from .execution_context import ExecutionContext
from .schema import ConfigModel, ContentConfig, ContentKind
from .ui_host import (
    OverlaySpec,
    OverlayTracker,
    UiHost,
    UiPointerState,
    overlay_tracker,
    pointer_state,
)

logger = logging.getLogger(__name__)

MESSAGE_TYPES = frozenset({"info", "success", "error", "warning", "loading"})
POPOVER_THEMES = frozenset({"default", "success", "warning", "error", "info"})
POPOVER_SIZES = frozenset({"small", "medium", "large"})


# ============================================================================
# Console Action
# ============================================================================


class ConsoleAction(AutomationAction):
    """Write the trigger payload, executor results and step config to the host console."""

    key: ClassVar[str] = "console"
    label: ClassVar[str] = "Console output"
    description: ClassVar[str | None] = "Print the step inputs for debugging"

    def __init__(self, host: UiHost):
        self.host = host

    async def execute(self, trigger: Any, context: ExecutionContext) -> None:
        config = compile_object(context.config, context)
        executors = context.executor_data()
        logger.info(
            f"Console action: event={context.event} trigger={trigger!r} "
            f"executors={len(executors)} config={config!r}"
        )
        self.host.console(trigger, executors, config)


# ============================================================================
# Message Action
# ============================================================================


class MessageParams(ContentConfig):
    type: str = Field(default="info", description="info | success | error | warning | loading")
    duration: float = Field(default=3, ge=0, description="Seconds the message stays visible")


class MessageAction(AutomationAction):
    """
    Show a transient notification.

    Notifications are plain text: HTML content (including converted
    markdown) has its tags stripped. Unknown types fall back to ``info``.
    """

    key: ClassVar[str] = "message"
    label: ClassVar[str] = "Message"
    description: ClassVar[str | None] = "Show a notification message"

    def __init__(self, host: UiHost, renderer: ContentRenderer | None = None):
        self.host = host
        self.renderer = renderer or default_renderer

    async def execute(self, trigger: Any, context: ExecutionContext) -> None:
        params = MessageParams.model_validate(context.config)
        result = await self.renderer.render(params, context)
        text = strip_tags(result.content) if result.type == ContentKind.HTML else result.content
        kind = params.type if params.type in MESSAGE_TYPES else "info"
        self.host.notify(kind, text, params.duration)


# ============================================================================
# OpenLink Action
# ============================================================================


class OpenLinkParams(ConfigModel):
    link: str = ""
    new_window: bool = True


class OpenLinkAction(AutomationAction):
    """Open a (templated) link. A blank link only logs a warning."""

    key: ClassVar[str] = "open_link"
    label: ClassVar[str] = "Open link"
    description: ClassVar[str | None] = "Open a URL built from trigger or executor data"

    def __init__(self, host: UiHost):
        self.host = host

    async def execute(self, trigger: Any, context: ExecutionContext) -> None:
        params = OpenLinkParams.model_validate(context.config)
        url = compile_template(params.link, context).strip()
        if not url:
            logger.warning("Open link action has no link configured")
            return
        self.host.open_link(url, params.new_window)


# ============================================================================
# ClipboardWrite Action
# ============================================================================


class ClipboardParams(ConfigModel):
    content: Any = ""


class ClipboardWriteAction(AutomationAction):
    """
    Write templated text to the clipboard.

    Raises:
        ValueError: Content is empty after compilation
    """

    key: ClassVar[str] = "clipboard-write"
    label: ClassVar[str] = "Write clipboard"
    description: ClassVar[str | None] = "Copy text to the clipboard"

    def __init__(self, host: UiHost):
        self.host = host

    async def execute(self, trigger: Any, context: ExecutionContext) -> None:
        params = ClipboardParams.model_validate(compile_object(context.config, context))
        content = params.content if isinstance(params.content, str) else str(params.content)
        if params.content is None or not content:
            raise ValueError("Clipboard content cannot be empty")
        self.host.write_clipboard(content)
        self.host.notify("success", "Content copied to clipboard", 3)


# ============================================================================
# Modal Action
# ============================================================================


class ModalParams(ContentConfig):
    title: str = "Notice"
    content: str = "This is a modal dialog"
    width: int = 520
    type: str = "info"


class ModalAction(AutomationAction):
    """Show a modal dialog with rendered content (HTML content is kept)."""

    key: ClassVar[str] = "modal"
    label: ClassVar[str] = "Modal"
    description: ClassVar[str | None] = "Show a modal dialog"

    def __init__(self, host: UiHost, renderer: ContentRenderer | None = None):
        self.host = host
        self.renderer = renderer or default_renderer

    async def execute(self, trigger: Any, context: ExecutionContext) -> None:
        params = ModalParams.model_validate(context.config)
        content = await self.renderer.render(params, context)
        title = compile_template(params.title, context)
        self.host.show_modal(title, content, params.width, params.type)


# ============================================================================
# Popover Action
# ============================================================================


class PopoverParams(ContentConfig):
    title: str = ""
    content: str = "Action tip"
    auto_close: bool = True
    duration: int = Field(default=3000, ge=0, description="Auto-close delay in milliseconds")
    position: str = Field(
        default="component", description="component | mouse | cursor | center | top | bottom"
    )
    theme: str = "default"
    size: str = "medium"
    show_close_button: bool = True


class PopoverAction(AutomationAction):
    """
    Show a popover anchored near the last interaction.

    The overlay identity is ``"{triggerId}#{event}"`` (``default`` when the
    invocation carries no trigger id). At most one popover is live at a time:
    repeating the visible identity does nothing, a new identity replaces it.
    Without auto-close a close button is always shown.
    """

    key: ClassVar[str] = "popover"
    label: ClassVar[str] = "Popover"
    description: ClassVar[str | None] = "Show a tooltip at the component, cursor or mouse position"

    def __init__(
        self,
        host: UiHost,
        renderer: ContentRenderer | None = None,
        tracker: OverlayTracker | None = None,
        pointer: UiPointerState | None = None,
    ):
        self.host = host
        self.renderer = renderer or default_renderer
        self.tracker = tracker or overlay_tracker
        self.pointer = pointer or pointer_state

    @staticmethod
    def identity_for(context: ExecutionContext) -> str:
        return f"{context.trigger_id or 'default'}#{context.event}"

    async def execute(self, trigger: Any, context: ExecutionContext) -> None:
        identity = self.identity_for(context)
        if self.tracker.is_showing(identity):
            logger.debug(f"Popover already active for '{identity}', skipping")
            return

        params = PopoverParams.model_validate(context.config)
        content = await self.renderer.render(params, context)

        spec = OverlaySpec(
            identity=identity,
            title=compile_template(params.title, context),
            content=content,
            theme=params.theme if params.theme in POPOVER_THEMES else "default",
            size=params.size if params.size in POPOVER_SIZES else "medium",
            position=params.position,
            anchor=self.pointer.anchor_for(params.position),
            show_close_button=params.show_close_button or not params.auto_close,
        )
        overlay = self.tracker.show(self.host, spec)
        if overlay is None:
            return

        if params.auto_close and params.duration > 0:
            loop = asyncio.get_running_loop()
            overlay.timer = loop.call_later(params.duration / 1000, self.tracker.dismiss, overlay)
