"""
UI host adapter and process-wide UI state.

Actions never touch a UI toolkit directly. They call a UiHost, which the
embedding application implements (browser bridge, desktop shell, test fake).

Two pieces of state outlive a single trigger invocation and are shared by
every invocation in the process:

- UiPointerState: last known pointer position and interaction anchors, used to
  anchor overlays
- OverlayTracker: the single live popover overlay and its trigger identity

Both are guarded by a lock, so hosts that dispatch triggers from several
threads keep the single-overlay invariant.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Protocol

from .schema import ContentResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OverlaySpec:
    """Everything a host needs to draw one popover overlay."""

    identity: str
    title: str
    content: ContentResult
    theme: str = "default"
    size: str = "medium"
    position: str = "component"
    anchor: tuple[float, float] | None = None
    show_close_button: bool = True


class UiHost(Protocol):
    """Display capabilities the built-in actions rely on."""

    def console(
        self, trigger: Any, executors: list[dict[str, Any]], config: dict[str, Any]
    ) -> None:
        """Write a diagnostic record of the step inputs."""
        ...

    def notify(self, type: str, text: str, duration: float) -> None:
        """Show a transient notification (info, success, error, warning, loading)."""
        ...

    def open_link(self, url: str, new_window: bool) -> None: ...

    def write_clipboard(self, text: str) -> None: ...

    def show_modal(self, title: str, content: ContentResult, width: int, type: str) -> None: ...

    def show_overlay(self, spec: OverlaySpec) -> Any:
        """Draw an overlay and return an opaque handle for removal."""
        ...

    def remove_overlay(self, handle: Any) -> None: ...


class LoggingUiHost:
    """
    UiHost for headless runs: every display call is written to the log.

    Example:
        host = LoggingUiHost()
        host.notify("success", "Saved", 3)
        # INFO automation_engine.engine.ui_host: [notify:success] Saved
    """

    def __init__(self) -> None:
        self._handles = itertools.count(1)
        self.clipboard: str | None = None

    def console(
        self, trigger: Any, executors: list[dict[str, Any]], config: dict[str, Any]
    ) -> None:
        logger.info(f"[console] trigger={trigger!r} executors={len(executors)} config={config!r}")

    def notify(self, type: str, text: str, duration: float) -> None:
        logger.info(f"[notify:{type}] {text}")

    def open_link(self, url: str, new_window: bool) -> None:
        target = "new window" if new_window else "current window"
        logger.info(f"[open_link] {url} ({target})")

    def write_clipboard(self, text: str) -> None:
        self.clipboard = text
        logger.info(f"[clipboard] {len(text)} characters written")

    def show_modal(self, title: str, content: ContentResult, width: int, type: str) -> None:
        logger.info(f"[modal:{type}] {title}: {content.content}")

    def show_overlay(self, spec: OverlaySpec) -> int:
        handle = next(self._handles)
        logger.info(f"[overlay #{handle}] {spec.identity} {spec.title}: {spec.content.content}")
        return handle

    def remove_overlay(self, handle: Any) -> None:
        logger.info(f"[overlay #{handle}] removed")


class UiPointerState:
    """
    Last known pointer position and interaction anchors.

    Hosts feed it from their input events; overlay actions read it to decide
    where to anchor. Three points are tracked:

    - pointer: last mouse position
    - element: anchor of the element that last fired an event
    - input: caret anchor of the last focused text input

    Example:
        pointer_state.update_pointer(120, 40)
        pointer_state.anchor_for("mouse")  # (120, 40)
        pointer_state.anchor_for("component")  # (120, 40), no element recorded
        pointer_state.anchor_for("center")  # None, placed by the host
    """

    HOST_PLACED = frozenset({"center", "top", "bottom"})

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._pointer: tuple[float, float] | None = None
        self._element: tuple[float, float] | None = None
        self._input: tuple[float, float] | None = None

    def update_pointer(self, x: float, y: float) -> None:
        with self._lock:
            self._pointer = (x, y)

    def update_element(self, x: float, y: float) -> None:
        with self._lock:
            self._element = (x, y)

    def update_input(self, x: float, y: float) -> None:
        with self._lock:
            self._input = (x, y)

    def pointer(self) -> tuple[float, float] | None:
        with self._lock:
            return self._pointer

    def anchor_for(self, position: str) -> tuple[float, float] | None:
        """
        Anchor point for an overlay position mode.

        ``mouse`` uses the pointer, ``cursor`` the focused input and
        ``component`` (the default) the last event element. Both fall back to
        the pointer. Host-placed modes (center, top, bottom) return None.
        """
        if position in self.HOST_PLACED:
            return None
        with self._lock:
            if position == "mouse":
                return self._pointer
            if position == "cursor":
                return self._input or self._pointer
            return self._element or self._pointer

    def reset(self) -> None:
        with self._lock:
            self._pointer = None
            self._element = None
            self._input = None


@dataclass
class ActiveOverlay:
    """Overlay currently on screen."""

    identity: str
    handle: Any
    host: UiHost
    timer: asyncio.TimerHandle | None = field(default=None, compare=False)


class OverlayTracker:
    """
    Keeps at most one live overlay per process.

    Showing the identity that is already visible is a no-op. Showing a
    different identity removes the previous overlay first.

    Example:
        tracker = OverlayTracker()
        tracker.show(host, spec_a)  # drawn
        tracker.show(host, spec_a)  # None, already visible
        tracker.show(host, spec_b)  # spec_a removed, spec_b drawn
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._current: ActiveOverlay | None = None

    @property
    def current(self) -> ActiveOverlay | None:
        with self._lock:
            return self._current

    def is_showing(self, identity: str) -> bool:
        with self._lock:
            return self._current is not None and self._current.identity == identity

    def show(self, host: UiHost, spec: OverlaySpec) -> ActiveOverlay | None:
        """
        Draw an overlay unless its identity is already visible.

        Returns:
            The new active overlay, or None when nothing was drawn
        """
        with self._lock:
            if self._current is not None and self._current.identity == spec.identity:
                logger.debug(f"Overlay '{spec.identity}' already visible")
                return None
            if self._current is not None:
                previous, self._current = self._current, None
                self._remove(previous)
            handle = host.show_overlay(spec)
            self._current = ActiveOverlay(identity=spec.identity, handle=handle, host=host)
            return self._current

    def dismiss(self, overlay: ActiveOverlay | None = None) -> bool:
        """
        Remove the current overlay.

        Args:
            overlay: Only remove if this overlay is still the current one

        Returns:
            True if an overlay was removed
        """
        with self._lock:
            if self._current is None:
                return False
            if overlay is not None and self._current is not overlay:
                return False
            previous, self._current = self._current, None
            self._remove(previous)
            return True

    def _remove(self, overlay: ActiveOverlay) -> None:
        if overlay.timer is not None:
            overlay.timer.cancel()
        overlay.host.remove_overlay(overlay.handle)
        logger.debug(f"Overlay '{overlay.identity}' removed")


pointer_state = UiPointerState()
overlay_tracker = OverlayTracker()
