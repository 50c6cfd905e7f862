"""
Call-site guard for UI-bound triggers.

A button or field wires its events to ``runner.trigger``. The guard keeps
one UI element from running overlapping invocations of its chain:

- ``fire``: ignored while a previous call from the same element is running
- ``debounce``: rapid calls (text input ``onChange``) collapse into the last
  one, fired after a quiet period

The busy flag is always reset, including when the trigger raises, so the
element returns to its normal state.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from ..config import get_debounce_ms
from .execution_result import TriggerReport
from .orchestrator import AutomationRunner

logger = logging.getLogger(__name__)


class TriggerGuard:
    """
    Re-entrancy and debounce guard for one UI element.

    Example:
        guard = TriggerGuard(runner, trigger_id="btn-submit")
        await guard.fire("onClick", payload)  # runs
        # second click while running → None, ignored

        field_guard = TriggerGuard(runner, trigger_id="name-field", debounce_ms=300)
        field_guard.debounce("onChange", {"value": "a"})
        field_guard.debounce("onChange", {"value": "ab"})  # only this one runs
    """

    def __init__(
        self,
        runner: AutomationRunner,
        trigger_id: str | None = None,
        debounce_ms: int | None = None,
    ):
        """
        Initialize guard.

        Args:
            runner: Runner whose trigger is guarded
            trigger_id: Identity of the UI element
            debounce_ms: Quiet period for ``debounce`` (default from environment)
        """
        self.runner = runner
        self.trigger_id = trigger_id
        self.debounce_ms = get_debounce_ms() if debounce_ms is None else max(0, debounce_ms)
        self._busy = False
        self._pending: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task[Any]] = set()

    @property
    def busy(self) -> bool:
        return self._busy

    async def fire(self, event: str, payload: Any = None) -> TriggerReport | None:
        """
        Run the trigger unless a previous call is still running.

        Returns:
            The report, or None when the call was ignored

        Raises:
            Exception: Whatever the runner raises (the busy flag is reset first)
        """
        if self._busy:
            logger.debug(f"Trigger '{event}' ignored, '{self.trigger_id}' is busy")
            return None

        self._busy = True
        try:
            return await self.runner.trigger(event, payload, trigger_id=self.trigger_id)
        finally:
            self._busy = False

    def debounce(self, event: str, payload: Any = None) -> None:
        """
        Schedule a trigger after the quiet period, replacing any pending one.

        Must be called from a running event loop.
        """
        if self._pending is not None:
            self._pending.cancel()

        loop = asyncio.get_running_loop()
        self._pending = loop.call_later(self.debounce_ms / 1000, self._start, event, payload)

    def cancel_pending(self) -> None:
        """Drop a scheduled debounced call, if any."""
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    async def wait_idle(self) -> None:
        """Wait for debounced invocations that have already started."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    def _start(self, event: str, payload: Any) -> None:
        self._pending = None
        task = asyncio.get_running_loop().create_task(self._run_debounced(event, payload))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_debounced(self, event: str, payload: Any) -> None:
        try:
            await self.fire(event, payload)
        except Exception as e:
            # Already logged and notified by the runner; nobody awaits this task
            logger.debug(f"Debounced trigger '{event}' failed: {e}")
