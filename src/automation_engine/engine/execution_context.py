"""
Execution context threaded through one trigger invocation.

The context is an immutable snapshot. The orchestrator derives a new snapshot
per step (replacing ``config`` and appending to ``executors``) instead of
mutating a shared object, so an executor can never rewrite a previous step's
result or the configuration seen by a later step.

Ambient capabilities are carried as opaque handles:
- ``form``: host form, queried and mutated by field name
- ``remote_client``: the remote data service (fetch_data / list_records)
- ``trigger_id``: identity of the UI element invocation (correlates overlays)
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .execution_result import ExecutorResult


@runtime_checkable
class RemoteClient(Protocol):
    """Handle to the remote data executor service."""

    async def fetch_data(self, type: str, data: dict[str, Any]) -> dict[str, Any]:
        """Run one request of the given type (api, http, sql, workflow)."""
        ...

    async def list_records(self, collection: str, params: dict[str, Any]) -> dict[str, Any]:
        """List records of a host collection (``{data: [...], meta: {...}}``)."""
        ...


@runtime_checkable
class FormHandle(Protocol):
    """Host form runtime, addressed by field name only."""

    def get_value(self, field_name: str) -> Any: ...

    def set_value(self, field_name: str, value: Any) -> None: ...


@dataclass(frozen=True)
class ExecutionContext:
    """
    Snapshot of everything a step can see.

    Attributes:
        event: Event key that fired (e.g. "onClick")
        original_event: Raw payload from the UI event
        timestamp: Time the trigger started
        executors: Results of executor steps processed so far (index-aligned)
        config: The current step's parameters (replaced per step)
        form: Host form capability (optional)
        remote_client: Remote data service capability (optional)
        trigger_id: Identity of the invoking UI element (optional)
        step_index: Index of the current step within its phase
        extras: Host-specific plain data exposed to templates

    Example:
        base = ExecutionContext(event="onClick", original_event={"x": 1})
        step = base.for_step({"message": "hi"}, step_index=0)
        step.config  # {"message": "hi"}
        base.config  # {} (unchanged)
    """

    event: str
    original_event: Any = None
    timestamp: datetime = field(default_factory=datetime.now)
    executors: tuple[ExecutorResult, ...] = ()
    config: dict[str, Any] = field(default_factory=dict)
    form: FormHandle | None = None
    remote_client: RemoteClient | None = None
    trigger_id: str | None = None
    step_index: int | None = None
    extras: dict[str, Any] = field(default_factory=dict)

    @property
    def trigger(self) -> Any:
        """Trigger payload (alias of the original event)."""
        return self.original_event

    def extend(self, **changes: Any) -> ExecutionContext:
        """Return a copy with the given fields replaced."""
        return dataclasses.replace(self, **changes)

    def for_step(
        self,
        config: dict[str, Any] | None,
        step_index: int,
        executors: tuple[ExecutorResult, ...] | None = None,
    ) -> ExecutionContext:
        """Derive the per-step snapshot (own config, current executor results)."""
        return dataclasses.replace(
            self,
            config=dict(config or {}),
            step_index=step_index,
            executors=self.executors if executors is None else tuple(executors),
        )

    def with_result(self, result: ExecutorResult) -> ExecutionContext:
        """Return a copy whose executor list has one more result appended."""
        return dataclasses.replace(self, executors=(*self.executors, result))

    def executor_data(self) -> list[dict[str, Any]]:
        """Executor results as plain dicts (template / user-code view)."""
        return [result.to_context() for result in self.executors]
