"""
Result envelopes for executor steps and whole trigger invocations.

ExecutorResult is the uniform envelope every executor returns. The
orchestrator synthesizes one for skipped and failed steps so that the
accumulated result list always stays index-aligned with the configured chain.

TriggerReport summarizes one ``trigger`` invocation for the caller (status,
executor results, action failures), mirroring how workflow executions are
reported with a status plus the full context.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class ExecutorResult(BaseModel):
    """
    Uniform executor result envelope.

    Serialized with camelCase keys (``executedAt``, ``executorKey``) because
    templates reference it as ``{{$context.executors[0].executorKey}}``.

    Example:
        ExecutorResult.succeeded("echo", data={"message": "hi"})
        ExecutorResult.failed("http", "Connection refused")
        ExecutorResult.skipped("script")
    """

    model_config = {"alias_generator": to_camel, "populate_by_name": True, "extra": "allow"}

    success: bool
    data: Any = None
    error: str | None = None
    executed_at: datetime = Field(default_factory=datetime.now)
    executor_key: str
    metadata: dict[str, Any] | None = None
    disabled: bool = False

    # Factory methods

    @staticmethod
    def succeeded(
        executor_key: str, data: Any = None, metadata: dict[str, Any] | None = None
    ) -> ExecutorResult:
        """Create a successful result."""
        return ExecutorResult(success=True, data=data, executor_key=executor_key, metadata=metadata)

    @staticmethod
    def failed(
        executor_key: str,
        error: str,
        data: Any = None,
        metadata: dict[str, Any] | None = None,
    ) -> ExecutorResult:
        """Create a failed result (used for thrown errors and handled failures)."""
        return ExecutorResult(
            success=False, data=data, error=error, executor_key=executor_key, metadata=metadata
        )

    @staticmethod
    def skipped(executor_key: str) -> ExecutorResult:
        """Create the placeholder result for a disabled step."""
        return ExecutorResult(success=False, disabled=True, executor_key=executor_key)

    def to_context(self) -> dict[str, Any]:
        """Plain-data view exposed to templates and user code."""
        data = self.model_dump(by_alias=True)
        if data.get("error") is None:
            data.pop("error", None)
        if data.get("metadata") is None:
            data.pop("metadata", None)
        if not self.disabled:
            data.pop("disabled", None)
        return data


class TriggerStatus(str, Enum):
    """Final state of a trigger invocation."""

    NOT_CONFIGURED = "not_configured"  # No EventConfig for the event (normal)
    COMPLETED = "completed"  # Executors and actions ran (individual steps may have failed)
    CANCELLED = "cancelled"  # User dismissed parameter collection
    ABORTED = "aborted"  # Parameter collection failed

    def is_finished(self) -> bool:
        return self == TriggerStatus.COMPLETED

    def is_interrupted(self) -> bool:
        return self in (TriggerStatus.CANCELLED, TriggerStatus.ABORTED)


@dataclass
class ActionFailure:
    """Action that raised while the chain kept going."""

    index: int
    action_key: str
    error: str


@dataclass
class TriggerReport:
    """
    Summary of one trigger invocation.

    Attributes:
        event: Event key that was fired
        status: Final state
        executors: Index-aligned executor results (possibly partial if interrupted)
        actions_run: Keys of actions that completed without raising
        action_failures: Actions that raised (the chain continued past them)
        error: Reason for ABORTED status
    """

    event: str
    status: TriggerStatus
    executors: list[ExecutorResult] = field(default_factory=list)
    actions_run: list[str] = field(default_factory=list)
    action_failures: list[ActionFailure] = field(default_factory=list)
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        """True when the chain completed and no action failed."""
        return self.status == TriggerStatus.COMPLETED and not self.action_failures
