"""
Executor contract and registry.

Executors are the data-producing steps of an automation chain (HTTP call,
collection query, script, parameter collection). Each one is a small class
with a registry key and an async ``execute`` returning an ExecutorResult.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, ClassVar

from .exceptions import ExecutorNotFoundError, ParameterCollectionCancelled
from .execution_context import ExecutionContext, RemoteClient
from .execution_result import ExecutorResult
from .registry import Registry

logger = logging.getLogger(__name__)


class AutomationExecutor(ABC):
    """
    Base class for automation executors.

    Subclasses set the class-level metadata and implement ``execute``. The
    step's parameters arrive in ``context.config`` still containing
    placeholders, so executors compile them against the context before use.

    Example:
        class UpperExecutor(AutomationExecutor):
            key: ClassVar[str] = "upper"
            label: ClassVar[str] = "Upper-case the trigger value"

            async def execute(self, trigger, context):
                return ExecutorResult.succeeded(self.key, data=str(trigger).upper())
    """

    key: ClassVar[str]
    label: ClassVar[str]
    description: ClassVar[str | None] = None
    interactive: ClassVar[bool] = False  # Suspends for human input; its failures abort the chain

    @abstractmethod
    async def execute(self, trigger: Any, context: ExecutionContext) -> ExecutorResult:
        """
        Run the step.

        Args:
            trigger: Raw trigger payload from the UI event
            context: Per-step execution context

        Returns:
            Result envelope

        Raises:
            ParameterCollectionCancelled: User dismissed a parameter prompt
            Exception: Any failure (the orchestrator records it and decides
                whether the chain continues)
        """

    def describe(self) -> dict[str, Any]:
        """Registry metadata for listing in configuration tools."""
        return {"key": self.key, "label": self.label, "description": self.description}


def coerce_result(executor_key: str, value: Any) -> ExecutorResult:
    """
    Normalize whatever an executor returned into an ExecutorResult.

    Plugin executors occasionally return plain dicts. Those are validated into
    the envelope (``executorKey`` defaults to the registry key). Any other
    value is wrapped as the data of a successful result.
    """
    if isinstance(value, ExecutorResult):
        return value
    if isinstance(value, dict) and "success" in value:
        return ExecutorResult.model_validate({"executorKey": executor_key, **value})
    return ExecutorResult.succeeded(executor_key, data=value)


class ExecutorRegistry(Registry[AutomationExecutor]):
    """
    Registry of executors keyed by ``executor.key``.

    Example:
        registry = ExecutorRegistry()
        registry.register(EchoExecutor())
        result = await registry.execute("echo", {"x": 1}, context, remote_client)
    """

    def __init__(self) -> None:
        super().__init__("executor")

    async def execute(
        self,
        key: str,
        trigger: Any,
        context: ExecutionContext,
        remote_client: RemoteClient | None = None,
    ) -> ExecutorResult:
        """
        Look up and run one executor.

        The context is enriched with the remote client capability before the
        call. Failures are logged and re-raised unchanged so the caller owns
        the chain-continuation policy.

        Args:
            key: Executor registry key
            trigger: Raw trigger payload
            context: Per-step execution context
            remote_client: Remote data service handle (kept from context if None)

        Returns:
            The executor's result envelope

        Raises:
            ExecutorNotFoundError: No executor registered under ``key``
            ParameterCollectionCancelled: Propagated from parameter collection
            Exception: Propagated from the executor
        """
        executor = self.get(key)
        if executor is None:
            raise ExecutorNotFoundError(key)

        if remote_client is not None:
            context = context.extend(remote_client=remote_client)

        logger.debug(f"Executing executor '{key}' (step {context.step_index})")
        try:
            result = coerce_result(key, await executor.execute(trigger, context))
        except ParameterCollectionCancelled:
            logger.info(f"Executor '{key}' cancelled by user")
            raise
        except Exception as e:
            logger.error(f"Executor '{key}' failed: {e}")
            raise

        if result.success:
            logger.info(f"Executor '{key}' completed")
        else:
            logger.info(f"Executor '{key}' returned failure: {result.error}")
        return result
