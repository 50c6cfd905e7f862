"""
Action contract and registry.

Actions are the side-effecting steps that run after every executor has
finished. They receive the full list of executor results in the context and
their own step parameters in ``context.config``, and return nothing.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, ClassVar

from .exceptions import ActionNotFoundError
from .execution_context import ExecutionContext
from .execution_result import ActionFailure
from .registry import Registry
from .schema import StepConfig

logger = logging.getLogger(__name__)


class AutomationAction(ABC):
    """
    Base class for automation actions.

    Subclasses set the class-level metadata and implement ``execute``. The
    enabled flag is checked by the caller, never inside the action. Actions
    compile their own config against the context before use.
    """

    key: ClassVar[str]
    label: ClassVar[str]
    description: ClassVar[str | None] = None

    @abstractmethod
    async def execute(self, trigger: Any, context: ExecutionContext) -> None:
        """
        Perform the side effect.

        Args:
            trigger: Raw trigger payload
            context: Per-step context (full executor results, own config)

        Raises:
            Exception: Any failure (reported by the caller, siblings still run)
        """

    def describe(self) -> dict[str, Any]:
        """Registry metadata for listing in configuration tools."""
        return {"key": self.key, "label": self.label, "description": self.description}


class ActionRegistry(Registry[AutomationAction]):
    """Registry of actions keyed by ``action.key``."""

    def __init__(self) -> None:
        super().__init__("action")

    async def execute(self, key: str, trigger: Any, context: ExecutionContext) -> None:
        """
        Look up and run one action.

        Raises:
            ActionNotFoundError: No action registered under ``key``
            Exception: Propagated from the action after logging
        """
        action = self.get(key)
        if action is None:
            raise ActionNotFoundError(key)

        logger.debug(f"Executing action '{key}' (step {context.step_index})")
        try:
            await action.execute(trigger, context)
        except Exception as e:
            logger.error(f"Action '{key}' failed: {e}")
            raise
        logger.info(f"Action '{key}' completed")

    async def execute_multiple(
        self, steps: list[StepConfig], trigger: Any, context: ExecutionContext
    ) -> tuple[list[str], list[ActionFailure]]:
        """
        Run action steps in order, independently of each other.

        Disabled steps are skipped. A failing step is recorded and the next
        step still runs.

        Args:
            steps: Configured action steps
            trigger: Raw trigger payload
            context: Base context carrying the complete executor results

        Returns:
            Keys of actions that completed, and the failures in step order
        """
        completed: list[str] = []
        failures: list[ActionFailure] = []

        for index, step in enumerate(steps):
            if not step.enabled:
                logger.debug(f"Skipping disabled action '{step.key}' at {index}")
                continue
            step_context = context.for_step(step.params, step_index=index)
            try:
                await self.execute(step.key, trigger, step_context)
            except Exception as e:
                failures.append(ActionFailure(index=index, action_key=step.key, error=str(e)))
                continue
            completed.append(step.key)

        return completed, failures
