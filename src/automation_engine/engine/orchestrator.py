"""Automation orchestrator - runs the executor chain and actions for one event.

The runner is the bridge between a UI event and the registries:

1. Look up the EventConfig for the event (absent → no-op)
2. Build the base ExecutionContext (payload, timestamp, form, remote client)
3. Run executors in declared order, appending one result per configured step
   (disabled → skipped placeholder, raised → failed result)
4. Stop everything on parameter-collection cancellation (quietly) or
   parameter-collection failure (with a notification)
5. Run enabled actions in declared order against the full executor results;
   a failing action is reported and the next one still runs
6. Log, notify and re-raise anything unexpected

Executors always finish (or abort) before the first action starts. Nothing is
retained between invocations.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Protocol

from .action_base import ActionRegistry
from .exceptions import ParameterCollectionCancelled, ParameterCollectionFailed
from .execution_context import ExecutionContext, FormHandle, RemoteClient
from .execution_result import ExecutorResult, TriggerReport, TriggerStatus
from .executor_base import ExecutorRegistry
from .schema import AutomationConfig, StepConfig

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    """User-visible failure reporting."""

    def notify(self, type: str, text: str, duration: float) -> None: ...


class AutomationRunner:
    """
    Runs configured automation chains for one component instance.

    Example:
        runner = AutomationRunner(config, manager.executors, manager.actions, notifier=host)
        report = await runner.trigger("onClick", {"x": 1}, trigger_id="btn-save")
        report.status  # TriggerStatus.COMPLETED
        report.executors[0].data  # echo output
    """

    def __init__(
        self,
        config: AutomationConfig | Mapping[str, Any] | None,
        executors: ExecutorRegistry,
        actions: ActionRegistry,
        *,
        form: FormHandle | None = None,
        remote_client: RemoteClient | None = None,
        notifier: Notifier | None = None,
        extras: dict[str, Any] | None = None,
    ):
        """
        Initialize runner.

        Args:
            config: Automation configuration (model or persisted camelCase dict)
            executors: Executor registry
            actions: Action registry
            form: Host form capability passed to every step
            remote_client: Remote data service capability passed to every step
            notifier: Receives user-visible failure notifications
            extras: Host-specific plain data exposed under ``$context``
        """
        if config is None:
            config = AutomationConfig()
        elif not isinstance(config, AutomationConfig):
            config = AutomationConfig.model_validate(config)
        self.config = config
        self.executors = executors
        self.actions = actions
        self.form = form
        self.remote_client = remote_client
        self.notifier = notifier
        self.extras = dict(extras or {})

    async def trigger(
        self, event: str, payload: Any = None, trigger_id: str | None = None
    ) -> TriggerReport:
        """
        Run the chain bound to an event.

        Args:
            event: Event key (e.g. "onClick")
            payload: Raw event payload
            trigger_id: Identity of the invoking UI element

        Returns:
            TriggerReport describing how the invocation ended

        Raises:
            Exception: Unexpected failures outside step handling (already
                logged and notified)
        """
        event_config = self.config.get_event(event)
        if event_config is None:
            logger.debug(f"No automation configured for event '{event}'")
            return TriggerReport(event=event, status=TriggerStatus.NOT_CONFIGURED)

        logger.info(
            f"Triggering '{event}': {len(event_config.executors)} executors, "
            f"{len(event_config.actions)} actions"
        )

        try:
            base = ExecutionContext(
                event=event,
                original_event=payload,
                form=self.form,
                remote_client=self.remote_client,
                trigger_id=trigger_id,
                extras=self.extras,
            )

            results: list[ExecutorResult] = []
            interruption = await self._run_executors(event_config.executors, payload, base, results)
            if interruption is not None:
                status, error = interruption
                return TriggerReport(event=event, status=status, executors=results, error=error)

            context = base.extend(executors=tuple(results))
            completed, failures = await self.actions.execute_multiple(
                event_config.actions, payload, context
            )
            for failure in failures:
                self._notify("error", f"Action '{failure.action_key}' failed: {failure.error}")

            logger.info(f"Automation for '{event}' completed")
            return TriggerReport(
                event=event,
                status=TriggerStatus.COMPLETED,
                executors=results,
                actions_run=completed,
                action_failures=failures,
            )
        except Exception as e:
            logger.error(f"Automation for '{event}' failed: {e}")
            self._notify("error", f"Automation failed: {e}")
            raise

    async def _run_executors(
        self,
        steps: list[StepConfig],
        payload: Any,
        base: ExecutionContext,
        results: list[ExecutorResult],
    ) -> tuple[TriggerStatus, str | None] | None:
        """Run executor steps, appending to ``results``. Returns the interruption, if any."""
        for index, step in enumerate(steps):
            if not step.enabled:
                logger.debug(f"Skipping disabled executor '{step.key}' at {index}")
                results.append(ExecutorResult.skipped(step.key))
                continue

            step_context = base.for_step(step.params, step_index=index, executors=tuple(results))
            try:
                result = await self.executors.execute(
                    step.key, payload, step_context, self.remote_client
                )
            except ParameterCollectionCancelled:
                logger.info(f"Parameter collection cancelled at step {index}, aborting chain")
                return TriggerStatus.CANCELLED, None
            except Exception as e:
                results.append(ExecutorResult.failed(step.key, str(e)))
                if self._is_interactive(step.key) or isinstance(e, ParameterCollectionFailed):
                    logger.error(f"Parameter collection failed at step {index}: {e}")
                    self._notify("error", str(e))
                    return TriggerStatus.ABORTED, str(e)
                self._notify("warning", f"Executor '{step.key}' failed: {e}")
                continue

            results.append(result)
        return None

    def _is_interactive(self, key: str) -> bool:
        executor = self.executors.get(key)
        return executor is not None and executor.interactive

    def _notify(self, type: str, text: str) -> None:
        if self.notifier is None:
            return
        try:
            self.notifier.notify(type, text, 3)
        except Exception as e:
            logger.warning(f"Failed to show notification: {e}")
