"""Core executors - Echo and Script."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, ClassVar

from pydantic import Field

from .compiler import compile_object
from .compiler.namespaces import context_view, is_serializable
from .execution_context import ExecutionContext
from .execution_result import ExecutorResult
from .executor_base import AutomationExecutor
from .sandbox import run_user_function
from .schema import ConfigModel

logger = logging.getLogger(__name__)

# ============================================================================
# Echo Executor
# ============================================================================


class EchoParams(ConfigModel):
    """Parameters for the echo executor (extra keys are echoed back)."""

    model_config = {"extra": "allow"}

    message: str | None = Field(default=None, description="Message to echo back")


class EchoExecutor(AutomationExecutor):
    """
    Echo executor - returns the trigger payload and compiled config.

    Useful for wiring up a chain before the real data source exists, and for
    inspecting what later steps will see.

    Output data:
        triggerParams: The raw trigger payload
        context: Plain-data snapshot of the execution context
        executedAt / executorKey: Envelope metadata repeated for templates
        message: ``config.message`` or a default text
        compiledConfig: The step config after placeholder compilation
    """

    key: ClassVar[str] = "echo"
    label: ClassVar[str] = "Echo"
    description: ClassVar[str | None] = "Return the trigger payload and compiled configuration"

    async def execute(self, trigger: Any, context: ExecutionContext) -> ExecutorResult:
        compiled = compile_object(context.config, context)
        params = EchoParams.model_validate(compiled)
        executed_at = datetime.now()

        snapshot = {
            name: value for name, value in context_view(context).items() if is_serializable(value)
        }

        return ExecutorResult(
            success=True,
            executor_key=self.key,
            executed_at=executed_at,
            data={
                "triggerParams": trigger,
                "context": snapshot,
                "executedAt": executed_at.isoformat(),
                "executorKey": self.key,
                "message": params.message or "No custom message configured",
                "compiledConfig": compiled,
            },
        )


# ============================================================================
# Script Executor
# ============================================================================


class ScriptParams(ConfigModel):
    """Parameters for the script executor."""

    script: str = Field(default="", description="User code receiving (trigger, context)")


class ScriptExecutor(AutomationExecutor):
    """
    Script executor - runs a user-authored snippet.

    The snippet is called with ``(trigger, context)`` where context carries
    ``form``, ``executors``, ``remote_client``, ``timestamp`` and ``config``.
    The code is not compiled for placeholders; it reads values directly.

    Return value normalization:
        dict: ``success`` is true unless the dict says ``False``; ``data`` is
            ``result["data"]`` when present, else the whole dict; ``message``
            and ``metadata`` are folded into the result metadata
        anything else: successful result with the value as data

    Example:
        script = '''
        rows = context.executors[0].data["records"]
        return {"data": [r["name"] for r in rows], "message": "names"}
        '''
    """

    key: ClassVar[str] = "script"
    label: ClassVar[str] = "Script"
    description: ClassVar[str | None] = "Run a user-authored Python snippet"

    async def execute(self, trigger: Any, context: ExecutionContext) -> ExecutorResult:
        params = ScriptParams.model_validate(context.config)
        if not params.script.strip():
            message = "No script configured"
            return ExecutorResult.failed(self.key, message, metadata={"error": message})

        script_context = {
            "form": context.form,
            "executors": context.executor_data(),
            "remote_client": context.remote_client,
            "timestamp": context.timestamp,
            "config": context.config,
        }

        try:
            result = await run_user_function(
                params.script, trigger, script_context, params=("trigger", "context")
            )
        except Exception as e:
            logger.error(f"Script execution failed: {e}")
            return ExecutorResult.failed(self.key, str(e), metadata={"error": str(e)})

        return self._normalize(result)

    def _normalize(self, result: Any) -> ExecutorResult:
        if isinstance(result, dict):
            metadata = dict(result.get("metadata") or {})
            metadata = {"message": result.get("message"), **metadata}
            return ExecutorResult(
                success=result.get("success") is not False,
                executor_key=self.key,
                data=result["data"] if "data" in result else result,
                error=result.get("error") if isinstance(result.get("error"), str) else None,
                metadata=metadata,
            )

        message = result if isinstance(result, str) else "Script execution completed"
        return ExecutorResult.succeeded(self.key, data=result, metadata={"message": message})
