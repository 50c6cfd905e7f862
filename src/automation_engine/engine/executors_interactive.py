"""Interactive executor - ParameterBuilder.

The parameter builder suspends the chain while a person fills in a small
form. The host supplies a ParameterCollector that renders the prompt and
returns a tagged CollectionOutcome:

- collected: values keyed by field key, the chain continues
- cancelled: the person dismissed the prompt; the executor raises
  ParameterCollectionCancelled and the orchestrator aborts quietly
- failed: the prompt could not be completed; the executor raises
  ParameterCollectionFailed and the orchestrator aborts with a notification

Fields come either from the step config (ui mode) or from a user function
that builds them from the context (function mode).
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Protocol

from pydantic import Field

from .compiler import compile_template
from .compiler.namespaces import context_view
from .exceptions import ParameterCollectionCancelled, ParameterCollectionFailed
from .execution_context import ExecutionContext
from .execution_result import ExecutorResult
from .executor_base import AutomationExecutor
from .sandbox import run_user_function
from .schema import ConfigModel, FieldOption, FieldType, ParameterField

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Enter parameters"


# ============================================================================
# Collection outcome and collector contract
# ============================================================================


class CollectionStatus(str, Enum):
    COLLECTED = "collected"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass(frozen=True)
class CollectionOutcome:
    """
    Tagged result of one parameter prompt.

    Example:
        CollectionOutcome.collected({"name": "Ada"})
        CollectionOutcome.cancelled()
        CollectionOutcome.failed("Form could not be rendered")
    """

    status: CollectionStatus
    values: dict[str, Any] = field(default_factory=dict)
    reason: str | None = None

    @classmethod
    def collected(cls, values: dict[str, Any]) -> CollectionOutcome:
        return cls(status=CollectionStatus.COLLECTED, values=dict(values))

    @classmethod
    def cancelled(cls) -> CollectionOutcome:
        return cls(status=CollectionStatus.CANCELLED)

    @classmethod
    def failed(cls, reason: str) -> CollectionOutcome:
        return cls(status=CollectionStatus.FAILED, reason=reason)


class ParameterCollector(Protocol):
    """Host capability that prompts a person for parameter values."""

    async def collect(self, title: str, fields: list[ParameterField]) -> CollectionOutcome: ...


class CancellingCollector:
    """Collector for non-interactive hosts: every prompt is dismissed."""

    async def collect(self, title: str, fields: list[ParameterField]) -> CollectionOutcome:
        logger.info(f"No interactive input available, cancelling prompt '{title}'")
        return CollectionOutcome.cancelled()


class PresetCollector:
    """
    Collector answering prompts from preset values.

    Fields without a preset answer are left out, so required-field
    validation reports them.
    """

    def __init__(self, values: dict[str, Any]):
        self.values = dict(values)

    async def collect(self, title: str, fields: list[ParameterField]) -> CollectionOutcome:
        answers = {f.key: self.values[f.key] for f in fields if f.key in self.values}
        return CollectionOutcome.collected(answers)


# ============================================================================
# ParameterBuilder Executor
# ============================================================================


class FieldConfig(ConfigModel):
    """Field row as stored by the config UI (or returned by a builder function)."""

    field_key: str
    field_label: str = ""
    field_type: FieldType = FieldType.INPUT
    options: list[FieldOption] | None = None

    def to_field(self) -> ParameterField:
        """Prompt field. Every field is required; options only apply to selects."""
        return ParameterField(
            key=self.field_key,
            label=self.field_label or self.field_key,
            type=self.field_type,
            required=True,
            options=self.options if self.field_type == FieldType.SELECT else None,
        )


class ParameterBuilderParams(ConfigModel):
    """Parameters for the parameter-builder executor."""

    title: str = ""
    mode: str = Field(default="ui", description="'ui' (configured fields) or 'function'")
    fields: list[dict[str, Any]] = Field(default_factory=list)
    function_code: str = Field(default="", description="Builder returning a list of fields")


class ParameterBuilderExecutor(AutomationExecutor):
    """
    Parameter builder - asks the user for values before the chain continues.

    Output:
        data: Collected values keyed by field key (``{}`` when no fields)
        metadata: ``{"fields": [...], "mode": "ui" | "function"}``

    Raises:
        ParameterCollectionCancelled: The user dismissed the prompt
        ParameterCollectionFailed: Field building, prompting or validation failed

    Example function-mode builder:
        def build(context):
            return [{"fieldKey": "qty", "fieldLabel": "Quantity", "fieldType": "number"}]
    """

    key: ClassVar[str] = "parameter-builder"
    label: ClassVar[str] = "Parameter builder"
    description: ClassVar[str | None] = "Collect parameters from the user before continuing"
    interactive: ClassVar[bool] = True

    def __init__(self, collector: ParameterCollector | None = None):
        self.collector = collector or CancellingCollector()

    async def execute(self, trigger: Any, context: ExecutionContext) -> ExecutorResult:
        params = ParameterBuilderParams.model_validate(context.config)

        try:
            fields = await self._build_fields(params, trigger, context)
            metadata = {"fields": [f.model_dump() for f in fields], "mode": params.mode}

            if not fields:
                return ExecutorResult.succeeded(self.key, data={}, metadata=metadata)

            title = compile_template(params.title, context) or DEFAULT_TITLE
            outcome = await self.collector.collect(title, fields)

            if outcome.status == CollectionStatus.CANCELLED:
                raise ParameterCollectionCancelled("User cancelled parameter collection")
            if outcome.status == CollectionStatus.FAILED:
                raise ParameterCollectionFailed(
                    f"Parameter builder execution failed: {outcome.reason}"
                )

            values = self._process_values(fields, outcome.values)
        except (ParameterCollectionCancelled, ParameterCollectionFailed):
            raise
        except Exception as e:
            raise ParameterCollectionFailed(f"Parameter builder execution failed: {e}") from e

        return ExecutorResult.succeeded(self.key, data=values, metadata=metadata)

    async def _build_fields(
        self, params: ParameterBuilderParams, trigger: Any, context: ExecutionContext
    ) -> list[ParameterField]:
        if params.mode == "function" and params.function_code.strip():
            builder_context = {
                **context_view(context),
                "trigger": trigger,
                "event": {"type": context.event, "data": trigger},
                "timestamp": int(context.timestamp.timestamp() * 1000),
            }
            try:
                rows = await run_user_function(params.function_code, builder_context)
            except Exception as e:
                raise ValueError(f"Function execution failed: {e}") from e
            if not isinstance(rows, list):
                raise ValueError("Function must return a list of parameter fields")
        else:
            rows = params.fields

        return [FieldConfig.model_validate(row).to_field() for row in rows]

    @staticmethod
    def _process_values(fields: list[ParameterField], values: dict[str, Any]) -> dict[str, Any]:
        missing = [
            f.label
            for f in fields
            if f.required and (values.get(f.key) is None or str(values.get(f.key)).strip() == "")
        ]
        if missing:
            raise ValueError(f"Required fields are empty: {', '.join(missing)}")

        processed = dict(values)
        for f in fields:
            raw = processed.get(f.key)
            if f.type == FieldType.SELECT and isinstance(raw, str):
                try:
                    decoded = json.loads(raw)
                except json.JSONDecodeError:
                    continue
                if isinstance(decoded, (dict, list)):
                    processed[f.key] = decoded
        return processed
