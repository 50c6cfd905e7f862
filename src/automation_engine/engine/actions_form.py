"""Form action - FormValueSetter."""

from __future__ import annotations

import json
import logging
from typing import Any, ClassVar

from pydantic import Field

from .action_base import AutomationAction
from .compiler import compile_template
from .execution_context import ExecutionContext
from .schema import ConfigModel

logger = logging.getLogger(__name__)


class FieldMapping(ConfigModel):
    """Target field and the template producing its value."""

    field_name: str = ""
    value_expression: Any = ""


class FormValueSetterParams(ConfigModel):
    field_mappings: list[FieldMapping] = Field(default_factory=list)


def decode_literal(value: Any) -> Any:
    """
    Decode JSON objects and arrays produced by template compilation.

    ``'{"a": 1}'`` becomes a dict and ``"[1, 2]"`` a list. Scalars stay as the
    compiled string, so ``"01234"``, ``"12345"`` and ``"null"`` reach the form
    as text.
    """
    if not isinstance(value, str):
        return value
    stripped = value.strip()
    if stripped[:1] + stripped[-1:] not in ("{}", "[]"):
        return value
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        return value


class FormValueSetterAction(AutomationAction):
    """
    Set host form fields from templated expressions.

    Each mapping is applied independently. Mappings with a blank field name
    or expression are skipped with a warning.

    Raises:
        RuntimeError: The context carries no form
        ValueError: One or more fields could not be set (the others were)

    Example config:
        {"fieldMappings": [
            {"fieldName": "total", "valueExpression": "{{$context.executors[0].data.sum}}"}
        ]}
    """

    key: ClassVar[str] = "form-value-setter"
    label: ClassVar[str] = "Set form values"
    description: ClassVar[str | None] = "Write values into fields of the current form"

    async def execute(self, trigger: Any, context: ExecutionContext) -> None:
        params = FormValueSetterParams.model_validate(context.config)
        if not params.field_mappings:
            logger.warning("No field mappings configured")
            return

        form = context.form
        if form is None:
            raise RuntimeError("Form instance not found in context")

        errors: list[str] = []
        for mapping in params.field_mappings:
            if not mapping.field_name or mapping.value_expression in ("", None):
                logger.warning(f"Skipping invalid field mapping: {mapping.model_dump()}")
                continue

            value = decode_literal(compile_template(mapping.value_expression, context))
            try:
                form.set_value(mapping.field_name, value)
            except Exception as e:
                logger.error(f"Failed to set field '{mapping.field_name}': {e}")
                errors.append(f"{mapping.field_name}: {e}")
                continue
            logger.debug(f"Set field '{mapping.field_name}' to {value!r}")

        if errors:
            raise ValueError(f"Failed to set form fields: {'; '.join(errors)}")
