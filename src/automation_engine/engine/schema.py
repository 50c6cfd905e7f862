"""
Pydantic models for automation configuration and content descriptors.

The persisted automation configuration is plain camelCase JSON stored by the
host next to its component metadata. Models here use snake_case attributes with
camelCase aliases and accept either spelling on input, so a stored document
round-trips through ``model_dump(by_alias=True)``.

Only documented fields are preserved: unknown keys are ignored on load.

Example:
    config = AutomationConfig.model_validate({
        "eventConfigs": {
            "onClick": {
                "executors": [{"key": "echo", "params": {"message": "hi"}}],
                "actions": [{"key": "console"}],
            }
        }
    })
    config.get_event("onClick").executors[0].enabled  # True
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class ConfigModel(BaseModel):
    """Base model for persisted configuration (camelCase aliases, unknown keys dropped)."""

    model_config = {"alias_generator": to_camel, "populate_by_name": True, "extra": "ignore"}


# ============================================================================
# Automation configuration
# ============================================================================


class StepConfig(ConfigModel):
    """One configured executor or action step."""

    key: str = Field(description="Registry key of the executor/action to run")
    params: dict[str, Any] = Field(
        default_factory=dict,
        description="Step parameters, compiled against the execution context before use",
    )
    enabled: bool = Field(default=True, description="Disabled steps are skipped")


class EventConfig(ConfigModel):
    """Executor chain and action list bound to one component event."""

    executors: list[StepConfig] = Field(default_factory=list)
    actions: list[StepConfig] = Field(default_factory=list)


class AutomationConfig(ConfigModel):
    """Mapping from event key to its configured chain for one component instance."""

    event_configs: dict[str, EventConfig] = Field(default_factory=dict)

    def get_event(self, event_key: str) -> EventConfig | None:
        """Return the configuration for an event, or None if unbound."""
        return self.event_configs.get(event_key)


# ============================================================================
# Content descriptors
# ============================================================================


class ContentType(str, Enum):
    """How an action derives its display content."""

    TEXT = "text"
    FUNCTION = "function"


class ContentKind(str, Enum):
    """Type tag of rendered content."""

    HTML = "HTML"
    MD = "MD"
    TEXT = "TEXT"


class ContentConfig(ConfigModel):
    """Content descriptor embedded in action configs (message, modal, popover)."""

    content_type: ContentType = ContentType.TEXT
    content: str = ""
    content_function: str = ""


class ContentResult(BaseModel):
    """Rendered content. MD results are converted to HTML before reaching callers."""

    type: ContentKind
    content: str

    @property
    def is_html(self) -> bool:
        return self.type == ContentKind.HTML


# ============================================================================
# Parameter collection
# ============================================================================


class FieldType(str, Enum):
    """Input widget types a parameter collector can render."""

    INPUT = "input"
    TEXTAREA = "textarea"
    NUMBER = "number"
    SELECT = "select"
    SWITCH = "switch"


class FieldOption(BaseModel):
    """Choice offered by a select field."""

    label: str = ""
    value: Any = None


class ParameterField(BaseModel):
    """Field the user is asked to fill in before the chain continues."""

    key: str
    label: str
    type: FieldType = FieldType.INPUT
    required: bool = True
    options: list[FieldOption] | None = None


# ============================================================================
# Trigger components
# ============================================================================


class EventDefinition(BaseModel):
    """Event a trigger component can fire."""

    key: str
    label: str
    description: str | None = None


class TriggerComponent(BaseModel):
    """UI component kind that can fire automation events."""

    key: str
    display_name: str
    supported_events: list[EventDefinition] = Field(default_factory=list)
