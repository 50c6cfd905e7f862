"""Automation engine core components.

This package contains the event-driven automation engine: a configured chain
of data-producing executors followed by side-effecting actions, run per UI
event.

Key Components:

- AutomationRunner: Runs the chain bound to an event (returns TriggerReport)
- AutomationManager: Facade owning the trigger/executor/action registries
- Registry / EventRegistry: Keyed stores for pluggable components
- ExpressionCompiler: ``{{expr}}`` placeholder compiler (capability-scoped)
- ContentRenderer: Text/function content descriptors to TEXT or HTML
- AutomationExecutor / ExecutorRegistry: Executor contract and lookup
- AutomationAction / ActionRegistry: Action contract and lookup
- ParameterBuilderExecutor: Human-in-the-loop parameter collection
- ExecutionContext: Immutable per-step snapshot threaded through a trigger
- ExecutorResult / TriggerReport: Result envelopes
- TriggerGuard: Re-entrancy and debounce guard for UI call sites
- LoadResult: Error monad for configuration loading

Architecture:
- Executors run strictly in order; results stay index-aligned with the config
- Parameter-collection cancellation is an exception type, not an error
- Ordinary executor and action failures never stop their siblings
- Compiler and renderer failures never propagate
"""

from .action_base import ActionRegistry, AutomationAction
from .actions_form import FormValueSetterAction
from .actions_ui import (
    ClipboardWriteAction,
    ConsoleAction,
    MessageAction,
    ModalAction,
    OpenLinkAction,
    PopoverAction,
)
from .compiler import ExpressionCompiler, compile_object, compile_template
from .content import ContentRenderer, process_content
from .exceptions import (
    ActionNotFoundError,
    ExecutorNotFoundError,
    ParameterCollectionCancelled,
    ParameterCollectionFailed,
    RemoteDataError,
    UnsafeCodeError,
)
from .execution_context import ExecutionContext, FormHandle, RemoteClient
from .execution_result import ActionFailure, ExecutorResult, TriggerReport, TriggerStatus
from .executor_base import AutomationExecutor, ExecutorRegistry
from .executors_core import EchoExecutor, ScriptExecutor
from .executors_http import DataQueryExecutor, HttpRequestExecutor
from .executors_interactive import (
    CancellingCollector,
    CollectionOutcome,
    CollectionStatus,
    ParameterBuilderExecutor,
    ParameterCollector,
    PresetCollector,
)
from .load_result import LoadResult, LoadStatus
from .loader import AutomationConfigLoader, load_automation_config, load_automation_from_yaml
from .manager import AutomationManager, create_default_manager
from .orchestrator import AutomationRunner, Notifier
from .registry import EventRegistry, Registry
from .schema import (
    AutomationConfig,
    ContentConfig,
    ContentKind,
    ContentResult,
    ContentType,
    EventConfig,
    EventDefinition,
    ParameterField,
    StepConfig,
    TriggerComponent,
)
from .trigger_guard import TriggerGuard
from .ui_host import LoggingUiHost, OverlaySpec, OverlayTracker, UiHost, UiPointerState

__all__ = [
    # Orchestration
    "AutomationRunner",
    "AutomationManager",
    "create_default_manager",
    "TriggerGuard",
    "Notifier",
    # Registries
    "Registry",
    "EventRegistry",
    "ExecutorRegistry",
    "ActionRegistry",
    # Contracts
    "AutomationExecutor",
    "AutomationAction",
    "ExecutionContext",
    "FormHandle",
    "RemoteClient",
    "ExecutorResult",
    "TriggerReport",
    "TriggerStatus",
    "ActionFailure",
    # Compiler and content
    "ExpressionCompiler",
    "compile_template",
    "compile_object",
    "ContentRenderer",
    "process_content",
    # Built-in executors
    "EchoExecutor",
    "ScriptExecutor",
    "HttpRequestExecutor",
    "DataQueryExecutor",
    "ParameterBuilderExecutor",
    # Parameter collection
    "ParameterCollector",
    "CollectionOutcome",
    "CollectionStatus",
    "CancellingCollector",
    "PresetCollector",
    # Built-in actions
    "ConsoleAction",
    "MessageAction",
    "OpenLinkAction",
    "ClipboardWriteAction",
    "FormValueSetterAction",
    "ModalAction",
    "PopoverAction",
    # UI host
    "UiHost",
    "LoggingUiHost",
    "OverlaySpec",
    "OverlayTracker",
    "UiPointerState",
    # Configuration
    "AutomationConfig",
    "EventConfig",
    "StepConfig",
    "ContentConfig",
    "ContentResult",
    "ContentType",
    "ContentKind",
    "ParameterField",
    "EventDefinition",
    "TriggerComponent",
    "AutomationConfigLoader",
    "load_automation_config",
    "load_automation_from_yaml",
    "LoadResult",
    "LoadStatus",
    # Exceptions
    "ParameterCollectionCancelled",
    "ParameterCollectionFailed",
    "ExecutorNotFoundError",
    "ActionNotFoundError",
    "UnsafeCodeError",
    "RemoteDataError",
]
