"""
Namespaces bound into placeholder evaluation.

Exactly three names are visible to an expression:

- ``$context``: trigger payload, executor results, step config, timestamp, event
- ``$system``: ISO timestamp, timezone and locale of the running process
- ``$utils``: formatDate, formatJSON, isNull, isUndefined, isEmpty

Nothing else (no builtins, no module globals) is reachable from an expression.
"""

from __future__ import annotations

import json
import locale
from collections.abc import Mapping
from datetime import date, datetime
from typing import Any

from jinja2 import Undefined

from ..execution_context import ExecutionContext


def json_default(value: Any) -> Any:
    """``json.dumps`` fallback for dates, undefined values and pydantic models."""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Undefined):
        return None
    if hasattr(value, "model_dump"):
        return value.model_dump(by_alias=True)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def is_serializable(value: Any) -> bool:
    """Check whether a value survives JSON serialization (no cycles, no opaque objects)."""
    try:
        json.dumps(value, default=json_default)
    except (TypeError, ValueError):
        return False
    return True


def sanitize_trigger(payload: Any) -> Any:
    """
    Build the template-safe view of a trigger payload.

    Drops private keys (leading underscore), callables and values that cannot
    be serialized (circular structures, host objects). Non-mapping payloads
    pass through unchanged.

    Args:
        payload: Raw trigger payload from the UI event

    Returns:
        Sanitized copy for mappings, the payload itself otherwise

    Example:
        >>> sanitize_trigger({"value": 1, "_fiber": object(), "onClick": print})
        {'value': 1}
    """
    if payload is None:
        return None
    if not isinstance(payload, Mapping):
        return payload

    safe: dict[str, Any] = {}
    for key, value in payload.items():
        if not isinstance(key, str) or key.startswith("_") or callable(value):
            continue
        if not is_serializable(value):
            continue
        safe[key] = value
    return safe


# ============================================================================
# $utils
# ============================================================================


def _coerce_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        # Epoch milliseconds when the magnitude says so, seconds otherwise
        seconds = value / 1000 if abs(value) > 1e11 else value
        return datetime.fromtimestamp(seconds)
    if isinstance(value, str):
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    raise ValueError(f"Cannot interpret {value!r} as a date")


def format_date(value: Any, fmt: str | None = None) -> str:
    """
    Format a date-like value.

    Args:
        value: datetime, date, ISO-8601 string, or epoch seconds/milliseconds
        fmt: Optional format. A strftime pattern when it contains '%',
            otherwise any truthy value selects the date-only form.

    Returns:
        Formatted string, or ``str(value)`` when the value is not a date
    """
    try:
        moment = _coerce_datetime(value)
    except (ValueError, TypeError, OverflowError, OSError):
        return str(value)
    if fmt and "%" in fmt:
        return moment.strftime(fmt)
    if fmt:
        return moment.strftime("%Y-%m-%d")
    return moment.strftime("%Y-%m-%d %H:%M:%S")


def format_json(value: Any, space: int | None = 2) -> str:
    """Pretty-print a value as JSON (``str(value)`` if it is not serializable)."""
    try:
        return json.dumps(value, indent=space or 2, ensure_ascii=False, default=json_default)
    except (TypeError, ValueError):
        return str(value)


def is_null(value: Any) -> bool:
    return value is None


def is_undefined(value: Any) -> bool:
    return isinstance(value, Undefined)


def is_empty(value: Any) -> bool:
    """True for null/undefined, blank strings, and empty lists or mappings."""
    if value is None or isinstance(value, Undefined):
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple, Mapping)):
        return len(value) == 0
    return False


UTILS: dict[str, Any] = {
    "formatDate": format_date,
    "formatJSON": format_json,
    "isNull": is_null,
    "isUndefined": is_undefined,
    "isEmpty": is_empty,
}


# ============================================================================
# $system
# ============================================================================


def system_info() -> dict[str, Any]:
    """Process-level metadata: ISO timestamp, timezone name and locale tag."""
    now = datetime.now().astimezone()
    language = locale.getlocale()[0] or "en_US"
    return {
        "timestamp": now.isoformat(),
        "timezone": now.tzname() or "UTC",
        "locale": language.replace("_", "-"),
    }


# ============================================================================
# $context
# ============================================================================


def context_view(context: ExecutionContext | Mapping[str, Any] | None) -> dict[str, Any]:
    """
    Plain-data ``$context`` view of an execution context.

    Accepts a full ExecutionContext or a bare mapping (treated as the context
    fields themselves, with ``trigger`` defaulting to ``originalEvent``).
    """
    if isinstance(context, ExecutionContext):
        return {
            **context.extras,
            "trigger": sanitize_trigger(context.original_event),
            "executors": context.executor_data(),
            "config": context.config,
            "timestamp": context.timestamp,
            "event": context.event,
            "originalEvent": context.original_event,
            "triggerId": context.trigger_id,
            "stepIndex": context.step_index,
        }

    data = dict(context or {})
    original = data.get("originalEvent")
    return {
        "trigger": sanitize_trigger(original),
        "executors": [],
        "config": {},
        "timestamp": datetime.now(),
        "event": None,
        "originalEvent": original,
        **data,
    }


def build_bindings(context: ExecutionContext | Mapping[str, Any] | None) -> dict[str, Any]:
    """Build the complete set of names visible to one placeholder evaluation."""
    return {
        "context": context_view(context),
        "system": system_info(),
        "utils": UTILS,
    }
