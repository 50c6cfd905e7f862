"""Shared test configuration for automation-engine tests.

Provides:
- Recording fakes for the UI host, host form and parameter collector
- A mocked remote client (AsyncMock) for executor tests
- HTTP mock server for the remote data service (replaces real APIs)
- A small sqlite database for SQL and collection queries
- Reset of the process-wide overlay tracker and pointer state
"""

from __future__ import annotations

import json
import sqlite3
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, Mock

import pytest
from pytest_httpserver import HTTPServer
from werkzeug.wrappers import Request, Response

from automation_engine.engine import (
    CollectionOutcome,
    ExecutionContext,
    OverlaySpec,
    ParameterField,
    create_default_manager,
)
from automation_engine.engine.manager import AutomationManager
from automation_engine.engine.schema import ContentResult
from automation_engine.engine.ui_host import overlay_tracker, pointer_state


class RecordingUiHost:
    """UiHost that records every display call as ``(method, args)``."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.removed: list[Any] = []
        self._next_handle = 0

    def named(self, method: str) -> list[tuple[Any, ...]]:
        return [args for name, args in self.calls if name == method]

    def console(
        self, trigger: Any, executors: list[dict[str, Any]], config: dict[str, Any]
    ) -> None:
        self.calls.append(("console", (trigger, executors, config)))

    def notify(self, type: str, text: str, duration: float) -> None:
        self.calls.append(("notify", (type, text, duration)))

    def open_link(self, url: str, new_window: bool) -> None:
        self.calls.append(("open_link", (url, new_window)))

    def write_clipboard(self, text: str) -> None:
        self.calls.append(("write_clipboard", (text,)))

    def show_modal(self, title: str, content: ContentResult, width: int, type: str) -> None:
        self.calls.append(("show_modal", (title, content, width, type)))

    def show_overlay(self, spec: OverlaySpec) -> int:
        self._next_handle += 1
        self.calls.append(("show_overlay", (spec,)))
        return self._next_handle

    def remove_overlay(self, handle: Any) -> None:
        self.removed.append(handle)
        self.calls.append(("remove_overlay", (handle,)))


class FakeForm:
    """Host form keyed by field name. Fields listed in ``read_only`` reject writes."""

    def __init__(self, values: dict[str, Any] | None = None, read_only: set[str] | None = None):
        self.values = dict(values or {})
        self.read_only = set(read_only or ())

    def get_value(self, field_name: str) -> Any:
        return self.values.get(field_name)

    def set_value(self, field_name: str, value: Any) -> None:
        if field_name in self.read_only:
            raise PermissionError(f"Field '{field_name}' is read-only")
        self.values[field_name] = value


class ScriptedCollector:
    """ParameterCollector returning a fixed outcome and recording prompts."""

    def __init__(self, outcome: CollectionOutcome):
        self.outcome = outcome
        self.prompts: list[tuple[str, list[ParameterField]]] = []

    async def collect(self, title: str, fields: list[ParameterField]) -> CollectionOutcome:
        self.prompts.append((title, fields))
        return self.outcome


@pytest.fixture(autouse=True)
def reset_ui_state() -> Iterator[None]:
    """Process-wide overlay and pointer state must not leak between tests."""
    overlay_tracker.dismiss()
    pointer_state.reset()
    yield
    overlay_tracker.dismiss()
    pointer_state.reset()


@pytest.fixture
def host() -> RecordingUiHost:
    return RecordingUiHost()


@pytest.fixture
def form() -> FakeForm:
    return FakeForm({"name": "Ada"})


@pytest.fixture
def remote_client() -> Mock:
    """Remote client whose calls return empty envelopes unless reconfigured."""
    client = Mock()
    client.fetch_data = AsyncMock(return_value={"data": {}})
    client.list_records = AsyncMock(return_value={"data": [], "meta": {"count": 0}})
    return client


@pytest.fixture
def make_context() -> Callable[..., ExecutionContext]:
    """Factory for execution contexts with sensible defaults."""

    def _make(
        config: dict[str, Any] | None = None,
        trigger: Any = None,
        event: str = "onClick",
        **changes: Any,
    ) -> ExecutionContext:
        context = ExecutionContext(event=event, original_event=trigger, **changes)
        return context.for_step(config or {}, step_index=0)

    return _make


@pytest.fixture
def manager(host: RecordingUiHost) -> AutomationManager:
    """Default manager drawing on the recording host (parameter prompts cancel)."""
    return create_default_manager(host=host)


@pytest.fixture
def api_mock(httpserver: HTTPServer) -> HTTPServer:
    """
    Local HTTP API for remote data service tests.

    Endpoints:
    - GET /items: ``{"data": [...]}`` envelope, echoes query args in ``args``
    - POST /echo: echoes JSON body, raw body and headers (no envelope)
    - GET /headers: echoes request headers
    - GET /missing: 404
    - GET /text: plain-text body
    """

    def items_handler(request: Request) -> Response:
        data = {
            "data": [{"id": 1, "name": "alpha"}, {"id": 2, "name": "beta"}],
            "args": dict(request.args),
        }
        return Response(json.dumps(data), content_type="application/json")

    def echo_handler(request: Request) -> Response:
        data = {
            "json": request.get_json(silent=True),
            "body": request.data.decode() if request.data else "",
            "method": request.method,
            "headers": {k: v for k, v in request.headers},
        }
        return Response(json.dumps(data), content_type="application/json")

    def headers_handler(request: Request) -> Response:
        data = {"headers": {k: v for k, v in request.headers}}
        return Response(json.dumps(data), content_type="application/json")

    httpserver.expect_request("/items").respond_with_handler(items_handler)
    httpserver.expect_request("/echo", method="POST").respond_with_handler(echo_handler)
    httpserver.expect_request("/headers").respond_with_handler(headers_handler)
    httpserver.expect_request("/missing").respond_with_data("nope", status=404)
    httpserver.expect_request("/text").respond_with_data("plain body", content_type="text/plain")
    return httpserver


@pytest.fixture
def sqlite_db(tmp_path: Path) -> Path:
    """sqlite database with a ``tickets`` table of five rows."""
    path = tmp_path / "app.db"
    conn = sqlite3.connect(path)
    conn.executescript(
        """
        CREATE TABLE tickets (
            id INTEGER PRIMARY KEY,
            title TEXT NOT NULL,
            status TEXT NOT NULL,
            priority INTEGER NOT NULL,
            owner TEXT
        );
        INSERT INTO tickets (id, title, status, priority, owner) VALUES
            (1, 'Login broken', 'open', 5, 'alice'),
            (2, 'Slow report', 'pending', 3, NULL),
            (3, 'Typo on homepage', 'closed', 1, 'bob'),
            (4, 'Export to CSV', 'open', 2, NULL),
            (5, 'Broken link in footer', 'open', 4, 'carol');
        """
    )
    conn.commit()
    conn.close()
    return path
