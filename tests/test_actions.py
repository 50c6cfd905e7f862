"""Tests for the built-in actions and the action registry."""

from __future__ import annotations

import asyncio
from collections.abc import Callable

import pytest
from conftest import FakeForm, RecordingUiHost

from automation_engine.engine import (
    ActionNotFoundError,
    ActionRegistry,
    ClipboardWriteAction,
    ConsoleAction,
    ContentKind,
    ExecutionContext,
    ExecutorResult,
    FormValueSetterAction,
    MessageAction,
    ModalAction,
    OpenLinkAction,
    OverlaySpec,
    OverlayTracker,
    PopoverAction,
    StepConfig,
    UiPointerState,
)
from automation_engine.engine.actions_form import decode_literal

ContextFactory = Callable[..., ExecutionContext]


# ============================================================================
# Simple display actions
# ============================================================================


class TestConsoleAction:
    async def test_writes_inputs(self, host: RecordingUiHost, make_context: ContextFactory) -> None:
        context = make_context({"label": "{{$context.trigger.id}}"}, trigger={"id": 3})
        context = context.with_result(ExecutorResult.succeeded("echo", data=1))

        await ConsoleAction(host).execute({"id": 3}, context)

        trigger, executors, config = host.named("console")[0]
        assert trigger == {"id": 3}
        assert executors[0]["executorKey"] == "echo"
        assert config == {"label": "3"}


class TestMessageAction:
    async def test_text_message(self, host: RecordingUiHost, make_context: ContextFactory) -> None:
        context = make_context(
            {"type": "success", "content": "Saved {{$context.trigger.name}}", "duration": 5},
            trigger={"name": "Ada"},
        )

        await MessageAction(host).execute(None, context)

        assert host.named("notify") == [("success", "Saved Ada", 5)]

    async def test_html_is_stripped(
        self, host: RecordingUiHost, make_context: ContextFactory
    ) -> None:
        context = make_context(
            {
                "contentType": "function",
                "contentFunction": "lambda context: {'type': 'MD', 'content': '**Done**'}",
            }
        )

        await MessageAction(host).execute(None, context)

        kind, text, duration = host.named("notify")[0]
        assert text.strip() == "Done"
        assert kind == "info"
        assert duration == 3

    async def test_unknown_type_falls_back_to_info(
        self, host: RecordingUiHost, make_context: ContextFactory
    ) -> None:
        await MessageAction(host).execute(None, make_context({"type": "bogus", "content": "x"}))
        assert host.named("notify")[0][0] == "info"


class TestOpenLinkAction:
    async def test_opens_compiled_link(
        self, host: RecordingUiHost, make_context: ContextFactory
    ) -> None:
        context = make_context(
            {"link": "https://example.com/items/{{$context.trigger.id}}", "newWindow": False},
            trigger={"id": 12},
        )

        await OpenLinkAction(host).execute(None, context)

        assert host.named("open_link") == [("https://example.com/items/12", False)]

    async def test_blank_link_only_warns(
        self,
        host: RecordingUiHost,
        make_context: ContextFactory,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        await OpenLinkAction(host).execute(None, make_context({"link": "  "}))

        assert host.calls == []
        assert "no link configured" in caplog.text


class TestClipboardWriteAction:
    async def test_writes_and_notifies(
        self, host: RecordingUiHost, make_context: ContextFactory
    ) -> None:
        context = make_context({"content": "Order {{$context.trigger.id}}"}, trigger={"id": 8})

        await ClipboardWriteAction(host).execute(None, context)

        assert host.named("write_clipboard") == [("Order 8",)]
        assert host.named("notify") == [("success", "Content copied to clipboard", 3)]

    async def test_empty_content_raises(
        self, host: RecordingUiHost, make_context: ContextFactory
    ) -> None:
        with pytest.raises(ValueError, match="Clipboard content cannot be empty"):
            await ClipboardWriteAction(host).execute(None, make_context({"content": ""}))
        assert host.calls == []


class TestModalAction:
    async def test_shows_rendered_content(
        self, host: RecordingUiHost, make_context: ContextFactory
    ) -> None:
        context = make_context(
            {
                "title": "Order {{$context.trigger.id}}",
                "contentType": "function",
                "contentFunction": "lambda context: {'type': 'HTML', 'content': '<i>x</i>'}",
                "width": 640,
            },
            trigger={"id": 4},
        )

        await ModalAction(host).execute(None, context)

        title, content, width, kind = host.named("show_modal")[0]
        assert title == "Order 4"
        assert content.type == ContentKind.HTML
        assert content.content == "<i>x</i>"
        assert width == 640
        assert kind == "info"

    async def test_defaults(self, host: RecordingUiHost, make_context: ContextFactory) -> None:
        await ModalAction(host).execute(None, make_context())

        title, content, width, _ = host.named("show_modal")[0]
        assert title == "Notice"
        assert content.content == "This is a modal dialog"
        assert width == 520


# ============================================================================
# Popover
# ============================================================================


@pytest.fixture
def tracker() -> OverlayTracker:
    return OverlayTracker()


@pytest.fixture
def pointer() -> UiPointerState:
    return UiPointerState()


class TestPopoverAction:
    """Single-overlay invariant, auto close and anchoring."""

    def test_identity(self, make_context: ContextFactory) -> None:
        assert PopoverAction.identity_for(make_context(trigger_id="btn-1")) == "btn-1#onClick"
        assert PopoverAction.identity_for(make_context(event="onMouseEnter")) == (
            "default#onMouseEnter"
        )

    async def test_shows_overlay(
        self,
        host: RecordingUiHost,
        tracker: OverlayTracker,
        make_context: ContextFactory,
    ) -> None:
        context = make_context(
            {"title": "Row {{$context.trigger.id}}", "content": "tip", "theme": "neon"},
            trigger={"id": 2},
            trigger_id="row-2",
        )

        await PopoverAction(host, tracker=tracker).execute(None, context)

        (spec,) = host.named("show_overlay")[0]
        assert spec.identity == "row-2#onClick"
        assert spec.title == "Row 2"
        assert spec.content.content == "tip"
        assert spec.theme == "default"
        assert spec.size == "medium"
        assert tracker.is_showing("row-2#onClick")

    async def test_same_identity_is_noop(
        self,
        host: RecordingUiHost,
        tracker: OverlayTracker,
        make_context: ContextFactory,
    ) -> None:
        action = PopoverAction(host, tracker=tracker)
        context = make_context({"autoClose": False}, trigger_id="a")

        await action.execute(None, context)
        await action.execute(None, context)

        assert len(host.named("show_overlay")) == 1
        assert host.removed == []

    async def test_new_identity_replaces_previous(
        self,
        host: RecordingUiHost,
        tracker: OverlayTracker,
        make_context: ContextFactory,
    ) -> None:
        action = PopoverAction(host, tracker=tracker)

        await action.execute(None, make_context({"autoClose": False}, trigger_id="a"))
        await action.execute(None, make_context({"autoClose": False}, trigger_id="b"))

        assert host.removed == [1]
        assert tracker.current is not None
        assert tracker.current.identity == "b#onClick"

    async def test_auto_close(
        self,
        host: RecordingUiHost,
        tracker: OverlayTracker,
        make_context: ContextFactory,
    ) -> None:
        await PopoverAction(host, tracker=tracker).execute(None, make_context({"duration": 10}))

        assert tracker.current is not None
        await asyncio.sleep(0.05)

        assert host.removed == [1]
        assert tracker.current is None

    async def test_stale_timer_does_not_remove_newer_overlay(
        self,
        host: RecordingUiHost,
        tracker: OverlayTracker,
        make_context: ContextFactory,
    ) -> None:
        action = PopoverAction(host, tracker=tracker)

        await action.execute(None, make_context({"duration": 10}, trigger_id="a"))
        await action.execute(None, make_context({"autoClose": False}, trigger_id="b"))
        await asyncio.sleep(0.05)

        assert host.removed == [1]
        assert tracker.is_showing("b#onClick")

    async def test_failed_draw_leaves_no_current_overlay(
        self,
        tracker: OverlayTracker,
        make_context: ContextFactory,
    ) -> None:
        class FlakyHost(RecordingUiHost):
            fail_next = False

            def show_overlay(self, spec: OverlaySpec) -> int:
                if self.fail_next:
                    self.fail_next = False
                    raise RuntimeError("draw failed")
                return super().show_overlay(spec)

        host = FlakyHost()
        action = PopoverAction(host, tracker=tracker)
        first = make_context({"autoClose": False}, trigger_id="a")

        await action.execute(None, first)
        host.fail_next = True
        with pytest.raises(RuntimeError, match="draw failed"):
            await action.execute(None, make_context({"autoClose": False}, trigger_id="b"))

        assert host.removed == [1]
        assert tracker.current is None
        assert not tracker.is_showing("a#onClick")

        await action.execute(None, first)
        assert tracker.is_showing("a#onClick")
        assert len(host.named("show_overlay")) == 2

    async def test_close_button_forced_without_auto_close(
        self,
        host: RecordingUiHost,
        tracker: OverlayTracker,
        make_context: ContextFactory,
    ) -> None:
        context = make_context({"autoClose": False, "showCloseButton": False})

        await PopoverAction(host, tracker=tracker).execute(None, context)

        (spec,) = host.named("show_overlay")[0]
        assert spec.show_close_button
        assert tracker.current is not None
        assert tracker.current.timer is None

    @pytest.mark.parametrize(
        ("position", "expected"),
        [
            ("mouse", (5, 6)),
            ("cursor", (30, 40)),
            ("component", (10, 20)),
            ("center", None),
        ],
    )
    async def test_anchor(
        self,
        host: RecordingUiHost,
        tracker: OverlayTracker,
        pointer: UiPointerState,
        make_context: ContextFactory,
        position: str,
        expected: tuple[float, float] | None,
    ) -> None:
        pointer.update_pointer(5, 6)
        pointer.update_element(10, 20)
        pointer.update_input(30, 40)
        action = PopoverAction(host, tracker=tracker, pointer=pointer)

        await action.execute(None, make_context({"position": position, "autoClose": False}))

        (spec,) = host.named("show_overlay")[0]
        assert spec.anchor == expected


def test_anchor_falls_back_to_pointer(pointer: UiPointerState) -> None:
    pointer.update_pointer(1, 2)
    assert pointer.anchor_for("component") == (1, 2)
    assert pointer.anchor_for("cursor") == (1, 2)


# ============================================================================
# Form values
# ============================================================================


class TestFormValueSetterAction:
    def test_decode_literal(self) -> None:
        assert decode_literal('{"a": 1}') == {"a": 1}
        assert decode_literal("[1, 2]") == [1, 2]
        assert decode_literal("12345") == "12345"
        assert decode_literal("01234") == "01234"
        assert decode_literal("null") == "null"
        assert decode_literal("true") == "true"
        assert decode_literal("{not json}") == "{not json}"
        assert decode_literal("Ada") == "Ada"
        assert decode_literal(7) == 7

    async def test_sets_values(self, form: FakeForm, make_context: ContextFactory) -> None:
        config = {
            "fieldMappings": [
                {"fieldName": "total", "valueExpression": "{{$context.executors[0].data.n}}"},
                {"fieldName": "greeting", "valueExpression": "Hi {{$context.trigger.name}}"},
                {"fieldName": "", "valueExpression": "skipped"},
            ]
        }
        context = make_context(config, trigger={"name": "Bo"}, form=form).with_result(
            ExecutorResult.succeeded("echo", data={"n": 42})
        )

        await FormValueSetterAction().execute(None, context)

        assert form.values == {"name": "Ada", "total": "42", "greeting": "Hi Bo"}

    async def test_numeric_text_kept_and_structures_decoded(
        self, form: FakeForm, make_context: ContextFactory
    ) -> None:
        config = {
            "fieldMappings": [
                {"fieldName": "zip", "valueExpression": "{{$context.trigger.zip}}"},
                {"fieldName": "phone", "valueExpression": "{{$context.trigger.phone}}"},
                {"fieldName": "tags", "valueExpression": "{{$context.trigger.tags}}"},
            ]
        }
        trigger = {"zip": "01234", "phone": "12345", "tags": ["a", "b"]}

        await FormValueSetterAction().execute(
            None, make_context(config, trigger=trigger, form=form)
        )

        assert form.values["zip"] == "01234"
        assert form.values["phone"] == "12345"
        assert form.values["tags"] == ["a", "b"]

    async def test_failed_field_does_not_stop_others(self, make_context: ContextFactory) -> None:
        form = FakeForm(read_only={"locked"})
        config = {
            "fieldMappings": [
                {"fieldName": "locked", "valueExpression": "x"},
                {"fieldName": "flag", "valueExpression": "true"},
            ]
        }

        with pytest.raises(ValueError, match="locked: Field 'locked' is read-only"):
            await FormValueSetterAction().execute(None, make_context(config, form=form))

        assert form.values == {"flag": "true"}

    async def test_no_form(self, make_context: ContextFactory) -> None:
        config = {"fieldMappings": [{"fieldName": "a", "valueExpression": "1"}]}
        with pytest.raises(RuntimeError, match="Form instance not found"):
            await FormValueSetterAction().execute(None, make_context(config))

    async def test_no_mappings_is_noop(self, make_context: ContextFactory) -> None:
        await FormValueSetterAction().execute(None, make_context())


# ============================================================================
# Registry
# ============================================================================


class TestActionRegistry:
    async def test_missing_action(self, make_context: ContextFactory) -> None:
        with pytest.raises(ActionNotFoundError):
            await ActionRegistry().execute("nope", None, make_context())

    async def test_execute_multiple_isolates_failures(
        self, host: RecordingUiHost, make_context: ContextFactory
    ) -> None:
        registry = ActionRegistry()
        for action in (ConsoleAction(host), ClipboardWriteAction(host), OpenLinkAction(host)):
            registry.register(action)
        steps = [
            StepConfig(key="console"),
            StepConfig(key="clipboard-write", params={"content": ""}),
            StepConfig(key="missing"),
            StepConfig(key="console", enabled=False),
            StepConfig(key="open_link", params={"link": "https://example.com"}),
        ]

        completed, failures = await registry.execute_multiple(steps, None, make_context())

        assert completed == ["console", "open_link"]
        assert [(f.index, f.action_key) for f in failures] == [
            (1, "clipboard-write"),
            (2, "missing"),
        ]
        assert failures[0].error == "Clipboard content cannot be empty"
        assert len(host.named("console")) == 1
