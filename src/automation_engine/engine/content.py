"""
Content renderer for display actions (message, modal, popover).

Resolves a content descriptor into a typed ContentResult:

- text mode (default): placeholders are compiled when present, result is TEXT
- function mode: a user snippet receives the execution context and must
  return ``{"type": "HTML" | "MD" | "TEXT", "content": str}``; MD is converted
  to HTML before it reaches the caller

Function failures (exceptions, malformed return values) never propagate. They
become a TEXT result describing the failure, so callers need no try/except.
"""

from __future__ import annotations

import html
import logging
import re
from collections.abc import Mapping
from typing import Any

import markdown
from pydantic import ValidationError

from .compiler import ExpressionCompiler, default_compiler
from .compiler.namespaces import context_view
from .execution_context import ExecutionContext
from .sandbox import run_user_function
from .schema import ContentConfig, ContentKind, ContentResult, ContentType

logger = logging.getLogger(__name__)

# "extra" covers tables and fenced code, "nl2br" keeps single line breaks
MARKDOWN_EXTENSIONS = ["extra", "nl2br", "sane_lists"]

TAG_PATTERN = re.compile(r"<[^>]+>")


def markdown_to_html(text: str) -> str:
    """
    Convert markdown to HTML.

    Falls back to newline-to-``<br>`` conversion if the parser fails.
    """
    try:
        return markdown.markdown(text, extensions=MARKDOWN_EXTENSIONS)
    except Exception as e:
        logger.warning(f"Markdown conversion failed, using line breaks: {e}")
        return text.replace("\n", "<br>")


def strip_tags(text: str) -> str:
    """Plain-text view of HTML content (tags removed, entities decoded)."""
    return html.unescape(TAG_PATTERN.sub("", text))


class ContentFunctionError(ValueError):
    """User content function returned something other than ``{type, content}``."""


class ContentRenderer:
    """
    Render content descriptors against an execution context.

    Example:
        renderer = ContentRenderer()
        result = await renderer.render(
            {"contentType": "function",
             "contentFunction": "lambda context: {'type': 'MD', 'content': '# hi'}"},
            context,
        )
        result.type  # ContentKind.HTML
        result.content  # '<h1>hi</h1>'
    """

    def __init__(self, compiler: ExpressionCompiler | None = None):
        self.compiler = compiler or default_compiler

    async def render(
        self,
        config: ContentConfig | Mapping[str, Any] | str | None,
        context: ExecutionContext | Mapping[str, Any] | None,
    ) -> ContentResult:
        """
        Resolve a content descriptor.

        Args:
            config: ContentConfig, a mapping containing contentType/content/contentFunction,
                or a bare string rendered as text content
            context: Execution context used for placeholders and function input

        Returns:
            ContentResult typed HTML or TEXT
        """
        descriptor = self._parse_config(config)

        if descriptor.content_type == ContentType.FUNCTION and descriptor.content_function.strip():
            return await self._render_function(descriptor.content_function, context)

        content = descriptor.content or ""
        if "{{" in content:
            content = self.compiler.compile(content, context)
        return ContentResult(type=ContentKind.TEXT, content=content)

    @staticmethod
    def _parse_config(config: Any) -> ContentConfig:
        if isinstance(config, ContentConfig):
            return config
        if isinstance(config, str):
            return ContentConfig(content=config)
        try:
            return ContentConfig.model_validate(config or {})
        except ValidationError as e:
            logger.warning(f"Invalid content descriptor, rendering as text: {e}")
            raw = config.get("content", "") if isinstance(config, Mapping) else config
            return ContentConfig(content=raw if isinstance(raw, str) else str(raw))

    async def _render_function(
        self, code: str, context: ExecutionContext | Mapping[str, Any] | None
    ) -> ContentResult:
        try:
            result = await run_user_function(code, context_view(context))
            kind, content = self._validate_function_result(result)
        except Exception as e:
            logger.error(f"Content function failed: {e}")
            return ContentResult(type=ContentKind.TEXT, content=f"Function execution failed: {e}")

        if kind == ContentKind.MD:
            return ContentResult(type=ContentKind.HTML, content=markdown_to_html(content))
        return ContentResult(type=kind, content=content)

    @staticmethod
    def _validate_function_result(result: Any) -> tuple[ContentKind, str]:
        if not isinstance(result, Mapping):
            raise ContentFunctionError("Function must return an object with 'type' and 'content'")

        raw_type = result.get("type")
        if raw_type is None:
            raise ContentFunctionError("Function result is missing 'type'")
        try:
            kind = ContentKind(raw_type)
        except ValueError:
            raise ContentFunctionError(
                f"Invalid content type '{raw_type}', expected HTML, MD or TEXT"
            ) from None

        content = result.get("content")
        if not isinstance(content, str):
            raise ContentFunctionError("Function result 'content' must be a string")
        return kind, content


default_renderer = ContentRenderer()


async def process_content(
    config: ContentConfig | Mapping[str, Any] | None,
    context: ExecutionContext | Mapping[str, Any] | None,
) -> ContentResult:
    """Render content with the shared default renderer."""
    return await default_renderer.render(config, context)
