"""
Placeholder compiler with rule-based rewriting and sandboxed evaluation.

Architecture:
    Template string
          |
    Placeholder scan ({{ ... }})
          |
    Rewrite pipeline (security, namespace, syntax rules)
          |
    Sandboxed Jinja2 expression (only $context, $system, $utils bound)
          |
    Stringify result (or keep the placeholder verbatim)

Policy:
- A placeholder whose value is null/undefined is kept verbatim, never blanked.
- A placeholder that fails to parse or raises is kept verbatim and logged as a
  warning; the rest of the template still compiles.
- Compilation never mutates the context or the input (immutable sandbox).

Example:
    compiler = ExpressionCompiler()
    compiler.compile("Hello {{$context.trigger.name}}", {"originalEvent": {"name": "Ada"}})
    # 'Hello Ada'
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping
from functools import lru_cache
from typing import Any

from jinja2 import Undefined
from jinja2.environment import TemplateExpression
from jinja2.sandbox import ImmutableSandboxedEnvironment

from ..execution_context import ExecutionContext
from .namespaces import build_bindings, json_default
from .rules import RuleContext, TransformRule
from .security_rules import ForbiddenNamespaceRule
from .syntax_rules import (
    LengthPropertyRule,
    LogicalOperatorRule,
    NamespacePrefixRule,
    NullLiteralRule,
    StrictEqualityRule,
)

logger = logging.getLogger(__name__)

PLACEHOLDER = re.compile(r"\{\{([^}]+)\}\}")
EXPRESSION_CACHE_SIZE = 512

CompileContext = ExecutionContext | Mapping[str, Any] | None


class ExpressionEnvironment(ImmutableSandboxedEnvironment):
    """
    Sandboxed, immutable Jinja2 environment for placeholder expressions.

    Differences from the stock sandbox:
    - Mapping keys win over attributes, so ``trigger.items`` reads the
      ``items`` key rather than the dict method.
    - No global functions are registered: the only names in scope are the
      bindings passed at call time.
    """

    def __init__(self) -> None:
        super().__init__(autoescape=False, undefined=Undefined)
        self.globals.clear()

    def getattr(self, obj: Any, attribute: str) -> Any:
        if isinstance(obj, Mapping) and attribute in obj:
            return obj[attribute]
        return super().getattr(obj, attribute)


def stringify(value: Any) -> str:
    """
    Render an evaluated value for substitution into text.

    Booleans render as ``true``/``false``, integral floats drop the fraction,
    containers render as compact JSON.
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (Mapping, list, tuple)):
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"), default=json_default)
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


class ExpressionCompiler:
    """
    Compile ``{{expr}}`` placeholders in strings and nested plain data.

    Rules run in priority order before each expression is compiled. Custom
    rules can be passed to extend the dialect.

    Example:
        compiler = ExpressionCompiler()
        context = ExecutionContext(event="onClick", original_event={"qty": 2})
        compiler.compile("{{$context.trigger.qty * 10}}", context)  # '20'
        compiler.compile("{{$context.trigger.missing}}", context)  # kept verbatim
        compiler.compile_object({"n": ["{{$context.event}}", 3]}, context)
        # {'n': ['onClick', 3]}
    """

    def __init__(
        self,
        rules: list[TransformRule] | None = None,
        cache_size: int = EXPRESSION_CACHE_SIZE,
    ):
        """
        Initialize compiler.

        Args:
            rules: Optional extra rewrite rules (merged with the defaults)
            cache_size: Number of compiled expressions kept (least recently used evicted)
        """
        self.env = ExpressionEnvironment()
        self.rules = self._initialize_rules(rules)
        self._compiled = lru_cache(maxsize=cache_size)(self._compile_source)

    def _compile_source(self, source: str) -> TemplateExpression:
        return self.env.compile_expression(source, undefined_to_none=False)

    def _initialize_rules(self, custom_rules: list[TransformRule] | None) -> list[TransformRule]:
        default_rules: list[TransformRule] = [
            ForbiddenNamespaceRule(),  # Security first
            NamespacePrefixRule(),
            StrictEqualityRule(),
            LogicalOperatorRule(),
            NullLiteralRule(),
            LengthPropertyRule(),
        ]
        all_rules = default_rules + (custom_rules or [])
        return sorted(all_rules, key=lambda r: r.priority)

    def rewrite(self, expression: str) -> str:
        """
        Run the rule pipeline over one expression.

        Raises:
            SecurityError: If a security rule rejects the expression
        """
        context = RuleContext(expression=expression)
        for rule in self.rules:
            if rule.applies_to(context):
                context = rule.transform(context)
        return context.expression

    def evaluate(self, expression: str, bindings: dict[str, Any]) -> Any:
        """
        Evaluate one expression against prepared bindings.

        Args:
            expression: Inner placeholder expression (without braces)
            bindings: Names in scope (see ``build_bindings``)

        Returns:
            Evaluated value; jinja2.Undefined for missing properties

        Raises:
            SecurityError: Expression rejected by a security rule
            jinja2.TemplateError: Syntax error, undefined access or sandbox violation
            Exception: Anything raised while evaluating
        """
        source = self.rewrite(expression)
        return self._compiled(source)(bindings)

    def _compile_with(self, template: str, bindings: dict[str, Any]) -> str:
        def substitute(match: re.Match[str]) -> str:
            expression = match.group(1).strip()
            try:
                value = self.evaluate(expression, bindings)
            except Exception as e:
                logger.warning(f"Failed to compile expression '{expression}': {e}")
                return match.group(0)
            if value is None or isinstance(value, Undefined):
                return match.group(0)
            return stringify(value)

        return PLACEHOLDER.sub(substitute, template)

    def compile(self, template: Any, context: CompileContext = None) -> Any:
        """
        Substitute every placeholder in a template string.

        Args:
            template: Template string (non-strings are returned unchanged)
            context: ExecutionContext or plain mapping of context fields

        Returns:
            Compiled string, or the input itself if it is not a string
        """
        if not isinstance(template, str) or "{{" not in template:
            return template
        return self._compile_with(template, build_bindings(context))

    def compile_object(self, value: Any, context: CompileContext = None) -> Any:
        """
        Recursively compile every string leaf of nested plain data.

        Lists are mapped element-wise and mappings key-wise (keys untouched).
        Any other value is returned as-is. New containers are returned; the
        input is never modified.

        Args:
            value: Nested plain data
            context: ExecutionContext or plain mapping of context fields

        Returns:
            Structure of identical shape with compiled string leaves
        """
        bindings: dict[str, Any] | None = None

        def walk(node: Any) -> Any:
            nonlocal bindings
            if isinstance(node, str):
                if "{{" not in node:
                    return node
                if bindings is None:
                    bindings = build_bindings(context)
                return self._compile_with(node, bindings)
            if isinstance(node, list):
                return [walk(item) for item in node]
            if isinstance(node, tuple):
                return tuple(walk(item) for item in node)
            if isinstance(node, Mapping):
                return {key: walk(item) for key, item in node.items()}
            return node

        return walk(value)


default_compiler = ExpressionCompiler()


def compile_template(template: Any, context: CompileContext = None) -> Any:
    """Compile a template with the shared default compiler."""
    return default_compiler.compile(template, context)


def compile_object(value: Any, context: CompileContext = None) -> Any:
    """Compile nested data with the shared default compiler."""
    return default_compiler.compile_object(value, context)
