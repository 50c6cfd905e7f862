"""
Syntax rules mapping the JavaScript-like placeholder dialect onto Jinja2.

Rewrites only touch code, never the inside of string literals, so
``{{$context.trigger.op === '&&'}}`` keeps its literal intact.

Rules:
    - NamespacePrefixRule: ``$context`` / ``$system`` / ``$utils`` -> bound names
    - StrictEqualityRule: ``===`` / ``!==`` -> ``==`` / ``!=``
    - LogicalOperatorRule: ``&&`` / ``||`` / ``!`` -> ``and`` / ``or`` / ``not``
    - NullLiteralRule: ``null`` / ``undefined`` -> ``none``
    - LengthPropertyRule: ``x.length`` -> ``x|length``
"""

import re
from collections.abc import Callable

from .rules import RuleContext, RuleType, TransformRule

# Single- or double-quoted literal with backslash escapes
STRING_LITERAL = re.compile(r"""("(?:\\.|[^"\\])*"|'(?:\\.|[^'\\])*')""")

NAMESPACE_PREFIXES = ("context", "system", "utils")


def rewrite_code(expression: str, rewrite: Callable[[str], str]) -> str:
    """
    Apply ``rewrite`` to every code segment, leaving string literals untouched.

    Args:
        expression: Expression to rewrite
        rewrite: Function applied to each non-literal segment

    Returns:
        Rewritten expression

    Example:
        >>> rewrite_code("a && 'x && y'", lambda s: s.replace("&&", "and"))
        "a and 'x && y'"
    """
    parts = STRING_LITERAL.split(expression)
    # re.split with one capture group alternates code, literal, code, ...
    return "".join(part if index % 2 else rewrite(part) for index, part in enumerate(parts))


def code_contains(expression: str, pattern: re.Pattern[str]) -> bool:
    """Check whether ``pattern`` occurs outside string literals."""
    parts = STRING_LITERAL.split(expression)
    return any(pattern.search(part) for part in parts[::2])


class NamespacePrefixRule(TransformRule):
    """
    Map dollar-prefixed namespaces onto the evaluator's bound names.

    Transforms: $context.trigger.value -> context.trigger.value
    Reason: Jinja2 identifiers cannot start with '$'
    """

    rule_type = RuleType.NAMESPACE
    priority = 10

    PATTERN = re.compile(r"\$(" + "|".join(NAMESPACE_PREFIXES) + r")\b")

    def applies_to(self, context: RuleContext) -> bool:
        return code_contains(context.expression, self.PATTERN)

    def transform(self, context: RuleContext) -> RuleContext:
        context.expression = rewrite_code(context.expression, lambda s: self.PATTERN.sub(r"\1", s))
        return context

    @property
    def description(self) -> str:
        return "Map $context/$system/$utils onto bound names"


class StrictEqualityRule(TransformRule):
    """Transforms: a === b -> a == b, a !== b -> a != b"""

    rule_type = RuleType.SYNTAX
    priority = 20

    PATTERN = re.compile(r"[=!]==")

    def applies_to(self, context: RuleContext) -> bool:
        return code_contains(context.expression, self.PATTERN)

    def transform(self, context: RuleContext) -> RuleContext:
        context.expression = rewrite_code(
            context.expression, lambda s: s.replace("!==", "!=").replace("===", "==")
        )
        return context

    @property
    def description(self) -> str:
        return "Convert strict equality operators"


class LogicalOperatorRule(TransformRule):
    """Transforms: a && !b || c -> a and not b or c"""

    rule_type = RuleType.SYNTAX
    priority = 21

    PATTERN = re.compile(r"&&|\|\||!(?!=)")
    NEGATION = re.compile(r"!(?!=)")

    def applies_to(self, context: RuleContext) -> bool:
        return code_contains(context.expression, self.PATTERN)

    def transform(self, context: RuleContext) -> RuleContext:
        def rewrite(segment: str) -> str:
            segment = segment.replace("&&", " and ").replace("||", " or ")
            return self.NEGATION.sub(" not ", segment)

        context.expression = rewrite_code(context.expression, rewrite)
        return context

    @property
    def description(self) -> str:
        return "Convert logical operators to keywords"


class NullLiteralRule(TransformRule):
    """Transforms: x === null -> x == none"""

    rule_type = RuleType.SYNTAX
    priority = 22

    PATTERN = re.compile(r"(?<![\w.])(null|undefined)\b")

    def applies_to(self, context: RuleContext) -> bool:
        return code_contains(context.expression, self.PATTERN)

    def transform(self, context: RuleContext) -> RuleContext:
        context.expression = rewrite_code(context.expression, lambda s: self.PATTERN.sub("none", s))
        return context

    @property
    def description(self) -> str:
        return "Convert null/undefined literals"


class LengthPropertyRule(TransformRule):
    """
    Convert the length property into the length filter.

    Transforms: context.executors.length -> context.executors|length
    Reason: Python sequences have no length attribute
    """

    rule_type = RuleType.SYNTAX
    priority = 30

    PATTERN = re.compile(r"\.length\b")

    def applies_to(self, context: RuleContext) -> bool:
        return code_contains(context.expression, self.PATTERN)

    def transform(self, context: RuleContext) -> RuleContext:
        context.expression = rewrite_code(
            context.expression, lambda s: self.PATTERN.sub("|length", s)
        )
        return context

    @property
    def description(self) -> str:
        return "Convert .length into the length filter"
