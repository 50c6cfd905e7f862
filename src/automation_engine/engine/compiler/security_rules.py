"""
Security rules for placeholder expressions.

The sandboxed Jinja2 environment already refuses unsafe attribute access at
runtime. These rules reject obviously hostile expressions before they are
compiled at all, so they surface as a per-placeholder warning.

Rules:
    - ForbiddenNamespaceRule: Block dunder access and dangerous call names
"""

from .rules import RuleContext, RuleType, TransformRule


class SecurityError(Exception):
    """Raised when an expression violates a security rule."""

    pass


class ForbiddenNamespaceRule(TransformRule):
    """
    Block access to interpreter internals.

    Prevents:
    - Any dunder name (``__class__``, ``__globals__``, ``__builtins__``, ...)
    - Dangerous call names: exec, eval, compile, open, import
    """

    rule_type = RuleType.SECURITY
    priority = 1

    FORBIDDEN_PATTERNS = [
        "__",
        "exec(",
        "eval(",
        "compile(",
        "open(",
        "import(",
    ]

    def applies_to(self, context: RuleContext) -> bool:
        return any(pattern in context.expression for pattern in self.FORBIDDEN_PATTERNS)

    def transform(self, context: RuleContext) -> RuleContext:
        for pattern in self.FORBIDDEN_PATTERNS:
            if pattern in context.expression:
                raise SecurityError(f"Access to '{pattern}' is forbidden in expressions")
        return context

    @property
    def description(self) -> str:
        return "Prevent access to interpreter internals and dangerous functions"
