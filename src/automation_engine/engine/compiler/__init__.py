"""
Placeholder compiler package.

Evaluates ``{{expr}}`` placeholders against a capability-scoped set of
bindings (``$context``, ``$system``, ``$utils``):

1. Rule-based rewrite pipeline (security, namespace, syntax)
2. Sandboxed, immutable Jinja2 expression evaluation
3. Stringification with keep-verbatim policy for null/undefined/errors

Public API:
    - ExpressionCompiler: Compiler class (custom rules supported)
    - compile_template / compile_object: Shared default compiler
    - TransformRule, RuleType, RuleContext: Rule extension points
    - SecurityError: Raised by security rules
"""

from .compiler import ExpressionCompiler, compile_object, compile_template, default_compiler
from .namespaces import build_bindings, sanitize_trigger
from .rules import RuleContext, RuleType, TransformRule
from .security_rules import SecurityError

__all__ = [
    "ExpressionCompiler",
    "compile_template",
    "compile_object",
    "default_compiler",
    "build_bindings",
    "sanitize_trigger",
    "TransformRule",
    "RuleType",
    "RuleContext",
    "SecurityError",
]
