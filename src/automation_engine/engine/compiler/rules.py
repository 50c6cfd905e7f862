"""
Rule system foundation for expression rewriting.

Placeholder expressions are written in a JavaScript-like dialect
(``$context.executors[0].data.items.length > 0 && ...``). Before evaluation
they pass through a pipeline of rules, applied in priority order, that enforce
security boundaries and rewrite the dialect into Jinja2 expression syntax.

Rule Types:
    - SECURITY: Reject forbidden patterns (priority 1-9)
    - NAMESPACE: Map ``$context``/``$system``/``$utils`` onto bound names (10-19)
    - SYNTAX: Operator and literal rewrites (20+)

Example:
    class TrimRule(TransformRule):
        rule_type = RuleType.SYNTAX
        priority = 40

        def applies_to(self, context: RuleContext) -> bool:
            return context.expression != context.expression.strip()

        def transform(self, context: RuleContext) -> RuleContext:
            context.expression = context.expression.strip()
            return context

        @property
        def description(self) -> str:
            return "Strip surrounding whitespace"
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class RuleType(Enum):
    """Types of rewrite rules."""

    SECURITY = "security"
    NAMESPACE = "namespace"
    SYNTAX = "syntax"


@dataclass
class RuleContext:
    """
    Context passed to rules for processing.

    Attributes:
        expression: Expression string being rewritten
        metadata: Rule-specific notes for downstream rules or diagnostics
    """

    expression: str
    metadata: dict[str, Any] = field(default_factory=dict)


class TransformRule(ABC):
    """
    Base class for rewrite rules.

    Rules are applied in ascending priority order. A rule may rewrite the
    expression, annotate metadata, or raise to reject the expression.
    """

    rule_type: RuleType
    priority: int = 0  # Lower = earlier

    @abstractmethod
    def applies_to(self, context: RuleContext) -> bool:
        """Return True if the rule should run for this expression."""
        pass

    @abstractmethod
    def transform(self, context: RuleContext) -> RuleContext:
        """Apply the rule and return the (possibly rewritten) context."""
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        """Human-readable description of what this rule does."""
        pass
