"""
Isolated evaluation of user-authored Python snippets.

Content functions, scripts and parameter builders let designers write a small
piece of Python. The code receives its inputs as explicit arguments only:
there are no module globals, no imports and only an allow-listed subset of
builtins.

Accepted shapes:
    lambda context: {"type": "TEXT", "content": context.trigger.name}

    def build(context):
        return {"type": "MD", "content": "# " + context.event}

    # bare body (wrapped into a function taking the declared parameters)
    rows = context.executors[0].data
    return {"type": "TEXT", "content": str(len(rows))}

Security:
    - AST validation rejects imports, global/nonlocal, names and attributes
      starting with '_', frame and code introspection attributes (gi_frame,
      f_back, ...), str.format traversal and introspection builtins (getattr, vars, ...)
    - Restricted ``__builtins__`` table
    - Arguments are deep-copied into attribute-accessible proxies, so user
      code cannot mutate the caller's data
"""

from __future__ import annotations

import ast
import builtins
import inspect
import re
import textwrap
from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any

from .exceptions import UnsafeCodeError

SAFE_BUILTIN_NAMES = (
    "abs",
    "all",
    "any",
    "bool",
    "dict",
    "enumerate",
    "filter",
    "float",
    "int",
    "isinstance",
    "len",
    "list",
    "map",
    "max",
    "min",
    "range",
    "reversed",
    "round",
    "set",
    "sorted",
    "str",
    "sum",
    "tuple",
    "zip",
    "Exception",
    "ValueError",
    "KeyError",
    "TypeError",
)

SAFE_BUILTINS: dict[str, Any] = {name: getattr(builtins, name) for name in SAFE_BUILTIN_NAMES}
SAFE_BUILTINS.update({"None": None, "True": True, "False": False})

FORBIDDEN_NAMES = frozenset(
    {
        "exec",
        "eval",
        "compile",
        "open",
        "getattr",
        "setattr",
        "delattr",
        "globals",
        "locals",
        "vars",
        "input",
        "breakpoint",
        "help",
        "memoryview",
        "type",
        "object",
        "super",
    }
)

# Frame, code, generator and traceback introspection reaches the caller's globals.
FORBIDDEN_ATTRIBUTE_PREFIXES = ("gi_", "cr_", "ag_", "f_", "tb_", "co_")
FORBIDDEN_ATTRIBUTES = frozenset({"func_globals", "mro", "format", "format_map"})

LAMBDA_PATTERN = re.compile(r"^lambda\b")
FUNCTION_PATTERN = re.compile(r"^(async\s+)?def\s+[A-Za-z]\w*\s*\(")
WRAPPER_NAME = "user_function"


class CodeShape(str, Enum):
    """Shape of a user snippet."""

    LAMBDA = "lambda"
    FUNCTION = "function"
    BODY = "body"


def detect_shape(code: str) -> CodeShape:
    """Classify a snippet as lambda, function declaration or bare body."""
    stripped = textwrap.dedent(code).strip()
    if LAMBDA_PATTERN.match(stripped):
        return CodeShape.LAMBDA
    if FUNCTION_PATTERN.match(stripped):
        return CodeShape.FUNCTION
    return CodeShape.BODY


class CodeValidator(ast.NodeVisitor):
    """Reject syntax that could escape the argument-only sandbox."""

    def _reject(self, node: ast.AST, reason: str) -> None:
        line = getattr(node, "lineno", "?")
        raise UnsafeCodeError(f"{reason} (line {line})")

    def visit_Import(self, node: ast.Import) -> None:
        self._reject(node, "Imports are not allowed")

    def visit_ImportFrom(self, node: ast.ImportFrom) -> None:
        self._reject(node, "Imports are not allowed")

    def visit_Global(self, node: ast.Global) -> None:
        self._reject(node, "Global statements are not allowed")

    def visit_Nonlocal(self, node: ast.Nonlocal) -> None:
        self._reject(node, "Nonlocal statements are not allowed")

    def visit_Name(self, node: ast.Name) -> None:
        if node.id.startswith("_"):
            self._reject(node, f"Name '{node.id}' is not allowed")
        if node.id in FORBIDDEN_NAMES:
            self._reject(node, f"Use of '{node.id}' is not allowed")
        self.generic_visit(node)

    def visit_Attribute(self, node: ast.Attribute) -> None:
        if node.attr.startswith("_"):
            self._reject(node, f"Attribute '{node.attr}' is not allowed")
        if node.attr.startswith(FORBIDDEN_ATTRIBUTE_PREFIXES) or node.attr in FORBIDDEN_ATTRIBUTES:
            self._reject(node, f"Attribute '{node.attr}' is not allowed")
        self.generic_visit(node)

    def visit_arg(self, node: ast.arg) -> None:
        if node.arg.startswith("_"):
            self._reject(node, f"Parameter '{node.arg}' is not allowed")
        self.generic_visit(node)


class DataProxy(dict):
    """Dict that also allows attribute access (``context.trigger.value``)."""

    def __getattr__(self, name: str) -> Any:
        try:
            return self[name]
        except KeyError:
            raise AttributeError(name) from None


def to_proxy(value: Any) -> Any:
    """Deep-copy plain data into proxies; opaque objects pass through as-is."""
    if isinstance(value, Mapping):
        return DataProxy({key: to_proxy(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return [to_proxy(item) for item in value]
    return value


def from_proxy(value: Any) -> Any:
    """Convert proxies in a return value back into plain dicts and lists."""
    if isinstance(value, Mapping):
        return {key: from_proxy(item) for key, item in value.items()}
    if isinstance(value, list):
        return [from_proxy(item) for item in value]
    return value


def compile_user_function(
    code: str, params: tuple[str, ...] = ("context",)
) -> Callable[..., Any]:
    """
    Validate and compile a snippet into a callable.

    Args:
        code: User snippet in one of the accepted shapes
        params: Parameter names for the bare-body shape

    Returns:
        The user function

    Raises:
        SyntaxError: Code does not parse
        UnsafeCodeError: Code uses forbidden syntax or defines no function
    """
    shape = detect_shape(code)
    source = textwrap.dedent(code).strip()

    if shape == CodeShape.BODY:
        body = textwrap.indent(source, "    ")
        source = f"def {WRAPPER_NAME}({', '.join(params)}):\n{body}\n"

    mode = "eval" if shape == CodeShape.LAMBDA else "exec"
    tree = ast.parse(source, filename="<user-code>", mode=mode)
    CodeValidator().visit(tree)

    namespace: dict[str, Any] = {"__builtins__": SAFE_BUILTINS}
    if shape == CodeShape.LAMBDA:
        function = eval(compile(tree, "<user-code>", "eval"), namespace)  # noqa: S307
    else:
        exec(compile(tree, "<user-code>", "exec"), namespace)  # noqa: S102
        assert isinstance(tree, ast.Module)
        names = [
            node.name
            for node in tree.body
            if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef))
        ]
        if not names:
            raise UnsafeCodeError("Code does not define a function")
        function = namespace[names[0]]

    if not callable(function):
        raise UnsafeCodeError("Code did not produce a callable")
    return function


async def run_user_function(
    code: str, *args: Any, params: tuple[str, ...] = ("context",)
) -> Any:
    """
    Compile and call a snippet with the given arguments.

    Async snippets (``async def``) and returned awaitables are awaited.

    Args:
        code: User snippet
        *args: Positional arguments (plain data is proxied and deep-copied)
        params: Parameter names for the bare-body shape

    Returns:
        The snippet's return value with proxies converted back to plain data

    Raises:
        SyntaxError, UnsafeCodeError: Code rejected before execution
        Exception: Anything the snippet raises
    """
    function = compile_user_function(code, params)
    result = function(*(to_proxy(arg) for arg in args))
    if inspect.isawaitable(result):
        result = await result
    return from_proxy(result)
