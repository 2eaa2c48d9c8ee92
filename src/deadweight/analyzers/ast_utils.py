from __future__ import annotations

import ast
from collections.abc import Iterable, Sequence

FunctionNode = ast.FunctionDef | ast.AsyncFunctionDef
DefinitionNode = ast.FunctionDef | ast.AsyncFunctionDef | ast.ClassDef

OVERRIDE_DECORATORS = {"override"}
ABSTRACT_DECORATORS = {"abstractmethod", "abstractproperty", "abstractclassmethod", "abstractstaticmethod"}


def is_docstring(stmt: ast.stmt) -> bool:
    return (
        isinstance(stmt, ast.Expr)
        and isinstance(stmt.value, ast.Constant)
        and isinstance(stmt.value.value, str)
    )


def body_without_docstring(body: Sequence[ast.stmt]) -> list[ast.stmt]:
    if body and is_docstring(body[0]):
        return list(body[1:])
    return list(body)


def is_empty_body(body: Sequence[ast.stmt]) -> bool:
    """
    True for bodies that do nothing: `pass`, `...`, a docstring, or
    `raise NotImplementedError`, in any combination.
    """

    for stmt in body:
        if isinstance(stmt, ast.Pass) or is_docstring(stmt):
            continue
        if isinstance(stmt, ast.Expr) and isinstance(stmt.value, ast.Constant) and stmt.value.value is Ellipsis:
            continue
        if isinstance(stmt, ast.Raise) and _raises_not_implemented(stmt):
            continue
        return False
    return True


def _raises_not_implemented(stmt: ast.Raise) -> bool:
    exc = stmt.exc
    if isinstance(exc, ast.Call):
        exc = exc.func
    if exc is None:
        return False
    return dotted_name(exc) in {"NotImplementedError", "builtins.NotImplementedError"}


def dotted_name(node: ast.AST) -> str | None:
    """`a.b.c` for Name/Attribute chains, None for anything else."""

    parts: list[str] = []
    while isinstance(node, ast.Attribute):
        parts.append(node.attr)
        node = node.value
    if not isinstance(node, ast.Name):
        return None
    parts.append(node.id)
    return ".".join(reversed(parts))


def decorator_names(node: DefinitionNode) -> list[str]:
    """Dotted names of the decorators on `node`, with call arguments stripped."""

    names: list[str] = []
    for decorator in node.decorator_list:
        target = decorator.func if isinstance(decorator, ast.Call) else decorator
        name = dotted_name(target)
        if name is not None:
            names.append(name)
    return names


def has_decorator(node: DefinitionNode, names: Iterable[str]) -> bool:
    """Match decorators by their last dotted segment (`typing.override` matches `override`)."""

    wanted = set(names)
    return any(name.rsplit(".", 1)[-1] in wanted for name in decorator_names(node))


def decorator_lines(node: DefinitionNode) -> list[int]:
    return [decorator.lineno for decorator in node.decorator_list]
