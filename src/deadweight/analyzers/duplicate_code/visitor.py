from __future__ import annotations

import ast
import logging
from collections.abc import Sequence
from pathlib import Path

from deadweight.analyzers.ast_utils import FunctionNode, body_without_docstring, has_decorator, is_empty_body
from deadweight.analyzers.duplicate_code.file_data import DuplicateCodeSnippet, SnippetKind
from deadweight.analyzers.duplicate_code.tokens import (
    TOKENIZE_ERRORS,
    body_source,
    count_non_empty_lines,
    normalize_tokens,
    parameter_signature,
)
from deadweight.config import DEFAULT_MIN_LINES, DEFAULT_MIN_TOKENS

logger = logging.getLogger(__name__)


class DuplicateCodeVisitor(ast.NodeVisitor):
    """Emits one snippet per function, method and `__init__` body large enough to compare."""

    def __init__(
        self,
        *,
        path: Path,
        lines: Sequence[str],
        min_tokens: int = DEFAULT_MIN_TOKENS,
        min_lines: int = DEFAULT_MIN_LINES,
    ) -> None:
        self.path = path
        self.lines = lines
        self.min_tokens = min_tokens
        self.min_lines = min_lines
        self.snippets: list[DuplicateCodeSnippet] = []
        self._classes: list[str | None] = []

    def visit_ClassDef(self, node: ast.ClassDef) -> None:
        self._classes.append(node.name)
        try:
            self.generic_visit(node)
        finally:
            self._classes.pop()

    def visit_FunctionDef(self, node: ast.FunctionDef) -> None:
        self._visit_function(node)

    def visit_AsyncFunctionDef(self, node: ast.AsyncFunctionDef) -> None:
        self._visit_function(node)

    def _visit_function(self, node: FunctionNode) -> None:
        owner = self._classes[-1] if self._classes else None
        self._add_snippet(node, owner)

        # Nested functions are snippets of their own, never methods.
        self._classes.append(None)
        try:
            self.generic_visit(node)
        finally:
            self._classes.pop()

    def _add_snippet(self, node: FunctionNode, owner: str | None) -> None:
        if is_empty_body(node.body):
            return

        kind: SnippetKind
        if owner is None:
            kind, symbol = "function", node.name
        elif node.name == "__init__":
            kind, symbol = "constructor", owner
        else:
            kind, symbol = "method", f"{owner}.{node.name}"

        statements = body_without_docstring(node.body)
        line_count = count_non_empty_lines(self.lines, statements[0].lineno, node.end_lineno or statements[-1].lineno)
        if line_count < self.min_lines:
            return

        try:
            tokens = normalize_tokens(body_source(statements))
        except TOKENIZE_ERRORS as exc:
            logger.debug("cannot tokenize %s in %s: %s", symbol, self.path, exc)
            return
        if len(tokens) < self.min_tokens:
            return

        skip_receiver = owner is not None and not has_decorator(node, {"staticmethod"})
        self.snippets.append(
            DuplicateCodeSnippet(
                path=self.path,
                line=node.lineno,
                symbol=symbol,
                kind=kind,
                parameter_signature=parameter_signature(node.args, skip_receiver=skip_receiver),
                non_empty_line_count=line_count,
                normalized_tokens=tuple(tokens),
            )
        )
