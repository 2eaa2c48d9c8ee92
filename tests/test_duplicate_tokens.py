from __future__ import annotations

import ast
import textwrap
import tokenize
from pathlib import Path

import pytest

from deadweight.analyzers.duplicate_code.tokens import (
    body_source,
    count_non_empty_lines,
    normalize_tokens,
    parameter_signature,
)
from deadweight.analyzers.duplicate_code.visitor import DuplicateCodeVisitor


def _function(source: str) -> ast.FunctionDef:
    node = ast.parse(textwrap.dedent(source)).body[0]
    assert isinstance(node, ast.FunctionDef)
    return node


def test_normalize_tokens_placeholders() -> None:
    assert normalize_tokens("x = foo(1, 'a')\n") == ["<id>", "=", "<id>", "(", "<num>", ",", "<str>", ")", "<nl>"]


def test_keywords_and_block_structure_stay_literal() -> None:
    assert normalize_tokens("if a:\n    return None\n") == [
        "if",
        "<id>",
        ":",
        "<nl>",
        "<indent>",
        "return",
        "None",
        "<nl>",
        "<dedent>",
    ]


def test_renaming_comments_and_literals_do_not_change_tokens() -> None:
    first = _function(
        '''
        def load(path):
            """Read rows."""
            # open the file
            handle = open(path)
            return handle.read(1024)
        '''
    )
    second = _function(
        """
        def fetch(source):
            stream = open(source)


            return stream.read(64)
        """
    )

    assert normalize_tokens(body_source(first.body)) == normalize_tokens(body_source(second.body))


def test_unterminated_source_raises_tokenize_error() -> None:
    with pytest.raises((tokenize.TokenError, SyntaxError)):
        normalize_tokens("x = (1,\n")


def test_parameter_signature_kinds_annotations_and_defaults() -> None:
    node = _function(
        """
        def f(a, b: dict[str, int] = None, *args, c, d: str = "x", **kw):
            pass
        """
    )

    assert parameter_signature(node.args) == "|".join(
        [
            "required_positional:",
            "optional_positional:dict[str,int]=default",
            "variadic_positional:",
            "required_named:",
            "optional_named:str=default",
            "variadic_named:",
        ]
    )


def test_parameter_signature_skips_receiver() -> None:
    node = _function(
        """
        def method(self, x: int):
            pass
        """
    )

    assert parameter_signature(node.args, skip_receiver=True) == "required_positional:int"
    assert parameter_signature(_function("def f():\n    pass\n").args) == ""


def test_count_non_empty_lines() -> None:
    lines = ["def f():", "    a = 1", "", "    # note", "    return a"]

    assert count_non_empty_lines(lines, 2, 5) == 2
    assert count_non_empty_lines(lines, 1, 5) == 3


SAMPLE = '''\
class Repo:
    """Doc."""

    def __init__(self, path):
        self.path = path
        self.items = []

    def load(self, name):
        data = read(name)
        return data

    @staticmethod
    def build(name):
        return Repo(name)

    def empty(self):
        pass


def top(a, b=1):
    def inner(x):
        return x + 1
    return inner(a) + b
'''


def _snippets(min_tokens: int, min_lines: int):
    visitor = DuplicateCodeVisitor(
        path=Path("sample.py"),
        lines=SAMPLE.splitlines(),
        min_tokens=min_tokens,
        min_lines=min_lines,
    )
    visitor.visit(ast.parse(SAMPLE))
    return visitor.snippets


def test_visitor_emits_functions_methods_and_constructors() -> None:
    snippets = _snippets(min_tokens=1, min_lines=1)

    assert [(s.symbol, s.kind, s.line) for s in snippets] == [
        ("Repo", "constructor", 4),
        ("Repo.load", "method", 8),
        ("Repo.build", "method", 13),
        ("top", "function", 20),
        ("inner", "function", 21),
    ]
    signatures = {s.symbol: s.parameter_signature for s in snippets}
    assert signatures["Repo"] == "required_positional:"
    assert signatures["Repo.build"] == "required_positional:"
    assert signatures["top"] == "required_positional:|optional_positional:=default"

    load = snippets[1]
    assert load.normalized_tokens == ("<id>", "=", "<id>", "(", "<id>", ")", "<nl>", "return", "<id>", "<nl>")
    assert load.non_empty_line_count == 2
    assert snippets[3].non_empty_line_count == 3


def test_visitor_applies_minimums() -> None:
    assert _snippets(min_tokens=1, min_lines=10) == []
    assert [s.symbol for s in _snippets(min_tokens=12, min_lines=1)] == ["Repo", "top"]
