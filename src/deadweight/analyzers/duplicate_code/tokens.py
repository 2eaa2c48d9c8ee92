"""
Token normalization for duplicate detection.

Bodies are rendered with `ast.unparse` before tokenizing, so formatting,
comments and quoting style never influence the comparison. Identifiers,
numbers and strings collapse into placeholder classes; keywords, operators and
block structure stay literal.
"""

from __future__ import annotations

import ast
import io
import keyword
import re
import tokenize
from collections.abc import Sequence

from deadweight.analyzers.ast_utils import body_without_docstring

IDENTIFIER = "<id>"
NUMBER = "<num>"
STRING = "<str>"
NEWLINE = "<nl>"
INDENT = "<indent>"
DEDENT = "<dedent>"

# Fixed keyword set so normalization does not drift between interpreter versions.
KEYWORDS = frozenset(keyword.kwlist) | {"match", "case"}

_STRING_START = {name for name in ("FSTRING_START", "TSTRING_START") if hasattr(tokenize, name)}
_STRING_PART = {name for name in ("FSTRING_MIDDLE", "FSTRING_END", "TSTRING_MIDDLE", "TSTRING_END") if hasattr(tokenize, name)}
_SKIPPED = {tokenize.NL, tokenize.COMMENT, tokenize.ENCODING, tokenize.ENDMARKER}
_WHITESPACE_RE = re.compile(r"\s+")

TOKENIZE_ERRORS = (tokenize.TokenError, IndentationError, SyntaxError)


def body_source(body: Sequence[ast.stmt]) -> str:
    return "\n".join(ast.unparse(stmt) for stmt in body_without_docstring(body)) + "\n"


def normalize_tokens(source: str) -> list[str]:
    """
    Normalized token stream of `source`.

    Raises `tokenize.TokenError`/`SyntaxError` for source that cannot be
    tokenized; callers drop the snippet.
    """

    tokens: list[str] = []
    for token in tokenize.generate_tokens(io.StringIO(source).readline):
        kind = token.type
        if kind in _SKIPPED:
            continue
        name = tokenize.tok_name[kind]
        if kind == tokenize.NAME:
            tokens.append(token.string if token.string in KEYWORDS else IDENTIFIER)
        elif kind == tokenize.NUMBER:
            tokens.append(NUMBER)
        elif kind == tokenize.STRING or name in _STRING_START:
            tokens.append(STRING)
        elif name in _STRING_PART:
            continue
        elif kind == tokenize.NEWLINE:
            tokens.append(NEWLINE)
        elif kind == tokenize.INDENT:
            tokens.append(INDENT)
        elif kind == tokenize.DEDENT:
            tokens.append(DEDENT)
        else:
            tokens.append(token.string)
    return tokens


def parameter_signature(args: ast.arguments, *, skip_receiver: bool = False) -> str:
    """
    `kind:annotation[=default]` per parameter, joined with `|`.

    Two snippets are only compared when these strings are equal, so a function
    never pairs with one that takes different arguments.
    """

    positional = [*args.posonlyargs, *args.args]
    first_default = len(positional) - len(args.defaults)
    descriptors: list[str] = []
    for idx, arg in enumerate(positional):
        if skip_receiver and idx == 0:
            continue
        has_default = idx >= first_default
        kind = "optional_positional" if has_default else "required_positional"
        descriptors.append(_describe(kind, arg, has_default=has_default))
    if args.vararg is not None:
        descriptors.append(_describe("variadic_positional", args.vararg, has_default=False))
    for arg, default in zip(args.kwonlyargs, args.kw_defaults, strict=True):
        has_default = default is not None
        kind = "optional_named" if has_default else "required_named"
        descriptors.append(_describe(kind, arg, has_default=has_default))
    if args.kwarg is not None:
        descriptors.append(_describe("variadic_named", args.kwarg, has_default=False))
    return "|".join(descriptors)


def _describe(kind: str, arg: ast.arg, *, has_default: bool) -> str:
    annotation = "" if arg.annotation is None else _WHITESPACE_RE.sub("", ast.unparse(arg.annotation))
    return f"{kind}:{annotation}{'=default' if has_default else ''}"


def count_non_empty_lines(lines: Sequence[str], start: int, end: int) -> int:
    """Lines `start..end` (1-based, inclusive) that hold more than whitespace or a comment."""

    count = 0
    for line in lines[max(start - 1, 0) : end]:
        stripped = line.strip()
        if stripped and not stripped.startswith("#"):
            count += 1
    return count
