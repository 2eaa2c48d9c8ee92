from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from deadweight.analyzers.dead_code.issue import DeadCodeIssue

SymbolKind = Literal["class", "function", "method"]


@dataclass(frozen=True, slots=True)
class DeadCodeSymbol:
    name: str
    line: int
    kind: SymbolKind
    owner: str | None = None


@dataclass(frozen=True, slots=True)
class DeadCodeFileData:
    """What one file contributes to the project-wide dead-code reduce."""

    path: Path
    has_main: bool
    dependencies: tuple[Path, ...]
    classes: tuple[DeadCodeSymbol, ...]
    functions: tuple[DeadCodeSymbol, ...]
    methods: tuple[DeadCodeSymbol, ...]
    used_identifiers: frozenset[str]
    unused_variable_issues: tuple[DeadCodeIssue, ...]
