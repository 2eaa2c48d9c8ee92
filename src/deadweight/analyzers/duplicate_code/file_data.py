from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

SnippetKind = Literal["function", "method", "constructor"]


@dataclass(frozen=True, slots=True)
class DuplicateCodeSnippet:
    path: Path
    line: int
    symbol: str
    kind: SnippetKind
    parameter_signature: str
    non_empty_line_count: int
    normalized_tokens: tuple[str, ...]

    @property
    def token_count(self) -> int:
        return len(self.normalized_tokens)


@dataclass(frozen=True, slots=True)
class DuplicateCodeFileData:
    path: Path
    snippets: tuple[DuplicateCodeSnippet, ...]
