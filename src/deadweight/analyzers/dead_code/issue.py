from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal

from deadweight.utils import safe_relpath

DeadCodeKind = Literal["dead_file", "dead_class", "dead_function", "unused_variable"]


@dataclass(frozen=True, slots=True)
class DeadCodeIssue:
    """
    One dead-code finding.

    `line` is None for dead files. `owner` names the enclosing function of an
    unused variable.
    """

    kind: DeadCodeKind
    path: Path
    name: str
    line: int | None = None
    owner: str | None = None

    @property
    def label(self) -> str:
        return self.kind.replace("_", " ")

    def format(self, *, project_root: Path | None = None) -> str:
        location = safe_relpath(self.path, project_root) if project_root is not None else self.path.as_posix()
        if self.line is not None:
            location = f"{location}:{self.line}"
        text = f'{location}: {self.label} "{self.name}"'
        if self.owner:
            text = f"{text} in {self.owner}"
        return text

    def __str__(self) -> str:
        return self.format()

    def to_dict(self, *, project_root: Path | None = None) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "path": safe_relpath(self.path, project_root) if project_root is not None else self.path.as_posix(),
            "line": self.line,
            "name": self.name,
            "owner": self.owner,
        }
