from __future__ import annotations

import math
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from deadweight.utils import safe_relpath


@dataclass(frozen=True, slots=True)
class DuplicateCodeIssue:
    path_a: Path
    line_a: int
    symbol_a: str
    path_b: Path
    line_b: int
    symbol_b: str
    similarity: float
    line_count: int

    @property
    def percent(self) -> int:
        return math.floor(self.similarity * 100 + 1e-9)

    def format(self, *, project_root: Path | None = None) -> str:
        """
        `95% (12 lines) a.py:3 <-> b.py:40 (load, load_all)`.

        Without `project_root` the common directory of both paths is stripped.
        """

        display_a, display_b = _display_paths(self.path_a, self.path_b, project_root)
        unit = "line" if self.line_count == 1 else "lines"
        return (
            f"{self.percent}% ({self.line_count} {unit}) "
            f"{display_a}:{self.line_a} <-> {display_b}:{self.line_b} ({self.symbol_a}, {self.symbol_b})"
        )

    def __str__(self) -> str:
        return self.format()

    def to_dict(self, *, project_root: Path | None = None) -> dict[str, Any]:
        if project_root is not None:
            path_a, path_b = safe_relpath(self.path_a, project_root), safe_relpath(self.path_b, project_root)
        else:
            path_a, path_b = self.path_a.as_posix(), self.path_b.as_posix()
        return {
            "path_a": path_a,
            "line_a": self.line_a,
            "symbol_a": self.symbol_a,
            "path_b": path_b,
            "line_b": self.line_b,
            "symbol_b": self.symbol_b,
            "similarity": self.similarity,
            "line_count": self.line_count,
        }


def _display_paths(path_a: Path, path_b: Path, project_root: Path | None) -> tuple[str, str]:
    if project_root is not None:
        return safe_relpath(path_a, project_root), safe_relpath(path_b, project_root)
    if not (path_a.is_absolute() and path_b.is_absolute()):
        return path_a.as_posix(), path_b.as_posix()
    try:
        common = Path(os.path.commonpath([path_a, path_b]))
    except ValueError:
        return path_a.as_posix(), path_b.as_posix()
    if common == Path(common.anchor):
        return path_a.as_posix(), path_b.as_posix()
    return _strip(path_a, common), _strip(path_b, common)


def _strip(path: Path, common: Path) -> str:
    relative = path.relative_to(common).as_posix()
    return path.name if relative == "." else relative
