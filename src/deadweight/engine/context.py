from __future__ import annotations

import ast
from dataclasses import dataclass
from pathlib import Path

from deadweight.config import DeadweightConfig
from deadweight.project import ProjectInfo
from deadweight.suppressions import Suppressions


@dataclass(frozen=True, slots=True)
class ProjectContext:
    project_root: Path
    scan_path: Path
    files: tuple[Path, ...]
    config: DeadweightConfig
    info: ProjectInfo


@dataclass(frozen=True, slots=True)
class FileContext:
    """
    Everything a delegate may read about one source file.

    Built once per file per run and shared by all delegates. `tree` is None
    exactly when `has_parse_errors` is set.
    """

    project_root: Path
    path: Path
    relative_path: str
    text: str
    lines: tuple[str, ...]
    suppressions: Suppressions
    tree: ast.Module | None
    has_parse_errors: bool = False
