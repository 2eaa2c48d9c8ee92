from __future__ import annotations

import textwrap
from pathlib import Path

from deadweight.engine.context import FileContext, ProjectContext
from deadweight.scanner import build_file_context


def make_file_ctx(project_ctx: ProjectContext, *, relpath: str, content: str) -> FileContext:
    path = project_ctx.project_root / relpath
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    ctx = build_file_context(project_ctx, path)
    assert ctx is not None
    return ctx


def write_project(root: Path, files: dict[str, str]) -> None:
    for relpath, content in files.items():
        path = root / relpath
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(content).lstrip("\n"), encoding="utf-8")
