from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path


class ImportResolver:
    """
    Maps import statements onto the files they may load.

    Resolution is purely path based and returns every plausible candidate;
    candidates that are not part of the analyzed file set are dropped later,
    which is how third-party and standard-library imports disappear.

    Absolute imports are looked up under the source directory first and the
    project root second, so both `src/` and flat layouts resolve. Importing
    `a.b.c` also executes `a/__init__.py` and `a/b/__init__.py`, so those are
    dependencies too.
    """

    def __init__(self, project_root: Path, source_dir: Path) -> None:
        self.search_roots: tuple[Path, ...] = (source_dir,) if source_dir == project_root else (source_dir, project_root)

    def module_files(self, module: str) -> list[Path]:
        parts = [part for part in module.split(".") if part]
        if not parts:
            return []
        out: list[Path] = []
        for root in self.search_roots:
            out.extend(_module_candidates(root, parts))
        return out

    def resolve_import(self, module: str) -> list[Path]:
        parts = [part for part in module.split(".") if part]
        if not parts:
            return []
        out: list[Path] = []
        for root in self.search_roots:
            for idx in range(1, len(parts)):
                out.append(root.joinpath(*parts[:idx], "__init__.py"))
            out.extend(_module_candidates(root, parts))
        return out

    def resolve_from(self, current_file: Path, module: str | None, level: int, names: Sequence[str]) -> list[Path]:
        """
        Candidates for `from <dots><module> import <names>`.

        Each imported name may be a submodule, so `<target>/<name>.py` and
        `<target>/<name>/__init__.py` are candidates as well.
        """

        imported = [name for name in names if name != "*"]
        if level == 0:
            if not module:
                return []
            out = self.resolve_import(module)
            for name in imported:
                out.extend(self.module_files(f"{module}.{name}"))
            return out

        base = current_file.parent
        for _ in range(level - 1):
            base = base.parent

        parts = [part for part in (module or "").split(".") if part]
        out = [base / "__init__.py"]
        for idx in range(1, len(parts)):
            out.append(base.joinpath(*parts[:idx], "__init__.py"))
        if parts:
            out.extend(_module_candidates(base, parts))

        target = base.joinpath(*parts)
        for name in imported:
            out.extend(_module_candidates(target, [name]))
        return out


def _module_candidates(root: Path, parts: Sequence[str]) -> list[Path]:
    return [
        root.joinpath(*parts[:-1], f"{parts[-1]}.py"),
        root.joinpath(*parts, "__init__.py"),
    ]
