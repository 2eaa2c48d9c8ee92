from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path

from deadweight.analyzers.dead_code.file_data import DeadCodeFileData, DeadCodeSymbol
from deadweight.analyzers.dead_code.issue import DeadCodeIssue, DeadCodeKind
from deadweight.analyzers.dependencies import ImportResolver
from deadweight.config import DeadCodeConfig
from deadweight.project import ProjectInfo
from deadweight.utils import matches_any

logger = logging.getLogger(__name__)

_NEVER_DEAD = {"main"}


def build_dependency_graph(file_data: Iterable[DeadCodeFileData]) -> dict[Path, list[Path]]:
    """Adjacency lists restricted to the analyzed files; unresolved imports vanish here."""

    data = list(file_data)
    known = {d.path for d in data}
    return {d.path: [dep for dep in d.dependencies if dep in known and dep != d.path] for d in data}


def find_reachable_files(graph: Mapping[Path, Sequence[Path]], entry_points: Iterable[Path]) -> set[Path]:
    reachable: set[Path] = set()
    stack = list(entry_points)
    while stack:
        current = stack.pop()
        if current in reachable:
            continue
        reachable.add(current)
        stack.extend(dep for dep in graph.get(current, ()) if dep not in reachable)
    return reachable


class DeadCodeAnalyzer:
    """
    Project-wide reduce of the per-file dead-code data.

    Entry points are the files that define `main` (or run under a
    `__name__ == "__main__"` guard), configured entry-point globs, and
    `[project.scripts]` modules. A library without such files is entered through
    its package `__init__.py` and the modules directly inside its package.

    When entry points exist, files unreachable from them are dead and only
    reachable files contribute usages. A top-level class or function is dead
    when its name is never used, except that a library without `main` treats
    everything in its public modules as used.
    """

    def __init__(self, info: ProjectInfo, config: DeadCodeConfig | None = None) -> None:
        self.info = info
        self.config = config or DeadCodeConfig()

    def analyze(self, file_data: Iterable[DeadCodeFileData]) -> list[DeadCodeIssue]:
        by_path: dict[Path, DeadCodeFileData] = {}
        for data in sorted(file_data, key=lambda d: d.path):
            by_path.setdefault(data.path, data)
        if not by_path:
            return []

        graph = build_dependency_graph(by_path.values())
        has_main = any(d.has_main for d in by_path.values())
        entry_points = self.resolve_entry_points(by_path, has_main=has_main)
        reachable = find_reachable_files(graph, entry_points)
        use_reachable_only = bool(entry_points)
        logger.debug("dead code: %d entry points, %d/%d files reachable", len(entry_points), len(reachable), len(by_path))

        used: set[str] = set()
        for path, data in by_path.items():
            if not use_reachable_only or path in reachable:
                used.update(data.used_identifiers)

        issues: list[DeadCodeIssue] = []
        if use_reachable_only:
            for path in by_path:
                if path not in reachable:
                    issues.append(DeadCodeIssue(kind="dead_file", path=path, name=path.name))

        treat_public_api_as_used = not has_main and self.info.is_library
        for path, data in by_path.items():
            if not (treat_public_api_as_used and self.is_public_file(path)):
                issues.extend(self._dead_symbols(path, data.classes, "dead_class", used))
                issues.extend(self._dead_symbols(path, data.functions, "dead_function", used))
            issues.extend(data.unused_variable_issues)

        return sorted(issues, key=_issue_sort_key)

    def resolve_entry_points(self, by_path: Mapping[Path, DeadCodeFileData], *, has_main: bool) -> set[Path]:
        entry_points = {path for path, data in by_path.items() if data.has_main}

        if self.config.entry_points:
            for path in by_path:
                relative = _relative_posix(path, self.info.root)
                if relative is not None and matches_any(relative, self.config.entry_points):
                    entry_points.add(path)

        if self.info.script_modules:
            resolver = ImportResolver(self.info.root, self.info.source_dir)
            for module in self.info.script_modules:
                entry_points.update(path for path in resolver.module_files(module) if path in by_path)

        if not has_main and self.info.is_library:
            root_module = self.info.root_module
            if root_module in by_path:
                entry_points.add(root_module)
            entry_points.update(path for path in by_path if path.parent == self.info.public_root)

        return entry_points

    def is_public_file(self, path: Path) -> bool:
        """Files under the public root whose directories are not internal (`_private/`)."""

        try:
            relative = path.relative_to(self.info.public_root)
        except ValueError:
            return False
        return not any(matches_any(part, self.config.internal_dirs) for part in relative.parts[:-1])

    def _dead_symbols(
        self,
        path: Path,
        symbols: Sequence[DeadCodeSymbol],
        kind: DeadCodeKind,
        used: set[str],
    ) -> list[DeadCodeIssue]:
        issues: list[DeadCodeIssue] = []
        for symbol in symbols:
            if symbol.name in _NEVER_DEAD or _is_dunder(symbol.name):
                continue
            if symbol.name not in used:
                issues.append(DeadCodeIssue(kind=kind, path=path, name=symbol.name, line=symbol.line))
        return issues


def _issue_sort_key(issue: DeadCodeIssue) -> tuple[str, int, str, str]:
    return (issue.path.as_posix(), issue.line or 0, issue.kind, issue.name)


def _relative_posix(path: Path, root: Path) -> str | None:
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return None


def _is_dunder(name: str) -> bool:
    return name.startswith("__") and name.endswith("__")
