from __future__ import annotations

import ast
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from deadweight.config import DeadweightConfig, config_from_pyproject, path_is_ignored, read_pyproject
from deadweight.engine.context import FileContext, ProjectContext
from deadweight.project import ProjectInfo, resolve_project_info
from deadweight.suppressions import parse_suppressions
from deadweight.utils import safe_relpath

logger = logging.getLogger(__name__)

DEFAULT_SKIP_DIRS = {
    ".git",
    ".hg",
    ".svn",
    ".idea",
    ".vscode",
    ".venv",
    ".tox",
    ".nox",
    "venv",
    "node_modules",
    "dist",
    "build",
    "site-packages",
    "__pycache__",
    # Test and example code reaches the project from outside; it is never dead.
    "test",
    "tests",
    "example",
    "examples",
    "docs",
}

PYTHON_SUFFIXES = {".py"}

DEADWEIGHT_WORKERS_ENV = "DEADWEIGHT_WORKERS"
DEFAULT_MAX_WORKERS = 32


@dataclass(frozen=True, slots=True)
class ScanTarget:
    project_root: Path
    scan_path: Path
    config: DeadweightConfig
    info: ProjectInfo


def resolve_worker_count(
    raw_value: str | None,
    *,
    default: int | None = None,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> int:
    """
    Resolve a safe worker count from an env var-style string.

    - None/""/"auto" fall back to the default
    - Values <= 0 fall back to the default
    - Values above `max_workers` are clamped
    """

    cpu = os.cpu_count() or 1
    resolved_default = max(1, default if default is not None else (cpu * 2))
    if raw_value is None:
        return min(resolved_default, max_workers)

    normalized = raw_value.strip().lower()
    if not normalized or normalized in {"auto", "default"}:
        return min(resolved_default, max_workers)

    try:
        workers = int(normalized)
    except ValueError:
        return min(resolved_default, max_workers)

    if workers <= 0:
        return min(resolved_default, max_workers)
    return min(workers, max_workers)


def worker_count_from_env(*, default: int | None = None) -> int:
    return resolve_worker_count(os.environ.get(DEADWEIGHT_WORKERS_ENV), default=default)


def prepare_target(scan_path: Path, *, config: DeadweightConfig | None = None) -> ScanTarget:
    """
    Resolve project root, configuration and project conventions.

    The project root is the closest directory holding a `pyproject.toml`,
    otherwise the scanned directory (or the file's parent).
    """

    scan_path = scan_path.resolve()
    project_root = _detect_project_root(scan_path)
    pyproject = read_pyproject(project_root)
    if config is None:
        config = config_from_pyproject(pyproject)
    info = resolve_project_info(project_root, config, pyproject)
    return ScanTarget(project_root=project_root, scan_path=scan_path, config=config, info=info)


def discover_files(target: ScanTarget) -> list[Path]:
    scan_path = target.scan_path
    root = target.project_root
    ignore_patterns = target.config.ignore.paths

    if scan_path.is_file():
        if scan_path.suffix.lower() not in PYTHON_SUFFIXES:
            return []
        if path_is_ignored(scan_path, project_root=root, ignore_patterns=ignore_patterns):
            return []
        return [scan_path]

    files: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(scan_path, topdown=True):
        dirnames[:] = [d for d in dirnames if not _skip_dir(d)]
        base = Path(dirpath)

        for filename in filenames:
            path = base / filename

            if path.suffix.lower() not in PYTHON_SUFFIXES:
                continue

            if path_is_ignored(path, project_root=root, ignore_patterns=ignore_patterns):
                continue

            files.append(path)

    logger.debug("discovered %d python files under %s", len(files), scan_path)
    return sorted(set(files))


def build_project_context(target: ScanTarget, files: list[Path]) -> ProjectContext:
    return ProjectContext(
        project_root=target.project_root,
        scan_path=target.scan_path,
        files=tuple(files),
        config=target.config,
        info=target.info,
    )


def build_file_context(project: ProjectContext, path: Path) -> FileContext | None:
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        logger.warning("cannot read %s: %s", path, exc)
        return None

    return build_file_context_from_text(project, path, text)


def build_file_context_from_text(project: ProjectContext, path: Path, text: str) -> FileContext:
    lines_list = text.splitlines()
    suppressions = parse_suppressions(lines_list)

    tree: ast.Module | None
    try:
        tree = ast.parse(text, filename=str(path))
    except (SyntaxError, ValueError) as exc:
        logger.debug("parse error in %s: %s", path, exc)
        tree = None
    except (RecursionError, MemoryError) as exc:
        # Valid source can still be too deeply nested for the parser.
        logger.warning("cannot parse %s: %s", path, type(exc).__name__)
        tree = None

    return FileContext(
        project_root=project.project_root,
        path=path,
        relative_path=safe_relpath(path, project.project_root),
        text=text,
        lines=tuple(lines_list),
        suppressions=suppressions,
        tree=tree,
        has_parse_errors=tree is None,
    )


def _skip_dir(name: str) -> bool:
    return name in DEFAULT_SKIP_DIRS or name.startswith(".") or name.endswith(".egg-info")


def _detect_project_root(start: Path) -> Path:
    # Prefer the closest directory containing a pyproject.toml so per-project
    # configuration is discovered in monorepos.
    for candidate in [start if start.is_dir() else start.parent, *(start.parents)]:
        if (candidate / "pyproject.toml").exists():
            return candidate

    return start if start.is_dir() else start.parent
