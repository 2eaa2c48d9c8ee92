from __future__ import annotations

from collections.abc import Iterable
from fnmatch import fnmatchcase
from pathlib import Path


def safe_relpath(path: Path, root: Path) -> str:
    """
    Return a stable, POSIX-style path for reporting output.

    Prefer a path relative to `root` when possible.
    Fall back to `path.as_posix()` when the path is not under the root, or when
    either path cannot be resolved due to OS errors.
    """

    try:
        resolved_path = path.resolve()
    except OSError:
        resolved_path = path

    try:
        resolved_root = root.resolve()
    except OSError:
        resolved_root = root

    try:
        return resolved_path.relative_to(resolved_root).as_posix()
    except ValueError:
        return path.as_posix()


def matches_any(value: str, patterns: Iterable[str]) -> bool:
    """Case-sensitive glob match of `value` against any of `patterns`."""

    return any(fnmatchcase(value, pattern) for pattern in patterns)


def is_generated_path(relative_path: str, patterns: Iterable[str]) -> bool:
    """Match generated-file globs against the basename and the relative POSIX path."""

    patterns = tuple(patterns)
    if not patterns:
        return False
    basename = relative_path.rsplit("/", 1)[-1]
    return matches_any(basename, patterns) or matches_any(relative_path, patterns)
