from __future__ import annotations

import tomllib
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

from deadweight.suppressions import DEAD_CODE, DUPLICATE_CODE, normalize_analyzer_id


class ConfigError(ValueError):
    """Raised when a deadweight configuration table is invalid."""


ProjectTypeSetting = Literal["auto", "library", "application"]

DEFAULT_SOURCE_DIR = "src"
DEFAULT_ANALYZERS: tuple[str, ...] = (DEAD_CODE, DUPLICATE_CODE)
DEFAULT_GENERATED: tuple[str, ...] = ("*_pb2.py", "*_pb2_grpc.py")
DEFAULT_INTERNAL_DIRS: tuple[str, ...] = ("_*",)
DEFAULT_KEEP_NAMES: tuple[str, ...] = ("test_*", "Test*", "pytest_*")

# Decorators that register a callable with a framework. The decorated function
# is reached through the framework, never through a plain name reference.
DEFAULT_KEEP_DECORATORS: tuple[str, ...] = (
    "*.route",
    "*.get",
    "*.post",
    "*.put",
    "*.patch",
    "*.delete",
    "*.websocket",
    "*.command",
    "*.callback",
    "*.group",
    "*.fixture",
    "*.hookimpl",
    "*.register",
    "*.task",
    "*.receiver",
    "*.listens_for",
    "*.on_event",
    "*.middleware",
    "*.exception_handler",
    "*.validator",
    "*.field_validator",
    "*.model_validator",
    "receiver",
    "fixture",
    "hookimpl",
    "register",
    "atexit.register",
)

DEFAULT_DUPLICATE_THRESHOLD = 0.95
DEFAULT_MIN_TOKENS = 20
DEFAULT_MIN_LINES = 10


@dataclass(frozen=True, slots=True)
class DeadCodeConfig:
    entry_points: tuple[str, ...] = ()
    internal_dirs: tuple[str, ...] = DEFAULT_INTERNAL_DIRS
    keep_names: tuple[str, ...] = DEFAULT_KEEP_NAMES
    keep_decorators: tuple[str, ...] = DEFAULT_KEEP_DECORATORS


@dataclass(frozen=True, slots=True)
class DuplicateCodeConfig:
    threshold: float = DEFAULT_DUPLICATE_THRESHOLD
    min_tokens: int = DEFAULT_MIN_TOKENS
    min_lines: int = DEFAULT_MIN_LINES


@dataclass(frozen=True, slots=True)
class IgnoreConfig:
    paths: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class DeadweightConfig:
    source_dir: str = DEFAULT_SOURCE_DIR
    package: str | None = None
    project_type: ProjectTypeSetting | str = "auto"
    analyzers: tuple[str, ...] = DEFAULT_ANALYZERS
    generated: tuple[str, ...] = DEFAULT_GENERATED
    dead_code: DeadCodeConfig = field(default_factory=DeadCodeConfig)
    duplicate_code: DuplicateCodeConfig = field(default_factory=DuplicateCodeConfig)
    ignore: IgnoreConfig = field(default_factory=IgnoreConfig)

    def analyzer_enabled(self, analyzer_id: str) -> bool:
        return normalize_analyzer_id(analyzer_id) in self.analyzers


def read_pyproject(project_dir: Path | str) -> dict[str, Any]:
    """
    Return the parsed `pyproject.toml` of `project_dir`, or an empty dict when absent.

    Raises `ConfigError` for malformed TOML.
    """

    pyproject_path = Path(project_dir) / "pyproject.toml"
    if not pyproject_path.is_file():
        return {}
    try:
        return tomllib.loads(pyproject_path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {pyproject_path}: {exc}") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"Cannot read {pyproject_path}: {exc}") from exc


def load_config(project_dir: Path | str = ".") -> DeadweightConfig:
    """
    Load deadweight configuration from `pyproject.toml` within `project_dir`.

    If no file / no `[tool.deadweight]` table exists, returns defaults.
    """

    return config_from_pyproject(read_pyproject(project_dir))


def config_from_pyproject(data: dict[str, Any]) -> DeadweightConfig:
    """Build a config from an already-parsed `pyproject.toml` mapping."""

    tool_table = data.get("tool", {})
    if not isinstance(tool_table, dict):
        return DeadweightConfig()

    deadweight_table = tool_table.get("deadweight", {})
    if not isinstance(deadweight_table, dict) or not deadweight_table:
        return DeadweightConfig()

    return _parse_deadweight_table(deadweight_table)


def _get(table: dict[str, Any], key: str, default: Any = None) -> Any:
    """Look up a kebab-case key, accepting its snake_case spelling too."""

    if key in table:
        return table[key]
    return table.get(key.replace("-", "_"), default)


def _validate_str_list(value: Any, *, field_name: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if not isinstance(value, list) or any(not isinstance(v, str) for v in value):
        raise ConfigError(f"`{field_name}` must be a list of strings.")
    return tuple(v.strip() for v in value if v.strip())


def _validate_optional_str(value: Any, *, field_name: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigError(f"`{field_name}` must be a string.")
    return value.strip() or None


def _parse_deadweight_table(table: dict[str, Any]) -> DeadweightConfig:
    source_dir = _validate_optional_str(_get(table, "source-dir"), field_name="tool.deadweight.source-dir")
    if source_dir is not None:
        source_dir = source_dir.replace("\\", "/").strip("/")
        if ".." in Path(source_dir).parts:
            raise ConfigError("`tool.deadweight.source-dir` must not contain '..' segments.")

    package = _validate_optional_str(_get(table, "package"), field_name="tool.deadweight.package")

    # Unknown project types are not fatal; project resolution warns and falls back.
    project_type = _validate_optional_str(_get(table, "project-type"), field_name="tool.deadweight.project-type")

    analyzers = DEFAULT_ANALYZERS
    if _get(table, "analyzers") is not None:
        raw = _validate_str_list(_get(table, "analyzers"), field_name="tool.deadweight.analyzers")
        analyzers = _parse_analyzers(raw)

    generated = DEFAULT_GENERATED
    if _get(table, "generated") is not None:
        generated = _validate_str_list(_get(table, "generated"), field_name="tool.deadweight.generated")

    return DeadweightConfig(
        source_dir=source_dir or DEFAULT_SOURCE_DIR,
        package=package,
        project_type=(project_type or "auto").lower(),
        analyzers=analyzers,
        generated=generated,
        dead_code=_parse_dead_code_config(_get(table, "dead-code")),
        duplicate_code=_parse_duplicate_code_config(_get(table, "duplicate-code")),
        ignore=_parse_ignore_config(_get(table, "ignore")),
    )


def _parse_analyzers(values: Iterable[str]) -> tuple[str, ...]:
    out: list[str] = []
    for raw in values:
        normalized = normalize_analyzer_id(raw)
        if normalized not in DEFAULT_ANALYZERS:
            valid = ", ".join(DEFAULT_ANALYZERS)
            raise ConfigError(f"`tool.deadweight.analyzers` contains unknown analyzer: {raw!r}. Valid analyzers: {valid}.")
        if normalized not in out:
            out.append(normalized)
    return tuple(out)


def _parse_dead_code_config(value: Any) -> DeadCodeConfig:
    if value is None:
        return DeadCodeConfig()
    if not isinstance(value, dict):
        raise ConfigError("`tool.deadweight.dead-code` must be a table.")

    defaults = DeadCodeConfig()

    def _list(key: str, default: tuple[str, ...]) -> tuple[str, ...]:
        raw = _get(value, key)
        if raw is None:
            return default
        return _validate_str_list(raw, field_name=f"tool.deadweight.dead-code.{key}")

    entry_points = tuple(
        p.replace("\\", "/").removeprefix("./") for p in _list("entry-points", defaults.entry_points)
    )
    return DeadCodeConfig(
        entry_points=entry_points,
        internal_dirs=_list("internal-dirs", defaults.internal_dirs),
        keep_names=_list("keep-names", defaults.keep_names),
        keep_decorators=_list("keep-decorators", defaults.keep_decorators),
    )


def _parse_duplicate_code_config(value: Any) -> DuplicateCodeConfig:
    if value is None:
        return DuplicateCodeConfig()
    if not isinstance(value, dict):
        raise ConfigError("`tool.deadweight.duplicate-code` must be a table.")

    threshold = _get(value, "threshold", DEFAULT_DUPLICATE_THRESHOLD)
    if isinstance(threshold, bool) or not isinstance(threshold, (int, float)):
        raise ConfigError("`tool.deadweight.duplicate-code.threshold` must be a number.")
    validate_threshold(float(threshold), field_name="tool.deadweight.duplicate-code.threshold")

    min_tokens = _get(value, "min-tokens", DEFAULT_MIN_TOKENS)
    min_lines = _get(value, "min-lines", DEFAULT_MIN_LINES)
    for key, raw in (("min-tokens", min_tokens), ("min-lines", min_lines)):
        if isinstance(raw, bool) or not isinstance(raw, int):
            raise ConfigError(f"`tool.deadweight.duplicate-code.{key}` must be an integer.")
        if raw < 1:
            raise ConfigError(f"`tool.deadweight.duplicate-code.{key}` must be >= 1.")

    return DuplicateCodeConfig(threshold=float(threshold), min_tokens=min_tokens, min_lines=min_lines)


def validate_threshold(value: float, *, field_name: str = "threshold") -> float:
    if not (0.0 <= value <= 1.0):
        raise ConfigError(f"`{field_name}` must be between 0 and 1.")
    return value


def _parse_ignore_config(value: Any) -> IgnoreConfig:
    if value is None:
        return IgnoreConfig()
    if not isinstance(value, dict):
        raise ConfigError("`tool.deadweight.ignore` must be a table.")
    paths = _validate_str_list(value.get("paths", []), field_name="tool.deadweight.ignore.paths")
    return IgnoreConfig(paths=paths)


def path_is_ignored(path: Path, *, project_root: Path, ignore_patterns: Iterable[str]) -> bool:
    """
    Return True if `path` matches any ignore patterns.

    Patterns are evaluated against the POSIX-style relative path from `project_root`.

    Supported patterns:
    - Directory prefixes: "legacy/" matches "legacy/..." under root.
    - Globs without slashes: "*_generated.py" matches basenames.
    - Globs with slashes: "src/**/migrations/*.py" matches full relative paths.
    """

    import fnmatch

    try:
        relative = path.resolve().relative_to(project_root.resolve())
    except (ValueError, OSError, RuntimeError):
        return False

    rel_posix = relative.as_posix()
    basename = relative.name

    for raw_pattern in ignore_patterns:
        pattern = raw_pattern.strip().replace("\\", "/")
        if not pattern:
            continue
        if pattern.startswith("./"):
            pattern = pattern[2:]

        if pattern.endswith("/"):
            if rel_posix.startswith(pattern):
                return True
            continue

        if "/" in pattern:
            if fnmatch.fnmatch(rel_posix, pattern):
                return True
        elif fnmatch.fnmatch(basename, pattern) or fnmatch.fnmatch(rel_posix, pattern):
            return True

    return False
