from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal

from deadweight.config import DeadweightConfig

logger = logging.getLogger(__name__)

ProjectType = Literal["library", "application"]

_LIBRARY_ALIASES = {"library", "lib", "package"}
_APPLICATION_ALIASES = {"application", "app"}
_SCRIPT_TABLES = ("scripts", "gui-scripts")


@dataclass(frozen=True, slots=True)
class ProjectInfo:
    """
    What the analyzers need to know about the project being scanned.

    `public_root` is the directory whose modules form the public API of a
    library: `<source_dir>/<package_name>` when that package exists, otherwise
    `source_dir` itself.
    """

    root: Path
    package_name: str
    project_type: ProjectType
    source_dir: Path
    public_root: Path
    script_modules: tuple[str, ...] = ()

    @property
    def is_library(self) -> bool:
        return self.project_type == "library"

    @property
    def root_module(self) -> Path:
        return self.public_root / "__init__.py"


def normalize_package_name(name: str) -> str:
    return re.sub(r"[-.\s]+", "_", name.strip()).lower()


def parse_project_type(value: str | None, *, has_project_table: bool) -> ProjectType:
    """
    Map a configured project type onto `library`/`application`.

    `auto` (or nothing) picks `library` when the project declares a `[project]`
    table. Unknown strings fall back to `application` with a warning.
    """

    normalized = (value or "auto").strip().lower()
    if normalized == "auto":
        return "library" if has_project_table else "application"
    if normalized in _LIBRARY_ALIASES:
        return "library"
    if normalized in _APPLICATION_ALIASES:
        return "application"
    logger.warning("unknown project type %r; treating the project as an application", value)
    return "application"


def resolve_project_info(root: Path, config: DeadweightConfig, pyproject: Mapping[str, Any] | None = None) -> ProjectInfo:
    pyproject = pyproject or {}
    project_table = pyproject.get("project")
    has_project_table = isinstance(project_table, dict)

    source_dir = root / config.source_dir
    if not source_dir.is_dir():
        source_dir = root

    package_name = config.package
    if package_name is None and has_project_table and isinstance(project_table.get("name"), str):
        package_name = project_table["name"]
    package_name = normalize_package_name(package_name or root.name)

    public_root = source_dir / package_name
    if not public_root.is_dir():
        public_root = source_dir

    return ProjectInfo(
        root=root,
        package_name=package_name,
        project_type=parse_project_type(config.project_type, has_project_table=has_project_table),
        source_dir=source_dir,
        public_root=public_root,
        script_modules=_script_modules(project_table) if has_project_table else (),
    )


def _script_modules(project_table: Mapping[str, Any]) -> tuple[str, ...]:
    """Modules referenced by `[project.scripts]` style `module:attr` targets."""

    modules: set[str] = set()
    for table_name in _SCRIPT_TABLES:
        table = project_table.get(table_name)
        if not isinstance(table, dict):
            continue
        for target in table.values():
            if not isinstance(target, str):
                continue
            module = target.split(":", 1)[0].strip()
            if module:
                modules.add(module)
    return tuple(sorted(modules))
