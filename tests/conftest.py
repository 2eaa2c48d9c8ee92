from __future__ import annotations

from pathlib import Path

import pytest

from deadweight.config import DeadweightConfig
from deadweight.engine.context import ProjectContext
from deadweight.project import resolve_project_info


@pytest.fixture()
def project_ctx(tmp_path: Path) -> ProjectContext:
    config = DeadweightConfig()
    return ProjectContext(
        project_root=tmp_path,
        scan_path=tmp_path,
        files=(),
        config=config,
        info=resolve_project_info(tmp_path, config),
    )
