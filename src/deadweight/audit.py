from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType

from deadweight.analyzers.dead_code.analyzer import DeadCodeAnalyzer
from deadweight.analyzers.dead_code.delegate import DeadCodeDelegate
from deadweight.analyzers.dead_code.file_data import DeadCodeFileData
from deadweight.analyzers.dead_code.issue import DeadCodeIssue
from deadweight.analyzers.duplicate_code.analyzer import DuplicateCodeAnalyzer
from deadweight.analyzers.duplicate_code.delegate import DuplicateCodeDelegate
from deadweight.analyzers.duplicate_code.file_data import DuplicateCodeFileData
from deadweight.analyzers.duplicate_code.issue import DuplicateCodeIssue
from deadweight.config import DeadweightConfig
from deadweight.engine.cache import FileContextCache
from deadweight.engine.runner import AnalyzerDelegate, AnalyzerRunner
from deadweight.scanner import (
    ScanTarget,
    build_project_context,
    discover_files,
    prepare_target,
    worker_count_from_env,
)
from deadweight.suppressions import DEAD_CODE, DUPLICATE_CODE

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AnalysisReport:
    target: ScanTarget
    files: tuple[Path, ...]
    dead_code_issues: tuple[DeadCodeIssue, ...]
    duplicate_code_issues: tuple[DuplicateCodeIssue, ...]
    result_counts: Mapping[str, int]

    @property
    def files_analyzed(self) -> int:
        return len(self.files)

    @property
    def issue_count(self) -> int:
        return len(self.dead_code_issues) + len(self.duplicate_code_issues)


@dataclass(frozen=True, slots=True)
class AnalysisCallbacks:
    on_files_discovered: Callable[[int], None] | None = None
    on_file_analyzed: Callable[[Path], None] | None = None
    should_cancel: Callable[[], bool] | None = None


def analyze_path(
    scan_path: Path,
    *,
    config: DeadweightConfig | None = None,
    workers: int | None = None,
    callbacks: AnalysisCallbacks | None = None,
) -> AnalysisReport:
    target = prepare_target(scan_path, config=config)
    files = discover_files(target)
    return analyze_files(target, files=files, workers=workers, callbacks=callbacks)


def analyze_files(
    target: ScanTarget,
    *,
    files: list[Path],
    workers: int | None = None,
    callbacks: AnalysisCallbacks | None = None,
) -> AnalysisReport:
    """
    Run every enabled analyzer over `files` in one pass and reduce the results.

    Each file is parsed once; both delegates read the same context.
    """

    project = build_project_context(target, files)
    config = target.config
    if callbacks is not None and callbacks.on_files_discovered is not None:
        callbacks.on_files_discovered(len(files))

    delegates: list[AnalyzerDelegate] = []
    if config.analyzer_enabled(DEAD_CODE):
        delegates.append(DeadCodeDelegate(project))
    if config.analyzer_enabled(DUPLICATE_CODE):
        delegates.append(DuplicateCodeDelegate(project))

    runner = AnalyzerRunner(
        project,
        delegates,
        cache=FileContextCache(project),
        workers=workers if workers is not None else worker_count_from_env(),
    )
    result = runner.analyze_all(files, on_file_done=callbacks.on_file_analyzed if callbacks else None)

    dead_code_issues: list[DeadCodeIssue] = []
    if config.analyzer_enabled(DEAD_CODE):
        analyzer = DeadCodeAnalyzer(target.info, config.dead_code)
        dead_code_issues = analyzer.analyze(result.results(DeadCodeFileData))

    duplicate_code_issues: list[DuplicateCodeIssue] = []
    if config.analyzer_enabled(DUPLICATE_CODE):
        detector = DuplicateCodeAnalyzer(config.duplicate_code.threshold)
        duplicate_code_issues = detector.analyze(
            result.results(DuplicateCodeFileData),
            should_cancel=callbacks.should_cancel if callbacks else None,
        )

    logger.debug(
        "analyzed %d files: %d dead-code issues, %d duplicate-code issues",
        result.total_files,
        len(dead_code_issues),
        len(duplicate_code_issues),
    )
    return AnalysisReport(
        target=target,
        files=tuple(sorted(files)),
        dead_code_issues=tuple(dead_code_issues),
        duplicate_code_issues=tuple(duplicate_code_issues),
        result_counts=MappingProxyType(result.counts()),
    )
