from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Protocol, TypeVar, cast

from deadweight.engine.cache import FileContextCache
from deadweight.engine.context import FileContext, ProjectContext

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AnalyzerDelegate(Protocol):
    """
    Per-file half of an analyzer.

    `result_type` names the class `analyze_file` returns; the runner keeps one
    output channel per result type. `analyze_file` receives the shared context
    of one file and returns a per-file result, or None when the file
    contributes nothing. It must not mutate the context and must be safe to
    call from several threads.
    """

    result_type: type

    def analyze_file(self, ctx: FileContext) -> object | None: ...


@dataclass(frozen=True, slots=True)
class RunnerResult:
    """Per-file results of one pipeline run, bucketed by the delegates' result types in file order."""

    total_files: int
    results_by_type: Mapping[type, tuple[object, ...]]

    def results(self, result_type: type[T]) -> list[T]:
        return list(cast("tuple[T, ...]", self.results_by_type.get(result_type, ())))

    def counts(self) -> dict[str, int]:
        return {kind.__name__: len(items) for kind, items in self.results_by_type.items()}


class AnalyzerRunner:
    """
    Single-pass pipeline: every file is parsed once and handed to every delegate.

    The per-file map may run on a thread pool; the reduce step that buckets the
    results always runs on the calling thread, in sorted file order, so the
    outcome does not depend on the worker count.
    """

    def __init__(
        self,
        project: ProjectContext,
        delegates: Sequence[AnalyzerDelegate],
        *,
        cache: FileContextCache | None = None,
        workers: int = 1,
    ) -> None:
        self.project = project
        self.delegates = tuple(delegates)
        self.cache = cache if cache is not None else FileContextCache(project)
        self.workers = max(1, workers)

    def analyze_all(
        self,
        files: Iterable[Path] | None = None,
        *,
        on_file_done: Callable[[Path], None] | None = None,
    ) -> RunnerResult:
        paths = sorted(set(files if files is not None else self.project.files))

        per_file: list[list[tuple[type, object]]] = []
        if self.workers <= 1 or len(paths) <= 1:
            for path in paths:
                per_file.append(self._analyze_file(path))
                if on_file_done is not None:
                    on_file_done(path)
        else:
            max_workers = min(self.workers, len(paths))
            with ThreadPoolExecutor(max_workers=max_workers) as executor:
                for path, results in zip(paths, executor.map(self._analyze_file, paths), strict=True):
                    per_file.append(results)
                    if on_file_done is not None:
                        on_file_done(path)

        buckets: dict[type, list[object]] = {delegate.result_type: [] for delegate in self.delegates}
        for results in per_file:
            for result_type, result in results:
                buckets[result_type].append(result)

        stats = self.cache.stats()
        logger.debug("pipeline: %d files, cache %d hits / %d misses", len(paths), stats.hits, stats.misses)
        return RunnerResult(
            total_files=len(paths),
            results_by_type=MappingProxyType({kind: tuple(items) for kind, items in buckets.items()}),
        )

    def _analyze_file(self, path: Path) -> list[tuple[type, object]]:
        try:
            ctx = self.cache.get(path)
        except Exception as exc:  # noqa: BLE001
            logger.warning("cannot build context for %s: %s", path, exc)
            return []
        if ctx is None:
            return []

        results: list[tuple[type, object]] = []
        for delegate in self.delegates:
            try:
                result = delegate.analyze_file(ctx)
            except Exception as exc:  # noqa: BLE001
                logger.warning("%s failed on %s: %s", type(delegate).__name__, ctx.relative_path, exc)
                continue
            if result is not None:
                results.append((delegate.result_type, result))
        return results
