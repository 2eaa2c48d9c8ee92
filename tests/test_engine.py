from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path

import pytest

from deadweight.analyzers.dead_code.delegate import DeadCodeDelegate
from deadweight.analyzers.dead_code.file_data import DeadCodeFileData
from deadweight.analyzers.duplicate_code.delegate import DuplicateCodeDelegate
from deadweight.engine.cache import FileContextCache
from deadweight.engine.context import FileContext, ProjectContext
from deadweight.engine.runner import AnalyzerRunner
from deadweight.scanner import build_file_context


@dataclass(frozen=True)
class LineCount:
    path: Path
    lines: int


@dataclass(frozen=True)
class ParseState:
    path: Path
    broken: bool


class LineCountDelegate:
    result_type = LineCount

    def analyze_file(self, ctx: FileContext) -> LineCount:
        return LineCount(path=ctx.path, lines=len(ctx.lines))


class ParseStateDelegate:
    result_type = ParseState

    def analyze_file(self, ctx: FileContext) -> ParseState:
        return ParseState(path=ctx.path, broken=ctx.has_parse_errors)


class ExplodingDelegate:
    result_type = LineCount

    def __init__(self, name: str) -> None:
        self.name = name

    def analyze_file(self, ctx: FileContext) -> LineCount | None:
        if ctx.path.name == self.name:
            raise RuntimeError("boom")
        return None


class CountingBuilder:
    def __init__(self, delay: float = 0.0) -> None:
        self.calls: dict[Path, int] = {}
        self.delay = delay
        self._lock = threading.Lock()

    def __call__(self, project: ProjectContext, path: Path) -> FileContext | None:
        with self._lock:
            self.calls[path] = self.calls.get(path, 0) + 1
        if self.delay:
            time.sleep(self.delay)
        return build_file_context(project, path)


def _write(project_ctx: ProjectContext, files: dict[str, str]) -> list[Path]:
    paths = []
    for name, content in files.items():
        path = project_ctx.project_root / name
        path.write_text(content, encoding="utf-8")
        paths.append(path)
    return paths


def test_cache_builds_each_path_once_under_concurrency(project_ctx: ProjectContext) -> None:
    (path,) = _write(project_ctx, {"a.py": "x = 1\n"})
    builder = CountingBuilder(delay=0.05)
    cache = FileContextCache(project_ctx, builder=builder)

    with ThreadPoolExecutor(max_workers=8) as executor:
        results = list(executor.map(lambda _: cache.get(path), range(8)))

    assert builder.calls == {path: 1}
    assert all(r is results[0] for r in results)
    stats = cache.stats()
    assert stats.misses == 1
    assert stats.hits == 7
    assert stats.size == 1


def test_cache_invalidate_and_clear_force_rebuild(project_ctx: ProjectContext) -> None:
    (path,) = _write(project_ctx, {"a.py": "x = 1\n"})
    builder = CountingBuilder()
    cache = FileContextCache(project_ctx, builder=builder)

    first = cache.get(path)
    assert cache.get(path) is first

    path.write_text("x = 2\n", encoding="utf-8")
    cache.invalidate(path)
    second = cache.get(path)
    assert second is not None
    assert second.text == "x = 2\n"

    cache.clear()
    cache.get(path)
    assert builder.calls[path] == 3


def test_cache_remembers_unreadable_files(project_ctx: ProjectContext) -> None:
    missing = project_ctx.project_root / "missing.py"
    builder = CountingBuilder()
    cache = FileContextCache(project_ctx, builder=builder)

    assert cache.get(missing) is None
    assert cache.get(missing) is None
    assert builder.calls == {missing: 1}


def test_runner_parses_each_file_once_for_all_delegates(project_ctx: ProjectContext) -> None:
    paths = _write(project_ctx, {"b.py": "x = 1\n", "a.py": "x = 1\ny = 2\n", "c.py": "z = 3\n"})
    builder = CountingBuilder()
    runner = AnalyzerRunner(
        project_ctx,
        [LineCountDelegate(), ParseStateDelegate(), DeadCodeDelegate(project_ctx), DuplicateCodeDelegate(project_ctx)],
        cache=FileContextCache(project_ctx, builder=builder),
    )

    result = runner.analyze_all(paths)

    assert result.total_files == 3
    assert all(count == 1 for count in builder.calls.values())
    assert len(builder.calls) == 3
    counts = result.results(LineCount)
    assert [c.path.name for c in counts] == ["a.py", "b.py", "c.py"]
    assert [c.lines for c in counts] == [2, 1, 1]
    assert result.counts()["LineCount"] == 3


def test_runner_passes_parse_errors_to_delegates(project_ctx: ProjectContext) -> None:
    paths = _write(project_ctx, {"ok.py": "x = 1\n", "broken.py": "def broken(:\n"})
    runner = AnalyzerRunner(project_ctx, [ParseStateDelegate(), DeadCodeDelegate(project_ctx)])

    result = runner.analyze_all(paths)

    states = {s.path.name: s.broken for s in result.results(ParseState)}
    assert states == {"broken.py": True, "ok.py": False}
    assert [d.path.name for d in result.results(DeadCodeFileData)] == ["ok.py"]


def test_runner_isolates_delegate_failures(project_ctx: ProjectContext, caplog: pytest.LogCaptureFixture) -> None:
    paths = _write(project_ctx, {"a.py": "x = 1\n", "bad.py": "x = 1\n", "c.py": "x = 1\n"})
    runner = AnalyzerRunner(project_ctx, [ExplodingDelegate("bad.py"), LineCountDelegate()])

    with caplog.at_level(logging.WARNING, logger="deadweight.engine.runner"):
        result = runner.analyze_all(paths)

    assert [c.path.name for c in result.results(LineCount)] == ["a.py", "bad.py", "c.py"]
    assert "ExplodingDelegate failed on bad.py" in caplog.text


def test_runner_parallel_matches_serial(project_ctx: ProjectContext) -> None:
    files = {f"m{i:02d}.py": "x = 1\n" * (i + 1) for i in range(12)}
    paths = _write(project_ctx, files)

    serial = AnalyzerRunner(project_ctx, [LineCountDelegate()], workers=1).analyze_all(paths)
    parallel = AnalyzerRunner(project_ctx, [LineCountDelegate()], workers=4).analyze_all(reversed(paths))

    assert serial.results(LineCount) == parallel.results(LineCount)
    assert [c.lines for c in serial.results(LineCount)] == list(range(1, 13))


def test_runner_reports_progress_per_file(project_ctx: ProjectContext) -> None:
    paths = _write(project_ctx, {"a.py": "x = 1\n", "b.py": "x = 1\n"})
    seen: list[str] = []

    AnalyzerRunner(project_ctx, [LineCountDelegate()], workers=2).analyze_all(
        paths, on_file_done=lambda p: seen.append(p.name)
    )

    assert seen == ["a.py", "b.py"]


def test_runner_defaults_to_project_files(project_ctx: ProjectContext) -> None:
    paths = _write(project_ctx, {"a.py": "x = 1\n"})
    project = ProjectContext(
        project_root=project_ctx.project_root,
        scan_path=project_ctx.scan_path,
        files=tuple(paths),
        config=project_ctx.config,
        info=project_ctx.info,
    )

    result = AnalyzerRunner(project, [LineCountDelegate()]).analyze_all()

    assert [c.path for c in result.results(LineCount)] == paths


def test_runner_isolates_context_build_failures(project_ctx: ProjectContext, caplog: pytest.LogCaptureFixture) -> None:
    paths = _write(project_ctx, {"a.py": "x = 1\n", "b.py": "x = 1\n"})

    def builder(project: ProjectContext, path: Path) -> FileContext | None:
        if path.name == "a.py":
            raise RecursionError("maximum recursion depth exceeded during ast construction")
        return build_file_context(project, path)

    runner = AnalyzerRunner(project_ctx, [LineCountDelegate()], cache=FileContextCache(project_ctx, builder=builder))

    with caplog.at_level(logging.WARNING, logger="deadweight.engine.runner"):
        result = runner.analyze_all(paths)

    assert [c.path.name for c in result.results(LineCount)] == ["b.py"]
    assert result.total_files == 2
    assert "cannot build context for" in caplog.text
    assert "a.py" in caplog.text


class SilentDelegate:
    result_type = ParseState

    def analyze_file(self, ctx: FileContext) -> ParseState | None:
        return None


def test_runner_keeps_one_channel_per_declared_result_type(project_ctx: ProjectContext) -> None:
    paths = _write(project_ctx, {"a.py": "x = 1\n"})

    result = AnalyzerRunner(project_ctx, [LineCountDelegate(), LineCountDelegate(), SilentDelegate()]).analyze_all(paths)

    assert [c.lines for c in result.results(LineCount)] == [1, 1]
    assert result.results(ParseState) == []
    assert result.results(DeadCodeFileData) == []
    assert result.counts() == {"LineCount": 2, "ParseState": 0}
