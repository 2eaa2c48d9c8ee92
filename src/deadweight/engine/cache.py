from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from deadweight.engine.context import FileContext, ProjectContext
from deadweight.scanner import build_file_context

logger = logging.getLogger(__name__)

ContextBuilder = Callable[[ProjectContext, Path], FileContext | None]


@dataclass(frozen=True, slots=True)
class CacheStats:
    hits: int
    misses: int
    size: int


class FileContextCache:
    """
    Per-run cache of parsed files.

    Each path is read and parsed at most once, even when several worker threads
    ask for it at the same time. Unreadable files are cached as `None` too.
    Entries stay valid until `invalidate()`/`clear()`; the owner of the cache is
    responsible for dropping entries whose files changed.
    """

    def __init__(self, project: ProjectContext, *, builder: ContextBuilder = build_file_context) -> None:
        self._project = project
        self._builder = builder
        self._lock = threading.Lock()
        self._entries: dict[Path, FileContext | None] = {}
        self._building: dict[Path, threading.Lock] = {}
        self._hits = 0
        self._misses = 0

    def get(self, path: Path) -> FileContext | None:
        with self._lock:
            if path in self._entries:
                self._hits += 1
                return self._entries[path]
            build_lock = self._building.setdefault(path, threading.Lock())

        with build_lock:
            with self._lock:
                if path in self._entries:
                    self._hits += 1
                    return self._entries[path]

            ctx = self._builder(self._project, path)

            with self._lock:
                self._entries[path] = ctx
                self._misses += 1
                self._building.pop(path, None)
            return ctx

    def invalidate(self, path: Path) -> None:
        with self._lock:
            self._entries.pop(path, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(hits=self._hits, misses=self._misses, size=len(self._entries))
