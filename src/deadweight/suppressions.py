from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from types import MappingProxyType

DEAD_CODE = "dead-code"
DUPLICATE_CODE = "duplicate-code"


@dataclass(frozen=True, slots=True)
class Suppressions:
    """
    Analyzer suppressions extracted from in-file comment directives.

    Supported directives (case-insensitive):
    - `deadweight: disable-file=dead-code,duplicate-code` (whole file)
    - `deadweight: disable=dead-code` (declarations on that same line)
    - `deadweight: disable-next-line=dead-code` (declarations on the next line)

    `all` matches every analyzer.
    """

    disabled_in_file: frozenset[str]
    disabled_on_line: Mapping[int, frozenset[str]]

    def is_disabled_for_file(self, analyzer_id: str) -> bool:
        return "all" in self.disabled_in_file or normalize_analyzer_id(analyzer_id) in self.disabled_in_file

    def is_suppressed(self, analyzer_id: str, *, line: int | None) -> bool:
        if self.is_disabled_for_file(analyzer_id):
            return True
        if line is None:
            return False
        disabled = self.disabled_on_line.get(line)
        if not disabled:
            return False
        return "all" in disabled or normalize_analyzer_id(analyzer_id) in disabled


EMPTY_SUPPRESSIONS = Suppressions(disabled_in_file=frozenset(), disabled_on_line=MappingProxyType({}))

_DISABLE_FILE_RE = re.compile(r"deadweight:\s*disable[-_]?file\s*=\s*(?P<ids>[a-z0-9_,\-\s]+)", re.IGNORECASE)
_DISABLE_RE = re.compile(r"deadweight:\s*disable\s*=\s*(?P<ids>[a-z0-9_,\-\s]+)", re.IGNORECASE)
_DISABLE_NEXT_RE = re.compile(r"deadweight:\s*disable[-_]next[-_]line\s*=\s*(?P<ids>[a-z0-9_,\-\s]+)", re.IGNORECASE)


def normalize_analyzer_id(value: str) -> str:
    return value.strip().lower().replace("_", "-")


def parse_suppressions(lines: Sequence[str]) -> Suppressions:
    disabled_in_file: set[str] = set()
    disabled_on_line: dict[int, set[str]] = {}

    for idx, line in enumerate(lines, start=1):
        if "deadweight" not in line.lower():
            continue

        match_file = _DISABLE_FILE_RE.search(line)
        if match_file:
            disabled_in_file.update(_parse_ids(match_file.group("ids")))

        match = _DISABLE_RE.search(line)
        if match:
            disabled_on_line.setdefault(idx, set()).update(_parse_ids(match.group("ids")))

        match_next = _DISABLE_NEXT_RE.search(line)
        if match_next:
            target = idx + 1
            disabled_on_line.setdefault(target, set()).update(_parse_ids(match_next.group("ids")))

    frozen = {line: frozenset(ids) for line, ids in disabled_on_line.items()}
    return Suppressions(disabled_in_file=frozenset(sorted(disabled_in_file)), disabled_on_line=MappingProxyType(frozen))


def _parse_ids(value: str) -> set[str]:
    ids = set()
    for token in re.split(r"[,\s]+", value.strip()):
        normalized = normalize_analyzer_id(token)
        if normalized:
            ids.add(normalized)
    return ids
