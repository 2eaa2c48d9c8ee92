from __future__ import annotations

import logging
import math
from collections.abc import Callable, Iterable, Sequence

from deadweight.analyzers.duplicate_code.file_data import DuplicateCodeFileData, DuplicateCodeSnippet
from deadweight.analyzers.duplicate_code.issue import DuplicateCodeIssue
from deadweight.config import DEFAULT_DUPLICATE_THRESHOLD, validate_threshold

logger = logging.getLogger(__name__)

# Absorbs float error so that e.g. 19/20 compares equal to a 0.95 threshold.
_EPSILON = 1e-9


def bounded_levenshtein(left: Sequence[str], right: Sequence[str], max_distance: int) -> int:
    """
    Edit distance between two token sequences, computed only inside a diagonal
    band of width `max_distance`.

    Returns the exact distance when it is at most `max_distance`, otherwise
    some value greater than `max_distance`. The result does not depend on the
    argument order.
    """

    sentinel = max_distance + 1
    if abs(len(left) - len(right)) > max_distance:
        return sentinel
    if not left or not right:
        return max(len(left), len(right))

    source, target = (left, right) if len(left) <= len(right) else (right, left)
    target_length = len(target)

    previous = [min(j, sentinel) for j in range(target_length + 1)]
    current = [sentinel] * (target_length + 1)

    for i in range(1, len(source) + 1):
        start = max(1, i - max_distance)
        end = min(target_length, i + max_distance)
        current[0] = i
        if start > 1:
            current[start - 1] = sentinel
        row_min = current[0] if start == 1 else sentinel
        item = source[i - 1]

        for j in range(start, end + 1):
            substitution = previous[j - 1] + (0 if item == target[j - 1] else 1)
            deletion = previous[j] + 1
            insertion = current[j - 1] + 1
            value = min(substitution, deletion, insertion)
            current[j] = value
            if value < row_min:
                row_min = value

        if end < target_length:
            current[end + 1] = sentinel
        if row_min > max_distance:
            return sentinel
        previous, current = current, previous

    return previous[target_length]


class DuplicateCodeAnalyzer:
    """
    Project-wide reduce of function snippets into similar-pair findings.

    Only snippets with identical parameter signatures are compared. A pair is
    reported when its token similarity `1 - distance / longer_length` reaches
    the threshold.
    """

    def __init__(self, threshold: float = DEFAULT_DUPLICATE_THRESHOLD) -> None:
        self.threshold = validate_threshold(threshold)

    def max_distance(self, max_length: int) -> int:
        return max(0, math.floor((1.0 - self.threshold) * max_length + _EPSILON))

    def similarity(self, left: Sequence[str], right: Sequence[str]) -> float:
        max_length = max(len(left), len(right))
        if max_length == 0:
            return 1.0
        limit = self.max_distance(max_length)
        distance = bounded_levenshtein(left, right, limit)
        if distance > limit:
            return 0.0
        return 1.0 - distance / max_length

    def analyze(
        self,
        file_data: Iterable[DuplicateCodeFileData],
        *,
        should_cancel: Callable[[], bool] | None = None,
    ) -> list[DuplicateCodeIssue]:
        snippets = sorted(
            (snippet for data in file_data for snippet in data.snippets),
            key=lambda s: (s.path.as_posix(), s.line, s.symbol),
        )
        logger.debug("duplicate code: comparing %d snippets", len(snippets))

        issues: list[DuplicateCodeIssue] = []
        compared = 0
        for idx, first in enumerate(snippets):
            for second in snippets[idx + 1 :]:
                if should_cancel is not None and should_cancel():
                    logger.debug("duplicate code: cancelled after %d comparisons", compared)
                    return sorted(issues, key=_issue_sort_key)
                issue = self._compare(first, second)
                compared += 1
                if issue is not None:
                    issues.append(issue)

        logger.debug("duplicate code: %d comparisons, %d similar pairs", compared, len(issues))
        return sorted(issues, key=_issue_sort_key)

    def _compare(self, first: DuplicateCodeSnippet, second: DuplicateCodeSnippet) -> DuplicateCodeIssue | None:
        if first.parameter_signature != second.parameter_signature:
            return None

        shorter, longer = sorted((first.token_count, second.token_count))
        if longer == 0:
            return None
        # Length alone already caps the similarity at shorter/longer.
        if shorter / longer + _EPSILON < self.threshold:
            return None

        similarity = self.similarity(first.normalized_tokens, second.normalized_tokens)
        if similarity + _EPSILON < self.threshold:
            return None

        return DuplicateCodeIssue(
            path_a=first.path,
            line_a=first.line,
            symbol_a=first.symbol,
            path_b=second.path,
            line_b=second.line,
            symbol_b=second.symbol,
            similarity=similarity,
            line_count=min(first.non_empty_line_count, second.non_empty_line_count),
        )


def _issue_sort_key(issue: DuplicateCodeIssue) -> tuple[float, int, str, str, int, int, str, str]:
    return (
        -issue.similarity,
        -issue.line_count,
        issue.path_a.as_posix(),
        issue.path_b.as_posix(),
        issue.line_a,
        issue.line_b,
        issue.symbol_a,
        issue.symbol_b,
    )
