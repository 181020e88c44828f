from __future__ import annotations

from typing import Callable, Iterable, Optional, Sequence, TypeVar

from .fields import UNKNOWN_LABEL

T = TypeVar("T")

EXACT_MATCH = 2
PARTIAL_MATCH = 1
NO_MATCH = 0


def match_score(candidate: str, target: str) -> int:
    """
    Score how well a control label matches a wanted label.

    Exact equality beats containment in either direction. The unknown-field
    sentinel only ever matches exactly, so it cannot absorb short targets.
    """
    if not candidate or not target:
        return NO_MATCH
    if candidate == target:
        return EXACT_MATCH
    if candidate == UNKNOWN_LABEL or target == UNKNOWN_LABEL:
        return NO_MATCH
    if candidate in target or target in candidate:
        return PARTIAL_MATCH
    return NO_MATCH


def best_match(items: Sequence[T], target: str, labels_of: Callable[[T], Iterable[str]]) -> Optional[T]:
    """Return the highest scoring item; ties go to the earliest item in document order."""
    best: Optional[T] = None
    best_score = NO_MATCH
    for item in items:
        score = max((match_score(label, target) for label in labels_of(item)), default=NO_MATCH)
        if score > best_score:
            best, best_score = item, score
    return best
