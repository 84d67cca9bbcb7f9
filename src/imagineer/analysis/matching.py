"""Fuzzy name matching between free text and campaign entities.

Scores are rapidfuzz ratios scaled to 0.0-1.0 over normalized names, with
a case-insensitive exact match always scoring 1.0.
"""

from __future__ import annotations

import re
from typing import Iterable, Protocol, TypeVar

from rapidfuzz import fuzz


class Named(Protocol):
    """Anything with a display name, typically an EntityRecord."""

    name: str


N = TypeVar("N", bound=Named)


def normalize_name(name: str) -> str:
    """Normalize a name for matching.

    Args:
        name: Raw entity name or phrase.

    Returns:
        Lowercase name with runs of whitespace collapsed.
    """
    return " ".join(name.split()).lower()


def name_similarity(name1: str, name2: str) -> float:
    """Calculate fuzzy match ratio between two names.

    Args:
        name1: First name.
        name2: Second name.

    Returns:
        Match ratio (0.0-1.0).
    """
    left = normalize_name(name1)
    right = normalize_name(name2)
    if left == right:
        return 1.0
    return fuzz.ratio(left, right) / 100.0


def best_match(name: str, candidates: Iterable[N]) -> tuple[N | None, float]:
    """Find the candidate whose name is closest to ``name``.

    Ties keep the earliest candidate.

    Returns:
        Tuple of (best candidate or None, its similarity).
    """
    best: N | None = None
    best_score = 0.0
    for candidate in candidates:
        score = name_similarity(name, candidate.name)
        if score > best_score:
            best = candidate
            best_score = score
    return best, best_score


def rank_matches(
    name: str,
    candidates: Iterable[N],
    *,
    threshold: float,
    limit: int | None = None,
) -> list[tuple[N, float]]:
    """Score every candidate and keep those at or above ``threshold``.

    Returns:
        (candidate, similarity) pairs, most similar first.
    """
    scored = [(candidate, name_similarity(name, candidate.name)) for candidate in candidates]
    ranked = sorted(
        (pair for pair in scored if pair[1] >= threshold),
        key=lambda pair: (-pair[1], pair[0].name.lower()),
    )
    return ranked[:limit] if limit is not None else ranked


def is_whole_word_part(fragment: str, name: str) -> bool:
    """Whether ``fragment`` appears as whole words inside a longer ``name``.

    Used to tell a shortened form ("Armitage") of an entity name
    ("Henry Armitage") apart from a plain misspelling.
    """
    fragment = normalize_name(fragment)
    name = normalize_name(name)
    if not fragment or len(fragment) >= len(name):
        return False
    return re.search(rf"\b{re.escape(fragment)}\b", name) is not None


__all__ = [
    "normalize_name",
    "name_similarity",
    "best_match",
    "rank_matches",
    "is_whole_word_part",
]
