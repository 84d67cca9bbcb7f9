"""Content analysis: finding entity references in campaign text.

The analyzer, resolution service and consistency checker live in
``imagineer.analysis.analyzer``, ``imagineer.analysis.resolution`` and
``imagineer.analysis.consistency``; only the name matching helpers are
exported here because storage depends on them.
"""

from imagineer.analysis.matching import (
    best_match,
    is_whole_word_part,
    name_similarity,
    normalize_name,
    rank_matches,
)

__all__ = [
    "best_match",
    "is_whole_word_part",
    "name_similarity",
    "normalize_name",
    "rank_matches",
]
