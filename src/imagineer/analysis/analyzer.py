"""Deterministic entity detection in campaign text.

The analyzer makes three passes over a text field:

1. Wiki links (``[[Name]]`` / ``[[Name|Display]]``) are resolved against
   the campaign's entities.
2. Plain-text mentions of entity names that are not linked yet are
   reported as untagged mentions.
3. Capitalized phrases that are close to, but not exactly, an entity
   name are reported as misspellings or potential aliases.

All reported offsets index into the original text, so a reviewer can
later wrap the exact span in a wiki link.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from imagineer.analysis.matching import best_match, is_whole_word_part, normalize_name
from imagineer.analysis.sources import check_source
from imagineer.core.constants import (
    CONTEXT_RADIUS,
    EXACT_MATCH_THRESHOLD,
    FUZZY_MATCH_THRESHOLD,
    MAX_MISSPELLINGS,
    MIN_MENTION_LENGTH,
)
from imagineer.core.logging import get_logger
from imagineer.models.enums import DetectionType
from imagineer.storage.analysis import AnalysisJobRecord, AnalysisRepository, DetectedItem
from imagineer.storage.entities import EntityRecord, EntityRepository

logger = get_logger(__name__)


WIKI_LINK_PATTERN = re.compile(r"\[\[([^\]|]+?)(?:\|([^\]]*?))?\]\]")
CAPITALIZED_PHRASE_PATTERN = re.compile(r"[A-Z][a-zA-Z'-]*(?:\s+[A-Za-z][a-zA-Z'-]*){0,3}")


# =============================================================================
# Text helpers
# =============================================================================


@dataclass
class WikiLink:
    """A wiki link found in text.

    Attributes:
        target: Entity name the link points at.
        display: Text shown instead of the target, if any.
        start: Offset of the opening brackets.
        end: Offset just past the closing brackets.
    """

    target: str
    display: str | None
    start: int
    end: int

    @property
    def shown_text(self) -> str:
        """Text a reader sees for this link."""
        return self.display or self.target


def find_wiki_links(content: str) -> list[WikiLink]:
    """Find every wiki link in ``content``, in order."""
    return [
        WikiLink(
            target=match.group(1),
            display=match.group(2) or None,
            start=match.start(),
            end=match.end(),
        )
        for match in WIKI_LINK_PATTERN.finditer(content)
    ]


def strip_wiki_links(content: str) -> str:
    """Replace each wiki link with the text it displays."""
    return WIKI_LINK_PATTERN.sub(lambda m: m.group(2) or m.group(1), content)


def context_snippet(content: str, start: int, end: int, radius: int = CONTEXT_RADIUS) -> str:
    """Surrounding text of a span, with ``...`` where it was cut."""
    snippet_start = max(0, start - radius)
    snippet_end = min(len(content), end + radius)
    snippet = content[snippet_start:snippet_end]
    if snippet_start > 0:
        snippet = "..." + snippet
    if snippet_end < len(content):
        snippet = snippet + "..."
    return snippet


def _mask_spans(content: str, spans: list[tuple[int, int]]) -> str:
    # Blank out spans while keeping every other offset intact. NUL never
    # matches a name or the whitespace between words of a phrase.
    chars = list(content)
    for start, end in spans:
        chars[start:end] = "\0" * (end - start)
    return "".join(chars)


def _overlaps(start: int, end: int, spans: list[tuple[int, int]]) -> bool:
    return any(start < span_end and span_start < end for span_start, span_end in spans)


# =============================================================================
# Analyzer
# =============================================================================


@dataclass
class AnalysisResult:
    """A created job together with the items found."""

    job: AnalysisJobRecord
    items: list[DetectedItem] = field(default_factory=list)


class ContentAnalyzer:
    """Scan text fields for entity references and persist the findings."""

    def __init__(self, entities: EntityRepository, analysis: AnalysisRepository) -> None:
        self.entities = entities
        self.analysis = analysis

    def analyze(
        self,
        campaign_id: int,
        source_table: str,
        source_field: str,
        source_id: int,
        content: str,
    ) -> AnalysisResult:
        """Analyze ``content`` and replace any earlier job for the same field.

        Args:
            campaign_id: Campaign whose entities are matched.
            source_table: Table of the analyzed record.
            source_field: Column of the analyzed text.
            source_id: Id of the analyzed record.
            content: Text to scan.

        Returns:
            The new job and its items.

        Raises:
            UnsupportedSourceError: If the table/field pair is not analyzable.
        """
        check_source(source_table, source_field)
        items = self.detect(campaign_id, content) if content else []
        job = self.analysis.create_job(
            campaign_id,
            source_table=source_table,
            source_id=source_id,
            source_field=source_field,
            items=items,
        )
        return AnalysisResult(job=job, items=items)

    def detect(self, campaign_id: int, content: str) -> list[DetectedItem]:
        """Run the three scans without saving anything."""
        entities = self.entities.list_for_campaign(campaign_id)
        links = find_wiki_links(content)

        link_items, linked_ids = self._scan_wiki_links(content, links, entities)
        link_spans = [(link.start, link.end) for link in links]
        masked = _mask_spans(content, link_spans)

        mention_items = self._scan_untagged_mentions(content, masked, entities, linked_ids)
        matched_ids = linked_ids | {item.entity_id for item in mention_items}
        matched_spans = [(item.position_start, item.position_end) for item in mention_items]

        misspelling_items = self._scan_misspellings(content, masked, entities, matched_ids, matched_spans)

        logger.debug(
            "Content scanned",
            campaign_id=campaign_id,
            wiki_links=len(link_items),
            mentions=len(mention_items),
            misspellings=len(misspelling_items),
        )
        return link_items + mention_items + misspelling_items

    # =========================================================================
    # Scans
    # =========================================================================

    @staticmethod
    def _scan_wiki_links(
        content: str,
        links: list[WikiLink],
        entities: list[EntityRecord],
    ) -> tuple[list[DetectedItem], set[int]]:
        items: list[DetectedItem] = []
        resolved_ids: set[int] = set()
        for link in links:
            entity, score = best_match(link.target, entities)
            item = DetectedItem(
                detection_type=DetectionType.WIKI_LINK_UNRESOLVED.value,
                matched_text=link.target,
                context_snippet=context_snippet(content, link.start, link.end),
                position_start=link.start,
                position_end=link.end,
            )
            if entity is not None and score >= EXACT_MATCH_THRESHOLD:
                item.detection_type = DetectionType.WIKI_LINK_RESOLVED.value
                item.entity_id = entity.id
                item.similarity = score
                resolved_ids.add(entity.id)
            elif entity is not None and score >= FUZZY_MATCH_THRESHOLD:
                item.entity_id = entity.id
                item.similarity = score
            items.append(item)
        return items, resolved_ids

    @staticmethod
    def _scan_untagged_mentions(
        content: str,
        masked: str,
        entities: list[EntityRecord],
        linked_ids: set[int],
    ) -> list[DetectedItem]:
        items: list[DetectedItem] = []
        for entity in entities:
            if len(entity.name) < MIN_MENTION_LENGTH or entity.id in linked_ids:
                continue
            match = re.search(re.escape(entity.name), masked, re.IGNORECASE)
            if match is None:
                continue
            start, end = match.span()
            items.append(
                DetectedItem(
                    detection_type=DetectionType.UNTAGGED_MENTION.value,
                    matched_text=content[start:end],
                    entity_id=entity.id,
                    similarity=1.0,
                    context_snippet=context_snippet(content, start, end),
                    position_start=start,
                    position_end=end,
                )
            )
        return items

    @staticmethod
    def _scan_misspellings(
        content: str,
        masked: str,
        entities: list[EntityRecord],
        matched_ids: set[int],
        matched_spans: list[tuple[int, int]],
    ) -> list[DetectedItem]:
        items: list[DetectedItem] = []
        matched_names = {normalize_name(e.name) for e in entities if e.id in matched_ids}
        for match in CAPITALIZED_PHRASE_PATTERN.finditer(masked):
            if len(items) >= MAX_MISSPELLINGS:
                break
            phrase = match.group(0)
            start, end = match.span()
            if len(phrase) < 2 or _overlaps(start, end, matched_spans):
                continue
            if normalize_name(phrase) in matched_names:
                continue

            entity, score = best_match(phrase, entities)
            if entity is None or entity.id in matched_ids:
                continue
            if not FUZZY_MATCH_THRESHOLD <= score < EXACT_MATCH_THRESHOLD:
                continue

            is_alias = is_whole_word_part(phrase, entity.name) or is_whole_word_part(entity.name, phrase)
            items.append(
                DetectedItem(
                    detection_type=(
                        DetectionType.POTENTIAL_ALIAS.value if is_alias else DetectionType.MISSPELLING.value
                    ),
                    matched_text=phrase,
                    entity_id=entity.id,
                    similarity=score,
                    context_snippet=context_snippet(content, start, end),
                    position_start=start,
                    position_end=end,
                )
            )
        return items


__all__ = [
    "WIKI_LINK_PATTERN",
    "CAPITALIZED_PHRASE_PATTERN",
    "WikiLink",
    "find_wiki_links",
    "strip_wiki_links",
    "context_snippet",
    "AnalysisResult",
    "ContentAnalyzer",
]
