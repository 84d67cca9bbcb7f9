"""Tests for the deterministic content analyzer."""

from __future__ import annotations

import pytest

from imagineer.analysis.analyzer import (
    ContentAnalyzer,
    context_snippet,
    find_wiki_links,
    strip_wiki_links,
)
from imagineer.core.exceptions import UnsupportedSourceError
from imagineer.storage.analysis import AnalysisRepository, DetectedItem
from imagineer.storage.campaigns import CampaignRecord
from imagineer.storage.database import Database
from imagineer.storage.entities import EntityRecord, EntityRepository


@pytest.fixture
def analyzer(db: Database) -> ContentAnalyzer:
    """Analyzer over the test database."""
    return ContentAnalyzer(EntityRepository(db), AnalysisRepository(db))


def _of_type(items: list[DetectedItem], detection_type: str) -> list[DetectedItem]:
    return [item for item in items if item.detection_type == detection_type]


class TestTextHelpers:
    """Tests for wiki link and snippet helpers."""

    def test_find_wiki_links(self) -> None:
        """Test plain and display links are parsed with offsets."""
        content = "See [[Captain Vex]] in [[Port Azure|the port]]."

        links = find_wiki_links(content)

        assert [(l.target, l.display) for l in links] == [
            ("Captain Vex", None),
            ("Port Azure", "the port"),
        ]
        assert content[links[0].start:links[0].end] == "[[Captain Vex]]"
        assert links[1].shown_text == "the port"

    def test_strip_wiki_links(self) -> None:
        """Test links are replaced by the text they show."""
        assert strip_wiki_links("[[Captain Vex]] sails to [[Port Azure|the port]]") == (
            "Captain Vex sails to the port"
        )

    def test_context_snippet_marks_cuts(self) -> None:
        """Test a snippet is marked where it was cut."""
        content = "a" * 100 + "Vex" + "b" * 100

        snippet = context_snippet(content, 100, 103, radius=5)

        assert snippet == "...aaaaaVexbbbbb..."

    def test_context_snippet_whole_text(self) -> None:
        """Test short text is returned without markers."""
        assert context_snippet("Vex waits", 0, 3) == "Vex waits"


class TestWikiLinkScan:
    """Tests for wiki link detection."""

    def test_resolved_link(
        self,
        analyzer: ContentAnalyzer,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
    ) -> None:
        """Test a link to an existing entity is resolved."""
        items = analyzer.detect(campaign.id, "[[Captain Vex]] sails.")

        resolved = _of_type(items, "wiki_link_resolved")
        assert len(resolved) == 1
        assert resolved[0].entity_id == entities["Captain Vex"].id
        assert (resolved[0].position_start, resolved[0].position_end) == (0, 15)
        assert _of_type(items, "untagged_mention") == []

    def test_display_link_uses_target(
        self,
        analyzer: ContentAnalyzer,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
    ) -> None:
        """Test a display link is matched on its target name."""
        items = analyzer.detect(campaign.id, "docked at [[Port Azure|the port]]")

        resolved = _of_type(items, "wiki_link_resolved")
        assert resolved[0].matched_text == "Port Azure"
        assert resolved[0].entity_id == entities["Port Azure"].id

    def test_unresolved_link_with_suggestion(
        self,
        analyzer: ContentAnalyzer,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
    ) -> None:
        """Test a loosely matching link is unresolved but suggests an entity."""
        items = analyzer.detect(campaign.id, "ask [[Vex]]")

        unresolved = _of_type(items, "wiki_link_unresolved")
        assert len(unresolved) == 1
        assert unresolved[0].entity_id == entities["Captain Vex"].id
        assert 0.4 <= unresolved[0].similarity < 0.9

    def test_unresolved_link_without_suggestion(
        self,
        analyzer: ContentAnalyzer,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
    ) -> None:
        """Test a link to nothing similar carries no entity."""
        items = analyzer.detect(campaign.id, "ask [[Qzxw]]")

        unresolved = _of_type(items, "wiki_link_unresolved")
        assert unresolved[0].entity_id is None
        assert unresolved[0].similarity is None


class TestMentionScan:
    """Tests for untagged mention detection."""

    def test_case_insensitive_mention(
        self,
        analyzer: ContentAnalyzer,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
    ) -> None:
        """Test a plain mention is found with its original casing and offsets."""
        content = "the crew feared captain vex."

        items = analyzer.detect(campaign.id, content)

        assert len(items) == 1
        assert items[0].detection_type == "untagged_mention"
        assert items[0].matched_text == "captain vex"
        assert content[items[0].position_start:items[0].position_end] == "captain vex"
        assert items[0].similarity == 1.0

    def test_mention_is_not_also_a_misspelling(
        self,
        analyzer: ContentAnalyzer,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
    ) -> None:
        """Test the phrase scan skips text already reported as a mention."""
        items = analyzer.detect(campaign.id, "Captain Vex!")

        assert [item.detection_type for item in items] == ["untagged_mention"]

    def test_short_names_are_ignored(
        self,
        db: Database,
        analyzer: ContentAnalyzer,
        campaign: CampaignRecord,
    ) -> None:
        """Test names shorter than three characters are not searched for."""
        EntityRepository(db).create(campaign.id, entity_type="creature", name="Ox")

        assert analyzer.detect(campaign.id, "the ox ran") == []


class TestPhraseScan:
    """Tests for misspelling and alias detection."""

    def test_misspelling(
        self,
        analyzer: ContentAnalyzer,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
    ) -> None:
        """Test a close capitalized phrase is reported as a misspelling."""
        items = analyzer.detect(campaign.id, "Prot Azur.")

        assert len(items) == 1
        assert items[0].detection_type == "misspelling"
        assert items[0].matched_text == "Prot Azur"
        assert items[0].entity_id == entities["Port Azure"].id
        assert (items[0].position_start, items[0].position_end) == (0, 9)

    def test_potential_alias(
        self,
        analyzer: ContentAnalyzer,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
    ) -> None:
        """Test part of a longer name is reported as a potential alias."""
        items = analyzer.detect(campaign.id, "Armitage.")

        assert len(items) == 1
        assert items[0].detection_type == "potential_alias"
        assert items[0].entity_id == entities["Henry Armitage"].id

    def test_linked_entity_not_reported_again(
        self,
        analyzer: ContentAnalyzer,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
    ) -> None:
        """Test an entity already linked is not suggested for a near phrase."""
        items = analyzer.detect(campaign.id, "[[Port Azure]] and later. Prot Azur.")

        assert _of_type(items, "misspelling") == []


class TestAnalyze:
    """Tests for persisting analysis jobs."""

    def test_creates_job_with_items(
        self,
        db: Database,
        analyzer: ContentAnalyzer,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
    ) -> None:
        """Test the job counts the saved items."""
        result = analyzer.analyze(campaign.id, "chapters", "overview", 1, "the crew feared captain vex.")

        assert result.job.status == "completed"
        assert result.job.total_items == 1
        assert len(AnalysisRepository(db).list_items(result.job.id)) == 1

    def test_rerun_replaces_job(
        self,
        db: Database,
        analyzer: ContentAnalyzer,
        campaign: CampaignRecord,
        entities: dict[str, EntityRecord],
    ) -> None:
        """Test analyzing the same field again replaces the earlier job."""
        first = analyzer.analyze(campaign.id, "chapters", "overview", 1, "captain vex")
        second = analyzer.analyze(campaign.id, "chapters", "overview", 1, "nothing here")

        jobs = AnalysisRepository(db).list_jobs(campaign.id)

        assert [job.id for job in jobs] == [second.job.id]
        assert first.job.id != second.job.id

    def test_empty_content(self, analyzer: ContentAnalyzer, campaign: CampaignRecord) -> None:
        """Test empty text still produces an empty job."""
        result = analyzer.analyze(campaign.id, "campaigns", "description", campaign.id, "")

        assert result.items == []
        assert result.job.total_items == 0

    def test_unsupported_source(self, analyzer: ContentAnalyzer, campaign: CampaignRecord) -> None:
        """Test unknown table and field pairs are rejected."""
        with pytest.raises(UnsupportedSourceError):
            analyzer.analyze(campaign.id, "users", "email", 1, "text")
