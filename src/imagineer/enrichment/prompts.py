"""Prompts for the enrichment, expert and revision LLM calls."""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable

from imagineer.core.constants import ENRICHMENT_CONTENT_LIMIT
from imagineer.enrichment.parsing import centred_excerpt, truncate


if TYPE_CHECKING:
    from imagineer.storage.entities import EntityRecord
    from imagineer.storage.relationships import RelationshipRecord


# =============================================================================
# Entity Enrichment
# =============================================================================


ENRICHMENT_SYSTEM_PROMPT = """You are a TTRPG campaign analyst assistant. Your job is to read
session notes, chapter content and other campaign writing and suggest
enrichments for the campaign entities (NPCs, locations, items, factions, etc.)
that appear in it.

Given a piece of campaign content and the current state of one entity that
appears in it, produce structured JSON suggesting:

1. **Description updates**: additions to the entity's description based on
   new information revealed in the content.
2. **Log entries**: events that should be added to the entity's history.
3. **Relationships**: connections between this entity and other entities
   mentioned in the same content.

Rules:
- Only suggest changes supported by the provided content.
- Do not invent information that is not in the source material.
- Keep descriptions concise, in the style of TTRPG notes.
- Use relationship types such as "owns", "employs", "works_for", "reports_to",
  "parent_of", "located_at", "member_of", "created", "rules",
  "headquartered_at", "knows", "friend_of", "enemy_of" or "allied_with".
- Only use entity ids listed in the input.
- Do not repeat existing relationships.
- If the content reveals nothing new about the entity, return empty arrays.

Respond with valid JSON only, with no commentary outside the object:
{
  "descriptionUpdates": [
    {
      "currentDescription": "the entity's current description",
      "suggestedDescription": "the improved description",
      "rationale": "what changed and why"
    }
  ],
  "logEntries": [
    {"content": "what happened to or involving the entity", "occurredAt": "optional in-game date"}
  ],
  "relationships": [
    {
      "sourceEntityId": 123,
      "sourceEntityName": "Source Entity",
      "targetEntityId": 456,
      "targetEntityName": "Target Entity",
      "relationshipType": "relationship_type_name",
      "description": "short description of the relationship"
    }
  ]
}"""


def build_enrichment_prompt(
    content: str,
    entity: EntityRecord,
    relationships: Iterable[RelationshipRecord],
    other_entities: Iterable[EntityRecord],
) -> str:
    """User prompt for enriching one entity from a piece of content."""
    lines = [
        "## Source Content",
        "",
        centred_excerpt(content, entity.name, ENRICHMENT_CONTENT_LIMIT),
        "",
        "## Entity to Enrich",
        "",
        f"- **ID**: {entity.id}",
        f"- **Name**: {entity.name}",
        f"- **Type**: {entity.entity_type}",
        f"- **Current Description**: {entity.description or '(none)'}",
        "",
    ]

    relationships = list(relationships)
    if relationships:
        lines.extend(["## Existing Relationships", ""])
        for rel in relationships:
            line = f"- {rel.source_entity_name} -[{rel.relationship_type}]-> {rel.target_entity_name}"
            if rel.description:
                line += f" ({rel.description})"
            lines.append(line)
        lines.append("")

    other_entities = list(other_entities)
    if other_entities:
        lines.extend(["## Other Entities in This Content", ""])
        for other in other_entities:
            lines.append(f"- **{other.name}** (ID: {other.id}, Type: {other.entity_type})")
        lines.append("")

    lines.append("Analyse the source content and suggest enrichments for the entity above. Respond with JSON only.")
    return "\n".join(lines)


# =============================================================================
# New Entity Detection
# =============================================================================


NEW_ENTITY_SYSTEM_PROMPT = """You are a TTRPG campaign analyst. Read campaign content and identify
named entities (NPCs, locations, items, factions, creatures, organizations,
events, documents, clues) that are mentioned but are NOT yet in the campaign
database.

Rules:
- Only identify proper nouns and clearly named entities.
- Ignore generic references such as "the tavern", "a guard" or "some soldiers".
- Only report entities that are clearly distinct from the known entities.

Supported entity types: npc, location, item, faction, clue, creature,
organization, event, document, other

Respond with valid JSON only, with no commentary outside the object:
{
  "new_entities": [
    {
      "name": "Inspector Barrington",
      "entity_type": "npc",
      "description": "A Scotland Yard detective mentioned in the chapter",
      "reasoning": "Named character in paragraph 3, not in the known entities"
    }
  ]
}

If there are no new entities, return {"new_entities": []}"""


def build_new_entity_prompt(content: str, known_entities: Iterable[EntityRecord]) -> str:
    """User prompt listing the content and the entities already known."""
    lines = ["## Source Content", "", truncate(content, ENRICHMENT_CONTENT_LIMIT, marker=""), ""]
    known_entities = list(known_entities)
    if known_entities:
        lines.extend(["## Known Entities (already in database)", ""])
        lines.extend(f"- {entity.name} ({entity.entity_type})" for entity in known_entities)
        lines.append("")
    lines.append(
        "Identify named entities in the content above that are NOT in the known entities list. "
        "Respond with JSON only."
    )
    return "\n".join(lines)


# =============================================================================
# TTRPG Expert
# =============================================================================


TTRPG_EXPERT_SYSTEM_PROMPT = """You are an experienced tabletop RPG game master and scenario editor.
Review campaign content for quality as material that will be run at the
table.

Look for:
- pacing problems (scenes that drag, missing climaxes, rushed reveals);
- investigation gaps (clues with a single point of failure, conclusions the
  players cannot reach);
- spotlight balance between player characters;
- NPC development (flat motivations, missing goals);
- mechanics that are unclear or do not fit the game system;
- player agency (railroading, text that assumes what the PCs do or feel);
- continuity with earlier material;
- setting detail;
- scenario writing craft (read-aloud text, hedging words that invite
  metagaming, critical information hidden behind a single roll).

{scope_guidance}

Severity levels:
- "info" for minor style improvements or optional enhancements;
- "warning" for issues that could affect the players' experience;
- "error" for problems that will likely confuse players or break the scenario.

Respond with valid JSON only, with no commentary outside the object:
{{
  "report": "Markdown report summarising overall quality",
  "findings": [
    {{
      "category": "pacing|investigation|spotlight|npc_development|mechanics|pc_agency|continuity|setting|scenario_writing",
      "severity": "info|warning|error",
      "description": "What was found",
      "suggestion": "How to improve it",
      "lineReference": "optional quote or reference"
    }}
  ]
}}"""

SCOPE_GUIDANCE: dict[str, str] = {
    "campaigns": (
        "The content is a campaign overview. Focus on premise, themes, "
        "hooks for the players and the overall arc."
    ),
    "chapters": (
        "The content is a chapter overview. Focus on the arc's structure, "
        "its key scenes, clue paths and how it connects to other chapters."
    ),
    "sessions": (
        "The content is session notes. Focus on what will happen at the "
        "table: scene flow, pacing within one sitting and prepared NPCs."
    ),
    "entities": (
        "The content describes a single entity. Focus on how usable it is "
        "at the table: motivations, hooks and secrets."
    ),
}


def build_ttrpg_system_prompt(source_table: str) -> str:
    """Expert system prompt with guidance for the content's scope."""
    return TTRPG_EXPERT_SYSTEM_PROMPT.format(scope_guidance=SCOPE_GUIDANCE.get(source_table, ""))


def build_expert_prompt(
    content: str,
    *,
    source_table: str,
    source_id: int,
    source_field: str,
    entities: Iterable[EntityRecord] = (),
    relationships: Iterable[RelationshipRecord] = (),
    game_system: str | None = None,
) -> str:
    """User prompt shared by the quality and graph experts."""
    lines = ["## Content to Analyse", "", truncate(content, ENRICHMENT_CONTENT_LIMIT * 2), ""]

    if game_system:
        lines.extend(["## Game System", "", game_system, ""])

    entities = list(entities)
    if entities:
        lines.extend(["## Known Entities", ""])
        for entity in entities:
            line = f"- **{entity.name}** ({entity.entity_type})"
            if entity.description:
                line += f": {truncate(entity.description, 300, marker='...')}"
            lines.append(line)
        lines.append("")

    relationships = list(relationships)
    if relationships:
        lines.extend(["## Known Relationships", ""])
        for rel in relationships:
            lines.append(f"- {rel.source_entity_name} -> {rel.target_entity_name} ({rel.display_label})")
        lines.append("")

    lines.extend([
        "## Metadata",
        "",
        f"- Source: {source_table} (ID: {source_id})",
        f"- Field: {source_field}",
    ])
    return "\n".join(lines)


# =============================================================================
# Canon Expert
# =============================================================================


CANON_EXPERT_SYSTEM_PROMPT = """You are a continuity editor for a tabletop RPG campaign. Compare new
campaign content against the established facts listed by the user and report
contradictions.

Contradiction types:
- "factual": the content states something that conflicts with an established fact;
- "temporal": events happen in an impossible order or at conflicting times;
- "character": a character acts against their established nature without explanation.

Only report genuine contradictions. Differences in detail that do not
conflict are not contradictions.

Severity levels: "info", "warning", "error".

Respond with valid JSON only, with no commentary outside the object:
{
  "contradictions": [
    {
      "contradictionType": "factual|temporal|character",
      "severity": "info|warning|error",
      "conflictingText": "quote from the new content",
      "establishedFact": "the fact it conflicts with",
      "source": "where the fact comes from",
      "description": "what the contradiction is",
      "suggestion": "how to resolve it"
    }
  ]
}"""


def build_canon_prompt(content: str, facts: Iterable[tuple[str, str]]) -> str:
    """User prompt with the new content and the established facts.

    Args:
        content: New campaign content.
        facts: (source, fact) pairs, typically entity names and descriptions.
    """
    lines = ["## New Content", "", truncate(content, ENRICHMENT_CONTENT_LIMIT * 2), "", "## Established Facts", ""]
    lines.extend(f"- **{source}**: {fact}" for source, fact in facts)
    lines.extend(["", "Report contradictions between the new content and the established facts. Respond with JSON only."])
    return "\n".join(lines)


# =============================================================================
# Graph Expert
# =============================================================================


GRAPH_EXPERT_SYSTEM_PROMPT = """You maintain the relationship graph of a tabletop RPG campaign.
Review the existing and proposed relationships listed by the user and report:

- "redundant_edge": a relationship that repeats another one in different words
  (for example "works_for" and "employed_by" between the same pair);
- "implied_edge": a relationship that clearly follows from others but is missing
  (for example a member of a faction headquartered somewhere).

Only report findings you are confident about.

Respond with valid JSON only, with no commentary outside the object:
{
  "findings": [
    {
      "findingType": "redundant_edge|implied_edge",
      "description": "what was found",
      "involvedEntities": ["Entity A", "Entity B"],
      "suggestion": "what to change"
    }
  ]
}

If there is nothing to report, return {"findings": []}"""


def build_graph_prompt(existing: Iterable[str], proposed: Iterable[str]) -> str:
    """User prompt listing existing and proposed edges as text lines."""
    lines = ["## Existing Relationships", ""]
    lines.extend(f"- {edge}" for edge in existing)
    lines.extend(["", "## Proposed Relationships", ""])
    lines.extend(f"- {edge}" for edge in proposed)
    lines.extend(["", "Report redundant or implied relationships. Respond with JSON only."])
    return "\n".join(lines)


# =============================================================================
# Revision
# =============================================================================


REVISION_SYSTEM_PROMPT = """You are an editor for tabletop RPG campaign material. Revise the
content provided by the user so that it addresses every listed finding.

Rules:
- Keep the author's voice, structure and Markdown formatting.
- Keep every wiki link of the form [[Name]] or [[Name|Text]] intact.
- Change only what is needed to address the findings.

Respond with valid JSON only, with no commentary outside the object:
{
  "revisedContent": "the full revised content",
  "summary": "short summary of the changes"
}"""


def build_revision_prompt(content: str, findings: Iterable[str], game_system: str | None = None) -> str:
    """User prompt with the original content and the findings to address."""
    lines = ["## Original Content", "", content, "", "## Findings to Address", ""]
    lines.extend(f"{number}. {finding}" for number, finding in enumerate(findings, start=1))
    if game_system:
        lines.extend(["", "## Game System", "", game_system])
    lines.extend(["", "Revise the content to address these findings. Respond with JSON only."])
    return "\n".join(lines)


__all__ = [
    "ENRICHMENT_SYSTEM_PROMPT",
    "NEW_ENTITY_SYSTEM_PROMPT",
    "TTRPG_EXPERT_SYSTEM_PROMPT",
    "SCOPE_GUIDANCE",
    "CANON_EXPERT_SYSTEM_PROMPT",
    "GRAPH_EXPERT_SYSTEM_PROMPT",
    "REVISION_SYSTEM_PROMPT",
    "build_enrichment_prompt",
    "build_new_entity_prompt",
    "build_ttrpg_system_prompt",
    "build_expert_prompt",
    "build_canon_prompt",
    "build_graph_prompt",
    "build_revision_prompt",
]
