"""Rewriting content to address acknowledged analysis findings."""

from __future__ import annotations

from dataclasses import dataclass, field

from imagineer.core.constants import REVISION_MAX_TOKENS, REVISION_TEMPERATURE
from imagineer.core.exceptions import LLMConfigurationError, ValidationError
from imagineer.core.logging import get_logger
from imagineer.enrichment.parsing import clean_str, parse_json_object, strip_code_fences
from imagineer.enrichment.prompts import REVISION_SYSTEM_PROMPT, build_revision_prompt
from imagineer.llm.provider import CompletionRequest, LLMProvider
from imagineer.storage.analysis import AnalysisItemRecord

logger = get_logger(__name__)


@dataclass
class RevisionInput:
    """Content to revise and the findings the user acknowledged."""

    original_content: str
    acknowledged_items: list[AnalysisItemRecord] = field(default_factory=list)
    source_table: str = ""
    source_id: int = 0
    game_system: str | None = None


@dataclass
class RevisionResult:
    """Revised text and a short summary of what changed."""

    revised_content: str
    summary: str = ""


def describe_finding(item: AnalysisItemRecord) -> str:
    """One-line description of a finding for the revision prompt."""
    parts = [f"[{item.detection_type}] {item.matched_text}"]
    suggested = item.suggested_content or {}
    description = clean_str(suggested.get("description"))
    suggestion = clean_str(suggested.get("suggestion"))
    if description:
        parts.append(f"Description: {description}")
    if suggestion:
        parts.append(f"Suggestion: {suggestion}")
    return " | ".join(parts)


class RevisionAgent:
    """Asks the LLM for a revision that addresses acknowledged findings."""

    def generate_revision(self, provider: LLMProvider | None, data: RevisionInput) -> RevisionResult:
        """Produce a revised version of the content.

        Args:
            provider: LLM provider to call; may be None when nothing is acknowledged.
            data: Original content and acknowledged findings.

        Returns:
            The revision. Without acknowledged findings the original is
            returned unchanged and the LLM is not called.

        Raises:
            ValidationError: If the original content is empty.
            LLMError: If the provider call fails.
        """
        if not data.original_content.strip():
            raise ValidationError("Original content is required for revision", field_name="original_content")
        if not data.acknowledged_items:
            return RevisionResult(revised_content=data.original_content, summary="")
        if provider is None:
            raise LLMConfigurationError("An LLM provider is required to generate a revision")

        response = provider.complete(
            CompletionRequest(
                system_prompt=REVISION_SYSTEM_PROMPT,
                user_prompt=build_revision_prompt(
                    data.original_content,
                    [describe_finding(item) for item in data.acknowledged_items],
                    data.game_system,
                ),
                max_tokens=REVISION_MAX_TOKENS,
                temperature=REVISION_TEMPERATURE,
            )
        )

        parsed = parse_json_object(response.content)
        if parsed is not None and isinstance(parsed.get("revisedContent"), str):
            result = RevisionResult(
                revised_content=parsed["revisedContent"],
                summary=clean_str(parsed.get("summary")),
            )
        else:
            # Plain text replies are taken as the revision itself.
            result = RevisionResult(revised_content=strip_code_fences(response.content), summary="")

        logger.info(
            "Revision generated",
            source_table=data.source_table,
            source_id=data.source_id,
            findings=len(data.acknowledged_items),
            tokens_used=response.tokens_used,
        )
        return result


__all__ = [
    "RevisionInput",
    "RevisionResult",
    "RevisionAgent",
    "describe_finding",
]
