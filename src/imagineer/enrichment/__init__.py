"""LLM enrichment of analysed campaign content.

Exports:
    EnrichmentEngine: Per-entity enrichment and new entity detection.
    Pipeline, Stage, default_pipeline: Staged agent execution.
    EnrichmentRunner: Background runs with cancellation.
    RevisionAgent: Rewrites content to address acknowledged findings.
"""

from imagineer.enrichment.agents import (
    CanonExpert,
    EnrichmentAgent,
    GraphExpert,
    PipelineAgent,
    PipelineInput,
    TTRPGExpert,
)
from imagineer.enrichment.engine import EnrichmentEngine, EnrichmentInput
from imagineer.enrichment.pipeline import Pipeline, Stage, default_pipeline, topological_order
from imagineer.enrichment.revision import RevisionAgent, RevisionInput, RevisionResult
from imagineer.enrichment.runner import EnrichmentRunner

__all__ = [
    "CanonExpert",
    "EnrichmentAgent",
    "GraphExpert",
    "PipelineAgent",
    "PipelineInput",
    "TTRPGExpert",
    "EnrichmentEngine",
    "EnrichmentInput",
    "Pipeline",
    "Stage",
    "default_pipeline",
    "topological_order",
    "RevisionAgent",
    "RevisionInput",
    "RevisionResult",
    "EnrichmentRunner",
]
