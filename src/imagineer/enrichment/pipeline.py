"""Staged execution of pipeline agents.

Stages run in order. Inside a stage, agents are ordered so that each runs
after the agents it depends on; agents caught in a dependency cycle, or
depending on an agent missing from the stage, are skipped. A failing
agent is logged and skipped so the rest of the run still produces items.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, replace
from typing import Callable

from imagineer.core.exceptions import QuotaExceededError
from imagineer.core.logging import get_logger
from imagineer.enrichment.agents import (
    CanonExpert,
    EnrichmentAgent,
    GraphExpert,
    PipelineAgent,
    PipelineInput,
    TTRPGExpert,
)
from imagineer.enrichment.engine import EnrichmentEngine
from imagineer.llm.provider import LLMProvider
from imagineer.models.enums import Phase
from imagineer.storage.analysis import DetectedItem

logger = get_logger(__name__)

CancelCheck = Callable[[], bool]


@dataclass
class Stage:
    """Agents that share a phase.

    Attributes:
        name: Stage name used in logs.
        phase: Phase stamped on every item the stage produces.
        agents: Agents in the stage, in any order.
    """

    name: str
    phase: Phase
    agents: list[PipelineAgent]


def topological_order(agents: list[PipelineAgent]) -> tuple[list[PipelineAgent], list[str]]:
    """Order agents so each follows its dependencies.

    Returns:
        The runnable agents in order, and the names of skipped agents.
    """
    by_name = {agent.name: agent for agent in agents}
    ordered: list[PipelineAgent] = []
    skipped: list[str] = []
    state: dict[str, str] = {}

    def visit(name: str) -> bool:
        if state.get(name) == "done":
            return True
        if state.get(name) in ("visiting", "skipped"):
            return False
        agent = by_name.get(name)
        if agent is None:
            return False
        state[name] = "visiting"
        if not all(visit(dependency) for dependency in agent.depends_on):
            state[name] = "skipped"
            skipped.append(name)
            return False
        state[name] = "done"
        ordered.append(agent)
        return True

    for agent in agents:
        visit(agent.name)
    return ordered, skipped


class Pipeline:
    """Runs stages of agents over one piece of content."""

    def __init__(self, stages: list[Stage]) -> None:
        self.stages = stages

    def run(
        self,
        provider: LLMProvider,
        data: PipelineInput,
        *,
        cancelled: CancelCheck | None = None,
    ) -> list[DetectedItem]:
        """Run every stage and collect the items.

        Args:
            provider: LLM provider handed to each agent.
            data: Input shared by all agents. ``prior_results`` is filled in
                by the pipeline.
            cancelled: Checked before each agent; when it returns True the
                run stops and the items so far are returned.

        Returns:
            Items tagged with agent name, phase and run id.

        Raises:
            QuotaExceededError: If the provider runs out of quota.
        """
        run_id = uuid.uuid4().hex
        collected: list[DetectedItem] = []

        for stage in self.stages:
            ordered, skipped = topological_order(stage.agents)
            for name in skipped:
                logger.warning("Skipping agent with unresolved dependencies", agent=name, stage=stage.name)

            for agent in ordered:
                if cancelled is not None and cancelled():
                    logger.info("Pipeline cancelled", job_id=data.job_id, run_id=run_id)
                    return collected
                try:
                    items = agent.run(provider, replace(data, prior_results=list(collected)))
                except QuotaExceededError:
                    raise
                except Exception as exc:
                    logger.exception("Pipeline agent failed", agent=agent.name, stage=stage.name, error=str(exc))
                    continue

                for item in items:
                    item.agent_name = agent.name
                    item.phase = stage.phase.value
                    item.pipeline_run_id = run_id
                collected.extend(items)
                logger.debug("Pipeline agent finished", agent=agent.name, stage=stage.name, items=len(items))

        logger.info("Pipeline finished", job_id=data.job_id, run_id=run_id, items=len(collected))
        return collected


def default_pipeline(engine: EnrichmentEngine | None = None) -> Pipeline:
    """The analysis stage followed by the enrichment stage."""
    return Pipeline([
        Stage("analysis", Phase.ANALYSIS, [TTRPGExpert(), CanonExpert()]),
        Stage("enrichment", Phase.ENRICHMENT, [EnrichmentAgent(engine), GraphExpert()]),
    ])


__all__ = [
    "CancelCheck",
    "Stage",
    "Pipeline",
    "topological_order",
    "default_pipeline",
]
