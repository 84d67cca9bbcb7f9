"""Background execution of the enrichment pipeline.

Each job runs on its own worker thread. A registry of cancel events keeps
at most one live run per job and lets a run be stopped between agents.
A cancelled run leaves the registry at once, so the job can be enriched
again while the old worker winds down.
"""

from __future__ import annotations

import threading
from typing import Callable

from imagineer.analysis.sources import read_source
from imagineer.auth.crypto import ApiKeyCipher, get_cipher
from imagineer.core.exceptions import (
    ConflictError,
    LLMConfigurationError,
    NotFoundError,
    QuotaExceededError,
)
from imagineer.core.logging import get_logger
from imagineer.enrichment.agents import PipelineInput, mentioned_entities
from imagineer.enrichment.pipeline import Pipeline, default_pipeline
from imagineer.llm.provider import LLMProvider, create_provider
from imagineer.models.enums import JobStatus, LLMService
from imagineer.storage.analysis import AnalysisJobRecord, AnalysisRepository
from imagineer.storage.campaigns import CampaignRepository
from imagineer.storage.database import Database
from imagineer.storage.entities import EntityRecord, EntityRepository
from imagineer.storage.game_systems import GameSystemRepository
from imagineer.storage.relationships import RelationshipRepository
from imagineer.storage.users import UserRepository

logger = get_logger(__name__)

ProviderFactory = Callable[[str | None, str | None], LLMProvider]


class EnrichmentRunner:
    """Starts, tracks and cancels enrichment runs.

    Attributes:
        db: Database the runs read from and write to.
        pipeline: Pipeline executed for every run.
    """

    def __init__(
        self,
        db: Database,
        *,
        provider_factory: ProviderFactory | None = None,
        pipeline: Pipeline | None = None,
        cipher: ApiKeyCipher | None = None,
    ) -> None:
        self.db = db
        self.pipeline = pipeline or default_pipeline()
        self._provider_factory = provider_factory or create_provider
        self._cipher = cipher
        self.analysis = AnalysisRepository(db)
        self.users = UserRepository(db)
        self.entities = EntityRepository(db)
        self.relationships = RelationshipRepository(db)
        self.campaigns = CampaignRepository(db)
        self.game_systems = GameSystemRepository(db)
        self._lock = threading.Lock()
        self._active: dict[int, threading.Event] = {}
        self._threads: dict[int, threading.Thread] = {}

    # =========================================================================
    # Public API
    # =========================================================================

    def provider_for(self, user_id: int) -> LLMProvider:
        """Build the provider configured in the user's settings.

        Raises:
            LLMConfigurationError: If no service is set, or the service
                needs a key and none is stored.
        """
        settings = self.users.get_settings(user_id)
        service = settings.content_gen_service
        if not service:
            raise LLMConfigurationError("No LLM service configured in user settings")

        api_key = None
        if settings.content_gen_api_key:
            cipher = self._cipher or get_cipher()
            api_key = cipher.decrypt(settings.content_gen_api_key)
        if service != LLMService.OLLAMA and not api_key:
            raise LLMConfigurationError(f"No API key configured for {service}", provider=service)
        return self._provider_factory(service, api_key)

    def is_running(self, job_id: int) -> bool:
        with self._lock:
            return job_id in self._active

    def start(
        self,
        job: AnalysisJobRecord,
        content: str,
        user_id: int,
        entities: list[EntityRecord] | None = None,
    ) -> threading.Thread:
        """Start enriching a job on a worker thread.

        Args:
            job: The job to enrich.
            content: Current text of the job's source field.
            user_id: User whose LLM settings are used.
            entities: Entities to focus on; defaults to those mentioned in
                the content.

        Returns:
            The started worker thread.

        Raises:
            LLMConfigurationError: If the user has no usable LLM settings.
            ConflictError: If the job is already being enriched.
        """
        provider = self.provider_for(user_id)
        with self._lock:
            if job.id in self._active:
                raise ConflictError("Enrichment is already running for this job", details={"job_id": job.id})
            cancel_event = threading.Event()
            self._active[job.id] = cancel_event
        self.analysis.set_status(job.id, JobStatus.ENRICHING)

        thread = threading.Thread(
            target=self._run,
            args=(job, content, provider, entities, cancel_event),
            name=f"enrichment-{job.id}",
            daemon=True,
        )
        with self._lock:
            self._threads[job.id] = thread
        thread.start()
        logger.info("Enrichment started", job_id=job.id, campaign_id=job.campaign_id, provider=provider.name)
        return thread

    def cancel(self, job_id: int) -> dict[str, str]:
        """Stop a running enrichment and mark the job completed.

        The worker stops after its current agent and saves nothing.

        Raises:
            NotFoundError: If the job does not exist.
            ConflictError: If the job is not being enriched.
        """
        job = self.analysis.get_job_by_id(job_id)
        if job.status != JobStatus.ENRICHING:
            raise ConflictError("Job is not being enriched", details={"job_id": job_id, "status": job.status})
        with self._lock:
            cancel_event = self._active.pop(job_id, None)
        if cancel_event is not None:
            cancel_event.set()
        self.analysis.set_status(job_id, JobStatus.COMPLETED)
        logger.info("Enrichment cancelled", job_id=job_id)
        return {"status": "cancelled"}

    def try_auto_enrich(self, job_id: int, user_id: int) -> None:
        """Enrich the entities linked during review, when an LLM is set up.

        Does nothing when the user has no usable LLM settings or when no
        identification item produced a linked entity.
        """
        try:
            self.provider_for(user_id)
        except LLMConfigurationError:
            logger.debug("Skipping auto-enrichment, no LLM configured", job_id=job_id, user_id=user_id)
            return

        entity_ids = self.analysis.resolved_identification_entities(job_id)
        if not entity_ids or self.is_running(job_id):
            return

        job = self.analysis.get_job_by_id(job_id)
        with self.db.connection() as conn:
            content = read_source(conn, job.campaign_id, job.source_table, job.source_id, job.source_field)
        entities = self.entities.get_many(job.campaign_id, entity_ids)
        try:
            self.start(job, content, user_id, entities)
        except ConflictError:
            return

    def game_system_name(self, campaign_id: int) -> str | None:
        """Name of the campaign's rules system, if it has one."""
        campaign = self.campaigns.get(campaign_id)
        if campaign is None or campaign.system_id is None:
            return None
        try:
            return self.game_systems.get(campaign.system_id).name
        except NotFoundError:
            return None

    def wait(self, job_id: int, timeout: float | None = None) -> None:
        """Block until the job's worker thread finishes."""
        with self._lock:
            thread = self._threads.get(job_id)
        if thread is not None:
            thread.join(timeout)

    # =========================================================================
    # Worker
    # =========================================================================

    def _run(
        self,
        job: AnalysisJobRecord,
        content: str,
        provider: LLMProvider,
        entities: list[EntityRecord] | None,
        cancel_event: threading.Event,
    ) -> None:
        try:
            data = self._build_input(job, content, entities)
            items = self.pipeline.run(provider, data, cancelled=cancel_event.is_set)
            if cancel_event.is_set():
                logger.info("Discarding items of cancelled enrichment", job_id=job.id, items=len(items))
                return
            saved = self.analysis.add_items(job.id, items)
            self.analysis.set_status(job.id, JobStatus.COMPLETED)
            logger.info("Enrichment completed", job_id=job.id, items=saved)
        except QuotaExceededError as exc:
            logger.warning("Enrichment stopped, LLM quota exceeded", job_id=job.id, provider=provider.name)
            if not cancel_event.is_set():
                self.analysis.set_status(job.id, JobStatus.FAILED, failure_reason=exc.message)
        except Exception as exc:
            logger.exception("Enrichment failed", job_id=job.id, cancelled=cancel_event.is_set())
            if not cancel_event.is_set():
                self.analysis.set_status(job.id, JobStatus.FAILED, failure_reason=f"Enrichment failed: {exc}")
        finally:
            self._unregister(job.id, cancel_event)

    def _unregister(self, job_id: int, cancel_event: threading.Event) -> None:
        # Entries may already belong to a run started after a cancel.
        with self._lock:
            if self._active.get(job_id) is cancel_event:
                del self._active[job_id]
            if self._threads.get(job_id) is threading.current_thread():
                del self._threads[job_id]

    def _build_input(
        self,
        job: AnalysisJobRecord,
        content: str,
        entities: list[EntityRecord] | None,
    ) -> PipelineInput:
        campaign_entities = self.entities.list_for_campaign(job.campaign_id)
        return PipelineInput(
            campaign_id=job.campaign_id,
            job_id=job.id,
            source_table=job.source_table,
            source_id=job.source_id,
            source_field=job.source_field,
            content=content,
            entities=list(entities) if entities else mentioned_entities(content, campaign_entities),
            campaign_entities=campaign_entities,
            relationships=self.relationships.list_for_campaign(job.campaign_id),
            game_system=self.game_system_name(job.campaign_id),
        )


__all__ = [
    "ProviderFactory",
    "EnrichmentRunner",
]
