from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from sqlalchemy.orm import Session

from ..core.celery_app import celery_app, INTELLIGENCE_QUEUE
from ..core.config import get_settings
from ..core.db import SessionLocal
from .caching import NameLease, ResultCache, cache_key_for
from .context import ContextFetcher, has_context
from .extractor import IntelligenceExtractor
from .freshness import is_fresh
from .llm import LLMConfigurationError
from .queue import PROCESS_COMPANY_TASK
from .storage import StorageWriter

logger = logging.getLogger(__name__)
settings = get_settings()

# Errors that no amount of retrying will fix
FATAL_ERRORS = (LLMConfigurationError,)


class PipelineOutcome(str, enum.Enum):
    COMPLETED = "completed"
    REJECTED = "rejected"
    SKIPPED = "skipped"
    LOCKED = "locked"
    RETRYABLE_FAILURE = "retryable_failure"
    FATAL_FAILURE = "fatal_failure"


@dataclass
class PipelineResult:
    outcome: PipelineOutcome
    company_name: str
    official_name: str | None = None
    stage: str | None = None
    error: Exception | None = None

    @property
    def is_failure(self) -> bool:
        return self.outcome in (PipelineOutcome.RETRYABLE_FAILURE, PipelineOutcome.FATAL_FAILURE)


class IntelligencePipeline:
    """
    One unit of work: ingest a single company.

        START -> SKIPPED                      (processed within the freshness window)
              -> LOCKED                       (another run holds this name)
              -> FETCHING -> EXTRACTING -> REJECTED
                                        -> STORING -> COMPLETED
        any error in FETCHING/EXTRACTING/STORING -> FAILED (retryable or fatal)

    Nothing is raised; the caller decides what each outcome means for the queue.
    """

    def __init__(
        self,
        db: Session,
        fetcher: ContextFetcher,
        extractor: IntelligenceExtractor,
        cache: ResultCache,
        lease: NameLease | None = None,
        writer: StorageWriter | None = None,
    ) -> None:
        self.db = db
        self.fetcher = fetcher
        self.extractor = extractor
        self.cache = cache
        self.lease = lease
        self.writer = writer or StorageWriter(db)

    def _failed(self, company_name: str, stage: str, exc: Exception) -> PipelineResult:
        outcome = (
            PipelineOutcome.FATAL_FAILURE
            if isinstance(exc, FATAL_ERRORS)
            else PipelineOutcome.RETRYABLE_FAILURE
        )
        logger.exception(
            "Pipeline failed during %s: %s",
            stage,
            exc,
            extra={"company": company_name, "step": stage, "outcome": outcome.value},
        )
        return PipelineResult(outcome, company_name, stage=stage, error=exc)

    def run(self, company_name: str) -> PipelineResult:
        name = " ".join((company_name or "").split())
        if not name:
            return PipelineResult(
                PipelineOutcome.FATAL_FAILURE,
                company_name,
                stage="start",
                error=ValueError("company name must not be empty"),
            )

        logger.info("Job started", extra={"company": name, "step": "start"})

        try:
            fresh = is_fresh(self.db, name)
        except Exception as e:
            return self._failed(name, "start", e)
        if fresh:
            logger.info(
                "Company processed recently; skipping",
                extra={"company": name, "step": "start", "outcome": PipelineOutcome.SKIPPED.value},
            )
            return PipelineResult(PipelineOutcome.SKIPPED, name, stage="start")

        leased = False
        if self.lease is not None:
            leased = self.lease.acquire(name)
            if not leased:
                logger.warning(
                    "Another run is processing this company; not retrying",
                    extra={"company": name, "step": "start", "outcome": PipelineOutcome.LOCKED.value},
                )
                return PipelineResult(PipelineOutcome.LOCKED, name, stage="start")

        try:
            return self._run_stages(name)
        finally:
            if leased:
                self.lease.release(name)

    def _run_stages(self, name: str) -> PipelineResult:
        stage = "fetching"
        try:
            # Scope failures are absorbed by the fetcher; a degraded context is not cached
            context = self.cache.get_or_fetch(
                cache_key_for(name),
                settings.CONTEXT_CACHE_TTL_SECONDS,
                lambda: self.fetcher.fetch(name),
                cache_if=has_context,
            )

            stage = "extracting"
            report = self.extractor.extract(name, context)
            official_name = report.resolved_name(name)

            if not report.is_accepted:
                stage = "rejecting"
                self.writer.mark_rejected(official_name)
                logger.warning(
                    "No mining intelligence found (mining=%s); company rejected",
                    report.is_mining_sector,
                    extra={"company": official_name, "step": stage, "outcome": PipelineOutcome.REJECTED.value},
                )
                return PipelineResult(PipelineOutcome.REJECTED, name, official_name, stage=stage)

            stage = "storing"
            self.writer.commit(official_name, report.leadership, report.assets)
        except Exception as e:
            return self._failed(name, stage, e)

        logger.info(
            "Job completed: data stored",
            extra={"company": official_name, "step": stage, "outcome": PipelineOutcome.COMPLETED.value},
        )
        return PipelineResult(PipelineOutcome.COMPLETED, name, official_name, stage=stage)


def build_pipeline(db: Session) -> IntelligencePipeline:
    cache = ResultCache()
    return IntelligencePipeline(
        db=db,
        fetcher=ContextFetcher(),
        extractor=IntelligenceExtractor(),
        cache=cache,
        lease=NameLease(),
    )


def retry_countdown(retries: int) -> int:
    """Backoff before the next attempt, given how many retries already happened."""
    delays = settings.PIPELINE_RETRY_BACKOFF_SECONDS or [60]
    return int(delays[min(retries, len(delays) - 1)])


@celery_app.task(
    name=PROCESS_COMPANY_TASK,
    bind=True,
    queue=INTELLIGENCE_QUEUE,
    acks_late=True,
    max_retries=max(settings.PIPELINE_MAX_ATTEMPTS - 1, 0),
    time_limit=settings.PIPELINE_TIMEOUT_SECONDS,
    soft_time_limit=max(settings.PIPELINE_TIMEOUT_SECONDS - 10, 1),
)
def process_company(self, company_name: str):
    db: Session = SessionLocal()
    try:
        result = build_pipeline(db).run(company_name)
    finally:
        db.close()

    if result.outcome is PipelineOutcome.RETRYABLE_FAILURE:
        attempt = self.request.retries + 1
        if attempt >= settings.PIPELINE_MAX_ATTEMPTS:
            logger.error(
                "Giving up after %d attempts",
                attempt,
                extra={"company": company_name, "task_id": self.request.id, "step": result.stage},
            )
            raise result.error
        raise self.retry(exc=result.error, countdown=retry_countdown(self.request.retries))

    if result.outcome is PipelineOutcome.FATAL_FAILURE:
        raise result.error

    return result.outcome.value
