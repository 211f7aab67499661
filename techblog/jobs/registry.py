"""In-process generation job registry.

Single authority for job lifecycle: it owns the job records and the engine
handle attached to each running job. Records live for the life of the process
and are never deleted. Callers only ever see copies, so every status change
goes through ``update_job`` / ``cancel_job`` where the forward-only state
machine is enforced:

    pending -> active -> {completed | failed | cancelled}

Mutations are plain dict operations with no awaits in between, which keeps
them atomic under asyncio's cooperative scheduling.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any, Protocol

from techblog.jobs.models import (
    GenerationConfig,
    GenerationJob,
    GenerationStats,
    JobStatus,
)

logger = logging.getLogger(__name__)

_ALLOWED_TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.PENDING: frozenset(
        {JobStatus.ACTIVE, JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED}
    ),
    JobStatus.ACTIVE: frozenset({JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED}),
}

CANCELLED_MESSAGE = "Cancelled by user"


class EngineHandle(Protocol):
    def stop(self) -> None: ...


class EngineAlreadyAttached(RuntimeError):
    """Raised when a second engine is attached to a job that already has one."""


def _new_job_id() -> str:
    return str(uuid.uuid4())


class JobRegistry:
    """Job records plus the engine handle of each running job."""

    def __init__(self) -> None:
        self._jobs: dict[str, GenerationJob] = {}
        self._engines: dict[str, EngineHandle] = {}

    # -- records ---------------------------------------------------------

    def create_job(self, config: GenerationConfig) -> str:
        job_id = _new_job_id()
        self._jobs[job_id] = GenerationJob(id=job_id, config=config)
        logger.info("Created generation job %s (%s)", job_id, config.type)
        return job_id

    def get_job(self, job_id: str) -> GenerationJob | None:
        job = self._jobs.get(job_id)
        return job.model_copy(deep=True) if job else None

    def list_jobs(self) -> list[GenerationJob]:
        """All jobs, most recently started first."""
        jobs = sorted(self._jobs.values(), key=lambda j: j.started_at, reverse=True)
        return [j.model_copy(deep=True) for j in jobs]

    def is_terminal(self, job_id: str) -> bool:
        job = self._jobs.get(job_id)
        return job is None or job.status.is_terminal

    def update_job(self, job_id: str, **fields: Any) -> bool:
        """Shallow-merge ``fields`` into the record. Returns whether anything was applied."""
        job = self._jobs.get(job_id)
        if job is None:
            return False
        if job.status.is_terminal:
            logger.debug("Ignoring update to terminal job %s (%s)", job_id, job.status.value)
            return False

        new_status = fields.get("status")
        if new_status is not None:
            new_status = JobStatus(new_status)
            if new_status == job.status:
                fields.pop("status")
            elif new_status not in _ALLOWED_TRANSITIONS.get(job.status, frozenset()):
                logger.warning(
                    "Rejected status transition %s -> %s for job %s",
                    job.status.value, new_status.value, job_id,
                )
                fields.pop("status")
            else:
                fields["status"] = new_status
                if new_status.is_terminal and fields.get("completed_at") is None:
                    fields["completed_at"] = datetime.utcnow()

        if not fields:
            return False
        self._jobs[job_id] = job.model_copy(update=fields)
        if "status" in fields:
            logger.info("Job %s status -> %s", job_id, fields["status"].value)
        return True

    def cancel_job(self, job_id: str) -> bool:
        """Stop the job's engine (best-effort) and force it to ``cancelled``.

        Returns False, leaving the record untouched, when the job is unknown
        or already terminal.
        """
        job = self._jobs.get(job_id)
        if job is None or job.status.is_terminal:
            return False

        engine = self._engines.pop(job_id, None)
        if engine is not None:
            stop = getattr(engine, "stop", None)
            if callable(stop):
                try:
                    stop()
                except Exception as e:
                    logger.error("Error stopping engine for job %s: %s", job_id, e)

        self.update_job(
            job_id,
            status=JobStatus.CANCELLED,
            progress=0,
            error=CANCELLED_MESSAGE,
        )
        return True

    # -- engine handles -------------------------------------------------

    def attach_engine(self, job_id: str, engine: EngineHandle) -> None:
        if job_id not in self._jobs:
            raise KeyError(job_id)
        if job_id in self._engines:
            raise EngineAlreadyAttached(f"Job {job_id} already has an active engine")
        self._engines[job_id] = engine

    def detach_engine(self, job_id: str) -> None:
        self._engines.pop(job_id, None)

    def get_engine(self, job_id: str) -> EngineHandle | None:
        return self._engines.get(job_id)

    # -- aggregates ------------------------------------------------------

    def stats(self) -> GenerationStats:
        jobs = list(self._jobs.values())
        completed = [j for j in jobs if j.status == JobStatus.COMPLETED]
        failed = [j for j in jobs if j.status == JobStatus.FAILED]

        total_articles = sum(j.results.articles_analyzed for j in completed if j.results)
        total_seconds = sum(
            (j.completed_at - j.started_at).total_seconds()
            for j in completed
            if j.completed_at is not None
        )
        n = len(completed)
        return GenerationStats(
            total_jobs=len(jobs),
            completed_jobs=n,
            failed_jobs=len(failed),
            average_articles_per_job=total_articles / n if n else 0.0,
            average_generation_time=total_seconds / n if n else 0.0,
            active_jobs=sum(1 for j in jobs if j.status == JobStatus.ACTIVE),
        )
