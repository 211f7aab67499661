"""Blog generation orchestrator: job launch, cancellation and stats.

``start_scheduled`` / ``start_custom`` return a job id straight away; the
pipeline runs as an asyncio task on the caller's event loop and reports only
through the job registry.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

from techblog.jobs.models import (
    CustomGenerationConfig,
    GenerationJob,
    GenerationStats,
    JobResults,
    JobStatus,
    ScheduledGenerationConfig,
)
from techblog.jobs.registry import CANCELLED_MESSAGE, JobRegistry
from techblog.orchestrator.monitor import ProgressMonitor
from techblog.orchestrator.workflows import (
    CUSTOM_AGENTS,
    SCHEDULED_AGENTS,
    Capabilities,
    custom_inputs,
    custom_tasks,
    scheduled_inputs,
    scheduled_tasks,
)
from techblog.pipeline import Agent, Task, Team
from techblog.schemas.content import NewsArticle

logger = logging.getLogger(__name__)


class BlogOrchestrator:
    def __init__(
        self,
        capabilities: Capabilities,
        registry: JobRegistry | None = None,
        monitor_interval: float = 2.0,
        monitor_timeout: float = 30 * 60,
        env: dict[str, str] | None = None,
    ):
        self.capabilities = capabilities
        self.registry = registry or JobRegistry()
        self._monitor = ProgressMonitor(self.registry, interval=monitor_interval, timeout=monitor_timeout)
        self._env = dict(env or {})
        self._tasks: dict[str, asyncio.Task[None]] = {}
        self._monitors: dict[str, asyncio.Task[None]] = {}

    # -- launch ------------------------------------------------------------

    def start_scheduled(self, config: ScheduledGenerationConfig) -> str:
        asyncio.get_running_loop()
        job_id = self.registry.create_job(config)
        self._launch(
            job_id,
            name=f"BlogGeneration-{job_id}",
            agents=SCHEDULED_AGENTS,
            build_tasks=lambda: scheduled_tasks(config, self.capabilities),
            inputs=scheduled_inputs(config),
        )
        return job_id

    def start_custom(self, config: CustomGenerationConfig) -> str:
        asyncio.get_running_loop()
        job_id = self.registry.create_job(config)
        self._launch(
            job_id,
            name=f"CustomGeneration-{job_id}",
            agents=CUSTOM_AGENTS,
            build_tasks=lambda: custom_tasks(config, self.capabilities),
            inputs=custom_inputs(config),
        )
        return job_id

    def _launch(
        self,
        job_id: str,
        name: str,
        agents: list[Agent],
        build_tasks: Callable[[], list[Task]],
        inputs: dict[str, Any],
    ) -> None:
        task = asyncio.create_task(
            self._run(job_id, name, agents, build_tasks, inputs), name=f"job-{job_id}"
        )
        self._tasks[job_id] = task
        task.add_done_callback(lambda _t: self._tasks.pop(job_id, None))

    async def _run(
        self,
        job_id: str,
        name: str,
        agents: list[Agent],
        build_tasks: Callable[[], list[Task]],
        inputs: dict[str, Any],
    ) -> None:
        """Drive one job to a terminal state. Never raises."""
        logger.info("Starting generation workflow %s", name)
        try:
            tasks = build_tasks()
            team = Team(name=name, agents=agents, tasks=tasks, inputs=inputs, env=self._env)
            self.registry.attach_engine(job_id, team)
            self.registry.update_job(job_id, status=JobStatus.ACTIVE, progress=5)
            self._monitors[job_id] = self._monitor.start(job_id)

            outputs = await team.start()
            results: JobResults = outputs[tasks[-1].title]
            self.registry.update_job(
                job_id, status=JobStatus.COMPLETED, progress=100, results=results
            )
            logger.info("Workflow completed for job %s", job_id)
        except asyncio.CancelledError:
            # cancel_job records the cancellation before cancelling the task;
            # shutdown() does not, so record it here in that case
            self.registry.update_job(
                job_id, status=JobStatus.CANCELLED, progress=0, error=CANCELLED_MESSAGE
            )
            logger.info("Workflow for job %s cancelled", job_id)
        except Exception as e:
            if self.registry.is_terminal(job_id):
                logger.info("Workflow for job %s ended after job was closed: %s", job_id, e)
            else:
                logger.exception("Workflow failed for job %s", job_id)
                self.registry.update_job(job_id, status=JobStatus.FAILED, progress=0, error=str(e))
        finally:
            self.registry.detach_engine(job_id)
            monitor = self._monitors.pop(job_id, None)
            if monitor is not None:
                monitor.cancel()

    # -- queries / control ---------------------------------------------------

    def get_job(self, job_id: str) -> GenerationJob | None:
        return self.registry.get_job(job_id)

    def list_jobs(self) -> list[GenerationJob]:
        return self.registry.list_jobs()

    def get_stats(self) -> GenerationStats:
        return self.registry.stats()

    def cancel_job(self, job_id: str) -> bool:
        """Mark the job cancelled, stop its team and interrupt its task."""
        if not self.registry.cancel_job(job_id):
            return False
        task = self._tasks.get(job_id)
        if task is not None and not task.done():
            task.cancel()
        return True

    async def fetch_news(self, hours_back: int = 24) -> list[NewsArticle]:
        """Preview of the articles a scheduled run would start from."""
        return await asyncio.to_thread(self.capabilities.news.fetch_latest_news, hours_back)

    async def shutdown(self) -> None:
        """Cancel and await all outstanding job and monitor tasks."""
        pending = [t for t in (*self._tasks.values(), *self._monitors.values()) if not t.done()]
        for t in pending:
            t.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        logger.info("Orchestrator shut down (%d tasks cancelled)", len(pending))
