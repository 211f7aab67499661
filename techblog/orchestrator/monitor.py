"""Periodic job status heartbeat.

The pipeline engine exposes no per-step telemetry to the job record, so the
monitor only stamps a fixed "in progress" view while the job runs. It never
changes status or progress.
"""

from __future__ import annotations

import asyncio
import logging

from techblog.jobs.models import WorkflowStatus
from techblog.jobs.registry import JobRegistry

logger = logging.getLogger(__name__)

PLACEHOLDER_TASK = "Processing workflow..."
PLACEHOLDER_ACTIVE = "Workflow in progress"


def placeholder_status() -> WorkflowStatus:
    return WorkflowStatus(current_task=PLACEHOLDER_TASK, active_tasks=[PLACEHOLDER_ACTIVE])


class ProgressMonitor:
    def __init__(self, registry: JobRegistry, interval: float = 2.0, timeout: float = 30 * 60):
        self._registry = registry
        self._interval = interval
        self._timeout = timeout

    def start(self, job_id: str) -> asyncio.Task[None]:
        return asyncio.create_task(self.run(job_id), name=f"monitor-{job_id}")

    async def run(self, job_id: str) -> None:
        """Tick until the job is terminal or gone, or until the timeout elapses."""
        try:
            await asyncio.wait_for(self._loop(job_id), timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.info("Stopped monitoring job %s after %.0fs", job_id, self._timeout)

    async def _loop(self, job_id: str) -> None:
        while True:
            await asyncio.sleep(self._interval)
            if self._registry.is_terminal(job_id):
                return
            self._registry.update_job(job_id, workflow_status=placeholder_status())
