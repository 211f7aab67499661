"""Tests for the job status heartbeat."""

import asyncio

import pytest

from techblog.jobs import CustomGenerationConfig, JobRegistry, JobStatus
from techblog.orchestrator.monitor import (
    PLACEHOLDER_ACTIVE,
    PLACEHOLDER_TASK,
    ProgressMonitor,
)


@pytest.fixture
def registry():
    return JobRegistry()


@pytest.mark.asyncio
async def test_monitor_stamps_placeholder_while_active(registry):
    job_id = registry.create_job(CustomGenerationConfig(topic="Rust"))
    registry.update_job(job_id, status=JobStatus.ACTIVE, progress=5)
    task = ProgressMonitor(registry, interval=0.01, timeout=5).start(job_id)

    await asyncio.sleep(0.05)
    job = registry.get_job(job_id)
    assert job.workflow_status.current_task == PLACEHOLDER_TASK
    assert job.workflow_status.active_tasks == [PLACEHOLDER_ACTIVE]
    # heartbeat never moves status or progress
    assert job.status == JobStatus.ACTIVE
    assert job.progress == 5

    registry.update_job(job_id, status=JobStatus.COMPLETED, progress=100)
    await asyncio.wait_for(task, timeout=1)
    assert task.done()


@pytest.mark.asyncio
async def test_monitor_exits_for_terminal_job_without_writing(registry):
    job_id = registry.create_job(CustomGenerationConfig(topic="Rust"))
    registry.update_job(job_id, status=JobStatus.FAILED, error="boom")

    await asyncio.wait_for(ProgressMonitor(registry, interval=0.01).run(job_id), timeout=1)
    assert registry.get_job(job_id).workflow_status.current_task is None


@pytest.mark.asyncio
async def test_monitor_exits_for_unknown_job(registry):
    await asyncio.wait_for(ProgressMonitor(registry, interval=0.01).run("missing"), timeout=1)


@pytest.mark.asyncio
async def test_monitor_gives_up_after_timeout(registry):
    job_id = registry.create_job(CustomGenerationConfig(topic="Rust"))
    registry.update_job(job_id, status=JobStatus.ACTIVE)

    # returns normally even though the job never finishes
    await asyncio.wait_for(ProgressMonitor(registry, interval=0.01, timeout=0.05).run(job_id), timeout=1)
    assert registry.get_job(job_id).status == JobStatus.ACTIVE
