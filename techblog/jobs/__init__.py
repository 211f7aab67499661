"""Generation job records and the in-process registry."""

from techblog.jobs.models import (
    CustomGenerationConfig,
    GenerationConfig,
    GenerationJob,
    GenerationStats,
    JobResults,
    JobStatus,
    PostReviewOutcome,
    ScheduledGenerationConfig,
    WorkflowStatus,
)
from techblog.jobs.registry import JobRegistry

__all__ = [
    "CustomGenerationConfig",
    "GenerationConfig",
    "GenerationJob",
    "GenerationStats",
    "JobRegistry",
    "JobResults",
    "JobStatus",
    "PostReviewOutcome",
    "ScheduledGenerationConfig",
    "WorkflowStatus",
]
