"""Generation job schema and status."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, field_validator


class JobStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED})


# ---------------------------------------------------------------------------
# Job configuration
# ---------------------------------------------------------------------------

class ScheduledGenerationConfig(BaseModel):
    """News-driven generation: look back over recent articles and write about the relevant ones."""

    type: Literal["scheduled"] = "scheduled"
    hours_back: int = Field(default=24, ge=1)
    min_relevance_score: float = Field(default=0.7, ge=0.0, le=1.0)
    max_articles: int = Field(default=5, ge=1)
    focus_topic: str | None = None


class CustomGenerationConfig(BaseModel):
    """Single post on an explicit topic, optionally steered by a free-text prompt."""

    type: Literal["custom"] = "custom"
    topic: str
    user_prompt: str | None = None

    @field_validator("topic")
    @classmethod
    def _topic_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("topic is required")
        return v


GenerationConfig = Annotated[
    Union[ScheduledGenerationConfig, CustomGenerationConfig],
    Field(discriminator="type"),
]


# ---------------------------------------------------------------------------
# Job record
# ---------------------------------------------------------------------------

class WorkflowStatus(BaseModel):
    """Advisory view of the pipeline; not derived from real step telemetry."""

    current_task: str | None = None
    active_tasks: list[str] = Field(default_factory=list)
    completed_tasks: list[str] = Field(default_factory=list)
    failed_tasks: list[str] = Field(default_factory=list)


class PostReviewOutcome(BaseModel):
    post_id: str
    approved: bool
    quality_score: int


class JobResults(BaseModel):
    articles_found: int = 0
    articles_analyzed: int = 0
    blog_post_generated: bool = False
    post_id: str | None = None
    post_ids: list[str] = Field(default_factory=list)
    review_results: list[PostReviewOutcome] = Field(default_factory=list)


class GenerationJob(BaseModel):
    """Blog generation job, held in-process for dashboard polling."""

    id: str
    status: JobStatus = JobStatus.PENDING
    progress: int = Field(default=0, ge=0, le=100)
    started_at: datetime = Field(default_factory=datetime.utcnow)
    completed_at: datetime | None = None
    error: str | None = None
    config: GenerationConfig
    workflow_status: WorkflowStatus = Field(default_factory=WorkflowStatus)
    results: JobResults | None = None


class GenerationStats(BaseModel):
    total_jobs: int = 0
    completed_jobs: int = 0
    failed_jobs: int = 0
    average_articles_per_job: float = 0.0
    average_generation_time: float = 0.0  # seconds
    active_jobs: int = 0
