"""Pydantic models exchanged between the generation agents.

News articles come in, ``GeneratedContent`` drafts flow through review and
enhancement, and the final draft is handed to the persistence bridge.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# News
# ---------------------------------------------------------------------------

class NewsArticle(BaseModel):
    """A candidate article pulled from a news feed."""

    id: str
    title: str
    source: str
    published_at: datetime
    url: str = ""
    content: str = ""
    relevance_score: float = Field(default=0.0, ge=0.0, le=1.0)
    tags: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Knowledge research
# ---------------------------------------------------------------------------

class KnowledgeSource(BaseModel):
    title: str = ""
    url: str = ""
    key_points: list[str] = Field(default_factory=list)


class KnowledgeContext(BaseModel):
    """Synthesised background on a topic, fed into content generation."""

    topic: str
    current_information: str = ""
    key_findings: list[str] = Field(default_factory=list)
    recent_developments: list[str] = Field(default_factory=list)
    authoritative_sources: list[KnowledgeSource] = Field(default_factory=list)
    technical_details: str = ""
    industry_trends: str = ""
    practical_applications: str = ""

    @property
    def is_empty(self) -> bool:
        return not (self.current_information or self.key_findings or self.recent_developments)


# ---------------------------------------------------------------------------
# Generated content
# ---------------------------------------------------------------------------

class ContentSource(BaseModel):
    """Attribution for an article a post was derived from."""

    title: str
    url: str = ""
    author: str = ""
    publication: str = ""


class GeneratedContent(BaseModel):
    """A blog post draft produced by the content agent."""

    title: str
    content: str
    summary: str = ""
    tags: list[str] = Field(default_factory=list)
    sources: list[ContentSource] = Field(default_factory=list)
    diagrams: list[str] = Field(default_factory=list)
    featured_image: str | None = None
    meta_title: str | None = None
    meta_description: str | None = None
    read_time: int | None = None


# ---------------------------------------------------------------------------
# Review / enhancement
# ---------------------------------------------------------------------------

IssueType = Literal[
    "factual_error",
    "hallucination",
    "formatting_error",
    "diagram_error",
    "attribution_missing",
    "content_quality",
    "tag_missing",
]
IssueSeverity = Literal["low", "medium", "high", "critical"]


class ReviewIssue(BaseModel):
    type: IssueType
    severity: IssueSeverity
    description: str
    location: str | None = None
    suggestion: str | None = None


class ReviewResult(BaseModel):
    """Outcome of the review agent. ``approved`` decides draft vs published."""

    approved: bool
    issues: list[ReviewIssue] = Field(default_factory=list)
    suggested_fixes: list[str] | None = None
    quality_score: int = Field(default=0, ge=0, le=100)

    def count(self, severity: IssueSeverity) -> int:
        return sum(1 for issue in self.issues if issue.severity == severity)


class EnhancementResult(BaseModel):
    enhanced_content: GeneratedContent
    improvements_made: list[str] = Field(default_factory=list)
    quality_score: int = Field(default=0, ge=0, le=100)
