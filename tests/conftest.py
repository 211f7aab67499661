"""Pytest configuration and shared fixtures."""

import asyncio
import time
from datetime import datetime, timedelta, timezone

import pytest

from techblog.jobs.models import JobStatus
from techblog.orchestrator import BlogOrchestrator, Capabilities
from techblog.schemas.content import (
    ContentSource,
    EnhancementResult,
    GeneratedContent,
    KnowledgeContext,
    NewsArticle,
    ReviewIssue,
    ReviewResult,
)
from techblog.storage import MemoryStorage


class MockLLM:
    """LLM double: canned text for ``complete`` and canned dicts per schema for ``complete_structured``.

    ``structured`` maps the schema class name to a dict (validated into the
    schema) or to an exception instance to raise.
    """

    def __init__(self, text="", structured=None):
        self.text = text
        self.structured = structured or {}
        self.calls = []
        self.prompts = []

    def complete(self, prompt, **kwargs):
        self.calls.append(("complete", prompt, kwargs))
        self.prompts.append(prompt)
        if isinstance(self.text, Exception):
            raise self.text
        return self.text

    def complete_structured(self, prompt, schema, **kwargs):
        self.calls.append(("structured", schema.__name__, kwargs))
        self.prompts.append(prompt)
        value = self.structured.get(schema.__name__)
        if value is None:
            raise ValueError(f"no scripted response for {schema.__name__}")
        if isinstance(value, Exception):
            raise value
        return schema.model_validate(value)


def make_article(title="OpenAI releases new model", score=0.8, hours_ago=1, **kwargs) -> NewsArticle:
    return NewsArticle(
        id=kwargs.pop("id", f"news-{abs(hash(title)) % 10**8}"),
        title=title,
        source=kwargs.pop("source", "TechCrunch"),
        published_at=datetime.now(timezone.utc) - timedelta(hours=hours_ago),
        url=kwargs.pop("url", "https://example.com/a"),
        content=kwargs.pop("content", "A new large language model was released."),
        relevance_score=score,
        tags=kwargs.pop("tags", ["AI"]),
    )


def make_draft(title="Rust ownership explained", content=None, **kwargs) -> GeneratedContent:
    return GeneratedContent(
        title=title,
        content=content or f"# {title}\n\nIntro paragraph.\n\n## Details\n\nBody text here.",
        summary=kwargs.pop("summary", "A summary."),
        tags=kwargs.pop("tags", ["Rust", "Memory"]),
        **kwargs,
    )


def rejected_review(score=55) -> ReviewResult:
    return ReviewResult(
        approved=False,
        issues=[
            ReviewIssue(
                type="content_quality",
                severity="high",
                description="Too shallow",
                suggestion="Add depth",
            )
        ],
        suggested_fixes=["Add depth"],
        quality_score=score,
    )


# ---------------------------------------------------------------------------
# Capability stubs for orchestrator tests
# ---------------------------------------------------------------------------

class StubNews:
    def __init__(self, articles=None, error=None, full_text=False):
        self.articles = articles if articles is not None else [make_article()]
        self.error = error
        self.fetches_full_text = full_text
        self.full_text_calls = 0

    def fetch_latest_news(self, hours_back=24):
        if self.error:
            raise self.error
        return list(self.articles)

    def analyze_relevance(self, articles, focus_topic=None):
        return list(articles)

    def fetch_full_text(self, article):
        self.full_text_calls += 1
        return article.model_copy(update={"content": article.content + " Full text."})


class StubKnowledge:
    def __init__(self):
        self.topics = []

    def gather_latest_knowledge(self, topic):
        self.topics.append(topic)
        return KnowledgeContext(topic=topic, current_information=f"Notes on {topic}")


class StubContent:
    def __init__(self, delay=0.0, error=None):
        self.delay = delay
        self.error = error
        self.custom_calls = []

    def _wait(self):
        if self.delay:
            time.sleep(self.delay)

    def generate_multiple_blog_posts(self, articles, focus_topic=None, knowledge=None):
        self._wait()
        if self.error:
            raise self.error
        return [
            make_draft(
                title=f"Post about {a.title}",
                sources=[ContentSource(title=a.title, url=a.url, publication=a.source)],
            )
            for a in articles
        ]

    def generate_custom_blog_post(self, topic, user_prompt=None, knowledge=None):
        self._wait()
        if self.error:
            raise self.error
        self.custom_calls.append((topic, user_prompt, knowledge))
        return make_draft(title=f"Understanding {topic}")

    def create_diagrams(self, suggestions):
        return [f"graph TD\n  A-->B  %% {s}" for s in suggestions[:2]]

    def insert_diagrams(self, content, diagrams):
        return content + "".join(f"\n\n```mermaid\n{d}\n```\n" for d in diagrams)


class StubReview:
    """Returns scripted reviews in order; the last one repeats."""

    def __init__(self, *reviews):
        self.reviews = list(reviews) or [ReviewResult(approved=True, quality_score=90)]
        self.reviewed = []

    def review_content(self, content):
        self.reviewed.append(content)
        index = min(len(self.reviewed) - 1, len(self.reviews) - 1)
        return self.reviews[index]


class StubEnhance:
    def __init__(self):
        self.calls = []

    def enhance_content(self, content, review):
        self.calls.append((content, review))
        enhanced = content.model_copy(update={"content": content.content + "\n\nMore depth."})
        return EnhancementResult(
            enhanced_content=enhanced,
            improvements_made=["Added depth"],
            quality_score=min(100, review.quality_score + 15),
        )


class FailingStorage(MemoryStorage):
    def create_post(self, post):
        raise ConnectionError("database unavailable")


def make_orchestrator(storage=None, **overrides) -> BlogOrchestrator:
    caps = Capabilities(
        news=overrides.pop("news", None) or StubNews(),
        knowledge=overrides.pop("knowledge", None) or StubKnowledge(),
        content=overrides.pop("content", None) or StubContent(),
        review=overrides.pop("review", None) or StubReview(),
        enhance=overrides.pop("enhance", None) or StubEnhance(),
        storage=storage if storage is not None else MemoryStorage(),
    )
    return BlogOrchestrator(
        caps,
        monitor_interval=overrides.pop("monitor_interval", 0.01),
        monitor_timeout=overrides.pop("monitor_timeout", 5.0),
        env={"OPENAI_API_KEY": "test-key"},
    )


async def wait_for_terminal(orchestrator, job_id, timeout=5.0):
    """Poll until the job reaches a terminal status."""
    async def _poll():
        while True:
            job = orchestrator.get_job(job_id)
            if job is not None and job.status.is_terminal:
                return job
            await asyncio.sleep(0.01)

    return await asyncio.wait_for(_poll(), timeout=timeout)


async def wait_for_status(orchestrator, job_id, status: JobStatus, timeout=5.0):
    async def _poll():
        while True:
            job = orchestrator.get_job(job_id)
            if job is not None and job.status == status:
                return job
            await asyncio.sleep(0.005)

    return await asyncio.wait_for(_poll(), timeout=timeout)


@pytest.fixture
def memory_storage():
    return MemoryStorage()


@pytest.fixture
def mock_llm():
    return MockLLM()
