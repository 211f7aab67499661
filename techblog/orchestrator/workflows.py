"""Pipeline definitions for the two generation job types.

Each job gets its own ``Team``. Step handlers close over the job config and
the shared capability providers; the blocking provider calls run in worker
threads so the event loop stays free for the API and the monitor.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from techblog.agents import (
    ContentAgent,
    ContentGenerationError,
    EnhanceAgent,
    LatestKnowledgeAgent,
    NewsAgent,
    NewsFetchError,
    ReviewAgent,
)
from techblog.jobs.models import (
    CustomGenerationConfig,
    JobResults,
    PostReviewOutcome,
    ScheduledGenerationConfig,
)
from techblog.orchestrator.persistence import save_blog_post
from techblog.pipeline import Agent, Task, TaskContext
from techblog.schemas.content import GeneratedContent, KnowledgeContext, NewsArticle, ReviewResult
from techblog.storage.base import BlogStorage

logger = logging.getLogger(__name__)

NO_ARTICLES_MESSAGE = "No articles met the relevance criteria"
DEFAULT_FOCUS = "General AI"


@dataclass
class Capabilities:
    """Providers and storage a pipeline run needs."""

    news: NewsAgent
    knowledge: LatestKnowledgeAgent
    content: ContentAgent
    review: ReviewAgent
    enhance: EnhanceAgent
    storage: BlogStorage
    author_id: str = "ai-system"
    category_id: str = "cat-1"


@dataclass
class NewsSelection:
    found: int
    articles: list[NewsArticle]


@dataclass
class ReviewedDraft:
    draft: GeneratedContent
    review: ReviewResult


# ---------------------------------------------------------------------------
# Engine agents
# ---------------------------------------------------------------------------

KNOWLEDGE_RESEARCHER = Agent(
    name="KnowledgeResearcher",
    role="Latest Knowledge Research Specialist",
    goal="Gather current knowledge and context about specific topics to enhance blog content accuracy",
    background="Specialist in real-time knowledge acquisition and context synthesis",
)
NEWS_RESEARCHER = Agent(
    name="NewsResearcher",
    role="AI News Research Specialist",
    goal="Fetch and analyze the latest AI news to find relevant material for blog generation",
    background="Expert in AI industry trends, news aggregation, and content relevance analysis",
)
CONTENT_GENERATOR = Agent(
    name="ContentGenerator",
    role="AI Content Creation Specialist",
    goal="Generate high-quality, engaging blog posts based on news articles and knowledge context",
    background="Technical writer specializing in AI/ML content for developer audiences",
)
CONTENT_REVIEWER = Agent(
    name="ContentReviewer",
    role="Quality Assurance Specialist",
    goal="Review generated content for quality, accuracy, and adherence to editorial standards",
    background="Editorial expert focused on technical accuracy and content quality assessment",
)
CONTENT_ENHANCER = Agent(
    name="ContentEnhancer",
    role="Content Optimization Specialist",
    goal="Enhance and refine content based on review feedback to ensure publication readiness",
    background="Content optimization expert skilled in addressing quality issues and readability",
)

SCHEDULED_AGENTS = [
    NEWS_RESEARCHER,
    KNOWLEDGE_RESEARCHER,
    CONTENT_GENERATOR,
    CONTENT_REVIEWER,
    CONTENT_ENHANCER,
]
CUSTOM_AGENTS = [KNOWLEDGE_RESEARCHER, CONTENT_GENERATOR, CONTENT_REVIEWER, CONTENT_ENHANCER]


# ---------------------------------------------------------------------------
# Shared steps
# ---------------------------------------------------------------------------

async def _with_diagrams(caps: Capabilities, draft: GeneratedContent) -> GeneratedContent:
    """Render suggested diagrams to Mermaid and splice them into the body."""
    if not draft.diagrams:
        return draft
    diagrams = await asyncio.to_thread(caps.content.create_diagrams, draft.diagrams)
    if not diagrams:
        return draft.model_copy(update={"diagrams": []})
    content = caps.content.insert_diagrams(draft.content, diagrams)
    return draft.model_copy(update={"content": content, "diagrams": diagrams})


async def _review_all(caps: Capabilities, drafts: list[GeneratedContent]) -> list[ReviewedDraft]:
    reviewed = []
    for draft in drafts:
        review = await asyncio.to_thread(caps.review.review_content, draft)
        reviewed.append(ReviewedDraft(draft=draft, review=review))
    return reviewed


async def _finalize(caps: Capabilities, item: ReviewedDraft) -> tuple[str, ReviewResult]:
    """Enhance and re-review a rejected draft, then persist it with its final review."""
    draft, review = item.draft, item.review
    if not review.approved:
        enhanced = await asyncio.to_thread(caps.enhance.enhance_content, draft, review)
        draft = enhanced.enhanced_content
        review = await asyncio.to_thread(caps.review.review_content, draft)
        logger.info(
            "Re-review after enhancement of %r: %s (score %d)",
            draft.title, "approved" if review.approved else "rejected", review.quality_score,
        )
    post_id = await asyncio.to_thread(
        save_blog_post,
        caps.storage,
        draft,
        review,
        author_id=caps.author_id,
        category_id=caps.category_id,
    )
    return post_id, review


async def _finalize_all(
    caps: Capabilities, reviewed: list[ReviewedDraft], found: int, analyzed: int
) -> JobResults:
    post_ids: list[str] = []
    outcomes: list[PostReviewOutcome] = []
    for item in reviewed:
        post_id, review = await _finalize(caps, item)
        post_ids.append(post_id)
        outcomes.append(
            PostReviewOutcome(post_id=post_id, approved=review.approved, quality_score=review.quality_score)
        )
    return JobResults(
        articles_found=found,
        articles_analyzed=analyzed,
        blog_post_generated=bool(post_ids),
        post_id=post_ids[0] if post_ids else None,
        post_ids=post_ids,
        review_results=outcomes,
    )


# ---------------------------------------------------------------------------
# Scheduled (news-driven) pipeline
# ---------------------------------------------------------------------------

def scheduled_inputs(config: ScheduledGenerationConfig) -> dict:
    return {
        "hours_back": config.hours_back,
        "min_relevance_score": config.min_relevance_score,
        "max_articles": config.max_articles,
        "focus_topic": config.focus_topic or DEFAULT_FOCUS,
    }


def scheduled_tasks(config: ScheduledGenerationConfig, caps: Capabilities) -> list[Task]:
    async def research(ctx: TaskContext) -> KnowledgeContext:
        return await asyncio.to_thread(caps.knowledge.gather_latest_knowledge, ctx.inputs["focus_topic"])

    async def fetch_and_analyze(ctx: TaskContext) -> NewsSelection:
        articles = await asyncio.to_thread(caps.news.fetch_latest_news, config.hours_back)
        analyzed = caps.news.analyze_relevance(articles, config.focus_topic)
        relevant = [a for a in analyzed if a.relevance_score >= config.min_relevance_score]
        relevant = relevant[: config.max_articles]
        if not relevant:
            raise NewsFetchError(NO_ARTICLES_MESSAGE)
        if caps.news.fetches_full_text:
            relevant = [await asyncio.to_thread(caps.news.fetch_full_text, a) for a in relevant]
        logger.info("Selected %d of %d articles", len(relevant), len(articles))
        return NewsSelection(found=len(articles), articles=relevant)

    async def generate(ctx: TaskContext) -> list[GeneratedContent]:
        selection: NewsSelection = ctx.outputs["Fetch and Analyze News"]
        knowledge: KnowledgeContext | None = ctx.outputs.get("Research Latest Knowledge")
        drafts = await asyncio.to_thread(
            caps.content.generate_multiple_blog_posts,
            selection.articles,
            config.focus_topic,
            knowledge,
        )
        if not drafts:
            raise ContentGenerationError("No blog posts could be generated from the selected articles")
        return [await _with_diagrams(caps, d) for d in drafts]

    async def review(ctx: TaskContext) -> list[ReviewedDraft]:
        return await _review_all(caps, ctx.outputs["Generate Blog Content"])

    async def enhance_and_publish(ctx: TaskContext) -> JobResults:
        selection: NewsSelection = ctx.outputs["Fetch and Analyze News"]
        return await _finalize_all(
            caps, ctx.outputs["Review Content Quality"], selection.found, len(selection.articles)
        )

    focus = config.focus_topic or "AI developments"
    return [
        Task(
            title="Research Latest Knowledge",
            description=f"Gather latest knowledge and context about {focus}",
            expected_output="Knowledge context with current information, key findings, and industry trends",
            agent=KNOWLEDGE_RESEARCHER,
            handler=research,
        ),
        Task(
            title="Fetch and Analyze News",
            description=f"Fetch AI news from the last {config.hours_back} hours and analyze relevance",
            expected_output="List of relevant, analyzed news articles ready for content generation",
            agent=NEWS_RESEARCHER,
            handler=fetch_and_analyze,
        ),
        Task(
            title="Generate Blog Content",
            description="Generate high-quality blog posts from analyzed news articles",
            expected_output="Generated blog posts with content, metadata, and source attribution",
            agent=CONTENT_GENERATOR,
            handler=generate,
        ),
        Task(
            title="Review Content Quality",
            description="Review generated content for quality, accuracy, and editorial standards",
            expected_output="Quality assessment results and approval status for each post",
            agent=CONTENT_REVIEWER,
            handler=review,
        ),
        Task(
            title="Enhance and Publish",
            description="Enhance content based on review feedback and save to database",
            expected_output="Finalized, enhanced blog posts saved to the system",
            agent=CONTENT_ENHANCER,
            handler=enhance_and_publish,
        ),
    ]


# ---------------------------------------------------------------------------
# Custom (topic-driven) pipeline
# ---------------------------------------------------------------------------

def custom_inputs(config: CustomGenerationConfig) -> dict:
    return {"topic": config.topic, "user_prompt": config.user_prompt}


def custom_tasks(config: CustomGenerationConfig, caps: Capabilities) -> list[Task]:
    async def research(ctx: TaskContext) -> KnowledgeContext:
        return await asyncio.to_thread(caps.knowledge.gather_latest_knowledge, config.topic)

    async def generate(ctx: TaskContext) -> GeneratedContent:
        knowledge: KnowledgeContext | None = ctx.outputs.get("Research Topic Knowledge")
        draft = await asyncio.to_thread(
            caps.content.generate_custom_blog_post, config.topic, config.user_prompt, knowledge
        )
        return await _with_diagrams(caps, draft)

    async def review(ctx: TaskContext) -> list[ReviewedDraft]:
        return await _review_all(caps, [ctx.outputs["Generate Custom Content"]])

    async def finalize(ctx: TaskContext) -> JobResults:
        return await _finalize_all(caps, ctx.outputs["Review Custom Content"], found=0, analyzed=0)

    return [
        Task(
            title="Research Topic Knowledge",
            description=f"Gather comprehensive knowledge about: {config.topic}",
            expected_output="Current knowledge context with latest developments and industry insights",
            agent=KNOWLEDGE_RESEARCHER,
            handler=research,
        ),
        Task(
            title="Generate Custom Content",
            description=f"Create a comprehensive blog post about: {config.topic}",
            expected_output="High-quality, custom blog post with proper structure and SEO optimization",
            agent=CONTENT_GENERATOR,
            handler=generate,
        ),
        Task(
            title="Review Custom Content",
            description="Review the custom content for quality and accuracy",
            expected_output="Quality assessment and approval status",
            agent=CONTENT_REVIEWER,
            handler=review,
        ),
        Task(
            title="Finalize and Save",
            description="Enhance content if needed and save to database",
            expected_output="Finalized blog post saved to the system",
            agent=CONTENT_ENHANCER,
            handler=finalize,
        ),
    ]
