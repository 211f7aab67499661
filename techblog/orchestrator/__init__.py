"""Generation orchestration: workflow launch, progress monitor, persistence bridge."""

from __future__ import annotations

import logging

from techblog.agents import (
    ContentAgent,
    EnhanceAgent,
    LatestKnowledgeAgent,
    NewsAgent,
    ReviewAgent,
    load_sources,
)
from techblog.config import Settings, get_settings
from techblog.llm import get_provider
from techblog.orchestrator.orchestrator import BlogOrchestrator
from techblog.orchestrator.persistence import PersistenceError, save_blog_post
from techblog.orchestrator.workflows import Capabilities
from techblog.storage import BlogStorage, get_storage

logger = logging.getLogger(__name__)

_orchestrator: BlogOrchestrator | None = None


def build_orchestrator(
    settings: Settings | None = None, storage: BlogStorage | None = None
) -> BlogOrchestrator:
    """Wire providers, storage and monitor settings into an orchestrator."""
    settings = settings or get_settings()
    api_key = settings.llm_api_key
    if not api_key:
        raise ValueError(
            f"No API key configured for LLM provider '{settings.blog_llm_provider}'. "
            "Set OPENAI_API_KEY or ANTHROPIC_API_KEY."
        )
    llm = get_provider(settings.blog_llm_provider, api_key=api_key, model=settings.llm_model)

    if settings.blog_news_sources_file:
        sources, keywords = load_sources(settings.blog_news_sources_file)
        news = NewsAgent(
            sources=sources,
            keywords=keywords,
            timeout=settings.blog_http_timeout,
            fetch_full_text=settings.blog_news_fetch_full_text,
        )
    else:
        news = NewsAgent(
            timeout=settings.blog_http_timeout,
            fetch_full_text=settings.blog_news_fetch_full_text,
        )

    capabilities = Capabilities(
        news=news,
        knowledge=LatestKnowledgeAgent(llm),
        content=ContentAgent(llm),
        review=ReviewAgent(llm),
        enhance=EnhanceAgent(llm),
        storage=storage or get_storage(),
        author_id=settings.blog_system_author_id,
        category_id=settings.blog_default_category_id,
    )
    return BlogOrchestrator(
        capabilities,
        monitor_interval=settings.blog_monitor_interval_seconds,
        monitor_timeout=settings.blog_monitor_timeout_seconds,
        env={"OPENAI_API_KEY": settings.openai_api_key or ""},
    )


def get_orchestrator() -> BlogOrchestrator:
    """Return the process-wide orchestrator, building it on first use."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = build_orchestrator()
        logger.info("Blog orchestrator initialised")
    return _orchestrator


async def shutdown_orchestrator() -> None:
    """Cancel outstanding jobs of the process-wide orchestrator, if one was built."""
    if _orchestrator is not None:
        await _orchestrator.shutdown()


__all__ = [
    "BlogOrchestrator",
    "Capabilities",
    "PersistenceError",
    "build_orchestrator",
    "get_orchestrator",
    "save_blog_post",
    "shutdown_orchestrator",
]
