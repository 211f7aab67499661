"""Content generation agent: news article or topic in, blog post draft out."""

from __future__ import annotations

import logging
import math
import re
import time

from pydantic import BaseModel, Field

from techblog.llm import LLMProvider
from techblog.prompts import render_prompt
from techblog.schemas.content import (
    ContentSource,
    GeneratedContent,
    KnowledgeContext,
    NewsArticle,
)

logger = logging.getLogger(__name__)

WORDS_PER_MINUTE = 200
MAX_TAGS = 8
MAX_DIAGRAMS = 2
BASE_TAGS = ("AI", "Machine Learning")

_COMPANY_TAGS = {
    "openai": "OpenAI",
    "anthropic": "Anthropic",
    "google": "Google",
    "microsoft": "Microsoft",
    "meta": "Meta",
    "nvidia": "NVIDIA",
}
_MODEL_TAGS = {
    "gpt-4": "GPT-4",
    "gpt-5": "GPT-5",
    "claude": "Claude",
    "gemini": "Gemini",
    "llama": "LLaMA",
    "chatgpt": "ChatGPT",
}
_CONCEPT_TAGS = {
    "multimodal": "Multimodal",
    "transformer": "Transformers",
    "fine-tuning": "Fine-tuning",
    "rag": "RAG",
    "embedding": "Embeddings",
    "training": "Training",
    "inference": "Inference",
    "api": "API",
}
_AUTHOR_PATTERNS = [
    re.compile(r"By ([A-Za-z ]+)", re.IGNORECASE),
    re.compile(r"Author: ([A-Za-z ]+)", re.IGNORECASE),
    re.compile(r"Written by ([A-Za-z ]+)", re.IGNORECASE),
]


class ContentGenerationError(RuntimeError):
    """Raised when the LLM could not produce a usable draft."""


class _Draft(BaseModel):
    """Shape the LLM is asked to return."""

    title: str = ""
    content: str = ""
    summary: str = ""
    tags: list[str] = Field(default_factory=list)
    meta_title: str | None = None
    meta_description: str | None = None
    featured_image: str | None = None
    diagrams: list[str] = Field(default_factory=list)


def calculate_read_time(content: str) -> int:
    return max(1, math.ceil(len(content.split()) / WORDS_PER_MINUTE))


def _fix_mermaid_fences(content: str) -> str:
    # Double-wrapped Mermaid blocks break markdown parsing
    content = re.sub(r"```mermaid\s*```mermaid", "```mermaid", content)
    return re.sub(r"```\s*```", "```", content)


def _contains(haystack: str, keyword: str) -> bool:
    return re.search(rf"\b{re.escape(keyword)}\b", haystack) is not None


class ContentAgent:
    def __init__(self, llm: LLMProvider, request_delay: float = 1.0):
        self._llm = llm
        self._request_delay = request_delay

    # -- news-driven posts ----------------------------------------------

    def generate_blog_post(
        self,
        article: NewsArticle,
        focus_topic: str | None = None,
        knowledge: KnowledgeContext | None = None,
    ) -> GeneratedContent:
        logger.info("Generating blog post for: %s", article.title)
        source = ContentSource(
            title=article.title,
            url=article.url,
            publication=article.source,
            author=self.extract_author(article.content),
        )
        prompt = render_prompt(
            "content_article.j2", article=article, focus_topic=focus_topic, knowledge=knowledge
        )
        try:
            draft = self._llm.complete_structured(
                prompt,
                _Draft,
                system=render_prompt("content_system.j2"),
                temperature=0.7,
                max_tokens=4000,
            )
        except Exception as e:
            raise ContentGenerationError(f"Failed to generate content: {e}") from e

        content = _fix_mermaid_fences(draft.content)
        title = draft.title or article.title
        summary = draft.summary or "A detailed analysis of recent AI developments."
        return GeneratedContent(
            title=title,
            content=content,
            summary=summary,
            tags=self.enhance_tags(draft.tags, content, article),
            sources=[source],
            diagrams=draft.diagrams,
            featured_image=draft.featured_image,
            meta_title=draft.meta_title or title,
            meta_description=draft.meta_description or summary,
            read_time=calculate_read_time(content),
        )

    def generate_multiple_blog_posts(
        self,
        articles: list[NewsArticle],
        focus_topic: str | None = None,
        knowledge: KnowledgeContext | None = None,
    ) -> list[GeneratedContent]:
        """One post per article; articles whose generation fails are skipped."""
        logger.info("Generating %d individual blog posts...", len(articles))
        posts: list[GeneratedContent] = []
        for i, article in enumerate(articles):
            if i and self._request_delay:
                time.sleep(self._request_delay)  # stay under provider rate limits
            try:
                posts.append(self.generate_blog_post(article, focus_topic, knowledge))
            except ContentGenerationError as e:
                logger.error("Failed to generate post for article %r: %s", article.title, e)
        return posts

    # -- custom posts ------------------------------------------------------

    def generate_custom_blog_post(
        self,
        topic: str,
        user_prompt: str | None = None,
        knowledge: KnowledgeContext | None = None,
    ) -> GeneratedContent:
        """Post on an explicit topic; falls back to a skeleton outline if the LLM fails."""
        logger.info("Generating custom blog post for topic: %s", topic)
        prompt = render_prompt(
            "content_custom.j2", topic=topic, user_prompt=user_prompt, knowledge=knowledge
        )
        try:
            draft = self._llm.complete_structured(
                prompt,
                _Draft,
                system="You are an expert technical writer. Always respond with valid JSON only.",
                temperature=0.7,
                max_tokens=4000,
            )
        except Exception as e:
            logger.error("Custom generation failed for %s, using fallback outline: %s", topic, e)
            return self._fallback_post(topic)

        if not draft.content.strip():
            logger.warning("Empty custom draft for %s, using fallback outline", topic)
            return self._fallback_post(topic)

        content = _fix_mermaid_fences(draft.content)
        title = draft.title or f"Blog Post: {topic}"
        return GeneratedContent(
            title=title,
            content=content,
            summary=draft.summary,
            tags=draft.tags or [topic],
            sources=[],
            diagrams=draft.diagrams,
            featured_image=draft.featured_image,
            meta_title=draft.meta_title or title,
            meta_description=draft.meta_description or draft.summary,
            read_time=calculate_read_time(content),
        )

    def _fallback_post(self, topic: str) -> GeneratedContent:
        content = (
            f"# Understanding {topic}\n\n"
            f"This is a comprehensive guide to {topic}.\n\n"
            f"## Introduction\n\n{topic} is an important topic that deserves detailed exploration.\n\n"
            "## Key Concepts\n\nLet's dive into the fundamental concepts.\n\n"
            f"## Conclusion\n\nIn conclusion, {topic} continues to be a significant area of interest."
        )
        return GeneratedContent(
            title=f"Understanding {topic}",
            content=content,
            summary=f"A comprehensive guide to understanding {topic} and its implications.",
            tags=[topic, "Guide", "Technology"],
            meta_title=f"Understanding {topic} - Complete Guide",
            meta_description=f"Learn everything you need to know about {topic} in this comprehensive guide.",
            read_time=calculate_read_time(content),
        )

    # -- diagrams ------------------------------------------------------------

    def create_diagrams(self, suggestions: list[str]) -> list[str]:
        """Render up to two diagram suggestions as Mermaid code. Failures yield no diagram."""
        diagrams: list[str] = []
        for suggestion in suggestions[:MAX_DIAGRAMS]:
            try:
                code = self._llm.complete(
                    render_prompt("diagram.j2", suggestion=suggestion),
                    system=(
                        "You are a technical diagram expert. Create clear, accurate Mermaid "
                        "diagrams that enhance understanding of AI/ML concepts."
                    ),
                    temperature=0.3,
                    max_tokens=500,
                )
            except Exception as e:
                logger.warning("Diagram generation failed for %r: %s", suggestion, e)
                continue
            code = re.sub(r"^```(?:mermaid)?\s*|\s*```$", "", code.strip())
            if code:
                diagrams.append(code)
        return diagrams

    @staticmethod
    def insert_diagrams(content: str, diagrams: list[str]) -> str:
        """First diagram after the opening paragraph, the rest before the conclusion (or at the end)."""
        updated = content
        for index, diagram in enumerate(diagrams):
            block = f"\n\n```mermaid\n{diagram}\n```\n\n"
            if index == 0:
                insert_at = updated.find("\n\n")
                if insert_at > 0:
                    updated = updated[:insert_at] + block + updated[insert_at:]
                else:
                    updated += block
                continue
            conclusion = updated.lower().find("## conclusion")
            if conclusion > 0:
                updated = updated[:conclusion] + block + updated[conclusion:]
            else:
                updated += block
        return updated

    # -- tags / attribution --------------------------------------------------

    @staticmethod
    def enhance_tags(original: list[str], content: str, article: NewsArticle) -> list[str]:
        tags: dict[str, None] = dict.fromkeys(original)
        content_lower = content.lower()
        title_lower = article.title.lower()
        for keyword, tag in {**_COMPANY_TAGS, **_MODEL_TAGS, **_CONCEPT_TAGS}.items():
            if _contains(content_lower, keyword) or _contains(title_lower, keyword):
                tags.setdefault(tag)
        for tag in BASE_TAGS:
            tags.setdefault(tag)
        for tag in article.tags:
            if tag.lower() not in ("artificial intelligence", "ai"):
                tags.setdefault(tag)
        return list(tags)[:MAX_TAGS]

    @staticmethod
    def extract_author(content: str) -> str:
        for pattern in _AUTHOR_PATTERNS:
            match = pattern.search(content)
            if match:
                return match.group(1).strip()
        return ""
