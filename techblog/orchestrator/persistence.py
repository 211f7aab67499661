"""Turn a reviewed draft into a stored blog post."""

from __future__ import annotations

import logging
import re
import time
from datetime import datetime, timezone

from techblog.agents.content import calculate_read_time
from techblog.schemas.blog import PostCreate, PostStatus, TagCreate
from techblog.schemas.content import GeneratedContent, ReviewResult
from techblog.storage.base import BlogStorage

logger = logging.getLogger(__name__)

_NON_SLUG_RE = re.compile(r"[^a-z0-9\s-]")
_WS_RE = re.compile(r"\s+")
_DASHES_RE = re.compile(r"-+")


class PersistenceError(RuntimeError):
    """Raised when a generated post could not be written to storage."""


def slugify(text: str) -> str:
    """``"Hello, World! 2024"`` -> ``"hello-world-2024"``."""
    slug = _NON_SLUG_RE.sub("", text.lower())
    slug = _WS_RE.sub("-", slug)
    slug = _DASHES_RE.sub("-", slug)
    return slug.strip("- ")


def unique_slug(title: str) -> str:
    """Slug with a millisecond timestamp suffix, so regenerated titles never collide."""
    return f"{slugify(title)}-{int(time.time() * 1000)}"


def publication_status(review: ReviewResult | None) -> PostStatus:
    return "published" if review is not None and review.approved else "draft"


def _review_summary(review: ReviewResult | None) -> dict | None:
    if review is None:
        return None
    return {
        "approved": review.approved,
        "quality_score": review.quality_score,
        "issues": len(review.issues),
        "critical_issues": review.count("critical"),
        "high_issues": review.count("high"),
        "medium_issues": review.count("medium"),
        "low_issues": review.count("low"),
    }


def _ensure_tags(storage: BlogStorage, names: list[str]) -> None:
    for name in names:
        try:
            existing = storage.get_tags()
            if any(t.name.lower() == name.lower() for t in existing):
                continue
            storage.create_tag(TagCreate(name=name, slug=slugify(name)))
        except Exception as e:
            logger.warning("Error adding tag %s: %s", name, e)


def save_blog_post(
    storage: BlogStorage,
    content: GeneratedContent,
    review: ReviewResult | None,
    *,
    author_id: str,
    category_id: str,
) -> str:
    """Create the post (published iff approved) and register its tags. Returns the post id."""
    status = publication_status(review)
    post = PostCreate(
        title=content.title,
        slug=unique_slug(content.title),
        excerpt=content.summary,
        content=content.content,
        author_id=author_id,
        category_id=category_id,
        read_time=calculate_read_time(content.content),
        status=status,
        tags=content.tags,
        featured_image=content.featured_image,
        meta_title=content.meta_title,
        meta_description=content.meta_description,
        metadata={
            "sources": [s.model_dump() for s in content.sources],
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "ai_generated": True,
            "pipeline_generated": True,
            "review_result": _review_summary(review),
        },
    )
    try:
        created = storage.create_post(post)
    except Exception as e:
        raise PersistenceError(f"Failed to save blog post: {e}") from e

    _ensure_tags(storage, content.tags)
    logger.info("Blog post saved with id %s (%s)", created.id, status)
    return created.id
