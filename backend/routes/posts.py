"""Blog API routes: categories, tags, posts, comments, search."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from backend.auth import optional_session
from techblog.orchestrator.persistence import calculate_read_time, slugify
from techblog.schemas.blog import (
    Category,
    Comment,
    CommentCreate,
    CommentWithReplies,
    Post,
    PostCreate,
    PostFilters,
    PostStatus,
    PostUpdate,
    PostWithDetails,
    Tag,
)
from techblog.storage import BlogStorage, get_storage

logger = logging.getLogger(__name__)
router = APIRouter()


class PostCreateRequest(BaseModel):
    """Admin post payload; slug and read time are derived when omitted."""

    title: str = Field(min_length=1)
    content: str = Field(min_length=1)
    excerpt: str = ""
    slug: Optional[str] = None
    author_id: str = "user-1"
    category_id: str = "cat-1"
    read_time: Optional[int] = Field(default=None, ge=1)
    status: PostStatus = "draft"
    tags: list[str] = Field(default_factory=list)
    featured_image: Optional[str] = None
    meta_title: Optional[str] = None
    meta_description: Optional[str] = None


class CommentRequest(BaseModel):
    content: str = Field(min_length=1)
    author_name: str = Field(min_length=1)
    author_email: str = Field(min_length=3)
    author_avatar: Optional[str] = None
    parent_id: Optional[str] = None


class StatusResponse(BaseModel):
    status: str


def _visible(post: Optional[PostWithDetails], session: Optional[dict]) -> bool:
    """Drafts are only visible to a logged-in admin."""
    return post is not None and (post.status == "published" or session is not None)


def _require_post(
    storage: BlogStorage, post_id: str, session: Optional[dict] = None
) -> PostWithDetails:
    post = storage.get_post(post_id)
    if not _visible(post, session):
        raise HTTPException(status_code=404, detail="Post not found")
    return post


# ---------------------------------------------------------------------------
# Categories / tags
# ---------------------------------------------------------------------------

@router.get("/categories", response_model=list[Category])
async def list_categories(storage: BlogStorage = Depends(get_storage)):
    return storage.get_categories()


@router.get("/tags", response_model=list[Tag])
async def list_tags(storage: BlogStorage = Depends(get_storage)):
    return storage.get_tags()


# ---------------------------------------------------------------------------
# Posts
# ---------------------------------------------------------------------------

@router.get("/posts", response_model=list[PostWithDetails])
async def list_posts(
    category: Optional[str] = None,
    tag: Optional[str] = None,
    search: Optional[str] = None,
    storage: BlogStorage = Depends(get_storage),
):
    """Published posts, newest first."""
    filters = PostFilters(category=category, tag=tag, search=search, status="published")
    return storage.get_posts(filters)


@router.get("/posts/drafts", response_model=list[PostWithDetails])
async def list_drafts(storage: BlogStorage = Depends(get_storage)):
    """Unpublished posts awaiting manual review (admin only)."""
    return storage.get_posts(PostFilters(status="draft"))


@router.get("/posts/id/{post_id}", response_model=PostWithDetails)
async def get_post_by_id(
    post_id: str,
    storage: BlogStorage = Depends(get_storage),
    session: Optional[dict] = Depends(optional_session),
):
    return _require_post(storage, post_id, session)


@router.get("/posts/{slug}", response_model=PostWithDetails)
async def get_post_by_slug(
    slug: str,
    storage: BlogStorage = Depends(get_storage),
    session: Optional[dict] = Depends(optional_session),
):
    """Read a post; reading a published post counts as a view."""
    post = storage.get_post_by_slug(slug)
    if not _visible(post, session):
        raise HTTPException(status_code=404, detail="Post not found")
    if post.status == "published":
        storage.increment_post_views(post.id)
        post.views += 1
    return post


@router.post("/posts", response_model=Post, status_code=status.HTTP_201_CREATED)
async def create_post(request: PostCreateRequest, storage: BlogStorage = Depends(get_storage)):
    if storage.get_category(request.category_id) is None:
        raise HTTPException(status_code=400, detail=f"Unknown category: {request.category_id}")
    if storage.get_user(request.author_id) is None:
        raise HTTPException(status_code=400, detail=f"Unknown author: {request.author_id}")
    slug = request.slug or slugify(request.title)
    if storage.get_post_by_slug(slug) is not None:
        raise HTTPException(status_code=409, detail=f"Slug already in use: {slug}")
    data = request.model_dump(exclude={"slug", "read_time"})
    post = storage.create_post(
        PostCreate(
            **data,
            slug=slug,
            read_time=request.read_time or calculate_read_time(request.content),
        )
    )
    logger.info("Created post %s (%s)", post.id, post.status)
    return post


@router.patch("/posts/{post_id}", response_model=Post)
async def update_post(post_id: str, update: PostUpdate, storage: BlogStorage = Depends(get_storage)):
    if update.content is not None and update.read_time is None:
        update = update.model_copy(update={"read_time": calculate_read_time(update.content)})
    post = storage.update_post(post_id, update)
    if post is None:
        raise HTTPException(status_code=404, detail="Post not found")
    return post


@router.delete("/posts/{post_id}", response_model=StatusResponse)
async def delete_post(post_id: str, storage: BlogStorage = Depends(get_storage)):
    if not storage.delete_post(post_id):
        raise HTTPException(status_code=404, detail="Post not found")
    return StatusResponse(status="deleted")


@router.post("/posts/{post_id}/like", response_model=StatusResponse)
async def like_post(
    post_id: str,
    storage: BlogStorage = Depends(get_storage),
    session: Optional[dict] = Depends(optional_session),
):
    _require_post(storage, post_id, session)
    storage.increment_post_likes(post_id)
    return StatusResponse(status="liked")


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------

@router.get("/posts/{post_id}/comments", response_model=list[CommentWithReplies])
async def list_comments(
    post_id: str,
    storage: BlogStorage = Depends(get_storage),
    session: Optional[dict] = Depends(optional_session),
):
    _require_post(storage, post_id, session)
    return storage.get_comments_by_post(post_id)


@router.post(
    "/posts/{post_id}/comments", response_model=Comment, status_code=status.HTTP_201_CREATED
)
async def create_comment(
    post_id: str,
    request: CommentRequest,
    storage: BlogStorage = Depends(get_storage),
    session: Optional[dict] = Depends(optional_session),
):
    _require_post(storage, post_id, session)
    if request.parent_id:
        parent = storage.get_comment(request.parent_id)
        if parent is None or parent.post_id != post_id:
            raise HTTPException(status_code=400, detail="Parent comment not found on this post")
    return storage.create_comment(CommentCreate(post_id=post_id, **request.model_dump()))


@router.post("/comments/{comment_id}/like", response_model=StatusResponse)
async def like_comment(
    comment_id: str,
    storage: BlogStorage = Depends(get_storage),
    session: Optional[dict] = Depends(optional_session),
):
    comment = storage.get_comment(comment_id)
    if comment is None or not _visible(storage.get_post(comment.post_id), session):
        raise HTTPException(status_code=404, detail="Comment not found")
    storage.increment_comment_likes(comment_id)
    return StatusResponse(status="liked")


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------

@router.get("/search", response_model=list[PostWithDetails])
async def search_posts(
    q: str = Query(min_length=1), storage: BlogStorage = Depends(get_storage)
):
    return storage.get_posts(PostFilters(search=q, status="published"))
