"""Blog entities: users, categories, tags, posts, comments."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

PostStatus = Literal["draft", "published"]


def _utcnow() -> datetime:
    return datetime.utcnow()


class UserCreate(BaseModel):
    username: str
    email: str
    name: str
    avatar: str | None = None


class User(UserCreate):
    id: str
    created_at: datetime = Field(default_factory=_utcnow)


class CategoryCreate(BaseModel):
    name: str
    slug: str
    description: str | None = None
    color: str = "#6B7280"


class Category(CategoryCreate):
    id: str
    created_at: datetime = Field(default_factory=_utcnow)


class TagCreate(BaseModel):
    name: str
    slug: str


class Tag(TagCreate):
    id: str
    created_at: datetime = Field(default_factory=_utcnow)


# ---------------------------------------------------------------------------
# Posts
# ---------------------------------------------------------------------------

class PostCreate(BaseModel):
    """Insert payload for a post; id, counters and timestamps are assigned by storage."""

    title: str
    slug: str
    excerpt: str
    content: str
    author_id: str
    category_id: str
    read_time: int = Field(ge=1)
    status: PostStatus = "draft"
    tags: list[str] = Field(default_factory=list)
    featured_image: str | None = None
    meta_title: str | None = None
    meta_description: str | None = None
    published_at: datetime | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class PostUpdate(BaseModel):
    """Partial update; only fields that are set are applied."""

    title: str | None = None
    slug: str | None = None
    excerpt: str | None = None
    content: str | None = None
    category_id: str | None = None
    read_time: int | None = Field(default=None, ge=1)
    status: PostStatus | None = None
    tags: list[str] | None = None
    featured_image: str | None = None
    meta_title: str | None = None
    meta_description: str | None = None
    published_at: datetime | None = None
    metadata: dict[str, Any] | None = None


class Post(PostCreate):
    id: str
    views: int = 0
    likes: int = 0
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class PostWithDetails(Post):
    author: User
    category: Category
    comments_count: int = 0


class PostFilters(BaseModel):
    category: str | None = None  # category slug
    tag: str | None = None       # tag name or slug
    search: str | None = None
    status: PostStatus | None = None


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------

class CommentCreate(BaseModel):
    content: str = Field(min_length=1)
    author_name: str = Field(min_length=1)
    author_email: str = Field(min_length=3)
    author_avatar: str | None = None
    post_id: str
    parent_id: str | None = None


class Comment(CommentCreate):
    id: str
    likes: int = 0
    is_approved: bool = False
    created_at: datetime = Field(default_factory=_utcnow)


class CommentWithReplies(Comment):
    replies: list[CommentWithReplies] = Field(default_factory=list)
