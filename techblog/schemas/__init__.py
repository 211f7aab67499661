"""Pydantic models: single source of truth for all data shapes."""

from techblog.schemas.blog import (
    Category,
    CategoryCreate,
    Comment,
    CommentCreate,
    CommentWithReplies,
    Post,
    PostCreate,
    PostFilters,
    PostUpdate,
    PostWithDetails,
    Tag,
    TagCreate,
    User,
    UserCreate,
)
from techblog.schemas.content import (
    ContentSource,
    EnhancementResult,
    GeneratedContent,
    KnowledgeContext,
    KnowledgeSource,
    NewsArticle,
    ReviewIssue,
    ReviewResult,
)

__all__ = [
    "Category",
    "CategoryCreate",
    "Comment",
    "CommentCreate",
    "CommentWithReplies",
    "ContentSource",
    "EnhancementResult",
    "GeneratedContent",
    "KnowledgeContext",
    "KnowledgeSource",
    "NewsArticle",
    "Post",
    "PostCreate",
    "PostFilters",
    "PostUpdate",
    "PostWithDetails",
    "ReviewIssue",
    "ReviewResult",
    "Tag",
    "TagCreate",
    "User",
    "UserCreate",
]
