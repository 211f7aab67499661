"""Blog storage protocol."""

from __future__ import annotations

from typing import Protocol

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


class BlogStorage(Protocol):
    # Users
    def get_user(self, user_id: str) -> User | None: ...
    def get_user_by_email(self, email: str) -> User | None: ...
    def create_user(self, user: UserCreate) -> User: ...

    # Categories
    def get_categories(self) -> list[Category]: ...
    def get_category(self, category_id: str) -> Category | None: ...
    def get_category_by_slug(self, slug: str) -> Category | None: ...
    def create_category(self, category: CategoryCreate) -> Category: ...

    # Tags
    def get_tags(self) -> list[Tag]: ...
    def get_tag(self, tag_id: str) -> Tag | None: ...
    def get_tag_by_slug(self, slug: str) -> Tag | None: ...
    def create_tag(self, tag: TagCreate) -> Tag: ...

    # Posts
    def get_posts(self, filters: PostFilters | None = None) -> list[PostWithDetails]: ...
    def get_post(self, post_id: str) -> PostWithDetails | None: ...
    def get_post_by_slug(self, slug: str) -> PostWithDetails | None: ...
    def create_post(self, post: PostCreate) -> Post: ...
    def update_post(self, post_id: str, update: PostUpdate) -> Post | None: ...
    def delete_post(self, post_id: str) -> bool: ...
    def increment_post_views(self, post_id: str) -> None: ...
    def increment_post_likes(self, post_id: str) -> None: ...

    # Comments
    def get_comments_by_post(self, post_id: str) -> list[CommentWithReplies]: ...
    def get_comment(self, comment_id: str) -> Comment | None: ...
    def create_comment(self, comment: CommentCreate) -> Comment: ...
    def increment_comment_likes(self, comment_id: str) -> None: ...
    def approve_comment(self, comment_id: str) -> None: ...


def build_comment_tree(comments: list[Comment]) -> list[CommentWithReplies]:
    """Nest approved comments under their parents, oldest first. Orphaned replies are dropped."""
    ordered = sorted((c for c in comments if c.is_approved), key=lambda c: c.created_at)
    nodes = {c.id: CommentWithReplies(**c.model_dump()) for c in ordered}
    roots: list[CommentWithReplies] = []
    for comment in ordered:
        node = nodes[comment.id]
        if comment.parent_id is None:
            roots.append(node)
        elif comment.parent_id in nodes:
            nodes[comment.parent_id].replies.append(node)
    return roots
