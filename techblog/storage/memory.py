"""In-memory blog store. Default when no database is configured; contents are lost on restart."""

from __future__ import annotations

import logging
import threading
import uuid
from datetime import datetime

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
from techblog.storage.base import build_comment_tree

logger = logging.getLogger(__name__)

SEED_USERS = [
    User(id="user-1", username="owner", email="owner@example.com", name="Blog Owner"),
    User(id="ai-system", username="ai-system", email="ai@example.com", name="AI Writer"),
]
SEED_CATEGORIES = [
    Category(
        id="cat-1",
        name="AI/LLM",
        slug="ai-llm",
        description="Artificial Intelligence and Large Language Models",
        color="#8B5CF6",
    ),
    Category(
        id="cat-2",
        name="Backend",
        slug="backend",
        description="Server-side development and architecture",
        color="#10B981",
    ),
    Category(
        id="cat-3",
        name="Frontend",
        slug="frontend",
        description="Client-side development and frameworks",
        color="#3B82F6",
    ),
    Category(
        id="cat-4",
        name="Hosting",
        slug="hosting",
        description="Deployment and hosting solutions",
        color="#F59E0B",
    ),
]
SEED_TAGS = [
    Tag(id="tag-1", name="React", slug="react"),
    Tag(id="tag-2", name="Node.js", slug="nodejs"),
    Tag(id="tag-3", name="TypeScript", slug="typescript"),
    Tag(id="tag-4", name="Docker", slug="docker"),
    Tag(id="tag-5", name="AWS", slug="aws"),
    Tag(id="tag-6", name="Next.js", slug="nextjs"),
]


def _new_id() -> str:
    return str(uuid.uuid4())


class MemoryStorage:
    """Thread-safe dict-backed store; callers get copies, never the stored objects."""

    def __init__(self, seed: bool = True):
        self._lock = threading.RLock()
        self._users: dict[str, User] = {}
        self._categories: dict[str, Category] = {}
        self._tags: dict[str, Tag] = {}
        self._posts: dict[str, Post] = {}
        self._comments: dict[str, Comment] = {}
        if seed:
            self._users.update({u.id: u.model_copy() for u in SEED_USERS})
            self._categories.update({c.id: c.model_copy() for c in SEED_CATEGORIES})
            self._tags.update({t.id: t.model_copy() for t in SEED_TAGS})

    # -- users -----------------------------------------------------------

    def get_user(self, user_id: str) -> User | None:
        with self._lock:
            user = self._users.get(user_id)
            return user.model_copy() if user else None

    def get_user_by_email(self, email: str) -> User | None:
        with self._lock:
            for user in self._users.values():
                if user.email == email:
                    return user.model_copy()
        return None

    def create_user(self, user: UserCreate) -> User:
        created = User(id=_new_id(), **user.model_dump())
        with self._lock:
            self._users[created.id] = created
        return created.model_copy()

    # -- categories --------------------------------------------------------

    def get_categories(self) -> list[Category]:
        with self._lock:
            return [c.model_copy() for c in self._categories.values()]

    def get_category(self, category_id: str) -> Category | None:
        with self._lock:
            category = self._categories.get(category_id)
            return category.model_copy() if category else None

    def get_category_by_slug(self, slug: str) -> Category | None:
        with self._lock:
            for category in self._categories.values():
                if category.slug == slug:
                    return category.model_copy()
        return None

    def create_category(self, category: CategoryCreate) -> Category:
        created = Category(id=_new_id(), **category.model_dump())
        with self._lock:
            self._categories[created.id] = created
        return created.model_copy()

    # -- tags ----------------------------------------------------------------

    def get_tags(self) -> list[Tag]:
        with self._lock:
            return [t.model_copy() for t in self._tags.values()]

    def get_tag(self, tag_id: str) -> Tag | None:
        with self._lock:
            tag = self._tags.get(tag_id)
            return tag.model_copy() if tag else None

    def get_tag_by_slug(self, slug: str) -> Tag | None:
        with self._lock:
            for tag in self._tags.values():
                if tag.slug == slug:
                    return tag.model_copy()
        return None

    def create_tag(self, tag: TagCreate) -> Tag:
        created = Tag(id=_new_id(), **tag.model_dump())
        with self._lock:
            self._tags[created.id] = created
        return created.model_copy()

    # -- posts ---------------------------------------------------------------

    def _details(self, post: Post) -> PostWithDetails | None:
        author = self._users.get(post.author_id)
        category = self._categories.get(post.category_id)
        if author is None or category is None:
            logger.warning("Post %s references a missing author or category", post.id)
            return None
        comments = sum(
            1 for c in self._comments.values() if c.post_id == post.id and c.is_approved
        )
        return PostWithDetails(
            **post.model_dump(),
            author=author.model_copy(),
            category=category.model_copy(),
            comments_count=comments,
        )

    def _matches_tag(self, post: Post, tag: str) -> bool:
        wanted = {tag.lower()}
        for stored in self._tags.values():
            if stored.slug == tag:
                wanted.add(stored.name.lower())
        return any(t.lower() in wanted for t in post.tags)

    def get_posts(self, filters: PostFilters | None = None) -> list[PostWithDetails]:
        filters = filters or PostFilters()
        with self._lock:
            posts = list(self._posts.values())
            if filters.status:
                posts = [p for p in posts if p.status == filters.status]
            if filters.category:
                posts = [
                    p for p in posts
                    if (c := self._categories.get(p.category_id)) and c.slug == filters.category
                ]
            if filters.tag:
                posts = [p for p in posts if self._matches_tag(p, filters.tag)]
            if filters.search:
                term = filters.search.lower()
                posts = [
                    p for p in posts
                    if term in p.title.lower() or term in p.excerpt.lower() or term in p.content.lower()
                ]
            posts.sort(key=lambda p: p.published_at or p.created_at, reverse=True)
            return [d for d in (self._details(p) for p in posts) if d is not None]

    def get_post(self, post_id: str) -> PostWithDetails | None:
        with self._lock:
            post = self._posts.get(post_id)
            return self._details(post) if post else None

    def get_post_by_slug(self, slug: str) -> PostWithDetails | None:
        with self._lock:
            for post in self._posts.values():
                if post.slug == slug:
                    return self._details(post)
        return None

    def create_post(self, post: PostCreate) -> Post:
        now = datetime.utcnow()
        data = post.model_dump()
        if data["status"] == "published" and data["published_at"] is None:
            data["published_at"] = now
        created = Post(id=_new_id(), created_at=now, updated_at=now, **data)
        with self._lock:
            self._posts[created.id] = created
        return created.model_copy(deep=True)

    def update_post(self, post_id: str, update: PostUpdate) -> Post | None:
        changes = update.model_dump(exclude_unset=True, exclude_none=True)
        with self._lock:
            post = self._posts.get(post_id)
            if post is None:
                return None
            if changes.get("status") == "published" and post.published_at is None:
                changes.setdefault("published_at", datetime.utcnow())
            changes["updated_at"] = datetime.utcnow()
            updated = post.model_copy(update=changes)
            self._posts[post_id] = updated
            return updated.model_copy(deep=True)

    def delete_post(self, post_id: str) -> bool:
        with self._lock:
            return self._posts.pop(post_id, None) is not None

    def increment_post_views(self, post_id: str) -> None:
        with self._lock:
            post = self._posts.get(post_id)
            if post:
                self._posts[post_id] = post.model_copy(update={"views": post.views + 1})

    def increment_post_likes(self, post_id: str) -> None:
        with self._lock:
            post = self._posts.get(post_id)
            if post:
                self._posts[post_id] = post.model_copy(update={"likes": post.likes + 1})

    # -- comments --------------------------------------------------------------

    def get_comments_by_post(self, post_id: str) -> list[CommentWithReplies]:
        with self._lock:
            comments = [c for c in self._comments.values() if c.post_id == post_id]
        return build_comment_tree(comments)

    def get_comment(self, comment_id: str) -> Comment | None:
        with self._lock:
            comment = self._comments.get(comment_id)
            return comment.model_copy() if comment else None

    def create_comment(self, comment: CommentCreate) -> Comment:
        # Comments are auto-approved; there is no moderation queue
        created = Comment(id=_new_id(), is_approved=True, **comment.model_dump())
        with self._lock:
            self._comments[created.id] = created
        return created.model_copy()

    def increment_comment_likes(self, comment_id: str) -> None:
        with self._lock:
            comment = self._comments.get(comment_id)
            if comment:
                self._comments[comment_id] = comment.model_copy(update={"likes": comment.likes + 1})

    def approve_comment(self, comment_id: str) -> None:
        with self._lock:
            comment = self._comments.get(comment_id)
            if comment:
                self._comments[comment_id] = comment.model_copy(update={"is_approved": True})
