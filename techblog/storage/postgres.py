"""Postgres blog store (psycopg). Tables are created, and seed rows inserted, on connect."""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime
from typing import Any

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
from techblog.storage.memory import SEED_CATEGORIES, SEED_TAGS, SEED_USERS

logger = logging.getLogger(__name__)

_SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS blog_users (
        id TEXT PRIMARY KEY,
        username TEXT NOT NULL UNIQUE,
        email TEXT NOT NULL UNIQUE,
        name TEXT NOT NULL,
        avatar TEXT,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS blog_categories (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        slug TEXT NOT NULL UNIQUE,
        description TEXT,
        color TEXT NOT NULL DEFAULT '#6B7280',
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS blog_tags (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        slug TEXT NOT NULL UNIQUE,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS blog_posts (
        id TEXT PRIMARY KEY,
        title TEXT NOT NULL,
        slug TEXT NOT NULL UNIQUE,
        excerpt TEXT NOT NULL,
        content TEXT NOT NULL,
        author_id TEXT NOT NULL REFERENCES blog_users(id),
        category_id TEXT NOT NULL REFERENCES blog_categories(id),
        read_time INT NOT NULL,
        status TEXT NOT NULL DEFAULT 'draft',
        tags JSONB NOT NULL DEFAULT '[]',
        featured_image TEXT,
        meta_title TEXT,
        meta_description TEXT,
        published_at TIMESTAMPTZ,
        metadata JSONB NOT NULL DEFAULT '{}',
        views INT NOT NULL DEFAULT 0,
        likes INT NOT NULL DEFAULT 0,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS blog_comments (
        id TEXT PRIMARY KEY,
        post_id TEXT NOT NULL REFERENCES blog_posts(id) ON DELETE CASCADE,
        parent_id TEXT,
        content TEXT NOT NULL,
        author_name TEXT NOT NULL,
        author_email TEXT NOT NULL,
        author_avatar TEXT,
        likes INT NOT NULL DEFAULT 0,
        is_approved BOOLEAN NOT NULL DEFAULT TRUE,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
]

_POST_COLUMNS = (
    "id, title, slug, excerpt, content, author_id, category_id, read_time, status, tags, "
    "featured_image, meta_title, meta_description, published_at, metadata, views, likes, "
    "created_at, updated_at"
)


def _new_id() -> str:
    return str(uuid.uuid4())


def _posts_query(filters: PostFilters) -> tuple[str, tuple[Any, ...]]:
    """SELECT for get_posts: status, category slug, tag and search filters, newest first."""
    clauses: list[str] = []
    params: list[Any] = []
    if filters.status:
        clauses.append("p.status = %s")
        params.append(filters.status)
    if filters.category:
        clauses.append("c.slug = %s")
        params.append(filters.category)
    if filters.tag:
        clauses.append(
            "EXISTS (SELECT 1 FROM jsonb_array_elements_text(p.tags) t "
            "WHERE lower(t) = lower(%s) "
            "OR lower(t) IN (SELECT lower(name) FROM blog_tags WHERE slug = %s))"
        )
        params.extend([filters.tag, filters.tag])
    if filters.search:
        clauses.append("(p.title ILIKE %s OR p.excerpt ILIKE %s OR p.content ILIKE %s)")
        term = f"%{filters.search}%"
        params.extend([term, term, term])
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    cols = ", ".join(f"p.{c.strip()}" for c in _POST_COLUMNS.split(","))
    sql = (
        f"SELECT {cols} FROM blog_posts p JOIN blog_categories c ON c.id = p.category_id "
        f"{where} ORDER BY COALESCE(p.published_at, p.created_at) DESC"
    )
    return sql, tuple(params)


class PostgresStorage:
    """Persist the blog in Postgres. Survives restarts."""

    def __init__(self, database_url: str):
        self._url = database_url
        self._conn = self._connect()
        self._seed()

    def _connect(self):
        try:
            import psycopg
            from psycopg.rows import dict_row
        except ImportError:
            raise ImportError(
                "psycopg required for Postgres blog storage. pip install 'psycopg[binary]'"
            )
        conn = psycopg.connect(self._url, autocommit=True, row_factory=dict_row)
        for ddl in _SCHEMA:
            conn.execute(ddl)
        return conn

    def _seed(self) -> None:
        for u in SEED_USERS:
            self._conn.execute(
                "INSERT INTO blog_users (id, username, email, name, avatar) "
                "VALUES (%s, %s, %s, %s, %s) ON CONFLICT DO NOTHING",
                (u.id, u.username, u.email, u.name, u.avatar),
            )
        for c in SEED_CATEGORIES:
            self._conn.execute(
                "INSERT INTO blog_categories (id, name, slug, description, color) "
                "VALUES (%s, %s, %s, %s, %s) ON CONFLICT DO NOTHING",
                (c.id, c.name, c.slug, c.description, c.color),
            )
        for t in SEED_TAGS:
            self._conn.execute(
                "INSERT INTO blog_tags (id, name, slug) VALUES (%s, %s, %s) ON CONFLICT DO NOTHING",
                (t.id, t.name, t.slug),
            )

    def _one(self, sql: str, params: tuple[Any, ...] = ()) -> dict[str, Any] | None:
        return self._conn.execute(sql, params).fetchone()

    def _all(self, sql: str, params: tuple[Any, ...] = ()) -> list[dict[str, Any]]:
        return self._conn.execute(sql, params).fetchall()

    # -- users -----------------------------------------------------------

    def get_user(self, user_id: str) -> User | None:
        row = self._one("SELECT * FROM blog_users WHERE id = %s", (user_id,))
        return User.model_validate(row) if row else None

    def get_user_by_email(self, email: str) -> User | None:
        row = self._one("SELECT * FROM blog_users WHERE email = %s", (email,))
        return User.model_validate(row) if row else None

    def create_user(self, user: UserCreate) -> User:
        row = self._one(
            "INSERT INTO blog_users (id, username, email, name, avatar) "
            "VALUES (%s, %s, %s, %s, %s) RETURNING *",
            (_new_id(), user.username, user.email, user.name, user.avatar),
        )
        return User.model_validate(row)

    # -- categories --------------------------------------------------------

    def get_categories(self) -> list[Category]:
        return [Category.model_validate(r) for r in self._all("SELECT * FROM blog_categories ORDER BY id")]

    def get_category(self, category_id: str) -> Category | None:
        row = self._one("SELECT * FROM blog_categories WHERE id = %s", (category_id,))
        return Category.model_validate(row) if row else None

    def get_category_by_slug(self, slug: str) -> Category | None:
        row = self._one("SELECT * FROM blog_categories WHERE slug = %s", (slug,))
        return Category.model_validate(row) if row else None

    def create_category(self, category: CategoryCreate) -> Category:
        row = self._one(
            "INSERT INTO blog_categories (id, name, slug, description, color) "
            "VALUES (%s, %s, %s, %s, %s) RETURNING *",
            (_new_id(), category.name, category.slug, category.description, category.color),
        )
        return Category.model_validate(row)

    # -- tags ----------------------------------------------------------------

    def get_tags(self) -> list[Tag]:
        return [Tag.model_validate(r) for r in self._all("SELECT * FROM blog_tags ORDER BY created_at")]

    def get_tag(self, tag_id: str) -> Tag | None:
        row = self._one("SELECT * FROM blog_tags WHERE id = %s", (tag_id,))
        return Tag.model_validate(row) if row else None

    def get_tag_by_slug(self, slug: str) -> Tag | None:
        row = self._one("SELECT * FROM blog_tags WHERE slug = %s", (slug,))
        return Tag.model_validate(row) if row else None

    def create_tag(self, tag: TagCreate) -> Tag:
        row = self._one(
            "INSERT INTO blog_tags (id, name, slug) VALUES (%s, %s, %s) RETURNING *",
            (_new_id(), tag.name, tag.slug),
        )
        return Tag.model_validate(row)

    # -- posts ---------------------------------------------------------------

    def _details(self, row: dict[str, Any]) -> PostWithDetails | None:
        author = self.get_user(row["author_id"])
        category = self.get_category(row["category_id"])
        if author is None or category is None:
            logger.warning("Post %s references a missing author or category", row["id"])
            return None
        count = self._one(
            "SELECT COUNT(*) AS n FROM blog_comments WHERE post_id = %s AND is_approved",
            (row["id"],),
        )
        return PostWithDetails(
            **row, author=author, category=category, comments_count=count["n"] if count else 0
        )

    def get_posts(self, filters: PostFilters | None = None) -> list[PostWithDetails]:
        rows = self._all(*_posts_query(filters or PostFilters()))
        return [d for d in (self._details(r) for r in rows) if d is not None]

    def get_post(self, post_id: str) -> PostWithDetails | None:
        row = self._one(f"SELECT {_POST_COLUMNS} FROM blog_posts WHERE id = %s", (post_id,))
        return self._details(row) if row else None

    def get_post_by_slug(self, slug: str) -> PostWithDetails | None:
        row = self._one(f"SELECT {_POST_COLUMNS} FROM blog_posts WHERE slug = %s", (slug,))
        return self._details(row) if row else None

    def create_post(self, post: PostCreate) -> Post:
        published_at = post.published_at
        if post.status == "published" and published_at is None:
            published_at = datetime.utcnow()
        row = self._one(
            f"""
            INSERT INTO blog_posts
            (id, title, slug, excerpt, content, author_id, category_id, read_time, status, tags,
             featured_image, meta_title, meta_description, published_at, metadata)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s::jsonb, %s, %s, %s, %s, %s::jsonb)
            RETURNING {_POST_COLUMNS}
            """,
            (
                _new_id(),
                post.title,
                post.slug,
                post.excerpt,
                post.content,
                post.author_id,
                post.category_id,
                post.read_time,
                post.status,
                json.dumps(post.tags),
                post.featured_image,
                post.meta_title,
                post.meta_description,
                published_at,
                json.dumps(post.metadata, default=str),
            ),
        )
        return Post.model_validate(row)

    def update_post(self, post_id: str, update: PostUpdate) -> Post | None:
        changes = update.model_dump(exclude_unset=True, exclude_none=True)
        if changes.get("status") == "published":
            current = self._one("SELECT published_at FROM blog_posts WHERE id = %s", (post_id,))
            if current and current["published_at"] is None:
                changes.setdefault("published_at", datetime.utcnow())
        assignments = ["updated_at = NOW()"]
        params: list[Any] = []
        for column, value in changes.items():
            if column in ("tags", "metadata"):
                assignments.append(f"{column} = %s::jsonb")
                params.append(json.dumps(value, default=str))
            else:
                assignments.append(f"{column} = %s")
                params.append(value)
        params.append(post_id)
        row = self._one(
            f"UPDATE blog_posts SET {', '.join(assignments)} WHERE id = %s RETURNING {_POST_COLUMNS}",
            tuple(params),
        )
        return Post.model_validate(row) if row else None

    def delete_post(self, post_id: str) -> bool:
        cur = self._conn.execute("DELETE FROM blog_posts WHERE id = %s", (post_id,))
        return cur.rowcount > 0

    def increment_post_views(self, post_id: str) -> None:
        self._conn.execute("UPDATE blog_posts SET views = views + 1 WHERE id = %s", (post_id,))

    def increment_post_likes(self, post_id: str) -> None:
        self._conn.execute("UPDATE blog_posts SET likes = likes + 1 WHERE id = %s", (post_id,))

    # -- comments --------------------------------------------------------------

    def get_comments_by_post(self, post_id: str) -> list[CommentWithReplies]:
        rows = self._all("SELECT * FROM blog_comments WHERE post_id = %s", (post_id,))
        return build_comment_tree([Comment.model_validate(r) for r in rows])

    def get_comment(self, comment_id: str) -> Comment | None:
        row = self._one("SELECT * FROM blog_comments WHERE id = %s", (comment_id,))
        return Comment.model_validate(row) if row else None

    def create_comment(self, comment: CommentCreate) -> Comment:
        row = self._one(
            """
            INSERT INTO blog_comments
            (id, post_id, parent_id, content, author_name, author_email, author_avatar, is_approved)
            VALUES (%s, %s, %s, %s, %s, %s, %s, TRUE)
            RETURNING *
            """,
            (
                _new_id(),
                comment.post_id,
                comment.parent_id,
                comment.content,
                comment.author_name,
                comment.author_email,
                comment.author_avatar,
            ),
        )
        return Comment.model_validate(row)

    def increment_comment_likes(self, comment_id: str) -> None:
        self._conn.execute("UPDATE blog_comments SET likes = likes + 1 WHERE id = %s", (comment_id,))

    def approve_comment(self, comment_id: str) -> None:
        self._conn.execute("UPDATE blog_comments SET is_approved = TRUE WHERE id = %s", (comment_id,))
