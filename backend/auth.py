"""Authentication layer for the blog backend.

Single admin account taken from settings (ADMIN_USERNAME / ADMIN_PASSWORD).
Tokens are stored in-memory and expire after TOKEN_TTL_SECONDS.
Blog reads and reader interactions (comments, likes) are public; generation
and post management require a bearer token.
"""

import logging
import re
import secrets
import time
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from techblog.config import get_settings

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Token store  (token -> {username, display_name, created_at})
# ---------------------------------------------------------------------------
TOKEN_TTL_SECONDS = 24 * 60 * 60  # 24 hours
_tokens: dict[str, dict] = {}

_bearer_scheme = HTTPBearer(auto_error=False)


def authenticate(username: str, password: str) -> Optional[dict]:
    """Verify credentials and return a session dict, or None on failure."""
    settings = get_settings()
    if not settings.admin_password:
        logger.warning("Login attempted but ADMIN_PASSWORD is not set")
        return None
    if not secrets.compare_digest(username.lower(), settings.admin_username.lower()):
        return None
    if not secrets.compare_digest(password, settings.admin_password):
        return None

    token = secrets.token_hex(32)
    session = {
        "token": token,
        "username": settings.admin_username.lower(),
        "display_name": "Admin",
        "created_at": time.time(),
    }
    _tokens[token] = session
    logger.info("User '%s' authenticated", username)
    return session


def _prune_expired():
    now = time.time()
    expired = [t for t, s in _tokens.items() if now - s["created_at"] > TOKEN_TTL_SECONDS]
    for t in expired:
        del _tokens[t]


def validate_token(token: str) -> Optional[dict]:
    """Return session dict if valid, else None."""
    _prune_expired()
    return _tokens.get(token)


def revoke_token(token: str) -> bool:
    """Revoke (logout) a token. Returns True if it existed."""
    return _tokens.pop(token, None) is not None


# ---------------------------------------------------------------------------
# Public routes
# ---------------------------------------------------------------------------
PUBLIC_PATHS = {
    "/health",
    "/api/health",
    "/api/",
    "/api/docs",
    "/api/redoc",
    "/api/openapi.json",
    "/api/auth/login",
}

# Read-only blog routes anyone may GET; the post handlers hide drafts from
# anonymous readers
_PUBLIC_GET_PREFIXES = ("/api/posts", "/api/categories", "/api/tags", "/api/search")
_PRIVATE_GET_PATHS = {"/api/posts/drafts"}

# Reader interactions that do not need an account
_PUBLIC_POST_PATTERNS = [
    re.compile(r"^/api/posts/[^/]+/like$"),
    re.compile(r"^/api/posts/[^/]+/comments$"),
    re.compile(r"^/api/comments/[^/]+/like$"),
]


def is_public(method: str, path: str) -> bool:
    path = path.rstrip("/") or "/"
    if path in PUBLIC_PATHS or f"{path}/" in PUBLIC_PATHS:
        return True
    if method in ("GET", "HEAD"):
        return path not in _PRIVATE_GET_PATHS and path.startswith(_PUBLIC_GET_PREFIXES)
    if method == "POST":
        return any(p.match(path) for p in _PUBLIC_POST_PATTERNS)
    return False


# ---------------------------------------------------------------------------
# FastAPI dependency: require auth on protected routes
# ---------------------------------------------------------------------------

async def require_auth(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> dict:
    """FastAPI dependency: extract and validate bearer token.

    Returns the session dict on success, raises 401 otherwise.
    """
    if not credentials or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    session = validate_token(credentials.credentials)
    if not session:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return session


async def optional_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> Optional[dict]:
    """Like require_auth, but anonymous or invalid credentials yield None."""
    if not credentials or not credentials.credentials:
        return None
    return validate_token(credentials.credentials)
