"""FastAPI backend for the techblog service: blog API plus AI generation jobs."""

import logging
import time
from collections import defaultdict
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from techblog.config import get_settings
from techblog.orchestrator import shutdown_orchestrator
from backend.auth import is_public, validate_token

logger = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await shutdown_orchestrator()


app = FastAPI(
    title="techblog API",
    description="Technical blog with AI-assisted post generation.",
    version="0.1.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    lifespan=lifespan,
)


# ---------------------------------------------------------------------------
# Authentication middleware: reject unauthenticated requests to protected paths
# ---------------------------------------------------------------------------
@app.middleware("http")
async def auth_middleware(request: Request, call_next):
    """Enforce bearer-token auth on all non-public API routes."""
    path = request.url.path

    if (
        request.method == "OPTIONS"
        or is_public(request.method, path)
        or path.startswith("/api/docs")
        or path.startswith("/api/redoc")
        or path.startswith("/api/openapi")
    ):
        return await call_next(request)

    if path.startswith("/api/"):
        auth_header = request.headers.get("authorization", "")
        if not auth_header.lower().startswith("bearer "):
            return Response(
                content='{"detail":"Authentication required"}',
                status_code=401,
                media_type="application/json",
                headers={"WWW-Authenticate": "Bearer"},
            )
        token = auth_header.split(" ", 1)[1]
        if not validate_token(token):
            return Response(
                content='{"detail":"Invalid or expired token"}',
                status_code=401,
                media_type="application/json",
                headers={"WWW-Authenticate": "Bearer"},
            )

    return await call_next(request)


# ---------------------------------------------------------------------------
# Basic in-memory rate limiter (per IP, 30 requests / 60 s for mutating routes)
# ---------------------------------------------------------------------------
RATE_LIMIT_WINDOW = 60  # seconds
RATE_LIMIT_MAX = 30  # max requests per window
_rate_store: dict[str, list[float]] = defaultdict(list)


@app.middleware("http")
async def rate_limit_middleware(request: Request, call_next):
    """Sliding-window rate limiter for non-GET routes."""
    if request.method in ("GET", "HEAD", "OPTIONS"):
        return await call_next(request)

    client_ip = request.client.host if request.client else "unknown"
    now = time.time()
    _rate_store[client_ip] = [t for t in _rate_store[client_ip] if now - t < RATE_LIMIT_WINDOW]
    if len(_rate_store[client_ip]) >= RATE_LIMIT_MAX:
        return Response(
            content='{"detail":"Rate limit exceeded. Try again later."}',
            status_code=429,
            media_type="application/json",
        )
    _rate_store[client_ip].append(now)
    return await call_next(request)


# ---------------------------------------------------------------------------
# CORS is added LAST so it is the OUTERMOST middleware and 401/429 responses
# carry CORS headers too (Starlette add_middleware is LIFO).
# ---------------------------------------------------------------------------
cors_origins = settings.cors_origin_list
cors_origin_regex = settings.cors_origin_regex
logger.info("CORS configured for origins: %s", cors_origins)
if cors_origin_regex:
    logger.info("CORS origin regex: %s", cors_origin_regex)
logger.info(
    "Blog storage: %s",
    "Postgres" if settings.blog_database_url else "in-memory (posts are lost on restart)",
)
cors_kw: dict = {
    "allow_origins": cors_origins,
    "allow_credentials": True,
    "allow_methods": ["*"],
    "allow_headers": ["*"],
    "expose_headers": ["*"],
}
if cors_origin_regex:
    cors_kw["allow_origin_regex"] = cors_origin_regex
app.add_middleware(CORSMiddleware, **cors_kw)


# ---------------------------------------------------------------------------
# Health & root
# ---------------------------------------------------------------------------
class HealthResponse(BaseModel):
    status: str
    llm_provider: str


@app.get("/health", response_model=HealthResponse)
@app.get("/api/health", response_model=HealthResponse)
async def health():
    return HealthResponse(status="ok", llm_provider=settings.blog_llm_provider)


@app.get("/api/")
async def root():
    return {"message": "techblog API", "version": "0.1.0"}


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------
from backend.routes import ai, auth, posts  # noqa: E402

app.include_router(auth.router, prefix="/api", tags=["auth"])
app.include_router(posts.router, prefix="/api", tags=["blog"])
app.include_router(ai.router, prefix="/api", tags=["ai"])
