"""AI generation API routes: job launch and dashboard polling.

POST /api/ai/generate
  → Starts a news-driven generation job, returns { job_id, status } immediately.
POST /api/ai/generate-custom
  → Starts a single-topic job.
GET /api/ai/jobs, GET /api/ai/jobs/{job_id}, DELETE /api/ai/jobs/{job_id}
  → Poll / cancel jobs.
GET /api/ai/stats, GET /api/ai/news
"""

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from pydantic import BaseModel, ValidationError

from techblog.agents import NewsFetchError
from techblog.jobs.models import (
    CustomGenerationConfig,
    GenerationJob,
    GenerationStats,
    ScheduledGenerationConfig,
)
from techblog.orchestrator import BlogOrchestrator, get_orchestrator
from techblog.schemas.content import NewsArticle

logger = logging.getLogger(__name__)
router = APIRouter()


def orchestrator_dependency() -> BlogOrchestrator:
    try:
        return get_orchestrator()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


class GenerateResponse(BaseModel):
    job_id: str
    status: str = "started"
    topic: Optional[str] = None


class CancelResponse(BaseModel):
    status: str = "cancelled"


def _validation_detail(error: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in error.errors()
    )


@router.post("/ai/generate", response_model=GenerateResponse)
async def start_generation(
    body: Optional[dict] = Body(default=None),
    orchestrator: BlogOrchestrator = Depends(orchestrator_dependency),
):
    """Start a news-driven generation job (defaults: 24 h, relevance 0.7, 5 articles)."""
    try:
        config = ScheduledGenerationConfig.model_validate(body or {})
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=_validation_detail(e))
    job_id = orchestrator.start_scheduled(config)
    return GenerateResponse(job_id=job_id)


@router.post("/ai/generate-custom", response_model=GenerateResponse)
async def start_custom_generation(
    body: Optional[dict] = Body(default=None),
    orchestrator: BlogOrchestrator = Depends(orchestrator_dependency),
):
    """Start a single-topic generation job ({ topic, user_prompt? })."""
    try:
        config = CustomGenerationConfig.model_validate({**(body or {}), "type": "custom"})
    except ValidationError as e:
        if any(err["loc"][:1] == ("topic",) for err in e.errors()):
            raise HTTPException(status_code=400, detail="Topic is required")
        raise HTTPException(status_code=400, detail=_validation_detail(e))
    job_id = orchestrator.start_custom(config)
    return GenerateResponse(job_id=job_id, topic=config.topic)


@router.get("/ai/jobs", response_model=list[GenerationJob])
async def list_jobs(orchestrator: BlogOrchestrator = Depends(orchestrator_dependency)):
    return orchestrator.list_jobs()


@router.get("/ai/jobs/{job_id}", response_model=GenerationJob)
async def get_job(job_id: str, orchestrator: BlogOrchestrator = Depends(orchestrator_dependency)):
    job = orchestrator.get_job(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return job


@router.delete("/ai/jobs/{job_id}", response_model=CancelResponse)
async def cancel_job(job_id: str, orchestrator: BlogOrchestrator = Depends(orchestrator_dependency)):
    if not orchestrator.cancel_job(job_id):
        raise HTTPException(status_code=404, detail="Job not found or cannot be cancelled")
    return CancelResponse()


@router.get("/ai/stats", response_model=GenerationStats)
async def get_stats(orchestrator: BlogOrchestrator = Depends(orchestrator_dependency)):
    return orchestrator.get_stats()


@router.get("/ai/news", response_model=list[NewsArticle])
async def preview_news(
    hours: int = Query(default=24, ge=1, le=24 * 30),
    orchestrator: BlogOrchestrator = Depends(orchestrator_dependency),
):
    """Articles a scheduled run would start from, before relevance filtering."""
    try:
        return await orchestrator.fetch_news(hours)
    except NewsFetchError as e:
        logger.error("News preview failed: %s", e)
        raise HTTPException(status_code=502, detail=str(e))
