"""CLI entry-point: run generation jobs, preview news, serve the API."""

import asyncio
import logging

import typer
from rich.console import Console
from rich.table import Table

from techblog.agents import NewsAgent, NewsFetchError, load_sources
from techblog.config import get_settings
from techblog.jobs.models import (
    CustomGenerationConfig,
    GenerationJob,
    JobStatus,
    ScheduledGenerationConfig,
)
from techblog.orchestrator import BlogOrchestrator, build_orchestrator

app = typer.Typer(help="AI-assisted technical blog: generation jobs and API server")

_STATUS_STYLE = {
    JobStatus.COMPLETED: "green",
    JobStatus.FAILED: "red",
    JobStatus.CANCELLED: "yellow",
}


def _build(console: Console) -> BlogOrchestrator:
    try:
        return build_orchestrator()
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


async def _wait_for(orchestrator: BlogOrchestrator, job_id: str, console: Console) -> GenerationJob:
    """Poll the job until it is terminal, echoing progress changes."""
    last_progress = -1
    try:
        while True:
            job = orchestrator.get_job(job_id)
            if job is None:
                raise RuntimeError(f"Job {job_id} disappeared")
            if job.progress != last_progress:
                console.print(f"  {job.status.value} {job.progress}%")
                last_progress = job.progress
            if job.status.is_terminal:
                return job
            await asyncio.sleep(1)
    finally:
        await orchestrator.shutdown()


def _print_result(job: GenerationJob, console: Console) -> None:
    style = _STATUS_STYLE.get(job.status, "white")
    console.print(f"Job {job.id}: [{style}]{job.status.value}[/{style}]")
    if job.error:
        console.print(f"[red]{job.error}[/red]")
    if not job.results:
        return
    console.print(
        f"Articles found: {job.results.articles_found}, analyzed: {job.results.articles_analyzed}"
    )
    table = Table(title="Saved posts")
    table.add_column("Post ID")
    table.add_column("Status")
    table.add_column("Quality", justify="right")
    for outcome in job.results.review_results:
        table.add_row(
            outcome.post_id,
            "published" if outcome.approved else "draft",
            str(outcome.quality_score),
        )
    console.print(table)


@app.command()
def generate(
    hours_back: int = typer.Option(24, "--hours", help="Look back this many hours for news"),
    min_relevance: float = typer.Option(0.7, "--min-relevance", help="Minimum relevance score (0-1)"),
    max_articles: int = typer.Option(5, "--max-articles", help="Maximum posts to generate"),
    focus_topic: str = typer.Option(None, "--focus", help="Optional focus topic keywords"),
):
    """Generate posts from recent AI news and wait for the job to finish."""
    console = Console()
    logging.basicConfig(level=logging.INFO)
    orchestrator = _build(console)
    config = ScheduledGenerationConfig(
        hours_back=hours_back,
        min_relevance_score=min_relevance,
        max_articles=max_articles,
        focus_topic=focus_topic,
    )

    async def run() -> GenerationJob:
        job_id = orchestrator.start_scheduled(config)
        console.print(f"Started job {job_id}")
        return await _wait_for(orchestrator, job_id, console)

    job = asyncio.run(run())
    _print_result(job, console)
    if job.status != JobStatus.COMPLETED:
        raise typer.Exit(1)


@app.command()
def custom(
    topic: str = typer.Argument(..., help="Topic of the post"),
    prompt: str = typer.Option(None, "--prompt", help="Extra instructions for the writer"),
):
    """Generate a single post on TOPIC and wait for the job to finish."""
    console = Console()
    logging.basicConfig(level=logging.INFO)
    try:
        config = CustomGenerationConfig(topic=topic, user_prompt=prompt)
    except ValueError:
        console.print("[red]Error: topic is required[/red]")
        raise typer.Exit(1)
    orchestrator = _build(console)

    async def run() -> GenerationJob:
        job_id = orchestrator.start_custom(config)
        console.print(f"Started job {job_id}")
        return await _wait_for(orchestrator, job_id, console)

    job = asyncio.run(run())
    _print_result(job, console)
    if job.status != JobStatus.COMPLETED:
        raise typer.Exit(1)


@app.command()
def news(
    hours_back: int = typer.Option(24, "--hours", help="Look back this many hours"),
    limit: int = typer.Option(20, "--limit", help="Rows to show"),
):
    """Preview recent articles with their base relevance score."""
    console = Console()
    settings = get_settings()
    if settings.blog_news_sources_file:
        sources, keywords = load_sources(settings.blog_news_sources_file)
        agent = NewsAgent(sources=sources, keywords=keywords, timeout=settings.blog_http_timeout)
    else:
        agent = NewsAgent(timeout=settings.blog_http_timeout)
    try:
        articles = agent.fetch_latest_news(hours_back)
    except NewsFetchError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    table = Table(title=f"AI news, last {hours_back}h ({len(articles)} articles)")
    table.add_column("Published")
    table.add_column("Source")
    table.add_column("Score", justify="right")
    table.add_column("Title")
    for article in articles[:limit]:
        table.add_row(
            article.published_at.strftime("%Y-%m-%d %H:%M"),
            article.source,
            f"{article.relevance_score:.2f}",
            article.title,
        )
    console.print(table)


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Bind address"),
    port: int = typer.Option(None, help="Port (default from PORT)"),
    reload: bool = typer.Option(False, "--reload", help="Auto-reload on code changes"),
):
    """Run the FastAPI backend."""
    import uvicorn

    uvicorn.run("backend.main:app", host=host, port=port or get_settings().port, reload=reload)


if __name__ == "__main__":
    app()
