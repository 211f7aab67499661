"""News research agent: poll RSS/Atom feeds and score articles for AI relevance."""

from __future__ import annotations

import hashlib
import html
import logging
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from email.utils import parsedate_to_datetime
from pathlib import Path

import httpx
import yaml

from techblog.agents.scraper import scrape_url
from techblog.schemas.content import NewsArticle

logger = logging.getLogger(__name__)

DEFAULT_SOURCES_FILE = Path(__file__).resolve().parent.parent / "data" / "news_sources.yaml"

BASE_RELEVANCE = 0.5
KEYWORD_BOOST = 0.1
MAX_ARTICLE_CHARS = 8_000

_ATOM = "{http://www.w3.org/2005/Atom}"
_TAG_RE = re.compile(r"<[^>]+>")
_WS_RE = re.compile(r"\s+")


class NewsFetchError(RuntimeError):
    """Raised when no configured news source could be read."""


@dataclass
class NewsSource:
    name: str
    url: str
    format: str = "rss"  # rss | atom


def load_sources(path: str | Path | None = None) -> tuple[list[NewsSource], list[str]]:
    """Read feed definitions and relevance keywords from YAML."""
    path = Path(path) if path else DEFAULT_SOURCES_FILE
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    sources = [NewsSource(**s) for s in data.get("sources", [])]
    keywords = [str(k).lower() for k in data.get("relevance_keywords", [])]
    return sources, keywords


# ---------------------------------------------------------------------------
# Feed parsing
# ---------------------------------------------------------------------------

def _clean_text(raw: str | None) -> str:
    if not raw:
        return ""
    text = html.unescape(_TAG_RE.sub(" ", raw))
    return _WS_RE.sub(" ", text).strip()


def _article_id(url: str, title: str) -> str:
    return "news-" + hashlib.sha256((url or title).encode()).hexdigest()[:12]


def _parse_rss_date(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        dt = parsedate_to_datetime(value.strip())
    except (TypeError, ValueError):
        return None
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def _parse_iso_date(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def parse_feed(xml_text: str, source: NewsSource) -> list[NewsArticle]:
    """Parse an RSS 2.0 or Atom document into articles (relevance not yet scored)."""
    root = ET.fromstring(xml_text)
    articles: list[NewsArticle] = []

    if root.tag == f"{_ATOM}feed":
        for entry in root.iter(f"{_ATOM}entry"):
            title = _clean_text(entry.findtext(f"{_ATOM}title"))
            link = ""
            for link_el in entry.findall(f"{_ATOM}link"):
                if link_el.get("rel", "alternate") == "alternate":
                    link = link_el.get("href", "")
                    break
            published = _parse_iso_date(
                entry.findtext(f"{_ATOM}published") or entry.findtext(f"{_ATOM}updated")
            )
            if not title or published is None:
                continue
            body = entry.findtext(f"{_ATOM}summary") or entry.findtext(f"{_ATOM}content")
            tags = [c.get("term", "") for c in entry.findall(f"{_ATOM}category") if c.get("term")]
            articles.append(
                NewsArticle(
                    id=_article_id(link, title),
                    title=title,
                    source=source.name,
                    published_at=published,
                    url=link,
                    content=_clean_text(body),
                    tags=tags[:5],
                )
            )
        return articles

    for item in root.iter("item"):
        title = _clean_text(item.findtext("title"))
        published = _parse_rss_date(item.findtext("pubDate"))
        if not title or published is None:
            continue
        link = (item.findtext("link") or "").strip()
        tags = [_clean_text(c.text) for c in item.findall("category") if c.text]
        articles.append(
            NewsArticle(
                id=_article_id(link, title),
                title=title,
                source=source.name,
                published_at=published,
                url=link,
                content=_clean_text(item.findtext("description")),
                tags=tags[:5],
            )
        )
    return articles


def score_relevance(text: str, keywords: list[str]) -> tuple[float, list[str]]:
    """Base AI relevance from keyword hits. Returns (score, matched keywords)."""
    lowered = text.lower()
    matched = [k for k in keywords if re.search(rf"\b{re.escape(k)}\b", lowered)]
    score = min(1.0, BASE_RELEVANCE + KEYWORD_BOOST * len(matched)) if matched else 0.0
    return round(score, 2), matched


# ---------------------------------------------------------------------------
# Agent
# ---------------------------------------------------------------------------

class NewsAgent:
    """Fetches recent AI news and ranks it for blog generation."""

    def __init__(
        self,
        sources: list[NewsSource] | None = None,
        keywords: list[str] | None = None,
        timeout: float = 15.0,
        fetch_full_text: bool = True,
        transport: httpx.BaseTransport | None = None,
    ):
        if sources is None or keywords is None:
            default_sources, default_keywords = load_sources()
            sources = default_sources if sources is None else sources
            keywords = default_keywords if keywords is None else keywords
        self._sources = sources
        self._keywords = keywords
        self._timeout = timeout
        self._fetch_full_text = fetch_full_text
        self._transport = transport

    @property
    def fetches_full_text(self) -> bool:
        return self._fetch_full_text

    def fetch_latest_news(self, hours_back: int = 24) -> list[NewsArticle]:
        """Articles from all sources published within the last ``hours_back`` hours, newest first."""
        logger.info("Fetching AI news from the last %d hours...", hours_back)
        cutoff = datetime.now(timezone.utc) - timedelta(hours=hours_back)
        articles: list[NewsArticle] = []
        failures = 0

        with httpx.Client(
            follow_redirects=True, timeout=self._timeout, transport=self._transport
        ) as client:
            for source in self._sources:
                try:
                    response = client.get(source.url)
                    response.raise_for_status()
                    entries = parse_feed(response.text, source)
                except (httpx.HTTPError, ET.ParseError) as e:
                    failures += 1
                    logger.warning("Skipping news source %s: %s", source.name, e)
                    continue
                for article in entries:
                    if article.published_at <= cutoff:
                        continue
                    score, matched = score_relevance(
                        f"{article.title} {article.content} {' '.join(article.tags)}",
                        self._keywords,
                    )
                    tags = article.tags or [k.title() for k in matched[:5]]
                    articles.append(article.model_copy(update={"relevance_score": score, "tags": tags}))

        if self._sources and failures == len(self._sources):
            raise NewsFetchError(f"Failed to fetch news: all {failures} sources failed")

        articles.sort(key=lambda a: a.published_at, reverse=True)
        logger.info("Found %d AI news articles", len(articles))
        return articles

    def analyze_relevance(
        self, articles: list[NewsArticle], focus_topic: str | None = None
    ) -> list[NewsArticle]:
        """Boost relevance by 0.1 per focus-topic keyword present in the article (capped at 1.0)."""
        if not focus_topic:
            return list(articles)
        logger.info("Analyzing relevance for topic: %s", focus_topic)
        focus_keywords = [k for k in re.split(r"[\s,]+", focus_topic.lower()) if k]

        boosted: list[NewsArticle] = []
        for article in articles:
            search_text = f"{article.title} {article.content} {' '.join(article.tags)}".lower()
            boost = sum(KEYWORD_BOOST for k in focus_keywords if k in search_text)
            score = min(round(article.relevance_score + boost, 2), 1.0)
            boosted.append(article.model_copy(update={"relevance_score": score}))
        return boosted

    def fetch_full_text(self, article: NewsArticle) -> NewsArticle:
        """Replace the feed summary with the article body; keeps the summary on failure."""
        if not article.url:
            return article
        try:
            text = scrape_url(article.url, timeout=self._timeout, transport=self._transport)
        except httpx.HTTPError as e:
            logger.warning("Full-text fetch failed for %s: %s", article.url, e)
            return article
        if not text:
            return article
        return article.model_copy(update={"content": text[:MAX_ARTICLE_CHARS]})
