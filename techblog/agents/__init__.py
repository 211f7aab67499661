"""Capability providers used by the generation pipeline: news, research, writing, review, enhancement."""

from techblog.agents.content import ContentAgent, ContentGenerationError
from techblog.agents.enhance import EnhanceAgent
from techblog.agents.knowledge import LatestKnowledgeAgent
from techblog.agents.news import NewsAgent, NewsFetchError, load_sources
from techblog.agents.review import ReviewAgent, ReviewError

__all__ = [
    "ContentAgent",
    "ContentGenerationError",
    "EnhanceAgent",
    "LatestKnowledgeAgent",
    "NewsAgent",
    "NewsFetchError",
    "load_sources",
    "ReviewAgent",
    "ReviewError",
]
