"""Latest-knowledge research agent.

Builds a ``KnowledgeContext`` for a topic in three LLM passes: generate search
queries, answer each query, then synthesise the answers into structured
background. Research is an enrichment step, so any failure degrades to an
empty context instead of failing the generation job.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field

from techblog.llm import LLMProvider
from techblog.prompts import render_prompt
from techblog.schemas.content import KnowledgeContext, KnowledgeSource

logger = logging.getLogger(__name__)

MAX_QUERIES = 6

_QUERY_SYSTEM = (
    "You are an expert research assistant who creates targeted search queries to gather "
    "comprehensive, current information on technical topics."
)
_SEARCH_SYSTEM = (
    "You are a research aggregator. Summarise what is currently known about the query, "
    "citing official documentation and authoritative sources where you can."
)
_SYNTHESIS_SYSTEM = (
    "You are an expert knowledge synthesizer who extracts current, accurate information "
    "about technical topics from research notes. Always respond with valid JSON."
)


class _Synthesis(BaseModel):
    current_information: str = ""
    key_findings: list[str] = Field(default_factory=list)
    recent_developments: list[str] = Field(default_factory=list)
    authoritative_sources: list[KnowledgeSource] = Field(default_factory=list)
    technical_details: str = ""
    industry_trends: str = ""
    practical_applications: str = ""


class LatestKnowledgeAgent:
    def __init__(self, llm: LLMProvider):
        self._llm = llm

    def gather_latest_knowledge(self, topic: str) -> KnowledgeContext:
        logger.info("Gathering latest knowledge for: %s", topic)
        try:
            queries = self.generate_search_queries(topic)
            results = [{"query": q, "results": self._search(q)} for q in queries]
            context = self.synthesize_knowledge(topic, results)
        except Exception as e:
            logger.error("Knowledge gathering failed for %s: %s", topic, e)
            return KnowledgeContext(
                topic=topic,
                current_information=(
                    f"Current information gathering failed. Proceeding with base knowledge for {topic}."
                ),
            )
        logger.info("Knowledge gathering completed for: %s", topic)
        return context

    def generate_search_queries(self, topic: str) -> list[str]:
        raw = self._llm.complete(
            render_prompt("knowledge_queries.j2", topic=topic),
            system=_QUERY_SYSTEM,
            temperature=0.3,
            max_tokens=400,
        )
        queries = [q.strip().lstrip("-*0123456789. ").strip() for q in raw.splitlines()]
        return [q for q in queries if q][:MAX_QUERIES]

    def _search(self, query: str) -> str:
        try:
            return self._llm.complete(
                render_prompt("knowledge_search.j2", query=query),
                system=_SEARCH_SYSTEM,
                temperature=0.2,
                max_tokens=1500,
            )
        except Exception as e:
            logger.warning("Search failed for %r: %s", query[:50], e)
            return f"Unable to retrieve current information for: {query}"

    def synthesize_knowledge(self, topic: str, results: list[dict[str, str]]) -> KnowledgeContext:
        synthesis = self._llm.complete_structured(
            render_prompt("knowledge_synthesis.j2", topic=topic, results=results),
            _Synthesis,
            system=_SYNTHESIS_SYSTEM,
            temperature=0.2,
            max_tokens=2000,
        )
        return KnowledgeContext(topic=topic, **synthesis.model_dump())
