"""Tests for content generation, enhancement and knowledge research agents."""

import pytest

from conftest import MockLLM, make_article, make_draft, rejected_review
from techblog.agents import (
    ContentAgent,
    ContentGenerationError,
    EnhanceAgent,
    LatestKnowledgeAgent,
)
from techblog.schemas.content import ContentSource, KnowledgeContext, ReviewIssue, ReviewResult

DRAFT = {
    "title": "OpenAI ships GPT-5",
    "content": "# OpenAI ships GPT-5\n\nIntro.\n\n```mermaid\n```mermaid\ngraph TD\n```\n\n## Conclusion\n\nDone.",
    "summary": "What changed.",
    "tags": ["LLM"],
    "diagrams": ["Release timeline"],
}


# ---------------------------------------------------------------------------
# ContentAgent
# ---------------------------------------------------------------------------

def test_generate_blog_post_builds_draft_from_article():
    llm = MockLLM(structured={"_Draft": DRAFT})
    article = make_article(
        "OpenAI announces GPT-5",
        content="By Jane Doe\nThe model uses a transformer.",
        tags=["AI", "Research"],
        source="The Verge",
        url="https://example.com/gpt5",
    )
    post = ContentAgent(llm, request_delay=0).generate_blog_post(article, focus_topic="LLMs")

    assert post.title == "OpenAI ships GPT-5"
    assert "```mermaid\n```mermaid" not in post.content
    assert post.sources == [
        ContentSource(title=article.title, url=article.url, author="Jane Doe", publication="The Verge")
    ]
    assert post.tags[0] == "LLM"
    assert {"OpenAI", "GPT-5", "AI", "Machine Learning", "Research"} <= set(post.tags)
    assert len(post.tags) <= 8
    assert post.meta_title == post.title
    assert post.meta_description == "What changed."
    assert post.diagrams == ["Release timeline"]
    assert post.read_time == 1


def test_generate_blog_post_wraps_llm_failure():
    llm = MockLLM(structured={"_Draft": RuntimeError("quota exceeded")})
    with pytest.raises(ContentGenerationError, match="quota exceeded"):
        ContentAgent(llm).generate_blog_post(make_article())


def test_generate_multiple_skips_failed_articles():
    class FlakyLLM(MockLLM):
        def complete_structured(self, prompt, schema, **kwargs):
            if "Broken story" in prompt:
                raise RuntimeError("timeout")
            return super().complete_structured(prompt, schema, **kwargs)

    agent = ContentAgent(FlakyLLM(structured={"_Draft": DRAFT}), request_delay=0)
    posts = agent.generate_multiple_blog_posts([make_article("Good story"), make_article("Broken story")])
    assert len(posts) == 1
    assert posts[0].sources[0].title == "Good story"


def test_custom_post_uses_prompt_and_knowledge():
    llm = MockLLM(structured={"_Draft": {**DRAFT, "tags": []}})
    knowledge = KnowledgeContext(topic="Rust", current_information="Rust 2024 edition shipped.")
    post = ContentAgent(llm).generate_custom_blog_post("Rust", "Focus on async", knowledge)

    assert post.tags == ["Rust"]
    assert post.sources == []
    prompt = llm.prompts[0]
    assert '"Rust"' in prompt
    assert "Focus on async" in prompt
    assert "Rust 2024 edition shipped." in prompt


def test_custom_post_falls_back_on_failure():
    llm = MockLLM(structured={"_Draft": RuntimeError("down")})
    post = ContentAgent(llm).generate_custom_blog_post("Rust ownership")
    assert post.title == "Understanding Rust ownership"
    assert post.content.startswith("# Understanding Rust ownership")
    assert post.tags == ["Rust ownership", "Guide", "Technology"]


def test_custom_post_falls_back_on_empty_content():
    llm = MockLLM(structured={"_Draft": {"title": "Empty", "content": "   "}})
    assert ContentAgent(llm).generate_custom_blog_post("WebGPU").title == "Understanding WebGPU"


def test_create_diagrams_strips_fences_and_caps():
    llm = MockLLM(text="```mermaid\ngraph TD\n  A-->B\n```")
    diagrams = ContentAgent(llm).create_diagrams(["one", "two", "three"])
    assert diagrams == ["graph TD\n  A-->B", "graph TD\n  A-->B"]
    assert len(llm.calls) == 2


def test_create_diagrams_skips_failures():
    llm = MockLLM(text=RuntimeError("bad gateway"))
    assert ContentAgent(llm).create_diagrams(["one"]) == []


def test_insert_diagrams_positions():
    content = "# Title\n\nIntro.\n\n## Body\n\nText.\n\n## Conclusion\n\nEnd."
    updated = ContentAgent.insert_diagrams(content, ["graph A", "graph B"])
    assert updated.index("graph A") < updated.index("## Body")
    assert updated.index("## Body") < updated.index("graph B") < updated.index("## Conclusion")


def test_extract_author():
    assert ContentAgent.extract_author("Written by Ada Lovelace\nbody") == "Ada Lovelace"
    assert ContentAgent.extract_author("no byline here") == ""


# ---------------------------------------------------------------------------
# EnhanceAgent
# ---------------------------------------------------------------------------

def test_enhance_content_preserves_sources_and_scores():
    sources = [ContentSource(title="Origin", url="https://example.com")]
    draft = make_draft(sources=sources, featured_image="https://img.example.com/a.png")
    review = ReviewResult(
        approved=False,
        quality_score=50,
        issues=[
            ReviewIssue(type="factual_error", severity="critical", description="Wrong"),
            ReviewIssue(type="content_quality", severity="high", description="Thin"),
        ],
    )
    llm = MockLLM(
        structured={
            "_Enhanced": {
                "title": "Better title",
                "content": "Rewritten body " * 300,
                "improvements_made": ["Fixed facts"],
            }
        }
    )
    result = EnhanceAgent(llm).enhance_content(draft, review)

    assert result.quality_score == 50 + 15 + 5
    assert result.improvements_made == ["Fixed facts"]
    enhanced = result.enhanced_content
    assert enhanced.title == "Better title"
    assert enhanced.sources == sources
    assert enhanced.featured_image == "https://img.example.com/a.png"
    assert enhanced.tags == draft.tags
    assert enhanced.read_time == 3


def test_enhance_content_returns_original_on_failure():
    draft = make_draft()
    llm = MockLLM(structured={"_Enhanced": RuntimeError("overloaded")})
    result = EnhanceAgent(llm).enhance_content(draft, rejected_review(98))
    assert result.enhanced_content == draft
    assert result.quality_score == 100


# ---------------------------------------------------------------------------
# LatestKnowledgeAgent
# ---------------------------------------------------------------------------

def test_gather_latest_knowledge():
    llm = MockLLM(
        text="1. Rust async runtimes\n2. Tokio release notes\n\n- Rust 2024 edition",
        structured={"_Synthesis": {"current_information": "Async is stable.", "key_findings": ["Tokio 1.x"]}},
    )
    context = LatestKnowledgeAgent(llm).gather_latest_knowledge("Rust async")
    assert context.topic == "Rust async"
    assert context.current_information == "Async is stable."
    assert context.key_findings == ["Tokio 1.x"]
    # one query call, one search per query, one synthesis
    assert [c[0] for c in llm.calls] == ["complete"] * 4 + ["structured"]


def test_knowledge_failure_degrades_to_placeholder():
    llm = MockLLM(text=RuntimeError("no network"))
    context = LatestKnowledgeAgent(llm).gather_latest_knowledge("Rust")
    assert context.topic == "Rust"
    assert "gathering failed" in context.current_information
