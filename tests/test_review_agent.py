"""Tests for the review agent scoring and deterministic checks."""

import pytest

from conftest import MockLLM, make_draft
from techblog.agents import review as review_module
from techblog.agents.review import (
    ReviewAgent,
    ReviewError,
    calculate_quality_score,
    is_valid_mermaid,
)
from techblog.schemas.content import ContentSource, ReviewIssue

LONG_BODY = "Rust's borrow checker enforces ownership rules at compile time. " * 20


def _issue(severity, type_="content_quality", suggestion=None):
    return ReviewIssue(type=type_, severity=severity, description=severity, suggestion=suggestion)


def _agent(factual=None):
    return ReviewAgent(MockLLM(structured={"_FactualIssues": {"issues": factual or []}}))


def test_quality_score_penalties():
    assert calculate_quality_score([]) == 100
    issues = [_issue("critical"), _issue("high"), _issue("medium"), _issue("low")]
    assert calculate_quality_score(issues) == 100 - 25 - 15 - 10 - 5
    assert calculate_quality_score([_issue("critical")] * 5) == 0


@pytest.mark.parametrize(
    "code,valid",
    [
        ("graph TD\n  A-->B", True),
        ("  flowchart LR\n  A-->B", True),
        ("sequenceDiagram\n  A->>B: hi", True),
        ("pie title Pets", False),
        ("", False),
    ],
)
def test_is_valid_mermaid(code, valid):
    assert is_valid_mermaid(code) is valid


def test_clean_draft_is_approved():
    result = _agent().review_content(make_draft(content=LONG_BODY, tags=["Rust"]))
    assert result.approved is True
    assert result.quality_score == 100
    assert result.issues == []
    assert result.suggested_fixes is None


def test_factual_critical_issue_rejects():
    factual = [
        {
            "type": "factual_error",
            "severity": "critical",
            "description": "Wrong release year",
            "suggestion": "Correct the year",
        }
    ]
    result = _agent(factual).review_content(make_draft(content=LONG_BODY))
    assert result.approved is False
    assert result.quality_score == 75
    assert result.suggested_fixes == ["Correct the year"]


def test_more_than_two_high_issues_rejects_even_with_passing_score(monkeypatch):
    monkeypatch.setitem(review_module.SEVERITY_PENALTY, "high", 5)
    agent = _agent()
    agent.check_factual_accuracy = lambda content: [_issue("high", suggestion=f"fix {i}") for i in range(3)]
    result = agent.review_content(make_draft(content=LONG_BODY))
    assert result.quality_score == 85
    assert result.approved is False
    assert result.suggested_fixes == ["fix 0", "fix 1", "fix 2"]


def test_suggested_fixes_capped_at_five():
    agent = _agent()
    agent.check_factual_accuracy = lambda content: [_issue("low", suggestion=f"fix {i}") for i in range(7)]
    result = agent.review_content(make_draft(content=LONG_BODY))
    assert result.quality_score == 65
    assert result.approved is False
    assert result.suggested_fixes == [f"fix {i}" for i in range(5)]


def test_factual_check_failure_reports_nothing():
    agent = ReviewAgent(MockLLM(structured={"_FactualIssues": RuntimeError("rate limited")}))
    assert agent.check_factual_accuracy(make_draft()) == []


def test_unexpected_check_failure_raises_review_error():
    agent = _agent()

    def broken(content):
        raise KeyError("boom")

    agent.assess_quality = broken
    with pytest.raises(ReviewError, match="Review failed"):
        agent.review_content(make_draft(content=LONG_BODY))


def test_check_diagrams():
    agent = _agent()
    body = (
        "Intro\n\n```mermaid\ngraph TD\n  A-->B\n```\n\n"
        "```mermaid\nnot a diagram\n```\n\n"
        "I'm sorry, but it seems the request was unclear."
    )
    issues = agent.check_diagrams(make_draft(content=body))
    assert sorted(i.severity for i in issues) == ["high", "medium"]
    assert all(i.type == "diagram_error" for i in issues)


def test_check_attribution():
    agent = _agent()
    sources = [ContentSource(title="A"), ContentSource(title="B")]
    thin = make_draft(content="According to Jane from Acme, things changed.", sources=sources)
    issues = agent.check_attribution(thin)
    assert len(issues) == 1
    assert issues[0].severity == "high"
    assert "1 attributions for 2 sources" in issues[0].description

    cited = make_draft(
        content="According to Jane from Acme, things changed.\nSee [the post](https://example.com).",
        sources=sources,
    )
    assert agent.check_attribution(cited) == []
    assert agent.check_attribution(make_draft(content="No sources")) == []


def test_assess_quality():
    agent = _agent()
    short = agent.assess_quality(make_draft(content="Too short."))
    assert [i.severity for i in short] == ["medium"]

    generic = LONG_BODY + " recent developments, latest trends, to summarize, in conclusion."
    issues = agent.assess_quality(make_draft(content=generic))
    assert [i.description for i in issues] == ["Content contains generic language patterns"]


def test_validate_tags():
    agent = _agent()
    draft = make_draft(content="OpenAI released GPT updates; Claude responded.", tags=["ChatGPT"])
    issues = agent.validate_tags(draft)
    assert len(issues) == 1
    assert issues[0].severity == "low"
    assert issues[0].description == "Missing relevant tags: OpenAI, Claude"
