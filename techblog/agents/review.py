"""Content review agent.

One LLM pass checks factual accuracy; the remaining checks (diagrams,
attribution, depth, tags) are deterministic. The issue list is folded into a
0-100 quality score that decides whether a draft is publishable.
"""

from __future__ import annotations

import logging
import re

from pydantic import BaseModel, Field

from techblog.llm import LLMProvider
from techblog.prompts import render_prompt
from techblog.schemas.content import GeneratedContent, ReviewIssue, ReviewResult

logger = logging.getLogger(__name__)

SEVERITY_PENALTY = {"critical": 25, "high": 15, "medium": 10, "low": 5}
APPROVAL_MIN_SCORE = 70
MAX_HIGH_ISSUES = 2
MAX_SUGGESTED_FIXES = 5
MIN_CONTENT_CHARS = 800

_MERMAID_BLOCK_RE = re.compile(r"```mermaid\n(.*?)\n```", re.DOTALL)
_MERMAID_TYPES = (
    "graph",
    "flowchart",
    "sequenceDiagram",
    "classDiagram",
    "gitgraph",
    "erDiagram",
    "journey",
)
_DIAGRAM_FAILURE_MARKERS = (
    "Could you please provide more details",
    "error in your request",
    "I'm sorry, but it seems",
)
_ATTRIBUTION_PATTERNS = [
    re.compile(r"According to .+ from .+", re.IGNORECASE),
    re.compile(r"As reported by .+", re.IGNORECASE),
    re.compile(r".+ notes that", re.IGNORECASE),
    re.compile(r"\[.+?\]\(.+?\)"),
]
_GENERIC_PHRASES = ("recent developments", "latest trends", "in conclusion", "to summarize")
# content keyword -> tag that should be present when it is mentioned
_EXPECTED_TAGS = {
    "openai": "OpenAI",
    "gpt": "GPT",
    "anthropic": "Anthropic",
    "claude": "Claude",
    "transformer": "Transformers",
    "multimodal": "Multimodal",
}


class ReviewError(RuntimeError):
    """Raised when a draft could not be reviewed at all."""


class _FactualIssues(BaseModel):
    issues: list[ReviewIssue] = Field(default_factory=list)


def calculate_quality_score(issues: list[ReviewIssue]) -> int:
    score = 100 - sum(SEVERITY_PENALTY[issue.severity] for issue in issues)
    return max(0, score)


def is_valid_mermaid(code: str) -> bool:
    code = code.strip()
    if not code:
        return False
    first_line = code.splitlines()[0].strip()
    return first_line.startswith(_MERMAID_TYPES)


class ReviewAgent:
    def __init__(self, llm: LLMProvider):
        self._llm = llm

    def review_content(self, content: GeneratedContent) -> ReviewResult:
        logger.info("Reviewing draft: %s", content.title)
        try:
            issues = [
                *self.check_factual_accuracy(content),
                *self.check_diagrams(content),
                *self.check_attribution(content),
                *self.assess_quality(content),
                *self.validate_tags(content),
            ]
        except Exception as e:
            raise ReviewError(f"Review failed: {e}") from e

        score = calculate_quality_score(issues)
        critical = sum(1 for i in issues if i.severity == "critical")
        high = sum(1 for i in issues if i.severity == "high")
        approved = critical == 0 and high <= MAX_HIGH_ISSUES and score >= APPROVAL_MIN_SCORE

        if approved:
            logger.info("Review completed: APPROVED (score %d/100)", score)
            fixes = None
        else:
            logger.info(
                "Review completed: REJECTED (score %d/100, %d issues, %d critical, %d high)",
                score, len(issues), critical, high,
            )
            fixes = [i.suggestion for i in issues if i.suggestion][:MAX_SUGGESTED_FIXES]
        return ReviewResult(approved=approved, issues=issues, suggested_fixes=fixes, quality_score=score)

    def check_factual_accuracy(self, content: GeneratedContent) -> list[ReviewIssue]:
        """LLM-judged accuracy; an unavailable or malformed judgement reports nothing."""
        try:
            result = self._llm.complete_structured(
                render_prompt("review_factual.j2", content=content),
                _FactualIssues,
                temperature=0.1,
                max_tokens=1500,
            )
        except Exception as e:
            logger.warning("Factual accuracy check failed: %s", e)
            return []
        return result.issues

    def check_diagrams(self, content: GeneratedContent) -> list[ReviewIssue]:
        issues: list[ReviewIssue] = []
        if any(marker in content.content for marker in _DIAGRAM_FAILURE_MARKERS):
            issues.append(
                ReviewIssue(
                    type="diagram_error",
                    severity="high",
                    description="Diagram generation failed with error message visible in content",
                    location="Diagram sections",
                    suggestion="Remove failed diagram attempts and create working diagrams",
                )
            )
        for code in _MERMAID_BLOCK_RE.findall(content.content):
            if not is_valid_mermaid(code):
                issues.append(
                    ReviewIssue(
                        type="diagram_error",
                        severity="medium",
                        description="Invalid Mermaid diagram syntax detected",
                        location="Mermaid diagram block",
                        suggestion="Fix diagram syntax or remove invalid diagram",
                    )
                )
        return issues

    def check_attribution(self, content: GeneratedContent) -> list[ReviewIssue]:
        sources = len(content.sources)
        if not sources:
            return []
        attributions = sum(len(p.findall(content.content)) for p in _ATTRIBUTION_PATTERNS)
        if attributions >= sources:
            return []
        return [
            ReviewIssue(
                type="attribution_missing",
                severity="high",
                description=(
                    f"Insufficient source attribution: {attributions} attributions for {sources} sources"
                ),
                suggestion="Add proper attribution for all sources used",
            )
        ]

    def assess_quality(self, content: GeneratedContent) -> list[ReviewIssue]:
        issues: list[ReviewIssue] = []
        if len(content.content) < MIN_CONTENT_CHARS:
            issues.append(
                ReviewIssue(
                    type="content_quality",
                    severity="medium",
                    description="Content appears too short for a comprehensive blog post",
                    suggestion="Expand content with more analysis and insights",
                )
            )
        lowered = content.content.lower()
        if sum(1 for phrase in _GENERIC_PHRASES if phrase in lowered) > 2:
            issues.append(
                ReviewIssue(
                    type="content_quality",
                    severity="medium",
                    description="Content contains generic language patterns",
                    suggestion="Add more specific technical insights and analysis",
                )
            )
        return issues

    def validate_tags(self, content: GeneratedContent) -> list[ReviewIssue]:
        lowered = content.content.lower()
        tags = [t.lower() for t in content.tags]
        missing = [
            tag
            for keyword, tag in _EXPECTED_TAGS.items()
            if keyword in lowered and not any(keyword in t for t in tags)
        ]
        if not missing:
            return []
        joined = ", ".join(missing)
        return [
            ReviewIssue(
                type="tag_missing",
                severity="low",
                description=f"Missing relevant tags: {joined}",
                suggestion=f"Add tags: {joined}",
            )
        ]
