"""LLM response parsing: JSON extraction, validation and text salvage."""

import json
import logging
import re

from pydantic import ValidationError

from config import SYNTHETIC_MIN_CHARS
from models import (
    CodeComment,
    CommentType,
    IssuesSummary,
    IssueType,
    MetricScore,
    Metrics,
    ReviewResult,
)

logger = logging.getLogger(__name__)

# Only a fence wrapping the whole answer; fences inside JSON strings are content
_FENCE_RE = re.compile(r"^```[\w+-]*\s*|\s*```$")

# Presence of any of these marks a response as source code rather than prose
_CODE_MARKERS = ("import ", "function ", "class ", "const ", "let ")

_TYPE_KEYWORDS: tuple[tuple[CommentType, tuple[str, ...]], ...] = (
    ("error", ("error", "critical", "severe")),
    ("warning", ("warning", "caution", "consider")),
    ("suggestion", ("suggest", "recommend", "improvement")),
)

# Lines at or under this length are too short to be a useful comment
_MIN_COMMENT_CHARS = 20


def strip_code_fence(text: str) -> str:
    """Strip a leading and/or trailing markdown code fence from *text*."""
    return _FENCE_RE.sub("", text.strip())


def parse_review_json(text: str) -> ReviewResult | None:
    """Parse *text* as a ReviewResult; ``None`` on bad JSON or bad shape."""
    cleaned = strip_code_fence(text)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.warning("JSON decode error: %s", e)
        logger.debug("Raw response: %s", text)
        return None

    if not isinstance(data, dict):
        logger.warning("LLM response is JSON but not an object")
        return None

    try:
        return ReviewResult.model_validate(data)
    except ValidationError as e:
        logger.warning("Pydantic validation error: %s", e)
        return None


def classify_line(line: str) -> CommentType:
    """Guess a comment type from the keywords in a line of prose."""
    lowered = line.lower()
    for comment_type, keywords in _TYPE_KEYWORDS:
        if any(word in lowered for word in keywords):
            return comment_type
    return "info"


def looks_like_code(text: str) -> bool:
    return any(marker in text for marker in _CODE_MARKERS)


def synthesize_result_from_text(text: str, model_name: str) -> ReviewResult | None:
    """
    Build a degraded ReviewResult from a free-text (non-JSON) model answer.

    Code-like answers become ``improvedCode``; prose is split into lines
    and each reasonably long line becomes a comment, typed by keyword.

    Returns:
        The synthetic result, or ``None`` when the text is too short to use.
    """
    text = text.strip()
    if len(text) <= SYNTHETIC_MIN_CHARS:
        return None

    logger.warning("Creating synthetic result from %s text output", model_name)

    comments: list[CodeComment] = []
    improved_code: str | None = None
    is_code = looks_like_code(text)

    if is_code:
        improved_code = text
        comments.append(
            CodeComment(
                line=1,
                text=(
                    "The model provided an improved version of your code "
                    "instead of a detailed analysis."
                ),
                type="info",
            )
        )
    else:
        for line_no, line in enumerate(text.split("\n"), start=1):
            stripped = line.strip()
            if len(stripped) > _MIN_COMMENT_CHARS:
                comments.append(
                    CodeComment(line=line_no, text=stripped, type=classify_line(stripped))
                )

    if not comments:
        comments.append(
            CodeComment(
                line=1,
                text=(
                    "The analysis model provided a non-standard response. "
                    "Basic analysis has been provided instead."
                ),
                type="info",
            )
        )

    critical = sum(1 for c in comments if c.type == "error")
    warnings = sum(1 for c in comments if c.type == "warning")
    info = len(comments) - critical - warnings

    if is_code:
        grade, score = "B+", 85
    elif critical > 2:
        grade, score = "C+", 75
    else:
        grade, score = "B-", 80

    return ReviewResult(
        metrics=Metrics(
            overall=MetricScore(grade=grade, score=score),
            maintainability=MetricScore(grade=grade, score=score),
            performance=MetricScore(grade=grade, score=score - 5),
            security=MetricScore(grade=grade, score=score - 5),
        ),
        comments=comments,
        improved_code=improved_code,
        key_improvements=(
            [
                "Improved code structure",
                "Enhanced readability",
                "Fixed potential issues",
            ]
            if is_code
            else [
                "Consider security best practices",
                "Improve error handling",
                "Enhance code organization",
            ]
        ),
        issues=IssuesSummary(
            critical=critical,
            warnings=warnings,
            info=info,
            types=[
                IssueType(
                    name="Model Response Issue",
                    description=(
                        f"The {model_name} model didn't return a valid JSON "
                        "response. Limited analysis available."
                    ),
                    severity="medium",
                )
            ],
        ),
    )
