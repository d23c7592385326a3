"""Result normalisation: merge AI and static findings, static-only fallback."""

import logging

from models import (
    CodeComment,
    IssuesSummary,
    IssueType,
    MetricScore,
    Metrics,
    ReviewResult,
)

logger = logging.getLogger(__name__)

# Comment type -> IssuesSummary counter
_BUCKETS: dict[str, str] = {
    "error": "critical",
    "warning": "warnings",
    "suggestion": "info",
    "info": "info",
}

STATIC_KEY_IMPROVEMENTS = [
    "Fix identified syntax errors",
    "Address style inconsistencies",
    "Review code structure",
    "Consider security implications",
    "Ensure proper error handling",
]

# The analyzer cannot judge these dimensions, so they are fixed
STATIC_PERFORMANCE = MetricScore(grade="C+", score=75)
STATIC_SECURITY = MetricScore(grade="C", score=70)


def bucket_for(comment: CodeComment) -> str:
    return _BUCKETS[comment.type]


def recount_issues(result: ReviewResult) -> None:
    """Recompute the issue counters from ``result.comments``."""
    counts = {"critical": 0, "warnings": 0, "info": 0}
    for comment in result.comments:
        counts[bucket_for(comment)] += 1

    issues = result.issues
    if (issues.critical, issues.warnings, issues.info) != (
        counts["critical"],
        counts["warnings"],
        counts["info"],
    ):
        logger.debug(
            "Correcting issue counts %d/%d/%d -> %d/%d/%d",
            issues.critical,
            issues.warnings,
            issues.info,
            counts["critical"],
            counts["warnings"],
            counts["info"],
        )
    issues.critical = counts["critical"]
    issues.warnings = counts["warnings"]
    issues.info = counts["info"]


def merge_results(ai_result: ReviewResult, static_findings: list[CodeComment]) -> ReviewResult:
    """
    Merge static findings into an AI result (in place) and return it.

    A static finding is skipped only when an AI comment on the same line
    has exactly the same text. Each added finding bumps its issue bucket.
    Comments end up sorted by line; same-line comments keep insertion
    order, so AI comments come first.
    """
    # Provider-supplied counts are not trusted
    recount_issues(ai_result)

    seen: dict[int, set[str]] = {}
    for comment in ai_result.comments:
        seen.setdefault(comment.line, set()).add(comment.text)

    added = 0
    for finding in static_findings:
        if finding.text in seen.get(finding.line, set()):
            continue
        ai_result.comments.append(finding)
        bucket = bucket_for(finding)
        setattr(ai_result.issues, bucket, getattr(ai_result.issues, bucket) + 1)
        added += 1

    ai_result.comments.sort(key=lambda c: c.line)

    logger.info(
        "🔀 Merged %d static finding(s) into AI result (%d duplicate(s) skipped)",
        added,
        len(static_findings) - added,
    )
    return ai_result


def grade_static_findings(comments: list[CodeComment]) -> tuple[str, int]:
    """Map finding counts to a fixed (grade, score) pair."""
    errors = sum(1 for c in comments if c.type == "error")
    warnings = sum(1 for c in comments if c.type == "warning")
    total = len(comments)

    if errors == 0 and warnings == 0:
        return "A-", 90
    if errors == 0 and warnings <= 2:
        return "B+", 85
    if errors <= 1 and total <= 5:
        return "B-", 80
    if errors >= 3:
        return "D+", 65
    return "C", 70


def synthesize_static_result(comments: list[CodeComment], language: str) -> ReviewResult:
    """Build a ReviewResult from static findings alone (no AI involved)."""
    grade, score = grade_static_findings(comments)

    result = ReviewResult(
        metrics=Metrics(
            overall=MetricScore(grade=grade, score=score),
            maintainability=MetricScore(grade=grade, score=score),
            performance=STATIC_PERFORMANCE.model_copy(),
            security=STATIC_SECURITY.model_copy(),
        ),
        comments=sorted(comments, key=lambda c: c.line),
        issues=IssuesSummary(
            types=[
                IssueType(
                    name="Analysis Limitations",
                    description=(
                        "Limited analysis due to API constraints. "
                        "Only basic issues detected."
                    ),
                    severity="medium",
                ),
                IssueType(
                    name="Static Analysis",
                    description=(
                        f"Basic {language} code analysis performed "
                        "without semantic understanding."
                    ),
                    severity="medium",
                ),
            ]
        ),
        key_improvements=list(STATIC_KEY_IMPROVEMENTS),
    )
    recount_issues(result)
    return result


def is_static_only(result: ReviewResult) -> bool:
    """True when *result* was synthesised without any AI provider."""
    return any(t.name == "Analysis Limitations" for t in result.issues.types)
