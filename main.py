import logging
import sys
from pathlib import Path

import click
from pydantic import ValidationError

import config
from gitlab_client import GitLabClient, attach_comment_ids
from models import CodeSubmission, ReviewResult, ReviewType
from normalizer import is_static_only

logger = logging.getLogger(__name__)

_ICONS = {
    "error": "🐛",
    "warning": "⚠️ ",
    "suggestion": "💡",
    "info": "ℹ️ ",
}

_EXTENSIONS = {
    ".py": "Python",
    ".js": "JavaScript",
    ".jsx": "JavaScript",
    ".ts": "TypeScript",
    ".tsx": "TypeScript",
    ".java": "Java",
    ".cpp": "C++",
    ".cc": "C++",
    ".hpp": "C++",
}


def guess_language(path: str) -> str:
    return _EXTENSIONS.get(Path(path).suffix.lower(), "Text")


def print_review(result: ReviewResult) -> None:
    """Pretty print a review result."""
    metrics = result.metrics
    click.echo(f"\n{'=' * 60}")
    click.echo(f"📋 CODE REVIEW  overall {metrics.overall.grade} ({metrics.overall.score})")
    click.echo(f"{'=' * 60}")
    click.echo(
        f"Maintainability: {metrics.maintainability.grade} | "
        f"Performance: {metrics.performance.grade} | "
        f"Security: {metrics.security.grade}"
    )
    click.echo(
        f"Issues: {result.issues.critical} critical, "
        f"{result.issues.warnings} warning(s), {result.issues.info} info"
    )
    if is_static_only(result):
        click.echo("⚠️  Limited mode: AI analysis unavailable, static checks only")

    for comment in result.comments:
        icon = _ICONS.get(comment.type, "❓")
        click.echo(f"\n{icon} [{comment.type.upper()}] Line {comment.line}: {comment.text}")
        if comment.suggestion:
            click.echo(f"   💡 Fix: {comment.suggestion}")

    if result.key_improvements:
        click.echo(f"\n{'─' * 60}")
        click.echo("Key improvements:")
        for item in result.key_improvements:
            click.echo(f"  • {item}")

    if result.gitlab_integration:
        click.echo(f"\n🔗 {result.gitlab_integration.review_url}")
    click.echo()


@click.command()
@click.argument("path")
@click.option("--language", "-l", help="Source language (default: guessed from extension)")
@click.option(
    "--review-type",
    "-t",
    default=ReviewType.COMPREHENSIVE.value,
    show_default=True,
    help="Comprehensive, 'Syntax Only', 'Security Focus' or 'Performance Focus'",
)
@click.option("--mock", is_flag=True, help="Use the canned mock provider")
@click.option("--json", "as_json", is_flag=True, help="Print the raw JSON result")
@click.option("--gitlab-project", type=int, help="GitLab project id")
@click.option("--gitlab-mr", type=int, help="GitLab merge request iid")
@click.option("--commit-sha", help="Commit the review applies to")
@click.option("--post", is_flag=True, help="Post the comments to the merge request")
def cli(
    path: str,
    language: str | None,
    review_type: str,
    mock: bool,
    as_json: bool,
    gitlab_project: int | None,
    gitlab_mr: int | None,
    commit_sha: str | None,
    post: bool,
) -> None:
    """AI code review for a single file (PATH, or '-' for stdin)."""
    sys.exit(
        run(
            path,
            language=language,
            review_type=review_type,
            mock=mock,
            as_json=as_json,
            gitlab_project=gitlab_project,
            gitlab_mr=gitlab_mr,
            commit_sha=commit_sha,
            post=post,
        )
    )


def run(
    path: str,
    language: str | None = None,
    review_type: str = ReviewType.COMPREHENSIVE.value,
    mock: bool = False,
    as_json: bool = False,
    gitlab_project: int | None = None,
    gitlab_mr: int | None = None,
    commit_sha: str | None = None,
    post: bool = False,
) -> int:
    """Review one file and print the result; returns the exit code."""
    try:
        with click.open_file(path, encoding="utf-8") as handle:
            code = handle.read()

        submission = CodeSubmission(
            language=language or guess_language(path),
            review_type=review_type,
            code=code,
            gitlab_project_id=gitlab_project,
            gitlab_merge_request_id=gitlab_mr,
            gitlab_commit_sha=commit_sha,
        )
    except OSError as e:
        logger.error("Could not read %s: %s", path, e)
        return 1
    except ValidationError as e:
        logger.error("Invalid submission: %s", e)
        return 1

    orchestrator = config.build_orchestrator(use_mock=mock or config.USE_MOCK)
    result = orchestrator.review(submission)

    if post:
        if result.gitlab_integration is None:
            logger.error("--post needs --gitlab-project and --gitlab-mr")
            return 1
        try:
            client = GitLabClient.from_env()
            posted = client.post_review_comments(
                result.gitlab_integration.project_id,
                result.gitlab_integration.merge_request_id,
                result.comments,
            )
            attach_comment_ids(result, posted)
        except ValueError as e:
            logger.error("GitLab error: %s", e)
            return 1

    if as_json:
        click.echo(result.to_json())
    else:
        print_review(result)
    return 0


if __name__ == "__main__":
    cli()
