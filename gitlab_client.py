"""GitLab API client for merge request operations."""

import logging
import os
from dataclasses import dataclass

import requests
import requests.exceptions

from config import GITLAB_API_URL, GITLAB_WEB_URL, with_retry
from models import CodeComment, CodeSubmission, GitlabIntegration, ReviewResult

logger = logging.getLogger(__name__)

# Used when a comment carries no file path
DEFAULT_FILE_PATH = "app.js"

_TRANSIENT_ERRORS = (
    requests.exceptions.ConnectionError,
    requests.exceptions.Timeout,
)


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------
@dataclass
class DiffRefs:
    """The three SHAs GitLab needs to anchor a line comment."""

    base_sha: str
    start_sha: str
    head_sha: str


@dataclass
class PostedComment:
    """A note or discussion created on a merge request."""

    id: int
    body: str
    line: int  # 0 for the summary note
    file: str | None


# ---------------------------------------------------------------------------
# Integration metadata (no network)
# ---------------------------------------------------------------------------
def build_review_url(project_id: int, merge_request_id: int, web_url: str = GITLAB_WEB_URL) -> str:
    return f"{web_url.rstrip('/')}/projects/{project_id}/merge_requests/{merge_request_id}"


def build_integration_metadata(submission: CodeSubmission) -> GitlabIntegration | None:
    """Return the gitlabIntegration block for a linked submission, else None."""
    if submission.gitlab_project_id is None or submission.gitlab_merge_request_id is None:
        return None
    return GitlabIntegration(
        project_id=submission.gitlab_project_id,
        merge_request_id=submission.gitlab_merge_request_id,
        commit_sha=submission.gitlab_commit_sha,
        review_url=build_review_url(
            submission.gitlab_project_id, submission.gitlab_merge_request_id
        ),
    )


def attach_comment_ids(result: ReviewResult, posted: list[PostedComment]) -> ReviewResult:
    """Record the ids of posted comments on the result's integration block."""
    if result.gitlab_integration is None:
        raise ValueError("Review has no GitLab integration metadata")
    result.gitlab_integration.comment_ids.extend(p.id for p in posted)
    return result


def format_comment_body(comment: CodeComment) -> str:
    body = f"**{comment.type.upper()}**: {comment.text}"
    if comment.suggestion:
        body += f"\n\nSuggestion: {comment.suggestion}"
    return body


# ---------------------------------------------------------------------------
# REST client
# ---------------------------------------------------------------------------
class GitLabClient:
    """Thin wrapper over the GitLab v4 REST API."""

    def __init__(
        self,
        token: str,
        base_url: str = GITLAB_API_URL,
        session: requests.Session | None = None,
        timeout: float = 30.0,
    ):
        if not token:
            raise ValueError(
                "GITLAB_TOKEN not found. Set it in .env file.\n"
                "Create one at: https://gitlab.com/-/user_settings/personal_access_tokens"
            )
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.session.headers.update(
            {"PRIVATE-TOKEN": token, "Content-Type": "application/json"}
        )
        self.timeout = timeout

    @classmethod
    def from_env(cls) -> "GitLabClient":
        return cls(os.getenv("GITLAB_TOKEN", ""), base_url=GITLAB_API_URL)

    def _url(self, project_id: int, merge_request_id: int, suffix: str) -> str:
        return (
            f"{self.base_url}/projects/{project_id}"
            f"/merge_requests/{merge_request_id}/{suffix}"
        )

    # -- Read operations ---------------------------------------------------
    @with_retry(max_retries=2, delay=1.0, retryable=_TRANSIENT_ERRORS)
    def get_diff_refs(self, project_id: int, merge_request_id: int) -> DiffRefs:
        """
        Fetch the diff refs of a merge request.

        Raises:
            ValueError: If the merge request is not found or access denied
        """
        response = self.session.get(
            self._url(project_id, merge_request_id, "changes"), timeout=self.timeout
        )
        if response.status_code == 404:
            raise ValueError(
                f"Merge request !{merge_request_id} not found in project {project_id}"
            )
        _raise_for_status(response, "fetch merge request")

        refs = response.json().get("diff_refs") or {}
        try:
            return DiffRefs(
                base_sha=refs["base_sha"],
                start_sha=refs["start_sha"],
                head_sha=refs["head_sha"],
            )
        except KeyError as e:
            raise ValueError(f"Merge request has no diff refs: missing {e}") from e

    # -- Write operations --------------------------------------------------
    def create_note(self, project_id: int, merge_request_id: int, body: str) -> int:
        """Post a general (non-line) note; returns its id."""
        response = self.session.post(
            self._url(project_id, merge_request_id, "notes"),
            json={"body": body},
            timeout=self.timeout,
        )
        _raise_for_status(response, "post comment")
        return response.json()["id"]

    def create_line_discussion(
        self,
        project_id: int,
        merge_request_id: int,
        body: str,
        refs: DiffRefs,
        path: str,
        line: int,
    ) -> int:
        """Post a comment anchored to *line* of *path*; returns its id."""
        response = self.session.post(
            self._url(project_id, merge_request_id, "discussions"),
            json={
                "body": body,
                "position": {
                    "base_sha": refs.base_sha,
                    "start_sha": refs.start_sha,
                    "head_sha": refs.head_sha,
                    "position_type": "text",
                    "new_line": line,
                    "new_path": path,
                    "old_path": path,
                },
            },
            timeout=self.timeout,
        )
        _raise_for_status(response, "post line comment")
        return response.json()["id"]

    def post_review_comments(
        self,
        project_id: int,
        merge_request_id: int,
        comments: list[CodeComment],
    ) -> list[PostedComment]:
        """
        Post review comments to a merge request.

        Line comments become positioned discussions; anything without a
        usable line is collected into one summary note.

        Returns:
            The posted comments, in posting order
        """
        refs = self.get_diff_refs(project_id, merge_request_id)
        posted: list[PostedComment] = []

        line_comments = [c for c in comments if c.line > 0]
        general_comments = [c for c in comments if c.line <= 0]

        for comment in line_comments:
            path = comment.file or DEFAULT_FILE_PATH
            body = format_comment_body(comment)
            comment_id = self.create_line_discussion(
                project_id, merge_request_id, body, refs, path, comment.line
            )
            posted.append(PostedComment(id=comment_id, body=body, line=comment.line, file=path))

        if general_comments:
            body = "# Code Review Summary\n\n" + "\n\n".join(
                format_comment_body(c) for c in general_comments
            )
            comment_id = self.create_note(project_id, merge_request_id, body)
            posted.append(PostedComment(id=comment_id, body=body, line=0, file=None))

        logger.info(
            "Posted %d comment(s) on merge request !%d", len(posted), merge_request_id
        )
        return posted


def _raise_for_status(response: requests.Response, action: str) -> None:
    if response.status_code < 400:
        return
    try:
        message = response.json().get("message", response.text)
    except ValueError:
        message = response.text
    logger.error("GitLab API error (%s): %s", action, message)
    raise ValueError(f"Failed to {action}: {message}")
