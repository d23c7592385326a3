"""Data models for code submissions and review results."""

import re
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

CommentType = Literal["error", "warning", "suggestion", "info"]
IssueSeverity = Literal["high", "medium", "low"]

MAX_KEY_IMPROVEMENTS = 6


class ReviewType(str, Enum):
    """Narrows the emphasis of the AI review."""

    COMPREHENSIVE = "Comprehensive"
    SYNTAX_ONLY = "Syntax Only"
    SECURITY_FOCUS = "Security Focus"
    PERFORMANCE_FOCUS = "Performance Focus"

    @classmethod
    def _missing_(cls, value):
        # Accept "SyntaxOnly", "syntax_only", "security-focus", ...
        if isinstance(value, str):
            wanted = re.sub(r"[^a-z]", "", value.lower())
            for member in cls:
                if re.sub(r"[^a-z]", "", member.value.lower()) == wanted:
                    return member
        return None


class _CamelModel(BaseModel):
    """Accepts snake_case or camelCase keys, serialises as camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CodeSubmission(_CamelModel):
    """A snippet submitted for review (immutable)."""

    model_config = ConfigDict(frozen=True)

    language: str = Field(min_length=1)
    review_type: ReviewType = ReviewType.COMPREHENSIVE
    code: str
    # Linked merge request (optional)
    gitlab_project_id: int | None = None
    gitlab_merge_request_id: int | None = None
    gitlab_commit_sha: str | None = None

    @field_validator("review_type", mode="before")
    @classmethod
    def _coerce_review_type(cls, value):
        if isinstance(value, str):
            return ReviewType(value)
        return value


class CodeComment(_CamelModel):
    """A single line-attributed finding."""

    line: int = Field(ge=1, description="1-based source line")
    text: str = Field(description="What the issue is")
    type: CommentType
    suggestion: str | None = Field(default=None, description="Replacement code")
    file: str | None = Field(default=None, description="Path in multi-file contexts")


class MetricScore(_CamelModel):
    grade: str
    score: int = Field(ge=0, le=100)
    change: float | None = None


class Metrics(_CamelModel):
    overall: MetricScore
    maintainability: MetricScore
    performance: MetricScore
    security: MetricScore


class IssueType(_CamelModel):
    name: str
    description: str
    severity: IssueSeverity


class IssuesSummary(_CamelModel):
    """Aggregate counts; info covers both info and suggestion comments."""

    critical: int = Field(default=0, ge=0)
    warnings: int = Field(default=0, ge=0)
    info: int = Field(default=0, ge=0)
    types: list[IssueType] = Field(default_factory=list)


class GitlabIntegration(_CamelModel):
    """Merge-request metadata attached to a result."""

    project_id: int
    merge_request_id: int
    commit_sha: str | None = None
    review_url: str
    comment_ids: list[int] = Field(default_factory=list)


class ReviewResult(_CamelModel):
    """Complete review returned to the caller."""

    metrics: Metrics
    comments: list[CodeComment] = Field(default_factory=list)
    improved_code: str | None = None
    key_improvements: list[str] | None = Field(
        default=None, max_length=MAX_KEY_IMPROVEMENTS
    )
    issues: IssuesSummary
    gitlab_integration: GitlabIntegration | None = None

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)

    def to_json(self, indent: int = 2) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True, indent=indent)
