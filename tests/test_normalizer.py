"""Tests for merging AI and static results and the static-only fallback."""

import pytest

from models import CodeComment, ReviewResult
from normalizer import (
    STATIC_KEY_IMPROVEMENTS,
    grade_static_findings,
    is_static_only,
    merge_results,
    recount_issues,
    synthesize_static_result,
)


def comment(line, type_="warning", text=None):
    return CodeComment(line=line, type=type_, text=text or f"{type_} on line {line}")


@pytest.fixture
def ai_result(ai_payload) -> ReviewResult:
    return ReviewResult.model_validate(ai_payload)


class TestRecountIssues:
    def test_counts_follow_comments(self, ai_result):
        ai_result.issues.critical = 9
        ai_result.comments.append(comment(5, "error"))
        recount_issues(ai_result)
        assert (ai_result.issues.critical, ai_result.issues.warnings, ai_result.issues.info) == (
            1,
            1,
            1,
        )


class TestMergeResults:
    def test_exact_duplicate_skipped(self, ai_result):
        duplicate = CodeComment(line=2, text="Use strict equality", type="warning")
        merged = merge_results(ai_result, [duplicate])
        assert len(merged.comments) == 2
        assert merged.issues.warnings == 1

    def test_same_line_different_text_kept(self, ai_result):
        merged = merge_results(ai_result, [comment(2, "warning", "Avoid console.log")])
        assert len(merged.comments) == 3
        assert merged.issues.warnings == 2

    def test_same_text_different_line_kept(self, ai_result):
        merged = merge_results(
            ai_result, [CodeComment(line=7, text="Use strict equality", type="warning")]
        )
        assert len(merged.comments) == 3

    def test_counts_are_additive(self, ai_result):
        findings = [comment(3, "error"), comment(4, "suggestion"), comment(6, "info")]
        merged = merge_results(ai_result, findings)
        assert (merged.issues.critical, merged.issues.warnings, merged.issues.info) == (
            1,
            1,
            3,
        )
        assert merged.issues.critical + merged.issues.warnings + merged.issues.info == len(
            merged.comments
        )

    def test_sorted_by_line_ai_first_on_ties(self, ai_result):
        merged = merge_results(ai_result, [comment(1, "info", "Trailing whitespace"), comment(4)])
        assert [c.line for c in merged.comments] == [1, 1, 2, 4]
        assert merged.comments[0].text == "Prefer const for values that never change"

    def test_provider_counts_corrected(self, ai_result):
        ai_result.issues.warnings = 40
        merged = merge_results(ai_result, [])
        assert merged.issues.warnings == 1

    def test_other_fields_preserved(self, ai_result):
        merged = merge_results(ai_result, [comment(9)])
        assert merged.metrics.overall.score == 82
        assert merged.key_improvements == ["Use const", "Use strict equality"]
        assert merged.issues.types[0].name == "Style"


class TestGradeStaticFindings:
    @pytest.mark.parametrize(
        "types, expected",
        [
            ([], ("A-", 90)),
            (["suggestion", "info", "info"], ("A-", 90)),
            (["warning"], ("B+", 85)),
            (["warning", "warning", "suggestion"], ("B+", 85)),
            (["warning", "warning", "warning"], ("B-", 80)),
            (["error"], ("B-", 80)),
            (["error", "warning", "info", "info", "info"], ("B-", 80)),
            (["error", "info", "info", "info", "info", "info"], ("C", 70)),
            (["error", "error"], ("C", 70)),
            (["error", "error", "error"], ("D+", 65)),
            (["warning"] * 6, ("C", 70)),
        ],
    )
    def test_thresholds(self, types, expected):
        findings = [comment(i + 1, t) for i, t in enumerate(types)]
        assert grade_static_findings(findings) == expected


class TestSynthesizeStaticResult:
    def test_shape(self):
        findings = [comment(4, "warning"), comment(2, "suggestion")]
        result = synthesize_static_result(findings, "JavaScript")

        assert result.metrics.overall.grade == "B+"
        assert result.metrics.maintainability.score == 85
        assert (result.metrics.performance.grade, result.metrics.performance.score) == ("C+", 75)
        assert (result.metrics.security.grade, result.metrics.security.score) == ("C", 70)
        assert [c.line for c in result.comments] == [2, 4]
        assert (result.issues.critical, result.issues.warnings, result.issues.info) == (0, 1, 1)
        assert [t.name for t in result.issues.types] == [
            "Analysis Limitations",
            "Static Analysis",
        ]
        assert "JavaScript" in result.issues.types[1].description
        assert result.key_improvements == STATIC_KEY_IMPROVEMENTS
        assert result.improved_code is None

    def test_no_findings(self):
        result = synthesize_static_result([], "Go")
        assert result.comments == []
        assert result.metrics.overall.score == 90
        assert result.issues.critical == 0

    def test_metric_objects_not_shared(self):
        first = synthesize_static_result([], "Go")
        second = synthesize_static_result([], "Go")
        first.metrics.security.score = 1
        assert second.metrics.security.score == 70

    def test_is_static_only(self, ai_payload):
        assert is_static_only(synthesize_static_result([], "Go"))
        assert not is_static_only(ReviewResult.model_validate(ai_payload))
