"""Pytest configuration and fixtures for the review pipeline tests."""

import json

import pytest

from models import CodeSubmission
from providers import ProviderClient, ProviderError


class ScriptedProvider(ProviderClient):
    """
    Provider whose raw completions come from a per-model script.

    Each script entry is either a string (returned as the completion) or an
    exception instance (raised). The last entry repeats once the others
    are used up. Every call is recorded in ``calls``.
    """

    name = "scripted"

    def __init__(
        self,
        script: dict[str, list],
        model: str = "primary",
        fallback_model: str | None = "secondary",
        allow_text_results: bool = False,
        name: str | None = None,
        call_log: list | None = None,
        **kwargs,
    ):
        kwargs.setdefault("retry_delay", 0)
        super().__init__(model, fallback_model, **kwargs)
        self.script = {m: list(outcomes) for m, outcomes in script.items()}
        self.allow_text_results = allow_text_results
        self.calls: list[str] = []
        self.call_log = call_log
        if name:
            self.name = name

    def build_prompt(self, submission: CodeSubmission) -> str:
        return f"Review this {submission.language} code:\n{submission.code}"

    def _generate(self, prompt: str, model: str) -> str:
        self.calls.append(model)
        if self.call_log is not None:
            self.call_log.append((self.name, model))
        outcomes = self.script.get(model) or [ProviderError("no script for model")]
        outcome = outcomes.pop(0) if len(outcomes) > 1 else outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def ai_payload() -> dict:
    """A well-formed provider answer as a dict."""
    return {
        "metrics": {
            "overall": {"grade": "B", "score": 82},
            "maintainability": {"grade": "B+", "score": 86},
            "performance": {"grade": "A-", "score": 90, "change": 4.5},
            "security": {"grade": "A", "score": 94},
        },
        "comments": [
            {"line": 2, "text": "Use strict equality", "type": "warning"},
            {
                "line": 1,
                "text": "Prefer const for values that never change",
                "type": "suggestion",
                "suggestion": "const x = 1;",
            },
        ],
        "improvedCode": "const x = 1;\nif (x === 1) { console.log(x); }",
        "keyImprovements": ["Use const", "Use strict equality"],
        "issues": {
            "critical": 0,
            "warnings": 1,
            "info": 1,
            "types": [
                {
                    "name": "Style",
                    "description": "Modern JavaScript idioms",
                    "severity": "low",
                }
            ],
        },
    }


@pytest.fixture
def ai_response(ai_payload) -> str:
    """The well-formed answer serialised the way a model returns it."""
    return json.dumps(ai_payload)


@pytest.fixture
def js_submission() -> CodeSubmission:
    return CodeSubmission(
        language="JavaScript",
        review_type="Comprehensive",
        code="var x = 1;\nif (x == 1) { console.log(x); }",
    )


@pytest.fixture
def failing_provider():
    """A provider whose primary and fallback models always fail."""

    def factory(**kwargs) -> ScriptedProvider:
        return ScriptedProvider(
            {
                "primary": [ProviderError("boom")],
                "secondary": [ProviderError("boom")],
            },
            **kwargs,
        )

    return factory
