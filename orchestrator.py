"""
Review orchestrator - LangGraph-based review pipeline.

The pipeline is a strictly linear fallback chain:

    static_analysis --> ai_review --> merge ----------------> finalize
           |                |                                    ^
           +----------------+--> synthesize_fallback ------------+

Providers are tried one after another (never concurrently). If none of
them produces a result, a static-only result is synthesised from the
pattern analyzer's findings. ``review()`` never raises.
"""

import logging
from dataclasses import dataclass, field

from langgraph.graph import END, START, StateGraph

import config
from analyzer import analyze
from gitlab_client import build_integration_metadata
from models import CodeComment, CodeSubmission, ReviewResult
from normalizer import merge_results, synthesize_static_result
from providers import ProviderClient

logger = logging.getLogger(__name__)


# =============================================================================
# STATE DEFINITION
# =============================================================================
@dataclass
class ReviewState:
    """State that flows through the review graph."""

    # Input (required)
    submission: CodeSubmission

    # Populated by nodes
    static_findings: list[CodeComment] = field(default_factory=list)
    analyzer_failed: bool = False
    ai_result: ReviewResult | None = None
    provider: str | None = None  # name of the provider that answered

    # Output
    result: ReviewResult | None = None


def _get(state, key: str):
    # LangGraph may pass state as dict or dataclass
    return state.get(key) if isinstance(state, dict) else getattr(state, key)


# =============================================================================
# ORCHESTRATOR
# =============================================================================
class ReviewOrchestrator:
    """
    Runs one submission through static analysis and the provider chain.

    Args:
        providers: Provider clients in priority order (may be empty)
        store: Optional persistence collaborator with a ``create_review``
               method; called once per finished review
    """

    def __init__(self, providers: list[ProviderClient], store=None):
        self.providers = list(providers)
        self.store = store
        self.agent = self.build_graph().compile()

    # -------------------------------------------------------------------------
    # Public entry point
    # -------------------------------------------------------------------------
    def review(self, submission: CodeSubmission) -> ReviewResult:
        """Review *submission*; always returns a well-formed result."""
        logger.info(
            "🤖 Reviewing %s snippet (%s, %d lines)",
            submission.language,
            submission.review_type.value,
            submission.code.count("\n") + 1,
        )
        try:
            final_state = self.agent.invoke(ReviewState(submission=submission))
            result = final_state.get("result")
            if result is not None:
                return result
            logger.error("Review graph finished without a result")
        except Exception:
            logger.exception("Review pipeline failed unexpectedly")

        return synthesize_static_result([], submission.language)

    # -------------------------------------------------------------------------
    # Nodes
    # -------------------------------------------------------------------------
    def static_analysis(self, state: ReviewState) -> dict:
        """
        Node 1: Run the pattern analyzer.

        Reads: submission
        Updates: static_findings, analyzer_failed
        """
        try:
            findings = analyze(state.submission)
        except Exception:
            logger.exception("Pattern analyzer failed, continuing without findings")
            return {"static_findings": [], "analyzer_failed": True}

        logger.info("🔎 Static analysis: %d finding(s)", len(findings))
        return {"static_findings": findings}

    def ai_review(self, state: ReviewState) -> dict:
        """
        Node 2: Ask each provider in turn until one returns a result.

        Reads: submission
        Updates: ai_result, provider
        """
        for provider in self.providers:
            try:
                prompt = provider.build_prompt(state.submission)
                result = provider.request_review(prompt)
            except Exception:
                logger.exception("Provider %s raised unexpectedly", provider.name)
                result = None

            if result is not None:
                logger.info("✅ Got analysis from %s", provider.name)
                return {"ai_result": result, "provider": provider.name}

            logger.warning("Provider %s returned nothing, trying next", provider.name)

        return {"ai_result": None, "provider": None}

    def merge(self, state: ReviewState) -> dict:
        """
        Node 3a: Merge static findings into the AI result.

        Reads: ai_result, static_findings
        Updates: result
        """
        return {"result": merge_results(state.ai_result, state.static_findings)}

    def synthesize_fallback(self, state: ReviewState) -> dict:
        """
        Node 3b: Build a static-only result.

        Reads: static_findings, submission
        Updates: result
        """
        logger.warning(
            "All AI providers failed or unavailable, falling back to static analysis"
        )
        return {
            "result": synthesize_static_result(
                state.static_findings, state.submission.language
            )
        }

    def finalize(self, state: ReviewState) -> dict:
        """
        Node 4: Attach merge-request metadata and hand off to storage.

        Reads: result, submission
        Updates: result
        """
        result = state.result
        integration = build_integration_metadata(state.submission)
        if integration is not None:
            result.gitlab_integration = integration

        if self.store is not None:
            try:
                self.store.create_review(state.submission, result)
            except Exception as e:
                logger.error("Failed to store review: %s", e)

        return {"result": result}

    # -------------------------------------------------------------------------
    # Decision functions (for conditional edges)
    # -------------------------------------------------------------------------
    @staticmethod
    def route_after_static(state: ReviewState) -> str:
        if _get(state, "analyzer_failed"):
            return "synthesize_fallback"
        return "ai_review"

    @staticmethod
    def route_after_ai(state: ReviewState) -> str:
        if _get(state, "ai_result") is not None:
            return "merge"
        return "synthesize_fallback"

    # -------------------------------------------------------------------------
    # Graph construction
    # -------------------------------------------------------------------------
    def build_graph(self) -> StateGraph:
        """Build the linear review workflow graph."""
        graph = StateGraph(ReviewState)

        graph.add_node("static_analysis", self.static_analysis)
        graph.add_node("ai_review", self.ai_review)
        graph.add_node("merge", self.merge)
        graph.add_node("synthesize_fallback", self.synthesize_fallback)
        graph.add_node("finalize", self.finalize)

        graph.add_edge(START, "static_analysis")
        graph.add_conditional_edges(
            "static_analysis",
            self.route_after_static,
            {
                "ai_review": "ai_review",
                "synthesize_fallback": "synthesize_fallback",
            },
        )
        graph.add_conditional_edges(
            "ai_review",
            self.route_after_ai,
            {
                "merge": "merge",
                "synthesize_fallback": "synthesize_fallback",
            },
        )
        graph.add_edge("merge", "finalize")
        graph.add_edge("synthesize_fallback", "finalize")
        graph.add_edge("finalize", END)

        return graph


def review(submission: CodeSubmission, providers: list[ProviderClient] | None = None) -> ReviewResult:
    """Convenience wrapper: review with *providers* or the configured chain."""
    if providers is None:
        return config.build_orchestrator().review(submission)
    return ReviewOrchestrator(providers).review(submission)
