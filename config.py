"""Shared configuration and utilities for the review pipeline."""

import functools
import logging
import os
import time

from dotenv import load_dotenv

# ---------------------------------------------------------------------------
# Environment & logging (initialised once on first import)
# ---------------------------------------------------------------------------
load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
USE_MOCK: bool = os.getenv("USE_MOCK", "false").lower() == "true"

GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
GEMINI_FALLBACK_MODEL: str = os.getenv("GEMINI_FALLBACK_MODEL", "gemini-2.5-flash-lite")

HF_MODEL: str = os.getenv("HF_MODEL", "meta-llama/Llama-2-70b-chat-hf")
HF_FALLBACK_MODEL: str = os.getenv(
    "HF_FALLBACK_MODEL", "codellama/CodeLlama-34b-Instruct-hf"
)
HF_API_URL: str = os.getenv("HF_API_URL", "https://api-inference.huggingface.co/models")
HF_TIMEOUT: float = 120.0

GITLAB_API_URL: str = os.getenv("GITLAB_API_URL", "https://gitlab.com/api/v4")
GITLAB_WEB_URL: str = os.getenv("GITLAB_WEB_URL", "https://gitlab.com")

# Retries AFTER the first attempt: a budget of 2 means at most 3 calls per model
MAX_RETRIES: int = 2
RETRY_DELAY: float = 1.0  # seconds, constant between attempts

# Non-JSON responses shorter than this are not worth synthesising from
SYNTHETIC_MIN_CHARS: int = 100


# ---------------------------------------------------------------------------
# Retry decorator
# ---------------------------------------------------------------------------
def with_retry(
    max_retries: int = MAX_RETRIES,
    delay: float = RETRY_DELAY,
    retryable: tuple[type[Exception], ...] = (Exception,),
):
    """Decorator: retry a function up to *max_retries* times with a fixed delay.

    The first call is not counted, so the wrapped function runs at most
    ``max_retries + 1`` times. The last retryable exception is re-raised
    once the budget is spent; anything else propagates immediately.
    """

    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            last_exc: Exception | None = None
            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except retryable as exc:
                    last_exc = exc
                    if attempt < max_retries:
                        logger.warning(
                            "Attempt %d/%d for %s failed: %s. Retrying in %.1fs…",
                            attempt + 1,
                            max_retries + 1,
                            getattr(func, "__name__", "call"),
                            exc,
                            delay,
                        )
                        time.sleep(delay)
            raise last_exc  # type: ignore[misc]

        return wrapper

    return decorator


# ---------------------------------------------------------------------------
# Provider wiring
# ---------------------------------------------------------------------------
def build_providers(use_mock: bool = USE_MOCK) -> list:
    """Construct the ordered provider chain from the environment.

    Each client is created once here and handed to the orchestrator;
    a provider whose API key is missing is left out of the chain.
    """
    from providers import GeminiProvider, HuggingFaceProvider, MockProvider

    if use_mock:
        logger.info("[MOCK MODE - No API calls will be made]")
        return [MockProvider()]

    providers: list = []

    gemini_key = os.getenv("GEMINI_API_KEY")
    if gemini_key:
        providers.append(GeminiProvider.from_api_key(gemini_key))
    else:
        logger.info("GEMINI_API_KEY not set, skipping Gemini provider")

    hf_key = os.getenv("HUGGINGFACE_API_KEY")
    if hf_key:
        providers.append(HuggingFaceProvider.from_api_key(hf_key))
    else:
        logger.info("HUGGINGFACE_API_KEY not set, skipping Hugging Face provider")

    if not providers:
        logger.warning("No AI providers configured, reviews will be static-only")
    return providers


def build_orchestrator(use_mock: bool = USE_MOCK, store=None):
    """Create a ReviewOrchestrator wired with the configured providers.

    Finished reviews go to *store*, or to a fresh in-memory ReviewStore.
    """
    from orchestrator import ReviewOrchestrator
    from storage import ReviewStore

    if store is None:
        store = ReviewStore()
    return ReviewOrchestrator(providers=build_providers(use_mock), store=store)
