"""AI provider clients: one adapter per backend behind a shared contract."""

import logging
from abc import ABC, abstractmethod

import requests
from google import genai
from google.api_core.exceptions import (
    GoogleAPICallError,
    ServiceUnavailable,
    TooManyRequests,
)
from google.genai import errors as genai_errors

from config import (
    GEMINI_FALLBACK_MODEL,
    GEMINI_MODEL,
    HF_API_URL,
    HF_FALLBACK_MODEL,
    HF_MODEL,
    HF_TIMEOUT,
    MAX_RETRIES,
    RETRY_DELAY,
    with_retry,
)
from mock_data import MOCK_RESPONSE
from models import CodeSubmission, ReviewResult
from parsing import (
    parse_review_json,
    strip_code_fence,
    synthesize_result_from_text,
)
from prompts import INSTRUCT_PROMPT, REVIEW_PROMPT, SYSTEM_PROMPT, build_review_prompt

logger = logging.getLogger(__name__)

# Hard quota only; Gemini reports per-minute limits as "exceeded your current quota"
_QUOTA_MARKERS = ("insufficient_quota", "credits", "billing account", "payment required")


# ---------------------------------------------------------------------------
# Error taxonomy
# ---------------------------------------------------------------------------
class ProviderError(Exception):
    """A provider call failed; not worth retrying on the same model."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status

    @classmethod
    def from_status(cls, status: int | None, message: str) -> "ProviderError":
        """Pick the error class matching an HTTP status and message."""
        lowered = (message or "").lower()
        if status == 429:
            if any(marker in lowered for marker in _QUOTA_MARKERS):
                return QuotaExhaustedError(message, status)
            return RateLimitError(message, status)
        if status == 402:
            return QuotaExhaustedError(message, status)
        return ProviderError(message, status)


class RateLimitError(ProviderError):
    """Transient rate limit or overload; retried on the same model."""


class QuotaExhaustedError(ProviderError):
    """Quota or access exhausted; skip straight to the fallback model."""


# ---------------------------------------------------------------------------
# Base client
# ---------------------------------------------------------------------------
class ProviderClient(ABC):
    """
    Shared retry / fallback policy for a single AI backend.

    Subclasses only build prompts and perform one raw completion;
    ``request_review`` never raises and returns either a complete,
    validated ReviewResult or ``None``.
    """

    name: str = "provider"
    # Some backends answer in prose; salvage those instead of failing
    allow_text_results: bool = False

    def __init__(
        self,
        model: str,
        fallback_model: str | None = None,
        max_retries: int = MAX_RETRIES,
        retry_delay: float = RETRY_DELAY,
    ):
        self.model = model
        self.fallback_model = fallback_model
        self.max_retries = max_retries
        self.retry_delay = retry_delay

    @abstractmethod
    def build_prompt(self, submission: CodeSubmission) -> str:
        """Return the backend-specific review prompt."""

    @abstractmethod
    def _generate(self, prompt: str, model: str) -> str:
        """Run one completion and return the raw text; raise ProviderError."""

    def request_review(self, prompt: str, model_id: str | None = None) -> ReviewResult | None:
        """Ask the primary model, then the fallback model once."""
        model = model_id or self.model

        result = self._try_model(prompt, model)
        if result is not None:
            return result

        if self.fallback_model and self.fallback_model != model:
            logger.info(
                "%s: primary model (%s) failed, trying fallback model (%s)...",
                self.name,
                model,
                self.fallback_model,
            )
            result = self._try_model(prompt, self.fallback_model)
            if result is not None:
                logger.info("%s: got analysis from fallback model", self.name)
                return result

        logger.error("%s: all models failed", self.name)
        return None

    def _try_model(self, prompt: str, model: str) -> ReviewResult | None:
        """One model with its own retry budget; ``None`` on any failure."""
        call = with_retry(
            max_retries=self.max_retries,
            delay=self.retry_delay,
            retryable=(RateLimitError,),
        )(self._generate)

        try:
            logger.info("%s: requesting review from %s", self.name, model)
            text = call(prompt, model)
        except RateLimitError as e:
            logger.warning(
                "%s: %s still rate limited after %d retries: %s",
                self.name,
                model,
                self.max_retries,
                e,
            )
            return None
        except QuotaExhaustedError as e:
            logger.warning("%s: quota exhausted for %s: %s", self.name, model, e)
            return None
        except Exception as e:
            logger.error("%s: call to %s failed: %s", self.name, model, e)
            return None

        result = parse_review_json(text)
        if result is None and self.allow_text_results:
            result = synthesize_result_from_text(strip_code_fence(text), model)
        if result is None:
            logger.error("%s: unusable response from %s", self.name, model)
        return result


# ---------------------------------------------------------------------------
# Gemini (service A)
# ---------------------------------------------------------------------------
_RETRYABLE_GEMINI_ERRORS: tuple[type[Exception], ...] = (ServiceUnavailable, TooManyRequests)
_RETRYABLE_GEMINI_STATUS = (429, 503)


class GeminiProvider(ProviderClient):
    """Google Gemini via the ``google-genai`` SDK, JSON response mode."""

    name = "gemini"

    def __init__(
        self,
        client: genai.Client,
        model: str = GEMINI_MODEL,
        fallback_model: str | None = GEMINI_FALLBACK_MODEL,
        **kwargs,
    ):
        super().__init__(model, fallback_model, **kwargs)
        self.client = client

    @classmethod
    def from_api_key(cls, api_key: str, **kwargs) -> "GeminiProvider":
        return cls(genai.Client(api_key=api_key), **kwargs)

    def build_prompt(self, submission: CodeSubmission) -> str:
        return build_review_prompt(submission, REVIEW_PROMPT)

    def _generate(self, prompt: str, model: str) -> str:
        try:
            response = self.client.models.generate_content(
                model=model,
                contents=prompt,
                config={
                    "system_instruction": SYSTEM_PROMPT,
                    "response_mime_type": "application/json",
                    "temperature": 0.1,
                },
            )
        except genai_errors.APIError as e:
            code = getattr(e, "code", None)
            message = getattr(e, "message", None) or str(e)
            if code in _RETRYABLE_GEMINI_STATUS:
                raise RateLimitError(message, code) from e
            raise ProviderError.from_status(code, message) from e
        except _RETRYABLE_GEMINI_ERRORS as e:
            raise RateLimitError(e.message or str(e), e.code) from e
        except GoogleAPICallError as e:
            raise ProviderError.from_status(e.code, e.message or str(e)) from e

        if not response.text:
            raise ProviderError("Empty response from Gemini API")
        return response.text


# ---------------------------------------------------------------------------
# Hugging Face Inference API (service B, open-weight models)
# ---------------------------------------------------------------------------
class HuggingFaceProvider(ProviderClient):
    """Hosted open-weight models over the Hugging Face Inference REST API."""

    name = "huggingface"
    allow_text_results = True

    def __init__(
        self,
        api_key: str,
        session: requests.Session | None = None,
        model: str = HF_MODEL,
        fallback_model: str | None = HF_FALLBACK_MODEL,
        api_url: str = HF_API_URL,
        timeout: float = HF_TIMEOUT,
        **kwargs,
    ):
        super().__init__(model, fallback_model, **kwargs)
        self.api_key = api_key
        self.session = session or requests.Session()
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout

    @classmethod
    def from_api_key(cls, api_key: str, **kwargs) -> "HuggingFaceProvider":
        return cls(api_key, **kwargs)

    def build_prompt(self, submission: CodeSubmission) -> str:
        return build_review_prompt(submission, INSTRUCT_PROMPT)

    def _generate(self, prompt: str, model: str) -> str:
        payload = {
            "inputs": prompt,
            "parameters": {
                "max_new_tokens": 4096,
                "temperature": 0.1,
                "top_p": 0.95,
                "top_k": 40,
                "repetition_penalty": 1.1,
                "return_full_text": False,
            },
        }
        try:
            response = self.session.post(
                f"{self.api_url}/{model}",
                headers={"Authorization": f"Bearer {self.api_key}"},
                json=payload,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise ProviderError(f"Hugging Face request failed: {e}") from e

        if response.status_code >= 400:
            message = _error_message(response)
            if "You don't have access to" in message:
                logger.error(
                    "Model access error for %s. Accept the model's terms of use "
                    "on huggingface.co to enable it.",
                    model,
                )
            raise ProviderError.from_status(response.status_code, message)

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError("Hugging Face returned a non-JSON body") from e

        if isinstance(data, list) and data:
            data = data[0]
        text = data.get("generated_text", "") if isinstance(data, dict) else ""
        if not text:
            raise ProviderError("Empty response from Hugging Face API")
        return text


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return response.text or f"HTTP {response.status_code}"


# ---------------------------------------------------------------------------
# Mock (no network)
# ---------------------------------------------------------------------------
class MockProvider(ProviderClient):
    """Returns a canned response; used with USE_MOCK and in tests."""

    name = "mock"

    def __init__(self, response: str = MOCK_RESPONSE, **kwargs):
        super().__init__("mock-model", None, **kwargs)
        self.response = response

    def build_prompt(self, submission: CodeSubmission) -> str:
        return build_review_prompt(submission, REVIEW_PROMPT)

    def _generate(self, prompt: str, model: str) -> str:
        return self.response
