"""Base interface for AI scoring providers."""

import json
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Dict

import anthropic
import httpx
from pydantic import ValidationError
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)

from ..errors import ProviderError
from ..models.evaluation import AIEvaluationRequest, AIEvaluationResponse, DetailedAnalysis

logger = logging.getLogger(__name__)

# Standard timeout for provider calls: 30s connect, 120s read
PROVIDER_TIMEOUT = httpx.Timeout(connect=30.0, read=120.0, write=30.0, pool=30.0)

RETRYABLE_ERRORS = (
    httpx.HTTPError,
    anthropic.APIConnectionError,
    anthropic.RateLimitError,
    anthropic.InternalServerError,
)

VALID_RECOMMENDATIONS = ("selected", "pre_selected", "rejected")


class ScoringProvider(ABC):
    """Abstract base class for machine scoring backends."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier (mock, anthropic, openai)."""
        pass

    @abstractmethod
    async def request_scores(self, request: AIEvaluationRequest) -> AIEvaluationResponse:
        """Ask the backend for per-criterion scores.

        Returns:
            Parsed provider response, scores keyed by criterion name.
        """
        pass

    async def evaluate(self, request: AIEvaluationRequest) -> AIEvaluationResponse:
        """Score with structured logging; every failure surfaces as ProviderError.

        This is the entry point callers should use.
        """
        start = time.monotonic()
        try:
            response = await self.request_scores(request)
        except ProviderError as exc:
            self._log_failure(request, exc, start)
            raise
        except Exception as exc:
            self._log_failure(request, exc, start)
            raise ProviderError(f"{self.provider_name} evaluation failed: {exc}") from exc

        duration_ms = (time.monotonic() - start) * 1000
        logger.info(
            "ai_evaluation provider=%s project=%r result=success scores=%d duration_ms=%.0f",
            self.provider_name,
            request.project_data.title,
            len(response.scores),
            duration_ms,
        )
        return response

    def _log_failure(self, request: AIEvaluationRequest, exc: Exception, start: float) -> None:
        duration_ms = (time.monotonic() - start) * 1000
        logger.error(
            "ai_evaluation provider=%s project=%r result=failure error=%s duration_ms=%.0f",
            self.provider_name,
            request.project_data.title,
            exc,
            duration_ms,
        )


def provider_retry():
    """Retry decorator for provider calls: 3 attempts, exponential backoff."""
    return retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type(RETRYABLE_ERRORS),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )


def parse_provider_response(text: str) -> AIEvaluationResponse:
    """Parse a provider's JSON answer leniently.

    Markdown fences are stripped and, failing a direct parse, the outermost
    ``{...}`` substring is tried. Non-numeric scores are dropped and an
    unknown recommendation is left unset for the caller to derive.

    Raises:
        ProviderError: when no JSON object can be recovered
    """

    cleaned = text.strip()
    if cleaned.startswith("```json"):
        cleaned = cleaned[7:]
    elif cleaned.startswith("```"):
        cleaned = cleaned[3:]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]
    cleaned = cleaned.strip()

    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        start = cleaned.find("{")
        end = cleaned.rfind("}")
        if start == -1 or end <= start:
            raise ProviderError(f"Provider response is not JSON: {cleaned[:200]!r}") from exc
        try:
            data = json.loads(cleaned[start:end + 1])
        except json.JSONDecodeError as exc2:
            raise ProviderError(f"Provider response is not JSON: {exc2}") from exc2

    if not isinstance(data, dict):
        raise ProviderError("Provider response must be a JSON object")

    return AIEvaluationResponse(
        scores=_numeric_scores(data.get("scores")),
        notes=str(data.get("notes") or ""),
        recommendation=(
            data.get("recommendation")
            if data.get("recommendation") in VALID_RECOMMENDATIONS
            else None
        ),
        detailed_analysis=_detailed_analysis(
            data.get("detailed_analysis", data.get("detailedAnalysis"))
        ),
    )


def _numeric_scores(raw: Any) -> Dict[str, float]:
    if not isinstance(raw, dict):
        return {}
    scores = {}
    for name, value in raw.items():
        if isinstance(value, bool):
            continue
        if isinstance(value, (int, float)):
            scores[str(name)] = float(value)
        elif isinstance(value, str):
            try:
                scores[str(name)] = float(value)
            except ValueError:
                continue
    return scores


def _detailed_analysis(raw: Any):
    if not isinstance(raw, dict):
        return None
    try:
        return DetailedAnalysis(**raw)
    except ValidationError:
        logger.warning("Discarding malformed detailed analysis from provider")
        return None
