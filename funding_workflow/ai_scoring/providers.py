"""Concrete scoring providers: deterministic mock, Anthropic and OpenAI."""

import asyncio
import logging
import os
from typing import Optional

import anthropic
import httpx

from ..errors import ProviderError
from ..models.evaluation import (
    AIEvaluationRequest,
    AIEvaluationResponse,
    CriterionBrief,
    DetailedAnalysis,
)
from ..scorer.engine import criterion_band, recommend_status
from ..scorer.prompts import SYSTEM_PROMPT, build_evaluation_prompt
from .base import PROVIDER_TIMEOUT, ScoringProvider, parse_provider_response, provider_retry

logger = logging.getLogger(__name__)


# Keyword groups nudging the mock's per-criterion scores
INNOVATION_KEYWORDS = ("innovation", "innovative", "innovant", "digital", "numérique", "technolog")
FEASIBILITY_KEYWORDS = ("plan", "team", "équipe", "experience", "expérience", "partner", "partenaire")
IMPACT_KEYWORDS = ("impact", "social", "community", "communauté", "women", "femmes", "youth", "jeunes", "emploi", "jobs")


class MockScoringProvider(ScoringProvider):
    """Offline provider producing deterministic scores.

    Each criterion starts at 70% of its max score and moves up or down with
    keyword hits in the project text, so repeated runs on the same project
    give the same answer.
    """

    def __init__(self, latency_seconds: float = 0.0):
        self._latency = latency_seconds

    @property
    def provider_name(self) -> str:
        return "mock"

    async def request_scores(self, request: AIEvaluationRequest) -> AIEvaluationResponse:
        if self._latency:
            await asyncio.sleep(self._latency)

        project = request.project_data
        text = " ".join(
            [project.title, project.description, *project.tags, *project.form_data.values()]
        ).lower()

        scores = {
            criterion.name: self._score_criterion(criterion, text, project.description)
            for criterion in request.evaluation_criteria
        }

        total_weight = sum(c.weight for c in request.evaluation_criteria)
        weighted = sum(
            (scores[c.name] / c.max_score) * c.weight
            for c in request.evaluation_criteria
            if c.max_score > 0
        )
        overall = weighted / total_weight * 100 if total_weight else 0.0
        recommendation = recommend_status(overall).value

        observations = {
            c.name: f"{c.name}: {criterion_band(scores[c.name], c.max_score).replace('_', ' ')} "
                    f"({scores[c.name]:g}/{c.max_score:g})."
            for c in request.evaluation_criteria
        }

        return AIEvaluationResponse(
            scores=scores,
            notes=(
                f"Automated assessment of '{project.title}': overall score of "
                f"{overall:.0f}% across {len(scores)} criteria."
            ),
            recommendation=recommendation,
            detailed_analysis=DetailedAnalysis(
                strengths=[name for name, obs in observations.items() if "strong" in obs],
                weaknesses=[name for name, obs in observations.items() if "weak" in obs],
                opportunities=["Clarify expected outcomes with measurable indicators"],
                risks=["Execution risk not assessed by the offline provider"],
                observations=observations,
            ),
        )

    def _score_criterion(self, criterion: CriterionBrief, text: str, description: str) -> float:
        if criterion.max_score <= 0:
            return 0.0

        ratio = 0.7
        name = criterion.name.lower()
        if "innov" in name and any(word in text for word in INNOVATION_KEYWORDS):
            ratio += 0.15
        if ("feasib" in name or "faisab" in name or "technical" in name) and any(
            word in text for word in FEASIBILITY_KEYWORDS
        ):
            ratio += 0.1
        if "impact" in name and any(word in text for word in IMPACT_KEYWORDS):
            ratio += 0.15
        if len(description) < 80:
            ratio -= 0.2

        ratio = min(max(ratio, 0.0), 1.0)
        return float(round(criterion.max_score * ratio))


class AnthropicScoringProvider(ScoringProvider):
    """Scores projects with Claude through the Anthropic Messages API."""

    DEFAULT_MODEL = "claude-3-5-sonnet-latest"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        client: Optional[anthropic.AsyncAnthropic] = None,
        max_tokens: int = 2048,
    ):
        self._model = model or self.DEFAULT_MODEL
        self._max_tokens = max_tokens
        if client is not None:
            self._client = client
        else:
            api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
            if not api_key:
                raise ProviderError("ANTHROPIC_API_KEY is not configured")
            self._client = anthropic.AsyncAnthropic(api_key=api_key, timeout=PROVIDER_TIMEOUT)

    @property
    def provider_name(self) -> str:
        return "anthropic"

    @provider_retry()
    async def _create_message(self, prompt: str):
        return await self._client.messages.create(
            model=self._model,
            max_tokens=self._max_tokens,
            temperature=0.3,
            system=SYSTEM_PROMPT,
            messages=[{"role": "user", "content": prompt}],
        )

    async def request_scores(self, request: AIEvaluationRequest) -> AIEvaluationResponse:
        message = await self._create_message(build_evaluation_prompt(request))
        text = "".join(
            block.text for block in message.content if getattr(block, "type", None) == "text"
        )
        if not text:
            raise ProviderError("Anthropic returned no text content")
        return parse_provider_response(text)


class OpenAIScoringProvider(ScoringProvider):
    """Scores projects through the OpenAI chat completions endpoint."""

    API_URL = "https://api.openai.com/v1/chat/completions"
    DEFAULT_MODEL = "gpt-4o-mini"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: httpx.Timeout = PROVIDER_TIMEOUT,
    ):
        self._api_key = api_key or os.environ.get("OPENAI_API_KEY", "")
        self._model = model or self.DEFAULT_MODEL
        self._timeout = timeout

    @property
    def provider_name(self) -> str:
        return "openai"

    @provider_retry()
    async def _post(self, payload: dict) -> dict:
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            response = await client.post(
                self.API_URL,
                headers={"Authorization": f"Bearer {self._api_key}"},
                json=payload,
            )
        if response.status_code == 401:
            raise ProviderError("OpenAI rejected the API key (invalid or expired)")
        response.raise_for_status()
        return response.json()

    async def request_scores(self, request: AIEvaluationRequest) -> AIEvaluationResponse:
        if not self._api_key:
            raise ProviderError("OPENAI_API_KEY is not configured")

        data = await self._post({
            "model": self._model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_evaluation_prompt(request)},
            ],
            "temperature": 0.3,
            "max_tokens": 2048,
        })

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ProviderError(f"Unexpected OpenAI response shape: {exc}") from exc
        return parse_provider_response(content or "")


def build_provider(config) -> ScoringProvider:
    """Instantiate the provider named by ``config.ai_provider``."""

    if config.ai_provider == "anthropic":
        return AnthropicScoringProvider(api_key=config.anthropic_api_key, model=config.ai_model)
    elif config.ai_provider == "openai":
        return OpenAIScoringProvider(api_key=config.openai_api_key, model=config.ai_model)
    else:
        return MockScoringProvider()
