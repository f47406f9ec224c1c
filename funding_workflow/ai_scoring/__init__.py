"""AI-assisted scoring: providers, criterion mapping and bulk runs."""

from .adapter import AI_COMMENT_PREFIX, AIScoringAdapter
from .base import ScoringProvider, parse_provider_response
from .bulk import BulkEvaluator
from .providers import (
    AnthropicScoringProvider,
    MockScoringProvider,
    OpenAIScoringProvider,
    build_provider,
)

__all__ = [
    "AI_COMMENT_PREFIX",
    "AIScoringAdapter",
    "ScoringProvider",
    "parse_provider_response",
    "BulkEvaluator",
    "AnthropicScoringProvider",
    "MockScoringProvider",
    "OpenAIScoringProvider",
    "build_provider",
]
