"""
Recipe Assistant Core Module
LLM reliability layer: pacing, caching, extraction, normalization and fallbacks
"""

from core.models import ChatResult, GenerationOptions, Message, Recipe
from core.llm import (
    CompletionClient,
    LLMError,
    ProviderError,
    ProviderResponseMalformed,
    ProviderThrottled,
    ProviderUnreachable,
)
from core.cache import ResponseCache, fingerprint
from core.dispatcher import RateLimitedDispatcher
from core.extractor import extract
from core.normalizer import normalize, scrape_recipe
from core.fallback import create_fallback_recipe, fallback
from core.conversation import ChatOrchestrator, build_orchestrator, recipe_from_result

__all__ = [
    "ChatResult",
    "GenerationOptions",
    "Message",
    "Recipe",
    "CompletionClient",
    "LLMError",
    "ProviderError",
    "ProviderResponseMalformed",
    "ProviderThrottled",
    "ProviderUnreachable",
    "ResponseCache",
    "fingerprint",
    "RateLimitedDispatcher",
    "extract",
    "normalize",
    "scrape_recipe",
    "create_fallback_recipe",
    "fallback",
    "ChatOrchestrator",
    "build_orchestrator",
    "recipe_from_result",
]
