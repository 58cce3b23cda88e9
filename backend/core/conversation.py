"""Chat Orchestrator
Single entry point between the route layer and the provider. Every model call
goes cache -> dispatcher -> client, and every failure ends in a fallback, so
callers always get a usable ChatResult or Recipe back.
"""

import logging
from typing import Optional, Sequence, Union

from config import LLM_CACHE_PREFIX_CHARS
from core.cache import ResponseCache, fingerprint
from core.dispatcher import RateLimitedDispatcher
from core.extractor import extract, find_json_array, find_json_object, load_json_object
from core.fallback import create_fallback_recipe, fallback
from core.llm import CompletionClient, LLMError
from core.models import ChatResult, GenerationOptions, Message, Recipe, RecipePayload, Role
from core.normalizer import DEFAULT_PREP_TIME, coerce_difficulty, coerce_minutes, normalize
from core.prompts import (
    ASSISTANT_PERSONA,
    CULINARY_SYSTEM_PROMPT,
    INTENT_VALUES,
    build_ingredient_recommendations_prompt,
    build_intent_prompt,
    build_preferences_text,
    build_recipe_prompt,
    build_suggestions_prompt,
)

logger = logging.getLogger(__name__)

MessageLike = Union[Message, dict]

INTENT_OPTIONS = GenerationOptions.with_defaults(max_tokens=500, temperature=0.3)
RECIPE_OPTIONS = GenerationOptions.with_defaults(max_tokens=2000, temperature=0.7)


def _preview(text: Optional[str], limit: int = 60) -> str:
    text = (text or "").replace("\n", " ").strip()
    return text if len(text) <= limit else text[:limit] + "..."


def _role_and_content(message: MessageLike) -> tuple[Optional[str], Optional[str]]:
    if isinstance(message, Message):
        return message.role, message.content
    if isinstance(message, dict):
        return message.get("role"), message.get("content")
    return None, None


def _last_user_message(messages: Sequence[MessageLike]) -> Optional[str]:
    for message in reversed(messages):
        role, content = _role_and_content(message)
        if role == Role.USER.value:
            return str(content or "")
    return None


def recipe_from_result(result: ChatResult) -> Recipe:
    """Recipe to save from a chat answer: the structured recipe if any, else scraped prose"""
    if isinstance(result.structured_data, RecipePayload):
        return result.structured_data.recipe
    return normalize(None, text=result.message or result.raw)


class ChatOrchestrator:
    """Wires the shared cache, dispatcher and client together for one process"""

    def __init__(
        self,
        client: CompletionClient,
        cache: ResponseCache,
        dispatcher: RateLimitedDispatcher,
        system_prompt: str = CULINARY_SYSTEM_PROMPT,
        prefix_chars: int = LLM_CACHE_PREFIX_CHARS,
    ):
        self.client = client
        self.cache = cache
        self.dispatcher = dispatcher
        self.system_prompt = system_prompt
        self.prefix_chars = prefix_chars

    async def _complete(self, messages: list[Message], options: GenerationOptions) -> str:
        """Cached, rate-limited completion; raises LLMError on provider failure"""
        key = fingerprint(messages, options, prefix_chars=self.prefix_chars)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        raw = await self.dispatcher.schedule(lambda: self.client.complete(messages, options))
        self.cache.put(key, raw)
        return raw

    # ========================================================================
    # CHAT
    # ========================================================================

    async def process_chat(
        self,
        messages: Sequence[MessageLike],
        options: Optional[GenerationOptions] = None,
    ) -> ChatResult:
        """
        Run one chat completion and split it into message + structured data.
        Never raises: provider and unexpected errors both become a fallback.
        """
        last_user = None
        options = options or GenerationOptions.with_defaults()

        try:
            last_user = _last_user_message(messages)
            conversation = [Message.from_dict(m) for m in messages]
            raw = await self._complete(conversation, options)
        except LLMError as e:
            logger.warning("LLM call failed (%s: %s), using fallback for %r",
                           type(e).__name__, e, _preview(last_user))
            return fallback(last_user)
        except Exception:
            logger.exception("Unexpected error in chat completion, using fallback")
            return fallback(last_user)

        extraction = extract(raw)
        return ChatResult(
            message=extraction.message,
            structured_data=extraction.structured_data,
            raw=raw,
        )

    async def process_culinary_chat(
        self,
        user_input: str,
        history: Optional[Sequence[MessageLike]] = None,
        preferences: Optional[dict] = None,
        options: Optional[GenerationOptions] = None,
    ) -> ChatResult:
        """Chat turn with the culinary workflow instructions (and saved preferences) prepended"""
        system = self.system_prompt + build_preferences_text(preferences)
        messages = [Message(Role.SYSTEM.value, system)]

        for turn in history or []:
            role, content = _role_and_content(turn)
            if role == Role.SYSTEM.value or not content:
                continue
            # anything that is not the user is replayed as the assistant
            role = Role.USER.value if role == Role.USER.value else Role.ASSISTANT.value
            messages.append(Message(role, str(content)))

        messages.append(Message(Role.USER.value, user_input))
        return await self.process_chat(messages, options)

    # ========================================================================
    # RECIPE SERVICES
    # ========================================================================

    async def _ask(self, prompt: str, options: Optional[GenerationOptions] = None) -> Optional[str]:
        """One-shot question to the model; None when the provider fails"""
        messages = [
            Message(Role.SYSTEM.value, ASSISTANT_PERSONA),
            Message(Role.USER.value, prompt),
        ]
        try:
            return await self._complete(messages, options or GenerationOptions.with_defaults())
        except LLMError as e:
            logger.warning("LLM call failed (%s: %s)", type(e).__name__, e)
        except Exception:
            logger.exception("Unexpected error in LLM call")
        return None

    async def parse_user_intent(self, user_input: str) -> dict:
        default = {"intent": "search_recipe", "specificDish": user_input}
        raw = await self._ask(build_intent_prompt(user_input), INTENT_OPTIONS)
        data = find_json_object(raw) if raw else None
        if not data:
            logger.warning("Could not parse intent for %r, defaulting to search", _preview(user_input))
            return default

        if data.get("intent") not in INTENT_VALUES:
            data["intent"] = "search_recipe"
        return data

    async def generate_recipe_suggestions(self, intent: dict) -> list[dict]:
        raw = await self._ask(build_suggestions_prompt(intent or {}))
        entries = find_json_array(raw) if raw else None
        if not entries:
            return []

        suggestions = []
        for entry in entries:
            if not isinstance(entry, dict) or not str(entry.get("name") or "").strip():
                continue
            suggestions.append({
                "name": str(entry["name"]).strip(),
                "description": str(entry.get("description") or "").strip(),
                "difficultyLevel": coerce_difficulty(entry.get("difficultyLevel", entry.get("difficulty"))),
                "prepTime": coerce_minutes(entry.get("prepTime"), DEFAULT_PREP_TIME),
            })
        return suggestions

    async def generate_recipe(
        self,
        cuisine: str,
        dish: str,
        customizations: Optional[list[str]] = None,
        allergies: Optional[list[str]] = None,
        nutritional_targets: Optional[dict] = None,
        custom_options: Optional[dict] = None,
    ) -> Recipe:
        """Detailed recipe for a dish; a placeholder recipe when the provider fails"""
        prompt = build_recipe_prompt(
            cuisine, dish,
            customizations=customizations,
            allergies=allergies,
            nutritional_targets=nutritional_targets,
            custom_options=custom_options,
        )
        raw = await self._ask(prompt, RECIPE_OPTIONS)
        if raw is None:
            logger.warning("Using fallback recipe for %r", _preview(dish))
            return create_fallback_recipe(dish, cuisine)

        data = load_json_object(raw)
        if data and isinstance(data.get("recipe"), dict):
            data = data["recipe"]
        recipe = normalize(data, text=raw)

        if not recipe.cuisine and cuisine and cuisine.lower() != "any":
            recipe.cuisine = cuisine
        if dish == "custom" and "custom" not in recipe.tags:
            recipe.tags.append("custom")
        if customizations and "customized" not in recipe.tags:
            recipe.tags.append("customized")
        return recipe

    async def get_ingredient_recommendations(self, current_selections: dict, category: str) -> list[dict]:
        raw = await self._ask(build_ingredient_recommendations_prompt(current_selections or {}, category))
        entries = find_json_array(raw) if raw else None
        if not entries:
            return []

        recommendations = []
        for entry in entries:
            if isinstance(entry, str) and entry.strip():
                recommendations.append({"name": entry.strip(), "description": ""})
            elif isinstance(entry, dict) and str(entry.get("name") or "").strip():
                recommendations.append({
                    "name": str(entry["name"]).strip(),
                    "description": str(entry.get("description") or entry.get("reason") or "").strip(),
                })
        return recommendations


def build_orchestrator() -> ChatOrchestrator:
    """Construct the process-wide client, cache and dispatcher from config"""
    return ChatOrchestrator(
        client=CompletionClient(),
        cache=ResponseCache(),
        dispatcher=RateLimitedDispatcher(),
    )
