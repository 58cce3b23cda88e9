"""
Data Models
Dataclasses shared by the LLM reliability layer: chat messages, generation
options, recipes, and the tagged structured-payload variants.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

from config import LLM_MODEL, LLM_MAX_TOKENS, LLM_TEMPERATURE, LLM_TOP_P


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class ResponseType(str, Enum):
    OPTIONS = "options"
    RECIPE = "recipe"
    CUSTOM_STEP = "custom_step"
    GENERAL = "general"


class CustomStep(str, Enum):
    """Steps of the create-my-own-recipe workflow, in order"""
    NUTRITION = "nutrition"
    BASE = "base"
    PROTEIN = "protein"
    VEGETABLES = "vegetables"
    SEASONINGS = "seasonings"
    COOKING_METHOD = "cookingMethod"


# ============================================================================
# CONVERSATION
# ============================================================================

@dataclass
class Message:
    """Single chat turn"""
    role: str
    content: str

    def __post_init__(self):
        if self.role not in {r.value for r in Role}:
            raise ValueError(f"Unknown message role: {self.role!r}")

    def to_dict(self) -> dict:
        return {"role": self.role, "content": self.content}

    @classmethod
    def from_dict(cls, data: Union[dict, "Message"]) -> "Message":
        if isinstance(data, Message):
            return data
        return cls(role=str(data.get("role", "user")), content=str(data.get("content") or ""))


@dataclass(frozen=True)
class GenerationOptions:
    """Per-call generation parameters, validated on construction"""
    model: str = LLM_MODEL
    max_tokens: int = LLM_MAX_TOKENS
    temperature: float = LLM_TEMPERATURE
    top_p: float = LLM_TOP_P

    def __post_init__(self):
        if not self.model:
            raise ValueError("model must be a non-empty identifier")
        if int(self.max_tokens) <= 0:
            raise ValueError(f"max_tokens must be positive, got {self.max_tokens}")
        if not 0 <= self.temperature <= 2:
            raise ValueError(f"temperature must be in [0, 2], got {self.temperature}")
        if not 0 <= self.top_p <= 1:
            raise ValueError(f"top_p must be in [0, 1], got {self.top_p}")

    @classmethod
    def with_defaults(
        cls,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        top_p: Optional[float] = None,
    ) -> "GenerationOptions":
        """Build options, falling back to configured defaults for any None"""
        return cls(
            model=model or LLM_MODEL,
            max_tokens=max_tokens if max_tokens is not None else LLM_MAX_TOKENS,
            temperature=temperature if temperature is not None else LLM_TEMPERATURE,
            top_p=top_p if top_p is not None else LLM_TOP_P,
        )

    def to_payload(self) -> dict:
        """Provider request fields"""
        return {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "top_p": self.top_p,
        }


# ============================================================================
# RECIPES
# ============================================================================

@dataclass
class Ingredient:
    """Represents a single ingredient line; amount stays text ("a pinch", "1 1/2")"""
    ingredient: str
    amount: str = "1"
    unit: str = ""

    def to_dict(self) -> dict:
        return {
            "ingredient": self.ingredient,
            "amount": self.amount,
            "unit": self.unit
        }


@dataclass
class Nutrition:
    """Nutritional information per serving"""
    calories: float = 0
    protein: float = 0
    carbs: float = 0
    fat: float = 0
    fiber: float = 0

    def to_dict(self) -> dict:
        return {
            "calories": self.calories,
            "protein": self.protein,
            "carbs": self.carbs,
            "fat": self.fat,
            "fiber": self.fiber
        }


@dataclass
class Recipe:
    """A schema-valid recipe; only the normalizer and fallback generator build these"""
    name: str
    ingredients: list[Ingredient]
    instructions: list[str]
    nutrition: Nutrition = field(default_factory=Nutrition)
    prep_time: int = 15
    cook_time: int = 30
    servings: int = 4
    difficulty: str = Difficulty.MEDIUM.value
    cuisine: str = ""
    tags: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "ingredients": [ing.to_dict() for ing in self.ingredients],
            "instructions": list(self.instructions),
            "nutrition": self.nutrition.to_dict(),
            "prepTime": self.prep_time,
            "cookTime": self.cook_time,
            "servings": self.servings,
            "difficulty": self.difficulty,
            "cuisine": self.cuisine,
            "tags": list(self.tags)
        }


# ============================================================================
# STRUCTURED PAYLOADS
# ============================================================================

@dataclass
class Option:
    name: str
    description: str = ""

    def to_dict(self) -> dict:
        return {"name": self.name, "description": self.description}


@dataclass
class Recommendation:
    name: str
    reason: str = ""

    def to_dict(self) -> dict:
        return {"name": self.name, "reason": self.reason}


@dataclass
class OptionsPayload:
    options: list[Option] = field(default_factory=list)
    response_type: str = field(default=ResponseType.OPTIONS.value, init=False)

    def to_dict(self) -> dict:
        return {
            "responseType": self.response_type,
            "options": [opt.to_dict() for opt in self.options]
        }


@dataclass
class RecipePayload:
    recipe: Recipe
    response_type: str = field(default=ResponseType.RECIPE.value, init=False)

    def to_dict(self) -> dict:
        return {"responseType": self.response_type, "recipe": self.recipe.to_dict()}


@dataclass
class CustomStepPayload:
    current_step: Optional[CustomStep] = None
    recommendations: list[Recommendation] = field(default_factory=list)
    response_type: str = field(default=ResponseType.CUSTOM_STEP.value, init=False)

    def to_dict(self) -> dict:
        return {
            "responseType": self.response_type,
            "currentStep": self.current_step.value if self.current_step else None,
            "recommendations": [rec.to_dict() for rec in self.recommendations]
        }


@dataclass
class GeneralPayload:
    recommendations: list[Recommendation] = field(default_factory=list)
    response_type: str = field(default=ResponseType.GENERAL.value, init=False)

    def to_dict(self) -> dict:
        return {
            "responseType": self.response_type,
            "recommendations": [rec.to_dict() for rec in self.recommendations]
        }


StructuredPayload = Union[OptionsPayload, RecipePayload, CustomStepPayload, GeneralPayload]


def _named_entries(items, detail_key: str) -> list[tuple[str, str]]:
    """Pull (name, detail) pairs out of a loosely-typed list, dropping junk"""
    entries = []
    if not isinstance(items, list):
        return entries
    for item in items:
        if isinstance(item, str) and item.strip():
            entries.append((item.strip(), ""))
        elif isinstance(item, dict):
            name = str(item.get("name") or "").strip()
            if name:
                entries.append((name, str(item.get(detail_key) or item.get("description") or "").strip()))
    return entries


def payload_from_dict(data: dict) -> StructuredPayload:
    """
    Build the payload variant named by ``responseType``.

    Unknown or missing tags, and a recipe tag without a recipe object,
    become GeneralPayload.
    """
    # Local import: the normalizer depends on these models
    from core.normalizer import normalize

    recommendations = [Recommendation(n, r) for n, r in _named_entries(data.get("recommendations"), "reason")]
    response_type = data.get("responseType")

    if response_type == ResponseType.OPTIONS.value:
        return OptionsPayload(options=[Option(n, d) for n, d in _named_entries(data.get("options"), "description")])

    if response_type == ResponseType.RECIPE.value and isinstance(data.get("recipe"), dict):
        return RecipePayload(recipe=normalize(data["recipe"]))

    if response_type == ResponseType.CUSTOM_STEP.value:
        try:
            step = CustomStep(data.get("currentStep"))
        except ValueError:
            step = None
        return CustomStepPayload(current_step=step, recommendations=recommendations)

    return GeneralPayload(recommendations=recommendations)


@dataclass
class ChatResult:
    """What the reliability layer hands back to the route layer / UI"""
    message: str
    structured_data: Optional[StructuredPayload] = None
    raw: str = ""
    fallback: bool = False

    def to_dict(self) -> dict:
        return {
            "message": self.message,
            "structuredData": self.structured_data.to_dict() if self.structured_data else None,
            "raw": self.raw,
            "fallback": self.fallback
        }
