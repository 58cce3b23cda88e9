"""
Fallback Generator
Deterministic, offline replacements for model output. Used whenever the
provider is unavailable or its answer cannot be used; no randomness and no
network calls, so the same input always yields the same answer.
"""

import re
from typing import Optional

from core.models import ChatResult, Option, OptionsPayload, Recipe
from core.normalizer import normalize

RECIPE_INTENT_RE = re.compile(r"\b(?:recipes?|cook\w*|make|making)\b", re.IGNORECASE)
DISH_RE = re.compile(
    r"(?:recipe for|how (?:to|do i|can i) (?:make|cook)|make me|cook me|make|cook)\s+"
    r"(?:some |a |an |the |me )*([\w\s'-]+?)(?:\s+recipes?)?\s*(?:please)?[?.!]*$",
    re.IGNORECASE,
)

GENERIC_APOLOGY = (
    "I'm having trouble reaching my recipe knowledge right now. "
    "Please try again in a moment, or tell me what dish you'd like to cook "
    "and I'll suggest a few directions."
)

FALLBACK_TEMPLATES = {
    "chicken": {
        "ingredients": [
            {"ingredient": "chicken breasts", "amount": "2", "unit": ""},
            {"ingredient": "olive oil", "amount": "2", "unit": "tbsp"},
            {"ingredient": "garlic, minced", "amount": "3", "unit": "cloves"},
            {"ingredient": "salt", "amount": "1", "unit": "tsp"},
            {"ingredient": "black pepper", "amount": "1/2", "unit": "tsp"},
            {"ingredient": "lemon, juiced", "amount": "1", "unit": ""},
        ],
        "instructions": [
            "Season the chicken with salt and pepper.",
            "Heat the olive oil in a skillet over medium-high heat.",
            "Cook the chicken 6-7 minutes per side until cooked through.",
            "Add the garlic for the last minute, then finish with lemon juice.",
            "Rest for 5 minutes before slicing and serving.",
        ],
        "nutrition": {"calories": 320, "protein": 38, "carbs": 3, "fat": 16, "fiber": 0},
        "prepTime": 10,
        "cookTime": 20,
        "difficulty": "easy",
    },
    "pasta": {
        "ingredients": [
            {"ingredient": "pasta", "amount": "400", "unit": "g"},
            {"ingredient": "olive oil", "amount": "3", "unit": "tbsp"},
            {"ingredient": "garlic, sliced", "amount": "4", "unit": "cloves"},
            {"ingredient": "crushed tomatoes", "amount": "1", "unit": "can"},
            {"ingredient": "parmesan, grated", "amount": "50", "unit": "g"},
            {"ingredient": "fresh basil", "amount": "1", "unit": "handful"},
        ],
        "instructions": [
            "Cook the pasta in well-salted boiling water until al dente.",
            "Meanwhile, warm the olive oil and gently fry the garlic until fragrant.",
            "Add the tomatoes and simmer for 10 minutes.",
            "Toss the drained pasta with the sauce, adding a splash of pasta water.",
            "Serve topped with parmesan and basil.",
        ],
        "nutrition": {"calories": 480, "protein": 16, "carbs": 78, "fat": 12, "fiber": 5},
        "prepTime": 10,
        "cookTime": 20,
        "difficulty": "easy",
    },
    "soup": {
        "ingredients": [
            {"ingredient": "onion, diced", "amount": "1", "unit": ""},
            {"ingredient": "carrots, diced", "amount": "2", "unit": ""},
            {"ingredient": "celery stalks, diced", "amount": "2", "unit": ""},
            {"ingredient": "vegetable stock", "amount": "1.5", "unit": "l"},
            {"ingredient": "olive oil", "amount": "2", "unit": "tbsp"},
            {"ingredient": "salt and pepper", "amount": "1", "unit": "pinch"},
        ],
        "instructions": [
            "Soften the onion, carrots and celery in olive oil for 8 minutes.",
            "Pour in the stock and bring to a boil.",
            "Simmer for 20 minutes until the vegetables are tender.",
            "Season to taste and blend if you prefer a smooth soup.",
        ],
        "nutrition": {"calories": 150, "protein": 3, "carbs": 18, "fat": 7, "fiber": 4},
        "prepTime": 15,
        "cookTime": 30,
        "difficulty": "easy",
    },
}

GENERIC_TEMPLATE = {
    "ingredients": [
        {"ingredient": "main protein or vegetable of your choice", "amount": "500", "unit": "g"},
        {"ingredient": "onion, chopped", "amount": "1", "unit": ""},
        {"ingredient": "garlic, minced", "amount": "2", "unit": "cloves"},
        {"ingredient": "olive oil", "amount": "2", "unit": "tbsp"},
        {"ingredient": "salt and pepper", "amount": "1", "unit": "pinch"},
    ],
    "instructions": [
        "Prepare and chop all ingredients.",
        "Heat the oil in a large pan and soften the onion and garlic.",
        "Add the main ingredient and cook until done.",
        "Season to taste and serve.",
    ],
}


def _dish_from(text: str) -> Optional[str]:
    match = DISH_RE.search(text.strip())
    if not match:
        return None
    dish = match.group(1).strip()
    return dish or None


def fallback(last_user_message: Optional[str]) -> ChatResult:
    """Canned reply for when the model cannot be used"""
    text = (last_user_message or "").strip()

    if RECIPE_INTENT_RE.search(text):
        dish = _dish_from(text)
        label = dish.title() if dish else "Dish"
        subject = dish if dish else "that"
        options = [
            Option(f"Traditional {label}", "The classic version with time-tested ingredients"),
            Option(f"Quick {label}", "A weeknight version ready in about 30 minutes"),
            Option(f"Healthy {label}", "A lighter take with more vegetables and less fat"),
            Option("Create my own recipe", "Build a custom version step by step"),
        ]
        return ChatResult(
            message=f"I'd love to help you make {subject}! What variation would you like to try?",
            structured_data=OptionsPayload(options=options),
            fallback=True,
        )

    return ChatResult(message=GENERIC_APOLOGY, structured_data=None, fallback=True)


def create_fallback_recipe(dish: Optional[str] = None, cuisine: Optional[str] = None) -> Recipe:
    """Placeholder recipe tailored by dish keyword (chicken, pasta, soup) or generic"""
    dish = (dish or "").strip()
    cuisine = (cuisine or "").strip()
    if cuisine.lower() == "any":
        cuisine = ""

    lookup = f"{dish} {cuisine}".lower()
    template = next(
        (tpl for keyword, tpl in FALLBACK_TEMPLATES.items() if re.search(rf"\b{keyword}", lookup)),
        GENERIC_TEMPLATE,
    )

    if dish and dish.lower() != "custom":
        name = f"{cuisine.title()} {dish.title()}".strip()
    elif cuisine:
        name = f"Simple {cuisine.title()} Dish"
    else:
        name = "Simple Home-Style Dish"

    return normalize({
        **template,
        "name": name,
        "cuisine": cuisine,
        "tags": ["fallback"],
    })
