"""
Prompt Templates
System instructions and prompt builders for the culinary assistant.
"""

import json
from typing import Optional

CULINARY_SYSTEM_PROMPT = """You are a culinary assistant that helps users find recipes, customize them, and create their own recipes.

Follow this workflow:
1. When a user asks for a type of dish, offer 4-5 specific options, always including "Create my own recipe".
2. If they select a specific recipe, provide detailed ingredients, steps, and nutrition info.
3. If they want to customize a recipe, apply their requested changes.
4. If they choose "Create my own recipe", ask one question at a time, in this order:
   a. nutritional targets
   b. main ingredients/base
   c. protein
   d. vegetables
   e. seasonings
   f. cooking method
5. For custom recipes, recommend ingredients that pair well with their previous choices.
6. Always provide complete cooking instructions and nutrition details.

Always offer contextual recommendations based on the user's previous choices.

At the END of every response, append structured data for the UI in exactly this form:

STRUCTURED_DATA: {
  "responseType": "options" | "recipe" | "custom_step" | "general",
  "options": [{"name": "Option 1", "description": "Description"}],
  "recipe": {"name": "...", "ingredients": [{"ingredient": "...", "amount": "...", "unit": "..."}], "instructions": ["..."], "nutrition": {"calories": 0, "protein": 0, "carbs": 0, "fat": 0, "fiber": 0}, "prepTime": 0, "cookTime": 0, "servings": 0, "difficulty": "easy|medium|hard"},
  "currentStep": "nutrition" | "base" | "protein" | "vegetables" | "seasonings" | "cookingMethod",
  "recommendations": [{"name": "Recommendation", "reason": "Reason"}]
}

Include "options" only for responseType "options", "recipe" only for "recipe", and
"currentStep" only for "custom_step". The structured data is removed before the
user sees your answer, so never refer to it in the visible text.
"""

RECIPE_JSON_FORMAT = """{
  "name": "Recipe Name",
  "ingredients": [{"ingredient": "Ingredient name", "amount": "amount", "unit": "unit"}],
  "instructions": ["Step 1", "Step 2"],
  "nutrition": {"calories": 0, "protein": 0, "carbs": 0, "fat": 0, "fiber": 0},
  "prepTime": 0,
  "cookTime": 0,
  "servings": 0,
  "difficulty": "easy|medium|hard"
}"""

INTENT_VALUES = ("search_recipe", "customize_recipe", "create_custom", "general_question")


def build_intent_prompt(user_input: str) -> str:
    return f"""Parse the following message sent to a cooking assistant and extract the key information.

User input: "{user_input}"

Return ONLY a JSON object with this structure:
{{
  "intent": "search_recipe" | "customize_recipe" | "create_custom" | "general_question",
  "cuisine": "cuisine type, if specified",
  "dishType": "dish type such as pasta, if specified",
  "specificDish": "specific dish name, if specified",
  "customization": "customization request, if any",
  "ingredients": ["ingredients mentioned"],
  "preferences": "dietary preferences mentioned"
}}

Only include fields that are clearly mentioned or implied by the user input."""


def build_suggestions_prompt(intent: dict) -> str:
    parts = ["List 5 delicious"]
    if intent.get("cuisine"):
        parts.append(str(intent["cuisine"]))
    parts.append(str(intent["dishType"]) if intent.get("dishType") else "recipes")
    ingredients = intent.get("ingredients") or []
    if isinstance(ingredients, list) and ingredients:
        parts.append(f"using {', '.join(str(i) for i in ingredients)}")
    if intent.get("preferences"):
        parts.append(f"that are {intent['preferences']}")

    return " ".join(parts) + """.
Return ONLY a JSON array in this format:
[
  {
    "name": "Recipe name",
    "description": "Brief description of the dish",
    "difficultyLevel": "easy|medium|hard",
    "prepTime": "time in minutes"
  }
]"""


def build_recipe_prompt(
    cuisine: str,
    dish: str,
    customizations: Optional[list[str]] = None,
    allergies: Optional[list[str]] = None,
    nutritional_targets: Optional[dict] = None,
    custom_options: Optional[dict] = None,
) -> str:
    if dish == "custom":
        options = custom_options or {}
        vegetables = options.get("vegetables") or []
        seasonings = options.get("seasonings") or []
        prompt = (
            "Create a custom recipe with the following requirements:\n"
            f"- Base: {options.get('base') or options.get('pastaType') or 'any suitable base'}\n"
            f"- Protein: {options.get('protein') or 'any suitable protein'}\n"
            f"- Vegetables: {', '.join(vegetables) if vegetables else 'any suitable vegetables'}\n"
            f"- Seasonings: {', '.join(seasonings) if seasonings else 'any suitable seasonings'}\n"
            f"- Cooking Method: {options.get('cookingMethod') or 'any suitable cooking method'}\n"
        )
        if options.get("sauce"):
            prompt += f"- Sauce: {options['sauce']}\n"
    else:
        where = f" in {cuisine} cuisine" if cuisine and cuisine != "any" else ""
        prompt = f"Create a detailed recipe for {dish}{where}.\n"

    if customizations:
        prompt += f"\nCustomizations: {', '.join(customizations)}\n"
    if nutritional_targets:
        prompt += f"\nNutritional targets: {json.dumps(nutritional_targets)}\n"
    if allergies:
        prompt += f"\nAvoid these ingredients due to allergies: {', '.join(allergies)}\n"

    return prompt + f"\nProvide the recipe in this JSON format:\n{RECIPE_JSON_FORMAT}"


def build_ingredient_recommendations_prompt(current_selections: dict, category: str) -> str:
    selected = []
    for key, value in current_selections.items():
        if not value:
            continue
        shown = ", ".join(str(v) for v in value) if isinstance(value, list) else str(value)
        selected.append(f"- {key}: {shown}")

    return f"""Based on these selected ingredients:
{chr(10).join(selected) if selected else "- (nothing selected yet)"}

Recommend 5 {category} options that would pair well with these ingredients.
Return ONLY a JSON array in this format:
[
  {{
    "name": "{category} name",
    "description": "Why it's a good match with the current ingredients"
  }}
]"""


ASSISTANT_PERSONA = (
    "You are a helpful culinary assistant that helps users find recipes, "
    "customize them, and create their own recipes."
)


def build_preferences_text(preferences: Optional[dict]) -> str:
    """Saved user preferences rendered as extra system instructions; empty if none"""
    if not preferences:
        return ""

    def _listed(key: str) -> list[str]:
        value = preferences.get(key) or []
        return [str(v) for v in value] if isinstance(value, list) else [str(value)]

    lines = []
    if _listed("allergies"):
        lines.append(f"- ALLERGIES: {', '.join(_listed('allergies'))}. Never suggest recipes containing these.")
    if _listed("dietaryRestrictions"):
        lines.append(f"- DIETARY RESTRICTIONS: {', '.join(_listed('dietaryRestrictions'))}. Always respect these.")
    if _listed("favoriteIngredients"):
        lines.append(f"- FAVORITE INGREDIENTS: {', '.join(_listed('favoriteIngredients'))}. Prefer recipes using these.")
    if _listed("dislikedIngredients"):
        lines.append(f"- DISLIKED INGREDIENTS: {', '.join(_listed('dislikedIngredients'))}. Avoid unless asked for.")
    if not lines:
        return ""

    return (
        "\nUser Preferences:\n" + "\n".join(lines) +
        "\n\nWhen suggesting recipes, mention when a suggestion uses a favorite "
        "ingredient or avoids an allergy/restriction."
    )
