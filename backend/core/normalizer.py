"""
Recipe Normalizer
Two separate stages:

- ``scrape_recipe`` reads a recipe out of free-form prose. It is a heuristic
  and is allowed to be wrong or to find nothing.
- ``normalize`` turns any loosely-typed candidate (model JSON, scraped dict,
  plain text, None) into a Recipe that satisfies every invariant: non-empty
  ingredients and instructions, numeric nutrition, valid difficulty.
"""

import logging
import math
import re
from typing import Any, Optional

from core.models import Difficulty, Ingredient, Nutrition, Recipe

logger = logging.getLogger(__name__)

DEFAULT_NAME = "Custom Recipe"
DEFAULT_PREP_TIME = 15
DEFAULT_COOK_TIME = 30
DEFAULT_SERVINGS = 4
PLACEHOLDER_INGREDIENT = Ingredient(ingredient="Main ingredient", amount="1", unit="")
PLACEHOLDER_INSTRUCTION = "Combine all ingredients and cook until done."

NUTRITION_FIELDS = ("calories", "protein", "carbs", "fat", "fiber")

DIFFICULTY_SYNONYMS = {
    "beginner": Difficulty.EASY,
    "simple": Difficulty.EASY,
    "quick": Difficulty.EASY,
    "intermediate": Difficulty.MEDIUM,
    "moderate": Difficulty.MEDIUM,
    "average": Difficulty.MEDIUM,
    "advanced": Difficulty.HARD,
    "difficult": Difficulty.HARD,
    "challenging": Difficulty.HARD,
    "hard": Difficulty.HARD,
}

# ============================================================================
# SCRAPING PATTERNS
# ============================================================================

UNITS = (
    r"cups?|c|tablespoons?|tbsps?|tbs|teaspoons?|tsps?|ounces?|oz|pounds?|lbs?|"
    r"grams?|g|kilograms?|kg|milliliters?|millilitres?|ml|liters?|litres?|l|"
    r"quarts?|qt|pints?|pt|pinch(?:es)?|dash(?:es)?|cloves?|cans?|slices?|pieces?|"
    r"sticks?|handfuls?|bunch(?:es)?|sprigs?|heads?|packages?|pkgs?"
)
AMOUNT = (
    r"\d+\s+\d+/\d+|\d+/\d+|\d+[½⅓⅔¼¾⅛]|[½⅓⅔¼¾⅛]|"
    r"\d+(?:\.\d+)?(?:\s*[-–]\s*\d+(?:\.\d+)?)?"
)
INGREDIENT_LINE_RE = re.compile(
    rf"^(?P<amount>{AMOUNT})?\s*(?P<unit>(?:{UNITS})\b)?\.?\s+(?:of\s+)?(?P<name>.+)$",
    re.IGNORECASE,
)
BULLET_RE = re.compile(r"^\s*(?:[-*•+]|\d+\s*[.)])\s+")
ORDINAL_RE = re.compile(r"^\s*(?:[-*•+]\s*)?(?:step\s*)?\d+\s*(?:[.):](?!\d)|\s-\s)\s*", re.IGNORECASE)
INGREDIENTS_HEADING = r"ingredients?"
INSTRUCTIONS_HEADING = r"instructions?|steps?|directions?|method|preparation"
RECIPE_NAME_RE = re.compile(
    r"(?:here'?s a recipe for|recipe for|recipe:|here'?s how to make)\s+(.+?)(?:[\n.!:]|$)",
    re.IGNORECASE,
)
MARKDOWN_HEADING_RE = re.compile(r"^\s*#{1,4}\s*(.+?)\s*$", re.MULTILINE)
NUTRITION_RE = re.compile(
    r"\b(calories|protein|carbs|carbohydrates|fat|fiber|fibre)\b\s*[:\-=]?\s*(\d+(?:\.\d+)?)",
    re.IGNORECASE,
)
PREP_TIME_RE = re.compile(r"prep(?:aration)?\s*time\s*[:\-]?\s*([^\n]+)", re.IGNORECASE)
COOK_TIME_RE = re.compile(r"cook(?:ing)?\s*time\s*[:\-]?\s*([^\n]+)", re.IGNORECASE)
SERVINGS_RE = re.compile(r"(?:serves|servings|yield)\s*[:\-]?\s*(\d+)", re.IGNORECASE)
DIFFICULTY_RE = re.compile(r"difficulty\s*[:\-]?\s*(\w+)", re.IGNORECASE)


def _clean_markup(line: str) -> str:
    return line.strip().strip("#*_ \t").strip()


def _is_heading(line: str) -> bool:
    stripped = line.strip()
    if not stripped or BULLET_RE.match(stripped):
        return False
    if stripped.startswith("#"):
        return True
    cleaned = _clean_markup(stripped)
    return cleaned.endswith(":") and len(cleaned) <= 40


def _matches_heading(line: str, words: str) -> bool:
    if BULLET_RE.match(line):
        return False
    cleaned = _clean_markup(line).lower()
    return bool(re.match(rf"(?:{words})\b[^:]*:\s*$", cleaned)) or (
        line.strip().startswith("#") and bool(re.fullmatch(rf"(?:{words})\b.*", cleaned))
    )


def _section_lines(lines: list[str], words: str) -> list[str]:
    """Lines under the first heading matching ``words``, up to the next blank/heading"""
    for index, line in enumerate(lines):
        if _matches_heading(line, words):
            break
    else:
        return []

    items: list[str] = []
    position = index + 1
    while position < len(lines):
        line = lines[position]
        if not line.strip():
            # a blank between two list items does not end the list
            upcoming = next((l for l in lines[position + 1:] if l.strip()), "")
            if items and not (BULLET_RE.match(upcoming) and not _is_heading(upcoming)):
                break
        elif _is_heading(line):
            break
        else:
            items.append(line)
        position += 1
    return items


def parse_ingredient_line(line: str) -> dict:
    """Split one ingredient line into amount/unit/ingredient"""
    text = BULLET_RE.sub("", line).strip().strip("*_").strip()
    match = INGREDIENT_LINE_RE.match(text)
    if match and (match.group("amount") or match.group("unit")):
        return {
            "amount": (match.group("amount") or "1").strip(),
            "unit": (match.group("unit") or "").strip(),
            "ingredient": match.group("name").strip(),
        }
    return {"amount": "1", "unit": "", "ingredient": text}


def _scrape_name(text: str) -> Optional[str]:
    match = RECIPE_NAME_RE.search(text)
    if match:
        name = _clean_markup(match.group(1))
        if name:
            return name
    for heading in MARKDOWN_HEADING_RE.findall(text):
        cleaned = _clean_markup(heading).rstrip(":")
        lowered = cleaned.lower()
        if cleaned and not re.match(rf"(?:{INGREDIENTS_HEADING}|{INSTRUCTIONS_HEADING}|nutrition)\b", lowered):
            return re.sub(r"\s+recipe$", "", cleaned, flags=re.IGNORECASE)
    return None


def scrape_recipe(text: str) -> dict:
    """
    Best-effort recipe candidate from prose.

    Only keys that were actually found are returned, so the normalizer's
    defaults stay in charge of everything else.
    """
    if not text or not isinstance(text, str):
        return {}
    lines = text.splitlines()
    candidate: dict[str, Any] = {}

    name = _scrape_name(text)
    if name:
        candidate["name"] = name

    ingredients = [parse_ingredient_line(line) for line in _section_lines(lines, INGREDIENTS_HEADING)]
    candidate["ingredients"] = [ing for ing in ingredients if ing["ingredient"]]

    steps: list[str] = []
    for line in _section_lines(lines, INSTRUCTIONS_HEADING):
        if ORDINAL_RE.match(line) or BULLET_RE.match(line) or not steps:
            step = BULLET_RE.sub("", ORDINAL_RE.sub("", line)).strip()
            if step:
                steps.append(step)
        else:
            # wrapped continuation of the previous step
            steps[-1] = f"{steps[-1]} {line.strip()}"
    candidate["instructions"] = steps

    nutrition = {}
    for label, value in NUTRITION_RE.findall(text):
        key = {"carbohydrates": "carbs", "fibre": "fiber"}.get(label.lower(), label.lower())
        nutrition.setdefault(key, value)
    if nutrition:
        candidate["nutrition"] = nutrition

    for key, pattern in (("prepTime", PREP_TIME_RE), ("cookTime", COOK_TIME_RE),
                         ("servings", SERVINGS_RE), ("difficulty", DIFFICULTY_RE)):
        match = pattern.search(text)
        if match:
            candidate[key] = match.group(1).strip()

    return candidate


# ============================================================================
# COERCION
# ============================================================================

def _number(value: Any) -> Optional[float]:
    """Finite float from a number or the first number in a string, else None"""
    if isinstance(value, bool):
        return None
    number = None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
    elif isinstance(value, str):
        match = re.search(r"-?\d+(?:\.\d+)?", value.replace(",", ""))
        if match:
            number = float(match.group())
    if number is None or not math.isfinite(number):
        return None
    return number


def _tidy(number: float):
    return int(number) if float(number).is_integer() else round(number, 1)


def coerce_minutes(value: Any, default: int) -> int:
    if isinstance(value, str):
        hours = re.search(r"(\d+(?:\.\d+)?)\s*(?:h|hrs?|hours?)\b", value, re.IGNORECASE)
        mins = re.search(r"(\d+)\s*(?:m|mins?|minutes?)\b", value, re.IGNORECASE)
        if hours or mins:
            total = (float(hours.group(1)) * 60 if hours else 0) + (float(mins.group(1)) if mins else 0)
            if math.isfinite(total):
                return int(round(total))
            return default
    number = _number(value)
    if number is None or number < 0:
        return default
    return int(round(number))


def _servings(value: Any) -> int:
    number = _number(value)
    if number is None or number < 1:
        return DEFAULT_SERVINGS
    return int(number)


def coerce_difficulty(value: Any) -> str:
    text = str(value or "").strip().lower()
    if text in {d.value for d in Difficulty}:
        return text
    return DIFFICULTY_SYNONYMS.get(text, Difficulty.MEDIUM).value


def _amount(value: Any) -> str:
    if isinstance(value, bool) or value is None:
        return "1"
    if isinstance(value, (int, float)):
        number = _number(value)
        return str(_tidy(number)) if number is not None and number > 0 else "1"
    text = str(value).strip()
    return text or "1"


def _ingredient(entry: Any) -> Optional[Ingredient]:
    if isinstance(entry, str):
        text = entry.strip()
        return Ingredient(ingredient=text, amount="1", unit="") if text else None
    if isinstance(entry, dict):
        name = entry.get("ingredient") or entry.get("name") or entry.get("item") or entry.get("food")
        name = str(name or "").strip()
        if not name:
            return None
        amount = entry.get("amount", entry.get("quantity", entry.get("qty")))
        unit = entry.get("unit")
        return Ingredient(
            ingredient=name,
            amount=_amount(amount),
            unit=str(unit).strip() if unit not in (None, False) else "",
        )
    return None


def _ingredients(value: Any) -> list[Ingredient]:
    if isinstance(value, str):
        value = [part for part in re.split(r"[\n;]", value)]
    if not isinstance(value, (list, tuple)):
        return []
    return [ing for ing in (_ingredient(entry) for entry in value) if ing is not None]


def _step_text(entry: Any) -> str:
    if isinstance(entry, dict):
        entry = entry.get("text") or entry.get("step") or entry.get("instruction") or entry.get("description")
    if entry is None or isinstance(entry, (dict, list)):
        return ""
    return ORDINAL_RE.sub("", str(entry)).strip()


def _instructions(value: Any) -> list[str]:
    if isinstance(value, str):
        value = value.splitlines()
    if not isinstance(value, (list, tuple)):
        return []
    return [step for step in (_step_text(entry) for entry in value) if step]


def _nutrition(value: Any) -> Nutrition:
    data = value if isinstance(value, dict) else {}
    numbers = {}
    for key in NUTRITION_FIELDS:
        raw = data.get(key)
        if raw is None and key == "carbs":
            raw = data.get("carbohydrates")
        number = _number(raw)
        numbers[key] = _tidy(number) if number is not None and number >= 0 else 0
    return Nutrition(**numbers)


def _tags(value: Any) -> list[str]:
    if not isinstance(value, (list, tuple)):
        return []
    return [str(tag).strip() for tag in value if str(tag).strip()]


def _has_structured_recipe(data: dict) -> bool:
    return bool(_ingredients(data.get("ingredients")) or _instructions(data.get("instructions")))


# ============================================================================
# NORMALIZE
# ============================================================================

def normalize(candidate: Any = None, text: Optional[str] = None) -> Recipe:
    """
    Produce a schema-valid Recipe from anything.

    ``candidate`` may be a dict (model JSON or scraped), a Recipe, a plain
    string, or None. When it carries no usable ingredients/instructions and
    ``text`` (or the candidate itself, if a string) is available, the prose is
    scraped first and any explicit candidate fields win over scraped ones.
    """
    if isinstance(candidate, Recipe):
        data = candidate.to_dict()
    elif isinstance(candidate, dict):
        data = dict(candidate)
    else:
        if isinstance(candidate, str) and text is None:
            text = candidate
        data = {}

    if not _has_structured_recipe(data) and text:
        scraped = scrape_recipe(text)
        # both lists are unusable here, so only scalar fields can override
        explicit = {
            key: value for key, value in data.items()
            if key not in ("ingredients", "instructions") and value not in (None, "", [], {})
        }
        data = {**scraped, **explicit}

    ingredients = _ingredients(data.get("ingredients"))
    instructions = _instructions(data.get("instructions"))
    if not ingredients or not instructions:
        logger.debug("Recipe candidate incomplete, filling placeholders")
    if not ingredients:
        ingredients = [Ingredient(**PLACEHOLDER_INGREDIENT.to_dict())]
    if not instructions:
        instructions = [PLACEHOLDER_INSTRUCTION]

    name = str(data.get("name") or data.get("title") or "").strip() or DEFAULT_NAME

    return Recipe(
        name=name,
        ingredients=ingredients,
        instructions=instructions,
        nutrition=_nutrition(data.get("nutrition")),
        prep_time=coerce_minutes(data.get("prepTime", data.get("prep_time")), DEFAULT_PREP_TIME),
        cook_time=coerce_minutes(data.get("cookTime", data.get("cook_time")), DEFAULT_COOK_TIME),
        servings=_servings(data.get("servings")),
        difficulty=coerce_difficulty(data.get("difficulty", data.get("difficultyLevel"))),
        cuisine=str(data.get("cuisine") or "").strip(),
        tags=_tags(data.get("tags")),
    )
