import pytest

from core.fallback import GENERIC_APOLOGY, create_fallback_recipe, fallback
from core.models import OptionsPayload


def test_recipe_request_gets_variation_options() -> None:
    result = fallback("make me a chicken pasta recipe")

    assert result.fallback is True
    assert result.raw == ""
    assert "chicken pasta" in result.message
    assert isinstance(result.structured_data, OptionsPayload)
    names = [o.name for o in result.structured_data.options]
    assert names == [
        "Traditional Chicken Pasta",
        "Quick Chicken Pasta",
        "Healthy Chicken Pasta",
        "Create my own recipe",
    ]


@pytest.mark.parametrize(
    "text",
    ("Any recipes with tofu?", "What should I cook tonight", "How do I make risotto?", "I'm cooking for six"),
)
def test_cooking_words_trigger_options(text: str) -> None:
    result = fallback(text)
    assert isinstance(result.structured_data, OptionsPayload)
    assert len(result.structured_data.options) == 4
    assert result.structured_data.options[-1].name == "Create my own recipe"


@pytest.mark.parametrize("text", ("hello there", "What's the weather like?", "", None))
def test_other_messages_get_apology(text) -> None:
    result = fallback(text)
    assert result.message == GENERIC_APOLOGY
    assert result.structured_data is None
    assert result.fallback is True


def test_fallback_is_deterministic() -> None:
    first = fallback("recipe for lentil soup")
    second = fallback("recipe for lentil soup")
    assert first == second
    assert first.to_dict() == second.to_dict()


def test_fallback_recipe_uses_dish_template() -> None:
    recipe = create_fallback_recipe("Chicken Tikka", "indian")
    assert recipe.name == "Indian Chicken Tikka"
    assert recipe.cuisine == "indian"
    assert recipe.tags == ["fallback"]
    assert any("chicken" in ing.ingredient for ing in recipe.ingredients)
    assert recipe.nutrition.calories > 0


@pytest.mark.parametrize(
    "dish,keyword",
    (("Tomato Soup", "stock"), ("pasta", "pasta"), ("spaghetti pasta bake", "parmesan")),
)
def test_fallback_recipe_templates(dish: str, keyword: str) -> None:
    recipe = create_fallback_recipe(dish)
    assert any(keyword in ing.ingredient for ing in recipe.ingredients)


def test_fallback_recipe_generic_shapes() -> None:
    custom = create_fallback_recipe("custom", "any")
    assert custom.name == "Simple Home-Style Dish"
    assert custom.cuisine == ""
    assert custom.ingredients and custom.instructions

    by_cuisine = create_fallback_recipe(None, "thai")
    assert by_cuisine.name == "Simple Thai Dish"

    assert create_fallback_recipe().instructions
