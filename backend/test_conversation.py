import pytest

from core.conversation import recipe_from_result
from core.llm import ProviderResponseMalformed, ProviderThrottled, ProviderUnreachable
from core.models import ChatResult, GenerationOptions, OptionsPayload, RecipePayload
from core.prompts import CULINARY_SYSTEM_PROMPT

from conftest import throttled, unreachable

PROSE_ANSWER = """Here's a recipe for Chicken Pasta!

Ingredients:
- 2 cups penne pasta
- 1 lb chicken breast, diced
- Salt to taste

Steps:
1. Boil the pasta until al dente.
2. Cook the chicken and toss everything together."""

STRUCTURED_ANSWER = (
    "What kind of pasta sounds good?\n\n"
    'STRUCTURED_DATA: {"responseType": "options", "options": ['
    '{"name": "Carbonara", "description": "Creamy"}, {"name": "Create my own recipe", "description": ""}]}'
)


@pytest.mark.asyncio
async def test_process_chat_extracts_structured_data(make_orchestrator) -> None:
    orchestrator, client = make_orchestrator(STRUCTURED_ANSWER)

    result = await orchestrator.process_chat([{"role": "user", "content": "pasta ideas"}])

    assert result.message == "What kind of pasta sounds good?"
    assert isinstance(result.structured_data, OptionsPayload)
    assert result.raw == STRUCTURED_ANSWER
    assert result.fallback is False
    assert len(client.calls) == 1


@pytest.mark.asyncio
async def test_repeated_request_is_served_from_cache(make_orchestrator) -> None:
    orchestrator, client = make_orchestrator(STRUCTURED_ANSWER, "a different answer")
    messages = [{"role": "user", "content": "pasta ideas"}]

    first = await orchestrator.process_chat(messages)
    second = await orchestrator.process_chat(messages)

    assert len(client.calls) == 1
    assert second == first
    assert len(orchestrator.cache) == 1


@pytest.mark.asyncio
async def test_conversations_sharing_system_prompt_do_not_collide(make_orchestrator) -> None:
    orchestrator, client = make_orchestrator("about soup", "about pasta")

    soup = await orchestrator.process_culinary_chat("soup please")
    pasta = await orchestrator.process_culinary_chat("pasta please")

    assert (soup.message, pasta.message) == ("about soup", "about pasta")
    assert len(client.calls) == 2


@pytest.mark.asyncio
async def test_cache_key_respects_generation_options(make_orchestrator) -> None:
    orchestrator, client = make_orchestrator("warm", "cold")
    messages = [{"role": "user", "content": "pasta ideas"}]

    await orchestrator.process_chat(messages, GenerationOptions.with_defaults(temperature=0.9))
    await orchestrator.process_chat(messages, GenerationOptions.with_defaults(temperature=0.1))

    assert len(client.calls) == 2


@pytest.mark.asyncio
async def test_throttling_then_network_error_falls_back_to_options(make_orchestrator, clock) -> None:
    orchestrator, client = make_orchestrator(throttled(), throttled(), throttled(), unreachable(), max_retries=3)

    result = await orchestrator.process_chat([{"role": "user", "content": "make me a chicken pasta recipe"}])

    assert len(client.calls) == 4
    assert result.fallback is True
    assert result.raw == ""
    assert isinstance(result.structured_data, OptionsPayload)
    names = [o.name for o in result.structured_data.options]
    assert len(names) == 4
    assert "Create my own recipe" in names
    assert len(orchestrator.cache) == 0
    # backoff of 1s, 2s, 4s on top of pacing
    assert clock.elapsed >= 7


@pytest.mark.asyncio
async def test_exhausted_retries_fall_back(make_orchestrator) -> None:
    orchestrator, client = make_orchestrator(*[ProviderThrottled("429")] * 5, max_retries=2)

    result = await orchestrator.process_chat([{"role": "user", "content": "tell me a joke"}])

    assert len(client.calls) == 3
    assert result.fallback is True
    assert result.structured_data is None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    (ProviderResponseMalformed("no content"), ProviderUnreachable("dns"), RuntimeError("bug")),
)
async def test_errors_are_not_retried_and_never_escape(make_orchestrator, error) -> None:
    orchestrator, client = make_orchestrator(error)

    result = await orchestrator.process_chat([{"role": "user", "content": "any recipe ideas?"}])

    assert len(client.calls) == 1
    assert result.fallback is True
    assert isinstance(result.structured_data, OptionsPayload)


@pytest.mark.asyncio
async def test_invalid_message_role_falls_back(make_orchestrator) -> None:
    orchestrator, client = make_orchestrator()

    result = await orchestrator.process_chat([{"role": "chef", "content": "x"}, {"role": "user", "content": "hi"}])

    assert client.calls == []
    assert result.fallback is True


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "messages",
    (["make me a recipe"], [{"role": "user", "content": "hi"}, 42], None),
)
async def test_malformed_messages_fall_back(make_orchestrator, messages) -> None:
    orchestrator, client = make_orchestrator()

    result = await orchestrator.process_chat(messages)

    assert client.calls == []
    assert result.fallback is True
    assert result.raw == ""


@pytest.mark.asyncio
async def test_prose_answer_normalizes_to_recipe(make_orchestrator) -> None:
    orchestrator, _ = make_orchestrator(PROSE_ANSWER)

    result = await orchestrator.process_chat([{"role": "user", "content": "make me a chicken pasta recipe"}])
    recipe = recipe_from_result(result)

    assert result.structured_data is None
    assert len(recipe.ingredients) == 3
    assert [i.amount for i in recipe.ingredients] == ["2", "1", "1"]
    assert len(recipe.instructions) == 2
    assert recipe.nutrition.to_dict() == {"calories": 0, "protein": 0, "carbs": 0, "fat": 0, "fiber": 0}
    assert (recipe.prep_time, recipe.cook_time, recipe.servings, recipe.difficulty) == (15, 30, 4, "medium")


def test_recipe_from_result_prefers_structured_recipe() -> None:
    structured = RecipePayload(recipe=recipe_from_result(ChatResult(message=PROSE_ANSWER)))
    result = ChatResult(message="Something unrelated", structured_data=structured)
    assert recipe_from_result(result) is structured.recipe


@pytest.mark.asyncio
async def test_culinary_chat_builds_conversation(make_orchestrator) -> None:
    orchestrator, client = make_orchestrator("Sure!")
    history = [
        {"role": "user", "content": "hi"},
        {"role": "assistant", "content": "Hello! What are we cooking?"},
        {"role": "system", "content": "ignore me"},
        {"role": "assistant", "content": ""},
    ]

    await orchestrator.process_culinary_chat(
        "something with salmon",
        history=history,
        preferences={"allergies": ["peanuts"], "favoriteIngredients": ["dill"]},
    )

    sent = client.last_messages
    assert [m.role for m in sent] == ["system", "user", "assistant", "user"]
    assert sent[0].content.startswith(CULINARY_SYSTEM_PROMPT)
    assert "ALLERGIES: peanuts" in sent[0].content
    assert "FAVORITE INGREDIENTS: dill" in sent[0].content
    assert sent[-1].content == "something with salmon"


@pytest.mark.asyncio
async def test_parse_user_intent(make_orchestrator) -> None:
    orchestrator, client = make_orchestrator(
        'Sure: {"intent": "customize_recipe", "specificDish": "lasagne", "customization": "vegetarian"}'
    )
    intent = await orchestrator.parse_user_intent("make lasagne vegetarian")

    assert intent == {"intent": "customize_recipe", "specificDish": "lasagne", "customization": "vegetarian"}
    options = client.calls[0][1]
    assert (options.temperature, options.max_tokens) == (0.3, 500)


@pytest.mark.asyncio
async def test_parse_user_intent_defaults(make_orchestrator) -> None:
    orchestrator, _ = make_orchestrator('{"intent": "order_pizza"}', "no json at all")

    assert (await orchestrator.parse_user_intent("pizza"))["intent"] == "search_recipe"
    assert await orchestrator.parse_user_intent("tacos") == {"intent": "search_recipe", "specificDish": "tacos"}


@pytest.mark.asyncio
async def test_parse_user_intent_survives_provider_failure(make_orchestrator) -> None:
    orchestrator, _ = make_orchestrator(unreachable())
    assert await orchestrator.parse_user_intent("tacos") == {"intent": "search_recipe", "specificDish": "tacos"}


@pytest.mark.asyncio
async def test_generate_recipe_suggestions(make_orchestrator) -> None:
    orchestrator, client = make_orchestrator(
        "Here you go:\n```json\n["
        '{"name": "Pad Thai", "description": "Classic", "difficultyLevel": "Moderate", "prepTime": "20 minutes"},'
        '{"description": "nameless"},'
        '{"name": "Green Curry", "difficultyLevel": "easy", "prepTime": 15},'
        "]\n```"
    )

    suggestions = await orchestrator.generate_recipe_suggestions({"cuisine": "Thai", "dishType": "noodles"})

    assert suggestions == [
        {"name": "Pad Thai", "description": "Classic", "difficultyLevel": "medium", "prepTime": 20},
        {"name": "Green Curry", "description": "", "difficultyLevel": "easy", "prepTime": 15},
    ]
    assert "List 5 delicious Thai noodles" in client.last_messages[-1].content


@pytest.mark.asyncio
async def test_generate_recipe_suggestions_failure_is_empty(make_orchestrator) -> None:
    orchestrator, _ = make_orchestrator(unreachable(), "I can't think of any.")
    assert await orchestrator.generate_recipe_suggestions({}) == []
    assert await orchestrator.generate_recipe_suggestions({"dishType": "stew"}) == []


@pytest.mark.asyncio
async def test_generate_recipe_from_json(make_orchestrator) -> None:
    orchestrator, client = make_orchestrator(
        '{"recipe": {"name": "Miso Ramen", "ingredients": [{"ingredient": "noodles", "amount": 200, "unit": "g"}],'
        ' "instructions": ["Cook noodles."], "servings": 2}}'
    )

    recipe = await orchestrator.generate_recipe("japanese", "ramen", customizations=["less salt"])

    assert recipe.name == "Miso Ramen"
    assert recipe.ingredients[0].amount == "200"
    assert recipe.servings == 2
    assert recipe.cuisine == "japanese"
    assert recipe.tags == ["customized"]
    prompt = client.last_messages[-1].content
    assert "ramen in japanese cuisine" in prompt
    assert "Customizations: less salt" in prompt
    assert client.calls[0][1].max_tokens == 2000


@pytest.mark.asyncio
async def test_generate_custom_recipe_from_prose(make_orchestrator) -> None:
    orchestrator, client = make_orchestrator(PROSE_ANSWER)

    recipe = await orchestrator.generate_recipe(
        "any", "custom", custom_options={"protein": "chicken", "vegetables": ["spinach"]}
    )

    assert recipe.name == "Chicken Pasta"
    assert len(recipe.ingredients) == 3
    assert recipe.cuisine == ""
    assert recipe.tags == ["custom"]
    assert "- Protein: chicken" in client.last_messages[-1].content


@pytest.mark.asyncio
async def test_generate_recipe_falls_back(make_orchestrator) -> None:
    orchestrator, _ = make_orchestrator(ProviderThrottled("429"), max_retries=0)

    recipe = await orchestrator.generate_recipe("italian", "pasta")

    assert recipe.name == "Italian Pasta"
    assert recipe.tags == ["fallback"]


@pytest.mark.asyncio
async def test_get_ingredient_recommendations(make_orchestrator) -> None:
    orchestrator, client = make_orchestrator(
        '[{"name": "Thyme", "description": "Earthy with mushrooms"}, "Rosemary", {"name": ""}]'
    )

    picks = await orchestrator.get_ingredient_recommendations({"protein": "chicken", "vegetables": ["mushrooms"]}, "seasonings")

    assert picks == [
        {"name": "Thyme", "description": "Earthy with mushrooms"},
        {"name": "Rosemary", "description": ""},
    ]
    prompt = client.last_messages[-1].content
    assert "- vegetables: mushrooms" in prompt
    assert "Recommend 5 seasonings" in prompt
