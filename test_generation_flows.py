"""
Tests for the generation flows against a scripted backend: output checking,
error classification, the cooking assistant's partial success, meal plans,
shopping lists and the all-or-nothing admin post.
Run this file directly to execute tests without pytest.
"""
import asyncio
import sys

import httpx
import pytest

from chefai.ai.backend import BackendResponse
from chefai.ai.errors import EncodingError, GenerationError, GenerationErrorKind, NotFoundError, ValidationError
from chefai.ai.flows.cooking_assistant import FALLBACK_RESPONSE, run_cooking_assistant
from chefai.ai.flows.create_weekly_meal_plan import create_weekly_meal_plan
from chefai.ai.flows.generate_admin_post import generate_admin_post
from chefai.ai.flows.generate_detailed_recipe import generate_detailed_recipe
from chefai.ai.flows.generate_recipe import generate_recipe
from chefai.ai.flows.generate_recipe_image import generate_recipe_image
from chefai.ai.flows.generate_shopping_list import collect_plan_ingredients, generate_shopping_list
from chefai.ai.flows.text_to_speech import generate_spoken_instructions
from chefai.ai.invoker import BILLING_MESSAGE, CONFIGURATION_MESSAGE, GenerationFlowInvoker
from chefai.ai.join import join_all_or_nothing
from chefai.ai.registry import TemplateKind
from chefai.db.crud import PostCRUD
from chefai.db.models import RecipeSpec, WeeklyMealPlan
from chefai.services.audio_service import WAV_DATA_URI_PREFIX
from chefai.testing import (
    FakeFirestore,
    StubBackend,
    pcm_data_uri,
    png_data_uri,
    sample_plan_data,
    sample_recipe_data,
)


def _invoker(backend: StubBackend) -> GenerationFlowInvoker:
    return GenerationFlowInvoker(backend)


def _generation_error(coro) -> GenerationError:
    with pytest.raises(GenerationError) as excinfo:
        asyncio.run(coro)
    return excinfo.value


def test_recipe_copies_backend_output():
    print("\n=== TEST: Recipe flow returns the backend's recipe ===")
    data = sample_recipe_data("Arroz con pollo")
    backend = StubBackend().reply("generate_recipe", BackendResponse(output=data))

    recipe = asyncio.run(generate_recipe(_invoker(backend), "pollo, arroz", servings=4))
    print("Recipe:", recipe.name, len(recipe.ingredients), "ingredients")

    assert recipe.name == "Arroz con pollo"
    assert len(recipe.ingredients) == len(data["ingredients"])
    assert recipe.nutritional_table.calories == "350kcal"

    [request] = backend.calls
    assert request.kind is TemplateKind.TEXT
    assert request.output_schema is RecipeSpec
    assert request.config["temperature"] == 1.0
    assert "pollo, arroz" in request.prompt
    print("✓ Recipe flow test passed")


def test_structured_output_parsed_from_fenced_text():
    print("\n=== TEST: JSON inside a markdown fence is accepted ===")
    text = '```json\n{"name": "Gazpacho", "ingredients": ["tomate"], "instructions": ["1. Triturar."]}\n```'
    backend = StubBackend().reply("generate_detailed_recipe", BackendResponse(text=text))

    recipe = asyncio.run(generate_detailed_recipe(_invoker(backend), "Gazpacho", servings=2))
    assert recipe.name == "Gazpacho"
    assert recipe.equipment == []
    assert backend.calls[0].config["temperature"] == 0.8
    print("✓ Fenced JSON test passed")


@pytest.mark.parametrize(
    "override",
    [
        {"instructions": []},
        {"ingredients": []},
        {"nutritionalTable": {"calories": "", "protein": "1g", "carbs": "1g", "fats": "1g"}},
    ],
)
def test_recipe_with_empty_required_parts_is_malformed(override):
    print(f"\n=== TEST: Recipe with {list(override)} emptied is malformed ===")
    backend = StubBackend().reply("generate_recipe", BackendResponse(output={**sample_recipe_data(), **override}))

    error = _generation_error(generate_recipe(_invoker(backend), "huevos", servings=2))
    assert error.kind is GenerationErrorKind.MALFORMED_OUTPUT
    print("✓ Malformed recipe rejected")


def test_unparseable_and_empty_text():
    print("\n=== TEST: Unparseable text is malformed, blank text is empty ===")
    backend = StubBackend().reply("generate_recipe", BackendResponse(text="Aquí tienes tu receta: ..."))
    assert _generation_error(generate_recipe(_invoker(backend), "huevos", 2)).kind is GenerationErrorKind.MALFORMED_OUTPUT

    backend = StubBackend().reply("generate_recipe", BackendResponse(text="   "))
    assert _generation_error(generate_recipe(_invoker(backend), "huevos", 2)).kind is GenerationErrorKind.EMPTY_OUTPUT

    backend = StubBackend().reply("generate_recipe", lambda request: None)
    assert _generation_error(generate_recipe(_invoker(backend), "huevos", 2)).kind is GenerationErrorKind.EMPTY_OUTPUT
    print("✓ Unparseable and empty text test passed")


def test_backend_errors_are_classified():
    print("\n=== TEST: Backend exceptions map onto the error kinds ===")
    cases = [
        (ConnectionError("connection reset"), GenerationErrorKind.BACKEND_UNREACHABLE, None),
        (httpx.ConnectTimeout("timed out"), GenerationErrorKind.BACKEND_UNREACHABLE, None),
        (RuntimeError("400 API key not valid. Please pass a valid API key."), GenerationErrorKind.BACKEND_REFUSED, CONFIGURATION_MESSAGE),
        (RuntimeError("429 RESOURCE_EXHAUSTED: quota exceeded"), GenerationErrorKind.BACKEND_REFUSED, BILLING_MESSAGE),
        (RuntimeError("something odd"), GenerationErrorKind.BACKEND_UNREACHABLE, None),
    ]
    for exc, kind, message in cases:
        backend = StubBackend().reply("generate_recipe", exc)
        error = _generation_error(generate_recipe(_invoker(backend), "huevos", 2))
        print(f"  {type(exc).__name__}: {exc} -> {error.kind.value}")
        assert error.kind is kind
        assert error.__cause__ is exc
        if message:
            assert error.message == message

    backend = StubBackend().reply("generate_recipe", BackendResponse(finish_reason="blocked"))
    error = _generation_error(generate_recipe(_invoker(backend), "huevos", 2))
    assert error.kind is GenerationErrorKind.BACKEND_REFUSED
    print("✓ Error classification test passed")


def test_recipe_image():
    print("\n=== TEST: Image flow returns an image data URI ===")
    backend = StubBackend()
    result = asyncio.run(generate_recipe_image(_invoker(backend), "Paella"))
    assert result.image_url.startswith("data:image/png;base64,")
    assert "Paella" in backend.calls[0].prompt
    assert backend.calls[0].kind is TemplateKind.IMAGE

    backend = StubBackend().reply("generate_recipe_image", BackendResponse(text="no puedo"))
    assert _generation_error(generate_recipe_image(_invoker(backend), "Paella")).kind is GenerationErrorKind.EMPTY_OUTPUT

    backend = StubBackend().reply("generate_recipe_image", BackendResponse(media_url=pcm_data_uri(b"\x00\x00")))
    assert _generation_error(generate_recipe_image(_invoker(backend), "Paella")).kind is GenerationErrorKind.MALFORMED_OUTPUT
    print("✓ Image flow test passed")


def test_speech_wraps_pcm_in_wav():
    print("\n=== TEST: Speech flow returns WAVE audio ===")
    backend = StubBackend().reply("text_to_speech", BackendResponse(media_url=pcm_data_uri(b"\x01\x00" * 100)))
    audio = asyncio.run(generate_spoken_instructions(_invoker(backend), "Corta la cebolla."))

    assert audio.mime_type == "audio/wav"
    assert audio.data_uri.startswith(WAV_DATA_URI_PREFIX)
    assert backend.calls[0].prompt == "Corta la cebolla."

    with pytest.raises(ValidationError):
        asyncio.run(generate_spoken_instructions(_invoker(backend), ""))
    print("✓ Speech flow test passed")


def test_speech_with_odd_pcm_is_an_encoding_error():
    print("\n=== TEST: Unframeable PCM raises EncodingError ===")
    backend = StubBackend().reply("text_to_speech", BackendResponse(media_url=pcm_data_uri(b"\x01\x00\x02")))
    with pytest.raises(EncodingError):
        asyncio.run(generate_spoken_instructions(_invoker(backend), "Hola"))
    print("✓ Odd PCM test passed")


def test_assistant_keeps_text_when_speech_is_empty():
    print("\n=== TEST: Assistant reply survives a speech failure ===")
    backend = (
        StubBackend()
        .reply("cooking_assistant", BackendResponse(text="  Bate los huevos con sal.  "))
        .reply("text_to_speech", BackendResponse())
    )
    recipe = RecipeSpec.model_validate(sample_recipe_data())

    reply = asyncio.run(run_cooking_assistant(_invoker(backend), recipe, [], "¿Qué hago ahora?"))
    print("Reply:", reply.model_dump(by_alias=True, exclude_none=True))

    assert reply.response_text == "Bate los huevos con sal."
    assert reply.audio_data_uri is None
    assert reply.audio_error_kind == GenerationErrorKind.EMPTY_OUTPUT.value
    assert "audioDataUri" not in reply.model_dump(by_alias=True, exclude_none=True)
    print("✓ Partial success test passed")


def test_assistant_audio_and_fallback():
    print("\n=== TEST: Assistant speaks its answer; empty answer becomes an apology ===")
    recipe = RecipeSpec.model_validate(sample_recipe_data())

    backend = StubBackend().reply("cooking_assistant", BackendResponse(text="Sí, puedes usar mantequilla."))
    reply = asyncio.run(run_cooking_assistant(_invoker(backend), recipe, [], "¿Puedo cambiar el aceite?"))
    assert reply.audio_data_uri.startswith(WAV_DATA_URI_PREFIX)
    assert reply.audio_error is None
    assert "Tortilla de patatas" in backend.calls_for("cooking_assistant")[0].prompt
    assert backend.calls_for("text_to_speech")[0].prompt == "Sí, puedes usar mantequilla."

    backend = StubBackend().reply("cooking_assistant", BackendResponse(text=""))
    reply = asyncio.run(run_cooking_assistant(_invoker(backend), recipe, [], "¿?"))
    assert reply.response_text == FALLBACK_RESPONSE

    backend = StubBackend().reply("cooking_assistant", ConnectionError("down"))
    error = _generation_error(run_cooking_assistant(_invoker(backend), recipe, [], "¿?"))
    assert error.kind is GenerationErrorKind.BACKEND_UNREACHABLE
    assert backend.calls_for("text_to_speech") == []
    print("✓ Assistant audio and fallback test passed")


def test_weekly_plan_days_are_relabelled():
    print("\n=== TEST: Weekly plan has exactly N days labelled Día 1..N ===")
    backend = StubBackend().reply("create_weekly_meal_plan", BackendResponse(output=sample_plan_data(3, label="Lunes")))
    plan = asyncio.run(create_weekly_meal_plan(_invoker(backend), "pasta, tomate", number_of_days=3, number_of_people=2))

    assert [day.day for day in plan.weekly_meal_plan] == ["Día 1", "Día 2", "Día 3"]
    assert set(plan.as_mapping()) == {"Día 1", "Día 2", "Día 3"}
    assert plan.weekly_meal_plan[0].comida.name == "Comida 1"
    assert "Ninguna" in backend.calls[0].prompt

    backend = StubBackend().reply("create_weekly_meal_plan", BackendResponse(output=sample_plan_data(2)))
    error = _generation_error(create_weekly_meal_plan(_invoker(backend), "pasta", number_of_days=3, number_of_people=2))
    assert error.kind is GenerationErrorKind.MALFORMED_OUTPUT
    print("✓ Weekly plan test passed")


def test_shopping_list_from_plan():
    print("\n=== TEST: Shopping list is built from every plan ingredient ===")
    plan = WeeklyMealPlan.model_validate(sample_plan_data(2))
    all_ingredients = collect_plan_ingredients(plan)
    assert len(all_ingredients.split("\n")) == 2 * 4 * 4

    output = {"shoppingList": [{"category": "Lácteos y Huevos", "items": ["Huevos"]}]}
    backend = StubBackend().reply("generate_shopping_list", BackendResponse(output=output))
    shopping = asyncio.run(generate_shopping_list(_invoker(backend), all_ingredients))

    assert shopping.shopping_list[0].category == "Lácteos y Huevos"
    assert "4 huevos" in backend.calls[0].prompt
    print("✓ Shopping list test passed")


def test_join_cancels_sibling_on_failure():
    print("\n=== TEST: A failed branch cancels the other ===")
    cancelled = []

    async def slow():
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            cancelled.append(True)
            raise

    async def boom():
        raise GenerationError(GenerationErrorKind.EMPTY_OUTPUT, "nada")

    async def scenario():
        with pytest.raises(GenerationError):
            await join_all_or_nothing(slow(), boom())

    asyncio.run(scenario())
    assert cancelled == [True]

    async def both():
        return await join_all_or_nothing(asyncio.sleep(0, result="a"), asyncio.sleep(0, result="b"))

    assert asyncio.run(both()) == ("a", "b")
    print("✓ Join test passed")


def _posts_with_official_account(uid: str = "official"):
    db = FakeFirestore()
    db.collection("users").document(uid).set({"name": "ChefAI", "photoURL": "https://example.com/chef.png"})
    return db, PostCRUD(db)


def test_admin_post_publishes_recipe_and_image():
    print("\n=== TEST: Admin post publishes a generated recipe with its photo ===")
    db, posts = _posts_with_official_account()
    backend = StubBackend().reply("generate_recipe", BackendResponse(output=sample_recipe_data("Ensalada César")))

    result = asyncio.run(generate_admin_post(_invoker(backend), posts, "una ensalada saludable", "official"))
    post = posts.get(result.post_id)
    print("Post:", post.content, post.media_type)

    assert post.content == "Ensalada César"
    assert post.publisher_name == "ChefAI"
    assert post.media_url == png_data_uri()
    assert post.media_type == "image"
    assert "Aleatoria" in backend.calls_for("generate_recipe")[0].prompt
    assert "**Servings:** 4" in backend.calls_for("generate_recipe")[0].prompt
    print("✓ Admin post test passed")


def test_admin_post_is_all_or_nothing():
    print("\n=== TEST: A failed image publishes nothing ===")
    db, posts = _posts_with_official_account()
    backend = (
        StubBackend()
        .reply("generate_recipe", BackendResponse(output=sample_recipe_data()))
        .reply("generate_recipe_image", BackendResponse())
    )
    error = _generation_error(generate_admin_post(_invoker(backend), posts, "tortilla española", "official"))
    assert error.kind is GenerationErrorKind.EMPTY_OUTPUT
    assert db.collection("published_recipes").get() == []

    with pytest.raises(ValidationError):
        asyncio.run(generate_admin_post(_invoker(backend), posts, "sopa", "official"))
    with pytest.raises(NotFoundError):
        asyncio.run(generate_admin_post(_invoker(backend), posts, "sopa de ajo", "nobody"))
    print("✓ All-or-nothing test passed")


if __name__ == "__main__":
    try:
        test_recipe_copies_backend_output()
        test_structured_output_parsed_from_fenced_text()
        test_recipe_with_empty_required_parts_is_malformed({"instructions": []})
        test_recipe_with_empty_required_parts_is_malformed({"ingredients": []})
        test_unparseable_and_empty_text()
        test_backend_errors_are_classified()
        test_recipe_image()
        test_speech_wraps_pcm_in_wav()
        test_speech_with_odd_pcm_is_an_encoding_error()
        test_assistant_keeps_text_when_speech_is_empty()
        test_assistant_audio_and_fallback()
        test_weekly_plan_days_are_relabelled()
        test_shopping_list_from_plan()
        test_join_cancels_sibling_on_failure()
        test_admin_post_publishes_recipe_and_image()
        test_admin_post_is_all_or_nothing()
    except AssertionError as e:
        print(f"✗ TEST FAILED: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)
    print("\nAll generation flow tests passed.")
