"""
Tests for the Firestore gateway using the in-memory fake client: saved
recipes, menus (including legacy documents), user profiles and posts.
Run this file directly to execute tests without pytest.
"""
import sys
from datetime import datetime, timedelta, timezone

import pytest

from chefai.ai.errors import NotFoundError
from chefai.db.crud import MenuCRUD, PostCRUD, RecipeCRUD, UserCRUD
from chefai.db.crud.menus import normalize_menu_document
from chefai.db.models import DailyMealPlan, PostType, ProfileType, RecipeSpec, WeeklyMealPlan
from chefai.testing import FakeFirestore, FakeMediaStorage, png_data_uri, sample_plan_data, sample_recipe_data

USER_ID = "user-1"


def test_recipe_crud():
    print("\n=== TEST: Recipes are stored verbatim under the user ===")
    db = FakeFirestore()
    recipes = RecipeCRUD(db)
    recipe = RecipeSpec.model_validate(sample_recipe_data("Lentejas"))

    recipe_id = recipes.create(USER_ID, recipe, image_url="https://img.example.com/lentejas.png")
    stored = db.store[f"users/{USER_ID}/recipes/{recipe_id}"]
    print("Stored keys:", sorted(stored))
    assert stored["name"] == "Lentejas"
    assert stored["nutritionalTable"]["protein"] == "14g"
    assert isinstance(stored["createdAt"], datetime)

    saved = recipes.get(USER_ID, recipe_id)
    assert saved.id == recipe_id
    assert saved.image_url == "https://img.example.com/lentejas.png"
    assert saved.instructions == recipe.instructions

    assert recipes.get("someone-else", recipe_id) is None
    assert recipes.delete(USER_ID, recipe_id)
    assert not recipes.delete(USER_ID, recipe_id)
    assert recipes.list_by_user(USER_ID) == []
    print("✓ Recipe CRUD test passed")


def test_recipes_listed_newest_first():
    print("\n=== TEST: Recipes are listed newest first ===")
    db = FakeFirestore()
    recipes = RecipeCRUD(db)
    now = datetime.now(timezone.utc)
    ids = []
    for offset, name in enumerate(["Primera", "Segunda", "Tercera"]):
        recipe_id = recipes.create(USER_ID, RecipeSpec.model_validate(sample_recipe_data(name)))
        db.store[f"users/{USER_ID}/recipes/{recipe_id}"]["createdAt"] = now + timedelta(minutes=offset)
        ids.append(recipe_id)

    listed = recipes.list_by_user(USER_ID)
    assert [recipe.name for recipe in listed] == ["Tercera", "Segunda", "Primera"]
    assert [recipe.name for recipe in recipes.list_by_user(USER_ID, limit=1)] == ["Tercera"]
    print("✓ Ordering test passed")


def test_menu_crud():
    print("\n=== TEST: Menus are saved, listed, updated and deleted ===")
    db = FakeFirestore()
    menus = MenuCRUD(db)
    plan = WeeklyMealPlan.model_validate(sample_plan_data(3))

    menu_id = menus.create(USER_ID, plan, ingredients="pasta, tomate", dietary_preferences="vegetariano", number_of_people=4)
    [saved] = menus.list_by_user(USER_ID)
    assert saved.id == menu_id
    assert saved.number_of_days == 3
    assert saved.number_of_people == 4
    assert saved.dietary_preferences == "vegetariano"
    assert saved.weekly_meal_plan[1].day == "Día 2"

    new_day = DailyMealPlan.model_validate(sample_plan_data(1)["weeklyMealPlan"][0])
    assert menus.update(USER_ID, menu_id, [new_day])
    [updated] = menus.list_by_user(USER_ID)
    assert len(updated.weekly_meal_plan) == 1

    assert not menus.update(USER_ID, "missing", [new_day])
    assert menus.delete(USER_ID, menu_id)
    assert menus.list_by_user(USER_ID) == []
    print("✓ Menu CRUD test passed")


def test_legacy_menu_documents_are_normalized():
    print("\n=== TEST: Newline-joined legacy menus are read as lists ===")
    legacy_meal = {
        "name": "Sopa",
        "ingredients": "1 litro de caldo\n\n2 zanahorias",
        "instructions": "1. Calentar el caldo.\n2. Añadir las zanahorias.",
    }
    document = {
        "weeklyMealPlan": [
            {"day": "Día 1", "breakfast": legacy_meal, "lunch": legacy_meal, "comida": legacy_meal, "dinner": legacy_meal}
        ]
    }
    normalized = normalize_menu_document(document)
    assert normalized["weeklyMealPlan"][0]["breakfast"]["ingredients"] == ["1 litro de caldo", "2 zanahorias"]

    db = FakeFirestore()
    db.collection("users").document(USER_ID).collection("menus").document("old").set(
        {**document, "createdAt": datetime.now(timezone.utc)}
    )
    db.collection("users").document(USER_ID).collection("menus").document("broken").set(
        {"weeklyMealPlan": "not a plan", "createdAt": datetime.now(timezone.utc) - timedelta(days=1)}
    )

    menus = MenuCRUD(db).list_by_user(USER_ID)
    assert [menu.id for menu in menus] == ["old"], "Unreadable menus are skipped"
    assert menus[0].weekly_meal_plan[0].dinner.instructions[1] == "2. Añadir las zanahorias."
    print("✓ Legacy menu test passed")


def test_user_lookup():
    print("\n=== TEST: User profiles are read from the users collection ===")
    db = FakeFirestore()
    db.collection("users").document("u1").set({"name": "Ana", "photoURL": "https://example.com/a.png", "profileType": "private"})

    user = UserCRUD(db).get("u1")
    assert user.id == "u1"
    assert user.photo_url == "https://example.com/a.png"
    assert user.profile_type is ProfileType.PRIVATE
    assert not user.can_monetize
    assert UserCRUD(db).get("u2") is None
    print("✓ User lookup test passed")


def test_recipe_post_uploads_media():
    print("\n=== TEST: Recipe posts upload media and snapshot the publisher ===")
    db = FakeFirestore()
    db.collection("users").document("chef").set({"name": "ChefAI", "canMonetize": True})
    storage = FakeMediaStorage()
    posts = PostCRUD(db, media_storage=storage)
    recipe = RecipeSpec.model_validate(sample_recipe_data("Crema de calabaza"))

    post_id = posts.create_recipe_post("chef", recipe, media_data_uri=png_data_uri())
    post = posts.get(post_id)
    print("Post media:", post.media_url)

    assert post.type is PostType.RECIPE
    assert post.content == "Crema de calabaza"
    assert post.ingredients == recipe.ingredients
    assert post.can_monetize
    assert post.likes_count == 0
    assert post.media_url == f"https://storage.example.com/users/chef/posts/{post_id}"
    assert storage.uploads[f"users/chef/posts/{post_id}"] == png_data_uri()

    without_media = posts.get(posts.create_recipe_post("chef", recipe))
    assert without_media.media_url is None
    assert without_media.media_type is None

    with pytest.raises(NotFoundError):
        posts.create_recipe_post("ghost", recipe)
    assert posts.get("missing") is None
    print("✓ Recipe post test passed")


def test_menu_post():
    print("\n=== TEST: Menu posts carry the plan and caption ===")
    db = FakeFirestore()
    db.collection("users").document("ana").set({"name": "Ana"})
    posts = PostCRUD(db)
    plan = WeeklyMealPlan.model_validate(sample_plan_data(2))

    post = posts.get(posts.create_menu_post("ana", "Mi semana", plan))
    assert post.type is PostType.MENU
    assert post.content == "Mi semana"
    assert len(post.weekly_meal_plan) == 2
    assert post.publisher_name == "Ana"
    print("✓ Menu post test passed")


if __name__ == "__main__":
    try:
        test_recipe_crud()
        test_recipes_listed_newest_first()
        test_menu_crud()
        test_legacy_menu_documents_are_normalized()
        test_user_lookup()
        test_recipe_post_uploads_media()
        test_menu_post()
    except AssertionError as e:
        print(f"✗ TEST FAILED: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)
    print("\nAll persistence tests passed.")
