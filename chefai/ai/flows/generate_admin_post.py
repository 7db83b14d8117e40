"""
Generate Admin Post Flow
Generates a recipe and its photo for a topic and publishes them from the
official ChefAI account.
"""
from pydantic import Field

from chefai.ai.errors import NotFoundError
from chefai.ai.flows.create_weekly_meal_plan import RANDOM_CUISINE
from chefai.ai.flows.generate_recipe import generate_recipe
from chefai.ai.flows.generate_recipe_image import generate_recipe_image
from chefai.ai.invoker import GenerationFlowInvoker
from chefai.ai.join import join_all_or_nothing
from chefai.ai.registry import validate_payload
from chefai.db.crud.posts import PostCRUD
from chefai.db.models import ChefModel

ADMIN_POST_SERVINGS = 4


class GenerateAdminPostInput(ChefModel):
    topic: str = Field(
        ..., min_length=5, description='Topic for the recipe post, e.g. "a healthy chicken salad"'
    )


class GenerateAdminPostOutput(ChefModel):
    post_id: str = Field(..., alias="postId")


async def generate_admin_post(
    invoker: GenerationFlowInvoker,
    posts: PostCRUD,
    topic: str,
    official_account_uid: str,
) -> GenerateAdminPostOutput:
    """
    Publishes an AI-generated recipe post for the official account.

    Recipe text and image are generated concurrently and joined
    all-or-nothing: if either fails, nothing is published and the other
    result is discarded.

    Args:
        invoker: Generation flow invoker
        posts: Post gateway used to publish
        topic: What the recipe is about (at least 5 characters)
        official_account_uid: User ID of the official account

    Returns:
        GenerateAdminPostOutput with the new post ID

    Raises:
        ValidationError: topic too short
        NotFoundError: the official account has no profile
        GenerationError: either generation failed
    """
    data = validate_payload(GenerateAdminPostInput, {"topic": topic})

    if posts.users.get(official_account_uid) is None:
        raise NotFoundError(f"Official ChefAI account {official_account_uid} not found")

    recipe, image = await join_all_or_nothing(
        generate_recipe(
            invoker,
            ingredients=data.topic,
            servings=ADMIN_POST_SERVINGS,
            language="Spanish",
            cuisine=RANDOM_CUISINE,
        ),
        generate_recipe_image(invoker, recipe_name=data.topic),
    )

    post_id = posts.create_recipe_post(official_account_uid, recipe, media_data_uri=image.image_url)
    return GenerateAdminPostOutput(post_id=post_id)
