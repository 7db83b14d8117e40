"""
Generation flows. Each module declares its prompt template next to the
function that runs it; `build_default_registry` collects them.
"""
from chefai.ai.flows import (
    cooking_assistant,
    create_weekly_meal_plan,
    generate_detailed_recipe,
    generate_recipe,
    generate_recipe_image,
    generate_shopping_list,
    text_to_speech,
)
from chefai.ai.registry import PromptRegistry

TEMPLATES = (
    generate_recipe.TEMPLATE,
    generate_detailed_recipe.TEMPLATE,
    generate_recipe_image.TEMPLATE,
    text_to_speech.TEMPLATE,
    cooking_assistant.TEMPLATE,
    create_weekly_meal_plan.TEMPLATE,
    generate_shopping_list.TEMPLATE,
)


def build_default_registry() -> PromptRegistry:
    """Registry holding every ChefAI prompt template."""
    return PromptRegistry(TEMPLATES)
