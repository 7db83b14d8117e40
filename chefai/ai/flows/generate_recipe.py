"""
Generate Recipe Flow
Creates a new, detailed recipe from a list of available ingredients.
"""
from typing import Optional

from pydantic import Field

from chefai.ai.invoker import GenerationFlowInvoker
from chefai.ai.registry import STANDARD_SAFETY, PromptTemplate, TemplateKind
from chefai.db.models import ChefModel, RecipeSpec

MIN_SERVINGS = 1
MAX_SERVINGS = 20


class GenerateRecipeInput(ChefModel):
    """Input schema for recipe generation."""
    ingredients: str = Field(..., min_length=1, description="A comma-separated list of available ingredients")
    servings: int = Field(
        ..., ge=MIN_SERVINGS, le=MAX_SERVINGS, description="The number of servings the recipe should yield"
    )
    language: str = Field("Spanish", min_length=1, description='Output language, e.g. "Spanish", "English"')
    cuisine: Optional[str] = Field(None, description='Preferred cuisine, e.g. "Italian", "Mexican"')


def _recipe_context(data: GenerateRecipeInput) -> dict:
    cuisine_line = f"- **Cuisine Type:** {data.cuisine}\n" if data.cuisine else ""
    return {"cuisine_line": cuisine_line}


TEMPLATE = PromptTemplate(
    name="generate_recipe",
    kind=TemplateKind.TEXT,
    input_model=GenerateRecipeInput,
    output_model=RecipeSpec,
    context=_recipe_context,
    context_keys=("cuisine_line",),
    temperature=1.0,
    safety_settings=STANDARD_SAFETY,
    template="""You are a world-class chef with limitless imagination. Your mission is to surprise the user with a creative, delicious, and VERY DETAILED recipe, using the ingredients provided.

**CRITICAL Instruction:** Creativity and variety are your signature! Every time you receive this request, even with the same ingredients, you MUST generate a completely new and detailed idea.

**User Preferences:**
- **Base Ingredients:** {ingredients}
- **Servings:** {servings}
{cuisine_line}
---
**Recipe Generation Rules:**
- If a cuisine type is specified, create a recipe that fits that style.
- If no cuisine is specified, feel free to choose any world cuisine that works well with the ingredients.
- Prioritize using the base ingredients, but you may add 1-2 common ingredients if absolutely essential for a complete dish.

**DETAILED Formatting Instructions:**
The response MUST be a valid JSON object with the following keys:
- `name`: The recipe name.
- `ingredients`: An **ARRAY of strings**. Each string must be a single ingredient with its quantity (e.g., ["2 chicken breasts", "1 cup of rice", "2 tbsp olive oil"]).
- `instructions`: An **ARRAY of strings**. Each string must be a clear and **numbered** preparation step (e.g., ["1. Season the chicken with salt and pepper.", "2. Heat oil in a pan over medium heat."]).
- `equipment`: An **ARRAY of strings**. Each string is a necessary piece of equipment (e.g., ["frying pan", "cutting board"]).
- `benefits`: A **string** with a brief description of the nutritional or health benefits of the recipe.
- `nutritionalTable`: An **OBJECT** with estimated nutritional information per serving, with the keys `calories`, `protein`, `carbs` and `fats` (e.g., {{ "calories": "450kcal", "protein": "40g", "carbs": "30g", "fats": "15g" }}).

**Language Instruction:** The entire response and all its content MUST be in {language}.
""",
)


async def generate_recipe(
    invoker: GenerationFlowInvoker,
    ingredients: str,
    servings: int,
    language: str = "Spanish",
    cuisine: Optional[str] = None,
) -> RecipeSpec:
    """
    Generates a recipe from the available ingredients.

    Args:
        invoker: Generation flow invoker bound to a backend
        ingredients: Comma-separated list of available ingredients
        servings: Number of servings (1-20)
        language: Language of the generated text
        cuisine: Optional preferred cuisine

    Returns:
        RecipeSpec with non-empty ingredients and instructions
    """
    return await invoker.invoke(
        TEMPLATE.name,
        {"ingredients": ingredients, "servings": servings, "language": language, "cuisine": cuisine},
    )
