"""
Generate Detailed Recipe Flow
Expands a recipe title (e.g. a meal from a weekly plan) into a full recipe.
"""
from typing import Optional

from pydantic import Field

from chefai.ai.flows.generate_recipe import MAX_SERVINGS, MIN_SERVINGS
from chefai.ai.invoker import GenerationFlowInvoker
from chefai.ai.registry import PromptTemplate, TemplateKind
from chefai.db.models import ChefModel, RecipeSpec


class GenerateDetailedRecipeInput(ChefModel):
    recipe_name: str = Field(..., min_length=1, alias="recipeName", description="The name of the recipe to generate")
    servings: int = Field(..., ge=MIN_SERVINGS, le=MAX_SERVINGS)
    context: Optional[str] = Field(None, description="User preferences or ingredients on hand")


TEMPLATE = PromptTemplate(
    name="generate_detailed_recipe",
    kind=TemplateKind.TEXT,
    input_model=GenerateDetailedRecipeInput,
    output_model=RecipeSpec,
    context=lambda data: {
        "context_line": (
            f"**User Context (preferences, ingredients on hand, etc.):** {data.context}\n"
            if data.context else ""
        )
    },
    context_keys=("context_line",),
    temperature=0.8,
    template="""You are a world-class chef and nutritionist. A user wants a detailed recipe based on a title they have.
Your mission is to generate a creative, delicious, and VERY DETAILED recipe.

**Recipe to generate:** {recipe_name}
**Servings:** {servings}
{context_line}
---
**DETAILED Format Instructions:**
The response MUST be a valid JSON object with the following keys:
- `name`: The recipe name. This should be the same as or very similar to the requested recipe.
- `ingredients`: An **ARRAY of strings**, each a single ingredient with its precise quantity.
- `instructions`: An **ARRAY of strings**, each a clear and **numbered** preparation step.
- `equipment`: An **ARRAY of strings**, each a necessary piece of equipment.
- `benefits`: A **string** with a brief description of the nutritional or health benefits.
- `nutritionalTable`: An **OBJECT** with the keys `calories`, `protein`, `carbs` and `fats`, estimated per serving.
**Language Instruction:** All text content MUST be in Spanish.
""",
)


async def generate_detailed_recipe(
    invoker: GenerationFlowInvoker,
    recipe_name: str,
    servings: int,
    context: Optional[str] = None,
) -> RecipeSpec:
    """Generates a full recipe for a given title."""
    return await invoker.invoke(
        TEMPLATE.name,
        {"recipe_name": recipe_name, "servings": servings, "context": context},
    )
