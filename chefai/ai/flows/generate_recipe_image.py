"""
Generate Recipe Image Flow
Produces a food photograph for a recipe as an image data URI.
"""
from pydantic import Field

from chefai.ai.invoker import GenerationFlowInvoker
from chefai.ai.registry import PromptTemplate, TemplateKind
from chefai.db.models import ChefModel


class GenerateRecipeImageInput(ChefModel):
    recipe_name: str = Field(..., min_length=1, alias="recipeName")


class GenerateRecipeImageOutput(ChefModel):
    image_url: str = Field(
        ...,
        alias="imageUrl",
        description="The generated image as a data URI: 'data:image/png;base64,<encoded_data>'",
    )


TEMPLATE = PromptTemplate(
    name="generate_recipe_image",
    kind=TemplateKind.IMAGE,
    input_model=GenerateRecipeImageInput,
    template=(
        'Una foto de comida profesional y fotorealista de un plato de "{recipe_name}". '
        "La foto debe ser apetitosa, bien iluminada y estar bien compuesta, como si fuera "
        "para una revista de cocina de alta gama."
    ),
)


async def generate_recipe_image(invoker: GenerationFlowInvoker, recipe_name: str) -> GenerateRecipeImageOutput:
    """Generates a photo of the named dish."""
    media = await invoker.invoke(TEMPLATE.name, {"recipe_name": recipe_name})
    return GenerateRecipeImageOutput(image_url=media.url)
