"""
Generate Shopping List Flow
Groups the ingredients of a meal plan into supermarket sections.
"""
from pydantic import Field

from chefai.ai.invoker import GenerationFlowInvoker
from chefai.ai.registry import STANDARD_SAFETY, PromptTemplate, TemplateKind
from chefai.db.models import ChefModel, ShoppingList, WeeklyMealPlan


class GenerateShoppingListInput(ChefModel):
    all_ingredients: str = Field(
        ..., min_length=1, alias="allIngredients", description="Every needed ingredient, one per line"
    )


TEMPLATE = PromptTemplate(
    name="generate_shopping_list",
    kind=TemplateKind.TEXT,
    input_model=GenerateShoppingListInput,
    output_model=ShoppingList,
    safety_settings=STANDARD_SAFETY,
    template="""Eres un asistente de compras experto. Tu tarea es crear una lista de compras categorizada a partir de una lista de ingredientes.

**Instrucciones:**
1.  Analiza la siguiente lista de ingredientes:
{all_ingredients}
2.  Agrega y consolida todos los ingredientes duplicados. No incluyas cantidades, solo el nombre del ingrediente.
3.  Organiza los ingredientes en categorías de supermercado: "Frutas y Verduras", "Carnes y Aves", "Pescados y Mariscos", "Lácteos y Huevos", "Panadería", "Productos Enlatados y Secos", "Condimentos y Especias", "Bebidas", "Otros".
4.  La respuesta DEBE ser un objeto JSON válido con la clave de nivel superior `shoppingList`, un ARRAY de objetos con las claves `category` e `items` (ARRAY de strings).
5.  **Instrucción de Idioma:** Toda la respuesta debe estar en español.
""",
)


def collect_plan_ingredients(plan: WeeklyMealPlan) -> str:
    """All ingredients of every meal in the plan, one per line."""
    return "\n".join(
        ingredient
        for day in plan.weekly_meal_plan
        for meal in day.meals()
        for ingredient in meal.ingredients
    )


async def generate_shopping_list(invoker: GenerationFlowInvoker, all_ingredients: str) -> ShoppingList:
    """Builds a categorised, de-duplicated shopping list."""
    return await invoker.invoke(TEMPLATE.name, {"all_ingredients": all_ingredients})
