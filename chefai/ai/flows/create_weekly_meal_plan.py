"""
Create Weekly Meal Plan Flow
Plans breakfast, light lunch, main meal and dinner for 1 to 7 days.
"""
from typing import Optional

from pydantic import Field

from chefai.ai.errors import GenerationError, GenerationErrorKind
from chefai.ai.invoker import MALFORMED_MESSAGE, GenerationFlowInvoker
from chefai.ai.registry import STANDARD_SAFETY, PromptTemplate, TemplateKind
from chefai.db.models import ChefModel, WeeklyMealPlan

MIN_DAYS = 1
MAX_DAYS = 7
RANDOM_CUISINE = "Aleatoria"


def day_label(index: int) -> str:
    """Fixed day key: "Día 1" .. "Día 7"."""
    return f"Día {index}"


class CreateWeeklyMealPlanInput(ChefModel):
    ingredients: str = Field(..., min_length=1, description="Comma-separated ingredients to use")
    dietary_preferences: Optional[str] = Field(None, alias="dietaryPreferences")
    number_of_days: int = Field(..., ge=MIN_DAYS, le=MAX_DAYS, alias="numberOfDays")
    number_of_people: int = Field(..., ge=1, alias="numberOfPeople")
    cuisine: Optional[str] = Field(None, description='Main cuisine; "Aleatoria" varies it')


TEMPLATE = PromptTemplate(
    name="create_weekly_meal_plan",
    kind=TemplateKind.TEXT,
    input_model=CreateWeeklyMealPlanInput,
    output_model=WeeklyMealPlan,
    context=lambda data: {
        "preferences_text": data.dietary_preferences or "Ninguna",
        "cuisine_text": data.cuisine or "Variada / Aleatoria",
    },
    context_keys=("preferences_text", "cuisine_text"),
    temperature=1.0,
    safety_settings=STANDARD_SAFETY,
    template="""Eres un planificador de comidas experto y un genio culinario. Tu tarea es diseñar un plan de comidas semanal que sea emocionante, variado, delicioso y DETALLADO, basándote en las preferencias del usuario.

**Instrucción CRÍTICA:** ¡La variedad y el detalle son la clave absoluta! Cada vez que generes un plan, DEBE ser significativamente diferente a cualquier plan anterior.

**Preferencias del Usuario:**
- **Ingredientes disponibles:** {ingredients}
- **Preferencias dietéticas:** {preferences_text}
- **Tipo de Cocina:** {cuisine_text}
- **Número de días:** {number_of_days}
- **Personas a servir:** {number_of_people}

**Instrucciones de Formato DETALLADO:**
1.  Crea un plan que cubra desayuno, almuerzo (comida ligera), comida (plato principal) y cena para cada uno de los {number_of_days} días.
2.  Si se especifica un tipo de cocina (y no es "Aleatoria"), todas las recetas deben pertenecer a esa cocina. Si no, varía las cocinas del mundo a lo largo de la semana.
3.  La respuesta DEBE ser un objeto JSON válido con una clave de nivel superior `weeklyMealPlan`, un ARRAY de objetos de día.
4.  Cada objeto de día tiene las claves `day` ("Día 1", "Día 2", ...), `breakfast`, `lunch`, `comida` y `dinner`.
5.  Cada comida es un objeto con `name`, `ingredients` (ARRAY de strings con cantidades), `instructions` (ARRAY de pasos numerados), `benefits` (opcional) y `nutritionalTable` (opcional, con `calories`, `protein`, `carbs` y `fats`).
6.  Utiliza los ingredientes disponibles como base y respeta estrictamente las preferencias dietéticas.
7.  **Instrucción de Idioma:** Toda la respuesta DEBE estar en español.
""",
)


async def create_weekly_meal_plan(
    invoker: GenerationFlowInvoker,
    ingredients: str,
    number_of_days: int,
    number_of_people: int,
    dietary_preferences: Optional[str] = None,
    cuisine: Optional[str] = None,
) -> WeeklyMealPlan:
    """
    Creates a meal plan with exactly `number_of_days` days.

    Days are relabelled "Día 1" .. "Día N" in order.

    Raises:
        ValidationError: days outside 1-7 or people below 1
        GenerationError: the plan has the wrong number of days
    """
    plan = await invoker.invoke(
        TEMPLATE.name,
        {
            "ingredients": ingredients,
            "dietary_preferences": dietary_preferences,
            "number_of_days": number_of_days,
            "number_of_people": number_of_people,
            "cuisine": cuisine,
        },
    )
    if len(plan.weekly_meal_plan) != number_of_days:
        raise GenerationError(GenerationErrorKind.MALFORMED_OUTPUT, MALFORMED_MESSAGE)

    days = [
        day.model_copy(update={"day": day_label(index)})
        for index, day in enumerate(plan.weekly_meal_plan, start=1)
    ]
    return WeeklyMealPlan(weekly_meal_plan=days)
