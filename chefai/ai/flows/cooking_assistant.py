"""
Cooking Assistant Flow
Conversational assistant that answers questions about the recipe being
cooked, then speaks the answer.
"""
import logging
from typing import List, Optional, Sequence

from pydantic import Field

from chefai.ai.errors import EncodingError, GenerationError, GenerationErrorKind
from chefai.ai.flows.text_to_speech import generate_spoken_instructions
from chefai.ai.invoker import GenerationFlowInvoker
from chefai.ai.registry import PERMISSIVE_SAFETY, PromptTemplate, TemplateKind
from chefai.db.models import ChefModel, ConversationTurn, RecipeSpec

logger = logging.getLogger(__name__)

FALLBACK_RESPONSE = (
    "Lo siento, no he podido procesar esa pregunta. "
    "¿Podrías intentarlo de nuevo de otra manera?"
)


def greeting_for(recipe_name: str) -> str:
    """Opening line of a cooking-assistant dialog."""
    return (
        f'¡Hola! Soy ChefAI, tu asistente de cocina. Estoy aquí para ayudarte con la receta de "{recipe_name}". '
        "Puedes pedirme los ingredientes, el siguiente paso, o preguntarme por sustituciones. "
        "¿Estás listo para empezar?"
    )


class CookingAssistantInput(ChefModel):
    recipe: RecipeSpec = Field(..., description="The full recipe the user is cooking")
    history: List[ConversationTurn] = Field(default=[], description="The conversation so far")
    user_query: str = Field(..., min_length=1, alias="userQuery", description="The user's latest question or command")


class CookingAssistantReply(ChefModel):
    """Text reply plus its audio, when audio could be produced."""
    response_text: str = Field(..., alias="responseText")
    audio_data_uri: Optional[str] = Field(None, alias="audioDataUri")
    audio_error: Optional[str] = Field(None, alias="audioError")
    audio_error_kind: Optional[str] = Field(None, alias="audioErrorKind")


def _bullets(lines: Sequence[str]) -> str:
    return "\n".join(f"- {line}" for line in lines)


def _assistant_context(data: CookingAssistantInput) -> dict:
    return {
        "ingredients_block": _bullets(data.recipe.ingredients),
        "instructions_block": _bullets(data.recipe.instructions),
        "history_block": "\n".join(f"{turn.role}: {turn.content}" for turn in data.history),
    }


TEMPLATE = PromptTemplate(
    name="cooking_assistant",
    kind=TemplateKind.TEXT,
    input_model=CookingAssistantInput,
    context=_assistant_context,
    context_keys=("ingredients_block", "instructions_block", "history_block"),
    temperature=0.7,
    safety_settings=PERMISSIVE_SAFETY,
    template="""Eres ChefAI, un asistente de cocina amigable y experto. Estás guiando a un usuario a través de una receta, paso a paso, por voz.

Tu personalidad: Alentador, claro y conciso. Eres un profesor paciente.

**Tu Tarea:**
Responde a la última consulta del usuario basándote en la receta proporcionada y el historial de la conversación.

**Contexto de la Receta:**
Nombre de la Receta: {recipe.name}

Ingredientes:
{ingredients_block}

Instrucciones:
{instructions_block}

**Historial de la Conversación:**
{history_block}

**Última Consulta del Usuario:**
"{user_query}"

**Instrucciones para tu respuesta:**
1.  **Responde directamente a la consulta del usuario.** Si piden los ingredientes, lístalos. Si piden una sustitución, proporciona una sugerencia útil. Si dicen que están listos para el siguiente paso, proporciona la siguiente instrucción.
2.  **Sé conciso.** Tus respuestas serán habladas en voz alta.
3.  **Mantén el contexto.** Usa el historial para entender en qué parte del proceso se encuentran.
4.  **No repitas la consulta del usuario** en tu respuesta.
5.  **Idioma:** Responde ÚNICAMENTE en español.

Tu respuesta:
""",
)


async def get_cooking_response(
    invoker: GenerationFlowInvoker,
    recipe: RecipeSpec,
    history: Sequence[ConversationTurn],
    user_query: str,
) -> str:
    """
    Answers the user's latest query about the recipe.

    An empty answer (the model returned nothing) becomes a polite apology;
    any other failure propagates.
    """
    try:
        return await invoker.invoke(
            TEMPLATE.name,
            {"recipe": recipe, "history": list(history), "user_query": user_query},
        )
    except GenerationError as exc:
        if exc.kind is GenerationErrorKind.EMPTY_OUTPUT:
            return FALLBACK_RESPONSE
        raise


async def run_cooking_assistant(
    invoker: GenerationFlowInvoker,
    recipe: RecipeSpec,
    history: Sequence[ConversationTurn],
    user_query: str,
) -> CookingAssistantReply:
    """
    One assistant turn: text answer first, then its audio.

    A text failure propagates. An audio failure does not: the reply keeps
    the text and reports the audio error instead of an audioDataUri.
    """
    response_text = await get_cooking_response(invoker, recipe, history, user_query)

    try:
        audio = await generate_spoken_instructions(invoker, response_text)
    except (GenerationError, EncodingError) as exc:
        logger.debug("No audio for assistant reply: %s", exc.message)
        kind = exc.kind.value if isinstance(exc, GenerationError) else "encoding_error"
        return CookingAssistantReply(
            response_text=response_text,
            audio_error=exc.message,
            audio_error_kind=kind,
        )

    return CookingAssistantReply(response_text=response_text, audio_data_uri=audio.data_uri)
