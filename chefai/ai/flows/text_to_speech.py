"""
Text To Speech Flow
Turns a cooking instruction into playable WAVE audio.
"""
from pydantic import Field

from chefai.ai.invoker import GenerationFlowInvoker
from chefai.ai.registry import PromptTemplate, TemplateKind
from chefai.db.models import AudioPayload, ChefModel
from chefai.services.audio_service import pcm_to_audio_payload


class GenerateSpokenInstructionsInput(ChefModel):
    text: str = Field(..., min_length=1, description="The text to speak")


class GenerateSpokenInstructionsOutput(ChefModel):
    audio_data_uri: str = Field(
        ...,
        alias="audioDataUri",
        description="The generated audio as a data URI: 'data:audio/wav;base64,<encoded_data>'",
    )


TEMPLATE = PromptTemplate(
    name="text_to_speech",
    kind=TemplateKind.SPEECH,
    input_model=GenerateSpokenInstructionsInput,
    template="{text}",
)


async def generate_spoken_instructions(invoker: GenerationFlowInvoker, text: str) -> AudioPayload:
    """
    Speaks `text` and returns it as WAVE audio.

    The backend returns 24 kHz mono 16-bit PCM; it is wrapped in a RIFF/WAVE
    container before encoding.

    Raises:
        GenerationError: no audio came back
        EncodingError: the PCM could not be framed
    """
    media = await invoker.invoke(TEMPLATE.name, {"text": text})
    return pcm_to_audio_payload(media.data)
