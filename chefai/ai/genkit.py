"""
Genkit + Google AI generation backend.

The Genkit instance is built explicitly by `create_backend()` and handed to
the invoker, so nothing here is initialised at import time.
"""
import logging
from typing import Any, Optional

from genkit.ai import Genkit
from genkit.plugins.google_genai import GoogleAI

from chefai.ai.backend import BackendResponse, GenerationBackend, GenerationRequest
from chefai.ai.registry import TemplateKind
from chefai.config import Settings, get_settings

logger = logging.getLogger(__name__)


def _response_text(response: Any) -> Optional[str]:
    try:
        return response.text
    except (AttributeError, TypeError):
        return None


def _response_output(response: Any) -> Any:
    # Genkit parses structured output lazily; a parse failure here is left
    # for the invoker to report as malformed output from the raw text.
    try:
        return response.output
    except (AttributeError, ValueError):
        return None


def _first_media_url(response: Any) -> Optional[str]:
    media = getattr(response, "media", None)
    if media is not None and getattr(media, "url", None):
        return media.url

    message = getattr(response, "message", None)
    for part in getattr(message, "content", None) or []:
        part = getattr(part, "root", part)
        media = getattr(part, "media", None)
        if media is not None and getattr(media, "url", None):
            return media.url
    return None


def _finish_reason(response: Any) -> Optional[str]:
    reason = getattr(response, "finish_reason", None)
    if reason is None:
        return None
    return str(getattr(reason, "value", reason))


class GenkitBackend(GenerationBackend):
    """Dispatches generation requests through a Genkit instance."""

    def __init__(
        self,
        ai: Genkit,
        text_model: str,
        image_model: str,
        tts_model: str,
        tts_voice: str = "Algenib",
    ):
        self.ai = ai
        self.text_model = text_model
        self.image_model = image_model
        self.tts_model = tts_model
        self.tts_voice = tts_voice

    def _model_for(self, request: GenerationRequest) -> str:
        if request.model:
            return request.model
        if request.kind is TemplateKind.IMAGE:
            return self.image_model
        if request.kind is TemplateKind.SPEECH:
            return self.tts_model
        return self.text_model

    def _config_for(self, request: GenerationRequest) -> dict:
        config = dict(request.config)
        if request.kind is TemplateKind.IMAGE:
            config.setdefault("response_modalities", ["TEXT", "IMAGE"])
        elif request.kind is TemplateKind.SPEECH:
            config.setdefault("response_modalities", ["AUDIO"])
            config.setdefault(
                "speech_config",
                {"voice_config": {"prebuilt_voice_config": {"voice_name": self.tts_voice}}},
            )
        return config

    async def generate(self, request: GenerationRequest) -> BackendResponse:
        kwargs = {
            "model": self._model_for(request),
            "prompt": request.prompt,
            "config": self._config_for(request),
        }
        if request.output_schema is not None:
            kwargs["output_schema"] = request.output_schema

        logger.debug("Dispatching %s to %s", request.template_name, kwargs["model"])
        response = await self.ai.generate(**kwargs)

        return BackendResponse(
            text=_response_text(response),
            output=_response_output(response) if request.output_schema is not None else None,
            media_url=_first_media_url(response),
            finish_reason=_finish_reason(response),
        )


def create_backend(settings: Optional[Settings] = None) -> GenkitBackend:
    """
    Build a Genkit instance with the Google AI plugin.

    Args:
        settings: Settings to use; defaults to the environment

    Returns:
        GenkitBackend bound to the configured models
    """
    settings = settings or get_settings()
    if not settings.google_api_key:
        logger.warning("GOOGLE_API_KEY is not set; generation requests will be rejected")

    ai = Genkit(
        plugins=[GoogleAI(api_key=settings.google_api_key)],
        model=settings.text_model,
    )
    return GenkitBackend(
        ai,
        text_model=settings.text_model,
        image_model=settings.image_model,
        tts_model=settings.tts_model,
        tts_voice=settings.tts_voice,
    )
