"""
Generation Flow Invoker.

Runs a named prompt template against the backend:

1. validate the caller's input (ValidationError, no network call),
2. render the prompt,
3. dispatch with the template's generation parameters,
4. check the response against the declared output shape.

Every failure after step 1 surfaces as a GenerationError. Nothing is retried
or cached: identical requests are expected to produce different recipes.
"""
import asyncio
import json
import logging
import re
from typing import Any, Optional

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from chefai.ai.backend import BackendResponse, GenerationBackend, GenerationRequest
from chefai.ai.errors import GenerationError, GenerationErrorKind
from chefai.ai.media import GeneratedMedia, decode_data_uri, split_data_uri
from chefai.ai.registry import PromptRegistry, PromptTemplate, TemplateKind

logger = logging.getLogger(__name__)

CONFIGURATION_MESSAGE = (
    "ERROR DE CONFIGURACIÓN DE IA: Tu clave de API no es válida o la API necesaria "
    "no está habilitada. Revisa la configuración de tu proyecto de Google Cloud."
)
BILLING_MESSAGE = (
    "ERROR DE FACTURACIÓN DE IA: Has excedido la cuota gratuita. Asegúrate de que la "
    "facturación esté habilitada para tu proyecto de Google Cloud para continuar."
)
SAFETY_MESSAGE = "La IA rechazó la solicitud por sus políticas de seguridad."
UNREACHABLE_MESSAGE = "El generador de IA no pudo responder. Por favor, intenta de nuevo."
EMPTY_MESSAGE = "La IA no devolvió ningún contenido. Por favor, intenta de nuevo."
MALFORMED_MESSAGE = "La IA devolvió una respuesta con un formato inesperado."

_CONFIGURATION_MARKERS = ("api key not valid", "permission denied", "permission_denied", "unauthenticated")
_BILLING_MARKERS = ("billing", "quota", "resource_exhausted")
_SAFETY_MARKERS = ("safety", "blocked")

_JSON_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


def classify_backend_error(exc: Exception) -> GenerationError:
    """Map an exception raised by the backend onto the GenerationError taxonomy."""
    if isinstance(exc, GenerationError):
        return exc
    if isinstance(exc, (httpx.TransportError, ConnectionError, asyncio.TimeoutError, TimeoutError)):
        return GenerationError(GenerationErrorKind.BACKEND_UNREACHABLE, UNREACHABLE_MESSAGE)

    text = str(exc).lower()
    if any(marker in text for marker in _CONFIGURATION_MARKERS):
        return GenerationError(GenerationErrorKind.BACKEND_REFUSED, CONFIGURATION_MESSAGE)
    if any(marker in text for marker in _BILLING_MARKERS):
        return GenerationError(GenerationErrorKind.BACKEND_REFUSED, BILLING_MESSAGE)
    if any(marker in text for marker in _SAFETY_MARKERS):
        return GenerationError(GenerationErrorKind.BACKEND_REFUSED, SAFETY_MESSAGE)
    return GenerationError(GenerationErrorKind.BACKEND_UNREACHABLE, UNREACHABLE_MESSAGE)


def parse_json_text(text: str) -> Any:
    """Parse a JSON body, tolerating a surrounding markdown code fence."""
    body = text.strip()
    fenced = _JSON_FENCE.match(body)
    if fenced:
        body = fenced.group(1)
    return json.loads(body)


class GenerationFlowInvoker:
    """Executes named templates against an injected backend."""

    def __init__(self, backend: GenerationBackend, registry: Optional[PromptRegistry] = None):
        if registry is None:
            from chefai.ai.flows import build_default_registry
            registry = build_default_registry()
        self.backend = backend
        self.registry = registry

    async def invoke(self, name: str, payload: Any) -> Any:
        """
        Run template `name` with `payload`.

        Returns:
            an instance of the template's output model (text with schema),
            a stripped string (plain text), or GeneratedMedia (image, speech)

        Raises:
            ValidationError: payload does not satisfy the input shape
            GenerationError: the backend call failed or returned an unusable result
        """
        template = self.registry.get(name)
        data = template.validate(payload)
        request = GenerationRequest(
            template_name=template.name,
            kind=template.kind,
            prompt=template.render(data),
            config=template.generation_config(),
            output_schema=template.output_model,
            model=template.model,
        )

        logger.debug("Invoking template %s (%s)", template.name, template.kind.value)
        try:
            response = await self.backend.generate(request)
        except Exception as exc:
            raise classify_backend_error(exc) from exc

        if response is None:
            raise GenerationError(GenerationErrorKind.EMPTY_OUTPUT, EMPTY_MESSAGE)
        if response.blocked:
            raise GenerationError(GenerationErrorKind.BACKEND_REFUSED, SAFETY_MESSAGE)

        if template.kind is TemplateKind.IMAGE:
            return self._check_image(response)
        if template.kind is TemplateKind.SPEECH:
            return self._check_speech(response)
        if template.output_model is None:
            return self._check_text(response)
        return self._check_structured(template, response)

    @staticmethod
    def _check_text(response: BackendResponse) -> str:
        text = (response.text or "").strip()
        if not text:
            raise GenerationError(GenerationErrorKind.EMPTY_OUTPUT, EMPTY_MESSAGE)
        return text

    @staticmethod
    def _check_structured(template: PromptTemplate, response: BackendResponse) -> BaseModel:
        data = response.output
        if data is None:
            text = (response.text or "").strip()
            if not text:
                raise GenerationError(GenerationErrorKind.EMPTY_OUTPUT, EMPTY_MESSAGE)
            try:
                data = parse_json_text(text)
            except ValueError as exc:
                raise GenerationError(GenerationErrorKind.MALFORMED_OUTPUT, MALFORMED_MESSAGE) from exc

        if isinstance(data, BaseModel):
            data = data.model_dump(by_alias=True)
        if not data:
            raise GenerationError(GenerationErrorKind.EMPTY_OUTPUT, EMPTY_MESSAGE)
        try:
            return template.output_model.model_validate(data)
        except PydanticValidationError as exc:
            raise GenerationError(GenerationErrorKind.MALFORMED_OUTPUT, MALFORMED_MESSAGE) from exc

    @staticmethod
    def _media(response: BackendResponse, expected_prefix: str) -> GeneratedMedia:
        if not response.media_url:
            raise GenerationError(GenerationErrorKind.EMPTY_OUTPUT, EMPTY_MESSAGE)
        try:
            media = GeneratedMedia.from_data_uri(response.media_url)
        except ValueError as exc:
            raise GenerationError(GenerationErrorKind.MALFORMED_OUTPUT, MALFORMED_MESSAGE) from exc
        if not media.content_type.startswith(expected_prefix):
            raise GenerationError(GenerationErrorKind.MALFORMED_OUTPUT, MALFORMED_MESSAGE)
        return media

    def _check_image(self, response: BackendResponse) -> GeneratedMedia:
        media = self._media(response, "image/")
        if not split_data_uri(media.url)[1]:
            raise GenerationError(GenerationErrorKind.EMPTY_OUTPUT, EMPTY_MESSAGE)
        return media

    def _check_speech(self, response: BackendResponse) -> GeneratedMedia:
        media = self._media(response, "audio/")
        try:
            audio = decode_data_uri(media.url)
        except ValueError as exc:
            raise GenerationError(GenerationErrorKind.MALFORMED_OUTPUT, MALFORMED_MESSAGE) from exc
        if not audio:
            raise GenerationError(GenerationErrorKind.EMPTY_OUTPUT, EMPTY_MESSAGE)
        return media
