"""
Interface between the generation flows and a generative backend.

The invoker depends only on `GenerationBackend`; the Genkit implementation
lives in `chefai.ai.genkit` and tests use `chefai.testing.StubBackend`.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Type

from pydantic import BaseModel

from chefai.ai.registry import TemplateKind


@dataclass(frozen=True)
class GenerationRequest:
    """One outbound call: rendered prompt plus generation parameters."""
    template_name: str
    kind: TemplateKind
    prompt: str
    config: Dict[str, Any] = field(default_factory=dict)
    output_schema: Optional[Type[BaseModel]] = None
    model: Optional[str] = None


@dataclass(frozen=True)
class BackendResponse:
    """
    What came back from the backend, before any shape checking.

    `output` holds structured data when the backend parsed it already,
    `media_url` a data URI for image and speech tasks.
    """
    text: Optional[str] = None
    output: Any = None
    media_url: Optional[str] = None
    finish_reason: Optional[str] = None

    @property
    def blocked(self) -> bool:
        return (self.finish_reason or "").lower() in ("blocked", "safety")


class GenerationBackend(ABC):
    """A generative text/image/speech service."""

    @abstractmethod
    async def generate(self, request: GenerationRequest) -> BackendResponse:
        """Send one request. Transport and API errors propagate as raised."""

    async def aclose(self) -> None:
        """Release resources held by the backend."""
