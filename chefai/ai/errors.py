"""
Error taxonomy for the generation pipeline.

- ValidationError: caller input does not satisfy a declared shape.
- GenerationError: the generative backend failed; `kind` tells how.
- EncodingError: raw audio could not be framed into a playable container.
"""
from enum import Enum


class ChefAIError(Exception):
    """Base class for errors surfaced to the caller as a readable message."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ChefAIError):
    """Input rejected before any backend call."""

    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field


class GenerationErrorKind(str, Enum):
    """How a generation attempt failed."""
    BACKEND_UNREACHABLE = "backend_unreachable"
    BACKEND_REFUSED = "backend_refused"
    MALFORMED_OUTPUT = "malformed_output"
    EMPTY_OUTPUT = "empty_output"


class GenerationError(ChefAIError):
    """A single generation attempt failed. It is never retried automatically."""

    def __init__(self, kind: GenerationErrorKind, message: str):
        super().__init__(message)
        self.kind = kind

    def __repr__(self) -> str:
        return f"GenerationError(kind={self.kind.value!r}, message={self.message!r})"


class EncodingError(ChefAIError):
    """Audio framing failed; no partial output is produced."""


class NotFoundError(ChefAIError):
    """A document the pipeline depends on does not exist."""
