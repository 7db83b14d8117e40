"""
Data URI helpers for media returned by the generation backend.
"""
import base64
import binascii
from dataclasses import dataclass
from typing import Tuple

DATA_URI_PREFIX = "data:"


def split_data_uri(uri: str) -> Tuple[str, str]:
    """
    Split `data:<mime>[;params];base64,<data>` into (content type, base64 data).

    Raises:
        ValueError if the string is not a base64 data URI
    """
    if not uri.startswith(DATA_URI_PREFIX) or "," not in uri:
        raise ValueError("Not a data URI")
    header, encoded = uri[len(DATA_URI_PREFIX):].split(",", 1)
    params = header.split(";")
    if "base64" not in params[1:]:
        raise ValueError("Data URI is not base64-encoded")
    return params[0], encoded


def decode_data_uri(uri: str) -> bytes:
    """Return the raw bytes carried by a base64 data URI. Raises ValueError."""
    _, encoded = split_data_uri(uri)
    try:
        return base64.b64decode(encoded, validate=True)
    except binascii.Error as exc:
        raise ValueError(f"Invalid base64 payload: {exc}") from exc


@dataclass(frozen=True)
class GeneratedMedia:
    """An image or audio payload returned by the backend."""
    url: str
    content_type: str

    @property
    def data(self) -> bytes:
        return decode_data_uri(self.url)

    @classmethod
    def from_data_uri(cls, uri: str) -> "GeneratedMedia":
        content_type, _ = split_data_uri(uri)
        return cls(url=uri, content_type=content_type)
