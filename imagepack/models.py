"""Data schemas for the image bundle pipeline.

Boundary types (what the HTTP runtime hands us and what we hand back) are
Pydantic models so FastAPI and the function handler share one contract.
Internal value types are plain frozen dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, field_validator


class RawRequest(BaseModel):
    """A buffered request as delivered by the HTTP runtime.

    Attributes:
        method: HTTP method, e.g. ``POST``.
        headers: Header mapping. Names are lowercased on construction so
            lookups such as ``content-type`` are case-insensitive.
        body: The entire request payload, base64 encoded.
    """

    model_config = ConfigDict(frozen=True)

    method: str
    headers: Dict[str, str] = {}
    body: str = ""

    @field_validator("headers", mode="before")
    @classmethod
    def _lowercase_names(cls, value):
        if value is None:
            return {}
        return {str(k).lower(): str(v) for k, v in dict(value).items()}

    def header(self, name: str) -> Optional[str]:
        return self.headers.get(name.lower())


class HandlerResponse(BaseModel):
    """Response returned to the HTTP runtime.

    Attributes:
        statusCode: HTTP status code.
        headers: Response headers.
        body: Either base64 archive bytes or a JSON error document.
        isBase64Encoded: True when ``body`` carries base64 binary data.
    """

    statusCode: int
    headers: Dict[str, str] = {}
    body: str = ""
    isBase64Encoded: bool = False


class SelfTestResponse(BaseModel):
    """Result of the image library self check."""

    success: bool
    pillow: Optional[str] = None
    webp: bool = False
    message: str = ""
    error: Optional[str] = None


@dataclass(frozen=True)
class FilePart:
    """One uploaded file found in a multipart body."""

    filename: str
    data: bytes


@dataclass(frozen=True)
class ImageVariantSpec:
    """One rung of the size ladder: a maximum width and its filename suffix."""

    width: int
    suffix: str
