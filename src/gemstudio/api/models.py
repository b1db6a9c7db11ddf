"""Pydantic request models for the Gemini Studio proxy API.

These models define the JSON schema of the proxy endpoint.  Field names on
the wire are camelCase (``apiKey``, ``aspectRatio``...) to match the Gemini
REST conventions; Python code uses the snake_case attribute names.

Models
------
ReferenceImagePayload
    One inline reference image: ``{mimeType, data}``.
GenerateRequest
    Payload for ``POST /api/generate``.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ReferenceImagePayload(BaseModel):
    """An inline reference image.

    Attributes:
        mime_type: MIME type of the image (e.g. ``image/png``).
        data: Base64-encoded image bytes, without a data URL prefix.
    """

    model_config = ConfigDict(populate_by_name=True)

    mime_type: str = Field(
        ...,
        alias="mimeType",
        description="MIME type of the image, e.g. 'image/png'.",
    )
    data: str = Field(
        ...,
        description="Base64 image payload (no data URL prefix).",
    )


class GenerateRequest(BaseModel):
    """Request body for the ``POST /api/generate`` endpoint.

    ``api_key`` and ``prompt`` default to empty strings so that the route
    can answer a missing value with the endpoint's own 400 error body
    instead of a schema validation error.

    Attributes:
        api_key: Gemini API key, forwarded upstream as ``x-goog-api-key``.
        prompt: Text prompt.
        model: Gemini model identifier.  ``None`` uses the configured default.
        aspect_ratio: Requested aspect ratio.  ``None`` or ``"1:1"`` leaves
            the upstream default in place.
        resolution: Output resolution hint (``1K``, ``2K``, ``4K``).
        reference_images: Inline images that steer the generation.
    """

    model_config = ConfigDict(populate_by_name=True)

    api_key: str = Field(
        default="",
        alias="apiKey",
        description="Gemini API key.",
    )
    prompt: str = Field(
        default="",
        description="Text prompt describing the image.",
    )
    model: str | None = Field(
        default=None,
        description="Gemini model id.  None = server default.",
    )
    aspect_ratio: str | None = Field(
        default=None,
        alias="aspectRatio",
        description="Aspect ratio such as '16:9'.  '1:1' is the upstream default.",
    )
    resolution: str | None = Field(
        default=None,
        description="Output resolution hint such as '2K'.",
    )
    reference_images: list[ReferenceImagePayload] = Field(
        default_factory=list,
        alias="referenceImages",
        description="Optional inline reference images.",
    )
