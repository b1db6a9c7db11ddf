"""Upstream client for the Gemini ``generateContent`` REST endpoint.

The proxy route hands a validated :class:`GenerateRequest` to
:class:`GeminiClient`, which builds the upstream request body, posts it with
``httpx``, and returns the decoded JSON response unchanged.  Response
interpretation (image vs. text vs. nothing) is the caller's job.

Request body shape::

    {
        "contents": [{"parts": [{"text": prompt}, {"inlineData": {...}}, ...]}],
        "generationConfig": {
            "responseModalities": ["IMAGE"],
            "imageConfig": {"aspectRatio": "16:9", "imageSize": "2K"}
        }
    }

``imageConfig`` is only present when a non-default aspect ratio or a
resolution was requested.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from gemstudio.api.models import GenerateRequest

logger = logging.getLogger(__name__)

DEFAULT_ASPECT_RATIO = "1:1"


class UpstreamError(Exception):
    """The upstream API answered with a non-success status.

    Attributes:
        status_code: HTTP status returned by the upstream API.
        message: Error message extracted from the upstream body.
    """

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message


def build_request_body(req: GenerateRequest) -> dict[str, Any]:
    """Translate a proxy request into a ``generateContent`` request body.

    Args:
        req: Validated proxy request.

    Returns:
        JSON-serialisable upstream request body.
    """
    parts: list[dict[str, Any]] = [{"text": req.prompt}]
    for image in req.reference_images:
        parts.append({"inlineData": {"mimeType": image.mime_type, "data": image.data}})

    generation_config: dict[str, Any] = {"responseModalities": ["IMAGE"]}

    image_config: dict[str, str] = {}
    if req.aspect_ratio and req.aspect_ratio != DEFAULT_ASPECT_RATIO:
        image_config["aspectRatio"] = req.aspect_ratio
    if req.resolution:
        image_config["imageSize"] = req.resolution
    if image_config:
        generation_config["imageConfig"] = image_config

    return {
        "contents": [{"parts": parts}],
        "generationConfig": generation_config,
    }


def _upstream_error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return "Gemini API error"
    error_obj = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error_obj, dict) and error_obj.get("message"):
        return str(error_obj["message"])
    return "Gemini API error"


class GeminiClient:
    """Thin async client for the Gemini REST API.

    Args:
        base_url: API base URL, e.g.
            ``https://generativelanguage.googleapis.com/v1beta``.
        default_model: Model used when a request does not name one.
        timeout: Request timeout in seconds, ``None`` for no timeout.
        transport: Optional ``httpx`` transport (tests inject a
            :class:`httpx.MockTransport`).
    """

    def __init__(
        self,
        base_url: str,
        default_model: str,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.default_model = default_model
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    def endpoint_for(self, model: str | None) -> str:
        return f"{self.base_url}/models/{model or self.default_model}:generateContent"

    async def generate(self, req: GenerateRequest) -> dict[str, Any]:
        """Forward a generation request upstream.

        Args:
            req: Validated proxy request with a non-empty key and prompt.

        Returns:
            The upstream JSON body of a successful response.

        Raises:
            UpstreamError: If the upstream API returns a non-2xx status.
            httpx.HTTPError: If the request could not be completed.
        """
        endpoint = self.endpoint_for(req.model)
        logger.info(
            f"Forwarding generation to {endpoint} "
            f"({len(req.reference_images)} reference image(s))"
        )

        response = await self._client.post(
            endpoint,
            headers={
                "x-goog-api-key": req.api_key,
                "Content-Type": "application/json",
            },
            json=build_request_body(req),
        )

        if response.is_error:
            message = _upstream_error_message(response)
            logger.warning(f"Gemini API returned {response.status_code}: {message}")
            raise UpstreamError(response.status_code, message)

        return response.json()

    async def aclose(self) -> None:
        await self._client.aclose()
