"""Generation request orchestration.

:class:`GenerationOrchestrator` runs one generation attempt for a session:

1. **Validate**: a prompt and an API key must be present; otherwise
   :class:`ValidationError` is raised before any network traffic.
2. **Submit**: build the proxy payload (prompt, model, optional aspect ratio
   and resolution, queued reference images) and post it with
   :class:`ProxyClient`.
3. **Interpret** the response, in this order:

   - transport failure or non-2xx status -> :class:`TransportError`
     carrying the server's message
   - inline image data -> success
   - text instead of image data -> :class:`WrongModalityError`
   - anything else -> :class:`NoDataError`

4. **Display and persist**: show the image, commit a
   :class:`~gemstudio.core.records.HistoryRecord`, re-render history, then
   clear the prompt and the reference queue.

Only one attempt runs at a time per session; a second call while one is in
flight raises :class:`GenerationInProgress`.  Nothing is retried and no
timeout is imposed beyond the transport's own.

A history store failure during step 4 never fails the generation: history is
disabled for the session and the image is still displayed.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Any

import httpx

from gemstudio.core.config import config
from gemstudio.core.errors import (
    DuplicateKey,
    GenerationInProgress,
    NoDataError,
    StoreUnavailable,
    StudioError,
    TransportError,
    ValidationError,
    WrongModalityError,
)
from gemstudio.core.records import (
    HistoryRecord,
    ReferenceImage,
    now_millis,
    suggested_filename,
)

from .models import DisplayedImage, GenerationPhase, StudioSession
from .presenter import HistoryPresenter

logger = logging.getLogger(__name__)

MISSING_INPUT_MESSAGE = "Please provide both API Key and a Prompt."
UNKNOWN_ERROR_MESSAGE = "Unknown error occurred"
WRONG_MODALITY_MESSAGE = "Model returned text. Ensure you are using the correct Image model."
NO_DATA_MESSAGE = "No image data found in response."


# ---------------------------------------------------------------------------
# Transport.
# ---------------------------------------------------------------------------


def _error_message(data: Any) -> str:
    """Extract ``error.message`` or a string ``error`` from an error body."""
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error
    return UNKNOWN_ERROR_MESSAGE


class ProxyClient:
    """Posts generation payloads to the proxy endpoint.

    Args:
        url: Full URL of the proxy's ``/api/generate`` route.
        timeout: Request timeout in seconds, ``None`` for no timeout.
        transport: Optional ``httpx`` transport (tests inject a
            :class:`httpx.MockTransport`).
    """

    def __init__(
        self,
        url: str,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.url = url
        self.timeout = timeout
        self.transport = transport

    def __repr__(self) -> str:
        return f"ProxyClient(url={self.url!r})"

    async def submit(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Post ``payload`` and return the decoded success body.

        Raises:
            TransportError: If the request fails, the status is not 2xx, or
                the body is not a JSON object.
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.url, json=payload)
        except httpx.HTTPError as e:
            logger.error(f"Proxy request to {self.url} failed: {e}")
            raise TransportError(str(e) or "Network request failed.") from e

        try:
            data = response.json()
        except ValueError:
            data = None

        if response.is_error:
            raise TransportError(_error_message(data), status_code=response.status_code)

        if not isinstance(data, dict):
            raise TransportError(UNKNOWN_ERROR_MESSAGE, status_code=response.status_code)

        return data


# ---------------------------------------------------------------------------
# Response interpretation.
# ---------------------------------------------------------------------------


def _response_parts(data: dict[str, Any]) -> list[dict[str, Any]]:
    parts: list[dict[str, Any]] = []
    for candidate in data.get("candidates") or []:
        if not isinstance(candidate, dict):
            continue
        content = candidate.get("content") or {}
        parts.extend(part for part in content.get("parts") or [] if isinstance(part, dict))
    return parts


def interpret_response(data: dict[str, Any]) -> ReferenceImage:
    """Extract the generated image from a proxy success body.

    Image data anywhere in the candidates wins over text, so a model that
    narrates before returning its image still counts as a success.

    Args:
        data: Decoded ``generateContent`` response.

    Returns:
        The generated image as MIME type plus base64 payload.

    Raises:
        WrongModalityError: If the response only contains text.
        NoDataError: If it contains neither image data nor text.
    """
    parts = _response_parts(data)

    for part in parts:
        inline = part.get("inlineData") or part.get("inline_data")
        if isinstance(inline, dict) and inline.get("data"):
            mime_type = inline.get("mimeType") or inline.get("mime_type") or "image/png"
            return ReferenceImage(mime_type=mime_type, data=inline["data"])

    if any(part.get("text") for part in parts):
        raise WrongModalityError(WRONG_MODALITY_MESSAGE)

    raise NoDataError(NO_DATA_MESSAGE)


# ---------------------------------------------------------------------------
# Orchestrator.
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GenerationResult:
    """A successful generation.

    Attributes:
        display: The image now on the main stage.
        record: The history record built for it.
        saved: Whether the record reached the history store.
    """

    display: DisplayedImage
    record: HistoryRecord
    saved: bool


class GenerationOrchestrator:
    """Run generation attempts for one session.

    Args:
        session: Session providing form values, reference queue, proxy
            client and history store.
        default_model: Model recorded when the form leaves it empty.
        default_aspect_ratio: Aspect ratio that is never sent explicitly.
        clock: Returns the current time in epoch milliseconds.
    """

    def __init__(
        self,
        session: StudioSession,
        default_model: str | None = None,
        default_aspect_ratio: str | None = None,
        clock: Callable[[], int] = now_millis,
    ):
        self.session = session
        self.default_model = default_model or config.default_model
        self.default_aspect_ratio = default_aspect_ratio or config.default_aspect_ratio
        self.clock = clock
        self.presenter = HistoryPresenter(session)

    def add_references(self, images: list[ReferenceImage]) -> None:
        """Queue reference images, all or nothing (see :class:`ReferenceQueue`)."""
        self.session.references.add(images)

    def build_payload(self, api_key: str, prompt: str) -> dict[str, Any]:
        form = self.session.form
        payload: dict[str, Any] = {
            "apiKey": api_key,
            "prompt": prompt,
            "model": form.model or self.default_model,
        }
        if form.aspect_ratio and form.aspect_ratio != self.default_aspect_ratio:
            payload["aspectRatio"] = form.aspect_ratio
        if form.resolution:
            payload["resolution"] = form.resolution
        if len(self.session.references):
            payload["referenceImages"] = self.session.references.to_payload()
        return payload

    async def generate(self) -> GenerationResult:
        """Run one generation attempt with the session's current form.

        Returns:
            The displayed image and its history record.

        Raises:
            GenerationInProgress: If another attempt is still running.
            ValidationError: If the prompt or API key is missing.
            TransportError: If the proxy call fails.
            WrongModalityError: If the model answered with text.
            NoDataError: If the response has no usable content.
        """
        session = self.session
        if session.phase != GenerationPhase.IDLE:
            raise GenerationInProgress("A generation is already in progress.")

        session.phase = GenerationPhase.VALIDATING
        session.last_error = ""

        try:
            api_key = session.form.api_key.strip()
            prompt = session.form.prompt.strip()
            if not api_key or not prompt:
                raise ValidationError(MISSING_INPUT_MESSAGE)

            self._remember_api_key(api_key)

            session.phase = GenerationPhase.SUBMITTING
            payload = self.build_payload(api_key, prompt)
            logger.info(
                f"Submitting generation (model={payload['model']}, "
                f"references={len(session.references)})"
            )
            data = await session.proxy.submit(payload)
            image = interpret_response(data)

            session.phase = GenerationPhase.DISPLAYING
            return await self._display_and_persist(image, prompt, payload["model"])

        except StudioError as e:
            if session.phase != GenerationPhase.VALIDATING:
                session.phase = GenerationPhase.FAILED
            session.last_error = str(e)
            logger.info(f"Generation attempt failed: {e}")
            raise
        finally:
            session.phase = GenerationPhase.IDLE

    def _remember_api_key(self, api_key: str) -> None:
        # Written back to the browser by the UI layer.
        self.session.profile = replace(self.session.profile, api_key=api_key)

    async def _next_timestamp(self) -> int:
        """Timestamp for a new record, unique across every session of the store."""
        session = self.session
        timestamp = max(self.clock(), session.last_record_timestamp + 1)
        if session.history_enabled:
            try:
                timestamp = await session.history_store.reserve_timestamp(timestamp)
            except StoreUnavailable as e:
                session.disable_history(str(e))
                await self.presenter.render()
        session.last_record_timestamp = timestamp
        return timestamp

    async def _display_and_persist(
        self, image: ReferenceImage, prompt: str, model: str
    ) -> GenerationResult:
        session = self.session
        timestamp = await self._next_timestamp()
        display = DisplayedImage(
            url=image.data_url,
            filename=suggested_filename(timestamp, image.mime_type),
        )
        session.display = display

        record = HistoryRecord(
            id=str(timestamp),
            timestamp=timestamp,
            url=display.url,
            prompt=prompt,
            model=model,
            filename=display.filename,
        )
        saved = await self._commit(record)

        session.form.prompt = ""
        session.references.clear()

        logger.info(f"Generation complete: {display.filename} (saved={saved})")
        return GenerationResult(display=display, record=record, saved=saved)

    async def _commit(self, record: HistoryRecord) -> bool:
        session = self.session
        if not session.history_enabled:
            return False

        try:
            await session.history_store.insert(record)
        except DuplicateKey as e:
            logger.error(f"Not saved to history: {e}")
            return False
        except StoreUnavailable as e:
            session.disable_history(str(e))
            await self.presenter.render()
            return False

        await self.presenter.render()
        return True
