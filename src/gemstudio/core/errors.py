"""Error taxonomy for Gemini Studio.

Every error raised by the core derives from :class:`StudioError`.  The
string form of each error is the message shown to the user, so raise sites
pass complete, human-readable sentences.

None of these errors are retried.  They end the current generation attempt
(or store operation) and are surfaced verbatim by the UI handlers.
"""

from __future__ import annotations


class StudioError(Exception):
    """Base class for all user-visible Gemini Studio errors."""


class ValidationError(StudioError):
    """Missing or invalid form input, detected before any network call."""


class TransportError(StudioError):
    """The proxy call failed or returned a non-success status.

    Attributes:
        status_code: HTTP status returned by the endpoint, or ``None`` when
            the request never produced a response.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class WrongModalityError(StudioError):
    """The model answered with text instead of image data."""


class NoDataError(StudioError):
    """The response carried neither image data nor text."""


class StoreUnavailable(StudioError):
    """The history store could not be opened, read, or written."""


class DuplicateKey(StudioError):
    """A history record with the same id already exists."""

    def __init__(self, record_id: str) -> None:
        super().__init__(f"History record {record_id!r} already exists.")
        self.record_id = record_id


class ReferenceLimitError(StudioError):
    """Adding reference images would exceed the per-request cap."""


class GenerationInProgress(StudioError):
    """A generation attempt was started while another is still running."""
