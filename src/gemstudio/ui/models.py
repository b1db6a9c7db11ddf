"""Data models for Gemini Studio session state and form values."""

import logging
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from gemstudio.core.errors import ReferenceLimitError
from gemstudio.core.records import MAX_REFERENCE_IMAGES, ReferenceImage

logger = logging.getLogger(__name__)

PROFILE_ID_FIELD = "profile_id"
API_KEY_FIELD = "gemini_api_key"


class GenerationPhase(str, Enum):
    """Phase of the current generation attempt.

    ``IDLE -> VALIDATING -> (IDLE | SUBMITTING)``, then
    ``SUBMITTING -> DISPLAYING -> IDLE`` on success or
    ``SUBMITTING -> FAILED -> IDLE`` on failure.
    """

    IDLE = "idle"
    VALIDATING = "validating"
    SUBMITTING = "submitting"
    DISPLAYING = "displaying"
    FAILED = "failed"


@dataclass
class GenerationForm:
    """Values of the generation form.

    These live only for the session; they are persisted only when a
    successful generation commits them into a history record.
    """

    api_key: str = ""
    prompt: str = ""
    model: str = ""
    aspect_ratio: str = "1:1"
    resolution: str | None = None


@dataclass(frozen=True)
class BrowserProfile:
    """Values kept in the visitor's own browser.

    The profile is stored in the browser's localStorage through Gradio's
    ``BrowserState``, never on the server, so each browser profile has its
    own API key and its own history scope.

    Attributes:
        profile_id: Random id scoping this browser's history records.
        api_key: Last API key submitted from this browser.
    """

    profile_id: str = ""
    api_key: str = field(default="", repr=False)

    @classmethod
    def from_state(cls, value: Any) -> "BrowserProfile":
        """Read a ``BrowserState`` value; anything unexpected reads as empty."""
        if not isinstance(value, dict):
            return cls()
        return cls(
            profile_id=str(value.get(PROFILE_ID_FIELD) or ""),
            api_key=str(value.get(API_KEY_FIELD) or ""),
        )

    def to_state(self) -> dict[str, str]:
        return {PROFILE_ID_FIELD: self.profile_id, API_KEY_FIELD: self.api_key}

    def with_id(self) -> "BrowserProfile":
        """Return this profile, assigning a fresh id if it has none."""
        if self.profile_id:
            return self
        return replace(self, profile_id=uuid.uuid4().hex)


@dataclass(frozen=True)
class DisplayedImage:
    """The image currently shown on the main stage."""

    url: str
    filename: str


class ReferenceQueue:
    """Reference images queued for the next generation.

    The queue never holds more than ``capacity`` images.  An addition that
    would overflow it is rejected as a whole, leaving the queue unchanged.
    """

    def __init__(self, capacity: int = MAX_REFERENCE_IMAGES):
        self.capacity = capacity
        self._images: list[ReferenceImage] = []

    def __len__(self) -> int:
        return len(self._images)

    def __iter__(self):
        return iter(list(self._images))

    def __repr__(self) -> str:
        return f"ReferenceQueue({len(self._images)}/{self.capacity})"

    @property
    def images(self) -> list[ReferenceImage]:
        return list(self._images)

    @property
    def remaining(self) -> int:
        return self.capacity - len(self._images)

    def add(self, images: list[ReferenceImage]) -> None:
        """Queue ``images`` if they all fit.

        Raises:
            ReferenceLimitError: If adding them would exceed the capacity.
                No image is added in that case.
        """
        if len(self._images) + len(images) > self.capacity:
            raise ReferenceLimitError(
                f"You can only add up to {self.capacity} reference images."
            )
        self._images.extend(images)
        logger.debug(f"Queued {len(images)} reference image(s): {self!r}")

    def remove(self, index: int) -> None:
        """Drop the image at ``index``; out-of-range indexes are ignored."""
        if 0 <= index < len(self._images):
            del self._images[index]

    def replace(self, images: list[ReferenceImage]) -> None:
        """Replace the whole queue, subject to the same capacity rule."""
        if len(images) > self.capacity:
            raise ReferenceLimitError(
                f"You can only add up to {self.capacity} reference images."
            )
        self._images = list(images)

    def clear(self) -> None:
        self._images.clear()

    def to_payload(self) -> list[dict[str, str]]:
        return [image.to_payload() for image in self._images]


@dataclass
class StudioSession:
    """Session state for one studio user.

    Everything the studio mutates during a session lives here, so each
    browser session gets its own isolated instance.

    Attributes
    ----------
    history_store : Any | None
        HistoryStore instance, ``None`` when history is unavailable
    profile : BrowserProfile
        Browser-side profile: history scope and last-used API key
    proxy : Any | None
        ProxyClient used to submit generation requests
    form : GenerationForm
        Current form values
    references : ReferenceQueue
        Reference images queued for the next generation
    display : DisplayedImage | None
        Image on the main stage, ``None`` for the empty state
    phase : GenerationPhase
        Phase of the current generation attempt
    history_view : Any | None
        Last rendered HistoryView snapshot
    pending_delete_id : str | None
        Record awaiting delete confirmation
    pending_clear : bool
        Whether a clear-all is awaiting confirmation
    last_error : str
        Most recent user-visible error message
    last_record_timestamp : int
        Timestamp of the last record created, keeps ids strictly increasing
    """

    history_store: Any | None = None  # HistoryStore instance
    profile: BrowserProfile = field(default_factory=BrowserProfile)
    proxy: Any | None = None  # ProxyClient instance

    form: GenerationForm = field(default_factory=GenerationForm)
    references: ReferenceQueue = field(default_factory=ReferenceQueue)
    display: DisplayedImage | None = None
    phase: GenerationPhase = GenerationPhase.IDLE

    history_view: Any | None = None  # HistoryView snapshot
    selected_history_id: str | None = None  # Last history item clicked
    pending_delete_id: str | None = None
    pending_clear: bool = False
    last_error: str = ""
    last_record_timestamp: int = 0  # epoch millis of the newest record id issued
    initialized: bool = False

    @property
    def history_enabled(self) -> bool:
        """True when a history store is attached and open."""
        return self.history_store is not None and self.history_store.is_open

    def disable_history(self, reason: str) -> None:
        """Detach the history store after it became unusable."""
        logger.warning(f"History disabled for this session: {reason}")
        self.history_store = None

    def __repr__(self) -> str:
        return (
            f"StudioSession(initialized={self.initialized}, "
            f"history={self.history_enabled}, "
            f"phase={self.phase.value}, "
            f"references={len(self.references)})"
        )
