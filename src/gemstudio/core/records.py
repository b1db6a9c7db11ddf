"""Data records shared by the history store, the UI, and the proxy client."""

from __future__ import annotations

import base64
import binascii
import re
import time
from dataclasses import asdict, dataclass

# Matches ``data:<mime>;base64,<payload>`` and nothing looser.
_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,(?P<data>.*)$", re.DOTALL)

# Per-request cap on reference images.
MAX_REFERENCE_IMAGES = 3

_EXTENSIONS = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/webp": ".webp",
    "image/gif": ".gif",
}


@dataclass(frozen=True)
class HistoryRecord:
    """A persisted generation result.

    Records are immutable: the history store only inserts and deletes them.
    ``url`` embeds the image itself as a data URL, so no blob storage is
    needed alongside the record.
    """

    id: str
    timestamp: int  # epoch milliseconds, sort key
    url: str
    prompt: str
    model: str
    filename: str

    def to_dict(self) -> dict:
        """Return the record as a plain dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> HistoryRecord:
        """Build a record from a dictionary with the same keys as the fields."""
        return cls(
            id=str(data["id"]),
            timestamp=int(data["timestamp"]),
            url=data["url"],
            prompt=data["prompt"],
            model=data["model"],
            filename=data["filename"],
        )


@dataclass(frozen=True)
class ReferenceImage:
    """An inline image used to steer generation."""

    mime_type: str
    data: str  # base64 payload without the data URL prefix

    @property
    def data_url(self) -> str:
        return make_data_url(self.mime_type, self.data)

    def to_payload(self) -> dict[str, str]:
        """Return the proxy wire shape ``{"mimeType", "data"}``."""
        return {"mimeType": self.mime_type, "data": self.data}

    @classmethod
    def from_data_url(cls, url: str) -> ReferenceImage:
        mime_type, data = parse_data_url(url)
        return cls(mime_type=mime_type, data=data)

    @classmethod
    def from_bytes(cls, content: bytes, mime_type: str) -> ReferenceImage:
        return cls(mime_type=mime_type, data=base64.b64encode(content).decode("ascii"))


def make_data_url(mime_type: str, data: str) -> str:
    """Build ``data:<mime_type>;base64,<data>``."""
    return f"data:{mime_type};base64,{data}"


def parse_data_url(url: str) -> tuple[str, str]:
    """Split a base64 data URL into its MIME type and payload.

    Raises:
        ValueError: If ``url`` is not a base64 data URL.
    """
    match = _DATA_URL_RE.match(url or "")
    if not match:
        raise ValueError("Not a base64 data URL")
    return match.group("mime"), match.group("data")


def decode_data_url(url: str) -> tuple[str, bytes]:
    """Return the MIME type and decoded bytes of a base64 data URL.

    Raises:
        ValueError: If the URL is malformed or the payload is not valid base64.
    """
    mime_type, data = parse_data_url(url)
    try:
        content = base64.b64decode(data, validate=True)
    except binascii.Error as e:
        raise ValueError(f"Invalid base64 payload: {e}") from e
    return mime_type, content


def now_millis() -> int:
    return int(time.time() * 1000)


def extension_for(mime_type: str) -> str:
    """File extension for an image MIME type (``.jpg`` when unknown)."""
    return _EXTENSIONS.get(mime_type.lower(), ".jpg")


def suggested_filename(timestamp: int, mime_type: str) -> str:
    """Download filename for an image generated at ``timestamp``."""
    return f"gemini_{timestamp}{extension_for(mime_type)}"
