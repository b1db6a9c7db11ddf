"""Adapter functions for converting between UI values and business objects."""

import io
import logging
import mimetypes
import tempfile
from pathlib import Path

from PIL import Image

from gemstudio.core.records import ReferenceImage, decode_data_url

from .models import DisplayedImage, ReferenceQueue, StudioSession
from .presenter import DownloadPayload, HistoryView

logger = logging.getLogger(__name__)

DOWNLOAD_DIR = Path(tempfile.gettempdir()) / "gemstudio-downloads"


def image_from_data_url(url: str | None) -> Image.Image | None:
    """Decode a data URL into a PIL image for Gradio image components.

    Args:
        url: ``data:<mime>;base64,<payload>`` string, or None

    Returns:
        Loaded PIL image, or None if there is nothing displayable
    """
    if not url:
        return None
    try:
        _, content = decode_data_url(url)
        image = Image.open(io.BytesIO(content))
        image.load()
        return image
    except (ValueError, OSError) as e:
        logger.warning(f"Could not decode image data: {e}")
        return None


def reference_from_file(path: str | Path) -> ReferenceImage:
    """Read an uploaded file into a reference image.

    Args:
        path: Path of the uploaded file (Gradio temp file)

    Returns:
        ReferenceImage with the file's MIME type and base64 content

    Raises:
        ValueError: If the file is not an image
    """
    path = Path(path)
    mime_type, _ = mimetypes.guess_type(path.name)
    if not mime_type or not mime_type.startswith("image/"):
        raise ValueError(f"{path.name} is not an image file")
    return ReferenceImage.from_bytes(path.read_bytes(), mime_type)


def history_gallery_items(view: HistoryView | None) -> list[tuple[Image.Image, str]]:
    """Convert a history view into ``(image, caption)`` pairs for gr.Gallery.

    The gallery index of each pair matches the index in ``view.items``.
    Undecodable entries are shown with a blank placeholder so that indexes
    stay aligned.
    """
    if view is None:
        return []
    items = []
    for item in view.items:
        image = image_from_data_url(item.url) or Image.new("RGB", (64, 64))
        caption = f"{item.prompt}\n{item.model} · {item.date_label}"
        items.append((image, caption))
    return items


def reference_gallery_items(queue: ReferenceQueue) -> list[Image.Image]:
    images = []
    for reference in queue:
        image = image_from_data_url(reference.data_url)
        if image is not None:
            images.append(image)
    return images


def write_download(payload: DownloadPayload, directory: Path = DOWNLOAD_DIR) -> str:
    """Write a download payload to disk so Gradio can serve it.

    Args:
        payload: Decoded image and its suggested filename
        directory: Target directory (created if missing)

    Returns:
        Path of the written file as a string
    """
    directory.mkdir(parents=True, exist_ok=True)
    target = directory / Path(payload.filename).name
    target.write_bytes(payload.content)
    return str(target)


def profile_download_dir(session: StudioSession, root: Path = DOWNLOAD_DIR) -> Path:
    """Download directory of the session's browser profile."""
    return root / (session.profile.profile_id or "anonymous")


def download_for_display(display: DisplayedImage | None, directory: Path = DOWNLOAD_DIR) -> str | None:
    """Write the main-stage image to disk and return its path, if any.

    Write failures are logged and give None.    """
    if display is None:
        return None
    try:
        mime_type, content = decode_data_url(display.url)
    except ValueError as e:
        logger.warning(f"Displayed image is not downloadable: {e}")
        return None
    try:
        return write_download(DownloadPayload(display.filename, mime_type, content), directory)
    except OSError as e:
        logger.warning(f"Could not write download file: {e}")
        return None
