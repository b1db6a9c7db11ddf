"""Generation, reference image, and session start-up handlers."""

import logging

import gradio as gr

from gemstudio.core.errors import StudioError

from ..adapters import (
    download_for_display,
    history_gallery_items,
    image_from_data_url,
    profile_download_dir,
    reference_from_file,
    reference_gallery_items,
)
from ..models import StudioSession
from ..orchestrator import GenerationOrchestrator
from ..state import initialize_session

logger = logging.getLogger(__name__)

READY_MESSAGE = "*Ready to generate images*"


def _history_status(session: StudioSession) -> str:
    if not session.history_enabled:
        return "*History is unavailable; generated images will not be saved.*"
    view = session.history_view
    if view is None or view.is_empty:
        return "*No history yet*"
    return f"*{len(view.items)} image(s) in history*"


async def load_studio(browser_state: dict | None, session: StudioSession) -> tuple:
    """Initialize the session when the page loads.

    Args:
        browser_state: Profile stored in this browser (profile id and API key)
        session: UI session state

    Returns:
        Tuple of (api_key, model, aspect_ratio, main_image, download_path,
        history_items, reference_items, history_status, browser_state,
        updated_session)
    """
    session = await initialize_session(session, browser_state=browser_state)
    display = session.display
    return (
        session.form.api_key,
        session.form.model,
        session.form.aspect_ratio,
        image_from_data_url(display.url if display else None),
        download_for_display(display, profile_download_dir(session)),
        history_gallery_items(session.history_view),
        reference_gallery_items(session.references),
        _history_status(session),
        session.profile.to_state(),
        session,
    )


def lock_generate_button() -> dict:
    """Disable the generate button while an attempt is in flight."""
    return gr.update(interactive=False)


def unlock_generate_button() -> dict:
    return gr.update(interactive=True)


async def generate_image(
    api_key: str,
    prompt: str,
    model: str,
    aspect_ratio: str,
    resolution: str | None,
    session: StudioSession,
) -> tuple:
    """Run one generation attempt from the form values.

    Args:
        api_key: Gemini API key
        prompt: Text prompt
        model: Selected model id
        aspect_ratio: Selected aspect ratio
        resolution: Selected resolution hint, or None/"" for the default
        session: UI session state

    Returns:
        Tuple of (main_image, download_path, prompt_value, reference_items,
        history_items, info_markdown, history_status, browser_state,
        updated_session)
    """
    session = await initialize_session(session)
    session.pending_delete_id = None
    session.pending_clear = False

    session.form.api_key = api_key or ""
    session.form.prompt = prompt or ""
    session.form.model = model or session.form.model
    session.form.aspect_ratio = aspect_ratio or session.form.aspect_ratio
    session.form.resolution = resolution or None

    try:
        result = await GenerationOrchestrator(session).generate()
        info = f"✅ Generated **{result.display.filename}**"
        if not result.saved:
            info += "\n\n*Not saved to history.*"
    except StudioError as e:
        info = f"❌ {e}"
    except Exception as e:
        logger.error(f"Unexpected error during generation: {e}", exc_info=True)
        session.last_error = "Unexpected error during generation."
        info = f"❌ {session.last_error}"

    display = session.display
    return (
        image_from_data_url(display.url if display else None),
        download_for_display(display, profile_download_dir(session)),
        session.form.prompt,
        reference_gallery_items(session.references),
        history_gallery_items(session.history_view),
        info,
        _history_status(session),
        session.profile.to_state(),
        session,
    )


def add_reference_images(files: list[str] | None, session: StudioSession) -> tuple:
    """Queue uploaded files as reference images.

    Args:
        files: Paths of uploaded files
        session: UI session state

    Returns:
        Tuple of (reference_items, info_markdown, updated_session)
    """
    if not files:
        return reference_gallery_items(session.references), READY_MESSAGE, session

    try:
        images = [reference_from_file(path) for path in files]
        session.references.add(images)
        info = f"📎 {len(session.references)} of {session.references.capacity} reference image(s) queued"
    except StudioError as e:
        info = f"⚠️ {e}"
    except (ValueError, OSError) as e:
        logger.warning(f"Rejected reference upload: {e}")
        info = f"⚠️ {e}"

    return reference_gallery_items(session.references), info, session


def clear_reference_images(session: StudioSession) -> tuple:
    """Empty the reference queue.

    Returns:
        Tuple of (reference_items, info_markdown, updated_session)
    """
    session.references.clear()
    return [], READY_MESSAGE, session
