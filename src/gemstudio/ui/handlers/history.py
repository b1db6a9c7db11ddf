"""History list handlers: select, delete, and clear."""

import logging

import gradio as gr

from gemstudio.core.errors import StudioError

from ..adapters import (
    download_for_display,
    history_gallery_items,
    image_from_data_url,
    profile_download_dir,
    reference_gallery_items,
    write_download,
)
from ..models import StudioSession
from ..presenter import ActionKind, HistoryPresenter
from ..state import initialize_session

logger = logging.getLogger(__name__)

NO_SELECTION_MESSAGE = "*Select an image in the history first*"


async def select_history_item(evt: gr.SelectData, session: StudioSession) -> tuple:
    """Make the clicked history image the active one.

    Shows the image on the main stage, restores its prompt and model into the
    form, and seeds the reference queue with it.

    Args:
        evt: Gradio SelectData event containing the clicked index
        session: UI session state

    Returns:
        Tuple of (main_image, download_path, prompt, model, reference_items,
        history_download_path, info_markdown, updated_session)
    """
    session = await initialize_session(session)
    view = session.history_view
    session.pending_delete_id = None
    session.pending_clear = False

    if view is None or evt.index is None or not 0 <= evt.index < len(view.items):
        return (
            gr.update(),
            gr.update(),
            gr.update(),
            gr.update(),
            gr.update(),
            gr.update(),
            NO_SELECTION_MESSAGE,
            session,
        )

    item = view.items[evt.index]
    session.selected_history_id = item.record_id
    presenter = HistoryPresenter(session)

    try:
        await presenter.dispatch(item.action(ActionKind.SELECT))
        outcome = await presenter.dispatch(item.action(ActionKind.DOWNLOAD))
        history_download = (
            write_download(outcome.download, profile_download_dir(session)) if outcome.download else None
        )
        info = outcome.notice or f"🖼️ Selected image from {item.date_label}"
    except (StudioError, ValueError, OSError) as e:
        logger.warning(f"Could not select history item {item.record_id}: {e}")
        history_download = None
        info = f"❌ {e}"

    display = session.display
    return (
        image_from_data_url(display.url if display else None),
        download_for_display(display, profile_download_dir(session)),
        session.form.prompt,
        session.form.model,
        reference_gallery_items(session.references),
        history_download,
        info,
        session,
    )


async def delete_history_item(session: StudioSession) -> tuple:
    """Delete the selected history item, asking for confirmation first.

    The first click only arms the deletion and shows the confirmation
    prompt; a second click on the same item performs it.

    Args:
        session: UI session state

    Returns:
        Tuple of (history_items, info_markdown, updated_session)
    """
    session = await initialize_session(session)
    record_id = session.selected_history_id
    view = session.history_view

    if record_id is None or view is None:
        return history_gallery_items(view), NO_SELECTION_MESSAGE, session

    item = next((entry for entry in view.items if entry.record_id == record_id), None)
    if item is None:
        session.selected_history_id = None
        return history_gallery_items(view), NO_SELECTION_MESSAGE, session

    confirmed = session.pending_delete_id == record_id
    presenter = HistoryPresenter(session)

    try:
        outcome = await presenter.dispatch(item.action(ActionKind.DELETE), confirmed=confirmed)
    except StudioError as e:
        return history_gallery_items(session.history_view), f"❌ {e}", session

    if outcome.needs_confirmation:
        info = f"⚠️ {outcome.confirmation} Click **Delete** again to confirm."
    else:
        session.selected_history_id = None
        info = outcome.notice or "🗑️ Image deleted"

    return history_gallery_items(outcome.view), info, session


async def clear_history(session: StudioSession) -> tuple:
    """Clear all history, asking for confirmation first.

    Args:
        session: UI session state

    Returns:
        Tuple of (history_items, main_image, download_path, info_markdown,
        updated_session)
    """
    session = await initialize_session(session)
    presenter = HistoryPresenter(session)

    try:
        outcome = await presenter.clear_all(confirmed=session.pending_clear)
    except StudioError as e:
        return (
            history_gallery_items(session.history_view),
            gr.update(),
            gr.update(),
            f"❌ {e}",
            session,
        )

    if outcome.needs_confirmation:
        return (
            history_gallery_items(outcome.view),
            gr.update(),
            gr.update(),
            f"⚠️ {outcome.confirmation} Click **Clear All** again to confirm.",
            session,
        )

    session.selected_history_id = None
    info = f"⚠️ {outcome.notice}" if outcome.notice else "🧹 History cleared"
    return history_gallery_items(outcome.view), None, None, info, session


async def refresh_history(session: StudioSession) -> tuple:
    """Re-read the history store.

    Returns:
        Tuple of (history_items, updated_session)
    """
    session = await initialize_session(session)
    view = await HistoryPresenter(session).render()
    return history_gallery_items(view), session
