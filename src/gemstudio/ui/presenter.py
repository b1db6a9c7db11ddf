"""History presentation for the studio.

The presenter turns the contents of the history store into a render model
(:class:`HistoryView`) and executes the per-item actions the UI dispatches
back (:class:`HistoryAction`).  It never patches a view incrementally: every
render starts from a fresh ``list_all()`` call, and every mutating action is
followed by a full re-render, so the list on screen cannot drift from the
store.

Actions
-------
- ``select``: show the record's image on the main stage, seed the reference
  queue with it, and restore its prompt and model into the form.
- ``download``: decode the stored image into bytes plus its filename.
- ``delete``: ask for confirmation first, then delete and re-render.

``clear_all`` follows the same confirm-then-act pattern and also resets the
main stage to its empty state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from gemstudio.core.errors import StoreUnavailable
from gemstudio.core.records import HistoryRecord, ReferenceImage, decode_data_url

from .models import DisplayedImage, StudioSession

logger = logging.getLogger(__name__)

DELETE_CONFIRMATION = "Delete this image?"
CLEAR_CONFIRMATION = "Are you sure you want to clear all history?"
MISSING_RECORD_NOTICE = "That image is no longer in history."
STORE_FAILURE_NOTICE = "History is unavailable; the change was not saved."


class ActionKind(str, Enum):
    SELECT = "select"
    DOWNLOAD = "download"
    DELETE = "delete"


@dataclass(frozen=True)
class HistoryAction:
    """An action the UI can dispatch for one history item."""

    kind: ActionKind
    record_id: str
    requires_confirmation: bool = False


@dataclass(frozen=True)
class HistoryItemView:
    """Render model for one history entry."""

    record_id: str
    url: str
    prompt: str
    model: str
    date_label: str
    filename: str
    actions: tuple[HistoryAction, ...]

    def action(self, kind: ActionKind) -> HistoryAction:
        return next(action for action in self.actions if action.kind == kind)


@dataclass(frozen=True)
class HistoryView:
    """Render model for the whole history list, newest first.

    ``records`` is a read-only snapshot of what the store returned for this
    render; the store stays the source of truth.
    """

    items: tuple[HistoryItemView, ...] = ()
    records: tuple[HistoryRecord, ...] = ()
    enabled: bool = True

    @property
    def is_empty(self) -> bool:
        return not self.items

    def find(self, record_id: str) -> HistoryRecord | None:
        return next((record for record in self.records if record.id == record_id), None)


@dataclass(frozen=True)
class DownloadPayload:
    filename: str
    mime_type: str
    content: bytes


@dataclass
class ActionOutcome:
    """Result of dispatching an action.

    Attributes:
        action: The action that was dispatched.
        view: History view after the action (re-rendered after mutations).
        confirmation: Prompt to show when the action still needs the user's
            confirmation; nothing was changed in that case.
        download: Decoded image for ``download`` actions.
        notice: Informational message for the user, if any.
    """

    action: HistoryAction | None
    view: HistoryView | None = None
    confirmation: str | None = None
    download: DownloadPayload | None = None
    notice: str | None = None
    changed: bool = field(default=False)

    @property
    def needs_confirmation(self) -> bool:
        return self.confirmation is not None


def format_date(timestamp: int) -> str:
    """Local calendar date of an epoch-millisecond timestamp."""
    return datetime.fromtimestamp(timestamp / 1000).strftime("%Y-%m-%d")


def build_item_view(record: HistoryRecord) -> HistoryItemView:
    return HistoryItemView(
        record_id=record.id,
        url=record.url,
        prompt=record.prompt,
        model=record.model,
        date_label=format_date(record.timestamp),
        filename=record.filename,
        actions=(
            HistoryAction(ActionKind.SELECT, record.id),
            HistoryAction(ActionKind.DOWNLOAD, record.id),
            HistoryAction(ActionKind.DELETE, record.id, requires_confirmation=True),
        ),
    )


class HistoryPresenter:
    """Render and act on the session's history.

    Args:
        session: Session whose store, form, display and reference queue the
            presenter reads and updates.
    """

    def __init__(self, session: StudioSession):
        self.session = session

    async def render(self) -> HistoryView:
        """Re-read the store and rebuild the history view.

        A store that fails to read disables history for the session and
        renders as an empty, disabled view; generation keeps working.

        Returns:
            The new view, also saved on ``session.history_view``.
        """
        if not self.session.history_enabled:
            view = HistoryView(enabled=False)
            self.session.history_view = view
            return view

        try:
            records = await self.session.history_store.list_all()
        except StoreUnavailable as e:
            self.session.disable_history(str(e))
            view = HistoryView(enabled=False)
            self.session.history_view = view
            return view

        view = HistoryView(
            items=tuple(build_item_view(record) for record in records),
            records=tuple(records),
            enabled=True,
        )
        self.session.history_view = view
        logger.debug(f"Rendered history with {len(records)} item(s)")
        return view

    async def _current_view(self) -> HistoryView:
        if self.session.history_view is None:
            return await self.render()
        return self.session.history_view

    async def dispatch(self, action: HistoryAction, confirmed: bool = False) -> ActionOutcome:
        """Execute a history action.

        Args:
            action: Action taken from a rendered :class:`HistoryItemView`.
            confirmed: Whether the user already confirmed a destructive action.

        Returns:
            The outcome, carrying the new view after mutations or a
            confirmation prompt when ``confirmed`` is required but missing.

        """
        # Resolve against the store, not the snapshot the action came from.
        view = await self.render()
        record = view.find(action.record_id)

        if record is None:
            return ActionOutcome(action, view=view, notice=MISSING_RECORD_NOTICE)

        if action.kind == ActionKind.SELECT:
            self.select(record)
            return ActionOutcome(action, view=view)

        if action.kind == ActionKind.DOWNLOAD:
            return ActionOutcome(action, view=view, download=self.download(record))

        if action.kind == ActionKind.DELETE:
            if not confirmed:
                self.session.pending_delete_id = record.id
                return ActionOutcome(action, view=view, confirmation=DELETE_CONFIRMATION)

            self.session.pending_delete_id = None
            try:
                await self.session.history_store.delete_by_id(record.id)
            except StoreUnavailable as e:
                return await self._store_failed(action, e)
            return ActionOutcome(action, view=await self.render(), changed=True)

        raise ValueError(f"Unknown history action: {action.kind}")

    def select(self, record: HistoryRecord) -> None:
        """Make ``record`` the active image and restore its form values."""
        self.session.display = DisplayedImage(url=record.url, filename=record.filename)
        self.session.form.prompt = record.prompt
        self.session.form.model = record.model

        try:
            reference = ReferenceImage.from_data_url(record.url)
        except ValueError:
            logger.warning(f"History record {record.id} has no usable image data")
        else:
            self.session.references.replace([reference])

    def download(self, record: HistoryRecord) -> DownloadPayload:
        mime_type, content = decode_data_url(record.url)
        return DownloadPayload(filename=record.filename, mime_type=mime_type, content=content)

    async def clear_all(self, confirmed: bool = False) -> ActionOutcome:
        """Remove every record and reset the main stage.

        Args:
            confirmed: Whether the user already confirmed clearing.

        Returns:
            Outcome with the confirmation prompt, or the empty re-rendered view.
        """
        if not confirmed:
            self.session.pending_clear = True
            return ActionOutcome(None, view=await self._current_view(), confirmation=CLEAR_CONFIRMATION)

        self.session.pending_clear = False
        self.session.display = None
        if self.session.history_enabled:
            try:
                await self.session.history_store.clear()
            except StoreUnavailable as e:
                return await self._store_failed(None, e)
        return ActionOutcome(None, view=await self.render(), changed=True)

    async def _store_failed(self, action: HistoryAction | None, error: StoreUnavailable) -> ActionOutcome:
        """Disable history after a failed write and render the disabled view."""
        self.session.disable_history(str(error))
        return ActionOutcome(action, view=await self.render(), notice=STORE_FAILURE_NOTICE)
