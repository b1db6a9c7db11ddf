"""Tests for gemstudio.ui.presenter — history rendering and item actions."""

from __future__ import annotations

from datetime import datetime
from unittest.mock import AsyncMock, Mock

import pytest

from gemstudio.core.errors import StoreUnavailable
from gemstudio.core.records import ReferenceImage
from gemstudio.ui.models import DisplayedImage
from gemstudio.ui.presenter import (
    CLEAR_CONFIRMATION,
    DELETE_CONFIRMATION,
    MISSING_RECORD_NOTICE,
    STORE_FAILURE_NOTICE,
    ActionKind,
    HistoryPresenter,
    build_item_view,
    format_date,
)


class TestItemViews:
    """Tests for the per-record render model."""

    def test_format_date_is_local_calendar_date(self):
        timestamp = int(datetime(2025, 3, 14, 12, 0).timestamp() * 1000)

        assert format_date(timestamp) == "2025-03-14"

    def test_build_item_view(self, make_record):
        record = make_record(1700000000000, prompt="a red fox")

        item = build_item_view(record)

        assert item.record_id == record.id
        assert item.prompt == "a red fox"
        assert item.url == record.url
        assert [action.kind for action in item.actions] == [
            ActionKind.SELECT,
            ActionKind.DOWNLOAD,
            ActionKind.DELETE,
        ]
        assert item.action(ActionKind.DELETE).requires_confirmation
        assert not item.action(ActionKind.SELECT).requires_confirmation


class TestRender:
    """Tests for HistoryPresenter.render."""

    @pytest.mark.asyncio
    async def test_render_newest_first(self, session, make_record):
        for timestamp in (1000, 3000, 2000):
            await session.history_store.insert(make_record(timestamp))

        view = await HistoryPresenter(session).render()

        assert [item.record_id for item in view.items] == ["3000", "2000", "1000"]
        assert session.history_view is view

    @pytest.mark.asyncio
    async def test_render_empty(self, session):
        view = await HistoryPresenter(session).render()

        assert view.is_empty
        assert view.enabled

    @pytest.mark.asyncio
    async def test_render_without_store(self, session):
        session.history_store = None

        view = await HistoryPresenter(session).render()

        assert view.is_empty
        assert not view.enabled

    @pytest.mark.asyncio
    async def test_read_failure_disables_history(self, session):
        store = Mock(is_open=True)
        store.list_all = AsyncMock(side_effect=StoreUnavailable("Could not read history"))
        session.history_store = store

        view = await HistoryPresenter(session).render()

        assert not view.enabled
        assert session.history_store is None


class TestDispatch:
    """Tests for HistoryPresenter.dispatch."""

    @pytest.mark.asyncio
    async def test_select_restores_form_and_references(self, session, make_record, png_data_url):
        record = make_record(1000, prompt="old prompt", model="gemini-3-pro-image-preview")
        await session.history_store.insert(record)
        session.references.add([ReferenceImage("image/png", "A"), ReferenceImage("image/png", "B")])
        presenter = HistoryPresenter(session)
        view = await presenter.render()

        outcome = await presenter.dispatch(view.items[0].action(ActionKind.SELECT))

        assert not outcome.changed
        assert session.display == DisplayedImage(url=record.url, filename=record.filename)
        assert session.form.prompt == "old prompt"
        assert session.form.model == "gemini-3-pro-image-preview"
        assert [image.data_url for image in session.references] == [png_data_url]

    @pytest.mark.asyncio
    async def test_download_decodes_image(self, session, make_record, png_bytes):
        await session.history_store.insert(make_record(1000))
        presenter = HistoryPresenter(session)
        view = await presenter.render()

        outcome = await presenter.dispatch(view.items[0].action(ActionKind.DOWNLOAD))

        assert outcome.download.filename == "gemini_1000.png"
        assert outcome.download.mime_type == "image/png"
        assert outcome.download.content == png_bytes

    @pytest.mark.asyncio
    async def test_delete_requires_confirmation(self, session, make_record):
        await session.history_store.insert(make_record(1000))
        presenter = HistoryPresenter(session)
        view = await presenter.render()

        outcome = await presenter.dispatch(view.items[0].action(ActionKind.DELETE))

        assert outcome.needs_confirmation
        assert outcome.confirmation == DELETE_CONFIRMATION
        assert session.pending_delete_id == "1000"
        assert await session.history_store.count() == 1

    @pytest.mark.asyncio
    async def test_confirmed_delete_removes_and_rerenders(self, session, make_record):
        for timestamp in (1000, 2000):
            await session.history_store.insert(make_record(timestamp))
        presenter = HistoryPresenter(session)
        view = await presenter.render()

        outcome = await presenter.dispatch(view.items[1].action(ActionKind.DELETE), confirmed=True)

        assert outcome.changed
        assert [item.record_id for item in outcome.view.items] == ["2000"]
        assert [record.id for record in await session.history_store.list_all()] == ["2000"]
        assert session.pending_delete_id is None

    @pytest.mark.asyncio
    async def test_stale_action_rerenders_with_notice(self, session, make_record):
        await session.history_store.insert(make_record(1000))
        presenter = HistoryPresenter(session)
        view = await presenter.render()
        # Removed behind the presenter's back
        await session.history_store.delete_by_id("1000")

        outcome = await presenter.dispatch(view.items[0].action(ActionKind.SELECT))

        assert outcome.notice == MISSING_RECORD_NOTICE
        assert outcome.view.is_empty
        assert session.display is None

    @pytest.mark.asyncio
    async def test_delete_write_failure_disables_history(self, session, make_record):
        record = make_record(1000)
        store = Mock(is_open=True)
        store.list_all = AsyncMock(return_value=[record])
        store.delete_by_id = AsyncMock(side_effect=StoreUnavailable("database is locked"))
        session.history_store = store
        session.pending_delete_id = record.id
        presenter = HistoryPresenter(session)
        view = await presenter.render()

        outcome = await presenter.dispatch(view.items[0].action(ActionKind.DELETE), confirmed=True)

        assert outcome.notice == STORE_FAILURE_NOTICE
        assert not outcome.changed
        assert not outcome.view.enabled
        assert session.history_store is None
        assert session.pending_delete_id is None


class TestClearAll:
    """Tests for HistoryPresenter.clear_all."""

    @pytest.mark.asyncio
    async def test_clear_requires_confirmation(self, session, make_record):
        await session.history_store.insert(make_record(1000))
        presenter = HistoryPresenter(session)

        outcome = await presenter.clear_all()

        assert outcome.confirmation == CLEAR_CONFIRMATION
        assert session.pending_clear
        assert await session.history_store.count() == 1

    @pytest.mark.asyncio
    async def test_confirmed_clear_resets_stage(self, session, make_record):
        await session.history_store.insert(make_record(1000))
        session.display = DisplayedImage(url="data:image/png;base64,AA==", filename="x.png")
        presenter = HistoryPresenter(session)

        outcome = await presenter.clear_all(confirmed=True)

        assert outcome.changed
        assert outcome.view.is_empty
        assert session.display is None
        assert not session.pending_clear
        assert await session.history_store.count() == 0

    @pytest.mark.asyncio
    async def test_clear_without_store_resets_stage(self, session):
        session.history_store = None
        session.display = DisplayedImage(url="data:image/png;base64,AA==", filename="x.png")

        outcome = await HistoryPresenter(session).clear_all(confirmed=True)

        assert session.display is None
        assert not outcome.view.enabled

    @pytest.mark.asyncio
    async def test_clear_write_failure_disables_history(self, session):
        store = Mock(is_open=True)
        store.clear = AsyncMock(side_effect=StoreUnavailable("database is locked"))
        session.history_store = store
        session.pending_clear = True
        session.display = DisplayedImage(url="data:image/png;base64,AA==", filename="x.png")

        outcome = await HistoryPresenter(session).clear_all(confirmed=True)

        assert outcome.notice == STORE_FAILURE_NOTICE
        assert not outcome.view.enabled
        assert session.display is None
        assert session.history_store is None
        assert not session.pending_clear
