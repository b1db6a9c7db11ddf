"""State management utilities for the Gemini Studio UI.

This module handles the initialization of a :class:`StudioSession`: adopting
the visitor's browser profile (history scope and last-used API key), opening
the history store for that profile, and attaching the proxy client.
Initialization is idempotent and runs once per browser session.
"""

import logging
from typing import Any

from gemstudio.core.config import StudioConfig, config
from gemstudio.core.errors import StoreUnavailable
from gemstudio.core.history_store import SQLiteHistoryStore

from .models import BrowserProfile, StudioSession
from .orchestrator import ProxyClient
from .presenter import HistoryPresenter

logger = logging.getLogger(__name__)


async def initialize_session(
    session: StudioSession | None = None,
    settings: StudioConfig | None = None,
    browser_state: Any = None,
) -> StudioSession:
    """Initialize or ensure a studio session is ready.

    A history store that cannot be opened does not fail initialization: the
    session simply runs with history disabled, and generation still works.

    Args:
        session: Existing StudioSession or None
        settings: Configuration to build components from (default: global config)
        browser_state: Value of the browser's ``BrowserState``; a browser
            without a stored profile gets a new profile id

    Returns:
        Initialized StudioSession with a freshly rendered history view
    """
    settings = settings or config

    if session is None:
        logger.info("Creating new StudioSession")
        session = StudioSession()

    if session.initialized:
        logger.debug("StudioSession already initialized")
        return session

    logger.info("Initializing StudioSession components...")

    if browser_state is not None:
        session.profile = BrowserProfile.from_state(browser_state)
    session.profile = session.profile.with_id()
    if session.profile.api_key and not session.form.api_key:
        session.form.api_key = session.profile.api_key

    if session.proxy is None:
        session.proxy = ProxyClient(settings.resolved_proxy_url, timeout=settings.request_timeout)

    if not session.form.model:
        session.form.model = settings.default_model
    if not session.form.aspect_ratio:
        session.form.aspect_ratio = settings.default_aspect_ratio

    store = session.history_store or SQLiteHistoryStore(
        settings.history_db_path, profile_id=session.profile.profile_id
    )
    try:
        await store.open()
        session.history_store = store
    except StoreUnavailable as e:
        session.history_store = None
        logger.warning(f"History disabled: {e}")

    await HistoryPresenter(session).render()

    session.initialized = True
    logger.info(f"StudioSession initialization complete: {session}")
    return session
