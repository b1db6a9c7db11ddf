"""Gemini Studio - Gemini image generation with a local history studio."""

__version__ = "0.1.0"

from gemstudio.core.config import StudioConfig, config
from gemstudio.core.history_store import HistoryStore, SQLiteHistoryStore
from gemstudio.core.records import HistoryRecord, ReferenceImage

__all__ = [
    "StudioConfig",
    "config",
    "HistoryStore",
    "SQLiteHistoryStore",
    "HistoryRecord",
    "ReferenceImage",
]
