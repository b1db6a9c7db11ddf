"""Core functionality for Gemini Studio.

This package holds everything that does not depend on a web framework:

- **config.py**: Pydantic Settings configuration (``GEMSTUDIO_`` prefix)
- **records.py**: ``HistoryRecord`` and ``ReferenceImage`` plus data URL helpers
- **history_store.py**: async history store interface and its SQLite backend
- **errors.py**: user-visible error taxonomy

Usage Example
-------------
    from gemstudio.core import SQLiteHistoryStore, config

    store = SQLiteHistoryStore(config.history_db_path)
    await store.open()
    records = await store.list_all()
"""

from gemstudio.core.config import StudioConfig, config
from gemstudio.core.errors import (
    DuplicateKey,
    GenerationInProgress,
    NoDataError,
    ReferenceLimitError,
    StoreUnavailable,
    StudioError,
    TransportError,
    ValidationError,
    WrongModalityError,
)
from gemstudio.core.history_store import HistoryStore, SQLiteHistoryStore
from gemstudio.core.records import HistoryRecord, ReferenceImage

__all__ = [
    "StudioConfig",
    "config",
    "HistoryStore",
    "SQLiteHistoryStore",
    "HistoryRecord",
    "ReferenceImage",
    "StudioError",
    "ValidationError",
    "TransportError",
    "WrongModalityError",
    "NoDataError",
    "StoreUnavailable",
    "DuplicateKey",
    "ReferenceLimitError",
    "GenerationInProgress",
]
