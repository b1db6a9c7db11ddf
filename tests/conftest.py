"""Shared pytest fixtures for Gemini Studio tests."""

import base64
import io
import json
import shutil
import tempfile
from pathlib import Path
from typing import Callable, Generator

import httpx
import pytest
from PIL import Image

from gemstudio.core.config import StudioConfig
from gemstudio.core.history_store import DEFAULT_PROFILE, SQLiteHistoryStore
from gemstudio.core.records import HistoryRecord, make_data_url
from gemstudio.ui.models import BrowserProfile, StudioSession
from gemstudio.ui.orchestrator import ProxyClient


class RecordingHandler:
    """``httpx.MockTransport`` handler that replays a canned response.

    Every request is recorded with its decoded JSON body so tests can assert
    on what was sent (or that nothing was).
    """

    def __init__(self, status_code: int = 200, body=None, error: Exception | None = None):
        self.status_code = status_code
        self.body = body if body is not None else {}
        self.error = error
        self.requests: list[httpx.Request] = []
        self.payloads: list = []

    def respond(self, status_code: int = 200, body=None) -> None:
        self.status_code = status_code
        self.body = body if body is not None else {}
        self.error = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        self.payloads.append(json.loads(request.content) if request.content else None)
        if self.error is not None:
            raise self.error
        if isinstance(self.body, (dict, list)):
            return httpx.Response(self.status_code, json=self.body)
        return httpx.Response(self.status_code, text=str(self.body))

    @property
    def call_count(self) -> int:
        return len(self.requests)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory

    Cleanup:
        Directory is removed after test completes
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def test_config(temp_dir: Path) -> StudioConfig:
    """Create a test configuration rooted in a temporary directory.

    Args:
        temp_dir: Temporary directory from fixture

    Returns:
        StudioConfig instance for testing
    """
    return StudioConfig(
        data_dir=temp_dir / "data",
        proxy_url="http://proxy.test/api/generate",
        _env_file=None,
    )


@pytest.fixture
def png_bytes() -> bytes:
    """A real 8x8 PNG image."""
    buffer = io.BytesIO()
    Image.new("RGB", (8, 8), color=(200, 30, 30)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def png_base64(png_bytes: bytes) -> str:
    return base64.b64encode(png_bytes).decode("ascii")


@pytest.fixture
def png_data_url(png_base64: str) -> str:
    return make_data_url("image/png", png_base64)


@pytest.fixture
def make_record(png_data_url: str) -> Callable[..., HistoryRecord]:
    """Factory for history records with sensible defaults.

    Returns:
        Callable taking a timestamp plus optional field overrides
    """

    def _make(timestamp: int, **overrides) -> HistoryRecord:
        fields = {
            "id": str(timestamp),
            "timestamp": timestamp,
            "url": png_data_url,
            "prompt": f"prompt {timestamp}",
            "model": "gemini-3.1-flash-image-preview",
            "filename": f"gemini_{timestamp}.png",
        }
        fields.update(overrides)
        return HistoryRecord(**fields)

    return _make


@pytest.fixture
async def history_store(temp_dir: Path) -> SQLiteHistoryStore:
    """An opened SQLite history store in a temporary directory."""
    store = SQLiteHistoryStore(temp_dir / "history.db")
    await store.open()
    return store


@pytest.fixture
def image_response(png_base64: str) -> dict:
    """A generateContent success body carrying one PNG image."""
    return {
        "candidates": [
            {"content": {"parts": [{"inlineData": {"mimeType": "image/png", "data": png_base64}}]}}
        ]
    }


@pytest.fixture
def proxy_handler(image_response: dict) -> RecordingHandler:
    """Mock proxy endpoint answering with ``image_response`` by default."""
    return RecordingHandler(200, image_response)


@pytest.fixture
def session(history_store: SQLiteHistoryStore, proxy_handler: RecordingHandler) -> StudioSession:
    """An initialized session wired to the mock proxy and a real store.

    Args:
        history_store: Opened store from fixture
        proxy_handler: Mock proxy endpoint from fixture

    Returns:
        StudioSession ready for generation
    """
    session = StudioSession(
        history_store=history_store,
        profile=BrowserProfile(profile_id=DEFAULT_PROFILE),
        proxy=ProxyClient(
            "http://proxy.test/api/generate",
            transport=httpx.MockTransport(proxy_handler),
        ),
        initialized=True,
    )
    session.form.model = "gemini-3.1-flash-image-preview"
    return session


@pytest.fixture
def upstream_handler(image_response: dict) -> RecordingHandler:
    """Mock Gemini API answering with ``image_response`` by default."""
    return RecordingHandler(200, image_response)


@pytest.fixture
def test_client(monkeypatch, upstream_handler: RecordingHandler):
    """FastAPI TestClient whose Gemini client talks to ``upstream_handler``.

    Yields:
        TestClient with the application lifespan running
    """
    from fastapi.testclient import TestClient

    from gemstudio.api import main as api_main
    from gemstudio.api.gemini import GeminiClient

    def _client(**kwargs) -> GeminiClient:
        return GeminiClient(transport=httpx.MockTransport(upstream_handler), **kwargs)

    monkeypatch.setattr(api_main, "GeminiClient", _client)

    with TestClient(api_main.app) as client:
        yield client
