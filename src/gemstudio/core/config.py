"""Configuration management for Gemini Studio.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the GEMSTUDIO_ prefix,
allowing easy customization without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (GEMSTUDIO_* prefix)
2. .env file in the project root
3. Default values defined in StudioConfig

Example .env file:
    GEMSTUDIO_DEFAULT_MODEL=gemini-3-pro-image-preview
    GEMSTUDIO_DATA_DIR=data
    GEMSTUDIO_SERVER_PORT=7860

Global Configuration Instance
------------------------------
A global `config` instance is created automatically at module import time.
Per-session objects (the history store, the proxy client) are built from it by
``gemstudio.ui.state.initialize_session`` rather than living here.

Usage Example
-------------
    from gemstudio.core.config import config

    print(config.default_model)
    print(config.history_db_path)

Directory Management
--------------------
The configuration creates ``data_dir`` on initialization. The history
database lives there, shared by all browser profiles; each visitor's API key
and profile id stay in their own browser (Gradio ``BrowserState``).

Upstream Constraints
--------------------
- Image models only answer with image data when ``responseModalities`` is
  ``["IMAGE"]``; the proxy always sets it.
- ``1:1`` is the upstream default aspect ratio and is never sent explicitly.
- Aspect ratio and resolution values are passed through unchecked; the lists
  below only populate the UI choices.
"""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class StudioConfig(BaseSettings):
    """Main configuration for Gemini Studio.

    Values are loaded from environment variables with the GEMSTUDIO_ prefix,
    with fallback to defaults defined here.

    Attributes
    ----------
    Upstream Settings:
        gemini_base_url : str
            Base URL of the Gemini REST API (without the model path)
        default_model : str
            Model used when a request does not name one
        available_models : list[str]
            Models offered in the UI model selector

    Image Options:
        default_aspect_ratio : str
            Aspect ratio the upstream API uses when none is sent
        aspect_ratios : list[str]
            Aspect ratios offered in the UI
        resolutions : list[str]
            Output resolution hints offered in the UI

    Paths:
        data_dir : Path
            Directory holding the history database
        history_db_name : str
            SQLite file name for generation history
        browser_state_key : str
            localStorage key for the per-browser profile (API key, profile id)
        browser_state_secret : str | None
            Secret encrypting the browser profile; ``None`` means a random
            secret per server start, so stored keys do not survive a restart

    Networking:
        proxy_url : str | None
            URL the UI posts generation requests to (defaults to the local
            ``/api/generate`` route)
        request_timeout : float | None
            HTTP timeout in seconds; ``None`` means no timeout is imposed

    Server Settings:
        server_host : str
            Bind address for uvicorn
        server_port : int
            Port for uvicorn (1024-65535)

    Examples
    --------
        >>> custom_config = StudioConfig(data_dir="/tmp/studio", server_port=8080)
        >>> custom_config.resolved_proxy_url
        'http://127.0.0.1:8080/api/generate'
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="GEMSTUDIO_",
        case_sensitive=False,
    )

    # Upstream API
    gemini_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Base URL of the Gemini REST API",
    )
    default_model: str = Field(
        default="gemini-3.1-flash-image-preview",
        description="Model used when a request does not specify one",
    )
    available_models: list[str] = Field(
        default_factory=lambda: [
            "gemini-3.1-flash-image-preview",
            "gemini-3-pro-image-preview",
            "gemini-2.5-flash-image",
        ],
        description="Models offered in the UI model selector",
    )

    # Image options
    default_aspect_ratio: str = Field(
        default="1:1",
        description="Upstream default aspect ratio (never sent explicitly)",
    )
    aspect_ratios: list[str] = Field(
        default_factory=lambda: [
            "1:1",
            "2:3",
            "3:2",
            "3:4",
            "4:3",
            "4:5",
            "5:4",
            "9:16",
            "16:9",
            "21:9",
        ],
        description="Aspect ratios offered in the UI",
    )
    resolutions: list[str] = Field(
        default_factory=lambda: ["1K", "2K", "4K"],
        description="Output resolution hints offered in the UI",
    )

    # Paths
    data_dir: Path = Field(
        default=Path("data"),
        description="Directory for the history database",
    )
    history_db_name: str = Field(default="history.db")

    # Browser profile
    browser_state_key: str = Field(
        default="gemstudio_profile",
        description="localStorage key of the per-browser profile",
    )
    browser_state_secret: str | None = Field(
        default=None,
        description="Secret for encrypting the browser profile (None = random per start)",
    )

    # Networking
    proxy_url: str | None = Field(
        default=None,
        description="Generation endpoint used by the UI (None = local /api/generate)",
    )
    request_timeout: float | None = Field(
        default=None,
        description="HTTP timeout in seconds (None = no timeout)",
        gt=0,
    )

    # Server settings
    server_host: str = Field(
        default="0.0.0.0",
        description="Server bind address (0.0.0.0 for local network)",
    )
    server_port: int = Field(
        default=7860,
        description="Server port",
        ge=1024,
        le=65535,
    )

    def __init__(self, **kwargs):
        """Initialize configuration and create the data directory.

        Args:
            **kwargs: Configuration overrides (typically from environment variables)
        """
        super().__init__(**kwargs)

        self.data_dir.mkdir(parents=True, exist_ok=True)

    @property
    def history_db_path(self) -> Path:
        """Absolute location of the SQLite history database."""
        return self.data_dir / self.history_db_name

    @property
    def resolved_proxy_url(self) -> str:
        """Generation endpoint URL, defaulting to this server's own route."""
        if self.proxy_url:
            return self.proxy_url
        return f"http://127.0.0.1:{self.server_port}/api/generate"


# Global configuration instance
# Loads values from environment variables (GEMSTUDIO_* prefix) and .env file.
config = StudioConfig()
