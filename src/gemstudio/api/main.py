"""Gemini Studio FastAPI proxy application.

This module defines the FastAPI ``app`` instance that relays generation
requests to the Gemini API, and the ``main()`` CLI function that serves the
proxy on its own.  The Gradio studio UI (``gemstudio.ui.app``) mounts itself
onto this same ``app`` so that one process serves both.

Architecture
------------
The proxy is a stateless pass-through:

- **Configuration** comes from :data:`~gemstudio.core.config.config` and is
  served to clients via ``GET /api/config``.
- **Generation** requests are validated, translated into a
  ``generateContent`` body, and forwarded with ``httpx`` by
  :class:`~gemstudio.api.gemini.GeminiClient`.
- **Errors** always use the body ``{"error": "<message>"}``: 400 for a
  missing key or prompt, the upstream status for upstream failures, and 500
  for anything unexpected.
- Nothing is persisted server-side; the API key travels with each request.

Endpoints
---------
========  ==================  ========================================
Method    Path                Purpose
========  ==================  ========================================
GET       ``/api/config``     Models, aspect ratios, resolutions
POST      ``/api/generate``   Forward a generation request upstream
========  ==================  ========================================

Usage
-----
CLI (installed entry point)::

    gemstudio-proxy

Direct invocation::

    python -m gemstudio.api.main
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from gemstudio import __version__
from gemstudio.api.gemini import GeminiClient, UpstreamError
from gemstudio.api.models import GenerateRequest
from gemstudio.core.config import config
from gemstudio.core.records import MAX_REFERENCE_IMAGES

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Application lifecycle: upstream client setup and teardown.
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application startup and shutdown lifecycle.

    On startup:
        Creates a :class:`GeminiClient` (one pooled ``httpx`` client for the
        process) and stores it on ``app.state``.

    On shutdown:
        Closes the pooled connections.

    Args:
        app: The FastAPI application instance.

    Yields:
        Control back to the application for the duration of its lifetime.
    """
    # --- Startup -----------------------------------------------------------
    app.state.gemini_client = GeminiClient(
        base_url=config.gemini_base_url,
        default_model=config.default_model,
        timeout=config.request_timeout,
    )
    logger.info(f"Gemini proxy ready (default model: {config.default_model}).")

    yield  # Application runs here.

    # --- Shutdown ----------------------------------------------------------
    await app.state.gemini_client.aclose()
    logger.info("Gemini client closed on shutdown.")


# ---------------------------------------------------------------------------
# FastAPI application instance.
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Gemini Studio",
    description="Proxy for Gemini image generation with a local history studio.",
    version=__version__,
    lifespan=lifespan,
)

# The proxy carries no credentials of its own; any origin may call it.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed bodies with the endpoint's ``{"error"}`` shape."""
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    return _error(f"Invalid request: {location}: {message}" if location else message, 400)


# ---------------------------------------------------------------------------
# Routes.
# ---------------------------------------------------------------------------


@app.get("/api/config")
async def get_config() -> dict:
    """Return the options a client needs to build a generation form.

    Returns:
        Dictionary with keys ``version``, ``models``, ``default_model``,
        ``aspect_ratios``, ``default_aspect_ratio``, ``resolutions``, and
        ``max_reference_images``.
    """
    return {
        "version": __version__,
        "models": config.available_models,
        "default_model": config.default_model,
        "aspect_ratios": config.aspect_ratios,
        "default_aspect_ratio": config.default_aspect_ratio,
        "resolutions": config.resolutions,
        "max_reference_images": MAX_REFERENCE_IMAGES,
    }


@app.post("/api/generate")
async def generate(req: GenerateRequest) -> JSONResponse:
    """Forward a generation request to the Gemini API.

    This endpoint:

    1. Rejects requests without an API key or prompt (400).
    2. Builds the upstream body (prompt, reference images, image config).
    3. Returns the upstream JSON verbatim on success.
    4. Mirrors the upstream status with ``{"error": message}`` on failure.

    Args:
        req: Validated :class:`GenerateRequest` payload.

    Returns:
        JSON response with the upstream body or an error body.
    """
    if not req.api_key or not req.prompt:
        return _error("API Key and Prompt are required.", 400)

    client: GeminiClient = app.state.gemini_client

    try:
        data = await client.generate(req)
    except UpstreamError as e:
        return _error(e.message, e.status_code)
    except Exception as e:
        logger.error(f"Proxy request failed: {e}", exc_info=True)
        return _error(str(e) or e.__class__.__name__, 500)

    return JSONResponse(status_code=200, content=data)


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the proxy alone with uvicorn.

    Reads host and port from :data:`~gemstudio.core.config.config`
    (``GEMSTUDIO_SERVER_HOST`` and ``GEMSTUDIO_SERVER_PORT``).  Defaults to
    ``0.0.0.0:7860``.

    This function is registered as the ``gemstudio-proxy`` console script in
    ``pyproject.toml``.
    """
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    uvicorn.run(
        "gemstudio.api.main:app",
        host=config.server_host,
        port=config.server_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
