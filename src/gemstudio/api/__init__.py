"""Gemini Studio — FastAPI proxy layer.

This package contains the FastAPI application, the Pydantic request models,
and the upstream Gemini client.

Modules
-------
main
    FastAPI application with the proxy routes and the ``main()`` CLI entry
    point.
models
    Pydantic models for proxy request validation.
gemini
    ``httpx`` client that forwards requests to ``generateContent``.
"""
