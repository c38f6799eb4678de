"""
FastAPI Application Entry Point.

This module creates and configures the FastAPI application instance for
the long-running proxy server.

Routes:
    - TTS proxy: /tts (GET, OPTIONS)
    - Operations: /health, /metrics
    - Front end: every other GET path, when server.static_dir is set

Usage:
    # Run with uvicorn
    uvicorn tts_proxy.main:app --host 127.0.0.1 --port 4001

    # Or let the CLI pick a free port and write the port file
    tts-proxy serve
"""

from __future__ import annotations

from fastapi import FastAPI

from tts_proxy import __version__
from tts_proxy.api.dependencies import get_settings
from tts_proxy.api.routes import mount_frontend, router
from tts_proxy.core.logging import configure_logging


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    This factory function:
        1. Configures structured logging from settings and environment
        2. Creates a FastAPI instance with the service title
        3. Registers the proxy and operations routes
        4. Serves the built front end if a static directory is configured

    Returns:
        FastAPI: Configured application instance ready to serve requests.
    """
    configure_logging()

    app = FastAPI(title="tts-proxy", version=__version__)

    app.include_router(router)           # /tts, /health, /metrics

    # Catch-all route, so it must come after the API routes
    static_dir = get_settings().get_proxy_config().server.static_dir
    if static_dir:
        mount_frontend(app, static_dir)

    return app


# Global application instance for ASGI servers (uvicorn, gunicorn, etc.)
app = create_app()
