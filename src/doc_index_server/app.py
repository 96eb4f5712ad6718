"""Main ASGI application entry point.

Usage:
    python -m doc_index_server.app

    # Or through the console script, configured from the environment
    PORT=8080 DATA_DIR=/var/lib/doc-index doc-index-server
"""

from __future__ import annotations

import logging

from starlette.applications import Starlette

from .app_builder import AppBuilder
from .config import Settings
from .observability import configure_logging, configure_trace_exporter, init_tracing


logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> Starlette:
    """Create the ASGI application for ``settings`` (loaded from the environment by default)."""
    return AppBuilder(settings or Settings()).build()


def main() -> None:
    """Run the server with uvicorn."""
    import uvicorn

    settings = Settings()
    configure_logging(level=settings.log_level, json_output=settings.log_json, access_log=settings.access_log)
    provider = init_tracing()
    configure_trace_exporter(settings.otlp_traces_endpoint, provider)

    app = create_app(settings)

    logger.info("Starting server on %s:%d", settings.host, settings.port)
    logger.info("Health check: http://%s:%d/health", settings.host, settings.port)

    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        log_config=None,  # Don't let uvicorn override our logging config
    )


if __name__ == "__main__":
    main()
