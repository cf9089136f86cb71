"""livekb FastAPI application entry point.

Loads configuration from ``.env`` and ``config/config.yaml``, configures
structured logging, and wires providers and services onto ``app.state``
at startup via :func:`livekb.dependencies.build_components`.
"""

from __future__ import annotations

from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI

from livekb.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from livekb.api.routes import router as api_router
from livekb.config.loader import load_config
from livekb.config.settings import Settings
from livekb.dependencies import build_components
from livekb.utils.logging import configure_logging, get_logger

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

settings = Settings()
config = load_config(settings=settings)

configure_logging(
    log_level=settings.log_level,
    json_output=(settings.app_env == "production" or bool(config.get("logging", {}).get("json"))),
)
_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Build all providers and services on startup."""
    components = build_components(settings, config)

    for key, value in components.items():
        setattr(application.state, key, value)

    _logger.info(
        "app_startup",
        version=config.get("app", {}).get("version", "0.1.0"),
        environment=settings.app_env,
        **components["provider_registry"],
    )

    yield

    _logger.info("app_shutdown")


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app() -> FastAPI:
    """Build and configure the FastAPI application."""
    application = FastAPI(
        title="livekb API",
        version=config.get("app", {}).get("version", "0.1.0"),
        description=(
            "Upload documents into a per-session folder, parse and chunk them, "
            "index the chunks in a namespaced vector index, and retrieve "
            "score-gated context for a topic."
        ),
        lifespan=_lifespan,
    )

    # -- Middleware (last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application, allowed_origins=config.get("api", {}).get("cors_origins"))

    application.include_router(api_router)
    return application


app = create_app()

if __name__ == "__main__":
    uvicorn.run(
        "livekb.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=(settings.app_env == "development"),
    )
