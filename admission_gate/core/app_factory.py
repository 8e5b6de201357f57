from __future__ import annotations

"""Application factory for the admission gate.

Centralizes app construction (settings, gate components, middleware,
handlers, routers) so tests can build isolated apps with their own settings
and counter store.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from admission_gate.adapters.counter_store.base import AbstractCounterStore
from admission_gate.api.routes import debug_router, health_router, resource_router
from admission_gate.core.config import Settings, settings as default_settings
from admission_gate.core.exception_handlers import setup_exception_handlers
from admission_gate.core.logging import configure_logging
from admission_gate.core.middleware import request_id_middleware
from admission_gate.core.openapi import apply_openapi_customizations
from admission_gate.core.rate_limit import build_decision_engine

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Probe the counting store on startup and release it on shutdown.

    An unreachable store is logged, not fatal: decisions fail open until it
    comes back.
    """
    engine = app.state.decision_engine
    store: AbstractCounterStore = engine.store

    if await store.ping():
        logger.info("counter_store.connected", extra={"backend": store.backend})
    else:
        logger.warning("counter_store.unreachable_at_startup", extra={"backend": store.backend})

    logger.info(
        "app.startup",
        extra={
            "backend": store.backend,
            "window_s": engine.window_seconds,
            "rate_limit_enabled": app.state.settings.app.rate_limit_enabled,
        },
    )
    try:
        yield
    finally:
        await store.close()
        logger.info("app.shutdown", extra={"backend": store.backend})


def create_app(
    cfg: Settings | None = None,
    *,
    store: AbstractCounterStore | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        cfg: Settings to use; defaults to the process-wide settings.
        store: Optional counter store overriding the configured backend.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.

    Raises:
        ConfigurationError: If window length, tier table or store backend
            are invalid. Raised here so a bad deployment fails at startup.
    """
    cfg = cfg or default_settings

    # Logging first so subsequent init logs are formatted as desired
    configure_logging(cfg.log)

    engine = build_decision_engine(cfg, store=store)

    app = FastAPI(
        title="Admission Gate",
        description=(
            "Fixed-window, per-credential rate limiting shared across instances "
            "through a common counting store. Quotas depend on the caller's "
            "subscription tier; when the store is unavailable requests are "
            "admitted and flagged as degraded."
        ),
        version="0.1.0",
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
        lifespan=lifespan,
    )
    app.state.settings = cfg
    app.state.decision_engine = engine

    # Middleware
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(resource_router)
    app.include_router(health_router)
    app.include_router(debug_router)

    apply_openapi_customizations(app)

    return app
