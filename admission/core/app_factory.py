"""Application factory for the FastAPI app.

Centralizes app construction (state, middleware, handlers, routers) so tests
can build isolated instances with their own admission configuration.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from admission.adapters.rate_limit.base import AbstractAdmissionController
from admission.adapters.rate_limit.sweeper import CounterSweeper
from admission.api.routes import admission_router, health_router
from admission.core.config import AdmissionSettings, settings
from admission.core.exception_handlers import setup_exception_handlers
from admission.core.logging import configure_logging
from admission.core.middleware import request_id_middleware
from admission.core.openapi import apply_openapi_customizations
from admission.core.rate_limit import (
    admission_middleware,
    build_admission_controller,
    parse_exempt_paths,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Run the counter sweeper for the lifetime of the app."""
    sweeper: CounterSweeper = app.state.sweeper
    sweeper.start()
    try:
        yield
    finally:
        sweeper.stop()


def create_app(
    admission_settings: AdmissionSettings | None = None,
    *,
    controller: AbstractAdmissionController | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        admission_settings: Admission configuration; defaults to global settings.
        controller: Pre-built controller (e.g., with a fake clock in tests);
            built from ``admission_settings`` when omitted.

    Returns:
        Configured FastAPI app.

    Raises:
        ConfigurationAppError: If the admission rules are invalid.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    cfg = admission_settings or settings.admission
    controller = controller or build_admission_controller(cfg)

    app = FastAPI(
        title=settings.app.title,
        description=(
            "Admission control for the storefront admin backend: per-client "
            "fixed-window quotas selected by longest path prefix, with HTTP 429 "
            "and Retry-After on rejection."
        ),
        version="0.1.0",
        debug=settings.app.debug,
        lifespan=lifespan,
    )

    app.state.admission_settings = cfg
    app.state.exempt_paths = parse_exempt_paths(cfg.exempt_paths)
    app.state.admission = controller
    app.state.sweeper = CounterSweeper(controller, interval_seconds=cfg.sweep_interval_seconds)

    logger.info(
        "admission.configured",
        extra={
            "enabled": cfg.enabled,
            "rules": [rule.name for rule in controller.rules],
            "shards": cfg.shard_count,
        },
    )

    # Middleware: the last one registered runs first, so request ids are
    # already set when admission decisions are logged.
    app.middleware("http")(admission_middleware)
    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(admission_router, prefix="/v1")
    app.include_router(health_router)

    apply_openapi_customizations(app)

    return app
