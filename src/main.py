"""FastAPI application entry point.

tidecall - outbound phone verification for marine cleanup sites.
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.routes import audio, calls, events, health, metrics, plivo_webhook
from src.config import Settings, get_settings
from src.core.factory import build_call_driver
from src.core.protocol_driver import CallProtocolDriver
from src.db.session import close_db, init_db
from src.logging_config import get_logger, setup_logging


def create_app(
    settings: Settings | None = None,
    driver: CallProtocolDriver | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    A prebuilt driver (tests, scripts) is used as-is; otherwise one is built
    from settings at startup, with failed record writes queued on arq.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler.

        Startup:
        - Initialize logging
        - Initialize database (development only)
        - Build the call protocol driver

        Shutdown:
        - Abort calls still in progress
        - Close provider clients and the retry queue's Redis pool
        - Close database connections
        """
        setup_logging(
            level=settings.log_level,
            enable_file=settings.is_production,
        )
        logger = get_logger(__name__)

        # Production should use: alembic upgrade head
        if not settings.is_production:
            await init_db()

        retry_queue = None
        if getattr(app.state, "driver", None) is None:
            from src.worker import PersistRetryQueue

            retry_queue = PersistRetryQueue(settings.redis_settings)
            app.state.driver = build_call_driver(settings, on_persist_failure=retry_queue)

        yield

        # Sessions don't survive a restart; record what we have
        live_driver: CallProtocolDriver = app.state.driver
        for session_id in list(live_driver.store.session_ids()):
            await live_driver.abort_session(session_id)
        await live_driver.close()
        if retry_queue is not None:
            await retry_queue.close()
        logger.info("Shutdown complete")

        await close_db()

    app = FastAPI(
        title="tidecall API",
        description="Outbound phone verification for marine cleanup operations",
        version="0.1.0",
        docs_url="/docs" if not settings.is_production else None,
        redoc_url="/redoc" if not settings.is_production else None,
        lifespan=lifespan,
    )
    app.state.driver = driver

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.debug else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Health check routes
    app.include_router(health.router, tags=["Health"])

    # Plivo webhook routes
    app.include_router(plivo_webhook.router, prefix="/api", tags=["Plivo"])

    # Call placement and live transcript
    app.include_router(calls.router, prefix="/api")
    app.include_router(events.router, prefix="/api")

    # Synthesized audio for <Play>
    app.include_router(audio.router, prefix="/api")

    # Metrics endpoint for Prometheus scraping
    app.include_router(metrics.router, tags=["Observability"])

    return app


# Application instance
app = create_app()
