"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from recordsync.config import get_settings
from recordsync.infrastructure.database import create_engine
from recordsync.infrastructure.logging.log_config import setup_logging
from recordsync.infrastructure.runtime import build_runtime, create_tables
from recordsync.presentation.api.router import router as api_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan — create tables, wire the sync runtime, start watching."""
    settings = get_settings()
    setup_logging()

    # 1. Create the record tables (no-op when they already exist)
    engine = create_engine(settings.database_url, echo=False)
    try:
        await create_tables(engine)
    except Exception:
        logger.exception("Failed to create record tables — continuing with existing schema")

    # 2. Build the runtime and attach it to app.state
    runtime = build_runtime(settings, engine=engine)
    app.state.runtime = runtime

    # 3. Start the watcher, then warm the shared cache
    await runtime.start(autostart_watcher=settings.watcher_autostart)
    try:
        queued = await runtime.warm_up()
        logger.info("Initial load complete — %d function groups queued for preload", queued)
    except Exception:
        logger.exception("Initial cache warm-up failed — records will load on demand")

    yield

    # Shutdown
    await runtime.shutdown()
    app.state.runtime = None


def create_app() -> FastAPI:
    """Factory function that builds and configures the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_title,
        version=settings.app_version,
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Mount API routes
    app.include_router(api_router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "recordsync.main:app",
        host="0.0.0.0",
        port=8020,
        reload=True,
    )
