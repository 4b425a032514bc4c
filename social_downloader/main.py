"""Social media downloader backend - FastAPI application."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from social_downloader.config import Settings, settings as default_settings
from social_downloader.api.errors import register_exception_handlers
from social_downloader.api.health import router as health_root_router
from social_downloader.api.router import api_router
from social_downloader.fetchers.base import MediaFetcher
from social_downloader.fetchers.simulated import SimulatedFetcher
from social_downloader.jobs.in_process import InProcessDispatcher
from social_downloader.jobs.lifecycle import DownloadLifecycle
from social_downloader.logging_config import configure_logging
from social_downloader.services.status import StatusQueryService
from social_downloader.storage.download_store import DownloadStore, InMemoryDownloadStore
from social_downloader.storage.retention import RetentionSweeper

logger = logging.getLogger(__name__)


def build_store(settings: Settings) -> DownloadStore:
    """Construct the store selected by STORAGE_BACKEND."""
    if settings.storage_backend == "memory":
        return InMemoryDownloadStore()
    if settings.storage_backend == "supabase":
        from social_downloader.db.supabase_client import create_supabase
        from social_downloader.storage.supabase_store import SupabaseDownloadStore
        return SupabaseDownloadStore(create_supabase(settings))
    raise ValueError(f"Unknown storage backend: {settings.storage_backend!r}")


def create_app(
    settings: Optional[Settings] = None,
    fetcher: Optional[MediaFetcher] = None,
    store: Optional[DownloadStore] = None,
) -> FastAPI:
    """Build the application.

    `fetcher` and `store` override the defaults derived from settings;
    tests use them to inject deterministic collaborators.
    """
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup and shutdown logic."""
        download_store = store or build_store(settings)
        media_fetcher = fetcher or SimulatedFetcher(unit_delay_seconds=settings.unit_delay_seconds)

        lifecycle = DownloadLifecycle(
            download_store,
            media_fetcher,
            default_limit=settings.default_limit,
            max_limit=settings.max_limit,
            bulk_min_files=settings.bulk_min_files,
            bulk_max_files=settings.bulk_max_files,
            max_retries=settings.fetch_max_retries,
            retry_backoff_seconds=settings.fetch_retry_backoff_seconds,
        )
        dispatcher = InProcessDispatcher(worker_fn=lifecycle.run, on_cancelled=lifecycle.abandon)
        await dispatcher.start()

        sweeper = RetentionSweeper(
            download_store,
            retention_hours=settings.job_retention_hours,
            interval_seconds=settings.cleanup_interval_seconds,
        )
        sweeper.start()

        app.state.settings = settings
        app.state.store = download_store
        app.state.dispatcher = dispatcher
        app.state.status_service = StatusQueryService(download_store)
        logger.info("Downloader started (storage=%s, unit delay=%.2fs)",
                    settings.storage_backend, settings.unit_delay_seconds)

        yield

        logger.info("Shutting down downloader")
        await sweeper.stop()
        await dispatcher.stop()
        app.state.dispatcher = None

    app = FastAPI(
        title="Social Media Downloader",
        description="Batch download jobs for TikTok and Instagram with progress polling",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(health_root_router, tags=["health"])  # GET /health at root
    app.include_router(api_router)  # All /api/* endpoints
    return app


app = create_app()


def run() -> None:
    """Console entry point: configure logging and serve with uvicorn."""
    configure_logging(default_settings.log_level)
    uvicorn.run(app, host=default_settings.host, port=default_settings.port, log_config=None)


if __name__ == "__main__":
    run()
