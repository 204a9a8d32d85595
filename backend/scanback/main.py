"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from scanback.application.interfaces import NotificationDispatcher, RecordStore
from scanback.application.services import (
    CodeGenerator,
    ContactUpdateService,
    NotificationOutbox,
    PublicLookupCache,
    TagLifecycleService,
)
from scanback.config import Settings, get_settings
from scanback.infrastructure.auth.identity_check import IdentityEqualityCheck
from scanback.infrastructure.database import Base, async_session_factory, engine
from scanback.infrastructure.database.repositories import SQLAlchemyTagRecordRepository
from scanback.infrastructure.logging.log_config import setup_logging
from scanback.infrastructure.memory.pending_update_store import InMemoryPendingUpdateStore
from scanback.infrastructure.notifications import (
    LoggingNotificationDispatcher,
    WebhookNotificationDispatcher,
)
from scanback.infrastructure.qr.qr_renderer import QrImageRenderer
from scanback.presentation.api.router import router as api_router

logger = logging.getLogger(__name__)


def _build_dispatcher(settings: Settings) -> NotificationDispatcher:
    """Webhook delivery when a URL is configured, log-only otherwise."""
    url = settings.notification_webhook_url.strip()
    if url:
        return WebhookNotificationDispatcher(url, timeout=settings.notification_timeout_seconds)
    logger.warning("NOTIFICATION_WEBHOOK_URL is not configured; events are only logged.")
    return LoggingNotificationDispatcher()


def wire_components(app: FastAPI, store: RecordStore, settings: Settings) -> None:
    """Build the long-lived lifecycle components and attach them to ``app.state``."""
    authorization = IdentityEqualityCheck()
    lookup_cache = PublicLookupCache(
        store.find_public_view,
        ttl_seconds=settings.lookup_cache_ttl_seconds,
        fetch_timeout=settings.store_timeout_seconds,
        sweep_interval=settings.lookup_cache_sweep_interval_seconds,
        max_entries=settings.lookup_cache_max_entries,
    )
    outbox = NotificationOutbox(
        _build_dispatcher(settings), history_size=settings.delivery_history_size
    )
    lifecycle = TagLifecycleService(
        store,
        authorization=authorization,
        code_generator=CodeGenerator(settings.code_length),
        lookup_cache=lookup_cache,
        outbox=outbox,
        store_timeout=settings.store_timeout_seconds,
        code_generation_attempts=settings.code_generation_attempts,
        scan_history_limit=settings.scan_history_limit,
    )
    contact_updates = ContactUpdateService(
        lifecycle,
        InMemoryPendingUpdateStore(),
        otp_ttl_seconds=settings.otp_ttl_seconds,
        max_attempts=settings.otp_max_attempts,
    )

    app.state.authorization = authorization
    app.state.lookup_cache = lookup_cache
    app.state.outbox = outbox
    app.state.lifecycle_service = lifecycle
    app.state.contact_update_service = contact_updates
    app.state.qr_renderer = QrImageRenderer(
        box_size=settings.qr_box_size, border=settings.qr_border
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan: create tables, wire components, drain on shutdown."""
    settings = get_settings()
    setup_logging(settings)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    store = SQLAlchemyTagRecordRepository(async_session_factory)
    wire_components(app, store, settings)
    logger.info(
        "Tag service ready (cache ttl=%ss, store timeout=%ss)",
        settings.lookup_cache_ttl_seconds,
        settings.store_timeout_seconds,
    )

    yield

    # Shutdown
    await app.state.outbox.drain()
    app.state.lookup_cache.clear()
    await engine.dispose()


def create_app() -> FastAPI:
    """Factory function that builds and configures the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_title,
        version=settings.app_version,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "scanback.main:app",
        host="0.0.0.0",
        port=8020,
        reload=True,
    )
