"""Logging setup: one stderr handler plus a level per logger category.

Categories let the lifecycle and cache loggers run at DEBUG while SQL and
outbound HTTP chatter stays at WARNING, all from ``LOG_LEVEL_*`` settings.
"""

import logging
import sys

from scanback.config import Settings, get_settings

_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

# Settings field -> loggers it controls
_CATEGORIES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("log_level_sql", ("sqlalchemy.engine", "sqlalchemy.pool", "aiosqlite")),
    ("log_level_http", ("httpx", "httpcore")),
    ("log_level_uvicorn", ("uvicorn", "uvicorn.access", "uvicorn.error")),
    (
        "log_level_lifecycle",
        (
            "scanback.application.services.lifecycle_service",
            "scanback.application.services.contact_update_service",
            "scanback.application.services.notification_outbox",
            "scanback.infrastructure.notifications",
        ),
    ),
    ("log_level_cache", ("scanback.application.services.public_lookup_cache",)),
)


def setup_logging(settings: Settings | None = None) -> None:
    """Apply the configured levels. Called once from the FastAPI lifespan."""
    settings = settings or get_settings()

    root = logging.getLogger()
    root.setLevel(_parse_level(settings.log_level))
    # uvicorn usually installs a handler; tests and scripts may not
    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(_FORMAT))
        root.addHandler(handler)

    applied: dict[str, str] = {}
    for field_name, logger_names in _CATEGORIES:
        raw = getattr(settings, field_name)
        level = _parse_level(raw)
        for name in logger_names:
            logging.getLogger(name).setLevel(level)
        applied[field_name.removeprefix("log_level_")] = logging.getLevelName(level)

    logging.getLogger(__name__).debug(
        "Logging configured (root=%s, %s)",
        settings.log_level,
        ", ".join(f"{k}={v}" for k, v in applied.items()),
    )


def _parse_level(raw: str) -> int:
    """Level name to logging constant; unknown names mean INFO."""
    numeric = getattr(logging, raw.upper(), None)
    return numeric if isinstance(numeric, int) else logging.INFO
