"""Application factory for the FastAPI service."""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import PROJECT_ROOT, Settings, get_settings
from .routers.filters import router as filters_router
from .routers.webhook import router as webhook_router
from .schemas.cleaning import CleanerOptions
from .services.filter_manager import FilterManager
from .services.filter_sweeper import FilterSweeper
from .services.moderation_pipeline import ModerationPipeline
from .services.spam_cleaner import SpamCleaner
from .services.template_replacer import TemplateReplacer

_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


def _configure_logging() -> None:
    """Configure logging based on LOG_LEVEL / LOG_FILE environment variables."""
    # Load .env file first to ensure LOG_FILE is available
    load_dotenv()

    log_level_str = os.getenv("LOG_LEVEL", "INFO").upper()
    log_level = getattr(logging, log_level_str, logging.INFO)

    handlers: list[logging.Handler] = []

    log_file = os.getenv("LOG_FILE")
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(_LOG_FORMAT, datefmt=_LOG_DATEFMT))
        handlers.append(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(logging.Formatter(_LOG_FORMAT, datefmt=_LOG_DATEFMT))
    handlers.append(console_handler)

    logging.basicConfig(level=log_level, handlers=handlers, force=True)

    logging.getLogger("voicegate").setLevel(log_level)
    logging.getLogger("uvicorn").setLevel(log_level)
    logging.getLogger("uvicorn.access").setLevel(log_level)
    logging.getLogger("uvicorn.error").setLevel(log_level)


def _resolve_under(base: Path, p: Path) -> Path:
    # Allow absolute paths as-is (useful for tests and external mounts).
    if p.is_absolute():
        return p.resolve()
    resolved = (base / p).resolve()
    if not resolved.is_relative_to(base):
        raise ValueError(f"Configured path {resolved} escapes project root {base}")
    return resolved


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    # Configure logging first thing
    _configure_logging()

    settings = settings or get_settings()

    filters_path = _resolve_under(PROJECT_ROOT, settings.filters_path)
    filter_manager = FilterManager(filters_path)
    filter_sweeper = FilterSweeper(
        filter_manager, interval_seconds=settings.filter_sweep_interval_seconds
    )

    replacer = TemplateReplacer(remove_backslashes=settings.remove_backslashes)
    cleaner = SpamCleaner(
        CleanerOptions(
            min_repetitions=settings.cleaner_min_repetitions,
            max_length=settings.cleaner_max_length,
            case_sensitive=settings.cleaner_case_sensitive,
        )
    )
    pipeline = ModerationPipeline(
        replacer,
        cleaner,
        filter_manager,
        template=settings.speech_template,
        ignored_event_names=settings.ignored_event_names,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        filter_manager.ensure_filter(settings.default_filter_id)
        if settings.default_deny_items:
            filter_manager.add_to_deny_list(
                settings.default_filter_id, settings.default_deny_items
            )
        filter_sweeper.start()
        try:
            yield
        finally:
            await filter_sweeper.stop()

    app = FastAPI(
        title="voicegate",
        version="0.1.0",
        description="Moderation gate between live-stream chat events and speech.",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.filter_manager = filter_manager
    app.state.filter_sweeper = filter_sweeper
    app.state.moderation_pipeline = pipeline

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(webhook_router)
    app.include_router(filters_router)

    @app.get("/health", tags=["health"])
    async def healthcheck() -> dict[str, object]:
        stats = filter_manager.get_stats()
        return {
            "status": "ok",
            "active_filters": stats.active_filters,
            "sweeper_running": filter_sweeper.is_running,
        }

    return app


__all__ = ["create_app"]
