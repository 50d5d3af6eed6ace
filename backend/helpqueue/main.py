"""Help Queue API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map HelpQueueError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database and QueueCore initialized on startup via lifespan context manager;
      freeze timers are reconciled before the first request is served

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - The QueueCore lives on app.state so tests can install their own
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from helpqueue.api.error_handlers import register_error_handlers
from helpqueue.api.routes import health, metrics, questions, queue_meta
from helpqueue.config import get_settings
from helpqueue.infrastructure.database import init_db
from helpqueue.infrastructure.observability import setup_logging
from helpqueue.services.queue_core import QueueCore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    db_manager = init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    core = QueueCore.build(
        db_manager,
        active_timeout=settings.active_timeout_seconds,
        bucket_minutes=settings.wait_time_bucket_minutes,
    )
    await core.start(reconcile=settings.reconcile_on_startup)
    app.state.core = core
    logger.info("Help Queue API started")
    yield
    logger.info("Help Queue API shutting down")
    await core.stop()
    await db_manager.dispose()


app = FastAPI(title="Help Queue API", version="1.0.0", lifespan=lifespan)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

app.include_router(health.router)
app.include_router(questions.router)
app.include_router(metrics.router)
app.include_router(queue_meta.router)
