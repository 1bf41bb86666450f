"""keyrelay API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map KeyRelayError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database, preference store, gateway and operations initialized on startup
      via lifespan, in that order (the gateway reads preferences)
    - Shutdown closes cached Anthropic clients, then disposes the engine

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - create_tables on startup: SQLite dev databases work without running alembic
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from keyrelay.api.error_handlers import register_error_handlers
from keyrelay.api.routes import health, inference, preferences
from keyrelay.config import get_settings
from keyrelay.infrastructure.anthropic_client import init_operations
from keyrelay.infrastructure.database import init_db
from keyrelay.infrastructure.observability import setup_logging
from keyrelay.infrastructure.preference_store import init_preference_store
from keyrelay.services.inference_gateway import init_gateway

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    manager = init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    await manager.create_tables()
    store = init_preference_store(manager)
    init_gateway(settings, store)
    ops = init_operations(settings)
    logger.info("keyrelay API started")
    yield
    await ops.aclose()
    await manager.dispose()
    logger.info("keyrelay API shutting down")


app = FastAPI(title="keyrelay API", version="1.0.0", lifespan=lifespan)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(inference.router)
app.include_router(preferences.router)

register_error_handlers(app)
