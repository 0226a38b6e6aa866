# identity_api/main.py (async version)

import logging
import asyncio
from fastapi import FastAPI
from fastapi.responses import RedirectResponse
from contextlib import asynccontextmanager

from identity_api.adapters.configuration.config import settings
from identity_api.adapters.outbound.persistence.database import create_all

# ─── UNIQUE LOGGING CONFIGURATION ─────────────────────────────────────────────────
level = logging.DEBUG if settings.DEBUG else getattr(logging, settings.LOG_LEVEL, logging.INFO)
logging.basicConfig(
    level=level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)


# ────────────────────────────────────────────────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Async context manager to handle startup and shutdown events.
    """
    from identity_api.adapters.inbound.api.deps import close_identity_service
    from identity_api.adapters.inbound.worker.task_worker import TaskWorker
    from identity_api.adapters.outbound.cache.redis_client import redis_manager

    # Startup
    logger.info("Application starting up...")

    # Create database tables if they don't exist
    await create_all()
    await redis_manager.connect()

    # Start background tasks
    app.state.task_worker = asyncio.create_task(TaskWorker().run_forever())

    yield

    # Shutdown
    logger.info("Application shutting down...")
    app.state.task_worker.cancel()
    try:
        await app.state.task_worker
    except asyncio.CancelledError:
        pass
    await close_identity_service()
    await redis_manager.disconnect()


# Create FastAPI instance
app = FastAPI(
    title="Identity Clients",
    description="OAuth2 client and consent management",
    version="1.0.0",
    debug=settings.DEBUG,
    lifespan=lifespan,
)

# Middlewares
from identity_api.shared.middleware import (
    AsyncExceptionMiddleware,
    AsyncRequestLoggingMiddleware,
)

app.add_middleware(AsyncRequestLoggingMiddleware)
app.add_middleware(AsyncExceptionMiddleware)

# Routers
from identity_api.adapters.inbound.api.v1.router import api_router as api_v1_router

app.include_router(api_v1_router, prefix="/api/2.0")


@app.get("/", include_in_schema=False)
async def redirect_to_docs():
    return RedirectResponse(url="/docs")


@app.get("/health", tags=["Health"])
async def health():
    return {"status": "UP"}
