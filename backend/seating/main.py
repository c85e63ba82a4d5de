"""
Event Seating API - Main Application Entry Point

Seat inventory and allocation for a 25-table gala dinner:
- Pack reservations with whole-table and adjacent-pair allocation
- Seat-plan selections and admin seat blocking
- Single-writer coordinator committing seats and reservations atomically
- Structured logging with request correlation
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from seating.core.config import get_settings
from seating.core.exceptions import register_exception_handlers
from seating.core.logging import setup_logging, get_logger
from seating.core.metrics import metrics_endpoint
from seating.api.router import api_router
from seating.api.middleware import RequestLoggingMiddleware
from seating.infrastructure.redis_client import RedisClient
from seating.services.reservation_service import ReservationService
from seating.services.store_factory import create_blob_store

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup and shutdown hooks."""
    setup_logging()
    logger = get_logger(__name__)

    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
        storage=settings.STORAGE_BACKEND,
    )

    blob_store = await create_blob_store(settings)
    app.state.reservation_service = ReservationService.from_settings(blob_store, settings)

    yield

    # Cleanup
    await blob_store.close()
    await RedisClient.close()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Seat inventory and allocation API for event reservations",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Custom middleware
app.add_middleware(RequestLoggingMiddleware)

register_exception_handlers(app)

# Routes
app.include_router(api_router)


@app.get("/health", tags=["Health"])
async def health_check(request: Request):
    """Health check endpoint for Docker and load balancers."""
    service = getattr(request.app.state, "reservation_service", None)
    resets = dict(service.reset_counts) if service else {}
    return {
        "status": "healthy" if service else "starting",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "storage": settings.STORAGE_BACKEND,
        "store_resets": resets,
    }


@app.get("/metrics", tags=["Health"])
def metrics():
    return metrics_endpoint()


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }
