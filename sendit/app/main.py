"""
FastAPI Application Entry Point.

This is the main application file for the SendIT parcel delivery backend.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.staticfiles import StaticFiles
from sendit.app.core.config import settings
from sendit.app.api.v1.router import router as api_v1_router
from sendit.app.core import redis_client as redis_client_module
from sendit.app.core.observability import ObservabilityMiddleware, configure_logging, logger
from sendit.app.db.session import engine, Base
from sendit.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)
from sendit.app.services.notification_dispatcher import notification_dispatcher
from sendit.app.services.upload_service import URL_PREFIX

# Import models to ensure they are registered with Base
from sendit.app.models.user import User  # noqa: F401
from sendit.app.models.address import Address, Dimensions  # noqa: F401
from sendit.app.models.parcel import Parcel  # noqa: F401
from sendit.app.models.tracking_history import TrackingHistory  # noqa: F401
from sendit.app.models.delivery_attempt import DeliveryAttempt  # noqa: F401
from sendit.app.models.courier_assignment import CourierAssignment  # noqa: F401
from sendit.app.models.payment import Payment  # noqa: F401
from sendit.app.models.notification import Notification  # noqa: F401
from sendit.app.models.audit_log import AuditLog  # noqa: F401
from sendit.app.models.pickup_point import PickupPoint  # noqa: F401

configure_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    1. Creates database tables on startup.
    2. Runs the notification worker for the life of the process.
    3. Closes the Redis pool on shutdown.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await notification_dispatcher.start()
    logger.info("%s started", settings.app_name)
    yield
    await notification_dispatcher.stop()
    await redis_client_module.close_redis()
    logger.info("%s stopped", settings.app_name)


# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Parcel delivery backend: tracking, courier workflow and notifications",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.

    Redis being down degrades tracking lookups but does not make the
    service unhealthy.
    """
    redis_ok = await redis_client_module.ping_redis()
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
        "redis": "up" if redis_ok else "down",
    }


# Include API v1 router
app.include_router(api_v1_router, prefix=f"/{settings.api_version}")

# Proof-of-delivery photos
app.mount(URL_PREFIX, StaticFiles(directory=settings.upload_dir, check_dir=False), name="uploads")


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": "Welcome to the SendIT API",
        "docs": "/docs",
        "health": "/health",
    }
