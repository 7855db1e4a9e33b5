"""possync - Patient to POS customer sync service."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from src.clients.patient_store import close_patient_store_service
from src.clients.pos import close_pos_service
from src.exceptions import (
    ConfigurationError,
    NotFoundError,
    PosSyncError,
    RemoteApiError,
    StoreError,
    TransportError,
)
from src.routers import health, sync_routes

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan management."""
    yield
    await close_pos_service()
    await close_patient_store_service()


app = FastAPI(
    title="possync",
    description="Mirrors clinic patients into the POS customer directory and reconciles the two",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(NotFoundError)
async def handle_not_found(request: Request, exc: NotFoundError) -> JSONResponse:
    """Handle missing local records."""
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"detail": str(exc)},
    )


@app.exception_handler(ConfigurationError)
async def handle_configuration_error(
    request: Request, exc: ConfigurationError
) -> JSONResponse:
    """Handle missing credentials or configuration."""
    logger.error("Configuration error: %s", exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Service is not configured"},
    )


@app.exception_handler(RemoteApiError)
async def handle_remote_api_error(
    request: Request, exc: RemoteApiError
) -> JSONResponse:
    """Handle error responses from the POS API."""
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"detail": f"POS API error: {exc.status_code}", "body": exc.body},
    )


@app.exception_handler(StoreError)
async def handle_store_error(request: Request, exc: StoreError) -> JSONResponse:
    """Handle error responses from the patient store."""
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"detail": f"Patient store error: {exc.status_code}"},
    )


@app.exception_handler(TransportError)
async def handle_transport_error(
    request: Request, exc: TransportError
) -> JSONResponse:
    """Handle network/connection errors."""
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Service temporarily unavailable"},
    )


@app.exception_handler(PosSyncError)
async def handle_pos_sync_error(request: Request, exc: PosSyncError) -> JSONResponse:
    """Handle any other sync error."""
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": str(exc)},
    )


@app.exception_handler(ValidationError)
async def handle_validation_error(
    request: Request, exc: ValidationError
) -> JSONResponse:
    """Handle Pydantic ValidationError and return 422."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": exc.errors()},
    )


@app.exception_handler(Exception)
async def handle_unhandled_exceptions(request: Request, exc: Exception) -> JSONResponse:
    """Catch and log all unhandled exceptions."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


# Register routers
app.include_router(health.router)
app.include_router(sync_routes.router)


@app.get("/")
def root() -> dict[str, str]:
    """Root endpoint."""
    return {"service": "possync", "version": "0.1.0"}
