"""
FastAPI application entry point for the prayer request service.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from prayer_army.config import get_settings
from prayer_army.errors import (
    BackendError,
    InvalidTransitionError,
    NotFoundError,
    PartialCascadeError,
    PermissionDeniedError,
    PrayerArmyError,
    RecordingStateError,
    ValidationError,
)
from prayer_army.routes import router

logger = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO)

STATUS_CODES = {
    ValidationError: 422,
    PermissionDeniedError: 401,
    NotFoundError: 404,
    InvalidTransitionError: 409,
    RecordingStateError: 409,
    BackendError: 502,
}


def _status_for(exc: PrayerArmyError) -> int:
    for error_type in type(exc).__mro__:
        if error_type in STATUS_CODES:
            return STATUS_CODES[error_type]
    return 500


async def handle_service_error(request: Request, exc: PrayerArmyError) -> JSONResponse:
    status_code = _status_for(exc)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.info("%s %s rejected (%d): %s", request.method, request.url.path, status_code, exc.message)
    content = {"detail": exc.message}
    if isinstance(exc, ValidationError) and exc.field:
        content["field"] = exc.field
    if isinstance(exc, PartialCascadeError):
        content["retryable"] = True
    return JSONResponse(status_code=status_code, content=content)


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title="Prayer Army Request Desk", version="0.1.0")
    app.add_exception_handler(PrayerArmyError, handle_service_error)
    app.include_router(router, prefix=settings.api_prefix)
    return app


app = create_app()
