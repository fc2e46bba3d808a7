"""
Error rendering. Every failure leaves the API as {"error": ..., "details": ...}.
"""

import logging
from typing import Any, Optional

from fastapi import HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.config import settings

logger = logging.getLogger(__name__)


def api_error(status_code: int, error: str, details: Optional[Any] = None, **extra: Any) -> HTTPException:
    """Build an HTTPException whose detail carries the error body."""
    body = {"error": error}
    if details is not None:
        body["details"] = details
    body.update(extra)
    return HTTPException(status_code=status_code, detail=body)


def error_body(detail: Any) -> dict:
    if isinstance(detail, dict) and "error" in detail:
        return detail
    return {"error": detail}


async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.detail),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request body", "details": jsonable_encoder(exc.errors())},
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception: %s", exc)
    if settings.is_production:
        return JSONResponse(status_code=500, content={"error": "Internal server error"})
    return JSONResponse(status_code=500, content={"error": "Internal server error", "details": str(exc)})
