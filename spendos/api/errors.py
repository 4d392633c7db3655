"""
Exception handlers
Every error leaves the API in one envelope:
{statusCode, timestamp, path, method, message, error?, details?}
"""
import logging
from datetime import datetime, timezone
from http import HTTPStatus
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from spendos.api.models.api_models import ErrorResponse
from spendos.services.errors import DomainError

logger = logging.getLogger(__name__)


def _reason(status_code: int) -> Optional[str]:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return None


def error_response(
    request: Request,
    status_code: int,
    message: str,
    error: Optional[str] = None,
    details: Any = None,
    exc: Optional[BaseException] = None
) -> JSONResponse:
    body = ErrorResponse(
        statusCode=status_code,
        timestamp=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        path=request.url.path,
        method=request.method,
        message=message,
        error=error,
        details=details
    )

    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} - {status_code}", exc_info=exc)
    else:
        logger.warning(f"{request.method} {request.url.path} - {status_code}: {message}")

    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(body.model_dump(exclude_none=True))
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    detail = exc.detail
    if isinstance(detail, dict):
        return error_response(
            request,
            exc.status_code,
            str(detail.get("message") or "An error occurred"),
            detail.get("error") or _reason(exc.status_code),
            detail.get("details")
        )
    return error_response(request, exc.status_code, str(detail), _reason(exc.status_code))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {
            "field": ".".join(str(part) for part in error["loc"] if part != "body"),
            "message": error["msg"],
        }
        for error in exc.errors()
    ]
    return error_response(request, 400, "Validation failed", "Bad Request", details)


async def domain_exception_handler(request: Request, exc: DomainError) -> JSONResponse:
    return error_response(request, exc.status_code, exc.message, exc.error)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    return error_response(request, 500, "Internal server error", "Internal Server Error", exc=exc)


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(DomainError, domain_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
