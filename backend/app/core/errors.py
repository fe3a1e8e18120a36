# app/core/errors.py
# 공통 에러 응답 포맷: {"error": true, "message", "details"?, "timestamp"}
# 라우터는 아래 헬퍼로 HTTPException을 만들어 raise 한다.

from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Optional
import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.core.config import settings

log = logging.getLogger(__name__)


class ApiError(HTTPException):
    """message/details를 분리해서 들고 다니는 HTTPException"""

    def __init__(self, status_code: int, message: str, details: Any = None):
        super().__init__(status_code=status_code, detail=message)
        self.message = message
        self.details = details


def bad_request(message: str = "Invalid request parameters", details: Any = None) -> ApiError:
    return ApiError(400, message, details)

def unauthorized(message: str = "Authentication required", details: Any = None) -> ApiError:
    return ApiError(401, message, details)

def forbidden(message: str = "You do not have permission to access this resource", details: Any = None) -> ApiError:
    return ApiError(403, message, details)

def not_found(message: str = "Resource not found", details: Any = None) -> ApiError:
    return ApiError(404, message, details)

def conflict(message: str = "Request conflicts with current state", details: Any = None) -> ApiError:
    return ApiError(409, message, details)

def server_error(message: str = "Internal server error", details: Any = None) -> ApiError:
    # 운영 환경에서는 내부 상세를 숨긴다
    return ApiError(500, message, details if settings.is_development else None)

def service_unavailable(message: str = "Service temporarily unavailable", details: Any = None) -> ApiError:
    return ApiError(503, message, details)


def error_body(message: str, details: Any = None) -> dict:
    body: dict = {"error": True, "message": message}
    if details is not None:
        body["details"] = details
    body["timestamp"] = datetime.now(timezone.utc).isoformat()
    return body


async def _http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    if isinstance(exc, ApiError):
        message, details = exc.message, exc.details
    else:
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        details = None if isinstance(exc.detail, str) else exc.detail
    if exc.status_code >= 500:
        log.error("Server error: %s %s", message, details)
    if exc.status_code == 404 and message == "Not Found":
        message = f"Route not found: {request.method} {request.url.path}"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(message, details),
        headers=getattr(exc, "headers", None),
    )


async def _validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details: Optional[Any] = exc.errors() if settings.is_development else None
    return JSONResponse(status_code=400, content=error_body("Validation error", details))


async def _unhandled_handler(request: Request, exc: Exception) -> JSONResponse:
    log.exception("Unhandled error on %s %s", request.method, request.url.path)
    details = str(exc) if settings.is_development else None
    return JSONResponse(status_code=500, content=error_body("An unexpected error occurred", details))


def install_error_handlers(app: FastAPI) -> None:
    from starlette.exceptions import HTTPException as StarletteHTTPException

    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_handler)
    app.add_exception_handler(Exception, _unhandled_handler)
