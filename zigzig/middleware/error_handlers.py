"""
Exception handlers and request middleware for the matching API
"""
import time
import traceback
import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from zigzig.utils.exceptions import ZigZigBaseException, map_to_http_exception
from zigzig.utils.logging_config import get_logger, request_id_var

logger = get_logger(__name__)


def _request_id(request: Request) -> str:
    request_id = getattr(request.state, "request_id", None)
    if not request_id:
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request.state.request_id = request_id
        request_id_var.set(request_id)
    return request_id


def error_response(request_id: str, status_code: int, error: str,
                   error_code: Optional[str] = None, details: Optional[Dict[str, Any]] = None) -> JSONResponse:
    """Create standardized error response"""
    content = {
        "success": False,
        "error": error,
        "error_code": error_code or f"HTTP_{status_code}",
        "request_id": request_id,
        "timestamp": datetime.utcnow().isoformat(),
    }
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content, headers={"X-Request-ID": request_id})


async def handle_service_exception(request: Request, exc: ZigZigBaseException) -> JSONResponse:
    request_id = _request_id(request)
    http_exc = map_to_http_exception(exc)
    log = logger.error if http_exc.status_code >= 500 else logger.warning
    log(
        f"{exc.__class__.__name__} in {request.method} {request.url.path}: {exc.message}",
        extra={"request_id": request_id, "error_code": exc.error_code, "details": exc.details},
    )
    return error_response(request_id, http_exc.status_code, exc.message, exc.error_code, exc.details or None)


async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    request_id = _request_id(request)
    logger.warning(
        f"HTTP exception in {request.method} {request.url.path}: {exc.detail}",
        extra={"request_id": request_id, "status_code": exc.status_code},
    )
    detail = exc.detail
    if isinstance(detail, dict):
        return error_response(request_id, exc.status_code, str(detail.get("error", detail)),
                              detail.get("error_code"), detail.get("details"))
    return error_response(request_id, exc.status_code, str(detail))


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    request_id = _request_id(request)
    logger.warning(
        f"Validation error in {request.method} {request.url.path}: {exc.errors()}",
        extra={"request_id": request_id},
    )
    errors = [
        {"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")}
        for e in exc.errors()
    ]
    return error_response(request_id, 400, "Invalid request body", "VALIDATION_ERROR",
                          {"validation_errors": errors})


def register_exception_handlers(app: FastAPI):
    """Render every error as {success: false, error, error_code, request_id, timestamp}"""
    app.add_exception_handler(ZigZigBaseException, handle_service_exception)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(HTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_validation_error)


class ExceptionHandlerMiddleware(BaseHTTPMiddleware):
    """Assigns request ids and turns anything unhandled into a 500 error body"""

    async def dispatch(self, request: Request, call_next):
        request_id = _request_id(request)

        logger.info(
            f"Request started: {request.method} {request.url.path}",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "client_ip": request.client.host if request.client else "unknown"
            }
        )

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                f"Unhandled exception in {request.method} {request.url.path}: {str(exc)}",
                extra={
                    "request_id": request_id,
                    "exception_type": exc.__class__.__name__,
                    "traceback": traceback.format_exc(),
                },
                exc_info=True
            )
            # internal details stay in the logs
            return error_response(request_id, 500, "Internal server error", "INTERNAL_ERROR")

        logger.info(
            f"Request completed: {request.method} {request.url.path} - {response.status_code}",
            extra={"request_id": request_id, "status_code": response.status_code}
        )
        response.headers["X-Request-ID"] = request_id
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Debug-level request details and info-level response timing"""

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        request_id = _request_id(request)

        logger.debug(
            f"Request details: {request.method} {request.url}",
            extra={
                "request_id": request_id,
                "query_params": dict(request.query_params),
                "user_id": request.headers.get("x-user-id"),
            }
        )

        response = await call_next(request)
        processing_time = time.time() - start_time
        logger.info(
            f"Response: {request.method} {request.url.path} - {response.status_code} in {processing_time:.3f}s",
            extra={"request_id": request_id, "status_code": response.status_code, "processing_time": processing_time}
        )
        return response


class PerformanceMiddleware(BaseHTTPMiddleware):
    """Flags slow requests; match computation over many portfolios is the usual culprit"""

    def __init__(self, app, slow_request_threshold: float = 10.0):
        super().__init__(app)
        self.slow_request_threshold = slow_request_threshold

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        processing_time = time.time() - start_time

        if processing_time > self.slow_request_threshold:
            logger.warning(
                f"Slow request detected: {request.method} {request.url.path} took {processing_time:.3f}s",
                extra={
                    "request_id": _request_id(request),
                    "processing_time": processing_time,
                    "threshold": self.slow_request_threshold,
                }
            )

        response.headers["X-Processing-Time"] = f"{processing_time:.3f}"
        return response
