"""
Error envelope, exception handlers and request middleware for the Resume Matcher API.

Every error response has the shape
{success: false, timestamp, request_id, status_code, error, message, ...}
and carries an X-Request-ID header.
"""
import time
import traceback
import uuid
from datetime import datetime
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.utils.exceptions import MatcherBaseException, map_to_http_exception
from app.utils.logging_config import get_logger

logger = get_logger(__name__)


def request_id_for(request: Request) -> str:
    """The id assigned by RequestContextMiddleware, or a fresh one outside it."""
    request_id = getattr(request.state, "request_id", None)
    if not request_id:
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
    return request_id


def create_error_response(request_id: str, status_code: int, detail: Any) -> JSONResponse:
    if not isinstance(detail, dict):
        detail = {"message": str(detail)}
    body = {
        "success": False,
        "timestamp": datetime.utcnow().isoformat(),
        "request_id": request_id,
        "status_code": status_code,
        **detail,
    }
    return JSONResponse(status_code=status_code, content=body, headers={"X-Request-ID": request_id})


async def matcher_exception_handler(request: Request, exc: MatcherBaseException) -> JSONResponse:
    request_id = request_id_for(request)
    http_exc = map_to_http_exception(exc)
    log = logger.warning if http_exc.status_code < 500 else logger.error
    log(f"{exc.__class__.__name__} on {request.method} {request.url.path}: {exc.message}",
        extra={"request_id": request_id, "error_code": exc.error_code, "details": exc.details})
    return create_error_response(request_id, http_exc.status_code, http_exc.detail)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    request_id = request_id_for(request)
    errors = [{"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")} for e in exc.errors()]
    logger.warning(f"Rejected {request.method} {request.url.path}: {len(errors)} validation error(s)",
                   extra={"request_id": request_id, "validation_errors": errors})
    return create_error_response(request_id, 422, {
        "error": "Validation failed",
        "message": "Request data validation failed",
        "validation_errors": errors,
    })


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(MatcherBaseException, matcher_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Per-request bookkeeping: assigns the request id, times the request,
    logs slow ones and turns anything unhandled into a 500 envelope.
    """

    def __init__(self, app, slow_request_threshold: float = 2.0):
        super().__init__(app)
        self.slow_request_threshold = slow_request_threshold

    async def dispatch(self, request: Request, call_next):
        request_id = request_id_for(request)
        started = time.perf_counter()
        logger.info(f"{request.method} {request.url.path} started",
                    extra={"request_id": request_id,
                           "client_ip": request.client.host if request.client else "unknown"})

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(f"Unhandled {exc.__class__.__name__} on {request.method} {request.url.path}: {exc}",
                         extra={"request_id": request_id, "traceback": traceback.format_exc()},
                         exc_info=True)
            return create_error_response(request_id, 500, {
                "error": "Internal server error",
                "message": "An unexpected error occurred. Please try again later.",
            })

        elapsed = time.perf_counter() - started
        if elapsed > self.slow_request_threshold:
            logger.warning(f"Slow request: {request.method} {request.url.path} took {elapsed:.3f}s",
                           extra={"request_id": request_id, "processing_time": elapsed})
        else:
            logger.info(f"{request.method} {request.url.path} -> {response.status_code} in {elapsed:.3f}s",
                        extra={"request_id": request_id, "status_code": response.status_code})

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Processing-Time"] = f"{elapsed:.3f}"
        return response
