import logging
import time

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from schemas.common import ErrorDetail, ErrorResponse
from services.errors import DomainError

logger = logging.getLogger(__name__)

HTTP_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
}


def _latency(request: Request) -> int:
    started = getattr(request.state, "started_at", None)
    return int((time.perf_counter() - started) * 1000) if started else 0


def error_response(request: Request, status_code: int, code: str, message: str, headers=None) -> JSONResponse:
    body = ErrorResponse(
        error=ErrorDetail(code=code, message=message),
        latency_ms=_latency(request),
        trace_id=request.headers.get("X-Request-ID"),
    )
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body), headers=headers)


def add_error_handlers(app: FastAPI):
    @app.exception_handler(DomainError)
    async def domain_error_handler(request: Request, exc: DomainError):
        return error_response(request, exc.status_code, exc.code, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        code = HTTP_CODES.get(exc.status_code, "HTTP_ERROR")
        return error_response(request, exc.status_code, code, str(exc.detail), headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        first = exc.errors()[0] if exc.errors() else {}
        location = ".".join(str(part) for part in first.get("loc", ()))
        message = f"{location}: {first.get('msg', 'invalid input')}" if location else "Invalid input"
        return error_response(request, 422, "VALIDATION_ERROR", message)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"unhandled error on {request.method} {request.url.path}")
        return error_response(request, 500, "INTERNAL_ERROR", "Internal server error")
