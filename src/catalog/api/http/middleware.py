"""HTTP middleware: security headers and per-request logging."""

import time
import uuid

from fastapi import Request
from fastapi.exceptions import HTTPException, RequestValidationError
from fastapi.encoders import jsonable_encoder
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse, Response

from src.catalog.runtime.context import get_config


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
        if get_config().app.environment == "production":
            response.headers.setdefault(
                "Strict-Transport-Security", "max-age=31536000; includeSubDomains; preload"
            )
        return response


def _client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log one start and one end line per request, tagged with ``request_id``.

    Anything logged while the request is handled (catalog service, cache,
    queue) inherits the request context.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        started = time.perf_counter()

        with logger.contextualize(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            client_ip=_client_ip(request),
        ):
            logger.info("request.start")
            try:
                response = await call_next(request)
            except HTTPException as exc:
                response = self._error(exc, exc.status_code, exc.detail, request_id, started)
            except RequestValidationError as exc:
                detail = jsonable_encoder(exc.errors())
                response = self._error(exc, 422, detail, request_id, started)
            except Exception as exc:
                response = self._error(exc, 500, "Internal Server Error", request_id, started)
            else:
                logger.bind(
                    status_code=response.status_code,
                    duration_ms=_elapsed_ms(started),
                ).info("request.end")

        response.headers.setdefault("X-Request-ID", request_id)
        return response

    @staticmethod
    def _error(exc: Exception, status_code: int, detail, request_id: str, started: float) -> Response:
        logger.bind(
            status_code=status_code,
            duration_ms=_elapsed_ms(started),
            error_type=type(exc).__name__,
        ).exception("request.error")
        return JSONResponse(
            status_code=status_code,
            content={"detail": detail, "request_id": request_id},
        )


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 1)
