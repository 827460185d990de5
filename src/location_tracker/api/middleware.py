"""Custom middleware for API request/response processing."""

from typing import Callable

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from ..core.errors import RegistryInternalError, ReportValidationError
from ..utils.logging_config import get_logger, log_exception

logger = get_logger('middleware')


class ErrorEnvelopeMiddleware(BaseHTTPMiddleware):
    """Convert registry exceptions into the API's JSON error envelopes.

    Validation failures become ``400 {"message"}``; everything else becomes
    ``500 {"message", "error"}`` so no exception escapes as an unstructured
    response.
    """

    def __init__(self, app: ASGIApp):
        super().__init__(app)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except ReportValidationError as exc:
            logger.warning(f"{request.method} {request.url.path} rejected: {exc.message}")
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content={"message": exc.message},
            )
        except RegistryInternalError as exc:
            log_exception('api', exc, {"method": request.method, "path": request.url.path})
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"message": exc.message, "error": exc.error},
            )
        except Exception as exc:
            log_exception('api', exc, {"method": request.method, "path": request.url.path})
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"message": "Internal server error.", "error": str(exc)},
            )


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """Middleware to enforce request size limits."""

    def __init__(self, app: ASGIApp, max_bytes: int = 16 * 1024):
        super().__init__(app)
        self.max_bytes = max_bytes

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        content_length = request.headers.get("content-length")
        if content_length:
            try:
                length = int(content_length)
            except ValueError:
                return JSONResponse(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    content={"message": "Invalid Content-Length header"},
                )

            if length > self.max_bytes:
                logger.warning(
                    f"Rejected {request.method} {request.url.path}: {length} bytes exceeds {self.max_bytes}"
                )
                return JSONResponse(
                    status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                    content={
                        "message": f"Request size {length} bytes exceeds limit of {self.max_bytes} bytes"
                    },
                )

        return await call_next(request)
