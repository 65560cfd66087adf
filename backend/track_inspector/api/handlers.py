"""Error-to-response mapping and request limits, registered once on the app.

Every error leaves the API as ``{"message": ...}``; internal detail only goes
to the server log.
"""

import asyncio
import logging

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.datastructures import Headers
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from track_inspector.core.config import settings
from track_inspector.core.exceptions import DomainError

logger = logging.getLogger(__name__)


def _message(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message})


def format_validation_errors(exc: RequestValidationError) -> str:
    """Condense pydantic errors to ``field: reason; field: reason``."""
    parts = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part != "body"]
        field = ".".join(loc) or "body"
        parts.append(f"{field}: {error.get('msg', 'invalid value')}")
    return "; ".join(parts) or "Invalid request"


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.warning(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return _message(exc.status_code, exc.message)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    message = format_validation_errors(exc)
    logger.warning(f"{request.method} {request.url.path} -> 400: {message}")
    return _message(status.HTTP_400_BAD_REQUEST, message)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _message(exc.status_code, str(exc.detail))


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return _message(status.HTTP_500_INTERNAL_SERVER_ERROR, "Server error")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)


class RequestBodyTooLarge(HTTPException):
    """Raised while reading a body that grows past ``MAX_REQUEST_BODY_MB``."""

    def __init__(self) -> None:
        super().__init__(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail="Request body too large")


class RequestLimitMiddleware:
    """ASGI middleware bounding body size and request time.

    It also turns unexpected exceptions into the 500 envelope here, inside
    CORS, so browser clients can read the error.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        method, path = scope.get("method", ""), scope.get("path", "")
        max_body_bytes = settings.MAX_REQUEST_BODY_MB * 1024 * 1024
        content_length = Headers(scope=scope).get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > max_body_bytes:
            logger.warning(f"Rejected {method} {path}: body of {content_length} bytes")
            response = _message(status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, "Request body too large")
            await response(scope, receive, send)
            return

        response_started = False
        received_bytes = 0

        async def receive_wrapper() -> Message:
            nonlocal received_bytes
            message = await receive()
            if message["type"] == "http.request":
                received_bytes += len(message.get("body", b""))
                if received_bytes > max_body_bytes:
                    logger.warning(f"Rejected {method} {path}: streamed body passed {max_body_bytes} bytes")
                    raise RequestBodyTooLarge()
            return message

        async def send_wrapper(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await asyncio.wait_for(
                self.app(scope, receive_wrapper, send_wrapper),
                timeout=settings.REQUEST_TIMEOUT_SECONDS,
            )
        except asyncio.TimeoutError:
            logger.error(f"{method} {path} exceeded {settings.REQUEST_TIMEOUT_SECONDS}s")
            if response_started:
                raise
            await _message(status.HTTP_504_GATEWAY_TIMEOUT, "Request timed out")(scope, receive, send)
        except RequestBodyTooLarge as exc:
            if response_started:
                raise
            await _message(exc.status_code, exc.detail)(scope, receive, send)
        except Exception as exc:
            logger.exception(f"Unhandled error on {method} {path}: {exc}")
            if response_started:
                raise
            await _message(status.HTTP_500_INTERNAL_SERVER_ERROR, "Server error")(scope, receive, send)
