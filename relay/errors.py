import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger("relay.errors")


class RelayError(Exception):
    """Base for failures that map onto a fixed HTTP status and a generic message."""

    status_code = 500
    message = "Internal relay error"

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class ValidationError(RelayError):
    status_code = 400
    message = "No URL provided"


class UnsupportedTypeError(RelayError):
    status_code = 415
    message = "Unsupported media type"

    def __init__(self, content_type: str | None = None, message: str | None = None):
        self.content_type = content_type
        super().__init__(message)


class UpstreamError(RelayError):
    status_code = 500
    message = "Failed to proxy content"


class SegmentUpstreamError(UpstreamError):
    message = "Failed to proxy video segment"


async def relay_error_handler(request: Request, exc: RelayError) -> JSONResponse:
    logger.debug("%s %s -> %s (%s)", request.method, request.url.path, exc.status_code, type(exc).__name__)
    return JSONResponse({"error": exc.message}, status_code=exc.status_code)


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RelayError, relay_error_handler)
