"""Exception handlers mapping failures onto the {success: false, error} envelope."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from social_downloader.api.schemas import ErrorResponse
from social_downloader.jobs.errors import DownloadNotFoundError

logger = logging.getLogger(__name__)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message).model_dump(by_alias=True),
    )


def describe_validation_errors(exc: RequestValidationError) -> str:
    """Flatten pydantic errors into 'field: message; ...'."""
    parts = []
    for err in exc.errors():
        field = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        msg = err.get("msg", "invalid")
        parts.append(f"{field}: {msg}" if field else msg)
    return "Invalid download request: " + "; ".join(parts)


async def validation_error_handler(request: Request, exc: RequestValidationError):
    return _error(400, describe_validation_errors(exc))


async def not_found_handler(request: Request, exc: DownloadNotFoundError):
    return _error(404, "Download not found")


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return _error(exc.status_code, str(exc.detail))


async def server_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error(500, "Server error")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(DownloadNotFoundError, not_found_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, server_error_handler)
