# personalizer/exception_handling.py
from __future__ import annotations

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from .errors import NotFound, ValidationError
from .logging_setup import get_logger

# Keep a separate logger namespace for exceptions
logger = get_logger("personalizer.exceptions")


async def http_exception_handler(request: Request, exc: HTTPException):
    logger.warning(
        "HTTP_EXCEPTION",
        extra={"handled": True, "path": str(request.url.path), "status_code": exc.status_code},
    )
    return JSONResponse({"detail": exc.detail}, status_code=exc.status_code)


async def not_found_handler(request: Request, exc: NotFound):
    logger.info("NOT_FOUND", extra={"handled": True, "path": str(request.url.path), "error": str(exc)})
    return JSONResponse({"detail": str(exc)}, status_code=404)


async def validation_error_handler(request: Request, exc: ValidationError):
    logger.info(
        "VALIDATION_ERROR",
        extra={"handled": True, "path": str(request.url.path), "error": type(exc).__name__},
    )
    return JSONResponse({"detail": str(exc)}, status_code=422)


async def unhandled_exception_handler(request: Request, exc: Exception):
    # Full traceback, logged as unhandled
    logger.exception(
        "UNHANDLED_EXCEPTION",
        extra={"handled": False, "path": str(request.url.path)},
    )
    return JSONResponse({"detail": "Internal Server Error"}, status_code=500)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register all exception handlers in one place.
    Call from personalizer/main.py after creating the FastAPI app.
    """
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(NotFound, not_found_handler)
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
