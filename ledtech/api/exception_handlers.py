"""
FastAPI exception handlers translating trust-core errors into responses
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ledtech.api.metrics import track_denial
from ledtech.security.errors import InternalError, SecurityError

logger = logging.getLogger(__name__)


async def security_error_handler(request: Request, exc: SecurityError) -> JSONResponse:
    """Render a SecurityError with its status code; internal detail stays in the log"""
    track_denial(exc.status_code)

    if isinstance(exc, InternalError):
        logger.error(f"Internal error on {request.url.path}: {exc.message}")
    else:
        logger.info(f"{exc.status_code} on {request.url.path}: {exc.message}")

    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers=exc.headers or None,
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.url.path}", exc_info=exc)
    return await security_error_handler(request, InternalError(str(exc)))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(SecurityError, security_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
