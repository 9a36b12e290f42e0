"""Map dispatch errors onto HTTP responses."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from gridmind.errors import DispatchError

logger = logging.getLogger("gridmind.server.errors")


async def dispatch_error_handler(request: Request, exc: DispatchError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s -> %s: %s", request.method, request.url.path, type(exc).__name__, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = [
        f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={
            "error": "; ".join(problems) or "Invalid request",
            "type": "ValidationError",
            "retryable": False,
        },
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "type": type(exc).__name__, "retryable": False},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DispatchError, dispatch_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
