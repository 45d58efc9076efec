"""Middleware — CORS, request logging, error handling."""

from __future__ import annotations

import time
from typing import Callable

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from affect_score.config import get_settings
from affect_score.errors import AffectScoreError

logger = structlog.get_logger(__name__)


def add_cors(app: FastAPI) -> None:
    """Configure CORS from ``settings.cors_origins`` (comma-separated or ``*``)."""
    origins_raw = get_settings().cors_origins.strip()
    if origins_raw == "*":
        origins = ["*"]
    else:
        origins = [o.strip() for o in origins_raw.split(",") if o.strip()]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log request method, path, status, and duration."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start = time.monotonic()
        response = await call_next(request)
        duration_ms = round((time.monotonic() - start) * 1000, 1)

        # sample ingestion runs at sensor rate; keep it out of the info log
        log = logger.debug if request.url.path in ("/health", "/samples") else logger.info
        log(
            "http.request",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_ms=duration_ms,
        )
        return response


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Map pipeline errors to 4xx and anything unexpected to a clean 500."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except AffectScoreError as exc:
            logger.warning("http.pipeline_error", path=request.url.path, code=exc.code)
            return JSONResponse(
                status_code=422,
                content={"detail": exc.message, "code": exc.code},
            )
        except Exception as exc:
            logger.exception("http.unhandled_error", path=request.url.path, error=str(exc))
            return JSONResponse(
                status_code=500,
                content={"detail": "Internal server error."},
            )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """422 without echoing the rejected input (NaN / Infinity are not valid JSON)."""
    errors = [{k: v for k, v in err.items() if k != "input"} for err in exc.errors()]
    logger.debug("http.validation_error", path=request.url.path, errors=len(errors))
    return JSONResponse(status_code=422, content={"detail": jsonable_encoder(errors)})


def setup_middleware(app: FastAPI) -> None:
    """Wire middleware; added innermost first since Starlette reverses the stack."""
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    add_cors(app)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(ErrorHandlerMiddleware)
