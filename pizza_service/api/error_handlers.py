"""Shared FastAPI exception handlers."""
from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.status import HTTP_500_INTERNAL_SERVER_ERROR

from pizza_service.core.exceptions import DomainError


def register_exception_handlers(app: FastAPI) -> None:
    """Attach global exception handlers to the FastAPI app."""

    logger = logging.getLogger("pizza_service")

    @app.exception_handler(DomainError)
    async def handle_domain_error(request: Request, exc: DomainError) -> JSONResponse:
        payload: dict[str, Any] = {"detail": exc.detail, "error": exc.error_code}
        if exc.extra:
            payload["meta"] = exc.extra
        if exc.status_code >= 500:
            logger.error(
                "Request failed (%s %s): %s",
                request.method,
                request.url.path,
                exc.detail,
                exc_info=exc.__cause__ or exc,
            )
        else:
            logger.warning(
                "Request failed (%s %s): %s",
                request.method,
                request.url.path,
                exc.detail,
            )
        return JSONResponse(status_code=exc.status_code, content=payload)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"},
        )
