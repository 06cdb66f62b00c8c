"""
Error envelope handlers.

Every error response has the body
``{"success": false, "kind": ..., "message": ..., "details": {...}}``.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.exceptions import DomainException

logger = logging.getLogger(__name__)


def _kind_from_status(status_code: int) -> str:
    mapping = {
        400: "ValidationError",
        401: "UnauthorizedError",
        403: "ForbiddenError",
        404: "NotFoundError",
        405: "MethodNotAllowed",
        409: "ConflictError",
    }
    return mapping.get(status_code, "ServiceException" if status_code >= 500 else "Error")


def _envelope(kind: str, message: str, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    return {"success": False, "kind": kind, "message": message, "details": details or {}}


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(DomainException)
    async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
        if exc.http_status >= 500:
            logger.error(
                "%s on %s %s: %s", exc.kind, request.method, request.url.path, exc.message
            )
        return JSONResponse(status_code=exc.http_status, content=jsonable_encoder(exc.to_payload()))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = [
            {"field": ".".join(str(part) for part in error.get("loc", ())[1:]), "message": error.get("msg")}
            for error in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content=jsonable_encoder(
                _envelope("ValidationError", "Request validation failed", {"errors": errors})
            ),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        return JSONResponse(
            status_code=exc.status_code,
            content=_envelope(_kind_from_status(exc.status_code), message),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content=_envelope("ServiceException", "An unexpected error occurred"),
        )
