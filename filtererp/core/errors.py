from __future__ import annotations

import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status
from starlette.exceptions import HTTPException as StarletteHTTPException

from .exceptions import ErpError, MutationFailed

logger = logging.getLogger("filtererp.errors")


class ErrorEnvelope(JSONResponse):
    def __init__(
        self,
        *,
        status_code: int,
        code: str,
        message: str,
        details: Any | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        payload: dict[str, Any] = {"code": code, "message": message}
        if details is not None:
            payload["details"] = details
        super().__init__(payload, status_code=status_code, headers=headers)


async def erp_error_handler(request: Request, exc: ErpError):
    extra = {"extra_data": {"kind": exc.kind, "path": request.url.path, **exc.params}}
    if isinstance(exc, MutationFailed):
        logger.error("erp.mutation_failed", extra=extra)
    else:
        logger.info("erp.rejected", extra=extra)
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == status.HTTP_401_UNAUTHORIZED else None
    return ErrorEnvelope(
        status_code=exc.status_code,
        code=exc.kind,
        message=exc.message,
        details=exc.params,
        headers=headers,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail
    message = detail if isinstance(detail, str) else "Error"
    details = detail if isinstance(detail, dict) else None
    return ErrorEnvelope(
        status_code=exc.status_code,
        code="http_error",
        message=message,
        details=details,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return ErrorEnvelope(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        code="validation_error",
        message="Validation failed",
        details={"errors": jsonable_errors(exc.errors())},
    )


def jsonable_errors(errors: Any) -> list[dict[str, Any]]:
    """Drop the non-serializable ``ctx``/``input`` parts pydantic attaches."""

    cleaned: list[dict[str, Any]] = []
    for error in errors or []:
        cleaned.append({k: v for k, v in dict(error).items() if k in ("loc", "msg", "type")})
    return cleaned


def register_exception_handlers(app) -> None:
    app.add_exception_handler(ErpError, erp_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
