from __future__ import annotations

import logging
import re
import time
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from ..core.context import request_id_ctx_var

logger = logging.getLogger("filtererp.request")

# Client-supplied ids end up in logs; anything else gets a fresh uuid.
_SAFE_REQUEST_ID = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Correlate logs for one request and record how it ended."""

    def __init__(self, app, header_name: str = "X-Request-ID") -> None:  # type: ignore[override]
        super().__init__(app)
        self.header_name = header_name

    def _request_id(self, request: Request) -> str:
        supplied = request.headers.get(self.header_name) or ""
        return supplied if _SAFE_REQUEST_ID.match(supplied) else uuid4().hex

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = self._request_id(request)
        token = request_id_ctx_var.set(request_id)
        request.state.request_id = request_id
        request.state.principal = None
        started = time.perf_counter()
        try:
            response = await call_next(request)
            elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
            response.headers[self.header_name] = request_id
            self._log(request, response.status_code, elapsed_ms)
        finally:
            request_id_ctx_var.reset(token)
        return response

    def _log(self, request: Request, status_code: int, elapsed_ms: float) -> None:
        data = {
            "method": request.method,
            "path": request.url.path,
            "status": status_code,
            "duration_ms": elapsed_ms,
        }
        principal = getattr(request.state, "principal", None)
        if principal:
            data["principal"] = principal
        if status_code >= 500:
            level = logging.ERROR
        elif status_code >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO
        logger.log(level, "request.completed", extra={"extra_data": data})
