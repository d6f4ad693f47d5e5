from __future__ import annotations

from .request_id import RequestIdMiddleware
from .security_headers import DEFAULT_SECURITY_HEADERS, SecurityHeadersMiddleware

__all__ = ["DEFAULT_SECURITY_HEADERS", "RequestIdMiddleware", "SecurityHeadersMiddleware"]
