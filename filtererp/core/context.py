"""Per-request values that the log formatter and the auth layer share."""

from __future__ import annotations

from contextvars import ContextVar

from starlette.requests import Request

request_id_ctx_var: ContextVar[str | None] = ContextVar("request_id", default=None)
principal_ctx_var: ContextVar[str | None] = ContextVar("principal_id", default=None)


def bind_principal(request: Request, principal: str) -> None:
    """Record who is acting for both the log context and the request state.

    Sync dependencies run in a copied context, so the request middleware reads
    the principal back from ``request.state`` when it logs the outcome.
    """

    principal_ctx_var.set(principal)
    request.state.principal = principal
