from __future__ import annotations

from fastapi import Depends, Header, Request
from fastapi.security.utils import get_authorization_scheme_param
from sqlalchemy.orm import Session

from ..core.context import bind_principal
from ..core.exceptions import Unauthenticated
from ..core.security import SessionContext, decode_token
from ..crud.users import get_user, session_for
from ..db.session import get_db


def require_session(
    request: Request,
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db),
) -> SessionContext:
    """Resolve the bearer token into the acting user's session."""

    if not authorization:
        raise Unauthenticated("missing_token")
    scheme, credentials = get_authorization_scheme_param(authorization)
    if scheme.lower() != "bearer" or not credentials:
        raise Unauthenticated("unsupported_scheme")
    try:
        payload = decode_token(credentials, verify_type="access")
    except ValueError as exc:
        raise Unauthenticated("invalid_token") from exc

    user = get_user(db, payload.sub)
    if user is None:
        raise Unauthenticated("unknown_user")
    bind_principal(request, f"user:{user.id}")
    request.state.token_payload = payload
    return session_for(user)
