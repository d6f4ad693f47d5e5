from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.exceptions import Unauthenticated
from ..core.security import decode_token, issue_token_pair
from ..crud.users import authenticate, get_user
from ..db.session import get_db
from ..schemas.auth import RefreshRequest, TokenRequest, TokenResponse

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


@router.post("/token", response_model=TokenResponse, summary="Exchange email and password for JWTs")
def exchange_token(payload: TokenRequest, db: Session = Depends(get_db)):
    user = authenticate(db, payload.email, payload.password)
    if user is None:
        raise Unauthenticated("invalid_credentials")
    pair = issue_token_pair(subject=user.id)
    return TokenResponse(**pair.model_dump())


@router.post("/refresh", response_model=TokenResponse, summary="Refresh access token")
def refresh_token(payload: RefreshRequest, db: Session = Depends(get_db)):
    try:
        claims = decode_token(payload.refresh_token, verify_type="refresh")
    except ValueError as exc:
        raise Unauthenticated("invalid_token") from exc
    if get_user(db, claims.sub) is None:
        raise Unauthenticated("unknown_user")
    pair = issue_token_pair(subject=claims.sub)
    return TokenResponse(**pair.model_dump())
