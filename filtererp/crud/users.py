"""User lookups for the identity layer."""

from __future__ import annotations

from uuid import uuid4

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..core.security import SessionContext, hash_password, verify_password
from ..models.user import User
from ..services.clock import utcnow_iso


def get_user(db: Session, user_id: str) -> User | None:
    return db.get(User, user_id)


def get_user_by_email(db: Session, email: str) -> User | None:
    cleaned = (email or "").strip().lower()
    if not cleaned:
        return None
    stmt = select(User).where(func.lower(User.email) == cleaned)
    return db.execute(stmt).scalars().first()


def create_user(db: Session, payload: dict) -> User:
    email = (payload.get("email") or "").strip().lower()
    if not email:
        raise ValueError("email is required")
    if get_user_by_email(db, email):
        raise ValueError("email is already registered")
    password = payload.get("password") or ""
    user = User(
        id=payload.get("id") or str(uuid4()),
        email=email,
        display_name=(payload.get("display_name") or "").strip() or None,
        role=payload.get("role") or None,
        password_hash=hash_password(password) if password else None,
        created_at=utcnow_iso(),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def authenticate(db: Session, email: str, password: str) -> User | None:
    user = get_user_by_email(db, email)
    if not user or not verify_password(password, user.password_hash):
        return None
    return user


def session_for(user: User) -> SessionContext:
    return SessionContext(user_id=user.id, display_name=user.label)
