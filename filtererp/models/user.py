"""SQLAlchemy model for the people who act on stock and documents."""

from __future__ import annotations

from sqlalchemy import Column, Text

from ..db.session import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Text, primary_key=True)
    email = Column(Text, nullable=False, unique=True, index=True)
    display_name = Column(Text, nullable=True)
    role = Column(Text, nullable=True)
    password_hash = Column(Text, nullable=True)
    created_at = Column(Text, nullable=False)

    @property
    def label(self) -> str:
        """Name shown next to ledger rows; falls back to the email address."""

        return (self.display_name or "").strip() or self.email or self.id


__all__ = ["User"]
