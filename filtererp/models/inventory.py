"""The stock ledger: one immutable row per stock increase or decrease."""

from __future__ import annotations

from sqlalchemy import CheckConstraint, Column, ForeignKey, Index, Integer, Text, event
from sqlalchemy.orm import relationship

from ..core.statuses import MOVEMENT_IN
from ..db.session import Base


class LedgerImmutableError(RuntimeError):
    """Raised when code tries to edit or delete a recorded movement."""


class StockMovement(Base):
    """A single ``in`` or ``out`` against a product or material.

    ``quantity`` is always positive; ``kind`` carries the sign. Adjustments
    are recorded as ordinary movements whose note starts with ``[adjust]``.
    """

    __tablename__ = "stock_movements"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_stock_movements_quantity_positive"),
        CheckConstraint("kind IN ('in', 'out')", name="ck_stock_movements_kind"),
        CheckConstraint("item_type IN ('product', 'material')", name="ck_stock_movements_item_type"),
        Index("ix_stock_movements_item", "item_type", "item_id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    item_type = Column(Text, nullable=False)
    item_id = Column(Integer, nullable=False)
    kind = Column(Text, nullable=False)
    quantity = Column(Integer, nullable=False)
    user_id = Column(Text, ForeignKey("users.id"), nullable=False, index=True)
    note = Column(Text, nullable=True)
    created_at = Column(Text, nullable=False)

    user = relationship("User", lazy="joined")

    @property
    def signed_quantity(self) -> int:
        return self.quantity if self.kind == MOVEMENT_IN else -self.quantity

    @property
    def user_display_name(self) -> str:
        return self.user.label if self.user else self.user_id


def _reject_update(mapper, connection, target) -> None:
    raise LedgerImmutableError(f"stock movement {target.id} is immutable")


def _reject_delete(mapper, connection, target) -> None:
    raise LedgerImmutableError(f"stock movement {target.id} cannot be deleted")


event.listen(StockMovement, "before_update", _reject_update)
event.listen(StockMovement, "before_delete", _reject_delete)


__all__ = ["LedgerImmutableError", "StockMovement"]
