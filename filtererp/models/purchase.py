"""Purchase orders sent to suppliers for raw materials."""

from __future__ import annotations

from sqlalchemy import Column, Float, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship

from ..core.statuses import PURCHASE_DRAFT
from ..db.session import Base


class Purchase(Base):
    __tablename__ = "purchases"
    __allow_unmapped__ = True

    id = Column(Text, primary_key=True)
    supplier_id = Column(Integer, nullable=False, index=True)
    supplier_name = Column(Text, nullable=False)
    purchaser = Column(Text, nullable=True)
    purchase_date = Column(Text, nullable=False)
    expected_delivery_date = Column(Text, nullable=True)
    total_amount = Column(Float, nullable=False, default=0.0)
    status = Column(Text, nullable=False, default=PURCHASE_DRAFT, index=True)
    notes = Column(Text, nullable=True)
    created_at = Column(Text, nullable=False)
    updated_at = Column(Text, nullable=False)

    items = relationship(
        "PurchaseItem",
        back_populates="purchase",
        cascade="all, delete-orphan",
        order_by="PurchaseItem.id",
    )


class PurchaseItem(Base):
    __tablename__ = "purchase_items"

    id = Column(Integer, primary_key=True, index=True)
    purchase_id = Column(Text, ForeignKey("purchases.id"), nullable=False, index=True)
    material_id = Column(Integer, ForeignKey("materials.id"), nullable=False, index=True)
    material_name = Column(Text, nullable=False)
    quantity = Column(Integer, nullable=False)
    price = Column(Float, nullable=False, default=0.0)
    total = Column(Float, nullable=False, default=0.0)
    status = Column(Text, nullable=False, default=PURCHASE_DRAFT)

    purchase = relationship("Purchase", back_populates="items")


__all__ = ["Purchase", "PurchaseItem"]
