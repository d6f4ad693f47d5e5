"""Finished products and raw materials.

Both tables share one shape: a catalog description plus the current ``stock``
and the ``safety_stock`` threshold. ``stock`` is written only by the movement
applier in ``crud.inventory``.
"""

from __future__ import annotations

from sqlalchemy import CheckConstraint, Column, Integer, Text
from sqlalchemy.orm import declared_attr

from ..core.statuses import ITEM_MATERIAL, ITEM_PRODUCT
from ..db.session import Base

# Category value the business uses for "no category".
NO_CATEGORY = "無"


def format_display_name(category: str | None, efficiency: str | None, name: str | None) -> str:
    """Build the label shown in lists, e.g. ``鐵框 MERV13 24x24x2``.

    Presentation only: category and efficiency stay first-class columns and
    are never parsed back out of this string.
    """

    parts = []
    for value in (category, efficiency):
        cleaned = (value or "").strip()
        if cleaned and cleaned != NO_CATEGORY:
            parts.append(cleaned)
    parts.append((name or "").strip())
    return " ".join(part for part in parts if part)


class InventoryItemMixin:
    item_type: str = ""

    id = Column(Integer, primary_key=True, index=True)
    name = Column(Text, nullable=False)
    category = Column(Text, nullable=True)
    efficiency = Column(Text, nullable=True)
    stock = Column(Integer, nullable=False, default=0)
    safety_stock = Column(Integer, nullable=False, default=0)
    notes = Column(Text, nullable=True)
    image_url = Column(Text, nullable=True)
    created_at = Column(Text, nullable=False)

    @declared_attr
    def __table_args__(cls):
        return (
            CheckConstraint("stock >= 0", name=f"ck_{cls.__tablename__}_stock_non_negative"),
            CheckConstraint("safety_stock >= 0", name=f"ck_{cls.__tablename__}_safety_stock_non_negative"),
        )

    @property
    def is_low_stock(self) -> bool:
        return (self.stock or 0) <= (self.safety_stock or 0)

    @property
    def display_name(self) -> str:
        return format_display_name(self.category, self.efficiency, self.name)


class Product(InventoryItemMixin, Base):
    __tablename__ = "products"
    item_type = ITEM_PRODUCT


class Material(InventoryItemMixin, Base):
    __tablename__ = "materials"
    item_type = ITEM_MATERIAL


ITEM_MODELS = {
    ITEM_PRODUCT: Product,
    ITEM_MATERIAL: Material,
}


__all__ = ["ITEM_MODELS", "InventoryItemMixin", "Material", "Product", "format_display_name"]
