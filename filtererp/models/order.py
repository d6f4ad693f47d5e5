"""Sales orders placed by distributors and their product lines."""

from __future__ import annotations

from sqlalchemy import Column, Float, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship

from ..core.statuses import LINE_UNRECEIVED, ORDER_PENDING
from ..db.session import Base


class Order(Base):
    __tablename__ = "orders"
    __allow_unmapped__ = True

    id = Column(Text, primary_key=True)
    distributor_id = Column(Integer, nullable=False, index=True)
    distributor_name = Column(Text, nullable=False)
    customer_po = Column(Text, nullable=True)
    order_date = Column(Text, nullable=False)
    delivery_date = Column(Text, nullable=True)
    total_amount = Column(Float, nullable=False, default=0.0)
    # Derived from the lines once any exist; see services.status_rules.
    status = Column(Text, nullable=False, default=ORDER_PENDING, index=True)
    notes = Column(Text, nullable=True)

    delivery_method = Column(Text, nullable=True)
    shipping_company = Column(Text, nullable=True)
    shipping_address = Column(Text, nullable=True)
    contact_person = Column(Text, nullable=True)
    contact_phone = Column(Text, nullable=True)
    logistics_company = Column(Text, nullable=True)

    created_at = Column(Text, nullable=False)
    updated_at = Column(Text, nullable=False)

    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )

    @property
    def line_statuses(self) -> list[str]:
        return [item.status for item in self.items]


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Text, ForeignKey("orders.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    product_name = Column(Text, nullable=False)
    quantity = Column(Integer, nullable=False)
    price = Column(Float, nullable=False)
    total = Column(Float, nullable=False)
    status = Column(Text, nullable=False, default=LINE_UNRECEIVED)

    order = relationship("Order", back_populates="items")


__all__ = ["Order", "OrderItem"]
