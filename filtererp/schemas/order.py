"""Pydantic schemas that describe sales order payloads for the API."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class OrderItemIn(BaseModel):
    product_id: int
    product_name: Optional[str] = None
    quantity: int
    price: float | str
    status: Optional[str] = None


class OrderItemPatch(BaseModel):
    product_id: Optional[int] = None
    product_name: Optional[str] = None
    quantity: Optional[int] = None
    price: Optional[float | str] = None
    status: Optional[str] = None


class OrderItemEdit(BaseModel):
    id: int
    updates: OrderItemPatch


class OrderHeader(BaseModel):
    distributor_id: Optional[int] = None
    distributor_name: Optional[str] = None
    customer_po: Optional[str] = None
    order_date: Optional[str] = None
    delivery_date: Optional[str] = None
    notes: Optional[str] = None
    delivery_method: Optional[str] = None
    shipping_company: Optional[str] = None
    shipping_address: Optional[str] = None
    contact_person: Optional[str] = None
    contact_phone: Optional[str] = None
    logistics_company: Optional[str] = None
    status: Optional[str] = None


class OrderCreate(OrderHeader):
    distributor_id: int
    distributor_name: str
    delivery_method: str
    items: list[OrderItemIn] = Field(default_factory=list)


class OrderUpdate(OrderHeader):
    existing_items: list[OrderItemEdit] = Field(default_factory=list)
    new_items: list[OrderItemIn] = Field(default_factory=list)
    deleted_item_ids: list[int] = Field(default_factory=list)


class StatusUpdate(BaseModel):
    status: str


class OrderItemOut(BaseModel):
    id: int
    product_id: int
    product_name: str
    quantity: int
    price: float
    total: float
    status: str
    status_label: Optional[str] = None

    class Config:
        from_attributes = True


class OrderOut(BaseModel):
    id: str
    distributor_id: int
    distributor_name: str
    customer_po: Optional[str]
    order_date: str
    delivery_date: Optional[str]
    total_amount: float
    status: str
    status_label: Optional[str] = None
    notes: Optional[str]
    delivery_method: Optional[str]
    shipping_company: Optional[str]
    shipping_address: Optional[str]
    contact_person: Optional[str]
    contact_phone: Optional[str]
    logistics_company: Optional[str]
    created_at: str
    updated_at: str
    items: list[OrderItemOut] = Field(default_factory=list)

    class Config:
        from_attributes = True
