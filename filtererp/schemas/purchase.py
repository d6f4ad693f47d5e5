from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class PurchaseItemIn(BaseModel):
    material_id: int
    material_name: Optional[str] = None
    quantity: int
    price: Optional[float | str] = None
    status: Optional[str] = None


class PurchaseItemPatch(BaseModel):
    material_id: Optional[int] = None
    material_name: Optional[str] = None
    quantity: Optional[int] = None
    price: Optional[float | str] = None
    status: Optional[str] = None


class PurchaseItemEdit(BaseModel):
    id: int
    updates: PurchaseItemPatch


class PurchaseHeader(BaseModel):
    supplier_id: Optional[int] = None
    supplier_name: Optional[str] = None
    purchaser: Optional[str] = None
    purchase_date: Optional[str] = None
    expected_delivery_date: Optional[str] = None
    notes: Optional[str] = None
    status: Optional[str] = None


class PurchaseCreate(PurchaseHeader):
    supplier_id: int
    supplier_name: str
    items: list[PurchaseItemIn] = Field(default_factory=list)


class PurchaseUpdate(PurchaseHeader):
    existing_items: list[PurchaseItemEdit] = Field(default_factory=list)
    new_items: list[PurchaseItemIn] = Field(default_factory=list)
    deleted_item_ids: list[int] = Field(default_factory=list)


class PurchaseItemOut(BaseModel):
    id: int
    material_id: int
    material_name: str
    quantity: int
    price: float
    total: float
    status: str
    status_label: Optional[str] = None

    class Config:
        from_attributes = True


class PurchaseOut(BaseModel):
    id: str
    supplier_id: int
    supplier_name: str
    purchaser: Optional[str]
    purchase_date: str
    expected_delivery_date: Optional[str]
    total_amount: float
    status: str
    status_label: Optional[str] = None
    notes: Optional[str]
    created_at: str
    updated_at: str
    items: list[PurchaseItemOut] = Field(default_factory=list)

    class Config:
        from_attributes = True
