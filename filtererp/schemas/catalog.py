"""Pydantic schemas for products, materials and their stock actions."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field


class ItemBase(BaseModel):
    name: str
    category: Optional[str] = None
    efficiency: Optional[str] = None
    safety_stock: int = Field(default=0, ge=0)
    notes: Optional[str] = None
    image_url: Optional[str] = None


class ItemCreate(ItemBase):
    # Opening stock; booked as an "in" movement.
    stock: int = Field(default=0, ge=0)


class ItemUpdate(BaseModel):
    name: Optional[str] = None
    category: Optional[str] = None
    efficiency: Optional[str] = None
    safety_stock: Optional[int] = Field(default=None, ge=0)
    notes: Optional[str] = None
    image_url: Optional[str] = None
    # Target stock level; becomes an adjustment movement.
    stock: Optional[int] = Field(default=None, ge=0)


class ItemOut(BaseModel):
    id: int
    item_type: str
    name: str
    category: Optional[str]
    efficiency: Optional[str]
    stock: int
    safety_stock: int
    notes: Optional[str]
    image_url: Optional[str]
    created_at: str
    display_name: str
    is_low_stock: bool

    class Config:
        from_attributes = True


class StockActionRequest(BaseModel):
    action: Literal["in", "out", "adjust"]
    # Units moved for in/out, target stock for adjust.
    quantity: int
    note: Optional[str] = None


class MovementOut(BaseModel):
    id: int
    item_type: str
    item_id: int
    kind: str
    quantity: int
    signed_quantity: int
    user_id: str
    user_display_name: Optional[str] = None
    note: Optional[str]
    created_at: str

    class Config:
        from_attributes = True


class StockActionPreviewOut(BaseModel):
    action: str
    kind: Optional[str] = None
    quantity: int = 0
    stock_before: int
    stock_after: int
    safety_stock: int
    note: Optional[str] = None
    is_noop: bool
    low_stock_after: bool


class StockActionOut(BaseModel):
    item: ItemOut
    movement: Optional[MovementOut] = None
