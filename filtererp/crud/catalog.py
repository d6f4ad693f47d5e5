# filtererp/crud/catalog.py
from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..core.exceptions import InvalidDocument, NotFound, StatusConflict
from ..core.security import SessionContext
from ..core.statuses import ITEM_MATERIAL, ITEM_PRODUCT, MOVEMENT_IN
from ..models.catalog import ITEM_MODELS, InventoryItemMixin
from ..models.order import OrderItem
from ..models.purchase import PurchaseItem
from ..services.clock import utcnow_iso
from .inventory import adjust_stock, coerce_quantity, count_movements, record_movement, require_session

CATALOG_FIELDS = ("name", "category", "efficiency", "safety_stock", "notes", "image_url")
OPENING_STOCK_NOTE = "opening stock"
CATALOG_EDIT_NOTE = "catalog edit"


def _model_for(item_type: str):
    model = ITEM_MODELS.get(item_type)
    if model is None:
        raise NotFound("item_type", item_type)
    return model


def list_items(
    db: Session,
    item_type: str,
    *,
    category: str | None = None,
    efficiency: str | None = None,
    low_stock_only: bool = False,
    limit: int = 100,
    offset: int = 0,
) -> list[InventoryItemMixin]:
    """
    Return catalog items ordered by name, optionally filtered.
    """
    model = _model_for(item_type)
    stmt = select(model)
    if category:
        stmt = stmt.where(model.category == category)
    if efficiency:
        stmt = stmt.where(model.efficiency == efficiency)
    if low_stock_only:
        stmt = stmt.where(model.stock <= model.safety_stock)
    stmt = stmt.order_by(model.name, model.id).limit(limit).offset(offset)
    return db.execute(stmt).scalars().all()


def _clean_fields(data: dict) -> dict:
    cleaned: dict = {}
    for key in CATALOG_FIELDS:
        if key not in data:
            continue
        value = data[key]
        if key == "safety_stock":
            value = coerce_quantity(value if value is not None else 0, allow_zero=True)
        elif isinstance(value, str):
            value = value.strip() or None
        cleaned[key] = value
    if "name" in cleaned and not cleaned["name"]:
        raise InvalidDocument("name", "required")
    return cleaned


def create_item(
    db: Session,
    item_type: str,
    payload: dict,
    session: SessionContext | None,
) -> InventoryItemMixin:
    """
    Create a product or material. A non-zero opening stock is booked as an
    ``in`` movement so the ledger always sums to the stored stock.
    """
    model = _model_for(item_type)
    data = _clean_fields(payload)
    if not data.get("name"):
        raise InvalidDocument("name", "required")
    opening = coerce_quantity(payload.get("stock") or 0, allow_zero=True)
    acting = require_session(session) if opening else session

    data.setdefault("safety_stock", 0)
    item = model(**data, stock=0, created_at=utcnow_iso())
    db.add(item)
    if not opening:
        db.commit()
        db.refresh(item)
        return item

    # The insert and the opening movement commit together.
    db.flush()
    try:
        record_movement(db, item, MOVEMENT_IN, opening, acting, OPENING_STOCK_NOTE)
    except Exception:
        db.rollback()
        raise
    return item


def update_item(
    db: Session,
    item: InventoryItemMixin,
    payload: dict,
    session: SessionContext | None,
) -> InventoryItemMixin:
    """
    Update catalog fields in place. A ``stock`` value is not written directly;
    it becomes an adjustment movement against the stored stock.
    """
    data = _clean_fields(payload)
    new_stock = payload.get("stock")
    if new_stock is not None:
        coerce_quantity(new_stock, allow_zero=True)
        require_session(session)

    for key, value in data.items():
        setattr(item, key, value)
    if new_stock is None:
        db.commit()
        db.refresh(item)
        return item

    # Flushed, not committed: the field edits ride on the movement's
    # transaction and are rolled back with it.
    db.flush()
    try:
        movement = adjust_stock(db, item, new_stock, session, CATALOG_EDIT_NOTE)
    except Exception:
        db.rollback()
        raise
    if movement is None:
        db.commit()
        db.refresh(item)
    return item


def delete_item(db: Session, item: InventoryItemMixin) -> None:
    """
    Delete a catalog item that nothing refers to. Items with ledger rows or
    document lines are kept.
    """
    if count_movements(db, item.item_type, item.id):
        raise StatusConflict("item_has_movements", requested="delete")
    if item.item_type == ITEM_PRODUCT:
        line = select(OrderItem.id).where(OrderItem.product_id == item.id)
    elif item.item_type == ITEM_MATERIAL:
        line = select(PurchaseItem.id).where(PurchaseItem.material_id == item.id)
    else:
        line = None
    if line is not None and db.execute(line.limit(1)).first():
        raise StatusConflict("item_referenced_by_documents", requested="delete")
    db.delete(item)
    db.commit()
