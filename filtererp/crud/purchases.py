"""CRUD for purchase orders.

Purchase headers and lines share one status vocabulary and, unlike sales
orders, the header is not derived from its lines.
"""

from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy import desc, func, select
from sqlalchemy.orm import Session, selectinload

from ..core.exceptions import InvalidDocument, NotFound
from ..core.statuses import PURCHASE_DRAFT, PURCHASE_STATUSES, normalize_code
from ..models.catalog import Material
from ..models.purchase import Purchase, PurchaseItem
from ..services.clock import today_iso, utcnow_iso
from ..services.documents import (
    PURCHASE_ID_PREFIX,
    clean_text,
    document_total,
    line_total,
    parse_price,
    unique_document_id,
)
from ..services.status_rules import check_purchase_line_status, validate_purchase_status
from .inventory import coerce_quantity

logger = logging.getLogger("filtererp.purchases")

HEADER_FIELDS = (
    "supplier_id",
    "supplier_name",
    "purchaser",
    "purchase_date",
    "expected_delivery_date",
    "notes",
)
LINE_FIELDS = ("material_id", "material_name", "quantity", "price", "status")


def list_purchases(
    db: Session,
    *,
    status: str | None = None,
    supplier_id: int | None = None,
    limit: int = 100,
    offset: int = 0,
) -> list[Purchase]:
    stmt = select(Purchase).options(selectinload(Purchase.items))
    if status:
        stmt = stmt.where(Purchase.status == normalize_code(status))
    if supplier_id is not None:
        stmt = stmt.where(Purchase.supplier_id == supplier_id)
    stmt = stmt.order_by(desc(Purchase.purchase_date), desc(Purchase.created_at)).limit(limit).offset(offset)
    return db.execute(stmt).scalars().all()


def get_purchase(db: Session, purchase_id: str) -> Purchase | None:
    stmt = select(Purchase).options(selectinload(Purchase.items)).where(Purchase.id == purchase_id)
    return db.execute(stmt).scalars().first()


def purchase_status_counts(db: Session) -> dict[str, int]:
    counts = {status: 0 for status in PURCHASE_STATUSES}
    rows = db.execute(select(Purchase.status, func.count(Purchase.id)).group_by(Purchase.status)).all()
    for status, count in rows:
        counts[status] = int(count)
    return counts


def _check_counterparty(fields: dict) -> None:
    if not fields.get("supplier_id"):
        raise InvalidDocument("supplier_id", "required")
    if not clean_text(fields.get("supplier_name")):
        raise InvalidDocument("supplier_name", "required")


def _clean_header(fields: dict) -> dict:
    cleaned = {key: fields.get(key) for key in HEADER_FIELDS}
    for key in HEADER_FIELDS:
        if key != "supplier_id":
            cleaned[key] = clean_text(cleaned[key])
    cleaned["purchase_date"] = cleaned["purchase_date"] or today_iso()
    return cleaned


def _build_line(db: Session, data: dict) -> dict:
    material_id = data.get("material_id")
    if not material_id:
        raise InvalidDocument("material_id", "required")
    material = db.get(Material, material_id)
    if material is None:
        raise NotFound("material", material_id)
    quantity = coerce_quantity(data.get("quantity"))
    price = parse_price(data.get("price") or 0, allow_zero=True)
    return {
        "material_id": material.id,
        "material_name": clean_text(data.get("material_name")) or material.display_name,
        "quantity": quantity,
        "price": price,
        "total": line_total(quantity, price),
        "status": check_purchase_line_status(data.get("status") or PURCHASE_DRAFT),
    }


def create_purchase(db: Session, payload: dict) -> Purchase:
    _check_counterparty(payload)
    items = payload.get("items") or []
    if not items:
        raise InvalidDocument("items", "at least one line is required")
    lines = [_build_line(db, dict(item)) for item in items]
    header = _clean_header(payload)
    status = validate_purchase_status(payload.get("status") or PURCHASE_DRAFT)

    now = utcnow_iso()
    purchase = Purchase(
        id=unique_document_id(db, Purchase, PURCHASE_ID_PREFIX),
        **header,
        status=status,
        created_at=now,
        updated_at=now,
    )
    purchase.items = [PurchaseItem(**line) for line in lines]
    purchase.total_amount = document_total(purchase.items)
    db.add(purchase)
    db.commit()
    db.refresh(purchase)
    logger.info(
        "purchase.created",
        extra={"extra_data": {"purchase_id": purchase.id, "status": purchase.status, "lines": len(lines)}},
    )
    return purchase


def update_purchase_with_items(
    db: Session,
    purchase: Purchase,
    header: dict,
    *,
    existing: Iterable[dict] = (),
    new: Iterable[dict] = (),
    deleted: Iterable[int] = (),
) -> Purchase:
    current = {item.id: item for item in purchase.items}
    removed = set(deleted)
    for item_id in removed:
        if item_id not in current:
            raise NotFound("purchase_item", item_id)

    changed: dict[int, dict] = {}
    for entry in existing:
        item_id = entry.get("id")
        if item_id not in current or item_id in removed:
            raise NotFound("purchase_item", item_id)
        item = current[item_id]
        merged = {key: getattr(item, key) for key in LINE_FIELDS}
        updates = dict(entry.get("updates") or {})
        merged.update({key: value for key, value in updates.items() if key in LINE_FIELDS and value is not None})
        if "material_id" in updates and "material_name" not in updates:
            merged["material_name"] = None
        changed[item_id] = _build_line(db, merged)
    added = [_build_line(db, dict(item)) for item in new]
    if len(current) - len(removed) + len(added) <= 0:
        raise InvalidDocument("items", "at least one line is required")

    merged_header = {key: getattr(purchase, key) for key in HEADER_FIELDS}
    merged_header.update({key: header[key] for key in HEADER_FIELDS if key in header})
    _check_counterparty(merged_header)
    cleaned = _clean_header(merged_header)
    status = validate_purchase_status(header["status"]) if clean_text(header.get("status")) else purchase.status

    for key, value in cleaned.items():
        setattr(purchase, key, value)
    for item_id, values in changed.items():
        for key, value in values.items():
            setattr(current[item_id], key, value)
    for item_id in removed:
        purchase.items.remove(current[item_id])
    for line in added:
        purchase.items.append(PurchaseItem(**line))
    purchase.status = status
    purchase.total_amount = document_total(purchase.items)
    purchase.updated_at = utcnow_iso()
    db.commit()
    db.refresh(purchase)
    return purchase


def update_purchase_item_status(db: Session, purchase: Purchase, item_id: int, status: str) -> Purchase:
    item = next((line for line in purchase.items if line.id == item_id), None)
    if item is None:
        raise NotFound("purchase_item", item_id)
    item.status = check_purchase_line_status(status)
    purchase.updated_at = utcnow_iso()
    db.commit()
    db.refresh(purchase)
    return purchase


def set_purchase_status(db: Session, purchase: Purchase, status: str) -> Purchase:
    purchase.status = validate_purchase_status(status)
    purchase.updated_at = utcnow_iso()
    db.commit()
    db.refresh(purchase)
    return purchase


def delete_purchase(db: Session, purchase: Purchase) -> None:
    db.delete(purchase)
    db.commit()
