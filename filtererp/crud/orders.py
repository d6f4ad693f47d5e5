"""CRUD for sales orders with the status rules applied on every write.

All checks run before anything is added to the session, so a rejected
request leaves the stored order untouched.
"""

from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy import desc, func, select
from sqlalchemy.orm import Session, selectinload

from ..core.exceptions import InvalidDocument, NotFound
from ..core.statuses import DELIVERY_METHODS, LINE_UNRECEIVED, ORDER_PENDING, ORDER_STATUSES, normalize_code
from ..models.catalog import Product
from ..models.order import Order, OrderItem
from ..services.clock import today_iso, utcnow_iso
from ..services.documents import (
    ORDER_ID_PREFIX,
    clean_text,
    document_total,
    line_total,
    parse_price,
    unique_document_id,
)
from ..services.status_rules import (
    check_order_line_transition,
    reconcile_order_status,
    validate_order_status,
    validate_shipping_details,
)
from .inventory import coerce_quantity

logger = logging.getLogger("filtererp.orders")

HEADER_FIELDS = (
    "distributor_id",
    "distributor_name",
    "customer_po",
    "order_date",
    "delivery_date",
    "notes",
    "delivery_method",
    "shipping_company",
    "shipping_address",
    "contact_person",
    "contact_phone",
    "logistics_company",
)
LINE_FIELDS = ("product_id", "product_name", "quantity", "price", "status")


def list_orders(
    db: Session,
    *,
    status: str | None = None,
    distributor_id: int | None = None,
    limit: int = 100,
    offset: int = 0,
) -> list[Order]:
    stmt = select(Order).options(selectinload(Order.items))
    if status:
        stmt = stmt.where(Order.status == normalize_code(status))
    if distributor_id is not None:
        stmt = stmt.where(Order.distributor_id == distributor_id)
    stmt = stmt.order_by(desc(Order.order_date), desc(Order.created_at)).limit(limit).offset(offset)
    return db.execute(stmt).scalars().all()


def get_order(db: Session, order_id: str) -> Order | None:
    stmt = select(Order).options(selectinload(Order.items)).where(Order.id == order_id)
    return db.execute(stmt).scalars().first()


def order_status_counts(db: Session) -> dict[str, int]:
    counts = {status: 0 for status in ORDER_STATUSES}
    rows = db.execute(select(Order.status, func.count(Order.id)).group_by(Order.status)).all()
    for status, count in rows:
        counts[status] = int(count)
    return counts


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _check_counterparty(fields: dict) -> None:
    if not fields.get("distributor_id"):
        raise InvalidDocument("distributor_id", "required")
    if not clean_text(fields.get("distributor_name")):
        raise InvalidDocument("distributor_name", "required")


def _check_delivery(fields: dict) -> str:
    method = normalize_code(fields.get("delivery_method"))
    if not method:
        raise InvalidDocument("delivery_method", "required")
    if method not in DELIVERY_METHODS:
        raise InvalidDocument("delivery_method", "unknown")
    validate_shipping_details(method, fields)
    return method


def _clean_header(fields: dict) -> dict:
    cleaned = {key: fields.get(key) for key in HEADER_FIELDS}
    for key in HEADER_FIELDS:
        if key != "distributor_id":
            cleaned[key] = clean_text(cleaned[key])
    cleaned["delivery_method"] = normalize_code(cleaned["delivery_method"])
    cleaned["order_date"] = cleaned["order_date"] or today_iso()
    cleaned["delivery_date"] = cleaned["delivery_date"] or today_iso()
    return cleaned


def _product(db: Session, product_id: object) -> Product:
    if not product_id:
        raise InvalidDocument("product_id", "required")
    product = db.get(Product, product_id)
    if product is None:
        raise NotFound("product", product_id)
    return product


def _build_line(db: Session, data: dict, current_status: str | None = None) -> dict:
    product = _product(db, data.get("product_id"))
    quantity = coerce_quantity(data.get("quantity"))
    price = parse_price(data.get("price"))
    status = check_order_line_transition(current_status, data.get("status") or current_status or LINE_UNRECEIVED)
    return {
        "product_id": product.id,
        "product_name": clean_text(data.get("product_name")) or product.display_name,
        "quantity": quantity,
        "price": price,
        "total": line_total(quantity, price),
        "status": status,
    }


def _merge_line(db: Session, item: OrderItem, updates: dict) -> dict:
    merged = {key: getattr(item, key) for key in LINE_FIELDS}
    merged.update({key: value for key, value in updates.items() if key in LINE_FIELDS and value is not None})
    if "product_id" in updates and "product_name" not in updates:
        merged["product_name"] = None
    return _build_line(db, merged, current_status=item.status)


def _resolve_status(requested: str | None, line_statuses: Iterable[str], current: str | None) -> str:
    """A requested header status must fit the lines; otherwise reconcile."""

    statuses = list(line_statuses)
    if clean_text(requested):
        return validate_order_status(requested, statuses)
    return reconcile_order_status(current, statuses)


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------


def create_order(db: Session, payload: dict) -> Order:
    _check_counterparty(payload)
    items = payload.get("items") or []
    if not items:
        raise InvalidDocument("items", "at least one line is required")
    lines = [_build_line(db, dict(item)) for item in items]
    header = _clean_header(payload)
    _check_delivery(header)
    status = _resolve_status(payload.get("status"), [line["status"] for line in lines], ORDER_PENDING)

    now = utcnow_iso()
    order = Order(
        id=unique_document_id(db, Order, ORDER_ID_PREFIX),
        **header,
        status=status,
        created_at=now,
        updated_at=now,
    )
    order.items = [OrderItem(**line) for line in lines]
    order.total_amount = document_total(order.items)
    db.add(order)
    db.commit()
    db.refresh(order)
    logger.info(
        "order.created",
        extra={"extra_data": {"order_id": order.id, "status": order.status, "lines": len(lines)}},
    )
    return order


def update_order_with_items(
    db: Session,
    order: Order,
    header: dict,
    *,
    existing: Iterable[dict] = (),
    new: Iterable[dict] = (),
    deleted: Iterable[int] = (),
) -> Order:
    """Apply header edits and line edits/additions/removals in one commit.

    Line changes are evaluated first. A header ``status`` in the same request
    is then checked against the resulting lines and rejected on conflict;
    without one the header is reconciled.
    """

    current = {item.id: item for item in order.items}
    removed = set(deleted)
    for item_id in removed:
        if item_id not in current:
            raise NotFound("order_item", item_id)

    changed: dict[int, dict] = {}
    for entry in existing:
        item_id = entry.get("id")
        if item_id not in current or item_id in removed:
            raise NotFound("order_item", item_id)
        changed[item_id] = _merge_line(db, current[item_id], dict(entry.get("updates") or {}))
    added = [_build_line(db, dict(item)) for item in new]

    statuses = [
        changed[item_id]["status"] if item_id in changed else item.status
        for item_id, item in current.items()
        if item_id not in removed
    ] + [line["status"] for line in added]
    if not statuses:
        raise InvalidDocument("items", "at least one line is required")

    merged = {key: getattr(order, key) for key in HEADER_FIELDS}
    merged.update({key: header[key] for key in HEADER_FIELDS if key in header})
    _check_counterparty(merged)
    cleaned = _clean_header(merged)
    _check_delivery(cleaned)
    status = _resolve_status(header.get("status"), statuses, order.status)

    previous_status = order.status
    for key, value in cleaned.items():
        setattr(order, key, value)
    for item_id, values in changed.items():
        for key, value in values.items():
            setattr(current[item_id], key, value)
    for item_id in removed:
        order.items.remove(current[item_id])
    for line in added:
        order.items.append(OrderItem(**line))
    order.status = status
    order.total_amount = document_total(order.items)
    order.updated_at = utcnow_iso()
    db.commit()
    db.refresh(order)
    if previous_status != order.status:
        logger.info(
            "order.status.changed",
            extra={"extra_data": {"order_id": order.id, "from": previous_status, "to": order.status}},
        )
    return order


def update_order_item_status(db: Session, order: Order, item_id: int, status: str) -> Order:
    """Move one line forward and force the header back in line with it."""

    item = next((line for line in order.items if line.id == item_id), None)
    if item is None:
        raise NotFound("order_item", item_id)
    target = check_order_line_transition(item.status, status)
    if target == item.status:
        return order

    item.status = target
    previous_status = order.status
    order.status = reconcile_order_status(order.status, order.line_statuses)
    order.updated_at = utcnow_iso()
    db.commit()
    db.refresh(order)
    if previous_status != order.status:
        logger.info(
            "order.status.reconciled",
            extra={"extra_data": {"order_id": order.id, "from": previous_status, "to": order.status}},
        )
    return order


def set_order_status(db: Session, order: Order, status: str) -> Order:
    """Manual header edit; rejected when it contradicts the lines."""

    order.status = validate_order_status(status, order.line_statuses)
    order.updated_at = utcnow_iso()
    db.commit()
    db.refresh(order)
    return order


def delete_order(db: Session, order: Order) -> None:
    db.delete(order)
    db.commit()
