"""Stock ledger and the movement applier.

Every change to ``stock`` on a product or material goes through
:func:`record_movement` or :func:`adjust_stock`. Both end in
:func:`_apply_plan`, which runs the quantity update and the ledger append in
one transaction:

1. re-read the item row (``SELECT ... FOR UPDATE`` where supported),
2. ``UPDATE ... SET stock = :after WHERE id = :id AND stock = :before``,
3. insert the :class:`StockMovement` row,
4. commit.

A failure in step 2 raises :class:`QuantityUpdateFailed`, in step 3
:class:`LedgerAppendFailed`. Either way the transaction is rolled back, so
the error reports ``stock_changed=False`` and the call can be repeated.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import case, desc, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import (
    InsufficientStock,
    InvalidQuantity,
    LedgerAppendFailed,
    NotFound,
    QuantityUpdateFailed,
    Unauthenticated,
)
from ..core.security import SessionContext
from ..core.statuses import ADJUSTMENT_NOTE_PREFIX, ITEM_TYPES, MOVEMENT_IN, MOVEMENT_KINDS, MOVEMENT_OUT
from ..models.catalog import ITEM_MODELS, InventoryItemMixin
from ..models.inventory import StockMovement
from ..services.clock import utcnow_iso

logger = logging.getLogger("filtererp.inventory")


@dataclass(frozen=True)
class MovementPlan:
    """A validated movement that has not been written yet."""

    item_type: str
    item_id: int
    kind: str
    quantity: int
    stock_before: int
    stock_after: int
    note: str | None = None


def require_session(session: SessionContext | None) -> SessionContext:
    if session is None or not (session.user_id or "").strip():
        raise Unauthenticated()
    return session


def coerce_quantity(value: object, *, allow_zero: bool = False) -> int:
    """Accept whole numbers only; bools and fractional values are rejected."""

    if isinstance(value, bool):
        raise InvalidQuantity(value, reason="must_be_integer")
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if not isinstance(value, int):
        raise InvalidQuantity(value, reason="must_be_integer")
    if value < 0:
        raise InvalidQuantity(value, reason="must_not_be_negative")
    if value == 0 and not allow_zero:
        raise InvalidQuantity(value, reason="must_be_positive")
    return value


def get_item(db: Session, item_type: str, item_id: int) -> InventoryItemMixin:
    model = ITEM_MODELS.get(item_type)
    if model is None:
        raise NotFound("item_type", item_type)
    item = db.get(model, item_id)
    if item is None:
        raise NotFound(item_type, item_id)
    return item


def _lock_item(db: Session, item: InventoryItemMixin) -> InventoryItemMixin:
    """Reload the item row inside the current transaction."""

    model = type(item)
    stmt = (
        select(model)
        .where(model.id == item.id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    fresh = db.execute(stmt).scalars().first()
    if fresh is None:
        raise NotFound(item.item_type, item.id)
    return fresh


# ---------------------------------------------------------------------------
# Planning (validation only, no writes)
# ---------------------------------------------------------------------------


def plan_movement(item: InventoryItemMixin, kind: str, quantity: object, note: str | None = None) -> MovementPlan:
    if kind not in MOVEMENT_KINDS:
        raise InvalidQuantity(quantity, reason="unknown_kind")
    amount = coerce_quantity(quantity)
    current = int(item.stock or 0)
    if kind == MOVEMENT_OUT and amount > current:
        raise InsufficientStock(
            item_type=item.item_type,
            item_id=item.id,
            requested=amount,
            available=current,
        )
    after = current + amount if kind == MOVEMENT_IN else current - amount
    return MovementPlan(item.item_type, item.id, kind, amount, current, after, note)


def adjustment_note(note: str | None) -> str:
    text = (note or "").strip()
    return f"{ADJUSTMENT_NOTE_PREFIX} {text}" if text else ADJUSTMENT_NOTE_PREFIX


def plan_adjustment(item: InventoryItemMixin, new_stock: object, note: str | None = None) -> MovementPlan | None:
    """Translate "set stock to N" into an in/out movement, or ``None`` if N is current."""

    target = coerce_quantity(new_stock, allow_zero=True)
    current = int(item.stock or 0)
    diff = target - current
    if diff == 0:
        return None
    kind = MOVEMENT_IN if diff > 0 else MOVEMENT_OUT
    return MovementPlan(item.item_type, item.id, kind, abs(diff), current, target, adjustment_note(note))


# ---------------------------------------------------------------------------
# Applying
# ---------------------------------------------------------------------------


def _apply_plan(db: Session, item: InventoryItemMixin, plan: MovementPlan, session: SessionContext) -> StockMovement:
    model = type(item)
    failure = {"item_type": plan.item_type, "item_id": plan.item_id, "stock_changed": False}
    try:
        result = db.execute(
            update(model)
            .where(model.id == plan.item_id, model.stock == plan.stock_before)
            .values(stock=plan.stock_after)
        )
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("stock.quantity_update_failed", extra={"extra_data": failure})
        raise QuantityUpdateFailed("Stock quantity update failed", reason="database_error", **failure) from exc
    if result.rowcount != 1:
        db.rollback()
        logger.warning("stock.quantity_update_conflict", extra={"extra_data": failure})
        raise QuantityUpdateFailed(
            "Stock changed while the movement was being applied",
            reason="concurrent_update",
            **failure,
        )

    movement = StockMovement(
        item_type=plan.item_type,
        item_id=plan.item_id,
        kind=plan.kind,
        quantity=plan.quantity,
        user_id=session.user_id,
        note=plan.note,
        created_at=utcnow_iso(),
    )
    try:
        db.add(movement)
        db.flush()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("stock.ledger_append_failed", extra={"extra_data": failure})
        raise LedgerAppendFailed("Stock ledger append failed", reason="database_error", **failure) from exc

    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("stock.commit_failed", extra={"extra_data": failure})
        raise LedgerAppendFailed("Stock movement commit failed", reason="commit_failed", **failure) from exc

    db.refresh(item)
    db.refresh(movement)
    logger.info(
        "stock.movement.applied",
        extra={
            "extra_data": {
                "item_type": plan.item_type,
                "item_id": plan.item_id,
                "kind": plan.kind,
                "quantity": plan.quantity,
                "stock_before": plan.stock_before,
                "stock_after": plan.stock_after,
                "user_id": session.user_id,
            }
        },
    )
    return movement


def record_movement(
    db: Session,
    item: InventoryItemMixin,
    kind: str,
    quantity: object,
    session: SessionContext | None,
    note: str | None = None,
) -> StockMovement:
    """Add or remove ``quantity`` units and append the matching ledger row."""

    acting = require_session(session)
    coerce_quantity(quantity)
    locked = _lock_item(db, item)
    plan = plan_movement(locked, kind, quantity, (note or "").strip() or None)
    return _apply_plan(db, locked, plan, acting)


def adjust_stock(
    db: Session,
    item: InventoryItemMixin,
    new_stock: object,
    session: SessionContext | None,
    note: str | None = None,
) -> StockMovement | None:
    """Set stock to ``new_stock`` through a synthesized movement.

    Returns ``None`` without touching the database when the stock already
    equals ``new_stock``.
    """

    acting = require_session(session)
    coerce_quantity(new_stock, allow_zero=True)
    locked = _lock_item(db, item)
    plan = plan_adjustment(locked, new_stock, note)
    if plan is None:
        return None
    return _apply_plan(db, locked, plan, acting)


# ---------------------------------------------------------------------------
# Reading
# ---------------------------------------------------------------------------


def get_movement_history(
    db: Session,
    item_type: str,
    item_id: int,
    limit: int = 100,
    offset: int = 0,
) -> list[StockMovement]:
    """Movements for one item, newest first, with the acting user loaded."""

    if item_type not in ITEM_TYPES:
        raise NotFound("item_type", item_type)
    stmt = (
        select(StockMovement)
        .where(StockMovement.item_type == item_type, StockMovement.item_id == item_id)
        .order_by(desc(StockMovement.created_at), desc(StockMovement.id))
        .limit(limit)
        .offset(offset)
    )
    return db.execute(stmt).unique().scalars().all()


def ledger_balance(db: Session, item_type: str, item_id: int) -> int:
    """Signed sum of every movement recorded for the item."""

    signed = case((StockMovement.kind == MOVEMENT_IN, StockMovement.quantity), else_=-StockMovement.quantity)
    stmt = select(func.coalesce(func.sum(signed), 0)).where(
        StockMovement.item_type == item_type,
        StockMovement.item_id == item_id,
    )
    return int(db.execute(stmt).scalar() or 0)


def count_movements(db: Session, item_type: str, item_id: int) -> int:
    stmt = select(func.count(StockMovement.id)).where(
        StockMovement.item_type == item_type,
        StockMovement.item_id == item_id,
    )
    return int(db.execute(stmt).scalar() or 0)
