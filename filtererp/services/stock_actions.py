"""User-facing stock actions: receive (in), issue (out) and adjust.

``preview_stock_action`` validates and describes what an action would do
without writing; ``apply_user_stock_action`` performs it. The HTTP layer
exposes them as the propose and confirm steps of one action.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.orm import Session

from ..core.exceptions import InvalidQuantity
from ..core.security import SessionContext
from ..core.statuses import ACTION_ADJUST, STOCK_ACTIONS
from ..crud.inventory import (
    MovementPlan,
    adjust_stock,
    coerce_quantity,
    plan_adjustment,
    plan_movement,
    record_movement,
    require_session,
)
from ..models.catalog import InventoryItemMixin
from ..models.inventory import StockMovement


@dataclass
class StockActionPreview:
    action: str
    stock_before: int
    stock_after: int
    safety_stock: int
    plan: MovementPlan | None

    @property
    def is_noop(self) -> bool:
        return self.plan is None

    @property
    def low_stock_after(self) -> bool:
        return self.stock_after <= self.safety_stock


@dataclass
class StockActionResult:
    item: InventoryItemMixin
    movement: StockMovement | None


def _validate(action: str, quantity: object) -> int:
    if action not in STOCK_ACTIONS:
        raise InvalidQuantity(quantity, reason="unknown_action")
    return coerce_quantity(quantity, allow_zero=action == ACTION_ADJUST)


def preview_stock_action(
    item: InventoryItemMixin,
    action: str,
    quantity: object,
    note: str | None,
    session: SessionContext | None,
) -> StockActionPreview:
    require_session(session)
    amount = _validate(action, quantity)
    if action == ACTION_ADJUST:
        plan = plan_adjustment(item, amount, note)
    else:
        plan = plan_movement(item, action, amount, note)
    current = int(item.stock or 0)
    return StockActionPreview(
        action=action,
        stock_before=current,
        stock_after=plan.stock_after if plan else current,
        safety_stock=int(item.safety_stock or 0),
        plan=plan,
    )


def apply_user_stock_action(
    db: Session,
    item: InventoryItemMixin,
    action: str,
    quantity: object,
    note: str | None,
    session: SessionContext | None,
) -> StockActionResult:
    """Run one stock action for the acting user.

    ``quantity`` is the amount moved for ``in``/``out`` and the target stock
    level for ``adjust``. Safe to resubmit after any failure.
    """

    acting = require_session(session)
    amount = _validate(action, quantity)
    if action == ACTION_ADJUST:
        movement = adjust_stock(db, item, amount, acting, note)
    else:
        movement = record_movement(db, item, action, amount, acting, note)
    return StockActionResult(item=item, movement=movement)
