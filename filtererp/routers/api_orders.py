from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.exceptions import NotFound
from ..core.statuses import label_for
from ..crud.orders import (
    create_order,
    delete_order,
    get_order,
    list_orders,
    order_status_counts,
    set_order_status,
    update_order_item_status,
    update_order_with_items,
)
from ..db.session import get_db
from ..deps.auth import require_session
from ..schemas.order import OrderCreate, OrderOut, OrderUpdate, StatusUpdate

router = APIRouter(prefix="/api/v1/orders", tags=["orders"], dependencies=[Depends(require_session)])


def _order_to_schema(order) -> OrderOut:
    payload = OrderOut.model_validate(order, from_attributes=True)
    payload.status_label = label_for(order.status)
    for line in payload.items:
        line.status_label = label_for(line.status)
    return payload


def _load(db: Session, order_id: str):
    order = get_order(db, order_id)
    if order is None:
        raise NotFound("order", order_id)
    return order


@router.get("", response_model=list[OrderOut])
def api_list_orders(
    status: str | None = None,
    distributor_id: int | None = None,
    limit: int = 100,
    offset: int = 0,
    db: Session = Depends(get_db),
):
    orders = list_orders(db, status=status, distributor_id=distributor_id, limit=limit, offset=offset)
    return [_order_to_schema(order) for order in orders]


@router.get("/stats", response_model=dict[str, int])
def api_order_stats(db: Session = Depends(get_db)):
    return order_status_counts(db)


@router.post("", response_model=OrderOut, status_code=201)
def api_create_order(payload: OrderCreate, db: Session = Depends(get_db)):
    data = payload.model_dump()
    return _order_to_schema(create_order(db, data))


@router.get("/{order_id}", response_model=OrderOut)
def api_get_order(order_id: str, db: Session = Depends(get_db)):
    return _order_to_schema(_load(db, order_id))


@router.put("/{order_id}", response_model=OrderOut)
def api_update_order(order_id: str, payload: OrderUpdate, db: Session = Depends(get_db)):
    order = _load(db, order_id)
    header = payload.model_dump(exclude_unset=True, exclude={"existing_items", "new_items", "deleted_item_ids"})
    updated = update_order_with_items(
        db,
        order,
        header,
        existing=[
            {"id": edit.id, "updates": edit.updates.model_dump(exclude_unset=True)}
            for edit in payload.existing_items
        ],
        new=[item.model_dump() for item in payload.new_items],
        deleted=payload.deleted_item_ids,
    )
    return _order_to_schema(updated)


@router.patch("/{order_id}/status", response_model=OrderOut)
def api_set_order_status(order_id: str, payload: StatusUpdate, db: Session = Depends(get_db)):
    return _order_to_schema(set_order_status(db, _load(db, order_id), payload.status))


@router.patch("/{order_id}/items/{item_id}/status", response_model=OrderOut)
def api_set_order_item_status(order_id: str, item_id: int, payload: StatusUpdate, db: Session = Depends(get_db)):
    return _order_to_schema(update_order_item_status(db, _load(db, order_id), item_id, payload.status))


@router.delete("/{order_id}")
def api_delete_order(order_id: str, db: Session = Depends(get_db)):
    delete_order(db, _load(db, order_id))
    return {"status": "deleted"}
