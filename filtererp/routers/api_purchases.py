from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.exceptions import NotFound
from ..core.statuses import label_for
from ..crud.purchases import (
    create_purchase,
    delete_purchase,
    get_purchase,
    list_purchases,
    purchase_status_counts,
    set_purchase_status,
    update_purchase_item_status,
    update_purchase_with_items,
)
from ..db.session import get_db
from ..deps.auth import require_session
from ..schemas.order import StatusUpdate
from ..schemas.purchase import PurchaseCreate, PurchaseOut, PurchaseUpdate

router = APIRouter(prefix="/api/v1/purchases", tags=["purchases"], dependencies=[Depends(require_session)])


def _purchase_to_schema(purchase) -> PurchaseOut:
    payload = PurchaseOut.model_validate(purchase, from_attributes=True)
    payload.status_label = label_for(purchase.status)
    for line in payload.items:
        line.status_label = label_for(line.status)
    return payload


def _load(db: Session, purchase_id: str):
    purchase = get_purchase(db, purchase_id)
    if purchase is None:
        raise NotFound("purchase", purchase_id)
    return purchase


@router.get("", response_model=list[PurchaseOut])
def api_list_purchases(
    status: str | None = None,
    supplier_id: int | None = None,
    limit: int = 100,
    offset: int = 0,
    db: Session = Depends(get_db),
):
    purchases = list_purchases(db, status=status, supplier_id=supplier_id, limit=limit, offset=offset)
    return [_purchase_to_schema(purchase) for purchase in purchases]


@router.get("/stats", response_model=dict[str, int])
def api_purchase_stats(db: Session = Depends(get_db)):
    return purchase_status_counts(db)


@router.post("", response_model=PurchaseOut, status_code=201)
def api_create_purchase(payload: PurchaseCreate, db: Session = Depends(get_db)):
    data = payload.model_dump()
    return _purchase_to_schema(create_purchase(db, data))


@router.get("/{purchase_id}", response_model=PurchaseOut)
def api_get_purchase(purchase_id: str, db: Session = Depends(get_db)):
    return _purchase_to_schema(_load(db, purchase_id))


@router.put("/{purchase_id}", response_model=PurchaseOut)
def api_update_purchase(purchase_id: str, payload: PurchaseUpdate, db: Session = Depends(get_db)):
    purchase = _load(db, purchase_id)
    header = payload.model_dump(exclude_unset=True, exclude={"existing_items", "new_items", "deleted_item_ids"})
    updated = update_purchase_with_items(
        db,
        purchase,
        header,
        existing=[
            {"id": edit.id, "updates": edit.updates.model_dump(exclude_unset=True)}
            for edit in payload.existing_items
        ],
        new=[item.model_dump() for item in payload.new_items],
        deleted=payload.deleted_item_ids,
    )
    return _purchase_to_schema(updated)


@router.patch("/{purchase_id}/status", response_model=PurchaseOut)
def api_set_purchase_status(purchase_id: str, payload: StatusUpdate, db: Session = Depends(get_db)):
    return _purchase_to_schema(set_purchase_status(db, _load(db, purchase_id), payload.status))


@router.patch("/{purchase_id}/items/{item_id}/status", response_model=PurchaseOut)
def api_set_purchase_item_status(
    purchase_id: str,
    item_id: int,
    payload: StatusUpdate,
    db: Session = Depends(get_db),
):
    return _purchase_to_schema(update_purchase_item_status(db, _load(db, purchase_id), item_id, payload.status))


@router.delete("/{purchase_id}")
def api_delete_purchase(purchase_id: str, db: Session = Depends(get_db)):
    delete_purchase(db, _load(db, purchase_id))
    return {"status": "deleted"}
