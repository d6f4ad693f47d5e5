"""Products and materials share one router shape; ``build_router`` makes both."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.security import SessionContext
from ..core.statuses import ITEM_MATERIAL, ITEM_PRODUCT
from ..crud.catalog import create_item, delete_item, list_items, update_item
from ..crud.inventory import get_item, get_movement_history
from ..db.session import get_db
from ..deps.auth import require_session
from ..schemas.catalog import (
    ItemCreate,
    ItemOut,
    ItemUpdate,
    MovementOut,
    StockActionOut,
    StockActionPreviewOut,
    StockActionRequest,
)
from ..services.stock_actions import apply_user_stock_action, preview_stock_action


def _preview_to_schema(preview) -> StockActionPreviewOut:
    plan = preview.plan
    return StockActionPreviewOut(
        action=preview.action,
        kind=plan.kind if plan else None,
        quantity=plan.quantity if plan else 0,
        stock_before=preview.stock_before,
        stock_after=preview.stock_after,
        safety_stock=preview.safety_stock,
        note=plan.note if plan else None,
        is_noop=preview.is_noop,
        low_stock_after=preview.low_stock_after,
    )


def build_router(item_type: str, prefix: str, tag: str) -> APIRouter:
    router = APIRouter(prefix=prefix, tags=[tag])

    @router.get("", response_model=list[ItemOut])
    def api_list_items(
        category: str | None = None,
        efficiency: str | None = None,
        limit: int = 100,
        offset: int = 0,
        db: Session = Depends(get_db),
        session: SessionContext = Depends(require_session),
    ):
        return list_items(db, item_type, category=category, efficiency=efficiency, limit=limit, offset=offset)

    @router.get("/low-stock", response_model=list[ItemOut])
    def api_low_stock(
        limit: int = 100,
        offset: int = 0,
        db: Session = Depends(get_db),
        session: SessionContext = Depends(require_session),
    ):
        return list_items(db, item_type, low_stock_only=True, limit=limit, offset=offset)

    @router.get("/{item_id}", response_model=ItemOut)
    def api_get_item(
        item_id: int,
        db: Session = Depends(get_db),
        session: SessionContext = Depends(require_session),
    ):
        return get_item(db, item_type, item_id)

    @router.post("", response_model=ItemOut, status_code=201)
    def api_create_item(
        payload: ItemCreate,
        db: Session = Depends(get_db),
        session: SessionContext = Depends(require_session),
    ):
        return create_item(db, item_type, payload.model_dump(), session)

    @router.patch("/{item_id}", response_model=ItemOut)
    def api_update_item(
        item_id: int,
        payload: ItemUpdate,
        db: Session = Depends(get_db),
        session: SessionContext = Depends(require_session),
    ):
        item = get_item(db, item_type, item_id)
        return update_item(db, item, payload.model_dump(exclude_unset=True), session)

    @router.delete("/{item_id}")
    def api_delete_item(
        item_id: int,
        db: Session = Depends(get_db),
        session: SessionContext = Depends(require_session),
    ):
        delete_item(db, get_item(db, item_type, item_id))
        return {"status": "deleted"}

    @router.get("/{item_id}/history", response_model=list[MovementOut])
    def api_item_history(
        item_id: int,
        limit: int = 100,
        offset: int = 0,
        db: Session = Depends(get_db),
        session: SessionContext = Depends(require_session),
    ):
        get_item(db, item_type, item_id)
        return get_movement_history(db, item_type, item_id, limit=limit, offset=offset)

    @router.post("/{item_id}/stock-actions/preview", response_model=StockActionPreviewOut)
    def api_preview_stock_action(
        item_id: int,
        payload: StockActionRequest,
        db: Session = Depends(get_db),
        session: SessionContext = Depends(require_session),
    ):
        item = get_item(db, item_type, item_id)
        preview = preview_stock_action(item, payload.action, payload.quantity, payload.note, session)
        return _preview_to_schema(preview)

    @router.post("/{item_id}/stock-actions", response_model=StockActionOut)
    def api_apply_stock_action(
        item_id: int,
        payload: StockActionRequest,
        db: Session = Depends(get_db),
        session: SessionContext = Depends(require_session),
    ):
        item = get_item(db, item_type, item_id)
        result = apply_user_stock_action(db, item, payload.action, payload.quantity, payload.note, session)
        return StockActionOut(
            item=ItemOut.model_validate(result.item, from_attributes=True),
            movement=MovementOut.model_validate(result.movement, from_attributes=True) if result.movement else None,
        )

    return router


products_router = build_router(ITEM_PRODUCT, "/api/v1/products", "products")
materials_router = build_router(ITEM_MATERIAL, "/api/v1/materials", "materials")
