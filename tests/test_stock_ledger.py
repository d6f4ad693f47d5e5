import pytest
from sqlalchemy import text

from filtererp.core.exceptions import (
    InsufficientStock,
    InvalidQuantity,
    LedgerAppendFailed,
    QuantityUpdateFailed,
    Unauthenticated,
)
from filtererp.crud import inventory
from filtererp.crud.inventory import (
    adjust_stock,
    count_movements,
    get_movement_history,
    ledger_balance,
    record_movement,
)
from filtererp.models.inventory import LedgerImmutableError
from filtererp.services.stock_actions import apply_user_stock_action, preview_stock_action


def test_stock_equals_opening_plus_signed_movements(db_session, product, session_ctx):
    moves = [("in", 4), ("out", 6), ("in", 1), ("out", 2), ("in", 12)]
    for kind, quantity in moves:
        record_movement(db_session, product, kind, quantity, session_ctx)

    expected = 10 + sum(q if k == "in" else -q for k, q in moves)
    assert product.stock == expected == 19
    assert ledger_balance(db_session, "product", product.id) == product.stock


def test_out_beyond_stock_leaves_item_and_ledger_untouched(db_session, product, session_ctx):
    before = count_movements(db_session, "product", product.id)

    with pytest.raises(InsufficientStock) as excinfo:
        record_movement(db_session, product, "out", 11, session_ctx)

    assert excinfo.value.params == {"item_type": "product", "item_id": product.id, "requested": 11, "available": 10}
    db_session.refresh(product)
    assert product.stock == 10
    assert count_movements(db_session, "product", product.id) == before


@pytest.mark.parametrize("quantity", [0, -3, 1.5, "4", True, None])
def test_record_movement_rejects_bad_quantities(db_session, product, session_ctx, quantity):
    with pytest.raises(InvalidQuantity):
        record_movement(db_session, product, "in", quantity, session_ctx)
    assert product.stock == 10


def test_record_movement_requires_session(db_session, product):
    with pytest.raises(Unauthenticated):
        record_movement(db_session, product, "in", 1, None)
    assert count_movements(db_session, "product", product.id) == 1


def test_adjust_to_current_stock_is_a_noop(db_session, product, session_ctx):
    before = count_movements(db_session, "product", product.id)

    assert adjust_stock(db_session, product, 10, session_ctx) is None

    assert product.stock == 10
    assert count_movements(db_session, "product", product.id) == before


@pytest.mark.parametrize(
    "target, kind, magnitude",
    [(7, "out", 3), (15, "in", 5), (0, "out", 10)],
)
def test_adjust_synthesizes_a_single_movement(db_session, product, session_ctx, target, kind, magnitude):
    before = count_movements(db_session, "product", product.id)

    movement = adjust_stock(db_session, product, target, session_ctx, note="cycle count")

    assert movement.kind == kind
    assert movement.quantity == magnitude
    assert movement.note == "[adjust] cycle count"
    assert product.stock == target
    assert count_movements(db_session, "product", product.id) == before + 1


def test_adjust_rejects_negative_target(db_session, product, session_ctx):
    with pytest.raises(InvalidQuantity) as excinfo:
        adjust_stock(db_session, product, -1, session_ctx)
    assert excinfo.value.params["reason"] == "must_not_be_negative"


def test_history_is_newest_first_with_user_names(db_session, product, session_ctx):
    record_movement(db_session, product, "out", 2, session_ctx, note="to line 2")
    adjust_stock(db_session, product, 5, session_ctx)

    history = get_movement_history(db_session, "product", product.id)

    assert [m.note for m in history] == ["[adjust]", "to line 2", "opening stock"]
    assert {m.user_display_name for m in history} == {"Warehouse Lin"}
    assert [m.signed_quantity for m in history] == [-3, -2, 10]


def test_concurrent_change_is_reported_without_writing(db_session, product, session_ctx, monkeypatch):
    real_lock = inventory._lock_item

    def racing_lock(db, item):
        locked = real_lock(db, item)
        db.execute(text("UPDATE products SET stock = 4 WHERE id = :id"), {"id": item.id})
        return locked

    monkeypatch.setattr(inventory, "_lock_item", racing_lock)

    with pytest.raises(QuantityUpdateFailed) as excinfo:
        record_movement(db_session, product, "out", 1, session_ctx)

    assert excinfo.value.stock_changed is False
    assert excinfo.value.params["reason"] == "concurrent_update"
    db_session.refresh(product)
    assert product.stock == 10
    assert count_movements(db_session, "product", product.id) == 1


def test_failed_ledger_append_rolls_back_quantity(db_session, product, session_ctx, monkeypatch):
    monkeypatch.setattr(inventory, "utcnow_iso", lambda: None)

    with pytest.raises(LedgerAppendFailed) as excinfo:
        record_movement(db_session, product, "in", 5, session_ctx)

    assert excinfo.value.stock_changed is False
    db_session.refresh(product)
    assert product.stock == 10
    assert ledger_balance(db_session, "product", product.id) == 10


def test_recorded_movements_cannot_be_edited(db_session, product, session_ctx):
    movement = record_movement(db_session, product, "in", 1, session_ctx)
    movement.quantity = 100

    with pytest.raises(LedgerImmutableError):
        db_session.flush()
    db_session.rollback()


def test_low_stock_walkthrough(db_session, session_ctx):
    from filtererp.crud.catalog import create_item

    item = create_item(db_session, "material", {"name": "Frame", "stock": 10, "safety_stock": 5}, session_ctx)
    baseline = count_movements(db_session, "material", item.id)

    record_movement(db_session, item, "out", 3, session_ctx)
    assert item.stock == 7
    assert item.is_low_stock is False

    record_movement(db_session, item, "out", 5, session_ctx)
    assert item.stock == 2
    assert item.is_low_stock is True

    assert adjust_stock(db_session, item, 2, session_ctx) is None
    assert count_movements(db_session, "material", item.id) == baseline + 2

    movement = adjust_stock(db_session, item, 0, session_ctx)
    assert (movement.kind, movement.quantity) == ("out", 2)
    assert item.stock == 0
    assert count_movements(db_session, "material", item.id) == baseline + 3
    assert ledger_balance(db_session, "material", item.id) == 0


@pytest.mark.parametrize("action, quantity", [("in", 2), ("out", 2), ("adjust", 4), ("adjust", 10)])
def test_stock_actions_require_session(db_session, product, action, quantity):

    with pytest.raises(Unauthenticated):
        apply_user_stock_action(db_session, product, action, quantity, None, None)
    with pytest.raises(Unauthenticated):
        preview_stock_action(product, action, quantity, None, None)

    db_session.refresh(product)
    assert product.stock == 10
    assert count_movements(db_session, "product", product.id) == 1
