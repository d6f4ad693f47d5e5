import re

import pytest

from filtererp.core.exceptions import (
    InvalidDocument,
    MissingShippingDetails,
    NotFound,
    SkippedTransition,
    StatusConflict,
)
from filtererp.crud.orders import (
    create_order,
    delete_order,
    get_order,
    list_orders,
    order_status_counts,
    set_order_status,
    update_order_item_status,
    update_order_with_items,
)
from filtererp.models.order import Order, OrderItem


def _payload(product, **overrides):
    payload = {
        "distributor_id": 7,
        "distributor_name": "North Filters",
        "customer_po": "PO-881",
        "delivery_method": "self_pickup",
        "items": [
            {"product_id": product.id, "quantity": 3, "price": 120},
            {"product_id": product.id, "quantity": 2, "price": "1,050"},
        ],
    }
    payload.update(overrides)
    return payload


def test_create_order_computes_totals_and_defaults(db_session, product):
    order = create_order(db_session, _payload(product))

    assert re.fullmatch(r"O-\d{8}-\d{4}", order.id)
    assert order.status == "pending"
    assert [line.status for line in order.items] == ["unreceived", "unreceived"]
    assert [line.total for line in order.items] == [360.0, 2100.0]
    assert order.total_amount == 2460.0
    assert order.items[0].product_name == "鐵框 MERV13 24x24x2"
    assert order.delivery_date == order.order_date


def test_logistics_order_without_phone_is_rejected(db_session, product):
    payload = _payload(
        product,
        delivery_method="logistics",
        shipping_company="Acme Freight",
        shipping_address="No. 1, Industrial Rd",
        contact_person="Chen",
        contact_phone="",
    )

    with pytest.raises(MissingShippingDetails) as excinfo:
        create_order(db_session, payload)

    assert excinfo.value.params["field"] == "contact_phone"
    assert db_session.query(Order).count() == 0


@pytest.mark.parametrize(
    "overrides, field",
    [
        ({"distributor_id": None}, "distributor_id"),
        ({"items": []}, "items"),
        ({"delivery_method": None}, "delivery_method"),
        ({"delivery_method": "teleport"}, "delivery_method"),
    ],
)
def test_create_order_rejects_incomplete_documents(db_session, product, overrides, field):
    with pytest.raises(InvalidDocument) as excinfo:
        create_order(db_session, _payload(product, **overrides))
    assert excinfo.value.params["field"] == field
    assert db_session.query(OrderItem).count() == 0


def test_create_order_rejects_zero_price(db_session, product):
    payload = _payload(product, items=[{"product_id": product.id, "quantity": 1, "price": 0}])
    with pytest.raises(InvalidDocument):
        create_order(db_session, payload)


@pytest.mark.parametrize("price", ["NaN", "nan", float("nan"), "Infinity", float("inf")])
def test_create_order_rejects_non_finite_price(db_session, product, price):
    payload = _payload(product, items=[{"product_id": product.id, "quantity": 1, "price": price}])

    with pytest.raises(InvalidDocument) as excinfo:
        create_order(db_session, payload)

    assert excinfo.value.params == {"field": "price", "reason": "not a number"}
    assert db_session.query(Order).count() == 0


def test_create_order_rejects_unknown_product(db_session, product):
    payload = _payload(product, items=[{"product_id": 999, "quantity": 1, "price": 10}])
    with pytest.raises(NotFound):
        create_order(db_session, payload)


def test_line_status_changes_drive_the_header(db_session, product):
    order = create_order(db_session, _payload(product))
    first, second = [line.id for line in order.items]

    update_order_item_status(db_session, order, first, "received")
    assert order.status == "pending"

    update_order_item_status(db_session, order, second, "received")
    assert order.status == "processing"

    update_order_item_status(db_session, order, first, "completed")
    update_order_item_status(db_session, order, second, "completed")
    assert order.status == "awaiting_shipment"

    assert set_order_status(db_session, order, "done").status == "done"


def test_skipped_line_status_leaves_order_untouched(db_session, product):
    order = create_order(db_session, _payload(product))
    line_id = order.items[0].id

    with pytest.raises(SkippedTransition):
        update_order_item_status(db_session, order, line_id, "completed")

    db_session.refresh(order)
    assert order.items[0].status == "unreceived"
    assert order.status == "pending"


def test_manual_header_status_must_match_lines(db_session, product):
    order = create_order(db_session, _payload(product))

    with pytest.raises(StatusConflict) as excinfo:
        set_order_status(db_session, order, "processing")

    assert excinfo.value.params["rule"] == "unreceived_requires_pending"
    db_session.refresh(order)
    assert order.status == "pending"


def test_update_applies_lines_before_checking_header(db_session, product):
    order = create_order(db_session, _payload(product))
    first, second = [line.id for line in order.items]

    updated = update_order_with_items(
        db_session,
        order,
        {"status": "processing", "notes": "rush"},
        existing=[
            {"id": first, "updates": {"status": "received"}},
            {"id": second, "updates": {"status": "received", "quantity": 5}},
        ],
    )

    assert updated.status == "processing"
    assert updated.notes == "rush"
    assert updated.total_amount == 360.0 + 5 * 1050.0


def test_update_with_conflicting_header_rejects_whole_request(db_session, product):
    order = create_order(db_session, _payload(product))
    first = order.items[0].id

    with pytest.raises(StatusConflict):
        update_order_with_items(
            db_session,
            order,
            {"status": "done", "notes": "should not stick"},
            existing=[{"id": first, "updates": {"status": "received"}}],
        )

    db_session.refresh(order)
    assert order.notes is None
    assert [line.status for line in order.items] == ["unreceived", "unreceived"]


def test_update_without_header_status_reconciles(db_session, product):
    order = create_order(db_session, _payload(product))
    first, second = [line.id for line in order.items]
    update_order_item_status(db_session, order, first, "received")

    updated = update_order_with_items(db_session, order, {}, deleted=[second])

    assert len(updated.items) == 1
    assert updated.status == "processing"
    assert updated.total_amount == 360.0


def test_update_adds_new_lines_and_rejects_emptying(db_session, product):
    order = create_order(db_session, _payload(product))
    ids = [line.id for line in order.items]

    updated = update_order_with_items(
        db_session,
        order,
        {},
        new=[{"product_id": product.id, "quantity": 1, "price": 99}],
    )
    assert len(updated.items) == 3
    assert updated.items[-1].status == "unreceived"

    with pytest.raises(InvalidDocument):
        update_order_with_items(db_session, order, {}, deleted=[line.id for line in updated.items])
    db_session.refresh(order)
    assert [line.id for line in order.items][:2] == ids


def test_update_keeps_shipping_rule(db_session, product):
    order = create_order(db_session, _payload(product))

    with pytest.raises(MissingShippingDetails):
        update_order_with_items(db_session, order, {"delivery_method": "factory_shipment"})


def test_delete_order_removes_lines(db_session, product):
    order = create_order(db_session, _payload(product))
    order_id = order.id

    delete_order(db_session, order)

    assert get_order(db_session, order_id) is None
    assert db_session.query(OrderItem).count() == 0


def test_list_and_count_by_status(db_session, product):
    first = create_order(db_session, _payload(product))
    create_order(db_session, _payload(product, distributor_id=8, distributor_name="South"))
    for line in list(first.items):
        update_order_item_status(db_session, first, line.id, "received")

    assert [o.id for o in list_orders(db_session, status="processing")] == [first.id]
    assert len(list_orders(db_session, distributor_id=8)) == 1
    assert order_status_counts(db_session) == {
        "pending": 1,
        "processing": 1,
        "awaiting_shipment": 0,
        "done": 0,
    }
