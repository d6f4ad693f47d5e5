import re

import pytest

from filtererp.core.exceptions import InvalidDocument, InvalidTransition, NotFound, StatusConflict
from filtererp.crud.purchases import (
    create_purchase,
    delete_purchase,
    get_purchase,
    list_purchases,
    purchase_status_counts,
    set_purchase_status,
    update_purchase_item_status,
    update_purchase_with_items,
)


def _payload(material, **overrides):
    payload = {
        "supplier_id": 3,
        "supplier_name": "Taoyuan Fibre",
        "purchaser": "Lin",
        "items": [{"material_id": material.id, "quantity": 40, "price": 12.5}],
    }
    payload.update(overrides)
    return payload


def test_create_purchase_defaults_to_draft(db_session, material):
    purchase = create_purchase(db_session, _payload(material))

    assert re.fullmatch(r"P-\d{8}-\d{4}", purchase.id)
    assert purchase.status == "draft"
    assert purchase.items[0].status == "draft"
    assert purchase.items[0].material_name == "Glass fibre roll"
    assert purchase.total_amount == 500.0


def test_purchase_lines_may_be_free_of_charge(db_session, material):
    purchase = create_purchase(
        db_session,
        _payload(material, items=[{"material_id": material.id, "quantity": 2}]),
    )
    assert purchase.items[0].price == 0.0
    assert purchase.total_amount == 0.0


def test_create_purchase_requires_supplier_and_lines(db_session, material):
    with pytest.raises(InvalidDocument):
        create_purchase(db_session, _payload(material, supplier_name="  "))
    with pytest.raises(InvalidDocument):
        create_purchase(db_session, _payload(material, items=[]))
    with pytest.raises(NotFound):
        create_purchase(db_session, _payload(material, items=[{"material_id": 404, "quantity": 1}]))


def test_purchase_header_and_lines_move_independently(db_session, material):
    purchase = create_purchase(db_session, _payload(material))
    line_id = purchase.items[0].id

    set_purchase_status(db_session, purchase, "completed")
    update_purchase_item_status(db_session, purchase, line_id, "sent")
    assert purchase.status == "completed"
    assert purchase.items[0].status == "sent"

    update_purchase_item_status(db_session, purchase, line_id, "draft")
    assert purchase.items[0].status == "draft"


def test_purchase_rejects_unknown_statuses(db_session, material):
    purchase = create_purchase(db_session, _payload(material))

    with pytest.raises(StatusConflict):
        set_purchase_status(db_session, purchase, "done")
    with pytest.raises(InvalidTransition):
        update_purchase_item_status(db_session, purchase, purchase.items[0].id, "received")


def test_update_purchase_with_items(db_session, material):
    purchase = create_purchase(db_session, _payload(material))
    line_id = purchase.items[0].id

    updated = update_purchase_with_items(
        db_session,
        purchase,
        {"status": "sent", "expected_delivery_date": "2024-03-01"},
        existing=[{"id": line_id, "updates": {"quantity": 10}}],
        new=[{"material_id": material.id, "quantity": 1, "price": "$30"}],
    )

    assert updated.status == "sent"
    assert updated.expected_delivery_date == "2024-03-01"
    assert [line.total for line in updated.items] == [125.0, 30.0]
    assert updated.total_amount == 155.0


def test_delete_and_list_purchases(db_session, material):
    kept = create_purchase(db_session, _payload(material))
    dropped = create_purchase(db_session, _payload(material, supplier_id=9))
    dropped_id = dropped.id
    set_purchase_status(db_session, kept, "partially_arrived")

    delete_purchase(db_session, dropped)

    assert get_purchase(db_session, dropped_id) is None
    assert [p.id for p in list_purchases(db_session, status="partially_arrived")] == [kept.id]
    assert list_purchases(db_session, supplier_id=9) == []
    assert purchase_status_counts(db_session)["partially_arrived"] == 1
