import itertools

import pytest

from filtererp.core.exceptions import InvalidTransition, MissingShippingDetails, SkippedTransition, StatusConflict
from filtererp.services.status_rules import (
    RULE_COMPLETED,
    RULE_RECEIVED,
    RULE_TERMINAL,
    RULE_UNRECEIVED,
    allowed_order_statuses,
    check_order_line_transition,
    check_purchase_line_status,
    derive_required_status,
    reconcile_order_status,
    validate_order_status,
    validate_purchase_status,
    validate_shipping_details,
)


def test_line_walks_forward_one_step_at_a_time():
    assert check_order_line_transition("unreceived", "received") == "received"
    assert check_order_line_transition("received", "completed") == "completed"


def test_line_cannot_skip_received():
    with pytest.raises(SkippedTransition) as excinfo:
        check_order_line_transition("unreceived", "completed")
    assert excinfo.value.kind == "InvalidTransition"
    assert excinfo.value.params["reason"] == "skipped"


@pytest.mark.parametrize("current, requested", [("received", "unreceived"), ("completed", "received")])
def test_line_cannot_move_backward(current, requested):
    with pytest.raises(InvalidTransition) as excinfo:
        check_order_line_transition(current, requested)
    assert excinfo.value.params["reason"] == "backward"


def test_same_status_and_new_lines_are_accepted():
    assert check_order_line_transition("received", "received") == "received"
    assert check_order_line_transition(None, "completed") == "completed"
    assert check_order_line_transition("unreceived", " Received ") == "received"


def test_unknown_line_status_is_rejected():
    with pytest.raises(InvalidTransition) as excinfo:
        check_order_line_transition("unreceived", "shipped")
    assert excinfo.value.params["reason"] == "unknown_status"


@pytest.mark.parametrize("statuses", list(itertools.permutations(["unreceived", "completed", "completed"])))
def test_unreceived_line_always_pins_pending(statuses):
    assert derive_required_status(statuses) == "pending"


def test_derivation_precedence():
    assert derive_required_status([]) is None
    assert derive_required_status(["completed", "received"]) == "processing"
    assert derive_required_status(["completed", "completed"]) == "awaiting_shipment"
    assert allowed_order_statuses(["completed"]) == {"awaiting_shipment", "done"}
    assert allowed_order_statuses([]) == {"pending", "processing", "awaiting_shipment", "done"}


@pytest.mark.parametrize("requested", ["pending", "processing"])
def test_all_completed_rejects_early_header(requested):
    with pytest.raises(StatusConflict) as excinfo:
        validate_order_status(requested, ["completed", "completed"])
    assert excinfo.value.params["rule"] == RULE_COMPLETED


@pytest.mark.parametrize("requested", ["awaiting_shipment", "done"])
def test_all_completed_accepts_shipment_or_done(requested):
    assert validate_order_status(requested, ["completed", "completed"]) == requested


@pytest.mark.parametrize(
    "requested, lines, rule",
    [
        ("processing", ["unreceived", "received"], RULE_UNRECEIVED),
        ("pending", ["received", "completed"], RULE_RECEIVED),
        ("done", ["received", "completed"], RULE_TERMINAL),
        ("awaiting_shipment", ["unreceived"], RULE_TERMINAL),
    ],
)
def test_conflicting_header_names_the_rule(requested, lines, rule):
    with pytest.raises(StatusConflict) as excinfo:
        validate_order_status(requested, lines)
    assert excinfo.value.params["rule"] == rule


def test_header_without_lines_is_free():
    assert validate_order_status("done", []) == "done"


def test_unknown_header_status():
    with pytest.raises(StatusConflict) as excinfo:
        validate_order_status("shipped", ["completed"])
    assert excinfo.value.params["rule"] == "unknown_status"


def test_reconcile_keeps_allowed_current_and_forces_otherwise():
    assert reconcile_order_status("done", ["completed", "completed"]) == "done"
    assert reconcile_order_status("pending", ["completed", "completed"]) == "awaiting_shipment"
    assert reconcile_order_status("awaiting_shipment", ["completed", "received"]) == "processing"
    assert reconcile_order_status("processing", []) == "processing"


def test_purchase_statuses_are_unordered_but_closed():
    assert check_purchase_line_status("completed") == "completed"
    assert check_purchase_line_status("draft") == "draft"
    assert validate_purchase_status("partially_arrived") == "partially_arrived"
    with pytest.raises(InvalidTransition):
        check_purchase_line_status("received")
    with pytest.raises(StatusConflict):
        validate_purchase_status("done")


SHIPPING = {
    "shipping_company": "Acme Freight",
    "shipping_address": "No. 1, Industrial Rd",
    "contact_person": "Chen",
    "contact_phone": "02-1234-5678",
}


@pytest.mark.parametrize("method", ["logistics", "factory_shipment"])
def test_shipping_methods_need_contact_phone(method):
    with pytest.raises(MissingShippingDetails) as excinfo:
        validate_shipping_details(method, {**SHIPPING, "contact_phone": "  "})
    assert excinfo.value.params == {"field": "contact_phone", "delivery_method": method}


def test_first_missing_shipping_field_is_reported():
    with pytest.raises(MissingShippingDetails) as excinfo:
        validate_shipping_details("logistics", {"contact_phone": "1"})
    assert excinfo.value.params["field"] == "shipping_company"


@pytest.mark.parametrize("method", ["self_pickup", "await_notice", None])
def test_other_methods_need_no_shipping_details(method):
    assert validate_shipping_details(method, {}) is None
    validate_shipping_details("logistics", SHIPPING)
