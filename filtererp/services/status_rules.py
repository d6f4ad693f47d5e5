"""Line-item transitions and the header status they imply.

Everything in this module is pure: it takes status codes and returns a status
code or raises a typed error. Persistence lives in ``crud.orders`` and
``crud.purchases``.

Order workflow::

    line:   unreceived -> received -> completed      (one step at a time)
    header: any unreceived line          -> pending
            else any received line       -> processing
            else (all lines completed)   -> awaiting_shipment or done

The least-progressed line caps the header. Once every line is completed the
header may sit at either terminal-adjacent state.
"""

from __future__ import annotations

from typing import Iterable, Mapping

from ..core.exceptions import InvalidTransition, MissingShippingDetails, SkippedTransition, StatusConflict
from ..core.statuses import (
    LINE_COMPLETED,
    LINE_RECEIVED,
    LINE_UNRECEIVED,
    ORDER_AWAITING_SHIPMENT,
    ORDER_LINE_STATUSES,
    ORDER_PENDING,
    ORDER_PROCESSING,
    ORDER_STATUSES,
    ORDER_TERMINAL_STATUSES,
    PURCHASE_STATUSES,
    SHIPPING_DELIVERY_METHODS,
    SHIPPING_DETAIL_FIELDS,
    normalize_code,
)

RULE_UNRECEIVED = "unreceived_requires_pending"
RULE_RECEIVED = "received_requires_processing"
RULE_COMPLETED = "completed_requires_shipment_or_done"
RULE_TERMINAL = "shipment_requires_all_completed"
RULE_UNKNOWN = "unknown_status"

_LINE_RANK = {status: rank for rank, status in enumerate(ORDER_LINE_STATUSES)}


# ---------------------------------------------------------------------------
# Line items
# ---------------------------------------------------------------------------


def check_order_line_transition(current: str | None, requested: str) -> str:
    """Validate an order line moving from ``current`` to ``requested``.

    ``current`` is ``None`` for a line that does not exist yet; any known
    status is acceptable then. Returns the normalized requested status.
    """

    target = normalize_code(requested)
    if target not in _LINE_RANK:
        raise InvalidTransition(current, requested, reason=RULE_UNKNOWN)
    if current is None or current == target:
        return target
    if current not in _LINE_RANK:
        raise InvalidTransition(current, requested, reason=RULE_UNKNOWN)

    step = _LINE_RANK[target] - _LINE_RANK[current]
    if step < 0:
        raise InvalidTransition(current, target, reason="backward")
    if step > 1:
        raise SkippedTransition(current, target)
    return target


def check_purchase_line_status(requested: str) -> str:
    """Purchase lines accept any status in the purchase vocabulary."""

    target = normalize_code(requested)
    if target not in PURCHASE_STATUSES:
        raise InvalidTransition(None, requested, reason=RULE_UNKNOWN)
    return target


# ---------------------------------------------------------------------------
# Order header
# ---------------------------------------------------------------------------


def allowed_order_statuses(line_statuses: Iterable[str]) -> frozenset[str]:
    """Every header status compatible with the given line statuses."""

    statuses = list(line_statuses)
    if not statuses:
        return frozenset(ORDER_STATUSES)
    if LINE_UNRECEIVED in statuses:
        return frozenset({ORDER_PENDING})
    if LINE_RECEIVED in statuses:
        return frozenset({ORDER_PROCESSING})
    return ORDER_TERMINAL_STATUSES


def derive_required_status(line_statuses: Iterable[str]) -> str | None:
    """The header status the lines call for, or ``None`` when unconstrained.

    When every line is completed this returns ``awaiting_shipment``, the
    value a header is moved to automatically; ``done`` is also accepted by
    :func:`validate_order_status` in that state.
    """

    statuses = list(line_statuses)
    if not statuses:
        return None
    if LINE_UNRECEIVED in statuses:
        return ORDER_PENDING
    if LINE_RECEIVED in statuses:
        return ORDER_PROCESSING
    if all(status == LINE_COMPLETED for status in statuses):
        return ORDER_AWAITING_SHIPMENT
    # Only reachable with codes outside the line vocabulary.
    raise InvalidTransition(None, next(s for s in statuses if s not in _LINE_RANK), reason=RULE_UNKNOWN)


def validate_order_status(requested: str, line_statuses: Iterable[str]) -> str:
    """Reject a manual header status that contradicts the lines."""

    target = normalize_code(requested)
    if target not in ORDER_STATUSES:
        raise StatusConflict(RULE_UNKNOWN, requested=requested, required=list(ORDER_STATUSES))

    statuses = list(line_statuses)
    if not statuses:
        return target

    required = derive_required_status(statuses)
    # Shipping or closing an order with unfinished lines is reported as such,
    # ahead of the per-line rules.
    if target in ORDER_TERMINAL_STATUSES and required != ORDER_AWAITING_SHIPMENT:
        raise StatusConflict(RULE_TERMINAL, requested=target, required=required)
    if required == ORDER_PENDING and target != ORDER_PENDING:
        raise StatusConflict(RULE_UNRECEIVED, requested=target, required=ORDER_PENDING)
    if required == ORDER_PROCESSING and target != ORDER_PROCESSING:
        raise StatusConflict(RULE_RECEIVED, requested=target, required=ORDER_PROCESSING)
    if required == ORDER_AWAITING_SHIPMENT and target not in ORDER_TERMINAL_STATUSES:
        raise StatusConflict(RULE_COMPLETED, requested=target, required=sorted(ORDER_TERMINAL_STATUSES))
    return target


def reconcile_order_status(current: str | None, line_statuses: Iterable[str]) -> str:
    """Header status after a line change: keep ``current`` if still allowed."""

    statuses = list(line_statuses)
    if current in allowed_order_statuses(statuses):
        return current  # type: ignore[return-value]
    return derive_required_status(statuses) or ORDER_PENDING


# ---------------------------------------------------------------------------
# Purchase header
# ---------------------------------------------------------------------------


def validate_purchase_status(requested: str) -> str:
    target = normalize_code(requested)
    if target not in PURCHASE_STATUSES:
        raise StatusConflict(RULE_UNKNOWN, requested=requested, required=list(PURCHASE_STATUSES))
    return target


# ---------------------------------------------------------------------------
# Delivery
# ---------------------------------------------------------------------------


def validate_shipping_details(delivery_method: str | None, fields: Mapping[str, object]) -> None:
    """Shipping deliveries need company, address, contact person and phone."""

    method = normalize_code(delivery_method)
    if method not in SHIPPING_DELIVERY_METHODS:
        return
    for name in SHIPPING_DETAIL_FIELDS:
        value = fields.get(name)
        if value is None or not str(value).strip():
            raise MissingShippingDetails(name, method)


__all__ = [
    "RULE_COMPLETED",
    "RULE_RECEIVED",
    "RULE_TERMINAL",
    "RULE_UNKNOWN",
    "RULE_UNRECEIVED",
    "allowed_order_statuses",
    "check_order_line_transition",
    "check_purchase_line_status",
    "derive_required_status",
    "reconcile_order_status",
    "validate_order_status",
    "validate_purchase_status",
    "validate_shipping_details",
]
