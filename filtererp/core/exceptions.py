"""Typed failures raised by the stock and document rules.

Each error carries a machine-readable ``kind`` plus the parameters needed to
explain it. Nothing here produces user-facing wording beyond a short English
message for logs; the HTTP layer turns ``kind`` and ``params`` into the
response envelope.
"""

from __future__ import annotations

from typing import Any


class ErpError(Exception):
    """Base class for every rule violation the core reports."""

    kind: str = "ErpError"
    status_code: int = 400

    def __init__(self, message: str, **params: Any) -> None:
        super().__init__(message)
        self.message = message
        self.params = params


class InvalidQuantity(ErpError):
    kind = "InvalidQuantity"
    status_code = 422

    def __init__(self, quantity: Any, reason: str = "must_be_positive") -> None:
        super().__init__(f"Invalid quantity {quantity!r}: {reason}", quantity=quantity, reason=reason)


class InsufficientStock(ErpError):
    kind = "InsufficientStock"
    status_code = 409

    def __init__(self, *, item_type: str, item_id: int, requested: int, available: int) -> None:
        super().__init__(
            f"Cannot remove {requested} from {item_type} {item_id}: only {available} in stock",
            item_type=item_type,
            item_id=item_id,
            requested=requested,
            available=available,
        )


class InvalidTransition(ErpError):
    """A line-item status change that the workflow does not allow."""

    kind = "InvalidTransition"
    status_code = 409

    def __init__(self, current: str | None, requested: str, reason: str = "backward") -> None:
        super().__init__(
            f"Line status cannot change from {current!r} to {requested!r} ({reason})",
            current=current,
            requested=requested,
            reason=reason,
        )


class SkippedTransition(InvalidTransition):
    """Jumping over an intermediate line status."""

    def __init__(self, current: str, requested: str) -> None:
        super().__init__(current, requested, reason="skipped")


class StatusConflict(ErpError):
    kind = "StatusConflict"
    status_code = 409

    def __init__(self, rule: str, *, requested: str | None = None, required: Any = None) -> None:
        super().__init__(
            f"Status {requested!r} violates rule {rule}",
            rule=rule,
            requested=requested,
            required=required,
        )


class MissingShippingDetails(ErpError):
    kind = "MissingShippingDetails"
    status_code = 422

    def __init__(self, field: str, delivery_method: str) -> None:
        super().__init__(
            f"{field} is required for delivery method {delivery_method}",
            field=field,
            delivery_method=delivery_method,
        )


class InvalidDocument(ErpError):
    kind = "InvalidDocument"
    status_code = 422

    def __init__(self, field: str, reason: str) -> None:
        super().__init__(f"{field}: {reason}", field=field, reason=reason)


class Unauthenticated(ErpError):
    kind = "Unauthenticated"
    status_code = 401

    def __init__(self, reason: str = "missing_session") -> None:
        super().__init__("An authenticated user is required", reason=reason)


class NotFound(ErpError):
    kind = "NotFound"
    status_code = 404

    def __init__(self, entity: str, identifier: Any) -> None:
        super().__init__(f"{entity} {identifier!r} not found", entity=entity, id=identifier)


class MutationFailed(ErpError):
    """A write failed after validation passed.

    ``stock_changed`` tells the caller whether the stored quantity moved
    without a matching ledger row. The applier rolls the transaction back, so
    it is ``False`` unless a store commits outside that transaction.
    """

    status_code = 503

    def __init__(self, message: str, *, item_type: str, item_id: int, stock_changed: bool, reason: str) -> None:
        super().__init__(
            message,
            item_type=item_type,
            item_id=item_id,
            stock_changed=stock_changed,
            reason=reason,
        )

    @property
    def stock_changed(self) -> bool:
        return bool(self.params.get("stock_changed"))


class QuantityUpdateFailed(MutationFailed):
    kind = "QuantityUpdateFailed"


class LedgerAppendFailed(MutationFailed):
    kind = "LedgerAppendFailed"


__all__ = [
    "ErpError",
    "InsufficientStock",
    "InvalidDocument",
    "InvalidQuantity",
    "InvalidTransition",
    "LedgerAppendFailed",
    "MissingShippingDetails",
    "MutationFailed",
    "NotFound",
    "QuantityUpdateFailed",
    "SkippedTransition",
    "StatusConflict",
    "Unauthenticated",
]
