"""Helpers shared by order and purchase documents."""

from __future__ import annotations

import random
from datetime import date
from decimal import Decimal, InvalidOperation

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import InvalidDocument
from .clock import compact_date

ORDER_ID_PREFIX = "O"
PURCHASE_ID_PREFIX = "P"
MAX_ID_ATTEMPTS = 20


def generate_document_id(prefix: str, *, today: date | None = None, digits: int | None = None) -> str:
    """``O-20240131-0042`` style identifier."""

    width = digits or settings.DOCUMENT_ID_RANDOM_DIGITS
    suffix = str(random.randrange(10**width)).zfill(width)
    return f"{prefix}-{compact_date(today)}-{suffix}"


def unique_document_id(db: Session, model, prefix: str) -> str:
    for _ in range(MAX_ID_ATTEMPTS):
        candidate = generate_document_id(prefix)
        if db.get(model, candidate) is None:
            return candidate
    raise InvalidDocument("id", "no free document number for today")


def clean_text(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_price(value: object, *, field: str = "price", allow_zero: bool = False) -> float:
    """Convert user-entered money (``"1,200"``, ``"$30"``) to a float."""

    if isinstance(value, bool) or value is None:
        raise InvalidDocument(field, "required")
    if isinstance(value, (int, float, Decimal)):
        amount = Decimal(str(value))
    else:
        cleaned = str(value).strip().replace("$", "").replace(",", "")
        try:
            amount = Decimal(cleaned)
        except InvalidOperation:
            raise InvalidDocument(field, "not a number") from None
    if not amount.is_finite():
        raise InvalidDocument(field, "not a number")
    if amount < 0 or (amount == 0 and not allow_zero):
        raise InvalidDocument(field, "must be positive")
    return float(amount)


def line_total(quantity: int, price: float) -> float:
    return round(quantity * price, 2)


def document_total(lines) -> float:
    return round(sum(line.total or 0 for line in lines), 2)
