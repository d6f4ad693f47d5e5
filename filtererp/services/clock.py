from __future__ import annotations

from datetime import date, datetime, timezone


def utcnow_iso() -> str:
    """Current UTC time as ``YYYY-MM-DDTHH:MM:SS.ffffffZ``.

    Microseconds keep ledger rows written in the same second sortable.
    """
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def today_iso() -> str:
    return date.today().isoformat()


def compact_date(value: date | None = None) -> str:
    """``20240131`` style date used in document numbers."""

    return (value or date.today()).strftime("%Y%m%d")
