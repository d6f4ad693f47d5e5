"""Fixed status and method vocabularies shared by models, schemas and rules.

Values are stored as short lowercase codes. ``LABELS`` carries the wording the
business uses on paper so a UI can render it without re-deriving anything.
"""

from __future__ import annotations

# ---- Sales orders (header)
ORDER_PENDING = "pending"
ORDER_PROCESSING = "processing"
ORDER_AWAITING_SHIPMENT = "awaiting_shipment"
ORDER_DONE = "done"

ORDER_STATUSES = (
    ORDER_PENDING,
    ORDER_PROCESSING,
    ORDER_AWAITING_SHIPMENT,
    ORDER_DONE,
)

# Header states that are only reachable once every line is completed.
ORDER_TERMINAL_STATUSES = frozenset({ORDER_AWAITING_SHIPMENT, ORDER_DONE})

# ---- Sales order lines
LINE_UNRECEIVED = "unreceived"
LINE_RECEIVED = "received"
LINE_COMPLETED = "completed"

# Ordered: a line may only move one step to the right at a time.
ORDER_LINE_STATUSES = (
    LINE_UNRECEIVED,
    LINE_RECEIVED,
    LINE_COMPLETED,
)

# ---- Purchases (header and lines share one vocabulary)
PURCHASE_DRAFT = "draft"
PURCHASE_SENT = "sent"
PURCHASE_PARTIALLY_ARRIVED = "partially_arrived"
PURCHASE_COMPLETED = "completed"

PURCHASE_STATUSES = (
    PURCHASE_DRAFT,
    PURCHASE_SENT,
    PURCHASE_PARTIALLY_ARRIVED,
    PURCHASE_COMPLETED,
)

# ---- Delivery methods
DELIVERY_SELF_PICKUP = "self_pickup"
DELIVERY_LOGISTICS = "logistics"
DELIVERY_FACTORY_SHIPMENT = "factory_shipment"
DELIVERY_AWAIT_NOTICE = "await_notice"

DELIVERY_METHODS = (
    DELIVERY_SELF_PICKUP,
    DELIVERY_LOGISTICS,
    DELIVERY_FACTORY_SHIPMENT,
    DELIVERY_AWAIT_NOTICE,
)

SHIPPING_DELIVERY_METHODS = frozenset({DELIVERY_LOGISTICS, DELIVERY_FACTORY_SHIPMENT})

# Checked in this order; the first blank one is reported.
SHIPPING_DETAIL_FIELDS = (
    "shipping_company",
    "shipping_address",
    "contact_person",
    "contact_phone",
)

# ---- Stock movements
MOVEMENT_IN = "in"
MOVEMENT_OUT = "out"
MOVEMENT_KINDS = (MOVEMENT_IN, MOVEMENT_OUT)

ACTION_IN = "in"
ACTION_OUT = "out"
ACTION_ADJUST = "adjust"
STOCK_ACTIONS = (ACTION_IN, ACTION_OUT, ACTION_ADJUST)

ADJUSTMENT_NOTE_PREFIX = "[adjust]"

# ---- Catalog item types
ITEM_PRODUCT = "product"
ITEM_MATERIAL = "material"
ITEM_TYPES = (ITEM_PRODUCT, ITEM_MATERIAL)

LABELS = {
    ORDER_PENDING: "待處理",
    ORDER_PROCESSING: "處理中",
    ORDER_AWAITING_SHIPMENT: "待出貨",
    ORDER_DONE: "已完成",
    LINE_UNRECEIVED: "未接收",
    LINE_RECEIVED: "已接收",
    LINE_COMPLETED: "已完成",
    PURCHASE_DRAFT: "草稿",
    PURCHASE_SENT: "已送出",
    PURCHASE_PARTIALLY_ARRIVED: "部分到貨",
    DELIVERY_SELF_PICKUP: "自取",
    DELIVERY_LOGISTICS: "物流",
    DELIVERY_FACTORY_SHIPMENT: "工廠發貨",
    DELIVERY_AWAIT_NOTICE: "等待通知",
    MOVEMENT_IN: "入庫",
    MOVEMENT_OUT: "出庫",
    ACTION_ADJUST: "調整",
}


def normalize_code(value: str | None) -> str:
    """Lowercase and trim a status or method code."""

    return (value or "").strip().lower()


def label_for(code: str) -> str:
    return LABELS.get(code, code)
