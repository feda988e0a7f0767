"""
Status constants for purchase orders and the project items they claim.
Stored in lowercase, matching the values persisted in the database.
"""

from typing import Dict, FrozenSet, List


class OrderStatus:
    DRAFT = "draft"
    SENT = "sent"
    CONFIRMED = "confirmed"
    RECEIVED = "received"
    CANCELLED = "cancelled"

    @classmethod
    def all(cls) -> List[str]:
        return [cls.DRAFT, cls.SENT, cls.CONFIRMED, cls.RECEIVED, cls.CANCELLED]


class ItemStatus:
    PENDING = "pending"
    ORDERED = "ordered"
    RECEIVED = "received"

    @classmethod
    def all(cls) -> List[str]:
        return [cls.PENDING, cls.ORDERED, cls.RECEIVED]


ACTIVE_ORDER_STATUSES: FrozenSet[str] = frozenset(s for s in OrderStatus.all() if s != OrderStatus.CANCELLED)

# Item status mirrored from the status of the order that owns it.
ITEM_STATUS_BY_ORDER_STATUS: Dict[str, str] = {
    OrderStatus.DRAFT: ItemStatus.PENDING,
    OrderStatus.SENT: ItemStatus.PENDING,
    OrderStatus.CONFIRMED: ItemStatus.ORDERED,
    OrderStatus.RECEIVED: ItemStatus.RECEIVED,
}


def is_active_order_status(status: str) -> bool:
    return status in ACTIVE_ORDER_STATUSES


def item_status_for_order(order_status: str) -> str:
    """
    Return the fulfillment status an item must carry while owned by an order
    in ``order_status``. Cancelled orders own nothing, so they have no mapping.
    """
    try:
        return ITEM_STATUS_BY_ORDER_STATUS[order_status]
    except KeyError:
        raise ValueError(f"No item status for order status {order_status!r}") from None
