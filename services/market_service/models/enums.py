"""Enum definitions for market service models."""

import enum

from libs.auth.models import Role


def enum_values(enum_cls):
    """Return persistent DB values for SAEnum mappings."""
    return [member.value for member in enum_cls]


class ProductCategory(str, enum.Enum):
    FRUIT = "fruit"
    VEGGIE = "veggie"
    WHEAT = "wheat"
    SUGAR_CANE = "sugar_cane"
    LENTILS = "lentils"


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    DELIVERED = "delivered"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Forward moves along the lifecycle; cancellation is reachable from any
# status that is not already cancelled.
ORDER_STATUS_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.DELIVERED: frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED}),
    OrderStatus.COMPLETED: frozenset({OrderStatus.CANCELLED}),
    OrderStatus.CANCELLED: frozenset(),
}

__all__ = [
    "ORDER_STATUS_TRANSITIONS",
    "OrderStatus",
    "ProductCategory",
    "Role",
    "enum_values",
]
