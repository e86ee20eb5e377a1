"""Market Service models package."""

from services.market_service.models.accounts import User
from services.market_service.models.catalog import Product, Review, Store
from services.market_service.models.commerce import CartItem, Order, OrderItem
from services.market_service.models.enums import (
    ORDER_STATUS_TRANSITIONS,
    OrderStatus,
    ProductCategory,
    Role,
)

__all__ = [
    "CartItem",
    "ORDER_STATUS_TRANSITIONS",
    "Order",
    "OrderItem",
    "OrderStatus",
    "Product",
    "ProductCategory",
    "Review",
    "Role",
    "Store",
    "User",
]
