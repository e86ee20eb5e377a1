"""Market service routers package."""

from services.market_service.routers.cart import router as cart_router
from services.market_service.routers.catalog import router as catalog_router
from services.market_service.routers.orders import router as orders_router
from services.market_service.routers.users import router as users_router

__all__ = [
    "cart_router",
    "catalog_router",
    "orders_router",
    "users_router",
]
