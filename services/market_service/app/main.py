"""FastAPI application for the Market Service."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from libs.common.config import get_settings
from libs.common.middleware import add_observability_middleware
from services.market_service.routers import (
    cart_router,
    catalog_router,
    orders_router,
    users_router,
)


def create_app() -> FastAPI:
    """Create and configure the Market Service FastAPI app."""
    settings = get_settings()
    app = FastAPI(
        title="Harvest Market Service",
        version="0.1.0",
        description="Farmers marketplace: accounts, stores, produce, cart and orders.",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Structured logging + request tracing
    add_observability_middleware(app)

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "market"}

    app.include_router(users_router)
    app.include_router(catalog_router)
    app.include_router(cart_router)
    app.include_router(orders_router)

    return app


app = create_app()
