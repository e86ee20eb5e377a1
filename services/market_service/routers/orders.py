"""Market orders router: checkout, order history and status lifecycle."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.common.config import get_settings
from libs.db.session import get_async_db
from services.market_service.models import OrderStatus
from services.market_service.schemas import (
    OrderCreate,
    OrderListResponse,
    OrderResponse,
    OrderStatusesResponse,
    OrderStatusUpdate,
    Pagination,
)
from services.market_service.services import order_workflow
from services.market_service.services.cart_lines import CartLine
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/orders", tags=["orders"])

settings = get_settings()


# ============================================================================
# CHECKOUT
# ============================================================================


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    order_in: OrderCreate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Place an order. Stock is checked and decremented atomically."""
    return await order_workflow.place_order(
        db,
        customer=current_user,
        items=[CartLine(item.product_id, item.quantity) for item in order_in.items],
    )


# ============================================================================
# ORDERS
# ============================================================================


@router.get("", response_model=OrderListResponse)
async def list_orders(
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """List orders visible to the caller, newest first."""
    orders, total = await order_workflow.list_orders(
        db, actor=current_user, status=status_filter, page=page, limit=limit
    )
    return OrderListResponse(
        orders=[OrderResponse.model_validate(o) for o in orders],
        pagination=Pagination(
            page=page,
            limit=limit,
            total=total,
            pages=order_workflow.page_count(total, limit),
        ),
    )


@router.get("/statuses", response_model=OrderStatusesResponse)
async def list_order_statuses():
    """All order statuses in lifecycle order."""
    return OrderStatusesResponse(statuses=list(order_workflow.ORDER_STATUSES))


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Get an order the caller is allowed to see."""
    return await order_workflow.get_order(db, order_id=order_id, actor=current_user)


@router.put("/{order_id}", response_model=OrderResponse)
async def update_order_status(
    order_id: uuid.UUID,
    status_update: OrderStatusUpdate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Update order status (store farmer or admin)."""
    return await order_workflow.update_order_status(
        db, order_id=order_id, new_status=status_update.status, actor=current_user
    )


@router.post("/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(
    order_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Cancel an order and put its stock back."""
    return await order_workflow.cancel_order(db, order_id=order_id, actor=current_user)
