"""Market cart router: server-backed cart for signed-in customers."""

import uuid

from fastapi import APIRouter, Depends, status
from services.market_service.schemas import (
    CartItemCreate,
    CartMergeRequest,
    CartResponse,
    OrderResponse,
)
from services.market_service.services.cart_lines import CartLine
from services.market_service.services.cart_ops import CustomerCart, get_customer_cart

router = APIRouter(prefix="/cart", tags=["cart"])


@router.get("", response_model=CartResponse)
async def get_cart(cart: CustomerCart = Depends(get_customer_cart)):
    """Get current cart priced at today's prices."""
    return await cart.summary()


@router.post("", response_model=CartResponse)
async def add_to_cart(
    item_in: CartItemCreate,
    cart: CustomerCart = Depends(get_customer_cart),
):
    """Add item to cart. Stock is only checked at checkout."""
    await cart.add_item(item_in.product_id, item_in.quantity)
    return await cart.summary()


@router.delete("", response_model=CartResponse)
async def clear_cart(cart: CustomerCart = Depends(get_customer_cart)):
    await cart.clear()
    return await cart.summary()


@router.post("/merge", response_model=CartResponse)
async def merge_local_cart(
    merge_in: CartMergeRequest,
    cart: CustomerCart = Depends(get_customer_cart),
):
    """Merge the cart a shopper built before signing in."""
    await cart.merge(CartLine(item.product_id, item.quantity) for item in merge_in.items)
    return await cart.summary()


@router.post(
    "/checkout", response_model=OrderResponse, status_code=status.HTTP_201_CREATED
)
async def checkout_cart(cart: CustomerCart = Depends(get_customer_cart)):
    """Place an order for the whole cart and empty it."""
    return await cart.checkout()


@router.delete("/{product_id}", response_model=CartResponse)
async def remove_cart_item(
    product_id: uuid.UUID,
    cart: CustomerCart = Depends(get_customer_cart),
):
    """Remove a product from the cart entirely."""
    await cart.remove_item(product_id)
    return await cart.summary()
