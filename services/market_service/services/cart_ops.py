"""Server-backed cart for signed-in customers."""

import uuid
from collections.abc import Iterable
from decimal import Decimal
from typing import Annotated

from fastapi import Depends
from libs.auth.dependencies import require_customer
from libs.auth.models import AuthUser
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.market_service.errors import InvalidRequest, NotFound
from services.market_service.models import CartItem, Order, Product
from services.market_service.schemas import CartItemResponse, CartResponse
from services.market_service.services.accounts import ensure_user
from services.market_service.services.cart_lines import (
    CartLine,
    collapse_lines,
    merge_quantities,
)
from services.market_service.services.order_workflow import place_order
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)


class CustomerCart:
    """One customer's cart, bound to the request's session.

    Built per request by ``get_customer_cart``; nothing outlives the request.
    Stock is not checked while the cart is edited, only at checkout.
    """

    def __init__(self, db: AsyncSession, customer: AuthUser):
        self.db = db
        self.customer = customer

    async def lines(self) -> list[CartItem]:
        result = await self.db.execute(
            select(CartItem)
            .where(CartItem.customer_id == self.customer.user_id)
            .options(selectinload(CartItem.product))
            .order_by(CartItem.created_at, CartItem.id)
        )
        return list(result.scalars().all())

    async def _line_for(self, product_id: uuid.UUID):
        result = await self.db.execute(
            select(CartItem).where(
                CartItem.customer_id == self.customer.user_id,
                CartItem.product_id == product_id,
            )
        )
        return result.scalar_one_or_none()

    async def add_item(self, product_id: uuid.UUID, quantity: int) -> CartItem:
        """Add units of a product, growing the existing line if present."""
        if quantity <= 0:
            raise InvalidRequest("Quantity must be positive")
        product = await self.db.get(Product, product_id)
        if product is None:
            raise NotFound("Product not found")

        item = await self._line_for(product_id)
        if item:
            item.quantity += quantity
        else:
            await ensure_user(self.db, self.customer)
            item = CartItem(
                customer_id=self.customer.user_id,
                product_id=product_id,
                quantity=quantity,
            )
            self.db.add(item)
        await self.db.commit()
        return item

    async def remove_item(self, product_id: uuid.UUID) -> None:
        """Remove the whole line for a product."""
        item = await self._line_for(product_id)
        if item is None:
            raise NotFound("Cart item not found")
        await self.db.delete(item)
        await self.db.commit()

    async def clear(self) -> int:
        result = await self.db.execute(
            delete(CartItem)
            .where(CartItem.customer_id == self.customer.user_id)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        return result.rowcount

    async def merge(self, local_lines: Iterable[CartLine]) -> None:
        """Fold a client-local cart into this one at login.

        Quantities add up per product. Lines for products that no longer
        exist are dropped.
        """
        local_lines = collapse_lines(local_lines)
        if not local_lines:
            return

        await ensure_user(self.db, self.customer)
        existing = {item.product_id: item for item in await self.lines()}
        known = set(
            (
                await self.db.execute(
                    select(Product.id).where(
                        Product.id.in_([line.product_id for line in local_lines])
                    )
                )
            )
            .scalars()
            .all()
        )
        skipped = [line.product_id for line in local_lines if line.product_id not in known]
        if skipped:
            logger.info(
                "Dropping %d unknown products from local cart of %s",
                len(skipped),
                self.customer.user_id,
            )

        merged = merge_quantities(
            {pid: item.quantity for pid, item in existing.items()},
            [line for line in local_lines if line.product_id in known],
        )
        for product_id, quantity in merged.items():
            if product_id in existing:
                existing[product_id].quantity = quantity
            else:
                self.db.add(
                    CartItem(
                        customer_id=self.customer.user_id,
                        product_id=product_id,
                        quantity=quantity,
                    )
                )
        await self.db.commit()
        logger.info(
            "Merged %d local cart lines into cart of %s",
            len(local_lines) - len(skipped),
            self.customer.user_id,
        )

    async def checkout(self) -> Order:
        """Place an order for everything in the cart and empty it."""
        lines = [
            CartLine(item.product_id, item.quantity) for item in await self.lines()
        ]
        if not lines:
            raise InvalidRequest("Cart is empty")
        return await place_order(
            self.db, customer=self.customer, items=lines, clear_cart=True
        )

    async def summary(self) -> CartResponse:
        """Price the cart at current product prices."""
        items = []
        subtotal = Decimal("0")
        for line in await self.lines():
            product = line.product
            line_total = product.price * line.quantity
            subtotal += line_total
            items.append(
                CartItemResponse(
                    id=line.id,
                    product_id=product.id,
                    product_name=product.name,
                    store_id=product.store_id,
                    unit_price=product.price,
                    quantity=line.quantity,
                    line_total=line_total,
                    available_quantity=product.quantity,
                )
            )
        return CartResponse(
            items=items,
            total_quantity=sum(item.quantity for item in items),
            subtotal=subtotal,
        )


async def get_customer_cart(
    current_user: Annotated[AuthUser, Depends(require_customer)],
    db: Annotated[AsyncSession, Depends(get_async_db)],
) -> CustomerCart:
    """FastAPI dependency building the caller's cart for this request."""
    return CustomerCart(db, current_user)
