"""Order placement, status lifecycle and stock compensation.

Placement follows a validate-then-commit sequence inside one transaction:

1. Lock every referenced product row (``SELECT ... FOR UPDATE`` in id order)
2. Reject unknown products and lines that exceed stock
3. Price each line at the product's current price
4. Insert the order and its item snapshots
5. Decrement stock with a guarded update (``quantity >= n``)
6. Commit atomically

Stock never goes negative: the row lock serialises concurrent checkouts on
engines that honour it, and the guarded update plus the ``quantity >= 0``
check constraint catch the race everywhere else. A lost race rolls the whole
order back and surfaces as ``StockConflict``.
"""

import math
import uuid
from collections.abc import Sequence
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from libs.auth.models import AuthUser
from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from services.market_service.errors import (
    Conflict,
    Forbidden,
    InsufficientStock,
    InvalidRequest,
    NotFound,
    StockConflict,
)
from services.market_service.models import (
    ORDER_STATUS_TRANSITIONS,
    CartItem,
    Order,
    OrderItem,
    OrderStatus,
    Product,
    Role,
    Store,
)
from services.market_service.services.accounts import ensure_user
from services.market_service.services.cart_lines import CartLine, collapse_lines
from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)

CENT = Decimal("0.01")

# Lifecycle order, used by GET /orders/statuses
ORDER_STATUSES: tuple[OrderStatus, ...] = tuple(OrderStatus)


def _money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def page_count(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


def _order_query():
    return select(Order).options(selectinload(Order.items))


async def _load_order(
    db: AsyncSession, order_id: uuid.UUID, *, lock: bool = False
) -> Optional[Order]:
    query = (
        _order_query()
        .where(Order.id == order_id)
        .execution_options(populate_existing=True)
    )
    if lock:
        query = query.with_for_update(of=Order)
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def _farmer_store_id(db: AsyncSession, owner_id: uuid.UUID) -> Optional[uuid.UUID]:
    result = await db.execute(select(Store.id).where(Store.owner_id == owner_id))
    return result.scalar_one_or_none()


async def _can_view(db: AsyncSession, order: Order, actor: AuthUser) -> bool:
    if actor.role == Role.ADMIN:
        return True
    if actor.role == Role.CUSTOMER:
        return order.customer_id == actor.user_id
    if actor.role == Role.FARMER:
        store_id = await _farmer_store_id(db, actor.user_id)
        return store_id is not None and any(
            item.store_id == store_id for item in order.items
        )
    return False


# ---------------------------------------------------------------------------
# Placement
# ---------------------------------------------------------------------------


async def _lock_products(
    db: AsyncSession, product_ids: Sequence[uuid.UUID]
) -> dict[uuid.UUID, Product]:
    """Fetch and lock all products in one batch, in a stable order."""
    result = await db.execute(
        select(Product)
        .where(Product.id.in_(product_ids))
        .order_by(Product.id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return {product.id: product for product in result.scalars().all()}


async def decrement_stock(db: AsyncSession, product_id: uuid.UUID, quantity: int) -> None:
    """Take ``quantity`` units off a product, refusing to go below zero."""
    result = await db.execute(
        update(Product)
        .where(Product.id == product_id, Product.quantity >= quantity)
        .values(quantity=Product.quantity - quantity, updated_at=utc_now())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise StockConflict(product_id)


async def restore_stock(db: AsyncSession, product_id: uuid.UUID, quantity: int) -> bool:
    """Put ``quantity`` units back. Returns False if the product is gone."""
    result = await db.execute(
        update(Product)
        .where(Product.id == product_id)
        .values(quantity=Product.quantity + quantity, updated_at=utc_now())
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def place_order(
    db: AsyncSession,
    *,
    customer: AuthUser,
    items: Sequence[CartLine],
    clear_cart: bool = False,
) -> Order:
    """Validate stock, snapshot prices and persist an order atomically.

    Repeated product ids are merged into a single line. When ``clear_cart`` is
    set the customer's cart lines for the ordered products are removed in the
    same transaction.
    """
    if customer.role != Role.CUSTOMER:
        raise Forbidden("Only customers can create orders")

    if any(item.quantity <= 0 for item in items):
        raise InvalidRequest("Quantity must be positive")
    lines = collapse_lines(items)
    if not lines:
        raise InvalidRequest("Order must contain at least one product")

    try:
        await ensure_user(db, customer)
        products = await _lock_products(db, [line.product_id for line in lines])

        # Validate everything before touching any row
        for line in lines:
            product = products.get(line.product_id)
            if product is None:
                raise NotFound(f"Product {line.product_id} does not exist")
            if product.quantity < line.quantity:
                logger.warning(
                    "Order for customer %s rejected: product %s has %d, asked %d",
                    customer.user_id,
                    product.id,
                    product.quantity,
                    line.quantity,
                )
                raise InsufficientStock(product.id, product.name, product.quantity)

        total_amount = _money(
            sum(
                (products[line.product_id].price * line.quantity for line in lines),
                Decimal("0"),
            )
        )

        order = Order(
            customer_id=customer.user_id,
            status=OrderStatus.PENDING,
            total_amount=total_amount,
        )
        db.add(order)
        await db.flush()

        for line in lines:
            product = products[line.product_id]
            db.add(
                OrderItem(
                    order_id=order.id,
                    product_id=product.id,
                    store_id=product.store_id,
                    product_name=product.name,
                    quantity=line.quantity,
                    price=product.price,
                    line_total=_money(product.price * line.quantity),
                )
            )
            await decrement_stock(db, product.id, line.quantity)

        if clear_cart:
            await db.execute(
                delete(CartItem)
                .where(
                    CartItem.customer_id == customer.user_id,
                    CartItem.product_id.in_([line.product_id for line in lines]),
                )
                .execution_options(synchronize_session=False)
            )

        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        logger.warning(
            "Order for customer %s rejected by a constraint: %s",
            customer.user_id,
            exc.orig,
        )
        if "quantity" in str(exc.orig):
            raise StockConflict() from exc
        raise Conflict("Order could not be recorded") from exc
    except Exception:
        await db.rollback()
        raise

    logger.info(
        "Placed order %s for customer %s total=%s lines=%d",
        order.id,
        customer.user_id,
        total_amount,
        len(lines),
    )
    return await _load_order(db, order.id)


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


async def _authorize_transition(
    db: AsyncSession, order: Order, new_status: OrderStatus, actor: AuthUser
) -> None:
    if actor.role == Role.ADMIN:
        return
    if actor.role == Role.FARMER:
        store_id = await _farmer_store_id(db, actor.user_id)
        if store_id is not None and any(i.store_id == store_id for i in order.items):
            return
        raise Forbidden("Permission denied to update this order")
    if actor.role == Role.CUSTOMER and order.customer_id == actor.user_id:
        if new_status != OrderStatus.CANCELLED:
            raise Forbidden("Customers can only cancel their orders")
        if order.status not in (OrderStatus.PENDING, OrderStatus.CANCELLED):
            raise InvalidRequest("Only pending orders can be cancelled")
        return
    raise Forbidden("Permission denied to update this order")


async def update_order_status(
    db: AsyncSession,
    *,
    order_id: uuid.UUID,
    new_status: OrderStatus,
    actor: AuthUser,
) -> Order:
    """Move an order along its lifecycle.

    Cancelling restores every item's quantity in the same transaction.
    Cancelling an already-cancelled order is a no-op and restores nothing.
    """
    try:
        new_status = OrderStatus(new_status)
    except ValueError:
        raise InvalidRequest(f"Invalid order status {new_status!r}") from None

    try:
        order = await _load_order(db, order_id, lock=True)
        if order is None:
            raise NotFound("Order not found")

        await _authorize_transition(db, order, new_status, actor)

        if new_status == OrderStatus.CANCELLED and order.status == OrderStatus.CANCELLED:
            # Release the row lock without touching stock
            await db.commit()
            logger.info("Order %s already cancelled, nothing to restore", order.id)
            return order

        if new_status not in ORDER_STATUS_TRANSITIONS[order.status]:
            raise InvalidRequest(
                f"Invalid status transition from {order.status.value} "
                f"to {new_status.value}"
            )

        old_status = order.status
        order.status = new_status
        now = utc_now()
        if new_status == OrderStatus.CANCELLED:
            order.cancelled_at = now
            restored = 0
            for item in order.items:
                if item.product_id is None:
                    continue
                if await restore_stock(db, item.product_id, item.quantity):
                    restored += item.quantity
        elif new_status == OrderStatus.COMPLETED:
            order.completed_at = now

        await db.commit()
    except Exception:
        await db.rollback()
        raise

    if new_status == OrderStatus.CANCELLED:
        logger.info(
            "Cancelled order %s (was %s) by %s, restored %d units",
            order.id,
            old_status.value,
            actor.user_id,
            restored,
        )
    else:
        logger.info(
            "Order %s moved %s -> %s by %s",
            order.id,
            old_status.value,
            new_status.value,
            actor.user_id,
        )
    return order


async def cancel_order(
    db: AsyncSession, *, order_id: uuid.UUID, actor: AuthUser
) -> Order:
    return await update_order_status(
        db, order_id=order_id, new_status=OrderStatus.CANCELLED, actor=actor
    )


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


async def list_orders(
    db: AsyncSession,
    *,
    actor: AuthUser,
    status: Optional[OrderStatus] = None,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[Order], int]:
    """Orders visible to ``actor``, newest first, with the total match count."""
    query = select(Order)

    if actor.role == Role.CUSTOMER:
        query = query.where(Order.customer_id == actor.user_id)
    elif actor.role == Role.FARMER:
        store_id = await _farmer_store_id(db, actor.user_id)
        if store_id is None:
            return [], 0
        query = query.where(Order.items.any(OrderItem.store_id == store_id))
    elif actor.role != Role.ADMIN:
        return [], 0

    if status is not None:
        query = query.where(Order.status == status)

    # Count
    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar() or 0

    # Paginate
    query = (
        query.options(selectinload(Order.items))
        .order_by(Order.created_at.desc(), Order.id)
        .offset((page - 1) * limit)
        .limit(limit)
    )
    result = await db.execute(query)
    return list(result.scalars().all()), total


async def get_order(
    db: AsyncSession, *, order_id: uuid.UUID, actor: AuthUser
) -> Order:
    order = await _load_order(db, order_id)
    if order is None:
        raise NotFound("Order not found")
    if not await _can_view(db, order, actor):
        raise Forbidden("Permission denied to view this order")
    return order
