"""Market catalog router: farmer stores, produce listings and store reviews."""

import uuid
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from libs.auth.dependencies import get_current_user, require_roles
from libs.auth.models import AuthUser, Role
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.market_service.errors import (
    Conflict,
    Forbidden,
    InvalidRequest,
    NotFound,
)
from services.market_service.models import (
    Order,
    OrderItem,
    OrderStatus,
    Product,
    ProductCategory,
    Review,
    Store,
)
from services.market_service.schemas import (
    CategoryListResponse,
    ProductCreate,
    ProductListResponse,
    ProductResponse,
    ProductUpdate,
    ReviewCreate,
    ReviewResponse,
    StoreCreate,
    StoreDetail,
    StoreListResponse,
    StoreResponse,
    StoreUpdate,
)
from services.market_service.services.accounts import ensure_user
from services.market_service.services.order_workflow import page_count
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

router = APIRouter(tags=["catalog"])
logger = get_logger(__name__)


# ============================================================================
# HELPERS
# ============================================================================


async def _get_store(db: AsyncSession, store_id: uuid.UUID, *, with_products=False):
    query = select(Store).where(Store.id == store_id)
    if with_products:
        query = query.options(selectinload(Store.products))
    store = (await db.execute(query)).scalar_one_or_none()
    if not store:
        raise NotFound("Store not found")
    return store


async def _get_product(db: AsyncSession, product_id: uuid.UUID, *, lock=False):
    query = (
        select(Product)
        .where(Product.id == product_id)
        .options(selectinload(Product.store))
    )
    if lock:
        query = query.with_for_update(of=Product)
    product = (await db.execute(query)).scalar_one_or_none()
    if not product:
        raise NotFound("Product not found")
    return product


def _ensure_owner(store: Store, user: AuthUser, action: str) -> None:
    if store.owner_id != user.user_id and user.role != Role.ADMIN:
        raise Forbidden(f"Permission denied to {action}")


# ============================================================================
# STORES
# ============================================================================


@router.get("/stores", response_model=StoreListResponse)
async def list_stores(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_async_db),
):
    """List stores, best rated first."""
    total = (await db.execute(select(func.count(Store.id)))).scalar() or 0
    result = await db.execute(
        select(Store)
        .order_by(Store.rating.desc(), Store.name)
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    return StoreListResponse(
        items=[StoreResponse.model_validate(s) for s in result.scalars().all()],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=page_count(total, page_size),
    )


@router.post(
    "/stores", response_model=StoreResponse, status_code=status.HTTP_201_CREATED
)
async def create_store(
    store_in: StoreCreate,
    current_user: AuthUser = Depends(require_roles(Role.FARMER)),
    db: AsyncSession = Depends(get_async_db),
):
    """Open the caller's store. A farmer can own only one."""
    existing = await db.execute(
        select(Store.id).where(Store.owner_id == current_user.user_id)
    )
    if existing.scalar_one_or_none():
        raise Conflict("You already own a store")

    await ensure_user(db, current_user)
    store = Store(owner_id=current_user.user_id, **store_in.model_dump())
    db.add(store)
    await db.commit()
    await db.refresh(store)
    logger.info("Created store %s for farmer %s", store.id, current_user.user_id)
    return store


@router.get("/stores/{store_id}", response_model=StoreDetail)
async def get_store(store_id: uuid.UUID, db: AsyncSession = Depends(get_async_db)):
    """Get a store with its products."""
    return await _get_store(db, store_id, with_products=True)


@router.patch("/stores/{store_id}", response_model=StoreResponse)
async def update_store(
    store_id: uuid.UUID,
    store_in: StoreUpdate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    store = await _get_store(db, store_id)
    _ensure_owner(store, current_user, "update this store")

    changes = store_in.model_dump(exclude_unset=True, exclude_none=True)
    for field, value in changes.items():
        setattr(store, field, value)
    await db.commit()
    await db.refresh(store)
    return store


@router.delete("/stores/{store_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_store(
    store_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Close a store. Its products go with it."""
    store = await _get_store(db, store_id)
    _ensure_owner(store, current_user, "delete this store")
    await db.delete(store)
    await db.commit()
    logger.info("Deleted store %s by %s", store_id, current_user.user_id)


# ============================================================================
# REVIEWS
# ============================================================================


@router.get("/stores/{store_id}/reviews", response_model=list[ReviewResponse])
async def list_store_reviews(
    store_id: uuid.UUID, db: AsyncSession = Depends(get_async_db)
):
    await _get_store(db, store_id)
    result = await db.execute(
        select(Review)
        .where(Review.store_id == store_id)
        .order_by(Review.created_at.desc())
    )
    return result.scalars().all()


@router.post(
    "/stores/{store_id}/reviews",
    response_model=ReviewResponse,
    status_code=status.HTTP_201_CREATED,
)
async def review_store(
    store_id: uuid.UUID,
    review_in: ReviewCreate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Review a store and refresh its aggregate rating.

    Only customers with a completed order from the store may review it.
    """
    store = await _get_store(db, store_id)
    if store.owner_id == current_user.user_id:
        raise Forbidden("You cannot review your own store")

    purchased = await db.execute(
        select(OrderItem.id)
        .join(Order, OrderItem.order_id == Order.id)
        .where(
            Order.customer_id == current_user.user_id,
            Order.status == OrderStatus.COMPLETED,
            OrderItem.store_id == store_id,
        )
        .limit(1)
    )
    if purchased.scalar_one_or_none() is None:
        raise Forbidden("Only customers with a completed order can review this store")

    existing = await db.execute(
        select(Review.id).where(
            Review.store_id == store_id, Review.user_id == current_user.user_id
        )
    )
    if existing.scalar_one_or_none():
        raise Conflict("You have already reviewed this store")

    review = Review(
        store_id=store_id,
        user_id=current_user.user_id,
        rating=review_in.rating,
        comment=review_in.comment,
    )
    db.add(review)
    await db.flush()

    average = (
        await db.execute(
            select(func.avg(Review.rating)).where(Review.store_id == store_id)
        )
    ).scalar()
    store.rating = Decimal(str(average or 0)).quantize(Decimal("0.01"))
    await db.commit()
    await db.refresh(review)
    return review


# ============================================================================
# PRODUCTS
# ============================================================================


@router.get("/products", response_model=ProductListResponse)
async def list_products(
    category: Optional[ProductCategory] = None,
    store_id: Optional[uuid.UUID] = None,
    q: Optional[str] = Query(None, max_length=100),
    min_price: Optional[Decimal] = Query(None, ge=0),
    max_price: Optional[Decimal] = Query(None, ge=0),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_async_db),
):
    """List products with optional filters."""
    if min_price is not None and max_price is not None and min_price > max_price:
        raise InvalidRequest("min_price cannot exceed max_price")

    query = select(Product)
    if category:
        query = query.where(Product.category == category)
    if store_id:
        query = query.where(Product.store_id == store_id)
    if q:
        query = query.where(Product.name.ilike(f"%{q}%"))
    if min_price is not None:
        query = query.where(Product.price >= min_price)
    if max_price is not None:
        query = query.where(Product.price <= max_price)

    # Count
    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar() or 0

    # Paginate
    query = (
        query.order_by(Product.created_at.desc(), Product.id)
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    result = await db.execute(query)

    return ProductListResponse(
        items=[ProductResponse.model_validate(p) for p in result.scalars().all()],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=page_count(total, page_size),
    )


@router.get("/products/categories", response_model=CategoryListResponse)
async def list_categories():
    return CategoryListResponse(categories=list(ProductCategory))


@router.get("/products/{product_id}", response_model=ProductResponse)
async def get_product(product_id: uuid.UUID, db: AsyncSession = Depends(get_async_db)):
    return await _get_product(db, product_id)


@router.post(
    "/products", response_model=ProductResponse, status_code=status.HTTP_201_CREATED
)
async def create_product(
    product_in: ProductCreate,
    current_user: AuthUser = Depends(require_roles(Role.FARMER, Role.ADMIN)),
    db: AsyncSession = Depends(get_async_db),
):
    """List a product in the caller's store (admins name the store)."""
    if current_user.role == Role.ADMIN:
        if not product_in.store_id:
            raise InvalidRequest("store_id is required")
        store = await _get_store(db, product_in.store_id)
    else:
        result = await db.execute(
            select(Store).where(Store.owner_id == current_user.user_id)
        )
        store = result.scalar_one_or_none()
        if not store:
            raise NotFound("Create a store before listing products")
        if product_in.store_id and product_in.store_id != store.id:
            raise Forbidden("Permission denied to add products to this store")

    product = Product(store_id=store.id, **product_in.model_dump(exclude={"store_id"}))
    db.add(product)
    await db.commit()
    await db.refresh(product)
    logger.info(
        "Listed product %s in store %s qty=%d", product.id, store.id, product.quantity
    )
    return product


@router.patch("/products/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: uuid.UUID,
    product_in: ProductUpdate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Edit a listing. Price changes never touch existing orders."""
    product = await _get_product(db, product_id, lock=True)
    _ensure_owner(product.store, current_user, "update this product")

    changes = product_in.model_dump(exclude_unset=True, exclude_none=True)
    for field, value in changes.items():
        setattr(product, field, value)
    await db.commit()
    await db.refresh(product)
    return product


@router.delete("/products/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_product(
    product_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    product = await _get_product(db, product_id)
    _ensure_owner(product.store, current_user, "delete this product")
    await db.delete(product)
    await db.commit()
