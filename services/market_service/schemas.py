"""Pydantic schemas for market service."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from services.market_service.models import OrderStatus, ProductCategory, Role

# ============================================================================
# USER SCHEMAS
# ============================================================================


class UserRegister(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    name: str = Field(..., min_length=1, max_length=255)
    role: Role = Role.CUSTOMER
    phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = None


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserUpdate(BaseModel):
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=8, max_length=128)
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = None


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: Optional[str] = None
    name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    role: Role
    created_at: datetime


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse


# ============================================================================
# PRODUCT SCHEMAS
# ============================================================================


class ProductBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    price: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    quantity: int = Field(0, ge=0)
    category: ProductCategory
    image_url: Optional[str] = Field(None, max_length=1024)


class ProductCreate(ProductBase):
    # Only admins pass this; farmers always list into their own store
    store_id: Optional[uuid.UUID] = None


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
    quantity: Optional[int] = Field(None, ge=0)
    category: Optional[ProductCategory] = None
    image_url: Optional[str] = Field(None, max_length=1024)


class ProductResponse(ProductBase):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    store_id: uuid.UUID
    created_at: datetime
    updated_at: datetime


class ProductListResponse(BaseModel):
    """Paginated product list."""

    items: list[ProductResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


class CategoryListResponse(BaseModel):
    categories: list[ProductCategory]


# ============================================================================
# STORE SCHEMAS
# ============================================================================


class StoreBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    image_url: Optional[str] = Field(None, max_length=1024)


class StoreCreate(StoreBase):
    pass


class StoreUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    image_url: Optional[str] = Field(None, max_length=1024)


class StoreResponse(StoreBase):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    owner_id: uuid.UUID
    rating: Decimal
    created_at: datetime
    updated_at: datetime


class StoreDetail(StoreResponse):
    products: list[ProductResponse] = []


class StoreListResponse(BaseModel):
    """Paginated store list."""

    items: list[StoreResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


class ReviewCreate(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=2000)


class ReviewResponse(ReviewCreate):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    store_id: uuid.UUID
    user_id: uuid.UUID
    created_at: datetime


# ============================================================================
# CART SCHEMAS
# ============================================================================


class CartItemCreate(BaseModel):
    product_id: uuid.UUID
    quantity: int = Field(1, gt=0)


class CartMergeRequest(BaseModel):
    """Client-local cart lines submitted at login."""

    items: list[CartItemCreate] = []


class CartItemResponse(BaseModel):
    id: uuid.UUID
    product_id: uuid.UUID
    product_name: str
    store_id: uuid.UUID
    unit_price: Decimal
    quantity: int
    line_total: Decimal
    available_quantity: int


class CartResponse(BaseModel):
    items: list[CartItemResponse]
    total_quantity: int
    subtotal: Decimal


# ============================================================================
# ORDER SCHEMAS
# ============================================================================


class OrderLineRequest(BaseModel):
    product_id: uuid.UUID
    quantity: int = Field(..., gt=0)


class OrderCreate(BaseModel):
    # Emptiness is checked by the workflow so it surfaces as a 400
    items: list[OrderLineRequest]


class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    product_id: Optional[uuid.UUID]
    store_id: uuid.UUID
    product_name: str
    quantity: int
    price: Decimal
    line_total: Decimal


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    customer_id: uuid.UUID
    status: OrderStatus
    total_amount: Decimal
    created_at: datetime
    updated_at: datetime
    cancelled_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    items: list[OrderItemResponse] = []


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class OrderListResponse(BaseModel):
    """Paginated order list."""

    orders: list[OrderResponse]
    pagination: Pagination


class OrderStatusesResponse(BaseModel):
    statuses: list[OrderStatus]
