"""Domain errors raised by the market service layer.

Each error is an ``HTTPException`` so routers let them propagate untouched and
FastAPI renders them as ``{"detail": ...}`` with the matching status code.
Missing or invalid bearer tokens (401) are rejected earlier, by
``libs.auth.dependencies.get_current_user``.
"""

import uuid
from typing import Optional

from fastapi import HTTPException, status


class InvalidRequest(HTTPException):
    """Malformed input or an illegal state transition."""

    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class NotFound(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class Forbidden(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class Conflict(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class InsufficientStock(HTTPException):
    """Requested quantity exceeds what the product has on hand."""

    def __init__(self, product_id: uuid.UUID, product_name: str, available: int):
        self.product_id = product_id
        self.product_name = product_name
        self.available = available
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=(
                f"Insufficient stock for product {product_name}, "
                f"available: {available}"
            ),
        )


class StockConflict(Conflict):
    """A concurrent checkout changed stock between validation and commit."""

    def __init__(self, product_id: Optional[uuid.UUID] = None):
        self.product_id = product_id
        detail = "Stock changed while placing the order, please try again"
        if product_id is not None:
            detail = f"{detail} (product {product_id})"
        super().__init__(detail)


class Unauthorized(HTTPException):
    """Login with an unknown email or a wrong password."""

    def __init__(self, detail: str = "Incorrect email or password"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )
