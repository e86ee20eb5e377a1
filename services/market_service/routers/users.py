"""Market users router: registration, password login and the caller's profile."""

from fastapi import APIRouter, Depends, status
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.auth.tokens import create_access_token
from libs.db.session import get_async_db
from services.market_service.models import User
from services.market_service.schemas import (
    TokenResponse,
    UserLogin,
    UserRegister,
    UserResponse,
    UserUpdate,
)
from services.market_service.services import accounts
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/users", tags=["users"])


def _token_response(user: User) -> TokenResponse:
    return TokenResponse(
        access_token=create_access_token(user.id, user.role, email=user.email),
        user=UserResponse.model_validate(user),
    )


@router.post(
    "/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED
)
async def register(user_in: UserRegister, db: AsyncSession = Depends(get_async_db)):
    """Create a customer or farmer account and sign it in."""
    user = await accounts.register_user(db, **user_in.model_dump())
    return _token_response(user)


@router.post("/login", response_model=TokenResponse)
async def login(credentials: UserLogin, db: AsyncSession = Depends(get_async_db)):
    user = await accounts.authenticate(
        db, email=credentials.email, password=credentials.password
    )
    return _token_response(user)


@router.get("/me", response_model=UserResponse)
async def get_me(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """The caller's account, created from the token on first visit."""
    user = await accounts.ensure_user(db, current_user)
    await db.commit()
    return user


@router.patch("/me", response_model=UserResponse)
async def update_me(
    user_in: UserUpdate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    changes = user_in.model_dump(exclude_unset=True, exclude_none=True)
    return await accounts.update_profile(db, current_user, changes)
