"""Marketplace accounts: registration, password login and profile upkeep.

Identity comes from the bearer token. A caller whose token was minted by the
auth service may not have a ``market_users`` row yet, so every write that
references the caller goes through ``ensure_user`` first.
"""

from typing import Optional

import bcrypt
from libs.auth.models import AuthUser, Role
from libs.common.logging import get_logger
from services.market_service.errors import Conflict, InvalidRequest, Unauthorized
from services.market_service.models import User
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

SELF_SERVICE_ROLES = frozenset({Role.CUSTOMER, Role.FARMER})


def hash_password(password: str) -> str:
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=12))
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Not a bcrypt hash
        return False


async def _email_taken(db: AsyncSession, email: str) -> bool:
    result = await db.execute(select(User.id).where(User.email == email))
    return result.scalar_one_or_none() is not None


async def ensure_user(db: AsyncSession, actor: AuthUser) -> User:
    """Return the caller's account row, creating it from the token if missing.

    The new row is flushed, not committed: it lands with the caller's unit of
    work or not at all.
    """
    user = await db.get(User, actor.user_id)
    if user is not None:
        return user

    email = actor.email
    if email and await _email_taken(db, email):
        logger.warning(
            "Email of token subject %s already belongs to another account",
            actor.user_id,
        )
        email = None

    user = User(id=actor.user_id, email=email, role=actor.role)
    db.add(user)
    await db.flush()
    logger.info("Created account %s (%s) from token", user.id, user.role.value)
    return user


async def register_user(
    db: AsyncSession,
    *,
    email: str,
    password: str,
    name: str,
    role: Role = Role.CUSTOMER,
    phone: Optional[str] = None,
    address: Optional[str] = None,
) -> User:
    """Create a customer or farmer account with a password."""
    role = Role(role)
    if role not in SELF_SERVICE_ROLES:
        raise InvalidRequest("Only customer and farmer accounts can be registered")

    email = email.lower()
    if await _email_taken(db, email):
        raise Conflict("User already exists")

    user = User(
        email=email,
        password_hash=hash_password(password),
        name=name,
        role=role,
        phone=phone,
        address=address,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    logger.info("Registered %s account %s", role.value, user.id)
    return user


async def authenticate(db: AsyncSession, *, email: str, password: str) -> User:
    result = await db.execute(select(User).where(User.email == email.lower()))
    user = result.scalar_one_or_none()
    if user is None or not verify_password(password, user.password_hash):
        logger.warning("Failed login for %s", email)
        raise Unauthorized()
    return user


async def update_profile(db: AsyncSession, actor: AuthUser, changes: dict) -> User:
    """Apply profile edits to the caller's own account."""
    user = await ensure_user(db, actor)

    email = changes.get("email")
    if email:
        email = email.lower()
        if email != user.email and await _email_taken(db, email):
            raise Conflict("Email is already in use")
        changes["email"] = email
    password = changes.pop("password", None)
    if password:
        user.password_hash = hash_password(password)

    for field, value in changes.items():
        setattr(user, field, value)
    await db.commit()
    await db.refresh(user)
    return user
