"""Bearer token issuing for the trusted auth service, dev tooling and tests."""

import uuid
from datetime import timedelta
from typing import Optional

from jose import jwt

from libs.auth.models import Role
from libs.common.config import get_settings
from libs.common.datetime_utils import utc_now


def create_access_token(
    user_id: uuid.UUID,
    role: Role,
    email: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Encode a signed access token carrying ``sub`` and ``role`` claims."""
    settings = get_settings()
    expires_at = utc_now() + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    claims = {
        "sub": str(user_id),
        "role": Role(role).value,
        "exp": expires_at,
    }
    if email:
        claims["email"] = email
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
