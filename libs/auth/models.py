import enum
import uuid
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class Role(str, enum.Enum):
    CUSTOMER = "customer"
    FARMER = "farmer"
    ADMIN = "admin"


class AuthUser(BaseModel):
    """
    Represents an authenticated caller as asserted by the bearer token.

    The identity is trusted as-is; nothing is looked up in the database.
    """

    model_config = ConfigDict(populate_by_name=True)

    user_id: uuid.UUID = Field(..., alias="sub")
    email: Optional[EmailStr] = None
    role: Role = Role.CUSTOMER

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_farmer(self) -> bool:
        return self.role == Role.FARMER

    @property
    def is_customer(self) -> bool:
        return self.role == Role.CUSTOMER
