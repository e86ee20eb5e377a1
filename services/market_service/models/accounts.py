"""Market account model: customers, farmers and administrators."""

import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.market_service.models.enums import Role, enum_values
from sqlalchemy import DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship


class User(Base):
    """Marketplace users.

    Rows are created by ``POST /users/register`` or, for callers whose token
    was issued elsewhere, on their first write (``ensure_user``). Those rows
    carry no password and may have no email or name yet.
    """

    __tablename__ = "market_users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[Optional[str]] = mapped_column(
        String(255), unique=True, nullable=True
    )
    password_hash: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Fixed at registration
    role: Mapped[Role] = mapped_column(
        SAEnum(Role, values_callable=enum_values, name="market_user_role_enum"),
        default=Role.CUSTOMER,
        server_default="customer",
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    # Relationships
    store = relationship("Store", back_populates="owner", uselist=False)

    def __repr__(self):
        return f"<User {self.id} role={self.role}>"
