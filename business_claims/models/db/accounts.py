"""SQLAlchemy model for user accounts as seen by the claim lifecycle."""
from __future__ import annotations
from datetime import datetime
from typing import Any
from sqlalchemy import String, DateTime, Enum, JSON, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from business_claims.database import Base
from business_claims.utils.time import utc_now
from .enums import AccountType, enum_values


class Account(Base):
    __tablename__ = "accounts"
    # Same identifier space as claimant ids issued by the identity provider
    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    account_type: Mapped[AccountType] = mapped_column(
        Enum(AccountType, values_callable=enum_values, native_enum=False, length=16),
        nullable=False,
        default=AccountType.INDIVIDUAL,
        index=True,
    )
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    full_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    role: Mapped[str | None] = mapped_column(String(120), nullable=True)
    # Replaced wholesale by conversion, never patched field by field
    business_profile: Mapped[dict[str, Any] | None] = mapped_column(JSON(none_as_null=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    __table_args__ = (
        CheckConstraint(
            "(account_type = 'business' AND business_profile IS NOT NULL)"
            " OR (account_type = 'individual' AND business_profile IS NULL)",
            name="business_profile_iff_business",
        ),
    )

    @property
    def is_business(self) -> bool:
        return self.account_type == AccountType.BUSINESS
