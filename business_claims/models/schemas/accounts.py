"""
Pydantic schemas for accounts and the business profile contract.
"""
from datetime import datetime
from typing import Optional
from pydantic import Field, field_validator
from ..db.enums import AccountType
from ...utils.time import ensure_utc
from .base import CamelModel


class BusinessProfile(CamelModel):
    """Persisted `Account.businessProfile` shape read by business-feature screens."""
    name: str
    category: str = ""
    address: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    phone: str = ""
    website: str = ""
    logo_ref: str = ""
    claimed_target_id: str
    accepts_discounts: bool = False
    customer_discount_percent: int = Field(5, ge=0, le=100)


class AccountRead(CamelModel):
    id: str
    account_type: AccountType
    email: Optional[str] = None
    full_name: Optional[str] = None
    role: Optional[str] = None
    business_profile: Optional[BusinessProfile] = None
    created_at: datetime
    updated_at: datetime

    @field_validator("created_at", "updated_at")
    @classmethod
    def as_utc(cls, v):
        return ensure_utc(v)
