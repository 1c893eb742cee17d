"""Central Enum definitions for claim lifecycle and account states.

Stored by *value* (lowercase) because the persisted shape is read directly by
other subsystems (account gating, business screens).
"""
from __future__ import annotations
import enum


class ClaimStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class AccountType(str, enum.Enum):
    INDIVIDUAL = "individual"
    BUSINESS = "business"


def enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    """values_callable for SQLAlchemy Enum columns."""
    return [member.value for member in enum_cls]


__all__ = [
    "ClaimStatus",
    "AccountType",
    "enum_values",
]
