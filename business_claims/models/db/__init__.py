from .enums import ClaimStatus, AccountType
from .claims import BusinessClaim
from .accounts import Account

__all__ = [
    "ClaimStatus",
    "AccountType",
    "BusinessClaim",
    "Account",
]
