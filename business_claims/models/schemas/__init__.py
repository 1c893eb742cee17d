from .base import CamelModel, ResponseBase, ErrorDetail
from .places import PlaceDetails
from .accounts import BusinessProfile, AccountRead
from .claims import (
    ClaimantContact,
    TargetSnapshot,
    Verification,
    ClaimSubmit,
    ClaimRead,
    ApproveRequest,
    RejectRequest,
    RevokeRequest,
    ApprovalResult,
    ConversionResult,
)

__all__ = [
    # Base
    "CamelModel",
    "ResponseBase",
    "ErrorDetail",

    # Place lookup
    "PlaceDetails",

    # Accounts
    "BusinessProfile",
    "AccountRead",

    # Claims
    "ClaimantContact",
    "TargetSnapshot",
    "Verification",
    "ClaimSubmit",
    "ClaimRead",
    "ApproveRequest",
    "RejectRequest",
    "RevokeRequest",
    "ApprovalResult",
    "ConversionResult",
]
