"""
Pydantic schemas for business ownership claims.

Field names on the wire (camelCase) are the durable contract other subsystems read.
"""
from datetime import datetime
from typing import Optional
from pydantic import EmailStr, Field, field_validator, ConfigDict
from pydantic.alias_generators import to_camel
from ..db.claims import BusinessClaim
from ..db.enums import ClaimStatus
from ...config import CLAIM_RULES
from ...utils.time import ensure_utc

MAX_NOTES_LENGTH = int(CLAIM_RULES["max_notes_length"])
from .accounts import AccountRead
from .base import CamelModel, ErrorDetail


def _blank_to_none(value):
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


class ClaimantContact(CamelModel):
    name: str = Field("", max_length=200)
    email: EmailStr


class TargetSnapshot(CamelModel):
    name: str = Field(min_length=1, max_length=300)
    address: str = Field("", max_length=500)
    category: str = Field("", max_length=120)


class Verification(CamelModel):
    """Claimant-provided verification fields; blank strings are treated as absent."""
    role: Optional[str] = Field(None, max_length=120)
    business_phone: Optional[str] = Field(None, max_length=64)
    business_email: Optional[str] = Field(None, max_length=320)
    details: Optional[str] = Field(None, max_length=MAX_NOTES_LENGTH)

    @field_validator("role", "business_phone", "business_email", "details", mode="before")
    @classmethod
    def strip_blank(cls, v):
        return _blank_to_none(v)


class ClaimSubmit(CamelModel):
    """
    Body of a claim submission. The claimant id always comes from the caller
    identity; `claimantContact` may override the forwarded display name/email.
    """
    target_id: str = Field(min_length=1, max_length=256)
    target_snapshot: TargetSnapshot
    verification: Verification
    claimant_contact: Optional[ClaimantContact] = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "targetId": "ChIJN1t_tDeuEmsRUsoyG83frY4",
                "targetSnapshot": {
                    "name": "Blue Door Coffee",
                    "address": "12 Main St, Springfield",
                    "category": "cafe"
                },
                "verification": {
                    "role": "owner",
                    "businessPhone": "+1 555 0100",
                    "businessEmail": "",
                    "details": "I can verify via the phone listed on our storefront."
                }
            }
        },
    )


class ClaimRead(CamelModel):
    id: str
    claimant_id: str
    claimant_contact: ClaimantContact
    target_id: str
    target_snapshot: TargetSnapshot
    verification: Verification
    status: ClaimStatus
    submitted_at: datetime
    reviewed_at: Optional[datetime] = None
    reviewer_id: Optional[str] = None
    review_notes: Optional[str] = None
    converted_at: Optional[datetime] = None
    revoked_at: Optional[datetime] = None
    revoked_by: Optional[str] = None

    @field_validator("submitted_at", "reviewed_at", "converted_at", "revoked_at")
    @classmethod
    def as_utc(cls, v):
        return ensure_utc(v)

    @classmethod
    def from_model(cls, claim: BusinessClaim) -> "ClaimRead":
        return cls(
            id=claim.id,
            claimant_id=claim.claimant_id,
            claimant_contact=ClaimantContact.model_construct(name=claim.claimant_name, email=claim.claimant_email),
            target_id=claim.target_id,
            target_snapshot=TargetSnapshot.model_construct(
                name=claim.target_name,
                address=claim.target_address,
                category=claim.target_category,
            ),
            verification=Verification(
                role=claim.business_role,
                business_phone=claim.business_phone,
                business_email=claim.business_email,
                details=claim.verification_details,
            ),
            status=claim.status,
            submitted_at=claim.submitted_at,
            reviewed_at=claim.reviewed_at,
            reviewer_id=claim.reviewer_id,
            review_notes=claim.review_notes,
            converted_at=claim.converted_at,
            revoked_at=claim.revoked_at,
            revoked_by=claim.revoked_by,
        )


class ApproveRequest(CamelModel):
    notes: Optional[str] = Field(None, max_length=MAX_NOTES_LENGTH)
    auto_convert: bool = Field(True, description="Attempt conversion right after the approval commits")


class RejectRequest(CamelModel):
    # Emptiness is a business rule (NotesRequired), enforced by the review service
    notes: str = Field("", max_length=MAX_NOTES_LENGTH)


class RevokeRequest(CamelModel):
    reason: str = Field(min_length=1, max_length=MAX_NOTES_LENGTH)
    hard_delete: bool = False


class ApprovalResult(CamelModel):
    """Approval is authoritative; the follow-up conversion outcome is informational."""
    claim: ClaimRead
    converted: bool = False
    account: Optional[AccountRead] = None
    conversion_error: Optional[ErrorDetail] = None


class ConversionResult(CamelModel):
    claim: ClaimRead
    account: AccountRead
