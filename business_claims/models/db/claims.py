"""SQLAlchemy model for business ownership claims."""
from __future__ import annotations
import uuid
from datetime import datetime
from sqlalchemy import String, Text, DateTime, Enum, Index, CheckConstraint, text
from sqlalchemy.orm import Mapped, mapped_column

from business_claims.database import Base
from business_claims.utils.time import utc_now
from .enums import ClaimStatus, enum_values


def new_claim_id() -> str:
    return uuid.uuid4().hex


class BusinessClaim(Base):
    __tablename__ = "business_claims"
    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_claim_id)

    claimant_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    # Contact snapshot taken at submission, not a live reference to the account
    claimant_name: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    claimant_email: Mapped[str] = mapped_column(String(320), nullable=False)

    target_id: Mapped[str] = mapped_column(String(256), nullable=False, index=True)
    # Display-only; authoritative attributes are re-fetched at conversion time
    target_name: Mapped[str] = mapped_column(String(300), nullable=False)
    target_address: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    target_category: Mapped[str] = mapped_column(String(120), nullable=False, default="")

    business_role: Mapped[str | None] = mapped_column(String(120), nullable=True)
    business_phone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    business_email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    verification_details: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[ClaimStatus] = mapped_column(
        Enum(ClaimStatus, values_callable=enum_values, native_enum=False, length=16),
        nullable=False,
        default=ClaimStatus.PENDING,
        index=True,
    )
    submitted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utc_now)

    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    reviewer_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    review_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    converted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    revoked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    revoked_by: Mapped[str | None] = mapped_column(String(128), nullable=True)

    __table_args__ = (
        # Global exclusivity: a listing has at most one approved owner
        Index(
            "uq_business_claims_one_approved_per_target",
            "target_id",
            unique=True,
            sqlite_where=text("status = 'approved'"),
            postgresql_where=text("status = 'approved'"),
        ),
        # No duplicate outstanding requests per claimant/target pair
        Index(
            "uq_business_claims_one_pending_per_claimant_target",
            "claimant_id",
            "target_id",
            unique=True,
            sqlite_where=text("status = 'pending'"),
            postgresql_where=text("status = 'pending'"),
        ),
        Index("ix_business_claims_target_status", "target_id", "status"),
        CheckConstraint(
            "(status = 'pending' AND reviewed_at IS NULL AND reviewer_id IS NULL AND review_notes IS NULL)"
            " OR (status != 'pending' AND reviewed_at IS NOT NULL AND reviewer_id IS NOT NULL AND review_notes IS NOT NULL)",
            name="review_provenance_iff_reviewed",
        ),
        CheckConstraint(
            "converted_at IS NULL OR status != 'pending'",
            name="converted_only_after_review",
        ),
        CheckConstraint(
            "business_phone IS NOT NULL OR business_email IS NOT NULL",
            name="business_contact_required",
        ),
    )

    @property
    def is_pending(self) -> bool:
        return self.status == ClaimStatus.PENDING

    @property
    def is_approved(self) -> bool:
        return self.status == ClaimStatus.APPROVED

    def __repr__(self) -> str:  # pragma: no cover
        return f"<BusinessClaim id={self.id} target={self.target_id} status={self.status.value}>"
