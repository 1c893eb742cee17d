"""Submission Service: claimant-side entry to the lifecycle.

`submit_claim` creates a pending claim once verification is sufficient and the
exclusivity guard allows it; `withdraw_claim` lets the claimant remove their
own claim while it is still pending. No other claimant-side mutation exists.
"""
from __future__ import annotations

from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from business_claims.config import CLAIM_RULES
from business_claims.models.db.claims import BusinessClaim
from business_claims.models.db.enums import ClaimStatus
from business_claims.models.schemas.claims import ClaimantContact, TargetSnapshot, Verification
from business_claims.services import claim_store
from business_claims.services.errors import InvalidState, Unauthorized, VerificationRequired
from business_claims.services.exclusivity_guard import can_submit, conflict_from_integrity_error
from business_claims.utils import get_logger, log_business_event

logger = get_logger(__name__)


def check_verification(verification: Verification) -> None:
    """Raise VerificationRequired unless the claimant gave enough to verify them."""
    if CLAIM_RULES["require_business_contact"]:
        if not verification.business_phone and not verification.business_email:
            raise VerificationRequired(
                "A business phone or business email is required for verification"
            )
    if CLAIM_RULES["require_business_role"] and not verification.role:
        raise VerificationRequired("Your role at the business is required")


def submit_claim(
    session: Session,
    *,
    claimant_id: str,
    contact: ClaimantContact,
    target_id: str,
    target_snapshot: TargetSnapshot,
    verification: Verification,
    request_id: Optional[str] = None,
) -> BusinessClaim:
    check_verification(verification)

    # Guard read and insert share one transaction; the partial unique indexes
    # settle any race the read could not see.
    can_submit(session, claimant_id, target_id, lock=True).raise_for_conflict(target_id=target_id)

    claim = BusinessClaim(
        claimant_id=claimant_id,
        claimant_name=contact.name or "",
        claimant_email=str(contact.email),
        target_id=target_id,
        target_name=target_snapshot.name,
        target_address=target_snapshot.address or "",
        target_category=target_snapshot.category or "",
        business_role=verification.role,
        business_phone=verification.business_phone,
        business_email=verification.business_email,
        verification_details=verification.details,
        status=ClaimStatus.PENDING,
    )
    try:
        claim_store.add_claim(session, claim)
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        logger.warning(
            "Claim submission lost a race on the exclusivity indexes",
            claimant_id=claimant_id,
            target_id=target_id,
        )
        raise conflict_from_integrity_error(session, exc, claimant_id=claimant_id, target_id=target_id) from exc

    session.refresh(claim)
    log_business_event(
        "claim_submitted",
        {"claim_id": claim.id, "target_id": target_id, "target_name": claim.target_name},
        user_id=claimant_id,
        request_id=request_id,
    )
    return claim


def withdraw_claim(
    session: Session,
    claim_id: str,
    claimant_id: str,
    *,
    request_id: Optional[str] = None,
) -> None:
    claim = claim_store.require_claim(session, claim_id, for_update=True)
    if claim.claimant_id != claimant_id:
        raise Unauthorized("Only the original claimant can withdraw this claim", claim_id=claim_id)
    if not claim.is_pending:
        raise InvalidState(
            f"Claim is {claim.status.value}; only pending claims can be withdrawn",
            claim_id=claim_id,
        )

    target_id = claim.target_id
    if not claim_store.delete_claim(session, claim_id, expected=ClaimStatus.PENDING):
        # Reviewed between our read and the delete
        session.rollback()
        raise InvalidState("Claim was reviewed before it could be withdrawn", claim_id=claim_id)
    # Detach before commit so the caller keeps the loaded values of the removed row
    session.expunge(claim)
    session.commit()

    log_business_event(
        "claim_withdrawn",
        {"claim_id": claim_id, "target_id": target_id},
        user_id=claimant_id,
        request_id=request_id,
    )


__all__ = ["check_verification", "submit_claim", "withdraw_claim"]
