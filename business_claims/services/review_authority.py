"""Review Authority: reviewer-only claim transitions.

Transitions:
* approve: pending -> approved (exclusivity re-checked at write time)
* reject:  pending -> rejected (notes mandatory)
* revoke:  approved -> rejected, or approved -> deleted with ``hard_delete``
* delete:  administrative removal of pending / rejected claims

Each transition is a conditional update on the expected status, so a claim
that was reviewed concurrently is reported as InvalidState instead of being
overwritten. Revocation never touches the claimant's account: a converted
business account stays converted.
"""
from __future__ import annotations

from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from business_claims.config import CLAIM_RULES
from business_claims.models.db.claims import BusinessClaim
from business_claims.models.db.enums import ClaimStatus
from business_claims.services import claim_store
from business_claims.services.authorization import ReviewerAuthorizer, require_reviewer
from business_claims.services.errors import InvalidState, NotesRequired, TargetAlreadyClaimed
from business_claims.services.exclusivity_guard import can_approve
from business_claims.utils import get_logger, log_business_event
from business_claims.utils.time import utc_now

logger = get_logger(__name__)


def _require_pending(claim: BusinessClaim, action: str) -> None:
    if not claim.is_pending:
        raise InvalidState(
            f"Claim is {claim.status.value}; only pending claims can be {action}",
            claim_id=claim.id,
        )


def approve_claim(
    session: Session,
    claim_id: str,
    reviewer_id: str,
    notes: Optional[str] = None,
    *,
    authorizer: ReviewerAuthorizer,
    request_id: Optional[str] = None,
) -> BusinessClaim:
    require_reviewer(authorizer, reviewer_id)
    claim = claim_store.require_claim(session, claim_id, for_update=True)
    _require_pending(claim, "approved")
    can_approve(session, claim, lock=True).raise_for_conflict(target_id=claim.target_id, claim_id=claim_id)

    target_id = claim.target_id
    try:
        updated = claim_store.transition_status(
            session,
            claim_id,
            expected=ClaimStatus.PENDING,
            values={
                "status": ClaimStatus.APPROVED,
                "reviewed_at": utc_now(),
                "reviewer_id": reviewer_id,
                "review_notes": notes or "",
            },
        )
    except IntegrityError as exc:
        # Another claim for this target was approved after our guard read
        session.rollback()
        logger.warning("Concurrent approval detected for target", claim_id=claim_id, target_id=target_id)
        raise TargetAlreadyClaimed(target_id=target_id, claim_id=claim_id) from exc
    if not updated:
        session.rollback()
        raise InvalidState("Claim was reviewed concurrently", claim_id=claim_id)
    session.commit()
    session.refresh(claim)

    log_business_event(
        "claim_approved",
        {"claim_id": claim_id, "target_id": target_id, "claimant_id": claim.claimant_id},
        user_id=reviewer_id,
        request_id=request_id,
    )
    return claim


def reject_claim(
    session: Session,
    claim_id: str,
    reviewer_id: str,
    notes: str,
    *,
    authorizer: ReviewerAuthorizer,
    request_id: Optional[str] = None,
) -> BusinessClaim:
    require_reviewer(authorizer, reviewer_id)
    notes = (notes or "").strip()
    if not notes:
        raise NotesRequired(claim_id=claim_id)
    claim = claim_store.require_claim(session, claim_id, for_update=True)
    _require_pending(claim, "rejected")

    updated = claim_store.transition_status(
        session,
        claim_id,
        expected=ClaimStatus.PENDING,
        values={
            "status": ClaimStatus.REJECTED,
            "reviewed_at": utc_now(),
            "reviewer_id": reviewer_id,
            "review_notes": notes,
        },
    )
    if not updated:
        session.rollback()
        raise InvalidState("Claim was reviewed concurrently", claim_id=claim_id)
    session.commit()
    session.refresh(claim)

    log_business_event(
        "claim_rejected",
        {"claim_id": claim_id, "target_id": claim.target_id, "claimant_id": claim.claimant_id},
        user_id=reviewer_id,
        request_id=request_id,
    )
    return claim


def revoke_claim(
    session: Session,
    claim_id: str,
    revoker_id: str,
    reason: str,
    hard_delete: bool = False,
    *,
    authorizer: ReviewerAuthorizer,
    request_id: Optional[str] = None,
) -> Optional[BusinessClaim]:
    """Free the target of an approved claim.

    Returns the rejected claim on a soft revoke and None when the record was
    hard-deleted.
    """
    require_reviewer(authorizer, revoker_id)
    reason = (reason or "").strip()
    if not reason:
        raise NotesRequired("A reason is required when revoking a claim", claim_id=claim_id)
    claim = claim_store.require_claim(session, claim_id, for_update=True)
    if not claim.is_approved:
        raise InvalidState(
            f"Claim is {claim.status.value}; only approved claims can be revoked",
            claim_id=claim_id,
        )

    target_id = claim.target_id
    claimant_id = claim.claimant_id
    if hard_delete:
        done = claim_store.delete_claim(session, claim_id, expected=ClaimStatus.APPROVED)
    else:
        now = utc_now()
        done = claim_store.transition_status(
            session,
            claim_id,
            expected=ClaimStatus.APPROVED,
            values={
                "status": ClaimStatus.REJECTED,
                "reviewed_at": now,
                "reviewer_id": revoker_id,
                "review_notes": f"{CLAIM_RULES['revoke_notes_prefix']}{reason}",
                "revoked_at": now,
                "revoked_by": revoker_id,
            },
        )
    if not done:
        session.rollback()
        raise InvalidState("Claim changed before it could be revoked", claim_id=claim_id)
    if hard_delete:
        session.expunge(claim)
    session.commit()

    log_business_event(
        "claim_revoked",
        {
            "claim_id": claim_id,
            "target_id": target_id,
            "claimant_id": claimant_id,
            "hard_delete": hard_delete,
            "reason": reason,
        },
        user_id=revoker_id,
        request_id=request_id,
    )
    if hard_delete:
        return None
    session.refresh(claim)
    return claim


def delete_claim(
    session: Session,
    claim_id: str,
    actor_id: str,
    *,
    authorizer: ReviewerAuthorizer,
    request_id: Optional[str] = None,
) -> None:
    """Administrative cleanup of a pending or rejected claim.

    Approved claims hold the target; they are removed through
    ``revoke_claim(..., hard_delete=True)`` so the revocation is audited.
    """
    require_reviewer(authorizer, actor_id)
    claim = claim_store.require_claim(session, claim_id, for_update=True)
    status = claim.status
    target_id = claim.target_id
    if status == ClaimStatus.APPROVED:
        raise InvalidState("Approved claims must be revoked, not deleted", claim_id=claim_id)

    if not claim_store.delete_claim(session, claim_id, expected=status):
        session.rollback()
        raise InvalidState("Claim changed before it could be deleted", claim_id=claim_id)
    session.expunge(claim)
    session.commit()

    log_business_event(
        "claim_deleted",
        {"claim_id": claim_id, "target_id": target_id, "previous_status": status.value},
        user_id=actor_id,
        request_id=request_id,
    )


__all__ = ["approve_claim", "reject_claim", "revoke_claim", "delete_claim"]
