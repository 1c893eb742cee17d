"""Exclusivity Guard: the two cross-claim rules.

* a claimant has at most one pending claim per target
* a target has at most one approved claim

The checks here give callers a precise error up front. They are evaluated
inside the caller's transaction, but the partial unique indexes on
``business_claims`` are what actually hold under concurrency; when a write
trips one of them, :func:`conflict_from_integrity_error` turns the database
error back into the matching domain error.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Type

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from business_claims.models.db.claims import BusinessClaim
from business_claims.services import claim_store
from business_claims.services.errors import (
    ClaimServiceError,
    DuplicatePending,
    TargetAlreadyClaimed,
)


@dataclass(frozen=True)
class GuardDecision:
    allowed: bool
    conflict: Optional[Type[ClaimServiceError]] = None
    conflicting_claim_id: str | None = None

    def raise_for_conflict(self, **context) -> None:
        if not self.allowed and self.conflict is not None:
            raise self.conflict(conflicting_claim_id=self.conflicting_claim_id, **context)


ALLOWED = GuardDecision(allowed=True)


def can_submit(session: Session, claimant_id: str, target_id: str, *, lock: bool = False) -> GuardDecision:
    """A new claim is allowed when the pair has nothing pending and the target has no owner."""
    pending = claim_store.find_pending_for_pair(session, claimant_id, target_id, for_update=lock)
    if pending is not None:
        return GuardDecision(False, DuplicatePending, pending.id)
    approved = claim_store.find_approved_for_target(session, target_id, for_update=lock)
    if approved is not None:
        return GuardDecision(False, TargetAlreadyClaimed, approved.id)
    return ALLOWED


def can_approve(session: Session, claim: BusinessClaim, *, lock: bool = False) -> GuardDecision:
    """Approval is allowed when no *other* claim on the same target is approved."""
    approved = claim_store.find_approved_for_target(
        session, claim.target_id, exclude_claim_id=claim.id, for_update=lock
    )
    if approved is not None:
        return GuardDecision(False, TargetAlreadyClaimed, approved.id)
    return ALLOWED


def conflict_from_integrity_error(
    session: Session,
    exc: IntegrityError,
    *,
    claimant_id: str | None,
    target_id: str,
) -> ClaimServiceError:
    """Map a unique-index violation to the guard error it stands for.

    Must be called after the failed transaction was rolled back. The current
    committed state is re-read first; the constraint text is only consulted
    when the conflicting row has disappeared again in the meantime.
    """
    if claimant_id is not None:
        decision = can_submit(session, claimant_id, target_id)
    else:
        approved = claim_store.find_approved_for_target(session, target_id)
        decision = GuardDecision(False, TargetAlreadyClaimed, approved.id) if approved else ALLOWED
    if not decision.allowed and decision.conflict is not None:
        return decision.conflict(target_id=target_id, conflicting_claim_id=decision.conflicting_claim_id)

    detail = str(getattr(exc, "orig", exc))
    if "claimant_id" in detail or "one_pending" in detail:
        return DuplicatePending(target_id=target_id)
    return TargetAlreadyClaimed(target_id=target_id)


__all__ = ["GuardDecision", "can_submit", "can_approve", "conflict_from_integrity_error"]
