"""Claim Store: persistence access for business claims.

Lookups by id, by (claimant, target) and by target alone, plus the conditional
writes the lifecycle relies on. Every status change is a compare-and-set
(``UPDATE ... WHERE status = <expected>``) so two actors racing on the same claim
cannot both win; the row count tells the caller whether its expectation held.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from business_claims.models.db.claims import BusinessClaim
from business_claims.models.db.enums import ClaimStatus
from business_claims.services.errors import NotFound


def get_claim(session: Session, claim_id: str, *, for_update: bool = False) -> Optional[BusinessClaim]:
    stmt = select(BusinessClaim).where(BusinessClaim.id == claim_id)
    if for_update:
        stmt = stmt.with_for_update()
    return session.execute(stmt).scalar_one_or_none()


def require_claim(session: Session, claim_id: str, *, for_update: bool = False) -> BusinessClaim:
    claim = get_claim(session, claim_id, for_update=for_update)
    if claim is None:
        raise NotFound(f"Claim {claim_id} not found", claim_id=claim_id)
    return claim


def find_pending_for_pair(
    session: Session, claimant_id: str, target_id: str, *, for_update: bool = False
) -> Optional[BusinessClaim]:
    stmt = select(BusinessClaim).where(
        BusinessClaim.claimant_id == claimant_id,
        BusinessClaim.target_id == target_id,
        BusinessClaim.status == ClaimStatus.PENDING,
    )
    if for_update:
        stmt = stmt.with_for_update()
    return session.execute(stmt.limit(1)).scalar_one_or_none()


def find_approved_for_target(
    session: Session,
    target_id: str,
    *,
    exclude_claim_id: str | None = None,
    for_update: bool = False,
) -> Optional[BusinessClaim]:
    stmt = select(BusinessClaim).where(
        BusinessClaim.target_id == target_id,
        BusinessClaim.status == ClaimStatus.APPROVED,
    )
    if exclude_claim_id is not None:
        stmt = stmt.where(BusinessClaim.id != exclude_claim_id)
    if for_update:
        stmt = stmt.with_for_update()
    return session.execute(stmt.limit(1)).scalar_one_or_none()


def list_by_claimant(session: Session, claimant_id: str) -> list[BusinessClaim]:
    stmt = (
        select(BusinessClaim)
        .where(BusinessClaim.claimant_id == claimant_id)
        .order_by(BusinessClaim.submitted_at.desc())
    )
    return list(session.execute(stmt).scalars())


def list_all(
    session: Session,
    status: ClaimStatus | None = None,
    *,
    limit: int | None = None,
    offset: int = 0,
) -> list[BusinessClaim]:
    """Every claim, newest submission first. Unbounded unless the caller pages."""
    stmt = select(BusinessClaim)
    if status is not None:
        stmt = stmt.where(BusinessClaim.status == status)
    stmt = stmt.order_by(BusinessClaim.submitted_at.desc(), BusinessClaim.id.desc())
    if offset:
        stmt = stmt.offset(offset)
    if limit is not None:
        stmt = stmt.limit(limit)
    return list(session.execute(stmt).scalars())


def list_approved(session: Session) -> list[BusinessClaim]:
    """Claimed businesses, most recently reviewed first."""
    stmt = (
        select(BusinessClaim)
        .where(BusinessClaim.status == ClaimStatus.APPROVED)
        .order_by(BusinessClaim.reviewed_at.desc())
    )
    return list(session.execute(stmt).scalars())


def count_by_status(session: Session) -> dict[str, int]:
    rows = session.execute(
        select(BusinessClaim.status, func.count(BusinessClaim.id)).group_by(BusinessClaim.status)
    ).all()
    counts = {status.value: 0 for status in ClaimStatus}
    for status, count in rows:
        counts[ClaimStatus(status).value] = count
    return counts


def add_claim(session: Session, claim: BusinessClaim) -> BusinessClaim:
    session.add(claim)
    session.flush()
    return claim


def transition_status(
    session: Session,
    claim_id: str,
    *,
    expected: ClaimStatus,
    values: dict[str, Any],
) -> bool:
    """Apply ``values`` only if the claim is still in ``expected`` status.

    May raise IntegrityError when the new status collides with a partial
    unique index (another approved claim for the target).
    """
    result = session.execute(
        update(BusinessClaim)
        .where(BusinessClaim.id == claim_id, BusinessClaim.status == expected)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def mark_converted(session: Session, claim_id: str, now: datetime) -> bool:
    """Stamp ``converted_at`` once, and only while the claim is approved."""
    result = session.execute(
        update(BusinessClaim)
        .where(BusinessClaim.id == claim_id, BusinessClaim.status == ClaimStatus.APPROVED)
        .values(converted_at=func.coalesce(BusinessClaim.converted_at, now))
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def delete_claim(session: Session, claim_id: str, *, expected: ClaimStatus | None = None) -> bool:
    stmt = delete(BusinessClaim).where(BusinessClaim.id == claim_id)
    if expected is not None:
        stmt = stmt.where(BusinessClaim.status == expected)
    result = session.execute(stmt.execution_options(synchronize_session=False))
    return result.rowcount == 1


__all__ = [
    "get_claim",
    "require_claim",
    "find_pending_for_pair",
    "find_approved_for_target",
    "list_by_claimant",
    "list_all",
    "list_approved",
    "count_by_status",
    "add_claim",
    "transition_status",
    "mark_converted",
    "delete_claim",
]
