"""Conversion engine: approved claim -> business account.

Public entry points:

* ``build_business_profile(claim, fresh)``: pure profile construction
* ``convert_claim(session, claim_id, fresh)``: persist the profile, stamp the claim
* ``convert_with_lookup(session, claim_id, lookup)``: fetch fresh attributes first
* ``approve_and_convert(...)``: approval followed by a best-effort conversion

Conversion is idempotent. The account write and the ``converted_at`` stamp
share one transaction, so a failure at any point leaves the claim approved and
unconverted and the next call repeats the whole thing. The profile is rebuilt
from the same inputs every time and replaces the stored one wholesale;
``converted_at`` keeps its first value.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from business_claims.config import BUSINESS_PROFILE_DEFAULTS, CLAIM_RULES
from business_claims.models.db.accounts import Account
from business_claims.models.db.claims import BusinessClaim
from business_claims.models.schemas.accounts import BusinessProfile
from business_claims.models.schemas.places import PlaceDetails
from business_claims.services import account_store, claim_store
from business_claims.services.authorization import ReviewerAuthorizer
from business_claims.services.errors import (
    ClaimServiceError,
    ConversionFailed,
    NotApproved,
    PersistenceFailed,
)
from business_claims.services.place_lookup import PlaceLookupService
from business_claims.services.review_authority import approve_claim
from business_claims.utils import get_logger, log_business_event
from business_claims.utils.time import utc_now

logger = get_logger(__name__)

# One retry covers the insert race where two conversions create the same account
_MAX_WRITE_ATTEMPTS = 2


def build_business_profile(claim: BusinessClaim, fresh: Optional[PlaceDetails]) -> Dict[str, Any]:
    """Profile for ``claim``; fresh attributes win, the snapshot fills the gaps.

    Name, category and address always come from the claim snapshot (what the
    reviewer approved). Phone falls back to the claimant-provided business
    phone. Discount fields are fixed defaults: conversion never enrols a
    business in the discount program.
    """
    fresh = fresh or PlaceDetails()
    profile = BusinessProfile(
        name=claim.target_name,
        category=claim.target_category or "",
        address=claim.target_address or "",
        latitude=fresh.latitude,
        longitude=fresh.longitude,
        phone=fresh.phone or claim.business_phone or "",
        website=fresh.website or "",
        logo_ref=fresh.photo_ref or "",
        claimed_target_id=claim.target_id,
        accepts_discounts=bool(BUSINESS_PROFILE_DEFAULTS["accepts_discounts"]),
        customer_discount_percent=int(BUSINESS_PROFILE_DEFAULTS["customer_discount_percent"]),
    )
    return profile.model_dump(by_alias=True)


def _require_approved(claim: BusinessClaim) -> None:
    if not claim.is_approved:
        raise NotApproved(
            f"Claim is {claim.status.value}; only approved claims can be converted",
            claim_id=claim.id,
        )


def convert_claim(
    session: Session,
    claim_id: str,
    fresh: Optional[PlaceDetails],
    *,
    actor_id: Optional[str] = None,
    request_id: Optional[str] = None,
) -> Account:
    """Write the business profile for an approved claim and stamp ``converted_at``.

    Raises:
        NotFound: unknown claim
        NotApproved: claim is pending or rejected (also when revoked mid-flight)
        PersistenceFailed: the account or claim write failed; safe to retry
    """
    for attempt in range(1, _MAX_WRITE_ATTEMPTS + 1):
        claim = claim_store.require_claim(session, claim_id)
        _require_approved(claim)
        profile = build_business_profile(claim, fresh)
        role = claim.business_role or str(CLAIM_RULES["default_business_role"])
        account_id = claim.claimant_id
        try:
            account = account_store.grant_business_profile(
                session,
                account_id,
                profile=profile,
                role=role,
                email=claim.claimant_email,
                full_name=claim.claimant_name or None,
            )
            # Conditional stamp: fails if the claim was revoked since we read it
            if not claim_store.mark_converted(session, claim_id, utc_now()):
                session.rollback()
                raise NotApproved("Claim is no longer approved", claim_id=claim_id)
            session.commit()
            break
        except IntegrityError as e:
            session.rollback()
            if attempt >= _MAX_WRITE_ATTEMPTS:
                logger.error("Business account write failed", claim_id=claim_id, error=str(e))
                raise PersistenceFailed(cause=e, claim_id=claim_id) from e
            logger.warning(
                "Concurrent account creation detected; retrying as update",
                claim_id=claim_id,
                account_id=account_id,
            )
        except SQLAlchemyError as e:
            session.rollback()
            logger.error("Conversion persistence failed", claim_id=claim_id, error=str(e), exc_info=True)
            raise PersistenceFailed(cause=e, claim_id=claim_id) from e

    session.refresh(account)
    session.refresh(claim)
    log_business_event(
        "claim_converted",
        {
            "claim_id": claim_id,
            "account_id": account.id,
            "target_id": claim.target_id,
            "fresh_attributes": fresh is not None,
        },
        user_id=actor_id,
        request_id=request_id,
    )
    return account


async def convert_with_lookup(
    session: Session,
    claim_id: str,
    lookup: PlaceLookupService,
    *,
    actor_id: Optional[str] = None,
    request_id: Optional[str] = None,
) -> Account:
    """Fetch fresh listing attributes, then convert.

    The approval check runs before the lookup so a pending or rejected claim
    never costs a network call. A target unknown to the provider converts from
    the snapshot alone; an unreachable provider raises LookupUnavailable and
    nothing is written.
    """
    claim = claim_store.require_claim(session, claim_id)
    _require_approved(claim)
    target_id = claim.target_id
    # No transaction held open across the network call
    session.commit()

    try:
        fresh = await lookup.lookup(target_id)
    except ConversionFailed as e:
        logger.warning("Conversion deferred: place lookup unavailable", claim_id=claim_id, error=e.message)
        raise
    if fresh is None:
        logger.warning("Converting from claim snapshot; target unknown to place lookup", claim_id=claim_id, target_id=target_id)
    return convert_claim(session, claim_id, fresh, actor_id=actor_id, request_id=request_id)


@dataclass
class ApprovalOutcome:
    claim: BusinessClaim
    converted: bool = False
    account: Optional[Account] = None
    conversion_error: Optional[ClaimServiceError] = None


async def approve_and_convert(
    session: Session,
    claim_id: str,
    reviewer_id: str,
    notes: Optional[str] = None,
    *,
    authorizer: ReviewerAuthorizer,
    lookup: PlaceLookupService,
    auto_convert: bool = True,
    request_id: Optional[str] = None,
) -> ApprovalOutcome:
    """Approve, then try to convert.

    The approval is committed first and stands on its own: a failed conversion
    is reported on the outcome and can be repeated later through
    ``convert_with_lookup``.
    """
    claim = approve_claim(
        session, claim_id, reviewer_id, notes, authorizer=authorizer, request_id=request_id
    )
    if not auto_convert:
        return ApprovalOutcome(claim=claim)

    # The approved row stays readable even if it is revoked while we convert
    session.expunge(claim)
    outcome = ApprovalOutcome(claim=claim)
    try:
        outcome.account = await convert_with_lookup(
            session, claim_id, lookup, actor_id=reviewer_id, request_id=request_id
        )
        outcome.converted = True
        outcome.claim = claim_store.get_claim(session, claim_id) or claim
    except ClaimServiceError as e:
        logger.warning(
            "Claim approved but conversion did not complete; convert again to recover",
            claim_id=claim_id,
            error_code=e.code,
            error=e.message,
        )
        outcome.conversion_error = e
    return outcome


__all__ = [
    "build_business_profile",
    "convert_claim",
    "convert_with_lookup",
    "ApprovalOutcome",
    "approve_and_convert",
]
