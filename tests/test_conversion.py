import asyncio
import pytest
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from business_claims import database
from business_claims.models.db.enums import AccountType
from business_claims.models.schemas import BusinessProfile, PlaceDetails
from business_claims.services import account_store, claim_store
from business_claims.services.conversion_engine import (
    approve_and_convert,
    build_business_profile,
    convert_claim,
    convert_with_lookup,
)
from business_claims.services.errors import LookupUnavailable, NotApproved, NotFound, PersistenceFailed
from business_claims.services.review_authority import approve_claim, reject_claim, revoke_claim


@pytest.fixture()
def approved_claim(claim_factory, db_session: Session, authorizer):
    claim = claim_factory()
    return approve_claim(db_session, claim.id, "reviewer-1", "ok", authorizer=authorizer)


def test_profile_prefers_fresh_attributes_but_keeps_snapshot_identity(approved_claim):
    fresh = PlaceDetails(
        name="Different Name",
        address="Somewhere else",
        phone="+1 555 0199",
        website="https://bluedoor.example",
        latitude=40.7128,
        longitude=-74.006,
        photo_ref="photo-ref-123",
    )
    profile = build_business_profile(approved_claim, fresh)
    assert profile["name"] == "Blue Door Coffee"
    assert profile["address"] == "12 Main St, Springfield"
    assert profile["category"] == "cafe"
    assert profile["phone"] == "+1 555 0199"
    assert profile["website"] == "https://bluedoor.example"
    assert profile["latitude"] == 40.7128 and profile["longitude"] == -74.006
    assert profile["logoRef"] == "photo-ref-123"
    assert profile["claimedTargetId"] == "place-blue-door"
    assert profile["acceptsDiscounts"] is False
    assert profile["customerDiscountPercent"] == 5


def test_profile_falls_back_to_claim_when_no_fresh_attributes(approved_claim):
    profile = build_business_profile(approved_claim, None)
    assert profile["phone"] == "+1 555 0100"
    assert profile["website"] == ""
    assert profile["logoRef"] == ""
    assert profile["latitude"] is None and profile["longitude"] is None
    # Round-trips through the contract model
    assert BusinessProfile.model_validate(profile).claimed_target_id == "place-blue-door"


def test_convert_creates_business_account(approved_claim, db_session: Session):
    account = convert_claim(db_session, approved_claim.id, PlaceDetails(website="https://bluedoor.example"))
    assert account.id == "user-alice"
    assert account.account_type == AccountType.BUSINESS
    assert account.role == "owner"
    assert account.email == "alice@example.com"
    assert account.full_name == "Alice Owner"
    assert account.business_profile["website"] == "https://bluedoor.example"
    claim = claim_store.require_claim(db_session, approved_claim.id)
    assert claim.converted_at is not None
    assert claim.is_approved


def test_convert_upgrades_existing_account_without_touching_contact(approved_claim, account_factory, db_session: Session):
    account_factory("user-alice", email="alice.personal@example.com", full_name="Alice P.")
    account = convert_claim(db_session, approved_claim.id, None)
    assert account.is_business
    assert account.email == "alice.personal@example.com"
    assert account.full_name == "Alice P."


def test_conversion_is_idempotent(approved_claim, db_session: Session):
    fresh = PlaceDetails(phone="+1 555 0199", latitude=1.5, longitude=2.5)
    first = convert_claim(db_session, approved_claim.id, fresh)
    profile_after_first = dict(first.business_profile)
    converted_at = claim_store.require_claim(db_session, approved_claim.id).converted_at

    second = convert_claim(db_session, approved_claim.id, fresh)
    assert second.business_profile == profile_after_first
    assert second.account_type == AccountType.BUSINESS
    db_session.expire_all()
    assert claim_store.require_claim(db_session, approved_claim.id).converted_at == converted_at


def test_convert_requires_approved(claim_factory, db_session: Session, authorizer):
    pending = claim_factory()
    with pytest.raises(NotApproved):
        convert_claim(db_session, pending.id, None)
    reject_claim(db_session, pending.id, "reviewer-1", "no", authorizer=authorizer)
    with pytest.raises(NotApproved):
        convert_claim(db_session, pending.id, None)
    assert account_store.get_account(db_session, "user-alice") is None


def test_convert_after_revoke_is_not_approved(approved_claim, db_session: Session, authorizer):
    revoke_claim(db_session, approved_claim.id, "reviewer-1", "disputed", authorizer=authorizer)
    with pytest.raises(NotApproved):
        convert_claim(db_session, approved_claim.id, None)


def test_convert_with_lookup_uses_fresh_attributes(approved_claim, db_session: Session, place_lookup):
    account = asyncio.run(convert_with_lookup(db_session, approved_claim.id, place_lookup))
    assert account.business_profile["phone"] == "+1 555 0199"
    assert account.business_profile["logoRef"] == "photo-ref-123"
    # Identity fields still come from the approved snapshot
    assert account.business_profile["name"] == "Blue Door Coffee"


def test_convert_with_lookup_unknown_place_uses_snapshot(claim_factory, db_session: Session, authorizer, place_lookup):
    claim = claim_factory(target_id="place-unlisted", target_name="Corner Shop")
    approve_claim(db_session, claim.id, "reviewer-1", authorizer=authorizer)
    account = asyncio.run(convert_with_lookup(db_session, claim.id, place_lookup))
    assert account.business_profile["name"] == "Corner Shop"
    assert account.business_profile["phone"] == "+1 555 0100"
    assert account.business_profile["website"] == ""


def test_lookup_outage_leaves_claim_convertible(approved_claim, db_session: Session, place_lookup, place_provider):
    place_provider.unavailable = True
    with pytest.raises(LookupUnavailable) as exc_info:
        asyncio.run(convert_with_lookup(db_session, approved_claim.id, place_lookup))
    assert exc_info.value.retryable is True
    assert place_provider.calls == 3

    claim = claim_store.require_claim(db_session, approved_claim.id)
    assert claim.is_approved and claim.converted_at is None
    assert account_store.get_account(db_session, "user-alice") is None

    # Recovery: the same call succeeds once the provider is back
    place_provider.unavailable = False
    account = asyncio.run(convert_with_lookup(db_session, approved_claim.id, place_lookup))
    assert account.is_business
    db_session.expire_all()
    assert claim_store.require_claim(db_session, approved_claim.id).converted_at is not None


def test_convert_with_lookup_checks_status_before_lookup(claim_factory, db_session: Session, place_lookup, place_provider):
    pending = claim_factory()
    with pytest.raises(NotApproved):
        asyncio.run(convert_with_lookup(db_session, pending.id, place_lookup))
    assert place_provider.calls == 0


def test_persistence_failure_is_retryable_and_rolls_back(approved_claim, db_session: Session, monkeypatch):
    def boom(*args, **kwargs):
        raise OperationalError("UPDATE accounts", {}, Exception("disk I/O error"))

    monkeypatch.setattr(account_store, "grant_business_profile", boom)
    with pytest.raises(PersistenceFailed) as exc_info:
        convert_claim(db_session, approved_claim.id, None)
    assert exc_info.value.retryable is True
    monkeypatch.undo()

    claim = claim_store.require_claim(db_session, approved_claim.id)
    assert claim.converted_at is None
    account = convert_claim(db_session, approved_claim.id, None)
    assert account.is_business


def test_concurrent_account_insert_retried_as_update(approved_claim, db_session: Session, monkeypatch):
    real_grant = account_store.grant_business_profile
    calls = {"n": 0}

    def flaky(*args, **kwargs):
        calls["n"] += 1
        if calls["n"] == 1:
            raise IntegrityError("INSERT INTO accounts", {}, Exception("UNIQUE constraint failed: accounts.id"))
        return real_grant(*args, **kwargs)

    monkeypatch.setattr(account_store, "grant_business_profile", flaky)
    account = convert_claim(db_session, approved_claim.id, None)
    assert calls["n"] == 2
    assert account.is_business


def test_approve_and_convert_success(claim_factory, db_session: Session, authorizer, place_lookup):
    claim = claim_factory()
    outcome = asyncio.run(
        approve_and_convert(db_session, claim.id, "reviewer-1", "verified", authorizer=authorizer, lookup=place_lookup)
    )
    assert outcome.converted is True
    assert outcome.conversion_error is None
    assert outcome.account is not None and outcome.account.is_business
    assert outcome.claim.is_approved
    assert outcome.claim.converted_at is not None


def test_approve_and_convert_keeps_approval_when_lookup_down(
    claim_factory, db_session: Session, authorizer, place_lookup, place_provider
):
    claim = claim_factory()
    place_provider.unavailable = True
    outcome = asyncio.run(
        approve_and_convert(db_session, claim.id, "reviewer-1", authorizer=authorizer, lookup=place_lookup)
    )
    assert outcome.converted is False
    assert isinstance(outcome.conversion_error, LookupUnavailable)
    stored = claim_store.require_claim(db_session, claim.id)
    assert stored.is_approved
    assert stored.converted_at is None


def test_approve_and_convert_without_auto_convert(claim_factory, db_session: Session, authorizer, place_lookup, place_provider):
    claim = claim_factory()
    outcome = asyncio.run(
        approve_and_convert(
            db_session, claim.id, "reviewer-1", authorizer=authorizer, lookup=place_lookup, auto_convert=False
        )
    )
    assert outcome.converted is False and outcome.conversion_error is None
    assert place_provider.calls == 0


class RevokingLookup:
    """Place lookup during which another reviewer hard-revokes the claim."""

    def __init__(self, claim_id, authorizer):
        self.claim_id = claim_id
        self.authorizer = authorizer

    async def lookup(self, target_id):
        other = database.SessionLocal()
        try:
            revoke_claim(other, self.claim_id, "reviewer-2", "Duplicate listing", hard_delete=True, authorizer=self.authorizer)
        finally:
            other.close()
        return None


def test_approve_and_convert_reports_claim_removed_mid_conversion(claim_factory, db_session: Session, authorizer):
    claim = claim_factory()
    outcome = asyncio.run(
        approve_and_convert(
            db_session, claim.id, "reviewer-1", authorizer=authorizer, lookup=RevokingLookup(claim.id, authorizer)
        )
    )
    assert outcome.converted is False
    assert isinstance(outcome.conversion_error, NotFound)
    assert outcome.account is None
    # The committed approval is still reportable to the reviewer
    assert outcome.claim.status.value == "approved"
    assert outcome.claim.reviewer_id == "reviewer-1"
    assert claim_store.get_claim(db_session, claim.id) is None
