import pytest
from sqlalchemy.orm import Session

from business_claims.models.db.enums import ClaimStatus
from business_claims.services import account_store, claim_store
from business_claims.services.authorization import AllowlistReviewerAuthorizer
from business_claims.services.errors import (
    InvalidState,
    NotFound,
    NotesRequired,
    TargetAlreadyClaimed,
    Unauthorized,
)
from business_claims.services.review_authority import (
    approve_claim,
    delete_claim,
    reject_claim,
    revoke_claim,
)


def test_approve_sets_review_provenance(claim_factory, db_session: Session, authorizer):
    claim = claim_factory()
    approved = approve_claim(db_session, claim.id, "reviewer-1", "Verified by phone", authorizer=authorizer)
    assert approved.status == ClaimStatus.APPROVED
    assert approved.reviewer_id == "reviewer-1"
    assert approved.review_notes == "Verified by phone"
    assert approved.reviewed_at is not None
    assert approved.converted_at is None


def test_approve_without_notes_stores_empty_notes(claim_factory, db_session: Session, authorizer):
    claim = claim_factory()
    approved = approve_claim(db_session, claim.id, "reviewer-1", authorizer=authorizer)
    assert approved.review_notes == ""


def test_non_reviewer_cannot_review(claim_factory, db_session: Session, authorizer):
    claim = claim_factory()
    with pytest.raises(Unauthorized):
        approve_claim(db_session, claim.id, "user-alice", authorizer=authorizer)
    with pytest.raises(Unauthorized):
        reject_claim(db_session, claim.id, "user-alice", "nope", authorizer=authorizer)
    with pytest.raises(Unauthorized):
        revoke_claim(db_session, claim.id, "user-alice", "nope", authorizer=authorizer)
    with pytest.raises(Unauthorized):
        delete_claim(db_session, claim.id, "user-alice", authorizer=authorizer)
    assert claim_store.require_claim(db_session, claim.id).is_pending


def test_allowlist_authorizer_reads_config_when_not_given(monkeypatch):
    from business_claims import config
    monkeypatch.setattr(config, "REVIEWER_IDS", ["admin-7"])
    auth = AllowlistReviewerAuthorizer()
    assert auth.is_reviewer("admin-7") is True
    assert auth.is_reviewer("user-1") is False
    assert auth.is_reviewer("") is False


def test_approve_requires_pending(claim_factory, db_session: Session, authorizer):
    claim = claim_factory()
    reject_claim(db_session, claim.id, "reviewer-1", "Unverifiable", authorizer=authorizer)
    with pytest.raises(InvalidState):
        approve_claim(db_session, claim.id, "reviewer-2", authorizer=authorizer)
    stored = claim_store.require_claim(db_session, claim.id)
    assert stored.status == ClaimStatus.REJECTED
    assert stored.reviewer_id == "reviewer-1"


def test_approve_unknown_claim(db_session: Session, authorizer):
    with pytest.raises(NotFound):
        approve_claim(db_session, "missing", "reviewer-1", authorizer=authorizer)


def test_second_approval_for_target_fails_and_leaves_claim_untouched(claim_factory, db_session: Session, authorizer):
    alice = claim_factory()
    bob = claim_factory("user-bob", name="Bob", email="bob@example.com")
    approve_claim(db_session, alice.id, "reviewer-1", authorizer=authorizer)

    with pytest.raises(TargetAlreadyClaimed):
        approve_claim(db_session, bob.id, "reviewer-2", "looks fine", authorizer=authorizer)

    stored = claim_store.require_claim(db_session, bob.id)
    assert stored.status == ClaimStatus.PENDING
    assert stored.reviewed_at is None
    assert stored.reviewer_id is None
    assert stored.review_notes is None
    assert [c.id for c in claim_store.list_approved(db_session)] == [alice.id]


def test_reject_requires_notes(claim_factory, db_session: Session, authorizer):
    claim = claim_factory()
    for notes in ("", "   "):
        with pytest.raises(NotesRequired):
            reject_claim(db_session, claim.id, "reviewer-1", notes, authorizer=authorizer)
    stored = claim_store.require_claim(db_session, claim.id)
    assert stored.is_pending
    assert stored.reviewed_at is None


def test_reject_records_notes(claim_factory, db_session: Session, authorizer):
    claim = claim_factory()
    rejected = reject_claim(db_session, claim.id, "reviewer-1", "Phone number did not match", authorizer=authorizer)
    assert rejected.status == ClaimStatus.REJECTED
    assert rejected.review_notes == "Phone number did not match"
    assert rejected.reviewer_id == "reviewer-1"
    with pytest.raises(InvalidState):
        reject_claim(db_session, claim.id, "reviewer-1", "again", authorizer=authorizer)


def test_soft_revoke_frees_target(claim_factory, db_session: Session, authorizer):
    alice = claim_factory()
    approve_claim(db_session, alice.id, "reviewer-1", authorizer=authorizer)

    revoked = revoke_claim(db_session, alice.id, "reviewer-2", "Ownership disputed", authorizer=authorizer)
    assert revoked is not None
    assert revoked.status == ClaimStatus.REJECTED
    assert revoked.review_notes == "revoked: Ownership disputed"
    assert revoked.reviewer_id == "reviewer-2"
    assert revoked.revoked_by == "reviewer-2"
    assert revoked.revoked_at is not None
    assert claim_store.find_approved_for_target(db_session, "place-blue-door") is None

    bob = claim_factory("user-bob", name="Bob", email="bob@example.com")
    approved = approve_claim(db_session, bob.id, "reviewer-1", authorizer=authorizer)
    assert approved.is_approved


def test_hard_revoke_deletes_record(claim_factory, db_session: Session, authorizer):
    claim = claim_factory()
    claim_id = claim.id
    approve_claim(db_session, claim_id, "reviewer-1", authorizer=authorizer)
    assert revoke_claim(db_session, claim_id, "reviewer-1", "Duplicate listing", hard_delete=True, authorizer=authorizer) is None
    assert claim_store.get_claim(db_session, claim_id) is None
    assert claim_store.list_approved(db_session) == []


def test_revoke_requires_approved_and_reason(claim_factory, db_session: Session, authorizer):
    claim = claim_factory()
    with pytest.raises(InvalidState):
        revoke_claim(db_session, claim.id, "reviewer-1", "not yet approved", authorizer=authorizer)
    approve_claim(db_session, claim.id, "reviewer-1", authorizer=authorizer)
    with pytest.raises(NotesRequired):
        revoke_claim(db_session, claim.id, "reviewer-1", " ", authorizer=authorizer)
    assert claim_store.require_claim(db_session, claim.id).is_approved


def test_revoke_leaves_converted_account_alone(claim_factory, db_session: Session, authorizer):
    from business_claims.services.conversion_engine import convert_claim

    claim = claim_factory()
    approve_claim(db_session, claim.id, "reviewer-1", authorizer=authorizer)
    convert_claim(db_session, claim.id, None)
    revoke_claim(db_session, claim.id, "reviewer-1", "Sold the business", authorizer=authorizer)

    account = account_store.get_account(db_session, "user-alice")
    assert account is not None
    assert account.is_business
    assert account.business_profile["claimedTargetId"] == "place-blue-door"


def test_delete_claim_rules(claim_factory, db_session: Session, authorizer):
    pending = claim_factory()
    delete_claim(db_session, pending.id, "reviewer-1", authorizer=authorizer)
    assert claim_store.list_by_claimant(db_session, "user-alice") == []

    rejected = claim_factory()
    reject_claim(db_session, rejected.id, "reviewer-1", "Unverifiable", authorizer=authorizer)
    delete_claim(db_session, rejected.id, "reviewer-1", authorizer=authorizer)
    assert claim_store.get_claim(db_session, rejected.id) is None

    approved = claim_factory()
    approve_claim(db_session, approved.id, "reviewer-1", authorizer=authorizer)
    with pytest.raises(InvalidState):
        delete_claim(db_session, approved.id, "reviewer-1", authorizer=authorizer)
    assert claim_store.require_claim(db_session, approved.id).is_approved


def test_listing_order_and_filters(claim_factory, db_session: Session, authorizer):
    first = claim_factory("user-a", "place-1", email="a@example.com")
    second = claim_factory("user-b", "place-2", email="b@example.com")
    third = claim_factory("user-c", "place-3", email="c@example.com")
    approve_claim(db_session, second.id, "reviewer-1", authorizer=authorizer)
    approve_claim(db_session, first.id, "reviewer-1", authorizer=authorizer)

    assert [c.id for c in claim_store.list_approved(db_session)] == [first.id, second.id]
    assert [c.id for c in claim_store.list_all(db_session, ClaimStatus.PENDING)] == [third.id]
    assert {c.id for c in claim_store.list_all(db_session)} == {first.id, second.id, third.id}
    assert claim_store.count_by_status(db_session) == {"pending": 1, "approved": 2, "rejected": 0}


def test_removed_claims_stay_readable_for_the_caller(claim_factory, db_session: Session, authorizer):
    approved = claim_factory()
    approve_claim(db_session, approved.id, "reviewer-1", authorizer=authorizer)
    revoke_claim(db_session, approved.id, "reviewer-1", "Duplicate listing", hard_delete=True, authorizer=authorizer)
    assert approved.status == ClaimStatus.APPROVED
    assert approved.target_id == "place-blue-door"
    assert approved not in db_session

    rejected = claim_factory()
    reject_claim(db_session, rejected.id, "reviewer-1", "Unverifiable", authorizer=authorizer)
    delete_claim(db_session, rejected.id, "reviewer-1", authorizer=authorizer)
    assert rejected.status == ClaimStatus.REJECTED
    assert rejected.review_notes == "Unverifiable"


def test_list_all_is_unbounded_unless_paged(claim_factory, db_session: Session):
    for n in range(5):
        claim_factory(f"user-{n}", f"place-{n}", email=f"u{n}@example.com")
    everything = [c.id for c in claim_store.list_all(db_session)]
    assert len(everything) == 5
    page = claim_store.list_all(db_session, limit=2, offset=2)
    assert [c.id for c in page] == everything[2:4]
