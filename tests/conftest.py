"""Pytest fixtures and factories.

Tests bypass the lifespan handler, so the collaborators it would put on
app.state (place lookup, notifier, reviewer authorizer) are installed here.
"""
import os
import sys
from pathlib import Path
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Ensure project root on sys.path so 'business_claims' resolves without an install
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from business_claims import config  # type: ignore
from business_claims.main import app  # type: ignore
from business_claims.database import Base  # type: ignore
from business_claims.api import deps  # type: ignore
from business_claims.integrations.static import StaticPlaceProvider
from business_claims.models.db import Account, BusinessClaim
from business_claims.models.db.enums import AccountType
from business_claims.models.schemas import ClaimantContact, PlaceDetails, TargetSnapshot, Verification
from business_claims.services.authorization import AllowlistReviewerAuthorizer
from business_claims.services.place_lookup import PlaceLookupService
from business_claims.services.submission import submit_claim
from business_claims.utils.circuit_breaker import GLOBAL_CIRCUIT_BREAKER

GATEWAY_TOKEN = "test-gateway-token"
REVIEWER_ID = "reviewer-1"
OTHER_REVIEWER_ID = "reviewer-2"
KNOWN_TARGET_ID = "place-blue-door"

# File-based SQLite so concurrent sessions in worker threads each get their own connection.
# The busy timeout lets competing writers queue instead of failing with "database is locked".
SQLALCHEMY_TEST_URL = "sqlite+pysqlite:///./test_business_claims.db"
engine = create_engine(
    SQLALCHEMY_TEST_URL,
    connect_args={"check_same_thread": False, "timeout": 30},
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

import business_claims.database as _database  # noqa: E402
_database.SessionLocal = TestingSessionLocal  # type: ignore

config.GATEWAY_INTERNAL_TOKEN = GATEWAY_TOKEN


@pytest.fixture(scope="session", autouse=True)
def create_test_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    engine.dispose()
    try:
        os.remove("test_business_claims.db")
    except OSError:
        pass


@pytest.fixture()
def db_session():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


# Override dependency
def _override_get_db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()

app.dependency_overrides[deps.get_db] = _override_get_db


class RecordingNotifier:
    def __init__(self):
        self.sent = []
        self.fail = False

    async def send(self, notification):
        if self.fail:
            raise ConnectionError("mail relay down")
        self.sent.append(notification)


async def _no_sleep(_seconds: float) -> None:
    return None


@pytest.fixture()
def place_provider():
    return StaticPlaceProvider(
        places={
            KNOWN_TARGET_ID: PlaceDetails(
                name="Blue Door Coffee (Google)",
                address="12 Main Street, Springfield",
                category="cafe",
                phone="+1 555 0199",
                website="https://bluedoor.example",
                latitude=40.7128,
                longitude=-74.006,
                photo_ref="photo-ref-123",
            )
        },
        failure_rate=0.0,
    )


@pytest.fixture()
def place_lookup(place_provider):
    return PlaceLookupService(place_provider, max_attempts=3, sleep=_no_sleep)


@pytest.fixture()
def notifier():
    return RecordingNotifier()


@pytest.fixture()
def authorizer():
    return AllowlistReviewerAuthorizer({REVIEWER_ID, OTHER_REVIEWER_ID})


@pytest.fixture(autouse=True)
def _isolate_test_state(create_test_db, place_lookup, notifier, authorizer):
    """Per-test isolation: empty tables, closed circuits, fresh collaborators on app.state."""
    GLOBAL_CIRCUIT_BREAKER.reset()
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())
    app.state.place_lookup = place_lookup
    app.state.notifier = notifier
    app.state.reviewer_authorizer = authorizer
    yield
    GLOBAL_CIRCUIT_BREAKER.reset()


@pytest.fixture()
def client():
    return TestClient(app)


def gateway_headers(user_id: str, email: str | None = None, name: str | None = None) -> dict:
    headers = {"Authorization": f"Gateway {GATEWAY_TOKEN}", "X-User-ID": user_id}
    if email:
        headers["X-User-Email"] = email
    if name:
        headers["X-User-Name"] = name
    return headers


@pytest.fixture()
def headers_for():
    return gateway_headers


@pytest.fixture()
def reviewer_headers():
    return gateway_headers(REVIEWER_ID, "reviewer@example.com", "Rita Reviewer")


# ---------- Data factory helpers ----------

@pytest.fixture()
def claim_factory(db_session):
    def _create(
        claimant_id: str = "user-alice",
        target_id: str = KNOWN_TARGET_ID,
        *,
        name: str = "Alice Owner",
        email: str = "alice@example.com",
        target_name: str = "Blue Door Coffee",
        role: str | None = "owner",
        business_phone: str | None = "+1 555 0100",
        business_email: str | None = None,
    ) -> BusinessClaim:
        return submit_claim(
            db_session,
            claimant_id=claimant_id,
            contact=ClaimantContact(name=name, email=email),
            target_id=target_id,
            target_snapshot=TargetSnapshot(name=target_name, address="12 Main St, Springfield", category="cafe"),
            verification=Verification(role=role, business_phone=business_phone, business_email=business_email),
        )
    return _create


@pytest.fixture()
def account_factory(db_session):
    def _create(account_id: str, *, email: str = "existing@example.com", full_name: str = "Existing User") -> Account:
        account = Account(id=account_id, account_type=AccountType.INDIVIDUAL, email=email, full_name=full_name)
        db_session.add(account)
        db_session.commit()
        db_session.refresh(account)
        return account
    return _create
