"""
Dependencies for caller identity, reviewer capability, database sessions and
the outbound collaborators (place lookup, notifier).
"""
import hmac
from dataclasses import dataclass
from typing import Generator, Optional
from fastapi import Depends, HTTPException, status, Header, Request
from sqlalchemy.orm import Session
from business_claims import config
from business_claims.database import SessionLocal
from business_claims.services.authorization import AllowlistReviewerAuthorizer, ReviewerAuthorizer, require_reviewer
from business_claims.services.notifications import Notifier, build_notifier
from business_claims.services.place_lookup import PlaceLookupService, build_place_lookup_service
from business_claims.utils import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Caller:
    """Authenticated identity forwarded by the host application."""
    id: str
    email: Optional[str] = None
    name: Optional[str] = None


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.
    Ensures proper session lifecycle management with automatic cleanup.

    Yields:
        Session: SQLAlchemy database session
    """
    db = SessionLocal()
    try:
        yield db
    except Exception as e:
        logger.error("Database session error", error=str(e), exc_info=True)
        db.rollback()
        raise
    finally:
        db.close()


def get_caller(
    request: Request,
    x_user_id: Optional[str] = Header(None, alias="X-User-ID"),
    x_user_email: Optional[str] = Header(None, alias="X-User-Email"),
    x_user_name: Optional[str] = Header(None, alias="X-User-Name"),
) -> Caller:
    """Resolve the caller from the gateway headers.

    The host backend authenticates users and forwards their identity with
    ``Authorization: Gateway <token>`` plus ``X-User-ID`` (and optionally
    ``X-User-Email`` / ``X-User-Name``). Anything else is rejected with 401.
    """
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Gateway "):
        logger.warning("Authentication failed: missing gateway credentials")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Gateway authentication required",
            headers={"WWW-Authenticate": "Gateway"},
        )

    token = auth_header[len("Gateway "):]
    expected = config.GATEWAY_INTERNAL_TOKEN
    if not expected or not hmac.compare_digest(token.encode(), expected.encode()):
        logger.warning(
            "Authentication failed: invalid gateway token",
            provided_token_prefix=token[:6] + "..." if len(token) > 6 else token,
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid gateway token",
        )

    if not x_user_id:
        logger.warning("Authentication failed: missing X-User-ID header")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-User-ID header required",
        )

    return Caller(id=x_user_id, email=x_user_email or None, name=x_user_name or None)


def get_authorizer(request: Request) -> ReviewerAuthorizer:
    authorizer = getattr(request.app.state, "reviewer_authorizer", None)
    return authorizer or AllowlistReviewerAuthorizer()


def get_reviewer(
    caller: Caller = Depends(get_caller),
    authorizer: ReviewerAuthorizer = Depends(get_authorizer),
) -> Caller:
    """Caller holding the reviewer capability; Unauthorized (403) otherwise."""
    require_reviewer(authorizer, caller.id)
    return caller


def get_place_lookup(request: Request) -> PlaceLookupService:
    lookup = getattr(request.app.state, "place_lookup", None)
    if lookup is None:
        lookup = build_place_lookup_service()
        request.app.state.place_lookup = lookup
    return lookup


def get_notifier(request: Request) -> Notifier:
    notifier = getattr(request.app.state, "notifier", None)
    if notifier is None:
        notifier = build_notifier()
        request.app.state.notifier = notifier
    return notifier


def get_pagination_params(
    limit: int = 100,
    offset: int = 0
) -> dict:
    """
    Validate and return pagination parameters.

    Args:
        limit: Maximum number of items to return (1-500)
        offset: Number of items to skip (>= 0)

    Raises:
        HTTPException: If parameters are invalid
    """
    if limit < 1 or limit > 500:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Limit must be between 1 and 500"
        )

    if offset < 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Offset must be >= 0"
        )

    return {"limit": limit, "offset": offset}
