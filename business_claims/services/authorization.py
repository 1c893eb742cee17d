"""Reviewer capability checks.

The claim lifecycle never decides who is a reviewer on its own; it asks an
injected authorizer. The default reads the ``REVIEWER_IDS`` allowlist so a
bare deployment works, while hosts with a role service plug their own in.
"""
from __future__ import annotations

from typing import Iterable, Protocol, runtime_checkable

from business_claims import config
from business_claims.services.errors import Unauthorized


@runtime_checkable
class ReviewerAuthorizer(Protocol):
    def is_reviewer(self, identity_id: str) -> bool: ...


class AllowlistReviewerAuthorizer:
    """Grants the reviewer capability to a fixed set of identity ids."""

    def __init__(self, reviewer_ids: Iterable[str] | None = None):
        self._explicit = set(reviewer_ids) if reviewer_ids is not None else None

    @property
    def reviewer_ids(self) -> set[str]:
        if self._explicit is not None:
            return self._explicit
        return set(config.REVIEWER_IDS)

    def is_reviewer(self, identity_id: str) -> bool:
        return bool(identity_id) and identity_id in self.reviewer_ids


def require_reviewer(authorizer: ReviewerAuthorizer, identity_id: str) -> None:
    if not authorizer.is_reviewer(identity_id):
        raise Unauthorized("Reviewer capability required", identity_id=identity_id)


__all__ = ["ReviewerAuthorizer", "AllowlistReviewerAuthorizer", "require_reviewer"]
