"""Account Store: the slice of user accounts the claim lifecycle writes.

Conversion only ever moves an account towards `business`; nothing here
downgrades an account or patches its business profile field by field.
"""
from __future__ import annotations

from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from business_claims.models.db.accounts import Account
from business_claims.models.db.enums import AccountType


def get_account(session: Session, account_id: str, *, for_update: bool = False) -> Optional[Account]:
    stmt = select(Account).where(Account.id == account_id)
    if for_update:
        stmt = stmt.with_for_update()
    return session.execute(stmt).scalar_one_or_none()


def grant_business_profile(
    session: Session,
    account_id: str,
    *,
    profile: dict[str, Any],
    role: str,
    email: str | None = None,
    full_name: str | None = None,
) -> Account:
    """Make ``account_id`` a business account holding exactly ``profile``.

    Creates the account when the claimant never had one. Contact fields only
    seed a new account; an existing account keeps its own email and name.
    The caller owns the transaction; a concurrent insert of the same id
    surfaces as IntegrityError on flush.
    """
    account = get_account(session, account_id, for_update=True)
    if account is None:
        account = Account(id=account_id, email=email, full_name=full_name)
        session.add(account)
    account.account_type = AccountType.BUSINESS
    account.business_profile = dict(profile)
    account.role = role
    session.flush()
    return account


__all__ = ["get_account", "grant_business_profile"]
