"""
Account read endpoints: the caller's own account and, for reviewers, any account.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from business_claims.api.deps import Caller, get_caller, get_db, get_reviewer
from business_claims.models.schemas.accounts import AccountRead
from business_claims.services import account_store
from business_claims.utils import get_logger

router = APIRouter()
logger = get_logger(__name__)


@router.get("/me", response_model=AccountRead, summary="Get my account")
async def get_my_account(
    caller: Caller = Depends(get_caller),
    db: Session = Depends(get_db)
) -> AccountRead:
    account = account_store.get_account(db, caller.id)
    if account is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Account not found"
        )
    return AccountRead.model_validate(account)


@router.get("/{account_id}", response_model=AccountRead, summary="Get an account (reviewers)")
async def get_account(
    account_id: str,
    reviewer: Caller = Depends(get_reviewer),
    db: Session = Depends(get_db)
) -> AccountRead:
    account = account_store.get_account(db, account_id)
    if account is None:
        logger.warning("Account lookup failed", account_id=account_id, reviewer_id=reviewer.id)
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Account {account_id} not found"
        )
    return AccountRead.model_validate(account)
