"""
Claimant-facing claim endpoints: submit, list own claims, read, withdraw.
"""
from typing import List
from fastapi import APIRouter, Depends, HTTPException, status, Request
from pydantic import ValidationError
from sqlalchemy.orm import Session
import time
from business_claims.api.deps import Caller, get_caller, get_db
from business_claims.models.schemas.base import ResponseBase
from business_claims.models.schemas.claims import ClaimantContact, ClaimRead, ClaimSubmit
from business_claims.services import claim_store
from business_claims.services.errors import ClaimServiceError, NotFound
from business_claims.services.submission import submit_claim, withdraw_claim
from business_claims.utils import get_logger, log_performance
from business_claims.utils.observability import request_id_of
from business_claims.utils.time import elapsed_ms

router = APIRouter()
logger = get_logger(__name__)


def _contact_for(caller: Caller, submission: ClaimSubmit) -> ClaimantContact:
    if submission.claimant_contact is not None:
        return submission.claimant_contact
    if not caller.email:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Claimant email required (claimantContact or X-User-Email)",
        )
    try:
        return ClaimantContact(name=caller.name or "", email=caller.email)
    except ValidationError:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="X-User-Email is not a valid email address; send claimantContact instead",
        )


@router.post(
    "/",
    response_model=ClaimRead,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a business claim",
    description="Request ownership of a listing. The claim starts pending until a reviewer decides."
)
async def submit(
    submission: ClaimSubmit,
    request: Request,
    caller: Caller = Depends(get_caller),
    db: Session = Depends(get_db)
) -> ClaimRead:
    start_time = time.time()
    request_id = request_id_of(request)

    logger.info(
        "Claim submission started",
        claimant_id=caller.id,
        target_id=submission.target_id,
        request_id=request_id
    )

    try:
        claim = submit_claim(
            db,
            claimant_id=caller.id,
            contact=_contact_for(caller, submission),
            target_id=submission.target_id,
            target_snapshot=submission.target_snapshot,
            verification=submission.verification,
            request_id=request_id,
        )
        response = ClaimRead.from_model(claim)
        log_performance(
            operation="submit_claim",
            duration_ms=elapsed_ms(start_time),
            additional_data={"claim_id": claim.id, "target_id": claim.target_id}
        )
        return response
    except (HTTPException, ClaimServiceError):
        raise
    except Exception as e:
        logger.error(
            "Claim submission failed with unexpected error",
            claimant_id=caller.id,
            target_id=submission.target_id,
            error=str(e),
            request_id=request_id,
            exc_info=True
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to submit claim"
        )


@router.get(
    "/mine",
    response_model=List[ClaimRead],
    summary="List my claims",
    description="All claims submitted by the caller, newest first"
)
async def list_my_claims(
    caller: Caller = Depends(get_caller),
    db: Session = Depends(get_db)
) -> List[ClaimRead]:
    claims = claim_store.list_by_claimant(db, caller.id)
    return [ClaimRead.from_model(c) for c in claims]


@router.get(
    "/{claim_id}",
    response_model=ClaimRead,
    summary="Get one of my claims"
)
async def get_my_claim(
    claim_id: str,
    caller: Caller = Depends(get_caller),
    db: Session = Depends(get_db)
) -> ClaimRead:
    claim = claim_store.get_claim(db, claim_id)
    # Other claimants' claims are indistinguishable from missing ones
    if claim is None or claim.claimant_id != caller.id:
        raise NotFound(f"Claim {claim_id} not found", claim_id=claim_id)
    return ClaimRead.from_model(claim)


@router.delete(
    "/{claim_id}",
    response_model=ResponseBase,
    summary="Withdraw a pending claim"
)
async def withdraw(
    claim_id: str,
    request: Request,
    caller: Caller = Depends(get_caller),
    db: Session = Depends(get_db)
) -> ResponseBase:
    request_id = request_id_of(request)
    withdraw_claim(db, claim_id, caller.id, request_id=request_id)
    return ResponseBase(message="Claim withdrawn", data={"claim_id": claim_id})
