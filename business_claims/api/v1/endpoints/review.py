"""
Reviewer-facing claim endpoints.

Every route requires the reviewer capability (403 otherwise). Approval commits
before conversion is attempted; a conversion that fails is reported inside the
approval result and can be retried through ``POST /claims/{id}/convert``.
Claimant notifications go out after the response as background tasks.
"""
from typing import List, Optional
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status, Request
from sqlalchemy.orm import Session
import time
from business_claims.api.deps import (
    Caller,
    get_authorizer,
    get_db,
    get_notifier,
    get_pagination_params,
    get_place_lookup,
    get_reviewer,
)
from business_claims.models.db.enums import ClaimStatus
from business_claims.models.schemas.accounts import AccountRead
from business_claims.models.schemas.base import ErrorDetail, ResponseBase
from business_claims.models.schemas.claims import (
    ApprovalResult,
    ApproveRequest,
    ClaimRead,
    ConversionResult,
    RejectRequest,
    RevokeRequest,
)
from business_claims.services import claim_store
from business_claims.services.authorization import ReviewerAuthorizer
from business_claims.services.conversion_engine import approve_and_convert, convert_with_lookup
from business_claims.services.errors import ClaimServiceError
from business_claims.services.notifications import (
    Notifier,
    build_approval_notification,
    build_rejection_notification,
    dispatch_notification,
)
from business_claims.services.place_lookup import PlaceLookupService
from business_claims.services.review_authority import delete_claim, reject_claim, revoke_claim
from business_claims.utils import get_logger, log_performance
from business_claims.utils.observability import request_id_of
from business_claims.utils.time import elapsed_ms

router = APIRouter(dependencies=[Depends(get_reviewer)])
logger = get_logger(__name__)


@router.get(
    "/claims",
    response_model=List[ClaimRead],
    summary="List claims",
    description="All claims, newest first, optionally filtered by status"
)
async def list_claims(
    status_filter: Optional[ClaimStatus] = Query(None, alias="status"),
    pagination: dict = Depends(get_pagination_params),
    db: Session = Depends(get_db)
) -> List[ClaimRead]:
    claims = claim_store.list_all(db, status_filter, **pagination)
    return [ClaimRead.from_model(c) for c in claims]


@router.get(
    "/claims/approved",
    response_model=List[ClaimRead],
    summary="List claimed businesses",
    description="Approved claims, most recently reviewed first"
)
async def list_approved_claims(db: Session = Depends(get_db)) -> List[ClaimRead]:
    return [ClaimRead.from_model(c) for c in claim_store.list_approved(db)]


@router.get(
    "/claims/summary",
    response_model=ResponseBase,
    summary="Claim counts by status"
)
async def claim_summary(db: Session = Depends(get_db)) -> ResponseBase:
    return ResponseBase(data=claim_store.count_by_status(db))


@router.get("/claims/{claim_id}", response_model=ClaimRead, summary="Get any claim")
async def get_claim(claim_id: str, db: Session = Depends(get_db)) -> ClaimRead:
    return ClaimRead.from_model(claim_store.require_claim(db, claim_id))


@router.post(
    "/claims/{claim_id}/approve",
    response_model=ApprovalResult,
    summary="Approve a pending claim",
    description="Approve and, unless autoConvert is false, convert the claimant to a business account"
)
async def approve(
    claim_id: str,
    body: ApproveRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    reviewer: Caller = Depends(get_reviewer),
    authorizer: ReviewerAuthorizer = Depends(get_authorizer),
    lookup: PlaceLookupService = Depends(get_place_lookup),
    notifier: Notifier = Depends(get_notifier),
    db: Session = Depends(get_db)
) -> ApprovalResult:
    start_time = time.time()
    request_id = request_id_of(request)

    logger.info(
        "Claim approval started",
        claim_id=claim_id,
        reviewer_id=reviewer.id,
        auto_convert=body.auto_convert,
        request_id=request_id
    )

    try:
        outcome = await approve_and_convert(
            db,
            claim_id,
            reviewer.id,
            body.notes,
            authorizer=authorizer,
            lookup=lookup,
            auto_convert=body.auto_convert,
            request_id=request_id,
        )
        result = ApprovalResult(
            claim=ClaimRead.from_model(outcome.claim),
            converted=outcome.converted,
            account=AccountRead.model_validate(outcome.account) if outcome.account is not None else None,
            conversion_error=(
                ErrorDetail(**outcome.conversion_error.to_dict())
                if outcome.conversion_error is not None else None
            ),
        )
        background_tasks.add_task(
            dispatch_notification,
            notifier,
            build_approval_notification(outcome.claim, body.notes, converted=outcome.converted),
        )
        log_performance(
            operation="approve_claim",
            duration_ms=elapsed_ms(start_time),
            additional_data={"claim_id": claim_id, "converted": outcome.converted}
        )
        return result
    except (HTTPException, ClaimServiceError):
        raise
    except Exception as e:
        logger.error(
            "Claim approval failed with unexpected error",
            claim_id=claim_id,
            reviewer_id=reviewer.id,
            error=str(e),
            request_id=request_id,
            exc_info=True
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to approve claim"
        )


@router.post("/claims/{claim_id}/reject", response_model=ClaimRead, summary="Reject a pending claim")
async def reject(
    claim_id: str,
    body: RejectRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    reviewer: Caller = Depends(get_reviewer),
    authorizer: ReviewerAuthorizer = Depends(get_authorizer),
    notifier: Notifier = Depends(get_notifier),
    db: Session = Depends(get_db)
) -> ClaimRead:
    claim = reject_claim(
        db, claim_id, reviewer.id, body.notes, authorizer=authorizer, request_id=request_id_of(request)
    )
    background_tasks.add_task(dispatch_notification, notifier, build_rejection_notification(claim))
    return ClaimRead.from_model(claim)


@router.post(
    "/claims/{claim_id}/revoke",
    response_model=ResponseBase,
    summary="Revoke an approved claim",
    description="Frees the target for new claims. The claimant's business account is left as is."
)
async def revoke(
    claim_id: str,
    body: RevokeRequest,
    request: Request,
    reviewer: Caller = Depends(get_reviewer),
    authorizer: ReviewerAuthorizer = Depends(get_authorizer),
    db: Session = Depends(get_db)
) -> ResponseBase:
    claim = revoke_claim(
        db,
        claim_id,
        reviewer.id,
        body.reason,
        body.hard_delete,
        authorizer=authorizer,
        request_id=request_id_of(request),
    )
    data = {"claim_id": claim_id, "hard_delete": body.hard_delete}
    if claim is not None:
        data["claim"] = ClaimRead.from_model(claim).model_dump(mode="json", by_alias=True)
    return ResponseBase(message="Claim revoked", data=data)


@router.post(
    "/claims/{claim_id}/convert",
    response_model=ConversionResult,
    summary="Convert an approved claim",
    description="Idempotent. Use after an approval whose conversion failed, or to refresh the business profile."
)
async def convert(
    claim_id: str,
    request: Request,
    reviewer: Caller = Depends(get_reviewer),
    lookup: PlaceLookupService = Depends(get_place_lookup),
    db: Session = Depends(get_db)
) -> ConversionResult:
    start_time = time.time()
    account = await convert_with_lookup(
        db, claim_id, lookup, actor_id=reviewer.id, request_id=request_id_of(request)
    )
    claim = claim_store.require_claim(db, claim_id)
    log_performance(
        operation="convert_claim",
        duration_ms=elapsed_ms(start_time),
        additional_data={"claim_id": claim_id}
    )
    return ConversionResult(claim=ClaimRead.from_model(claim), account=AccountRead.model_validate(account))


@router.delete("/claims/{claim_id}", response_model=ResponseBase, summary="Delete a pending or rejected claim")
async def delete(
    claim_id: str,
    request: Request,
    reviewer: Caller = Depends(get_reviewer),
    authorizer: ReviewerAuthorizer = Depends(get_authorizer),
    db: Session = Depends(get_db)
) -> ResponseBase:
    delete_claim(db, claim_id, reviewer.id, authorizer=authorizer, request_id=request_id_of(request))
    return ResponseBase(message="Claim deleted", data={"claim_id": claim_id})
