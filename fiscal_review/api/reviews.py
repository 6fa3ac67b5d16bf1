"""
/api/v1/reports/{report_id} review endpoints.
Verdicts, bulk approval and diligence acknowledgments by fiscal reviewers.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from fiscal_review.dependencies import (
    Identity,
    get_db,
    get_identity,
    require_role,
    verify_api_key,
)
from fiscal_review.models.enums import Role
from fiscal_review.review import store
from fiscal_review.review.ledger import get_report
from fiscal_review.schemas.reviews import (
    BulkReviewRequest,
    ReviewListResponse,
    ReviewRequest,
    ReviewResponse,
)

router = APIRouter(prefix="/api/v1/reports", tags=["reviews"], dependencies=[Depends(verify_api_key)])


@router.put("/{report_id}/transactions/{transaction_id}/review", response_model=ReviewResponse)
async def record_verdict(
    report_id: str,
    transaction_id: str,
    body: ReviewRequest,
    identity: Identity = Depends(require_role(Role.FISCAL)),
    session: AsyncSession = Depends(get_db),
):
    """Record or change the caller's verdict on a transaction."""
    review = await store.record_verdict(
        session,
        report_id,
        transaction_id,
        identity.user_id,
        body.status,
        observation=body.observation,
        display_name=identity.display_name,
    )
    return ReviewResponse.model_validate(review)


@router.post("/{report_id}/reviews/bulk", response_model=ReviewListResponse)
async def bulk_record_verdicts(
    report_id: str,
    body: BulkReviewRequest,
    identity: Identity = Depends(require_role(Role.FISCAL)),
    session: AsyncSession = Depends(get_db),
):
    """Apply one verdict to several transactions at once."""
    reviews = await store.bulk_record_verdicts(
        session,
        report_id,
        body.transaction_ids,
        identity.user_id,
        body.status,
        observation=body.observation,
        display_name=identity.display_name,
    )
    report = await get_report(session, report_id)
    return ReviewListResponse(
        report_id=report.report_id,
        reviews=[ReviewResponse.model_validate(r) for r in reviews],
        total=len(reviews),
    )


@router.post(
    "/{report_id}/transactions/{transaction_id}/diligence/ack",
    response_model=ReviewResponse,
)
async def confirm_diligence(
    report_id: str,
    transaction_id: str,
    identity: Identity = Depends(require_role(Role.FISCAL)),
    session: AsyncSession = Depends(get_db),
):
    """Acknowledge a diligence raised on a transaction."""
    review = await store.confirm_diligence(session, report_id, transaction_id, identity.user_id)
    return ReviewResponse.model_validate(review)


@router.get("/{report_id}/reviews", response_model=ReviewListResponse)
async def list_reviews(
    report_id: str,
    mine: bool = Query(False),
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_db),
):
    """Review rows of a report; `mine=true` restricts to the caller's."""
    report = await get_report(session, report_id)
    reviews = await store.list_reviews(
        session, report.report_id, identity.user_id if mine else None
    )
    return ReviewListResponse(
        report_id=report.report_id,
        reviews=[ReviewResponse.model_validate(r) for r in reviews],
        total=len(reviews),
    )
