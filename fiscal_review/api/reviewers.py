"""
/api/v1/reviewers endpoints.
A fiscal reviewer's outstanding work across reports.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from fiscal_review.dependencies import Identity, get_db, require_role, verify_api_key
from fiscal_review.models.enums import Role
from fiscal_review.review.progress import reviewer_stats
from fiscal_review.schemas.reports import ReviewerStatsResponse

router = APIRouter(prefix="/api/v1/reviewers", tags=["reviewers"], dependencies=[Depends(verify_api_key)])


@router.get("/me/stats", response_model=ReviewerStatsResponse)
async def my_stats(
    identity: Identity = Depends(require_role(Role.FISCAL)),
    session: AsyncSession = Depends(get_db),
):
    stats = await reviewer_stats(session, identity.user_id)
    return ReviewerStatsResponse.model_validate(stats)
