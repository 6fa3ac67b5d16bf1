"""
Pydantic schemas for reviewer verdicts and diligence acknowledgments.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from fiscal_review.models.enums import ReviewVerdict


class ReviewRequest(BaseModel):
    """A reviewer's verdict on one transaction."""
    status: ReviewVerdict
    observation: Optional[str] = None         # required when divergent


class BulkReviewRequest(BaseModel):
    """Apply one verdict to several transactions."""
    transaction_ids: list[uuid.UUID] = Field(min_length=1)
    status: ReviewVerdict = ReviewVerdict.APPROVED
    observation: Optional[str] = None


class ReviewResponse(BaseModel):
    review_id: uuid.UUID
    report_id: uuid.UUID
    transaction_id: uuid.UUID
    user_id: str
    status: str
    observation: Optional[str] = None
    diligence_ack: bool
    diligence_opened_by: Optional[str] = None
    diligence_opened_at: Optional[datetime] = None
    diligence_opener_display_name: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ReviewListResponse(BaseModel):
    report_id: uuid.UUID
    reviews: list[ReviewResponse]
    total: int
