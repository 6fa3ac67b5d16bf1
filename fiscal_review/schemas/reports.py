"""
Pydantic request/response schemas for the /api/v1/reports endpoints.
"""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from fiscal_review.models.enums import (
    GateBlocker,
    GateState,
    ReportStatus,
    ReviewerStatus,
    TxDirection,
)


# ── Request Schemas ──────────────────────────────────────────

class TransactionIn(BaseModel):
    """One ledger line imported with a report."""
    date: date
    description: str = Field(min_length=1)
    amount: Decimal
    direction: Optional[TxDirection] = None   # falls back to the amount's sign
    entry_index: Optional[int] = Field(default=None, ge=0)


class ReportCreateRequest(BaseModel):
    """Create a report and import its ledger."""
    title: str = Field(min_length=1)
    competence_period: str = Field(min_length=1, max_length=20)
    account_type: str = Field(min_length=1)
    transactions: list[TransactionIn] = []


class ReportStatusUpdate(BaseModel):
    """Administrative freeze/unfreeze."""
    status: ReportStatus


# ── Response Schemas ─────────────────────────────────────────

class ReportResponse(BaseModel):
    report_id: uuid.UUID
    title: str
    competence_period: str
    account_type: str
    status: str
    total_entries: int
    pdf_url: Optional[str] = None
    sent_by: Optional[str] = None
    finalized_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class TransactionResponse(BaseModel):
    transaction_id: uuid.UUID
    entry_index: int
    posted_date: date
    description: str
    amount: Decimal
    direction: str

    model_config = {"from_attributes": True}


class TransactionListResponse(BaseModel):
    report_id: uuid.UUID
    transactions: list[TransactionResponse]
    total: int


class ReportSummaryResponse(BaseModel):
    """Derived progress counters. Recomputed on every request."""
    report_id: uuid.UUID
    report_status: str
    total_transactions: int
    approved_transactions: int
    pending_transactions: int
    diligence_count: int
    confirmed_diligences: int
    all_diligences_confirmed: bool
    signature_count: int
    is_finished: bool
    has_final_pdf: bool

    model_config = {"from_attributes": True}


class ReportListItem(BaseModel):
    report: ReportResponse
    summary: ReportSummaryResponse


class ReportListResponse(BaseModel):
    reports: list[ReportListItem]
    total: int


class GateResponse(BaseModel):
    report_id: uuid.UUID
    state: GateState
    locked: bool
    has_treasurer_signature: bool
    can_treasurer_sign: bool
    can_finalize: bool
    blockers: list[GateBlocker] = []
    messages: list[str] = []


class DiligenceResponse(BaseModel):
    transaction_id: uuid.UUID
    is_diligence: bool
    ack_count: int
    reviewer_count: int
    is_confirmed: bool
    reason: Optional[str] = None
    opened_by: Optional[str] = None
    opened_at: Optional[datetime] = None
    opener_display_name: Optional[str] = None

    model_config = {"from_attributes": True}


class DiligenceListResponse(BaseModel):
    report_id: uuid.UUID
    diligences: list[DiligenceResponse]
    total: int
    confirmed: int


# ── Reviewer workload ────────────────────────────────────────

class ReviewerReportStatusResponse(BaseModel):
    report_id: uuid.UUID
    report_status: str
    has_signed: bool
    pending_reviews: int
    pending_diligence_acks: int
    needs_signature: bool
    pending_actions: int
    user_status: ReviewerStatus

    model_config = {"from_attributes": True}


class ReviewerStatsResponse(BaseModel):
    user_id: str
    total_reports: int
    pending_actions: int
    completed_reports: int
    total_diligences: int
    reports: list[ReviewerReportStatusResponse] = []

    model_config = {"from_attributes": True}
