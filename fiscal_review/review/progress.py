"""
Report progress aggregation.

Counters are derived from review and signature rows on every call. A
transaction counts as processed once quorum distinct reviewers have recorded
any verdict on it; agreement between verdicts is tracked by diligences.
"""

import uuid
from dataclasses import dataclass, field
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fiscal_review.config import settings
from fiscal_review.models.enums import ReportStatus, ReviewerStatus
from fiscal_review.models.tables import FiscalSignature, Report, Review, Transaction
from fiscal_review.review.diligence import (
    all_diligences_confirmed,
    diligence_counts,
    resolve_diligences,
)
from fiscal_review.review.ledger import get_report, list_reports


@dataclass(frozen=True)
class ReportSummary:
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


def aggregate_summary(
    report: Report,
    reviews: Iterable,
    signatures: Iterable,
    quorum: Optional[int] = None,
) -> ReportSummary:
    """Pure aggregation over one report's review and fiscal signature rows."""
    quorum = settings.PANEL_QUORUM if quorum is None else quorum
    reviews = list(reviews)

    reviewers: dict = {}
    for review in reviews:
        reviewers.setdefault(review.transaction_id, set()).add(review.user_id)
    approved = sum(1 for users in reviewers.values() if len(users) >= quorum)

    infos = resolve_diligences(reviews, quorum)
    diligence_total, confirmed = diligence_counts(infos)
    diligences_ok = all_diligences_confirmed(infos)

    total = report.total_entries or 0
    pending = max(0, total - approved)
    signature_count = len({s.user_id for s in signatures})

    # Once finished, always finished: status short-circuits the recomputation
    is_finished = report.status == ReportStatus.FINISHED.value or (
        pending == 0 and signature_count >= quorum and diligences_ok
    )

    return ReportSummary(
        report_id=report.report_id,
        report_status=report.status,
        total_transactions=total,
        approved_transactions=approved,
        pending_transactions=pending,
        diligence_count=diligence_total,
        confirmed_diligences=confirmed,
        all_diligences_confirmed=diligences_ok,
        signature_count=signature_count,
        is_finished=is_finished,
        has_final_pdf=bool(report.pdf_url),
    )


async def _rows_for(session: AsyncSession, model, report_ids: list) -> dict:
    grouped: dict = {rid: [] for rid in report_ids}
    if not report_ids:
        return grouped
    result = await session.execute(select(model).where(model.report_id.in_(report_ids)))
    for row in result.scalars().all():
        grouped[row.report_id].append(row)
    return grouped


async def aggregate(session: AsyncSession, report_id, quorum: Optional[int] = None) -> ReportSummary:
    """Recompute one report's summary from stored rows."""
    report = await get_report(session, report_id)
    reviews = await _rows_for(session, Review, [report.report_id])
    signatures = await _rows_for(session, FiscalSignature, [report.report_id])
    return aggregate_summary(
        report, reviews[report.report_id], signatures[report.report_id], quorum
    )


async def list_summaries(
    session: AsyncSession,
    status: Optional[str] = None,
    quorum: Optional[int] = None,
) -> list[ReportSummary]:
    """Summaries for every report, newest first, using one query per table."""
    reports = await list_reports(session, status)
    ids = [r.report_id for r in reports]
    reviews = await _rows_for(session, Review, ids)
    signatures = await _rows_for(session, FiscalSignature, ids)
    return [
        aggregate_summary(r, reviews[r.report_id], signatures[r.report_id], quorum)
        for r in reports
    ]


# ────────────────────────────────────────────────────────────
# REVIEWER WORKLOAD
# ────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class ReviewerReportStatus:
    report_id: uuid.UUID
    report_status: str
    has_signed: bool
    pending_reviews: int
    pending_diligence_acks: int
    needs_signature: bool
    user_status: ReviewerStatus

    @property
    def pending_actions(self) -> int:
        return self.pending_reviews + self.pending_diligence_acks + (1 if self.needs_signature else 0)


@dataclass(frozen=True)
class ReviewerStats:
    user_id: str
    total_reports: int
    pending_actions: int
    completed_reports: int
    total_diligences: int
    reports: list[ReviewerReportStatus] = field(default_factory=list)


def reviewer_report_status(
    report: Report,
    transaction_ids: Iterable,
    reviews: Iterable,
    signer_ids: Iterable[str],
    user_id: str,
) -> ReviewerReportStatus:
    """
    One reviewer's outstanding work on a report: transactions not yet
    reviewed, diligences not yet acknowledged, and a missing signature.
    """
    reviews = list(reviews)
    infos = resolve_diligences(reviews)
    mine = {r.transaction_id: r for r in reviews if r.user_id == user_id}
    has_signed = user_id in set(signer_ids)

    pending_reviews = 0
    pending_acks = 0
    for tx_id in transaction_ids:
        own = mine.get(tx_id)
        if own is None:
            pending_reviews += 1
        elif tx_id in infos and infos[tx_id].is_diligence and not own.diligence_ack:
            pending_acks += 1

    needs_signature = not has_signed and report.status == ReportStatus.OPEN.value

    if pending_reviews or pending_acks or needs_signature:
        user_status = ReviewerStatus.PENDING
    elif has_signed and report.status != ReportStatus.FINISHED.value:
        user_status = ReviewerStatus.WAITING_OTHERS
    elif has_signed:
        user_status = ReviewerStatus.COMPLETED
    else:
        # Reviews done but unsigned while the report is locked
        user_status = ReviewerStatus.PENDING

    return ReviewerReportStatus(
        report_id=report.report_id,
        report_status=report.status,
        has_signed=has_signed,
        pending_reviews=pending_reviews,
        pending_diligence_acks=pending_acks,
        needs_signature=needs_signature,
        user_status=user_status,
    )


async def reviewer_stats(session: AsyncSession, user_id: str) -> ReviewerStats:
    """Workload of one fiscal reviewer across all reports."""
    reports = await list_reports(session)
    ids = [r.report_id for r in reports]
    reviews = await _rows_for(session, Review, ids)
    signatures = await _rows_for(session, FiscalSignature, ids)

    tx_ids: dict = {rid: [] for rid in ids}
    if ids:
        result = await session.execute(
            select(Transaction.report_id, Transaction.transaction_id)
            .where(Transaction.report_id.in_(ids))
            .order_by(Transaction.entry_index)
        )
        for rid, tx_id in result.all():
            tx_ids[rid].append(tx_id)

    statuses = []
    total_diligences = 0
    for report in reports:
        rid = report.report_id
        statuses.append(
            reviewer_report_status(
                report,
                tx_ids[rid],
                reviews[rid],
                [s.user_id for s in signatures[rid]],
                user_id,
            )
        )
        total_diligences += diligence_counts(resolve_diligences(reviews[rid]))[0]

    return ReviewerStats(
        user_id=user_id,
        total_reports=len(reports),
        pending_actions=sum(s.pending_actions for s in statuses),
        completed_reports=sum(1 for s in statuses if s.user_status is ReviewerStatus.COMPLETED),
        total_diligences=total_diligences,
        reports=statuses,
    )
