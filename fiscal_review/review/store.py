"""
Review store: one verdict row per (report, transaction, reviewer).

Raising a divergence stamps the opener on the reviewer's row, acknowledges it
for the opener, and invalidates every other reviewer's acknowledgment on the
same transaction in the same flush. Approvals never touch other rows.
"""

import uuid
from typing import Iterable, Optional

import structlog
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from fiscal_review.models.enums import ReviewVerdict
from fiscal_review.models.tables import Report, Review, Transaction, utcnow
from fiscal_review.observability import metrics
from fiscal_review.review.errors import ObservationRequired
from fiscal_review.review.ledger import (
    ensure_writable,
    get_report,
    get_transaction_in_report,
)

logger = structlog.get_logger(__name__)


async def _load_review(session: AsyncSession, report_id, transaction_id, user_id: str) -> Optional[Review]:
    result = await session.execute(
        select(Review).where(
            Review.report_id == report_id,
            Review.transaction_id == transaction_id,
            Review.user_id == user_id,
        )
    )
    return result.scalar_one_or_none()


async def _insert_or_load(session: AsyncSession, review: Review) -> Optional[Review]:
    """
    Insert a new review row inside a savepoint.
    Returns None on success, or the concurrently written row when another
    request by the same reviewer won the race on the unique key.
    """
    try:
        async with session.begin_nested():
            session.add(review)
        return None
    except IntegrityError:
        existing = await _load_review(session, review.report_id, review.transaction_id, review.user_id)
        if existing is None:
            raise
        return existing


def _require_observation(verdict: ReviewVerdict, observation: Optional[str]) -> None:
    if verdict is ReviewVerdict.DIVERGENT and not (observation or "").strip():
        raise ObservationRequired()


async def _writable_target(session: AsyncSession, report_id, transaction_id) -> tuple[Report, Transaction]:
    report = await get_report(session, report_id)
    ensure_writable(report)
    tx = await get_transaction_in_report(session, report.report_id, transaction_id)
    return report, tx


def _apply_verdict(
    review: Review,
    status: ReviewVerdict,
    observation: Optional[str],
    display_name: Optional[str],
    was_divergent: bool,
) -> bool:
    """Mutate a review row in place. Returns True when a divergence was opened."""
    now = utcnow()
    review.status = status.value
    review.observation = observation
    review.updated_at = now

    if status is ReviewVerdict.DIVERGENT and not was_divergent:
        review.diligence_opened_by = review.user_id
        review.diligence_opened_at = now
        review.diligence_opener_display_name = display_name
        review.diligence_ack = True
        return True
    return False


async def _reset_other_acks(session: AsyncSession, review: Review) -> int:
    result = await session.execute(
        update(Review)
        .where(
            Review.report_id == review.report_id,
            Review.transaction_id == review.transaction_id,
            Review.user_id != review.user_id,
            Review.diligence_ack.is_(True),
        )
        .values(diligence_ack=False)
        .execution_options(synchronize_session="fetch")
    )
    return result.rowcount or 0


async def _upsert_verdict(
    session: AsyncSession,
    report: Report,
    tx_id: uuid.UUID,
    user_id: str,
    status: ReviewVerdict,
    observation: Optional[str],
    display_name: Optional[str],
) -> Review:
    review = await _load_review(session, report.report_id, tx_id, user_id)
    if review is None:
        fresh = Review(
            report_id=report.report_id,
            transaction_id=tx_id,
            user_id=user_id,
            status=status.value,
            diligence_ack=False,
        )
        opened = _apply_verdict(fresh, status, observation, display_name, was_divergent=False)
        existing = await _insert_or_load(session, fresh)
        if existing is None:
            review = fresh
        else:
            # Lost the insert race against ourselves: fall through to update
            review = existing
            was_divergent = review.status == ReviewVerdict.DIVERGENT.value
            opened = _apply_verdict(review, status, observation, display_name, was_divergent)
    else:
        was_divergent = review.status == ReviewVerdict.DIVERGENT.value
        opened = _apply_verdict(review, status, observation, display_name, was_divergent)

    await session.flush()

    if opened:
        reset = await _reset_other_acks(session, review)
        metrics.diligences_opened_total.inc()
        if reset:
            metrics.diligence_acks_reset_total.inc(reset)
        logger.info(
            "diligence_opened",
            report_id=str(report.report_id),
            transaction_id=str(tx_id),
            opened_by=user_id,
            acks_reset=reset,
        )

    metrics.verdicts_recorded_total.labels(status=status.value).inc()
    return review


async def record_verdict(
    session: AsyncSession,
    report_id,
    transaction_id,
    user_id: str,
    status,
    observation: Optional[str] = None,
    display_name: Optional[str] = None,
) -> Review:
    """
    Record or update a reviewer's verdict on one transaction.

    A divergent verdict must carry an observation. When the reviewer's row
    moves into divergent, the diligence opener is stamped and the other
    reviewers' acknowledgments on that transaction are reset.
    """
    verdict = ReviewVerdict(status)
    report, tx = await _writable_target(session, report_id, transaction_id)
    _require_observation(verdict, observation)

    review = await _upsert_verdict(
        session, report, tx.transaction_id, user_id, verdict, observation, display_name
    )
    logger.info(
        "verdict_recorded",
        report_id=str(report.report_id),
        transaction_id=str(tx.transaction_id),
        user_id=user_id,
        status=verdict.value,
    )
    return review


async def bulk_record_verdicts(
    session: AsyncSession,
    report_id,
    transaction_ids: Iterable,
    user_id: str,
    status=ReviewVerdict.APPROVED,
    observation: Optional[str] = None,
    display_name: Optional[str] = None,
) -> list[Review]:
    """
    Apply the same verdict to several transactions in one unit of work.
    Every transaction is validated before any row is written.
    """
    verdict = ReviewVerdict(status)
    report = await get_report(session, report_id)
    ensure_writable(report)
    _require_observation(verdict, observation)
    transactions = [
        await get_transaction_in_report(session, report.report_id, tx_id)
        for tx_id in transaction_ids
    ]

    reviews = []
    for tx in transactions:
        reviews.append(
            await _upsert_verdict(
                session, report, tx.transaction_id, user_id, verdict, observation, display_name
            )
        )

    logger.info(
        "verdicts_bulk_recorded",
        report_id=str(report.report_id),
        user_id=user_id,
        status=verdict.value,
        count=len(reviews),
    )
    return reviews


async def confirm_diligence(
    session: AsyncSession,
    report_id,
    transaction_id,
    user_id: str,
) -> Review:
    """
    Acknowledge a diligence without changing one's own verdict.
    A reviewer with no row yet gets an approved row with the acknowledgment set.
    """
    report, tx = await _writable_target(session, report_id, transaction_id)

    review = await _load_review(session, report.report_id, tx.transaction_id, user_id)
    if review is None:
        fresh = Review(
            report_id=report.report_id,
            transaction_id=tx.transaction_id,
            user_id=user_id,
            status=ReviewVerdict.APPROVED.value,
            diligence_ack=True,
        )
        existing = await _insert_or_load(session, fresh)
        review = fresh if existing is None else existing

    review.diligence_ack = True
    review.updated_at = utcnow()
    await session.flush()

    metrics.diligence_acks_total.inc()
    logger.info(
        "diligence_acknowledged",
        report_id=str(report.report_id),
        transaction_id=str(tx.transaction_id),
        user_id=user_id,
    )
    return review


async def list_reviews(
    session: AsyncSession,
    report_id,
    user_id: Optional[str] = None,
) -> list[Review]:
    """All review rows of a report, optionally restricted to one reviewer."""
    report = await get_report(session, report_id)
    query = select(Review).where(Review.report_id == report.report_id)
    if user_id is not None:
        query = query.where(Review.user_id == user_id)
    result = await session.execute(query.order_by(Review.created_at, Review.user_id))
    return list(result.scalars().all())
