"""
Fiscal panel and treasurer signatures.
A second signature by the same signer is always rejected, never overwritten.
"""

from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from fiscal_review.models.enums import Role
from fiscal_review.models.tables import FiscalSignature, TreasurerSignature
from fiscal_review.observability import metrics
from fiscal_review.review.errors import DuplicateSignature, QuorumNotReached
from fiscal_review.review.gate import evaluate
from fiscal_review.review.ledger import ensure_writable, get_report

logger = structlog.get_logger(__name__)


async def _insert_signature(session: AsyncSession, signature, role: Role):
    try:
        async with session.begin_nested():
            session.add(signature)
    except IntegrityError:
        metrics.signatures_rejected_total.labels(role=role.value).inc()
        logger.warning(
            "signature_rejected",
            report_id=str(signature.report_id),
            user_id=signature.user_id,
            role=role.value,
            reason="unique_violation",
        )
        raise DuplicateSignature(signature.report_id, signature.user_id, role.value)

    metrics.signatures_recorded_total.labels(role=role.value).inc()
    logger.info(
        "signature_recorded",
        report_id=str(signature.report_id),
        user_id=signature.user_id,
        role=role.value,
    )
    return signature


async def add_fiscal_signature(
    session: AsyncSession,
    report_id,
    user_id: str,
    signature_image: str,
    display_name: Optional[str] = None,
) -> FiscalSignature:
    """Record a panel member's signature on a report."""
    report = await get_report(session, report_id)
    ensure_writable(report)

    existing = await session.execute(
        select(FiscalSignature.signature_id).where(
            FiscalSignature.report_id == report.report_id,
            FiscalSignature.user_id == user_id,
        )
    )
    if existing.scalar_one_or_none() is not None:
        metrics.signatures_rejected_total.labels(role=Role.FISCAL.value).inc()
        logger.info("signature_rejected", report_id=str(report.report_id), user_id=user_id, role="fiscal")
        raise DuplicateSignature(report.report_id, user_id, Role.FISCAL.value)

    return await _insert_signature(
        session,
        FiscalSignature(
            report_id=report.report_id,
            user_id=user_id,
            signature_image=signature_image,
            display_name=display_name,
        ),
        Role.FISCAL,
    )


async def add_treasurer_signature(
    session: AsyncSession,
    report_id,
    user_id: str,
    signature_image: str,
    display_name: Optional[str] = None,
) -> TreasurerSignature:
    """
    Record the treasurer's co-signature. Allowed only once per report and
    only while the gate is READY_FOR_FINAL.
    """
    report = await get_report(session, report_id)
    ensure_writable(report)

    _, decision = await evaluate(session, report.report_id)
    if decision.has_treasurer_signature:
        metrics.signatures_rejected_total.labels(role=Role.TREASURER.value).inc()
        logger.info("signature_rejected", report_id=str(report.report_id), user_id=user_id, role="treasurer")
        raise DuplicateSignature(report.report_id, user_id, Role.TREASURER.value)
    if not decision.can_treasurer_sign:
        raise QuorumNotReached(report.report_id, [b.value for b in decision.blockers])

    return await _insert_signature(
        session,
        TreasurerSignature(
            report_id=report.report_id,
            user_id=user_id,
            signature_image=signature_image,
            display_name=display_name,
        ),
        Role.TREASURER,
    )


async def list_fiscal_signatures(session: AsyncSession, report_id) -> list[FiscalSignature]:
    report = await get_report(session, report_id)
    result = await session.execute(
        select(FiscalSignature)
        .where(FiscalSignature.report_id == report.report_id)
        .order_by(FiscalSignature.created_at)
    )
    return list(result.scalars().all())


async def get_treasurer_signature(session: AsyncSession, report_id) -> Optional[TreasurerSignature]:
    report = await get_report(session, report_id)
    result = await session.execute(
        select(TreasurerSignature).where(TreasurerSignature.report_id == report.report_id)
    )
    return result.scalar_one_or_none()
