"""
Finalization: the only path by which a report becomes finished.

Two-phase: the emitter stores the signed document first, then the report's
status, final URL and timestamp are committed. If the commit fails the stored
artifact is discarded and the report stays READY_FOR_FINAL.
"""

import time

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from fiscal_review.emitters.base import (
    EmittedArtifact,
    EmitterError,
    FinalizationBundle,
    FinalizationEmitter,
)
from fiscal_review.models.enums import ReportStatus
from fiscal_review.models.tables import Report, Review, utcnow
from fiscal_review.observability import metrics
from fiscal_review.review.diligence import resolve_diligences
from fiscal_review.review.errors import (
    ArtifactEmissionFailure,
    QuorumNotReached,
    ReportImmutable,
)
from fiscal_review.review.gate import evaluate
from fiscal_review.review.ledger import get_report, list_transactions
from fiscal_review.review.signatures import (
    get_treasurer_signature,
    list_fiscal_signatures,
)

logger = structlog.get_logger(__name__)


async def _build_bundle(session: AsyncSession, report: Report) -> FinalizationBundle:
    transactions = await list_transactions(session, report.report_id)
    result = await session.execute(
        select(Review).where(Review.report_id == report.report_id)
    )
    reviews = list(result.scalars().all())
    return FinalizationBundle(
        report=report,
        transactions=transactions,
        reviews=reviews,
        fiscal_signatures=await list_fiscal_signatures(session, report.report_id),
        treasurer_signature=await get_treasurer_signature(session, report.report_id),
        diligences=resolve_diligences(reviews),
    )


async def _emit(emitter: FinalizationEmitter, bundle: FinalizationBundle) -> EmittedArtifact:
    report_id = bundle.report.report_id
    try:
        return await emitter.emit(bundle)
    except EmitterError as e:
        metrics.finalization_failures_total.labels(stage="emit").inc()
        logger.error(
            "finalization_emit_failed",
            report_id=str(report_id),
            emitter=e.emitter_name,
            error_code=e.error_code,
            error=e.message,
        )
        raise ArtifactEmissionFailure(report_id, "emit", f"{e.error_code}: {e.message}")
    except Exception as e:
        metrics.finalization_failures_total.labels(stage="emit").inc()
        logger.exception("finalization_emit_crashed", report_id=str(report_id))
        raise ArtifactEmissionFailure(report_id, "emit", str(e))


async def finalize_report(
    session: AsyncSession,
    report_id,
    emitter: FinalizationEmitter,
) -> Report:
    """
    Produce the signed document and mark the report finished.

    Raises ReportImmutable when the report is already finished and
    QuorumNotReached with the gate's blockers when it is not ready.
    """
    start = time.monotonic()
    report = await get_report(session, report_id)
    if report.status == ReportStatus.FINISHED.value:
        raise ReportImmutable(report.report_id)

    _, decision = await evaluate(session, report.report_id)
    if not decision.can_finalize:
        logger.info(
            "finalize_refused",
            report_id=str(report.report_id),
            state=decision.state.value,
            blockers=[b.value for b in decision.blockers],
        )
        raise QuorumNotReached(report.report_id, [b.value for b in decision.blockers])

    rid = report.report_id
    bundle = await _build_bundle(session, report)
    artifact = await _emit(emitter, bundle)

    now = utcnow()
    report.pdf_url = artifact.url
    report.status = ReportStatus.FINISHED.value
    report.finalized_at = now
    report.updated_at = now
    try:
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        try:
            await emitter.discard(artifact)
        except Exception:
            logger.exception(
                "finalization_discard_failed",
                report_id=str(rid),
                artifact_path=artifact.path,
            )
        metrics.finalization_failures_total.labels(stage="status_write").inc()
        logger.error(
            "finalization_status_write_failed",
            report_id=str(rid),
            artifact_path=artifact.path,
            error=str(e),
        )
        raise ArtifactEmissionFailure(rid, "status_write", str(e))

    duration = time.monotonic() - start
    metrics.finalization_duration_seconds.observe(duration)
    metrics.reports_finalized_total.inc()
    logger.info(
        "report_finalized",
        report_id=str(report.report_id),
        pdf_url=artifact.url,
        sha256=artifact.sha256,
        size_bytes=artifact.size_bytes,
        duration_s=round(duration, 3),
    )
    return report
