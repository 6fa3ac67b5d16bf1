"""
Transaction ledger and report lifecycle.
Transactions are imported once with the report and never mutated by the
review engine; they disappear only when their report is deleted.
"""

import uuid
from datetime import date
from decimal import Decimal
from typing import Any, Mapping, Optional, Sequence

import structlog
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from fiscal_review.models.enums import ReportStatus, TxDirection
from fiscal_review.models.tables import (
    FiscalSignature,
    Report,
    Review,
    Transaction,
    TreasurerSignature,
    utcnow,
)
from fiscal_review.review.errors import (
    InvalidLedger,
    InvalidStatusTransition,
    ReportImmutable,
    ReportLocked,
    ReportNotFound,
    TransactionNotInReport,
)
from fiscal_review.storage.artifact_store import ArtifactStore

logger = structlog.get_logger(__name__)


def _as_uuid(value) -> uuid.UUID:
    return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))


def _direction_for(entry: Mapping[str, Any], amount: Decimal) -> str:
    direction = entry.get("direction")
    if direction is None:
        return (TxDirection.DEBIT if amount < 0 else TxDirection.CREDIT).value
    return TxDirection(str(getattr(direction, "value", direction)).lower()).value


def _entry_indexes(transactions: Sequence[Mapping[str, Any]]) -> list[int]:
    """Statement order of each entry: all explicit and unique, or all positional."""
    explicit = [entry.get("entry_index") for entry in transactions]
    if all(i is None for i in explicit):
        return list(range(len(transactions)))
    if any(i is None for i in explicit):
        raise InvalidLedger("entry_index must be given for every entry or for none")
    indexes = [int(i) for i in explicit]
    if len(set(indexes)) != len(indexes):
        raise InvalidLedger("entry_index values must be unique within a report")
    return indexes


async def create_report(
    session: AsyncSession,
    title: str,
    competence_period: str,
    account_type: str,
    transactions: Sequence[Mapping[str, Any]],
    sent_by: Optional[str] = None,
) -> Report:
    """
    Create a report and import its ledger.

    Each entry needs `date`, `description` and `amount`; `direction` falls back
    to the sign of the amount. `entry_index` is given for every entry or for none,
    in which case the position in the list is used.
    """
    indexes = _entry_indexes(transactions)
    report = Report(
        title=title,
        competence_period=competence_period,
        account_type=account_type,
        status=ReportStatus.OPEN.value,
        total_entries=len(transactions),
        sent_by=sent_by,
    )
    session.add(report)
    await session.flush()

    for entry_index, entry in zip(indexes, transactions):
        amount = Decimal(str(entry["amount"]))
        posted = entry["date"]
        if not isinstance(posted, date):
            posted = date.fromisoformat(str(posted))
        session.add(
            Transaction(
                report_id=report.report_id,
                entry_index=entry_index,
                posted_date=posted,
                description=entry["description"],
                amount=amount,
                direction=_direction_for(entry, amount),
            )
        )
    await session.flush()

    logger.info(
        "report_created",
        report_id=str(report.report_id),
        competence_period=competence_period,
        total_entries=report.total_entries,
        sent_by=sent_by,
    )
    return report


async def get_report(session: AsyncSession, report_id) -> Report:
    """Load a report or raise ReportNotFound."""
    try:
        rid = _as_uuid(report_id)
    except ValueError:
        raise ReportNotFound(report_id)
    report = await session.get(Report, rid)
    if report is None:
        raise ReportNotFound(report_id)
    return report


async def list_reports(session: AsyncSession, status: Optional[str] = None) -> list[Report]:
    """All reports, newest first."""
    query = select(Report)
    if status:
        query = query.where(Report.status == status)
    result = await session.execute(query.order_by(Report.created_at.desc()))
    return list(result.scalars().all())


async def list_transactions(session: AsyncSession, report_id) -> list[Transaction]:
    """The report's ledger in original statement order."""
    result = await session.execute(
        select(Transaction)
        .where(Transaction.report_id == _as_uuid(report_id))
        .order_by(Transaction.entry_index)
    )
    return list(result.scalars().all())


async def get_transaction_in_report(session: AsyncSession, report_id, transaction_id) -> Transaction:
    """Load a transaction, verifying it belongs to the report."""
    try:
        tx_uuid = _as_uuid(transaction_id)
    except ValueError:
        raise TransactionNotInReport(report_id, transaction_id)
    tx = await session.get(Transaction, tx_uuid)
    if tx is None or tx.report_id != _as_uuid(report_id):
        raise TransactionNotInReport(report_id, transaction_id)
    return tx


def ensure_writable(report: Report) -> None:
    """Reject review and signature writes against finished or locked reports."""
    if report.status == ReportStatus.FINISHED.value:
        raise ReportImmutable(report.report_id)
    if report.status == ReportStatus.LOCKED.value:
        raise ReportLocked(report.report_id)


async def set_report_status(session: AsyncSession, report_id, status: str) -> Report:
    """
    Administrative freeze/unfreeze. Only open <-> locked is allowed here;
    a report becomes finished exclusively through finalization.
    """
    report = await get_report(session, report_id)
    requested = ReportStatus(status).value

    if report.status == ReportStatus.FINISHED.value:
        raise ReportImmutable(report.report_id)
    if requested == ReportStatus.FINISHED.value:
        raise InvalidStatusTransition(report.status, requested)

    if report.status != requested:
        previous = report.status
        report.status = requested
        report.updated_at = utcnow()
        await session.flush()
        logger.info(
            "report_status_changed",
            report_id=str(report.report_id),
            previous=previous,
            status=requested,
        )
    return report


async def delete_report(
    session: AsyncSession,
    report_id,
    store: Optional[ArtifactStore] = None,
) -> None:
    """
    Delete a report with its ledger, reviews, signatures and stored artifacts.
    Rows are committed away first; files are removed only once that succeeded.
    """
    report = await get_report(session, report_id)
    rid = report.report_id

    for model in (Review, FiscalSignature, TreasurerSignature, Transaction):
        await session.execute(delete(model).where(model.report_id == rid))
    await session.delete(report)
    try:
        await session.commit()
    except SQLAlchemyError:
        await session.rollback()
        logger.error("report_delete_failed", report_id=str(rid))
        raise

    removed = store.delete_report_artifacts(str(rid)) if store is not None else 0
    logger.info("report_deleted", report_id=str(rid), artifacts_removed=removed)
