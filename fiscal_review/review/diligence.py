"""
Diligence resolver.

A transaction is under diligence when any reviewer's row is divergent or
carries a diligence opener stamp (the stamp survives a later approval, so a
raised diligence stays visible). It is confirmed when the number of rows
acknowledging it reaches the panel quorum. Nothing here is persisted:
every call recomputes from the review rows.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fiscal_review.config import settings
from fiscal_review.models.enums import ReviewVerdict
from fiscal_review.models.tables import Review
from fiscal_review.review.ledger import get_report


@dataclass(frozen=True)
class DiligenceInfo:
    transaction_id: uuid.UUID
    is_diligence: bool
    ack_count: int
    reviewer_count: int
    is_confirmed: bool
    reason: Optional[str] = None
    opened_by: Optional[str] = None
    opened_at: Optional[datetime] = None
    opener_display_name: Optional[str] = None


def _quorum(quorum: Optional[int]) -> int:
    return settings.PANEL_QUORUM if quorum is None else quorum


def _sort_ts(value: Optional[datetime]) -> datetime:
    """Comparable timestamp regardless of driver timezone handling."""
    if value is None:
        return datetime.min
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _is_divergent(review) -> bool:
    return review.status == ReviewVerdict.DIVERGENT.value


def _latest_divergent(rows: list) -> Optional[object]:
    divergent = [r for r in rows if _is_divergent(r)]
    if not divergent:
        return None
    return max(divergent, key=lambda r: (_sort_ts(r.updated_at), r.user_id))


def _earliest_opener(rows: list) -> Optional[object]:
    stamped = [r for r in rows if r.diligence_opened_by is not None]
    if not stamped:
        return None
    return min(stamped, key=lambda r: (_sort_ts(r.diligence_opened_at), r.user_id))


def _resolve_transaction(tx_id, rows: list, quorum: int) -> DiligenceInfo:
    reviewer_count = len({r.user_id for r in rows})
    ack_count = sum(1 for r in rows if r.diligence_ack)
    latest = _latest_divergent(rows)
    opener = _earliest_opener(rows)
    is_diligence = latest is not None or opener is not None

    reason = None
    if latest is not None:
        reason = latest.observation
    elif opener is not None:
        reason = opener.observation

    return DiligenceInfo(
        transaction_id=tx_id,
        is_diligence=is_diligence,
        ack_count=ack_count,
        reviewer_count=reviewer_count,
        is_confirmed=is_diligence and ack_count >= quorum,
        reason=reason if is_diligence else None,
        opened_by=opener.diligence_opened_by if opener else None,
        opened_at=opener.diligence_opened_at if opener else None,
        opener_display_name=opener.diligence_opener_display_name if opener else None,
    )


def resolve_diligences(reviews: Iterable, quorum: Optional[int] = None) -> dict[uuid.UUID, DiligenceInfo]:
    """
    Group review rows by transaction and derive one DiligenceInfo each.
    Transactions nobody has reviewed yet do not appear in the result.
    """
    quorum = _quorum(quorum)
    grouped: dict = {}
    for review in reviews:
        grouped.setdefault(review.transaction_id, []).append(review)
    return {
        tx_id: _resolve_transaction(tx_id, rows, quorum)
        for tx_id, rows in grouped.items()
    }


def diligence_counts(infos: dict[uuid.UUID, DiligenceInfo]) -> tuple[int, int]:
    """(open diligences, confirmed diligences)."""
    diligences = [i for i in infos.values() if i.is_diligence]
    return len(diligences), sum(1 for i in diligences if i.is_confirmed)


def all_diligences_confirmed(infos: dict[uuid.UUID, DiligenceInfo]) -> bool:
    total, confirmed = diligence_counts(infos)
    return total == 0 or total == confirmed


async def resolve(session: AsyncSession, report_id, quorum: Optional[int] = None) -> dict[uuid.UUID, DiligenceInfo]:
    """Read the report's review rows and resolve them."""
    report = await get_report(session, report_id)
    result = await session.execute(
        select(Review).where(Review.report_id == report.report_id)
    )
    return resolve_diligences(result.scalars().all(), quorum)
