"""
Sign-off gate.

    OPEN -> READY_FOR_SIGNATURES -> READY_FOR_FINAL -> FINALIZED

FINALIZED is entered only by persisting status=finished and is never left.
LOCKED is an administrative flag orthogonal to the state: it does not change
the state but disables the treasurer signature and finalize actions.
"""

from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fiscal_review.config import settings
from fiscal_review.models.enums import GateBlocker, GateState, ReportStatus
from fiscal_review.models.tables import TreasurerSignature
from fiscal_review.review.progress import ReportSummary, aggregate


BLOCKER_MESSAGES = {
    GateBlocker.ALREADY_FINALIZED: "The final document has already been generated.",
    GateBlocker.REPORT_LOCKED: "The report is locked by an administrator.",
    GateBlocker.PENDING_TRANSACTIONS: "{pending} transaction(s) still lack reviewer quorum.",
    GateBlocker.MISSING_FISCAL_SIGNATURES: "{missing} fiscal signature(s) missing.",
    GateBlocker.UNCONFIRMED_DILIGENCES: "{unconfirmed} diligence(s) not acknowledged by the full panel.",
    GateBlocker.MISSING_TREASURER_SIGNATURE: "The treasurer must sign before the final document is generated.",
}


@dataclass(frozen=True)
class GateDecision:
    state: GateState
    locked: bool
    has_treasurer_signature: bool
    can_treasurer_sign: bool
    can_finalize: bool
    blockers: list[GateBlocker] = field(default_factory=list)
    messages: list[str] = field(default_factory=list)


def gate_state(summary: ReportSummary, quorum: Optional[int] = None) -> GateState:
    """Position of a report in the sign-off progression."""
    quorum = settings.PANEL_QUORUM if quorum is None else quorum
    if summary.report_status == ReportStatus.FINISHED.value:
        return GateState.FINALIZED
    if summary.pending_transactions > 0:
        return GateState.OPEN
    if (
        summary.signature_count >= quorum
        and summary.all_diligences_confirmed
        and not summary.has_final_pdf
    ):
        return GateState.READY_FOR_FINAL
    return GateState.READY_FOR_SIGNATURES


def evaluate_gate(
    summary: ReportSummary,
    has_treasurer_signature: bool,
    quorum: Optional[int] = None,
) -> GateDecision:
    """
    Decide which sign-off actions are available for a report.

    Finalize needs READY_FOR_FINAL, an unlocked report and the treasurer's
    signature on top of the fiscal panel's. Blockers are listed in the order
    a user would have to clear them.
    """
    quorum = settings.PANEL_QUORUM if quorum is None else quorum
    state = gate_state(summary, quorum)
    locked = summary.report_status == ReportStatus.LOCKED.value

    blockers: list[GateBlocker] = []
    messages: list[str] = []

    def block(blocker: GateBlocker, **values) -> None:
        blockers.append(blocker)
        messages.append(BLOCKER_MESSAGES[blocker].format(**values))

    if state is GateState.FINALIZED or summary.has_final_pdf:
        block(GateBlocker.ALREADY_FINALIZED)
    else:
        if locked:
            block(GateBlocker.REPORT_LOCKED)
        if summary.pending_transactions > 0:
            block(GateBlocker.PENDING_TRANSACTIONS, pending=summary.pending_transactions)
        if summary.signature_count < quorum:
            block(GateBlocker.MISSING_FISCAL_SIGNATURES, missing=quorum - summary.signature_count)
        if not summary.all_diligences_confirmed:
            block(
                GateBlocker.UNCONFIRMED_DILIGENCES,
                unconfirmed=summary.diligence_count - summary.confirmed_diligences,
            )

    ready = state is GateState.READY_FOR_FINAL and not locked
    can_treasurer_sign = ready and not has_treasurer_signature
    if ready and not has_treasurer_signature:
        block(GateBlocker.MISSING_TREASURER_SIGNATURE)

    return GateDecision(
        state=state,
        locked=locked,
        has_treasurer_signature=has_treasurer_signature,
        can_treasurer_sign=can_treasurer_sign,
        can_finalize=ready and has_treasurer_signature,
        blockers=blockers,
        messages=messages,
    )


async def has_treasurer_signature(session: AsyncSession, report_id) -> bool:
    result = await session.execute(
        select(TreasurerSignature.signature_id)
        .where(TreasurerSignature.report_id == report_id)
        .limit(1)
    )
    return result.scalar_one_or_none() is not None


async def evaluate(session: AsyncSession, report_id, quorum: Optional[int] = None) -> tuple[ReportSummary, GateDecision]:
    """Aggregate a report and run it through the gate."""
    summary = await aggregate(session, report_id, quorum)
    signed = await has_treasurer_signature(session, summary.report_id)
    return summary, evaluate_gate(summary, signed, quorum)
