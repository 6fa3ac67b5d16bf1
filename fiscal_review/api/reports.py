"""
/api/v1/reports endpoints.
Report lifecycle, ledger, and derived progress: summary, gate, diligences.
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from fiscal_review.dependencies import (
    Identity,
    get_artifact_store,
    get_db,
    get_identity,
    require_role,
    verify_api_key,
)
from fiscal_review.models.enums import ReportStatus, Role
from fiscal_review.review import ledger
from fiscal_review.review.diligence import diligence_counts, resolve
from fiscal_review.review.gate import evaluate
from fiscal_review.review.progress import aggregate, list_summaries
from fiscal_review.schemas.reports import (
    DiligenceListResponse,
    DiligenceResponse,
    GateResponse,
    ReportCreateRequest,
    ReportListItem,
    ReportListResponse,
    ReportResponse,
    ReportStatusUpdate,
    ReportSummaryResponse,
    TransactionListResponse,
    TransactionResponse,
)
from fiscal_review.storage.artifact_store import ArtifactStore

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/v1/reports", tags=["reports"], dependencies=[Depends(verify_api_key)])


@router.post("", response_model=ReportResponse, status_code=status.HTTP_201_CREATED)
async def create_report(
    body: ReportCreateRequest,
    identity: Identity = Depends(require_role(Role.ADMIN)),
    session: AsyncSession = Depends(get_db),
):
    """Create a report and import its ledger."""
    report = await ledger.create_report(
        session,
        title=body.title,
        competence_period=body.competence_period,
        account_type=body.account_type,
        transactions=[tx.model_dump(exclude_none=True) for tx in body.transactions],
        sent_by=identity.user_id,
    )
    return ReportResponse.model_validate(report)


@router.get("", response_model=ReportListResponse)
async def list_reports(
    status_filter: Optional[ReportStatus] = Query(None, alias="status"),
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_db),
):
    """List reports, newest first, each with its derived summary."""
    wanted = status_filter.value if status_filter else None
    reports = await ledger.list_reports(session, wanted)
    summaries = {s.report_id: s for s in await list_summaries(session, wanted)}
    items = [
        ReportListItem(
            report=ReportResponse.model_validate(r),
            summary=ReportSummaryResponse.model_validate(summaries[r.report_id]),
        )
        for r in reports
        if r.report_id in summaries
    ]
    return ReportListResponse(reports=items, total=len(items))


@router.get("/{report_id}", response_model=ReportResponse)
async def get_report(
    report_id: str,
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_db),
):
    report = await ledger.get_report(session, report_id)
    return ReportResponse.model_validate(report)


@router.patch("/{report_id}/status", response_model=ReportResponse)
async def update_report_status(
    report_id: str,
    body: ReportStatusUpdate,
    identity: Identity = Depends(require_role(Role.ADMIN)),
    session: AsyncSession = Depends(get_db),
):
    """Lock or unlock a report. Finishing happens only through finalize."""
    report = await ledger.set_report_status(session, report_id, body.status.value)
    return ReportResponse.model_validate(report)


@router.delete("/{report_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_report(
    report_id: str,
    identity: Identity = Depends(require_role(Role.ADMIN)),
    session: AsyncSession = Depends(get_db),
    store: ArtifactStore = Depends(get_artifact_store),
):
    """Delete a report with everything attached to it."""
    await ledger.delete_report(session, report_id, store)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{report_id}/transactions", response_model=TransactionListResponse)
async def list_transactions(
    report_id: str,
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_db),
):
    report = await ledger.get_report(session, report_id)
    transactions = await ledger.list_transactions(session, report.report_id)
    return TransactionListResponse(
        report_id=report.report_id,
        transactions=[TransactionResponse.model_validate(tx) for tx in transactions],
        total=len(transactions),
    )


@router.get("/{report_id}/summary", response_model=ReportSummaryResponse)
async def get_summary(
    report_id: str,
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_db),
):
    summary = await aggregate(session, report_id)
    return ReportSummaryResponse.model_validate(summary)


@router.get("/{report_id}/gate", response_model=GateResponse)
async def get_gate(
    report_id: str,
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_db),
):
    """Sign-off state and the actions currently available."""
    summary, decision = await evaluate(session, report_id)
    return GateResponse(
        report_id=summary.report_id,
        state=decision.state,
        locked=decision.locked,
        has_treasurer_signature=decision.has_treasurer_signature,
        can_treasurer_sign=decision.can_treasurer_sign,
        can_finalize=decision.can_finalize,
        blockers=decision.blockers,
        messages=decision.messages,
    )


@router.get("/{report_id}/diligences", response_model=DiligenceListResponse)
async def list_diligences(
    report_id: str,
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_db),
):
    """Transactions currently under diligence."""
    report = await ledger.get_report(session, report_id)
    infos = await resolve(session, report.report_id)
    total, confirmed = diligence_counts(infos)
    return DiligenceListResponse(
        report_id=report.report_id,
        diligences=[
            DiligenceResponse.model_validate(info)
            for info in infos.values()
            if info.is_diligence
        ],
        total=total,
        confirmed=confirmed,
    )
