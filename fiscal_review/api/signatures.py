"""
/api/v1/reports/{report_id} sign-off endpoints.
Fiscal panel signatures, the treasurer co-signature and finalization.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from fiscal_review.dependencies import (
    Identity,
    get_db,
    get_emitter,
    get_identity,
    require_role,
    verify_api_key,
)
from fiscal_review.emitters.base import FinalizationEmitter
from fiscal_review.models.enums import Role
from fiscal_review.review import signatures
from fiscal_review.review.finalization import finalize_report
from fiscal_review.review.ledger import get_report
from fiscal_review.schemas.signatures import (
    FinalizeResponse,
    SignatureListResponse,
    SignatureRequest,
    SignatureResponse,
)

router = APIRouter(prefix="/api/v1/reports", tags=["signatures"], dependencies=[Depends(verify_api_key)])


@router.post(
    "/{report_id}/signatures",
    response_model=SignatureResponse,
    status_code=status.HTTP_201_CREATED,
)
async def sign_report(
    report_id: str,
    body: SignatureRequest,
    identity: Identity = Depends(require_role(Role.FISCAL)),
    session: AsyncSession = Depends(get_db),
):
    """Sign a report as a member of the fiscal panel."""
    signature = await signatures.add_fiscal_signature(
        session,
        report_id,
        identity.user_id,
        body.signature_image,
        display_name=body.display_name or identity.display_name,
    )
    return SignatureResponse.model_validate(signature)


@router.get("/{report_id}/signatures", response_model=SignatureListResponse)
async def list_signatures(
    report_id: str,
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_db),
):
    report = await get_report(session, report_id)
    fiscal = await signatures.list_fiscal_signatures(session, report.report_id)
    treasurer = await signatures.get_treasurer_signature(session, report.report_id)
    return SignatureListResponse(
        report_id=report.report_id,
        fiscal_signatures=[SignatureResponse.model_validate(s) for s in fiscal],
        treasurer_signature=SignatureResponse.model_validate(treasurer) if treasurer else None,
    )


@router.post(
    "/{report_id}/treasurer-signature",
    response_model=SignatureResponse,
    status_code=status.HTTP_201_CREATED,
)
async def treasurer_sign_report(
    report_id: str,
    body: SignatureRequest,
    identity: Identity = Depends(require_role(Role.TREASURER)),
    session: AsyncSession = Depends(get_db),
):
    """Co-sign a report whose fiscal panel has completed sign-off."""
    signature = await signatures.add_treasurer_signature(
        session,
        report_id,
        identity.user_id,
        body.signature_image,
        display_name=body.display_name or identity.display_name,
    )
    return SignatureResponse.model_validate(signature)


@router.post("/{report_id}/finalize", response_model=FinalizeResponse)
async def finalize(
    report_id: str,
    identity: Identity = Depends(require_role(Role.TREASURER)),
    session: AsyncSession = Depends(get_db),
    emitter: FinalizationEmitter = Depends(get_emitter),
):
    """Generate the final signed document and close the report."""
    report = await finalize_report(session, report_id, emitter)
    return FinalizeResponse.model_validate(report)
