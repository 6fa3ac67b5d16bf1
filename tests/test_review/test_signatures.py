"""
Tests for fiscal panel and treasurer signatures.
"""

import pytest

from fiscal_review.review.errors import (
    DuplicateSignature,
    QuorumNotReached,
    ReportImmutable,
    ReportLocked,
)
from fiscal_review.review.ledger import set_report_status
from fiscal_review.review.progress import aggregate
from fiscal_review.review.signatures import (
    add_fiscal_signature,
    add_treasurer_signature,
    get_treasurer_signature,
    list_fiscal_signatures,
)
from fiscal_review.review.store import record_verdict

IMAGE = "data:image/png;base64,iVBORw0KGgo="


class TestFiscalSignatures:
    """One signature per panel member and report."""

    async def test_sign_once(self, db_session, reviewed_report):
        signature = await add_fiscal_signature(db_session, reviewed_report.report_id, "ana", IMAGE, "Ana")
        assert signature.user_id == "ana"
        assert (await aggregate(db_session, reviewed_report.report_id)).signature_count == 1

    async def test_second_signature_rejected(self, db_session, reviewed_report):
        await add_fiscal_signature(db_session, reviewed_report.report_id, "ana", IMAGE)
        with pytest.raises(DuplicateSignature) as exc:
            await add_fiscal_signature(db_session, reviewed_report.report_id, "ana", IMAGE)
        assert exc.value.message == "You have already signed this report."
        signatures = await list_fiscal_signatures(db_session, reviewed_report.report_id)
        assert [s.user_id for s in signatures] == ["ana"]

    async def test_signing_allowed_before_reviews_complete(self, db_session, report):
        await add_fiscal_signature(db_session, report.report_id, "ana", IMAGE)
        assert (await aggregate(db_session, report.report_id)).signature_count == 1

    async def test_locked_report_rejects_signature(self, db_session, reviewed_report):
        await set_report_status(db_session, reviewed_report.report_id, "locked")
        with pytest.raises(ReportLocked):
            await add_fiscal_signature(db_session, reviewed_report.report_id, "ana", IMAGE)

    async def test_finished_report_rejects_signature(self, db_session, reviewed_report):
        reviewed_report.status = "finished"
        await db_session.flush()
        with pytest.raises(ReportImmutable):
            await add_fiscal_signature(db_session, reviewed_report.report_id, "ana", IMAGE)


class TestTreasurerSignature:
    """The treasurer co-signs once, after the panel."""

    async def test_refused_before_panel_signs(self, db_session, reviewed_report):
        with pytest.raises(QuorumNotReached) as exc:
            await add_treasurer_signature(db_session, reviewed_report.report_id, "tesoureiro", IMAGE)
        assert exc.value.blockers == ["MISSING_FISCAL_SIGNATURES"]

    async def test_signs_when_ready(self, db_session, panel_signed_report):
        signature = await add_treasurer_signature(
            db_session, panel_signed_report.report_id, "tesoureiro", IMAGE, "Treasurer"
        )
        stored = await get_treasurer_signature(db_session, panel_signed_report.report_id)
        assert stored.signature_id == signature.signature_id

    async def test_only_once_per_report(self, db_session, panel_signed_report):
        await add_treasurer_signature(db_session, panel_signed_report.report_id, "tesoureiro", IMAGE)
        with pytest.raises(DuplicateSignature) as exc:
            await add_treasurer_signature(db_session, panel_signed_report.report_id, "outro", IMAGE)
        assert exc.value.role == "treasurer"

    async def test_unconfirmed_diligence_blocks(self, db_session, panel_signed_report, transactions):
        await record_verdict(
            db_session, panel_signed_report.report_id, transactions[0].transaction_id,
            "ana", "divergent", "Invoice does not match",
        )
        with pytest.raises(QuorumNotReached) as exc:
            await add_treasurer_signature(db_session, panel_signed_report.report_id, "tesoureiro", IMAGE)
        assert exc.value.blockers == ["UNCONFIRMED_DILIGENCES"]
