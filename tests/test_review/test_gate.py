"""
Tests for the sign-off gate.
"""

import uuid

from fiscal_review.models.enums import GateBlocker, GateState
from fiscal_review.review.gate import evaluate_gate, gate_state
from fiscal_review.review.progress import ReportSummary


def summary(**overrides) -> ReportSummary:
    values = dict(
        report_id=uuid.uuid4(),
        report_status="open",
        total_transactions=5,
        approved_transactions=5,
        pending_transactions=0,
        diligence_count=0,
        confirmed_diligences=0,
        all_diligences_confirmed=True,
        signature_count=3,
        is_finished=True,
        has_final_pdf=False,
    )
    values.update(overrides)
    return ReportSummary(**values)


class TestGateState:
    """Position in the OPEN -> FINALIZED progression."""

    def test_pending_transactions_is_open(self):
        assert gate_state(summary(pending_transactions=1, approved_transactions=4), 3) is GateState.OPEN

    def test_reviewed_but_unsigned(self):
        assert gate_state(summary(signature_count=2), 3) is GateState.READY_FOR_SIGNATURES

    def test_unconfirmed_diligence_blocks_final(self):
        s = summary(diligence_count=1, confirmed_diligences=0, all_diligences_confirmed=False)
        assert gate_state(s, 3) is GateState.READY_FOR_SIGNATURES

    def test_ready_for_final(self):
        assert gate_state(summary(), 3) is GateState.READY_FOR_FINAL

    def test_finished_status_is_finalized(self):
        assert gate_state(summary(report_status="finished", has_final_pdf=True), 3) is GateState.FINALIZED

    def test_final_pdf_without_finished_status_is_not_ready(self):
        assert gate_state(summary(has_final_pdf=True), 3) is GateState.READY_FOR_SIGNATURES


class TestEvaluateGate:
    """Available actions and ordered blockers."""

    def test_treasurer_may_sign_when_ready(self):
        decision = evaluate_gate(summary(), has_treasurer_signature=False, quorum=3)
        assert decision.can_treasurer_sign
        assert not decision.can_finalize
        assert decision.blockers == [GateBlocker.MISSING_TREASURER_SIGNATURE]

    def test_can_finalize_after_treasurer_signs(self):
        decision = evaluate_gate(summary(), has_treasurer_signature=True, quorum=3)
        assert decision.can_finalize
        assert not decision.can_treasurer_sign
        assert decision.blockers == []

    def test_blockers_in_order(self):
        s = summary(
            pending_transactions=2,
            approved_transactions=3,
            signature_count=1,
            diligence_count=2,
            confirmed_diligences=1,
            all_diligences_confirmed=False,
        )
        decision = evaluate_gate(s, has_treasurer_signature=False, quorum=3)
        assert decision.state is GateState.OPEN
        assert decision.blockers == [
            GateBlocker.PENDING_TRANSACTIONS,
            GateBlocker.MISSING_FISCAL_SIGNATURES,
            GateBlocker.UNCONFIRMED_DILIGENCES,
        ]
        assert decision.messages[0] == "2 transaction(s) still lack reviewer quorum."
        assert decision.messages[1] == "2 fiscal signature(s) missing."
        assert decision.messages[2] == "1 diligence(s) not acknowledged by the full panel."

    def test_lock_is_orthogonal_to_state(self):
        decision = evaluate_gate(summary(report_status="locked"), has_treasurer_signature=True, quorum=3)
        assert decision.state is GateState.READY_FOR_FINAL
        assert decision.locked
        assert not decision.can_finalize
        assert not decision.can_treasurer_sign
        assert decision.blockers == [GateBlocker.REPORT_LOCKED]

    def test_finalized_blocks_everything(self):
        s = summary(report_status="finished", has_final_pdf=True)
        decision = evaluate_gate(s, has_treasurer_signature=True, quorum=3)
        assert decision.state is GateState.FINALIZED
        assert not decision.can_finalize
        assert not decision.can_treasurer_sign
        assert decision.blockers == [GateBlocker.ALREADY_FINALIZED]
