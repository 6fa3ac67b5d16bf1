"""
Tests for the diligence resolver.
"""

import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

from fiscal_review.review.diligence import (
    all_diligences_confirmed,
    diligence_counts,
    resolve_diligences,
)

T0 = datetime(2024, 4, 2, 12, 0, tzinfo=timezone.utc)
TX = uuid.uuid4()


def row(user_id, status="approved", observation=None, ack=False, opened_by=None,
        opened_at=None, updated_at=T0, tx=TX):
    return SimpleNamespace(
        transaction_id=tx,
        user_id=user_id,
        status=status,
        observation=observation,
        diligence_ack=ack,
        diligence_opened_by=opened_by,
        diligence_opened_at=opened_at,
        diligence_opener_display_name=opened_by.title() if opened_by else None,
        updated_at=updated_at,
    )


class TestResolveDiligences:
    """Diligence detection from review rows."""

    def test_all_approved_is_not_diligence(self):
        infos = resolve_diligences([row("ana"), row("bruno"), row("carla")], quorum=3)
        info = infos[TX]
        assert not info.is_diligence
        assert not info.is_confirmed
        assert info.reason is None
        assert info.reviewer_count == 3

    def test_single_divergent_raises_diligence(self):
        rows = [
            row("ana", "divergent", "Missing invoice", ack=True, opened_by="ana", opened_at=T0),
            row("bruno"),
        ]
        info = resolve_diligences(rows, quorum=3)[TX]
        assert info.is_diligence
        assert info.reason == "Missing invoice"
        assert info.opened_by == "ana"
        assert info.opener_display_name == "Ana"
        assert info.ack_count == 1
        assert not info.is_confirmed

    def test_confirmed_at_quorum_acks(self):
        rows = [
            row("ana", "divergent", "Missing invoice", ack=True, opened_by="ana", opened_at=T0),
            row("bruno", ack=True),
            row("carla", ack=True),
        ]
        info = resolve_diligences(rows, quorum=3)[TX]
        assert info.ack_count == 3
        assert info.is_confirmed

    def test_two_acks_below_quorum(self):
        rows = [
            row("ana", "divergent", "x", ack=True, opened_by="ana", opened_at=T0),
            row("bruno", ack=True),
            row("carla", ack=False),
        ]
        assert not resolve_diligences(rows, quorum=3)[TX].is_confirmed

    def test_reason_is_latest_divergent_observation(self):
        rows = [
            row("ana", "divergent", "First concern", opened_by="ana", opened_at=T0, updated_at=T0),
            row("bruno", "divergent", "Second concern", opened_by="bruno",
                opened_at=T0 + timedelta(minutes=5), updated_at=T0 + timedelta(minutes=5)),
        ]
        info = resolve_diligences(rows, quorum=3)[TX]
        assert info.reason == "Second concern"
        assert info.opened_by == "ana"

    def test_reason_tie_broken_by_user_id(self):
        rows = [
            row("bruno", "divergent", "From bruno", updated_at=T0),
            row("ana", "divergent", "From ana", updated_at=T0),
        ]
        assert resolve_diligences(rows, quorum=3)[TX].reason == "From bruno"

    def test_opener_stamp_survives_approval(self):
        rows = [
            row("ana", "approved", "Resolved with treasurer", opened_by="ana", opened_at=T0),
            row("bruno"),
        ]
        info = resolve_diligences(rows, quorum=3)[TX]
        assert info.is_diligence
        assert info.reason == "Resolved with treasurer"

    def test_mixed_naive_and_aware_timestamps(self):
        naive = (T0 + timedelta(minutes=1)).replace(tzinfo=None)
        rows = [
            row("ana", "divergent", "Aware", updated_at=T0),
            row("bruno", "divergent", "Naive", updated_at=naive),
        ]
        assert resolve_diligences(rows, quorum=3)[TX].reason == "Naive"

    def test_unreviewed_transactions_absent(self):
        assert resolve_diligences([], quorum=3) == {}


class TestDiligenceCounts:
    """Report-level diligence rollups."""

    def test_counts_only_diligences(self):
        other = uuid.uuid4()
        rows = [
            row("ana", "divergent", "x", ack=True),
            row("bruno", ack=True),
            row("carla", ack=True),
            row("ana", tx=other),
        ]
        infos = resolve_diligences(rows, quorum=3)
        assert diligence_counts(infos) == (1, 1)
        assert all_diligences_confirmed(infos)

    def test_no_diligences_counts_as_confirmed(self):
        infos = resolve_diligences([row("ana"), row("bruno")], quorum=3)
        assert diligence_counts(infos) == (0, 0)
        assert all_diligences_confirmed(infos)

    def test_unconfirmed_diligence(self):
        infos = resolve_diligences([row("ana", "divergent", "x", ack=True)], quorum=3)
        assert not all_diligences_confirmed(infos)
