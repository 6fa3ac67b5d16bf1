"""
Tests for the ledger and report lifecycle.
"""

import uuid
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from fiscal_review.models.tables import Review, Transaction
from fiscal_review.review.errors import (
    InvalidLedger,
    InvalidStatusTransition,
    ReportImmutable,
    ReportNotFound,
)
from fiscal_review.review.ledger import (
    create_report,
    delete_report,
    get_report,
    list_reports,
    list_transactions,
    set_report_status,
)
from fiscal_review.review.store import record_verdict
from fiscal_review.storage.paths import final_report_path


class TestCreateReport:
    """Importing a report and its ledger."""

    async def test_total_entries_and_order(self, db_session, report, transactions):
        assert report.status == "open"
        assert report.total_entries == 5
        assert [t.entry_index for t in transactions] == [0, 1, 2, 3, 4]
        assert transactions[0].description == "Monthly dues"

    async def test_direction_from_sign(self, db_session, transactions):
        assert transactions[0].direction == "credit"
        assert transactions[1].direction == "debit"
        assert transactions[3].direction == "credit"

    async def test_dates_and_amounts_parsed(self, db_session, transactions):
        assert transactions[2].posted_date == date(2024, 3, 10)
        assert transactions[2].amount == Decimal("-800.00")

    async def test_explicit_entry_index(self, db_session):
        created = await create_report(
            db_session, "Explicit", "2024-05", "checking",
            [
                {"date": "2024-05-02", "description": "B", "amount": "10", "entry_index": 7},
                {"date": "2024-05-01", "description": "A", "amount": "5", "entry_index": 3},
            ],
        )
        txs = await list_transactions(db_session, created.report_id)
        assert [t.description for t in txs] == ["A", "B"]

    async def test_partial_entry_index_rejected(self, db_session):
        with pytest.raises(InvalidLedger):
            await create_report(
                db_session, "Mixed", "2024-05", "checking",
                [
                    {"date": "2024-05-01", "description": "A", "amount": "5", "entry_index": 1},
                    {"date": "2024-05-02", "description": "B", "amount": "10"},
                ],
            )
        assert await list_reports(db_session) == []

    async def test_duplicate_entry_index_rejected(self, db_session):
        with pytest.raises(InvalidLedger):
            await create_report(
                db_session, "Duplicated", "2024-05", "checking",
                [
                    {"date": "2024-05-01", "description": "A", "amount": "5", "entry_index": 2},
                    {"date": "2024-05-02", "description": "B", "amount": "10", "entry_index": 2},
                ],
            )

    async def test_empty_ledger(self, db_session):
        created = await create_report(db_session, "Empty", "2024-06", "checking", [])
        assert created.total_entries == 0
        assert await list_transactions(db_session, created.report_id) == []


class TestReportLookup:
    """Reading reports."""

    async def test_missing_report(self, db_session):
        with pytest.raises(ReportNotFound):
            await get_report(db_session, uuid.uuid4())

    async def test_malformed_id(self, db_session):
        with pytest.raises(ReportNotFound):
            await get_report(db_session, "42")

    async def test_list_filters_by_status(self, db_session, report, ledger_entries):
        other = await create_report(db_session, "Other", "2024-04", "savings", ledger_entries)
        await set_report_status(db_session, other.report_id, "locked")
        locked = await list_reports(db_session, "locked")
        assert [r.report_id for r in locked] == [other.report_id]
        assert len(await list_reports(db_session)) == 2


class TestSetReportStatus:
    """Administrative lock and unlock."""

    async def test_lock_and_unlock(self, db_session, report):
        assert (await set_report_status(db_session, report.report_id, "locked")).status == "locked"
        assert (await set_report_status(db_session, report.report_id, "open")).status == "open"

    async def test_cannot_finish_directly(self, db_session, report):
        with pytest.raises(InvalidStatusTransition):
            await set_report_status(db_session, report.report_id, "finished")

    async def test_finished_is_terminal(self, db_session, report):
        report.status = "finished"
        await db_session.flush()
        with pytest.raises(ReportImmutable):
            await set_report_status(db_session, report.report_id, "open")


class TestDeleteReport:
    """Deleting a report removes everything attached to it."""

    async def test_cascades_rows_and_artifacts(self, db_session, report, transactions, artifact_store):
        await record_verdict(db_session, report.report_id, transactions[0].transaction_id, "ana", "approved")
        path = final_report_path(str(report.report_id), report.competence_period, report.created_at)
        artifact_store.save_bytes(path, b"{}")

        await delete_report(db_session, report.report_id, artifact_store)

        assert await list_reports(db_session) == []
        for model in (Review, Transaction):
            count = await db_session.scalar(select(func.count()).select_from(model))
            assert count == 0
        assert artifact_store.list_artifacts(str(report.report_id)) == []
        with pytest.raises(ReportNotFound):
            await get_report(db_session, report.report_id)

    async def test_files_kept_when_commit_fails(self, db_session, report, artifact_store, monkeypatch):
        rid = report.report_id
        path = final_report_path(str(rid), report.competence_period, report.created_at)
        artifact_store.save_bytes(path, b"{}")

        async def failing_commit():
            raise SQLAlchemyError("database unavailable")

        monkeypatch.setattr(db_session, "commit", failing_commit)
        with pytest.raises(SQLAlchemyError):
            await delete_report(db_session, rid, artifact_store)
        monkeypatch.undo()

        assert artifact_store.list_artifacts(str(rid)) == [path]
        assert (await get_report(db_session, rid)).report_id == rid
