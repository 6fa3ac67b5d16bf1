"""
Shared test fixtures.
Each test gets a fresh in-memory SQLite database via aiosqlite.
"""

from datetime import date
from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from fiscal_review.dependencies import get_artifact_store, get_db
from fiscal_review.main import app
from fiscal_review.models.database import Base
from fiscal_review.review.ledger import create_report, list_transactions
from fiscal_review.review.signatures import add_fiscal_signature
from fiscal_review.review.store import bulk_record_verdicts
from fiscal_review.storage.artifact_store import ArtifactStore


PANEL = ["ana", "bruno", "carla"]
TREASURER = "tesoureiro"
SIGNATURE_IMAGE = "data:image/png;base64,iVBORw0KGgo="


def _sqlite_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # pysqlite's own transaction handling breaks SAVEPOINT; emit BEGIN ourselves
    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    """Session factory bound to a fresh schema."""
    engine = _sqlite_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """A session for engine-level tests."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def artifact_store(tmp_path) -> ArtifactStore:
    """Artifact store rooted in a temporary directory."""
    return ArtifactStore(root=str(tmp_path / "artifacts"), base_url="/artifacts")


@pytest.fixture
def ledger_entries():
    """Five ledger lines, mixed credits and debits."""
    return [
        {"date": date(2024, 3, 1), "description": "Monthly dues", "amount": Decimal("1500.00")},
        {"date": date(2024, 3, 4), "description": "Electricity bill", "amount": Decimal("-320.45")},
        {"date": "2024-03-10", "description": "Cleaning services", "amount": "-800.00"},
        {"date": "2024-03-15", "description": "Reserve fund", "amount": "450.00", "direction": "credit"},
        {"date": "2024-03-28", "description": "Bank fees", "amount": "-12.90"},
    ]


@pytest_asyncio.fixture
async def report(db_session, ledger_entries):
    """An open report with five transactions."""
    created = await create_report(
        db_session,
        title="Statement March 2024",
        competence_period="2024-03",
        account_type="checking",
        transactions=ledger_entries,
        sent_by="admin",
    )
    await db_session.commit()
    return created


@pytest_asyncio.fixture
async def transactions(db_session, report):
    """The report's transactions in statement order."""
    return await list_transactions(db_session, report.report_id)


@pytest_asyncio.fixture
async def reviewed_report(db_session, report, transactions):
    """Every transaction approved by the whole panel, nothing signed."""
    ids = [t.transaction_id for t in transactions]
    for user_id in PANEL:
        await bulk_record_verdicts(db_session, report.report_id, ids, user_id)
    await db_session.commit()
    return report


@pytest_asyncio.fixture
async def panel_signed_report(db_session, reviewed_report):
    """Reviewed and signed by the whole panel: READY_FOR_FINAL."""
    for user_id in PANEL:
        await add_fiscal_signature(
            db_session, reviewed_report.report_id, user_id, SIGNATURE_IMAGE, display_name=user_id.title()
        )
    await db_session.commit()
    return reviewed_report


# ── API ──────────────────────────────────────────────────────

def headers_for(user_id: str, role: str, name: str = None) -> dict:
    """Identity headers as set by the authenticating gateway."""
    return {
        "X-User-Id": user_id,
        "X-User-Role": role,
        "X-User-Name": name or user_id.title(),
    }


@pytest.fixture
def as_user():
    """Build identity headers for a user and role."""
    return headers_for


@pytest_asyncio.fixture
async def client(session_factory, artifact_store) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app with the test database and store."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_artifact_store] = lambda: artifact_store

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
