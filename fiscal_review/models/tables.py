"""
SQLAlchemy ORM models.
Uniqueness invariants (one review per reviewer and transaction, one fiscal
signature per signer and report, one treasurer signature per report) are
enforced by constraints, not application locks.
"""

import uuid
from datetime import datetime, date, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fiscal_review.models.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ────────────────────────────────────────────────────────────
# REPORTS
# ────────────────────────────────────────────────────────────
class Report(Base):
    __tablename__ = "fiscal_reports"

    report_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    competence_period: Mapped[str] = mapped_column(String(20), nullable=False)
    account_type: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="open", server_default="open"
    )
    total_entries: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    pdf_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    sent_by: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    finalized_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

    # Relationships
    transactions = relationship(
        "Transaction", back_populates="report", passive_deletes=True,
        order_by="Transaction.entry_index",
    )
    reviews = relationship("Review", back_populates="report", passive_deletes=True)
    fiscal_signatures = relationship("FiscalSignature", back_populates="report", passive_deletes=True)
    treasurer_signatures = relationship("TreasurerSignature", back_populates="report", passive_deletes=True)

    __table_args__ = (
        Index("idx_reports_status", "status"),
        Index("idx_reports_created", "created_at"),
    )


# ────────────────────────────────────────────────────────────
# TRANSACTIONS (ledger)
# ────────────────────────────────────────────────────────────
class Transaction(Base):
    __tablename__ = "transactions"

    transaction_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    report_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("fiscal_reports.report_id", ondelete="CASCADE"),
        nullable=False
    )
    entry_index: Mapped[int] = mapped_column(Integer, nullable=False)
    posted_date: Mapped[date] = mapped_column(Date, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    direction: Mapped[str] = mapped_column(String(10), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

    # Relationships
    report = relationship("Report", back_populates="transactions")

    __table_args__ = (
        UniqueConstraint("report_id", "entry_index", name="uq_transaction_report_entry"),
        Index("idx_transactions_report", "report_id"),
    )


# ────────────────────────────────────────────────────────────
# REVIEWS
# ────────────────────────────────────────────────────────────
class Review(Base):
    __tablename__ = "fiscal_user_reviews"

    review_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    report_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("fiscal_reports.report_id", ondelete="CASCADE"),
        nullable=False
    )
    transaction_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("transactions.transaction_id", ondelete="CASCADE"),
        nullable=False
    )
    user_id: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    observation: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    diligence_ack: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )
    diligence_opened_by: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    diligence_opened_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    diligence_opener_display_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

    # Relationships
    report = relationship("Report", back_populates="reviews")

    __table_args__ = (
        UniqueConstraint("report_id", "transaction_id", "user_id", name="uq_review_report_tx_user"),
        Index("idx_reviews_report", "report_id"),
        Index("idx_reviews_user", "user_id"),
    )


# ────────────────────────────────────────────────────────────
# FISCAL SIGNATURES
# ────────────────────────────────────────────────────────────
class FiscalSignature(Base):
    __tablename__ = "fiscal_report_signatures"

    signature_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    report_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("fiscal_reports.report_id", ondelete="CASCADE"),
        nullable=False
    )
    user_id: Mapped[str] = mapped_column(Text, nullable=False)
    signature_image: Mapped[str] = mapped_column(Text, nullable=False)
    display_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

    # Relationships
    report = relationship("Report", back_populates="fiscal_signatures")

    __table_args__ = (
        UniqueConstraint("report_id", "user_id", name="uq_fiscal_signature_report_user"),
        Index("idx_fiscal_signatures_report", "report_id"),
    )


# ────────────────────────────────────────────────────────────
# TREASURER SIGNATURES
# ────────────────────────────────────────────────────────────
class TreasurerSignature(Base):
    __tablename__ = "treasurer_signatures"

    signature_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    report_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("fiscal_reports.report_id", ondelete="CASCADE"),
        nullable=False
    )
    user_id: Mapped[str] = mapped_column(Text, nullable=False)
    signature_image: Mapped[str] = mapped_column(Text, nullable=False)
    display_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

    # Relationships
    report = relationship("Report", back_populates="treasurer_signatures")

    __table_args__ = (
        UniqueConstraint("report_id", name="uq_treasurer_signature_report"),
        Index("idx_treasurer_signatures_report", "report_id"),
    )
