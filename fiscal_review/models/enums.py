"""
Python enums for persisted and derived states.
Stored values are lowercase to match the reports/reviews tables.
"""

from enum import Enum


class ReportStatus(str, Enum):
    OPEN = "open"
    LOCKED = "locked"
    FINISHED = "finished"


class ReviewVerdict(str, Enum):
    APPROVED = "approved"
    DIVERGENT = "divergent"


class TxDirection(str, Enum):
    CREDIT = "credit"
    DEBIT = "debit"


class Role(str, Enum):
    ADMIN = "admin"
    FISCAL = "fiscal"
    TREASURER = "treasurer"


class GateState(str, Enum):
    """Sign-off progression. FINALIZED is terminal."""
    OPEN = "OPEN"
    READY_FOR_SIGNATURES = "READY_FOR_SIGNATURES"
    READY_FOR_FINAL = "READY_FOR_FINAL"
    FINALIZED = "FINALIZED"


class GateBlocker(str, Enum):
    """Reasons the finalize action is not available, in display order."""
    ALREADY_FINALIZED = "ALREADY_FINALIZED"
    REPORT_LOCKED = "REPORT_LOCKED"
    PENDING_TRANSACTIONS = "PENDING_TRANSACTIONS"
    MISSING_FISCAL_SIGNATURES = "MISSING_FISCAL_SIGNATURES"
    UNCONFIRMED_DILIGENCES = "UNCONFIRMED_DILIGENCES"
    MISSING_TREASURER_SIGNATURE = "MISSING_TREASURER_SIGNATURE"


class ReviewerStatus(str, Enum):
    """A reviewer's own standing on a report."""
    PENDING = "pending"
    WAITING_OTHERS = "waiting_others"
    COMPLETED = "completed"
