"""
Error taxonomy for the review engine.
Every engine failure is a FiscalReviewError carrying a stable error_code;
the API layer maps error codes to HTTP responses.
"""

from typing import Optional, Sequence


class FiscalReviewError(Exception):
    """Base class for all engine errors."""

    error_code = "FISCAL_REVIEW_ERROR"

    def __init__(self, message: str, error_code: Optional[str] = None):
        self.message = message
        if error_code is not None:
            self.error_code = error_code
        super().__init__(f"{self.error_code}: {message}")


class ReportNotFound(FiscalReviewError):
    error_code = "REPORT_NOT_FOUND"

    def __init__(self, report_id):
        self.report_id = str(report_id)
        super().__init__(f"Report not found: {report_id}")


class TransactionNotInReport(FiscalReviewError):
    error_code = "TRANSACTION_NOT_IN_REPORT"

    def __init__(self, report_id, transaction_id):
        self.report_id = str(report_id)
        self.transaction_id = str(transaction_id)
        super().__init__(
            f"Transaction {transaction_id} does not belong to report {report_id}"
        )


class ReportImmutable(FiscalReviewError):
    """Write attempted against a finished report."""

    error_code = "REPORT_IMMUTABLE"

    def __init__(self, report_id):
        self.report_id = str(report_id)
        super().__init__(f"Report {report_id} is finished and can no longer be changed")


class ReportLocked(FiscalReviewError):
    """Write attempted while an administrator has frozen the report."""

    error_code = "REPORT_LOCKED"

    def __init__(self, report_id):
        self.report_id = str(report_id)
        super().__init__(f"Report {report_id} is locked by an administrator")


class ObservationRequired(FiscalReviewError):
    error_code = "OBSERVATION_REQUIRED"

    def __init__(self):
        super().__init__("A divergent verdict must explain the divergence")


class InvalidLedger(FiscalReviewError):
    """The imported ledger is inconsistent; nothing was written."""

    error_code = "INVALID_LEDGER"

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Invalid ledger: {detail}")


class InvalidStatusTransition(FiscalReviewError):
    error_code = "INVALID_STATUS_TRANSITION"

    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot move report from '{current}' to '{requested}'")


class DuplicateSignature(FiscalReviewError):
    """A signer tried to sign the same report twice."""

    error_code = "DUPLICATE_SIGNATURE"

    def __init__(self, report_id, user_id: str, role: str = "fiscal"):
        self.report_id = str(report_id)
        self.user_id = user_id
        self.role = role
        if role == "treasurer":
            message = "This report already carries a treasurer signature."
        else:
            message = "You have already signed this report."
        super().__init__(message)


class QuorumNotReached(FiscalReviewError):
    """The sign-off gate does not allow the requested transition yet."""

    error_code = "QUORUM_NOT_REACHED"

    def __init__(self, report_id, blockers: Sequence[str]):
        self.report_id = str(report_id)
        self.blockers = list(blockers)
        super().__init__(
            f"Report {report_id} is not ready: {', '.join(self.blockers) or 'unknown'}"
        )


class ArtifactEmissionFailure(FiscalReviewError):
    """
    The final document could not be produced, stored, or recorded.
    The report stays in READY_FOR_FINAL and finalize can be retried.
    """

    error_code = "ARTIFACT_EMISSION_FAILURE"

    def __init__(self, report_id, stage: str, detail: str):
        self.report_id = str(report_id)
        self.stage = stage
        self.detail = detail
        super().__init__(f"Finalization of report {report_id} failed at {stage}: {detail}")
