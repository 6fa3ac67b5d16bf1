"""
Exception handlers translating engine errors into HTTP responses.
Body shape: {"error_code": ..., "message": ...} plus error-specific fields.
"""

import structlog
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from fiscal_review.review.errors import (
    ArtifactEmissionFailure,
    FiscalReviewError,
    QuorumNotReached,
)

logger = structlog.get_logger(__name__)


STATUS_BY_ERROR_CODE = {
    "REPORT_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "TRANSACTION_NOT_IN_REPORT": status.HTTP_404_NOT_FOUND,
    "DUPLICATE_SIGNATURE": status.HTTP_409_CONFLICT,
    "INVALID_STATUS_TRANSITION": status.HTTP_409_CONFLICT,
    "QUORUM_NOT_REACHED": status.HTTP_412_PRECONDITION_FAILED,
    "OBSERVATION_REQUIRED": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "INVALID_LEDGER": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "REPORT_IMMUTABLE": status.HTTP_423_LOCKED,
    "REPORT_LOCKED": status.HTTP_423_LOCKED,
    "ARTIFACT_EMISSION_FAILURE": status.HTTP_502_BAD_GATEWAY,
}


def error_body(exc: FiscalReviewError) -> dict:
    body = {"error_code": exc.error_code, "message": exc.message}
    if isinstance(exc, QuorumNotReached):
        body["blockers"] = exc.blockers
    elif isinstance(exc, ArtifactEmissionFailure):
        body["stage"] = exc.stage
    return body


async def fiscal_review_error_handler(request: Request, exc: FiscalReviewError) -> JSONResponse:
    status_code = STATUS_BY_ERROR_CODE.get(exc.error_code, status.HTTP_400_BAD_REQUEST)
    log = logger.error if status_code >= 500 else logger.info
    log(
        "request_rejected",
        path=request.url.path,
        error_code=exc.error_code,
        status_code=status_code,
    )
    return JSONResponse(status_code=status_code, content=error_body(exc))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(FiscalReviewError, fiscal_review_error_handler)
