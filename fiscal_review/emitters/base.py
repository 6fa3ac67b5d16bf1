"""
Abstract base class for finalization emitters.
An emitter turns a fully signed report into an immutable stored document.
"""

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Sequence

from fiscal_review.models.tables import (
    FiscalSignature,
    Report,
    Review,
    Transaction,
    TreasurerSignature,
)
from fiscal_review.review.diligence import DiligenceInfo


@dataclass(frozen=True)
class FinalizationBundle:
    """Everything the emitter may render. Read-only snapshot of the report."""
    report: Report
    transactions: Sequence[Transaction]
    reviews: Sequence[Review]
    fiscal_signatures: Sequence[FiscalSignature]
    treasurer_signature: TreasurerSignature
    diligences: dict[uuid.UUID, DiligenceInfo] = field(default_factory=dict)


@dataclass(frozen=True)
class EmittedArtifact:
    url: str
    path: str
    sha256: str
    size_bytes: int
    content_type: str


class FinalizationEmitter(ABC):
    """
    Every emitter must:
    1. Produce the document and store it
    2. Return the location the report will advertise as its final PDF
    3. Be able to discard what it stored when the status write fails
    4. Raise EmitterError on failure, never return a partial artifact
    """

    @property
    @abstractmethod
    def emitter_name(self) -> str:
        ...

    @abstractmethod
    async def emit(self, bundle: FinalizationBundle) -> EmittedArtifact:
        """Render and store the final document."""
        ...

    @abstractmethod
    async def discard(self, artifact: EmittedArtifact) -> None:
        """Remove a stored artifact whose finalization did not commit."""
        ...


class EmitterError(Exception):
    """Raised when an emitter cannot produce or store the document."""

    def __init__(self, emitter_name: str, error_code: str, message: str):
        self.emitter_name = emitter_name
        self.error_code = error_code
        self.message = message
        super().__init__(f"[{emitter_name}] {error_code}: {message}")
