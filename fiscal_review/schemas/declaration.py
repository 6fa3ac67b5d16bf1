"""
Final declaration document schemas.
This is the content of the immutable artifact produced at finalization.
"""

from pydantic import BaseModel
from typing import Optional
from decimal import Decimal


class DeclarationReview(BaseModel):
    """One reviewer's verdict as recorded in the final document."""
    user_id: str
    status: str                             # approved, divergent
    observation: Optional[str] = None
    diligence_ack: bool = False


class DeclarationEntry(BaseModel):
    """A ledger line with the panel's verdicts."""
    transaction_id: str
    entry_index: int
    posted_date: str                        # ISO format YYYY-MM-DD
    description: str
    amount: Decimal
    direction: str                          # credit, debit
    reviews: list[DeclarationReview] = []
    is_diligence: bool = False
    diligence_reason: Optional[str] = None
    diligence_opened_by: Optional[str] = None
    diligence_opened_at: Optional[str] = None
    diligence_ack_count: int = 0


class DeclarationSignature(BaseModel):
    """A signature block."""
    user_id: str
    display_name: Optional[str] = None
    role: str                               # fiscal, treasurer
    signed_at: str
    signature_image: str


class FinalDeclaration(BaseModel):
    """The complete signed report."""
    report_id: str
    title: str
    competence_period: str
    account_type: str
    total_entries: int
    approved_transactions: int
    diligence_count: int
    confirmed_diligences: int
    generated_at: str
    entries: list[DeclarationEntry]
    fiscal_signatures: list[DeclarationSignature]
    treasurer_signature: DeclarationSignature
