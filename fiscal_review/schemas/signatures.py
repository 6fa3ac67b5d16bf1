"""
Pydantic schemas for signatures and finalization.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class SignatureRequest(BaseModel):
    """Signature payload. The image is an opaque encoded string (data URL)."""
    signature_image: str = Field(min_length=1)
    display_name: Optional[str] = None


class SignatureResponse(BaseModel):
    signature_id: uuid.UUID
    report_id: uuid.UUID
    user_id: str
    display_name: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class SignatureListResponse(BaseModel):
    report_id: uuid.UUID
    fiscal_signatures: list[SignatureResponse]
    treasurer_signature: Optional[SignatureResponse] = None


class FinalizeResponse(BaseModel):
    report_id: uuid.UUID
    status: str
    pdf_url: str
    finalized_at: datetime

    model_config = {"from_attributes": True}
