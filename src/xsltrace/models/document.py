"""Detected output document type."""

from __future__ import annotations

from pydantic import BaseModel


class DocumentInfo(BaseModel):
    """Root element information for a UBL 2.1 document."""

    root_element: str
    namespace: str
    document_type: str
    is_invoice_or_credit_note: bool
