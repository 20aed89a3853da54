"""Detect whether transformation output is a UBL 2.1 business document."""

from __future__ import annotations

import re

from xsltrace.models.document import DocumentInfo

UBL_21_NAMESPACE = "urn:oasis:names:specification:ubl:schema:xsd:"

_HEAD_SIZE = 2000

# First element start tag; skips the XML declaration, PIs and comments.
_ROOT_RE = re.compile(r"<(?:([A-Za-z0-9_-]+):)?([A-Za-z]+)[\s>/]")

UBL_DOCUMENT_TYPES: frozenset[str] = frozenset(
    {
        "ApplicationResponse",
        "AttachedDocument",
        "AwardedNotification",
        "BillOfLading",
        "CallForTenders",
        "Catalogue",
        "CatalogueDeletion",
        "CatalogueItemSpecificationUpdate",
        "CataloguePricingUpdate",
        "CatalogueRequest",
        "CertificateOfOrigin",
        "ContractAwardNotice",
        "ContractNotice",
        "CreditNote",
        "DebitNote",
        "DespatchAdvice",
        "DigitalAgreement",
        "DigitalCapability",
        "DocumentStatus",
        "DocumentStatusRequest",
        "Enquiry",
        "EnquiryResponse",
        "ExceptionCriteria",
        "ExceptionNotification",
        "ExpressionOfInterestRequest",
        "ExpressionOfInterestResponse",
        "Forecast",
        "ForecastRevision",
        "FreightInvoice",
        "FulfilmentCancellation",
        "GoodsItemItinerary",
        "GuaranteeCertificate",
        "InstructionForReturns",
        "InventoryReport",
        "Invoice",
        "ItemInformationRequest",
        "Order",
        "OrderCancellation",
        "OrderChange",
        "OrderResponse",
        "OrderResponseSimple",
        "PackingList",
        "PriorInformationNotice",
        "ProductActivity",
        "Quotation",
        "ReceiptAdvice",
        "Reminder",
        "RemittanceAdvice",
        "RequestForQuotation",
        "RetailEvent",
        "SelfBilledCreditNote",
        "SelfBilledInvoice",
        "Statement",
        "StockAvailabilityReport",
        "Tender",
        "TendererQualification",
        "TendererQualificationResponse",
        "TenderReceipt",
        "TenderStatus",
        "TenderStatusRequest",
        "TenderWithdrawal",
        "TradeItemLocationProfile",
        "TransportationStatus",
        "TransportationStatusRequest",
        "TransportExecutionPlan",
        "TransportExecutionPlanRequest",
        "TransportProgressStatus",
        "TransportProgressStatusRequest",
        "TransportServiceDescription",
        "TransportServiceDescriptionRequest",
        "UnawardedNotification",
        "UnsubscribeFromProcedureRequest",
        "UnsubscribeFromProcedureResponse",
        "UtilityStatement",
        "Waybill",
        "WeightStatement",
    }
)

_INVOICE_OR_CREDIT_NOTE = frozenset({"Invoice", "CreditNote"})


def detect_document(content: str) -> DocumentInfo | None:
    """Return UBL document info for ``content``, or ``None`` if it is not UBL."""
    match = _ROOT_RE.search(content[:_HEAD_SIZE])
    if match is None:
        return None

    root = match.group(2)
    if root not in UBL_DOCUMENT_TYPES:
        return None

    return DocumentInfo(
        root_element=root,
        namespace=f"{UBL_21_NAMESPACE}{root}-2",
        document_type=f"{root}-2",
        is_invoice_or_credit_note=root in _INVOICE_OR_CREDIT_NOTE,
    )
