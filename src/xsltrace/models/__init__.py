"""Pydantic domain models for xsltrace."""

from xsltrace.models.document import DocumentInfo
from xsltrace.models.issues import (
    IssueSource,
    Severity,
    TracedIssue,
    ValidationIssue,
    ViolationRecord,
)
from xsltrace.models.location import LocationSegment
from xsltrace.models.trace import TraceEntry

__all__ = [
    "DocumentInfo",
    "IssueSource",
    "LocationSegment",
    "Severity",
    "TraceEntry",
    "TracedIssue",
    "ValidationIssue",
    "ViolationRecord",
]
