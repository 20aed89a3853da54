"""Validation issue models: raw SVRL violations, resolved issues, traced issues."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field


class Severity(StrEnum):
    ERROR = "error"
    WARNING = "warning"
    INFORMATION = "information"


class IssueSource(StrEnum):
    """Which validator reported the issue."""

    XSD = "xsd"
    EN16931 = "en16931"
    PEPPOL = "peppol"


class ViolationRecord(BaseModel):
    """A failed assertion or flagged report extracted from an SVRL document."""

    rule_id: str | None = None
    severity_flag: str = "error"
    location_path: str = ""
    message_text: str

    model_config = {"frozen": True}


class ValidationIssue(BaseModel):
    """A validator finding positioned on a line of the clean output."""

    line: int = Field(ge=1)
    column: int = Field(default=0, ge=0)
    message: str
    severity: Severity = Severity.ERROR
    rule_id: str | None = None
    source: IssueSource


class TracedIssue(ValidationIssue):
    """A validation issue correlated with the stylesheet line that produced it.

    The ``producing_*`` fields stay ``None`` when no trace entry could be
    associated with the issue.
    """

    producing_file: str | None = None
    producing_line: int | None = None
    producing_element: str | None = None

    @classmethod
    def from_issue(cls, issue: ValidationIssue) -> TracedIssue:
        return cls(**issue.model_dump())

    @property
    def is_traced(self) -> bool:
        return self.producing_file is not None
