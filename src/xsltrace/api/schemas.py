"""API request/response Pydantic schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from xsltrace.models.document import DocumentInfo
from xsltrace.models.issues import IssueSource, TracedIssue
from xsltrace.models.trace import TraceEntry
from xsltrace.tracing.pipeline import ReportKind


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str = ""


# ---------------------------------------------------------------------------
# Stateless tools
# ---------------------------------------------------------------------------


class InstrumentRequest(BaseModel):
    """Request body for POST /instrument."""

    content: str = Field(description="XSLT stylesheet source")
    program_file: str = Field(description="Absolute path recorded in every marker")


class InstrumentResponse(BaseModel):
    """Response body for POST /instrument."""

    instrumented: str
    marker_count: int


class ResolveRequest(BaseModel):
    """Request body for POST /resolve."""

    location: str = Field(description="Location path, e.g. /Invoice/cac:InvoiceLine[2]/cbc:ID")
    content: str = Field(description="XML document the path points into")
    fallback: int = Field(default=1, ge=1)


class ResolveResponse(BaseModel):
    """Response body for POST /resolve."""

    line: int


# ---------------------------------------------------------------------------
# Session schemas
# ---------------------------------------------------------------------------


class SessionCreateRequest(BaseModel):
    """Request body for POST /sessions."""

    metadata: dict[str, str] = Field(default_factory=dict)


class SessionResponse(BaseModel):
    """Single session info."""

    session_id: str
    created_at: datetime
    last_accessed_at: datetime
    run_count: int
    metadata: dict[str, str] = Field(default_factory=dict)


class SessionListResponse(BaseModel):
    """Response for GET /sessions."""

    sessions: list[SessionResponse]


# ---------------------------------------------------------------------------
# Run schemas
# ---------------------------------------------------------------------------


class ReportInput(BaseModel):
    """One validator report attached to a run."""

    source: IssueSource
    kind: ReportKind = ReportKind.SVRL
    content: str


class RunCreateRequest(BaseModel):
    """Request body for POST /sessions/{session_id}/runs."""

    document: str = Field(default="output.xml", description="Name used to find the run again")
    raw_output: str = Field(description="Output of the instrumented transform, markers included")
    reports: list[ReportInput] = Field(default_factory=list)
    program_text: str | None = Field(
        default=None, description="Uninstrumented stylesheet, enables template suggestions"
    )


class SuggestionResponse(BaseModel):
    """A template that should produce a missing element."""

    missing_element: str
    parent_element: str
    message: str
    template_match: str | None = None
    template_line: int | None = None


class RunSummaryResponse(BaseModel):
    """Short run summary for listing."""

    run_id: str
    document: str
    recorded_at: datetime
    trace_entries: int
    issues: int
    errors: int
    warnings: int
    passed: dict[str, bool] = Field(default_factory=dict)


class RunResponse(BaseModel):
    """Full result of one run."""

    run_id: str
    document: str
    recorded_at: datetime
    clean_output: str
    document_info: DocumentInfo | None = None
    trace_entries: list[TraceEntry] = []
    issues: list[TracedIssue] = []
    passed: dict[str, bool] = Field(default_factory=dict)
    suggestions: list[SuggestionResponse] = []


class IssuesAtLineResponse(BaseModel):
    """Response for GET /sessions/{session_id}/runs/{run_id}/issues."""

    line: int | None = None
    issues: list[TracedIssue] = []
