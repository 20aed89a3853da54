"""Session-scoped endpoints for tracing runs and jump-to-cause lookups."""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, Query

from xsltrace.api.deps import get_session_manager, is_session_list_disabled
from xsltrace.api.schemas import (
    IssuesAtLineResponse,
    RunCreateRequest,
    RunResponse,
    RunSummaryResponse,
    SessionCreateRequest,
    SessionListResponse,
    SessionResponse,
    SuggestionResponse,
)
from xsltrace.parser.svrl import ReportSafetyError
from xsltrace.service.session_manager import SessionInfo, SessionManager, SessionNotFoundError
from xsltrace.service.trace_store import RunNotFoundError, RunRecord, RunSummary, TraceStore
from xsltrace.tracing.pipeline import ValidatorReport

router = APIRouter()


# -- helpers -----------------------------------------------------------------


def _get_store(session_id: str, mgr: SessionManager) -> TraceStore:
    """Resolve session_id to TraceStore, raise 404 if missing/expired."""
    try:
        return mgr.get_store(session_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail=f"Session '{session_id}' not found") from None


def _get_run(store: TraceStore, run_id: str) -> RunRecord:
    try:
        return store.get_run(run_id)
    except RunNotFoundError:
        raise HTTPException(status_code=404, detail=f"Run '{run_id}' not found") from None


def _session_response(info: SessionInfo) -> SessionResponse:
    """Convert a SessionInfo dataclass to a Pydantic response."""
    return SessionResponse(**asdict(info))


def _summary_response(summary: RunSummary) -> RunSummaryResponse:
    return RunSummaryResponse(
        run_id=summary.run_id,
        document=summary.document,
        recorded_at=summary.recorded_at,
        trace_entries=summary.trace_entries,
        issues=summary.issues,
        errors=summary.errors,
        warnings=summary.warnings,
        passed={str(k): v for k, v in summary.passed.items()},
    )


def _run_response(record: RunRecord) -> RunResponse:
    result = record.result
    return RunResponse(
        run_id=record.run_id,
        document=record.document,
        recorded_at=record.recorded_at,
        clean_output=result.clean_output,
        document_info=result.document_info,
        trace_entries=result.trace_entries,
        issues=result.traced_issues,
        passed={str(k): v for k, v in result.passed.items()},
        suggestions=[
            SuggestionResponse(
                missing_element=s.missing_element,
                parent_element=s.parent_element,
                message=s.issue.message,
                template_match=s.suggested_template.match_pattern if s.suggested_template else None,
                template_line=s.suggested_template.line if s.suggested_template else None,
            )
            for s in result.suggestions
        ],
    )


# -- session CRUD ------------------------------------------------------------


@router.post("", response_model=SessionResponse, status_code=201)
async def create_session(
    body: SessionCreateRequest | None = None,
    mgr: SessionManager = Depends(get_session_manager),  # noqa: B008
) -> SessionResponse:
    """Create a new session."""
    metadata = body.metadata if body else {}
    info = mgr.create_session(metadata=metadata)
    return _session_response(info)


@router.get("", response_model=SessionListResponse)
async def list_sessions(
    mgr: SessionManager = Depends(get_session_manager),  # noqa: B008
) -> SessionListResponse:
    """List all active sessions."""
    if is_session_list_disabled():
        raise HTTPException(status_code=403, detail="Session listing is disabled")
    sessions = mgr.list_sessions()
    return SessionListResponse(sessions=[_session_response(s) for s in sessions])


@router.get("/{session_id}", response_model=SessionResponse)
async def get_session(
    session_id: str,
    mgr: SessionManager = Depends(get_session_manager),  # noqa: B008
) -> SessionResponse:
    """Get info for a specific session."""
    try:
        info = mgr.get_session(session_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail=f"Session '{session_id}' not found") from None
    return _session_response(info)


@router.delete("/{session_id}", status_code=204)
async def close_session(
    session_id: str,
    mgr: SessionManager = Depends(get_session_manager),  # noqa: B008
) -> None:
    """Close a session and release its runs."""
    try:
        mgr.close_session(session_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail=f"Session '{session_id}' not found") from None


# -- runs --------------------------------------------------------------------


@router.post("/{session_id}/runs", response_model=RunResponse, status_code=201)
async def create_run(
    session_id: str,
    body: RunCreateRequest,
    mgr: SessionManager = Depends(get_session_manager),  # noqa: B008
) -> RunResponse:
    """Trace a transform's output and its validator reports, and store the result."""
    store = _get_store(session_id, mgr)
    reports = [
        ValidatorReport(source=r.source, kind=r.kind, content=r.content) for r in body.reports
    ]
    try:
        record = store.trace(body.document, body.raw_output, reports, body.program_text)
    except ReportSafetyError as exc:
        raise HTTPException(status_code=413, detail=str(exc)) from None
    return _run_response(record)


@router.get("/{session_id}/runs", response_model=list[RunSummaryResponse])
async def list_runs(
    session_id: str,
    mgr: SessionManager = Depends(get_session_manager),  # noqa: B008
) -> list[RunSummaryResponse]:
    """List all runs recorded in a session."""
    store = _get_store(session_id, mgr)
    return [_summary_response(s) for s in store.list_runs()]


@router.get("/{session_id}/latest", response_model=RunResponse)
async def latest_run(
    session_id: str,
    document: str = Query(min_length=1),  # noqa: B008
    mgr: SessionManager = Depends(get_session_manager),  # noqa: B008
) -> RunResponse:
    """Return the most recent run recorded for a document."""
    store = _get_store(session_id, mgr)
    record = store.latest_run(document)
    if record is None:
        raise HTTPException(status_code=404, detail=f"No run recorded for '{document}'")
    return _run_response(record)


@router.get("/{session_id}/runs/{run_id}", response_model=RunResponse)
async def get_run(
    session_id: str,
    run_id: str,
    mgr: SessionManager = Depends(get_session_manager),  # noqa: B008
) -> RunResponse:
    """Return the full result of a run."""
    store = _get_store(session_id, mgr)
    return _run_response(_get_run(store, run_id))


@router.get("/{session_id}/runs/{run_id}/summary", response_model=RunSummaryResponse)
async def run_summary(
    session_id: str,
    run_id: str,
    mgr: SessionManager = Depends(get_session_manager),  # noqa: B008
) -> RunSummaryResponse:
    """Counts and pass/fail per validator for one run."""
    store = _get_store(session_id, mgr)
    try:
        return _summary_response(store.summary(run_id))
    except RunNotFoundError:
        raise HTTPException(status_code=404, detail=f"Run '{run_id}' not found") from None


@router.delete("/{session_id}/runs/{run_id}", status_code=204)
async def remove_run(
    session_id: str,
    run_id: str,
    mgr: SessionManager = Depends(get_session_manager),  # noqa: B008
) -> None:
    """Remove a run from a session."""
    store = _get_store(session_id, mgr)
    try:
        store.remove_run(run_id)
    except RunNotFoundError:
        raise HTTPException(status_code=404, detail=f"Run '{run_id}' not found") from None


@router.get("/{session_id}/runs/{run_id}/issues", response_model=IssuesAtLineResponse)
async def run_issues(
    session_id: str,
    run_id: str,
    line: int | None = Query(default=None, ge=1),  # noqa: B008
    mgr: SessionManager = Depends(get_session_manager),  # noqa: B008
) -> IssuesAtLineResponse:
    """Traced issues of a run, optionally only those on one output line."""
    store = _get_store(session_id, mgr)
    record = _get_run(store, run_id)
    if line is None:
        return IssuesAtLineResponse(issues=record.result.traced_issues)
    return IssuesAtLineResponse(line=line, issues=store.issue_at(run_id, line))
