"""Stateless endpoints: POST /instrument and POST /resolve."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from xsltrace.api.deps import get_settings
from xsltrace.api.schemas import (
    InstrumentRequest,
    InstrumentResponse,
    ResolveRequest,
    ResolveResponse,
)
from xsltrace.parser.xpath import LocationResolver
from xsltrace.settings import Settings
from xsltrace.tracing.instrument import InstrumentationError, StylesheetInstrumentor

router = APIRouter()

_resolver = LocationResolver()


@router.post("/instrument", response_model=InstrumentResponse)
async def instrument(
    body: InstrumentRequest,
    settings: Settings = Depends(get_settings),  # noqa: B008
) -> InstrumentResponse:
    """Insert trace markers before every literal output element of a stylesheet."""
    instrumentor = StylesheetInstrumentor(settings.trace_marker_prefix)
    try:
        instrumented = instrumentor.instrument_text(body.content, body.program_file)
    except InstrumentationError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from None
    marker_count = instrumented.count(f"{settings.trace_marker_prefix}|")
    return InstrumentResponse(instrumented=instrumented, marker_count=marker_count)


@router.post("/resolve", response_model=ResolveResponse)
async def resolve(body: ResolveRequest) -> ResolveResponse:
    """Resolve a location path to a 1-indexed line of the given document."""
    line = _resolver.resolve_in_text(body.location, body.content, fallback=body.fallback)
    return ResolveResponse(line=line)
