"""Stylesheet instrumentation and validation-issue tracing for xsltrace."""

from xsltrace.tracing.instrument import InstrumentationError, StylesheetInstrumentor
from xsltrace.tracing.mapper import ViolationMapper, nearest_preceding
from xsltrace.tracing.pipeline import (
    PipelineResult,
    ReportKind,
    TracingPipeline,
    ValidatorReport,
)
from xsltrace.tracing.splitter import SplitResult, TraceSplitter

__all__ = [
    "InstrumentationError",
    "PipelineResult",
    "ReportKind",
    "SplitResult",
    "StylesheetInstrumentor",
    "TraceSplitter",
    "TracingPipeline",
    "ValidatorReport",
    "ViolationMapper",
    "nearest_preceding",
]
