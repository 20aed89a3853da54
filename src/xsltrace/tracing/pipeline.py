"""Orchestrates the tracing pipeline: Split → Parse → Resolve → Map.

Everything here works on text the caller already has: the raw output of
the instrumented transform and the reports produced by the validators.
No external process is started.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import StrEnum

from xsltrace.models.document import DocumentInfo
from xsltrace.models.issues import IssueSource, Severity, TracedIssue, ValidationIssue
from xsltrace.models.trace import TraceEntry
from xsltrace.parser.detector import detect_document
from xsltrace.parser.rule_targets import RuleTargetTable
from xsltrace.parser.svrl import SvrlParser
from xsltrace.parser.xmllint import parse_xmllint_errors
from xsltrace.tracing.analyzer import (
    MissingElementSuggestion,
    analyze_templates,
    suggest_missing_elements,
)
from xsltrace.tracing.heuristics import ElementNameExtractor
from xsltrace.tracing.mapper import ViolationMapper
from xsltrace.tracing.splitter import TraceSplitter

logger = logging.getLogger("xsltrace.tracing")


class ReportKind(StrEnum):
    SVRL = "svrl"
    XMLLINT = "xmllint"


@dataclass
class ValidatorReport:
    """Raw output of one external validator run against the clean output."""

    source: IssueSource
    kind: ReportKind
    content: str


@dataclass
class PipelineResult:
    """The result of tracing one transform run."""

    clean_output: str
    trace_entries: list[TraceEntry]
    document_info: DocumentInfo | None
    issues: list[ValidationIssue]
    traced_issues: list[TracedIssue]
    passed: dict[IssueSource, bool] = field(default_factory=dict)
    suggestions: list[MissingElementSuggestion] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return sum(1 for i in self.issues if i.severity == Severity.ERROR)

    @property
    def warning_count(self) -> int:
        return sum(1 for i in self.issues if i.severity == Severity.WARNING)


class TracingPipeline:
    """Orchestrates: Split → Parse reports → Resolve locations → Map to stylesheet."""

    def __init__(
        self,
        splitter: TraceSplitter | None = None,
        svrl_parser: SvrlParser | None = None,
        rule_targets: RuleTargetTable | None = None,
    ) -> None:
        self._splitter = splitter or TraceSplitter()
        self._svrl_parser = svrl_parser or SvrlParser()
        self._rule_targets = rule_targets if rule_targets is not None else RuleTargetTable()
        self._mapper = ViolationMapper(ElementNameExtractor(self._rule_targets))

    def run(
        self,
        raw_output: str,
        reports: Sequence[ValidatorReport] = (),
        program_text: str | None = None,
    ) -> PipelineResult:
        """Trace validator findings on ``raw_output`` back to the stylesheet.

        ``raw_output`` is the (possibly partial) output of the instrumented
        transform.  ``program_text`` is the uninstrumented stylesheet; when
        given, missing-element issues get a template suggestion.
        """
        # Phase 1: Split markers from real output
        split = self._splitter.split(raw_output)
        clean_lines = split.clean_lines
        logger.info(
            "Split output: %d clean lines, %d trace entries",
            len(clean_lines),
            len(split.trace_entries),
        )

        # Phase 2: Document detection (informational)
        document_info = detect_document(split.clean_output)

        # Phase 3: Parse each validator report against the clean output
        issues: list[ValidationIssue] = []
        passed: dict[IssueSource, bool] = {}
        for report in reports:
            if report.kind == ReportKind.XMLLINT:
                found = parse_xmllint_errors(report.content)
            else:
                records = self._svrl_parser.parse(report.content)
                found = self._svrl_parser.to_issues(records, clean_lines, report.source)
            issues.extend(found)
            source_passed = not any(i.severity == Severity.ERROR for i in found)
            passed[report.source] = passed.get(report.source, True) and source_passed
            logger.debug("%s report (%s): %d issues", report.source, report.kind, len(found))

        # Phase 4: Map issues to output lines and stylesheet positions
        traced = self._mapper.map_issues(issues, split.trace_entries, split.clean_output)

        # Phase 5: Missing-element suggestions (needs the stylesheet)
        suggestions: list[MissingElementSuggestion] = []
        if program_text is not None:
            suggestions = suggest_missing_elements(
                issues, analyze_templates(program_text), self._rule_targets
            )

        return PipelineResult(
            clean_output=split.clean_output,
            trace_entries=split.trace_entries,
            document_info=document_info,
            issues=issues,
            traced_issues=traced,
            passed=passed,
            suggestions=suggestions,
        )
