"""Map validation issues to output lines and the stylesheet lines producing them."""

from __future__ import annotations

import logging
import re
from bisect import bisect_right
from collections.abc import Sequence

from xsltrace.models.issues import TracedIssue, ValidationIssue
from xsltrace.models.trace import TraceEntry
from xsltrace.parser.xpath import split_lines
from xsltrace.tracing.heuristics import ElementNameExtractor

logger = logging.getLogger("xsltrace.tracing")

# Lines 1-2 hold the XML declaration and the root element: where issues
# land when their location could not be resolved.
DEGENERATE_LINE_LIMIT = 2


def sort_trace_entries(entries: Sequence[TraceEntry]) -> list[TraceEntry]:
    """Stable sort by output line; entries sharing a line keep recording order."""
    return sorted(entries, key=lambda e: e.output_line)


def nearest_preceding(sorted_entries: Sequence[TraceEntry], line: int) -> TraceEntry | None:
    """Entry with the largest ``output_line <= line``; ties go to the last one."""
    index = bisect_right([e.output_line for e in sorted_entries], line)
    return sorted_entries[index - 1] if index > 0 else None


def find_element_line(element_name: str, output_lines: Sequence[str]) -> int | None:
    """1-indexed line of the first tag opening ``element_name`` (any prefix)."""
    pattern = re.compile(rf"<(?:[A-Za-z0-9_-]+:)?{re.escape(element_name)}(?=[\s>/]|$)")
    for index, line in enumerate(output_lines):
        if pattern.search(line):
            return index + 1
    return None


def _with_trace(
    issue: TracedIssue, entry: TraceEntry | None, line: int | None = None
) -> TracedIssue:
    update: dict[str, object] = {}
    if line is not None:
        update["line"] = line
    if entry is not None:
        update.update(
            producing_file=entry.source_file,
            producing_line=entry.source_line,
            producing_element=entry.element_name,
        )
    return issue.model_copy(update=update) if update else issue


class ViolationMapper:
    """Correlates validation issues with trace entries.

    For every issue the element it is about is guessed from its message and
    rule ID; a trace entry producing that element is preferred, then the
    element's first occurrence in the clean output, then the issue's own
    line.  The producing stylesheet position comes from the matched trace
    entry or from the nearest entry preceding the chosen line.
    """

    def __init__(self, extractor: ElementNameExtractor | None = None) -> None:
        self._extractor = extractor or ElementNameExtractor()

    def map_issues(
        self,
        issues: Sequence[ValidationIssue],
        trace_entries: Sequence[TraceEntry],
        output_content: str | None = None,
    ) -> list[TracedIssue]:
        if not trace_entries and not output_content:
            return [TracedIssue.from_issue(issue) for issue in issues]

        sorted_entries = sort_trace_entries(trace_entries)
        output_lines = split_lines(output_content) if output_content else []
        return [self.map_issue(issue, sorted_entries, output_lines) for issue in issues]

    def map_issue(
        self,
        issue: ValidationIssue,
        sorted_entries: Sequence[TraceEntry],
        output_lines: Sequence[str],
    ) -> TracedIssue:
        """Map one issue; ``sorted_entries`` must be sorted by output line."""
        traced = TracedIssue.from_issue(issue)
        names = self._extractor.extract(issue.message, issue.rule_id)

        if not names:
            logger.debug("No element name in %r, keeping line %d", issue.message, issue.line)
            return self._link_nearest(traced, sorted_entries)

        for name in names:
            for entry in sorted_entries:
                if entry.local_name == name:
                    return _with_trace(traced, entry, line=entry.output_line)

        for name in names:
            line = find_element_line(name, output_lines)
            if line is not None:
                return _with_trace(traced, nearest_preceding(sorted_entries, line), line=line)

        return self._link_nearest(traced, sorted_entries)

    @staticmethod
    def _link_nearest(traced: TracedIssue, sorted_entries: Sequence[TraceEntry]) -> TracedIssue:
        if traced.line <= DEGENERATE_LINE_LIMIT:
            return traced
        return _with_trace(traced, nearest_preceding(sorted_entries, traced.line))
