"""Split instrumented transform output into clean output + trace entries."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from xsltrace.models.trace import TraceEntry
from xsltrace.tracing.instrument import DEFAULT_MARKER_PREFIX


@dataclass
class SplitResult:
    """Clean output text and the trace entries recovered from its markers."""

    clean_output: str
    trace_entries: list[TraceEntry] = field(default_factory=list)

    @property
    def clean_lines(self) -> list[str]:
        return self.clean_output.split("\n")


class TraceSplitter:
    """Separates trace markers from real output.

    Never raises on truncated or partial output: whatever text is passed in
    is processed line by line.
    """

    def __init__(self, marker_prefix: str = DEFAULT_MARKER_PREFIX) -> None:
        prefix = re.escape(marker_prefix)
        self._marker_re = re.compile(rf"<!--{prefix}\|([^|]*)\|(\d+)\|(.*?)-->")
        self._strip_re = re.compile(rf"<!--{prefix}\|.*?-->")
        # A marker cut off by truncated output (no closing "-->").
        self._dangling_re = re.compile(rf"<!--{prefix}\|(?!.*-->).*$")

    def split(self, raw: str) -> SplitResult:
        lines = re.split(r"\r?\n", raw)
        clean_lines: list[str] = []
        entries: list[TraceEntry] = []

        for position, line in enumerate(lines):
            output_line = len(clean_lines) + 1
            markers = list(self._marker_re.finditer(line))
            for m in markers:
                source_line = int(m.group(2))
                if source_line < 1:
                    continue
                entries.append(
                    TraceEntry(
                        output_line=output_line,
                        source_file=m.group(1),
                        source_line=source_line,
                        element_name=m.group(3),
                    )
                )

            cleaned = self._strip_re.sub("", line)
            had_marker = cleaned != line
            if position == len(lines) - 1:
                truncated = self._dangling_re.sub("", cleaned)
                had_marker = had_marker or truncated != cleaned
                cleaned = truncated

            # Marker-only lines vanish and do not consume an output line.
            if had_marker and not cleaned.strip():
                continue
            clean_lines.append(cleaned)

        # Markers at the very end of truncated output precede nothing.
        entries = [e for e in entries if e.output_line <= len(clean_lines)]
        return SplitResult(clean_output="\n".join(clean_lines), trace_entries=entries)
