"""Resolve SVRL location paths to line numbers in a line-oriented XML buffer.

Resolution is pattern based rather than a real XML parse so that it keeps
working on truncated or non-well-formed output.  Each step of the path is
searched for inside the extent of the element matched by the previous step,
which is what disambiguates repeated element names (e.g. one ``Item/Name``
per ``InvoiceLine``).
"""

from __future__ import annotations

import html
import re
from collections.abc import Sequence
from dataclasses import dataclass
from functools import lru_cache

from xsltrace.models.location import LocationSegment

# ``[namespace-uri()='urn:...']`` predicates emitted by Saxon-generated SVRL.
# Removed before splitting: http namespace URIs contain '/'.
_NS_PREDICATE_RE = re.compile(r"\[\s*namespace-uri\(\)\s*=\s*(?:'[^']*'|\"[^\"]*\")\s*\]")

# XPath 3 EQName qualifier ``Q{urn:...}`` emitted by SchXslt and XSLT 3 Schematron.
_EQNAME_RE = re.compile(r"Q\{[^}]*\}")

# One location step: optional prefix (``cac:``, ``*:``), local name, optional [N].
_STEP_RE = re.compile(
    r"^(?:[A-Za-z0-9_.*-]+:)?(?P<name>[A-Za-z_][A-Za-z0-9_.-]*)(?:\[(?P<index>\d+)\])?"
)

_PREFIX = r"(?:[A-Za-z0-9_.-]+:)?"


@dataclass(frozen=True)
class ElementRange:
    """0-indexed inclusive line range covered by one element."""

    start_line: int
    end_line: int


@dataclass(frozen=True)
class _TagPatterns:
    open: re.Pattern[str]
    self_close: re.Pattern[str]
    close: re.Pattern[str]


@lru_cache(maxsize=256)
def _patterns(element_name: str) -> _TagPatterns:
    name = re.escape(element_name)
    return _TagPatterns(
        open=re.compile(rf"<{_PREFIX}{name}(?=[\s/>]|$)"),
        self_close=re.compile(rf"<{_PREFIX}{name}(?=[\s/>])[^>]*/>"),
        close=re.compile(rf"</{_PREFIX}{name}\s*>"),
    )


def parse_location_path(path: str) -> list[LocationSegment]:
    """Split a location path into element steps.

    Accepts ``/*:Invoice[1]/*:AccountingSupplierParty[1]``,
    ``/Invoice/cac:Party[2]``, Saxon's ``namespace-uri()`` predicate form and
    ``/Q{urn:...}Invoice[1]`` EQNames.  Attribute steps and node tests (``@currencyID``, ``text()``) carry no
    element and are skipped.
    """
    if not path:
        return []
    cleaned = _EQNAME_RE.sub("", _NS_PREDICATE_RE.sub("", html.unescape(path)))
    segments: list[LocationSegment] = []
    for step in cleaned.split("/"):
        step = step.strip()
        if not step or step.startswith("@") or "(" in step:
            continue
        m = _STEP_RE.match(step)
        if m is None:
            continue
        index = int(m.group("index")) if m.group("index") else 1
        segments.append(
            LocationSegment(element_name=m.group("name"), occurrence_index=max(index, 1))
        )
    return segments


def _depth_delta(line: str, patterns: _TagPatterns) -> int:
    """Net change in nesting depth of one element name across a line."""
    opens = len(patterns.open.findall(line)) - len(patterns.self_close.findall(line))
    return opens - len(patterns.close.findall(line))


def find_element_range(
    element_name: str,
    occurrence: int,
    lines: Sequence[str],
    search_start: int,
    search_end: int,
) -> ElementRange | None:
    """Find the extent of the Nth line opening ``element_name`` in a window.

    ``search_start``/``search_end`` are 0-indexed and inclusive.  The closing
    line is located by depth counting over same-named opens and closes, so
    nested elements of the same name are skipped.  If no closing tag is found
    the range extends to ``search_end``.
    """
    patterns = _patterns(element_name)
    last = min(search_end, len(lines) - 1)
    count = 0

    for i in range(max(search_start, 0), last + 1):
        line = lines[i]
        if not patterns.open.search(line):
            continue
        count += 1
        if count != occurrence:
            continue

        depth = _depth_delta(line, patterns)
        if depth <= 0:
            # Self-closing, or opened and closed on the same line.
            return ElementRange(start_line=i, end_line=i)

        for j in range(i + 1, last + 1):
            depth += _depth_delta(lines[j], patterns)
            if depth <= 0:
                return ElementRange(start_line=i, end_line=j)

        return ElementRange(start_line=i, end_line=last)

    return None


class LocationResolver:
    """Resolves a location path to a 1-indexed line of a source buffer.

    This is the only interface callers depend on; a stricter XML-aware
    resolver can be substituted as long as it keeps ``resolve`` total.
    """

    def resolve(self, path: str, lines: Sequence[str], fallback: int = 1) -> int:
        """Return the line of the deepest path step that could be located.

        Never raises.  Returns ``fallback`` when not even the first step is
        found (or the path is empty).
        """
        segments = parse_location_path(path)
        if not segments or not lines:
            return fallback

        range_start = 0
        range_end = len(lines) - 1
        last_found: int | None = None

        for segment in segments:
            found = find_element_range(
                segment.element_name,
                segment.occurrence_index,
                lines,
                range_start,
                range_end,
            )
            if found is None:
                break
            last_found = found.start_line
            # Children live between this element's open and close lines.
            range_start = found.start_line + 1
            range_end = found.end_line

        if last_found is None:
            return fallback
        return last_found + 1

    def resolve_in_text(self, path: str, content: str, fallback: int = 1) -> int:
        """Convenience wrapper splitting ``content`` into lines first."""
        return self.resolve(path, split_lines(content), fallback=fallback)


def split_lines(content: str) -> list[str]:
    """Split text on ``\\n`` / ``\\r\\n`` line endings."""
    return re.split(r"\r?\n", content)
