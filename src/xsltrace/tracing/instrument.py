"""Stylesheet instrumentation: emit a trace marker before every literal element.

The instrumented stylesheet produces, ahead of each literal result element,
an XML comment of the form::

    <!--XSLT-TRACE|/abs/path/map.xsl|42|cbc:ID-->

``TraceSplitter`` later strips these comments from the output and turns
them into ``TraceEntry`` values.
"""

from __future__ import annotations

import re
from pathlib import Path
from xml.sax.saxutils import escape

DEFAULT_MARKER_PREFIX = "XSLT-TRACE"
MARKER_DELIMITER = "|"

XSLT_NAMESPACE = "http://www.w3.org/1999/XSL/Transform"

_XSLT_PREFIX_RE = re.compile(
    r"""xmlns:([A-Za-z_][A-Za-z0-9_.-]*)\s*=\s*["']""" + re.escape(XSLT_NAMESPACE) + r"""["']"""
)


class InstrumentationError(Exception):
    """Raised when a marker field cannot be encoded unambiguously."""


def encode_marker_text(
    program_file: str,
    line: int,
    element_name: str,
    prefix: str = DEFAULT_MARKER_PREFIX,
) -> str:
    """Return the comment body ``PREFIX|file|line|qname``."""
    for label, value in (("program path", program_file), ("element name", element_name)):
        if MARKER_DELIMITER in value:
            raise InstrumentationError(
                f"Cannot encode trace marker: {label} {value!r} contains '{MARKER_DELIMITER}'"
            )
    return MARKER_DELIMITER.join((prefix, program_file, str(line), element_name))


def detect_xslt_prefix(content: str) -> str:
    """Return the namespace prefix bound to XSLT, ``xsl`` if none is declared."""
    match = _XSLT_PREFIX_RE.search(content)
    return match.group(1) if match else "xsl"


class StylesheetInstrumentor:
    """Injects ``<xsl:comment>`` trace markers into an XSLT stylesheet.

    Only lines inside ``xsl:template`` and ``xsl:function`` bodies are
    considered; a line counts as literal output when it opens an element
    outside the XSLT namespace.
    This is pattern matching, not parsing, so malformed stylesheets are
    still instrumented on a best-effort basis.
    """

    def __init__(self, marker_prefix: str = DEFAULT_MARKER_PREFIX) -> None:
        self._marker_prefix = marker_prefix

    def instrument(self, program_path: Path) -> str:
        """Read ``program_path`` and return the instrumented stylesheet text."""
        content = program_path.read_text(encoding="utf-8")
        return self.instrument_text(content, str(program_path.absolute()))

    def instrument_text(self, content: str, program_file: str) -> str:
        """Instrument stylesheet ``content``; ``program_file`` goes into each marker."""
        xsl = detect_xslt_prefix(content)
        xsl_re = re.escape(xsl)
        body_open = re.compile(rf"<{xsl_re}:(?:template|function)\b")
        body_self_closed = re.compile(rf"<{xsl_re}:(?:template|function)\b[^>]*/>")
        body_close = re.compile(rf"</{xsl_re}:(?:template|function)\s*>")
        literal_element = re.compile(
            rf"^(\s*)<(?!{xsl_re}:|/|!|\?)([A-Za-z_][\w.-]*(?::[A-Za-z_][\w.-]*)?)(?=[\s>/]|$)"
        )

        lines = re.split(r"\r?\n", content)
        result: list[str] = []
        body_depth = 0
        in_comment = False

        for index, line in enumerate(lines):
            if in_comment:
                result.append(line)
                if "-->" in line:
                    in_comment = False
                continue

            if body_open.search(line) and not body_self_closed.search(line):
                body_depth += 1
            if body_close.search(line):
                body_depth = max(body_depth - 1, 0)

            if body_depth > 0:
                match = literal_element.match(line)
                if match:
                    indent, element_name = match.group(1), match.group(2)
                    marker = encode_marker_text(
                        program_file, index + 1, element_name, self._marker_prefix
                    )
                    result.append(f"{indent}<{xsl}:comment>{escape(marker)}</{xsl}:comment>")

            comment_start = line.rfind("<!--")
            if comment_start != -1 and "-->" not in line[comment_start:]:
                in_comment = True

            result.append(line)

        return "\n".join(result)
