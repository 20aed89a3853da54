"""Parse xmllint schema-validation stderr into validation issues."""

from __future__ import annotations

import re

from xsltrace.models.issues import IssueSource, Severity, ValidationIssue

# file.xml:12: element Foo: Schemas validity error : Element '{ns}Foo': ...
# file.xml:3: parser error : Opening and ending tag mismatch: ...
_DETAILED_RE = re.compile(
    r":(\d+):\s*(.*?)(?:Schemas validity error\s*:\s*|parser error\s*:\s*)(.*)"
)
# Any other "file.xml:12: ... error ..." line.
_SIMPLE_RE = re.compile(r":(\d+):\s*(.*error.*)", re.IGNORECASE)

_SUMMARY_MARKER = "fails to validate"


def parse_xmllint_errors(stderr: str) -> list[ValidationIssue]:
    """Return one XSD issue per recognised xmllint error line.

    The trailing ``<file> fails to validate`` summary is not an issue and is
    dropped.
    """
    issues: list[ValidationIssue] = []
    for raw_line in stderr.splitlines():
        match = _DETAILED_RE.search(raw_line)
        if match:
            line_no, message = int(match.group(1)), match.group(3).strip()
        else:
            match = _SIMPLE_RE.search(raw_line)
            if not match:
                continue
            line_no, message = int(match.group(1)), match.group(2).strip()

        if _SUMMARY_MARKER in message:
            continue
        issues.append(
            ValidationIssue(
                line=max(line_no, 1),
                column=0,
                message=message,
                severity=Severity.ERROR,
                source=IssueSource.XSD,
            )
        )
    return issues
