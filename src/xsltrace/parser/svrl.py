"""SVRL report parsing: failed assertions and flagged reports → validation issues."""

from __future__ import annotations

import html
import logging
import re
from collections.abc import Sequence

from xsltrace.models.issues import IssueSource, Severity, ValidationIssue, ViolationRecord
from xsltrace.parser.xpath import LocationResolver, split_lines

logger = logging.getLogger("xsltrace.parser")

_DEFAULT_MAX_REPORT_SIZE = 20_000_000  # characters

_BLOCK_KINDS = ("failed-assert", "successful-report")

_SEVERITY_BY_FLAG: dict[str, Severity] = {
    "fatal": Severity.ERROR,
    "error": Severity.ERROR,
    "warning": Severity.WARNING,
    "information": Severity.INFORMATION,
    "info": Severity.INFORMATION,
}

_ATTR_RE = re.compile(r"""(?:^|\s)(id|flag|location)\s*=\s*(?:"([^"]*)"|'([^']*)')""")
_TEXT_RE = re.compile(
    r"<(?P<prefix>(?:[A-Za-z0-9_.-]+:)?)text\b[^>]*>(?P<body>[\s\S]*?)</(?P=prefix)text\s*>"
)
_TAG_RE = re.compile(r"<[^>]+>")
_WS_RE = re.compile(r"\s+")


def _block_pattern(kind: str) -> re.Pattern[str]:
    # The closing tag must repeat whatever prefix the opening tag used.
    return re.compile(
        rf"<(?P<prefix>(?:[A-Za-z0-9_.-]+:)?){kind}\b(?P<attrs>[^>]*?)(?<!/)>"
        rf"(?P<body>[\s\S]*?)</(?P=prefix){kind}\s*>"
    )


_BLOCK_PATTERNS = {kind: _block_pattern(kind) for kind in _BLOCK_KINDS}


class ReportSafetyError(Exception):
    """Raised when a validation report exceeds the configured size limit."""


def map_severity(flag: str) -> Severity:
    """Map a free-text SVRL ``flag`` to a severity.

    Unknown flags map to ``Severity.ERROR`` so they are never silently
    downgraded.
    """
    return _SEVERITY_BY_FLAG.get(flag.strip().lower(), Severity.ERROR)


def _clean_text(body: str) -> str:
    text = _TAG_RE.sub("", body)
    text = html.unescape(text)
    return _WS_RE.sub(" ", text).strip()


class SvrlParser:
    """Extracts violation records from SVRL text and positions them.

    Parsing is regex based and tolerant of partial reports: a block that
    cannot be understood is dropped, the rest are still returned.
    """

    def __init__(
        self,
        resolver: LocationResolver | None = None,
        max_report_size: int = _DEFAULT_MAX_REPORT_SIZE,
    ) -> None:
        self._resolver = resolver or LocationResolver()
        self._max_report_size = max_report_size

    def parse(self, report: str) -> list[ViolationRecord]:
        """Return one record per failed-assert, then per successful-report."""
        if len(report) > self._max_report_size:
            raise ReportSafetyError(
                f"Validation report exceeds maximum size "
                f"({len(report):,} chars > {self._max_report_size:,} limit)"
            )

        records: list[ViolationRecord] = []
        for kind in _BLOCK_KINDS:
            for match in _BLOCK_PATTERNS[kind].finditer(report):
                record = self._parse_block(match.group("attrs"), match.group("body"))
                if record is None:
                    logger.debug(
                        "Dropping %s block without text at offset %d", kind, match.start()
                    )
                    continue
                records.append(record)
        return records

    @staticmethod
    def _parse_block(attrs: str, body: str) -> ViolationRecord | None:
        text_match = _TEXT_RE.search(body)
        if text_match is None:
            return None

        values: dict[str, str] = {}
        for m in _ATTR_RE.finditer(attrs):
            raw = m.group(2) if m.group(2) is not None else m.group(3)
            values[m.group(1)] = html.unescape(raw)

        return ViolationRecord(
            rule_id=values.get("id") or None,
            severity_flag=values.get("flag", "error"),
            location_path=values.get("location", ""),
            message_text=_clean_text(text_match.group("body")),
        )

    def to_issues(
        self,
        records: Sequence[ViolationRecord],
        source_lines: Sequence[str],
        source: IssueSource,
    ) -> list[ValidationIssue]:
        """Resolve each record's location against ``source_lines``."""
        issues: list[ValidationIssue] = []
        for record in records:
            line = self._resolver.resolve(record.location_path, source_lines)
            prefix = f"[{record.rule_id}] " if record.rule_id else ""
            issues.append(
                ValidationIssue(
                    line=line,
                    column=0,
                    message=f"{prefix}{record.message_text}",
                    severity=map_severity(record.severity_flag),
                    rule_id=record.rule_id,
                    source=source,
                )
            )
        return issues

    def parse_issues(
        self, report: str, source_content: str, source: IssueSource
    ) -> list[ValidationIssue]:
        """Parse ``report`` and position every record in ``source_content``."""
        records = self.parse(report)
        logger.debug("Parsed %d SVRL records for %s", len(records), source)
        return self.to_issues(records, split_lines(source_content), source)
