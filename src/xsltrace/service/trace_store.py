"""In-memory registry of tracing runs, shared by the CLI and the REST API."""

from __future__ import annotations

import threading
import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime

from xsltrace.models.issues import IssueSource, TracedIssue
from xsltrace.parser.rule_targets import RuleTargetTable
from xsltrace.parser.svrl import SvrlParser
from xsltrace.settings import Settings
from xsltrace.tracing.pipeline import PipelineResult, TracingPipeline, ValidatorReport
from xsltrace.tracing.splitter import TraceSplitter


class RunNotFoundError(KeyError):
    """Raised when a run ID is not present in the store."""


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass
class RunRecord:
    """A stored pipeline result."""

    run_id: str
    document: str
    result: PipelineResult
    recorded_at: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass
class RunSummary:
    """Short summary for listing runs."""

    run_id: str
    document: str
    recorded_at: datetime
    trace_entries: int
    issues: int
    errors: int
    warnings: int
    passed: dict[IssueSource, bool]


# ---------------------------------------------------------------------------
# TraceStore
# ---------------------------------------------------------------------------


def build_pipeline(settings: Settings | None = None) -> TracingPipeline:
    """Assemble a ``TracingPipeline`` from settings (marker, rule table, limits)."""
    settings = settings or Settings()
    rule_targets = RuleTargetTable()
    if settings.rule_targets_file is not None:
        rule_targets = RuleTargetTable.load(settings.rule_targets_file)
    return TracingPipeline(
        splitter=TraceSplitter(settings.trace_marker_prefix),
        svrl_parser=SvrlParser(max_report_size=settings.max_report_size),
        rule_targets=rule_targets,
    )


class TraceStore:
    """In-memory run registry.  Thread-safe via ``threading.Lock``.

    Runs are keyed by short UUID (8-char hex) and tagged with the name of
    the document they traced, so the latest run of a document can be found
    again for jump-to-cause lookups.
    """

    def __init__(self, pipeline: TracingPipeline | None = None) -> None:
        self._lock = threading.Lock()
        self._runs: dict[str, RunRecord] = {}
        self._pipeline = pipeline or TracingPipeline()

    # -- helpers -------------------------------------------------------------

    @staticmethod
    def _new_id() -> str:
        return uuid.uuid4().hex[:8]

    @staticmethod
    def _summary(record: RunRecord) -> RunSummary:
        result = record.result
        return RunSummary(
            run_id=record.run_id,
            document=record.document,
            recorded_at=record.recorded_at,
            trace_entries=len(result.trace_entries),
            issues=len(result.issues),
            errors=result.error_count,
            warnings=result.warning_count,
            passed=dict(result.passed),
        )

    # -- public API ----------------------------------------------------------

    def trace(
        self,
        document: str,
        raw_output: str,
        reports: Sequence[ValidatorReport] = (),
        program_text: str | None = None,
    ) -> RunRecord:
        """Run the pipeline and store its result."""
        result = self._pipeline.run(raw_output, reports, program_text)
        run_id = self.record_run(document, result)
        return self.get_run(run_id)

    def record_run(self, document: str, result: PipelineResult) -> str:
        """Store a pipeline result and return its run ID."""
        run_id = self._new_id()
        with self._lock:
            self._runs[run_id] = RunRecord(run_id=run_id, document=document, result=result)
        return run_id

    def get_run(self, run_id: str) -> RunRecord:
        """Look up a run.  Raises ``RunNotFoundError`` if not found."""
        with self._lock:
            try:
                return self._runs[run_id]
            except KeyError:
                raise RunNotFoundError(f"No run recorded with id '{run_id}'") from None

    def list_runs(self) -> list[RunSummary]:
        """Return a short summary for every stored run, oldest first."""
        with self._lock:
            records = list(self._runs.values())
        return [self._summary(r) for r in records]

    def remove_run(self, run_id: str) -> None:
        """Forget a run.  Raises ``RunNotFoundError`` if not found."""
        with self._lock:
            try:
                del self._runs[run_id]
            except KeyError:
                raise RunNotFoundError(f"No run recorded with id '{run_id}'") from None

    def latest_run(self, document: str) -> RunRecord | None:
        """Most recently recorded run for ``document``, if any."""
        with self._lock:
            for record in reversed(self._runs.values()):
                if record.document == document:
                    return record
        return None

    def issue_at(self, run_id: str, line: int) -> list[TracedIssue]:
        """Traced issues reported on output ``line`` of a run (jump-to-cause)."""
        record = self.get_run(run_id)
        return [i for i in record.result.traced_issues if i.line == line]

    def summary(self, run_id: str) -> RunSummary:
        return self._summary(self.get_run(run_id))

    def __len__(self) -> int:
        with self._lock:
            return len(self._runs)
