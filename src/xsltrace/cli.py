"""Command-line interface: ``xsltrace instrument | split | trace | serve``."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from xsltrace import __version__
from xsltrace.models.issues import IssueSource
from xsltrace.parser.rule_targets import RuleTableError
from xsltrace.parser.svrl import ReportSafetyError
from xsltrace.service.trace_store import build_pipeline
from xsltrace.settings import Settings
from xsltrace.tracing.instrument import InstrumentationError, StylesheetInstrumentor
from xsltrace.tracing.pipeline import PipelineResult, ReportKind, ValidatorReport
from xsltrace.tracing.splitter import TraceSplitter

logger = logging.getLogger("xsltrace.cli")


def _svrl_report(value: str) -> tuple[IssueSource, Path]:
    """Parse ``SOURCE=FILE`` for ``--svrl``."""
    source, sep, path = value.partition("=")
    if not sep or not path:
        raise argparse.ArgumentTypeError(f"expected SOURCE=FILE, got '{value}'")
    try:
        return IssueSource(source.strip().lower()), Path(path)
    except ValueError:
        choices = ", ".join(s.value for s in IssueSource)
        raise argparse.ArgumentTypeError(
            f"unknown source '{source}' (choose from {choices})"
        ) from None


def _write(text: str, output: Path | None) -> None:
    if output is None:
        sys.stdout.write(text)
        if not text.endswith("\n"):
            sys.stdout.write("\n")
    else:
        output.write_text(text, encoding="utf-8")
        logger.info("Wrote %s", output)


def _result_payload(result: PipelineResult) -> dict[str, Any]:
    return {
        "document_info": (
            result.document_info.model_dump(mode="json") if result.document_info else None
        ),
        "passed": {str(k): v for k, v in result.passed.items()},
        "trace_entries": len(result.trace_entries),
        "issues": [i.model_dump(mode="json") for i in result.traced_issues],
        "suggestions": [
            {
                "missing_element": s.missing_element,
                "parent_element": s.parent_element,
                "message": s.issue.message,
                "template_match": s.suggested_template.match_pattern
                if s.suggested_template
                else None,
                "template_line": s.suggested_template.line if s.suggested_template else None,
            }
            for s in result.suggestions
        ],
    }


# -- commands ----------------------------------------------------------------


def cmd_instrument(args: argparse.Namespace, settings: Settings) -> int:
    instrumentor = StylesheetInstrumentor(settings.trace_marker_prefix)
    _write(instrumentor.instrument(args.program), args.output)
    return 0


def cmd_split(args: argparse.Namespace, settings: Settings) -> int:
    raw = args.raw.read_text(encoding="utf-8")
    split = TraceSplitter(settings.trace_marker_prefix).split(raw)
    _write(split.clean_output, args.output)
    if args.trace is not None:
        entries = [e.model_dump(mode="json") for e in split.trace_entries]
        args.trace.write_text(json.dumps(entries, indent=2), encoding="utf-8")
        logger.info("Wrote %d trace entries to %s", len(entries), args.trace)
    return 0


def cmd_trace(args: argparse.Namespace, settings: Settings) -> int:
    """Print the traced issues as JSON; exit 1 when any validator reported an error."""
    raw = args.raw.read_text(encoding="utf-8")
    reports = [
        ValidatorReport(
            source=source, kind=ReportKind.SVRL, content=path.read_text(encoding="utf-8")
        )
        for source, path in args.svrl
    ]
    if args.xmllint is not None:
        reports.append(
            ValidatorReport(
                source=IssueSource.XSD,
                kind=ReportKind.XMLLINT,
                content=args.xmllint.read_text(encoding="utf-8"),
            )
        )
    program_text = args.program.read_text(encoding="utf-8") if args.program else None

    result = build_pipeline(settings).run(raw, reports, program_text)
    sys.stdout.write(json.dumps(_result_payload(result), indent=2) + "\n")
    return 0 if all(result.passed.values()) else 1


def cmd_serve(args: argparse.Namespace, settings: Settings) -> int:
    from xsltrace.api.app import main as serve_main

    serve_main()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="xsltrace",
        description="Trace validation errors in XSLT output back to the producing stylesheet line.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--marker-prefix", help="Trace marker sentinel (default from settings)")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("instrument", help="Insert trace markers into a stylesheet")
    p.add_argument("program", type=Path, help="XSLT stylesheet")
    p.add_argument("-o", "--output", type=Path, help="Write the instrumented stylesheet here")
    p.set_defaults(func=cmd_instrument)

    p = sub.add_parser("split", help="Separate trace markers from instrumented output")
    p.add_argument("raw", type=Path, help="Output of the instrumented transform")
    p.add_argument("-o", "--output", type=Path, help="Write the clean output here")
    p.add_argument("--trace", type=Path, help="Write trace entries as JSON here")
    p.set_defaults(func=cmd_split)

    p = sub.add_parser("trace", help="Map validator findings to stylesheet lines")
    p.add_argument("raw", type=Path, help="Output of the instrumented transform")
    p.add_argument(
        "--svrl",
        type=_svrl_report,
        action="append",
        default=[],
        metavar="SOURCE=FILE",
        help="Schematron SVRL report (SOURCE: en16931, peppol); repeatable",
    )
    p.add_argument("--xmllint", type=Path, help="Captured xmllint --schema stderr")
    p.add_argument("--program", type=Path, help="Original stylesheet, enables template suggestions")
    p.set_defaults(func=cmd_trace)

    p = sub.add_parser("serve", help="Run the REST API server")
    p.set_defaults(func=cmd_serve)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = Settings()
    if args.marker_prefix:
        settings = settings.model_copy(update={"trace_marker_prefix": args.marker_prefix})

    logging.basicConfig(level=settings.log_level.upper())
    try:
        return args.func(args, settings)
    except (OSError, InstrumentationError, ReportSafetyError, RuleTableError) as exc:
        logger.error("%s", exc)
        return 2


if __name__ == "__main__":
    sys.exit(main())
