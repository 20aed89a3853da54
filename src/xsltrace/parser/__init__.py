"""Validator-output parsing and location-path resolution for xsltrace."""

from xsltrace.parser.detector import detect_document
from xsltrace.parser.rule_targets import RuleTableError, RuleTargetTable
from xsltrace.parser.svrl import ReportSafetyError, SvrlParser, map_severity
from xsltrace.parser.xmllint import parse_xmllint_errors
from xsltrace.parser.xpath import LocationResolver, parse_location_path

__all__ = [
    "LocationResolver",
    "ReportSafetyError",
    "RuleTableError",
    "RuleTargetTable",
    "SvrlParser",
    "detect_document",
    "map_severity",
    "parse_location_path",
    "parse_xmllint_errors",
]
