"""Template analysis and "missing element" suggestions.

A missing mandatory element never appears in the output, so it has no trace
entry.  Instead, the template producing its parent element is reported as
the place where the element should be added.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass, field

from xsltrace.models.issues import ValidationIssue
from xsltrace.parser.rule_targets import RuleTargetTable
from xsltrace.parser.xpath import split_lines
from xsltrace.tracing.instrument import detect_xslt_prefix

_UBL_ELEMENT_RE = re.compile(r"<(?:cac|cbc|ubl|ext):([A-Za-z][A-Za-z0-9]*)")

_MISSING_ELEMENT_PATTERNS: tuple[re.Pattern[str], ...] = (
    # XSD: "Element '{ns}Foo': Missing child element(s). Expected is ( {ns}Bar )."
    re.compile(r"Missing child element\(s\).*?Expected.*?\{[^}]*\}(\w+)", re.I),
    # XSD: "Element '{ns}Foo': This element is not expected."
    re.compile(r"element.*?'(?:\{[^}]*\})?(\w+)'.*?is not expected", re.I),
    # Schematron: "[BR-XX] ... must exist / is mandatory" (captures the rule ID)
    re.compile(
        r"\[([A-Z][A-Z0-9]*(?:-[A-Z0-9]+)+)\].*?(?:must exist|is mandatory|shall exist)", re.I
    ),
    # Generic "missing ... cbc:Foo"
    re.compile(r"missing.*?(?:element|cbc:|cac:)\s*['\"]?(\w+)", re.I),
)

_PARENT_ELEMENT_RE = re.compile(r"Element '(?:\{[^}]*\})?(\w+)'")
_RULE_ID_RE = re.compile(r"^[A-Z][A-Z0-9]*(?:-[A-Z0-9]+)+$")
_RULE_REF_RE = re.compile(r"\[([A-Z][A-Z0-9]*(?:-[A-Z0-9]+)+)\]")


@dataclass
class TemplateInfo:
    """An ``xsl:template match=...`` and the UBL elements its body produces."""

    match_pattern: str
    line: int
    end_line: int
    produced_elements: list[str] = field(default_factory=list)


@dataclass
class MissingElementSuggestion:
    missing_element: str
    parent_element: str
    issue: ValidationIssue
    suggested_template: TemplateInfo | None = None


def _produced_elements(body: Sequence[str], xsl: str) -> list[str]:
    text = "\n".join(body)
    names = _UBL_ELEMENT_RE.findall(text)
    xsl_element = re.compile(
        rf"<{re.escape(xsl)}:element\s+name=\"(?:(?:cac|cbc|ubl|ext):)?([A-Za-z][A-Za-z0-9]*)\""
    )
    names.extend(xsl_element.findall(text))
    return list(dict.fromkeys(names))


def analyze_templates(content: str) -> list[TemplateInfo]:
    """Return every match-template with its 1-indexed line span."""
    prefix = detect_xslt_prefix(content)
    xsl = re.escape(prefix)
    open_re = re.compile(rf"^\s*<{xsl}:template\b[^>]*\bmatch=\"([^\"]*)\"[^>]*>")
    any_open_re = re.compile(rf"<{xsl}:template\b[^>]*(?<!/)>")
    close_re = re.compile(rf"</{xsl}:template\s*>")

    templates: list[TemplateInfo] = []
    current: str | None = None
    start_line = 0
    depth = 0
    body: list[str] = []

    for index, line in enumerate(split_lines(content)):
        if current is None:
            m = open_re.match(line)
            if m and not m.group(0).endswith("/>"):
                current, start_line, depth, body = m.group(1), index + 1, 1, []
            continue

        if any_open_re.search(line):
            depth += 1
        if close_re.search(line):
            depth -= 1
            if depth == 0:
                templates.append(
                    TemplateInfo(
                        match_pattern=current,
                        line=start_line,
                        end_line=index + 1,
                        produced_elements=_produced_elements(body, prefix),
                    )
                )
                current = None
                continue
        body.append(line)

    return templates


def extract_missing_element(
    message: str, rule_targets: RuleTargetTable | None = None
) -> str | None:
    """Name of the element a "missing element" message is about, if any.

    Schematron messages only carry a rule ID; it is translated through
    ``rule_targets`` (most specific target first).
    """
    table = rule_targets if rule_targets is not None else RuleTargetTable()
    for pattern in _MISSING_ELEMENT_PATTERNS:
        m = pattern.search(message)
        if not (m and m.group(1)):
            continue
        name = m.group(1)
        if _RULE_ID_RE.match(name):
            targets = table.targets_for(name)
            if not targets:
                continue
            return targets[0]
        return name
    return None


def _parent_element(
    message: str, missing: str, rule_targets: RuleTargetTable | None = None
) -> str:
    m = _PARENT_ELEMENT_RE.search(message)
    if m:
        return m.group(1)
    # For a table-resolved rule the next target is the enclosing element.
    table = rule_targets if rule_targets is not None else RuleTargetTable()
    for rule_id in _RULE_REF_RE.findall(message):
        targets = table.targets_for(rule_id)
        if missing in targets[:-1]:
            return targets[targets.index(missing) + 1]
    return ""


def _responsible_template(
    parent: str, missing: str, templates: Sequence[TemplateInfo]
) -> TemplateInfo | None:
    if not parent:
        return None
    for template in templates:
        if parent in template.produced_elements and missing not in template.produced_elements:
            return template
    for template in templates:
        if parent in template.match_pattern:
            return template
    return None


def suggest_missing_elements(
    issues: Sequence[ValidationIssue],
    templates: Sequence[TemplateInfo],
    rule_targets: RuleTargetTable | None = None,
) -> list[MissingElementSuggestion]:
    """Suggest a template for every issue that reports a missing element."""
    suggestions: list[MissingElementSuggestion] = []
    for issue in issues:
        missing = extract_missing_element(issue.message, rule_targets)
        if missing is None:
            continue
        parent = _parent_element(issue.message, missing, rule_targets)
        suggestions.append(
            MissingElementSuggestion(
                missing_element=missing,
                parent_element=parent or "unknown",
                issue=issue,
                suggested_template=_responsible_template(parent, missing, templates),
            )
        )
    return suggestions
