"""Tests for template analysis and missing-element suggestions."""

from __future__ import annotations

from tests.conftest import SAMPLE_STYLESHEET
from xsltrace.models.issues import IssueSource, ValidationIssue
from xsltrace.parser.rule_targets import RuleTargetTable
from xsltrace.tracing.analyzer import (
    analyze_templates,
    extract_missing_element,
    suggest_missing_elements,
)

CAC = "urn:oasis:names:specification:ubl:schema:xsd:CommonAggregateComponents-2"


def _issue(message: str) -> ValidationIssue:
    return ValidationIssue(line=5, message=message, source=IssueSource.XSD)


class TestAnalyzeTemplates:
    def test_sample_stylesheet(self) -> None:
        templates = analyze_templates(SAMPLE_STYLESHEET)
        assert [(t.match_pattern, t.line, t.end_line) for t in templates] == [
            ("/", 6, 12),
            ("supplier", 13, 19),
        ]
        assert templates[0].produced_elements == ["ID"]
        assert templates[1].produced_elements == ["AccountingSupplierParty", "Party", "EndpointID"]

    def test_named_and_self_closed_templates_ignored(self) -> None:
        content = "\n".join(
            [
                '<xsl:template name="helper">',
                "  <cbc:Note/>",
                "</xsl:template>",
                '<xsl:template match="empty"/>',
                '<xsl:template match="line">',
                '  <xsl:element name="cbc:LineID"/>',
                "</xsl:template>",
            ]
        )
        [template] = analyze_templates(content)
        assert template.match_pattern == "line"
        assert (template.line, template.end_line) == (5, 7)
        assert template.produced_elements == ["LineID"]

    def test_unterminated_template_dropped(self) -> None:
        assert analyze_templates('<xsl:template match="a">\n  <cbc:ID/>') == []


class TestExtractMissingElement:
    def test_xsd_missing_child(self) -> None:
        message = (
            f"Element '{{{CAC}}}Party': Missing child element(s). "
            f"Expected is ( {{{CAC}}}PartyName )."
        )
        assert extract_missing_element(message) == "PartyName"

    def test_xsd_not_expected(self) -> None:
        message = f"Element '{{{CAC}}}Delivery': This element is not expected."
        assert extract_missing_element(message) == "Delivery"

    def test_schematron_rule_translated_through_table(self) -> None:
        assert extract_missing_element("[BR-06]-Seller name is mandatory") == "RegistrationName"
        table = RuleTargetTable({"BR-06": ("SellerName",)})
        assert extract_missing_element("[BR-06]-Seller name is mandatory", table) == "SellerName"

    def test_schematron_unknown_rule(self) -> None:
        assert extract_missing_element("[XX-99]-Something must exist") is None

    def test_generic_missing(self) -> None:
        assert extract_missing_element("Mandatory element is missing: cbc:BuyerReference") == (
            "BuyerReference"
        )

    def test_not_a_missing_element_message(self) -> None:
        assert extract_missing_element("Value must be positive") is None


class TestSuggestMissingElements:
    def test_points_at_template_producing_parent(self) -> None:
        message = (
            f"Element '{{{CAC}}}Party': Missing child element(s). "
            f"Expected is ( {{{CAC}}}PartyName )."
        )
        issue = _issue(message)
        [suggestion] = suggest_missing_elements([issue], analyze_templates(SAMPLE_STYLESHEET))
        assert suggestion.missing_element == "PartyName"
        assert suggestion.parent_element == "Party"
        assert suggestion.issue is issue
        assert suggestion.suggested_template is not None
        assert suggestion.suggested_template.match_pattern == "supplier"

    def test_parent_from_rule_table(self) -> None:
        [suggestion] = suggest_missing_elements(
            [_issue("[BR-06]-Seller name is mandatory")], analyze_templates(SAMPLE_STYLESHEET)
        )
        assert suggestion.missing_element == "RegistrationName"
        assert suggestion.parent_element == "PartyLegalEntity"
        assert suggestion.suggested_template is None

    def test_unknown_parent(self) -> None:
        [suggestion] = suggest_missing_elements(
            [_issue("Mandatory element is missing: cbc:BuyerReference")], []
        )
        assert suggestion.parent_element == "unknown"
        assert suggestion.suggested_template is None

    def test_match_pattern_fallback(self) -> None:
        message = (
            f"Element '{{{CAC}}}supplier': Missing child element(s). "
            f"Expected is ( {{{CAC}}}Contact )."
        )
        [suggestion] = suggest_missing_elements(
            [_issue(message)], analyze_templates(SAMPLE_STYLESHEET)
        )
        assert suggestion.suggested_template is not None
        assert suggestion.suggested_template.line == 13

    def test_other_issues_skipped(self) -> None:
        assert suggest_missing_elements([_issue("Value must be positive")], []) == []
