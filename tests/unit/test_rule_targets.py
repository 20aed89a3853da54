"""Tests for the rule ID → target element table and its YAML overrides."""

from __future__ import annotations

from pathlib import Path

import pytest

from xsltrace.parser.rule_targets import DEFAULT_RULE_TARGETS, RuleTableError, RuleTargetTable


class TestDefaults:
    def test_builtin_targets(self) -> None:
        table = RuleTargetTable()
        assert table.targets_for("BR-05") == ["DocumentCurrencyCode"]
        assert table.targets_for("BR-04") == ["InvoiceTypeCode", "CreditNoteTypeCode"]
        assert len(table) == len(DEFAULT_RULE_TARGETS)

    def test_unknown_or_missing_rule(self) -> None:
        table = RuleTargetTable()
        assert table.targets_for("XX-99") == []
        assert table.targets_for(None) == []
        assert table.targets_for("") == []

    def test_mapping_interface(self) -> None:
        table = RuleTargetTable({"R-1": ("A",)})
        assert dict(table) == {"R-1": ("A",)}
        assert "R-1" in table

    def test_merged_returns_new_table(self) -> None:
        table = RuleTargetTable()
        merged = table.merged({"BR-05": ("Other",)})
        assert merged.targets_for("BR-05") == ["Other"]
        assert table.targets_for("BR-05") == ["DocumentCurrencyCode"]


class TestYamlOverrides:
    def test_list_and_scalar_values(self) -> None:
        table = RuleTargetTable.load_string(
            "BR-05: [DocumentCurrencyCode, TaxCurrencyCode]\nBR-CO-26: BuyerReference\n"
        )
        assert table.targets_for("BR-05") == ["DocumentCurrencyCode", "TaxCurrencyCode"]
        assert table.targets_for("BR-CO-26") == ["BuyerReference"]
        # Defaults survive
        assert table.targets_for("BR-01") == ["CustomizationID"]

    def test_block_sequence(self) -> None:
        table = RuleTargetTable.load_string("BR-06:\n  - RegistrationName\n  - PartyLegalEntity\n")
        assert table.targets_for("BR-06") == ["RegistrationName", "PartyLegalEntity"]

    def test_custom_base(self) -> None:
        base = RuleTargetTable({})
        table = RuleTargetTable.load_string("R-1: A\n", base=base)
        assert dict(table) == {"R-1": ("A",)}

    def test_empty_document_keeps_base(self) -> None:
        assert dict(RuleTargetTable.load_string("")) == dict(RuleTargetTable())

    def test_not_a_mapping(self) -> None:
        with pytest.raises(RuleTableError, match="must be a mapping"):
            RuleTargetTable.load_string("- BR-01\n- BR-02\n")

    def test_bad_value_reports_line(self) -> None:
        with pytest.raises(RuleTableError) as exc_info:
            RuleTargetTable.load_string("BR-01: [CustomizationID]\nBR-02: {nested: map}\n")
        assert exc_info.value.line == 2
        assert "BR-02" in str(exc_info.value)

    def test_invalid_element_name(self) -> None:
        with pytest.raises(RuleTableError, match="invalid element name"):
            RuleTargetTable.load_string("BR-01: ['1bad name']\n")

    def test_anchors_rejected(self) -> None:
        with pytest.raises(RuleTableError, match="anchors"):
            RuleTargetTable.load_string("BR-01: &names [A]\nBR-02: *names\n")

    def test_malformed_yaml(self) -> None:
        with pytest.raises(RuleTableError, match="Invalid rule table YAML"):
            RuleTargetTable.load_string("BR-01: [unclosed\nBR-02: x\n")

    def test_oversized(self) -> None:
        with pytest.raises(RuleTableError, match="maximum size"):
            RuleTargetTable.load_string("#" * 1_000_001)

    def test_load_from_file(self, tmp_path: Path) -> None:
        path = tmp_path / "rules.yaml"
        path.write_text("PEPPOL-EN16931-R020: EndpointID\n", encoding="utf-8")
        table = RuleTargetTable.load(path)
        assert table.targets_for("PEPPOL-EN16931-R020") == ["EndpointID"]

    def test_load_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(OSError):
            RuleTargetTable.load(tmp_path / "absent.yaml")
