"""Rule ID → target element table, with optional YAML overrides.

Schematron rules that are evaluated at the document root report the root as
their location, which is useless for localisation.  The table names the
elements such a rule is actually about, most specific first.
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import Any

from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap
from ruamel.yaml.error import MarkedYAMLError, YAMLError

_MAX_DOCUMENT_SIZE = 1_000_000  # 1M characters
_MAX_DEPTH = 5

# Rule tables never need anchors; any "&name" token is rejected.
_ANCHOR_RE = re.compile(r"(?:^|[\s\-:])&(\w+)", re.MULTILINE)
_ELEMENT_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_.-]*$")

DEFAULT_RULE_TARGETS: dict[str, tuple[str, ...]] = {
    # EN16931 BR rules (root-level)
    "BR-01": ("CustomizationID",),
    "BR-02": ("ID",),
    "BR-03": ("IssueDate",),
    "BR-04": ("InvoiceTypeCode", "CreditNoteTypeCode"),
    "BR-05": ("DocumentCurrencyCode",),
    "BR-06": ("RegistrationName", "PartyLegalEntity", "AccountingSupplierParty"),
    "BR-07": ("RegistrationName", "PartyLegalEntity", "AccountingCustomerParty"),
    "BR-08": ("PostalAddress", "AccountingSupplierParty"),
    "BR-09": ("AddressLine", "PostalAddress", "AccountingSupplierParty"),
    "BR-10": ("PostalAddress", "AccountingCustomerParty"),
    "BR-11": ("IdentificationCode", "Country", "PostalAddress"),
    "BR-12": ("LineExtensionAmount", "LegalMonetaryTotal"),
    "BR-13": ("TaxExclusiveAmount", "LegalMonetaryTotal"),
    "BR-14": ("TaxInclusiveAmount", "LegalMonetaryTotal"),
    "BR-15": ("PayableAmount", "LegalMonetaryTotal"),
    "BR-16": ("InvoiceLine", "CreditNoteLine"),
    "BR-17": ("PayableRoundingAmount", "LegalMonetaryTotal"),
    "BR-51": ("PrimaryAccountNumberID", "CardAccount"),
    "BR-52": ("ID", "AdditionalDocumentReference"),
    "BR-53": ("TaxCurrencyCode", "TaxAmount", "TaxTotal"),
    "BR-55": ("EndpointID", "AccountingSupplierParty"),
    "BR-56": ("CompanyID", "PartyTaxScheme", "AccountingSupplierParty"),
    "BR-57": ("IdentificationCode", "Country", "DeliveryLocation"),
    "BR-61": ("PaymentMeansCode", "PaymentMeans"),
    "BR-62": ("EndpointID", "AccountingSupplierParty"),
    "BR-63": ("EndpointID", "AccountingCustomerParty"),
    "BR-64": ("LineExtensionAmount", "InvoiceLine"),
    "BR-65": ("TaxableAmount", "TaxSubtotal", "TaxTotal"),
    "BR-66": ("CardAccount", "PaymentMeans"),
    "BR-67": ("PaymentMandate", "PaymentMeans"),
    "BR-CO-03": ("TaxPointDate", "InvoicePeriod"),
    "BR-CO-04": ("PayableAmount", "LegalMonetaryTotal"),
    "BR-CO-10": ("LineExtensionAmount", "LegalMonetaryTotal"),
    "BR-CO-11": ("AllowanceTotalAmount", "LegalMonetaryTotal"),
    "BR-CO-12": ("ChargeTotalAmount", "LegalMonetaryTotal"),
    "BR-CO-13": ("TaxExclusiveAmount", "LegalMonetaryTotal"),
    "BR-CO-15": ("TaxInclusiveAmount", "LegalMonetaryTotal"),
    "BR-CO-16": ("PayableAmount", "LegalMonetaryTotal"),
    "BR-CO-18": ("TaxSubtotal", "TaxTotal"),
    "BR-CO-25": ("PaymentDueDate", "PaymentTerms"),
    "BR-CO-26": ("PrepaidAmount", "LegalMonetaryTotal"),
    "BR-DEC-09": ("LineExtensionAmount", "LegalMonetaryTotal"),
    "BR-DEC-10": ("AllowanceTotalAmount", "LegalMonetaryTotal"),
    "BR-DEC-11": ("ChargeTotalAmount", "LegalMonetaryTotal"),
    "BR-DEC-12": ("TaxExclusiveAmount", "LegalMonetaryTotal"),
    "BR-DEC-13": ("TaxAmount", "TaxTotal"),
    "BR-DEC-14": ("TaxInclusiveAmount", "LegalMonetaryTotal"),
    "BR-DEC-15": ("TaxAmount", "TaxTotal"),
    "BR-DEC-16": ("PrepaidAmount", "LegalMonetaryTotal"),
    "BR-DEC-17": ("PayableRoundingAmount", "LegalMonetaryTotal"),
    "BR-DEC-18": ("PayableAmount", "LegalMonetaryTotal"),
    # Peppol root-level rules
    "PEPPOL-EN16931-R001": ("CustomizationID",),
    "PEPPOL-EN16931-R002": ("ProfileID",),
    "PEPPOL-EN16931-R004": ("TaxAmount", "TaxTotal"),
    "PEPPOL-EN16931-R006": ("TaxAmount", "TaxTotal"),
    "PEPPOL-EN16931-R007": ("TaxCurrencyCode",),
    "PEPPOL-EN16931-R008": ("DocumentCurrencyCode",),
    "PEPPOL-EN16931-R010": ("EndpointID", "AccountingCustomerParty"),
    "PEPPOL-EN16931-R020": ("EndpointID", "AccountingSupplierParty"),
    "PEPPOL-EN16931-R053": ("OrderReference",),
    "PEPPOL-EN16931-R054": ("InvoicePeriod",),
    "PEPPOL-EN16931-R055": ("AccountingCustomerParty",),
    "PEPPOL-EN16931-R061": ("PaymentMeansCode", "PaymentMeans"),
    "PEPPOL-EN16931-R080": ("TaxSubtotal", "TaxTotal"),
    "PEPPOL-EN16931-R100": ("Note",),
    "PEPPOL-EN16931-R101": ("Note",),
}


class RuleTableError(Exception):
    """Raised when a rule-target override file is unsafe or malformed."""

    def __init__(self, message: str, line: int | None = None) -> None:
        self.line = line
        location = f" (line {line})" if line is not None else ""
        super().__init__(f"{message}{location}")


class RuleTargetTable(Mapping[str, tuple[str, ...]]):
    """Read-only mapping of rule IDs to target element names."""

    def __init__(self, targets: Mapping[str, tuple[str, ...]] | None = None) -> None:
        self._targets: dict[str, tuple[str, ...]] = dict(
            DEFAULT_RULE_TARGETS if targets is None else targets
        )

    def __getitem__(self, rule_id: str) -> tuple[str, ...]:
        return self._targets[rule_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._targets)

    def __len__(self) -> int:
        return len(self._targets)

    def targets_for(self, rule_id: str | None) -> list[str]:
        if not rule_id:
            return []
        return list(self._targets.get(rule_id, ()))

    def merged(self, overrides: Mapping[str, tuple[str, ...]]) -> RuleTargetTable:
        """Return a new table with ``overrides`` replacing matching rule IDs."""
        combined = dict(self._targets)
        combined.update(overrides)
        return RuleTargetTable(combined)

    # -- YAML loading --------------------------------------------------------

    @classmethod
    def load(cls, path: Path, base: RuleTargetTable | None = None) -> RuleTargetTable:
        """Load a YAML override file and merge it over ``base`` (defaults)."""
        with path.open("r", encoding="utf-8") as handle:
            content = handle.read()
        return cls.load_string(content, base=base)

    @classmethod
    def load_string(cls, content: str, base: RuleTargetTable | None = None) -> RuleTargetTable:
        """Parse YAML of the form ``BR-XX: [ElementA, ElementB]``."""
        if len(content) > _MAX_DOCUMENT_SIZE:
            raise RuleTableError(
                f"Rule table exceeds maximum size "
                f"({len(content):,} chars > {_MAX_DOCUMENT_SIZE:,} limit)"
            )
        if _ANCHOR_RE.search(content):
            raise RuleTableError("YAML anchors/aliases are not supported in rule tables")

        yaml = YAML()
        yaml.max_depth = _MAX_DEPTH
        try:
            data = yaml.load(content)
        except MarkedYAMLError as exc:
            line = exc.problem_mark.line + 1 if exc.problem_mark else None
            raise RuleTableError(f"Invalid rule table YAML: {exc.problem}", line) from exc
        except YAMLError as exc:
            raise RuleTableError(f"Invalid rule table YAML: {exc}") from exc
        base_table = base if base is not None else cls()
        if data is None:
            return base_table
        if not isinstance(data, CommentedMap):
            raise RuleTableError("Rule table must be a mapping of rule IDs to element lists")
        return base_table.merged(_overrides_from(data))


def _key_line(data: CommentedMap, key: Any) -> int | None:
    try:
        line, _col = data.lc.key(key)
    except (AttributeError, KeyError, TypeError):
        return None
    return line + 1


def _overrides_from(data: CommentedMap) -> dict[str, tuple[str, ...]]:
    overrides: dict[str, tuple[str, ...]] = {}
    for key, value in data.items():
        line = _key_line(data, key)
        if isinstance(value, str):
            names = [value]
        elif isinstance(value, list):
            names = list(value)
        else:
            raise RuleTableError(
                f"Rule '{key}': expected an element name or a list of element names", line
            )
        for name in names:
            if not isinstance(name, str) or not _ELEMENT_NAME_RE.match(name):
                raise RuleTableError(f"Rule '{key}': invalid element name {name!r}", line)
        overrides[str(key)] = tuple(names)
    return overrides
