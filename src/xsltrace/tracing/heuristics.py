"""Element-name extraction from validator messages.

Each strategy is a pure function ``(message, rule_id) -> list[str]``.
``ElementNameExtractor`` tries them in priority order and keeps the first
non-empty result after dropping whole-document root names.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Sequence

from xsltrace.parser.rule_targets import RuleTargetTable

NameStrategy = Callable[[str, str | None], list[str]]

# Document types whose root element is never specific enough to localise an issue.
ROOT_ELEMENTS: frozenset[str] = frozenset(
    {
        "Invoice",
        "CreditNote",
        "DebitNote",
        "Order",
        "OrderResponse",
        "DespatchAdvice",
        "ReceiptAdvice",
        "Catalogue",
        "ApplicationResponse",
    }
)

_NAME = r"[A-Za-z][A-Za-z0-9_-]*"

_XSD_ELEMENT_RE = re.compile(rf"Element\s+'(?:\{{[^}}]*\}})?(?:[A-Za-z0-9_-]+:)?({_NAME})'", re.I)
# Not preceded by ":" so "urn:...:ubl:schema:..." namespace URNs do not count.
_PREFIXED_RE = re.compile(rf"(?<![\w:])(?:cbc|cac|ubl|ext):({_NAME})")
_EXPECTED_RE = re.compile(rf"Expected.*?\{{[^}}]*\}}({_NAME})")
_PATH_PHRASE_RE = re.compile(r"(?:should|shall|must) not include the (.+)", re.I)
_PATH_WORD_RE = re.compile(r"^[A-Z][a-zA-Z]{2,}$")
_PASCAL_RE = re.compile(r"\b([A-Z][a-z]+(?:[A-Z][a-z]+)+)\b")


def _unique(names: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(names))


def xsd_element_names(message: str, rule_id: str | None = None) -> list[str]:
    """``Element '{urn:...}IssueDate': This element is not expected.``"""
    match = _XSD_ELEMENT_RE.search(message)
    return [match.group(1)] if match else []


def prefixed_element_names(message: str, rule_id: str | None = None) -> list[str]:
    """``cbc:EndpointID``, ``cac:PartyTaxScheme`` mentions."""
    return _unique(_PREFIXED_RE.findall(message))


def expected_element_names(message: str, rule_id: str | None = None) -> list[str]:
    """``Expected is ( {urn:...}CustomizationID ).``"""
    return _unique(_EXPECTED_RE.findall(message))


def path_phrase_element_names(message: str, rule_id: str | None = None) -> list[str]:
    """``... should not include the AccountingSupplierParty Party PartyIdentification``.

    Read right to left so the most specific element comes first.
    """
    match = _PATH_PHRASE_RE.search(message)
    if match is None:
        return []
    words = [w.strip(".,;:()'\"") for w in match.group(1).split()]
    return _unique(reversed([w for w in words if _PATH_WORD_RE.match(w)]))


def pascal_case_names(message: str, rule_id: str | None = None) -> list[str]:
    """Last resort: any compound capitalised word, e.g. ``AccountingSupplierParty``."""
    return _unique(_PASCAL_RE.findall(message))


class ElementNameExtractor:
    """Runs an ordered list of name strategies, first useful result wins."""

    def __init__(
        self,
        rule_targets: RuleTargetTable | None = None,
        root_elements: Iterable[str] = ROOT_ELEMENTS,
    ) -> None:
        self._rule_targets = rule_targets if rule_targets is not None else RuleTargetTable()
        self._root_elements = frozenset(root_elements)
        self.strategies: list[NameStrategy] = [
            self.rule_target_names,
            xsd_element_names,
            prefixed_element_names,
            expected_element_names,
            path_phrase_element_names,
            pascal_case_names,
        ]

    def rule_target_names(self, message: str, rule_id: str | None = None) -> list[str]:
        return self._rule_targets.targets_for(rule_id)

    def extract(self, message: str, rule_id: str | None = None) -> list[str]:
        """Return candidate element names, most specific first.

        Returns an empty list when no strategy finds a non-root name.
        """
        for strategy in self.strategies:
            names = self._specific(strategy(message, rule_id))
            if names:
                return names
        return []

    def _specific(self, names: Sequence[str]) -> list[str]:
        return [n for n in _unique(names) if n not in self._root_elements]
