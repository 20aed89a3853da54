"""Shared test fixtures for xsltrace."""

from __future__ import annotations

import pytest

from xsltrace.parser.svrl import SvrlParser
from xsltrace.parser.xpath import LocationResolver
from xsltrace.service.session_manager import SessionManager
from xsltrace.service.trace_store import TraceStore
from xsltrace.tracing.heuristics import ElementNameExtractor
from xsltrace.tracing.instrument import StylesheetInstrumentor
from xsltrace.tracing.mapper import ViolationMapper
from xsltrace.tracing.pipeline import TracingPipeline
from xsltrace.tracing.splitter import TraceSplitter

PROGRAM_FILE = "/work/map.xsl"

UBL_NAMESPACES = (
    'xmlns="urn:oasis:names:specification:ubl:schema:xsd:Invoice-2" '
    'xmlns:cac="urn:oasis:names:specification:ubl:schema:xsd:CommonAggregateComponents-2" '
    'xmlns:cbc="urn:oasis:names:specification:ubl:schema:xsd:CommonBasicComponents-2"'
)

# Literal result elements on lines 7, 8, 14, 15 and 16.
SAMPLE_STYLESHEET = """\
<?xml version="1.0" encoding="UTF-8"?>
<xsl:stylesheet version="2.0"
    xmlns:xsl="http://www.w3.org/1999/XSL/Transform"
    xmlns:cbc="urn:oasis:names:specification:ubl:schema:xsd:CommonBasicComponents-2"
    xmlns:cac="urn:oasis:names:specification:ubl:schema:xsd:CommonAggregateComponents-2">
  <xsl:template match="/">
    <Invoice xmlns="urn:oasis:names:specification:ubl:schema:xsd:Invoice-2">
      <cbc:ID><xsl:value-of select="/order/number"/></cbc:ID>
      <!-- supplier -->
      <xsl:apply-templates select="/order/supplier"/>
    </Invoice>
  </xsl:template>
  <xsl:template match="supplier">
    <cac:AccountingSupplierParty>
      <cac:Party>
        <cbc:EndpointID><xsl:value-of select="@gln"/></cbc:EndpointID>
      </cac:Party>
    </cac:AccountingSupplierParty>
  </xsl:template>
</xsl:stylesheet>"""

# What running the instrumented SAMPLE_STYLESHEET produces.
SAMPLE_RAW_OUTPUT = f"""\
<?xml version="1.0" encoding="UTF-8"?>
<!--XSLT-TRACE|{PROGRAM_FILE}|7|Invoice-->
<Invoice {UBL_NAMESPACES}>
   <!--XSLT-TRACE|{PROGRAM_FILE}|8|cbc:ID-->
   <cbc:ID>INV-1</cbc:ID>
   <!--XSLT-TRACE|{PROGRAM_FILE}|14|cac:AccountingSupplierParty-->
   <cac:AccountingSupplierParty>
      <!--XSLT-TRACE|{PROGRAM_FILE}|15|cac:Party-->
      <cac:Party>
         <!--XSLT-TRACE|{PROGRAM_FILE}|16|cbc:EndpointID-->
         <cbc:EndpointID/>
      </cac:Party>
   </cac:AccountingSupplierParty>
</Invoice>"""

# SAMPLE_RAW_OUTPUT with the markers removed.
SAMPLE_CLEAN_OUTPUT = f"""\
<?xml version="1.0" encoding="UTF-8"?>
<Invoice {UBL_NAMESPACES}>
   <cbc:ID>INV-1</cbc:ID>
   <cac:AccountingSupplierParty>
      <cac:Party>
         <cbc:EndpointID/>
      </cac:Party>
   </cac:AccountingSupplierParty>
</Invoice>"""

_NS_INVOICE = "[namespace-uri()='urn:oasis:names:specification:ubl:schema:xsd:Invoice-2']"
_NS_CAC = (
    "[namespace-uri()='urn:oasis:names:specification:ubl:schema:xsd:CommonAggregateComponents-2']"
)
_NS_CBC = "[namespace-uri()='urn:oasis:names:specification:ubl:schema:xsd:CommonBasicComponents-2']"

ENDPOINT_LOCATION = (
    f"/*:Invoice{_NS_INVOICE}[1]/*:AccountingSupplierParty{_NS_CAC}[1]"
    f"/*:Party{_NS_CAC}[1]/*:EndpointID{_NS_CBC}[1]"
)

SAMPLE_SVRL = f"""\
<?xml version="1.0" encoding="UTF-8"?>
<svrl:schematron-output xmlns:svrl="http://purl.oclc.org/dsdl/svrl" title="Rules for Peppol BIS 3.0">
  <svrl:active-pattern documents="file:/tmp/out.xml" id="UBL-model"/>
  <svrl:fired-rule context="cac:AccountingSupplierParty/cac:Party/cbc:EndpointID"/>
  <svrl:failed-assert id="PEPPOL-EN16931-R020" flag="fatal"
      location="{ENDPOINT_LOCATION}">
    <svrl:text>Seller electronic address MUST be provided</svrl:text>
  </svrl:failed-assert>
  <svrl:successful-report id="PEPPOL-EN16931-R100" flag="warning" location="/*:Invoice[1]/*:ID[1]">
    <svrl:text>Note should be &lt;short&gt;</svrl:text>
  </svrl:successful-report>
  <svrl:failed-assert id="BR-05" flag="fatal" location="/*:Invoice[1]">
    <svrl:text>[BR-05]-An Invoice shall have an Invoice currency code (BT-5).</svrl:text>
  </svrl:failed-assert>
</svrl:schematron-output>"""

SAMPLE_XMLLINT_STDERR = """\
/tmp/out.xml:6: element EndpointID: Schemas validity error : Element \
'{urn:oasis:names:specification:ubl:schema:xsd:CommonBasicComponents-2}EndpointID': \
[facet 'minLength'] The value has a length of '0'; this underruns the allowed minimum length of '1'.
/tmp/out.xml fails to validate"""


@pytest.fixture
def resolver() -> LocationResolver:
    return LocationResolver()


@pytest.fixture
def svrl_parser() -> SvrlParser:
    return SvrlParser()


@pytest.fixture
def instrumentor() -> StylesheetInstrumentor:
    return StylesheetInstrumentor()


@pytest.fixture
def splitter() -> TraceSplitter:
    return TraceSplitter()


@pytest.fixture
def extractor() -> ElementNameExtractor:
    return ElementNameExtractor()


@pytest.fixture
def mapper() -> ViolationMapper:
    return ViolationMapper()


@pytest.fixture
def pipeline() -> TracingPipeline:
    return TracingPipeline()


@pytest.fixture
def trace_store() -> TraceStore:
    return TraceStore()


@pytest.fixture
def session_manager() -> SessionManager:
    """SessionManager with long TTL and no cleanup thread (for tests)."""
    return SessionManager(ttl_seconds=3600, cleanup_interval=9999)
