from pathlib import Path

import pytest

from facturx_schema_docs.compiler import SchemaCompilationError
from facturx_schema_docs.discovery import ConfigurationError
from facturx_schema_docs.xsd_parser import ParserConfig, XSDParser, parse_xsd

FIXTURE = Path(__file__).resolve().parent / "fixtures" / "schema" / "invoice.xsd"

ROOT = "/rsm:CrossIndustryInvoice"

UNRESOLVED_TYPE_SCHEMA = """<?xml version="1.0" encoding="UTF-8"?>
<xs:schema xmlns:xs="http://www.w3.org/2001/XMLSchema"
           xmlns:t="urn:test:unresolved"
           targetNamespace="urn:test:unresolved"
           elementFormDefault="qualified">
  <xs:element name="Report" type="t:MissingType"/>
  <xs:element name="Note" type="xs:string"/>
</xs:schema>
"""


def _find(node, xpath):
    if node.xpath == xpath:
        return node
    for child in node.children:
        match = _find(child, xpath)
        if match is not None:
            return match
    return None


def _root(roots, name):
    return next(root for root in roots if root.name == name)


def _names(node):
    return [child.name for child in node.children]


@pytest.fixture(scope="module")
def roots():
    return parse_xsd(FIXTURE)


def test_global_elements_become_roots(roots):
    assert {root.name for root in roots} == {"rsm:CrossIndustryInvoice", "ram:Attachment"}
    invoice = _root(roots, "rsm:CrossIndustryInvoice")
    assert invoice.xpath == ROOT
    assert invoice.type_name == "rsm:CrossIndustryInvoiceType"
    assert invoice.cardinality == "1..1"


def test_children_follow_declaration_order_with_positions(roots):
    invoice = _root(roots, "rsm:CrossIndustryInvoice")

    assert [child.xpath for child in invoice.children] == [
        f"{ROOT}/rsm:IncludedNote[1]",
        f"{ROOT}/rsm:ExchangedDocument",
        f"{ROOT}/rsm:IncludedNote[2]",
        f"{ROOT}/rsm:ApplicableHeaderTradeAgreement",
        f"{ROOT}/rsm:ApplicableHeaderTradeSettlement",
    ]
    note = invoice.children[0]
    assert note.cardinality == "0..1"
    assert note.type_name == "ram:NoteType"
    assert _names(note) == ["ram:Content", "ram:SubjectCode"]
    assert _names(invoice.children[2]) == ["ram:Content", "ram:SubjectCode"]


def test_leaf_types_and_cardinalities(roots):
    invoice = _root(roots, "rsm:CrossIndustryInvoice")

    doc_id = _find(invoice, f"{ROOT}/rsm:ExchangedDocument/ram:ID")
    assert doc_id.type_name == "udt:IDType"
    assert doc_id.cardinality == "1..1"
    assert doc_id.children == []

    notes = _find(invoice, f"{ROOT}/rsm:ExchangedDocument/ram:IncludedNote")
    assert notes.cardinality == "0..*"
    assert _names(notes) == ["ram:Content", "ram:SubjectCode"]


def test_recursive_type_is_truncated_per_branch(roots):
    agreement = f"{ROOT}/rsm:ApplicableHeaderTradeAgreement"
    invoice = _root(roots, "rsm:CrossIndustryInvoice")

    for party in ("ram:SellerTradeParty", "ram:BuyerTradeParty"):
        node = _find(invoice, f"{agreement}/{party}")
        assert node.type_name == "ram:TradePartyType"
        assert _names(node) == [
            "ram:ID",
            "ram:Name",
            "ram:PhoneNumber",
            "ram:EmailAddress",
            "ram:AgentTradeParty",
        ]
        assert node.children[0].cardinality == "0..*"
        agent = node.children[-1]
        assert agent.type_name == "ram:TradePartyType"
        assert agent.children == []


def test_choice_alternatives_are_listed(roots):
    agreement = _find(
        _root(roots, "rsm:CrossIndustryInvoice"), f"{ROOT}/rsm:ApplicableHeaderTradeAgreement"
    )

    assert _names(agreement)[2:] == ["ram:BuyerReference", "ram:BuyerOrderReference"]


def test_all_compositor_and_simple_types(roots):
    settlement = _find(
        _root(roots, "rsm:CrossIndustryInvoice"), f"{ROOT}/rsm:ApplicableHeaderTradeSettlement"
    )

    assert _names(settlement) == ["ram:InvoiceCurrencyCode", "ram:GrandTotalAmount"]
    assert settlement.children[1].type_name == "udt:AmountType"
    assert settlement.children[1].cardinality == "0..1"


def test_element_reference_with_anonymous_recursive_type(roots):
    invoice = _root(roots, "rsm:CrossIndustryInvoice")
    attachment = _find(invoice, f"{ROOT}/rsm:ExchangedDocument/ram:Attachment")

    assert attachment.cardinality == "0..*"
    assert attachment.type_name == ""
    assert _names(attachment) == ["ram:FileName", "ram:Attachment"]
    assert attachment.children[1].children == []

    global_attachment = _root(roots, "ram:Attachment")
    assert global_attachment.xpath == "/ram:Attachment"
    assert _names(global_attachment) == ["ram:FileName", "ram:Attachment"]


def test_xpaths_are_unique_within_each_root(roots):
    for root in roots:
        paths = [node.xpath for node in root.iter_nodes()]
        assert len(paths) == len(set(paths))
        assert all(path.startswith(root.xpath) for path in paths)


def test_parser_exposes_intermediate_results():
    parser = XSDParser([str(FIXTURE)], config=ParserConfig(validation="strict"))

    assert {path.name for path in parser.schema_files} == {
        "invoice.xsd",
        "aggregates.xsd",
        "datatypes.xsd",
    }
    assert parser.prefixes["urn:test:facturx:ram"] == "ram"

    compiled = parser.compile()
    assert compiled is parser.compile()
    assert compiled.errors == []
    assert "{urn:test:facturx:ram}TradePartyType" in compiled.types
    assert "{urn:test:facturx:ram}ContactGroup" in compiled.groups


def test_parse_is_deterministic():
    first = [node.xpath for root in parse_xsd(FIXTURE) for node in root.iter_nodes()]
    second = [node.xpath for root in parse_xsd(FIXTURE) for node in root.iter_nodes()]

    assert first == second


def test_broken_schema_yields_partial_result(tmp_path):
    broken = tmp_path / "broken.xsd"
    broken.write_text("<xs:schema this is not xml", encoding="utf-8")

    assert parse_xsd([broken]) == []


def test_missing_entry_yields_empty_forest(tmp_path):
    assert parse_xsd([tmp_path / "missing.xsd"]) == []


def test_no_entry_path_raises():
    with pytest.raises(ConfigurationError):
        parse_xsd([])


def test_lax_mode_keeps_declared_type_name_when_unresolved(tmp_path):
    schema = tmp_path / "unresolved.xsd"
    schema.write_text(UNRESOLVED_TYPE_SCHEMA, encoding="utf-8")

    roots = {root.name: root for root in parse_xsd([schema])}

    report = roots["t:Report"]
    assert report.type_name == "t:MissingType"
    assert report.children == []
    assert roots["t:Note"].type_name == "xs:string"


def test_strict_mode_raises_on_schema_errors(tmp_path):
    schema = tmp_path / "unresolved.xsd"
    schema.write_text(UNRESOLVED_TYPE_SCHEMA, encoding="utf-8")

    with pytest.raises(SchemaCompilationError):
        parse_xsd([schema], config=ParserConfig(validation="strict"))
