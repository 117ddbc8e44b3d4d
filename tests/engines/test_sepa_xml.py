"""
Tests for verein_engines.sepa_xml.

The generated pain.008.001.02 document is parsed with lxml and checked
for header totals, creditor data, per-transaction blocks and escaping.
"""

from dataclasses import replace
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest
from lxml import etree

from tests.factories import make_transaction
from verein_engines.sepa_transactions import build_sepa_batch
from verein_engines.sepa_xml import (
    PAIN_008_NAMESPACE,
    SepaXmlGenerator,
    escape_xml,
    format_amount,
    format_creation_timestamp,
)

NS = {"p": PAIN_008_NAMESPACE}
CREATED_AT = datetime(2025, 1, 5, 8, 30, 15, 123456, tzinfo=timezone.utc)


def _render(creditor, transactions, batch_number="B-2025-01", execution_date=date(2025, 1, 10)):
    batch = build_sepa_batch(batch_number, date(2025, 1, 5), execution_date, transactions)
    xml = SepaXmlGenerator(creditor).generate_xml(batch, transactions, CREATED_AT)
    return xml, etree.fromstring(xml.encode("utf-8"))


def _text(root, path):
    return root.findtext(path, namespaces=NS)


@pytest.fixture
def transactions():
    return [
        make_transaction(end_to_end_id="R-2025-0001", amount=Decimal("120.00")),
        make_transaction(
            end_to_end_id="R-2025-0002",
            amount=Decimal("10"),
            debtor_name="Max Mustermann",
            debtor_iban="de89 3704 0044 0532 0130 00",
            debtor_bic=None,
            mandate_reference="MAND-M-0043-1",
            mandate_date=date(2023, 7, 15),
        ),
    ]


class TestDocumentStructure:
    """Header, payment information and creditor blocks."""

    def test_root_namespace(self, creditor, transactions):
        _, root = _render(creditor, transactions)
        assert root.tag == f"{{{PAIN_008_NAMESPACE}}}Document"

    def test_xml_declaration(self, creditor, transactions):
        xml, _ = _render(creditor, transactions)
        assert xml.startswith('<?xml version="1.0" encoding="UTF-8"?>')

    def test_group_header(self, creditor, transactions):
        _, root = _render(creditor, transactions)
        hdr = "p:CstmrDrctDbtInitn/p:GrpHdr"
        assert _text(root, f"{hdr}/p:MsgId") == "MV-B-2025-01"
        assert _text(root, f"{hdr}/p:CreDtTm") == "2025-01-05T08:30:15.123Z"
        assert _text(root, f"{hdr}/p:NbOfTxs") == "2"
        assert _text(root, f"{hdr}/p:CtrlSum") == "130.00"
        assert _text(root, f"{hdr}/p:InitgPty/p:Nm") == "Musterverein e.V."

    def test_single_payment_information_block(self, creditor, transactions):
        _, root = _render(creditor, transactions)
        blocks = root.findall("p:CstmrDrctDbtInitn/p:PmtInf", namespaces=NS)
        assert len(blocks) == 1
        pmt = blocks[0]
        assert _text(pmt, "p:PmtInfId") == "B-2025-01"
        assert _text(pmt, "p:PmtMtd") == "DD"
        assert _text(pmt, "p:BtchBookg") == "true"
        assert _text(pmt, "p:NbOfTxs") == "2"
        assert _text(pmt, "p:CtrlSum") == "130.00"
        assert _text(pmt, "p:PmtTpInf/p:SvcLvl/p:Cd") == "SEPA"
        assert _text(pmt, "p:PmtTpInf/p:LclInstrm/p:Cd") == "CORE"
        assert _text(pmt, "p:PmtTpInf/p:SeqTp") == "RCUR"
        assert _text(pmt, "p:ReqdColltnDt") == "2025-01-10"

    def test_control_sum_matches_instructed_amounts(self, creditor):
        transactions = [
            make_transaction(end_to_end_id="R-1", amount=Decimal("10.005")),
            make_transaction(end_to_end_id="R-2", amount=Decimal("10.005")),
        ]
        _, root = _render(creditor, transactions)

        instructed = sum(
            (Decimal(node.text) for node in root.iterfind(".//p:InstdAmt", namespaces=NS)),
            Decimal("0"),
        )

        assert instructed == Decimal("20.02")
        assert Decimal(_text(root, "p:CstmrDrctDbtInitn/p:GrpHdr/p:CtrlSum")) == instructed
        assert Decimal(_text(root, "p:CstmrDrctDbtInitn/p:PmtInf/p:CtrlSum")) == instructed

    def test_creditor_details(self, creditor, transactions):
        _, root = _render(creditor, transactions)
        pmt = root.find("p:CstmrDrctDbtInitn/p:PmtInf", namespaces=NS)
        assert _text(pmt, "p:Cdtr/p:Nm") == "Musterverein e.V."
        assert _text(pmt, "p:CdtrAcct/p:Id/p:IBAN") == "DE89370400440532013000"
        assert _text(pmt, "p:CdtrAgt/p:FinInstnId/p:BIC") == "COBADEFFXXX"
        scheme = "p:CdtrSchmeId/p:Id/p:PrvtId/p:Othr"
        assert _text(pmt, f"{scheme}/p:Id") == "DE98ZZZ09999999999"
        assert _text(pmt, f"{scheme}/p:SchmeNm/p:Prtry") == "SEPA"


class TestTransactionBlocks:
    """One DrctDbtTxInf per transaction, in input order."""

    def _blocks(self, root):
        return root.findall(
            "p:CstmrDrctDbtInitn/p:PmtInf/p:DrctDbtTxInf", namespaces=NS,
        )

    def test_count_and_order(self, creditor, transactions):
        _, root = _render(creditor, transactions)
        ids = [_text(b, "p:PmtId/p:EndToEndId") for b in self._blocks(root)]
        assert ids == ["R-2025-0001", "R-2025-0002"]

    def test_amount_and_currency(self, creditor, transactions):
        _, root = _render(creditor, transactions)
        amounts = [b.find("p:InstdAmt", namespaces=NS) for b in self._blocks(root)]
        assert [a.text for a in amounts] == ["120.00", "10.00"]
        assert all(a.get("Ccy") == "EUR" for a in amounts)

    def test_mandate_and_debtor(self, creditor, transactions):
        _, root = _render(creditor, transactions)
        second = self._blocks(root)[1]
        assert _text(second, "p:DrctDbtTx/p:MndtRltdInf/p:MndtId") == "MAND-M-0043-1"
        assert _text(second, "p:DrctDbtTx/p:MndtRltdInf/p:DtOfSgntr") == "2023-07-15"
        assert _text(second, "p:Dbtr/p:Nm") == "Max Mustermann"
        assert _text(second, "p:DbtrAcct/p:Id/p:IBAN") == "DE89370400440532013000"
        assert _text(second, "p:RmtInf/p:Ustrd") == "Jahresbeitrag 2025"

    def test_debtor_bic(self, creditor, transactions):
        _, root = _render(creditor, transactions)
        first = self._blocks(root)[0]
        assert _text(first, "p:DbtrAgt/p:FinInstnId/p:BIC") == "COBADEFFXXX"

    def test_missing_bic_not_provided(self, creditor, transactions):
        _, root = _render(creditor, transactions)
        second = self._blocks(root)[1]
        assert second.find("p:DbtrAgt/p:FinInstnId/p:BIC", namespaces=NS) is None
        assert _text(second, "p:DbtrAgt/p:FinInstnId/p:Othr/p:Id") == "NOTPROVIDED"

    def test_empty_batch(self, creditor):
        _, root = _render(creditor, [])
        assert _text(root, "p:CstmrDrctDbtInitn/p:GrpHdr/p:NbOfTxs") == "0"
        assert _text(root, "p:CstmrDrctDbtInitn/p:GrpHdr/p:CtrlSum") == "0.00"
        assert self._blocks(root) == []


class TestEscaping:
    """Free text survives a parse round trip and is escaped once."""

    def test_special_characters(self, creditor):
        tx = make_transaction(
            debtor_name='Müller & Söhne <GbR> "Alt" \'Neu\'',
            remittance_info="Beitrag & Spende",
        )
        xml, root = _render(creditor, [tx])
        block = root.find("p:CstmrDrctDbtInitn/p:PmtInf/p:DrctDbtTxInf", namespaces=NS)
        assert _text(block, "p:Dbtr/p:Nm") == 'Müller & Söhne <GbR> "Alt" \'Neu\''
        assert _text(block, "p:RmtInf/p:Ustrd") == "Beitrag & Spende"
        assert "&amp;amp;" not in xml

    def test_escape_order(self):
        assert escape_xml("&<>\"'") == "&amp;&lt;&gt;&quot;&apos;"

    def test_existing_entity_escaped_once(self):
        assert escape_xml("&amp;") == "&amp;amp;"

    def test_none_is_empty(self):
        assert escape_xml(None) == ""

    def test_creditor_name_escaped(self, creditor):
        _, root = _render(replace(creditor, creditor_name="Turn- & Sportverein"), [])
        assert _text(root, "p:CstmrDrctDbtInitn/p:GrpHdr/p:InitgPty/p:Nm") == "Turn- & Sportverein"


class TestFormatting:
    @pytest.mark.parametrize(
        "amount, expected",
        [
            (Decimal("10"), "10.00"),
            (Decimal("10.5"), "10.50"),
            (Decimal("0.005"), "0.01"),
            (Decimal("999999.99"), "999999.99"),
        ],
    )
    def test_format_amount(self, amount, expected):
        assert format_amount(amount) == expected

    def test_creation_timestamp_converted_to_utc(self):
        berlin = CREATED_AT.astimezone(timezone(timedelta(hours=1)))
        assert format_creation_timestamp(berlin) == "2025-01-05T08:30:15.123Z"

    def test_naive_timestamp_rejected(self):
        with pytest.raises(ValueError):
            format_creation_timestamp(datetime(2025, 1, 5, 8, 30))

    def test_deterministic(self, creditor, transactions):
        first, _ = _render(creditor, transactions)
        second, _ = _render(creditor, transactions)
        assert first == second
