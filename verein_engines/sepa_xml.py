"""
Module: verein_engines.sepa_xml
Responsibility:
    Serialize one SEPA batch and its validated transactions into a
    pain.008.001.02 (SEPA Core Direct Debit initiation) XML document.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Consumes SepaBatch / SepaDirectDebitTransaction records produced by
    verein_engines.sepa_transactions.  Writing the file or submitting it to
    a bank is the caller's job.

Invariants enforced:
    - Exactly one PmtInf block per document: every transaction shares the
      batch's requested collection date.
    - NbOfTxs equals the number of transactions; CtrlSum equals the sum of
      their amounts, both formatted with exactly two decimals.
    - Free text is escaped ``& < > " '`` in that order, so ``&`` is never
      escaped twice.
    - IBANs are written without whitespace, uppercased.
    - SeqTp is always RCUR.

Failure modes:
    - ValueError if ``created_at`` is a naive datetime.
    - No field validation: transactions must have passed
      ``validate_sepa_transaction`` first.

Usage:
    from verein_engines.sepa_xml import SepaCreditorConfig, SepaXmlGenerator

    generator = SepaXmlGenerator(SepaCreditorConfig(
        creditor_name="Turnverein Musterstadt e.V.",
        creditor_iban="DE89370400440532013000",
        creditor_bic="COBADEFFXXX",
        creditor_id="DE98ZZZ09999999999",
        message_id_prefix="TVM",
    ))
    xml = generator.generate_xml(batch, transactions, created_at=clock.now_utc())
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Sequence

from verein_engines.mandates import normalize_iban
from verein_engines.tracer import traced_engine
from verein_kernel.domain.membership import SepaBatch, SepaDirectDebitTransaction
from verein_kernel.logging_config import get_logger

logger = get_logger("engines.sepa_xml")

PAIN_008_NAMESPACE = "urn:iso:std:iso:20022:tech:xsd:pain.008.001.02"
XSI_NAMESPACE = "http://www.w3.org/2001/XMLSchema-instance"

SEQUENCE_TYPE = "RCUR"
BIC_NOT_PROVIDED = "NOTPROVIDED"

_CENT = Decimal("0.01")

# Order matters: "&" first.
_XML_ESCAPES = (
    ("&", "&amp;"),
    ("<", "&lt;"),
    (">", "&gt;"),
    ('"', "&quot;"),
    ("'", "&apos;"),
)


@dataclass(frozen=True)
class SepaCreditorConfig:
    """The collecting association's bank and scheme details."""

    creditor_name: str
    creditor_iban: str
    creditor_bic: str
    creditor_id: str
    message_id_prefix: str


def escape_xml(text: str | None) -> str:
    """Entity-escape the five XML special characters."""
    if text is None:
        return ""
    for raw, entity in _XML_ESCAPES:
        text = text.replace(raw, entity)
    return text


def format_amount(amount: Decimal) -> str:
    """Two-decimal amount string, e.g. ``10 -> "10.00"``."""
    return str(Decimal(amount).quantize(_CENT, rounding=ROUND_HALF_UP))


def format_date(value: date) -> str:
    return value.strftime("%Y-%m-%d")


def format_creation_timestamp(created_at: datetime) -> str:
    """ISO-8601 UTC with milliseconds and a ``Z`` suffix."""
    if created_at.tzinfo is None:
        raise ValueError("created_at must be timezone-aware")
    utc = created_at.astimezone(UTC)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _normalize_bic(bic: str) -> str:
    return "".join(bic.split()).upper()


class SepaXmlGenerator:
    """
    pain.008.001.02 document builder for one creditor.

    Contract:
        ``generate_xml`` is pure: same batch, transactions and timestamp
        give the same string.
    Non-goals:
        - Does not re-validate transactions.
        - Does not distinguish FRST/OOFF/FNAL sequence types.
    """

    def __init__(self, config: SepaCreditorConfig):
        self.config = config

    def message_id(self, batch_number: str) -> str:
        return f"{self.config.message_id_prefix}-{batch_number}"

    @traced_engine(
        "sepa_xml", "1.0",
        fingerprint_fields=("batch", "transactions", "created_at"),
    )
    def generate_xml(
        self,
        batch: SepaBatch,
        transactions: Sequence[SepaDirectDebitTransaction],
        created_at: datetime,
    ) -> str:
        """
        Build the complete XML document for ``batch``.

        Args:
            batch: Batch supplying the number and requested collection date.
            transactions: Validated transactions, serialized in order.
            created_at: Generation timestamp (timezone-aware) for CreDtTm.

        Returns:
            The XML document as a string.
        """
        creation_timestamp = format_creation_timestamp(created_at)
        number_of_transactions = len(transactions)
        # Sum of the amounts as written, so CtrlSum matches the InstdAmt values.
        control_sum = format_amount(
            sum((Decimal(format_amount(tx.amount)) for tx in transactions), Decimal("0"))
        )
        creditor_name = escape_xml(self.config.creditor_name)

        transaction_blocks = "\n".join(self._transaction_block(tx) for tx in transactions)

        xml = f"""<?xml version="1.0" encoding="UTF-8"?>
<Document xmlns="{PAIN_008_NAMESPACE}" xmlns:xsi="{XSI_NAMESPACE}">
  <CstmrDrctDbtInitn>
    <GrpHdr>
      <MsgId>{escape_xml(self.message_id(batch.batch_number))}</MsgId>
      <CreDtTm>{creation_timestamp}</CreDtTm>
      <NbOfTxs>{number_of_transactions}</NbOfTxs>
      <CtrlSum>{control_sum}</CtrlSum>
      <InitgPty>
        <Nm>{creditor_name}</Nm>
      </InitgPty>
    </GrpHdr>
    <PmtInf>
      <PmtInfId>{escape_xml(batch.batch_number)}</PmtInfId>
      <PmtMtd>DD</PmtMtd>
      <BtchBookg>true</BtchBookg>
      <NbOfTxs>{number_of_transactions}</NbOfTxs>
      <CtrlSum>{control_sum}</CtrlSum>
      <PmtTpInf>
        <SvcLvl>
          <Cd>SEPA</Cd>
        </SvcLvl>
        <LclInstrm>
          <Cd>CORE</Cd>
        </LclInstrm>
        <SeqTp>{SEQUENCE_TYPE}</SeqTp>
      </PmtTpInf>
      <ReqdColltnDt>{format_date(batch.execution_date)}</ReqdColltnDt>
      <Cdtr>
        <Nm>{creditor_name}</Nm>
      </Cdtr>
      <CdtrAcct>
        <Id>
          <IBAN>{normalize_iban(self.config.creditor_iban)}</IBAN>
        </Id>
      </CdtrAcct>
      <CdtrAgt>
        <FinInstnId>
          <BIC>{_normalize_bic(self.config.creditor_bic)}</BIC>
        </FinInstnId>
      </CdtrAgt>
      <CdtrSchmeId>
        <Id>
          <PrvtId>
            <Othr>
              <Id>{escape_xml(self.config.creditor_id)}</Id>
              <SchmeNm>
                <Prtry>SEPA</Prtry>
              </SchmeNm>
            </Othr>
          </PrvtId>
        </Id>
      </CdtrSchmeId>
{transaction_blocks}
    </PmtInf>
  </CstmrDrctDbtInitn>
</Document>"""

        logger.info("sepa_xml_generated", extra={
            "batch_number": batch.batch_number,
            "number_of_transactions": number_of_transactions,
            "control_sum": control_sum,
            "execution_date": batch.execution_date.isoformat(),
        })

        return xml

    def _transaction_block(self, tx: SepaDirectDebitTransaction) -> str:
        if tx.debtor_bic:
            debtor_agent = f"<BIC>{_normalize_bic(tx.debtor_bic)}</BIC>"
        else:
            debtor_agent = f"<Othr><Id>{BIC_NOT_PROVIDED}</Id></Othr>"

        return f"""      <DrctDbtTxInf>
        <PmtId>
          <EndToEndId>{escape_xml(tx.end_to_end_id)}</EndToEndId>
        </PmtId>
        <InstdAmt Ccy="{escape_xml(tx.currency)}">{format_amount(tx.amount)}</InstdAmt>
        <DrctDbtTx>
          <MndtRltdInf>
            <MndtId>{escape_xml(tx.mandate_reference)}</MndtId>
            <DtOfSgntr>{format_date(tx.mandate_date)}</DtOfSgntr>
          </MndtRltdInf>
        </DrctDbtTx>
        <DbtrAgt>
          <FinInstnId>
            {debtor_agent}
          </FinInstnId>
        </DbtrAgt>
        <Dbtr>
          <Nm>{escape_xml(tx.debtor_name)}</Nm>
        </Dbtr>
        <DbtrAcct>
          <Id>
            <IBAN>{normalize_iban(tx.debtor_iban)}</IBAN>
          </Id>
        </DbtrAcct>
        <RmtInf>
          <Ustrd>{escape_xml(tx.remittance_info)}</Ustrd>
        </RmtInf>
      </DrctDbtTxInf>"""
