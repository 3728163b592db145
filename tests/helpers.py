"""Test helpers: sample statements and a scripted in-process remote ledger."""

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Optional, Sequence

from ofx_ledger_sync.client.base import RemoteLedgerClient
from ofx_ledger_sync.models.transaction import (
    NewTransaction,
    RawTransaction,
    RemoteBudget,
    RemoteTransaction,
    SubmitResult,
    TransactionKind,
)
from ofx_ledger_sync.utils.exceptions import TransientNetworkError

BUDGET_ID = "b0000000-0000-0000-0000-000000000001"
ACCOUNT_ID = "a0000000-0000-0000-0000-000000000001"

SAMPLE_OFX = """OFXHEADER:100
DATA:OFXSGML
VERSION:102
SECURITY:NONE
ENCODING:USASCII
CHARSET:1252
COMPRESSION:NONE
OLDFILEUID:NONE
NEWFILEUID:NONE

<OFX><SIGNONMSGSRSV1><SONRS><STATUS><CODE>0<SEVERITY>INFO<MESSAGE>Authentication Successful.</STATUS>
<DTSERVER>20241120170806.513[-5:EST]<LANGUAGE>ENG<FI><ORG>Tangerine<FID>12345</FI><INTU.BID>12345</SONRS>
</SIGNONMSGSRSV1><BANKMSGSRSV1><STMTTRNRS><TRNUID>0<STATUS><CODE>0<SEVERITY>INFO</STATUS><STMTRS>
<CURDEF>CAD<BANKACCTFROM><BANKID>1234<ACCTID>1111111111111111<ACCTTYPE>CREDITLINE</BANKACCTFROM>
<BANKTRANLIST><DTSTART>20241102200000.000[-4:EDT]<DTEND>20241120190000.000[-5:EST]
<STMTTRN>
    <TRNTYPE>DEBIT
    <DTPOSTED>20241115120000.000
    <TRNAMT>-0.5
    <FITID>0000000000001
    <NAME>PARKING PAY MACHINE
</STMTTRN>
<STMTTRN>
    <TRNTYPE>DEBIT
    <DTPOSTED>20241116120000.000
    <TRNAMT>-7.88
    <FITID>0000000000002
    <NAME>SQ ICECREAM
    <MEMO>Rewards earned: 0.04 ~ Category: Other
</STMTTRN>
<STMTTRN>
    <TRNTYPE>DEBIT
    <DTPOSTED>20241116120000.000
    <TRNAMT>-7.35
    <FITID>0000000000003
    <NAME>PIZZA RESTAURANT
    <MEMO>Rewards earned: 0.04 ~ Category: Restaurant
</STMTTRN>
<STMTTRN>
    <TRNTYPE>DEBIT
    <DTPOSTED>20241112120000.000
    <TRNAMT>-8.91
    <FITID>0000000000004
    <NAME>City Mall
    <MEMO>Rewards earned: 0.18 ~ Category: Entertainment
</STMTTRN>
</BANKTRANLIST><LEDGERBAL><BALAMT>-276.39<DTASOF>20241120170806.513[-5:EST]</LEDGERBAL>
<AVAILBAL><BALAMT>-11692.05<DTASOF>20241120170806.513[-5:EST]</AVAILBAL></STMTRS>
</STMTTRNRS></BANKMSGSRSV1></OFX>
"""


def make_statement(*transactions: str) -> str:
    """Wrap STMTTRN bodies in a minimal statement document."""
    body = "".join(f"<STMTTRN>{t}</STMTTRN>\n" for t in transactions)
    return (
        "OFXHEADER:100\nDATA:OFXSGML\n\n"
        "<OFX><BANKMSGSRSV1><STMTTRNRS><STMTRS><BANKTRANLIST>\n"
        f"{body}"
        "</BANKTRANLIST></STMTRS></STMTTRNRS></BANKMSGSRSV1></OFX>\n"
    )


def raw(amount: str, posted: date = date(2024, 11, 16), payee: Optional[str] = None) -> RawTransaction:
    return RawTransaction(
        kind=TransactionKind.DEBIT,
        posted_date=posted,
        amount=Decimal(amount),
        payee_name=payee,
    )


class FakeLedgerClient(RemoteLedgerClient):
    """
    In-process remote ledger.

    Import ids listed in ``existing`` are reported as duplicates, as are ids
    already created by an earlier call. ``script`` entries are consumed one
    per submission: an exception instance is raised, a callable receives the
    submitted transactions and returns the SubmitResult to use.
    """

    def __init__(self, existing: Sequence[str] = (), budgets: Sequence[RemoteBudget] = ()):
        self.known_import_ids: set[str] = set(existing)
        self.budgets = list(budgets)
        self.remote_transactions: dict[str, list[RemoteTransaction]] = defaultdict(list)
        self.submissions: list[list[NewTransaction]] = []
        self.script: list = []
        self.list_calls = 0

    def submit(self, budget_id, account_id, transactions):
        self.submissions.append(list(transactions))
        if self.script:
            step = self.script.pop(0)
            if isinstance(step, Exception):
                raise step
            return step(transactions)
        return self.accept_new(transactions)

    def accept_new(self, transactions) -> SubmitResult:
        result = SubmitResult()
        for t in transactions:
            if t.import_id in self.known_import_ids:
                result.duplicate_import_ids.append(t.import_id)
                continue
            self.known_import_ids.add(t.import_id)
            remote_id = f"tx-{len(self.known_import_ids)}"
            result.transaction_ids.append(remote_id)
            result.created_import_ids.append(t.import_id)
            self.remote_transactions[t.account_id].append(
                RemoteTransaction(id=remote_id, date=t.date, amount=t.amount, import_id=t.import_id)
            )
        return result

    def list_by_account(self, budget_id, account_id):
        self.list_calls += 1
        return list(self.remote_transactions[account_id])

    def list_budgets(self):
        self.list_calls += 1
        return list(self.budgets)

    @property
    def submitted_import_ids(self) -> list[list[str]]:
        return [[t.import_id for t in batch] for batch in self.submissions]


def always_duplicate(transactions) -> SubmitResult:
    return SubmitResult(duplicate_import_ids=[t.import_id for t in transactions])


def transient_error() -> TransientNetworkError:
    return TransientNetworkError("503 Service Unavailable", status_code=503)


