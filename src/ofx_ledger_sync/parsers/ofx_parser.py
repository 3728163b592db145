"""
OFX/QFX statement export parser.
Converts the loosely-SGML transaction list into raw transaction models.
"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Iterable, Iterator, Optional, Union
import logging
import re

from ..config import SyncConfig
from ..models.transaction import RawTransaction, TransactionKind
from ..utils.exceptions import (
    BadAmountError,
    FormatError,
    MissingFieldError,
    NotOFXDocumentError,
    UnknownTransactionKindError,
)
from .timestamps import normalize_timestamp

logger = logging.getLogger(__name__)

ROOT_MARKER_RE = re.compile(r"<OFX>", re.IGNORECASE)
TRANSACTION_LIST_TAG = "BANKTRANLIST"
TRANSACTION_TAG = "STMTTRN"

# Elements that carry a value and are routinely left unterminated
LEAF_TAGS = frozenset(
    {
        "TRNTYPE",
        "DTPOSTED",
        "DTUSER",
        "DTAVAIL",
        "DTSTART",
        "DTEND",
        "TRNAMT",
        "FITID",
        "CORRECTFITID",
        "CORRECTACTION",
        "SRVRTID",
        "CHECKNUM",
        "REFNUM",
        "SIC",
        "PAYEEID",
        "NAME",
        "EXTDNAME",
        "MEMO",
        "INV401KSOURCE",
    }
)

NAMED_ENTITIES = {
    "amp": "&",
    "lt": "<",
    "gt": ">",
    "quot": '"',
    "nbsp": "\u00a0",
}

_BARE_AMPERSAND_RE = re.compile(r"&(?!(?:amp|lt|gt|quot|nbsp);)")
_ENTITY_RE = re.compile(r"&(amp|lt|gt|quot|nbsp);")
_TOKEN_RE = re.compile(
    r"<(?P<markup>[?!][^>]*)>"
    r"|<(?P<close>/)?\s*(?P<name>[A-Za-z][A-Za-z0-9._]*)\s*>"
    r"|(?P<text>[^<]+)"
    r"|(?P<stray><)"
)
_AMOUNT_RE = re.compile(r"^[+-]?(?:\d+(?:[.,]\d*)?|[.,]\d+)$")

START, END, TEXT = "start", "end", "text"


@dataclass
class _Element:
    """Node of the transaction list tree."""

    name: str
    parts: list[str] = field(default_factory=list)
    children: list["_Element"] = field(default_factory=list)

    @property
    def text(self) -> str:
        return "".join(self.parts).strip()

    @property
    def is_leaf(self) -> bool:
        return self.name in LEAF_TAGS or bool(self.text)

    def field_values(self) -> dict[str, str]:
        """Map child leaf names to their text; the first occurrence wins."""
        values: dict[str, str] = {}
        for child in self.children:
            if child.is_leaf and child.name not in values:
                values[child.name] = child.text
        return values


def decode_content(data: Union[bytes, str], encodings: Iterable[str]) -> str:
    """
    Decode raw file bytes using the first encoding that succeeds.

    Raises:
        FormatError: If no encoding can decode the data
    """
    if isinstance(data, str):
        return data

    tried = []
    for encoding in encodings:
        try:
            return data.decode(encoding)
        except (UnicodeDecodeError, LookupError):
            tried.append(encoding)
    raise FormatError(f"Could not decode statement export with any of: {', '.join(tried)}")


def escape_bare_ampersands(content: str) -> str:
    """Rewrite every ``&`` that does not start a known entity as ``&amp;``."""
    return _BARE_AMPERSAND_RE.sub("&amp;", content)


def expand_entities(text: str) -> str:
    """Expand the five named entities; anything else stays literal."""
    return _ENTITY_RE.sub(lambda m: NAMED_ENTITIES[m.group(1)], text)


def tokenize(content: str) -> Iterator[tuple[str, str]]:
    """
    Split SGML content into (kind, value) events.

    Tag names are uppercased. A `<` that does not open a plain tag is kept
    as text. Whitespace-only text is dropped, processing instructions and
    declarations are skipped.
    """
    for match in _TOKEN_RE.finditer(content):
        if match.group("markup") is not None:
            continue
        name = match.group("name")
        if name is not None:
            yield (END if match.group("close") else START), name.upper()
            continue
        text = match.group("text")
        if text is None:
            text = match.group("stray")
        if text.strip():
            yield TEXT, text


class OFXParser:
    """
    Parser for OFX/QFX statement exports.

    Only the bank transaction list is interpreted: sign-on blocks, balances
    and other aggregates outside it are not guaranteed to be well formed and
    are skipped unparsed.
    """

    def __init__(self, config: Optional[SyncConfig] = None):
        """
        Initialize the parser with configuration.

        Args:
            config: Application configuration object (defaults when omitted)
        """
        self.config = config or SyncConfig()
        self.encodings = list(self.config.input.encodings)

    def parse_file(self, file_path: Path) -> list[RawTransaction]:
        """
        Parse a statement export file.

        Args:
            file_path: Path to the OFX/QFX file

        Returns:
            Transactions in file order

        Raises:
            FormatError: If the document is malformed
        """
        logger.info(f"Parsing statement export: {file_path}")
        with open(file_path, "rb") as f:
            data = f.read()

        try:
            transactions = self.parse(data)
        except FormatError as e:
            logger.error(f"Failed to parse {file_path}: {e}")
            raise

        logger.info(f"Extracted {len(transactions)} transactions from {file_path.name}")
        return transactions

    def parse(self, data: Union[bytes, str]) -> list[RawTransaction]:
        """
        Parse statement export content.

        Parsing is all-or-nothing: one malformed transaction fails the file.

        Args:
            data: Raw file bytes (or already decoded text)

        Returns:
            Transactions in document order

        Raises:
            NotOFXDocumentError: If there is no <OFX> root marker
            UnknownTransactionKindError: For a TRNTYPE outside the code table
            BadTimestampError: For an unparseable DTPOSTED
            BadAmountError: For a non-numeric TRNAMT
            MissingFieldError: When TRNTYPE, DTPOSTED or TRNAMT is absent
        """
        content = decode_content(data, self.encodings)

        marker = ROOT_MARKER_RE.search(content)
        if marker is None:
            raise NotOFXDocumentError("No <OFX> root marker found; not a statement export")

        content = escape_bare_ampersands(content[marker.start():])
        transaction_list = self._build_transaction_list(tokenize(content))
        if transaction_list is None:
            logger.warning(f"Statement export has no <{TRANSACTION_LIST_TAG}> element")
            return []

        return [
            self._to_raw_transaction(element)
            for element in transaction_list.children
            if element.name == TRANSACTION_TAG
        ]

    def _build_transaction_list(
        self, events: Iterator[tuple[str, str]]
    ) -> Optional[_Element]:
        """
        Build the element tree of the first transaction list.

        Missing end tags are synthesized: an open leaf closes at the next start
        tag, a <STMTTRN> start closes the previous record, and an end tag
        closes every element opened after its match.
        """
        outer_names: set[str] = set()
        for kind, value in events:
            if kind == START:
                if value == TRANSACTION_LIST_TAG:
                    break
                outer_names.add(value)
        else:
            return None

        root = _Element(TRANSACTION_LIST_TAG)
        stack = [root]

        for kind, value in events:
            if kind == START:
                if value == TRANSACTION_TAG:
                    # A new record closes any record left open
                    del stack[1:]
                elif len(stack) > 1 and stack[-1].is_leaf:
                    stack.pop()
                element = _Element(value)
                stack[-1].children.append(element)
                stack.append(element)
            elif kind == TEXT:
                stack[-1].parts.append(expand_entities(value))
            elif value == TRANSACTION_LIST_TAG:
                break
            elif any(element.name == value for element in stack[1:]):
                while stack.pop().name != value:
                    pass
            elif value in outer_names:
                # An enclosing aggregate closed, so the list ended implicitly
                break
            else:
                logger.debug(f"Ignoring stray end tag </{value}>")

        return root

    def _to_raw_transaction(self, element: _Element) -> RawTransaction:
        """Map one STMTTRN element to a raw transaction."""
        values = element.field_values()

        code = _required(values, "TRNTYPE").upper()
        try:
            kind = TransactionKind(code)
        except ValueError:
            raise UnknownTransactionKindError(code) from None

        return RawTransaction(
            kind=kind,
            posted_date=normalize_timestamp(_required(values, "DTPOSTED")),
            amount=parse_amount(_required(values, "TRNAMT")),
            payee_name=values.get("NAME") or None,
            memo=values.get("MEMO") or None,
        )


def _required(values: dict[str, str], name: str) -> str:
    value = values.get(name)
    if not value:
        raise MissingFieldError(name)
    return value


def parse_amount(raw: str) -> Decimal:
    """
    Parse a TRNAMT string into a Decimal.

    Both ``.`` and ``,`` are accepted as the decimal separator.

    Raises:
        BadAmountError: If the value is not a plain signed decimal
    """
    text = raw.strip()
    if not _AMOUNT_RE.match(text):
        raise BadAmountError(raw)
    try:
        return Decimal(text.replace(",", "."))
    except InvalidOperation:
        raise BadAmountError(raw) from None
