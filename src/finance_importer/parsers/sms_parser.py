"""Bank SMS parser.

Extracts a transaction from free-text bank alerts such as::

    Rs.500.00 debited from A/c XX1234 on 15-01-2025 at SWIGGY. Avl Bal: Rs.12,500.00

Every extraction stage is a total function returning an Extraction. A stage
that finds nothing yields its documented default with ``matched=False``, so
parsing never raises for malformed text and the confidence score is the sum
of the weights of the stages that matched.
"""

import re
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, NamedTuple, Optional

from finance_importer.models.category import DEFAULT_CATEGORY
from finance_importer.models.transaction import (
    EMIDetails,
    TransactionCandidate,
    TransactionType,
)
from finance_importer.parsers.sms_patterns import (
    ACCOUNT_PATTERNS,
    BALANCE_PATTERNS,
    CAPITALIZED_WORDS,
    CATEGORY_KEYWORDS,
    CONFIDENCE_WEIGHTS,
    DATE_PATTERNS,
    DEFAULT_SOURCE,
    EMI_CATEGORY,
    EMI_PATTERNS,
    INSTALLMENT_PATTERNS,
    MERCHANT_MAX_LENGTH,
    MERCHANT_PATTERNS,
    MERCHANT_STOPWORDS,
    TYPE_AMOUNT_PATTERNS,
)
from finance_importer.utils.decimal_utils import parse_amount
from finance_importer.utils.logging_config import get_logger
from finance_importer.utils.sanitize import truncate

logger = get_logger(__name__)

# Minimum lengths for a pasted block to count as a message
MIN_PARAGRAPH_LENGTH = 10
MIN_LINE_LENGTH = 20

# Keys looked up, in order, when a message is given as a mapping
MESSAGE_TEXT_KEYS = ("body", "text", "message")

_PARAGRAPH_SPLIT = re.compile(r"\n\n+|\r\n\r\n+")
_LINE_SPLIT = re.compile(r"\n|\r\n")


class Extraction(NamedTuple):
    """Outcome of one extraction stage."""

    value: Any
    matched: bool


NOT_FOUND = Extraction(None, False)


@dataclass(frozen=True)
class SMSParseResult:
    """Structured fields extracted from one SMS.

    ``parsed`` is False when no amount/type pattern matched; such results
    carry only the original text and a confidence of 0.
    """

    original_text: str
    parsed: bool = False
    type: Optional[TransactionType] = None
    amount: Optional[Decimal] = None
    date: Optional[date] = None
    source: Optional[str] = None
    category: Optional[str] = None
    account_last4: Optional[str] = None
    balance: Optional[Decimal] = None
    is_emi: bool = False
    emi_details: Optional[EMIDetails] = None
    confidence: int = 0

    def to_candidate(self, row_index: Optional[int] = None) -> TransactionCandidate:
        """Convert a parsed result into a transaction candidate.

        Args:
            row_index: Position of the message in its batch.

        Returns:
            TransactionCandidate with origin "sms".

        Raises:
            ValueError: If the message was not parsed.
        """
        if not self.parsed or self.type is None or self.amount is None or self.date is None:
            raise ValueError("Cannot build a candidate from an unparsed SMS")

        return TransactionCandidate(
            amount=self.amount,
            date=self.date,
            type=self.type,
            source=self.source or DEFAULT_SOURCE,
            category=self.category or DEFAULT_CATEGORY,
            origin="sms",
            confidence=self.confidence,
            is_emi=self.is_emi,
            emi_details=self.emi_details,
            balance_after=self.balance,
            account_last4=self.account_last4,
            original_text=self.original_text,
            row_index=row_index,
        )


def _first_amount(patterns: Iterable[re.Pattern[str]], text: str) -> Extraction:
    """Return the first pattern capture that converts to an amount."""
    for pattern in patterns:
        match = pattern.search(text)
        if not match:
            continue
        try:
            return Extraction(parse_amount(match.group(1)), True)
        except ValueError:
            logger.debug(f"Pattern {pattern.pattern!r} captured a non-numeric amount {match.group(1)!r}")
    return NOT_FOUND


class SMSParser:
    """Parses bank SMS text into transaction fields.

    Args:
        category_keywords: Ordered category -> keywords table. Defaults to
            the built-in table.
        today: Callable returning the date used when a message has none.
    """

    def __init__(
        self,
        category_keywords: Optional[Mapping[str, list[str]]] = None,
        today: Callable[[], date] = date.today,
    ):
        self.category_keywords = dict(category_keywords or CATEGORY_KEYWORDS)
        self.today = today

    def parse(self, text: object) -> Optional[SMSParseResult]:
        """Parse a single SMS.

        Args:
            text: Message body.

        Returns:
            SMSParseResult, or None when text is not a non-empty string.
        """
        if not text or not isinstance(text, str):
            return None

        type_amount = self.extract_type_and_amount(text)
        if not type_amount.matched:
            logger.debug(f"No amount pattern matched: {text[:40]!r}")
            return SMSParseResult(original_text=text)

        txn_type, amount = type_amount.value
        date_x = self.extract_date(text)
        merchant_x = self.extract_merchant(text)
        account_x = self.extract_account(text)
        balance_x = self.extract_balance(text)
        category_x = self.detect_category(text)
        emi_x = self.detect_emi(text)

        stages = {
            "type_amount": type_amount,
            "date": date_x,
            "merchant": merchant_x,
            "account": account_x,
            "balance": balance_x,
            "category": category_x,
            "emi": emi_x,
        }
        confidence = sum(
            CONFIDENCE_WEIGHTS[name] for name, extraction in stages.items() if extraction.matched
        )

        category = EMI_CATEGORY if emi_x.matched else category_x.value

        return SMSParseResult(
            original_text=text,
            parsed=True,
            type=txn_type,
            amount=amount,
            date=date_x.value,
            source=merchant_x.value,
            category=category,
            account_last4=account_x.value,
            balance=balance_x.value,
            is_emi=emi_x.matched,
            emi_details=emi_x.value,
            confidence=confidence,
        )

    def extract_type_and_amount(self, text: str) -> Extraction:
        """Find the transaction type and amount.

        Groups are checked in order and the first matching pattern decides
        both the type and the amount.

        Returns:
            Extraction whose value is a (TransactionType, Decimal) tuple.
        """
        for txn_type, patterns in TYPE_AMOUNT_PATTERNS:
            amount = _first_amount(patterns, text)
            if amount.matched:
                return Extraction((txn_type, amount.value), True)
        return NOT_FOUND

    def extract_date(self, text: str) -> Extraction:
        """Find the transaction date, defaulting to today.

        A pattern that matches text which is not a real calendar date
        ("31-02-2025") is skipped in favour of the next pattern.
        """
        for pattern, convert in DATE_PATTERNS:
            match = pattern.search(text)
            if not match:
                continue
            parsed = convert(match.group(1))
            if parsed is not None:
                return Extraction(parsed, True)
            logger.debug(f"Ignoring impossible date {match.group(1)!r}")
        return Extraction(self.today(), False)

    def extract_merchant(self, text: str) -> Extraction:
        """Find the merchant or counterparty.

        Only an explicit merchant pattern counts as matched. The capitalized
        word fallback and the final "Bank Transaction" default do not add
        confidence.
        """
        for pattern in MERCHANT_PATTERNS:
            match = pattern.search(text)
            if match:
                merchant = truncate(match.group(1), MERCHANT_MAX_LENGTH)
                if merchant:
                    return Extraction(merchant, True)

        for words in CAPITALIZED_WORDS.findall(text):
            if len(words) > 3 and words not in MERCHANT_STOPWORDS:
                return Extraction(truncate(words, MERCHANT_MAX_LENGTH), False)

        return Extraction(DEFAULT_SOURCE, False)

    def extract_account(self, text: str) -> Extraction:
        """Find the last four digits of the account or card."""
        for pattern in ACCOUNT_PATTERNS:
            match = pattern.search(text)
            if match:
                return Extraction(match.group(1), True)
        return NOT_FOUND

    def extract_balance(self, text: str) -> Extraction:
        """Find the available balance stated in the message."""
        return _first_amount(BALANCE_PATTERNS, text)

    def detect_category(self, text: str) -> Extraction:
        """Pick the first category whose keywords occur in the message."""
        lowered = text.lower()
        for category, keywords in self.category_keywords.items():
            if any(keyword in lowered for keyword in keywords):
                return Extraction(category, True)
        return Extraction(DEFAULT_CATEGORY, False)

    def detect_emi(self, text: str) -> Extraction:
        """Detect a loan installment and, when present, its position.

        Returns:
            Extraction whose value is EMIDetails (installment numbers may be
            None) when the message is an EMI.
        """
        if not any(pattern.search(text) for pattern in EMI_PATTERNS):
            return NOT_FOUND

        for pattern in INSTALLMENT_PATTERNS:
            match = pattern.search(text)
            if match:
                return Extraction(
                    EMIDetails(
                        current_installment=int(match.group(1)),
                        total_installments=int(match.group(2)),
                    ),
                    True,
                )
        return Extraction(EMIDetails(), True)

    def parse_many(self, messages: Iterable[object]) -> list[SMSParseResult]:
        """Parse a batch of messages.

        Messages may be strings or mappings with a ``body``, ``text`` or
        ``message`` key. Unparsed messages are dropped and the rest are
        sorted newest first; undated results sort last.

        Args:
            messages: Messages to parse.

        Returns:
            Parsed results sorted by date descending.
        """
        results: list[SMSParseResult] = []
        total = 0
        for message in messages:
            total += 1
            result = self.parse(_message_text(message))
            if result is not None and result.parsed:
                results.append(result)

        results.sort(key=_date_sort_key, reverse=True)
        logger.info(f"Parsed {len(results)} of {total} messages")
        return results

    def parse_bulk(self, bulk_text: object) -> list[SMSParseResult]:
        """Parse pasted text holding one or many messages.

        Messages are split on blank lines first. When that yields a single
        block, the text is split on single newlines instead, so both
        "one per line" and "blank-line separated" pastes work.

        Args:
            bulk_text: Pasted text.

        Returns:
            Parsed results sorted by date descending.
        """
        if not bulk_text or not isinstance(bulk_text, str):
            return []

        messages = split_messages(bulk_text)
        logger.debug(f"Split pasted text into {len(messages)} messages")
        return self.parse_many(messages)

    def to_candidates(self, results: Iterable[SMSParseResult]) -> list[TransactionCandidate]:
        """Convert parsed results into candidates, keeping their order.

        Results without a positive amount ("Rs.0 debited") are discarded;
        row_index still refers to the position in ``results``.
        """
        candidates = []
        for i, result in enumerate(results):
            if not result.amount or result.amount <= 0:
                logger.debug(f"Discarding message {i}: no positive amount")
                continue
            candidates.append(result.to_candidate(row_index=i))
        return candidates


def split_messages(bulk_text: str) -> list[str]:
    """Segment pasted text into individual messages.

    Args:
        bulk_text: Pasted text.

    Returns:
        List of message strings.
    """
    messages = [
        msg.strip() for msg in _PARAGRAPH_SPLIT.split(bulk_text)
        if len(msg.strip()) > MIN_PARAGRAPH_LENGTH
    ]

    if len(messages) == 1:
        lines = [
            line.strip() for line in _LINE_SPLIT.split(bulk_text)
            if len(line.strip()) > MIN_LINE_LENGTH
        ]
        if len(lines) > 1:
            return lines

    return messages


def _message_text(message: object) -> object:
    """Pull the text out of a string or message mapping."""
    if isinstance(message, Mapping):
        for key in MESSAGE_TEXT_KEYS:
            if message.get(key):
                return message[key]
        return None
    return message


def _date_sort_key(result: SMSParseResult) -> date:
    return result.date or date.min


# Shared instance for the module-level helpers
_parser: Optional[SMSParser] = None


def get_parser() -> SMSParser:
    """Get or create the default SMSParser instance."""
    global _parser
    if _parser is None:
        _parser = SMSParser()
    return _parser


def parse_sms(text: object) -> Optional[SMSParseResult]:
    """Convenience function to parse one SMS with the default parser."""
    return get_parser().parse(text)


def parse_multiple_sms(messages: Iterable[object]) -> list[SMSParseResult]:
    """Convenience function to parse a batch of SMS with the default parser."""
    return get_parser().parse_many(messages)


def parse_sms_bulk(bulk_text: object) -> list[SMSParseResult]:
    """Convenience function to parse pasted SMS text with the default parser."""
    return get_parser().parse_bulk(bulk_text)
