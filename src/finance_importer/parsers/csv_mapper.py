"""Generic CSV column detection and row normalization."""

from collections.abc import Mapping, Sequence
from datetime import date
from typing import Any, Callable

from finance_importer.models.category import DEFAULT_CATEGORY, is_known_category
from finance_importer.models.transaction import TransactionCandidate, TransactionType
from finance_importer.parsers.base import UNMAPPED, BaseColumnMapper, ColumnMapping, cell
from finance_importer.utils.date_utils import safe_parse_date
from finance_importer.utils.decimal_utils import parse_cell_amount
from finance_importer.utils.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_CSV_SOURCE = "CSV Import"

# Field -> header keywords, matched as lowercase substrings.
# Field order and keyword order both matter: each field takes the first
# header (in file order) containing any of its keywords.
FIELD_KEYWORDS: dict[str, list[str]] = {
    "amount": ["amount", "value", "sum", "total", "price", "cost", "rs", "inr"],
    "date": ["date", "time", "when", "day", "transaction_date", "trans_date"],
    "source": ["source", "vendor", "merchant", "from", "to", "payee", "payer", "name",
               "counterparty"],
    "category": ["category", "type", "tag", "label", "group"],
    "type": ["type", "transaction_type", "trans_type", "credit_debit", "dr_cr"],
    "description": ["description", "desc", "note", "notes", "memo", "remarks", "narration"],
}

# Type cell keywords; income is checked first
INCOME_TYPE_KEYWORDS = ["income", "credit", "cr"]
EXPENSE_TYPE_KEYWORDS = ["expense", "debit", "dr"]


class CSVColumnMapper(BaseColumnMapper):
    """Maps arbitrary transaction CSVs onto transaction candidates.

    Args:
        today: Callable returning the date used for missing or bad dates.
    """

    def __init__(self, today: Callable[[], date] = date.today):
        self.today = today

    @property
    def fields(self) -> tuple[str, ...]:
        """Return the transaction fields this mapper fills."""
        return tuple(FIELD_KEYWORDS)

    def detect_mapping(self, headers: Sequence[str]) -> ColumnMapping:
        """Auto-detect the column mapping from header names.

        Args:
            headers: CSV headers in file order.

        Returns:
            ColumnMapping with "" for fields no header matched.
        """
        mapping = self.empty_mapping()
        lowered = [(header, header.lower()) for header in headers]

        for field_name, keywords in FIELD_KEYWORDS.items():
            mapping.headers[field_name] = next(
                (
                    header for header, header_lower in lowered
                    if any(keyword in header_lower for keyword in keywords)
                ),
                UNMAPPED,
            )

        detected = {k: v for k, v in mapping.headers.items() if v}
        logger.debug(f"Detected CSV mapping: {detected}")
        return mapping

    def normalize_rows(
        self, rows: Sequence[Mapping[str, Any]], mapping: ColumnMapping
    ) -> list[TransactionCandidate]:
        """Convert CSV rows into transaction candidates.

        Rows whose amount ends up zero or negative after normalization are
        dropped. Every surviving candidate starts selected.

        Args:
            rows: Header -> raw value rows.
            mapping: Field mapping to apply.

        Returns:
            List of TransactionCandidate objects.
        """
        candidates: list[TransactionCandidate] = []
        dropped = 0

        for index, row in enumerate(rows):
            candidate = self.normalize_row(row, mapping, index)
            if candidate.is_valid:
                candidates.append(candidate)
            else:
                dropped += 1
                logger.debug(f"Dropping CSV row {index}: no positive amount")

        logger.info(
            f"Normalized {len(candidates)} CSV rows ({dropped} dropped without an amount)"
        )
        return candidates

    def normalize_row(
        self, row: Mapping[str, Any], mapping: ColumnMapping, index: int = 0
    ) -> TransactionCandidate:
        """Normalize a single row, including rows that will be discarded.

        Args:
            row: Header -> raw value mapping.
            mapping: Field mapping to apply.
            index: Row position in the file.

        Returns:
            TransactionCandidate (amount may be 0).
        """
        amount = parse_cell_amount(cell(row, mapping.header_for("amount"), ""))

        txn_date = safe_parse_date(
            cell(row, mapping.header_for("date"), ""), default=None
        ) or self.today()

        source = cell(row, mapping.header_for("source"), DEFAULT_CSV_SOURCE)

        txn_type = self._detect_type(cell(row, mapping.header_for("type"), ""))

        # A negative amount is always an expense, whatever the type cell says
        if amount < 0:
            txn_type = TransactionType.EXPENSE
            amount = abs(amount)

        category = cell(row, mapping.header_for("category"), DEFAULT_CATEGORY)
        if category != DEFAULT_CATEGORY and not is_known_category(category):
            logger.debug(f"Row {index}: keeping non-standard category {category!r}")

        return TransactionCandidate(
            amount=amount,
            date=txn_date,
            type=txn_type,
            source=source,
            category=category,
            description=cell(row, mapping.header_for("description"), ""),
            origin="csv",
            original_row=dict(row),
            selected=True,
            row_index=index,
        )

    def _detect_type(self, raw_type: str) -> TransactionType:
        """Infer income/expense from a type cell, defaulting to expense."""
        lowered = raw_type.lower()
        if any(keyword in lowered for keyword in INCOME_TYPE_KEYWORDS):
            return TransactionType.INCOME
        if any(keyword in lowered for keyword in EXPENSE_TYPE_KEYWORDS):
            return TransactionType.EXPENSE
        return TransactionType.EXPENSE


def detect_column_mapping(headers: Sequence[str]) -> ColumnMapping:
    """Convenience function to detect a transaction CSV mapping."""
    return CSVColumnMapper().detect_mapping(headers)


def normalize_csv_rows(
    rows: Sequence[Mapping[str, Any]], mapping: ColumnMapping
) -> list[TransactionCandidate]:
    """Convenience function to normalize transaction CSV rows."""
    return CSVColumnMapper().normalize_rows(rows, mapping)
