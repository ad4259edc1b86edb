"""Broker (Zerodha) statement mapping for holdings and tradebook exports."""

from collections.abc import Iterable, Mapping, Sequence
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from finance_importer.models.holding import Holding, HoldingCandidate
from finance_importer.parsers.base import (
    UNMAPPED,
    BaseColumnMapper,
    ColumnMapping,
    ParseError,
    cell,
)
from finance_importer.processing.deduplicator import HoldingDeduplicator
from finance_importer.utils.date_utils import safe_parse_date
from finance_importer.utils.decimal_utils import ZERO, parse_grouped_number
from finance_importer.utils.logging_config import get_logger

logger = get_logger(__name__)


class ReportKind(Enum):
    """Broker export formats."""

    HOLDINGS = "holdings"
    TRADEBOOK = "tradebook"

    @classmethod
    def from_value(cls, value: "str | ReportKind") -> "ReportKind":
        """Create a ReportKind from a string such as "holdings"."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            valid = ", ".join(kind.value for kind in cls)
            raise ValueError(f"Unknown report kind '{value}'. Valid kinds: {valid}") from None


# Exact header spellings per report kind (matched after trimming)
BROKER_COLUMN_MAPS: dict[ReportKind, dict[str, str]] = {
    ReportKind.HOLDINGS: {
        "Instrument": "symbol",
        "Symbol": "symbol",
        "Trading Symbol": "symbol",
        "Tradingsymbol": "symbol",
        "Qty.": "quantity",
        "Qty": "quantity",
        "Quantity": "quantity",
        "Avg. cost": "avgPrice",
        "Avg cost": "avgPrice",
        "Average Price": "avgPrice",
        "Avg. Price": "avgPrice",
        "Buy Avg": "avgPrice",
        "LTP": "currentPrice",
        "Last Price": "currentPrice",
        "Cur. val": "currentValue",
        "Current Value": "currentValue",
        "P&L": "pnl",
        "Net chg.": "change",
        "Day chg.": "dayChange",
    },
    ReportKind.TRADEBOOK: {
        "Symbol": "symbol",
        "Trade Date": "date",
        "Trade Type": "type",
        "Quantity": "quantity",
        "Price": "price",
        "Order Execution Time": "time",
        "Exchange": "exchange",
        "Segment": "segment",
    },
}

# Field holding the per-unit price for each report kind
PRICE_FIELDS = {
    ReportKind.HOLDINGS: "avgPrice",
    ReportKind.TRADEBOOK: "price",
}

EXCHANGE_SUFFIXES = (".NS", ".BSE")
SEGMENT_SUFFIXES = ("-EQ",)


def clean_symbol(symbol: Optional[str]) -> str:
    """Normalize a broker symbol for display and comparison.

    Uppercases, then strips exchange (".NS", ".BSE") and equity segment
    ("-EQ") suffixes until none remain, so cleaning twice changes nothing.

    Args:
        symbol: Raw symbol such as "reliance.ns" or "INFY-EQ".

    Returns:
        Cleaned symbol ("" for empty input).
    """
    if not symbol:
        return ""

    cleaned = str(symbol).upper().strip()
    stripped = True
    while stripped:
        stripped = False
        for suffix in EXCHANGE_SUFFIXES + SEGMENT_SUFFIXES:
            if cleaned.endswith(suffix):
                cleaned = cleaned[: -len(suffix)].strip()
                stripped = True
    return cleaned


def parse_number(value: Any) -> Decimal:
    """Parse a broker number such as "1,23,456.50"; 0 when unparsable."""
    return parse_grouped_number(value)


class BrokerStatementMapper(BaseColumnMapper):
    """Maps a broker holdings or tradebook export onto holding candidates.

    Headers are matched exactly (after trimming) against a fixed alias table
    per report kind, unlike the keyword matching used for generic CSVs.

    Args:
        report_kind: "holdings" or "tradebook".
    """

    def __init__(self, report_kind: "str | ReportKind" = ReportKind.HOLDINGS):
        self.report_kind = ReportKind.from_value(report_kind)
        self.column_map = BROKER_COLUMN_MAPS[self.report_kind]

    @property
    def fields(self) -> tuple[str, ...]:
        """Return the fields of this report kind, in alias-table order."""
        return tuple(dict.fromkeys(self.column_map.values()))

    def detect_mapping(self, headers: Sequence[str]) -> ColumnMapping:
        """Detect the column mapping by exact header alias lookup.

        The first header carrying a given field wins.

        Args:
            headers: CSV headers in file order.

        Returns:
            ColumnMapping with "" for fields no header matched.
        """
        mapping = self.empty_mapping()
        for header in headers:
            field_name = self.column_map.get(header.strip())
            if field_name and not mapping.is_mapped(field_name):
                mapping.headers[field_name] = header

        detected = {k: v for k, v in mapping.headers.items() if v}
        logger.debug(f"Detected {self.report_kind.value} mapping: {detected}")
        return mapping

    def find_duplicates(
        self,
        rows: Sequence[Mapping[str, Any]],
        mapping: ColumnMapping,
        existing_holdings: Iterable[Holding],
    ) -> set[int]:
        """Return indices of rows whose cleaned symbol is already held.

        Args:
            rows: Statement rows.
            mapping: Column mapping (symbol must be mapped).
            existing_holdings: The user's current holdings.

        Returns:
            Set of duplicate row indices.
        """
        symbol_header = self._require_symbol(mapping)
        deduplicator = HoldingDeduplicator(existing_holdings, clean_symbol)
        return deduplicator.find_duplicates(
            [cell(row, symbol_header) for row in rows]
        )

    def build_candidates(
        self,
        rows: Sequence[Mapping[str, Any]],
        mapping: ColumnMapping,
        existing_holdings: Iterable[Holding] = (),
    ) -> list[HoldingCandidate]:
        """Normalize statement rows into holding candidates.

        A missing quantity column means one unit per row; a missing price
        column means a price of 0.

        Args:
            rows: Statement rows.
            mapping: Column mapping to apply.
            existing_holdings: Holdings used to flag duplicates.

        Returns:
            One HoldingCandidate per row, in row order.

        Raises:
            ParseError: If no column is mapped to the symbol field.
        """
        symbol_header = self._require_symbol(mapping)
        duplicates = self.find_duplicates(rows, mapping, existing_holdings)

        quantity_header = mapping.header_for("quantity")
        price_header = mapping.header_for(PRICE_FIELDS[self.report_kind])

        candidates = []
        for index, row in enumerate(rows):
            if quantity_header:
                quantity = parse_number(cell(row, quantity_header))
            else:
                quantity = parse_number(1)

            avg_price = parse_number(cell(row, price_header)) if price_header else ZERO

            candidate = HoldingCandidate(
                symbol=clean_symbol(cell(row, symbol_header)),
                quantity=quantity,
                avg_price=avg_price,
                current_price=self._optional_number(row, mapping, "currentPrice"),
                pnl=self._optional_number(row, mapping, "pnl"),
                trade_type=self._optional_text(row, mapping, "type"),
                trade_date=safe_parse_date(self._optional_text(row, mapping, "date")),
                row_index=index,
                original_row=dict(row),
                is_duplicate=index in duplicates,
                selected=True,
            )
            logger.debug(f"{self.report_kind.value} row {index}: {candidate.symbol} x {quantity}")
            candidates.append(candidate)

        logger.info(
            f"Built {len(candidates)} {self.report_kind.value} candidates "
            f"({len(duplicates)} already held)"
        )
        return candidates

    def normalize_rows(
        self, rows: Sequence[Mapping[str, Any]], mapping: ColumnMapping
    ) -> list[HoldingCandidate]:
        """Normalize rows without duplicate detection."""
        return self.build_candidates(rows, mapping)

    def _require_symbol(self, mapping: ColumnMapping) -> str:
        symbol_header = mapping.header_for("symbol")
        if symbol_header == UNMAPPED:
            raise ParseError(
                f"No symbol column found for {self.report_kind.value} statement; "
                f"expected one of {self._aliases_for('symbol')}"
            )
        return symbol_header

    def _aliases_for(self, field_name: str) -> list[str]:
        return [header for header, name in self.column_map.items() if name == field_name]

    def _optional_number(self, row, mapping, field_name):
        if field_name not in mapping.fields or not mapping.is_mapped(field_name):
            return None
        raw = cell(row, mapping.header_for(field_name))
        return parse_number(raw) if raw else None

    def _optional_text(self, row, mapping, field_name):
        if field_name not in mapping.fields or not mapping.is_mapped(field_name):
            return None
        value = cell(row, mapping.header_for(field_name))
        return value.upper() if field_name == "type" and value else (value or None)


def detect_broker_mapping(
    headers: Sequence[str], report_kind: "str | ReportKind" = ReportKind.HOLDINGS
) -> ColumnMapping:
    """Convenience function to detect a broker statement mapping."""
    return BrokerStatementMapper(report_kind).detect_mapping(headers)
