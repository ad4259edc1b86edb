"""CSV export of review candidates and a CSV-backed import ledger."""

import csv
from collections.abc import Sequence
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional

from finance_importer.config import Config
from finance_importer.models.holding import HoldingCandidate
from finance_importer.models.transaction import TransactionCandidate, TransactionRecord
from finance_importer.utils.date_utils import date_to_iso
from finance_importer.utils.decimal_utils import format_currency
from finance_importer.utils.logging_config import get_logger
from finance_importer.utils.sanitize import sanitize_for_csv

logger = get_logger(__name__)

TRANSACTION_HEADERS = [
    "Row", "Date", "Type", "Amount", "Source", "Category", "Description",
    "Origin", "Confidence", "EMI", "Installment", "Account", "Balance",
    "Matched Rule", "Selected",
]

HOLDING_HEADERS = [
    "Row", "Symbol", "Quantity", "Avg Price", "Current Price", "P&L",
    "Trade Type", "Trade Date", "Duplicate", "Importable", "Selected",
]

LEDGER_TRANSACTION_FIELDS = [
    "date", "type", "amount", "source", "category", "description",
    "importedFrom", "originalText",
]

LEDGER_HOLDING_FIELDS = ["symbol", "name", "quantity", "buyPrice", "source"]


def _money(value: Optional[Decimal], decimal_places: int) -> str:
    if value is None:
        return ""
    return format_currency(value, decimal_places)


def _installment(candidate: TransactionCandidate) -> str:
    details = candidate.emi_details
    if not details or details.current_installment is None:
        return ""
    return f"{details.current_installment}/{details.total_installments}"


class CSVExporter:
    """Exports review candidates to a single CSV file.

    All free-text cells pass through sanitize_for_csv since merchant names
    and SMS bodies come from untrusted input.
    """

    def __init__(self, config: Config):
        """Initialize CSV exporter.

        Args:
            config: Application configuration.
        """
        self.config = config
        self.output_config = config.output

    def export_transactions(
        self, output_path: Path, candidates: Sequence[TransactionCandidate]
    ) -> Path:
        """Write transaction candidates to CSV.

        Args:
            output_path: Destination file.
            candidates: Candidates in review order.

        Returns:
            Path to created file.
        """
        places = self.output_config.decimal_places
        rows = [
            [
                "" if c.row_index is None else c.row_index,
                self._format_date(c.date),
                c.type.value,
                _money(c.amount, places),
                sanitize_for_csv(c.source),
                sanitize_for_csv(c.category),
                sanitize_for_csv(c.description),
                c.origin,
                "" if c.confidence is None else c.confidence,
                "Yes" if c.is_emi else "",
                _installment(c),
                c.account_last4 or "",
                _money(c.balance_after, places),
                c.matched_rule_id or "",
                "Yes" if c.selected else "No",
            ]
            for c in candidates
        ]
        return self._write(output_path, TRANSACTION_HEADERS, rows)

    def export_holdings(
        self, output_path: Path, candidates: Sequence[HoldingCandidate]
    ) -> Path:
        """Write holding candidates to CSV.

        Args:
            output_path: Destination file.
            candidates: Candidates in statement order.

        Returns:
            Path to created file.
        """
        places = self.output_config.decimal_places
        rows = [
            [
                c.row_index,
                sanitize_for_csv(c.symbol),
                str(c.quantity),
                _money(c.avg_price, places),
                _money(c.current_price, places),
                _money(c.pnl, places),
                sanitize_for_csv(c.trade_type or ""),
                self._format_date(c.trade_date),
                "Yes" if c.is_duplicate else "",
                "Yes" if c.is_importable else "No",
                "Yes" if c.selected else "No",
            ]
            for c in candidates
        ]
        return self._write(output_path, HOLDING_HEADERS, rows)

    def _write(self, output_path: Path, headers: list[str], rows: list[list[Any]]) -> Path:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow(headers)
            writer.writerows(rows)

        logger.info(f"Exported {len(rows)} rows to {output_path}")
        return output_path

    def _format_date(self, value: Optional[date]) -> str:
        if value is None:
            return ""
        return value.strftime(self.output_config.date_format)


class CSVLedger:
    """Append-only CSV file used as a persistence sink.

    Instances are callables taking one record, so they can be passed
    directly to import_transactions() or import_holdings(). Each call
    appends one row and returns True.
    """

    def __init__(self, path: Path, fieldnames: Sequence[str]):
        """Initialize ledger.

        Args:
            path: Ledger file; created with a header row if missing.
            fieldnames: Column order.
        """
        self.path = path
        self.fieldnames = list(fieldnames)
        self.written = 0

    @classmethod
    def for_transactions(cls, path: Path) -> "CSVLedger":
        """Create a ledger for finalized transaction records."""
        return cls(path, LEDGER_TRANSACTION_FIELDS)

    @classmethod
    def for_holdings(cls, path: Path) -> "CSVLedger":
        """Create a ledger for holding payloads."""
        return cls(path, LEDGER_HOLDING_FIELDS)

    def __call__(self, record: "TransactionRecord | dict[str, Any]") -> bool:
        data = record.to_dict() if isinstance(record, TransactionRecord) else dict(record)
        row = {name: self._cell(data.get(name)) for name in self.fieldnames}

        is_new = not self.path.exists() or self.path.stat().st_size == 0
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "a", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=self.fieldnames)
            if is_new:
                writer.writeheader()
            writer.writerow(row)

        self.written += 1
        return True

    @staticmethod
    def _cell(value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, date):
            return date_to_iso(value)
        return sanitize_for_csv(str(value)) or ""
