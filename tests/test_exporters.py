"""Tests for CSV/Excel review exports and the CSV ledger sink."""

import csv
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest
from openpyxl import load_workbook

from finance_importer.config import Config
from finance_importer.models.holding import HoldingCandidate
from finance_importer.models.transaction import (
    EMIDetails,
    TransactionCandidate,
    TransactionType,
)
from finance_importer.output import CSVExporter, CSVLedger, ExcelWriter
from finance_importer.processing.importer import import_holdings, import_transactions


@pytest.fixture
def config() -> Config:
    """Default configuration."""
    return Config()


@pytest.fixture
def candidates() -> list[TransactionCandidate]:
    """One SMS and one CSV candidate."""
    return [
        TransactionCandidate(
            amount=Decimal("5000"),
            date=date(2025, 2, 5),
            type=TransactionType.EXPENSE,
            source="Bank Transaction",
            category="EMI",
            origin="sms",
            confidence=85,
            is_emi=True,
            emi_details=EMIDetails(3, 12),
            account_last4="4321",
            original_text="EMI of Rs.5,000 debited",
            row_index=0,
        ),
        TransactionCandidate(
            amount=Decimal("1250.5"),
            date=date(2025, 1, 31),
            type=TransactionType.INCOME,
            source="=HYPERLINK(\"x\")",
            category="Salary",
            origin="csv",
            selected=False,
            row_index=1,
        ),
    ]


@pytest.fixture
def holdings() -> list[HoldingCandidate]:
    """One duplicate and one new holding."""
    return [
        HoldingCandidate(symbol="TCS", quantity=Decimal("2"), avg_price=Decimal("3400"),
                         pnl=Decimal("-20"), is_duplicate=True, row_index=0),
        HoldingCandidate(symbol="INFY", quantity=Decimal("5"), avg_price=Decimal("1500.5"),
                         row_index=1),
    ]


def read_rows(path: Path) -> list[dict[str, str]]:
    """Read a CSV file back as dicts."""
    with open(path, newline="", encoding="utf-8") as f:
        return list(csv.DictReader(f))


class TestCSVExporter:
    """Tests for CSVExporter."""

    def test_transactions(self, tmp_path: Path, config: Config, candidates) -> None:
        """Test columns, formatting and sanitization."""
        path = CSVExporter(config).export_transactions(tmp_path / "out" / "review.csv", candidates)

        rows = read_rows(path)

        assert len(rows) == 2
        assert rows[0]["Date"] == "2025-02-05"
        assert rows[0]["Amount"] == "5000.00"
        assert rows[0]["EMI"] == "Yes"
        assert rows[0]["Installment"] == "3/12"
        assert rows[0]["Confidence"] == "85"
        assert rows[0]["Selected"] == "Yes"
        assert rows[1]["Type"] == "income"
        assert rows[1]["Amount"] == "1250.50"
        assert rows[1]["Source"].startswith("'=")
        assert rows[1]["Selected"] == "No"

    def test_holdings(self, tmp_path: Path, config: Config, holdings) -> None:
        """Test holding columns."""
        path = CSVExporter(config).export_holdings(tmp_path / "holdings.csv", holdings)

        rows = read_rows(path)

        assert rows[0]["Symbol"] == "TCS"
        assert rows[0]["Duplicate"] == "Yes"
        assert rows[0]["P&L"] == "-20.00"
        assert rows[1]["Avg Price"] == "1500.50"
        assert rows[1]["Current Price"] == ""


class TestCSVLedger:
    """Tests for the CSV ledger sink."""

    def test_transaction_records_appended(self, tmp_path: Path, candidates) -> None:
        """Test the header is written once across calls."""
        path = tmp_path / "ledger.csv"
        selected = [c.with_changes(selected=True) for c in candidates]

        ledger = CSVLedger.for_transactions(path)
        import_transactions(selected[:1], ledger)
        import_transactions(selected[1:], CSVLedger.for_transactions(path))

        rows = read_rows(path)
        assert ledger.written == 1
        assert len(rows) == 2
        assert rows[0]["description"] == "Imported from SMS (EMI)"
        assert rows[0]["importedFrom"] == "sms"
        assert rows[0]["originalText"] == "EMI of Rs.5,000 debited"
        assert rows[0]["date"] == "2025-02-05"
        assert rows[1]["description"] == "Imported from CSV"
        assert rows[1]["originalText"] == ""
        assert path.read_text(encoding="utf-8").count("importedFrom") == 1

    def test_holding_records(self, tmp_path: Path, holdings) -> None:
        """Test holding payloads are written in field order."""
        path = tmp_path / "holdings_ledger.csv"

        result = import_holdings(holdings, CSVLedger.for_holdings(path), source="cli")

        assert result.success == 2
        rows = read_rows(path)
        assert rows[1] == {
            "symbol": "INFY", "name": "INFY", "quantity": "5",
            "buyPrice": "1500.5", "source": "cli",
        }


class TestExcelWriter:
    """Tests for ExcelWriter."""

    def test_transactions_workbook(self, tmp_path: Path, config: Config, candidates) -> None:
        """Test sheet layout and the hidden category list."""
        path = ExcelWriter(config).write_transactions(tmp_path / "review.xlsx", candidates)

        wb = load_workbook(path)
        assert wb.sheetnames[0] == "Transactions"
        assert wb["Categories"].sheet_state == "hidden"

        ws = wb["Transactions"]
        assert ws.cell(row=1, column=1).value == "Date"
        assert ws.cell(row=2, column=3).value == 5000
        assert ws.cell(row=2, column=5).value == "EMI"
        assert ws.cell(row=2, column=8).value == 85
        assert ws.cell(row=3, column=4).value.startswith("'=")
        assert ws.cell(row=3, column=13).value == "No"
        assert len(ws.data_validations.dataValidation) == 1

    def test_holdings_workbook(self, tmp_path: Path, config: Config, holdings) -> None:
        """Test duplicate marking."""
        path = ExcelWriter(config).write_holdings(tmp_path / "holdings.xlsx", holdings)

        ws = load_workbook(path)["Holdings"]
        assert ws.cell(row=2, column=1).value == "TCS"
        assert ws.cell(row=2, column=8).value == "Merge"
        assert not ws.cell(row=3, column=8).value
        assert ws.cell(row=3, column=9).value == "Yes"
