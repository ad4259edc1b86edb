"""Tests for date, decimal, logging and sanitization helpers."""

import logging
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

from finance_importer.utils.date_utils import (
    parse_date,
    parse_iso_date,
    parse_month_name_date,
    parse_numeric_date,
    safe_parse_date,
)
from finance_importer.utils.decimal_utils import (
    format_currency,
    leading_decimal,
    parse_amount,
    parse_cell_amount,
    parse_grouped_number,
    safe_decimal,
)
from finance_importer.utils.logging_config import (
    get_logger,
    mask_account_numbers,
    setup_logging,
)
from finance_importer.utils.sanitize import sanitize_for_csv, truncate


class TestParseDate:
    """Tests for spreadsheet date parsing."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("2024-01-15", date(2024, 1, 15)),
            ("2024/01/15", date(2024, 1, 15)),
            ("03/04/2024", date(2024, 3, 4)),
            ("15/01/2024", date(2024, 1, 15)),
            ("15.01.2024", date(2024, 1, 15)),
            ("15-Jan-2024", date(2024, 1, 15)),
            ("Jan 15, 2024", date(2024, 1, 15)),
            ("20240115", date(2024, 1, 15)),
            ("2024-01-15 10:30:00", date(2024, 1, 15)),
        ],
    )
    def test_formats(self, raw: str, expected: date) -> None:
        """Test the supported formats."""
        assert parse_date(raw) == expected

    @pytest.mark.parametrize("raw", ["", "   ", "yesterday", "32/13/2024"])
    def test_invalid(self, raw: str) -> None:
        """Test unparsable input raises ValueError."""
        with pytest.raises(ValueError):
            parse_date(raw)

    def test_safe_parse_default(self) -> None:
        """Test the default is returned on failure."""
        fallback = date(2000, 1, 1)
        assert safe_parse_date("nonsense", fallback) == fallback
        assert safe_parse_date(None) is None
        assert safe_parse_date("2024-02-29") == date(2024, 2, 29)


class TestBankAlertDates:
    """Tests for the date readers used on SMS text."""

    def test_numeric_day_first(self) -> None:
        """Test day-first is preferred."""
        assert parse_numeric_date("05-02-2025") == date(2025, 2, 5)
        assert parse_numeric_date("5/2/25") == date(2025, 2, 5)

    def test_numeric_month_first_fallback(self) -> None:
        """Test month-first only when day-first is impossible."""
        assert parse_numeric_date("01/15/2025") == date(2025, 1, 15)

    def test_numeric_impossible(self) -> None:
        """Test a date that is invalid both ways."""
        assert parse_numeric_date("31-02-2025") is None
        assert parse_numeric_date("1-2") is None

    def test_month_name(self) -> None:
        """Test English month names and two-digit years."""
        assert parse_month_name_date("15 Jan 2025") == date(2025, 1, 15)
        assert parse_month_name_date("3 March 25") == date(2025, 3, 3)
        assert parse_month_name_date("3 Foo 2025") is None

    def test_iso(self) -> None:
        """Test ISO dates without raising."""
        assert parse_iso_date("2025-01-15") == date(2025, 1, 15)
        assert parse_iso_date("2025-13-01") is None
        assert parse_iso_date("15-01") is None


class TestDecimalParsing:
    """Tests for amount parsing helpers."""

    def test_parse_amount(self) -> None:
        """Test comma stripping in captured amounts."""
        assert parse_amount("12,500.00") == Decimal("12500.00")
        with pytest.raises(ValueError):
            parse_amount("")
        with pytest.raises(ValueError):
            parse_amount("1.2.3")

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("12.5.3", Decimal("12.5")),
            ("5-3", Decimal("5")),
            (".75", Decimal(".75")),
            ("abc", Decimal("0")),
            (None, Decimal("0")),
        ],
    )
    def test_leading_decimal(self, raw, expected: Decimal) -> None:
        """Test only the leading number is read."""
        assert leading_decimal(raw) == expected

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("₹ -1,250.50", Decimal("-1250.50")),
            ("$40", Decimal("40")),
            ("", Decimal("0")),
            (None, Decimal("0")),
        ],
    )
    def test_parse_cell_amount(self, raw, expected: Decimal) -> None:
        """Test currency symbols and separators are ignored."""
        assert parse_cell_amount(raw) == expected

    def test_parse_grouped_number(self) -> None:
        """Test lakh and western grouping."""
        assert parse_grouped_number("1,23,456.50") == Decimal("123456.50")
        assert parse_grouped_number("123,456.50") == Decimal("123456.50")
        assert parse_grouped_number(Decimal("4")) == Decimal("4")

    def test_safe_decimal(self) -> None:
        """Test lenient conversion."""
        assert safe_decimal("1,000") == Decimal("1000")
        assert safe_decimal(2.5) == Decimal("2.5")
        assert safe_decimal("x", Decimal("-1")) == Decimal("-1")

    def test_format_currency(self) -> None:
        """Test rounding and sign handling."""
        assert format_currency(Decimal("1234.565")) == "1234.57"
        assert format_currency(Decimal("-5")) == "-5.00"
        assert format_currency(Decimal("-5"), include_sign=False) == "5.00"


class TestSanitize:
    """Tests for spreadsheet-safe output."""

    @pytest.mark.parametrize("raw", ["=SUM(A1)", "+1", "-2", "@cmd", "|calc"])
    def test_formula_prefixed(self, raw: str) -> None:
        """Test formula triggers get a quote prefix."""
        assert sanitize_for_csv(raw) == "'" + raw

    def test_plain_values_unchanged(self) -> None:
        """Test ordinary text and None."""
        assert sanitize_for_csv("Swiggy") == "Swiggy"
        assert sanitize_for_csv("") == ""
        assert sanitize_for_csv(None) is None

    def test_truncate(self) -> None:
        """Test trimming then cutting."""
        assert truncate("  Blue Tokai Coffee  ", 9) == "Blue Toka"


class TestLogging:
    """Tests for log handler setup and account masking."""

    @pytest.fixture(autouse=True)
    def reset_handlers(self):
        """Leave the package logger without handlers after each test."""
        yield
        setup_logging(log_file="", console_output=False)

    def test_mask_account_numbers(self) -> None:
        """Test long digit runs keep only their last four digits."""
        assert mask_account_numbers("A/c 123456789012 debited") == "A/c XXXXXXXX9012 debited"
        # Amounts, dates and already-masked accounts are left alone
        assert mask_account_numbers("Rs.12,500.00 on 15-01-2025 A/c XX1234") == (
            "Rs.12,500.00 on 15-01-2025 A/c XX1234"
        )

    def test_file_records_masked(self, tmp_path: Path) -> None:
        """Test account numbers never reach the log file."""
        log_path = tmp_path / "run.log"
        setup_logging(level="DEBUG", log_file=str(log_path), console_output=False)

        get_logger("parsers.sms_parser").debug("No amount pattern matched: %r", "A/c 123456789012")
        for handler in logging.getLogger("finance_importer").handlers:
            handler.flush()

        content = log_path.read_text(encoding="utf-8")
        assert "XXXXXXXX9012" in content
        assert "123456789012" not in content
        assert "finance_importer.parsers.sms_parser" in content

    def test_setup_replaces_handlers(self, tmp_path: Path) -> None:
        """Test repeated setup swaps handlers, and an empty path disables the file."""
        setup_logging(log_file=str(tmp_path / "first.log"), console_output=True)
        logger = setup_logging(level="warning", log_file="", console_output=True)

        assert logger.level == logging.WARNING
        assert len(logger.handlers) == 1
        assert not isinstance(logger.handlers[0], logging.FileHandler)

    def test_get_logger_namespace(self) -> None:
        """Test module names are placed under the package logger once."""
        assert get_logger("cli").name == "finance_importer.cli"
        assert get_logger("finance_importer.cli").name == "finance_importer.cli"
