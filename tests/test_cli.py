"""End-to-end tests for the command-line interface."""

import argparse
import csv
from pathlib import Path

import pytest
import yaml

from finance_importer.cli import (
    create_parser,
    get_log_level,
    main,
    parse_map_option,
    validate_output_path,
)

SMS_TEXT = (
    "Rs.500.00 debited from A/c XX1234 on 15-01-2025 at SWIGGY. Avl Bal: Rs.12,500.00\n\n"
    "EMI of Rs.5,000 debited from A/c XX4321 for loan installment 3 of 12 on 05-02-2025\n\n"
    "Rs.40 debited from A/c XX1234 on 02-01-2025\n\n"
    "Your OTP for login is 482913. Do not share it.\n"
)


@pytest.fixture
def workdir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run each test inside a scratch directory with a config folder."""
    monkeypatch.chdir(tmp_path)
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    (config_dir / "settings.yaml").write_text(
        yaml.safe_dump({"logging": {"file": ""}}), encoding="utf-8"
    )
    (config_dir / "rules.yaml").write_text(
        yaml.safe_dump({"rules": [
            {"id": "food-delivery", "pattern": "swiggy", "type": "expense", "category": "Shopping"},
            {"id": "bank-charges", "pattern": "bank transaction", "type": "expense", "category": "Bills"},
        ]}),
        encoding="utf-8",
    )
    return tmp_path


def read_rows(path: Path) -> list[dict[str, str]]:
    """Read a CSV file back as dicts."""
    with open(path, newline="", encoding="utf-8") as f:
        return list(csv.DictReader(f))


class TestParserHelpers:
    """Tests for argument helpers."""

    def test_parse_map_option(self) -> None:
        """Test field=Header parsing, including unmapping."""
        assert parse_map_option("amount=Debit Amount") == ("amount", "Debit Amount")
        assert parse_map_option("date=") == ("date", "")

    @pytest.mark.parametrize("value", ["amount", "=Debit"])
    def test_parse_map_option_invalid(self, value: str) -> None:
        """Test malformed overrides."""
        with pytest.raises(argparse.ArgumentTypeError):
            parse_map_option(value)

    def test_repeatable_map(self) -> None:
        """Test --map collects overrides in order."""
        args = create_parser().parse_args(
            ["csv", "in.csv", "--map", "amount=Debit", "--map", "date="]
        )
        assert args.mappings == [("amount", "Debit"), ("date", "")]

    def test_log_level(self) -> None:
        """Test verbosity mapping."""
        assert get_log_level(0) == "WARNING"
        assert get_log_level(1) == "INFO"
        assert get_log_level(3) == "DEBUG"

    def test_validate_output_path(self, tmp_path: Path) -> None:
        """Test paths must stay inside the base directory."""
        assert validate_output_path(Path("out/review.csv"), tmp_path) == (
            tmp_path / "out" / "review.csv"
        ).resolve()
        with pytest.raises(ValueError, match="escapes"):
            validate_output_path(Path("../review.csv"), tmp_path)


class TestSmsCommand:
    """Tests for the sms subcommand."""

    def test_review_and_ledger(self, workdir: Path) -> None:
        """Test parsing, rule application, export and ledger import."""
        (workdir / "messages.txt").write_text(SMS_TEXT, encoding="utf-8")

        code = main([
            "sms", "messages.txt", "--config-dir", "config",
            "-o", "review.csv", "--ledger", "ledger.csv",
        ])

        assert code == 0
        review = read_rows(workdir / "review.csv")
        assert len(review) == 3
        # Newest first; rules only fill the category of uncategorized messages
        assert review[0]["Category"] == "EMI"
        assert review[0]["Matched Rule"] == ""
        assert review[1]["Source"] == "SWIGGY"
        assert review[1]["Category"] == "Food"
        assert review[1]["Matched Rule"] == ""
        assert review[2]["Source"] == "Bank Transaction"
        assert review[2]["Category"] == "Bills"
        assert review[2]["Matched Rule"] == "bank-charges"
        assert review[2]["Type"] == "expense"

        ledger = read_rows(workdir / "ledger.csv")
        assert [row["importedFrom"] for row in ledger] == ["sms", "sms", "sms"]
        assert ledger[0]["description"] == "Imported from SMS (EMI)"

    def test_min_confidence_and_no_rules(self, workdir: Path) -> None:
        """Test low-confidence messages are deselected before import."""
        (workdir / "messages.txt").write_text(SMS_TEXT, encoding="utf-8")

        code = main([
            "sms", "messages.txt", "--config-dir", "config",
            "--min-confidence", "90", "--no-rules", "--ledger", "ledger.csv",
        ])

        assert code == 0
        ledger = read_rows(workdir / "ledger.csv")
        assert len(ledger) == 1
        assert ledger[0]["category"] == "Food"

    def test_xlsx_output(self, workdir: Path) -> None:
        """Test Excel output is chosen by extension."""
        (workdir / "messages.txt").write_text(SMS_TEXT, encoding="utf-8")

        assert main(["sms", "messages.txt", "--config-dir", "config", "-o", "review.xlsx"]) == 0
        assert (workdir / "review.xlsx").exists()

    def test_missing_input(self, workdir: Path) -> None:
        """Test a missing file is reported."""
        assert main(["sms", "nope.txt", "--config-dir", "config"]) == 1

    @pytest.mark.parametrize("output", ["review.txt", "../review.csv"])
    def test_bad_output_path(self, workdir: Path, output: str) -> None:
        """Test unsupported or escaping output paths."""
        (workdir / "messages.txt").write_text(SMS_TEXT, encoding="utf-8")
        assert main(["sms", "messages.txt", "--config-dir", "config", "-o", output]) == 1


class TestCsvCommand:
    """Tests for the csv subcommand."""

    def test_mapping_override(self, workdir: Path) -> None:
        """Test --map lets a non-keyword header supply the amount."""
        (workdir / "statement.csv").write_text(
            "Txn Date,Debit,Narration\n2025-01-05,300,ATM cash\n2025-01-06,0,Fee reversal\n",
            encoding="utf-8",
        )

        code = main([
            "csv", "statement.csv", "--config-dir", "config",
            "--map", "amount=Debit", "--ledger", "ledger.csv",
        ])

        assert code == 0
        ledger = read_rows(workdir / "ledger.csv")
        assert len(ledger) == 1
        assert ledger[0]["amount"] == "300"
        assert ledger[0]["description"] == "ATM cash"
        assert ledger[0]["importedFrom"] == "csv"

    def test_unknown_mapping_field(self, workdir: Path) -> None:
        """Test overriding a field the CSV mapper does not have."""
        (workdir / "statement.csv").write_text("Date,Amount\n2025-01-05,300\n", encoding="utf-8")

        assert main(["csv", "statement.csv", "--config-dir", "config", "--map", "symbol=Date"]) == 1


class TestBrokerCommand:
    """Tests for the broker subcommand."""

    def test_holdings_import(self, workdir: Path) -> None:
        """Test duplicate flags, skipped rows and the holdings ledger."""
        (workdir / "holdings.csv").write_text(
            "Instrument,Qty.,Avg. cost,LTP\n"
            "TCS,2,3400,3500\n"
            "INFY-EQ,5,\"1,500.50\",1600\n"
            ",3,10,11\n",
            encoding="utf-8",
        )
        (workdir / "existing.yaml").write_text(
            yaml.safe_dump({"holdings": [{"symbol": "TCS.NS", "quantity": 1}]}), encoding="utf-8"
        )

        code = main([
            "broker", "holdings.csv", "--config-dir", "config",
            "--existing", "existing.yaml", "-o", "review.csv", "--ledger", "holdings_ledger.csv",
        ])

        assert code == 0
        review = read_rows(workdir / "review.csv")
        assert [row["Duplicate"] for row in review] == ["Yes", "", ""]
        ledger = read_rows(workdir / "holdings_ledger.csv")
        assert [row["symbol"] for row in ledger] == ["TCS", "INFY"]
        assert ledger[1]["buyPrice"] == "1500.50"
        assert ledger[1]["source"] == "zerodha_import"

    def test_missing_symbol_column(self, workdir: Path) -> None:
        """Test a statement without a symbol column fails cleanly."""
        (workdir / "holdings.csv").write_text("Qty.,Avg. cost\n1,10\n", encoding="utf-8")
        assert main(["broker", "holdings.csv", "--config-dir", "config"]) == 1


class TestValidateCommand:
    """Tests for the validate subcommand."""

    def test_valid(self, workdir: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test a valid config directory."""
        assert main(["validate", "--config-dir", "config"]) == 0
        assert "Configuration is valid." in capsys.readouterr().out

    def test_invalid_rules(self, workdir: Path) -> None:
        """Test a broken rules file fails validation and imports."""
        (workdir / "config" / "rules.yaml").write_text(
            yaml.safe_dump({"rules": [{"pattern": "x"}]}), encoding="utf-8"
        )
        (workdir / "messages.txt").write_text(SMS_TEXT, encoding="utf-8")

        assert main(["validate", "--config-dir", "config"]) == 1
        assert main(["sms", "messages.txt", "--config-dir", "config"]) == 1

    def test_unknown_report_kind(self, workdir: Path) -> None:
        """Test a bad default report kind is reported."""
        (workdir / "config" / "settings.yaml").write_text(
            yaml.safe_dump({"import": {"report_kind": "positions"}}), encoding="utf-8"
        )
        assert main(["validate", "--config-dir", "config"]) == 1
