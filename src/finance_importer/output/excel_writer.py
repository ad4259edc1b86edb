"""Excel review workbook for import candidates."""

from collections.abc import Sequence
from pathlib import Path

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.datavalidation import DataValidation

from finance_importer.config import Config
from finance_importer.models.category import CATEGORIES
from finance_importer.models.holding import HoldingCandidate
from finance_importer.models.transaction import TransactionCandidate, TransactionType
from finance_importer.utils.logging_config import get_logger
from finance_importer.utils.sanitize import sanitize_for_csv

logger = get_logger(__name__)

# SMS confidence bands for row highlighting
LOW_CONFIDENCE = 50
HIGH_CONFIDENCE = 75


class ExcelWriter:
    """Writes import candidates to a styled review workbook.

    Generates sheets:
    - Transactions or Holdings (one row per candidate)
    - Categories (hidden list backing the category dropdown)
    """

    SHEET_TRANSACTIONS = "Transactions"
    SHEET_HOLDINGS = "Holdings"
    SHEET_CATEGORIES = "Categories"

    def __init__(self, config: Config):
        """Initialize Excel writer.

        Args:
            config: Application configuration.
        """
        self.config = config
        self.output_config = config.output

        self.header_font = Font(bold=True, color="FFFFFF")
        self.header_fill = PatternFill(
            start_color="4472C4", end_color="4472C4", fill_type="solid"
        )
        self.income_font = Font(color="006600")  # Dark green
        self.expense_font = Font(color="CC0000")  # Dark red
        self.centered = Alignment(horizontal="center")
        self.low_fill = PatternFill(start_color="FFCCCC", end_color="FFCCCC", fill_type="solid")
        self.med_fill = PatternFill(start_color="FFFFCC", end_color="FFFFCC", fill_type="solid")
        self.high_fill = PatternFill(start_color="CCFFCC", end_color="CCFFCC", fill_type="solid")
        self.duplicate_fill = PatternFill(start_color="FFE699", end_color="FFE699", fill_type="solid")

    def write_transactions(
        self, output_path: Path, candidates: Sequence[TransactionCandidate]
    ) -> Path:
        """Write transaction candidates to a workbook.

        Args:
            output_path: Destination .xlsx file.
            candidates: Candidates in review order.

        Returns:
            Path to the saved workbook.
        """
        logger.info(f"Writing Excel workbook to {output_path}")

        wb = Workbook()
        if wb.active:
            wb.remove(wb.active)

        category_count = self._create_category_sheet(wb)
        ws = wb.create_sheet(self.SHEET_TRANSACTIONS, 0)

        headers = [
            "Date", "Type", "Amount", "Source", "Category", "Description",
            "Origin", "Confidence", "EMI", "Account", "Balance", "Matched Rule",
            "Selected",
        ]
        self._write_headers(ws, headers)

        money = self._money_format()
        for row, c in enumerate(candidates, 2):
            ws.cell(row=row, column=1, value=c.date).number_format = "yyyy-mm-dd"
            ws.cell(row=row, column=2, value=c.type.value)

            amount_cell = ws.cell(row=row, column=3, value=float(c.amount))
            amount_cell.number_format = money
            amount_cell.font = (
                self.income_font if c.type == TransactionType.INCOME else self.expense_font
            )

            ws.cell(row=row, column=4, value=sanitize_for_csv(c.source))
            ws.cell(row=row, column=5, value=sanitize_for_csv(c.category))
            ws.cell(row=row, column=6, value=sanitize_for_csv(c.description))
            ws.cell(row=row, column=7, value=c.origin)

            if c.confidence is not None:
                conf_cell = ws.cell(row=row, column=8, value=c.confidence)
                if c.confidence < LOW_CONFIDENCE:
                    conf_cell.fill = self.low_fill
                elif c.confidence < HIGH_CONFIDENCE:
                    conf_cell.fill = self.med_fill
                else:
                    conf_cell.fill = self.high_fill

            ws.cell(row=row, column=9, value="Yes" if c.is_emi else "")
            ws.cell(row=row, column=10, value=c.account_last4 or "")
            if c.balance_after is not None:
                ws.cell(row=row, column=11, value=float(c.balance_after)).number_format = money
            ws.cell(row=row, column=12, value=c.matched_rule_id or "")
            ws.cell(row=row, column=13, value="Yes" if c.selected else "No")

        self._set_widths(ws, [12, 10, 14, 30, 18, 30, 8, 11, 6, 9, 14, 14, 9])

        if category_count and candidates:
            dv = DataValidation(
                type="list",
                formula1=f"'{self.SHEET_CATEGORIES}'!$A$2:$A${category_count + 1}",
                allow_blank=True,
                showDropDown=False,  # False means show the dropdown arrow
            )
            dv.error = "Please select a valid category from the list"
            dv.errorTitle = "Invalid Category"
            dv.add(f"E2:E{len(candidates) + 1}")
            ws.add_data_validation(dv)

        ws.freeze_panes = "A2"
        return self._save(wb, output_path)

    def write_holdings(
        self, output_path: Path, candidates: Sequence[HoldingCandidate]
    ) -> Path:
        """Write holding candidates to a workbook.

        Args:
            output_path: Destination .xlsx file.
            candidates: Candidates in statement order.

        Returns:
            Path to the saved workbook.
        """
        logger.info(f"Writing Excel workbook to {output_path}")

        wb = Workbook()
        ws = wb.active
        ws.title = self.SHEET_HOLDINGS

        headers = [
            "Symbol", "Quantity", "Avg Price", "Current Price", "P&L",
            "Trade Type", "Trade Date", "Duplicate", "Importable", "Selected",
        ]
        self._write_headers(ws, headers)

        money = self._money_format()
        for row, c in enumerate(candidates, 2):
            symbol_cell = ws.cell(row=row, column=1, value=sanitize_for_csv(c.symbol))
            if c.is_duplicate:
                symbol_cell.fill = self.duplicate_fill
            ws.cell(row=row, column=2, value=float(c.quantity))
            ws.cell(row=row, column=3, value=float(c.avg_price)).number_format = money
            if c.current_price is not None:
                ws.cell(row=row, column=4, value=float(c.current_price)).number_format = money
            if c.pnl is not None:
                pnl_cell = ws.cell(row=row, column=5, value=float(c.pnl))
                pnl_cell.number_format = money
                pnl_cell.font = self.expense_font if c.pnl < 0 else self.income_font
            ws.cell(row=row, column=6, value=sanitize_for_csv(c.trade_type or ""))
            if c.trade_date is not None:
                ws.cell(row=row, column=7, value=c.trade_date).number_format = "yyyy-mm-dd"
            ws.cell(row=row, column=8, value="Merge" if c.is_duplicate else "")
            ws.cell(row=row, column=9, value="Yes" if c.is_importable else "No")
            ws.cell(row=row, column=10, value="Yes" if c.selected else "No")

        self._set_widths(ws, [16, 10, 14, 14, 14, 10, 12, 10, 11, 9])
        ws.freeze_panes = "A2"
        return self._save(wb, output_path)

    def _create_category_sheet(self, wb: Workbook) -> int:
        """Create the hidden category list; returns the number of categories."""
        ws = wb.create_sheet(self.SHEET_CATEGORIES)
        ws.cell(row=1, column=1, value="Category")
        ws.cell(row=1, column=2, value="Type")

        row = 2
        seen = set()
        for txn_type, names in CATEGORIES.items():
            for name in names:
                if name in seen:
                    continue
                seen.add(name)
                ws.cell(row=row, column=1, value=name)
                ws.cell(row=row, column=2, value=txn_type.value)
                row += 1

        ws.sheet_state = "hidden"
        return len(seen)

    def _write_headers(self, ws, headers: list[str]) -> None:
        for col, header in enumerate(headers, 1):
            cell = ws.cell(row=1, column=col, value=header)
            cell.font = self.header_font
            cell.fill = self.header_fill
            cell.alignment = self.centered

    def _set_widths(self, ws, widths: list[int]) -> None:
        for i, width in enumerate(widths, 1):
            ws.column_dimensions[get_column_letter(i)].width = width

    def _save(self, wb: Workbook, output_path: Path) -> Path:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        wb.save(output_path)
        logger.info(f"Excel workbook saved: {output_path}")
        return output_path

    def _money_format(self) -> str:
        """Get number format for money values.

        Returns:
            Excel number format string.
        """
        symbol = self.output_config.currency_symbol
        return f'"{symbol}"#,##0.00_);[Red]("{symbol}"#,##0.00)'
