"""Output writers for review exports and ledger sinks."""

from finance_importer.output.csv_exporter import CSVExporter, CSVLedger
from finance_importer.output.excel_writer import ExcelWriter

__all__ = [
    "CSVExporter",
    "CSVLedger",
    "ExcelWriter",
]
