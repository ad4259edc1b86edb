"""Parsers and column mappers for SMS text, generic CSVs and broker statements."""

from finance_importer.parsers.base import (
    MAPPABLE_FIELDS,
    BaseColumnMapper,
    ColumnMapping,
    ParseError,
)
from finance_importer.parsers.broker_mapper import (
    BrokerStatementMapper,
    ReportKind,
    clean_symbol,
    detect_broker_mapping,
    parse_number,
)
from finance_importer.parsers.csv_mapper import (
    CSVColumnMapper,
    detect_column_mapping,
    normalize_csv_rows,
)
from finance_importer.parsers.csv_reader import CSVTable, read_csv_rows
from finance_importer.parsers.sms_parser import (
    SMSParser,
    SMSParseResult,
    get_parser,
    parse_multiple_sms,
    parse_sms,
    parse_sms_bulk,
    split_messages,
)

__all__ = [
    "MAPPABLE_FIELDS",
    "BaseColumnMapper",
    "ColumnMapping",
    "ParseError",
    "BrokerStatementMapper",
    "ReportKind",
    "clean_symbol",
    "detect_broker_mapping",
    "parse_number",
    "CSVColumnMapper",
    "detect_column_mapping",
    "normalize_csv_rows",
    "CSVTable",
    "read_csv_rows",
    "SMSParser",
    "SMSParseResult",
    "get_parser",
    "parse_multiple_sms",
    "parse_sms",
    "parse_sms_bulk",
    "split_messages",
]
