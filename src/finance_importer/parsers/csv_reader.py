"""CSV file reading for the tabular importers.

The mappers work on header -> string rows and never touch the filesystem;
this module is the only place a CSV file is opened.
"""

import csv
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from finance_importer.parsers.base import ParseError
from finance_importer.utils.logging_config import get_logger

logger = get_logger(__name__)

# Maximum CSV file size accepted for import (5 MB)
MAX_CSV_FILE_SIZE = 5 * 1024 * 1024

# Maximum number of data rows to prevent memory exhaustion from many small rows
MAX_CSV_ROWS = 100_000

CANDIDATE_DELIMITERS = [",", "\t", ";", "|"]


@dataclass
class CSVTable:
    """Headers and rows read from a CSV file.

    Attributes:
        headers: Header names in file order (whitespace-trimmed).
        rows: One header -> cell text mapping per non-empty data row.
        delimiter: Delimiter the file was read with.
    """

    headers: list[str]
    rows: list[dict[str, str]] = field(default_factory=list)
    delimiter: str = ","


def read_csv_rows(
    file_path: Path,
    max_size: int = MAX_CSV_FILE_SIZE,
    max_rows: int = MAX_CSV_ROWS,
) -> CSVTable:
    """Read a CSV file with a header row into header -> value rows.

    Args:
        file_path: Path to the CSV file.
        max_size: Maximum file size in bytes.
        max_rows: Maximum number of data rows.

    Returns:
        CSVTable with headers and rows.

    Raises:
        FileNotFoundError: If the file does not exist.
        ParseError: If the file is too large, has no header or cannot be decoded.
    """
    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {file_path}")

    file_size = file_path.stat().st_size
    if file_size > max_size:
        raise ParseError(
            f"File too large ({file_size / 1024 / 1024:.1f} MB). "
            f"Maximum allowed is {max_size / 1024 / 1024:.0f} MB",
            file_path,
        )

    try:
        with open(file_path, encoding="utf-8-sig", newline="") as f:
            sample = f.read(8192)
            delimiter = detect_delimiter(sample)
            f.seek(0)

            reader = csv.reader(f, delimiter=delimiter)
            header_row = next(reader, None)
            if not header_row or all(not h.strip() for h in header_row):
                raise ParseError(f"No header row found in {file_path.name}", file_path)

            headers = [h.strip() for h in header_row]
            rows: list[dict[str, str]] = []

            for row_num, row in enumerate(reader, start=1):
                if row_num > max_rows:
                    raise ParseError(
                        f"File exceeds maximum row limit ({max_rows:,} rows). "
                        f"Split file into smaller chunks.",
                        file_path,
                    )
                if not row or all(value.strip() == "" for value in row):
                    continue
                if len(row) > len(headers):
                    logger.debug(
                        f"Row {row_num} in {file_path.name} has {len(row)} cells, "
                        f"expected {len(headers)}; extra cells ignored"
                    )
                padded = row + [""] * (len(headers) - len(row))
                rows.append(dict(zip(headers, padded)))

    except ParseError:
        raise
    except (UnicodeDecodeError, csv.Error) as e:
        raise ParseError(f"Failed to read CSV file: {e}", file_path) from e

    logger.info(
        f"Read {len(rows)} rows from {file_path.name} "
        f"(delimiter={repr(delimiter)}, {len(headers)} columns)"
    )
    return CSVTable(headers=headers, rows=rows, delimiter=delimiter)


def detect_delimiter(sample: str) -> str:
    """Detect CSV delimiter from the start of a file.

    Args:
        sample: First few KB of the file.

    Returns:
        Detected delimiter character (comma when undecidable).
    """
    lines = [line for line in sample.splitlines() if line.strip()][:10]
    if not lines:
        return ","

    # csv.Sniffer handles quoted fields correctly
    try:
        dialect = csv.Sniffer().sniff("\n".join(lines), delimiters="".join(CANDIDATE_DELIMITERS))
        return dialect.delimiter
    except csv.Error:
        pass

    # Fallback to simple counting (less accurate with quoted fields)
    best_delimiter = ","
    best_score: Optional[float] = None

    for d in CANDIDATE_DELIMITERS:
        counts = [line.count(d) for line in lines]
        non_zero = [c for c in counts if c > 0]
        if not non_zero or len(non_zero) <= len(counts) / 2:
            continue
        avg = sum(non_zero) / len(non_zero)
        if best_score is None or avg > best_score:
            best_score = avg
            best_delimiter = d

    return best_delimiter
