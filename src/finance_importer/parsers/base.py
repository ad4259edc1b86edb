"""Shared column mapping types for tabular importers."""

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from finance_importer.utils.logging_config import get_logger

logger = get_logger(__name__)

# Target fields a CSV header can be mapped to
MAPPABLE_FIELDS = (
    "symbol",
    "quantity",
    "avgPrice",
    "currentPrice",
    "currentValue",
    "pnl",
    "change",
    "dayChange",
    "date",
    "amount",
    "source",
    "category",
    "type",
    "description",
    "price",
    "time",
    "exchange",
    "segment",
)

# Sentinel for a field with no source header
UNMAPPED = ""


class ParseError(Exception):
    """Exception raised when an input file or table cannot be used at all."""

    def __init__(self, message: str, file_path: Optional[Path] = None):
        """Initialize ParseError.

        Args:
            message: Error message.
            file_path: Optional path to the file that failed to parse.
        """
        self.file_path = file_path
        super().__init__(message)


@dataclass
class ColumnMapping:
    """Mapping of target fields to the CSV headers that feed them.

    Auto-detection only seeds this object. Callers edit it with override()
    before normalization runs, and normalization never re-detects.

    Attributes:
        fields: Fields this mapping may assign.
        headers: Field name -> source header ("" when unmapped).
    """

    fields: tuple[str, ...]
    headers: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        unknown = [f for f in self.fields if f not in MAPPABLE_FIELDS]
        if unknown:
            raise ValueError(f"Unknown mapping fields: {unknown}")
        for name in self.fields:
            self.headers.setdefault(name, UNMAPPED)

    def header_for(self, field_name: str) -> str:
        """Return the header mapped to a field, or "" if unmapped."""
        return self.headers.get(field_name, UNMAPPED)

    def is_mapped(self, field_name: str) -> bool:
        """Check whether a field has a source header."""
        return bool(self.header_for(field_name))

    def override(self, field_name: str, header: str) -> None:
        """Point a field at a different header (or "" to unmap it).

        Args:
            field_name: Target field.
            header: Source header name.

        Raises:
            ValueError: If the field is not part of this mapping.
        """
        if field_name not in self.fields:
            raise ValueError(
                f"Field '{field_name}' is not mappable here; expected one of {list(self.fields)}"
            )
        logger.debug(f"Mapping override: {field_name} <- {header!r}")
        self.headers[field_name] = header

    def fields_for_header(self, header: str) -> list[str]:
        """Return every field fed by a header."""
        return [name for name in self.fields if header and self.headers.get(name) == header]

    def as_header_map(self) -> dict[str, str]:
        """Return the header -> field view of mapped fields.

        When one header feeds several fields, the first field in
        vocabulary order is reported.
        """
        header_map: dict[str, str] = {}
        for name in self.fields:
            header = self.headers.get(name, UNMAPPED)
            if header and header not in header_map:
                header_map[header] = name
        return header_map

    def copy(self) -> "ColumnMapping":
        """Return an independent copy."""
        return ColumnMapping(fields=self.fields, headers=dict(self.headers))


def cell(row: Mapping[str, Any], header: str, default: str = "") -> str:
    """Safely read a cell from a row mapping.

    Args:
        row: Header -> value mapping.
        header: Column to read; "" means unmapped.
        default: Value for unmapped, missing or empty cells.

    Returns:
        The stripped cell text or default.
    """
    if not header:
        return default
    value = row.get(header)
    if value is None:
        return default
    text = str(value).strip()
    return text if text else default


class BaseColumnMapper(ABC):
    """Abstract base for mappers that turn tabular rows into candidates.

    Subclasses must implement:
    - fields: Target fields the mapper can fill
    - detect_mapping(): Seed a ColumnMapping from headers
    - normalize_rows(): Turn rows into candidates using a given mapping
    """

    @property
    @abstractmethod
    def fields(self) -> tuple[str, ...]:
        """Return the target fields this mapper fills."""
        pass

    @property
    def name(self) -> str:
        """Return mapper name for logging."""
        return self.__class__.__name__

    def empty_mapping(self) -> ColumnMapping:
        """Return a mapping with every field unmapped."""
        return ColumnMapping(fields=self.fields)

    @abstractmethod
    def detect_mapping(self, headers: Sequence[str]) -> ColumnMapping:
        """Infer a field -> header mapping from CSV headers.

        Args:
            headers: Headers in file order.

        Returns:
            Seed ColumnMapping.
        """
        pass

    @abstractmethod
    def normalize_rows(
        self, rows: Sequence[Mapping[str, Any]], mapping: ColumnMapping
    ) -> list[Any]:
        """Convert rows into candidates using an explicit mapping.

        Args:
            rows: Header -> raw value rows.
            mapping: Mapping to apply (never re-detected).

        Returns:
            List of candidates.
        """
        pass
