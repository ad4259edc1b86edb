"""Transaction candidate and record models."""

from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

# Longest SMS body kept on a persisted record
ORIGINAL_TEXT_LIMIT = 200


class TransactionType(Enum):
    """Direction of a transaction."""

    INCOME = "income"  # Money in
    EXPENSE = "expense"  # Money out

    @classmethod
    def from_value(cls, value: "str | TransactionType") -> "TransactionType":
        """Coerce a string such as "Income" into a TransactionType.

        Args:
            value: Enum member or its (case-insensitive) value.

        Returns:
            Matching TransactionType.

        Raises:
            ValueError: If the value names no transaction type.
        """
        if isinstance(value, cls):
            return value
        return cls(str(value).strip().lower())


@dataclass(frozen=True)
class EMIDetails:
    """Installment position of an EMI payment ("3 of 12")."""

    current_installment: Optional[int] = None
    total_installments: Optional[int] = None


@dataclass(frozen=True)
class TransactionRecord:
    """Finalized transaction in the shape handed to the persistence layer.

    Every import path (SMS, CSV, manual) reduces to this shape.
    """

    type: TransactionType
    amount: Decimal
    source: str
    category: str
    date: date
    description: str
    imported_from: str = "manual"
    original_text: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        """Return a plain dict suitable for a document store."""
        data: dict[str, Any] = {
            "type": self.type.value,
            "amount": self.amount,
            "source": self.source,
            "category": self.category,
            "date": self.date,
            "description": self.description,
            "importedFrom": self.imported_from,
        }
        if self.original_text is not None:
            data["originalText"] = self.original_text
        return data


@dataclass(frozen=True)
class TransactionCandidate:
    """Provisional transaction produced by a parser or mapper.

    Candidates are never mutated; use with_changes() to derive an edited
    copy. The original text or row is kept for display and audit.

    Attributes:
        amount: Non-negative amount; 0 marks the candidate invalid.
        date: Transaction date (today when the source had none).
        type: Income or expense.
        source: Merchant or counterparty.
        category: Category name, "Other" when unknown.
        description: Free-text note.
        origin: Which importer produced the candidate ("sms", "csv", "manual").
        confidence: Heuristic 0-100 score (SMS only).
        is_emi: Whether the SMS looked like a loan installment.
        emi_details: Installment numbers when present.
        balance_after: Account balance stated by the source text.
        account_last4: Last four account digits stated by the source text.
        original_text: SMS body the candidate came from.
        original_row: CSV row the candidate came from.
        selected: Whether the candidate is picked for import.
        matched_rule_id: Categorization rule that set type/category.
        row_index: Position of the source row or message.
    """

    amount: Decimal
    date: date
    type: TransactionType
    source: str
    category: str = "Other"
    description: str = ""
    origin: str = "manual"
    confidence: Optional[int] = None
    is_emi: bool = False
    emi_details: Optional[EMIDetails] = None
    balance_after: Optional[Decimal] = None
    account_last4: Optional[str] = None
    original_text: Optional[str] = None
    original_row: Optional[dict[str, str]] = field(default=None, compare=False)
    selected: bool = True
    matched_rule_id: Optional[str] = None
    row_index: Optional[int] = None

    @property
    def is_valid(self) -> bool:
        """A candidate with no positive amount is discarded by convention."""
        return self.amount > 0

    def with_changes(self, **changes: Any) -> "TransactionCandidate":
        """Return a copy with the given fields replaced.

        Args:
            **changes: Field names and their new values.

        Returns:
            New TransactionCandidate.
        """
        if "type" in changes:
            changes["type"] = TransactionType.from_value(changes["type"])
        return replace(self, **changes)

    def to_record(self) -> TransactionRecord:
        """Reduce this candidate to the common persisted shape.

        Returns:
            TransactionRecord for the persistence layer.
        """
        description = self.description
        original_text = None
        if self.origin == "sms":
            description = "Imported from SMS" + (" (EMI)" if self.is_emi else "")
            if self.original_text:
                original_text = self.original_text[:ORIGINAL_TEXT_LIMIT]
        elif self.origin == "csv" and not description:
            description = "Imported from CSV"

        return TransactionRecord(
            type=self.type,
            amount=self.amount,
            source=self.source,
            category=self.category,
            date=self.date,
            description=description,
            imported_from=self.origin,
            original_text=original_text,
        )

    def __repr__(self) -> str:
        return (
            f"TransactionCandidate(date={self.date}, type={self.type.value}, "
            f"amount={self.amount}, source={self.source[:30]!r})"
        )
