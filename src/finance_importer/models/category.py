"""Category vocabulary and user categorization rule models."""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from finance_importer.models.transaction import TransactionType
from finance_importer.utils.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_CATEGORY = "Other"

# Fixed category vocabulary per transaction type
CATEGORIES: dict[TransactionType, list[str]] = {
    TransactionType.INCOME: [
        "Salary", "Freelance", "Investment", "Gift", "Rent Income",
        "Interest", "Dividends", "Other",
    ],
    TransactionType.EXPENSE: [
        "Food", "Transportation", "Rent", "Utilities", "Entertainment",
        "Shopping", "Health", "EMI", "Other",
    ],
}


def categories_for(transaction_type: TransactionType) -> list[str]:
    """Return the category vocabulary for a transaction type."""
    return list(CATEGORIES[transaction_type])


def is_known_category(name: str) -> bool:
    """Check a category name against the whole vocabulary (case-insensitive).

    Args:
        name: Category name to check.

    Returns:
        True if any transaction type lists this category.
    """
    lowered = name.strip().lower()
    return any(
        lowered == category.lower()
        for names in CATEGORIES.values()
        for category in names
    )


class MatchType(Enum):
    """How a rule pattern is compared against a source string."""

    CONTAINS = "contains"  # "swig" matches "Swiggy Order"
    EXACT = "exact"  # Whole source must equal the pattern


@dataclass(frozen=True)
class RuleMatch:
    """Suggestion produced by the first matching rule."""

    type: TransactionType
    category: str
    matched_rule_id: str


@dataclass
class CategorizationRule:
    """User-defined rule mapping a source pattern to a type and category.

    Matching is case-insensitive. Rules are kept in an ordered list and the
    first match wins; there is no scoring between rules.

    Attributes:
        pattern: Text to look for in the source/vendor string.
        type: Transaction type to assign.
        category: Category to assign.
        match_type: Substring or whole-string comparison.
        id: Rule identifier.
    """

    pattern: str
    type: TransactionType
    category: str
    match_type: MatchType = MatchType.CONTAINS
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])

    def __post_init__(self) -> None:
        if not self.pattern.strip():
            logger.warning(f"Rule '{self.id}' has an empty pattern and will match every source")
        if not is_known_category(self.category):
            logger.debug(
                f"Rule '{self.id}' uses category '{self.category}' outside the standard vocabulary"
            )

    def matches(self, source: str) -> bool:
        """Check whether this rule applies to a source string.

        Args:
            source: Merchant or counterparty text.

        Returns:
            True if the (lowercased) pattern matches the (lowercased) source.
        """
        normalized_source = source.lower()
        pattern = self.pattern.lower()
        if self.match_type == MatchType.EXACT:
            return normalized_source == pattern
        return pattern in normalized_source

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "CategorizationRule":
        """Create a rule from a dictionary (e.g., from YAML config).

        Accepts both ``match_type`` and the camelCase ``matchType`` key used
        by exported rule documents.

        Args:
            data: Dictionary containing rule data.

        Returns:
            A new CategorizationRule instance.

        Raises:
            KeyError: If pattern or category is missing.
            ValueError: If type or match type is not recognized.
        """
        match_value = str(data.get("match_type", data.get("matchType", "contains"))).lower()
        rule_id: Optional[object] = data.get("id")

        kwargs: dict[str, object] = {}
        if rule_id is not None:
            kwargs["id"] = str(rule_id)

        return cls(
            pattern=str(data["pattern"]),
            type=TransactionType.from_value(str(data.get("type", "expense"))),
            category=str(data["category"]),
            match_type=MatchType(match_value),
            **kwargs,  # type: ignore[arg-type]
        )

    def __repr__(self) -> str:
        return (
            f"CategorizationRule(id={self.id!r}, pattern={self.pattern!r}, "
            f"match_type={self.match_type.value}, category={self.category!r})"
        )
