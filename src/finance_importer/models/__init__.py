"""Data models for transaction candidates, rules, holdings and import results."""

from finance_importer.models.category import (
    CATEGORIES,
    DEFAULT_CATEGORY,
    CategorizationRule,
    MatchType,
    RuleMatch,
    categories_for,
    is_known_category,
)
from finance_importer.models.holding import Holding, HoldingCandidate
from finance_importer.models.report import ImportResult
from finance_importer.models.transaction import (
    EMIDetails,
    TransactionCandidate,
    TransactionRecord,
    TransactionType,
)

__all__ = [
    "CATEGORIES",
    "DEFAULT_CATEGORY",
    "CategorizationRule",
    "MatchType",
    "RuleMatch",
    "categories_for",
    "is_known_category",
    "Holding",
    "HoldingCandidate",
    "ImportResult",
    "EMIDetails",
    "TransactionCandidate",
    "TransactionRecord",
    "TransactionType",
]
