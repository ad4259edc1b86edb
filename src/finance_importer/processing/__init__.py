"""Processing modules for rule categorization, duplicate detection and import."""

from finance_importer.processing.deduplicator import HoldingDeduplicator
from finance_importer.processing.importer import import_holdings, import_transactions
from finance_importer.processing.rule_engine import RuleEngine, apply_rules

__all__ = [
    "HoldingDeduplicator",
    "RuleEngine",
    "apply_rules",
    "import_holdings",
    "import_transactions",
]
