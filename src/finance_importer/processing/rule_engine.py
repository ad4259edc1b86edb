"""Rule-based category suggestion for transactions."""

from collections.abc import Sequence
from typing import Optional

from finance_importer.models.category import DEFAULT_CATEGORY, CategorizationRule, RuleMatch
from finance_importer.models.transaction import TransactionCandidate
from finance_importer.utils.logging_config import get_logger

logger = get_logger(__name__)


def apply_rules(
    rules: Optional[Sequence[CategorizationRule]], source: Optional[str]
) -> Optional[RuleMatch]:
    """Find the first rule that applies to a source string.

    Args:
        rules: Ordered rule list; earlier rules take precedence.
        source: Merchant or counterparty text.

    Returns:
        RuleMatch for the first matching rule, or None if nothing matches.
    """
    if not source or not rules:
        return None

    for rule in rules:
        if rule.matches(source):
            return RuleMatch(type=rule.type, category=rule.category, matched_rule_id=rule.id)
    return None


class RuleEngine:
    """Applies user categorization rules to transaction candidates.

    A rule only fills in what the importer could not determine: the
    category is replaced when it is empty or still the default "Other".
    The transaction type read from the source ("debited", a negative
    amount, a type column) is never overridden.

    Candidates are immutable, so categorize() returns new objects for
    categorized candidates and passes the rest through unchanged.
    """

    def __init__(self, rules: Sequence[CategorizationRule]):
        """Initialize rule engine.

        Args:
            rules: Ordered rule list.
        """
        self.rules = list(rules)

    def match(self, source: Optional[str]) -> Optional[RuleMatch]:
        """Find the rule match for a single source string."""
        return apply_rules(self.rules, source)

    def categorize(
        self, candidates: Sequence[TransactionCandidate]
    ) -> list[TransactionCandidate]:
        """Apply rule suggestions to a batch of candidates.

        Args:
            candidates: Candidates to categorize.

        Returns:
            New list; candidates without a category that match a rule carry
            the rule's category and id.
        """
        result = []
        matched_count = 0

        for candidate in candidates:
            if candidate.category and candidate.category != DEFAULT_CATEGORY:
                result.append(candidate)
                continue

            match = self.match(candidate.source)
            if match is None:
                result.append(candidate)
                continue

            matched_count += 1
            logger.debug(
                f"Rule {match.matched_rule_id} matched '{candidate.source}' -> {match.category}"
            )
            result.append(
                candidate.with_changes(
                    category=match.category,
                    matched_rule_id=match.matched_rule_id,
                )
            )

        logger.info(
            f"Rules categorized {matched_count} of {len(result)} transactions "
            f"({len(self.rules)} rules)"
        )
        return result
