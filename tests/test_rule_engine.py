"""Tests for user categorization rules."""

from datetime import date
from decimal import Decimal

import pytest

from finance_importer.models.category import CategorizationRule, MatchType
from finance_importer.models.transaction import TransactionCandidate, TransactionType
from finance_importer.parsers.sms_parser import SMSParser
from finance_importer.processing.rule_engine import RuleEngine, apply_rules


@pytest.fixture
def rules() -> list[CategorizationRule]:
    """Ordered rules with an overlapping pair."""
    return [
        CategorizationRule(
            pattern="swiggy instamart",
            type=TransactionType.EXPENSE,
            category="Shopping",
            id="instamart",
        ),
        CategorizationRule(
            pattern="swiggy", type=TransactionType.EXPENSE, category="Food", id="swiggy"
        ),
        CategorizationRule(
            pattern="ACME CORP",
            type=TransactionType.INCOME,
            category="Salary",
            match_type=MatchType.EXACT,
            id="employer",
        ),
    ]


def make_candidate(source: str, **kwargs) -> TransactionCandidate:
    """Build a CSV-style candidate."""
    defaults = {
        "amount": Decimal("100"),
        "date": date(2025, 1, 1),
        "type": TransactionType.EXPENSE,
        "source": source,
        "origin": "csv",
    }
    defaults.update(kwargs)
    return TransactionCandidate(**defaults)


class TestApplyRules:
    """Tests for apply_rules."""

    def test_first_matching_rule_wins(self, rules: list[CategorizationRule]) -> None:
        """Test list order decides between overlapping rules."""
        match = apply_rules(rules, "Swiggy Instamart order")

        assert match.category == "Shopping"
        assert match.matched_rule_id == "instamart"

    def test_case_insensitive_contains(self, rules: list[CategorizationRule]) -> None:
        """Test substring matching ignores case."""
        match = apply_rules(rules, "UPI-SWIGGY-BLR")
        assert match.matched_rule_id == "swiggy"

    def test_exact_match(self, rules: list[CategorizationRule]) -> None:
        """Test exact rules need the whole source."""
        assert apply_rules(rules, "acme corp").type == TransactionType.INCOME
        assert apply_rules(rules, "Acme Corp Payroll") is None

    @pytest.mark.parametrize("source", ["", None])
    def test_empty_source(self, rules: list[CategorizationRule], source) -> None:
        """Test empty sources never match."""
        assert apply_rules(rules, source) is None

    def test_no_rules(self) -> None:
        """Test an empty rule list."""
        assert apply_rules([], "Swiggy") is None
        assert apply_rules(None, "Swiggy") is None


class TestRuleEngine:
    """Tests for RuleEngine.categorize."""

    def test_default_category_filled(self, rules: list[CategorizationRule]) -> None:
        """Test an 'Other' candidate gets the rule's category and id."""
        engine = RuleEngine(rules)
        original = make_candidate("ACME CORP", category="Other", type=TransactionType.INCOME)

        result = engine.categorize([original])

        assert result[0].category == "Salary"
        assert result[0].matched_rule_id == "employer"
        # Input candidates are left untouched
        assert original.category == "Other"
        assert original.matched_rule_id is None

    def test_type_from_source_kept(self) -> None:
        """Test a debit SMS stays an expense when an income rule matches."""
        parsed = SMSParser().parse(
            "Rs.500.00 debited from A/c XX1234 on 15-01-2025 at SWIGGY. Avl Bal: Rs.12,500.00"
        )
        candidate = parsed.to_candidate().with_changes(category="Other")
        income_rule = CategorizationRule(
            pattern="swig", type=TransactionType.INCOME, category="Freelance", id="odd"
        )

        result = RuleEngine([income_rule]).categorize([candidate])

        assert result[0].type == TransactionType.EXPENSE
        assert result[0].category == "Freelance"

    def test_existing_category_kept(self, rules: list[CategorizationRule]) -> None:
        """Test a category already found by the importer is not replaced."""
        candidate = make_candidate("Swiggy", category="Food")

        result = RuleEngine(rules).categorize([candidate])

        assert result[0] is candidate
        assert result[0].matched_rule_id is None

    def test_unmatched_passed_through(self, rules: list[CategorizationRule]) -> None:
        """Test unmatched candidates are returned as-is."""
        candidate = make_candidate("Corner Pharmacy", category="Health")

        result = RuleEngine(rules).categorize([candidate])

        assert result[0] is candidate

    def test_order_preserved(self, rules: list[CategorizationRule]) -> None:
        """Test output order follows input order."""
        candidates = [make_candidate("Cafe"), make_candidate("Swiggy"), make_candidate("Bus")]

        result = RuleEngine(rules).categorize(candidates)

        assert [c.source for c in result] == ["Cafe", "Swiggy", "Bus"]
        assert [c.matched_rule_id for c in result] == [None, "swiggy", None]


class TestCategorizationRule:
    """Tests for CategorizationRule construction."""

    def test_from_dict(self) -> None:
        """Test building a rule from a YAML mapping."""
        rule = CategorizationRule.from_dict(
            {"id": 7, "pattern": "Uber", "type": "Expense", "category": "Transportation",
             "matchType": "EXACT"}
        )

        assert rule.id == "7"
        assert rule.type == TransactionType.EXPENSE
        assert rule.match_type == MatchType.EXACT
        assert rule.matches("uber")
        assert not rule.matches("uber eats")

    def test_from_dict_defaults(self) -> None:
        """Test defaults for type, match type and id."""
        rule = CategorizationRule.from_dict({"pattern": "rent", "category": "Rent"})

        assert rule.type == TransactionType.EXPENSE
        assert rule.match_type == MatchType.CONTAINS
        assert rule.id

    def test_from_dict_missing_key(self) -> None:
        """Test a rule without a category."""
        with pytest.raises(KeyError):
            CategorizationRule.from_dict({"pattern": "rent"})

    def test_from_dict_bad_type(self) -> None:
        """Test an unknown transaction type."""
        with pytest.raises(ValueError):
            CategorizationRule.from_dict({"pattern": "x", "category": "Other", "type": "transfer"})
