"""Duplicate holding detection."""

from collections.abc import Callable, Iterable, Sequence

from finance_importer.models.holding import Holding
from finance_importer.utils.logging_config import get_logger

logger = get_logger(__name__)


class HoldingDeduplicator:
    """Flags incoming broker rows whose symbol the user already holds.

    Symbols on both sides are normalized with the same cleaner before
    comparison, so "TCS.NS" in the portfolio matches an incoming "TCS".
    Matches are flagged for merge display, never dropped; merge arithmetic
    belongs to whatever persists the holding.
    """

    def __init__(self, existing_holdings: Iterable[Holding], normalize: Callable[[str], str]):
        """Initialize deduplicator.

        Args:
            existing_holdings: Holdings the user already owns.
            normalize: Symbol cleaner applied to both sides.
        """
        self.normalize = normalize
        self.known_symbols = {
            normalize(h.symbol) for h in existing_holdings if h.symbol
        }
        self.known_symbols.discard("")

    def is_duplicate(self, symbol: str) -> bool:
        """Check a single incoming symbol against the existing holdings."""
        if not symbol:
            return False
        return self.normalize(symbol) in self.known_symbols

    def find_duplicates(self, symbols: Sequence[str]) -> set[int]:
        """Return the indices of incoming symbols that are already held.

        Args:
            symbols: Raw incoming symbols, one per statement row.

        Returns:
            Set of row indices flagged as duplicates.
        """
        duplicates = {i for i, symbol in enumerate(symbols) if self.is_duplicate(symbol)}
        if duplicates:
            logger.info(
                f"Flagged {len(duplicates)} of {len(symbols)} rows as existing holdings"
            )
        return duplicates
