"""Investment holding models for broker statement imports."""

from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from typing import Any, Optional

from finance_importer.utils.decimal_utils import ZERO, safe_decimal


@dataclass(frozen=True)
class Holding:
    """A holding the user already owns.

    Attributes:
        symbol: Ticker as stored (may carry an exchange suffix like ".NS").
        quantity: Number of units held.
        avg_price: Average buy price per unit.
    """

    symbol: str
    quantity: Decimal = ZERO
    avg_price: Decimal = ZERO

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "Holding":
        """Create a Holding from a dictionary (YAML or CSV row).

        Args:
            data: Dictionary with ``symbol`` and optional ``quantity`` and
                ``avg_price``/``avgPrice``/``buyPrice``.

        Returns:
            A new Holding instance.
        """
        price = data.get("avg_price", data.get("avgPrice", data.get("buyPrice")))
        return cls(
            symbol=str(data["symbol"]).strip(),
            quantity=safe_decimal(data.get("quantity")),
            avg_price=safe_decimal(price),
        )


@dataclass(frozen=True)
class HoldingCandidate:
    """Normalized broker statement row awaiting review.

    Attributes:
        symbol: Cleaned ticker (no exchange or segment suffix).
        quantity: Units; 1 when the statement has no quantity column.
        avg_price: Average cost per unit (trade price for tradebooks).
        current_price: Last traded price, if reported.
        pnl: Reported profit and loss, if any.
        trade_type: BUY/SELL for tradebook rows.
        trade_date: Trade date for tradebook rows.
        row_index: Position of the row in the statement.
        original_row: The raw statement row.
        is_duplicate: Symbol already exists in the user's holdings.
        selected: Whether the row is picked for import.
    """

    symbol: str
    quantity: Decimal
    avg_price: Decimal
    current_price: Optional[Decimal] = None
    pnl: Optional[Decimal] = None
    trade_type: Optional[str] = None
    trade_date: Optional[date] = None
    row_index: int = 0
    original_row: Optional[dict[str, str]] = field(default=None, compare=False)
    is_duplicate: bool = False
    selected: bool = True

    @property
    def is_importable(self) -> bool:
        """Rows without a symbol or with no positive quantity are skipped."""
        return bool(self.symbol) and self.quantity > 0

    def with_changes(self, **changes: Any) -> "HoldingCandidate":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    def to_record(self, source: str = "zerodha_import") -> dict[str, Any]:
        """Return the payload handed to the "add holding" operation.

        Args:
            source: Import source tag stored with the holding.

        Returns:
            Dict with symbol, name, quantity, buy price and source.
        """
        return {
            "symbol": self.symbol,
            "name": self.symbol,
            "quantity": self.quantity,
            "buyPrice": self.avg_price,
            "source": source,
        }
