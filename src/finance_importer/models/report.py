"""Import summary models."""

from dataclasses import dataclass


@dataclass
class ImportResult:
    """Aggregate outcome of a sequential import.

    Attributes:
        success: Rows accepted by the persistence layer.
        failed: Rows the persistence layer rejected or raised on.
        skipped: Structurally invalid rows filtered before persistence
            (broker imports only).
    """

    success: int = 0
    failed: int = 0
    skipped: int = 0

    @property
    def total(self) -> int:
        """Total rows considered."""
        return self.success + self.failed + self.skipped

    def as_dict(self, include_skipped: bool = True) -> dict[str, int]:
        """Return the counts as a plain dict.

        Args:
            include_skipped: Whether to include the skipped counter.

        Returns:
            Dict with success/failed (and skipped) counts.
        """
        counts = {"success": self.success, "failed": self.failed}
        if include_skipped:
            counts["skipped"] = self.skipped
        return counts
