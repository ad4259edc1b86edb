"""Sequential hand-off of accepted candidates to a persistence sink.

A sink is any callable taking one finalized record. A truthy return means
the record was stored; a falsy return or an exception counts the record as
failed. One failing record never aborts the rest of the batch.
"""

from collections.abc import Callable, Iterable
from typing import Any

from finance_importer.models.holding import HoldingCandidate
from finance_importer.models.report import ImportResult
from finance_importer.models.transaction import TransactionCandidate, TransactionRecord
from finance_importer.utils.logging_config import get_logger

logger = get_logger(__name__)

TransactionSink = Callable[[TransactionRecord], Any]
HoldingSink = Callable[[dict[str, Any]], Any]


def _deliver(sink: Callable[[Any], Any], record: Any, label: str) -> bool:
    """Hand one record to the sink, reporting whether it was accepted."""
    try:
        accepted = sink(record)
    except Exception as e:
        logger.warning(f"Failed to import {label}: {e}")
        return False

    if not accepted:
        logger.warning(f"Failed to import {label}: rejected by sink")
        return False
    return True


def import_transactions(
    candidates: Iterable[TransactionCandidate], sink: TransactionSink
) -> ImportResult:
    """Persist the selected transaction candidates one at a time.

    Candidates without a positive amount never reach the sink.

    Args:
        candidates: Reviewed candidates; unselected ones are ignored.
        sink: Callable storing one TransactionRecord.

    Returns:
        ImportResult with success and failed counts.
    """
    result = ImportResult()

    for candidate in candidates:
        if not candidate.selected:
            continue

        if not candidate.is_valid:
            logger.warning(
                f"Not importing {candidate.date} {candidate.source}: amount {candidate.amount}"
            )
            continue

        label = f"{candidate.date} {candidate.source} {candidate.amount}"
        if _deliver(sink, candidate.to_record(), label):
            result.success += 1
        else:
            result.failed += 1

    logger.info(f"Imported {result.success} transactions ({result.failed} failed)")
    return result


def import_holdings(
    candidates: Iterable[HoldingCandidate],
    sink: HoldingSink,
    source: str = "zerodha_import",
) -> ImportResult:
    """Persist the selected holding candidates one at a time.

    Rows without a symbol or with a non-positive quantity are counted as
    skipped and never reach the sink.

    Args:
        candidates: Reviewed candidates; unselected ones are ignored.
        sink: Callable storing one holding payload.
        source: Import source tag stored with each holding.

    Returns:
        ImportResult with success, failed and skipped counts.
    """
    result = ImportResult()

    for candidate in candidates:
        if not candidate.selected:
            continue

        if not candidate.is_importable:
            logger.debug(
                f"Skipping row {candidate.row_index}: "
                f"symbol={candidate.symbol!r} quantity={candidate.quantity}"
            )
            result.skipped += 1
            continue

        label = f"{candidate.symbol} (row {candidate.row_index})"
        if _deliver(sink, candidate.to_record(source), label):
            result.success += 1
        else:
            result.failed += 1

    logger.info(
        f"Imported {result.success} holdings "
        f"({result.failed} failed, {result.skipped} skipped)"
    )
    return result
