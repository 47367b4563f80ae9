"""
Module: importcost_engines.stock
Responsibility:
    Fold inventory movements into stock at an as-of date.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  The StockLedger service
    supplies the movements; this module only folds them.

Invariants enforced:
    - Only movements dated on or before the as-of date count (date-only
      comparison of the movement timestamp).
    - ENTRY and ADJUSTMENT_IN add; EXIT, SHRINKAGE and ADJUSTMENT_OUT
      subtract.
    - The folded result is floored at zero.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date

from importcost_kernel.domain.records import MovementRecord


def movement_date(movement: MovementRecord) -> date:
    return movement.occurred_at.date()


def signed_total(movements: Iterable[MovementRecord], as_of: date) -> int:
    """Unclamped signed sum of movements dated on or before as_of."""
    return sum(
        m.signed_quantity for m in movements if movement_date(m) <= as_of
    )


def fold_movements(movements: Iterable[MovementRecord], as_of: date) -> int:
    """Stock at the end of as_of, floored at zero."""
    return max(0, signed_total(movements, as_of))
