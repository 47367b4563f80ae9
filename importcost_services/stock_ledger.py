"""
importcost_services.stock_ledger -- Historical stock from the movement ledger.

Responsibility:
    Answer "how many units of product P were on hand at the end of day D"
    by folding the append-only movement ledger.  The cached
    InventoryModel.current_quantity is never consulted.

Architecture position:
    Services -- reads through a MovementReader port, folds with
    importcost_engines.stock.

Invariants enforced:
    - No caching: each call re-reads and re-folds, so a movement recorded
      earlier in the same transaction is visible to the next call.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from uuid import UUID

from importcost_engines.stock import fold_movements
from importcost_services.ports import MovementReader


class StockLedger:
    def __init__(self, movements: MovementReader):
        self._movements = movements

    def stock_at(self, product_id: UUID, as_of: date) -> int:
        """Ledger stock at the end of as_of, floored at zero."""
        return fold_movements(self._movements.movements_for(product_id), as_of)

    def stocks_at(self, product_ids: Iterable[UUID], as_of: date) -> dict[UUID, int]:
        return {pid: self.stock_at(pid, as_of) for pid in product_ids}
