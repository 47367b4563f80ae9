"""
importcost_services.fifo -- FIFO lot lookup for a product at a date.

Loads the candidate lots through a LotCatalog and lets
importcost_engines.fifo pick and price the oldest one.
"""

from __future__ import annotations

from datetime import date
from uuid import UUID

from importcost_engines.fifo import select_fifo_lot
from importcost_kernel.domain.records import FifoLot
from importcost_kernel.logging_config import get_logger
from importcost_services.ports import LotCatalog

logger = get_logger("services.fifo")


class FIFOLotResolver:
    def __init__(self, lots: LotCatalog):
        self._lots = lots

    def resolve(self, product_id: UUID, as_of: date) -> FifoLot | None:
        """Oldest lot of the product imported on or before as_of, or None."""
        lot = select_fifo_lot(self._lots.candidates_for(product_id, as_of), as_of)
        logger.debug(
            "fifo_lot_resolved",
            extra={
                "product_id": str(product_id),
                "as_of": as_of,
                "lot_id": str(lot.lot_id) if lot else None,
            },
        )
        return lot
