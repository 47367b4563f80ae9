"""
Module: importcost_engines.fifo
Responsibility:
    Pick the first-in lot of a product available at a date and derive its
    three channel prices in local currency.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  The FIFOLotResolver service
    loads the candidates; selection and pricing happen here.

Invariants enforced:
    - Only lots whose container import date <= as_of are eligible.
    - Ordering is deterministic: import date, then container id, then lot id.
    - hard-currency price = cached sale price USD x container hard-currency
      rate; fiscal price = fiscal median; cash price = cash median x 0.90.
    - A lot never recalculated (no cached sale price) prices the hard
      currency channel at zero.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from importcost_engines.pricing import CASH_PRICE_FACTOR
from importcost_kernel.domain.records import ChannelSplit, FifoLot
from importcost_kernel.domain.values import ZERO


@dataclass(frozen=True)
class LotCandidate:
    """A lot of the product as loaded for FIFO selection."""

    lot_id: UUID
    product_id: UUID
    container_id: UUID
    import_date: date
    split: ChannelSplit
    hard_currency_rate: Decimal
    sale_price_usd: Decimal | None
    fiscal_median: Decimal
    cash_median: Decimal


def _fifo_key(candidate: LotCandidate) -> tuple[date, str, str]:
    return (candidate.import_date, str(candidate.container_id), str(candidate.lot_id))


def price_candidate(candidate: LotCandidate) -> FifoLot:
    sale_price_usd = candidate.sale_price_usd if candidate.sale_price_usd is not None else ZERO
    return FifoLot(
        lot_id=candidate.lot_id,
        product_id=candidate.product_id,
        container_id=candidate.container_id,
        import_date=candidate.import_date,
        split=candidate.split,
        hard_currency_rate=candidate.hard_currency_rate,
        hard_currency_price=sale_price_usd * candidate.hard_currency_rate,
        fiscal_price=candidate.fiscal_median,
        cash_price=candidate.cash_median * CASH_PRICE_FACTOR,
    )


def select_fifo_lot(candidates: Iterable[LotCandidate], as_of: date) -> FifoLot | None:
    """Oldest eligible candidate, priced; None when nothing was imported by as_of."""
    eligible = [c for c in candidates if c.import_date <= as_of]
    if not eligible:
        return None
    return price_candidate(min(eligible, key=_fifo_key))
