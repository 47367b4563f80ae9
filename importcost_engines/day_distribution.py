"""
Module: importcost_engines.day_distribution
Responsibility:
    Spread a unit count over a list of days in whole packs, with a bounded
    random variance around the even share per day.

Architecture position:
    Engines -- pure calculation layer.  The random source is injected, so a
    seeded generator gives exact, repeatable output and production can stay
    non-deterministic.

Invariants enforced:
    - Conservation: the returned quantities sum to the requested quantity.
    - Fewer whole packs than days: one pack per day from the first day on,
      the sub-pack remainder added to the last of those days (or the first
      day alone when there is no whole pack).
    - Otherwise every day but the last receives at least one pack, no day
      before the last takes more than max(1, ceil(share x (1 + variance)))
      packs, the last day absorbs the remaining packs, and the sub-pack
      remainder goes to the first day holding the largest quantity.
    - Days with zero units are dropped.
"""

from __future__ import annotations

import math
import random
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from importcost_kernel.domain.values import ONE

DEFAULT_VARIANCE = Decimal("0.20")


@dataclass
class DayQuantity:
    day: date
    quantity: int


def make_rng(seed: int | None) -> random.Random:
    """Seeded generator for repeatable output, system entropy otherwise."""
    if seed is None:
        return random.SystemRandom()
    return random.Random(seed)


def spread_quantity(
    quantity: int,
    days: Sequence[date],
    pack_size: int,
    rng: random.Random,
    variance: Decimal = DEFAULT_VARIANCE,
) -> list[DayQuantity]:
    if pack_size < 1:
        raise ValueError(f"pack_size must be >= 1, got {pack_size}")
    if quantity < 0:
        raise ValueError(f"quantity must not be negative, got {quantity}")
    if not days or quantity == 0:
        return []
    if len(days) == 1:
        return [DayQuantity(days[0], quantity)]

    packs, loose = divmod(quantity, pack_size)

    if packs < len(days):
        result = [DayQuantity(days[i], pack_size) for i in range(packs)]
        if loose:
            if result:
                result[-1].quantity += loose
            else:
                result.append(DayQuantity(days[0], loose))
        return result

    share = Decimal(packs) / len(days)
    low = max(1, math.floor(share * (ONE - variance)))
    high = max(low, math.ceil(share * (ONE + variance)))

    result = []
    remaining = packs
    for index in range(len(days) - 1):
        days_after = len(days) - index - 1
        today = min(rng.randint(low, high), remaining - days_after)
        result.append(DayQuantity(days[index], today * pack_size))
        remaining -= today
    result.append(DayQuantity(days[-1], remaining * pack_size))

    if loose:
        busiest = result[0]
        for entry in result[1:]:
            if entry.quantity > busiest.quantity:
                busiest = entry
        busiest.quantity += loose

    return [entry for entry in result if entry.quantity > 0]
