"""Per-product and overall quantity/subtotal totals of a set of sale lines."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal
from uuid import UUID

from importcost_kernel.domain.records import Channel, SaleLine
from importcost_kernel.domain.values import Money


@dataclass
class ChannelTotal:
    quantity: int = 0
    subtotal: Decimal = Decimal("0")

    def add(self, quantity: int, subtotal: Decimal) -> None:
        self.quantity += quantity
        self.subtotal += subtotal


@dataclass
class TotalsRow:
    name: str
    by_channel: dict[Channel, ChannelTotal] = field(
        default_factory=lambda: {c: ChannelTotal() for c in Channel}
    )
    total: ChannelTotal = field(default_factory=ChannelTotal)

    def add(self, channel: Channel, quantity: int, subtotal: Decimal) -> None:
        self.by_channel[channel].add(quantity, subtotal)
        self.total.add(quantity, subtotal)


@dataclass
class SaleTotals:
    by_product: dict[UUID, TotalsRow]
    overall: TotalsRow
    currency: str

    @property
    def total_amount(self) -> Money:
        """Overall subtotal rounded to the sale currency's decimal places."""
        return Money.of(self.overall.total.subtotal, self.currency).round()


def sale_totals(lines: Iterable[SaleLine], currency: str) -> SaleTotals:
    by_product: dict[UUID, TotalsRow] = {}
    overall = TotalsRow(name="total")
    for line in lines:
        row = by_product.setdefault(line.product_id, TotalsRow(name=line.product_name))
        row.add(line.channel, line.quantity, line.subtotal)
        overall.add(line.channel, line.quantity, line.subtotal)
    return SaleTotals(by_product=by_product, overall=overall, currency=currency)
