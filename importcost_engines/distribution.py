"""
Module: importcost_engines.distribution
Responsibility:
    Convert a pool of bank transfers into a FIFO-priced, channel-split,
    calendar-distributed sale preview.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  The distribution service
    resolves each product's FIFO lot and ledger stock and passes them in;
    randomness comes from an injected generator.

Algorithm:
    1. Partition the period's business days into transfer days and other
       days (importcost_engines.calendar).
    2. Build the allocation: the caller's percentages (MANUAL) or shares
       proportional to current stock among the selected products that have
       any (AUTO); then normalize so the percentages sum to exactly 100.
    3. Per product: FIFO lot and import date; usable days are those on or
       after the import date.
    4. Money to units.  Transfers fund the fiscal channel only, so a
       product's assigned amount A implies total revenue A / fiscal%.  Each
       channel's money target is total revenue x channel %, and its units
       are ceil(money / channel price).
    5. Fiscal units go on the product's transfer days; when none fall in
       its window and reassignment is allowed, on its first N business days
       (N = max(1, transfer-day count of the period)).  Hard-currency and
       cash units go on the product's other days.
    6. Units are spread in whole packs (importcost_engines.day_distribution).
    7. Lines are sorted by date then product name.

Invariants enforced:
    - For every distributed product and channel with a positive price,
      units x price >= money target (ceiling division, never undersell).
    - Products without a lot or without any usable day are excluded and
      reported, never an error.
    - Units that have no day to land on stay in the product summary and
      are reported as warnings.

Failure modes:
    - ValueError when the allocation percentages sum to zero.
"""

from __future__ import annotations

import random
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from uuid import UUID

from importcost_engines.calendar import BusinessCalendar, PeriodDays, partition_period
from importcost_engines.day_distribution import DEFAULT_VARIANCE, spread_quantity
from importcost_engines.tracer import traced_engine
from importcost_kernel.domain.records import (
    AllocationEntry,
    AllocationMode,
    Channel,
    FifoLot,
    ProductRecord,
    SaleLine,
    TransferRecord,
)
from importcost_kernel.domain.values import HUNDRED, ZERO, ceil_units, percent_of, safe_div
from importcost_kernel.logging_config import get_logger

logger = get_logger("engines.distribution")

CHANNEL_ORDER = (Channel.HARD_CURRENCY, Channel.FISCAL, Channel.CASH)


@dataclass(frozen=True)
class ProductContext:
    """
    What the engine needs to know about one product.

    ``stock`` is ledger stock at the period end; ``current_stock`` is the
    cached quantity on hand today, which weights AUTO allocation.
    """

    product: ProductRecord
    lot: FifoLot | None
    stock: int = 0
    current_stock: int = 0


@dataclass(frozen=True)
class DistributionRequest:
    period_start: date
    period_end: date
    transfers: tuple[TransferRecord, ...]
    allocation: tuple[AllocationEntry, ...]
    mode: AllocationMode = AllocationMode.MANUAL
    allow_fiscal_reassignment: bool = False

    def __post_init__(self) -> None:
        if self.period_end < self.period_start:
            raise ValueError(
                f"period_end {self.period_end} precedes period_start {self.period_start}"
            )
        object.__setattr__(self, "transfers", tuple(self.transfers))
        object.__setattr__(self, "allocation", tuple(self.allocation))
        object.__setattr__(self, "mode", AllocationMode(self.mode))

    @property
    def total_transfers(self) -> Decimal:
        return sum((t.amount for t in self.transfers), ZERO)


@dataclass(frozen=True)
class ChannelTargets:
    """Money targets and the unit counts that cover them, per channel."""

    assigned_amount: Decimal
    total_revenue: Decimal
    money: Mapping[Channel, Decimal]
    units: Mapping[Channel, int]
    prices: Mapping[Channel, Decimal]

    @property
    def total_units(self) -> int:
        return sum(self.units.values())

    @property
    def value(self) -> Decimal:
        return sum((self.prices[c] * self.units[c] for c in CHANNEL_ORDER), ZERO)


@dataclass(frozen=True)
class ProductAllocation:
    product_id: UUID
    product_name: str
    lot_id: UUID
    import_date: date
    percent: Decimal
    targets: ChannelTargets

    @property
    def total_units(self) -> int:
        return self.targets.total_units


@dataclass(frozen=True)
class ExcludedProduct:
    product_id: UUID
    product_name: str
    reason: str


@dataclass(frozen=True)
class DistributionPreview:
    """Read-only result of a distribution run. Nothing is persisted."""

    period_start: date
    period_end: date
    mode: AllocationMode
    total_transfers: Decimal
    products: tuple[ProductAllocation, ...]
    lines: tuple[SaleLine, ...]
    transfer_days: tuple[date, ...]
    other_days: tuple[date, ...]
    excluded: tuple[ExcludedProduct, ...] = ()
    warnings: tuple[str, ...] = field(default_factory=tuple)

    @property
    def total_units(self) -> int:
        return sum(p.total_units for p in self.products)

    @property
    def total_amount(self) -> Decimal:
        return sum((p.targets.value for p in self.products), ZERO)

    @property
    def line_units(self) -> int:
        return sum(line.quantity for line in self.lines)

    def units_by_product(self) -> dict[UUID, int]:
        return {p.product_id: p.total_units for p in self.products}


def normalize_allocation(entries: Sequence[AllocationEntry]) -> tuple[AllocationEntry, ...]:
    """
    Scale percentages so they sum to exactly 100.

    An empty allocation stays empty.

    Raises:
        ValueError: If the percentages sum to zero.
    """
    if not entries:
        return ()
    total = sum((e.percent for e in entries), ZERO)
    if total == ZERO:
        raise ValueError("Allocation percentages sum to zero")
    if total == HUNDRED:
        return tuple(entries)
    return tuple(
        AllocationEntry(product_id=e.product_id, percent=e.percent * HUNDRED / total)
        for e in entries
    )


def auto_allocation(stocks: Mapping[UUID, int]) -> tuple[AllocationEntry, ...]:
    """Shares proportional to stock; an equal split when total stock is zero."""
    if not stocks:
        return ()
    total = sum(stocks.values())
    if total == 0:
        equal = HUNDRED / len(stocks)
        return tuple(AllocationEntry(pid, equal) for pid in stocks)
    return tuple(
        AllocationEntry(pid, Decimal(stock) * HUNDRED / total)
        for pid, stock in stocks.items()
    )


def channel_targets(assigned_amount: Decimal, lot: FifoLot) -> ChannelTargets:
    """
    Invert the channel split: assigned transfers are the fiscal share.

    A zero fiscal percentage implies no revenue and therefore no units.
    """
    total_revenue = safe_div(assigned_amount, lot.split.fiscal / HUNDRED)
    money: dict[Channel, Decimal] = {}
    units: dict[Channel, int] = {}
    prices: dict[Channel, Decimal] = {}
    for channel in CHANNEL_ORDER:
        price = lot.price_for(channel)
        money[channel] = percent_of(total_revenue, lot.split.for_channel(channel))
        units[channel] = ceil_units(money[channel], price)
        prices[channel] = price
    return ChannelTargets(
        assigned_amount=assigned_amount,
        total_revenue=total_revenue,
        money=money,
        units=units,
        prices=prices,
    )


class SalesDistributionEngine:
    """
    Transfer-pool to sale-line allocation.

    Contract:
        ``preview`` is a function of its arguments and the state of the
        injected random generator.  Given a generator seeded identically,
        it returns identical previews.

    Non-goals:
        - Does not check stock; see importcost_engines.validators.
        - Does not resolve lots or read the ledger; callers supply
          ProductContext for every product in the allocation.
    """

    def __init__(
        self,
        calendar: BusinessCalendar | None = None,
        variance: Decimal = DEFAULT_VARIANCE,
    ):
        self._calendar = calendar or BusinessCalendar()
        self._variance = variance

    def build_allocation(
        self,
        request: DistributionRequest,
        products: Mapping[UUID, ProductContext],
    ) -> tuple[AllocationEntry, ...]:
        """The normalized allocation the preview will use."""
        if request.mode is AllocationMode.AUTO:
            stocks = {
                entry.product_id: products[entry.product_id].current_stock
                for entry in request.allocation
                if entry.product_id in products and products[entry.product_id].current_stock > 0
            }
            return normalize_allocation(auto_allocation(stocks))
        return normalize_allocation(request.allocation)

    @traced_engine("distribution", "1.0", fingerprint_fields=("request",))
    def preview(
        self,
        request: DistributionRequest,
        products: Mapping[UUID, ProductContext],
        rng: random.Random,
    ) -> DistributionPreview:
        total_transfers = request.total_transfers
        period = partition_period(
            self._calendar,
            request.period_start,
            request.period_end,
            (t.transfer_date for t in request.transfers),
        )
        allocation = self.build_allocation(request, products)

        logger.info(
            "distribution_started",
            extra={
                "mode": request.mode.value,
                "product_count": len(allocation),
                "transfer_count": len(request.transfers),
                "total_transfers": str(total_transfers),
                "business_days": len(period.business_days),
            },
        )

        allocations: list[ProductAllocation] = []
        lines: list[SaleLine] = []
        excluded: list[ExcludedProduct] = []
        warnings: list[str] = []

        if request.mode is AllocationMode.AUTO:
            allocated_ids = {entry.product_id for entry in allocation}
            for entry in request.allocation:
                ctx = products.get(entry.product_id)
                if ctx is None:
                    excluded.append(ExcludedProduct(entry.product_id, "", "unknown product"))
                elif entry.product_id not in allocated_ids:
                    excluded.append(
                        ExcludedProduct(entry.product_id, ctx.product.name, "no current stock")
                    )

        for entry in allocation:
            ctx = products.get(entry.product_id)
            if ctx is None:
                excluded.append(ExcludedProduct(entry.product_id, "", "unknown product"))
                continue
            name = ctx.product.name
            if ctx.lot is None:
                excluded.append(
                    ExcludedProduct(entry.product_id, name, "no lot imported by period end")
                )
                continue
            product_days = period.from_date(ctx.lot.import_date)
            if not product_days.business_days:
                excluded.append(
                    ExcludedProduct(
                        entry.product_id, name, "no business day on or after its import date"
                    )
                )
                continue

            assigned = percent_of(total_transfers, entry.percent)
            targets = channel_targets(assigned, ctx.lot)
            if ctx.lot.split.fiscal == ZERO and assigned > ZERO:
                warnings.append(f"{name}: fiscal channel is 0%, no units derived from transfers")

            allocations.append(
                ProductAllocation(
                    product_id=entry.product_id,
                    product_name=name,
                    lot_id=ctx.lot.lot_id,
                    import_date=ctx.lot.import_date,
                    percent=entry.percent,
                    targets=targets,
                )
            )

            fiscal_days = self._fiscal_days(
                period, product_days, request.allow_fiscal_reassignment
            )
            placements = (
                (Channel.FISCAL, fiscal_days),
                (Channel.HARD_CURRENCY, product_days.other_days),
                (Channel.CASH, product_days.other_days),
            )
            for channel, days in placements:
                units = targets.units[channel]
                if units == 0:
                    continue
                if not days:
                    warnings.append(
                        f"{name}: {units} {channel.value} units have no day to be placed on"
                    )
                    continue
                for spread in spread_quantity(
                    units, days, ctx.product.pack_size, rng, self._variance
                ):
                    lines.append(
                        SaleLine(
                            line_date=spread.day,
                            product_id=entry.product_id,
                            lot_id=ctx.lot.lot_id,
                            product_name=name,
                            channel=channel,
                            quantity=spread.quantity,
                            unit_price=targets.prices[channel],
                        )
                    )

        lines.sort(key=lambda line: (line.line_date, line.product_name))

        preview = DistributionPreview(
            period_start=request.period_start,
            period_end=request.period_end,
            mode=request.mode,
            total_transfers=total_transfers,
            products=tuple(allocations),
            lines=tuple(lines),
            transfer_days=period.transfer_days,
            other_days=period.other_days,
            excluded=tuple(excluded),
            warnings=tuple(warnings),
        )

        if excluded:
            logger.warning(
                "distribution_products_excluded",
                extra={"excluded": [str(e.product_id) for e in excluded]},
            )
        logger.info(
            "distribution_completed",
            extra={
                "line_count": len(lines),
                "total_units": preview.total_units,
                "total_amount": str(preview.total_amount),
                "warning_count": len(warnings),
            },
        )
        return preview

    @staticmethod
    def _fiscal_days(
        period: PeriodDays,
        product_days: PeriodDays,
        allow_reassignment: bool,
    ) -> tuple[date, ...]:
        if product_days.transfer_days:
            return product_days.transfer_days
        if allow_reassignment:
            count = max(1, len(period.transfer_days))
            return product_days.business_days[:count]
        return ()
