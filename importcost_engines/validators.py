"""
Module: importcost_engines.validators
Responsibility:
    Checks that run around a distribution without changing anything:
    stock sufficiency (after a preview, or before one from raw
    percentages), transfer-date conflicts with import dates, and the
    largest share of a transfer pool one product's stock can cover.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Stocks and FIFO lots are
    resolved by the distribution service and passed in.

Invariants enforced:
    - Validation failures are results with human-readable reasons, never
      exceptions.
    - Stock 0 is always reported as "no inventory"; otherwise required
      units above stock are reported as insufficient.
    - Coverable transfers for a product = (sum over channels of stock x
      channel % x channel price) x fiscal %: the fiscal share of the
      revenue its whole stock can yield.
    - Date conflicts compare calendar dates only.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from importcost_engines.distribution import (
    CHANNEL_ORDER,
    DistributionPreview,
    ProductContext,
    channel_targets,
)
from importcost_kernel.domain.records import AllocationEntry, FifoLot, TransferRecord
from importcost_kernel.domain.values import HUNDRED, ZERO, floor_to, percent_of, safe_div
from importcost_kernel.logging_config import get_logger

logger = get_logger("engines.validators")


@dataclass(frozen=True)
class StockCheckDetail:
    product_id: UUID
    product_name: str
    available_stock: int
    required_units: int
    coverable_transfers: Decimal = ZERO
    percent: Decimal = ZERO


@dataclass(frozen=True)
class StockValidationResult:
    valid: bool
    reasons: tuple[str, ...]
    details: tuple[StockCheckDetail, ...] = ()
    total_coverable_transfers: Decimal = ZERO


@dataclass(frozen=True)
class DateExclusion:
    product_id: UUID
    product_name: str
    import_date: date
    reason: str


@dataclass(frozen=True)
class TransferConflict:
    transfer: TransferRecord
    excluded_products: tuple[DateExclusion, ...]


@dataclass(frozen=True)
class DateValidationResult:
    valid: bool
    conflicts: tuple[TransferConflict, ...]


@dataclass(frozen=True)
class MaxAllocation:
    max_percent: Decimal
    available_stock: int
    max_units: int
    max_transfer: Decimal


def coverable_transfers(stock: int, lot: FifoLot) -> Decimal:
    """Fiscal share of the revenue the whole stock yields at FIFO prices."""
    value = sum(
        (
            percent_of(Decimal(stock), lot.split.for_channel(c)) * lot.price_for(c)
            for c in CHANNEL_ORDER
        ),
        ZERO,
    )
    return percent_of(value, lot.split.fiscal)


def _stock_reason(name: str, available: int, required: int, as_of: date) -> str | None:
    if available == 0:
        return f"{name}: no inventory"
    if available < required:
        return (
            f"{name}: insufficient stock at {as_of.isoformat()} "
            f"(available: {available}, required: {required})"
        )
    return None


class StockValidator:
    """Stock sufficiency, post-hoc and pre-flight."""

    def validate_distribution(
        self,
        preview: DistributionPreview,
        stocks: Mapping[UUID, int],
    ) -> StockValidationResult:
        """Compare each product's required units with its stock at period end."""
        reasons: list[str] = []
        details: list[StockCheckDetail] = []
        for allocation in preview.products:
            available = stocks.get(allocation.product_id, 0)
            required = allocation.total_units
            details.append(
                StockCheckDetail(
                    product_id=allocation.product_id,
                    product_name=allocation.product_name,
                    available_stock=available,
                    required_units=required,
                    percent=allocation.percent,
                )
            )
            reason = _stock_reason(allocation.product_name, available, required, preview.period_end)
            if reason:
                reasons.append(reason)

        if reasons:
            logger.info("stock_validation_failed", extra={"reason_count": len(reasons)})
        return StockValidationResult(
            valid=not reasons,
            reasons=tuple(reasons),
            details=tuple(details),
        )

    def validate_preflight(
        self,
        total_transfers: Decimal,
        allocation: Sequence[AllocationEntry],
        products: Mapping[UUID, ProductContext],
        as_of: date,
    ) -> StockValidationResult:
        """
        Derive required units and coverable transfers before any preview.

        Flags per-product insufficiency, products with no lot, and aggregate
        liquidity: transfers larger than what all selected stock can cover.
        """
        reasons: list[str] = []
        details: list[StockCheckDetail] = []
        total_coverable = ZERO

        for entry in allocation:
            ctx = products.get(entry.product_id)
            if ctx is None:
                reasons.append(f"Product {entry.product_id} not found")
                continue
            name = ctx.product.name
            if ctx.lot is None:
                reasons.append(f"{name}: no imports available up to {as_of.isoformat()}")
                continue

            targets = channel_targets(percent_of(total_transfers, entry.percent), ctx.lot)
            coverable = coverable_transfers(ctx.stock, ctx.lot)
            total_coverable += coverable
            details.append(
                StockCheckDetail(
                    product_id=entry.product_id,
                    product_name=name,
                    available_stock=ctx.stock,
                    required_units=targets.total_units,
                    coverable_transfers=coverable,
                    percent=entry.percent,
                )
            )
            reason = _stock_reason(name, ctx.stock, targets.total_units, as_of)
            if reason:
                reasons.append(reason)

        if total_transfers > total_coverable:
            reasons.append(
                f"Insufficient liquidity: transfers ({total_transfers}) exceed what "
                f"stock can cover ({total_coverable})"
            )

        if reasons:
            logger.info("stock_preflight_failed", extra={"reason_count": len(reasons)})
        return StockValidationResult(
            valid=not reasons,
            reasons=tuple(reasons),
            details=tuple(details),
            total_coverable_transfers=total_coverable,
        )


class DateConflictValidator:
    """Transfers dated before a candidate product's FIFO import date."""

    def validate(
        self,
        transfers: Sequence[TransferRecord],
        products: Mapping[UUID, ProductContext],
    ) -> DateValidationResult:
        dated = [
            (pid, ctx.product.name, ctx.lot.import_date)
            for pid, ctx in products.items()
            if ctx.lot is not None
        ]
        conflicts: list[TransferConflict] = []
        for transfer in transfers:
            exclusions = tuple(
                DateExclusion(
                    product_id=pid,
                    product_name=name,
                    import_date=imported,
                    reason=(
                        f"{name} was imported on {imported.isoformat()}, after the "
                        f"transfer of {transfer.transfer_date.isoformat()}"
                    ),
                )
                for pid, name, imported in dated
                if imported > transfer.transfer_date
            )
            if exclusions:
                conflicts.append(TransferConflict(transfer=transfer, excluded_products=exclusions))

        if conflicts:
            logger.info("date_conflicts_found", extra={"conflict_count": len(conflicts)})
        return DateValidationResult(valid=not conflicts, conflicts=tuple(conflicts))


def max_allocation_percent(
    stock: int,
    lot: FifoLot | None,
    total_transfers: Decimal,
) -> MaxAllocation:
    """
    Largest share of the transfer pool the product's stock can back.

    Floored to 2 decimals and capped at 100; 100 when the pool is empty;
    0 when there is no lot or no stock.
    """
    if lot is None or stock <= 0:
        return MaxAllocation(ZERO, 0, 0, ZERO)
    max_transfer = coverable_transfers(stock, lot)
    if total_transfers > ZERO:
        percent = min(HUNDRED, safe_div(max_transfer, total_transfers) * HUNDRED)
    else:
        percent = HUNDRED
    return MaxAllocation(
        max_percent=floor_to(percent, 2),
        available_stock=stock,
        max_units=stock,
        max_transfer=max_transfer,
    )
