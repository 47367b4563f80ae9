"""
importcost_services.recalculation -- Recompute every lot of a container.

Responsibility:
    Load a container snapshot, prorate its expenses, price every lot and
    write the cached fields of all lots back in one write set.

Architecture position:
    Services -- orchestrates importcost_engines.proration and
    importcost_engines.pricing over a ContainerRepository port.

Invariants enforced:
    - Load, recompute, write: every result is computed before the first
      write is issued, and all writes happen inside the caller's
      transaction.  A failure part-way leaves nothing to commit.
    - Pricing rate = container override for the hard currency, else the
      currency's default rate.
    - Every lot's shrinkage % is replaced by the container shrinkage % and
      its margin % by the container levy-plus-margin % on every run.  The
      lot override columns are therefore informational only.

Failure modes:
    - ContainerNotFoundError from the repository.
    - ExchangeRateNotFoundError when the hard currency or an expense
      currency has no rate.

Usage:
    with transaction_scope(factory) as session:
        orchestrator = RecalculationOrchestrator(SqlContainerRepository(session))
        orchestrator.recalculate_container(container_id)
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from importcost_engines.pricing import (
    ContainerTotals,
    PricingCalculator,
    PricingInput,
    PricingResult,
    summarize_container,
)
from importcost_engines.proration import ExpenseProrationEngine, LotValue, ProrationResult
from importcost_kernel.domain.records import ContainerSnapshot, LotResult, LotSnapshot
from importcost_kernel.exceptions import ExchangeRateNotFoundError
from importcost_kernel.logging_config import LogContext, get_logger
from importcost_services.ports import ContainerRepository

logger = get_logger("services.recalculation")


@dataclass(frozen=True)
class LotPricing:
    lot: LotSnapshot
    pricing: PricingResult


@dataclass(frozen=True)
class ContainerComputation:
    """Everything one recalculation derives for a container."""

    snapshot: ContainerSnapshot
    exchange_rate: Decimal
    proration: ProrationResult
    lots: tuple[LotPricing, ...]
    lot_results: tuple[LotResult, ...]
    totals: ContainerTotals


class RecalculationOrchestrator:
    """
    Contract:
        Receives the ContainerRepository by constructor injection; the
        engines are optional and default to fresh instances.
    Non-goals:
        - Does not commit.  The caller's transaction_scope does.
    """

    def __init__(
        self,
        containers: ContainerRepository,
        calculator: PricingCalculator | None = None,
        proration: ExpenseProrationEngine | None = None,
    ):
        self._containers = containers
        self._calculator = calculator or PricingCalculator()
        self._proration = proration or ExpenseProrationEngine()

    def compute(self, snapshot: ContainerSnapshot) -> ContainerComputation:
        """Pure part of the recalculation: no reads, no writes."""
        rate = snapshot.rate_for(snapshot.hard_currency_code)
        if rate is None:
            raise ExchangeRateNotFoundError(
                snapshot.hard_currency_code, str(snapshot.container_id)
            )

        overrides = {r.currency_code: r.rate for r in snapshot.rates}
        proration = self._proration.prorate(
            snapshot.expenses,
            [LotValue(lot.lot_id, lot.import_value_usd) for lot in snapshot.lots],
            overrides,
            snapshot.default_rates,
            container_id=snapshot.container_id,
        )

        pct = snapshot.percentages
        priced: list[LotPricing] = []
        results: list[LotResult] = []
        for lot in snapshot.lots:
            share = proration.share_for(lot.lot_id)
            pricing = self._calculator.calculate(
                PricingInput(
                    quantity=lot.quantity,
                    import_value_usd=lot.import_value_usd,
                    expense_share_local=share,
                    shrinkage_percent=pct.shrinkage,
                    margin_percent=pct.profit_margin,
                    exchange_rate=rate,
                    split=pct.split,
                    commercial_margin_percent=pct.commercial_margin,
                    fiscal_median=lot.fiscal_median,
                    cash_median=lot.cash_median,
                    other_expenses_percent=pct.other_expenses,
                )
            )
            priced.append(LotPricing(lot=lot, pricing=pricing))
            results.append(
                LotResult(
                    lot_id=lot.lot_id,
                    shrinkage_percent=pct.shrinkage,
                    margin_percent=pct.levy_margin,
                    unit_cost_usd=pricing.unit_cost_usd,
                    sale_price_usd=pricing.sale_price_usd,
                    sale_price_local=pricing.sale_price_local,
                    expense_share_local=share,
                )
            )

        totals = summarize_container(
            [p.lot.quantity for p in priced], [p.pricing for p in priced]
        )
        return ContainerComputation(
            snapshot=snapshot,
            exchange_rate=rate,
            proration=proration,
            lots=tuple(priced),
            lot_results=tuple(results),
            totals=totals,
        )

    def summarize(self, container_id: UUID) -> ContainerComputation:
        """Read-only: compute without writing."""
        return self.compute(self._containers.load_snapshot(container_id))

    def recalculate_container(self, container_id: UUID) -> ContainerComputation:
        with LogContext.bind(container_id=container_id):
            snapshot = self._containers.load_snapshot(container_id)
            computation = self.compute(snapshot)
            self._containers.write_lot_results(container_id, computation.lot_results)
            logger.info(
                "container_recalculated",
                extra={
                    "lot_count": len(computation.lot_results),
                    "exchange_rate": str(computation.exchange_rate),
                    "total_expense_local": str(computation.proration.total_expense_local),
                },
            )
        return computation
