"""
Module: importcost_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines.  This is the canonical import surface for
    importcost_services.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import importcost_kernel (domain, exceptions, logging).
    MUST NOT import importcost_services or importcost_config.

Invariants enforced:
    - Purity: engines never read the clock; every date is a parameter.
    - Decimal-only arithmetic for money, rates and percentages.
    - Determinism: identical inputs (and an identically seeded random
      generator where one is injected) produce identical outputs.

Audit relevance:
    Engine entry points are wrapped by ``@traced_engine`` and emit
    IMPORTCOST_ENGINE_TRACE records with an input fingerprint.
"""

from importcost_engines.calendar import BusinessCalendar, PeriodDays, partition_period
from importcost_engines.day_distribution import DayQuantity, make_rng, spread_quantity
from importcost_engines.distribution import (
    ChannelTargets,
    DistributionPreview,
    DistributionRequest,
    ExcludedProduct,
    ProductAllocation,
    ProductContext,
    SalesDistributionEngine,
    auto_allocation,
    channel_targets,
    normalize_allocation,
)
from importcost_engines.fifo import LotCandidate, select_fifo_lot
from importcost_engines.pricing import (
    ContainerTotals,
    PricingCalculator,
    PricingInput,
    PricingResult,
    summarize_container,
)
from importcost_engines.proration import (
    ExpenseProrationEngine,
    LotShare,
    LotValue,
    ProrationResult,
)
from importcost_engines.sale_totals import SaleTotals, sale_totals
from importcost_engines.stock import fold_movements, signed_total
from importcost_engines.validators import (
    DateConflictValidator,
    DateValidationResult,
    MaxAllocation,
    StockValidationResult,
    StockValidator,
    TransferConflict,
    max_allocation_percent,
)

__all__ = [
    "BusinessCalendar",
    "ChannelTargets",
    "ContainerTotals",
    "DateConflictValidator",
    "DateValidationResult",
    "DayQuantity",
    "DistributionPreview",
    "DistributionRequest",
    "ExcludedProduct",
    "ExpenseProrationEngine",
    "LotCandidate",
    "LotShare",
    "LotValue",
    "MaxAllocation",
    "PeriodDays",
    "PricingCalculator",
    "PricingInput",
    "PricingResult",
    "ProductAllocation",
    "ProductContext",
    "ProrationResult",
    "SaleTotals",
    "SalesDistributionEngine",
    "StockValidationResult",
    "StockValidator",
    "TransferConflict",
    "auto_allocation",
    "channel_targets",
    "fold_movements",
    "make_rng",
    "max_allocation_percent",
    "normalize_allocation",
    "partition_period",
    "sale_totals",
    "select_fifo_lot",
    "signed_total",
    "spread_quantity",
    "summarize_container",
]
