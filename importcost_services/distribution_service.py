"""
importcost_services.distribution_service -- Preview and validate sale distributions.

Responsibility:
    Resolve, for each product of an allocation, its FIFO lot and ledger
    stock at the period end, then run the pure distribution engine and the
    stock/date validators over them.

Architecture position:
    Services -- read-only.  Composes ProductCatalog, StockLedger and
    FIFOLotResolver with importcost_engines.distribution and
    importcost_engines.validators.

Invariants enforced:
    - Nothing is written: a preview can be discarded freely.
    - FIFO lots and stocks are resolved as of the period end.
    - Randomness comes only from the generator passed to
      ``preview_distribution`` (or one built from its seed).

Usage:
    service = DistributionService.from_session(session, settings)
    preview = service.preview_distribution(request, seed=42)
    check = service.validate_stock(preview)
"""

from __future__ import annotations

import random
from collections.abc import Iterable, Sequence
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from importcost_config.schema import Settings
from importcost_engines.calendar import BusinessCalendar
from importcost_engines.day_distribution import make_rng
from importcost_engines.distribution import (
    DistributionPreview,
    DistributionRequest,
    ProductContext,
    SalesDistributionEngine,
)
from importcost_engines.validators import (
    DateConflictValidator,
    DateValidationResult,
    MaxAllocation,
    StockValidationResult,
    StockValidator,
    max_allocation_percent,
)
from importcost_kernel.domain.records import AllocationEntry, TransferRecord
from importcost_kernel.exceptions import ProductNotFoundError
from importcost_kernel.logging_config import get_logger
from importcost_services.fifo import FIFOLotResolver
from importcost_services.ports import LotCatalog, MovementReader, ProductCatalog
from importcost_services.repositories import (
    SqlLotCatalog,
    SqlMovementReader,
    SqlProductCatalog,
)
from importcost_services.stock_ledger import StockLedger

logger = get_logger("services.distribution")


class DistributionService:
    """
    Contract:
        Receives its read ports by constructor injection; ``from_session``
        wires the SQL implementations.
    Non-goals:
        - Does not persist previews; see SaleService.confirm_sale.
    """

    def __init__(
        self,
        products: ProductCatalog,
        movements: MovementReader,
        lots: LotCatalog,
        engine: SalesDistributionEngine | None = None,
    ):
        self._products = products
        self._ledger = StockLedger(movements)
        self._fifo = FIFOLotResolver(lots)
        self._engine = engine or SalesDistributionEngine()
        self._stock_validator = StockValidator()
        self._date_validator = DateConflictValidator()

    @classmethod
    def from_session(cls, session: Session, settings: Settings | None = None) -> DistributionService:
        settings = settings or Settings()
        engine = SalesDistributionEngine(
            calendar=BusinessCalendar(settings.distribution.business_weekdays),
            variance=settings.distribution.variance,
        )
        return cls(
            products=SqlProductCatalog(session),
            movements=SqlMovementReader(session),
            lots=SqlLotCatalog(session, settings.currencies.hard_currency),
            engine=engine,
        )

    def product_contexts(
        self,
        product_ids: Iterable[UUID],
        as_of: date,
    ) -> dict[UUID, ProductContext]:
        """FIFO lot, ledger stock at as_of and cached stock for every known product id."""
        contexts: dict[UUID, ProductContext] = {}
        for product_id in product_ids:
            product = self._products.get(product_id)
            if product is None:
                continue
            contexts[product_id] = ProductContext(
                product=product,
                lot=self._fifo.resolve(product_id, as_of),
                stock=self._ledger.stock_at(product_id, as_of),
                current_stock=self._products.current_quantity(product_id),
            )
        return contexts

    def preview_distribution(
        self,
        request: DistributionRequest,
        rng: random.Random | None = None,
        seed: int | None = None,
    ) -> DistributionPreview:
        contexts = self.product_contexts(
            (entry.product_id for entry in request.allocation), request.period_end
        )
        return self._engine.preview(request, contexts, rng or make_rng(seed))

    def validate_stock(self, preview: DistributionPreview) -> StockValidationResult:
        """Required units of a preview against ledger stock at its period end."""
        stocks = self._ledger.stocks_at(
            (p.product_id for p in preview.products), preview.period_end
        )
        return self._stock_validator.validate_distribution(preview, stocks)

    def validate_stock_preflight(
        self,
        total_transfers: Decimal,
        allocation: Sequence[AllocationEntry],
        as_of: date,
    ) -> StockValidationResult:
        contexts = self.product_contexts((e.product_id for e in allocation), as_of)
        return self._stock_validator.validate_preflight(
            total_transfers, allocation, contexts, as_of
        )

    def validate_dates(
        self,
        transfers: Sequence[TransferRecord],
        product_ids: Iterable[UUID],
        as_of: date,
    ) -> DateValidationResult:
        """Transfers dated before the FIFO import date (as of as_of) of a product."""
        contexts = self.product_contexts(product_ids, as_of)
        return self._date_validator.validate(transfers, contexts)

    def max_allocation_percent(
        self,
        product_id: UUID,
        total_transfers: Decimal,
        as_of: date,
    ) -> MaxAllocation:
        if self._products.get(product_id) is None:
            raise ProductNotFoundError(str(product_id))
        result = max_allocation_percent(
            self._ledger.stock_at(product_id, as_of),
            self._fifo.resolve(product_id, as_of),
            total_transfers,
        )
        logger.debug(
            "max_allocation_computed",
            extra={"product_id": str(product_id), "max_percent": str(result.max_percent)},
        )
        return result
