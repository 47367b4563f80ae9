"""
importcost_services.inventory_service -- Movement ledger writes and stock queries.

Responsibility:
    Append inventory movements and keep the cached per-product quantity in
    step; list the products that can be sold at a date.

Architecture position:
    Services -- stateful orchestration over the ORM.  Container creation
    and sale confirmation append their movements through this service.

Invariants enforced:
    - Movements are appended, never updated or deleted.
    - The cached current_quantity changes by exactly the signed quantity
      of each appended movement.
    - A decreasing movement may not drive the cached quantity below zero.

Failure modes:
    - ProductNotFoundError for an unknown product.
    - InsufficientStockError when a decreasing movement exceeds the cached
      quantity.
"""

from __future__ import annotations

from datetime import date, datetime
from uuid import UUID

from sqlalchemy.orm import Session

from importcost_kernel.domain.clock import Clock, SystemClock
from importcost_kernel.domain.records import MovementKind, ProductRecord
from importcost_kernel.exceptions import InsufficientStockError, ProductNotFoundError
from importcost_kernel.logging_config import get_logger
from importcost_kernel.models import InventoryModel, MovementModel, ProductModel
from importcost_services.fifo import FIFOLotResolver
from importcost_services.ports import LotCatalog, MovementReader, ProductCatalog
from importcost_services.repositories import (
    SqlLotCatalog,
    SqlMovementReader,
    SqlProductCatalog,
)
from importcost_services.stock_ledger import StockLedger

logger = get_logger("services.inventory")


class InventoryService:
    """
    Contract:
        Receives the Session and a Clock by constructor injection.  Read
        ports default to the SQL implementations over the same session.
    Non-goals:
        - Does not commit.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        hard_currency_code: str = "USD",
        products: ProductCatalog | None = None,
        movements: MovementReader | None = None,
        lots: LotCatalog | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._products = products or SqlProductCatalog(session)
        self._ledger = StockLedger(movements or SqlMovementReader(session))
        self._fifo = FIFOLotResolver(lots or SqlLotCatalog(session, hard_currency_code))

    def _inventory_for(self, product_id: UUID) -> InventoryModel:
        product = self._session.get(ProductModel, product_id)
        if product is None:
            raise ProductNotFoundError(str(product_id))
        if product.inventory is None:
            product.inventory = InventoryModel(product_id=product.id, current_quantity=0)
            self._session.flush()
        return product.inventory

    def current_quantity(self, product_id: UUID) -> int:
        """Cached quantity; zero for a product that never had a movement."""
        return self._inventory_for(product_id).current_quantity

    def record_movement(
        self,
        product_id: UUID,
        kind: MovementKind | str,
        quantity: int,
        occurred_at: datetime | None = None,
        reason: str = "",
        reference: str = "",
    ) -> UUID:
        """
        Append one movement and update the cached quantity.

        Returns:
            The movement id.
        """
        kind = MovementKind(kind)
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValueError(f"quantity must be a positive integer, got {quantity!r}")

        inventory = self._inventory_for(product_id)
        if not kind.increases_stock and inventory.current_quantity < quantity:
            logger.warning(
                "movement_rejected_insufficient_stock",
                extra={
                    "product_id": str(product_id),
                    "kind": kind.value,
                    "available": inventory.current_quantity,
                    "requested": quantity,
                },
            )
            raise InsufficientStockError(str(product_id), inventory.current_quantity, quantity)

        movement = MovementModel(
            inventory_id=inventory.id,
            kind=kind.value,
            quantity=quantity,
            occurred_at=occurred_at or self._clock.now(),
            reason=reason,
            reference=reference,
        )
        self._session.add(movement)
        inventory.current_quantity += kind.signed(quantity)
        self._session.flush()

        logger.info(
            "movement_recorded",
            extra={
                "product_id": str(product_id),
                "kind": kind.value,
                "quantity": quantity,
                "current_quantity": inventory.current_quantity,
                "reference": reference,
            },
        )
        return movement.id

    def stock_at(self, product_id: UUID, as_of: date) -> int:
        return self._ledger.stock_at(product_id, as_of)

    def products_with_stock(self, as_of: date) -> list[tuple[ProductRecord, int]]:
        """Active products imported on or before as_of with ledger stock > 0."""
        available = []
        for product in self._products.active_products():
            if self._fifo.resolve(product.product_id, as_of) is None:
                continue
            stock = self._ledger.stock_at(product.product_id, as_of)
            if stock > 0:
                available.append((product, stock))
        return available
