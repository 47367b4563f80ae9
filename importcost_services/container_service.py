"""
importcost_services.container_service -- Container mutations with recalculation.

Responsibility:
    Every public mutation of a container, its lots, expenses and rate
    overrides.  Each mutation recalculates the whole container in the same
    transaction, so cached lot fields are never stale after a commit.

Architecture position:
    Services -- stateful orchestration over the ORM, InventoryService and
    RecalculationOrchestrator.

Invariants enforced:
    - Channel split sums to 100 (+-0.01) on create and on update.
    - Lot import value = quantity x unit price, recomputed whenever either
      changes.
    - Creating a container or adding a lot appends an ENTRY movement dated
      at the container's import date.
    - Deleting a container posts an ADJUSTMENT_OUT per lot before the
      cascade removes its lots, expenses and rates.
    - Editing a lot's quantity does not post a movement.

Failure modes:
    - ContainerNotFoundError, LotNotFoundError, ExpenseNotFoundError,
      ProductNotFoundError for unknown ids.
    - ContainerInUseError when deleting a container whose lots were sold.
    - InvalidChannelSplitError on a split not summing to 100.
    - ExchangeRateNotFoundError from the recalculation; the caller's
      transaction rolls the mutation back.

Usage:
    with transaction_scope(factory) as session:
        service = ContainerService(session, settings)
        container_id = service.create_container(
            date(2024, 3, 1),
            [NewLot(product_id, 100, Decimal("10"))],
        )
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from importcost_config.schema import Settings
from importcost_kernel.domain.clock import Clock
from importcost_kernel.domain.currency import CurrencyRegistry
from importcost_kernel.domain.records import (
    ContainerPercentages,
    MovementKind,
    RateRecord,
)
from importcost_kernel.domain.values import ZERO, to_decimal
from importcost_kernel.exceptions import (
    ContainerInUseError,
    ContainerNotFoundError,
    ExpenseNotFoundError,
    InvalidChannelSplitError,
    LotNotFoundError,
    ProductNotFoundError,
)
from importcost_kernel.logging_config import LogContext, get_logger
from importcost_kernel.models import (
    ContainerModel,
    ContainerRateModel,
    ExpenseModel,
    LotModel,
    ProductModel,
    SaleLineModel,
)
from importcost_services.inventory_service import InventoryService
from importcost_services.recalculation import ContainerComputation, RecalculationOrchestrator
from importcost_services.repositories import SqlContainerRepository

logger = get_logger("services.container")


@dataclass(frozen=True)
class NewLot:
    """A lot to import. Medians default to the configured lot defaults."""

    product_id: UUID
    quantity: int
    unit_price_usd: Decimal
    fiscal_median: Decimal | None = None
    cash_median: Decimal | None = None

    def __post_init__(self) -> None:
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int) or self.quantity <= 0:
            raise ValueError(f"quantity must be a positive integer, got {self.quantity!r}")
        price = to_decimal(self.unit_price_usd)
        if price < ZERO:
            raise ValueError(f"unit_price_usd must not be negative, got {price}")
        object.__setattr__(self, "unit_price_usd", price)


def _check_split(percentages: ContainerPercentages) -> None:
    split = percentages.split
    if not split.is_complete:
        raise InvalidChannelSplitError(
            str(split.hard_currency), str(split.fiscal), str(split.cash), str(split.total)
        )


def _import_timestamp(import_date: date) -> datetime:
    return datetime.combine(import_date, time.min, tzinfo=timezone.utc)


class ContainerService:
    """
    Contract:
        Receives the Session, Settings and an optional Clock by
        constructor injection.
    Guarantees:
        - Every mutation returns only after the container was recalculated
          and flushed.
    Non-goals:
        - Does not commit.
    """

    def __init__(
        self,
        session: Session,
        settings: Settings | None = None,
        clock: Clock | None = None,
    ):
        self._session = session
        self._settings = settings or Settings()
        hard_currency = self._settings.currencies.hard_currency
        self._inventory = InventoryService(session, clock, hard_currency_code=hard_currency)
        self._recalculation = RecalculationOrchestrator(
            SqlContainerRepository(session, hard_currency)
        )

    # -- lookups -----------------------------------------------------------

    def _get_container(self, container_id: UUID) -> ContainerModel:
        container = self._session.get(ContainerModel, container_id)
        if container is None:
            raise ContainerNotFoundError(str(container_id))
        return container

    def _get_lot(self, lot_id: UUID) -> LotModel:
        lot = self._session.get(LotModel, lot_id)
        if lot is None:
            raise LotNotFoundError(str(lot_id))
        return lot

    def _recalculate(self, container_id: UUID) -> ContainerComputation:
        self._session.flush()
        return self._recalculation.recalculate_container(container_id)

    # -- containers --------------------------------------------------------

    def create_container(
        self,
        import_date: date,
        lots: Sequence[NewLot],
        percentages: ContainerPercentages | None = None,
        container_number: str | None = None,
        notes: str | None = None,
    ) -> UUID:
        """
        Create a container with its lots and post their ENTRY movements.

        Percentages default to the configured container defaults.
        """
        pct = percentages or self._settings.container.percentages()
        _check_split(pct)

        container = ContainerModel(
            import_date=import_date,
            container_number=container_number,
            notes=notes,
        )
        self._apply_percentages(container, pct)
        self._session.add(container)
        self._session.flush()

        with LogContext.bind(container_id=container.id):
            for new_lot in lots:
                self._create_lot(container, new_lot)
            self._recalculate(container.id)
            logger.info(
                "container_created",
                extra={"import_date": import_date, "lot_count": len(lots)},
            )
        return container.id

    def update_percentages(self, container_id: UUID, percentages: ContainerPercentages) -> None:
        _check_split(percentages)
        container = self._get_container(container_id)
        self._apply_percentages(container, percentages)
        self._recalculate(container_id)
        logger.info("container_percentages_updated", extra={"container_id": str(container_id)})

    def delete_container(self, container_id: UUID) -> None:
        """
        Delete a container with its lots, expenses and rate overrides.

        Each lot's quantity leaves stock through an ADJUSTMENT_OUT movement
        in the same transaction.

        Raises:
            ContainerInUseError: If confirmed sale lines draw on any lot.
            InsufficientStockError: If a product no longer holds its lot's
                quantity.
        """
        container = self._get_container(container_id)
        lot_ids = [lot.id for lot in container.lots]
        sold = self._session.scalars(
            select(SaleLineModel.lot_id).where(SaleLineModel.lot_id.in_(lot_ids)).distinct()
        ).all()
        if sold:
            raise ContainerInUseError(str(container_id), sorted(str(lot_id) for lot_id in sold))

        with LogContext.bind(container_id=container_id):
            for lot in container.lots:
                self._inventory.record_movement(
                    lot.product_id,
                    MovementKind.ADJUSTMENT_OUT,
                    lot.quantity,
                    reason="container deleted",
                    reference=str(container_id),
                )
            self._session.delete(container)
            self._session.flush()
            logger.info("container_deleted", extra={"lot_count": len(lot_ids)})

    @staticmethod
    def _apply_percentages(container: ContainerModel, pct: ContainerPercentages) -> None:
        container.hard_currency_percent = pct.split.hard_currency
        container.fiscal_percent = pct.split.fiscal
        container.cash_percent = pct.split.cash
        container.shrinkage_percent = pct.shrinkage
        container.profit_margin_percent = pct.profit_margin
        container.levy_margin_percent = pct.levy_margin
        container.commercial_margin_percent = pct.commercial_margin
        container.other_expenses_percent = pct.other_expenses

    # -- lots --------------------------------------------------------------

    def _create_lot(self, container: ContainerModel, new_lot: NewLot) -> LotModel:
        if self._session.get(ProductModel, new_lot.product_id) is None:
            raise ProductNotFoundError(str(new_lot.product_id))

        defaults = self._settings.lot
        lot = LotModel(
            container_id=container.id,
            product_id=new_lot.product_id,
            quantity=new_lot.quantity,
            unit_price_usd=new_lot.unit_price_usd,
            import_value_usd=new_lot.unit_price_usd * new_lot.quantity,
            fiscal_median=(
                new_lot.fiscal_median if new_lot.fiscal_median is not None else defaults.fiscal_median
            ),
            cash_median=(
                new_lot.cash_median if new_lot.cash_median is not None else defaults.cash_median
            ),
        )
        self._session.add(lot)
        self._session.flush()

        self._inventory.record_movement(
            new_lot.product_id,
            MovementKind.ENTRY,
            new_lot.quantity,
            occurred_at=_import_timestamp(container.import_date),
            reason="container import",
            reference=str(container.id),
        )
        return lot

    def add_lot(self, container_id: UUID, new_lot: NewLot) -> UUID:
        container = self._get_container(container_id)
        lot = self._create_lot(container, new_lot)
        self._recalculate(container_id)
        logger.info(
            "lot_added",
            extra={"container_id": str(container_id), "lot_id": str(lot.id)},
        )
        return lot.id

    def update_lot(
        self,
        lot_id: UUID,
        quantity: int | None = None,
        unit_price_usd: Decimal | None = None,
        fiscal_median: Decimal | None = None,
        cash_median: Decimal | None = None,
    ) -> None:
        """Edit a lot; quantity or price changes recompute its import value."""
        lot = self._get_lot(lot_id)
        if quantity is not None:
            if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
                raise ValueError(f"quantity must be a positive integer, got {quantity!r}")
            lot.quantity = quantity
        if unit_price_usd is not None:
            price = to_decimal(unit_price_usd)
            if price < ZERO:
                raise ValueError(f"unit_price_usd must not be negative, got {price}")
            lot.unit_price_usd = price
        if quantity is not None or unit_price_usd is not None:
            lot.import_value_usd = lot.unit_price_usd * lot.quantity
        if fiscal_median is not None:
            lot.fiscal_median = to_decimal(fiscal_median)
        if cash_median is not None:
            lot.cash_median = to_decimal(cash_median)

        self._recalculate(lot.container_id)
        logger.info("lot_updated", extra={"lot_id": str(lot_id)})

    # -- expenses and rates ------------------------------------------------

    def add_expense(
        self,
        container_id: UUID,
        currency_code: str,
        amount: Decimal,
        expense_type: str = "",
        description: str = "",
    ) -> UUID:
        self._get_container(container_id)
        code = CurrencyRegistry.validate(currency_code)
        amount = to_decimal(amount)
        if amount <= ZERO:
            raise ValueError(f"Expense amount must be positive, got {amount}")

        expense = ExpenseModel(
            container_id=container_id,
            currency_code=code,
            amount=amount,
            expense_type=expense_type,
            description=description or None,
        )
        self._session.add(expense)
        self._recalculate(container_id)
        logger.info(
            "expense_added",
            extra={"container_id": str(container_id), "currency": code, "amount": str(amount)},
        )
        return expense.id

    def remove_expense(self, expense_id: UUID) -> None:
        expense = self._session.get(ExpenseModel, expense_id)
        if expense is None:
            raise ExpenseNotFoundError(str(expense_id))
        container_id = expense.container_id
        self._session.delete(expense)
        self._recalculate(container_id)
        logger.info(
            "expense_removed",
            extra={"container_id": str(container_id), "expense_id": str(expense_id)},
        )

    def set_exchange_rate(self, container_id: UUID, currency_code: str, rate: Decimal) -> None:
        """Create or replace the container's override for a currency."""
        container = self._get_container(container_id)
        record = RateRecord(currency_code, rate)

        override = next(
            (r for r in container.rates if r.currency_code == record.currency_code), None
        )
        if override is None:
            container.rates.append(
                ContainerRateModel(currency_code=record.currency_code, rate=record.rate)
            )
        else:
            override.rate = record.rate
        self._recalculate(container_id)
        logger.info(
            "exchange_rate_set",
            extra={
                "container_id": str(container_id),
                "currency": record.currency_code,
                "rate": str(record.rate),
            },
        )

    # -- reads -------------------------------------------------------------

    def container_summary(self, container_id: UUID) -> ContainerComputation:
        """Per-lot pricing, proration and totals, computed without writing."""
        return self._recalculation.summarize(container_id)
