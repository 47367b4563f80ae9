"""
importcost_services.repositories -- SQLAlchemy implementations of the ports.

Responsibility:
    Translate between ORM rows (importcost_kernel.models) and the frozen
    domain records the engines consume.  Enum-valued columns are stored as
    plain strings and converted here.

Architecture position:
    Services -- the only module besides the mutating services that issues
    SQL.  All classes take the caller's Session; none commits.

Invariants enforced:
    - ``load_snapshot`` reads the container, its lots, expenses, rate
      overrides and every currency default rate in one session, so the
      recalculation works on a consistent read set.
    - Lots are ordered by creation time then id; proration's residual lot
      is therefore stable across recalculations.
    - Cached lot fields are written at column precision (9 places).
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from importcost_engines.fifo import LotCandidate
from importcost_kernel.domain.records import (
    ChannelSplit,
    ContainerPercentages,
    ContainerSnapshot,
    ExpenseRecord,
    LotResult,
    LotSnapshot,
    MovementKind,
    MovementRecord,
    ProductRecord,
    RateRecord,
)
from importcost_kernel.domain.values import quantize_half_up
from importcost_kernel.exceptions import (
    ContainerNotFoundError,
    ExchangeRateNotFoundError,
    LotNotFoundError,
)
from importcost_kernel.logging_config import get_logger
from importcost_kernel.models import (
    ContainerModel,
    CurrencyModel,
    ExpenseModel,
    InventoryModel,
    LotModel,
    MovementModel,
    ProductModel,
)

logger = get_logger("services.repositories")

COLUMN_PLACES = 9


def container_percentages(container: ContainerModel) -> ContainerPercentages:
    return ContainerPercentages(
        split=ChannelSplit(
            hard_currency=container.hard_currency_percent,
            fiscal=container.fiscal_percent,
            cash=container.cash_percent,
        ),
        shrinkage=container.shrinkage_percent,
        profit_margin=container.profit_margin_percent,
        levy_margin=container.levy_margin_percent,
        commercial_margin=container.commercial_margin_percent,
        other_expenses=container.other_expenses_percent,
    )


def product_record(product: ProductModel) -> ProductRecord:
    return ProductRecord(
        product_id=product.id,
        name=product.name,
        pack_size=product.pack_size,
        active=product.active,
    )


class SqlCurrencyRateLookup:
    def __init__(self, session: Session):
        self._session = session

    def default_rate(self, currency_code: str) -> Decimal | None:
        return self._session.scalar(
            select(CurrencyModel.default_rate).where(
                CurrencyModel.code == currency_code.upper().strip()
            )
        )

    def default_rates(self) -> dict[str, Decimal]:
        rows = self._session.execute(select(CurrencyModel.code, CurrencyModel.default_rate))
        return {code: rate for code, rate in rows}


class SqlContainerRepository:
    """ContainerRepository over the ORM."""

    def __init__(self, session: Session, hard_currency_code: str = "USD"):
        self._session = session
        self._hard_currency_code = hard_currency_code
        self._rates = SqlCurrencyRateLookup(session)

    def _get_container(self, container_id: UUID) -> ContainerModel:
        container = self._session.get(ContainerModel, container_id)
        if container is None:
            raise ContainerNotFoundError(str(container_id))
        return container

    def load_snapshot(self, container_id: UUID) -> ContainerSnapshot:
        container = self._get_container(container_id)
        lots = self._session.scalars(
            select(LotModel)
            .where(LotModel.container_id == container_id)
            .order_by(LotModel.created_at, LotModel.id)
        ).all()
        expenses = self._session.scalars(
            select(ExpenseModel)
            .where(ExpenseModel.container_id == container_id)
            .order_by(ExpenseModel.created_at, ExpenseModel.id)
        ).all()

        return ContainerSnapshot(
            container_id=container.id,
            import_date=container.import_date,
            percentages=container_percentages(container),
            hard_currency_code=self._hard_currency_code,
            lots=tuple(
                LotSnapshot(
                    lot_id=lot.id,
                    product_id=lot.product_id,
                    quantity=lot.quantity,
                    unit_price_usd=lot.unit_price_usd,
                    import_value_usd=lot.import_value_usd,
                    fiscal_median=lot.fiscal_median,
                    cash_median=lot.cash_median,
                    shrinkage_percent=lot.shrinkage_percent,
                    margin_percent=lot.margin_percent,
                )
                for lot in lots
            ),
            expenses=tuple(
                ExpenseRecord(
                    expense_id=e.id,
                    currency_code=e.currency_code,
                    amount=e.amount,
                    expense_type=e.expense_type,
                    description=e.description or "",
                )
                for e in expenses
            ),
            rates=tuple(RateRecord(r.currency_code, r.rate) for r in container.rates),
            default_rates=self._rates.default_rates(),
        )

    def write_lot_results(self, container_id: UUID, results: Sequence[LotResult]) -> None:
        for result in results:
            lot = self._session.get(LotModel, result.lot_id)
            if lot is None or lot.container_id != container_id:
                raise LotNotFoundError(str(result.lot_id))
            lot.shrinkage_percent = result.shrinkage_percent
            lot.margin_percent = result.margin_percent
            lot.unit_cost_usd = quantize_half_up(result.unit_cost_usd, COLUMN_PLACES)
            lot.sale_price_usd = quantize_half_up(result.sale_price_usd, COLUMN_PLACES)
            lot.sale_price_local = quantize_half_up(result.sale_price_local, COLUMN_PLACES)
            lot.expense_share_local = quantize_half_up(result.expense_share_local, COLUMN_PLACES)
        self._session.flush()


class SqlMovementReader:
    def __init__(self, session: Session):
        self._session = session

    def movements_for(self, product_id: UUID) -> list[MovementRecord]:
        rows = self._session.scalars(
            select(MovementModel)
            .join(InventoryModel, MovementModel.inventory_id == InventoryModel.id)
            .where(InventoryModel.product_id == product_id)
            .order_by(MovementModel.occurred_at)
        ).all()
        return [
            MovementRecord(
                kind=MovementKind(m.kind),
                quantity=m.quantity,
                occurred_at=m.occurred_at,
                reason=m.reason,
                reference=m.reference,
            )
            for m in rows
        ]


class SqlLotCatalog:
    """
    LotCatalog over the ORM.

    The hard-currency rate of each candidate is the container's override
    for the hard currency, else the currency's default rate.
    """

    def __init__(self, session: Session, hard_currency_code: str = "USD"):
        self._session = session
        self._hard_currency_code = hard_currency_code
        self._rates = SqlCurrencyRateLookup(session)

    def candidates_for(self, product_id: UUID, as_of: date) -> list[LotCandidate]:
        rows = self._session.execute(
            select(LotModel, ContainerModel)
            .join(ContainerModel, LotModel.container_id == ContainerModel.id)
            .where(LotModel.product_id == product_id)
            .where(ContainerModel.import_date <= as_of)
        ).all()

        default_rate = self._rates.default_rate(self._hard_currency_code)
        candidates = []
        for lot, container in rows:
            rate = next(
                (r.rate for r in container.rates if r.currency_code == self._hard_currency_code),
                default_rate,
            )
            if rate is None:
                logger.error(
                    "hard_currency_rate_missing",
                    extra={"container_id": str(container.id), "currency": self._hard_currency_code},
                )
                raise ExchangeRateNotFoundError(self._hard_currency_code, str(container.id))
            candidates.append(
                LotCandidate(
                    lot_id=lot.id,
                    product_id=lot.product_id,
                    container_id=container.id,
                    import_date=container.import_date,
                    split=container_percentages(container).split,
                    hard_currency_rate=rate,
                    sale_price_usd=lot.sale_price_usd,
                    fiscal_median=lot.fiscal_median,
                    cash_median=lot.cash_median,
                )
            )
        return candidates


class SqlProductCatalog:
    def __init__(self, session: Session):
        self._session = session

    def get(self, product_id: UUID) -> ProductRecord | None:
        product = self._session.get(ProductModel, product_id)
        return product_record(product) if product is not None else None

    def active_products(self) -> list[ProductRecord]:
        rows = self._session.scalars(
            select(ProductModel).where(ProductModel.active.is_(True)).order_by(ProductModel.name)
        ).all()
        return [product_record(p) for p in rows]

    def current_quantity(self, product_id: UUID) -> int:
        """Cached quantity; zero when the product has no inventory row."""
        quantity = self._session.scalar(
            select(InventoryModel.current_quantity).where(InventoryModel.product_id == product_id)
        )
        return quantity or 0
