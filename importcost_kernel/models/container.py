"""
Module: importcost_kernel.models.container
Responsibility: ORM persistence for containers (import events) and the rows
    they exclusively own: lots, expenses and per-container exchange rates.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Ownership: lots, expenses and rates are cascade-deleted with their
      container.
    - (container_id, currency_code) is unique for rate overrides.
    - Lot cached fields (unit_cost_usd, sale_price_usd, sale_price_local,
      expense_share_local) are written only by recalculation, for all lots
      of a container at once.

Non-goals:
    - Channel-split summing to 100 is NOT enforced here; the container
      service validates it on the public update path.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from importcost_kernel.db.base import TimestampedBase, UUIDString

if TYPE_CHECKING:
    from importcost_kernel.models.product import ProductModel


class ContainerModel(TimestampedBase):
    """
    One import event and its container-wide percentages.

    profit_margin_percent prices the lots; levy_margin_percent is stamped
    onto every lot's margin_percent on each recalculation.
    """

    __tablename__ = "containers"

    __table_args__ = (Index("idx_container_import_date", "import_date"),)

    import_date: Mapped[date] = mapped_column(nullable=False)

    container_number: Mapped[str | None] = mapped_column(String(50), nullable=True)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    hard_currency_percent: Mapped[Decimal] = mapped_column(nullable=False)
    fiscal_percent: Mapped[Decimal] = mapped_column(nullable=False)
    cash_percent: Mapped[Decimal] = mapped_column(nullable=False)
    shrinkage_percent: Mapped[Decimal] = mapped_column(nullable=False)
    profit_margin_percent: Mapped[Decimal] = mapped_column(nullable=False)
    levy_margin_percent: Mapped[Decimal] = mapped_column(nullable=False)
    commercial_margin_percent: Mapped[Decimal] = mapped_column(nullable=False)
    other_expenses_percent: Mapped[Decimal] = mapped_column(nullable=False)

    lots: Mapped[list[LotModel]] = relationship(
        back_populates="container",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    expenses: Mapped[list[ExpenseModel]] = relationship(
        back_populates="container",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    rates: Mapped[list[ContainerRateModel]] = relationship(
        back_populates="container",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Container {self.container_number or self.id} {self.import_date}>"


class LotModel(TimestampedBase):
    """One product imported in a container, with its cached pricing fields."""

    __tablename__ = "lots"

    __table_args__ = (
        Index("idx_lot_product", "product_id"),
        Index("idx_lot_container", "container_id"),
    )

    container_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("containers.id", ondelete="CASCADE"),
        nullable=False,
    )

    product_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("products.id"),
        nullable=False,
    )

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    unit_price_usd: Mapped[Decimal] = mapped_column(nullable=False)

    import_value_usd: Mapped[Decimal] = mapped_column(nullable=False)

    # Overrides, replaced by container values on recalculation
    shrinkage_percent: Mapped[Decimal | None] = mapped_column(nullable=True)
    margin_percent: Mapped[Decimal | None] = mapped_column(nullable=True)

    fiscal_median: Mapped[Decimal] = mapped_column(nullable=False)
    cash_median: Mapped[Decimal] = mapped_column(nullable=False)

    # Cached by recalculation
    unit_cost_usd: Mapped[Decimal | None] = mapped_column(nullable=True)
    sale_price_usd: Mapped[Decimal | None] = mapped_column(nullable=True)
    sale_price_local: Mapped[Decimal | None] = mapped_column(nullable=True)
    expense_share_local: Mapped[Decimal | None] = mapped_column(nullable=True)

    container: Mapped[ContainerModel] = relationship(back_populates="lots")

    product: Mapped[ProductModel] = relationship(back_populates="lots")


class ExpenseModel(TimestampedBase):
    """A container expense in its own currency."""

    __tablename__ = "expenses"

    container_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("containers.id", ondelete="CASCADE"),
        nullable=False,
    )

    currency_code: Mapped[str] = mapped_column(String(3), nullable=False)

    amount: Mapped[Decimal] = mapped_column(nullable=False)

    expense_type: Mapped[str] = mapped_column(String(100), nullable=False, default="")

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    container: Mapped[ContainerModel] = relationship(back_populates="expenses")


class ContainerRateModel(TimestampedBase):
    """Container-scoped override of a currency's default rate."""

    __tablename__ = "container_rates"

    __table_args__ = (
        UniqueConstraint("container_id", "currency_code", name="uq_container_rate_currency"),
    )

    container_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("containers.id", ondelete="CASCADE"),
        nullable=False,
    )

    currency_code: Mapped[str] = mapped_column(String(3), nullable=False)

    rate: Mapped[Decimal] = mapped_column(nullable=False)

    container: Mapped[ContainerModel] = relationship(back_populates="rates")
