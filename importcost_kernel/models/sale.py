"""
Module: importcost_kernel.models.sale
Responsibility: ORM persistence for bank transfers, confirmed sales and their
    lines.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Exclusive consumption: a transfer references at most one sale
      (nullable sale_id).  The link is set by a guarded update
      (``sale_id IS NULL``) at confirmation time.
    - A sale owns its lines (cascade delete); it does NOT own its transfers:
      deleting a sale severs the link (ON DELETE SET NULL).
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from importcost_kernel.db.base import TimestampedBase, UUIDString


class TransferModel(TimestampedBase):
    """A bank receipt in local currency."""

    __tablename__ = "transfers"

    __table_args__ = (
        Index("idx_transfer_date", "transfer_date"),
        Index("idx_transfer_sale", "sale_id"),
    )

    transfer_date: Mapped[date] = mapped_column(nullable=False)

    amount: Mapped[Decimal] = mapped_column(nullable=False)

    reference: Mapped[str] = mapped_column(String(100), nullable=False, default="")

    sale_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("sales.id", ondelete="SET NULL"),
        nullable=True,
    )


class SaleModel(TimestampedBase):
    """A confirmed allocation for a period."""

    __tablename__ = "sales"

    period_start: Mapped[date] = mapped_column(nullable=False)

    period_end: Mapped[date] = mapped_column(nullable=False)

    total_transfers: Mapped[Decimal] = mapped_column(nullable=False)

    total_units: Mapped[int] = mapped_column(Integer, nullable=False)

    total_amount: Mapped[Decimal] = mapped_column(nullable=False)

    allocation_mode: Mapped[str] = mapped_column(String(10), nullable=False)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    lines: Mapped[list[SaleLineModel]] = relationship(
        back_populates="sale",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="SaleLineModel.line_date",
    )


class SaleLineModel(TimestampedBase):
    """One dated, priced line of a confirmed sale."""

    __tablename__ = "sale_lines"

    __table_args__ = (Index("idx_sale_line_sale", "sale_id"),)

    sale_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("sales.id", ondelete="CASCADE"),
        nullable=False,
    )

    line_date: Mapped[date] = mapped_column(nullable=False)

    product_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("products.id"),
        nullable=False,
    )

    lot_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("lots.id"),
        nullable=False,
    )

    channel: Mapped[str] = mapped_column(String(20), nullable=False)

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    unit_price: Mapped[Decimal] = mapped_column(nullable=False)

    subtotal: Mapped[Decimal] = mapped_column(nullable=False)

    sale: Mapped[SaleModel] = relationship(back_populates="lines")
