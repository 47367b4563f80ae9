"""
Module: importcost_kernel.models.product
Responsibility: ORM persistence for the product catalog, the cached inventory
    aggregate and the append-only inventory movement ledger.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - The movement ledger is the ONLY source of truth for stock at a date.
      InventoryModel.current_quantity is a derived convenience kept in step
      by the services that append movements; it is never used for
      historical queries.
    - Movements are append-only: services insert, never update or delete.
    - (inventory_id, occurred_at) index supports the as-of fold.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from importcost_kernel.db.base import TimestampedBase, UUIDString

if TYPE_CHECKING:
    from importcost_kernel.models.container import LotModel


class ProductModel(TimestampedBase):
    """
    Catalog product.

    Guarantees:
        - name is unique.
        - pack_size >= 1 is the minimum sale multiple used when spreading
          units over days.
    """

    __tablename__ = "products"

    __table_args__ = (UniqueConstraint("name", name="uq_product_name"),)

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    pack_size: Mapped[int] = mapped_column(Integer, nullable=False, default=24)

    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    inventory: Mapped[InventoryModel | None] = relationship(
        back_populates="product",
        uselist=False,
        cascade="all, delete-orphan",
    )

    lots: Mapped[list[LotModel]] = relationship(back_populates="product")

    def __repr__(self) -> str:
        return f"<Product {self.name}>"


class InventoryModel(TimestampedBase):
    """Cached current quantity for one product."""

    __tablename__ = "inventories"

    product_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    current_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    product: Mapped[ProductModel] = relationship(back_populates="inventory")

    movements: Mapped[list[MovementModel]] = relationship(
        back_populates="inventory",
        cascade="all, delete-orphan",
    )


class MovementModel(TimestampedBase):
    """One inventory ledger entry. kind holds a MovementKind value."""

    __tablename__ = "inventory_movements"

    __table_args__ = (
        Index("idx_movement_inventory_date", "inventory_id", "occurred_at"),
    )

    inventory_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("inventories.id", ondelete="CASCADE"),
        nullable=False,
    )

    kind: Mapped[str] = mapped_column(String(20), nullable=False)

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    occurred_at: Mapped[datetime] = mapped_column(nullable=False)

    reason: Mapped[str] = mapped_column(String(255), nullable=False, default="")

    reference: Mapped[str] = mapped_column(String(100), nullable=False, default="")

    inventory: Mapped[InventoryModel] = relationship(back_populates="movements")
