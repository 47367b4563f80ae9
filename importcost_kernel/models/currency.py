"""
Module: importcost_kernel.models.currency
Responsibility: ORM persistence for the currency catalog and each currency's
    default rate into the local currency.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - code is unique and a registered ISO 4217 code (validated by services).
    - default_rate > 0; it is the fallback whenever a container records no
      override for the currency.
"""

from decimal import Decimal

from sqlalchemy import String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from importcost_kernel.db.base import TimestampedBase


class CurrencyModel(TimestampedBase):
    """A currency and its default rate into the local currency."""

    __tablename__ = "currencies"

    __table_args__ = (UniqueConstraint("code", name="uq_currency_code"),)

    code: Mapped[str] = mapped_column(String(3), nullable=False)

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    default_rate: Mapped[Decimal] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<Currency {self.code} @ {self.default_rate}>"
