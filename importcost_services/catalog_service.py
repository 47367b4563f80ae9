"""
importcost_services.catalog_service -- Products and currency default rates.

Reference data the costing and distribution paths read: the product
catalog (with pack sizes) and each currency's default rate into the local
currency.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from importcost_config.schema import Settings
from importcost_kernel.domain.currency import CurrencyRegistry
from importcost_kernel.domain.values import ZERO, to_decimal
from importcost_kernel.exceptions import ProductNotFoundError
from importcost_kernel.logging_config import get_logger
from importcost_kernel.models import CurrencyModel, InventoryModel, ProductModel

logger = get_logger("services.catalog")


class CatalogService:
    def __init__(self, session: Session, settings: Settings | None = None):
        self._session = session
        self._settings = settings or Settings()

    def create_product(
        self,
        name: str,
        pack_size: int | None = None,
        active: bool = True,
    ) -> UUID:
        """Create a product with an empty inventory row."""
        if not name or not name.strip():
            raise ValueError("Product name is required")
        size = pack_size if pack_size is not None else self._settings.lot.pack_size
        if size < 1:
            raise ValueError(f"pack_size must be >= 1, got {size}")

        product = ProductModel(name=name.strip(), pack_size=size, active=active)
        product.inventory = InventoryModel(current_quantity=0)
        self._session.add(product)
        self._session.flush()
        logger.info("product_created", extra={"product_id": str(product.id), "product_name": product.name})
        return product.id

    def set_product_active(self, product_id: UUID, active: bool) -> None:
        product = self._session.get(ProductModel, product_id)
        if product is None:
            raise ProductNotFoundError(str(product_id))
        product.active = active
        self._session.flush()

    def set_default_rate(self, code: str, rate: Decimal, name: str | None = None) -> None:
        """Create or update a currency's default rate."""
        code = CurrencyRegistry.validate(code)
        rate = to_decimal(rate)
        if rate <= ZERO:
            raise ValueError(f"Rate for {code} must be positive, got {rate}")

        currency = self._session.scalar(select(CurrencyModel).where(CurrencyModel.code == code))
        if currency is None:
            currency = CurrencyModel(
                code=code,
                name=name or CurrencyRegistry.get_info(code).name,
                default_rate=rate,
            )
            self._session.add(currency)
        else:
            currency.default_rate = rate
            if name:
                currency.name = name
        self._session.flush()
        logger.info("default_rate_set", extra={"currency": code, "rate": str(rate)})

    def seed_currencies(self) -> int:
        """Insert or refresh every currency of the configured catalog."""
        catalog = self._settings.currencies.catalog
        for entry in catalog:
            self.set_default_rate(entry.code, entry.default_rate, entry.name)
        return len(catalog)
