"""ORM models. Importing this package registers every table on Base.metadata."""

from importcost_kernel.models.container import (
    ContainerModel,
    ContainerRateModel,
    ExpenseModel,
    LotModel,
)
from importcost_kernel.models.currency import CurrencyModel
from importcost_kernel.models.product import InventoryModel, MovementModel, ProductModel
from importcost_kernel.models.sale import SaleLineModel, SaleModel, TransferModel

__all__ = [
    "ContainerModel",
    "ContainerRateModel",
    "CurrencyModel",
    "ExpenseModel",
    "InventoryModel",
    "LotModel",
    "MovementModel",
    "ProductModel",
    "SaleLineModel",
    "SaleModel",
    "TransferModel",
]
