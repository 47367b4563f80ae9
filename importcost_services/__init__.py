"""
Module: importcost_services
Responsibility:
    Stateful orchestration over the pure engines and the ORM: container
    recalculation, FIFO and stock lookups, distribution previews and
    validation, sale confirmation, inventory movements.

Architecture position:
    Services -- may import importcost_kernel, importcost_engines and
    importcost_config.  Every service takes the caller's Session (or read
    ports) by constructor injection and only flushes; the caller owns the
    transaction through importcost_kernel.db.transaction_scope.
"""

from importcost_services.catalog_service import CatalogService
from importcost_services.container_service import ContainerService, NewLot
from importcost_services.distribution_service import DistributionService
from importcost_services.fifo import FIFOLotResolver
from importcost_services.inventory_service import InventoryService
from importcost_services.ports import (
    ContainerRepository,
    CurrencyRateLookup,
    LotCatalog,
    MovementReader,
    ProductCatalog,
)
from importcost_services.recalculation import ContainerComputation, RecalculationOrchestrator
from importcost_services.repositories import (
    SqlContainerRepository,
    SqlCurrencyRateLookup,
    SqlLotCatalog,
    SqlMovementReader,
    SqlProductCatalog,
)
from importcost_services.sale_service import SaleService
from importcost_services.stock_ledger import StockLedger

__all__ = [
    "CatalogService",
    "ContainerComputation",
    "ContainerRepository",
    "ContainerService",
    "CurrencyRateLookup",
    "DistributionService",
    "FIFOLotResolver",
    "InventoryService",
    "LotCatalog",
    "MovementReader",
    "NewLot",
    "ProductCatalog",
    "RecalculationOrchestrator",
    "SaleService",
    "SqlContainerRepository",
    "SqlCurrencyRateLookup",
    "SqlLotCatalog",
    "SqlMovementReader",
    "SqlProductCatalog",
    "StockLedger",
]
