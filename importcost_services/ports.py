"""
importcost_services.ports -- Read/write seams the services depend on.

Responsibility:
    Declares the persistence collaborators as ``typing.Protocol`` classes so
    that services receive them by constructor injection.  SQLAlchemy
    implementations live in ``importcost_services.repositories``.

Architecture position:
    Services -- imports only importcost_kernel.domain and
    importcost_engines record types.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import date
from decimal import Decimal
from typing import Protocol
from uuid import UUID

from importcost_engines.fifo import LotCandidate
from importcost_kernel.domain.records import (
    ContainerSnapshot,
    LotResult,
    MovementRecord,
    ProductRecord,
)


class ContainerRepository(Protocol):
    """Snapshot read and cached-field write for one container."""

    def load_snapshot(self, container_id: UUID) -> ContainerSnapshot: ...

    def write_lot_results(self, container_id: UUID, results: Sequence[LotResult]) -> None: ...


class MovementReader(Protocol):
    """Every ledger movement of a product, any order."""

    def movements_for(self, product_id: UUID) -> Sequence[MovementRecord]: ...


class LotCatalog(Protocol):
    """Lots of a product whose container was imported on or before as_of."""

    def candidates_for(self, product_id: UUID, as_of: date) -> Sequence[LotCandidate]: ...


class ProductCatalog(Protocol):
    def get(self, product_id: UUID) -> ProductRecord | None: ...

    def active_products(self) -> Sequence[ProductRecord]: ...

    def current_quantity(self, product_id: UUID) -> int: ...


class CurrencyRateLookup(Protocol):
    """Default rates into the local currency."""

    def default_rate(self, currency_code: str) -> Decimal | None: ...

    def default_rates(self) -> Mapping[str, Decimal]: ...
