"""
Shared fixtures for the distribution and sale service tests.

One week of March 2024 (Monday 4th to Saturday 9th), rice imported on the
1st with the default container percentages, one 500 transfer on the 5th.
"""

from collections.abc import Callable
from datetime import date
from decimal import Decimal
from uuid import UUID

import pytest

from importcost_engines.distribution import DistributionPreview, DistributionRequest
from importcost_kernel.db.engine import transaction_scope
from importcost_kernel.domain.records import AllocationEntry
from importcost_services import DistributionService, SaleService

MONDAY = date(2024, 3, 4)
SATURDAY = date(2024, 3, 9)


@pytest.fixture
def rice(make_product, make_container) -> UUID:
    product_id = make_product("Rice")
    make_container(date(2024, 3, 1), [(product_id, 100, 10)])
    return product_id


@pytest.fixture
def transfer_id(seeded, clock) -> UUID:
    with transaction_scope(seeded) as session:
        return SaleService(session, clock).record_transfer(
            date(2024, 3, 5), Decimal("500"), reference="TRF-0305"
        )


@pytest.fixture
def build_preview(seeded, settings, clock) -> Callable[..., DistributionPreview]:
    """Preview the week's unlinked transfers split evenly over product_ids."""

    def _build(product_ids: list[UUID], seed: int = 1) -> DistributionPreview:
        with transaction_scope(seeded) as session:
            transfers = SaleService(session, clock).unlinked_transfers(MONDAY, SATURDAY)
            share = Decimal(100) / len(product_ids)
            request = DistributionRequest(
                period_start=MONDAY,
                period_end=SATURDAY,
                transfers=transfers,
                allocation=[AllocationEntry(pid, share) for pid in product_ids],
            )
            return DistributionService.from_session(session, settings).preview_distribution(
                request, seed=seed
            )

    return _build
