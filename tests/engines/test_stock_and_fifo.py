"""Tests for the stock fold and FIFO lot selection."""

from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import UUID, uuid4

from importcost_engines.fifo import LotCandidate, price_candidate, select_fifo_lot
from importcost_engines.stock import fold_movements, signed_total
from importcost_kernel.domain.records import ChannelSplit, MovementKind, MovementRecord

SPLIT = ChannelSplit(Decimal("91"), Decimal("5"), Decimal("4"))


def movement(kind: MovementKind, quantity: int, day: date, hour: int = 10) -> MovementRecord:
    return MovementRecord(
        kind=kind,
        quantity=quantity,
        occurred_at=datetime(day.year, day.month, day.day, hour, tzinfo=timezone.utc),
    )


def candidate(
    import_date: date,
    container_id: UUID | None = None,
    sale_price_usd: Decimal | None = Decimal("10"),
) -> LotCandidate:
    return LotCandidate(
        lot_id=uuid4(),
        product_id=uuid4(),
        container_id=container_id or uuid4(),
        import_date=import_date,
        split=SPLIT,
        hard_currency_rate=Decimal("320"),
        sale_price_usd=sale_price_usd,
        fiscal_median=Decimal("173"),
        cash_median=Decimal("200"),
    )


class TestStockFold:
    def setup_method(self):
        self.movements = [
            movement(MovementKind.ENTRY, 100, date(2024, 3, 1)),
            movement(MovementKind.EXIT, 30, date(2024, 3, 5)),
            movement(MovementKind.SHRINKAGE, 5, date(2024, 3, 5), hour=23),
            movement(MovementKind.ADJUSTMENT_IN, 10, date(2024, 3, 10)),
            movement(MovementKind.ADJUSTMENT_OUT, 2, date(2024, 3, 12)),
        ]

    def test_before_first_movement(self):
        assert fold_movements(self.movements, date(2024, 2, 29)) == 0

    def test_movement_day_is_inclusive(self):
        assert fold_movements(self.movements, date(2024, 3, 1)) == 100
        assert fold_movements(self.movements, date(2024, 3, 5)) == 65

    def test_all_kinds(self):
        assert fold_movements(self.movements, date(2024, 3, 31)) == 73

    def test_difference_equals_movements_in_between(self):
        d1, d2 = date(2024, 3, 4), date(2024, 3, 11)
        between = sum(
            m.signed_quantity
            for m in self.movements
            if d1 < m.occurred_at.date() <= d2
        )
        assert fold_movements(self.movements, d2) - fold_movements(self.movements, d1) == between

    def test_floor_at_zero(self):
        movements = [
            movement(MovementKind.ENTRY, 5, date(2024, 3, 1)),
            movement(MovementKind.EXIT, 8, date(2024, 3, 2)),
        ]
        assert signed_total(movements, date(2024, 3, 2)) == -3
        assert fold_movements(movements, date(2024, 3, 2)) == 0


class TestFifoSelection:
    def test_oldest_eligible_wins(self):
        old = candidate(date(2024, 1, 10))
        new = candidate(date(2024, 2, 10))
        lot = select_fifo_lot([new, old], date(2024, 3, 1))
        assert lot.lot_id == old.lot_id

    def test_future_imports_ignored(self):
        future = candidate(date(2024, 5, 1))
        assert select_fifo_lot([future], date(2024, 3, 1)) is None

    def test_import_date_is_inclusive(self):
        same_day = candidate(date(2024, 3, 1))
        assert select_fifo_lot([same_day], date(2024, 3, 1)) is not None

    def test_tie_broken_by_container_id(self):
        first = candidate(date(2024, 1, 10), UUID("00000000-0000-0000-0000-000000000001"))
        second = candidate(date(2024, 1, 10), UUID("00000000-0000-0000-0000-000000000002"))
        lot = select_fifo_lot([second, first], date(2024, 3, 1))
        assert lot.container_id == first.container_id

    def test_channel_prices(self):
        lot = price_candidate(candidate(date(2024, 1, 10)))
        assert lot.hard_currency_price == Decimal("3200")
        assert lot.fiscal_price == Decimal("173")
        assert lot.cash_price == Decimal("180")
        assert lot.split == SPLIT

    def test_unpriced_lot_has_zero_hard_currency_price(self):
        lot = price_candidate(candidate(date(2024, 1, 10), sale_price_usd=None))
        assert lot.hard_currency_price == Decimal("0")
