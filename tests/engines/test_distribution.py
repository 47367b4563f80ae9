"""
Tests for the sales distribution engine.

Covers:
- Money-to-units inversion through the fiscal share
- Placement of fiscal units on transfer days and the others elsewhere
- Fiscal reassignment when no transfer day falls in a product's window
- Exclusions, warnings, AUTO allocation, normalization
- Repeatability with a seeded generator
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from importcost_engines.calendar import BusinessCalendar, partition_period
from importcost_engines.day_distribution import make_rng, spread_quantity
from importcost_engines.distribution import (
    CHANNEL_ORDER,
    DistributionRequest,
    ProductContext,
    SalesDistributionEngine,
    auto_allocation,
    channel_targets,
    normalize_allocation,
)
from importcost_kernel.domain.records import (
    AllocationEntry,
    AllocationMode,
    Channel,
    ChannelSplit,
    FifoLot,
    ProductRecord,
    TransferRecord,
)

MONDAY = date(2024, 3, 4)
SATURDAY = date(2024, 3, 9)


def make_lot(product_id, import_date=date(2024, 2, 1), split=None) -> FifoLot:
    return FifoLot(
        lot_id=uuid4(),
        product_id=product_id,
        container_id=uuid4(),
        import_date=import_date,
        split=split or ChannelSplit(Decimal("91"), Decimal("5"), Decimal("4")),
        hard_currency_rate=Decimal("320"),
        hard_currency_price=Decimal("3200"),
        fiscal_price=Decimal("173"),
        cash_price=Decimal("180"),
    )


def make_context(name="Rice", stock=1000, pack_size=24, current_stock=None, **lot_kwargs) -> ProductContext:
    product = ProductRecord(product_id=uuid4(), name=name, pack_size=pack_size)
    return ProductContext(
        product=product,
        lot=make_lot(product.product_id, **lot_kwargs),
        stock=stock,
        current_stock=stock if current_stock is None else current_stock,
    )


def transfer(day: date, amount: str) -> TransferRecord:
    return TransferRecord(transfer_date=day, amount=Decimal(amount))


class TestCalendar:
    def test_sunday_is_not_a_business_day(self):
        calendar = BusinessCalendar()
        assert calendar.business_days(MONDAY, date(2024, 3, 10)) == [
            date(2024, 3, d) for d in range(4, 10)
        ]

    def test_partition(self):
        period = partition_period(
            BusinessCalendar(), MONDAY, SATURDAY, [date(2024, 3, 5), date(2024, 3, 10)]
        )
        assert period.transfer_days == (date(2024, 3, 5),)
        assert len(period.other_days) == 5

    def test_custom_weekdays(self):
        calendar = BusinessCalendar(frozenset({0, 1, 2, 3, 4}))
        assert not calendar.is_business_day(SATURDAY)

    def test_empty_weekdays_rejected(self):
        with pytest.raises(ValueError):
            BusinessCalendar(frozenset())


class TestSpreadQuantity:
    def test_fewer_packs_than_days(self):
        days = [date(2024, 3, d) for d in range(4, 10)]
        result = spread_quantity(50, days, 24, make_rng(1))
        assert [(r.day, r.quantity) for r in result] == [
            (date(2024, 3, 4), 24),
            (date(2024, 3, 5), 26),
        ]

    def test_single_day_takes_everything(self):
        result = spread_quantity(7, [MONDAY], 24, make_rng(1))
        assert [(r.day, r.quantity) for r in result] == [(MONDAY, 7)]

    def test_conserves_quantity_in_whole_packs(self):
        days = [date(2024, 3, d) for d in range(4, 10)]
        result = spread_quantity(24 * 60 + 5, days, 24, make_rng(3))
        assert sum(r.quantity for r in result) == 24 * 60 + 5
        assert sum(1 for r in result if r.quantity % 24) == 1

    def test_zero_quantity(self):
        assert spread_quantity(0, [MONDAY], 24, make_rng(1)) == []


class TestChannelTargets:
    def test_transfers_fund_the_fiscal_share(self):
        product_id = uuid4()
        targets = channel_targets(Decimal("500"), make_lot(product_id))

        assert targets.total_revenue == Decimal("10000")
        assert targets.money[Channel.HARD_CURRENCY] == Decimal("9100")
        assert targets.money[Channel.FISCAL] == Decimal("500")
        assert targets.money[Channel.CASH] == Decimal("400")
        assert targets.units == {
            Channel.HARD_CURRENCY: 3,
            Channel.FISCAL: 3,
            Channel.CASH: 3,
        }

    def test_units_never_undersell(self):
        targets = channel_targets(Decimal("12345.67"), make_lot(uuid4()))
        for channel in CHANNEL_ORDER:
            assert targets.units[channel] * targets.prices[channel] >= targets.money[channel]

    def test_zero_fiscal_share_means_no_revenue(self):
        lot = make_lot(uuid4(), split=ChannelSplit(Decimal("95"), Decimal("0"), Decimal("5")))
        targets = channel_targets(Decimal("500"), lot)
        assert targets.total_revenue == Decimal("0")
        assert targets.total_units == 0


class TestAllocation:
    def test_normalize_scales_to_100(self):
        a, b = uuid4(), uuid4()
        result = normalize_allocation([AllocationEntry(a, Decimal("1")), AllocationEntry(b, Decimal("3"))])
        assert [e.percent for e in result] == [Decimal("25"), Decimal("75")]

    def test_normalize_zero_sum_rejected(self):
        with pytest.raises(ValueError):
            normalize_allocation([AllocationEntry(uuid4(), Decimal("0"))])

    def test_normalize_empty(self):
        assert normalize_allocation([]) == ()

    def test_auto_by_stock(self):
        a, b = uuid4(), uuid4()
        result = auto_allocation({a: 300, b: 100})
        assert [e.percent for e in result] == [Decimal("75"), Decimal("25")]

    def test_auto_equal_split_without_stock(self):
        a, b = uuid4(), uuid4()
        result = auto_allocation({a: 0, b: 0})
        assert [e.percent for e in result] == [Decimal("50"), Decimal("50")]


class TestPreview:
    def setup_method(self):
        self.engine = SalesDistributionEngine()
        self.rice = make_context("Rice")

    def request(self, allocation, transfers=None, **kwargs) -> DistributionRequest:
        return DistributionRequest(
            period_start=MONDAY,
            period_end=SATURDAY,
            transfers=transfers or (transfer(date(2024, 3, 5), "500"),),
            allocation=allocation,
            **kwargs,
        )

    def test_single_product_full_allocation(self):
        request = self.request((AllocationEntry(self.rice.product.product_id, Decimal("100")),))
        preview = self.engine.preview(request, {self.rice.product.product_id: self.rice}, make_rng(1))

        assert preview.total_transfers == Decimal("500")
        assert preview.transfer_days == (date(2024, 3, 5),)
        allocation = preview.products[0]
        assert allocation.targets.total_revenue == Decimal("10000")
        assert allocation.total_units == 9
        assert preview.line_units == 9
        assert [(line.line_date, line.channel, line.quantity) for line in preview.lines] == [
            (date(2024, 3, 4), Channel.HARD_CURRENCY, 3),
            (date(2024, 3, 4), Channel.CASH, 3),
            (date(2024, 3, 5), Channel.FISCAL, 3),
        ]
        assert preview.warnings == ()

    def test_fiscal_lines_only_on_transfer_days(self):
        request = self.request(
            (AllocationEntry(self.rice.product.product_id, Decimal("100")),),
            transfers=(transfer(date(2024, 3, 5), "30000"), transfer(date(2024, 3, 7), "20000")),
        )
        preview = self.engine.preview(request, {self.rice.product.product_id: self.rice}, make_rng(5))

        fiscal_days = {line.line_date for line in preview.lines if line.channel is Channel.FISCAL}
        other_days = {line.line_date for line in preview.lines if line.channel is not Channel.FISCAL}
        assert fiscal_days <= {date(2024, 3, 5), date(2024, 3, 7)}
        assert not other_days & {date(2024, 3, 5), date(2024, 3, 7)}
        assert preview.line_units == preview.total_units

    def test_lines_sorted_by_date_then_name(self):
        beans = make_context("Beans")
        request = self.request(
            (
                AllocationEntry(self.rice.product.product_id, Decimal("50")),
                AllocationEntry(beans.product.product_id, Decimal("50")),
            ),
            transfers=(transfer(date(2024, 3, 5), "40000"),),
        )
        contexts = {c.product.product_id: c for c in (self.rice, beans)}
        preview = self.engine.preview(request, contexts, make_rng(2))

        keys = [(line.line_date, line.product_name) for line in preview.lines]
        assert keys == sorted(keys)

    def test_product_without_lot_excluded(self):
        product = ProductRecord(product_id=uuid4(), name="Oil")
        ctx = ProductContext(product=product, lot=None, stock=0)
        request = self.request((AllocationEntry(product.product_id, Decimal("100")),))
        preview = self.engine.preview(request, {product.product_id: ctx}, make_rng(1))

        assert preview.products == ()
        assert preview.excluded[0].product_name == "Oil"

    def test_product_imported_after_period_excluded(self):
        late = make_context("Sugar", import_date=date(2024, 3, 11))
        request = self.request((AllocationEntry(late.product.product_id, Decimal("100")),))
        preview = self.engine.preview(request, {late.product.product_id: late}, make_rng(1))

        assert preview.lines == ()
        assert "import date" in preview.excluded[0].reason

    def test_fiscal_reassigned_when_allowed(self):
        late = make_context("Sugar", import_date=date(2024, 3, 6))
        allocation = (AllocationEntry(late.product.product_id, Decimal("100")),)

        preview = self.engine.preview(
            self.request(allocation, allow_fiscal_reassignment=True),
            {late.product.product_id: late},
            make_rng(1),
        )
        fiscal = [line for line in preview.lines if line.channel is Channel.FISCAL]
        assert [line.line_date for line in fiscal] == [date(2024, 3, 6)]

    def test_fiscal_units_unplaced_without_reassignment(self):
        late = make_context("Sugar", import_date=date(2024, 3, 6))
        allocation = (AllocationEntry(late.product.product_id, Decimal("100")),)

        preview = self.engine.preview(
            self.request(allocation), {late.product.product_id: late}, make_rng(1)
        )
        assert all(line.channel is not Channel.FISCAL for line in preview.lines)
        assert any("fiscal units have no day" in w for w in preview.warnings)
        assert preview.line_units < preview.total_units

    def test_zero_fiscal_split_warns(self):
        ctx = make_context("Salt", split=ChannelSplit(Decimal("95"), Decimal("0"), Decimal("5")))
        request = self.request((AllocationEntry(ctx.product.product_id, Decimal("100")),))
        preview = self.engine.preview(request, {ctx.product.product_id: ctx}, make_rng(1))

        assert preview.total_units == 0
        assert any("fiscal channel is 0%" in w for w in preview.warnings)

    def test_auto_mode_uses_stock(self):
        beans = make_context("Beans", stock=100)
        rice = make_context("Rice", stock=300)
        empty = make_context("Oil", stock=0)
        request = self.request(
            tuple(AllocationEntry(c.product.product_id, Decimal("0")) for c in (beans, rice, empty)),
            mode=AllocationMode.AUTO,
        )
        contexts = {c.product.product_id: c for c in (beans, rice, empty)}
        preview = self.engine.preview(request, contexts, make_rng(1))

        percents = {p.product_name: p.percent for p in preview.products}
        assert percents == {"Beans": Decimal("25"), "Rice": Decimal("75")}
        assert [e.product_name for e in preview.excluded] == ["Oil"]

    def test_auto_mode_weights_current_not_period_end_stock(self):
        rice = make_context("Rice", stock=100, current_stock=10)
        beans = make_context("Beans", stock=100, current_stock=100)
        request = self.request(
            tuple(AllocationEntry(c.product.product_id, Decimal("0")) for c in (rice, beans)),
            mode=AllocationMode.AUTO,
        )
        contexts = {c.product.product_id: c for c in (rice, beans)}

        allocation = self.engine.build_allocation(request, contexts)

        percents = {entry.product_id: entry.percent for entry in allocation}
        assert percents[rice.product.product_id].quantize(Decimal("0.01")) == Decimal("9.09")
        assert percents[beans.product.product_id].quantize(Decimal("0.01")) == Decimal("90.91")

    def test_seeded_previews_are_identical(self):
        request = self.request(
            (AllocationEntry(self.rice.product.product_id, Decimal("100")),),
            transfers=(transfer(date(2024, 3, 5), "90000"),),
        )
        contexts = {self.rice.product.product_id: self.rice}
        first = self.engine.preview(request, contexts, make_rng(7))
        second = self.engine.preview(request, contexts, make_rng(7))
        assert first.lines == second.lines

    def test_period_end_before_start_rejected(self):
        with pytest.raises(ValueError):
            DistributionRequest(
                period_start=SATURDAY, period_end=MONDAY, transfers=(), allocation=()
            )

    def test_emits_engine_trace(self, captured_logs):
        request = self.request((AllocationEntry(self.rice.product.product_id, Decimal("100")),))
        self.engine.preview(request, {self.rice.product.product_id: self.rice}, make_rng(1))

        traces = [r for r in captured_logs() if r["message"] == "IMPORTCOST_ENGINE_TRACE"]
        assert traces[-1]["engine_name"] == "distribution"
        assert len(traces[-1]["input_fingerprint"]) == 16
