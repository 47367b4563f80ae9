"""Tests for per-product and overall sale totals."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

from importcost_engines.sale_totals import sale_totals
from importcost_kernel.domain.records import Channel, SaleLine


def line(product_id, name, channel, quantity, price, day=date(2024, 3, 5)):
    return SaleLine(
        line_date=day,
        product_id=product_id,
        lot_id=uuid4(),
        product_name=name,
        channel=channel,
        quantity=quantity,
        unit_price=Decimal(price),
    )


class TestSaleTotals:
    def setup_method(self):
        self.rice = uuid4()
        self.oil = uuid4()
        self.lines = [
            line(self.rice, "Rice", Channel.HARD_CURRENCY, 3, "12.50"),
            line(self.rice, "Rice", Channel.FISCAL, 2, "173"),
            line(self.rice, "Rice", Channel.FISCAL, 1, "173", day=date(2024, 3, 6)),
            line(self.oil, "Oil", Channel.CASH, 4, "90"),
        ]

    def test_per_product_channels(self):
        totals = sale_totals(self.lines, "CUP")
        rice = totals.by_product[self.rice]

        assert rice.name == "Rice"
        assert rice.by_channel[Channel.HARD_CURRENCY].quantity == 3
        assert rice.by_channel[Channel.HARD_CURRENCY].subtotal == Decimal("37.50")
        assert rice.by_channel[Channel.FISCAL].quantity == 3
        assert rice.by_channel[Channel.FISCAL].subtotal == Decimal("519")
        assert rice.by_channel[Channel.CASH].quantity == 0
        assert rice.total.quantity == 6
        assert rice.total.subtotal == Decimal("556.50")

    def test_overall(self):
        totals = sale_totals(self.lines, "CUP")

        assert totals.overall.total.quantity == 10
        assert totals.overall.total.subtotal == Decimal("916.50")
        assert totals.overall.by_channel[Channel.CASH].subtotal == Decimal("360")
        assert totals.total_amount.amount == Decimal("916.50")
        assert totals.total_amount.currency.code == "CUP"

    def test_no_lines(self):
        totals = sale_totals([], "CUP")

        assert totals.by_product == {}
        assert totals.overall.total.quantity == 0
        assert totals.total_amount.amount == Decimal("0")

    def test_total_amount_rounded_to_currency(self):
        totals = sale_totals([line(self.rice, "Rice", Channel.CASH, 1, "0.125")], "CUP")

        assert totals.overall.total.subtotal == Decimal("0.125")
        assert totals.total_amount.amount == Decimal("0.13")
