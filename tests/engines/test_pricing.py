"""
Tests for the per-lot pricing calculator.

Covers:
- Reference lot (100 units, $1000, 2 % shrinkage, 15 % margin, 85 % commercial)
- Channel quantities and prices
- Levy, other-expenses gross-up, profit tax
- Zero-denominator edge cases
- Container totals
"""

from decimal import Decimal

import pytest

from importcost_engines.pricing import (
    CASH_PRICE_FACTOR,
    LEVY_RATE,
    PROFIT_TAX_RATE,
    PricingCalculator,
    PricingInput,
    summarize_container,
)
from importcost_kernel.domain.records import ChannelSplit
from importcost_kernel.domain.values import quantize_half_up


def make_input(**overrides) -> PricingInput:
    values = dict(
        quantity=100,
        import_value_usd=Decimal("1000"),
        expense_share_local=Decimal("1000"),
        shrinkage_percent=Decimal("2"),
        margin_percent=Decimal("15"),
        exchange_rate=Decimal("320"),
        split=ChannelSplit(Decimal("91"), Decimal("5"), Decimal("4")),
        commercial_margin_percent=Decimal("85"),
        fiscal_median=Decimal("173"),
        cash_median=Decimal("173"),
        other_expenses_percent=Decimal("10"),
    )
    values.update(overrides)
    return PricingInput(**values)


class TestReferenceLot:
    def setup_method(self):
        self.result = PricingCalculator().calculate(make_input())

    def test_unit_costs(self):
        assert self.result.unit_cost_usd == Decimal("10")
        assert self.result.expense_per_unit_local == Decimal("10")
        assert self.result.gross_unit_cost_usd == Decimal("10.03125")
        assert self.result.unit_cost_local == Decimal("3210")
        assert self.result.product_cost_local == Decimal("320000")

    def test_sellable_and_shrinkage(self):
        assert self.result.sellable_quantity == Decimal("98")
        assert self.result.shrinkage_quantity == Decimal("2")

    def test_sale_price(self):
        expected = Decimal("10.03125") / Decimal("0.85") * Decimal("1.15")
        assert self.result.sale_price_usd == expected
        assert quantize_half_up(self.result.sale_price_usd, 4) == Decimal("13.5717")
        assert self.result.sale_price_local == expected * 320

    def test_channel_quantities(self):
        assert self.result.hard_currency_quantity == Decimal("89.18")
        assert self.result.fiscal_quantity == Decimal("4.9")
        assert self.result.cash_quantity == Decimal("3.92")
        assert self.result.channel_quantity_total <= self.result.sellable_quantity

    def test_fiscal_and_cash_prices(self):
        assert self.result.fiscal_price == Decimal("173")
        assert self.result.cash_price == Decimal("173") * CASH_PRICE_FACTOR

    def test_revenue_by_channel(self):
        assert self.result.fiscal_revenue == Decimal("847.7")
        assert self.result.cash_revenue == Decimal("3.92") * Decimal("155.70")
        assert self.result.total_revenue == (
            self.result.hard_currency_revenue
            + self.result.fiscal_revenue
            + self.result.cash_revenue
        )

    def test_taxes_and_gross_up(self):
        r = self.result
        assert r.levy == r.total_revenue * LEVY_RATE
        assert r.cost_base_local == Decimal("320000") + Decimal("1000") + r.levy
        assert quantize_half_up(r.gross_total_cost, 6) == quantize_half_up(
            r.cost_base_local / Decimal("0.9"), 6
        )
        assert r.profit_tax == r.estimated_profit * PROFIT_TAX_RATE
        assert r.total_taxes == r.levy + r.profit_tax
        assert r.real_gross_profit == r.total_revenue - r.gross_total_cost - r.total_taxes

    def test_break_even(self):
        assert self.result.investment_usd == Decimal("1003.125")
        # investment / price simplifies to 100 x 0.85 / 1.15
        assert quantize_half_up(self.result.break_even_units, 6) == quantize_half_up(
            Decimal("85") / Decimal("1.15"), 6
        )
        assert quantize_half_up(self.result.break_even_percent, 2) == Decimal("75.42")

    def test_basic_analysis(self):
        r = self.result
        assert r.basic_sales_usd == r.sale_price_usd * 98
        assert r.basic_gross_profit_usd == r.basic_sales_usd - Decimal("980")
        assert r.basic_gross_profit_local == r.basic_gross_profit_usd * 320


class TestEdgeCases:
    def setup_method(self):
        self.calculator = PricingCalculator()

    def test_zero_quantity_rejected(self):
        with pytest.raises(ValueError):
            make_input(quantity=0)

    def test_float_amount_rejected(self):
        with pytest.raises(ValueError):
            make_input(import_value_usd=1000.0)

    def test_zero_commercial_margin_gives_zero_price(self):
        result = self.calculator.calculate(make_input(commercial_margin_percent=Decimal("0")))
        assert result.sale_price_usd == Decimal("0")
        assert result.break_even_units == Decimal("0")
        assert result.break_even_percent == Decimal("0")

    def test_zero_exchange_rate_does_not_raise(self):
        result = self.calculator.calculate(make_input(exchange_rate=Decimal("0")))
        assert result.gross_unit_cost_usd == Decimal("10")
        assert result.sale_price_local == Decimal("0")

    def test_full_shrinkage(self):
        result = self.calculator.calculate(make_input(shrinkage_percent=Decimal("100")))
        assert result.sellable_quantity == Decimal("0")
        assert result.shrinkage_quantity == Decimal("100")
        assert result.total_revenue == Decimal("0")
        assert result.tax_burden_percent == Decimal("0")
        assert result.break_even_percent == Decimal("0")

    def test_other_expenses_at_100_yields_zero_gross_up(self):
        result = self.calculator.calculate(make_input(other_expenses_percent=Decimal("100")))
        assert result.other_expenses_local == Decimal("0")
        assert result.gross_total_cost == result.cost_base_local

    def test_deterministic(self):
        inputs = make_input()
        assert self.calculator.calculate(inputs) == self.calculator.calculate(inputs)


class TestContainerTotals:
    def test_sums_lots(self):
        calculator = PricingCalculator()
        first = calculator.calculate(make_input())
        second = calculator.calculate(make_input(quantity=50, import_value_usd=Decimal("500")))

        totals = summarize_container([100, 50], [first, second])

        assert totals.lot_count == 2
        assert totals.total_quantity == Decimal("150")
        assert totals.sellable_quantity == Decimal("147")
        assert totals.total_revenue == first.total_revenue + second.total_revenue
        assert totals.total_taxes == first.total_taxes + second.total_taxes
        assert totals.tax_burden_percent > Decimal("0")

    def test_length_mismatch(self):
        result = PricingCalculator().calculate(make_input())
        with pytest.raises(ValueError):
            summarize_container([100, 50], [result])

    def test_empty_container(self):
        totals = summarize_container([], [])
        assert totals.lot_count == 0
        assert totals.estimated_profit_percent == Decimal("0")
