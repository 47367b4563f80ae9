"""
Module: importcost_engines.pricing
Responsibility:
    Turn one imported lot's quantity, USD value, prorated expense share and
    container percentages into unit costs, sellable and per-channel
    quantities, channel prices and revenues, taxes, profit and break-even
    figures.  Also consolidates per-lot results into container totals.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import importcost_kernel/domain.

Invariants enforced:
    - Decimal-only arithmetic at full precision; rounding happens only when
      results are persisted or displayed.
    - sellable_quantity + shrinkage_quantity == quantity exactly.
    - Zero denominators (commercial margin, exchange rate, revenue, sale
      price, sellable quantity, other-expenses divisor) yield zero.
    - Determinism: identical inputs produce identical results.

Failure modes:
    - ValueError if quantity <= 0 or any amount is not a finite Decimal.
      Percentages are trusted: callers pass values already validated to
      [0, 100].

Fixed policies (not configurable):
    - cash channel price = cash median x 0.90
    - levy = 11 % of total revenue, included in the base BEFORE the
      other-expenses gross-up
    - profit tax = 35 % of estimated profit

Usage:
    from importcost_engines.pricing import PricingCalculator, PricingInput

    result = PricingCalculator().calculate(PricingInput(
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
    ))
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, fields
from decimal import Decimal

from importcost_engines.tracer import traced_engine
from importcost_kernel.domain.records import ChannelSplit
from importcost_kernel.domain.values import (
    HUNDRED,
    ONE,
    ZERO,
    percent_of,
    safe_div,
    to_decimal,
)
from importcost_kernel.logging_config import get_logger

logger = get_logger("engines.pricing")

CASH_PRICE_FACTOR = Decimal("0.90")
LEVY_RATE = Decimal("0.11")
PROFIT_TAX_RATE = Decimal("0.35")


@dataclass(frozen=True)
class PricingInput:
    """
    Inputs for one lot.

    Contract:
        import_value_usd is the lot's total USD value; expense_share_local
        is its prorated share of container expenses in local currency.
    """

    quantity: int
    import_value_usd: Decimal
    expense_share_local: Decimal
    shrinkage_percent: Decimal
    margin_percent: Decimal
    exchange_rate: Decimal
    split: ChannelSplit
    commercial_margin_percent: Decimal
    fiscal_median: Decimal
    cash_median: Decimal
    other_expenses_percent: Decimal

    def __post_init__(self) -> None:
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int):
            raise ValueError(f"quantity must be an integer, got {self.quantity!r}")
        if self.quantity <= 0:
            raise ValueError(f"quantity must be positive, got {self.quantity}")
        for f in fields(self):
            if f.name in ("quantity", "split"):
                continue
            object.__setattr__(self, f.name, to_decimal(getattr(self, f.name)))


@dataclass(frozen=True)
class PricingResult:
    """Every derived figure for one lot. Money is local currency unless suffixed _usd."""

    # Costs
    unit_cost_usd: Decimal
    expense_per_unit_local: Decimal
    gross_unit_cost_usd: Decimal
    unit_cost_local: Decimal
    product_cost_local: Decimal

    # Quantities
    sellable_quantity: Decimal
    shrinkage_quantity: Decimal
    hard_currency_quantity: Decimal
    fiscal_quantity: Decimal
    cash_quantity: Decimal

    # Prices
    sale_price_usd: Decimal
    sale_price_local: Decimal
    fiscal_price: Decimal
    cash_price: Decimal

    # Revenue by channel
    hard_currency_revenue: Decimal
    fiscal_revenue: Decimal
    cash_revenue: Decimal
    total_revenue: Decimal

    # Basic analysis over the sellable quantity
    investment_usd: Decimal
    basic_sales_usd: Decimal
    basic_sales_local: Decimal
    basic_gross_profit_usd: Decimal
    basic_gross_profit_local: Decimal
    basic_gross_profit_percent: Decimal

    # Costs and taxes
    levy: Decimal
    cost_base_local: Decimal
    other_expenses_local: Decimal
    gross_total_cost: Decimal
    estimated_profit: Decimal
    estimated_profit_percent: Decimal
    profit_tax: Decimal
    total_taxes: Decimal
    tax_burden_percent: Decimal
    real_gross_profit: Decimal

    # Break-even
    break_even_units: Decimal
    break_even_percent: Decimal

    @property
    def channel_quantity_total(self) -> Decimal:
        return self.hard_currency_quantity + self.fiscal_quantity + self.cash_quantity


@dataclass(frozen=True)
class ContainerTotals:
    """Consolidated figures over all lots of a container."""

    lot_count: int
    total_quantity: Decimal
    sellable_quantity: Decimal
    shrinkage_quantity: Decimal
    hard_currency_revenue: Decimal
    fiscal_revenue: Decimal
    cash_revenue: Decimal
    total_revenue: Decimal
    product_cost_local: Decimal
    investment_usd: Decimal
    levy: Decimal
    other_expenses_local: Decimal
    gross_total_cost: Decimal
    estimated_profit: Decimal
    profit_tax: Decimal
    total_taxes: Decimal
    real_gross_profit: Decimal

    @property
    def tax_burden_percent(self) -> Decimal:
        return safe_div(self.total_taxes, self.total_revenue) * HUNDRED

    @property
    def estimated_profit_percent(self) -> Decimal:
        return safe_div(self.estimated_profit, self.total_revenue) * HUNDRED


class PricingCalculator:
    """
    Pure per-lot pricing.

    Contract:
        ``calculate`` is a function of its input only.

    Non-goals:
        - Does not validate percentages; see module docstring.
        - Does not round; callers quantize when persisting.
    """

    @traced_engine("pricing", "1.0", fingerprint_fields=("inputs",))
    def calculate(self, inputs: PricingInput) -> PricingResult:
        quantity = Decimal(inputs.quantity)
        rate = inputs.exchange_rate

        # Costs
        unit_cost_usd = inputs.import_value_usd / quantity
        expense_per_unit_local = inputs.expense_share_local / quantity
        gross_unit_cost_usd = unit_cost_usd + safe_div(expense_per_unit_local, rate)
        unit_cost_local = unit_cost_usd * rate + expense_per_unit_local
        product_cost_local = inputs.import_value_usd * rate

        # Quantities
        sellable = quantity * (ONE - inputs.shrinkage_percent / HUNDRED)
        shrinkage_quantity = quantity - sellable
        hard_qty = percent_of(sellable, inputs.split.hard_currency)
        fiscal_qty = percent_of(sellable, inputs.split.fiscal)
        cash_qty = percent_of(sellable, inputs.split.cash)

        # Prices
        commercial_factor = inputs.commercial_margin_percent / HUNDRED
        sale_price_usd = safe_div(gross_unit_cost_usd, commercial_factor) * (
            ONE + inputs.margin_percent / HUNDRED
        )
        sale_price_local = sale_price_usd * rate
        fiscal_price = inputs.fiscal_median
        cash_price = inputs.cash_median * CASH_PRICE_FACTOR

        # Revenue
        hard_revenue = hard_qty * sale_price_local
        fiscal_revenue = fiscal_qty * fiscal_price
        cash_revenue = cash_qty * cash_price
        total_revenue = hard_revenue + fiscal_revenue + cash_revenue

        # Basic analysis
        investment_usd = inputs.import_value_usd + safe_div(inputs.expense_share_local, rate)
        basic_sales_usd = sale_price_usd * sellable
        basic_sales_local = sale_price_local * sellable
        basic_gross_profit_usd = basic_sales_usd - unit_cost_usd * sellable
        basic_gross_profit_local = basic_gross_profit_usd * rate
        basic_gross_profit_percent = safe_div(basic_gross_profit_usd, basic_sales_usd) * HUNDRED

        # Costs and taxes. The levy is part of the base that gets grossed up.
        levy = total_revenue * LEVY_RATE
        cost_base = product_cost_local + inputs.expense_share_local + levy
        other_divisor = ONE - inputs.other_expenses_percent / HUNDRED
        other_expenses = ZERO if other_divisor == ZERO else cost_base / other_divisor - cost_base
        gross_total_cost = cost_base + other_expenses

        estimated_profit = total_revenue - gross_total_cost
        profit_tax = estimated_profit * PROFIT_TAX_RATE
        total_taxes = levy + profit_tax
        real_gross_profit = total_revenue - gross_total_cost - total_taxes

        # Break-even
        break_even_units = safe_div(investment_usd, sale_price_usd)
        break_even_percent = safe_div(break_even_units, sellable) * HUNDRED

        result = PricingResult(
            unit_cost_usd=unit_cost_usd,
            expense_per_unit_local=expense_per_unit_local,
            gross_unit_cost_usd=gross_unit_cost_usd,
            unit_cost_local=unit_cost_local,
            product_cost_local=product_cost_local,
            sellable_quantity=sellable,
            shrinkage_quantity=shrinkage_quantity,
            hard_currency_quantity=hard_qty,
            fiscal_quantity=fiscal_qty,
            cash_quantity=cash_qty,
            sale_price_usd=sale_price_usd,
            sale_price_local=sale_price_local,
            fiscal_price=fiscal_price,
            cash_price=cash_price,
            hard_currency_revenue=hard_revenue,
            fiscal_revenue=fiscal_revenue,
            cash_revenue=cash_revenue,
            total_revenue=total_revenue,
            investment_usd=investment_usd,
            basic_sales_usd=basic_sales_usd,
            basic_sales_local=basic_sales_local,
            basic_gross_profit_usd=basic_gross_profit_usd,
            basic_gross_profit_local=basic_gross_profit_local,
            basic_gross_profit_percent=basic_gross_profit_percent,
            levy=levy,
            cost_base_local=cost_base,
            other_expenses_local=other_expenses,
            gross_total_cost=gross_total_cost,
            estimated_profit=estimated_profit,
            estimated_profit_percent=safe_div(estimated_profit, total_revenue) * HUNDRED,
            profit_tax=profit_tax,
            total_taxes=total_taxes,
            tax_burden_percent=safe_div(total_taxes, total_revenue) * HUNDRED,
            real_gross_profit=real_gross_profit,
            break_even_units=break_even_units,
            break_even_percent=break_even_percent,
        )

        logger.debug(
            "pricing_calculated",
            extra={
                "quantity": inputs.quantity,
                "sale_price_usd": str(sale_price_usd),
                "total_revenue": str(total_revenue),
            },
        )
        return result


def summarize_container(
    quantities: Sequence[int],
    results: Sequence[PricingResult],
) -> ContainerTotals:
    """
    Sum per-lot results into container totals.

    quantities[i] is the lot quantity that produced results[i].
    """
    if len(quantities) != len(results):
        raise ValueError("quantities and results must have the same length")

    def total(attr: str) -> Decimal:
        return sum((getattr(r, attr) for r in results), ZERO)

    return ContainerTotals(
        lot_count=len(results),
        total_quantity=Decimal(sum(quantities)),
        sellable_quantity=total("sellable_quantity"),
        shrinkage_quantity=total("shrinkage_quantity"),
        hard_currency_revenue=total("hard_currency_revenue"),
        fiscal_revenue=total("fiscal_revenue"),
        cash_revenue=total("cash_revenue"),
        total_revenue=total("total_revenue"),
        product_cost_local=total("product_cost_local"),
        investment_usd=total("investment_usd"),
        levy=total("levy"),
        other_expenses_local=total("other_expenses_local"),
        gross_total_cost=total("gross_total_cost"),
        estimated_profit=total("estimated_profit"),
        profit_tax=total("profit_tax"),
        total_taxes=total("total_taxes"),
        real_gross_profit=total("real_gross_profit"),
    )
