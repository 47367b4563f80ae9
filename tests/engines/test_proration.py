"""Tests for expense conversion and value-weighted proration."""

from decimal import Decimal
from uuid import uuid4

import pytest

from importcost_engines.proration import ExpenseProrationEngine, LotValue, resolve_rate
from importcost_kernel.domain.records import ExpenseRecord
from importcost_kernel.exceptions import ExchangeRateNotFoundError

DEFAULTS = {"USD": Decimal("320"), "EUR": Decimal("340"), "CUP": Decimal("1")}


def expense(currency: str, amount: str) -> ExpenseRecord:
    return ExpenseRecord(expense_id=uuid4(), currency_code=currency, amount=Decimal(amount))


class TestResolveRate:
    def test_override_wins(self):
        assert resolve_rate("USD", {"USD": Decimal("300")}, DEFAULTS) == Decimal("300")

    def test_default_fallback(self):
        assert resolve_rate("EUR", {"USD": Decimal("300")}, DEFAULTS) == Decimal("340")

    def test_unknown(self):
        assert resolve_rate("GBP", {}, DEFAULTS) is None


class TestProration:
    def setup_method(self):
        self.engine = ExpenseProrationEngine()
        self.lot_a = uuid4()
        self.lot_b = uuid4()

    def test_shares_follow_value_not_quantity(self):
        result = self.engine.prorate(
            [expense("CUP", "400")],
            [LotValue(self.lot_a, Decimal("1000")), LotValue(self.lot_b, Decimal("3000"))],
            {},
            DEFAULTS,
        )
        assert result.share_for(self.lot_a) == Decimal("100")
        assert result.share_for(self.lot_b) == Decimal("300")
        assert result.total_expense_local == Decimal("400")
        assert result.shares[0].invoice_percent == Decimal("25")

    def test_converts_with_override_then_default(self):
        result = self.engine.prorate(
            [expense("USD", "10"), expense("EUR", "1")],
            [LotValue(self.lot_a, Decimal("1"))],
            {"USD": Decimal("300")},
            DEFAULTS,
        )
        assert result.total_expense_local == Decimal("3340")
        assert [e.rate for e in result.expenses] == [Decimal("300"), Decimal("340")]

    def test_residual_goes_to_last_lot(self):
        lots = [LotValue(uuid4(), Decimal("1")) for _ in range(3)]
        result = self.engine.prorate([expense("CUP", "100")], lots, {}, DEFAULTS)

        assert sum(s.share_local for s in result.shares) == Decimal("100")
        assert result.shares[-1].share_local == Decimal("100") - (
            result.shares[0].share_local + result.shares[1].share_local
        )

    def test_zero_value_lots_get_zero(self):
        result = self.engine.prorate(
            [expense("CUP", "100")],
            [LotValue(self.lot_a, Decimal("0")), LotValue(self.lot_b, Decimal("0"))],
            {},
            DEFAULTS,
        )
        assert result.share_for(self.lot_a) == Decimal("0")
        assert result.share_for(self.lot_b) == Decimal("0")

    def test_no_expenses(self):
        result = self.engine.prorate([], [LotValue(self.lot_a, Decimal("10"))], {}, DEFAULTS)
        assert result.total_expense_local == Decimal("0")
        assert result.share_for(self.lot_a) == Decimal("0")

    def test_missing_rate_raises(self, captured_logs):
        with pytest.raises(ExchangeRateNotFoundError) as exc_info:
            self.engine.prorate(
                [expense("GBP", "5")],
                [LotValue(self.lot_a, Decimal("10"))],
                {},
                DEFAULTS,
            )
        assert exc_info.value.currency == "GBP"
        assert any(r["message"] == "expense_rate_missing" for r in captured_logs())
