"""
Module: importcost_engines.proration
Responsibility:
    Convert a container's expenses into local currency and prorate the
    total across its lots by invested USD value (not by unit count).

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Rate resolution: container override first, currency default second.
    - Conservation: sum of lot shares == total expense exactly whenever the
      sum of lot values is positive.  Proportional shares are computed at
      full precision and the last lot absorbs the residual.
    - Sum of lot values == 0 gives every lot a zero share.

Failure modes:
    - ExchangeRateNotFoundError when an expense currency has neither an
      override nor a default rate.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from importcost_engines.tracer import traced_engine
from importcost_kernel.domain.records import ExpenseRecord
from importcost_kernel.domain.values import HUNDRED, ZERO, safe_div
from importcost_kernel.exceptions import ExchangeRateNotFoundError
from importcost_kernel.logging_config import get_logger

logger = get_logger("engines.proration")


@dataclass(frozen=True)
class LotValue:
    lot_id: UUID
    value_usd: Decimal


@dataclass(frozen=True)
class ConvertedExpense:
    expense_id: UUID
    currency_code: str
    amount: Decimal
    rate: Decimal

    @property
    def amount_local(self) -> Decimal:
        return self.amount * self.rate


@dataclass(frozen=True)
class LotShare:
    """A lot's share of the container expense and its share of invoice value."""

    lot_id: UUID
    value_usd: Decimal
    share_local: Decimal
    invoice_percent: Decimal


@dataclass(frozen=True)
class ProrationResult:
    total_expense_local: Decimal
    total_value_usd: Decimal
    expenses: tuple[ConvertedExpense, ...]
    shares: tuple[LotShare, ...]

    def share_for(self, lot_id: UUID) -> Decimal:
        for share in self.shares:
            if share.lot_id == lot_id:
                return share.share_local
        return ZERO


def resolve_rate(
    currency_code: str,
    overrides: Mapping[str, Decimal],
    defaults: Mapping[str, Decimal],
) -> Decimal | None:
    """Container override for the currency, else its default rate."""
    if currency_code in overrides:
        return overrides[currency_code]
    return defaults.get(currency_code)


class ExpenseProrationEngine:
    """
    Expense conversion and value-weighted proration.

    Non-goals:
        - Does not round; shares are persisted at column precision.
    """

    @traced_engine(
        "proration",
        "1.0",
        fingerprint_fields=("expenses", "lots", "overrides", "defaults"),
    )
    def prorate(
        self,
        expenses: Sequence[ExpenseRecord],
        lots: Sequence[LotValue],
        overrides: Mapping[str, Decimal],
        defaults: Mapping[str, Decimal],
        container_id: UUID | None = None,
    ) -> ProrationResult:
        converted = tuple(
            self._convert(expense, overrides, defaults, container_id)
            for expense in expenses
        )
        total_expense = sum((c.amount_local for c in converted), ZERO)
        total_value = sum((lot.value_usd for lot in lots), ZERO)

        shares: list[LotShare] = []
        if total_value == ZERO:
            shares = [
                LotShare(lot.lot_id, lot.value_usd, ZERO, ZERO) for lot in lots
            ]
        else:
            allocated = ZERO
            for index, lot in enumerate(lots):
                if index == len(lots) - 1:
                    share = total_expense - allocated
                else:
                    share = total_expense * lot.value_usd / total_value
                    allocated += share
                shares.append(
                    LotShare(
                        lot_id=lot.lot_id,
                        value_usd=lot.value_usd,
                        share_local=share,
                        invoice_percent=safe_div(lot.value_usd, total_value) * HUNDRED,
                    )
                )

        logger.info(
            "expenses_prorated",
            extra={
                "container_id": str(container_id) if container_id else None,
                "expense_count": len(converted),
                "lot_count": len(shares),
                "total_expense_local": str(total_expense),
            },
        )
        return ProrationResult(
            total_expense_local=total_expense,
            total_value_usd=total_value,
            expenses=converted,
            shares=tuple(shares),
        )

    def _convert(
        self,
        expense: ExpenseRecord,
        overrides: Mapping[str, Decimal],
        defaults: Mapping[str, Decimal],
        container_id: UUID | None,
    ) -> ConvertedExpense:
        rate = resolve_rate(expense.currency_code, overrides, defaults)
        if rate is None:
            logger.error(
                "expense_rate_missing",
                extra={"currency": expense.currency_code, "expense_id": str(expense.expense_id)},
            )
            raise ExchangeRateNotFoundError(
                expense.currency_code, str(container_id) if container_id else None
            )
        return ConvertedExpense(
            expense_id=expense.expense_id,
            currency_code=expense.currency_code,
            amount=expense.amount,
            rate=rate,
        )
