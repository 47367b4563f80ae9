"""
Module: importcost_engines.calendar
Responsibility:
    Business-day enumeration for a sales period and the split of those days
    into transfer days and other days.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Business days default to Monday through Saturday (weekday 0..5).
    - transfer_days and other_days partition the business days of the
      period: a transfer landing on a non-business day or outside the
      period contributes no transfer day.
    - All lists are in ascending date order.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, timedelta

DEFAULT_BUSINESS_WEEKDAYS: frozenset[int] = frozenset({0, 1, 2, 3, 4, 5})


@dataclass(frozen=True)
class BusinessCalendar:
    """Which weekdays trade. Monday is 0, as in date.weekday()."""

    weekdays: frozenset[int] = DEFAULT_BUSINESS_WEEKDAYS

    def __post_init__(self) -> None:
        if not self.weekdays:
            raise ValueError("A business calendar needs at least one weekday")
        if any(d < 0 or d > 6 for d in self.weekdays):
            raise ValueError(f"Weekdays must be in 0..6, got {sorted(self.weekdays)}")
        object.__setattr__(self, "weekdays", frozenset(self.weekdays))

    def is_business_day(self, day: date) -> bool:
        return day.weekday() in self.weekdays

    def business_days(self, start: date, end: date) -> list[date]:
        """Business days in [start, end]; empty if end precedes start."""
        days: list[date] = []
        current = start
        while current <= end:
            if self.is_business_day(current):
                days.append(current)
            current += timedelta(days=1)
        return days


@dataclass(frozen=True)
class PeriodDays:
    business_days: tuple[date, ...]
    transfer_days: tuple[date, ...]
    other_days: tuple[date, ...]

    def from_date(self, earliest: date) -> PeriodDays:
        """The same partition restricted to days on or after earliest."""
        return PeriodDays(
            business_days=tuple(d for d in self.business_days if d >= earliest),
            transfer_days=tuple(d for d in self.transfer_days if d >= earliest),
            other_days=tuple(d for d in self.other_days if d >= earliest),
        )


def partition_period(
    calendar: BusinessCalendar,
    start: date,
    end: date,
    transfer_dates: Iterable[date],
) -> PeriodDays:
    business = calendar.business_days(start, end)
    landed = set(transfer_dates)
    transfer_days = tuple(d for d in business if d in landed)
    other_days = tuple(d for d in business if d not in landed)
    return PeriodDays(
        business_days=tuple(business),
        transfer_days=transfer_days,
        other_days=other_days,
    )
