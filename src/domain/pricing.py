"""
Rental Pricing Engine  (Strategy Pattern)
=========================================

A booking duration is a quantity plus a unit (``"4 hours"``,
``"2 days"``, ``"1 week"``).  Each unit has a strategy that derives both
the number of calendar days the booking occupies *and* the amount, so
the end date and the price always agree.

Formula
-------
* hours:  amount = round_half_up(price_per_day / 24 x hours),
          occupies ceil(hours / 24) days
* days:   amount = price_per_day x days
* weeks:  amount = price_per_day x (7 x weeks), occupies 7 x weeks days

Amounts are integers in the smallest currency unit.

Complexity: O(1) per quote.
"""

from __future__ import annotations

import math
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from .enums import DurationUnit
from .errors import ValidationError

HOURS_PER_DAY = 24
DAYS_PER_WEEK = 7

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([a-zA-Z]+)\s*$")

_UNIT_ALIASES = {
    "hour": DurationUnit.HOURS,
    "hours": DurationUnit.HOURS,
    "day": DurationUnit.DAYS,
    "days": DurationUnit.DAYS,
    "week": DurationUnit.WEEKS,
    "weeks": DurationUnit.WEEKS,
}


# ── Value objects ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class Duration:
    quantity: int
    unit: DurationUnit

    def __post_init__(self):
        if self.quantity < 1:
            raise ValidationError("Duration quantity must be at least 1")

    @classmethod
    def parse(cls, text: str) -> Duration:
        """Parse ``"2 days"`` / ``"1 week"`` / ``"4 hours"``."""
        match = _DURATION_RE.match(text or "")
        if not match:
            raise ValidationError(f"Malformed duration: {text!r}")
        unit = _UNIT_ALIASES.get(match.group(2).lower())
        if unit is None:
            raise ValidationError(f"Unknown duration unit in {text!r}")
        return cls(int(match.group(1)), unit)

    @classmethod
    def of_days(cls, days: int) -> Duration:
        return cls(days, DurationUnit.DAYS)

    def __str__(self) -> str:
        label = self.unit.value
        if self.quantity == 1:
            label = label[:-1]
        return f"{self.quantity} {label}"


@dataclass(frozen=True)
class Quote:
    end_date: date
    days: int
    total_amount: int


# ── Strategy hierarchy ────────────────────────────────────────────────


class PricingStrategy(ABC):
    @abstractmethod
    def days(self, quantity: int) -> int: ...

    @abstractmethod
    def amount(self, price_per_day: int, quantity: int) -> int: ...


class HourlyPricing(PricingStrategy):
    def days(self, quantity: int) -> int:
        return max(1, math.ceil(quantity / HOURS_PER_DAY))

    def amount(self, price_per_day: int, quantity: int) -> int:
        raw = Decimal(price_per_day * quantity) / Decimal(HOURS_PER_DAY)
        return int(raw.quantize(Decimal(1), rounding=ROUND_HALF_UP))


class DailyPricing(PricingStrategy):
    def days(self, quantity: int) -> int:
        return quantity

    def amount(self, price_per_day: int, quantity: int) -> int:
        return price_per_day * self.days(quantity)


class WeeklyPricing(DailyPricing):
    """A week is priced as its seven days, not as a single day."""

    def days(self, quantity: int) -> int:
        return quantity * DAYS_PER_WEEK


# ── Engine facade ─────────────────────────────────────────────────────


class PricingEngine:
    """High-level API used by the reservation service and the API layer."""

    STRATEGIES: dict[DurationUnit, PricingStrategy] = {
        DurationUnit.HOURS: HourlyPricing(),
        DurationUnit.DAYS: DailyPricing(),
        DurationUnit.WEEKS: WeeklyPricing(),
    }

    def __init__(self, max_days: Optional[int] = None):
        self.max_days = max_days

    def quote(self, price_per_day: int, start_date: date, duration: Duration) -> Quote:
        if price_per_day <= 0:
            raise ValidationError("price_per_day must be positive")
        strategy = self.STRATEGIES[duration.unit]
        days = strategy.days(duration.quantity)
        if self.max_days is not None and days > self.max_days:
            raise ValidationError(
                f"Duration {duration} spans {days} days; the limit is {self.max_days}"
            )
        try:
            end_date = start_date + timedelta(days=days - 1)
        except OverflowError as exc:
            raise ValidationError(f"Duration {duration} runs past the calendar") from exc
        return Quote(
            end_date=end_date,
            days=days,
            total_amount=strategy.amount(price_per_day, duration.quantity),
        )
