"""Unit tests for duration parsing and the rental pricing engine."""

from datetime import date

import pytest

from src.domain.enums import DurationUnit
from src.domain.errors import ValidationError
from src.domain.pricing import (
    DailyPricing,
    Duration,
    HourlyPricing,
    PricingEngine,
    WeeklyPricing,
)


class TestDurationParse:
    def test_plural_days(self):
        assert Duration.parse("2 days") == Duration(2, DurationUnit.DAYS)

    def test_singular_week(self):
        assert Duration.parse("1 week") == Duration(1, DurationUnit.WEEKS)

    def test_hours_case_insensitive(self):
        assert Duration.parse(" 4 Hours ") == Duration(4, DurationUnit.HOURS)

    @pytest.mark.parametrize("text", ["", "days", "two days", "3 fortnights", "-1 day"])
    def test_malformed_rejected(self, text):
        with pytest.raises(ValidationError):
            Duration.parse(text)

    def test_zero_quantity_rejected(self):
        with pytest.raises(ValidationError):
            Duration.parse("0 days")

    def test_str_uses_singular_for_one(self):
        assert str(Duration(1, DurationUnit.DAYS)) == "1 day"
        assert str(Duration(3, DurationUnit.WEEKS)) == "3 weeks"


class TestPricingStrategies:
    def test_hourly_amount_rounds(self):
        assert HourlyPricing().amount(150, 4) == 25  # 150 / 24 * 4

    def test_hourly_rounds_half_up(self):
        assert HourlyPricing().amount(3, 4) == 1  # 0.5 -> 1

    def test_hourly_occupies_whole_days(self):
        assert HourlyPricing().days(8) == 1
        assert HourlyPricing().days(24) == 1
        assert HourlyPricing().days(25) == 2

    def test_daily(self):
        assert DailyPricing().amount(150, 2) == 300
        assert DailyPricing().days(2) == 2

    def test_weekly_prices_every_day(self):
        assert WeeklyPricing().days(1) == 7
        assert WeeklyPricing().amount(150, 1) == 1050


class TestPricingEngine:
    def setup_method(self):
        self.engine = PricingEngine()

    def test_two_days(self):
        quote = self.engine.quote(150, date(2024, 6, 10), Duration.parse("2 days"))
        assert quote.total_amount == 300
        assert quote.end_date == date(2024, 6, 11)

    def test_four_hours(self):
        quote = self.engine.quote(150, date(2024, 6, 10), Duration.parse("4 hours"))
        assert quote.total_amount == 25
        assert quote.end_date == date(2024, 6, 10)

    def test_week_end_date_and_amount_agree(self):
        quote = self.engine.quote(150, date(2024, 6, 10), Duration.parse("1 week"))
        assert quote.end_date == date(2024, 6, 16)  # start + 7 - 1
        assert quote.days == 7
        assert quote.total_amount == 150 * quote.days

    def test_non_positive_price_rejected(self):
        with pytest.raises(ValidationError):
            self.engine.quote(0, date(2024, 6, 10), Duration.parse("1 day"))


class TestBookingLengthLimit:
    def setup_method(self):
        self.engine = PricingEngine(max_days=365)

    def test_at_limit_is_accepted(self):
        quote = self.engine.quote(150, date(2024, 1, 1), Duration.parse("365 days"))
        assert quote.end_date == date(2024, 12, 30)

    def test_over_limit_rejected(self):
        with pytest.raises(ValidationError):
            self.engine.quote(150, date(2024, 6, 10), Duration.parse("53 weeks"))

    def test_huge_duration_rejected_before_date_arithmetic(self):
        with pytest.raises(ValidationError):
            self.engine.quote(150, date(2024, 6, 10), Duration.parse("999999999 days"))

    def test_past_end_of_calendar_without_limit(self):
        with pytest.raises(ValidationError):
            PricingEngine().quote(150, date(9999, 12, 1), Duration.parse("90 days"))
