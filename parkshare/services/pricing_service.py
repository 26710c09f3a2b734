"""Time-proportional parking prices.

A tiered table maps ``hour1``..``hourN`` to the price charged for that hour of
parking.  Whole hours are billed at their own tier, the trailing fraction of an
hour is billed proportionally at the next tier.  Every line is rounded to the
nearest cent before the lines are summed, so totals are exact integers.
"""

import math
from dataclasses import asdict, dataclass, field
from decimal import Decimal

from flask import current_app

from parkshare.constants import PricingMode
from parkshare.errors import AppError, InvalidPricingDataError
from parkshare.services.listing_policy_service import ListingPolicyService
from parkshare.utils import clock

MS_PER_HOUR = 60 * 60 * 1000
VALIDATED_TIERS = 12
FALLBACK_HOURLY_RATE = Decimal("10")
MAX_BILLABLE_HOURS = 24 * 365


@dataclass
class PriceBreakdownLine:
    hour: int
    price: float
    price_cents: int
    is_fractional: bool
    fractional_part: float | None = None


@dataclass
class PriceResult:
    total_price_cents: int
    total_price: str
    exact_hours: float
    whole_hours: int
    fractional_hours: float
    calculation_method: str
    breakdown: list[PriceBreakdownLine] = field(default_factory=list)

    def to_dict(self):
        return asdict(self)


def round_cents(amount) -> int:
    """Round a major-unit amount to whole cents.

    Halves round up on the float product ``amount * 100``, so half an hour at
    2.01 bills 100 cents: the product is 100.49999999999999, not 100.5.
    """
    return math.floor(float(amount) * 100 + 0.5)


def _parse_rate(raw):
    if raw is None or isinstance(raw, bool):
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value) or value < 0:
        return None
    return value


class PricingService:
    @staticmethod
    def has_tiered_pricing(pricing) -> bool:
        # A zero or blank first hour counts as "no table", same as a missing one.
        return isinstance(pricing, dict) and bool(pricing.get("hour1"))

    @staticmethod
    def hour_rate(pricing, hour, default_rate=FALLBACK_HOURLY_RATE) -> float:
        rate = _parse_rate(pricing.get(f"hour{hour}"))
        if rate is None:
            rate = _parse_rate(pricing.get("hour1"))
        if rate is None:
            rate = float(default_rate)
        return rate

    @staticmethod
    def calculate_price(
        duration_ms,
        pricing,
        legacy_rate,
        mode=PricingMode.PROPORTIONAL,
        min_billable_hours=1,
        default_rate=FALLBACK_HOURLY_RATE,
        max_billable_hours=MAX_BILLABLE_HOURS,
    ) -> PriceResult:
        min_hours = float(min_billable_hours)
        exact_hours = float(duration_ms) / MS_PER_HOUR
        if not math.isfinite(exact_hours):
            raise AppError("Duration must be a finite number of milliseconds.", 400)
        # One breakdown line is built per hour, so the window has to be bounded.
        if max_billable_hours is not None and exact_hours > float(max_billable_hours):
            raise AppError(f"Duration exceeds the maximum of {max_billable_hours} billable hours.", 400)
        if exact_hours < min_hours:
            return PricingService.calculate_price(
                min_hours * MS_PER_HOUR,
                pricing,
                legacy_rate,
                mode=mode,
                min_billable_hours=min_billable_hours,
                default_rate=default_rate,
                max_billable_hours=max_billable_hours,
            )

        if PricingMode(mode) == PricingMode.LEGACY or not PricingService.has_tiered_pricing(pricing):
            return PricingService._legacy_price(exact_hours, legacy_rate)
        return PricingService._proportional_price(exact_hours, pricing, default_rate)

    @staticmethod
    def _legacy_price(exact_hours, legacy_rate) -> PriceResult:
        rate = float(legacy_rate)
        billed_hours = math.ceil(exact_hours)
        total_cents = round_cents(billed_hours * rate)
        rate_cents = round_cents(rate)
        breakdown = [
            PriceBreakdownLine(hour=i, price=rate, price_cents=rate_cents, is_fractional=False)
            for i in range(1, billed_hours + 1)
        ]
        return PriceResult(
            total_price_cents=total_cents,
            total_price=PricingService.format_cents(total_cents),
            exact_hours=exact_hours,
            whole_hours=billed_hours,
            fractional_hours=0.0,
            calculation_method=PricingMode.LEGACY.value,
            breakdown=breakdown,
        )

    @staticmethod
    def _proportional_price(exact_hours, pricing, default_rate) -> PriceResult:
        whole_hours = math.floor(exact_hours)
        fractional_part = exact_hours - whole_hours

        breakdown = []
        for hour in range(1, whole_hours + 1):
            rate = PricingService.hour_rate(pricing, hour, default_rate)
            breakdown.append(
                PriceBreakdownLine(hour=hour, price=rate, price_cents=round_cents(rate), is_fractional=False)
            )

        if fractional_part > 0:
            next_hour = whole_hours + 1
            partial = fractional_part * PricingService.hour_rate(pricing, next_hour, default_rate)
            breakdown.append(
                PriceBreakdownLine(
                    hour=next_hour,
                    price=partial,
                    price_cents=round_cents(partial),
                    is_fractional=True,
                    fractional_part=fractional_part,
                )
            )

        total_cents = sum(line.price_cents for line in breakdown)
        return PriceResult(
            total_price_cents=total_cents,
            total_price=PricingService.format_cents(total_cents),
            exact_hours=exact_hours,
            whole_hours=whole_hours,
            fractional_hours=fractional_part,
            calculation_method=PricingMode.PROPORTIONAL.value,
            breakdown=breakdown,
        )

    @staticmethod
    def format_cents(cents) -> str:
        return str((Decimal(int(cents)) / 100).quantize(Decimal("0.01")))

    @staticmethod
    def format_breakdown(result: PriceResult) -> str:
        parts = []
        for line in result.breakdown:
            label = f"Hour {line.hour}: {PricingService.format_cents(line.price_cents)}"
            if line.is_fractional and line.fractional_part:
                label += f" ({line.fractional_part * 100:.0f}%)"
            parts.append(label)
        return f"{' + '.join(parts)} = {result.total_price}"

    @staticmethod
    def validate_pricing_data(pricing):
        """Return ``(is_valid, errors)`` for a tiered table; pricing itself never needs this."""
        if not isinstance(pricing, dict):
            return False, ["Pricing table is missing or malformed."]

        errors = []
        if _parse_rate(pricing.get("hour1")) is None:
            errors.append("Price for hour 1 is missing or invalid.")
        for hour in range(2, VALIDATED_TIERS + 1):
            raw = pricing.get(f"hour{hour}")
            if raw is not None and _parse_rate(raw) is None:
                errors.append(f"Price for hour {hour} is invalid: {raw!r}.")
        return not errors, errors

    @staticmethod
    def ensure_valid_pricing(pricing):
        is_valid, errors = PricingService.validate_pricing_data(pricing)
        if not is_valid:
            raise InvalidPricingDataError(errors)
        return pricing

    @staticmethod
    def configured_options():
        """Pricing knobs resolved once per request from the app config."""
        config = current_app.config
        return {
            "mode": PricingMode.from_config(config.get("PRICING_MODE")),
            "min_billable_hours": config.get("MIN_BILLABLE_HOURS", 1),
            "default_rate": config.get("DEFAULT_HOURLY_RATE", FALLBACK_HOURLY_RATE),
            "max_billable_hours": config.get("MAX_BILLABLE_HOURS", MAX_BILLABLE_HOURS),
        }

    @staticmethod
    def quote_for_listing(listing_id, start, end) -> PriceResult:
        policy = ListingPolicyService.resolve(listing_id)
        return PricingService.calculate_price(
            clock.duration_ms(start, end),
            policy.tiered_pricing,
            policy.legacy_hourly_rate,
            **PricingService.configured_options(),
        )
