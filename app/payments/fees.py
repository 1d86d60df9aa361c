"""
Marketplace fee calculation.

All arithmetic is on integer cents and integer basis points (1 bps = 0.01 %).
Percentages configured in settings are parsed as Decimals and converted to
basis points once, so no float ever touches money.

Rounding is half-up on the integer product::

    fee = (amount_cents * bps + 5000) // 10000

Usage:
    from payments.fees import calculate_fees

    fees = calculate_fees(10000)
    fees.platform_fee_cents     # 500
    fees.processor_fee_cents    # 320
    fees.seller_receives_cents  # 9180
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from django.conf import settings

from payments.exceptions import FeeCalculationError

BASIS_POINTS_PER_UNIT = 10000
_CENT = Decimal("0.01")


@dataclass(frozen=True)
class FeeSchedule:
    """
    Rates applied to a sale.

    Attributes:
        platform_fee_bps: Platform commission in basis points (500 = 5 %)
        processor_fee_bps: Processor percentage in basis points (290 = 2.9 %)
        processor_fixed_cents: Processor flat fee per charge
    """

    platform_fee_bps: int = 500
    processor_fee_bps: int = 290
    processor_fixed_cents: int = 30

    @classmethod
    def from_settings(cls) -> FeeSchedule:
        """
        Build the schedule from PLATFORM_FEE_PERCENT, PROCESSOR_FEE_PERCENT
        and PROCESSOR_FEE_FIXED_CENTS.

        Raises:
            ValueError: If a percentage is not a decimal number or is finer
                than one basis point
        """
        return cls(
            platform_fee_bps=percent_to_bps(settings.PLATFORM_FEE_PERCENT),
            processor_fee_bps=percent_to_bps(settings.PROCESSOR_FEE_PERCENT),
            processor_fixed_cents=int(settings.PROCESSOR_FEE_FIXED_CENTS),
        )


@dataclass(frozen=True)
class FeeBreakdown:
    """
    Result of pricing one sale.

    ``platform_net_cents`` is what the platform keeps after absorbing the
    processor fee. It can be negative on very small sales.
    """

    amount_cents: int
    processor_fee_cents: int
    platform_fee_cents: int
    total_fees_cents: int
    seller_receives_cents: int
    platform_net_cents: int


def percent_to_bps(percent: str | int | Decimal) -> int:
    """
    Convert a percentage such as "2.9" to basis points (290).

    Raises:
        ValueError: If the value is not a number, is negative, or has more
            precision than one basis point
    """
    try:
        value = Decimal(str(percent))
    except InvalidOperation as e:
        raise ValueError(f"Invalid fee percentage: {percent!r}") from e

    bps = value * 100
    if bps < 0 or bps != bps.to_integral_value():
        raise ValueError(
            f"Fee percentage must be a non-negative multiple of 0.01: {percent!r}"
        )
    return int(bps)


def _apply_rate(amount_cents: int, bps: int) -> int:
    return (amount_cents * bps + BASIS_POINTS_PER_UNIT // 2) // BASIS_POINTS_PER_UNIT


def calculate_fees(
    amount_cents: int,
    schedule: FeeSchedule | None = None,
) -> FeeBreakdown:
    """
    Split a gross sale amount into processor fee, platform fee and seller share.

    Args:
        amount_cents: Gross amount charged to the buyer, in cents
        schedule: Rates to apply (defaults to the configured schedule)

    Returns:
        FeeBreakdown where platform + processor + seller == amount

    Raises:
        FeeCalculationError: If amount_cents is not a positive integer
    """
    if (
        isinstance(amount_cents, bool)
        or not isinstance(amount_cents, int)
        or amount_cents <= 0
    ):
        raise FeeCalculationError(
            "Amount must be a positive integer number of cents",
            details={"amount_cents": repr(amount_cents)},
        )

    schedule = schedule or FeeSchedule.from_settings()

    processor_fee = (
        _apply_rate(amount_cents, schedule.processor_fee_bps)
        + schedule.processor_fixed_cents
    )
    platform_fee = _apply_rate(amount_cents, schedule.platform_fee_bps)
    total_fees = platform_fee + processor_fee

    return FeeBreakdown(
        amount_cents=amount_cents,
        processor_fee_cents=processor_fee,
        platform_fee_cents=platform_fee,
        total_fees_cents=total_fees,
        seller_receives_cents=amount_cents - total_fees,
        platform_net_cents=platform_fee - processor_fee,
    )


# =============================================================================
# Currency helpers
# =============================================================================


def to_cents(amount: Decimal | str | int) -> int:
    """Convert a major-unit amount (Decimal("150.005")) to cents, half-up."""
    value = Decimal(str(amount)).quantize(_CENT, rounding=ROUND_HALF_UP)
    return int(value * 100)


def from_cents(cents: int) -> Decimal:
    """Convert cents to a two-place Decimal in major units."""
    return (Decimal(cents) / 100).quantize(_CENT)


def format_cents(cents: int, currency: str = "usd") -> str:
    """Format cents for notes and messages: 1500000 -> "15,000.00 USD"."""
    return f"{from_cents(cents):,.2f} {currency.upper()}"
