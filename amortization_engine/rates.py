"""
Rate basis conversions. All rates are decimals (0.12 = 12%).

Pure functions; invalid domains (negative rates, non-positive periodicities)
raise InvalidParameter.
"""
from __future__ import annotations

from typing import Optional

from .bonds import BondParameters, RateBasis
from .errors import InvalidParameter


def _check_rate(rate: float, name: str = "rate") -> None:
    if rate < 0:
        raise InvalidParameter(f"{name} must be non-negative, got {rate}", stage="rate_conversion")


def _check_periods(periods: float, name: str = "periods_per_year") -> None:
    if periods <= 0:
        raise InvalidParameter(f"{name} must be positive, got {periods}", stage="rate_conversion")


def nominal_to_effective_annual(nominal_rate: float, periods_per_year: int) -> float:
    """(1 + j/m)^m - 1"""
    _check_rate(nominal_rate, "nominal_rate")
    _check_periods(periods_per_year)
    return (1.0 + nominal_rate / periods_per_year) ** periods_per_year - 1.0


def effective_annual_to_period_rate(effective_annual: float, periods_per_year: float) -> float:
    """(1 + i)^(1/m) - 1"""
    _check_rate(effective_annual, "effective_annual")
    _check_periods(periods_per_year)
    return (1.0 + effective_annual) ** (1.0 / periods_per_year) - 1.0


def convert_period_rate(rate: float, from_periods_per_year: float, to_periods_per_year: float) -> float:
    """Re-express an effective periodic rate at another periodicity: (1 + r)^(p/q) - 1."""
    _check_rate(rate)
    _check_periods(from_periods_per_year, "from_periods_per_year")
    _check_periods(to_periods_per_year, "to_periods_per_year")
    return (1.0 + rate) ** (from_periods_per_year / to_periods_per_year) - 1.0


def annualize_period_rate(period_rate: float, periods_per_year: float) -> float:
    """
    (1 + r)^m - 1. Solver output can be slightly negative, so only rates at or
    below -100% are rejected here.
    """
    if period_rate <= -1.0:
        raise InvalidParameter(f"period_rate must be above -100%, got {period_rate}", stage="rate_conversion")
    _check_periods(periods_per_year)
    return (1.0 + period_rate) ** periods_per_year - 1.0


def effective_annual_to_daily(effective_annual: float, days_in_year: int = 360) -> float:
    return effective_annual_to_period_rate(effective_annual, days_in_year)


def daily_to_period(daily_rate: float, days: int = 30) -> float:
    """Compound a daily effective rate over `days` (30 gives the monthly rate)."""
    _check_rate(daily_rate, "daily_rate")
    _check_periods(days, "days")
    return (1.0 + daily_rate) ** days - 1.0


def annual_rate_to_period_rate(
    annual_rate: float,
    rate_basis: RateBasis,
    periods_per_year: float,
    capitalization_per_year: Optional[float] = None,
) -> float:
    """
    Effective annual rates convert straight to the target periodicity; nominal
    rates go nominal -> effective annual (by capitalization) -> periodic.
    """
    if rate_basis == RateBasis.EFFECTIVE:
        return effective_annual_to_period_rate(annual_rate, periods_per_year)

    if capitalization_per_year is None:
        raise InvalidParameter("capitalization is required for a nominal rate", stage="rate_conversion")
    effective = nominal_to_effective_annual(annual_rate, capitalization_per_year)
    return effective_annual_to_period_rate(effective, periods_per_year)


def monthly_rate(params: BondParameters, periods_per_year: int = 12) -> float:
    """Periodic (monthly by default) effective rate implied by the bond parameters."""
    if not params.rate_value_percent > 0:
        raise InvalidParameter(
            f"rate_value_percent must be positive, got {params.rate_value_percent}", stage="rate_conversion"
        )
    capitalization = params.capitalization.periods_per_year if params.capitalization is not None else None
    return annual_rate_to_period_rate(
        params.rate_value_percent / 100.0,
        params.rate_basis,
        periods_per_year,
        capitalization,
    )


def convert_currency(amount: float, exchange_rate: float) -> float:
    """Apply a caller-supplied exchange rate (units of target per unit of source)."""
    if exchange_rate <= 0:
        raise InvalidParameter(f"exchange_rate must be positive, got {exchange_rate}")
    return amount * exchange_rate
