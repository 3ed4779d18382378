from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from .errors import DegenerateInput
from .utils import as_cash_flow_array, discount_factors, period_times


@dataclass(frozen=True)
class RiskMeasures:
    macaulay_duration_years: float
    modified_duration_years: float
    convexity: float


def _prepare(cash_flows: Sequence[float], reference_price: float) -> np.ndarray:
    cfs = as_cash_flow_array(cash_flows)
    if cfs.size == 0:
        raise DegenerateInput("cash flow vector is empty", stage="risk")
    if reference_price == 0:
        raise DegenerateInput("reference price is zero", stage="risk")
    return cfs


def macaulay_duration(cash_flows: Sequence[float], period_rate: float, reference_price: float) -> float:
    """sum t * CF_t / (1+r)^t / P, in periods."""
    cfs = _prepare(cash_flows, reference_price)
    t = period_times(len(cfs))
    return float(np.sum(t * cfs * discount_factors(period_rate, len(cfs))) / reference_price)


def modified_duration(duration: float, period_rate: float) -> float:
    return duration / (1.0 + period_rate)


def convexity(cash_flows: Sequence[float], period_rate: float, reference_price: float) -> float:
    """sum t(t+1) * CF_t / (1+r)^(t+2) / P, in periods squared."""
    cfs = _prepare(cash_flows, reference_price)
    t = period_times(len(cfs))
    v = discount_factors(period_rate, len(cfs))
    return float(np.sum(t * (t + 1.0) * cfs * v) / (1.0 + period_rate) ** 2 / reference_price)


def risk_metrics(
    cash_flows: Sequence[float],
    period_rate: float,
    reference_price: float,
    periods_per_year: float = 12,
) -> RiskMeasures:
    """
    Macaulay and modified duration expressed in years (periods / periods_per_year).
    Convexity is left in periods squared.
    """
    if periods_per_year <= 0:
        raise DegenerateInput("periods_per_year must be positive", stage="risk")

    d = macaulay_duration(cash_flows, period_rate, reference_price)
    md = modified_duration(d, period_rate)
    c = convexity(cash_flows, period_rate, reference_price)
    return RiskMeasures(
        macaulay_duration_years=d / periods_per_year,
        modified_duration_years=md / periods_per_year,
        convexity=c,
    )


def price_change_estimate(modified_duration: float, convexity: float, rate_change: float) -> float:
    """
    Second-order relative price change for a rate move dy (same units as the
    duration/convexity inputs): -D*dy + 0.5*C*dy^2.
    """
    return -modified_duration * rate_change + 0.5 * convexity * rate_change ** 2
