from __future__ import annotations

import datetime as dt
from functools import lru_cache
from typing import Sequence, Tuple

import numpy as np
import pandas as pd


def as_cash_flow_array(cash_flows: Sequence[float]) -> np.ndarray:
    return np.asarray(cash_flows, dtype=float).reshape(-1)


def period_times(n: int) -> np.ndarray:
    """t = 1..n as floats."""
    return np.arange(1, n + 1, dtype=float)


def discount_factors(rate: float, n: int) -> np.ndarray:
    """(1 + r)^-t for t = 1..n."""
    return (1.0 + rate) ** -period_times(n)


def months_per_period(periods_per_year: float) -> int:
    """
    Whole calendar months in one payment period. Only periodicities that
    divide a year into whole months (12, 6, 4, 3, 2, 1) are supported.
    """
    if periods_per_year <= 0:
        raise ValueError("periods_per_year must be positive")
    months = 12.0 / periods_per_year
    if abs(months - round(months)) > 1e-9:
        raise ValueError(f"{periods_per_year} periods per year is not a whole number of months")
    return int(round(months))


def payment_dates(start: dt.date, n: int, months: int = 1) -> Tuple[dt.date, ...]:
    """
    Due dates start + k*months for k = 1..n. Offsets are taken from the start
    date each time, so a 31st start falls on month-end and returns to the 31st
    where the month allows it.
    """
    if n <= 0:
        raise ValueError("n must be positive")
    start = pd.Timestamp(start)
    return tuple((start + pd.DateOffset(months=months * k)).date() for k in range(1, n + 1))


@lru_cache(maxsize=10_000)
def cached_payment_dates(start: dt.date, n: int, months: int = 1) -> Tuple[dt.date, ...]:
    """Cache schedules by (start, n, months)."""
    return payment_dates(start, n, months)
