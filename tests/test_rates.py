import datetime as dt

import pytest

from amortization_engine.bonds import BondParameters, Capitalization, Currency, RateBasis
from amortization_engine.errors import InvalidParameter
from amortization_engine.rates import (
    annualize_period_rate,
    convert_currency,
    convert_period_rate,
    daily_to_period,
    effective_annual_to_daily,
    effective_annual_to_period_rate,
    monthly_rate,
    nominal_to_effective_annual,
)


def _params(**overrides):
    base = dict(
        principal=10_000.0,
        currency=Currency.PEN,
        term_periods=24,
        rate_basis=RateBasis.EFFECTIVE,
        rate_value_percent=12.0,
        start_date=dt.date(2026, 1, 15),
    )
    base.update(overrides)
    return BondParameters(**base)


def test_nominal_to_effective_monthly_capitalization():
    assert abs(nominal_to_effective_annual(0.12, 12) - 0.126825030131969) < 1e-12


def test_nominal_equals_effective_with_annual_capitalization():
    assert abs(nominal_to_effective_annual(0.12, 1) - 0.12) < 1e-15


def test_effective_annual_to_monthly():
    r = effective_annual_to_period_rate(0.12, 12)
    assert abs((1 + r) ** 12 - 1.12) < 1e-12
    assert 0.0094 < r < 0.0095


@pytest.mark.parametrize("rate,m", [(0.05, 12), (0.3, 4), (0.999, 360)])
def test_rate_round_trip(rate, m):
    period = effective_annual_to_period_rate(rate, m)
    back = convert_period_rate(period, m, 1)
    assert abs(back - rate) < 1e-12, "period -> annual must recover the input rate"


def test_convert_period_rate_monthly_to_quarterly():
    monthly = 0.01
    quarterly = convert_period_rate(monthly, 12, 4)
    assert abs(quarterly - (1.01 ** 3 - 1)) < 1e-15


def test_annualize_accepts_small_negative_rates():
    assert annualize_period_rate(-0.001, 12) < 0.0
    with pytest.raises(InvalidParameter):
        annualize_period_rate(-1.0, 12)


def test_daily_helpers_compose_to_monthly():
    ted = effective_annual_to_daily(0.12)
    tem = daily_to_period(ted, 30)
    assert abs(tem - effective_annual_to_period_rate(0.12, 12)) < 1e-12


@pytest.mark.parametrize(
    "call",
    [
        lambda: nominal_to_effective_annual(-0.01, 12),
        lambda: nominal_to_effective_annual(0.1, 0),
        lambda: effective_annual_to_period_rate(-0.5, 12),
        lambda: convert_period_rate(0.01, 12, 0),
        lambda: daily_to_period(0.001, 0),
    ],
)
def test_invalid_domain_rejected(call):
    with pytest.raises(InvalidParameter):
        call()


def test_monthly_rate_effective_basis():
    assert abs(monthly_rate(_params()) - effective_annual_to_period_rate(0.12, 12)) < 1e-15


def test_monthly_rate_nominal_basis_uses_capitalization():
    p = _params(rate_basis=RateBasis.NOMINAL, capitalization=Capitalization.MONTHLY)
    assert abs(monthly_rate(p) - 0.01) < 1e-12, "12% nominal capitalized monthly is exactly 1% per month"

    q = _params(rate_basis=RateBasis.NOMINAL, capitalization=Capitalization.QUARTERLY)
    expected = (1.03 ** 4) ** (1 / 12) - 1
    assert abs(monthly_rate(q) - expected) < 1e-12


def test_monthly_rate_nominal_without_capitalization_rejected():
    with pytest.raises(InvalidParameter):
        monthly_rate(_params(rate_basis=RateBasis.NOMINAL))


def test_convert_currency():
    assert convert_currency(100.0, 3.75) == 375.0
    with pytest.raises(InvalidParameter):
        convert_currency(100.0, 0.0)
