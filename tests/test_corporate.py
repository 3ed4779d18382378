import datetime as dt
from dataclasses import replace

import pytest

from amortization_engine.bonds import RateBasis
from amortization_engine.corporate import CorporateBondInput, CostBearer, IssuanceCost, value_corporate_bond
from amortization_engine.errors import InvalidParameter


@pytest.fixture(scope="module")
def plain():
    return CorporateBondInput(
        face_value=1_000.0,
        commercial_value=1_000.0,
        years=5,
        coupon_frequency_days=180,
        days_per_year=360,
        rate_basis=RateBasis.EFFECTIVE,
        annual_rate_percent=8.0,
        discount_rate_percent=8.0,
        income_tax_percent=30.0,
        issue_date=dt.date(2026, 6, 1),
    )


@pytest.fixture(scope="module")
def plain_result(plain):
    res = value_corporate_bond(plain)
    assert res.is_ok(), f"valuation failed: {getattr(res, 'error', None)}"
    return res.value


def test_costless_bond_prices_at_par(plain_result):
    r = plain_result
    assert r.total_periods == 10
    assert r.periods_per_year == 2
    assert abs(r.price - 1_000.0) < 1e-6, "discounting at the coupon rate returns face value"
    assert abs(r.profit_loss) < 1e-6


def test_costless_rates_equal_coupon_rate(plain_result):
    r = plain_result
    assert abs(r.issuer_cost_rate_annual - 0.08) < 1e-6
    assert abs(r.bondholder_yield_rate_annual - 0.08) < 1e-6
    assert r.issuer_cost_rate_with_shield_annual < r.issuer_cost_rate_annual


def test_table_amortizes_face_value(plain_result):
    table = plain_result.table
    assert list(table.index) == list(range(11))
    assert table.loc[0, "bondholder_flow"] == -1_000.0
    assert abs(table["amortization"].sum() - 1_000.0) < 1e-6
    assert table.loc[1, "due_date"] == dt.date(2026, 12, 1)
    installments = table.loc[1:, "installment"]
    assert (installments - installments.iloc[0]).abs().max() < 1e-9, "no inflation: level installment"


def test_risk_measures(plain_result):
    r = plain_result
    assert 0.0 < r.macaulay_duration_years < 5.0
    assert r.modified_duration_years < r.macaulay_duration_years
    assert r.convexity > 0.0


def test_nominal_rate_is_converted(plain):
    nominal = replace(plain, rate_basis=RateBasis.NOMINAL, capitalization_days=30)
    r = value_corporate_bond(nominal).unwrap()
    expected = (1 + 0.08 / 12) ** 12 - 1
    assert abs(r.bondholder_yield_rate_annual - expected) < 1e-6


def test_inflation_raises_yield(plain, plain_result):
    indexed = replace(plain, inflation_annual_percent=5.0)
    r = value_corporate_bond(indexed).unwrap()
    assert r.inflation_period_rate > 0.0
    assert r.bondholder_yield_rate_annual > plain_result.bondholder_yield_rate_annual
    assert r.price > plain_result.price


def test_issuance_costs_split_by_bearer(plain, plain_result):
    costly = replace(
        plain,
        structuring=IssuanceCost(1.0, CostBearer.ISSUER),
        placement=IssuanceCost(0.25, CostBearer.ISSUER),
        flotation=IssuanceCost(0.45, CostBearer.BOTH),
        cavali=IssuanceCost(0.5, CostBearer.BONDHOLDER),
        premium=IssuanceCost(1.0),
    )
    r = value_corporate_bond(costly).unwrap()
    assert abs(r.issuer_initial_costs - 17.0) < 1e-9
    assert abs(r.bondholder_initial_costs - 9.5) < 1e-9
    assert r.issuer_cost_rate_annual > plain_result.issuer_cost_rate_annual
    assert r.issuer_cost_rate_with_shield_annual < r.issuer_cost_rate_annual
    assert r.table.loc[10, "premium"] > 0.0
    assert r.table.loc[9, "premium"] == 0.0


def test_invalid_frequency_returns_err(plain):
    res = value_corporate_bond(replace(plain, coupon_frequency_days=45))
    assert res.is_err()
    assert isinstance(res.error, InvalidParameter)
    assert res.error.stage == "validation"
    assert "coupon_frequency_days" in str(res.error)
