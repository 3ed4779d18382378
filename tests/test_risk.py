import numpy as np
import pytest

from amortization_engine.errors import DegenerateInput
from amortization_engine.risk import (
    convexity,
    macaulay_duration,
    modified_duration,
    price_change_estimate,
    risk_metrics,
)
from amortization_engine.schedule import french_installment
from amortization_engine.solver import npv


@pytest.fixture(scope="module")
def annuity():
    r = 0.01
    flows = np.full(24, french_installment(10_000.0, r, 24))
    return flows, r


def test_single_flow_by_hand():
    assert abs(macaulay_duration([110.0], 0.1, 100.0) - 1.0) < 1e-12
    assert abs(modified_duration(1.0, 0.1) - 1.0 / 1.1) < 1e-12
    assert abs(convexity([110.0], 0.1, 100.0) - 2.0 * 110.0 / 1.1 ** 3 / 100.0) < 1e-12


def test_zero_coupon_duration_equals_maturity():
    flows = [0.0, 0.0, 0.0, 0.0, 100.0 * 1.05 ** 5]
    assert abs(macaulay_duration(flows, 0.05, 100.0) - 5.0) < 1e-10


def test_annuity_duration_closed_form(annuity):
    flows, r = annuity
    n = len(flows)
    expected = (1 + r) / r - n / ((1 + r) ** n - 1)
    assert abs(macaulay_duration(flows, r, 10_000.0) - expected) < 1e-8


def test_risk_metrics_in_years(annuity):
    flows, r = annuity
    m = risk_metrics(flows, r, 10_000.0, periods_per_year=12)
    d = macaulay_duration(flows, r, 10_000.0)
    assert abs(m.macaulay_duration_years - d / 12) < 1e-12
    assert abs(m.modified_duration_years - d / (1 + r) / 12) < 1e-12
    assert m.modified_duration_years < m.macaulay_duration_years
    assert m.convexity > 0.0


def test_second_order_estimate_tracks_repricing(annuity):
    flows, r = annuity
    d_mod = modified_duration(macaulay_duration(flows, r, 10_000.0), r)
    c = convexity(flows, r, 10_000.0)
    base = npv(r, flows)

    for dy in (-0.001, 0.001):
        actual = npv(r + dy, flows) / base - 1.0
        first_order = -d_mod * dy
        second_order = price_change_estimate(d_mod, c, dy)
        assert abs(second_order - actual) < abs(first_order - actual), "convexity term must improve the estimate"


@pytest.mark.parametrize(
    "call",
    [
        lambda: macaulay_duration([], 0.01, 100.0),
        lambda: convexity([10.0], 0.01, 0.0),
        lambda: risk_metrics([10.0], 0.01, 0.0),
        lambda: risk_metrics([10.0], 0.01, 100.0, periods_per_year=0),
    ],
)
def test_degenerate_inputs(call):
    with pytest.raises(DegenerateInput):
        call()
