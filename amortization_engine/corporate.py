"""
Corporate bond valuation under the French method with inflation indexing.

The bond balance is indexed by periodic inflation each period, interest
accrues on the indexed balance and the installment is re-derived over the
remaining periods. A redemption premium is paid with the last installment.
Flows are produced from three points of view:

- issuer (pays installments and premium, receives commercial value less its
  issuance costs),
- issuer including the income-tax shield on interest,
- bondholder (pays commercial value plus its costs, receives installments
  and premium).

Price, duration and convexity are measured on the bondholder flows at the
discount rate (COK); effective cost/yield rates are annualized IRRs.
"""
from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

import numpy as np
import pandas as pd

from .bonds import RateBasis
from .config import SolverSettings
from .errors import EngineError, InvalidParameter
from .rates import annualize_period_rate, effective_annual_to_period_rate, nominal_to_effective_annual
from .result import Err, Ok, Result
from .schedule import french_installment
from .solver import solve_periodic_rate
from .utils import discount_factors, payment_dates, period_times

logger = logging.getLogger(__name__)

COUPON_MONTHS = {30: 1, 60: 2, 90: 3, 120: 4, 180: 6, 360: 12}


class CostBearer(str, Enum):
    ISSUER = "ISSUER"
    BONDHOLDER = "BONDHOLDER"
    BOTH = "BOTH"


@dataclass(frozen=True)
class IssuanceCost:
    percent: float = 0.0
    applies_to: CostBearer = CostBearer.BOTH

    @property
    def issuer_percent(self) -> float:
        return self.percent if self.applies_to in (CostBearer.ISSUER, CostBearer.BOTH) else 0.0

    @property
    def bondholder_percent(self) -> float:
        return self.percent if self.applies_to in (CostBearer.BONDHOLDER, CostBearer.BOTH) else 0.0


@dataclass(frozen=True)
class CorporateBondInput:
    face_value: float
    commercial_value: float
    years: float
    coupon_frequency_days: int
    days_per_year: int
    rate_basis: RateBasis
    annual_rate_percent: float
    discount_rate_percent: float
    income_tax_percent: float
    issue_date: dt.date
    inflation_annual_percent: float = 0.0
    capitalization_days: Optional[int] = None
    premium: IssuanceCost = field(default_factory=IssuanceCost)
    structuring: IssuanceCost = field(default_factory=IssuanceCost)
    placement: IssuanceCost = field(default_factory=IssuanceCost)
    flotation: IssuanceCost = field(default_factory=IssuanceCost)
    cavali: IssuanceCost = field(default_factory=IssuanceCost)

    @property
    def periods_per_year(self) -> float:
        return self.days_per_year / self.coupon_frequency_days

    @property
    def total_periods(self) -> int:
        return int(round(self.years * self.periods_per_year))

    def validate(self) -> None:
        errors = []
        if not self.face_value > 0:
            errors.append("face_value must be positive")
        if not self.commercial_value > 0:
            errors.append("commercial_value must be positive")
        if self.coupon_frequency_days not in COUPON_MONTHS:
            errors.append(f"coupon_frequency_days must be one of {sorted(COUPON_MONTHS)}")
        if self.days_per_year not in (360, 365):
            errors.append("days_per_year must be 360 or 365")
        if not self.years > 0:
            errors.append("years must be positive")
        elif self.coupon_frequency_days in COUPON_MONTHS and self.days_per_year > 0 and self.total_periods < 1:
            errors.append("bond must have at least one coupon period")
        if not self.annual_rate_percent > 0:
            errors.append("annual_rate_percent must be positive")
        if self.discount_rate_percent < 0:
            errors.append("discount_rate_percent must be non-negative")
        if not 0 <= self.income_tax_percent < 100:
            errors.append("income_tax_percent must be in [0, 100)")
        if self.inflation_annual_percent <= -100:
            errors.append("inflation_annual_percent must be above -100")
        if self.rate_basis == RateBasis.NOMINAL and not self.capitalization_days:
            errors.append("capitalization_days is required for a nominal rate")
        if errors:
            raise InvalidParameter("; ".join(errors), stage="validation")


@dataclass(frozen=True, eq=False)
class CorporateBondResult:
    periods_per_year: float
    total_periods: int
    period_rate: float
    discount_period_rate: float
    inflation_period_rate: float
    issuer_initial_costs: float
    bondholder_initial_costs: float
    price: float
    profit_loss: float
    macaulay_duration_years: float
    modified_duration_years: float
    convexity: float
    issuer_cost_rate_annual: float
    issuer_cost_rate_with_shield_annual: float
    bondholder_yield_rate_annual: float
    table: pd.DataFrame


def _annual_effective_rate(inp: CorporateBondInput) -> float:
    rate = inp.annual_rate_percent / 100.0
    if inp.rate_basis == RateBasis.NOMINAL:
        return nominal_to_effective_annual(rate, inp.days_per_year / inp.capitalization_days)
    return rate


def _irr_annual(reference: float, flows: np.ndarray, ppy: float, solver: SolverSettings, stage: str) -> float:
    res = solve_periodic_rate(
        reference,
        flows,
        initial_guess=solver.initial_guess,
        tolerance=solver.tolerance,
        max_iterations=solver.max_iterations,
        method=solver.method,
    )
    return annualize_period_rate(res.require_converged(stage), ppy)


def _value(inp: CorporateBondInput, solver: SolverSettings) -> CorporateBondResult:
    inp.validate()

    ppy = inp.periods_per_year
    n = inp.total_periods
    rate = effective_annual_to_period_rate(_annual_effective_rate(inp), ppy)
    cok = effective_annual_to_period_rate(inp.discount_rate_percent / 100.0, ppy)
    inflation = (1.0 + inp.inflation_annual_percent / 100.0) ** (1.0 / ppy) - 1.0
    tax = inp.income_tax_percent / 100.0

    # the premium is paid at redemption, not at issue
    issuer_costs = inp.commercial_value / 100.0 * (
        inp.structuring.issuer_percent
        + inp.placement.issuer_percent
        + inp.flotation.issuer_percent
        + inp.cavali.issuer_percent
    )
    holder_costs = inp.commercial_value / 100.0 * (
        inp.flotation.bondholder_percent + inp.cavali.bondholder_percent
    )

    dates = payment_dates(inp.issue_date, n, COUPON_MONTHS[inp.coupon_frequency_days])
    rows = [{
        "n": 0,
        "due_date": inp.issue_date,
        "bond": inp.face_value,
        "indexed_bond": inp.face_value,
        "interest": 0.0,
        "installment": 0.0,
        "amortization": 0.0,
        "premium": 0.0,
        "tax_shield": 0.0,
        "issuer_flow": inp.commercial_value - issuer_costs,
        "issuer_flow_with_shield": inp.commercial_value - issuer_costs,
        "bondholder_flow": -inp.commercial_value - holder_costs,
    }]

    balance = float(inp.face_value)
    for i in range(1, n + 1):
        indexed = balance * (1.0 + inflation)
        interest = indexed * rate
        installment = french_installment(indexed, rate, n - i + 1)
        amortization = installment - interest
        premium = inp.premium.percent / 100.0 * indexed if i == n else 0.0
        shield = interest * tax

        rows.append({
            "n": i,
            "due_date": dates[i - 1],
            "bond": balance,
            "indexed_bond": indexed,
            "interest": interest,
            "installment": installment,
            "amortization": amortization,
            "premium": premium,
            "tax_shield": shield,
            "issuer_flow": -(installment + premium),
            "issuer_flow_with_shield": -installment + shield - premium,
            "bondholder_flow": installment + premium,
        })
        balance = 0.0 if i == n else indexed - amortization

    table = pd.DataFrame(rows).set_index("n")
    future = table.loc[1:]

    t = period_times(n)
    holder = future["bondholder_flow"].to_numpy(dtype=float)
    pv = holder * discount_factors(cok, n)
    price = float(pv.sum())
    if price == 0:
        raise InvalidParameter("bondholder flows have zero present value", stage="risk")

    table["discounted_flow"] = np.r_[0.0, pv]
    table["discounted_flow_x_term"] = np.r_[0.0, pv * t / ppy]
    table["convexity_factor"] = np.r_[0.0, pv * t * (t + 1.0)]

    duration_years = float(np.sum(pv * t) / price / ppy)
    convexity = float(np.sum(pv * t * (t + 1.0)) / ((1.0 + cok) ** 2 * price * ppy ** 2))
    modified = duration_years / (1.0 + cok)

    issuer_payments = -future["issuer_flow"].to_numpy(dtype=float)
    issuer_payments_shield = -future["issuer_flow_with_shield"].to_numpy(dtype=float)
    net_received = inp.commercial_value - issuer_costs
    invested = inp.commercial_value + holder_costs

    result = CorporateBondResult(
        periods_per_year=ppy,
        total_periods=n,
        period_rate=rate,
        discount_period_rate=cok,
        inflation_period_rate=inflation,
        issuer_initial_costs=issuer_costs,
        bondholder_initial_costs=holder_costs,
        price=price,
        profit_loss=price - invested,
        macaulay_duration_years=duration_years,
        modified_duration_years=modified,
        convexity=convexity,
        issuer_cost_rate_annual=_irr_annual(net_received, issuer_payments, ppy, solver, "issuer_cost_rate"),
        issuer_cost_rate_with_shield_annual=_irr_annual(
            net_received, issuer_payments_shield, ppy, solver, "issuer_cost_rate_with_shield"
        ),
        bondholder_yield_rate_annual=_irr_annual(invested, holder, ppy, solver, "bondholder_yield_rate"),
        table=table,
    )
    logger.info("Valued %d-period corporate bond: price=%.4f", n, price)
    return result


def value_corporate_bond(
    inp: CorporateBondInput,
    solver: Optional[SolverSettings] = None,
) -> Result[CorporateBondResult, EngineError]:
    try:
        return Ok(_value(inp, solver or SolverSettings()))
    except EngineError as exc:
        logger.warning("Corporate bond valuation failed: %s", exc)
        return Err(exc)
