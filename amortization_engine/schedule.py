from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import List, Optional, Tuple

import numpy as np
import pandas as pd

from .bonds import BondParameters, GraceKind, PaymentPeriod
from .config import DEFAULT_CONFIG, EngineConfig
from .errors import InvalidParameter
from .utils import cached_payment_dates, months_per_period

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class ScheduleResult:
    periods: Tuple[PaymentPeriod, ...]
    installment: float
    period_rate: float
    all_in_flows: np.ndarray           # total_due per period
    principal_interest_flows: np.ndarray

    def __len__(self) -> int:
        return len(self.periods)


def french_installment(principal: float, rate: float, periods: int) -> float:
    """
    Constant installment C = P * r(1+r)^n / ((1+r)^n - 1), or P/n at r = 0.
    """
    if periods <= 0:
        raise InvalidParameter(f"periods must be positive, got {periods}", stage="schedule")
    if rate < 0:
        raise InvalidParameter(f"rate must be non-negative, got {rate}", stage="schedule")
    if rate == 0:
        return principal / periods

    growth = (1.0 + rate) ** periods
    return principal * rate * growth / (growth - 1.0)


def validate_schedule_inputs(params: BondParameters) -> None:
    if params.term_periods <= 0:
        raise InvalidParameter(f"term_periods must be positive, got {params.term_periods}", stage="schedule")
    if not params.rate_value_percent > 0:
        raise InvalidParameter(
            f"rate_value_percent must be positive, got {params.rate_value_percent}", stage="schedule"
        )
    if params.grace_kind != GraceKind.NONE and params.grace_periods >= params.term_periods:
        raise InvalidParameter(
            f"grace_periods ({params.grace_periods}) must be less than term_periods ({params.term_periods})",
            stage="schedule",
        )
    if not params.principal > 0:
        raise InvalidParameter(f"principal must be positive, got {params.principal}", stage="schedule")


def build_schedule(
    params: BondParameters,
    period_rate: float,
    config: Optional[EngineConfig] = None,
) -> ScheduleResult:
    """
    French-method schedule with optional grace.

    The constant installment is computed once from the principal over the
    full term, grace or not. Grace periods shift amortization later, so the
    final period pays whatever balance is left.
    """
    config = config or DEFAULT_CONFIG
    validate_schedule_inputs(params)

    n = params.term_periods
    grace = params.effective_grace_periods
    dates = cached_payment_dates(params.start_date, n, months_per_period(config.periods_per_year))

    insurance_rate = config.insurance_rate if params.include_insurance else 0.0
    fee = config.service_fee if params.include_service_fee else 0.0
    tax_rate = config.transaction_tax_rate

    balance = float(params.principal)
    installment = french_installment(balance, period_rate, n)
    periods: List[PaymentPeriod] = []

    for i in range(1, n + 1):
        interest = balance * period_rate
        capitalized = 0.0

        if i <= grace:
            principal = 0.0
            if params.grace_kind == GraceKind.TOTAL:
                capitalized = interest
                interest_paid = 0.0
                balance += interest
            else:
                interest_paid = interest
        else:
            interest_paid = interest
            principal = installment - interest
            if i == n:
                principal = balance

        insurance = balance * insurance_rate
        subtotal = principal + interest_paid + insurance + fee
        tax = subtotal * tax_rate
        total = subtotal + tax

        balance -= principal
        if balance < config.balance_epsilon:
            balance = 0.0

        periods.append(
            PaymentPeriod(
                index=i,
                due_date=dates[i - 1],
                principal_component=principal,
                interest_component=interest_paid,
                insurance_component=insurance,
                service_fee_component=fee,
                transaction_tax_component=tax,
                total_due=total,
                remaining_balance=balance,
                capitalized_interest=capitalized,
            )
        )

    all_in = np.array([p.total_due for p in periods], dtype=float)
    pi_flows = np.array([p.principal_component + p.interest_component for p in periods], dtype=float)

    logger.debug("Built %d-period schedule (grace=%s x%d, installment=%.6f)",
                 n, params.grace_kind.value, grace, installment)

    return ScheduleResult(
        periods=tuple(periods),
        installment=float(installment),
        period_rate=period_rate,
        all_in_flows=all_in,
        principal_interest_flows=pi_flows,
    )


def schedule_frame(schedule) -> pd.DataFrame:
    """One row per period. Accepts a ScheduleResult or a sequence of PaymentPeriod."""
    periods = schedule.periods if isinstance(schedule, ScheduleResult) else schedule
    df = pd.DataFrame([asdict(p) for p in periods])
    if not df.empty:
        df = df.set_index("index")
    return df
