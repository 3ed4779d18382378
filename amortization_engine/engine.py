from __future__ import annotations

import logging
import math
from typing import Optional

import numpy as np

from .bonds import BondParameters, ComplianceReport, EngineResult, FinancialIndicators
from .compliance import validate_compliance
from .config import DEFAULT_CONFIG, EngineConfig
from .errors import DegenerateInput, EngineError, InvalidParameter
from .rates import annualize_period_rate, monthly_rate
from .result import Err, Ok, Result
from .risk import risk_metrics
from .schedule import build_schedule
from .solver import SolverResult, solve_periodic_rate

logger = logging.getLogger(__name__)


class BondEngine:
    """
    Single entry point for callers holding one configuration.

    `evaluate` never raises for bad input or numeric failure: it returns
    Ok(EngineResult) or Err(EngineError) with `stage` set to the step that
    failed ("validation", "rate_conversion", "schedule", "cost_rate",
    "yield_rate", "risk").
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or DEFAULT_CONFIG

    def validate(self, params: BondParameters) -> None:
        params.validate()

    def check_compliance(self, params: BondParameters) -> ComplianceReport:
        return validate_compliance(params, self.config.bounds)

    def _solve(self, reference: float, flows: np.ndarray, stage: str) -> SolverResult:
        s = self.config.solver
        result = solve_periodic_rate(
            reference,
            flows,
            initial_guess=s.initial_guess,
            tolerance=s.tolerance,
            max_iterations=s.max_iterations,
            method=s.method,
        )
        if result.converged:
            return result
        if s.accept_approximate and math.isfinite(result.rate):
            logger.warning("%s: accepting non-converged estimate %r", stage, result.rate)
            return result
        result.require_converged(stage)
        return result

    def evaluate(self, params: BondParameters) -> Result[EngineResult, EngineError]:
        cfg = self.config
        ppy = cfg.periods_per_year
        stage = "validation"
        try:
            self.validate(params)

            stage = "rate_conversion"
            rate = monthly_rate(params, ppy)

            stage = "schedule"
            schedule = build_schedule(params, rate, cfg)

            stage = "cost_rate"
            cost = self._solve(params.principal, schedule.all_in_flows, stage)

            stage = "yield_rate"
            yld = self._solve(params.principal, schedule.principal_interest_flows, stage)

            stage = "risk"
            measures = risk_metrics(schedule.all_in_flows, cost.rate, params.principal, ppy)

            indicators = FinancialIndicators(
                effective_cost_rate_annual=annualize_period_rate(cost.rate, ppy),
                effective_yield_rate_annual=annualize_period_rate(yld.rate, ppy),
                macaulay_duration_years=measures.macaulay_duration_years,
                modified_duration_years=measures.modified_duration_years,
                convexity=measures.convexity,
                installment=schedule.installment,
                monthly_rate=rate,
                converged=cost.converged and yld.converged,
            )
        except EngineError as exc:
            logger.warning("Evaluation failed at %s: %s", stage, exc.message)
            return Err(exc.at_stage(stage))
        except ArithmeticError as exc:
            logger.warning("Evaluation failed at %s: %s", stage, exc)
            return Err(DegenerateInput(str(exc), stage=stage))
        except ValueError as exc:
            logger.warning("Evaluation failed at %s: %s", stage, exc)
            return Err(InvalidParameter(str(exc), stage=stage))

        logger.info(
            "Evaluated %d-period %s bond: TCEA=%.4f%% TREA=%.4f%%",
            params.term_periods,
            params.currency.value,
            indicators.effective_cost_rate_annual * 100,
            indicators.effective_yield_rate_annual * 100,
        )
        return Ok(EngineResult(schedule=schedule.periods, indicators=indicators))


def evaluate(params: BondParameters, config: Optional[EngineConfig] = None) -> Result[EngineResult, EngineError]:
    """Build the schedule and indicators for `params`. See `BondEngine.evaluate`."""
    return BondEngine(config).evaluate(params)
